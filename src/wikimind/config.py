import json
import re
from dataclasses import dataclass, replace
from pathlib import Path

import jsonschema

from .errors import WikimindError

# HTTP identity and base endpoints
HEADERS = {"User-Agent": "wikimind/0.3 (https://github.com/denason/wikimind; structured Wikidata lookups)"}
API_ENDPOINT = "https://www.wikidata.org/w/api.php"
SPARQL_ENDPOINT = "https://query.wikidata.org/sparql"
WIKIPEDIA_ARTICLE_URL = "https://{lang}.wikipedia.org/wiki/{title}"
COMMONS_FILE_URL = "https://commons.wikimedia.org/wiki/Special:FilePath/{filename}"

# Fetch tuning knobs
API_TIMEOUT = 15  # Seconds per HTTP request
API_RETRY_ATTEMPTS = 3  # Total attempts per request, first one included
API_RETRY_DELAY_SECONDS = 0.2  # Pause between attempts
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Label batching and cache lifetimes
DEFAULT_LANGUAGE = "en"
FALLBACK_LANGUAGE = "en"
STRUCTURED_LABEL_CHUNK_SIZE = 20  # Ids per wbgetentities call for structured_info
PICK_LABEL_CHUNK_SIZE = 30  # Ids per wbgetentities call for pick_info
LABEL_CACHE_TTL_SECONDS = 60
STRUCTURED_INFO_TTL_SECONDS = 300
PICK_INFO_TTL_SECONDS = 300
LABEL_WORKERS = 1  # >1 resolves label chunks on a thread pool
DEFAULT_MAX_PROPERTIES = 20

# Query builder defaults
DEFAULT_QUERY_LIMIT = 10

# Cache backends
CACHE_BACKEND = "memory"
CACHE_DIR = Path("data/cache")
CACHE_DB = CACHE_DIR / "wikimind.sqlite"
MEMORY_CACHE_SIZE = 2048

# Id validation patterns
QID_EXACT_PATTERN = re.compile(r"^Q\d+$")
PID_EXACT_PATTERN = re.compile(r"^P\d+$")
ENTITY_OR_PROPERTY_PATTERN = re.compile(r"^[QP]\d+$", re.IGNORECASE)

SETTINGS_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "api": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "base_url": {"type": "string", "minLength": 1},
                "sparql_url": {"type": "string", "minLength": 1},
                "timeout": {"type": "number", "exclusiveMinimum": 0},
                "user_agent": {"type": "string", "minLength": 1},
                "retry": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {
                        "attempts": {"type": "integer", "minimum": 1},
                        "delay_seconds": {"type": "number", "minimum": 0},
                    },
                },
            },
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "backend": {"enum": ["memory", "sqlite", "none"]},
                "path": {"type": "string", "minLength": 1},
                "memory_size": {"type": "integer", "minimum": 1},
            },
        },
        "labels": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "structured_chunk_size": {"type": "integer", "minimum": 1, "maximum": 50},
                "pick_chunk_size": {"type": "integer", "minimum": 1, "maximum": 50},
                "ttl_seconds": {"type": "number", "minimum": 0},
                "workers": {"type": "integer", "minimum": 1},
            },
        },
        "structured": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"ttl_seconds": {"type": "number", "minimum": 0}},
        },
        "pick": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"ttl_seconds": {"type": "number", "minimum": 0}},
        },
    },
}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration handed to the HTTP client, caches and resolvers."""

    api_url: str = API_ENDPOINT
    sparql_url: str = SPARQL_ENDPOINT
    timeout: float = API_TIMEOUT
    retry_attempts: int = API_RETRY_ATTEMPTS
    retry_delay: float = API_RETRY_DELAY_SECONDS
    user_agent: str = HEADERS["User-Agent"]
    cache_backend: str = CACHE_BACKEND
    cache_path: Path = CACHE_DB
    memory_cache_size: int = MEMORY_CACHE_SIZE
    structured_chunk_size: int = STRUCTURED_LABEL_CHUNK_SIZE
    pick_chunk_size: int = PICK_LABEL_CHUNK_SIZE
    label_ttl: float = LABEL_CACHE_TTL_SECONDS
    label_workers: int = LABEL_WORKERS
    structured_ttl: float = STRUCTURED_INFO_TTL_SECONDS
    pick_ttl: float = PICK_INFO_TTL_SECONDS

    @property
    def headers(self):
        return {"User-Agent": self.user_agent}


def validate_settings_payload(payload):
    """Raise INVALID_CONFIG with the shallowest schema error, if any."""
    validator = jsonschema.Draft202012Validator(SETTINGS_SCHEMA)
    errors = sorted(validator.iter_errors(payload), key=lambda e: len(list(e.absolute_path)))
    if errors:
        error = errors[0]
        details = {
            "path": list(error.absolute_path),
            "schema_path": list(error.absolute_schema_path),
            "message": error.message,
        }
        raise WikimindError("INVALID_CONFIG", "Settings file failed schema validation.", details)


def settings_from_dict(payload, base=None):
    """Overlay a validated settings payload on top of ``base`` (defaults when omitted)."""
    validate_settings_payload(payload)
    base = base or Settings()
    api = payload.get("api", {})
    retry = api.get("retry", {})
    cache = payload.get("cache", {})
    labels = payload.get("labels", {})
    overrides = {
        "api_url": api.get("base_url"),
        "sparql_url": api.get("sparql_url"),
        "timeout": api.get("timeout"),
        "user_agent": api.get("user_agent"),
        "retry_attempts": retry.get("attempts"),
        "retry_delay": retry.get("delay_seconds"),
        "cache_backend": cache.get("backend"),
        "cache_path": Path(cache["path"]) if "path" in cache else None,
        "memory_cache_size": cache.get("memory_size"),
        "structured_chunk_size": labels.get("structured_chunk_size"),
        "pick_chunk_size": labels.get("pick_chunk_size"),
        "label_ttl": labels.get("ttl_seconds"),
        "label_workers": labels.get("workers"),
        "structured_ttl": payload.get("structured", {}).get("ttl_seconds"),
        "pick_ttl": payload.get("pick", {}).get("ttl_seconds"),
    }
    return replace(base, **{key: value for key, value in overrides.items() if value is not None})


def load_settings(path=None):
    """Read a JSON settings file; no path means built-in defaults."""
    if path is None:
        return Settings()
    file_path = Path(path)
    if not file_path.exists():
        raise WikimindError("INVALID_CONFIG", f"Settings file not found: {file_path}", {"path": str(file_path)})
    try:
        with open(file_path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except json.JSONDecodeError as exc:
        details = {"message": exc.msg, "line": exc.lineno, "column": exc.colno}
        raise WikimindError("INVALID_CONFIG", "Settings file is not valid JSON.", details) from exc
    return settings_from_dict(payload)
