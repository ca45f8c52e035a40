import logging
import time

import requests

from . import config
from .errors import BAD_RESPONSE, NETWORK, TRANSPORT, UNEXPECTED, WikimindError

logger = logging.getLogger(__name__)

SPARQL_ACCEPT = "application/sparql-results+json"


class HttpClient:
    """requests wrapper with per-call timeout, bounded retries and JSON decoding."""

    def __init__(self, settings=None, sleep=time.sleep):
        self.settings = settings or config.Settings()
        self._sleep = sleep
        self.stats = {
            "requests": 0,
            "retries": 0,
            "failures": 0,
        }

    def log_failure(self, exc, url, params):
        self.stats["failures"] += 1
        logger.error("[!] Wikidata API error: %s | url=%s params=%s", exc, url, params)

    def _attempt(self, url, params, headers):
        """One GET. Returns (payload, retryable_error); raises for terminal failures."""
        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.settings.timeout)
        except requests.ConnectionError as exc:
            error = WikimindError(TRANSPORT, f"Failed to connect to {url}.", {"reason": str(exc)})
            error.__cause__ = exc
            return None, error
        except requests.Timeout as exc:
            error = WikimindError(NETWORK, f"Request to {url} timed out after {self.settings.timeout}s.", {"reason": str(exc)})
            error.__cause__ = exc
            return None, error
        except requests.RequestException as exc:
            raise WikimindError(NETWORK, f"Network error while calling {url}.", {"reason": str(exc)}) from exc

        status = response.status_code
        if status >= 400:
            error = WikimindError(NETWORK, f"Request failed with HTTP status {status}.", {"status": status})
            if status in config.RETRYABLE_STATUS_CODES:
                return None, error
            raise error
        try:
            payload = response.json()
        except ValueError as exc:
            raise WikimindError(BAD_RESPONSE, "Invalid JSON response from Wikidata.", {"status": status}) from exc
        if not isinstance(payload, dict):
            raise WikimindError(BAD_RESPONSE, "Expected a JSON object from Wikidata.", {"status": status})
        return payload, None

    def get_json(self, url, params=None, headers=None):
        """GET ``url`` and return the decoded JSON object, retrying transient failures."""
        merged_headers = dict(self.settings.headers)
        merged_headers.update(headers or {})
        attempts = max(1, self.settings.retry_attempts)
        last_error = None
        for attempt in range(1, attempts + 1):
            self.stats["requests"] += 1
            try:
                payload, last_error = self._attempt(url, params, merged_headers)
            except WikimindError as exc:
                self.log_failure(exc, url, params)
                raise
            except Exception as exc:
                self.log_failure(exc, url, params)
                raise WikimindError(UNEXPECTED, "Unexpected error during Wikidata API call.") from exc
            if last_error is None:
                return payload
            if attempt < attempts:
                self.stats["retries"] += 1
                logger.warning("[!] Attempt %d/%d for %s failed: %s", attempt, attempts, url, last_error)
                self._sleep(self.settings.retry_delay)
        self.log_failure(last_error, url, params)
        raise last_error

    def get_api(self, params):
        """Call the MediaWiki action API with ``format=json`` filled in."""
        query = dict(params)
        query.setdefault("format", "json")
        return self.get_json(self.settings.api_url, query)

    def log_api_failure(self, exc, params):
        """Log a failure found in an action API payload the HTTP layer accepted."""
        self.log_failure(exc, self.settings.api_url, params)

    def run_sparql(self, query):
        """Execute SPARQL text and return the response, which must carry results.bindings."""
        params = {"query": query, "format": "json"}
        payload = self.get_json(self.settings.sparql_url, params, {"Accept": SPARQL_ACCEPT})
        results = payload.get("results")
        if not isinstance(results, dict) or not isinstance(results.get("bindings"), list):
            error = WikimindError(BAD_RESPONSE, "Malformed SPARQL response: 'results.bindings' key is missing.")
            self.log_failure(error, self.settings.sparql_url, params)
            raise error
        logger.info("[+] SPARQL returned %d bindings", len(results["bindings"]))
        return payload
