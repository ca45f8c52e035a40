import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from . import config
from .cache import cache_key
from .datavalues import EntityRef

logger = logging.getLogger(__name__)


def collect_label_ids(classified_claims):
    """
    Ordered, de-duplicated ids that need a label: every property id plus every
    entity reference found among its classified values.
    """
    ids = []
    seen = set()
    for property_id, variants in classified_claims:
        candidates = [property_id]
        candidates.extend(variant.id for variant in variants if isinstance(variant, EntityRef))
        for candidate in candidates:
            if candidate and candidate not in seen:
                seen.add(candidate)
                ids.append(candidate)
    return ids


def chunked(iterable, size):
    """Yield iterable slices of fixed size (used for batched API lookups)."""
    batch = []
    for item in iterable:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def pick_label(entity, lang, fallback_lang=config.FALLBACK_LANGUAGE):
    """Return the label in ``lang``, else in ``fallback_lang``, else None."""
    if not entity:
        return None
    labels = entity.get("labels") or {}
    for code in (lang, fallback_lang):
        entry = labels.get(code)
        if entry and entry.get("value"):
            return entry["value"]
    return None


class LabelResolver:
    """Chunked id -> label resolution with a TTL cache per chunk."""

    def __init__(
        self,
        repository,
        cache,
        chunk_size=config.STRUCTURED_LABEL_CHUNK_SIZE,
        ttl=config.LABEL_CACHE_TTL_SECONDS,
        workers=config.LABEL_WORKERS,
    ):
        self.repository = repository
        self.cache = cache
        self.chunk_size = chunk_size
        self.ttl = ttl
        self.workers = workers
        self.stats = {
            "chunks": 0,
            "api_batches": 0,
            "api_ids": 0,
        }
        self._stats_lock = threading.Lock()

    def _count(self, **increments):
        with self._stats_lock:
            for name, amount in increments.items():
                self.stats[name] += amount

    def _fetch_chunk(self, chunk, lang):
        self._count(api_batches=1, api_ids=len(chunk))
        languages = [lang] if lang == config.FALLBACK_LANGUAGE else [lang, config.FALLBACK_LANGUAGE]
        entities = self.repository.get_entities(chunk, props="labels", languages=languages)
        labels = {}
        for entity_id in chunk:
            labels[entity_id] = pick_label(entities.get(entity_id), lang) or entity_id
        return labels

    def _resolve_chunk(self, chunk, lang):
        self._count(chunks=1)
        key = cache_key(f"labels:{lang}", chunk)
        return self.cache.remember(key, self.ttl, lambda: self._fetch_chunk(chunk, lang))

    def resolve(self, ids, lang=config.DEFAULT_LANGUAGE):
        """Resolve ids to labels; ids without any label map to themselves."""
        ordered_ids = []
        seen = set()
        for entity_id in ids:
            if not entity_id or entity_id in seen:
                continue
            seen.add(entity_id)
            ordered_ids.append(entity_id)
        if not ordered_ids:
            return {}

        chunks = list(chunked(ordered_ids, self.chunk_size))
        if self.workers > 1 and len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(chunks))) as executor:
                results = list(executor.map(lambda chunk: self._resolve_chunk(chunk, lang), chunks))
        else:
            results = [self._resolve_chunk(chunk, lang) for chunk in chunks]

        resolved = {}
        for labels in results:
            for entity_id, label in labels.items():
                resolved.setdefault(entity_id, label)
        logger.debug("[*] Resolved %d labels in %d chunks (%s)", len(resolved), len(chunks), lang)
        return resolved
