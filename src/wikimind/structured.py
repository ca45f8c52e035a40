"""Human-readable property/value maps built from raw entity claims."""

import logging

from . import config
from .datavalues import EntityRef, PlainString, Time, classify_statements
from .labels import LabelResolver, collect_label_ids

logger = logging.getLogger(__name__)


def render_values(variants, labels):
    """Display strings for one property, de-duplicated in first-seen order; Other values are dropped."""
    values = []
    for variant in variants:
        if isinstance(variant, EntityRef):
            if not variant.id:
                continue
            rendered = labels.get(variant.id, variant.id)
        elif isinstance(variant, Time):
            rendered = variant.display()
        elif isinstance(variant, PlainString):
            rendered = variant.value
        else:
            continue
        if rendered not in values:
            values.append(rendered)
    return values


def assemble(classified_claims, labels):
    """Build the final {label: [values]} map; properties without usable values are omitted."""
    info = {}
    for property_id, variants in classified_claims:
        values = render_values(variants, labels)
        if not values:
            continue
        property_label = labels.get(property_id, property_id)
        merged = info.setdefault(property_label, [])
        merged.extend(value for value in values if value not in merged)
    return info


class StructuredInfoBuilder:
    def __init__(self, repository, cache, settings=None):
        self.repository = repository
        self.cache = cache
        self.settings = settings or config.Settings()
        self.structured_labels = LabelResolver(
            repository,
            cache,
            chunk_size=self.settings.structured_chunk_size,
            ttl=self.settings.label_ttl,
            workers=self.settings.label_workers,
        )
        self.pick_labels = LabelResolver(
            repository,
            cache,
            chunk_size=self.settings.pick_chunk_size,
            ttl=self.settings.label_ttl,
            workers=self.settings.label_workers,
        )

    def _classify(self, claims, property_ids):
        classified = []
        for property_id in property_ids:
            statements = claims.get(property_id)
            if statements is None:
                continue
            property_id = property_id.strip()
            if not property_id:
                continue
            classified.append((property_id, classify_statements(statements)))
        return classified

    def _build(self, classified, lang, resolver):
        labels = resolver.resolve(collect_label_ids(classified), lang)
        return assemble(classified, labels)

    def structured_info(self, entity_id, lang=config.DEFAULT_LANGUAGE, max_properties=config.DEFAULT_MAX_PROPERTIES):
        """First ``max_properties`` properties of the entity as {label: [values]}."""

        def produce():
            claims = self.repository.claims(entity_id)
            kept = list(claims)[: max(0, max_properties)]
            logger.info("[*] Structured info for %s: %d of %d properties (%s)", entity_id, len(kept), len(claims), lang)
            return self._build(self._classify(claims, kept), lang, self.structured_labels)

        key = f"structured:{entity_id}:{lang}:{max_properties}"
        return self.cache.remember(key, self.settings.structured_ttl, produce)

    def pick_info(self, entity_id, property_ids, lang=config.DEFAULT_LANGUAGE):
        """Only the listed properties, in list order; properties the entity lacks are skipped."""
        wanted = list(dict.fromkeys(property_ids))

        def produce():
            claims = self.repository.claims(entity_id)
            classified = self._classify(claims, wanted)
            logger.info("[*] Picked %d of %d properties for %s (%s)", len(classified), len(wanted), entity_id, lang)
            return self._build(classified, lang, self.pick_labels)

        key = f"pick:{entity_id}:{lang}:{','.join(wanted)}"
        return self.cache.remember(key, self.settings.pick_ttl, produce)

    def pick_info_by_name(self, name, property_ids, lang=config.DEFAULT_LANGUAGE, limit=2):
        """Search ``name`` and pick properties of the first hit; no hit means an empty result."""
        hits = self.repository.search(name, lang, "item", limit)
        if not hits:
            logger.info("[!] No entity found for %r (%s)", name, lang)
            return {}
        found_id = (hits[0] or {}).get("id")
        if not found_id:
            return {}
        return self.pick_info(found_id, property_ids, lang)
