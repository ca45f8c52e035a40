import logging
from urllib.parse import quote

from . import config
from .cache import build_cache
from .datavalues import classify_statements
from .http import HttpClient
from .identifiers import normalize_entity_id
from .query import MindQuery
from .repository import EntityRepository
from .structured import StructuredInfoBuilder

logger = logging.getLogger(__name__)

IMAGE_PROPERTY = "P18"


def _text_value(container, lang):
    entry = (container or {}).get(lang)
    if not entry:
        return None
    return entry.get("value")


def raw_values(statements):
    """Provider-level values: entity ids, raw time strings, strings and opaque payloads."""
    return [variant.raw() for variant in classify_statements(statements)]


def sitelink_url(sitelinks, site):
    """Article URL for ``site`` (e.g. enwiki, fawiki), or None when the entity has no such link."""
    link = (sitelinks or {}).get(site)
    if not link or not link.get("title"):
        return None
    lang = site[:-4] if site.endswith("wiki") else site
    lang = lang.replace("_", "-")
    title = link["title"].replace(" ", "_")
    return config.WIKIPEDIA_ARTICLE_URL.format(lang=lang, title=title)


class Wikimind:
    """Direct lookups, structured extraction and SPARQL queries against one Wikibase."""

    def __init__(self, settings=None, client=None, cache=None):
        self.settings = settings or config.Settings()
        self.client = client or HttpClient(self.settings)
        self.cache = cache if cache is not None else build_cache(self.settings)
        self.repository = EntityRepository(self.client)
        self.structured = StructuredInfoBuilder(self.repository, self.cache, self.settings)

    def query(self):
        """Fresh MindQuery bound to the configured SPARQL endpoint."""
        return MindQuery(self.client.run_sparql)

    def entity(self, entity_id):
        return self.repository.entity(normalize_entity_id(entity_id))

    def search(self, query, language=config.DEFAULT_LANGUAGE, entity_type="item", limit=10):
        return self.repository.search(query, language, entity_type, limit)

    def label(self, entity_id, lang=config.DEFAULT_LANGUAGE):
        return _text_value(self.entity(entity_id).get("labels"), lang)

    def description(self, entity_id, lang=config.DEFAULT_LANGUAGE):
        return _text_value(self.entity(entity_id).get("descriptions"), lang)

    def aliases(self, entity_id, lang=config.DEFAULT_LANGUAGE):
        entries = (self.entity(entity_id).get("aliases") or {}).get(lang) or []
        return [entry.get("value") for entry in entries if entry.get("value")]

    def claims(self, entity_id):
        return self.entity(entity_id).get("claims") or {}

    def properties(self, entity_id):
        """{property_id: [raw values]} for every claim of the entity."""
        return {property_id: raw_values(statements) for property_id, statements in self.claims(entity_id).items()}

    def property_value(self, entity_id, property_id):
        return raw_values(self.claims(entity_id).get(property_id))

    def sitelink(self, entity_id, site="enwiki"):
        return sitelink_url(self.entity(entity_id).get("sitelinks"), site)

    def image(self, entity_id):
        """Commons file URL of the first P18 image, or None."""
        images = [value for value in self.property_value(entity_id, IMAGE_PROPERTY) if isinstance(value, str)]
        if not images:
            return None
        filename = quote(images[0].replace(" ", "_"), safe="")
        return config.COMMONS_FILE_URL.format(filename=filename)

    def structured_info(self, entity_id, lang=config.DEFAULT_LANGUAGE, max_properties=config.DEFAULT_MAX_PROPERTIES):
        return self.structured.structured_info(normalize_entity_id(entity_id), lang, max_properties)

    def pick_info(self, entity_id, property_ids, lang=config.DEFAULT_LANGUAGE):
        wanted = [normalize_entity_id(property_id) for property_id in property_ids]
        return self.structured.pick_info(normalize_entity_id(entity_id), wanted, lang)

    def pick_info_by_name(self, name, property_ids, lang=config.DEFAULT_LANGUAGE, limit=2):
        wanted = [normalize_entity_id(property_id) for property_id in property_ids]
        return self.structured.pick_info_by_name(name, wanted, lang, limit)

    def short_profile(self, entity_id, lang=config.DEFAULT_LANGUAGE):
        entity = self.entity(entity_id)
        return {
            "label": _text_value(entity.get("labels"), lang),
            "description": _text_value(entity.get("descriptions"), lang),
            "sitelink": sitelink_url(entity.get("sitelinks"), f"{lang}wiki"),
        }

    def smart_suggest(self, query, lang=config.DEFAULT_LANGUAGE, entity_type="item", limit=5):
        """Labels of the search hits, for autocomplete-style suggestions."""
        return [hit["label"] for hit in self.search(query, lang, entity_type, limit) if hit.get("label")]

    def get_entity_id(self, name, lang=config.DEFAULT_LANGUAGE):
        hits = self.search(name, lang)
        if not hits:
            return None
        return (hits[0] or {}).get("id") or None
