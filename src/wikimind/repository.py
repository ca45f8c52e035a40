import logging

from .errors import BAD_RESPONSE, NOT_FOUND, WikimindError

logger = logging.getLogger(__name__)


class EntityRepository:
    """Read access to raw Wikibase entity records and entity search."""

    def __init__(self, client):
        self.client = client

    def _fail(self, message, params, data, **details):
        """Log and raise BAD_RESPONSE, keeping the API's own error block when it sent one."""
        if data.get("error") is not None:
            details["error"] = data["error"]
        error = WikimindError(BAD_RESPONSE, message, details)
        self.client.log_api_failure(error, params)
        raise error

    def get_entities(self, ids, props=None, languages=None):
        """One wbgetentities call; returns the ``entities`` mapping as sent by the API."""
        params = {
            "action": "wbgetentities",
            "ids": "|".join(ids),
        }
        if props:
            params["props"] = props
        if languages:
            params["languages"] = "|".join(languages)
        data = self.client.get_api(params)
        entities = data.get("entities")
        if not isinstance(entities, dict):
            self._fail("Malformed wbgetentities response: 'entities' key is missing.", params, data, ids=list(ids))
        return entities

    def entity(self, entity_id):
        """Return the raw record for one entity; NOT_FOUND when absent or flagged missing."""
        entity = self.get_entities([entity_id]).get(entity_id)
        if not entity or "missing" in entity:
            raise WikimindError(
                NOT_FOUND,
                f"Entity ID '{entity_id}' not found in Wikidata response.",
                {"id": entity_id},
            )
        return entity

    def claims(self, entity_id):
        return self.entity(entity_id).get("claims") or {}

    def search(self, query, language="en", entity_type="item", limit=10):
        """wbsearchentities hits as [{id, label, description, ...}] in ranking order."""
        params = {
            "action": "wbsearchentities",
            "search": query,
            "language": language,
            "uselang": language,
            "type": entity_type,
            "limit": limit,
        }
        data = self.client.get_api(params)
        if "search" not in data:
            self._fail("Unexpected search result from Wikidata.", params, data, query=query)
        hits = data["search"] or []
        logger.debug("[*] Search %r (%s) returned %d hits", query, language, len(hits))
        return hits
