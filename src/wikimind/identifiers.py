import re

from . import config
from .errors import INVALID_ID, WikimindError

_URL_ID_PATTERN = re.compile(r"(?:/|Property:|Item:)([QPqp]\d+)/?$")


def is_qid(value):
    """Return True if the value looks like a Wikidata item id (Q*)."""
    if not isinstance(value, str):
        return False
    return bool(config.QID_EXACT_PATTERN.fullmatch(value))


def is_pid(value):
    """Return True if the value looks like a Wikidata property id (P*)."""
    if not isinstance(value, str):
        return False
    return bool(config.PID_EXACT_PATTERN.fullmatch(value))


def is_entity_or_property_id(value):
    """Return True for valid QIDs or PIDs."""
    return is_qid(value) or is_pid(value)


def normalize_predicate(token):
    """Render bare property ids as direct-claim predicates; leave prefixed names alone."""
    if is_pid(token):
        return f"wdt:{token}"
    return token


def normalize_object(token):
    """Render bare item ids as entity IRIs; anything else is a query variable."""
    if is_qid(token):
        return f"wd:{token}"
    return f"?{token}"


def normalize_entity_id(raw):
    """
    Return the canonical Q/P id for user input.
    Accepts bare ids in any case and entity URLs such as
    https://www.wikidata.org/wiki/Q42 or .../wiki/Property:P31.
    """
    if not isinstance(raw, str):
        raise WikimindError(INVALID_ID, f"Invalid entity ID format: {raw!r}", {"value": raw})
    candidate = raw.strip()
    match = _URL_ID_PATTERN.search(candidate)
    if match and not config.ENTITY_OR_PROPERTY_PATTERN.fullmatch(candidate):
        candidate = match.group(1)
    if not config.ENTITY_OR_PROPERTY_PATTERN.fullmatch(candidate):
        raise WikimindError(INVALID_ID, f"Invalid entity ID format: {raw}", {"value": raw})
    return candidate.upper()
