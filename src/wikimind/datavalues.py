"""Classification of Wikibase mainsnak values into a closed set of variants."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class EntityRef:
    id: str

    def raw(self) -> str:
        return self.id


@dataclass(frozen=True)
class Time:
    time: str

    def raw(self) -> str:
        return self.time

    def display(self) -> str:
        return display_time(self.time)


@dataclass(frozen=True)
class PlainString:
    value: str

    def raw(self) -> str:
        return self.value


@dataclass(frozen=True)
class Other:
    value: Any

    def raw(self) -> Any:
        return self.value


Variant = Union[EntityRef, Time, PlainString, Other]


def classify(raw: Any) -> Optional[Variant]:
    """Return the variant for a datavalue payload, or None when there is nothing to keep."""
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        if "id" in raw:
            return EntityRef(str(raw["id"]).strip())
        if "time" in raw:
            return Time(str(raw["time"]))
    if isinstance(raw, str):
        return PlainString(raw)
    return Other(raw)


def statement_value(statement: Any) -> Any:
    """Dig ``mainsnak.datavalue.value`` out of a statement; None when any level is missing."""
    if not isinstance(statement, Mapping):
        return None
    mainsnak = statement.get("mainsnak")
    if not isinstance(mainsnak, Mapping):
        return None
    datavalue = mainsnak.get("datavalue")
    if not isinstance(datavalue, Mapping):
        return None
    return datavalue.get("value")


def classify_statement(statement: Any) -> Optional[Variant]:
    return classify(statement_value(statement))


def classify_statements(statements: Any) -> list[Variant]:
    """Classify a property's statement list, dropping somevalue/novalue and malformed entries."""
    variants = []
    for statement in statements or []:
        variant = classify_statement(statement)
        if variant is not None:
            variants.append(variant)
    return variants


def display_time(time_value: str) -> str:
    # "+1955-01-01T00:00:00Z" -> "1955-01-01"; the leading sign is always present
    return time_value[1:11]
