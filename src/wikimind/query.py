"""Graph-pattern model, SPARQL rendering and the fluent query builder."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Callable, Optional

from . import config
from .identifiers import normalize_object, normalize_predicate

logger = logging.getLogger(__name__)

RESULT_FORMATS = {"raw", "array", "json", "records", "collection"}


@dataclass(frozen=True)
class TriplePattern:
    subject: str
    predicate: str
    object: str

    def render(self) -> str:
        return f"?{self.subject} {normalize_predicate(self.predicate)} {normalize_object(self.object)} ."


@dataclass(frozen=True)
class QuerySpec:
    select_vars: tuple[str, ...] = ()
    required: tuple[TriplePattern, ...] = ()
    optional: tuple[TriplePattern, ...] = ()
    filters: tuple[str, ...] = ()
    language: str = config.DEFAULT_LANGUAGE
    limit: int = config.DEFAULT_QUERY_LIMIT
    order_by: Optional[str] = None
    order_direction: str = "ASC"
    distinct: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {self.limit!r}")
        object.__setattr__(self, "order_direction", normalize_direction(self.order_direction))


def normalize_direction(direction: Optional[str]) -> str:
    if isinstance(direction, str) and direction.strip().upper() == "DESC":
        return "DESC"
    return "ASC"


def label_service_clause(language: str) -> str:
    return f'SERVICE wikibase:label {{ bd:serviceParam wikibase:language "{language},{config.FALLBACK_LANGUAGE}" . }}'


def build_query(spec: QuerySpec) -> str:
    """Render ``spec`` as SPARQL text. Same spec, same bytes."""
    keyword = "SELECT DISTINCT " if spec.distinct else "SELECT "
    variables = " ".join(f"?{var}" for var in spec.select_vars) if spec.select_vars else "*"

    body = [triple.render() for triple in spec.required]
    body.extend(f"OPTIONAL {{ {triple.render()} }}" for triple in spec.optional)
    body.extend(f"FILTER({expression})" for expression in spec.filters)
    body.append(label_service_clause(spec.language))

    query = keyword + variables + " WHERE {\n" + "\n".join(body) + "\n}"
    if spec.order_by:
        query += f"\nORDER BY {spec.order_direction}(?{spec.order_by})"
    query += f"\nLIMIT {spec.limit}"
    return query


def binding_values(bindings: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Keep only the ``value`` of every bound variable, row by row."""
    return [{var: (cell or {}).get("value", "") for var, cell in row.items()} for row in bindings]


def format_bindings(response: dict[str, Any], result_format: str = "raw") -> Any:
    """
    Reshape a SPARQL JSON response.

    raw        -> the ``results.bindings`` list untouched
    array      -> list of {var: value} dicts
    json       -> the array form as pretty-printed JSON text
    records    -> list of SimpleNamespace rows (alias: collection)
    """
    if result_format not in RESULT_FORMATS:
        raise ValueError(f"Unsupported result format: {result_format!r}")
    bindings = (response.get("results") or {}).get("bindings") or []
    if result_format == "raw":
        return bindings
    rows = binding_values(bindings)
    if result_format == "array":
        return rows
    if result_format == "json":
        return json.dumps(rows, ensure_ascii=False, indent=4)
    return [SimpleNamespace(**row) for row in rows]


class MindQuery:
    """
    Immutable fluent builder. Every call returns a new MindQuery, so a partially
    built query can be shared and extended without leaking clauses.

        MindQuery(executor).select(["item", "itemLabel"]).where("item", "P31", "Q5").limit(5).get("array")
    """

    def __init__(self, executor: Optional[Callable[[str], dict]] = None, spec: Optional[QuerySpec] = None) -> None:
        self._executor = executor
        self._spec = spec or QuerySpec()

    @property
    def spec(self) -> QuerySpec:
        return self._spec

    def _with(self, **changes: Any) -> "MindQuery":
        return MindQuery(self._executor, dataclasses.replace(self._spec, **changes))

    def select(self, variables) -> "MindQuery":
        if isinstance(variables, str):
            variables = [variables]
        return self._with(select_vars=tuple(variables))

    def where(self, subject: str, predicate: str, obj: str) -> "MindQuery":
        return self._with(required=self._spec.required + (TriplePattern(subject, predicate, obj),))

    def optional(self, subject: str, predicate: str, obj: str) -> "MindQuery":
        return self._with(optional=self._spec.optional + (TriplePattern(subject, predicate, obj),))

    def filter(self, expression: str) -> "MindQuery":
        return self._with(filters=self._spec.filters + (expression,))

    def lang(self, language: str) -> "MindQuery":
        return self._with(language=language)

    def limit(self, count: int) -> "MindQuery":
        return self._with(limit=count)

    def order_by(self, variable: str, direction: str = "asc") -> "MindQuery":
        return self._with(order_by=variable, order_direction=normalize_direction(direction))

    def distinct(self, enabled: bool = True) -> "MindQuery":
        return self._with(distinct=enabled)

    def build(self) -> str:
        return build_query(self._spec)

    def get(self, result_format: str = "raw") -> Any:
        if result_format not in RESULT_FORMATS:
            raise ValueError(f"Unsupported result format: {result_format!r}")
        if self._executor is None:
            raise RuntimeError("MindQuery has no SPARQL executor; build() the text or bind one via Wikimind.query().")
        query = self.build()
        logger.debug("[*] Executing SPARQL query (%d chars)", len(query))
        response = self._executor(query)
        return format_bindings(response, result_format)
