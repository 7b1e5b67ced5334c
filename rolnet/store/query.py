"""Composable predicate builder for store queries.

Conditions are chained with ``where`` (AND) and ``or_`` (OR). AND binds
tighter than OR, as in SQL: ``a AND b OR c`` reads ``(a AND b) OR c``.
Sub-builders added with ``where_query``/``or_query`` are evaluated as one
parenthesised group.

Usage::

    query = repo.new_query_builder()
    query.where("ethernet_switch_id", "==", switch_id)
    ids = repo.new_query_builder()
    for port_id in port_ids:
        ids.or_("id", "==", port_id)
    query.where_query(ids)
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union
from uuid import UUID

AND = "AND"
OR = "OR"

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}
LIKE = "LIKE"
COMPARATORS = (*_COMPARATORS.keys(), LIKE)


class QueryError(ValueError):
    """Malformed query: unknown comparator or field."""


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def _scalar(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _coerce(attr: Any, value: Any) -> Any:
    """Bring ``value`` to the type of ``attr`` for the common string inputs."""
    if isinstance(attr, UUID) and isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return value
    return _scalar(value)


@dataclass(frozen=True)
class Condition:
    field: str
    comparator: str
    value: Any

    def matches(self, entity: Any) -> bool:
        try:
            attr = getattr(entity, self.field)
        except AttributeError as e:
            raise QueryError(f"Unknown field '{self.field}' on {type(entity).__name__}") from e

        if self.comparator == LIKE:
            regex = _like_to_regex(str(_scalar(self.value)))
            values = attr if isinstance(attr, (list, tuple, set)) else [attr]
            return any(v is not None and regex.match(str(_scalar(v))) for v in values)

        attr = _scalar(attr)
        value = _coerce(attr, self.value)
        if attr is None or value is None:
            if self.comparator == "==":
                return attr is value
            if self.comparator == "!=":
                return attr is not value
            return False
        try:
            return _COMPARATORS[self.comparator](attr, value)
        except TypeError as e:
            raise QueryError(f"Cannot compare {self.field} {self.comparator} {self.value!r}") from e

    def __str__(self) -> str:
        return f"{self.field} {self.comparator} {self.value!r}"


Term = Union[Condition, "QueryBuilder"]


class QueryBuilder:
    """Accumulates AND/OR conditions and nested groups."""

    def __init__(self) -> None:
        self._clauses: list[tuple[str, Term]] = []

    def where(self, field: str, comparator: str, value: Any) -> QueryBuilder:
        """Add an AND condition."""
        return self._add(AND, self._condition(field, comparator, value))

    def or_(self, field: str, comparator: str, value: Any) -> QueryBuilder:
        """Add an OR condition."""
        return self._add(OR, self._condition(field, comparator, value))

    def where_query(self, builder: QueryBuilder) -> QueryBuilder:
        """Add an AND group built from another builder. Empty builders are ignored."""
        if builder.is_empty():
            return self
        return self._add(AND, builder)

    def or_query(self, builder: QueryBuilder) -> QueryBuilder:
        """Add an OR group built from another builder. Empty builders are ignored."""
        if builder.is_empty():
            return self
        return self._add(OR, builder)

    def is_empty(self) -> bool:
        return not self._clauses

    def build(self) -> list[list[Term]]:
        """Return the disjunctive form: a list of OR-ed groups of AND-ed terms."""
        groups: list[list[Term]] = []
        for connector, term in self._clauses:
            if not groups or connector == OR:
                groups.append([term])
            else:
                groups[-1].append(term)
        return groups

    def matches(self, entity: Any) -> bool:
        """An empty builder matches everything."""
        if self.is_empty():
            return True
        return any(all(term.matches(entity) for term in group) for group in self.build())

    def _add(self, connector: str, term: Term) -> QueryBuilder:
        self._clauses.append((connector, term))
        return self

    @staticmethod
    def _condition(field: str, comparator: str, value: Any) -> Condition:
        comparator = comparator.upper() if comparator.lower() == "like" else comparator
        if comparator not in COMPARATORS:
            raise QueryError(f"Unknown comparator '{comparator}'. Available: {', '.join(COMPARATORS)}")
        return Condition(field, comparator, value)

    def __str__(self) -> str:
        out = ""
        for connector, term in self._clauses:
            if out:
                out += f" {connector} "
            out += f"({term})" if isinstance(term, QueryBuilder) else str(term)
        return out
