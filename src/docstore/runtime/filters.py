"""
Filter parsing and matching.

MongoDB-style filter mappings are parsed once at the API boundary into
explicit variants and then evaluated against documents:

    {"value": {"$gte": 20000}, "$or": [{"stage": "won"}, {"stage": "lost"}]}

    Filter(clauses=(
        FieldFilter("value", (Condition(Operator.GTE, 20000),)),
        LogicalFilter(LogicalKind.OR, (Filter(...), Filter(...))),
    ))

The matcher is purely structural and knows nothing about schema types.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping, Union

from docstore.errors import InvalidQuery


class Operator(StrEnum):
    """Supported field operators."""

    EQ = "$eq"  # Exact equality (also the fallback for unknown operators)
    NE = "$ne"
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    IN = "$in"
    NIN = "$nin"
    NOT = "$not"  # Negates a sub-filter on the same field
    REGEX = "$regex"


class LogicalKind(StrEnum):
    """Logical combinators."""

    AND = "$and"
    OR = "$or"


OPTIONS_KEY = "$options"

_REGEX_FLAGS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


# =============================================================================
# Operator Evaluation
# =============================================================================


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    """Ordering comparison that is false (not an error) for incomparable values."""

    def evaluate(value: Any, operand: Any) -> bool:
        if value is None or operand is None:
            return False
        try:
            return bool(compare(value, operand))
        except TypeError:
            return False

    return evaluate


def _strict_equal(a: Any, b: Any) -> bool:
    """Equality that keeps booleans apart from numbers (``True != 1``)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    return a == b


def _eq(value: Any, operand: Any) -> bool:
    return _strict_equal(value, operand)


def _ne(value: Any, operand: Any) -> bool:
    return not _strict_equal(value, operand)


def _in(value: Any, operand: Any) -> bool:
    return any(_strict_equal(value, item) for item in operand)


def _nin(value: Any, operand: Any) -> bool:
    return not _in(value, operand)


def _regex(value: Any, operand: Any) -> bool:
    if value is None:
        return False
    text = value if isinstance(value, str) else str(value)
    return operand.search(text) is not None


_EVALUATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQ: _eq,
    Operator.NE: _ne,
    Operator.GT: _ordered(lambda a, b: a > b),
    Operator.GTE: _ordered(lambda a, b: a >= b),
    Operator.LT: _ordered(lambda a, b: a < b),
    Operator.LTE: _ordered(lambda a, b: a <= b),
    Operator.IN: _in,
    Operator.NIN: _nin,
    Operator.REGEX: _regex,
}

# $not recurses through FieldFilter; every other operator has an evaluator.
assert set(_EVALUATORS) == set(Operator) - {Operator.NOT}


# =============================================================================
# Filter Variants
# =============================================================================


@dataclass(frozen=True)
class Condition:
    """
    A single operator applied to one field.

    For ``$regex`` the operand is a compiled pattern; for ``$not`` it is a
    FieldFilter on the same field.
    """

    operator: Operator
    operand: Any

    def evaluate(self, value: Any, document: Mapping[str, Any]) -> bool:
        if self.operator == Operator.NOT:
            return not self.operand.matches(document)
        return _EVALUATORS[self.operator](value, self.operand)


@dataclass(frozen=True)
class FieldFilter:
    """All conditions on one field must hold."""

    field: str
    conditions: tuple[Condition, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        value = document.get(self.field)
        return all(c.evaluate(value, document) for c in self.conditions)


@dataclass(frozen=True)
class LogicalFilter:
    """``$and`` / ``$or`` over sub-filters."""

    kind: LogicalKind
    clauses: tuple[Filter, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        if self.kind == LogicalKind.AND:
            return all(c.matches(document) for c in self.clauses)
        return any(c.matches(document) for c in self.clauses)


Clause = Union[FieldFilter, LogicalFilter]


@dataclass(frozen=True)
class Filter:
    """Implicit conjunction of clauses. An empty filter matches everything."""

    clauses: tuple[Clause, ...] = ()

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(c.matches(document) for c in self.clauses)

    @property
    def is_empty(self) -> bool:
        return not self.clauses


MATCH_ALL = Filter()


# =============================================================================
# Parsing
# =============================================================================


def _is_operator_expr(value: Any) -> bool:
    """A mapping with at least one ``$`` key is an operator expression."""
    return isinstance(value, Mapping) and any(
        isinstance(k, str) and k.startswith("$") for k in value
    )


def _compile_regex(field: str, pattern: Any, options: Any) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    if not isinstance(pattern, str):
        raise InvalidQuery(f"$regex on '{field}' requires a string pattern")
    flags = 0
    for flag in str(options or ""):
        flags |= _REGEX_FLAGS.get(flag, 0)
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise InvalidQuery(f"Invalid $regex on '{field}': {e}") from e


def _parse_conditions(field: str, expr: Mapping[str, Any]) -> tuple[Condition, ...]:
    conditions: list[Condition] = []
    for key, operand in expr.items():
        if key == OPTIONS_KEY:
            continue
        try:
            op = Operator(key)
        except ValueError:
            # Tolerant default: unknown operators compare for equality
            conditions.append(Condition(Operator.EQ, operand))
            continue

        if op == Operator.REGEX:
            operand = _compile_regex(field, operand, expr.get(OPTIONS_KEY))
        elif op in (Operator.IN, Operator.NIN):
            if not isinstance(operand, (list, tuple, set, frozenset)):
                raise InvalidQuery(f"{op.value} on '{field}' requires a list")
            operand = tuple(operand)
        elif op == Operator.NOT:
            operand = _parse_field(field, operand)
        conditions.append(Condition(op, operand))
    return tuple(conditions)


def _parse_field(field: str, value: Any) -> FieldFilter:
    if _is_operator_expr(value):
        return FieldFilter(field, _parse_conditions(field, value))
    if isinstance(value, re.Pattern):
        return FieldFilter(field, (Condition(Operator.REGEX, value),))
    return FieldFilter(field, (Condition(Operator.EQ, value),))


def parse_filter(where: Mapping[str, Any] | Filter | None) -> Filter:
    """
    Parse a MongoDB-style filter mapping.

    Args:
        where: Filter mapping, an already-parsed Filter, or None

    Returns:
        Parsed Filter

    Raises:
        InvalidQuery: If the mapping has the wrong shape
    """
    if where is None:
        return MATCH_ALL
    if isinstance(where, Filter):
        return where
    if not isinstance(where, Mapping):
        raise InvalidQuery(f"Filter must be a mapping, got {type(where).__name__}")

    clauses: list[Clause] = []
    for key, value in where.items():
        if key in (LogicalKind.AND.value, LogicalKind.OR.value):
            if not isinstance(value, (list, tuple)):
                raise InvalidQuery(f"{key} requires a list of filters")
            clauses.append(LogicalFilter(LogicalKind(key), tuple(parse_filter(v) for v in value)))
        else:
            clauses.append(_parse_field(key, value))
    return Filter(tuple(clauses))


def matches(document: Mapping[str, Any], where: Mapping[str, Any] | Filter | None) -> bool:
    """Check whether a document satisfies a filter."""
    return parse_filter(where).matches(document)
