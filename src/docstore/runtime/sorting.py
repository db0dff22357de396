"""
Sorting and pagination of result sets.

Ordering policy:
- Fields are compared in declaration order; the first non-equal field decides.
- Strings compare by an accent- and case-folded key (``éclair`` sorts
  between ``apple`` and ``fig``); the raw text breaks ties.
- ``None`` and missing values sort last regardless of direction.
- Values of unrelated types compare by type name so sorting never raises.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Iterable, Mapping, Sequence

from docstore.errors import InvalidQuery
from docstore.runtime.documents import Document

_ASC = {"asc", "ascending", "1"}
_DESC = {"desc", "descending", "-1"}


@dataclass(frozen=True)
class SortField:
    """A single sort field."""

    field: str
    descending: bool = False

    @classmethod
    def parse(cls, sort_str: str) -> SortField:
        """
        Parse a sort string into a SortField.

        Examples:
            - "created_at" -> SortField(field="created_at", descending=False)
            - "-created_at" -> SortField(field="created_at", descending=True)
        """
        descending = sort_str.startswith("-")
        if descending:
            sort_str = sort_str[1:]
        return cls(field=sort_str, descending=descending)

    @property
    def direction(self) -> int:
        return -1 if self.descending else 1


def _parse_direction(field: str, direction: Any) -> bool:
    """Return True for descending."""
    key = str(direction).strip().lower()
    if key in _ASC:
        return False
    if key in _DESC:
        return True
    raise InvalidQuery(f"Invalid sort direction {direction!r} for field '{field}' (use 'asc' or 'desc')")


def parse_order_by(
    order_by: Mapping[str, Any] | Sequence[str] | str | None,
) -> list[SortField]:
    """
    Parse an order-by specification.

    Accepts:
        - {"value": "asc", "title": "desc"} (also 1 / -1)
        - ["value", "-title"]
        - "value,-title"
    """
    if not order_by:
        return []
    if isinstance(order_by, str):
        return [SortField.parse(s.strip()) for s in order_by.split(",") if s.strip()]
    if isinstance(order_by, Mapping):
        return [SortField(field=f, descending=_parse_direction(f, d)) for f, d in order_by.items()]
    return [SortField.parse(s) for s in order_by]


def collation_key(text: str) -> str:
    """Primary collation key: accents stripped, then casefolded."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _compare_values(a: Any, b: Any) -> int:
    """Ascending comparison of two non-None values."""
    if a == b:
        return 0
    if isinstance(a, str) and isinstance(b, str):
        ka, kb = collation_key(a), collation_key(b)
        if ka != kb:
            return -1 if ka < kb else 1
        return -1 if a < b else 1
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        ta, tb = type(a).__name__, type(b).__name__
        if ta != tb:
            return -1 if ta < tb else 1
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def compare_documents(a: Mapping[str, Any], b: Mapping[str, Any], sort_fields: Sequence[SortField]) -> int:
    """Compare two documents under a multi-field ordering."""
    for sort_field in sort_fields:
        a_val = a.get(sort_field.field)
        b_val = b.get(sort_field.field)

        if a_val is None and b_val is None:
            continue
        # Nulls last in both directions
        if a_val is None:
            return 1
        if b_val is None:
            return -1

        cmp = _compare_values(a_val, b_val)
        if cmp != 0:
            return cmp * sort_field.direction
    return 0


def sort_documents(docs: Iterable[Document], sort_fields: Sequence[SortField]) -> list[Document]:
    """Stable sort; documents equal under every field keep their input order."""
    docs = list(docs)
    if not sort_fields:
        return docs
    return sorted(docs, key=cmp_to_key(lambda a, b: compare_documents(a, b, sort_fields)))


def paginate(docs: Sequence[Document], offset: int | None = None, limit: int | None = None) -> list[Document]:
    """Apply offset then limit. Missing or non-positive values are no-ops."""
    result = list(docs)
    if offset and offset > 0:
        result = result[offset:]
    if limit and limit > 0:
        result = result[:limit]
    return result
