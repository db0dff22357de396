"""
In-memory collection of documents for one resource.

Documents are keyed by ``_id`` in insertion order. A collection holds at
most one snapshot (a deep copy of every document) used for transaction
rollback. Every read returns an owned copy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from docstore.errors import DuplicateKey
from docstore.runtime.documents import ID_KEY, Document, clone, generate_object_id
from docstore.runtime.filters import MATCH_ALL, FieldFilter, Filter, Operator, parse_filter
from docstore.runtime.sorting import SortField, paginate, sort_documents

SET_KEY = "$set"


def _id_lookup(filter: Filter) -> str | None:
    """The ``_id`` value when the filter pins one, else None."""
    for clause in filter.clauses:
        if isinstance(clause, FieldFilter) and clause.field == ID_KEY:
            for condition in clause.conditions:
                if condition.operator == Operator.EQ and isinstance(condition.operand, str):
                    return condition.operand
    return None


@dataclass
class FindOptions:
    """Options for ``find``: filter, then sort, then skip/limit."""

    filter: Filter = field(default_factory=lambda: MATCH_ALL)
    sort: list[SortField] = field(default_factory=list)
    skip: int | None = None
    limit: int | None = None


class InMemoryCollection:
    """Documents for a single resource, plus an optional snapshot."""

    def __init__(self, name: str):
        self.name = name
        self._documents: dict[str, Document] = {}
        self._snapshot: dict[str, Document] | None = None

    def __len__(self) -> int:
        return len(self._documents)

    def _iter_matching(self, filter: Filter) -> Iterator[tuple[str, Document]]:
        doc_id = _id_lookup(filter)
        if doc_id is not None:
            doc = self._documents.get(doc_id)
            if doc is not None and filter.matches(doc):
                yield doc_id, doc
            return
        for doc_id, doc in self._documents.items():
            if filter.matches(doc):
                yield doc_id, doc

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def take_snapshot(self) -> None:
        """Deep-copy every document. Replaces any previous snapshot."""
        self._snapshot = copy.deepcopy(self._documents)

    def restore_snapshot(self) -> None:
        """Roll back to the snapshot and drop it. No-op without a snapshot."""
        if self._snapshot is not None:
            self._documents = self._snapshot
            self._snapshot = None

    def discard_snapshot(self) -> None:
        self._snapshot = None

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def insert_one(self, doc: Mapping[str, Any]) -> str:
        """
        Store a copy of ``doc``, assigning ``_id`` when it has none.

        Returns:
            The inserted ``_id``

        Raises:
            DuplicateKey: If ``_id`` is already in use
        """
        doc_id = doc.get(ID_KEY) or generate_object_id()
        if doc_id in self._documents:
            raise DuplicateKey(self.name, doc_id)
        stored = clone(dict(doc))
        stored[ID_KEY] = doc_id
        self._documents[doc_id] = stored
        return doc_id

    def get(self, doc_id: str) -> Document | None:
        """Direct lookup by ``_id``."""
        doc = self._documents.get(doc_id)
        return clone(doc) if doc is not None else None

    def find_one(self, filter: Filter | Mapping[str, Any] | None = None) -> Document | None:
        for _, doc in self._iter_matching(parse_filter(filter)):
            return clone(doc)
        return None

    def find(self, options: FindOptions | None = None) -> list[Document]:
        options = options or FindOptions()
        results = [clone(doc) for _, doc in self._iter_matching(options.filter)]
        results = sort_documents(results, options.sort)
        return paginate(results, options.skip, options.limit)

    def update_one(self, filter: Filter | Mapping[str, Any], update: Mapping[str, Any]) -> int:
        """
        Apply ``update`` to the first matching document.

        ``update`` is either ``{"$set": {...}}`` or a plain mapping merged
        into the document. ``_id`` is never changed.

        Returns:
            Number of modified documents (0 or 1)
        """
        changes = update[SET_KEY] if SET_KEY in update else update
        for doc_id, doc in self._iter_matching(parse_filter(filter)):
            updated = {**doc, **clone(dict(changes))}
            updated[ID_KEY] = doc_id
            self._documents[doc_id] = updated
            return 1
        return 0

    def delete_one(self, filter: Filter | Mapping[str, Any]) -> int:
        for doc_id, _ in self._iter_matching(parse_filter(filter)):
            del self._documents[doc_id]
            return 1
        return 0

    def count_documents(self, filter: Filter | Mapping[str, Any] | None = None) -> int:
        parsed = parse_filter(filter)
        return sum(1 for _ in self._iter_matching(parsed))

    def all_documents(self) -> list[Document]:
        """Copies of every document in insertion order."""
        return [clone(doc) for doc in self._documents.values()]
