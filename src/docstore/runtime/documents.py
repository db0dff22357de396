"""
Document helpers shared by the backend, relation loader and store.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import uuid4

# A stored record: field name -> value, always carrying ``_id``.
Document = dict[str, Any]

ID_KEY = "_id"


def generate_object_id() -> str:
    """Generate an opaque, UUID-shaped document identifier."""
    return str(uuid4())


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clone(doc: Document) -> Document:
    """Owned deep copy; callers may mutate it freely."""
    return copy.deepcopy(doc)


def format_document(doc: Document) -> Document:
    """
    Format a stored document for output.

    Returns an owned copy that always exposes ``id`` mirroring ``_id``.
    """
    result = clone(doc)
    if result.get(ID_KEY) is not None:
        result["id"] = result[ID_KEY]
    return result


def select_fields(doc: Document, fields: Iterable[str]) -> Document:
    """
    Project a document onto the named fields.

    Omitted fields are absent from the result (not ``None``); ``_id`` and
    ``id`` are always kept when present.
    """
    result: Document = {}
    for name in fields:
        if name in doc:
            result[name] = doc[name]
    if ID_KEY in doc and ID_KEY not in result:
        result[ID_KEY] = doc[ID_KEY]
    if "id" in doc and "id" not in result:
        result["id"] = doc["id"]
    return result
