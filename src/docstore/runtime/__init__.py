"""
docstore runtime

In-memory document engine behind the DocumentStore facade.

This module provides:
- Schema registry (resource, relation and inverse-relation lookups)
- Filter parsing and matching (MongoDB-style operators)
- Sorting and pagination
- Collections and pluggable backends
- Relation population (belongsTo, hasMany, many-to-many, nested)
- Aggregation pipeline ($match, $group)
- Snapshot transactions

Example usage:
    >>> from docstore.runtime import DocumentStore
    >>> store = DocumentStore(schema)
    >>> await store.connect()
    >>> await store.create("Company", {"name": "Acme"})
"""

from docstore.runtime.aggregation import run_pipeline
from docstore.runtime.backend import (
    DocumentBackend,
    InMemoryBackend,
    create_backend,
    register_backend,
)
from docstore.runtime.collection import FindOptions, InMemoryCollection
from docstore.runtime.documents import Document, format_document, select_fields
from docstore.runtime.filters import (
    Condition,
    FieldFilter,
    Filter,
    LogicalFilter,
    LogicalKind,
    Operator,
    matches,
    parse_filter,
)
from docstore.runtime.logging import get_logger, setup_logging
from docstore.runtime.registry import (
    InverseRelation,
    JunctionInfo,
    SchemaRegistry,
    foreign_key_field,
)
from docstore.runtime.relation_loader import IncludeSpec, RelationLoader, parse_includes
from docstore.runtime.sorting import SortField, paginate, parse_order_by, sort_documents
from docstore.runtime.store import DocumentStore
from docstore.runtime.transactions import InMemorySession, Session, TransactionManager

__all__ = [
    # Registry
    "SchemaRegistry",
    "InverseRelation",
    "JunctionInfo",
    "foreign_key_field",
    # Documents
    "Document",
    "format_document",
    "select_fields",
    # Filters
    "Filter",
    "FieldFilter",
    "LogicalFilter",
    "LogicalKind",
    "Condition",
    "Operator",
    "parse_filter",
    "matches",
    # Sorting
    "SortField",
    "parse_order_by",
    "sort_documents",
    "paginate",
    # Storage
    "InMemoryCollection",
    "FindOptions",
    "DocumentBackend",
    "InMemoryBackend",
    "create_backend",
    "register_backend",
    # Relations
    "IncludeSpec",
    "RelationLoader",
    "parse_includes",
    # Aggregation
    "run_pipeline",
    # Transactions
    "Session",
    "InMemorySession",
    "TransactionManager",
    # Facade
    "DocumentStore",
    # Logging
    "get_logger",
    "setup_logging",
]
