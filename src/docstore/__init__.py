"""
docstore - embedded schema-aware document store

An in-memory document engine with a MongoDB-like API, driven by declarative
resource schemas.

This package provides:
- Specs: Resource, field and relation metadata (pydantic)
- Runtime: Query matching, sorting, relation population, aggregation and
  snapshot transactions behind the DocumentStore facade
- CLI: Inspect schemas and run queries against seed data
"""

from docstore._version import get_version as _get_version

__version__ = _get_version()

from docstore.config import BackendConfig, BackendType, StoreConfig, load_config
from docstore.errors import (
    DataError,
    DocstoreError,
    DuplicateKey,
    InvalidEnumValue,
    InvalidQuery,
    MissingRequiredField,
    NotConnected,
    QueryError,
    RecordNotFound,
    RelationNotFound,
    ResourceNotFound,
    SchemaError,
    TransactionError,
)
from docstore.runtime.store import DocumentStore
from docstore.schema_loader import load_schema, schema_from_dict
from docstore.specs import SchemaSpec

__all__ = [
    "__version__",
    # Store
    "DocumentStore",
    "SchemaSpec",
    "load_schema",
    "schema_from_dict",
    # Config
    "BackendConfig",
    "BackendType",
    "StoreConfig",
    "load_config",
    # Errors
    "DocstoreError",
    "SchemaError",
    "ResourceNotFound",
    "RelationNotFound",
    "DataError",
    "RecordNotFound",
    "MissingRequiredField",
    "InvalidEnumValue",
    "DuplicateKey",
    "QueryError",
    "InvalidQuery",
    "NotConnected",
    "TransactionError",
]
