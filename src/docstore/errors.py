"""
Error types for the docstore engine.

Every failure is raised directly to the caller; nothing here is retried.
"""

from __future__ import annotations

from typing import Any


class DocstoreError(Exception):
    """Base exception for all docstore errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Schema Errors
# =============================================================================


class SchemaError(DocstoreError):
    """
    Raised when schema metadata is invalid or a lookup against it fails.

    Examples:
    - Duplicate resource names
    - Malformed schema documents
    """

    pass


class ResourceNotFound(SchemaError):
    """Raised when an operation names a resource the schema does not define."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f'Resource "{resource}" not found')


class RelationNotFound(SchemaError):
    """Raised when a relation is neither a direct nor an inverse relation."""

    def __init__(self, resource: str, relation: str):
        self.resource = resource
        self.relation = relation
        super().__init__(f'Relation "{relation}" not found on resource "{resource}"')


# =============================================================================
# Data Errors
# =============================================================================


class DataError(DocstoreError):
    """
    Raised when a document fails validation or targets missing data.

    Examples:
    - Required fields missing on create
    - Enum value outside the declared set
    - Update of a nonexistent record
    """

    pass


class RecordNotFound(DataError):
    """Raised when an update targets an id that does not exist."""

    def __init__(self, resource: str, record_id: str):
        self.resource = resource
        self.record_id = record_id
        super().__init__(f'Record with id "{record_id}" not found in resource "{resource}"')


class MissingRequiredField(DataError):
    """Raised when create omits required fields. Lists every missing field."""

    def __init__(self, resource: str, fields: list[str]):
        self.resource = resource
        self.fields = list(fields)
        field_list = ", ".join(f'"{f}"' for f in self.fields)
        plural = "s" if len(self.fields) > 1 else ""
        super().__init__(f'Required field{plural} {field_list} missing on resource "{resource}"')


class InvalidEnumValue(DataError):
    """Raised when a value is assigned to an enum field outside its value set."""

    def __init__(self, resource: str, field: str, value: Any, allowed: list[str]):
        self.resource = resource
        self.field = field
        self.value = value
        self.allowed = list(allowed)
        super().__init__(
            f'Invalid enum value "{value}" for field "{field}" on resource "{resource}". '
            f"Allowed values: {', '.join(self.allowed)}"
        )


class DuplicateKey(DataError):
    """Raised when a document is inserted with an ``_id`` already in use."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f'Duplicate _id "{doc_id}" in collection "{collection}"')


# =============================================================================
# Query Errors
# =============================================================================


class QueryError(DocstoreError):
    """Base for malformed filters, sort specs and pipelines."""

    pass


class InvalidQuery(QueryError):
    """
    Raised when a filter, order-by or pipeline has the wrong shape.

    Examples:
    - ``$and`` given something other than a list
    - ``$in`` operand that is not a list
    - A regex that does not compile
    """

    pass


# =============================================================================
# Lifecycle Errors
# =============================================================================


class NotConnected(DocstoreError):
    """Raised for any store operation before connect() or after disconnect()."""

    def __init__(self, message: str = "DocumentStore is not connected. Call connect() first."):
        super().__init__(message)


class TransactionError(DocstoreError):
    """Raised for session misuse, e.g. starting a second transaction."""

    pass
