"""
Schema specification types.

This module exports the resource metadata consumed by the document store.
"""

from docstore.specs.resource import (
    Cardinality,
    FieldAnnotations,
    FieldKind,
    FieldSpec,
    OnDelete,
    RelationSpec,
    ResourceSpec,
    SchemaSpec,
    TimestampsSpec,
)

__all__ = [
    "Cardinality",
    "FieldAnnotations",
    "FieldKind",
    "FieldSpec",
    "OnDelete",
    "RelationSpec",
    "ResourceSpec",
    "SchemaSpec",
    "TimestampsSpec",
]
