"""
Resource specification types.

Defines resources, fields and relations consumed by the document store.
Produced by a schema parser (or ``docstore.schema_loader``) and never
mutated afterwards.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# =============================================================================
# Field Type System
# =============================================================================


class FieldKind(StrEnum):
    """Field data types."""

    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    EMAIL = "email"
    URL = "url"
    JSON = "json"
    ARRAY = "array"
    ENUM = "enum"


class FieldAnnotations(BaseModel):
    """
    Validation and behaviour annotations for a field.

    camelCase keys (``enumValues``, ``primaryKey``) are accepted so schema
    documents written for other tooling load unchanged.
    """

    enum_values: list[str] | None = Field(
        default=None, alias="enumValues", description="Allowed values for enum fields"
    )
    min: float | None = Field(default=None, description="Minimum value or length")
    max: float | None = Field(default=None, description="Maximum value or length")
    pattern: str | None = Field(default=None, description="Validation regex")
    primary_key: bool = Field(default=False, alias="primaryKey")
    readonly: bool = Field(default=False)
    unique: bool = Field(default=False)
    indexed: bool = Field(default=False)
    hidden: bool = Field(default=False)
    array_type: FieldKind | None = Field(default=None, alias="arrayType")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Fields
# =============================================================================


class FieldSpec(BaseModel):
    """
    Field specification for a resource.

    Attributes:
        name: Field identifier
        type: Field data type
        required: Whether the field must be supplied on create
        default: Default value (see ``has_default``)
        annotations: Enum values, bounds and flags
    """

    name: str = Field(description="Field name")
    type: FieldKind = Field(description="Field data type")
    required: bool = Field(default=False, description="Is this field required?")
    default: Any | None = Field(default=None, description="Default value")
    description: str | None = Field(default=None)
    annotations: FieldAnnotations = Field(default_factory=FieldAnnotations)

    model_config = ConfigDict(frozen=True)

    @property
    def has_default(self) -> bool:
        """True when the schema explicitly declared a default (even ``None``)."""
        return "default" in self.model_fields_set

    @property
    def enum_values(self) -> list[str]:
        """Declared enum values, empty for non-enum fields."""
        return list(self.annotations.enum_values or [])


# =============================================================================
# Relations
# =============================================================================


class Cardinality(StrEnum):
    """Cardinality of a relation as seen from the declaring resource."""

    ONE = "one"
    MANY = "many"


class OnDelete(StrEnum):
    """Declared delete behaviour. Carried as metadata only."""

    CASCADE = "cascade"
    SET_NULL = "setNull"
    RESTRICT = "restrict"
    NO_ACTION = "noAction"


class RelationSpec(BaseModel):
    """
    Relationship from one resource to another.

    Examples:
        - belongsTo: Deal belongs to Company
          RelationSpec(name="company", to="Company", cardinality="one")

        - hasMany side declared explicitly on the owner:
          RelationSpec(name="tags", to="Tag", cardinality="many")
    """

    name: str = Field(description="Relation name")
    to: str = Field(description="Target resource")
    cardinality: Cardinality = Field(default=Cardinality.ONE)
    foreign_key: str | None = Field(default=None, alias="foreignKey")
    required: bool = Field(default=False)
    inverse: str | None = Field(default=None, description="Name of the reciprocal hasMany relation")
    on_delete: OnDelete | None = Field(default=None, alias="onDelete")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Resources
# =============================================================================


class TimestampsSpec(BaseModel):
    """Timestamp configuration flags."""

    created_at: bool = Field(default=False, alias="createdAt")
    updated_at: bool = Field(default=False, alias="updatedAt")
    deleted_at: bool = Field(default=False, alias="deletedAt")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ResourceSpec(BaseModel):
    """
    A named entity type with ordered fields and relations.

    Example:
        ResourceSpec(
            name="Contact",
            fields=[
                FieldSpec(name="id", type=FieldKind.UUID, required=True),
                FieldSpec(name="name", type=FieldKind.STRING, required=True),
            ],
            relations=[RelationSpec(name="company", to="Company")],
        )
    """

    name: str = Field(description="Resource name")
    plural_name: str | None = Field(default=None, alias="pluralName")
    description: str | None = Field(default=None)
    fields: list[FieldSpec] = Field(default_factory=list)
    relations: list[RelationSpec] = Field(default_factory=list)
    timestamps: TimestampsSpec | None = Field(default=None)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def get_field(self, name: str) -> FieldSpec | None:
        """Get a field by name."""
        for field in self.fields:
            if field.name == name:
                return field
        return None


class SchemaSpec(BaseModel):
    """Complete schema: the resource list plus app identification."""

    name: str = Field(default="app")
    version: str = Field(default="0.1.0")
    resources: list[ResourceSpec] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("resources")
    @classmethod
    def validate_unique_names(cls, v: list[ResourceSpec]) -> list[ResourceSpec]:
        """Reject duplicate resource names."""
        seen: set[str] = set()
        for resource in v:
            if resource.name in seen:
                raise ValueError(f"Duplicate resource name '{resource.name}'")
            seen.add(resource.name)
        return v

    @model_validator(mode="after")
    def validate_relation_targets(self) -> "SchemaSpec":
        """Every relation must point at a resource in this schema."""
        names = {r.name for r in self.resources}
        for resource in self.resources:
            for relation in resource.relations:
                if relation.to not in names:
                    raise ValueError(
                        f"Relation '{resource.name}.{relation.name}' targets unknown resource '{relation.to}'"
                    )
        return self
