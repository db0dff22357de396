"""
Schema registry for resource and relation lookups.

Built once per store from the schema; read-only afterwards and passed by
reference into every runtime component.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from docstore.errors import ResourceNotFound
from docstore.runtime.logging import get_logger
from docstore.specs.resource import Cardinality, RelationSpec, ResourceSpec, SchemaSpec
from docstore.strings import capitalize_first, lowercase_first, pluralize, singularize_relation

logger = get_logger("Registry")


def foreign_key_field(relation: RelationSpec) -> str:
    """
    Resolve the foreign key field name for a relation.

    Explicit ``foreign_key`` wins; a name already ending in ``Id``/``_id``
    is used verbatim; otherwise ``Id`` is appended.

    Examples:
        - RelationSpec(name="company", ...) -> "companyId"
        - RelationSpec(name="owner_id", ...) -> "owner_id"
        - RelationSpec(name="author", foreign_key="writer", ...) -> "writer"
    """
    if relation.foreign_key:
        return relation.foreign_key
    if relation.name.endswith("Id") or relation.name.endswith("_id"):
        return relation.name
    return f"{relation.name}Id"


def default_inverse_name(source_resource: str) -> str:
    """Default hasMany name on the target: pluralized lowercase source name."""
    return pluralize(source_resource.lower()).lower()


@dataclass(frozen=True)
class InverseRelation:
    """The hasMany side of a ``one`` relation declared on another resource."""

    name: str
    source_resource: str
    source_relation: RelationSpec

    @property
    def foreign_key_field(self) -> str:
        """FK field on the source resource that points back at the target."""
        return foreign_key_field(self.source_relation)


@dataclass(frozen=True)
class JunctionInfo:
    """Many-to-many resolution through a junction resource."""

    junction_resource: str
    target_resource: str
    local_key: str  # FK on the junction pointing at the base resource
    foreign_key: str  # FK on the junction pointing at the target


@dataclass(frozen=True)
class SchemaRegistry:
    """
    Registry of resources and relations.

    Holds name -> resource, per-resource name -> relation, and the inverse
    relation index (target -> inverse name -> InverseRelation).
    """

    schema: SchemaSpec
    _resources: Mapping[str, ResourceSpec] = field(repr=False)
    _relations: Mapping[str, Mapping[str, RelationSpec]] = field(repr=False)
    _inverse: Mapping[str, Mapping[str, InverseRelation]] = field(repr=False)

    @classmethod
    def from_schema(cls, schema: SchemaSpec) -> SchemaRegistry:
        """
        Build a registry from a schema.

        Args:
            schema: Parsed schema

        Returns:
            Immutable SchemaRegistry
        """
        resources: dict[str, ResourceSpec] = {}
        relations: dict[str, Mapping[str, RelationSpec]] = {}
        inverse: dict[str, dict[str, InverseRelation]] = {}

        for resource in schema.resources:
            resources[resource.name] = resource
            relations[resource.name] = MappingProxyType({r.name: r for r in resource.relations})

        for resource in schema.resources:
            for relation in resource.relations:
                if relation.cardinality != Cardinality.ONE:
                    continue
                name = relation.inverse or default_inverse_name(resource.name)
                by_name = inverse.setdefault(relation.to, {})
                if name in by_name:
                    logger.debug(
                        f"Inverse relation {relation.to}.{name} redefined by "
                        f"{resource.name}.{relation.name}"
                    )
                by_name[name] = InverseRelation(
                    name=name,
                    source_resource=resource.name,
                    source_relation=relation,
                )

        return cls(
            schema=schema,
            _resources=MappingProxyType(resources),
            _relations=MappingProxyType(relations),
            _inverse=MappingProxyType({k: MappingProxyType(v) for k, v in inverse.items()}),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def resource_names(self) -> list[str]:
        """Resource names in schema order."""
        return list(self._resources)

    def has_resource(self, name: str) -> bool:
        return name in self._resources

    def find_resource(self, name: str) -> ResourceSpec | None:
        """Get a resource by name, or None."""
        return self._resources.get(name)

    def get_resource(self, name: str) -> ResourceSpec:
        """Get a resource by name, raising ResourceNotFound when unknown."""
        resource = self._resources.get(name)
        if resource is None:
            raise ResourceNotFound(name)
        return resource

    def get_relations(self, resource_name: str) -> Mapping[str, RelationSpec]:
        """All relations declared on a resource."""
        return self._relations.get(resource_name, MappingProxyType({}))

    def get_relation(self, resource_name: str, relation_name: str) -> RelationSpec | None:
        """A relation declared directly on the resource."""
        return self.get_relations(resource_name).get(relation_name)

    def get_inverse_relations(self, resource_name: str) -> Mapping[str, InverseRelation]:
        """hasMany relations implied by other resources pointing here."""
        return self._inverse.get(resource_name, MappingProxyType({}))

    def get_inverse(self, resource_name: str, inverse_name: str) -> InverseRelation | None:
        return self.get_inverse_relations(resource_name).get(inverse_name)

    # -------------------------------------------------------------------------
    # Many-to-many
    # -------------------------------------------------------------------------

    def find_junction(self, resource_name: str, relation_name: str) -> JunctionInfo | None:
        """
        Locate the junction resource for a many-to-many relation.

        ``Post.tags`` resolves to target ``Tag`` (from a declared ``many``
        relation, else by singularizing the relation name) and junction
        ``PostTag`` or ``TagPost``.

        Returns:
            JunctionInfo, or None when no junction exists
        """
        declared = self.get_relation(resource_name, relation_name)
        if declared is not None and declared.cardinality == Cardinality.MANY:
            target = declared.to
        else:
            target = capitalize_first(singularize_relation(relation_name))

        if target not in self._resources:
            return None

        for junction_name in (f"{resource_name}{target}", f"{target}{resource_name}"):
            if junction_name in self._resources:
                return JunctionInfo(
                    junction_resource=junction_name,
                    target_resource=target,
                    local_key=self._junction_key(junction_name, resource_name),
                    foreign_key=self._junction_key(junction_name, target),
                )
        return None

    def _junction_key(self, junction_name: str, side: str) -> str:
        """FK on the junction pointing at ``side``."""
        for relation in self.get_relations(junction_name).values():
            if relation.cardinality == Cardinality.ONE and relation.to == side:
                return foreign_key_field(relation)
        return f"{lowercase_first(side)}Id"
