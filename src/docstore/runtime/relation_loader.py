"""
Relation loader for embedding related documents.

Resolves ``include`` requests against the schema registry:

- belongsTo: a ``one`` relation on the base resource, via its foreign key
- hasMany: an inverse relation, via the source resource's foreign key
- many-to-many: through a junction resource (``Post.tags`` -> ``PostTag``)
- nested paths (``company.contacts``): the head is loaded, the remainder is
  applied to each loaded document
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from docstore.errors import InvalidQuery, RelationNotFound
from docstore.runtime.collection import FindOptions
from docstore.runtime.documents import ID_KEY, Document, format_document, select_fields
from docstore.runtime.filters import parse_filter
from docstore.runtime.logging import get_logger
from docstore.runtime.registry import SchemaRegistry, foreign_key_field
from docstore.specs.resource import Cardinality

if TYPE_CHECKING:
    from docstore.runtime.backend import DocumentBackend

logger = get_logger("Relations")


@dataclass(frozen=True)
class IncludeSpec:
    """
    One requested include.

    Attributes:
        path: Relation name, dotted for nested relations ("author.company")
        select: Fields to keep on the leaf documents (None keeps all)
    """

    path: str
    select: tuple[str, ...] | None = None

    @property
    def head(self) -> str:
        return self.path.split(".", 1)[0]

    @property
    def rest(self) -> str | None:
        parts = self.path.split(".", 1)
        return parts[1] if len(parts) > 1 else None


IncludeArg = str | Mapping[str, Any] | IncludeSpec


def parse_includes(include: Iterable[IncludeArg] | str | None) -> list[IncludeSpec]:
    """
    Normalize include arguments.

    Accepts relation names, dotted paths, ``{"relation": ..., "select": [...]}``
    mappings, IncludeSpec instances, or a single string.
    """
    if not include:
        return []
    if isinstance(include, str):
        include = [include]

    specs: list[IncludeSpec] = []
    for item in include:
        if isinstance(item, IncludeSpec):
            specs.append(item)
        elif isinstance(item, str):
            specs.append(IncludeSpec(item))
        elif isinstance(item, Mapping) and isinstance(item.get("relation"), str):
            select = item.get("select")
            specs.append(IncludeSpec(item["relation"], tuple(select) if select is not None else None))
        else:
            raise InvalidQuery(f"Invalid include {item!r}")
    return specs


def _document_id(doc: Mapping[str, Any]) -> Any:
    return doc.get(ID_KEY) or doc.get("id")


def _project(value: Any, select: tuple[str, ...] | None) -> Any:
    if select is None or value is None:
        return value
    if isinstance(value, list):
        return [select_fields(item, select) for item in value]
    return select_fields(value, select)


class RelationLoader:
    """
    Loads related documents for a resource.

    Only relation names that appear in an include path are expanded, so
    cyclic schemas (Post.author and Comment.author both pointing at User)
    terminate.
    """

    def __init__(self, registry: SchemaRegistry, backend: DocumentBackend):
        self.registry = registry
        self.backend = backend

    async def _find_by_id(self, resource: str, doc_id: Any) -> Document | None:
        doc = await self.backend.find_one(resource, {ID_KEY: doc_id})
        return format_document(doc) if doc is not None else None

    async def _find_where(self, resource: str, where: Mapping[str, Any]) -> list[Document]:
        docs = await self.backend.find(resource, FindOptions(filter=parse_filter(where)))
        return [format_document(doc) for doc in docs]

    async def _load(self, resource: str, doc: Document, name: str) -> tuple[str, Any] | None:
        """
        Load one relation for one document.

        Returns:
            (target resource, document | None | list), or None when ``name``
            is not a relation of ``resource``
        """
        relation = self.registry.get_relation(resource, name)
        if relation is not None and relation.cardinality == Cardinality.ONE:
            fk_value = doc.get(foreign_key_field(relation))
            if not fk_value:
                return relation.to, None
            return relation.to, await self._find_by_id(relation.to, fk_value)

        inverse = self.registry.get_inverse(resource, name)
        if inverse is not None:
            children = await self._find_where(
                inverse.source_resource, {inverse.foreign_key_field: _document_id(doc)}
            )
            return inverse.source_resource, children

        junction = self.registry.find_junction(resource, name)
        if junction is not None:
            rows = await self._find_where(
                junction.junction_resource, {junction.local_key: _document_id(doc)}
            )
            targets: list[Document] = []
            for row in rows:
                target_id = row.get(junction.foreign_key)
                if not target_id:
                    continue
                target = await self._find_by_id(junction.target_resource, target_id)
                if target is not None:
                    targets.append(target)
            return junction.target_resource, targets

        return None

    async def populate(
        self,
        resource: str,
        doc: Document,
        includes: Iterable[IncludeArg] | str | None,
    ) -> Document:
        """
        Embed the requested relations into a copy of ``doc``.

        Args:
            resource: Resource the document belongs to
            doc: Formatted document
            includes: Include arguments (see ``parse_includes``)

        Returns:
            New document with one key per resolved include
        """
        populated = dict(doc)
        for spec in parse_includes(includes):
            if spec.rest is not None:
                await self._populate_nested(resource, populated, spec)
                continue

            loaded = await self._load(resource, populated, spec.path)
            if loaded is None:
                logger.debug(f"Skipping unknown include '{spec.path}' on {resource}")
                continue
            populated[spec.path] = _project(loaded[1], spec.select)
        return populated

    async def _populate_nested(self, resource: str, doc: Document, spec: IncludeSpec) -> None:
        head, rest = spec.head, spec.rest
        loaded = await self._load(resource, doc, head)
        if loaded is None:
            logger.debug(f"Skipping unknown include '{spec.path}' on {resource}")
            return

        target, value = loaded
        # Keep whatever an earlier include already embedded under this name
        if doc.get(head) is not None:
            value = doc[head]

        nested = IncludeSpec(rest, spec.select)
        if isinstance(value, list):
            value = [await self.populate(target, item, [nested]) for item in value]
        elif value is not None:
            value = await self.populate(target, value, [nested])
        doc[head] = value

    async def populate_many(
        self,
        resource: str,
        docs: Iterable[Document],
        includes: Iterable[IncludeArg] | str | None,
    ) -> list[Document]:
        """Populate the same includes on every document."""
        specs = parse_includes(includes)
        if not specs:
            return list(docs)
        return [await self.populate(resource, doc, specs) for doc in docs]

    async def resolve(self, resource: str, doc: Document, relation_name: str) -> Document | list[Document] | None:
        """
        Load a single relation, raising when it does not exist.

        Raises:
            RelationNotFound: If ``relation_name`` is neither a direct, inverse
                nor many-to-many relation of ``resource``
        """
        loaded = await self._load(resource, doc, relation_name)
        if loaded is None:
            raise RelationNotFound(resource, relation_name)
        return loaded[1]
