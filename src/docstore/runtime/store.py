"""
Document store facade.

Schema-validated CRUD, query, relation, aggregation and transaction API
composed from the registry, a backend, the relation loader and the
transaction manager.

Example:
    store = DocumentStore(schema, StoreConfig(in_memory=True))
    await store.connect()
    company = await store.create("Company", {"name": "Acme"})
    deals = await store.find_all(
        "Deal",
        where={"value": {"$gte": 20000}},
        order_by={"value": "desc"},
        include=["company"],
    )
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, TypeVar

from docstore.config import StoreConfig
from docstore.errors import InvalidEnumValue, MissingRequiredField, NotConnected, RecordNotFound
from docstore.runtime.aggregation import PipelineStage
from docstore.runtime.backend import DocumentBackend, create_backend
from docstore.runtime.collection import SET_KEY, FindOptions
from docstore.runtime.documents import (
    ID_KEY,
    Document,
    format_document,
    generate_object_id,
    now_iso,
    select_fields,
)
from docstore.runtime.filters import parse_filter
from docstore.runtime.logging import Colors, get_logger, log_with_context
from docstore.runtime.registry import SchemaRegistry, foreign_key_field
from docstore.runtime.relation_loader import IncludeArg, RelationLoader, parse_includes
from docstore.runtime.sorting import parse_order_by
from docstore.runtime.transactions import Session, TransactionManager
from docstore.specs.resource import Cardinality, FieldKind, FieldSpec, ResourceSpec, SchemaSpec

logger = get_logger("Store", Colors.STORE)

T = TypeVar("T")

CREATED_AT_FIELDS = ("createdAt", "created_at")
UPDATED_AT_FIELDS = ("updatedAt", "updated_at")


def _is_auto_id_field(field: FieldSpec) -> bool:
    """The primary id is a ``uuid`` field named ``id``; its value lives in ``_id``."""
    return field.name == "id" and field.type == FieldKind.UUID


def _is_auto_timestamp_field(field: FieldSpec) -> bool:
    return field.name in CREATED_AT_FIELDS or field.name in UPDATED_AT_FIELDS


class DocumentStore:
    """
    Schema-aware document store with a MongoDB-like API.

    Every operation checks the connection first (NotConnected), then the
    resource name (ResourceNotFound). Returned documents are owned copies
    exposing ``id`` alongside ``_id``.
    """

    def __init__(
        self,
        schema: SchemaSpec | SchemaRegistry,
        config: StoreConfig | None = None,
    ):
        self.registry = schema if isinstance(schema, SchemaRegistry) else SchemaRegistry.from_schema(schema)
        self.schema = self.registry.schema
        self.config = config or StoreConfig(in_memory=True)
        self._backend: DocumentBackend | None = None
        self._relations: RelationLoader | None = None
        self._transactions: TransactionManager | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._backend is not None and self._backend.is_connected()

    async def connect(self) -> None:
        """Connect the backend and create a collection for every resource."""
        if self.is_connected:
            return

        backend = create_backend(self.config.resolved_backend())
        await backend.connect()
        for name in self.registry.resource_names:
            await backend.create_collection(name)

        self._backend = backend
        self._relations = RelationLoader(self.registry, backend)
        self._transactions = TransactionManager(backend)
        log_with_context(
            logger,
            logging.INFO,
            f"Connected to '{self.config.database}'",
            backend=type(backend).__name__,
            collections=len(self.registry.resource_names),
        )

    async def disconnect(self) -> None:
        if self._backend is None:
            return
        await self._backend.disconnect()
        self._backend = None
        self._relations = None
        self._transactions = None
        logger.info(f"Disconnected from '{self.config.database}'")

    async def list_collections(self) -> list[str]:
        return await self._connected_backend().list_collections()

    def _connected_backend(self) -> DocumentBackend:
        if self._backend is None or not self._backend.is_connected():
            raise NotConnected()
        return self._backend

    def _resource(self, name: str) -> ResourceSpec:
        self._connected_backend()
        return self.registry.get_resource(name)

    # -------------------------------------------------------------------------
    # Schema access
    # -------------------------------------------------------------------------

    def get_resources(self) -> list[str]:
        return self.registry.resource_names

    def get_resource(self, name: str) -> ResourceSpec | None:
        return self.registry.find_resource(name)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validate_required(self, resource: ResourceSpec, data: Mapping[str, Any]) -> None:
        missing = [
            field.name
            for field in resource.fields
            if field.required
            and not _is_auto_id_field(field)
            and not _is_auto_timestamp_field(field)
            and field.name not in data
            and not field.has_default
        ]
        if missing:
            raise MissingRequiredField(resource.name, missing)

    def _validate_enums(self, resource: ResourceSpec, values: Mapping[str, Any]) -> None:
        for field in resource.fields:
            if field.type != FieldKind.ENUM or field.name not in values:
                continue
            allowed = field.enum_values
            value = values[field.name]
            if not allowed or value is None:
                continue
            if value not in allowed:
                raise InvalidEnumValue(resource.name, field.name, value, allowed)

    def _build_document(self, resource: ResourceSpec, data: Mapping[str, Any]) -> Document:
        now = now_iso()
        doc: Document = {}

        for field in resource.fields:
            if _is_auto_id_field(field):
                doc[ID_KEY] = generate_object_id()
            elif _is_auto_timestamp_field(field):
                doc[field.name] = now
            elif field.name in data:
                doc[field.name] = copy.deepcopy(data[field.name])
            elif not field.required:
                doc[field.name] = None
            elif field.has_default:
                doc[field.name] = copy.deepcopy(field.default)
            else:
                doc[field.name] = None

        for relation in resource.relations:
            if relation.cardinality != Cardinality.ONE:
                continue
            fk = foreign_key_field(relation)
            if fk in data:
                doc[fk] = data[fk]
            elif not relation.required:
                doc[fk] = None

        return doc

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def create(
        self,
        resource_name: str,
        data: Mapping[str, Any],
        *,
        session: Session | None = None,
    ) -> Document:
        """
        Create a record.

        Args:
            resource_name: Resource to create in
            data: Field values (and foreign keys of ``one`` relations)

        Returns:
            The stored document

        Raises:
            MissingRequiredField: If required fields without defaults are absent
            InvalidEnumValue: If an enum field gets a value outside its set
        """
        resource = self._resource(resource_name)
        self._validate_required(resource, data)
        doc = self._build_document(resource, data)
        self._validate_enums(resource, doc)

        doc[ID_KEY] = await self._connected_backend().insert_one(resource_name, doc)
        return format_document(doc)

    async def find_by_id(
        self,
        resource_name: str,
        record_id: str,
        *,
        session: Session | None = None,
    ) -> Document | None:
        self._resource(resource_name)
        doc = await self._connected_backend().find_one(resource_name, {ID_KEY: record_id})
        return format_document(doc) if doc is not None else None

    async def find_all(
        self,
        resource_name: str,
        where: Mapping[str, Any] | None = None,
        order_by: Mapping[str, Any] | Sequence[str] | str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        include: Iterable[IncludeArg] | str | None = None,
        select: Sequence[str] | None = None,
        *,
        session: Session | None = None,
    ) -> list[Document]:
        """
        Find records.

        Filtering, then sorting, then offset/limit, then relation population.
        A top-level ``select`` keeps included relations alongside the named
        fields.
        """
        self._resource(resource_name)
        options = FindOptions(
            filter=parse_filter(where),
            sort=parse_order_by(order_by),
            skip=offset,
            limit=limit,
        )
        docs = await self._connected_backend().find(resource_name, options)
        results = [format_document(doc) for doc in docs]

        includes = parse_includes(include)
        if includes:
            assert self._relations is not None
            results = await self._relations.populate_many(resource_name, results, includes)

        if select:
            fields = list(select)
            for spec in includes:
                if spec.head not in fields:
                    fields.append(spec.head)
            results = [select_fields(doc, fields) for doc in results]

        return results

    async def update(
        self,
        resource_name: str,
        record_id: str,
        data: Mapping[str, Any],
        *,
        session: Session | None = None,
    ) -> Document:
        """
        Update a record.

        The identifier and creation timestamp are never changed; the
        resource's updated timestamp is always refreshed.

        Raises:
            RecordNotFound: If no record has this id
            InvalidEnumValue: If an enum field gets a value outside its set
        """
        resource = self._resource(resource_name)
        backend = self._connected_backend()

        if await backend.find_one(resource_name, {ID_KEY: record_id}) is None:
            raise RecordNotFound(resource_name, record_id)

        changes = {k: copy.deepcopy(v) for k, v in data.items()}
        for key in (ID_KEY, "id", *CREATED_AT_FIELDS):
            changes.pop(key, None)

        self._validate_enums(resource, changes)

        for field in resource.fields:
            if field.name in UPDATED_AT_FIELDS:
                changes[field.name] = now_iso()
                break

        await backend.update_one(resource_name, {ID_KEY: record_id}, {SET_KEY: changes})
        updated = await backend.find_one(resource_name, {ID_KEY: record_id})
        assert updated is not None
        return format_document(updated)

    async def delete(
        self,
        resource_name: str,
        record_id: str,
        *,
        session: Session | None = None,
    ) -> bool:
        """Delete a record. Returns False when it did not exist."""
        self._resource(resource_name)
        deleted = await self._connected_backend().delete_one(resource_name, {ID_KEY: record_id})
        return deleted > 0

    # -------------------------------------------------------------------------
    # Relations
    # -------------------------------------------------------------------------

    async def get_related(
        self,
        resource_name: str,
        record_id: str,
        relation_name: str,
    ) -> Document | list[Document] | None:
        """
        Load one relation of a record.

        Returns:
            The related document (belongsTo), a list (hasMany or
            many-to-many), or None when the record does not exist

        Raises:
            RelationNotFound: If the resource has no such relation
        """
        record = await self.find_by_id(resource_name, record_id)
        if record is None:
            return None
        assert self._relations is not None
        return await self._relations.resolve(resource_name, record, relation_name)

    # -------------------------------------------------------------------------
    # Aggregation
    # -------------------------------------------------------------------------

    async def count(self, resource_name: str, where: Mapping[str, Any] | None = None) -> int:
        self._resource(resource_name)
        return await self._connected_backend().count_documents(resource_name, parse_filter(where))

    async def aggregate(self, resource_name: str, pipeline: Sequence[PipelineStage]) -> list[Document]:
        """Run an aggregation pipeline over the whole collection."""
        self._resource(resource_name)
        return await self._connected_backend().aggregate(resource_name, pipeline)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def with_transaction(self, fn: Callable[[Session], Awaitable[T]]) -> T:
        """
        Run ``fn`` in a transaction.

        Writes made by ``fn`` are kept when it returns and undone when it
        raises; the original exception propagates unchanged.
        """
        self._connected_backend()
        assert self._transactions is not None
        return await self._transactions.run(fn)
