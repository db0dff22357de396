"""
Storage backends for the document store.

A backend owns a named set of collections and exposes connect/disconnect,
CRUD, find, count, aggregate, session creation and whole-store snapshot
operations. ``InMemoryBackend`` is the reference implementation; persistent
backends plug in through ``register_backend``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Sequence

from docstore.config import BackendConfig, BackendType
from docstore.errors import NotConnected
from docstore.runtime.aggregation import PipelineStage, run_pipeline
from docstore.runtime.collection import FindOptions, InMemoryCollection
from docstore.runtime.documents import Document
from docstore.runtime.filters import Filter
from docstore.runtime.logging import Colors, get_logger
from docstore.runtime.transactions import InMemorySession, Session

logger = get_logger("Backend", Colors.STORE)

FilterArg = Filter | Mapping[str, Any] | None


class DocumentBackend(ABC):
    """Interface every storage backend implements."""

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def disconnect(self) -> None: ...

    @abstractmethod
    def is_connected(self) -> bool: ...

    @abstractmethod
    async def create_collection(self, name: str) -> None: ...

    @abstractmethod
    async def list_collections(self) -> list[str]: ...

    @abstractmethod
    async def insert_one(self, collection: str, doc: Mapping[str, Any]) -> str: ...

    @abstractmethod
    async def find_one(self, collection: str, filter: FilterArg = None) -> Document | None: ...

    @abstractmethod
    async def find(self, collection: str, options: FindOptions | None = None) -> list[Document]: ...

    @abstractmethod
    async def update_one(
        self, collection: str, filter: FilterArg, update: Mapping[str, Any]
    ) -> int: ...

    @abstractmethod
    async def delete_one(self, collection: str, filter: FilterArg) -> int: ...

    @abstractmethod
    async def count_documents(self, collection: str, filter: FilterArg = None) -> int: ...

    @abstractmethod
    async def aggregate(
        self, collection: str, pipeline: Sequence[PipelineStage]
    ) -> list[Document]: ...

    @abstractmethod
    def start_session(self) -> Session: ...

    @abstractmethod
    def take_snapshot(self) -> None: ...

    @abstractmethod
    def restore_snapshot(self) -> None: ...

    @abstractmethod
    def discard_snapshot(self) -> None: ...


class InMemoryBackend(DocumentBackend):
    """
    Backend holding every collection in process memory.

    Collections are created lazily on first access; only explicitly created
    ones are reported by ``list_collections``.
    """

    def __init__(self, database: str = "docstore"):
        self.database = database
        self._connected = False
        self._collections: dict[str, InMemoryCollection] = {}
        self._registered: list[str] = []
        self._snapshot_names: set[str] | None = None

    def _ensure_connected(self) -> None:
        if not self._connected:
            raise NotConnected()

    def _collection(self, name: str) -> InMemoryCollection:
        self._ensure_connected()
        collection = self._collections.get(name)
        if collection is None:
            collection = InMemoryCollection(name)
            self._collections[name] = collection
        return collection

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        if not self._connected:
            self._connected = True
            logger.debug(f"Connected in-memory backend '{self.database}'")

    async def disconnect(self) -> None:
        self._collections.clear()
        self._registered.clear()
        self._snapshot_names = None
        if self._connected:
            self._connected = False
            logger.debug(f"Disconnected in-memory backend '{self.database}'")

    def is_connected(self) -> bool:
        return self._connected

    async def create_collection(self, name: str) -> None:
        self._collection(name)
        if name not in self._registered:
            self._registered.append(name)

    async def list_collections(self) -> list[str]:
        self._ensure_connected()
        return list(self._registered)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def insert_one(self, collection: str, doc: Mapping[str, Any]) -> str:
        return self._collection(collection).insert_one(doc)

    async def find_one(self, collection: str, filter: FilterArg = None) -> Document | None:
        return self._collection(collection).find_one(filter)

    async def find(self, collection: str, options: FindOptions | None = None) -> list[Document]:
        return self._collection(collection).find(options)

    async def update_one(self, collection: str, filter: FilterArg, update: Mapping[str, Any]) -> int:
        return self._collection(collection).update_one(filter, update)

    async def delete_one(self, collection: str, filter: FilterArg) -> int:
        return self._collection(collection).delete_one(filter)

    async def count_documents(self, collection: str, filter: FilterArg = None) -> int:
        return self._collection(collection).count_documents(filter)

    async def aggregate(self, collection: str, pipeline: Sequence[PipelineStage]) -> list[Document]:
        return run_pipeline(self._collection(collection).all_documents(), pipeline)

    # -------------------------------------------------------------------------
    # Sessions and snapshots
    # -------------------------------------------------------------------------

    def start_session(self) -> InMemorySession:
        self._ensure_connected()
        return InMemorySession()

    def take_snapshot(self) -> None:
        """Snapshot every collection and remember which ones exist."""
        self._ensure_connected()
        for collection in self._collections.values():
            collection.take_snapshot()
        self._snapshot_names = set(self._collections)

    def restore_snapshot(self) -> None:
        """Restore every collection; drop collections created since the snapshot."""
        if self._snapshot_names is None:
            return
        for name in list(self._collections):
            if name in self._snapshot_names:
                self._collections[name].restore_snapshot()
            else:
                del self._collections[name]
                if name in self._registered:
                    self._registered.remove(name)
        self._snapshot_names = None
        logger.debug("Restored collection snapshots")

    def discard_snapshot(self) -> None:
        for collection in self._collections.values():
            collection.discard_snapshot()
        self._snapshot_names = None


# =============================================================================
# Factory
# =============================================================================

BackendFactory = Callable[[BackendConfig], DocumentBackend]

_BACKEND_FACTORIES: dict[BackendType, BackendFactory] = {
    BackendType.MEMORY: lambda config: InMemoryBackend(config.database or "docstore"),
}


def register_backend(backend_type: BackendType | str, factory: BackendFactory) -> None:
    """Register a factory for a backend type, replacing any previous one."""
    _BACKEND_FACTORIES[BackendType(backend_type)] = factory


def create_backend(config: BackendConfig) -> DocumentBackend:
    """
    Create a backend for the given configuration.

    Backend types without a registered factory fall back to the in-memory
    backend with a warning.
    """
    factory = _BACKEND_FACTORIES.get(config.type)
    if factory is None:
        logger.warning(
            f"Backend '{config.type.value}' is not available, falling back to in-memory storage"
        )
        factory = _BACKEND_FACTORIES[BackendType.MEMORY]
    return factory(config)
