"""
Snapshot-based transactions.

A unit of work runs between a snapshot of every collection and either a
commit (snapshot discarded, writes kept) or an abort (collections restored,
writes undone). Execution is single-threaded and cooperative: nothing else
touches the store between snapshot and restore.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol, TypeVar

from docstore.errors import TransactionError
from docstore.runtime.logging import get_logger, log_with_context

if TYPE_CHECKING:
    from docstore.runtime.backend import DocumentBackend

logger = get_logger("Tx")

T = TypeVar("T")


class Session(Protocol):
    """Session handle passed to transactional work."""

    @property
    def in_transaction(self) -> bool: ...

    def start_transaction(self) -> None: ...

    async def commit_transaction(self) -> None: ...

    async def abort_transaction(self) -> None: ...

    def end_session(self) -> None: ...


class InMemorySession:
    """Session for the in-memory backend. Tracks transaction state only."""

    def __init__(self) -> None:
        self._in_transaction = False
        self._ended = False

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def has_ended(self) -> bool:
        return self._ended

    def _ensure_active(self) -> None:
        if self._ended:
            raise TransactionError("Session has already ended")

    def start_transaction(self) -> None:
        self._ensure_active()
        if self._in_transaction:
            raise TransactionError("Transaction already in progress on this session")
        self._in_transaction = True

    async def commit_transaction(self) -> None:
        self._ensure_active()
        self._in_transaction = False

    async def abort_transaction(self) -> None:
        self._ensure_active()
        self._in_transaction = False

    def end_session(self) -> None:
        self._in_transaction = False
        self._ended = True


class TransactionManager:
    """
    Runs callables inside a snapshot transaction on one backend.

    Only one transaction may be in flight per manager; a nested ``run``
    raises TransactionError instead of clobbering the outer snapshot.
    """

    def __init__(self, backend: DocumentBackend):
        self.backend = backend
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    async def run(self, fn: Callable[[Session], Awaitable[T]]) -> T:
        """
        Execute ``fn`` transactionally.

        Returns:
            Whatever ``fn`` returns

        Raises:
            TransactionError: If a transaction is already in flight
            Exception: Any error raised by ``fn``, re-raised unchanged after rollback
        """
        if self._active:
            raise TransactionError("Nested transactions are not supported")

        session = self.backend.start_session()
        self._active = True
        try:
            self.backend.take_snapshot()
            session.start_transaction()
            try:
                result = await fn(session)
            except BaseException as e:
                await session.abort_transaction()
                self.backend.restore_snapshot()
                log_with_context(
                    logger,
                    logging.INFO,
                    "Transaction aborted, collections restored",
                    error=type(e).__name__,
                )
                raise

            await session.commit_transaction()
            self.backend.discard_snapshot()
            logger.debug("Transaction committed")
            return result
        finally:
            session.end_session()
            self._active = False
