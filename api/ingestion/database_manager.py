"""
Embedded database lifecycle manager.

Brings SQLite from cold start to a queryable state in a fixed order:

    1. resolve and verify the vector extension artifact
    2. open the connection (WAL, busy timeout, foreign keys)
    3. activate the vector extension under a scoped capability
    4. create the base schema

States move Uninitialized -> Initializing -> {Ready, Error}. Ready returns
to Uninitialized only through reset(), which drops all data; close() is
process teardown and never runs while the service is serving.
The state check in initialize() happens before the first await, so two
tasks on the same event loop can never both start an initialization.
"""
import asyncio
import logging
import sqlite3
from enum import Enum
from typing import Callable, Optional, Set

import aiosqlite

from config import DatabaseConfig
from errors import (
    AlreadyInitializingError,
    ArtifactLoadError,
    DatabaseOpenError,
    ExtensionActivationError,
    NotReadyError,
    SemanticSearchError,
)
from ingestion.artifacts import ArtifactLoader, EngineArtifacts
from ingestion.async_connection import AsyncDatabaseConnection
from ingestion.async_schema import AsyncSchemaManager
from ingestion.extension_loader import activate_vector_extension

# Centralized logging configuration - import triggers suppression
from ingestion import logging_config  # noqa: F401

logger = logging.getLogger(__name__)


class DatabaseState(Enum):
    UNINITIALIZED = "UNINITIALIZED"
    INITIALIZING = "INITIALIZING"
    READY = "READY"
    ERROR = "ERROR"


class DatabaseManager:
    """Sole owner of the embedded database handle.

    Other components receive the connection through handle (or
    require_ready()), which refuses access in every state except READY.

    Usage:
        manager = DatabaseManager(config.database)
        await manager.initialize()
        conn = manager.handle
    """

    def __init__(
        self,
        config: DatabaseConfig,
        artifact_loader: Optional[ArtifactLoader] = None,
        connection_factory: Optional[Callable[[DatabaseConfig], AsyncDatabaseConnection]] = None,
    ):
        self.config = config
        self.artifact_loader = artifact_loader or ArtifactLoader(config)
        self._connection_factory = connection_factory or AsyncDatabaseConnection
        self.state = DatabaseState.UNINITIALIZED
        self.last_error: Optional[BaseException] = None
        self.extension_version: Optional[str] = None
        self._db_conn: Optional[AsyncDatabaseConnection] = None
        self._conn: Optional[aiosqlite.Connection] = None
        self._schema: Optional[AsyncSchemaManager] = None
        self._abandoned: Set[asyncio.Future] = set()
        self._lock: Optional[asyncio.Lock] = None

    @property
    def is_ready(self) -> bool:
        return self.state is DatabaseState.READY

    @property
    def extension_active(self) -> bool:
        return self.extension_version is not None

    def require_ready(self) -> None:
        """Raise NotReadyError unless the database is READY"""
        if self.state is not DatabaseState.READY:
            raise NotReadyError(self.state)

    @property
    def handle(self) -> aiosqlite.Connection:
        """The open connection; only available while READY"""
        self.require_ready()
        return self._conn

    @property
    def schema(self) -> AsyncSchemaManager:
        self.require_ready()
        return self._schema

    @property
    def lock(self) -> asyncio.Lock:
        """Serializes work on the shared connection so transactions never interleave.

        Created on first use so it binds to the running event loop.
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def initialize(self) -> None:
        """Bring the database to READY.

        No-op when already READY. Fails immediately with
        AlreadyInitializingError while another initialization is in flight.
        From UNINITIALIZED or ERROR, runs the full startup sequence; any
        failure leaves the manager in ERROR and re-raises the typed error.
        """
        if self.state is DatabaseState.READY:
            return
        if self.state is DatabaseState.INITIALIZING:
            raise AlreadyInitializingError()

        self.state = DatabaseState.INITIALIZING
        self.last_error = None
        logger.info(f"Initializing database at {self.config.path}")

        try:
            artifacts = await self._load_artifacts()
            await self._open()
            if artifacts is not None:
                await self._activate_extension(artifacts)
            await self._schema.ensure_base_schema()
        except BaseException as e:
            # BaseException so cancellation also lands in ERROR with the handle closed
            await self._discard_handle()
            self.state = DatabaseState.ERROR
            self.last_error = e
            logger.error(f"Failed to initialize database: {e}")
            raise

        self.state = DatabaseState.READY
        mode = f"sqlite-vec {self.extension_version}" if self.extension_active else "numpy fallback"
        logger.info(f"Database ready ({mode}, dim={self.config.embedding_dim})")

    async def drop_all_tables(self) -> None:
        """Remove all core tables; state stays READY and the handle stays usable.

        Callers that share the connection hold lock around this call.

        Raises:
            NotReadyError: database is not READY
        """
        self.require_ready()
        await self._schema.drop_all()

    async def ensure_base_schema(self) -> None:
        """Recreate the base schema (e.g. after drop_all_tables)"""
        self.require_ready()
        await self._schema.ensure_base_schema()

    async def reset(self) -> None:
        """Drop all data and destroy the handle, returning to UNINITIALIZED"""
        self.require_ready()
        await self._schema.drop_all()
        await self._discard_handle()
        self.state = DatabaseState.UNINITIALIZED
        logger.warning("Database reset")

    async def close(self) -> None:
        """Destroy the handle at process teardown.

        Not a lifecycle transition for a running service: READY goes back to
        UNINITIALIZED with the data kept, as if the process had exited, and
        ERROR stays ERROR so the failure is still reported. Refused while an
        initialization is in flight; the initializing task owns the handle
        until it settles.
        """
        if self.state is DatabaseState.INITIALIZING:
            raise AlreadyInitializingError("Cannot close while database is initializing")
        await self._discard_handle()
        if self.state is DatabaseState.READY:
            self.state = DatabaseState.UNINITIALIZED

    async def _load_artifacts(self) -> Optional[EngineArtifacts]:
        if not self.config.load_vec_extension:
            logger.info("Vector extension disabled, using NumPy search")
            return None
        try:
            return await asyncio.wait_for(
                self.artifact_loader.load(), timeout=self.config.artifact_timeout
            )
        except asyncio.TimeoutError as e:
            raise ArtifactLoadError(
                f"Timed out after {self.config.artifact_timeout}s loading vector extension"
            ) from e

    async def _open(self) -> None:
        self._db_conn = self._connection_factory(self.config)
        try:
            self._conn = await self._db_conn.connect()
        except (sqlite3.Error, OSError) as e:
            raise DatabaseOpenError(f"Cannot open database {self.config.path}: {e}") from e
        self._schema = AsyncSchemaManager(self._conn, self.config)

    async def _activate_extension(self, artifacts: EngineArtifacts) -> None:
        # A cancelled aiosqlite call still holds the connection's worker thread;
        # on timeout the task is abandoned together with its connection
        task = asyncio.ensure_future(activate_vector_extension(self._conn, artifacts))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.config.extension_timeout)
        except asyncio.CancelledError:
            self._abandon_handle(task)
            raise
        if not done:
            self._abandon_handle(task)
            raise ExtensionActivationError(
                f"Timed out after {self.config.extension_timeout}s activating vector extension"
            )
        try:
            self.extension_version = task.result()
        except SemanticSearchError:
            raise
        except sqlite3.Error as e:
            raise ExtensionActivationError(f"Vector extension activation failed: {e}") from e

    def _abandon_handle(self, pending: asyncio.Future) -> None:
        """Drop a connection whose worker thread is stuck in a call.

        The handle is never used again. Its close is queued behind the stuck
        call and completes in the background once that call returns.
        """
        pending.cancel()
        pending.add_done_callback(_log_abandoned_result)
        db_conn, self._db_conn = self._db_conn, None
        self.extension_version = None
        self._schema = None
        self._conn = None
        if db_conn is not None:
            closing = asyncio.ensure_future(db_conn.close())
            self._abandoned.add(closing)
            closing.add_done_callback(self._abandoned.discard)
            closing.add_done_callback(_log_abandoned_result)
        logger.warning("Abandoned database connection stuck in extension activation")

    async def _discard_handle(self) -> None:
        self.extension_version = None
        self._schema = None
        self._conn = None
        if self._db_conn is not None:
            db_conn, self._db_conn = self._db_conn, None
            try:
                await db_conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing database: {e}")


def _log_abandoned_result(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.debug(f"Abandoned connection call finished with: {error}")
