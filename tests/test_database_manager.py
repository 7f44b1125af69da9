"""
Tests for DatabaseManager lifecycle

Verifies the state machine (UNINITIALIZED -> INITIALIZING -> READY/ERROR),
that concurrent initialization is refused, that every failure lands in
ERROR with a typed error, and that extension loading is always revoked.
"""
import asyncio
import sqlite3
import time
from dataclasses import replace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, call

import aiosqlite
import pytest

from tests import skip_if_no_sqlite_vec
from errors import (
    AlreadyInitializingError,
    ArtifactLoadError,
    DatabaseOpenError,
    ExtensionActivationError,
    NotReadyError,
    SchemaError,
)
from ingestion.artifacts import ArtifactLoader, EngineArtifacts
from ingestion.async_connection import AsyncDatabaseConnection
from ingestion.async_schema import CORE_TABLES
from ingestion.database_manager import DatabaseManager, DatabaseState
from ingestion.extension_loader import activate_vector_extension

pytestmark = pytest.mark.asyncio


class BlockingLoader:
    """Artifact loader that waits until released, then fails or yields nothing"""

    def __init__(self, error=None):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.error = error
        self.calls = 0

    async def load(self):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        if self.error:
            raise self.error
        return None


class FlakyLoader:
    """Fails on the first call, succeeds (without an extension) afterwards"""

    def __init__(self):
        self.calls = 0

    async def load(self):
        self.calls += 1
        if self.calls == 1:
            raise ArtifactLoadError("transient failure")
        return None


class StaticLoader:
    """Returns artifacts for a library that is never read"""

    async def load(self):
        return EngineArtifacts(
            extension_path="/opt/vec0", library_file=Path("/opt/vec0.so"),
            size=10, sha256="0" * 64,
        )


def _with_extension(db_config):
    return replace(db_config, load_vec_extension=True)


class TestInitialize:
    """Test DatabaseManager.initialize"""

    async def test_starts_uninitialized(self, db_config):
        manager = DatabaseManager(db_config)

        assert manager.state is DatabaseState.UNINITIALIZED
        assert not manager.is_ready

    async def test_initialize_reaches_ready(self, db_config):
        manager = DatabaseManager(db_config)
        await manager.initialize()

        assert manager.state is DatabaseState.READY
        assert manager.last_error is None
        assert sorted(await manager.schema.table_names()) == sorted(CORE_TABLES)
        await manager.close()

    async def test_initialize_is_idempotent_when_ready(self, ready_manager):
        """Second initialize is a no-op and keeps the same handle"""
        handle = ready_manager.handle
        await ready_manager.initialize()

        assert ready_manager.state is DatabaseState.READY
        assert ready_manager.handle is handle

    async def test_concurrent_initialize_is_refused(self, db_config):
        """A second initialize while one is in flight fails immediately"""
        loader = BlockingLoader()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)

        first = asyncio.create_task(manager.initialize())
        await loader.started.wait()
        assert manager.state is DatabaseState.INITIALIZING

        with pytest.raises(AlreadyInitializingError):
            await manager.initialize()

        loader.release.set()
        await first
        assert manager.state is DatabaseState.READY
        assert loader.calls == 1
        await manager.close()

    async def test_close_refused_while_initializing(self, db_config):
        loader = BlockingLoader()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)

        task = asyncio.create_task(manager.initialize())
        await loader.started.wait()

        with pytest.raises(AlreadyInitializingError):
            await manager.close()

        loader.release.set()
        await task
        await manager.close()


class TestInitializeFailures:
    """Every failure leaves the manager in ERROR with a typed error"""

    async def test_artifact_failure_sets_error(self, db_config):
        loader = BlockingLoader(error=ArtifactLoadError("missing library"))
        loader.release.set()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)

        with pytest.raises(ArtifactLoadError):
            await manager.initialize()

        assert manager.state is DatabaseState.ERROR
        assert isinstance(manager.last_error, ArtifactLoadError)
        with pytest.raises(NotReadyError):
            manager.handle

    async def test_artifact_timeout_is_artifact_error(self, db_config):
        loader = BlockingLoader()
        config = replace(_with_extension(db_config), artifact_timeout=0.05)
        manager = DatabaseManager(config, artifact_loader=loader)

        with pytest.raises(ArtifactLoadError, match="Timed out"):
            await manager.initialize()
        assert manager.state is DatabaseState.ERROR

    async def test_missing_extension_library(self, db_config, tmp_path):
        config = replace(
            _with_extension(db_config),
            vec_extension_path=str(tmp_path / "does-not-exist"),
        )
        manager = DatabaseManager(config)

        with pytest.raises(ArtifactLoadError, match="not found"):
            await manager.initialize()
        assert manager.state is DatabaseState.ERROR

    async def test_broken_extension_library(self, db_config, tmp_path):
        """A file that is not a loadable library fails activation, not loading"""
        library = tmp_path / "broken.so"
        library.write_bytes(b"not a shared library")
        config = replace(_with_extension(db_config), vec_extension_path=str(library))
        manager = DatabaseManager(config)

        with pytest.raises(ExtensionActivationError):
            await manager.initialize()

        assert manager.state is DatabaseState.ERROR
        assert not manager.extension_active

    async def test_open_failure_is_database_open_error(self, db_config):
        class FailingConnection(AsyncDatabaseConnection):
            async def connect(self):
                raise sqlite3.OperationalError("unable to open database file")

        manager = DatabaseManager(db_config, connection_factory=FailingConnection)

        with pytest.raises(DatabaseOpenError):
            await manager.initialize()
        assert manager.state is DatabaseState.ERROR

    async def test_dimension_change_is_schema_error(self, db_config):
        """Reopening a database at a different width is rejected"""
        manager = DatabaseManager(db_config)
        await manager.initialize()
        await manager.close()

        wider = DatabaseManager(replace(db_config, embedding_dim=4))
        with pytest.raises(SchemaError, match="Reset the database"):
            await wider.initialize()
        assert wider.state is DatabaseState.ERROR

    async def test_retry_from_error(self, db_config):
        """initialize from ERROR runs the full sequence again"""
        loader = FlakyLoader()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)

        with pytest.raises(ArtifactLoadError):
            await manager.initialize()
        assert manager.state is DatabaseState.ERROR

        await manager.initialize()
        assert manager.state is DatabaseState.READY
        assert manager.last_error is None
        assert loader.calls == 2
        await manager.close()

    async def test_cancellation_lands_in_error(self, db_config):
        loader = BlockingLoader()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)

        task = asyncio.create_task(manager.initialize())
        await loader.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert manager.state is DatabaseState.ERROR

    async def test_hung_activation_is_bounded_by_timeout(self, db_config, monkeypatch):
        """A load stuck on the connection's worker thread does not block initialize"""
        async def hang(conn, path):
            await conn._execute(time.sleep, 2.0)

        monkeypatch.setattr(aiosqlite.Connection, "enable_load_extension", AsyncMock())
        monkeypatch.setattr(aiosqlite.Connection, "load_extension", hang)
        config = replace(_with_extension(db_config), extension_timeout=0.1)
        manager = DatabaseManager(config, artifact_loader=StaticLoader())

        start = time.monotonic()
        with pytest.raises(ExtensionActivationError, match="Timed out"):
            await manager.initialize()

        assert time.monotonic() - start < 1.0
        assert manager.state is DatabaseState.ERROR
        assert not manager.extension_active
        # The abandoned connection closes once the stuck call returns
        await asyncio.gather(*manager._abandoned)

    async def test_close_keeps_error_state(self, db_config):
        loader = FlakyLoader()
        manager = DatabaseManager(_with_extension(db_config), artifact_loader=loader)
        with pytest.raises(ArtifactLoadError):
            await manager.initialize()

        await manager.close()

        assert manager.state is DatabaseState.ERROR
        assert isinstance(manager.last_error, ArtifactLoadError)


class TestDropAndReset:
    """Test destructive operations"""

    async def test_drop_requires_ready(self, db_config):
        manager = DatabaseManager(db_config)

        with pytest.raises(NotReadyError):
            await manager.drop_all_tables()
        assert manager.state is DatabaseState.UNINITIALIZED

    async def test_drop_then_ensure_recreates_schema(self, ready_manager):
        await ready_manager.drop_all_tables()

        assert ready_manager.state is DatabaseState.READY
        assert await ready_manager.schema.table_names() == []

        await ready_manager.ensure_base_schema()
        assert sorted(await ready_manager.schema.table_names()) == sorted(CORE_TABLES)

    async def test_ensure_base_schema_is_repeatable(self, ready_manager):
        await ready_manager.ensure_base_schema()
        await ready_manager.ensure_base_schema()

        meta = await ready_manager.schema.read_meta()
        assert meta["embedding_dim"] == "3"

    async def test_reset_returns_to_uninitialized(self, ready_manager):
        conn = ready_manager.handle
        await conn.execute(
            "INSERT INTO documents (doc_key, content_hash) VALUES ('a.md', 'h')"
        )
        await conn.commit()

        await ready_manager.reset()
        assert ready_manager.state is DatabaseState.UNINITIALIZED
        with pytest.raises(NotReadyError):
            ready_manager.handle

        await ready_manager.initialize()
        async with ready_manager.handle.execute("SELECT COUNT(*) FROM documents") as cursor:
            assert (await cursor.fetchone())[0] == 0

    async def test_close_keeps_data(self, db_config):
        manager = DatabaseManager(db_config)
        await manager.initialize()
        await manager.handle.execute(
            "INSERT INTO documents (doc_key, content_hash) VALUES ('a.md', 'h')"
        )
        await manager.handle.commit()
        await manager.close()
        assert manager.state is DatabaseState.UNINITIALIZED

        await manager.initialize()
        async with manager.handle.execute("SELECT COUNT(*) FROM documents") as cursor:
            assert (await cursor.fetchone())[0] == 1
        await manager.close()


class TestExtensionActivation:
    """Extension loading is enabled only for the activation call"""

    def _mock_conn(self, load_error=None, version="v0.1.6"):
        conn = MagicMock()
        conn.enable_load_extension = AsyncMock()
        conn.load_extension = AsyncMock(side_effect=load_error)
        cursor = MagicMock()
        cursor.fetchone = AsyncMock(return_value=(version,))
        conn.execute.return_value.__aenter__.return_value = cursor
        return conn

    def _artifacts(self):
        return EngineArtifacts(
            extension_path="/opt/vec0", library_file=Path("/opt/vec0.so"),
            size=10, sha256="0" * 64,
        )

    async def test_scope_is_revoked_after_success(self):
        conn = self._mock_conn()

        version = await activate_vector_extension(conn, self._artifacts())

        assert version == "v0.1.6"
        conn.load_extension.assert_awaited_once_with("/opt/vec0")
        assert conn.enable_load_extension.await_args_list == [call(True), call(False)]

    async def test_scope_is_revoked_after_failure(self):
        conn = self._mock_conn(load_error=sqlite3.OperationalError("bad ELF header"))

        with pytest.raises(ExtensionActivationError):
            await activate_vector_extension(conn, self._artifacts())

        assert conn.enable_load_extension.await_args_list == [call(True), call(False)]

    async def test_unsupported_interpreter(self):
        conn = self._mock_conn()
        conn.enable_load_extension = AsyncMock(side_effect=AttributeError("enable_load_extension"))

        with pytest.raises(ExtensionActivationError, match="not available"):
            await activate_vector_extension(conn, self._artifacts())
        conn.load_extension.assert_not_awaited()


class TestArtifactLoader:
    """Test ArtifactLoader verification"""

    async def test_reads_and_hashes_library(self, db_config, tmp_path):
        import hashlib

        library = tmp_path / "vec0.so"
        library.write_bytes(b"\x7fELF fake")
        loader = ArtifactLoader(replace(db_config, vec_extension_path=str(tmp_path / "vec0")))

        artifacts = await loader.load()

        assert artifacts.library_file == library
        assert artifacts.extension_path == str(tmp_path / "vec0")
        assert artifacts.size == len(b"\x7fELF fake")
        assert artifacts.sha256 == hashlib.sha256(b"\x7fELF fake").hexdigest()

    async def test_checksum_mismatch(self, db_config, tmp_path):
        library = tmp_path / "vec0.so"
        library.write_bytes(b"\x7fELF fake")
        loader = ArtifactLoader(replace(
            db_config, vec_extension_path=str(library), vec_extension_sha256="ab" * 32,
        ))

        with pytest.raises(ArtifactLoadError, match="checksum"):
            await loader.load()

    async def test_empty_library(self, db_config, tmp_path):
        library = tmp_path / "vec0.so"
        library.write_bytes(b"")
        loader = ArtifactLoader(replace(db_config, vec_extension_path=str(library)))

        with pytest.raises(ArtifactLoadError, match="empty"):
            await loader.load()


@skip_if_no_sqlite_vec
class TestWithSqliteVec:
    """Full startup with the real sqlite-vec extension"""

    async def test_extension_becomes_active(self, db_config):
        manager = DatabaseManager(_with_extension(db_config))
        await manager.initialize()

        assert manager.state is DatabaseState.READY
        assert manager.extension_active
        assert manager.extension_version
        await manager.close()
        assert not manager.extension_active
