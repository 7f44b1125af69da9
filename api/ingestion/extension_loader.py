"""
Scoped vector extension activation.

SQLite refuses load_extension() unless extension loading is switched on for
the connection. That switch is a capability we grant only for the duration
of the activation call and always revoke afterwards, including when the
load fails or the task is cancelled.
"""
import logging
import sqlite3
from contextlib import asynccontextmanager

import aiosqlite

from errors import ExtensionActivationError
from ingestion.artifacts import EngineArtifacts

logger = logging.getLogger(__name__)


@asynccontextmanager
async def extension_loading_enabled(conn: aiosqlite.Connection):
    """Enable extension loading on conn for the body of the block"""
    try:
        await conn.enable_load_extension(True)
    except (AttributeError, sqlite3.Error) as e:
        # AttributeError: interpreter built without loadable extension support
        raise ExtensionActivationError(
            f"SQLite extension loading is not available: {e}"
        ) from e
    try:
        yield conn
    finally:
        await conn.enable_load_extension(False)


async def activate_vector_extension(conn: aiosqlite.Connection,
                                    artifacts: EngineArtifacts) -> str:
    """Load sqlite-vec into conn and return its version string.

    Raises:
        ExtensionActivationError: load failed or vec functions are unavailable
    """
    async with extension_loading_enabled(conn):
        try:
            await conn.load_extension(artifacts.extension_path)
        except sqlite3.Error as e:
            raise ExtensionActivationError(
                f"Failed to load vector extension {artifacts.library_file}: {e}"
            ) from e

    try:
        async with conn.execute("SELECT vec_version()") as cursor:
            row = await cursor.fetchone()
    except sqlite3.Error as e:
        raise ExtensionActivationError(f"Vector extension loaded but not usable: {e}") from e

    version = row[0]
    logger.info(f"Vector extension active (sqlite-vec {version})")
    return version
