"""
Async database connection management.

Single Responsibility: Connection lifecycle only. Extension activation is
done by the DatabaseManager so it can be ordered and timed separately.
"""
import logging
from pathlib import Path
from typing import Optional

import aiosqlite

from config import DatabaseConfig

logger = logging.getLogger(__name__)


class AsyncDatabaseConnection:
    """Manages the async SQLite connection.

    Single responsibility: Database connection lifecycle
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.conn: Optional[aiosqlite.Connection] = None

    async def connect(self) -> aiosqlite.Connection:
        """Establish async database connection"""
        self._ensure_parent_dir()
        self.conn = await aiosqlite.connect(self.config.path)
        try:
            # WAL allows concurrent reads during writes
            await self.conn.execute("PRAGMA journal_mode=WAL")
            await self.conn.execute(f"PRAGMA busy_timeout={int(self.config.busy_timeout_ms)}")
            # Chunk and embedding rows cascade from their document
            await self.conn.execute("PRAGMA foreign_keys=ON")
        except Exception:
            await self.close()
            raise
        logger.debug(f"Opened database {self.config.path}")
        return self.conn

    def _ensure_parent_dir(self):
        if self.config.path == ":memory:":
            return
        Path(self.config.path).parent.mkdir(parents=True, exist_ok=True)

    async def close(self):
        """Close connection"""
        if self.conn:
            conn, self.conn = self.conn, None
            await conn.close()
