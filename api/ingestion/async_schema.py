"""Async database schema management."""

import logging
import sqlite3

import aiosqlite

from config import DatabaseConfig
from errors import SchemaError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Drop order respects foreign keys (children first)
CORE_TABLES = ("embeddings", "chunks", "documents", "schema_meta")


class AsyncSchemaManager:
    """Manages database schema asynchronously.

    Single responsibility: DDL for the document/chunk/embedding tables.
    Every statement uses create-if-absent semantics so repeated calls are safe.
    """

    def __init__(self, conn: aiosqlite.Connection, config: DatabaseConfig):
        self.conn = conn
        self.config = config

    @property
    def vector_bytes(self) -> int:
        """Stored width of one vector (float32)"""
        return self.config.embedding_dim * 4

    async def ensure_base_schema(self):
        """Create all required tables and record the vector width.

        Raises:
            SchemaError: DDL failed, or the database was built for a
                different embedding width
        """
        try:
            await self._create_meta_table()
            await self._check_compatibility()
            await self._create_documents_table()
            await self._create_chunks_table()
            await self._create_embeddings_table()
            await self._write_meta()
            await self.conn.commit()
        except SchemaError:
            await self.conn.rollback()
            raise
        except sqlite3.Error as e:
            await self.conn.rollback()
            raise SchemaError(f"Failed to create schema: {e}") from e
        logger.info(f"Schema ready (version {SCHEMA_VERSION}, dim={self.config.embedding_dim})")

    async def drop_all(self):
        """Drop every core table, cascading to their rows"""
        try:
            for table in CORE_TABLES:
                await self.conn.execute(f"DROP TABLE IF EXISTS {table}")
            await self.conn.commit()
        except sqlite3.Error as e:
            await self.conn.rollback()
            raise SchemaError(f"Failed to drop tables: {e}") from e
        logger.warning("All tables dropped")

    async def table_names(self):
        """Names of existing core tables"""
        placeholders = ",".join("?" for _ in CORE_TABLES)
        async with self.conn.execute(
            f"SELECT name FROM sqlite_master WHERE type='table' AND name IN ({placeholders})",
            CORE_TABLES,
        ) as cursor:
            rows = await cursor.fetchall()
        return sorted(row[0] for row in rows)

    async def read_meta(self) -> dict:
        async with self.conn.execute("SELECT key, value FROM schema_meta") as cursor:
            rows = await cursor.fetchall()
        return {key: value for key, value in rows}

    async def _create_meta_table(self):
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)

    async def _check_compatibility(self):
        """Reject a database indexed at another width or a newer schema"""
        meta = await self.read_meta()
        stored_dim = meta.get("embedding_dim")
        if stored_dim is not None and int(stored_dim) != self.config.embedding_dim:
            raise SchemaError(
                f"Database was indexed with {stored_dim}-dimensional embeddings "
                f"(model {meta.get('embedding_model', 'unknown')}) but the configured "
                f"model produces {self.config.embedding_dim}. Reset the database to re-embed."
            )
        stored_version = meta.get("schema_version")
        if stored_version is not None and int(stored_version) > SCHEMA_VERSION:
            raise SchemaError(
                f"Database schema version {stored_version} is newer than supported version {SCHEMA_VERSION}"
            )

    async def _create_documents_table(self):
        """Create documents table"""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                doc_key TEXT UNIQUE NOT NULL,
                content_hash TEXT NOT NULL,
                name TEXT,
                indexed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    async def _create_chunks_table(self):
        """Create chunks table"""
        await self.conn.execute("""
            CREATE TABLE IF NOT EXISTS chunks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                document_id INTEGER NOT NULL,
                chunk_index INTEGER NOT NULL,
                content TEXT NOT NULL,
                FOREIGN KEY (document_id)
                    REFERENCES documents(id)
                    ON DELETE CASCADE,
                UNIQUE (document_id, chunk_index)
            )
        """)

    async def _create_embeddings_table(self):
        """Create embeddings table with a fixed-width float32 vector column.

        The CHECK constraint holds even when the vector extension is not
        loaded, so a wrong-width blob can never be stored.
        """
        await self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS embeddings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                chunk_id INTEGER NOT NULL,
                name TEXT,
                vec BLOB NOT NULL CHECK (length(vec) = {self.vector_bytes}),
                FOREIGN KEY (chunk_id)
                    REFERENCES chunks(id)
                    ON DELETE CASCADE
            )
        """)
        await self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_embeddings_chunk ON embeddings(chunk_id)"
        )

    async def _write_meta(self):
        values = [
            ("schema_version", str(SCHEMA_VERSION)),
            ("embedding_dim", str(self.config.embedding_dim)),
        ]
        await self.conn.executemany(
            "INSERT INTO schema_meta (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            values,
        )
        # The stored model names whatever produced the existing vectors; only
        # AsyncVectorStore rebinds it, and only while no vectors are stored
        await self.conn.execute(
            "INSERT INTO schema_meta (key, value) VALUES ('embedding_model', ?) "
            "ON CONFLICT(key) DO NOTHING",
            (self.config.embedding_model,),
        )

    async def write_model(self, model: str):
        """Record the model that produced the stored vectors (caller commits)"""
        await self.conn.execute(
            "INSERT INTO schema_meta (key, value) VALUES ('embedding_model', ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (model,),
        )
