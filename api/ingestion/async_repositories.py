"""
Async repository classes for the document/chunk/embedding tables.

Principles:
- Single Responsibility: Each repository handles one table/concern
- Dependency Injection: Accept connection in constructor
- Repositories never commit; the caller owns the transaction
"""

import logging
from typing import Dict, List, Optional, Sequence

import aiosqlite

from domain_models import SearchHit
from errors import DimensionMismatchError
from ingestion.numpy_vector_index import NumpyVectorIndex, to_blob

logger = logging.getLogger(__name__)


class AsyncDocumentRepository:
    """CRUD operations for documents table.

    Single Responsibility: Manage document records only.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def add(self, doc_key: str, content_hash: str, name: Optional[str] = None) -> int:
        """Insert document record and return document ID"""
        cursor = await self.conn.execute(
            "INSERT INTO documents (doc_key, content_hash, name) VALUES (?, ?, ?)",
            (doc_key, content_hash, name)
        )
        return cursor.lastrowid

    async def find_by_key(self, doc_key: str) -> Optional[Dict]:
        """Get document by external key"""
        async with self.conn.execute(
            "SELECT id, doc_key, content_hash, name, indexed_at FROM documents WHERE doc_key = ?",
            (doc_key,)
        ) as cursor:
            result = await cursor.fetchone()
        if not result:
            return None

        return {
            'id': result[0],
            'doc_key': result[1],
            'content_hash': result[2],
            'name': result[3],
            'indexed_at': result[4]
        }

    async def delete(self, doc_key: str) -> bool:
        """Delete document; chunks and embeddings cascade"""
        cursor = await self.conn.execute(
            "DELETE FROM documents WHERE doc_key = ?", (doc_key,)
        )
        return cursor.rowcount > 0

    async def count(self) -> int:
        """Count total documents"""
        return await _count(self.conn, "documents")


class AsyncChunkRepository:
    """CRUD operations for chunks table.

    Single Responsibility: Manage chunk records only.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def add(self, document_id: int, chunk_index: int, content: str) -> int:
        """Insert chunk record and return chunk ID"""
        cursor = await self.conn.execute(
            "INSERT INTO chunks (document_id, chunk_index, content) VALUES (?, ?, ?)",
            (document_id, chunk_index, content)
        )
        return cursor.lastrowid

    async def count(self) -> int:
        """Count total chunks"""
        return await _count(self.conn, "chunks")


class AsyncEmbeddingRepository:
    """Stores fixed-width embedding vectors.

    Single Responsibility: Manage embedding records and their width invariant.
    """

    def __init__(self, conn: aiosqlite.Connection, dimension: int):
        self.conn = conn
        self.dimension = dimension

    def check_dimension(self, vector: Sequence[float]) -> None:
        """Raise DimensionMismatchError unless vector has the configured width"""
        if len(vector) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(vector))

    async def add(self, chunk_id: int, name: Optional[str], vector: Sequence[float]) -> int:
        """Insert embedding and return its ID.

        Width is validated before the INSERT so a mismatch writes nothing.
        """
        self.check_dimension(vector)
        cursor = await self.conn.execute(
            "INSERT INTO embeddings (chunk_id, name, vec) VALUES (?, ?, ?)",
            (chunk_id, name, to_blob(vector))
        )
        return cursor.lastrowid

    async def count(self) -> int:
        """Count total embeddings"""
        return await _count(self.conn, "embeddings")


class AsyncSearchRepository:
    """Vector similarity search ranked by raw cosine distance.

    Uses sqlite-vec's vec_distance_cosine when the extension is active and
    falls back to a NumPy brute-force scan otherwise.
    """

    _HIT_SELECT = "e.id, d.doc_key, e.name, c.chunk_index, c.content"
    _HIT_JOINS = """
        FROM embeddings e
        JOIN chunks c ON c.id = e.chunk_id
        JOIN documents d ON d.id = c.document_id
    """

    def __init__(self, conn: aiosqlite.Connection, dimension: int, use_extension: bool):
        self.conn = conn
        self.dimension = dimension
        self.use_extension = use_extension

    async def vector_search(self, embedding: Sequence[float], top_k: int) -> List[SearchHit]:
        """Return up to top_k hits, closest first"""
        if len(embedding) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(embedding))
        if self.use_extension:
            return await self._search_with_extension(embedding, top_k)
        return await self._search_with_numpy(embedding, top_k)

    async def _search_with_extension(self, embedding, top_k: int) -> List[SearchHit]:
        async with self.conn.execute(
            f"""
            SELECT {self._HIT_SELECT},
                   vec_distance_cosine(e.vec, ?) AS distance
            {self._HIT_JOINS}
            ORDER BY distance ASC, e.id ASC
            LIMIT ?
            """,
            (to_blob(embedding), top_k)
        ) as cursor:
            rows = await cursor.fetchall()
        return [self._to_hit(row[:5], row[5]) for row in rows]

    async def _search_with_numpy(self, embedding, top_k: int) -> List[SearchHit]:
        async with self.conn.execute("SELECT id, vec FROM embeddings ORDER BY id") as cursor:
            rows = await cursor.fetchall()
        ranked = NumpyVectorIndex.from_rows(rows, self.dimension).search(embedding, top_k)
        if not ranked:
            return []

        details = await self._fetch_details([emb_id for emb_id, _ in ranked])
        return [
            self._to_hit(details[emb_id], distance)
            for emb_id, distance in ranked
            if emb_id in details
        ]

    async def _fetch_details(self, ids: List[int]) -> Dict[int, tuple]:
        placeholders = ",".join("?" for _ in ids)
        async with self.conn.execute(
            f"SELECT {self._HIT_SELECT} {self._HIT_JOINS} WHERE e.id IN ({placeholders})", ids
        ) as cursor:
            rows = await cursor.fetchall()
        return {row[0]: row for row in rows}

    def _to_hit(self, row, distance: float) -> SearchHit:
        return SearchHit(
            embedding_id=row[0],
            doc_key=row[1],
            name=row[2],
            chunk_index=row[3],
            content=row[4],
            distance=float(distance),
        )


async def _count(conn: aiosqlite.Connection, table: str) -> int:
    async with conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
        row = await cursor.fetchone()
    return row[0]
