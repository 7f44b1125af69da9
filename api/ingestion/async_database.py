"""
Async vector store facade.

Architecture:
- DatabaseManager: lifecycle and the single connection (database_manager.py)
- AsyncSchemaManager: DDL (async_schema.py)
- Async*Repository: one table/concern each (async_repositories.py)
- AsyncVectorStore: transactional document-level operations over the repositories

The store never holds the connection itself; every call goes through the
manager so nothing runs against the database outside the READY state.
"""

import logging
from typing import Dict, List, Optional, Sequence

from domain_models import Chunk, Document, SearchHit
from errors import EmbeddingModelMismatchError
from ingestion.async_repositories import (
    AsyncChunkRepository,
    AsyncDocumentRepository,
    AsyncEmbeddingRepository,
    AsyncSearchRepository,
)
from ingestion.database_manager import DatabaseManager
from value_objects import IndexingStats

logger = logging.getLogger(__name__)


class AsyncVectorStore:
    """Document-level storage operations.

    Every operation holds the manager's lock for its whole duration, so a
    transaction is never interleaved with statements from another task.

    Usage:
        store = AsyncVectorStore(manager)
        await store.replace_document(doc, chunks, vectors)
        hits = await store.search(query_vector, top_k=5)
    """

    def __init__(self, manager: DatabaseManager):
        self.manager = manager

    @property
    def dimension(self) -> int:
        return self.manager.config.embedding_dim

    async def check_model(self, model: str) -> None:
        """Raise EmbeddingModelMismatchError if stored vectors came from another model"""
        async with self.manager.lock:
            await self._check_model(self.manager.handle, model)

    async def replace_document(self, doc: Document, chunks: Sequence[Chunk],
                               vectors: Sequence[Sequence[float]],
                               model: Optional[str] = None) -> int:
        """Replace all rows for doc.key with the given chunks and vectors.

        Runs as a single transaction: old chunks/embeddings for the key are
        removed, new ones inserted. Any failure (including a vector of the
        wrong width, or vectors from a model other than the stored one)
        rolls back, leaving the previous rows untouched. When model is given
        and the index holds no other vectors, it becomes the stored model.

        Returns:
            The new document ID
        """
        if len(chunks) != len(vectors):
            raise ValueError(f"Got {len(vectors)} vectors for {len(chunks)} chunks")

        async with self.manager.lock:
            conn = self.manager.handle
            documents = AsyncDocumentRepository(conn)
            chunk_repo = AsyncChunkRepository(conn)
            embeddings = AsyncEmbeddingRepository(conn, self.dimension)

            # Width check up front so a bad batch never opens a transaction
            for vector in vectors:
                embeddings.check_dimension(vector)

            try:
                await documents.delete(doc.key)
                if model is not None and vectors:
                    await self._check_model(conn, model)
                    await self.manager.schema.write_model(model)
                doc_id = await documents.add(doc.key, doc.content_hash, doc.label)
                for chunk, vector in zip(chunks, vectors):
                    chunk_id = await chunk_repo.add(doc_id, chunk.index, chunk.content)
                    await embeddings.add(chunk_id, doc.label, vector)
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

        logger.debug(f"Stored {doc.key}: {len(chunks)} chunks")
        return doc_id

    async def delete_document(self, doc_key: str) -> bool:
        """Delete a document and, by cascade, its chunks and embeddings"""
        async with self.manager.lock:
            conn = self.manager.handle
            try:
                deleted = await AsyncDocumentRepository(conn).delete(doc_key)
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise
        return deleted

    async def is_indexed(self, doc_key: str, content_hash: str) -> bool:
        """Check whether doc_key is stored with this exact content"""
        doc = await self.get_document(doc_key)
        return doc is not None and doc['content_hash'] == content_hash

    async def get_document(self, doc_key: str) -> Optional[Dict]:
        async with self.manager.lock:
            return await AsyncDocumentRepository(self.manager.handle).find_by_key(doc_key)

    async def search(self, query_embedding: Sequence[float], top_k: int = 5) -> List[SearchHit]:
        """Nearest chunks by cosine distance, closest first"""
        async with self.manager.lock:
            repo = AsyncSearchRepository(
                self.manager.handle, self.dimension, self.manager.extension_active
            )
            return await repo.vector_search(query_embedding, top_k)

    async def get_stats(self) -> IndexingStats:
        async with self.manager.lock:
            conn = self.manager.handle
            return IndexingStats(
                documents=await AsyncDocumentRepository(conn).count(),
                chunks=await AsyncChunkRepository(conn).count(),
                embeddings=await AsyncEmbeddingRepository(conn, self.dimension).count(),
            )

    async def _check_model(self, conn, model: str) -> None:
        """Caller holds the lock. A model change is only allowed on an empty index."""
        meta = await self.manager.schema.read_meta()
        stored = meta.get("embedding_model")
        if stored is None or stored == model:
            return
        if await AsyncEmbeddingRepository(conn, self.dimension).count() > 0:
            raise EmbeddingModelMismatchError(stored, model)
