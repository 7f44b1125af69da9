"""Indexing pipeline: chunk -> embed -> store, and query-time search.

Thin orchestration over the settings store, the chunker, an embedder
created from the current settings, and the vector store.
"""

import logging
import time
from typing import Callable, List

import httpx

from config import dimension_for_model
from domain_models import Document, SearchHit
from errors import DimensionMismatchError
from ingestion.async_database import AsyncVectorStore
from ingestion.chunking import chunk
from pipeline.chunkers.fixed_chunker import FixedChunker
from pipeline.factory import create_embedder
from pipeline.interfaces.embedder import EmbedderInterface
from settings_store import SettingsStore
from value_objects import ProcessingResult

logger = logging.getLogger(__name__)

EmbedderFactory = Callable[..., EmbedderInterface]


class IndexingPipeline:
    """Indexes documents and answers vector searches.

    Usage:
        pipeline = IndexingPipeline(store, settings, chunker, client)
        await pipeline.index_document(Document(key="notes/a.md", text="..."))
        hits = await pipeline.search("query", k=5)
    """

    def __init__(
        self,
        store: AsyncVectorStore,
        settings: SettingsStore,
        chunker: FixedChunker,
        client: httpx.AsyncClient,
        batch_size: int = 64,
        embedder_factory: EmbedderFactory = create_embedder,
    ):
        self.store = store
        self.settings = settings
        self.chunker = chunker
        self.client = client
        self.batch_size = batch_size
        self.embedder_factory = embedder_factory

    async def index_document(self, doc: Document, force: bool = False) -> ProcessingResult:
        """Chunk, embed and store one document, replacing any previous version.

        Unchanged documents (same key and content hash) are skipped unless
        force is set. Nothing is written unless every chunk was embedded
        with the configured width.

        Raises:
            NotReadyError, ConfigError, ProviderError, DimensionMismatchError,
            EmbeddingModelMismatchError
        """
        self.store.manager.require_ready()
        if not force and await self.store.is_indexed(doc.key, doc.content_hash):
            logger.debug(f"Skipping unchanged document: {doc.key}")
            return ProcessingResult.skipped()

        start_time = time.time()
        chunks = self.chunker.chunkify(doc.text)
        if not chunks:
            await self.store.replace_document(doc, [], [])
            logger.info(f"Indexed {doc.key}: no content")
            return ProcessingResult.success(0)

        embedder = self.embedder_factory(self.settings.config, self.client)
        await self._check_model(embedder)
        vectors, tokens = await self._embed_all(embedder, [c.content for c in chunks])
        await self.store.replace_document(doc, chunks, vectors, model=embedder.model_name)

        elapsed = time.time() - start_time
        logger.info(f"Indexed {doc.key}: {len(chunks)} chunks, {tokens} tokens in {elapsed:.1f}s")
        return ProcessingResult.success(len(chunks), tokens_used=tokens)

    async def search(self, query_text: str, k: int = 5) -> List[SearchHit]:
        """Return the k chunks nearest to query_text by cosine distance.

        Raises:
            NotReadyError, ConfigError, ProviderError, EmbeddingModelMismatchError,
            ValueError (k < 1 or empty query)
        """
        self.store.manager.require_ready()
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        if not query_text or not query_text.strip():
            raise ValueError("Query text is empty")

        embedder = self.embedder_factory(self.settings.config, self.client)
        await self._check_model(embedder)
        vectors, _ = await self._embed_all(embedder, [query_text])
        return await self.store.search(vectors[0], top_k=k)

    async def delete_document(self, doc_key: str) -> bool:
        self.store.manager.require_ready()
        return await self.store.delete_document(doc_key)

    async def _embed_all(self, embedder: EmbedderInterface, texts: List[str]):
        """Embed texts in request batches, accounting usage per successful call"""
        vectors: List[List[float]] = []
        tokens = 0
        batches = chunk(texts, self.batch_size)
        for batch_num, batch in enumerate(batches, start=1):
            result = await embedder.embed(batch)
            if embedder.tracks_usage:
                self.settings.record_usage(result.total_tokens)
                tokens += result.total_tokens
            for vector in result.vectors:
                if len(vector) != self.store.dimension:
                    raise DimensionMismatchError(
                        self.store.dimension, len(vector), model=embedder.model_name
                    )
            vectors.extend(result.vectors)
            if len(batches) > 1:
                logger.debug(f"  Embedded batch {batch_num}/{len(batches)}")
        return vectors, tokens

    async def _check_model(self, embedder: EmbedderInterface) -> None:
        """Fail before any billed call if the active model cannot match the index"""
        model = embedder.model_name
        expected = self.store.dimension
        known = dimension_for_model(model, default=expected)
        if known != expected:
            raise DimensionMismatchError(expected, known, model=model)
        await self.store.check_model(model)
