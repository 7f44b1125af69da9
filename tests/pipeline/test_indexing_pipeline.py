"""Tests for IndexingPipeline: chunk -> embed -> store, and search."""

import asyncio

import httpx
import pytest

from domain_models import Document
from errors import (
    ConfigError,
    DimensionMismatchError,
    EmbeddingModelMismatchError,
    NotReadyError,
    ProviderError,
)
from ingestion.async_database import AsyncVectorStore
from ingestion.database_manager import DatabaseManager
from pipeline.chunkers.fixed_chunker import FixedChunker
from pipeline.indexing_pipeline import IndexingPipeline

pytestmark = pytest.mark.asyncio


def _pipeline(manager, settings, embedder, batch_size=64, chunk_size=60):
    return IndexingPipeline(
        store=AsyncVectorStore(manager),
        settings=settings,
        chunker=FixedChunker(size=chunk_size, overlap=10),
        client=httpx.AsyncClient(),
        batch_size=batch_size,
        embedder_factory=lambda config, client: embedder,
    )


class TestIndexDocument:
    """Test index_document"""

    async def test_indexes_all_chunks(self, ready_manager, settings_store, fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)

        result = await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert result.succeeded
        assert result.chunks_count > 1
        stats = await pipeline.store.get_stats()
        assert stats.chunks == result.chunks_count
        assert stats.embeddings == result.chunks_count

    async def test_tokens_accounted_on_success(self, ready_manager, settings_store, fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)

        result = await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert result.tokens_used == 5 * result.chunks_count
        assert settings_store.config.total_tokens_processed == result.tokens_used

    async def test_batches_requests(self, ready_manager, settings_store, fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder, batch_size=2)

        result = await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert all(len(call) <= 2 for call in fake_embedder.calls)
        assert sum(len(call) for call in fake_embedder.calls) == result.chunks_count

    async def test_failed_batch_writes_nothing(self, ready_manager, settings_store, make_embedder, sample_text):
        """Earlier batches are accounted, but no rows are stored"""
        embedder = make_embedder(fail_on_call=2)
        pipeline = _pipeline(ready_manager, settings_store, embedder, batch_size=1)

        with pytest.raises(ProviderError):
            await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert settings_store.config.total_tokens_processed == 5
        assert (await pipeline.store.get_stats()).chunks == 0

    async def test_first_call_failure_leaves_usage_unchanged(self, ready_manager, settings_store,
                                                             make_embedder, sample_text):
        embedder = make_embedder(fail_on_call=1)
        pipeline = _pipeline(ready_manager, settings_store, embedder)

        with pytest.raises(ProviderError):
            await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert settings_store.config.total_tokens_processed == 0

    async def test_local_embedder_does_not_count_tokens(self, ready_manager, settings_store,
                                                        make_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, make_embedder(tracks_usage=False))

        result = await pipeline.index_document(Document(key="fruit.md", text=sample_text))

        assert result.tokens_used == 0
        assert settings_store.config.total_tokens_processed == 0

    async def test_unchanged_document_is_skipped(self, ready_manager, settings_store, fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)
        doc = Document(key="fruit.md", text=sample_text)
        await pipeline.index_document(doc)
        calls = len(fake_embedder.calls)

        result = await pipeline.index_document(doc)

        assert result.was_skipped
        assert len(fake_embedder.calls) == calls

    async def test_force_reindexes_unchanged_document(self, ready_manager, settings_store,
                                                      fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)
        doc = Document(key="fruit.md", text=sample_text)
        await pipeline.index_document(doc)

        result = await pipeline.index_document(doc, force=True)

        assert not result.was_skipped
        assert (await pipeline.store.get_stats()).chunks == result.chunks_count

    async def test_empty_document_clears_previous_chunks(self, ready_manager, settings_store,
                                                         fake_embedder, sample_text):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)
        await pipeline.index_document(Document(key="fruit.md", text=sample_text))
        calls = len(fake_embedder.calls)

        result = await pipeline.index_document(Document(key="fruit.md", text="   "))

        assert result.chunks_count == 0
        assert len(fake_embedder.calls) == calls
        stats = await pipeline.store.get_stats()
        assert (stats.documents, stats.chunks) == (1, 0)

    async def test_not_ready_fails_before_embedding(self, db_config, settings_store, fake_embedder):
        pipeline = _pipeline(DatabaseManager(db_config), settings_store, fake_embedder)

        with pytest.raises(NotReadyError):
            await pipeline.index_document(Document(key="a.md", text="text"))

        assert fake_embedder.calls == []
        assert settings_store.config.total_tokens_processed == 0

    async def test_concurrent_reindex_of_same_key(self, ready_manager, settings_store, fake_embedder):
        """Both saves of a note succeed and the index holds exactly one version"""
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder, chunk_size=1000)
        await pipeline.index_document(Document(key="n.md", text="original note"))

        results = await asyncio.gather(
            pipeline.index_document(Document(key="n.md", text="alpha " * 20)),
            pipeline.index_document(Document(key="n.md", text="beta " * 30)),
            return_exceptions=True,
        )

        assert not [r for r in results if isinstance(r, BaseException)]
        assert all(r.succeeded for r in results)
        stats = await pipeline.store.get_stats()
        assert (stats.documents, stats.chunks, stats.embeddings) == (1, 1, 1)
        stored = await pipeline.store.get_document("n.md")
        versions = {Document(key="n.md", text=t).content_hash for t in ("alpha " * 20, "beta " * 30)}
        assert stored['content_hash'] in versions
        assert settings_store.config.total_tokens_processed == 15

    async def test_model_change_is_rejected_before_embedding(self, ready_manager, settings_store,
                                                             make_embedder):
        """Vectors from two models never share one index"""
        first = make_embedder(model="model-a")
        await _pipeline(ready_manager, settings_store, first).index_document(
            Document(key="a.md", text="alpha"))
        second = make_embedder(model="model-b")
        pipeline = _pipeline(ready_manager, settings_store, second)
        tokens = settings_store.config.total_tokens_processed

        with pytest.raises(EmbeddingModelMismatchError):
            await pipeline.index_document(Document(key="b.md", text="beta"))
        with pytest.raises(EmbeddingModelMismatchError):
            await pipeline.search("alpha")

        assert second.calls == []
        assert settings_store.config.total_tokens_processed == tokens

    async def test_known_model_of_other_width_fails_before_embedding(self, ready_manager, settings_store,
                                                                      make_embedder):
        embedder = make_embedder(model="nomic-embed-text")
        pipeline = _pipeline(ready_manager, settings_store, embedder)

        with pytest.raises(DimensionMismatchError, match="EMBEDDING_DIM=768"):
            await pipeline.index_document(Document(key="a.md", text="alpha"))
        assert embedder.calls == []

    async def test_wrong_width_names_the_model(self, ready_manager, settings_store, make_embedder):
        pipeline = _pipeline(ready_manager, settings_store, make_embedder(dim=4, model="custom"))

        with pytest.raises(DimensionMismatchError, match="Model custom produces 4"):
            await pipeline.index_document(Document(key="a.md", text="alpha"))
        assert (await pipeline.store.get_stats()).documents == 0

    async def test_incomplete_settings_raise_config_error(self, ready_manager, tmp_path):
        from settings_store import SettingsStore

        pipeline = IndexingPipeline(
            store=AsyncVectorStore(ready_manager),
            settings=SettingsStore(tmp_path / "settings.json"),
            chunker=FixedChunker(),
            client=httpx.AsyncClient(),
        )

        with pytest.raises(ConfigError):
            await pipeline.index_document(Document(key="a.md", text="some text"))


class TestSearch:
    """Test search"""

    async def test_finds_nearest_chunk(self, ready_manager, settings_store, fake_embedder):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder, chunk_size=1000)
        await pipeline.index_document(Document(key="a.md", text="aaaa aaaa"))
        await pipeline.index_document(Document(key="o.md", text="oooo oooo"))

        hits = await pipeline.search("aaaa", k=2)

        assert [h.doc_key for h in hits] == ["a.md", "o.md"]
        assert hits[0].distance <= hits[1].distance

    async def test_search_accounts_query_tokens(self, ready_manager, settings_store, fake_embedder):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)

        await pipeline.search("query", k=3)

        assert settings_store.config.total_tokens_processed == 5

    async def test_search_requires_ready(self, db_config, settings_store, fake_embedder):
        pipeline = _pipeline(DatabaseManager(db_config), settings_store, fake_embedder)

        with pytest.raises(NotReadyError):
            await pipeline.search("query")
        assert fake_embedder.calls == []

    @pytest.mark.parametrize("query,k", [("", 5), ("   ", 5), ("query", 0)])
    async def test_invalid_arguments(self, ready_manager, settings_store, fake_embedder, query, k):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)

        with pytest.raises(ValueError):
            await pipeline.search(query, k)
        assert fake_embedder.calls == []

    async def test_delete_document(self, ready_manager, settings_store, fake_embedder):
        pipeline = _pipeline(ready_manager, settings_store, fake_embedder)
        await pipeline.index_document(Document(key="a.md", text="text"))

        assert await pipeline.delete_document("a.md") is True
        assert await pipeline.search("text") == []
