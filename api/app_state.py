"""
Application state and caller-facing operations.

AppState owns the one DatabaseManager, the settings store and the
indexing pipeline, and exposes the operations the host shell calls:
initialize/reset the database, read/update settings, index and search.
Components receive what they need from here; nothing looks them up globally.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from config import Config
from domain_models import Document, SearchHit
from embedding_config import EmbeddingConfig
from ingestion.async_database import AsyncVectorStore
from ingestion.database_manager import DatabaseManager
from pipeline.factory import create_chunker
from pipeline.indexing_pipeline import IndexingPipeline
from settings_store import SettingsStore
from value_objects import IndexingStats, ProcessingResult

logger = logging.getLogger(__name__)


class AppState:
    """Holds the service's long-lived components.

    Usage:
        state = AppState.from_config(default_config)
        state.load_settings()
        await state.initialize_database()
    """

    def __init__(self, config: Config, db_manager: DatabaseManager,
                 settings: SettingsStore, client: httpx.AsyncClient):
        self.config = config
        self.db_manager = db_manager
        self.settings = settings
        self.client = client
        self.vector_store = AsyncVectorStore(db_manager)
        self.pipeline = IndexingPipeline(
            store=self.vector_store,
            settings=settings,
            chunker=create_chunker(config.chunks),
            client=client,
            batch_size=config.embedding.batch_size,
        )

    @classmethod
    def from_config(cls, config: Config, client: Optional[httpx.AsyncClient] = None) -> 'AppState':
        return cls(
            config=config,
            db_manager=DatabaseManager(config.database),
            settings=SettingsStore(config.paths.settings_file),
            client=client or httpx.AsyncClient(timeout=config.embedding.timeout),
        )

    # ============ Database ============

    async def initialize_database(self) -> None:
        await self.db_manager.initialize()

    async def reset_database(self) -> None:
        """Delete all indexed data and recreate an empty schema"""
        async with self.db_manager.lock:
            await self.db_manager.drop_all_tables()
            await self.db_manager.ensure_base_schema()
        logger.warning("Database reset: all embeddings deleted, reindex required")

    def database_status(self) -> Dict[str, Any]:
        manager = self.db_manager
        return {
            'state': manager.state.value,
            'extension_active': manager.extension_active,
            'extension_version': manager.extension_version,
            'embedding_dim': manager.config.embedding_dim,
            'error': str(manager.last_error) if manager.last_error else None,
        }

    # ============ Settings ============

    def load_settings(self) -> EmbeddingConfig:
        return self.settings.load()

    def get_settings(self) -> EmbeddingConfig:
        return self.settings.config

    def update_settings(self, partial: Dict[str, Any]) -> EmbeddingConfig:
        return self.settings.update(**partial)

    def reset_usage(self) -> EmbeddingConfig:
        return self.settings.reset_usage()

    # ============ Indexing & search ============

    async def index_document(self, doc: Document, force: bool = False) -> ProcessingResult:
        return await self.pipeline.index_document(doc, force=force)

    async def delete_document(self, doc_key: str) -> bool:
        return await self.pipeline.delete_document(doc_key)

    async def search(self, query_text: str, k: int = 5) -> List[SearchHit]:
        return await self.pipeline.search(query_text, k)

    async def get_stats(self) -> Optional[IndexingStats]:
        """Index statistics, or None while the database is not ready"""
        if not self.db_manager.is_ready:
            return None
        return await self.vector_store.get_stats()

    # ============ Shutdown ============

    async def close_all_resources(self) -> None:
        await self.db_manager.close()
        await self.client.aclose()
