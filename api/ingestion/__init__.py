"""
Ingestion package - Storage for chunks and embeddings.

This package handles everything below the indexing pipeline:
- Engine artifact loading and vector extension activation
- Database lifecycle (DatabaseManager)
- Schema creation and teardown
- Repositories and the vector store facade
- Chunk batching helpers

Database backend:
- SQLite via aiosqlite, with sqlite-vec for in-database cosine distance
- NumPy brute-force search when the extension is disabled
"""

from .artifacts import ArtifactLoader, EngineArtifacts
from .async_connection import AsyncDatabaseConnection
from .async_database import AsyncVectorStore
from .async_schema import AsyncSchemaManager
from .chunking import chunk
from .database_manager import DatabaseManager, DatabaseState
from .extension_loader import activate_vector_extension, extension_loading_enabled

__all__ = [
    'ArtifactLoader',
    'EngineArtifacts',
    'AsyncDatabaseConnection',
    'AsyncVectorStore',
    'AsyncSchemaManager',
    'chunk',
    'DatabaseManager',
    'DatabaseState',
    'activate_vector_extension',
    'extension_loading_enabled',
]
