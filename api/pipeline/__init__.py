"""Pipeline layer for the semantic search service.

This package turns documents into stored embeddings:
- Chunking (FixedChunker)
- Embedding generation (RemoteEmbedder, LocalEmbedder)
- Coordination and token accounting (IndexingPipeline)

Principles:
- Single Responsibility Principle
- Dependency Injection
"""

from .indexing_pipeline import IndexingPipeline

__all__ = ['IndexingPipeline']
