"""Pipeline factory for creating pipeline components from configuration.

Embedders are created per call from the current EmbeddingConfig so a
settings change (mode switch, new key) takes effect on the next request.
"""

import logging

import httpx

from config import ChunkConfig
from embedding_config import EmbeddingConfig
from pipeline.chunkers.fixed_chunker import FixedChunker
from pipeline.embedders.openai_compatible_embedder import LocalEmbedder, RemoteEmbedder
from pipeline.interfaces.embedder import EmbedderInterface

logger = logging.getLogger(__name__)


def create_embedder(config: EmbeddingConfig, client: httpx.AsyncClient) -> EmbedderInterface:
    """Create the embedder for the active mode.

    Raises:
        ConfigError: the active mode is missing a required setting
    """
    config.validate_for_embedding()
    if config.use_local_embeddings:
        return LocalEmbedder(
            client,
            endpoint=config.embeddings_endpoint,
            model=config.embeddings_model or None,
        )
    return RemoteEmbedder(
        client,
        endpoint=config.embeddings_endpoint,
        model=config.embeddings_model,
        api_key=config.embeddings_api_key,
    )


def create_chunker(config: ChunkConfig) -> FixedChunker:
    return FixedChunker(size=config.size, overlap=config.overlap)
