"""Embedder implementations for text embedding generation."""

from pipeline.embedders.openai_compatible_embedder import (
    LocalEmbedder,
    OpenAICompatibleEmbedder,
    RemoteEmbedder,
)

__all__ = ['OpenAICompatibleEmbedder', 'RemoteEmbedder', 'LocalEmbedder']
