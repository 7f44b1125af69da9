"""Embedder interface for text embedding generation.

Defines the contract for embedding providers (remote OpenAI-compatible
APIs, local embedding servers).
"""

from abc import ABC, abstractmethod
from typing import List

from domain_models import EmbeddingResult


class EmbedderInterface(ABC):
    """Interface for text embedding implementations.

    Contract (Liskov Substitution):
        - embed() returns one vector per input, in input order
        - Empty input returns an empty result without calling the provider
        - Failures raise ProviderError; nothing is returned on error
        - total_tokens is the provider-reported usage (0 when not accounted)
    """

    @abstractmethod
    async def embed(self, texts: List[str]) -> EmbeddingResult:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of texts to embed

        Returns:
            EmbeddingResult with vectors and token usage
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Name/identifier of the embedding model."""
        pass

    @property
    def tracks_usage(self) -> bool:
        """Whether reported tokens count against a paid provider."""
        return False
