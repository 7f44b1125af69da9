"""
Value objects for the semantic search service.

Principles:
- Immutable data structures
- Named instead of primitive types (no Primitive Obsession)
- Small, focused classes with single responsibility
"""

from dataclasses import dataclass

@dataclass(frozen=True)
class IndexingStats:
    """Immutable statistics about indexed content.

    Replaces dict usage like {'documents': 0, 'chunks': 0}.
    """
    documents: int = 0
    chunks: int = 0
    embeddings: int = 0

    def __str__(self) -> str:
        return f"{self.documents} documents, {self.chunks} chunks, {self.embeddings} embeddings"


@dataclass(frozen=True)
class ProcessingResult:
    """Result of indexing a single document.

    Replaces tuple returns like (chunks_count, was_skipped).
    """
    chunks_count: int
    was_skipped: bool
    tokens_used: int = 0

    @classmethod
    def skipped(cls) -> 'ProcessingResult':
        """Create a result for an unchanged document."""
        return cls(chunks_count=0, was_skipped=True)

    @classmethod
    def success(cls, chunks_count: int, tokens_used: int = 0) -> 'ProcessingResult':
        """Create a result for successful indexing."""
        return cls(chunks_count=chunks_count, was_skipped=False, tokens_used=tokens_used)

    @property
    def succeeded(self) -> bool:
        """Check if indexing wrote new rows."""
        return not self.was_skipped
