"""Domain models for the indexing pipeline"""
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class Document:
    """An addressable unit of source text (e.g. one note)

    key is the stable external identifier (vault path or id) chunks are
    grouped under; reindexing the same key replaces its chunks.
    """
    key: str
    text: str
    name: Optional[str] = None

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    @property
    def label(self) -> str:
        """Name stored with each embedding row"""
        return self.name or Path(self.key).stem or self.key


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document's text

    index orders chunks within their document, starting at 0.
    """
    index: int
    content: str
    start_char: int = 0


@dataclass
class SearchHit:
    """One vector search result, ordered by ascending distance"""
    embedding_id: int
    doc_key: str
    name: Optional[str]
    chunk_index: int
    content: str
    distance: float

    def to_dict(self) -> dict:
        return {
            'embedding_id': self.embedding_id,
            'doc_key': self.doc_key,
            'name': self.name,
            'chunk_index': self.chunk_index,
            'content': self.content,
            'distance': self.distance,
        }


@dataclass
class EmbeddingResult:
    """Vectors for a batch of inputs plus provider-reported token usage"""
    vectors: List[List[float]] = field(default_factory=list)
    total_tokens: int = 0
