"""
NumPy brute-force vector index.

Used for search when the sqlite-vec extension is not loaded. Vectors are
read as float32 blobs and ranked by cosine distance (1 - cosine similarity),
matching vec_distance_cosine so both paths return comparable distances.
"""
import logging
from typing import List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


def to_blob(vector: Sequence[float]) -> bytes:
    """Serialize a vector as little-endian float32 bytes"""
    return np.asarray(vector, dtype='<f4').tobytes()


def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype='<f4')


class NumpyVectorIndex:
    """In-memory cosine distance index over a snapshot of embeddings.

    Usage:
        index = NumpyVectorIndex.from_rows(rows, dim)
        hits = index.search(query_vector, top_k=5)
    """

    def __init__(self, ids: List[int], embeddings: np.ndarray):
        self.ids = ids
        self.embeddings = embeddings
        # Pre-computed for cosine
        self.norms = np.linalg.norm(embeddings, axis=1) if len(ids) else np.array([], dtype=np.float32)

    @classmethod
    def from_rows(cls, rows: Sequence[Tuple[int, bytes]], dim: int) -> 'NumpyVectorIndex':
        """Build from (id, float32 blob) rows"""
        if not rows:
            return cls([], np.empty((0, dim), dtype=np.float32))
        ids = [row[0] for row in rows]
        embeddings = np.vstack([from_blob(row[1]) for row in rows]).astype(np.float32)
        return cls(ids, embeddings)

    def search(self, query_embedding: Sequence[float], top_k: int = 5) -> List[Tuple[int, float]]:
        """Return up to top_k (id, cosine distance) pairs, closest first"""
        if not self.ids:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        query_norm = np.linalg.norm(query)

        denom = self.norms * query_norm
        with np.errstate(divide='ignore', invalid='ignore'):
            similarities = np.where(denom > 0, self.embeddings @ query / denom, 0.0)
        distances = 1.0 - similarities

        # Stable sort keeps insertion order for equal distances
        order = np.argsort(distances, kind='stable')[:top_k]
        return [(self.ids[i], float(distances[i])) for i in order]
