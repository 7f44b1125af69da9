"""
Configuration constants for the semantic search service
"""
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional

# Model dimension mapping
MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "BAAI/bge-large-en-v1.5": 1024,
    "BAAI/bge-base-en-v1.5": 768,
}

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


def dimension_for_model(model: Optional[str], default: int = 1536) -> int:
    """Get embedding dimension for a model name, tolerating tag suffixes (nomic-embed-text:latest)"""
    if not model:
        return default
    if model in MODEL_DIMENSIONS:
        return MODEL_DIMENSIONS[model]
    base = model.split(":")[0]
    return MODEL_DIMENSIONS.get(base, default)


@dataclass
class ChunkConfig:
    """Text chunking configuration"""
    size: int = 1000
    overlap: int = 200


@dataclass
class DatabaseConfig:
    """Embedded SQLite database configuration.

    The vector extension is sqlite-vec. When load_vec_extension is False the
    database still stores fixed-width vectors and search falls back to NumPy.
    """
    path: str = "data/semantic_search.db"
    embedding_dim: int = 1536
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    load_vec_extension: bool = True
    # Explicit library path; None resolves the library bundled with sqlite_vec
    vec_extension_path: Optional[str] = None
    # Optional SHA-256 pin for the extension library
    vec_extension_sha256: Optional[str] = None
    artifact_timeout: float = 30.0
    extension_timeout: float = 10.0
    busy_timeout_ms: int = 5000


@dataclass
class EmbeddingServiceConfig:
    """HTTP behaviour for embedding provider calls"""
    batch_size: int = 64
    timeout: float = 30.0


@dataclass
class PathConfig:
    """File path configuration"""
    data_dir: Path = Path("data")
    settings_file: Path = Path("data/settings.json")


@dataclass
class Config:
    """Main configuration container"""
    chunks: ChunkConfig = field(default_factory=ChunkConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    embedding: EmbeddingServiceConfig = field(default_factory=EmbeddingServiceConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    @classmethod
    def from_env(cls) -> 'Config':
        """Create config from environment - delegates to EnvironmentConfigLoader"""
        from environment_config_loader import EnvironmentConfigLoader
        return EnvironmentConfigLoader().load()


# Default instance
default_config = Config.from_env()
