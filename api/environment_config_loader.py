"""
Environment configuration loader.

Logic for reading environment variables lives with the data source
(environment) rather than in the Config dataclasses.
"""
import os
from pathlib import Path
from typing import Optional

from config import (
    Config, ChunkConfig, DatabaseConfig, EmbeddingServiceConfig, PathConfig,
    DEFAULT_EMBEDDING_MODEL, dimension_for_model
)


class EnvironmentConfigLoader:
    """Loads configuration from environment variables.

    Single Responsibility: Environment access logic.
    """

    def load(self) -> Config:
        """Create Config from environment variables"""
        paths = self._load_path_config()
        return Config(
            chunks=self._load_chunk_config(),
            database=self._load_database_config(paths),
            embedding=self._load_embedding_config(),
            paths=paths,
        )

    def _load_path_config(self) -> PathConfig:
        """Load file locations from environment"""
        data_dir = Path(self._get_optional("DATA_DIR", "data"))
        settings_file = Path(self._get_optional(
            "SETTINGS_PATH", str(data_dir / "settings.json")
        ))
        return PathConfig(data_dir=data_dir, settings_file=settings_file)

    def _load_chunk_config(self) -> ChunkConfig:
        """Load chunking configuration from environment"""
        return ChunkConfig(
            size=self._get_int("CHUNK_SIZE", ChunkConfig.size),
            overlap=self._get_int("CHUNK_OVERLAP", ChunkConfig.overlap)
        )

    def _load_embedding_config(self) -> EmbeddingServiceConfig:
        """Load provider call configuration from environment"""
        return EmbeddingServiceConfig(
            batch_size=self._get_int("EMBEDDING_BATCH_SIZE", EmbeddingServiceConfig.batch_size),
            timeout=self._get_float("EMBEDDING_TIMEOUT_SECONDS", EmbeddingServiceConfig.timeout)
        )

    def _load_database_config(self, paths: PathConfig) -> DatabaseConfig:
        """Load database configuration from environment.

        EMBEDDING_DIM overrides the width derived from EMBEDDING_MODEL.
        """
        model = self._get_optional("EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)
        dim = self._get_int("EMBEDDING_DIM", dimension_for_model(model))
        return DatabaseConfig(
            path=self._get_optional("DATABASE_PATH", str(paths.data_dir / "semantic_search.db")),
            embedding_dim=dim,
            embedding_model=model,
            load_vec_extension=self._get_bool("VEC_EXTENSION", True),
            vec_extension_path=self._get_nullable("VEC_EXTENSION_PATH"),
            vec_extension_sha256=self._get_nullable("VEC_EXTENSION_SHA256"),
            artifact_timeout=self._get_float("ARTIFACT_TIMEOUT_SECONDS", DatabaseConfig.artifact_timeout),
            extension_timeout=self._get_float("EXTENSION_TIMEOUT_SECONDS", DatabaseConfig.extension_timeout),
        )

    def _get_optional(self, key: str, default: str) -> str:
        """Get optional string environment variable"""
        return os.getenv(key, default)

    def _get_nullable(self, key: str) -> Optional[str]:
        """Get string environment variable, treating empty as unset"""
        value = os.getenv(key, "").strip()
        return value or None

    def _get_bool(self, key: str, default: bool) -> bool:
        """Get boolean environment variable"""
        value = os.getenv(key, str(default).lower())
        return value.lower() == "true"

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key, str(default))
        return int(value)

    def _get_float(self, key: str, default: float) -> float:
        """Get float environment variable"""
        value = os.getenv(key, str(default))
        return float(value)
