"""
Configuration validator for startup checks.

Validates configuration settings early to provide clear error messages
before the database is opened or any chunking happens.
"""
import logging
import os
from typing import List

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Configuration validation failed"""
    pass


class ConfigValidator:
    """Validates configuration settings on startup"""

    def __init__(self, config):
        self.config = config
        self.errors: List[str] = []

    def validate(self) -> None:
        """Validate all configuration settings

        Raises:
            ConfigValidationError: If validation fails
        """
        self._validate_chunking()
        self._validate_embedding()
        self._validate_data_dir()

        if self.errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(
                f"  - {error}" for error in self.errors
            )
            raise ConfigValidationError(error_msg)

    def _validate_chunking(self) -> None:
        chunks = self.config.chunks
        if chunks.size <= 0:
            self.errors.append(
                f"Chunk size must be positive, got {chunks.size}\n"
                f"    Update CHUNK_SIZE in .env"
            )
            return
        if not 0 <= chunks.overlap < chunks.size:
            self.errors.append(
                f"Chunk overlap must be in [0, {chunks.size}), got {chunks.overlap}\n"
                f"    Update CHUNK_OVERLAP in .env"
            )

    def _validate_embedding(self) -> None:
        if self.config.database.embedding_dim <= 0:
            self.errors.append(
                f"Embedding dimension must be positive, got {self.config.database.embedding_dim}\n"
                f"    Update EMBEDDING_DIM in .env"
            )
        if self.config.embedding.batch_size <= 0:
            self.errors.append(
                f"Embedding batch size must be positive, got {self.config.embedding.batch_size}\n"
                f"    Update EMBEDDING_BATCH_SIZE in .env"
            )

    def _validate_data_dir(self) -> None:
        """Validate data directory for database and settings"""
        data_dir = self.config.paths.data_dir

        if not self._check_parent_exists(data_dir):
            return
        self._ensure_directory_exists(data_dir)
        self._check_directory_writable(data_dir)

    def _check_parent_exists(self, data_dir) -> bool:
        """Check if parent directory exists"""
        if not data_dir.parent.exists():
            self.errors.append(
                f"Data directory parent does not exist: {data_dir.parent}\n"
                f"    Create it with: mkdir -p {data_dir.parent}"
            )
            return False
        return True

    def _ensure_directory_exists(self, data_dir):
        """Create data directory if it doesn't exist"""
        if data_dir.exists():
            return

        try:
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")
        except PermissionError:
            self.errors.append(
                f"Cannot create data directory (permission denied): {data_dir}\n"
                f"    Fix with: sudo mkdir -p {data_dir} && sudo chown $USER {data_dir}"
            )
        except OSError as e:
            self.errors.append(
                f"Cannot create data directory: {data_dir}\n"
                f"    Error: {e}"
            )

    def _check_directory_writable(self, data_dir):
        if data_dir.exists() and not os.access(data_dir, os.W_OK):
            self.errors.append(
                f"Data directory is not writable: {data_dir}\n"
                f"    Fix with: chmod +w {data_dir}"
            )
