"""
Settings persistence for the embedding configuration.

Loads the JSON settings document merged with defaults at startup and
saves it on every field change.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from embedding_config import EmbeddingConfig
from errors import ConfigError

logger = logging.getLogger(__name__)


class SettingsStore:
    """Owns the process-wide EmbeddingConfig and its settings file.

    Usage:
        store = SettingsStore(Path("data/settings.json"))
        store.load()
        store.update(use_local_embeddings=True)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._config = EmbeddingConfig.defaults()

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    def load(self) -> EmbeddingConfig:
        """Load settings from disk, falling back to defaults when absent.

        Raises:
            ConfigError: file exists but is not a valid settings document
        """
        self._config = EmbeddingConfig.from_dict(self._read())
        return self._config

    def save(self) -> None:
        """Write settings atomically (temp file + rename)"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(
            json.dumps(self._config.to_dict(), indent=2) + "\n",
            encoding="utf-8",
        )
        os.replace(tmp_path, self.path)

    def update(self, **changes) -> EmbeddingConfig:
        """Apply a partial update and persist it"""
        updated = self._config.with_updates(**changes)
        self._commit(updated)
        logger.info(f"Settings updated: {', '.join(sorted(changes)) or 'no fields'}")
        return updated

    def record_usage(self, tokens: int) -> EmbeddingConfig:
        """Add provider-reported tokens to the usage counter and persist"""
        if tokens == 0:
            return self._config
        updated = self._config.record_usage(tokens)
        self._commit(updated)
        return updated

    def reset_usage(self) -> EmbeddingConfig:
        updated = self._config.reset_usage()
        self._commit(updated)
        logger.info("Token usage counter reset")
        return updated

    def _commit(self, updated: EmbeddingConfig) -> None:
        """Persist first, then swap in memory so a failed write changes nothing"""
        previous = self._config
        self._config = updated
        try:
            self.save()
        except OSError:
            self._config = previous
            raise

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.info(f"No settings file at {self.path}, using defaults")
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError) as e:
            raise ConfigError(f"Cannot read settings file {self.path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings file {self.path} is not valid JSON: {e}") from e
