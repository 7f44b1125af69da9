"""
Pytest configuration and shared fixtures

Common fixtures used across multiple test files are defined here.
Good fixtures reduce test setup duplication.
"""
import sys
from pathlib import Path
from typing import List

import pytest

# Add api directory to path for imports
api_path = Path(__file__).parent.parent / "api"
if not api_path.exists():
    # Running in Docker where api contents are at /app directly
    api_path = Path(__file__).parent.parent
sys.path.insert(0, str(api_path))

# config must be imported before environment_config_loader
import config  # noqa: E402,F401


# =============================================================================
# Test Doubles
# =============================================================================

class FakeEmbedder:
    """Deterministic in-process embedder.

    Maps each text to a 3-dim vector from simple character counts so that
    similar texts land near each other. Records every call.
    """

    def __init__(self, dim=3, tokens_per_text=5, tracks_usage=True, fail_on_call=None, model="fake"):
        self.dim = dim
        self.model = model
        self.tokens_per_text = tokens_per_text
        self._tracks_usage = tracks_usage
        self.fail_on_call = fail_on_call
        self.calls: List[List[str]] = []

    @property
    def model_name(self):
        return self.model

    @property
    def tracks_usage(self):
        return self._tracks_usage

    async def embed(self, texts):
        from domain_models import EmbeddingResult
        from errors import ProviderError

        self.calls.append(list(texts))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ProviderError("server", "Provider error (500): boom", 500)
        vectors = [self.vector_for(text) for text in texts]
        return EmbeddingResult(vectors=vectors, total_tokens=self.tokens_per_text * len(texts))

    def vector_for(self, text):
        lowered = text.lower()
        base = [
            float(lowered.count("a") + 1),
            float(lowered.count("e") + 1),
            float(lowered.count("o") + 1),
        ]
        return (base + [0.5] * self.dim)[:self.dim]


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def db_config(tmp_path):
    """DatabaseConfig for an isolated 3-dim database without the vector extension."""
    from config import DatabaseConfig
    return DatabaseConfig(
        path=str(tmp_path / "test.db"),
        embedding_dim=3,
        embedding_model="test-model",
        load_vec_extension=False,
    )


@pytest.fixture
async def ready_manager(db_config):
    """DatabaseManager already brought to READY."""
    from ingestion.database_manager import DatabaseManager

    manager = DatabaseManager(db_config)
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def settings_store(tmp_path):
    """SettingsStore with a complete remote configuration."""
    from settings_store import SettingsStore

    store = SettingsStore(tmp_path / "settings.json")
    store.update(embeddings_api_key="sk-test-1234567890")
    return store


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def make_embedder():
    """FakeEmbedder class, for tests that need non-default behaviour."""
    return FakeEmbedder


@pytest.fixture
def sample_text():
    """Multi-paragraph note text."""
    return (
        "Apples are a crunchy fruit. They grow on trees in orchards.\n\n"
        "Oranges are citrus. People peel them before eating.\n\n"
        "Coffee is brewed from roasted beans and is popular in the morning."
    )
