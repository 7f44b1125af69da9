"""
Typed failures surfaced by the semantic search core.

Every error raised to callers derives from SemanticSearchError so routes
and the app facade can map them without catching bare exceptions.
"""
from typing import List, Optional


class SemanticSearchError(Exception):
    """Base class for all semantic search failures"""
    pass


class ArtifactLoadError(SemanticSearchError):
    """Vector extension artifact could not be resolved, read or verified"""
    pass


class ExtensionActivationError(SemanticSearchError):
    """Vector extension failed to load into the engine"""
    pass


class SchemaError(SemanticSearchError):
    """DDL failed or the stored schema is incompatible with the configuration"""
    pass


class AlreadyInitializingError(SemanticSearchError):
    """initialize() called while another initialization is in flight"""

    def __init__(self, message: str = "Database is already initializing"):
        super().__init__(message)


class NotReadyError(SemanticSearchError):
    """Operation attempted while the database is not READY"""

    def __init__(self, state):
        self.state = state
        super().__init__(f"Database is not ready (state: {getattr(state, 'value', state)})")


class DimensionMismatchError(SemanticSearchError):
    """Vector width differs from the configured embedding dimension"""

    def __init__(self, expected: int, actual: int, model: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.model = model
        if model:
            message = (
                f"Model {model} produces {actual}-dimensional embeddings but the database "
                f"stores {expected}. Set EMBEDDING_DIM={actual} and reset the database to re-embed."
            )
        else:
            message = f"Embedding has {actual} dimensions, expected {expected}"
        super().__init__(message)


class EmbeddingModelMismatchError(SemanticSearchError):
    """Stored vectors were produced by a different embedding model"""

    def __init__(self, stored: str, active: str):
        self.stored = stored
        self.active = active
        super().__init__(
            f"Index holds embeddings from model {stored} but the active model is {active}. "
            f"Switch back to {stored} or reset the database to re-embed."
        )


class ProviderError(SemanticSearchError):
    """Embedding provider call failed.

    reason is one of: auth, rate_limit, bad_request, server, network,
    timeout, malformed_response.
    """

    def __init__(self, reason: str, message: str,
                 status_code: Optional[int] = None,
                 retry_after: Optional[float] = None):
        self.reason = reason
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"{reason}: {message}")


class ConfigError(SemanticSearchError):
    """Embedding configuration is missing fields or has invalid values"""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__(message)


class DatabaseOpenError(SemanticSearchError):
    """The embedded database file could not be opened or configured"""
    pass
