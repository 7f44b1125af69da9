"""
Embedding configuration model.

Holds provider selection (local server vs. remote OpenAI-compatible API),
endpoint, credentials, model and the running token usage counter.

Persisted as a JSON document using the plugin's camelCase keys:

    {
        "version": 1,
        "embeddingsEndpoint": "https://api.openai.com/v1",
        "embeddingsApiKey": "sk-...",
        "embeddingsModel": "text-embedding-3-small",
        "useLocalEmbeddings": false,
        "totalTokensProcessed": 0
    }
"""
import logging
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional

from errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_VERSION = 1

DEFAULT_ENDPOINT = "https://api.openai.com/v1"
DEFAULT_MODEL = "text-embedding-3-small"

# Example rate used for the usage estimate (USD per 1k tokens)
COST_PER_1K_TOKENS = 0.0001

# field name -> persisted key
_PERSISTED_KEYS = {
    "version": "version",
    "embeddings_endpoint": "embeddingsEndpoint",
    "embeddings_api_key": "embeddingsApiKey",
    "embeddings_model": "embeddingsModel",
    "use_local_embeddings": "useLocalEmbeddings",
    "total_tokens_processed": "totalTokensProcessed",
}

_FIELD_TYPES = {
    "version": int,
    "embeddings_endpoint": str,
    "embeddings_api_key": str,
    "embeddings_model": str,
    "use_local_embeddings": bool,
    "total_tokens_processed": int,
}

# Fields callers may change through with_updates()
UPDATABLE_FIELDS = frozenset({
    "embeddings_endpoint",
    "embeddings_api_key",
    "embeddings_model",
    "use_local_embeddings",
})


@dataclass(frozen=True)
class EmbeddingConfig:
    """Immutable embedding configuration.

    Remote mode requires endpoint, API key and model. Local mode requires
    only the endpoint. Fields of the inactive mode are kept as-is so a user
    can switch back and forth without re-entering credentials.
    """
    embeddings_endpoint: str = DEFAULT_ENDPOINT
    embeddings_api_key: Optional[str] = None
    embeddings_model: Optional[str] = DEFAULT_MODEL
    use_local_embeddings: bool = False
    total_tokens_processed: int = 0
    version: int = SETTINGS_VERSION

    @classmethod
    def defaults(cls) -> 'EmbeddingConfig':
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'EmbeddingConfig':
        """Merge a persisted settings document over the defaults.

        Accepts persisted camelCase keys or field names. Unknown keys are
        dropped with a warning, wrongly typed values raise ConfigError.
        """
        if not data:
            return cls.defaults()
        if not isinstance(data, dict):
            raise ConfigError(f"Settings document must be an object, got {type(data).__name__}")

        by_key = {v: k for k, v in _PERSISTED_KEYS.items()}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = by_key.get(key, key)
            if name not in _FIELD_TYPES:
                logger.warning(f"Ignoring unknown settings key: {key}")
                continue
            values[name] = _coerce(name, value)

        stored_version = values.pop("version", SETTINGS_VERSION)
        if stored_version > SETTINGS_VERSION:
            raise ConfigError(
                f"Settings version {stored_version} is newer than supported version {SETTINGS_VERSION}"
            )
        return replace(cls.defaults(), **values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using persisted keys"""
        return {_PERSISTED_KEYS[name]: value for name, value in asdict(self).items()}

    def with_updates(self, **changes) -> 'EmbeddingConfig':
        """Return a copy with the given fields changed.

        Raises:
            ConfigError: unknown or read-only field, or wrongly typed value
        """
        unknown = sorted(set(changes) - UPDATABLE_FIELDS)
        if unknown:
            raise ConfigError(f"Cannot update settings field(s): {', '.join(unknown)}")
        coerced = {name: _coerce(name, value) for name, value in changes.items()}
        return replace(self, **coerced)

    def record_usage(self, tokens: int) -> 'EmbeddingConfig':
        """Return a copy with tokens added to the usage counter"""
        if tokens < 0:
            raise ValueError(f"Token usage cannot be negative: {tokens}")
        return replace(self, total_tokens_processed=self.total_tokens_processed + tokens)

    def reset_usage(self) -> 'EmbeddingConfig':
        return replace(self, total_tokens_processed=0)

    def missing_fields(self) -> List[str]:
        """Fields required by the active mode that are empty"""
        required = ["embeddings_endpoint"]
        if not self.use_local_embeddings:
            required += ["embeddings_api_key", "embeddings_model"]
        return [name for name in required if not (getattr(self, name) or "").strip()]

    def validate_for_embedding(self) -> None:
        """Check the active mode has what an embedding call needs.

        Raises:
            ConfigError: listing the missing fields
        """
        missing = self.missing_fields()
        if missing:
            mode = "local" if self.use_local_embeddings else "remote"
            raise ConfigError(
                f"Missing required setting(s) for {mode} embeddings: "
                + ", ".join(_PERSISTED_KEYS[name] for name in missing),
                missing=missing,
            )

    @property
    def mode(self) -> str:
        return "local" if self.use_local_embeddings else "remote"

    def estimated_cost(self) -> float:
        """Rough USD cost of the tokens processed so far"""
        return (self.total_tokens_processed / 1000) * COST_PER_1K_TOKENS

    def masked_api_key(self) -> Optional[str]:
        """API key safe for display (sk-...abcd)"""
        key = self.embeddings_api_key
        if not key:
            return None
        if len(key) <= 8:
            return "*" * len(key)
        return f"{key[:3]}...{key[-4:]}"


def _coerce(name: str, value: Any) -> Any:
    """Validate a single field value against its declared type"""
    expected = _FIELD_TYPES[name]
    if value is None:
        if name in ("embeddings_api_key", "embeddings_model"):
            return None
        raise ConfigError(f"Setting {_PERSISTED_KEYS[name]} cannot be null")
    if expected is int:
        # bool is an int subclass; reject it for counters
        if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
            raise ConfigError(f"Setting {_PERSISTED_KEYS[name]} must be an integer")
        value = int(value)
        if value < 0:
            raise ConfigError(f"Setting {_PERSISTED_KEYS[name]} cannot be negative")
        return value
    if not isinstance(value, expected):
        raise ConfigError(
            f"Setting {_PERSISTED_KEYS[name]} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value
