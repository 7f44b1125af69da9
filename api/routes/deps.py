"""Route dependencies and helpers

Provides clean access to application state and a single mapping from
typed service errors to HTTP responses.
"""
from fastapi import HTTPException, Request

from app_state import AppState
from errors import (
    AlreadyInitializingError,
    ConfigError,
    DimensionMismatchError,
    EmbeddingModelMismatchError,
    NotReadyError,
    ProviderError,
    SemanticSearchError,
)

# Most specific first
_STATUS_CODES = (
    (NotReadyError, 503),
    (AlreadyInitializingError, 409),
    (EmbeddingModelMismatchError, 409),
    (ConfigError, 400),
    (DimensionMismatchError, 422),
    (ProviderError, 502),
)


def get_app_state(request: Request) -> AppState:
    """Get AppState from request

    Encapsulates the request.app.state.app_state chain.
    """
    return request.app.state.app_state


def to_http_exception(error: SemanticSearchError) -> HTTPException:
    """Map a typed service error to an HTTPException"""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(error, error_type):
            headers = None
            if isinstance(error, ProviderError) and error.retry_after is not None:
                headers = {"Retry-After": str(int(error.retry_after))}
            return HTTPException(status_code=status_code, detail=str(error), headers=headers)
    return HTTPException(status_code=500, detail=str(error))
