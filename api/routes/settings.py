"""Settings routes: read and update the embedding configuration."""
from fastapi import APIRouter, Request

from embedding_config import EmbeddingConfig
from errors import SemanticSearchError
from models import SettingsResponse, SettingsUpdate
from routes.deps import get_app_state, to_http_exception

router = APIRouter()


def _to_response(config: EmbeddingConfig) -> SettingsResponse:
    return SettingsResponse(
        embeddings_endpoint=config.embeddings_endpoint,
        embeddings_api_key=config.masked_api_key(),
        embeddings_model=config.embeddings_model,
        use_local_embeddings=config.use_local_embeddings,
        mode=config.mode,
        total_tokens_processed=config.total_tokens_processed,
        estimated_cost=round(config.estimated_cost(), 4),
        missing_fields=config.missing_fields(),
    )


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(request: Request):
    """Current embedding settings (API key masked) with usage statistics"""
    return _to_response(get_app_state(request).get_settings())


@router.patch("/settings", response_model=SettingsResponse)
async def update_settings(update: SettingsUpdate, request: Request):
    """Update only the fields present in the request body"""
    partial = update.model_dump(exclude_unset=True)
    try:
        config = get_app_state(request).update_settings(partial)
    except SemanticSearchError as e:
        raise to_http_exception(e)
    return _to_response(config)


@router.post("/settings/usage/reset", response_model=SettingsResponse)
async def reset_usage(request: Request):
    """Zero the token usage counter"""
    return _to_response(get_app_state(request).reset_usage())
