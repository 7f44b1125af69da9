"""Health and info routes."""
from fastapi import APIRouter, Request

from models import DatabaseStatus, HealthResponse
from routes.deps import get_app_state

router = APIRouter()


@router.get("/", include_in_schema=False)
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Semantic Search API",
        "docs": "/docs",
        "health": "/health"
    }


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """
    Health check endpoint

    Reports database lifecycle state and, when ready, index statistics.
    """
    app_state = get_app_state(request)
    status = app_state.database_status()
    stats = await app_state.get_stats()

    response = HealthResponse(
        status="healthy" if stats is not None else "degraded",
        database=DatabaseStatus(**status),
    )
    if stats is not None:
        response.indexed_documents = stats.documents
        response.total_chunks = stats.chunks
        response.total_embeddings = stats.embeddings
    return response
