"""
Database routes module

Single responsibility: database lifecycle operations only.
"""
from fastapi import APIRouter, Request

from errors import SemanticSearchError
from models import DatabaseStatus
from routes.deps import get_app_state, to_http_exception

router = APIRouter()


@router.post("/database/initialize", response_model=DatabaseStatus)
async def initialize_database(request: Request):
    """Bring the database to READY (no-op if already ready)

    Use after a failed startup; retries are caller-driven.
    """
    app_state = get_app_state(request)
    try:
        await app_state.initialize_database()
    except SemanticSearchError as e:
        raise to_http_exception(e)
    return DatabaseStatus(**app_state.database_status())


@router.post("/database/reset")
async def reset_database(request: Request):
    """Delete all indexed embeddings and recreate an empty schema

    Destructive and irreversible; every note must be reindexed afterwards.
    """
    app_state = get_app_state(request)
    try:
        await app_state.reset_database()
    except SemanticSearchError as e:
        raise to_http_exception(e)
    return {
        "status": "success",
        "message": "Database reset. Reindex your notes to rebuild embeddings."
    }
