import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from config import default_config
from errors import SemanticSearchError
from startup.config_validator import ConfigValidator
from routes.health import router as health_router
from routes.database import router as database_router
from routes.settings import router as settings_router
from routes.documents import router as documents_router
from routes.query import router as query_router

logger = logging.getLogger(__name__)

# Global state
state = AppState.from_config(default_config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    ConfigValidator(state.config).validate()
    state.load_settings()
    try:
        await state.initialize_database()
    except SemanticSearchError as e:
        # Keep serving: /health reports the error and /database/initialize retries
        logger.error(f"Database initialization failed: {e}")
    yield
    await state.close_all_resources()


app = FastAPI(
    title="Semantic Search API",
    description="Local semantic search over your notes",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Store state in app for route access
app.state.app_state = state

app.include_router(health_router)
app.include_router(database_router)
app.include_router(settings_router)
app.include_router(documents_router)
app.include_router(query_router)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
