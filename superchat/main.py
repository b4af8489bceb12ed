"""
SuperChat - Main FastAPI Application
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router, models_router, preferences_router, sessions_router
from .core.logging_config import setup_logging
from .core.model_catalog import refresh_models
from .core.orchestrator import StreamingOrchestrator
from .core.session_store import SessionStore
from .core.titles import TitleSynthesizer
from .llm.errors import SuperChatError
from .llm.factory import create_completion_client
from .middleware import RequestLoggingMiddleware
from .storage import create_storage

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire up storage, the completion client and the session store."""
    # Startup
    setup_logging(settings)

    storage = create_storage(settings)
    client = create_completion_client(settings)
    titles = TitleSynthesizer(
        client,
        model=settings.title_model,
        temperature=settings.title_temperature,
        max_tokens=settings.title_max_tokens,
        debounce_ms=settings.title_debounce_ms,
    )
    store = SessionStore(
        storage,
        storage_key=settings.storage_key,
        title_synthesizer=titles,
        default_model=settings.llm_default_model,
        default_temperature=settings.llm_default_temperature,
        max_sessions=settings.max_sessions,
        autosave_debounce_ms=settings.autosave_debounce_ms,
    )
    await store.hydrate()
    if store.credential:
        client.set_credential(store.credential)

    app.state.store = store
    app.state.client = client
    app.state.orchestrator = StreamingOrchestrator(store, client)

    if settings.refresh_models_on_startup:
        try:
            await refresh_models(store, client)
        except SuperChatError as e:
            logger.warning(f"Initial model refresh failed: {e}")

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Storage: {settings.storage_type} ({settings.local_storage_path})")
    logger.info(f"Completion service: {settings.llm_base_url}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    yield
    # Shutdown
    await app.state.store.aclose()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Chat client for an OpenAI-compatible completion service with persistent history",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(sessions_router)
app.include_router(chat_router)
app.include_router(models_router)
app.include_router(preferences_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    store = getattr(app.state, "store", None)
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "hydrated": bool(store and store.hydrated),
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "superchat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
