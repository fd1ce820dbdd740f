"""
EVP Clinical Assistant - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chat_router, logs_router
from .api.errors import register_exception_handlers
from .config import settings
from .core.logging_config import setup_logging
from .core.session_store import ThreadSessionStore
from .middleware import RequestLoggingMiddleware
from .storage import get_engine, init_schema

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, optionally create tables, and report configuration gaps."""
    setup_logging(settings)

    if settings.database_auto_init:
        init_schema(get_engine())
        logger.info("Conversation log tables initialized")

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Run polling: interval={settings.run_poll_interval}s, "
                f"timeout={settings.run_poll_timeout}s, max_attempts={settings.run_max_poll_attempts}")
    logger.info(f"Persistence failure policy: {settings.persistence_failure_policy}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; /chat will answer 500 until it is configured")
    if not settings.qa_logs_secret:
        logger.warning("QA_LOGS_SECRET is not set; /logs will reject every request")
    yield
    logger.info(f"Shutting down {settings.app_name} ({len(app.state.session_store)} active sessions)")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Clinical Q&A assistant for urologists on Enfortumab Vedotin + Pembrolizumab therapy",
    lifespan=lifespan
)

# Session -> thread map shared by every request in this process
app.state.session_store = ThreadSessionStore()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(chat_router)
app.include_router(logs_router)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Liveness probe; also reports how many sessions hold a thread."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "sessions": len(app.state.session_store),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "evp_assistant.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
