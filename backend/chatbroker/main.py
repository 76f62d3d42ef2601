"""
AI Chat Interface - Main FastAPI Application
"""

import logging
import time
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router, settings_router, report_router, register_exception_handlers
from .core.logging_config import setup_logging
from .middleware import RateLimitMiddleware, RequestLoggingMiddleware
from .storage import get_database, init_database, init_stores

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    database = init_database(settings.database_url, echo=settings.database_echo)
    stores = init_stores(database, {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
    })
    await stores.initialize()
    logger.info("Database initialized")

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Database: {settings.database_url}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Debug mode: {settings.debug}")
    yield
    # Shutdown
    await get_database().close()
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Backend API for AI Chat Interface with multiple LLM support",
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

if settings.rate_limit_enabled:
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max_requests,
        window_ms=settings.rate_limit_window_ms,
    )

# Add request logging middleware (outermost, so rejected requests are logged too)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(chat_router)
app.include_router(settings_router)
app.include_router(report_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
        "environment": settings.environment,
        "version": settings.app_version,
    }


@app.get("/api")
async def api_info():
    """Endpoint index."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Backend API for AI Chat Interface with multiple LLM support",
        "endpoints": {
            "chat": {
                "POST /api/chat": "Send message to AI and get response",
                "GET /api/models": "Get available models",
                "GET /api/sessions": "Get chat sessions",
                "GET /api/sessions/{id}": "Get session by ID",
                "GET /api/sessions/{id}/messages": "Get messages for a session",
                "DELETE /api/sessions/{id}": "Delete session",
            },
            "settings": {
                "GET /api/settings": "Get all settings",
                "PUT /api/settings": "Update settings",
                "GET /api/settings/{key}": "Get specific setting",
                "PUT /api/settings/{key}": "Update specific setting",
                "DELETE /api/settings/{key}": "Delete setting",
                "POST /api/settings/test-api-key": "Test API key",
            },
            "reporting": {
                "GET /api/report": "Get usage analytics",
                "GET /api/report/sessions": "Get detailed session report",
                "GET /api/report/models": "Get model usage report",
                "GET /api/report/export": "Export data",
            },
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "chatbroker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
