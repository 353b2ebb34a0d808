"""
Meeting Engine - Application Entry Point

This file initializes the FastAPI app, configures middleware,
and includes all routers. Run with: python main.py
"""
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from meeting_engine import __version__
from meeting_engine.api import register_exception_handlers, router
from meeting_engine.config import settings
from meeting_engine.database import close_db, create_tables
from meeting_engine.logging_config import get_logger, setup_logging

setup_logging(debug=settings.debug)
logger = get_logger(__name__)


# ============================================
# LIFESPAN CONTEXT MANAGER
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    await create_tables()
    logger.info(
        "meeting_engine_started",
        debug=settings.debug,
        zoom_configured=settings.is_zoom_configured,
        google_configured=settings.is_google_configured,
        microsoft_configured=settings.is_microsoft_configured,
        cors_origins=settings.cors_origins_list,
    )

    yield

    await close_db()
    logger.info("meeting_engine_stopped")


# ============================================
# CREATE FASTAPI APP
# ============================================

app = FastAPI(
    title="Meeting Engine",
    description="Books meetings across video-conferencing and calendar providers",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)


# ============================================
# MIDDLEWARE CONFIGURATION
# ============================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ============================================
# ROUTES
# ============================================

register_exception_handlers(app)
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
