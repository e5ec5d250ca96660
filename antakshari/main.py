"""
Antakshari Round Shuffler - Main Application

FastAPI application that serves:
- REST API endpoints for the current round, the shuffle lock and the catalog
- Account registration / login
- Health check endpoint

All state lives in one SQLite file; song audio is hosted on Nextcloud.
"""

import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from antakshari.config import (
    ADMIN_EMAIL,
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    CORS_ORIGINS,
    DEBUG,
    LOG_LEVEL,
    ensure_directories,
)
from antakshari.database import init_db
from antakshari.media import is_configured as media_host_configured
from antakshari.rotation import FIXED_ROTATION, validate_rotation
from antakshari.routes.api import router as api_router
from antakshari.routes.auth import router as auth_router

# ---------------------------------------------------------------------------
# Logging setup: stdout only
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    On startup:
        1. Create required local directories
        2. Initialize / migrate the SQLite database
        3. Validate the fixed rotation table

    On shutdown:
        4. Log shutdown
    """
    # --- Startup ---
    logger.info("🚀 Starting Antakshari Round Shuffler v{}", APP_VERSION)
    logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)
    logger.info("👑 Host account: {}", ADMIN_EMAIL)

    if media_host_configured():
        logger.info("☁️  Media host configured (Nextcloud)")
    else:
        logger.warning("☁️  Media host NOT configured — only URL-based songs can be added")

    # Step 1: Ensure local directories exist
    ensure_directories()

    # Step 2: Initialize database (creates tables / runs migrations)
    try:
        init_db()
    except Exception as e:
        logger.critical("❌ Database initialization failed: {}", e)
        raise

    # Step 3: Refuse to start with a broken rotation
    validate_rotation(FIXED_ROTATION)

    logger.success("✅ Application ready — listening on {}:{}", APP_HOST, APP_PORT)

    yield

    # --- Shutdown ---
    logger.info("👋 Shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Antakshari Round Shuffler",
        description=(
            "Song catalog and round shuffler for an Antakshari party game. "
            "The host walks a fixed rotation; players get random draws."
        ),
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials="*" not in CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round(time.time() - start, 3)
            logger.error(
                "❌ {method} {path} — unhandled error after {duration}s: {exc}",
                method=request.method,
                path=request.url.path,
                duration=duration,
                exc=exc,
            )
            raise

        duration = round(time.time() - start, 3)
        status = response.status_code

        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info
        log(
            "📤 {method} {path} — {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    app.include_router(auth_router)  # /api/auth/*
    app.include_router(api_router)  # /api/*

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "antakshari.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )
