"""
Recipe Social API - Main Application
====================================

FastAPI application entry point with middleware configuration
and route registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from app.config import settings

# Configure logging for the application (root logger defaults to WARNING)
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import webhooks
from app.core.errors import setup_exception_handlers
from app.db.session import close_db, init_db
from app.services.cache import close_redis, init_redis

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown of the database connection and, when the
    webhook event ledger is enabled, the Redis connection.
    """
    logger.info("Starting Recipe Social API (environment=%s)", settings.ENVIRONMENT)

    if not settings.webhook_configured:
        logger.warning("REVENUECAT_WEBHOOK_SECRET not configured; webhook deliveries will fail")

    # Continue startup even if DB fails (for health checks)
    try:
        await init_db()
    except Exception as e:
        logger.error("Database connection failed: %s", e)

    if settings.WEBHOOK_EVENT_DEDUP_ENABLED:
        try:
            await init_redis()
        except Exception as e:
            logger.error("Redis connection failed, webhook ledger will fail open: %s", e)

    yield

    logger.info("Shutting down Recipe Social API")
    await close_db()
    await close_redis()


# Create FastAPI application
app = FastAPI(
    title="Recipe Social API",
    description="""
## Recipe Social Backend

Subscription entitlement processing for the recipe-sharing app.

### Features
- **Webhooks**: RevenueCat subscription events keep each user's pro status current
    """,
    version=APP_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup exception handlers
setup_exception_handlers(app)


# =============================================================================
# Health Check Endpoints
# =============================================================================

@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns the current status of the API.
    """
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/", tags=["Health"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Recipe Social API",
        "version": APP_VERSION,
        "docs": "/docs" if settings.is_development else "Disabled in production",
    }


# =============================================================================
# API Routes
# =============================================================================

app.include_router(webhooks.router, prefix="/api/v1/webhooks", tags=["Webhooks"])
