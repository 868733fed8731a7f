"""
StockPulse Engine - FastAPI Application

Main entry point for the market-data API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stockpulse.core.config import settings
from stockpulse.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    if not settings.alpha_vantage_api_key:
        logger.warning("ALPHA_VANTAGE_API_KEY not set - requests will fail with ConfigurationError")

    # Initialize Redis cache (optional)
    from stockpulse.services.cache import init_redis, close_redis, reset_response_cache
    redis_client = await init_redis()
    if redis_client:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis unavailable - using in-memory cache")

    yield

    # Shutdown
    logger.info("Shutting down...")
    from stockpulse.services.aggregation import reset_aggregation_service
    from stockpulse.services.provider import close_provider_client
    await close_provider_client()
    await close_redis()
    reset_response_cache()
    reset_aggregation_service()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    StockPulse Market-Data Engine API

    ## Architecture
    - **Provider Client**: Alpha Vantage requests, response validation, error classification
    - **Response Cache**: 5-minute TTL per (endpoint, symbol, params)
    - **Aggregation**: Quote + overview + daily history + RSI/MACD/ADX in one model

    ## Errors
    Every failure is one of: ConfigurationError, InvalidSymbol, RateLimited,
    Timeout, MalformedResponse, InvalidResponse, ProviderError.
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    from stockpulse.services.aggregation import get_aggregation_service

    healthy = await get_aggregation_service().health_check()
    return {
        "status": "healthy" if healthy else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "provider_configured": healthy,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "StockPulse Engine API",
        "docs": "/docs",
        "health": "/health",
    }
