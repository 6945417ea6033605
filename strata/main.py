"""STRATA — FastAPI Application Entry Point.

Hybrid analytics aggregation: one query surface over a historical export
and the live GA4 property.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from strata.api.analytics_routes import router as analytics_router
from strata.api.historical_routes import router as historical_router
from strata.config import settings
from strata.core.logging import get_logger
from strata.database import check_connection, init_db

logger = get_logger("main")

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("STRATA starting up...")
    logger.info(f"Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    logger.info(f"GA4 cutover date: {settings.ga4_start_date}")
    if check_connection():
        try:
            init_db()
        except Exception as e:
            logger.error(f"Table creation failed: {e}")
    else:
        logger.error("Historical store NOT connected: pre-cutover windows fall back to GA4 or no-data")
    yield
    logger.info("STRATA shut down")


app = FastAPI(
    title="STRATA",
    description="Hybrid analytics aggregation over a historical export and GA4.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(historical_router)
app.include_router(analytics_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "strata",
        "version": "1.0.0",
    }
