"""
FastAPI application entry point for SubShare.
"""

# Load environment variables FIRST before any other imports
from pathlib import Path
from dotenv import load_dotenv

project_root = Path(__file__).parent.parent.parent.parent  # src/subshare/api/main.py -> root
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from subshare import __version__
from subshare.api.routes import admin, auth, health, platforms, reports, subscriptions, users, wallet
from subshare.api.middleware.auth_context import AuthContextMiddleware
from subshare.api.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from subshare.api.middleware.rate_limiter import RateLimitMiddleware
from subshare.monitoring import (
    MetricsMiddleware,
    setup_sentry,
    get_metrics,
)
from subshare.utils.config import get_config
from subshare.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info("🚀 Starting SubShare API...")

    if setup_sentry(release=f"subshare@{__version__}"):
        logger.info("✅ Sentry initialized")

    get_metrics()
    logger.info("✅ Prometheus metrics initialized")

    logger.info("✅ API started successfully")

    yield

    logger.info("🛑 Shutting down SubShare API...")


config = get_config()

app = FastAPI(
    title="SubShare API",
    description="Marketplace for renting hourly access to shared streaming subscriptions",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

# Custom middlewares (order matters: the last added runs first)
app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(AuthContextMiddleware)

register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(wallet.router, prefix="/api/v1/wallet", tags=["Wallet"])
app.include_router(platforms.router, prefix="/api/v1/platforms", tags=["Platforms"])
app.include_router(subscriptions.router, prefix="/api/v1/subscriptions", tags=["Subscriptions"])
app.include_router(reports.router, prefix="/api/v1/reports", tags=["Reports"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
app.include_router(health.router, prefix="/api/v1/health", tags=["Health"])


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(
        generate_latest(get_metrics().registry),
        media_type=CONTENT_TYPE_LATEST
    )


@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "SubShare API",
        "version": __version__,
        "status": "operational",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "subshare.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=config.debug_mode
    )
