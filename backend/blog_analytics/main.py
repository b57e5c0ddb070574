"""
FastAPI application entry point.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI

from blog_analytics.api.v1.router import api_router
from blog_analytics.core.config import get_settings
from blog_analytics.core.cors import PreflightCORSMiddleware
from blog_analytics.core.errors import register_exception_handlers
from blog_analytics.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Usage analytics for the blog: event ingestion, stats and summary",
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    max_age=settings.cors_max_age,
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.on_event("startup")
def startup_event():
    if settings.auto_create_tables:
        from blog_analytics.db.database import create_all

        create_all()
    logger.info(f"[STARTUP] {settings.app_name} ready, CORS origins: {settings.cors_origins}")


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": settings.app_name}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "blog-analytics",
        "version": settings.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
