"""
Shared FastAPI dependencies: rate limiting, the analytics service, the IPFS loader.
"""

from functools import lru_cache
from typing import Generator

import httpx
from fastapi import Depends, Request

from blog_analytics.core.config import get_settings
from blog_analytics.services.analytics_service import AnalyticsService
from blog_analytics.services.event_store import EventStore, get_event_store
from blog_analytics.services.ipfs_service import IpfsContentLoader
from blog_analytics.services.rate_limiter import FixedWindowRateLimiter


@lru_cache
def get_api_rate_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        limit=settings.api_rate_limit,
        window_seconds=settings.api_rate_window_seconds,
        message="Too many requests from this address, please try again later.",
        name="api",
        max_keys=settings.rate_limit_max_keys,
    )


@lru_cache
def get_ingest_rate_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        limit=settings.ingest_rate_limit,
        window_seconds=settings.ingest_rate_window_seconds,
        message="Too many events submitted, please wait a minute before sending another.",
        name="ingest",
        max_keys=settings.rate_limit_max_keys,
    )


def client_key(request: Request) -> str:
    """Rate-limit key for a request: the client's network address."""
    if get_settings().trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_api_rate_limit(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_api_rate_limiter),
) -> None:
    limiter.check(client_key(request))


def enforce_ingest_rate_limit(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_ingest_rate_limiter),
) -> None:
    limiter.check(client_key(request))


def get_analytics_service(store: EventStore = Depends(get_event_store)) -> AnalyticsService:
    settings = get_settings()
    return AnalyticsService(
        store,
        page_label=settings.page_label,
        strict=settings.strict_event_validation,
    )


def get_ipfs_loader() -> Generator[IpfsContentLoader, None, None]:
    settings = get_settings()
    with httpx.Client(timeout=settings.ipfs_timeout_seconds, follow_redirects=True) as client:
        yield IpfsContentLoader(client, settings.ipfs_gateways)
