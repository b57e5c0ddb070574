"""
Analytics endpoints: event ingestion, filtered stats and the summary.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, Field

from blog_analytics.api.v1.deps import (
    enforce_api_rate_limit,
    enforce_ingest_rate_limit,
    get_analytics_service,
)
from blog_analytics.services.analytics_service import (
    DEFAULT_STATS_LIMIT,
    AnalyticsService,
    clamp_limit,
)
from blog_analytics.services.event_store import EventFilters, StoredEvent

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(enforce_api_rate_limit)])


class EventCreatedResponse(BaseModel):
    """Acknowledgment for a recorded event."""

    success: bool = True
    message: str = "Event recorded"
    event_id: str = Field(..., alias="eventId")
    type: str
    timestamp: datetime

    class Config:
        populate_by_name = True


class EventResponse(BaseModel):
    """A stored event as returned by the stats endpoint."""

    id: str
    timestamp: datetime
    type: str
    session_id: str = Field(..., alias="sessionId")
    country: str
    page: str
    extra: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True

    @classmethod
    def from_stored(cls, event: StoredEvent) -> "EventResponse":
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            type=event.type,
            session_id=event.session_id,
            country=event.country,
            page=event.page,
            extra=event.extra,
        )


class StatsFilters(BaseModel):
    """Filters that were applied to a stats query."""

    type: Optional[str] = None
    country: Optional[str] = None
    session_id: Optional[str] = Field(None, alias="sessionId")
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    limit: int

    class Config:
        populate_by_name = True


class StatsResponse(BaseModel):
    success: bool = True
    count: int
    events: List[EventResponse]
    filters: StatsFilters


class DateRange(BaseModel):
    oldest: Optional[datetime] = None
    newest: Optional[datetime] = None


class SummaryBody(BaseModel):
    """Aggregate statistics over every stored event."""

    total_events: int = Field(..., alias="totalEvents")
    event_types: Dict[str, int] = Field(..., alias="eventTypes")
    countries: Dict[str, int]
    unique_sessions: int = Field(..., alias="uniqueSessions")
    code_versions: Dict[str, int] = Field(..., alias="codeVersions")
    image_views: Dict[str, int] = Field(..., alias="imageViews")
    date_range: DateRange = Field(..., alias="dateRange")

    class Config:
        populate_by_name = True


class SummaryResponse(BaseModel):
    success: bool = True
    summary: SummaryBody


@router.get("/analytics", status_code=status.HTTP_200_OK)
def analytics_status():
    """Banner confirming the analytics API is reachable."""
    return {"success": True, "message": "Analytics API active"}


@router.post(
    "/analytics",
    response_model=EventCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_ingest_rate_limit)],
)
def record_event(
    payload: Dict[str, Any] = Body(...),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Record one analytics event.

    Order of checks:
    - general API rate limit, then the per-address ingestion limit
    - payload validation (type, sessionId, country, type-specific extra fields)

    The server stamps ``timestamp`` and ``page``. Submitting the same payload
    twice stores two events.
    """
    event = service.record_event(payload)
    return EventCreatedResponse(event_id=event.id, type=event.type, timestamp=event.timestamp)


@router.get("/analytics/stats", response_model=StatsResponse, status_code=status.HTTP_200_OK)
def get_stats(
    event_type: Optional[str] = Query(None, alias="type", description="Event type"),
    country: Optional[str] = Query(None, description="Country as reported by the client"),
    session_id: Optional[str] = Query(None, alias="sessionId", description="Session identifier"),
    start_date: Optional[datetime] = Query(
        None, alias="startDate", description="Inclusive lower bound (UTC if no offset)"
    ),
    end_date: Optional[datetime] = Query(
        None, alias="endDate", description="Inclusive upper bound (UTC if no offset)"
    ),
    limit: float = Query(
        DEFAULT_STATS_LIMIT,
        ge=1,
        allow_inf_nan=False,
        description="Page size, truncated to an integer and capped at 1000",
    ),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    List stored events, newest first.

    All supplied filters must match. An empty result is not an error.
    """
    filters = EventFilters(
        limit=clamp_limit(limit),
        type=event_type,
        country=country,
        session_id=session_id,
        start=start_date,
        end=end_date,
    )
    events = service.query_events(filters)

    return StatsResponse(
        count=len(events),
        events=[EventResponse.from_stored(e) for e in events],
        filters=StatsFilters(
            type=event_type,
            country=country,
            session_id=session_id,
            start_date=start_date,
            end_date=end_date,
            limit=filters.limit,
        ),
    )


@router.get("/analytics/summary", response_model=SummaryResponse, status_code=status.HTTP_200_OK)
def get_summary(service: AnalyticsService = Depends(get_analytics_service)):
    """Summary counters computed over every stored event."""
    summary = service.summarize()
    return SummaryResponse(
        summary=SummaryBody(
            total_events=summary.total_events,
            event_types=summary.event_types,
            countries=summary.countries,
            unique_sessions=summary.unique_sessions,
            code_versions=summary.code_versions,
            image_views=summary.image_views,
            date_range=DateRange(oldest=summary.oldest, newest=summary.newest),
        )
    )
