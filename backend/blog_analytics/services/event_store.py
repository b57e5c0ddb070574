"""
Event store: the persistence seam for analytics events.

Endpoints receive an ``EventStore`` through FastAPI dependency injection
rather than reaching for a global connection, so tests can swap in SQLite
or an in-memory fake implementing the same three operations.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Protocol

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from blog_analytics.core.errors import StoreFailure
from blog_analytics.db.database import get_db
from blog_analytics.domain.events import EventDraft
from blog_analytics.models.analytics_event import AnalyticsEvent

logger = logging.getLogger(__name__)

SCAN_BATCH_SIZE = 500


@dataclass(frozen=True)
class StoredEvent:
    """A persisted event as read back from the store."""

    id: str
    timestamp: datetime
    type: str
    session_id: str
    country: str
    page: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EventFilters:
    """Conjunctive filters for ``EventStore.query``; ``None`` means unfiltered."""

    limit: int
    type: Optional[str] = None
    country: Optional[str] = None
    session_id: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class EventStore(Protocol):
    def create(self, draft: EventDraft, timestamp: datetime, page: str) -> StoredEvent:
        """Persist one new event and return it with its generated id."""

    def query(self, filters: EventFilters) -> List[StoredEvent]:
        """Return matching events, newest first, at most ``filters.limit``."""

    def scan(self) -> Iterator[StoredEvent]:
        """Iterate over every stored event."""


def _to_stored(row: AnalyticsEvent) -> StoredEvent:
    return StoredEvent(
        id=str(row.id),
        timestamp=row.timestamp,
        type=row.type,
        session_id=row.session_id,
        country=row.country,
        page=row.page,
        extra=dict(row.extra or {}),
    )


class SqlEventStore:
    """``EventStore`` backed by the ``analytics`` table."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, draft: EventDraft, timestamp: datetime, page: str) -> StoredEvent:
        row = AnalyticsEvent(
            timestamp=timestamp,
            type=draft.type,
            session_id=draft.session_id,
            country=draft.country,
            page=page,
            extra=draft.extra,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            logger.exception(f"[STORE] Failed to create {draft.type} event")
            self.db.rollback()
            raise StoreFailure("create") from exc
        return _to_stored(row)

    def query(self, filters: EventFilters) -> List[StoredEvent]:
        q = self.db.query(AnalyticsEvent)
        if filters.type:
            q = q.filter(AnalyticsEvent.type == filters.type)
        if filters.country:
            q = q.filter(AnalyticsEvent.country == filters.country)
        if filters.session_id:
            q = q.filter(AnalyticsEvent.session_id == filters.session_id)
        if filters.start is not None:
            q = q.filter(AnalyticsEvent.timestamp >= filters.start)
        if filters.end is not None:
            q = q.filter(AnalyticsEvent.timestamp <= filters.end)

        try:
            rows = q.order_by(AnalyticsEvent.timestamp.desc()).limit(filters.limit).all()
        except SQLAlchemyError as exc:
            logger.exception("[STORE] Event query failed")
            self.db.rollback()
            raise StoreFailure("query") from exc
        return [_to_stored(row) for row in rows]

    def scan(self) -> Iterator[StoredEvent]:
        try:
            for row in self.db.query(AnalyticsEvent).yield_per(SCAN_BATCH_SIZE):
                yield _to_stored(row)
        except SQLAlchemyError as exc:
            logger.exception("[STORE] Event scan failed")
            self.db.rollback()
            raise StoreFailure("scan") from exc


def get_event_store(db: Session = Depends(get_db)) -> EventStore:
    return SqlEventStore(db)
