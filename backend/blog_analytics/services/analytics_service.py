"""
Analytics event pipeline: ingestion, filtered queries and the summary.

The summary is computed with a full scan of the store on every call. That is
fine for a single blog's traffic; a larger dataset would need counters kept
up to date at ingestion time instead.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from blog_analytics.domain.events import EventType, is_number, validate_event
from blog_analytics.services.event_store import EventFilters, EventStore, StoredEvent

logger = logging.getLogger(__name__)

DEFAULT_STATS_LIMIT = 100
MAX_STATS_LIMIT = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_limit(limit: Optional[float]) -> int:
    """Apply the default and ceiling for stats page size; fractions are truncated."""
    if limit is None:
        return DEFAULT_STATS_LIMIT
    return max(1, min(int(limit), MAX_STATS_LIMIT))


def _image_key(index: Any) -> Any:
    # 3.0 and 3 count as the same image
    if isinstance(index, float) and index.is_integer():
        return int(index)
    return index


@dataclass
class AnalyticsSummary:
    """Aggregate statistics over every stored event."""

    total_events: int = 0
    event_types: Dict[str, int] = field(default_factory=dict)
    countries: Dict[str, int] = field(default_factory=dict)
    unique_sessions: int = 0
    code_versions: Dict[str, int] = field(default_factory=dict)
    image_views: Dict[str, int] = field(default_factory=dict)
    oldest: Optional[datetime] = None
    newest: Optional[datetime] = None


class AnalyticsService:
    """Service for recording and reading analytics events."""

    def __init__(
        self,
        store: EventStore,
        page_label: str,
        strict: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.page_label = page_label
        self.strict = strict
        self.clock = clock

    def record_event(self, payload: Mapping[str, Any]) -> StoredEvent:
        """
        Validate and persist one event.

        The timestamp and page label are set here; client-supplied values for
        either are ignored. Identical payloads are stored as separate events.

        Raises:
            EventValidationError: If the payload is rejected (nothing is stored)
            StoreFailure: If the store write fails
        """
        draft = validate_event(payload, strict=self.strict)
        stored = self.store.create(draft, timestamp=self.clock(), page=self.page_label)
        logger.info(
            f"[INGEST] Event {stored.type} recorded - id: {stored.id} - session: {stored.session_id}"
        )
        return stored

    def query_events(self, filters: EventFilters) -> List[StoredEvent]:
        """Return events matching all filters, newest first."""
        events = self.store.query(filters)
        logger.info(f"[STATS] {len(events)} event(s) returned (limit {filters.limit})")
        return events

    def summarize(self) -> AnalyticsSummary:
        """Scan every event and build the summary counters."""
        summary = AnalyticsSummary()
        event_types: Counter = Counter()
        countries: Counter = Counter()
        code_versions: Counter = Counter()
        image_views: Counter = Counter()
        sessions = set()

        for event in self.store.scan():
            summary.total_events += 1
            event_types[event.type] += 1
            countries[event.country] += 1
            sessions.add(event.session_id)

            if event.type == EventType.CODE_COPY.value and event.extra.get("codeVersion"):
                code_versions[str(event.extra["codeVersion"])] += 1

            if event.type == EventType.IMAGE_VIEW.value and is_number(event.extra.get("imageIndex")):
                image_views[str(_image_key(event.extra["imageIndex"]))] += 1

            if summary.oldest is None or event.timestamp < summary.oldest:
                summary.oldest = event.timestamp
            if summary.newest is None or event.timestamp > summary.newest:
                summary.newest = event.timestamp

        summary.event_types = dict(event_types)
        summary.countries = dict(countries)
        summary.code_versions = dict(code_versions)
        summary.image_views = dict(image_views)
        summary.unique_sessions = len(sessions)

        logger.info(
            f"[SUMMARY] Scanned {summary.total_events} event(s), {summary.unique_sessions} session(s)"
        )
        return summary
