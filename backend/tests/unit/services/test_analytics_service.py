"""
Unit tests for AnalyticsService against the in-memory event store.
"""

from datetime import datetime, timezone

import pytest

from blog_analytics.core.errors import EventValidationError
from blog_analytics.services.analytics_service import (
    DEFAULT_STATS_LIMIT,
    MAX_STATS_LIMIT,
    AnalyticsService,
    clamp_limit,
)
from blog_analytics.services.event_store import EventFilters


@pytest.fixture
def service(memory_store, clock):
    return AnalyticsService(memory_store, page_label="MEMN_blog", clock=clock)


def event(event_type="page_visit", session="s1", country="Chile", **extra):
    payload = {"type": event_type, "sessionId": session, "country": country}
    if extra:
        payload["extra"] = extra
    return payload


class TestClampLimit:
    def test_default(self):
        assert clamp_limit(None) == DEFAULT_STATS_LIMIT == 100

    def test_ceiling(self):
        assert MAX_STATS_LIMIT == 1000
        assert clamp_limit(5000) == MAX_STATS_LIMIT

    def test_floor_and_coercion(self):
        assert clamp_limit(0) == 1
        assert clamp_limit("25") == 25
        assert clamp_limit(10.0) == 10
        assert clamp_limit(7.9) == 7


class TestRecordEvent:
    def test_stamps_timestamp_and_page(self, service, memory_store, clock):
        stored = service.record_event(event())

        assert stored.timestamp == clock.now
        assert stored.page == "MEMN_blog"
        assert memory_store.events == [stored]

    def test_ignores_client_timestamp_and_page(self, service, clock):
        payload = event()
        payload["timestamp"] = "1999-01-01T00:00:00Z"
        payload["page"] = "elsewhere"

        stored = service.record_event(payload)

        assert stored.timestamp == clock.now
        assert stored.page == "MEMN_blog"

    def test_invalid_payload_stores_nothing(self, service, memory_store):
        with pytest.raises(EventValidationError):
            service.record_event(event(event_type="hover"))
        assert memory_store.events == []

    def test_duplicate_payloads_create_distinct_events(self, service, memory_store):
        first = service.record_event(event())
        second = service.record_event(event())

        assert first.id != second.id
        assert len(memory_store.events) == 2

    def test_loose_mode_accepts_custom_types(self, memory_store, clock):
        loose = AnalyticsService(memory_store, page_label="MEMN_blog", strict=False, clock=clock)
        stored = loose.record_event(event(event_type="scroll"))
        assert stored.type == "scroll"


class TestQueryEvents:
    def test_filters_and_orders_newest_first(self, service, clock):
        service.record_event(event("page_visit"))
        clock.advance(10)
        service.record_event(event("modal_open"))
        clock.advance(10)
        service.record_event(event("page_visit", session="s2"))

        events = service.query_events(EventFilters(limit=100, type="page_visit"))

        assert [e.type for e in events] == ["page_visit", "page_visit"]
        assert events[0].timestamp > events[1].timestamp
        assert events[0].session_id == "s2"

    def test_empty_result(self, service):
        assert service.query_events(EventFilters(limit=100, country="Peru")) == []


class TestSummarize:
    def test_empty_store(self, service):
        summary = service.summarize()

        assert summary.total_events == 0
        assert summary.unique_sessions == 0
        assert summary.event_types == {}
        assert summary.oldest is None
        assert summary.newest is None

    def test_counts_and_unique_sessions(self, service, clock):
        service.record_event(event(session="s1", country="Chile"))
        clock.advance(60)
        service.record_event(event(session="s1", country="Chile"))
        clock.advance(60)
        service.record_event(event("modal_open", session="s2", country="Peru"))

        summary = service.summarize()

        assert summary.total_events == 3
        assert summary.unique_sessions == 2
        assert summary.event_types == {"page_visit": 2, "modal_open": 1}
        assert summary.countries == {"Chile": 2, "Peru": 1}
        assert summary.oldest == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert summary.newest == datetime(2024, 5, 1, 12, 2, tzinfo=timezone.utc)

    def test_code_versions_and_image_views(self, service):
        service.record_event(event("code_copy", codeVersion="game-1"))
        service.record_event(event("code_copy", codeVersion="game-1"))
        service.record_event(event("code_copy", codeVersion="game-2"))
        service.record_event(event("image_view", imageIndex=0))
        service.record_event(event("image_view", imageIndex=3))
        service.record_event(event("image_view", imageIndex=3.0))

        summary = service.summarize()

        assert summary.code_versions == {"game-1": 2, "game-2": 1}
        assert summary.image_views == {"0": 1, "3": 2}

    def test_skips_type_specific_counts_for_loose_events(self, memory_store, clock):
        loose = AnalyticsService(memory_store, page_label="MEMN_blog", strict=False, clock=clock)
        loose.record_event(event("code_copy", textarea="ta-2"))
        loose.record_event(event("image_view", imageIndex="first"))

        summary = loose.summarize()

        assert summary.total_events == 2
        assert summary.code_versions == {}
        assert summary.image_views == {}
