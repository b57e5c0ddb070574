from .analytics_event import AnalyticsEvent

__all__ = [
    "AnalyticsEvent",
]
