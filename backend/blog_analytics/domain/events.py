"""
Analytics event types and the event validator.

Every event carries: type, sessionId, country and an optional ``extra``
mapping. Two event types need something in ``extra``:

- image_view: ``extra.imageIndex`` (a number)
- code_copy: ``extra.codeVersion`` (present and non-empty)

The validator is a pure function; timestamps and the page label are added
later by the ingestion service, never taken from the client.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from blog_analytics.core.errors import EventValidationError


class EventType(str, Enum):
    """Interactions the blog frontend reports."""

    PAGE_VISIT = "page_visit"
    IMAGE_VIEW = "image_view"
    MODAL_OPEN = "modal_open"
    MODAL_CLOSE = "modal_close"
    MODAL_NAV = "modal_nav"
    CODE_COPY = "code_copy"


VALID_EVENT_TYPES: List[str] = [t.value for t in EventType]

INVALID_EVENT_TYPE = "InvalidEventType"
MISSING_OR_INVALID_FIELD = "MissingOrInvalidField"
MISSING_TYPE_SPECIFIC_FIELD = "MissingTypeSpecificField"


class EventDraft(BaseModel):
    """An accepted event, before the server stamps it and the store saves it."""

    type: str
    session_id: str
    country: str
    extra: Dict[str, Any] = Field(default_factory=dict)


def is_number(value: Any) -> bool:
    """True for finite ints and floats; bools are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _find_non_finite(value: Any, path: str) -> Optional[str]:
    # NaN and Infinity decode from JSON bodies but cannot be stored or echoed back
    if isinstance(value, float) and not math.isfinite(value):
        return path
    if isinstance(value, Mapping):
        for key, item in value.items():
            found = _find_non_finite(item, f"{path}.{key}")
            if found:
                return found
    elif isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            found = _find_non_finite(item, f"{path}[{i}]")
            if found:
                return found
    return None


def _require_string(payload: Mapping[str, Any], field: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value:
        raise EventValidationError(
            f"{field} is required and must be a string",
            code=MISSING_OR_INVALID_FIELD,
            extra={"field": field},
        )
    return value


def _extract_extra(payload: Mapping[str, Any]) -> Dict[str, Any]:
    extra = payload.get("extra")
    if extra is None:
        return {}
    if not isinstance(extra, Mapping):
        raise EventValidationError(
            "extra must be an object",
            code=MISSING_OR_INVALID_FIELD,
            extra={"field": "extra"},
        )
    bad_path = _find_non_finite(extra, "extra")
    if bad_path:
        raise EventValidationError(
            f"{bad_path} must be a finite number",
            code=MISSING_OR_INVALID_FIELD,
            extra={"field": bad_path},
        )
    return dict(extra)


def validate_event(payload: Mapping[str, Any], strict: bool = True) -> EventDraft:
    """
    Validate a raw event submission.

    Args:
        payload: Decoded JSON body of the request
        strict: Enforce the type enumeration and type-specific ``extra`` fields.
            With ``strict=False`` only non-empty type/sessionId/country are required.

    Returns:
        EventDraft with ``extra`` defaulted to an empty dict

    Raises:
        EventValidationError: With ``code`` set to InvalidEventType,
            MissingOrInvalidField or MissingTypeSpecificField
    """
    event_type = payload.get("type")

    if strict:
        if not isinstance(event_type, str) or event_type not in VALID_EVENT_TYPES:
            raise EventValidationError(
                "Invalid event type",
                code=INVALID_EVENT_TYPE,
                extra={"validTypes": VALID_EVENT_TYPES},
            )
    else:
        event_type = _require_string(payload, "type")

    session_id = _require_string(payload, "sessionId")
    country = _require_string(payload, "country")
    extra = _extract_extra(payload)

    if strict:
        if event_type == EventType.IMAGE_VIEW.value and not is_number(extra.get("imageIndex")):
            raise EventValidationError(
                "image_view requires extra.imageIndex (number)",
                code=MISSING_TYPE_SPECIFIC_FIELD,
                extra={"field": "extra.imageIndex"},
            )
        if event_type == EventType.CODE_COPY.value and not extra.get("codeVersion"):
            raise EventValidationError(
                "code_copy requires extra.codeVersion",
                code=MISSING_TYPE_SPECIFIC_FIELD,
                extra={"field": "extra.codeVersion"},
            )

    return EventDraft(type=event_type, session_id=session_id, country=country, extra=extra)
