"""Trigger and field normalization.

Turns the heterogeneous trigger envelope (headers + body) into a
TriggerEvent, and loosely-typed record fields into canonical values.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from .events import EnvelopeShape, EventKind, Status, TriggerEvent

logger = logging.getLogger(__name__)

EVENT_HEADER = "x-appwrite-event"
EVENTS_HEADER = "x-appwrite-events"

# Legacy and free-text status values
STATUS_ALIASES = {
    "pending": Status.IN_REVIEW,
    "in_review": Status.IN_REVIEW,
    "action_required": Status.NEEDS_ACTION,
    "new": Status.SUBMITTED,
}

TRUTHY_VALUES = {"1", "true", "yes", "on"}


def parse_json(value: Union[str, bytes, Mapping, None]) -> Optional[dict]:
    """Decode a JSON body, passing mappings through.

    Returns None for empty, unparseable or non-object bodies.
    """
    if value is None or value == "" or value == b"":
        return None
    if isinstance(value, Mapping):
        return dict(value)
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_boolean(value: Any) -> bool:
    """Parse a loosely-typed flag ("1", "yes", "on", True...)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Unparseable values return None.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_text(value: Any) -> Optional[str]:
    """Trim a text field; empty-after-trim becomes None."""
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def normalize_status(value: Any) -> Status:
    """Map a free-text status onto the Status enum.

    Case-insensitive; hyphens and spaces count as underscores. Empty and
    unknown values fall back to SUBMITTED, which is not notifiable.
    """
    text = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if not text:
        return Status.SUBMITTED
    if text in STATUS_ALIASES:
        return STATUS_ALIASES[text]
    try:
        return Status(text)
    except ValueError:
        logger.debug(f"Unknown status {value!r}, defaulting to submitted")
        return Status.SUBMITTED


def mask_email(email: Any) -> str:
    """Mask an address for logging: "jane@x.org" -> "j***e@x.org"."""
    value = str(email or "").strip()
    parts = value.split("@")
    if len(parts) != 2:
        return "unknown"
    name, domain = parts
    if not name:
        return f"***@{domain}"
    if len(name) == 1:
        return f"{name}***@{domain}"
    return f"{name[0]}***{name[-1]}@{domain}"


def _lower_headers(headers: Optional[Mapping]) -> dict:
    if not headers:
        return {}
    return {str(key).lower(): value for key, value in headers.items()}


def get_event_name(headers: Optional[Mapping], body: Optional[dict]) -> Optional[str]:
    """Find the event name in headers first, then in the body.

    Multi-event headers are comma-joined; the first entry wins.
    """
    lowered = _lower_headers(headers)

    single = normalize_text(lowered.get(EVENT_HEADER))
    if single:
        return single

    multiple = lowered.get(EVENTS_HEADER)
    if isinstance(multiple, str):
        first = normalize_text(multiple.split(",")[0])
        if first:
            return first

    if body:
        events = body.get("events")
        if isinstance(events, list) and events:
            return normalize_text(events[0])
        event = body.get("event")
        if isinstance(event, str):
            return normalize_text(event)

    return None


def guess_event_kind(event_name: Optional[str], document: Optional[dict]) -> EventKind:
    """Derive the change kind.

    Uses the last dot-separated segment of the event name; without a name,
    equal creation/update timestamps mean a create, anything else an update.
    """
    if event_name:
        segment = event_name.split(".")[-1].strip().lower()
        try:
            return EventKind(segment)
        except ValueError:
            return EventKind.OTHER

    if document:
        created = document.get("$createdAt")
        updated = document.get("$updatedAt")
        if created and updated and created == updated:
            return EventKind.CREATE
    return EventKind.UPDATE


def unwrap_envelope(body: dict) -> tuple[Optional[dict], EnvelopeShape]:
    """Return the record carried by the body and the envelope shape."""
    if "payload" in body:
        inner = parse_json(body.get("payload"))
        return inner, EnvelopeShape.WRAPPED
    return body, EnvelopeShape.RAW


def parse_trigger(
    headers: Optional[Mapping], body: Union[str, bytes, Mapping, None]
) -> TriggerEvent:
    """Normalize a raw trigger into a TriggerEvent.

    Args:
        headers: Request headers (any casing, may be None)
        body: Raw request body or an already-decoded mapping

    Returns:
        TriggerEvent; its document is None when the body was unusable
    """
    parsed = parse_json(body)
    if parsed is None:
        return TriggerEvent(document=None, headers=_lower_headers(headers))

    document, shape = unwrap_envelope(parsed)

    # Event names may live on the outer envelope or on the record
    event_name = get_event_name(headers, parsed)
    if event_name is None and document is not parsed:
        event_name = get_event_name(None, document)

    return TriggerEvent(
        document=document,
        event_name=event_name,
        event_kind=guess_event_kind(event_name, document),
        shape=shape,
        headers=_lower_headers(headers),
    )
