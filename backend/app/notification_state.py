"""Notification state management.

The state lives on the record itself as three fields that are always
written together.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .normalizer import normalize_text, parse_timestamp

LAST_NOTIFIED_AT = "lastNotifiedAt"
LAST_NOTIFIED_HASH = "lastNotifiedHash"
LAST_NOTIFIED_TYPE = "lastNotifiedType"


@dataclass
class NotificationState:
    """Notification state as read from a record.

    Attributes:
        last_notified_at: Time of the most recent successful send
        last_notified_hash: Fingerprint of the content that triggered it
        last_notified_type: Semantic label of that send
    """

    last_notified_at: Optional[datetime] = None
    last_notified_hash: Optional[str] = None
    last_notified_type: Optional[str] = None

    def is_duplicate(self, fingerprint: str) -> bool:
        """Check if the fingerprint was already notified."""
        return bool(self.last_notified_hash) and self.last_notified_hash == fingerprint


def read_notification_state(record: dict) -> NotificationState:
    """Read notification state from a record, tolerating bad values."""
    return NotificationState(
        last_notified_at=parse_timestamp(record.get(LAST_NOTIFIED_AT)),
        last_notified_hash=normalize_text(record.get(LAST_NOTIFIED_HASH)),
        last_notified_type=normalize_text(record.get(LAST_NOTIFIED_TYPE)),
    )


def build_notification_update(
    now: datetime, notification_type: str, fingerprint: str
) -> dict:
    """Build the partial update persisted after a successful send.

    Args:
        now: Send time
        notification_type: Label from the notification filter
        fingerprint: The fingerprint computed before sending

    Returns:
        Dict with all three notification state fields
    """
    return {
        LAST_NOTIFIED_AT: now.isoformat(),
        LAST_NOTIFIED_TYPE: notification_type,
        LAST_NOTIFIED_HASH: fingerprint,
    }
