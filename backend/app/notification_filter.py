"""Notification filter - decides whether a record state is notify-worthy."""

import logging
from dataclasses import dataclass
from typing import Optional

from .events import NOTIFIABLE_STATUSES, RecordKind, Status
from .normalizer import normalize_status, normalize_text
from .notification_config import NotificationConfig

logger = logging.getLogger(__name__)

PAY_STUB_NOTIFICATION_TYPE = "pay_stub"


@dataclass
class ApplicationSignals:
    """Normalized notification-relevant fields of an application record."""

    status: Status
    admin_notes: Optional[str] = None
    needs_action_note: Optional[str] = None
    rejection_reason: Optional[str] = None

    @classmethod
    def from_record(cls, record: dict) -> "ApplicationSignals":
        return cls(
            status=normalize_status(record.get("status")),
            admin_notes=normalize_text(record.get("adminNotes")),
            needs_action_note=normalize_text(record.get("needsActionNote")),
            rejection_reason=normalize_text(record.get("rejectionReason")),
        )

    @property
    def has_notes(self) -> bool:
        return bool(self.admin_notes or self.needs_action_note or self.rejection_reason)


class NotificationFilter:
    """Classifies records against notification policy."""

    def __init__(self, config: NotificationConfig):
        self.config = config

    def is_kind_enabled(self, kind: RecordKind) -> bool:
        return self.config.is_kind_enabled(kind)

    def is_notify_worthy(self, kind: RecordKind, record: dict) -> bool:
        """Check if the record's current state warrants a notification.

        Args:
            kind: Record kind
            record: The authoritative record

        Returns:
            True for pay stubs; for applications, True when the status is
            notifiable or any note is present
        """
        if kind == RecordKind.PAY_STUB:
            return True

        signals = ApplicationSignals.from_record(record)
        if signals.status in NOTIFIABLE_STATUSES or signals.has_notes:
            return True

        logger.debug(f"Not notify-worthy: status {signals.status.value}, no notes")
        return False

    def notification_type(self, kind: RecordKind, record: dict) -> str:
        """Build the semantic label for a notification.

        Applications join the present signals, e.g.
        "status:needs_action|admin_note". Pay stubs are always "pay_stub".
        """
        if kind == RecordKind.PAY_STUB:
            return PAY_STUB_NOTIFICATION_TYPE

        signals = ApplicationSignals.from_record(record)
        parts = []
        if signals.status:
            parts.append(f"status:{signals.status.value}")
        if signals.admin_notes:
            parts.append("admin_note")
        if signals.needs_action_note:
            parts.append("needs_action_note")
        if signals.rejection_reason:
            parts.append("rejection_reason")
        return "|".join(parts) or "status"
