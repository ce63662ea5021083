"""Event data classes for the notification dispatcher."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RecordKind(Enum):
    """Kinds of records that can trigger notifications."""

    APPLICATION = "application"
    PAY_STUB = "pay_stub"


class EventKind(Enum):
    """Kind of change carried by a trigger."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    OTHER = "other"


class Status(Enum):
    """Canonical application statuses."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_ACTION = "needs_action"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    Status.DRAFT: "Draft",
    Status.SUBMITTED: "Submitted",
    Status.IN_REVIEW: "In Review",
    Status.APPROVED: "Approved",
    Status.REJECTED: "Rejected",
    Status.NEEDS_ACTION: "Needs Action",
}

# Statuses that warrant a notification on their own
NOTIFIABLE_STATUSES = {
    Status.IN_REVIEW,
    Status.APPROVED,
    Status.REJECTED,
    Status.NEEDS_ACTION,
}


class EnvelopeShape(Enum):
    """How the document was carried in the trigger body."""

    RAW = "raw"
    WRAPPED = "wrapped"


@dataclass
class TriggerEvent:
    """A normalized document-change trigger.

    Attributes:
        document: The changed record (None when the body carried nothing usable)
        event_name: Full event name, e.g. "databases.main.collections.x.documents.y.update"
        event_kind: Kind of change, derived from the event name or timestamps
        shape: Whether the record was the body itself or wrapped under "payload"
    """

    document: Optional[dict]
    event_name: Optional[str] = None
    event_kind: EventKind = EventKind.OTHER
    shape: EnvelopeShape = EnvelopeShape.RAW
    headers: dict = field(default_factory=dict)

    @property
    def document_id(self) -> Optional[str]:
        if not self.document:
            return None
        value = self.document.get("$id") or self.document.get("id")
        return str(value) if value else None

    @property
    def collection_id(self) -> Optional[str]:
        if not self.document:
            return None
        return self.document.get("$collectionId") or self.document.get("collectionId")

    @property
    def database_id(self) -> Optional[str]:
        if not self.document:
            return None
        return self.document.get("$databaseId") or self.document.get("databaseId")
