"""Tests for event data classes."""

from app.events import (
    EnvelopeShape,
    EventKind,
    NOTIFIABLE_STATUSES,
    RecordKind,
    Status,
    TriggerEvent,
)


class TestTriggerEvent:
    """Tests for TriggerEvent class."""

    def test_reads_appwrite_metadata(self):
        """Identifiers should come from $-prefixed system fields."""
        event = TriggerEvent(
            document={"$id": "doc1", "$collectionId": "pay_stubs", "$databaseId": "main"},
            event_name="databases.main.collections.pay_stubs.documents.doc1.create",
            event_kind=EventKind.CREATE,
        )
        assert event.document_id == "doc1"
        assert event.collection_id == "pay_stubs"
        assert event.database_id == "main"
        assert event.shape == EnvelopeShape.RAW

    def test_falls_back_to_plain_keys(self):
        """Plain id/collectionId/databaseId keys are accepted too."""
        event = TriggerEvent(
            document={"id": 42, "collectionId": "c", "databaseId": "d"}
        )
        assert event.document_id == "42"
        assert event.collection_id == "c"
        assert event.database_id == "d"

    def test_missing_document(self):
        """No document means no identifiers."""
        event = TriggerEvent(document=None)
        assert event.document_id is None
        assert event.collection_id is None
        assert event.database_id is None


class TestEnums:
    """Tests for enum values."""

    def test_record_kind_values(self):
        assert RecordKind.APPLICATION.value == "application"
        assert RecordKind.PAY_STUB.value == "pay_stub"

    def test_status_labels(self):
        assert Status.IN_REVIEW.label == "In Review"
        assert Status.NEEDS_ACTION.label == "Needs Action"

    def test_notifiable_statuses(self):
        """Draft and submitted are never notifiable on their own."""
        assert Status.DRAFT not in NOTIFIABLE_STATUSES
        assert Status.SUBMITTED not in NOTIFIABLE_STATUSES
        assert NOTIFIABLE_STATUSES == {
            Status.IN_REVIEW,
            Status.APPROVED,
            Status.REJECTED,
            Status.NEEDS_ACTION,
        }
