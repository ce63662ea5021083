"""Tests for models."""

from app.models import Document, NotificationLog


class TestDocument:
    """Tests for the Document model."""

    def test_to_record_adds_system_fields(self, session_factory):
        db = session_factory()
        try:
            document = Document(
                database_id="main",
                collection_id="pay_stubs",
                id="stub-1",
                data={"netPay": 10},
            )
            db.add(document)
            db.commit()
            db.refresh(document)

            record = document.to_record()
        finally:
            db.close()

        assert record["netPay"] == 10
        assert record["$id"] == "stub-1"
        assert record["$collectionId"] == "pay_stubs"
        assert record["$databaseId"] == "main"
        assert record["$createdAt"] is not None

    def test_version_defaults_to_one(self, session_factory):
        db = session_factory()
        try:
            document = Document(database_id="main", collection_id="c", id="d", data={})
            db.add(document)
            db.commit()
            db.refresh(document)
            assert document.version == 1
        finally:
            db.close()

    def test_to_record_does_not_mutate_data(self):
        document = Document(database_id="main", collection_id="c", id="d", data={"a": 1})
        document.to_record()
        assert document.data == {"a": 1}


class TestNotificationLog:
    """Tests for the NotificationLog model."""

    def test_defaults(self, session_factory):
        db = session_factory()
        try:
            entry = NotificationLog(
                id="m1", recipient_user_id="u1", subject="S", body="B"
            )
            db.add(entry)
            db.commit()
            db.refresh(entry)
            assert entry.is_html is True
            assert entry.sent_at is not None
        finally:
            db.close()
