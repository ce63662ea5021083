"""Tests for notification state management."""

from datetime import datetime, timezone

from app.notification_state import (
    LAST_NOTIFIED_AT,
    LAST_NOTIFIED_HASH,
    LAST_NOTIFIED_TYPE,
    NotificationState,
    build_notification_update,
    read_notification_state,
)


class TestReadNotificationState:
    """Tests for read_notification_state."""

    def test_absent_state(self):
        state = read_notification_state({"status": "approved"})
        assert state == NotificationState()

    def test_reads_all_fields(self):
        state = read_notification_state(
            {
                "lastNotifiedAt": "2026-03-02T11:00:00.000+00:00",
                "lastNotifiedHash": "abc",
                "lastNotifiedType": "status:approved",
            }
        )
        assert state.last_notified_at == datetime(2026, 3, 2, 11, 0, tzinfo=timezone.utc)
        assert state.last_notified_hash == "abc"
        assert state.last_notified_type == "status:approved"

    def test_unparseable_timestamp_is_absent(self):
        state = read_notification_state({"lastNotifiedAt": "yesterday"})
        assert state.last_notified_at is None


class TestIsDuplicate:
    """Tests for NotificationState.is_duplicate."""

    def test_matching_hash(self):
        assert NotificationState(last_notified_hash="abc").is_duplicate("abc") is True

    def test_different_hash(self):
        assert NotificationState(last_notified_hash="abc").is_duplicate("def") is False

    def test_never_notified(self):
        assert NotificationState().is_duplicate("abc") is False


class TestBuildNotificationUpdate:
    """Tests for build_notification_update."""

    def test_writes_all_three_fields(self, now):
        """All three fields are always written together."""
        update = build_notification_update(now, "pay_stub", "digest")
        assert update == {
            LAST_NOTIFIED_AT: now.isoformat(),
            LAST_NOTIFIED_TYPE: "pay_stub",
            LAST_NOTIFIED_HASH: "digest",
        }

    def test_round_trips_through_reader(self, now):
        update = build_notification_update(now, "status:approved", "digest")
        state = read_notification_state(update)
        assert state.last_notified_at == now
        assert state.is_duplicate("digest")
