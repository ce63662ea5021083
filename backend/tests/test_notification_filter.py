"""Tests for notification filter."""

import pytest

from app.events import RecordKind, Status
from app.notification_filter import ApplicationSignals, NotificationFilter


@pytest.fixture
def filter(config):
    """Create NotificationFilter instance."""
    return NotificationFilter(config)


class TestApplicationSignals:
    """Tests for ApplicationSignals."""

    def test_from_record_normalizes(self):
        signals = ApplicationSignals.from_record(
            {"status": "Pending", "adminNotes": "  ", "rejectionReason": " bad scan "}
        )
        assert signals.status == Status.IN_REVIEW
        assert signals.admin_notes is None
        assert signals.rejection_reason == "bad scan"
        assert signals.has_notes is True


class TestIsNotifyWorthy:
    """Tests for NotificationFilter.is_notify_worthy."""

    @pytest.mark.parametrize("status", ["in_review", "approved", "rejected", "needs_action"])
    def test_notifiable_status(self, filter, status):
        assert filter.is_notify_worthy(RecordKind.APPLICATION, {"status": status}) is True

    @pytest.mark.parametrize("status", ["draft", "submitted", "", "new"])
    def test_non_notifiable_status(self, filter, status):
        assert filter.is_notify_worthy(RecordKind.APPLICATION, {"status": status}) is False

    def test_note_makes_draft_notify_worthy(self, filter):
        record = {"status": "draft", "needsActionNote": "Sign page 2"}
        assert filter.is_notify_worthy(RecordKind.APPLICATION, record) is True

    def test_blank_notes_do_not_count(self, filter):
        record = {"status": "draft", "adminNotes": "   ", "rejectionReason": ""}
        assert filter.is_notify_worthy(RecordKind.APPLICATION, record) is False

    def test_pay_stub_always_worthy(self, filter):
        assert filter.is_notify_worthy(RecordKind.PAY_STUB, {}) is True


class TestNotificationType:
    """Tests for NotificationFilter.notification_type."""

    def test_status_only(self, filter):
        record = {"status": "in_review"}
        assert filter.notification_type(RecordKind.APPLICATION, record) == "status:in_review"

    def test_fixed_signal_order(self, filter):
        record = {
            "status": "needs_action",
            "rejectionReason": "r",
            "adminNotes": "a",
            "needsActionNote": "n",
        }
        assert filter.notification_type(RecordKind.APPLICATION, record) == (
            "status:needs_action|admin_note|needs_action_note|rejection_reason"
        )

    def test_pay_stub_type(self, filter):
        assert filter.notification_type(RecordKind.PAY_STUB, {"hash": "x"}) == "pay_stub"


class TestKindEnabled:
    """Tests for per-kind enable flags."""

    def test_enabled_by_default(self, filter):
        assert filter.is_kind_enabled(RecordKind.APPLICATION) is True
        assert filter.is_kind_enabled(RecordKind.PAY_STUB) is True

    def test_disabled_kind(self, filter):
        filter.config.kinds[RecordKind.PAY_STUB] = False
        assert filter.is_kind_enabled(RecordKind.PAY_STUB) is False
