"""Tests for the notifyctl CLI."""

import hashlib
import hmac
import json

import pytest
from click.testing import CliRunner
from unittest.mock import patch

from notifyctl import cli, format_outcome, sign


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def payload_file(tmp_path, application_record):
    path = tmp_path / "trigger.json"
    path.write_text(json.dumps(application_record))
    return path


class TestSign:
    """Tests for request signing."""

    def test_matches_hmac_sha256(self):
        body = b'{"a": 1}'
        expected = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
        assert sign(body, "secret") == expected


class TestFormatOutcome:
    """Tests for format_outcome."""

    @pytest.mark.parametrize(
        "data,text,border",
        [
            ({"ok": True, "sent": True, "type": "pay_stub"}, "Sent pay_stub notification", "green"),
            ({"ok": True, "dryRun": True, "type": "application"}, "Dry run: application", "cyan"),
            ({"ok": True, "ignored": "throttled"}, "Ignored: throttled", "yellow"),
            ({"ok": False, "error": "send_failed: x"}, "Error: send_failed: x", "red"),
        ],
    )
    def test_outcomes(self, data, text, border):
        panel = format_outcome(data)
        assert text in panel.renderable.plain
        assert panel.border_style == border


class TestReplayCommand:
    """Tests for the replay command."""

    def test_sends_signed_payload(self, runner, payload_file):
        with patch("notifyctl.api_post") as mock_post:
            mock_post.return_value = {"ok": True, "sent": True, "type": "application"}
            result = runner.invoke(
                cli,
                ["replay", str(payload_file), "-e", "x.update", "--secret", "s3cret"],
            )

        assert result.exit_code == 0
        endpoint, body, headers = mock_post.call_args[0]
        assert endpoint == "/webhooks/document"
        assert headers["x-appwrite-event"] == "x.update"
        assert headers["X-Webhook-Signature"] == sign(body, "s3cret")
        assert "Sent application notification" in result.output

    def test_error_outcome_exits_nonzero(self, runner, payload_file):
        with patch("notifyctl.api_post") as mock_post:
            mock_post.return_value = {"ok": False, "error": "send_failed: down"}
            result = runner.invoke(cli, ["replay", str(payload_file)])

        assert result.exit_code == 1
        assert "send_failed" in result.output

    def test_invalid_json_file(self, runner, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with patch("notifyctl.api_post") as mock_post:
            result = runner.invoke(cli, ["replay", str(path)])

        assert result.exit_code == 1
        mock_post.assert_not_called()


class TestEvaluateCommand:
    """Tests for the evaluate command."""

    def test_shows_decision(self, runner, payload_file):
        with patch("notifyctl.api_post") as mock_post:
            mock_post.return_value = {
                "kind": "application",
                "status": "in_review",
                "notifyWorthy": True,
                "notificationType": "status:in_review",
                "fingerprint": "abc123",
                "duplicate": True,
            }
            result = runner.invoke(cli, ["evaluate", str(payload_file)])

        assert result.exit_code == 0
        assert mock_post.call_args[0][0] == "/evaluate"
        assert "status:in_review" in result.output
        assert "already notified" in result.output


class TestHealthCommand:
    """Tests for the health command."""

    def test_dry_run_mode(self, runner):
        with patch("notifyctl.api_get") as mock_get:
            mock_get.return_value = {"status": "healthy", "dryRun": True, "timestamp": "t"}
            result = runner.invoke(cli, ["health"])

        assert result.exit_code == 0
        assert "healthy" in result.output
        assert "dry run" in result.output
