"""Unit tests for Gmail alert rendering and delivery.

The Gmail API resource is replaced by a MagicMock; no network calls are made.
"""

import base64
import email
from email.header import decode_header, make_header
from unittest.mock import MagicMock, patch

import pytest

from payment_monitor.config import Settings
from payment_monitor.models.payment import FailedPaymentEvent
from payment_monitor.services.gmail_service import (
    ALERT_SUBJECT,
    GmailNotifier,
    build_raw_message,
    render_alert,
)

GMAIL_SETTINGS = Settings(
    gmail_access_token="ya29.test",
    gmail_refresh_token="1//refresh",
    alert_email_to="ops@example.com",
)


@pytest.fixture
def event() -> FailedPaymentEvent:
    return FailedPaymentEvent(
        id="pi_test_1",
        amount=2500,
        currency="usd",
        customer_ref="cus_test",
        customer_email="test@example.com",
        failure_reason="insufficient_funds",
        failure_code="card_declined",
        failure_message="Your card was declined.",
        created_at=1704067200,
    )


@pytest.fixture
def gmail_api() -> MagicMock:
    api = MagicMock()
    api.users.return_value.messages.return_value.send.return_value.execute.return_value = {
        "id": "msg_abc"
    }
    api.users.return_value.getProfile.return_value.execute.return_value = {
        "emailAddress": "me@example.com"
    }
    return api


def _decode_raw(raw: str) -> email.message.Message:
    return email.message_from_bytes(base64.urlsafe_b64decode(raw.encode("ascii")))


class TestRenderAlert:
    """render_alert()"""

    def test_contains_all_fields(self, event):
        subject, body = render_alert(event)

        assert subject == ALERT_SUBJECT
        assert "pi_test_1" in body
        assert "$25.00 USD" in body
        assert "test@example.com" in body
        assert "insufficient_funds" in body
        assert "card_declined" in body
        assert "2024-01-01 00:00:00 UTC" in body
        assert "https://dashboard.stripe.com/payments/pi_test_1" in body

    def test_known_failure_code_is_described(self, event):
        _, body = render_alert(event)

        assert "card_declined (The card was declined.)" in body

    def test_missing_fields_use_sentinel(self):
        _, body = render_alert(FailedPaymentEvent(id="ch_1", amount=100, created_at=0))

        assert "<strong>Customer:</strong> N/A" in body
        assert "<strong>Failure Reason:</strong> N/A" in body
        assert "<strong>Failure Code:</strong> N/A" in body

    def test_values_are_html_escaped(self):
        _, body = render_alert(
            FailedPaymentEvent(id="ch_1", failure_message="<script>alert(1)</script>")
        )

        assert "<script>" not in body
        assert "&lt;script&gt;" in body


class TestBuildRawMessage:
    """build_raw_message()"""

    def test_round_trips_headers_and_body(self):
        raw = build_raw_message("ops@example.com", ALERT_SUBJECT, "<p>$25.00</p>")

        message = _decode_raw(raw)

        assert message["To"] == "ops@example.com"
        assert str(make_header(decode_header(message["Subject"]))) == ALERT_SUBJECT
        assert message.get_content_type() == "text/html"
        assert "$25.00" in message.get_payload(decode=True).decode("utf-8")


class TestSendAlert:
    """GmailNotifier.send_alert()"""

    def test_sends_one_message(self, event, gmail_api):
        notifier = GmailNotifier(GMAIL_SETTINGS)

        with patch("payment_monitor.services.gmail_service.build", return_value=gmail_api):
            result = notifier.send_alert(event)

        assert result.ok
        assert result.reference == "msg_abc"

        send = gmail_api.users.return_value.messages.return_value.send
        send.assert_called_once()
        kwargs = send.call_args.kwargs
        assert kwargs["userId"] == "me"

        message = _decode_raw(kwargs["body"]["raw"])
        assert message["To"] == "ops@example.com"
        assert "$25.00 USD" in message.get_payload(decode=True).decode("utf-8")

    def test_recipient_defaults_to_authenticated_mailbox(self, event, gmail_api):
        notifier = GmailNotifier(
            Settings(gmail_access_token="ya29.test", gmail_refresh_token="1//refresh")
        )

        with patch("payment_monitor.services.gmail_service.build", return_value=gmail_api):
            notifier.send_alert(event)
            notifier.send_alert(event)

        gmail_api.users.return_value.getProfile.assert_called_once_with(userId="me")
        raw = gmail_api.users.return_value.messages.return_value.send.call_args.kwargs["body"]["raw"]
        assert _decode_raw(raw)["To"] == "me@example.com"

    def test_not_configured_returns_failure(self, event):
        result = GmailNotifier(Settings()).send_alert(event)

        assert not result.ok
        assert "not configured" in result.error

    def test_transport_error_returns_failure(self, event, gmail_api):
        gmail_api.users.return_value.messages.return_value.send.return_value.execute.side_effect = (
            TimeoutError("timed out")
        )
        notifier = GmailNotifier(GMAIL_SETTINGS)

        with patch("payment_monitor.services.gmail_service.build", return_value=gmail_api):
            result = notifier.send_alert(event)

        assert not result.ok
        assert result.error == "timed out"

    def test_client_built_once_with_timeout(self, event, gmail_api):
        notifier = GmailNotifier(GMAIL_SETTINGS.model_copy(update={"external_timeout_seconds": 3}))

        with patch(
            "payment_monitor.services.gmail_service.build", return_value=gmail_api
        ) as mock_build, patch("payment_monitor.services.gmail_service.httplib2.Http") as mock_http:
            notifier.send_alert(event)
            notifier.send_alert(event)

        mock_build.assert_called_once()
        assert mock_build.call_args.args == ("gmail", "v1")
        mock_http.assert_called_once_with(timeout=3)
