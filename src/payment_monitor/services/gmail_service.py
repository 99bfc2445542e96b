"""Gmail alert delivery for failed payments.

Sends one HTML email per failed payment through the Gmail API using OAuth
user credentials (access token + refresh token). Delivery failures are
returned as DeliveryResult instead of being raised.
"""

import base64
import html
import logging
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from payment_monitor.config import Settings, get_settings
from payment_monitor.models.errors import describe_stripe_failure
from payment_monitor.models.payment import NOT_AVAILABLE, FailedPaymentEvent
from payment_monitor.models.results import DeliveryResult

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
ALERT_SUBJECT = "🚨 Payment Failed Alert - Stripe"

ALERT_TEMPLATE = """\
<html>
<body>
  <h2 style="color: #d73a49;">Payment Failed Alert</h2>

  <p><strong>Payment ID:</strong> {payment_id}</p>
  <p><strong>Amount:</strong> ${amount} {currency}</p>
  <p><strong>Customer:</strong> {customer_email}</p>
  <p><strong>Failure Reason:</strong> {failure_reason}</p>
  <p><strong>Failure Code:</strong> {failure_code}</p>
  <p><strong>Details:</strong> {failure_message}</p>
  <p><strong>Time:</strong> {failed_at}</p>

  <p><a href="{dashboard_url}" target="_blank">View in Stripe Dashboard</a></p>
</body>
</html>
"""


class GmailServiceError(Exception):
    """Raised when the Gmail client cannot be created or used."""

    pass


def render_alert(event: FailedPaymentEvent) -> tuple[str, str]:
    """Render the alert subject and HTML body for a failed payment.

    Args:
        event: The failed payment.

    Returns:
        Tuple of (subject, html_body).
    """
    failure_code = event.failure_code or NOT_AVAILABLE
    description = describe_stripe_failure(event.failure_code)
    if description:
        failure_code = f"{failure_code} ({description})"

    body = ALERT_TEMPLATE.format(
        payment_id=html.escape(event.id),
        amount=event.amount_decimal,
        currency=html.escape(event.currency),
        customer_email=html.escape(event.customer_email or NOT_AVAILABLE),
        failure_reason=html.escape(event.failure_reason or NOT_AVAILABLE),
        failure_code=html.escape(failure_code),
        failure_message=html.escape(event.failure_message or NOT_AVAILABLE),
        failed_at=event.failed_at_display,
        dashboard_url=html.escape(event.dashboard_url, quote=True),
    )
    return ALERT_SUBJECT, body


def build_raw_message(recipient: str, subject: str, body: str) -> str:
    """Build a base64url-encoded MIME message for the Gmail API.

    Args:
        recipient: Destination address.
        subject: Message subject (may contain non-ASCII characters).
        body: HTML body.

    Returns:
        The ``raw`` field expected by users.messages.send.
    """
    message = MIMEText(body, "html", "utf-8")
    message["To"] = recipient
    message["Subject"] = subject
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


class GmailNotifier:
    """Sends failed-payment alerts to a single configured mailbox.

    Usage:
        notifier = get_gmail_notifier()
        result = notifier.send_alert(event)
        if not result.ok:
            ...
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the notifier.

        Args:
            settings: Configuration to use. Defaults to get_settings().
        """
        self._settings = settings or get_settings()
        self._service: Any = None
        self._recipient: str | None = self._settings.alert_email_to

    def _get_service(self) -> Any:
        """Get or create the Gmail API resource (lazy initialization).

        Raises:
            GmailServiceError: If no OAuth credentials are configured.
        """
        if self._service is None:
            if not self._settings.gmail_configured:
                raise GmailServiceError("Gmail OAuth credentials are not configured")

            credentials = Credentials(
                token=self._settings.gmail_access_token,
                refresh_token=self._settings.gmail_refresh_token,
                token_uri=GOOGLE_TOKEN_URI,
                client_id=self._settings.gmail_client_id,
                client_secret=self._settings.gmail_client_secret,
                scopes=GMAIL_SCOPES,
            )
            http = AuthorizedHttp(
                credentials,
                http=httplib2.Http(timeout=self._settings.external_timeout_seconds),
            )
            self._service = build("gmail", "v1", http=http, cache_discovery=False)
            logger.info("Gmail client initialized")
        return self._service

    def _get_recipient(self) -> str:
        """Resolve the alert recipient, defaulting to the authenticated mailbox."""
        if self._recipient is None:
            profile = self._get_service().users().getProfile(userId="me").execute()
            recipient = profile.get("emailAddress") if isinstance(profile, dict) else None
            if not recipient:
                raise GmailServiceError("Gmail profile has no email address; set ALERT_EMAIL_TO")
            self._recipient = recipient
            logger.info("Alert recipient defaulted to authenticated mailbox %s", self._recipient)
        return self._recipient

    def send_alert(self, event: FailedPaymentEvent) -> DeliveryResult:
        """Send one alert email for a failed payment.

        Args:
            event: The failed payment (already enriched).

        Returns:
            DeliveryResult with the Gmail message ID, or the error message.
        """
        try:
            service = self._get_service()
            subject, body = render_alert(event)
            raw = build_raw_message(self._get_recipient(), subject, body)
            sent = (
                service.users()
                .messages()
                .send(userId="me", body={"raw": raw})
                .execute()
            )
        except (GmailServiceError, GoogleAuthError, HttpError, httplib2.HttpLib2Error, OSError) as e:
            logger.error("Gmail send failed for payment %s: %s", event.id, e)
            return DeliveryResult.failure(str(e) or e.__class__.__name__)
        except Exception as e:
            # Alert delivery never aborts the pipeline
            logger.exception("Unexpected Gmail error for payment %s", event.id)
            return DeliveryResult.failure(str(e) or e.__class__.__name__)

        message_id = sent.get("id") if isinstance(sent, dict) else None
        logger.info("Gmail message %s sent for payment %s", message_id, event.id)
        return DeliveryResult.success(message_id)


@lru_cache(maxsize=1)
def get_gmail_notifier() -> GmailNotifier:
    """Get the shared GmailNotifier instance (singleton pattern)."""
    return GmailNotifier()
