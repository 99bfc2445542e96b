"""Pytest configuration and fixtures for the failed payments monitor tests.

This module provides reusable fixtures for testing:
- Environment isolation (no real credentials leak into tests)
- Fake notifier / record store / Stripe service wired into a real pipeline
- Sample Stripe payloads and webhook signatures
"""

import hashlib
import hmac
import json
import os
import time
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

# === Environment Setup ===

# Strip deployment settings before anything reads Settings
for _name in (
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "GMAIL_ACCESS_TOKEN",
    "GMAIL_REFRESH_TOKEN",
    "GMAIL_CLIENT_ID",
    "GMAIL_CLIENT_SECRET",
    "ALERT_EMAIL_TO",
    "AIRTABLE_API_KEY",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TABLE_NAME",
    "SSM_PARAMETER_PREFIX",
    "PORT",
    "EXTERNAL_TIMEOUT_SECONDS",
):
    os.environ.pop(_name, None)

os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from payment_monitor.api.dependencies import reset_services  # noqa: E402
from payment_monitor.config import Settings  # noqa: E402
from payment_monitor.models.results import DeliveryResult, EnrichmentResult  # noqa: E402
from payment_monitor.services.activity_log import ActivityLog, get_activity_log  # noqa: E402
from payment_monitor.services.airtable_service import AirtableStore  # noqa: E402
from payment_monitor.services.gmail_service import GmailNotifier  # noqa: E402
from payment_monitor.services.pipeline import FailedPaymentPipeline  # noqa: E402
from payment_monitor.services.stripe_service import StripeService  # noqa: E402

TEST_WEBHOOK_SECRET = "whsec_test_secret_for_testing"
TEST_CUSTOMER_EMAIL = "customer@example.com"


# === Singleton reset ===


@pytest.fixture(autouse=True)
def reset_service_singletons() -> Generator[None, None, None]:
    """Reset cached services (and the shared activity log) around each test."""
    reset_services()
    yield
    reset_services()


# === Helpers ===


def create_stripe_signature(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed_payload = f"{timestamp}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def make_event(event_type: str, obj: dict[str, Any], event_id: str = "evt_test_123") -> dict[str, Any]:
    """Wrap a Stripe object in an event envelope."""
    return {
        "id": event_id,
        "object": "event",
        "type": event_type,
        "created": 1704067200,
        "data": {"object": obj},
    }


def encode(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode("utf-8")


# === Sample Data Fixtures ===


@pytest.fixture
def sample_charge() -> dict[str, Any]:
    """Sample failed Charge object (charge.failed)."""
    return {
        "id": "ch_3ABC123DEF456",
        "object": "charge",
        "amount": 4999,
        "currency": "eur",
        "customer": "cus_ABC123",
        "failure_code": "card_declined",
        "failure_message": "Your card has insufficient funds.",
        "outcome": {"reason": "insufficient_funds", "type": "issuer_declined"},
        "created": 1704067200,  # 2024-01-01 00:00:00 UTC
    }


@pytest.fixture
def sample_payment_intent() -> dict[str, Any]:
    """Sample PaymentIntent object (payment_intent.payment_failed)."""
    return {
        "id": "pi_3ABC123DEF456",
        "object": "payment_intent",
        "amount": 2500,
        "currency": "usd",
        "customer": "cus_ABC123",
        "last_payment_error": {
            "code": "card_declined",
            "decline_code": "insufficient_funds",
            "message": "Your card was declined.",
        },
        "created": 1704067200,
    }


@pytest.fixture
def sample_invoice() -> dict[str, Any]:
    """Sample Invoice object (invoice.payment_failed)."""
    return {
        "id": "in_1ABC123",
        "object": "invoice",
        "amount_due": 1500,
        "currency": "gbp",
        "customer": "cus_INV123",
        "customer_email": "billing@example.com",
        "created": 1704067200,
    }


# === Service Fixtures ===


@pytest.fixture
def secure_settings() -> Settings:
    """Settings with webhook signature verification enabled."""
    return Settings(stripe_webhook_secret=TEST_WEBHOOK_SECRET)


@pytest.fixture
def insecure_settings() -> Settings:
    """Settings without a webhook secret (reduced-trust mode)."""
    return Settings()


@pytest.fixture
def activity() -> ActivityLog:
    """The shared activity log (reset between tests)."""
    return get_activity_log()


@pytest.fixture
def mock_stripe_service() -> MagicMock:
    """Stripe service whose customer lookup succeeds."""
    service = MagicMock(spec=StripeService)
    service.get_customer_email.return_value = EnrichmentResult(email=TEST_CUSTOMER_EMAIL)
    return service


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Gmail notifier that always delivers."""
    notifier = MagicMock(spec=GmailNotifier)
    notifier.send_alert.return_value = DeliveryResult.success("msg_123")
    return notifier


@pytest.fixture
def mock_store() -> MagicMock:
    """Airtable store that always writes."""
    store = MagicMock(spec=AirtableStore)
    store.add_failed_payment = AsyncMock(return_value=DeliveryResult.success("rec123"))
    return store


@pytest.fixture
def pipeline(
    activity: ActivityLog,
    mock_stripe_service: MagicMock,
    mock_notifier: MagicMock,
    mock_store: MagicMock,
) -> FailedPaymentPipeline:
    """Real pipeline wired to fake external services."""
    return FailedPaymentPipeline(
        activity=activity,
        stripe_service=mock_stripe_service,
        notifier=mock_notifier,
        store=mock_store,
    )
