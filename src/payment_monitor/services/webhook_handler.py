"""Webhook handler for Stripe payment-failure events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. This enables:
- Unit testing without HTTP overhead
- Reuse across different transport mechanisms
"""

import logging
from functools import lru_cache
from typing import Any

from pydantic import ValidationError

from payment_monitor.config import Settings, get_settings
from payment_monitor.models.activity import Severity
from payment_monitor.models.errors import ErrorCode, RelayError
from payment_monitor.models.payment import FailedPaymentEvent
from payment_monitor.models.results import PipelineOutcome, PipelineStatus
from payment_monitor.services.activity_log import ActivityLog, get_activity_log
from payment_monitor.services.pipeline import FailedPaymentPipeline, get_pipeline
from payment_monitor.services.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)
from payment_monitor.utils.logging import log_webhook_event

logger = logging.getLogger(__name__)

# Event types that trigger the failed payment pipeline
FAILED_PAYMENT_EVENT_TYPES = frozenset(
    {
        "payment_intent.payment_failed",
        "charge.failed",
        "invoice.payment_failed",
    }
)


class WebhookHandler:
    """Verifies, classifies and dispatches Stripe webhook events.

    When no webhook secret is configured, payloads are parsed without
    signature verification. That mode is reported by
    ``Settings.insecure_webhooks`` and announced at startup.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        activity: ActivityLog,
        stripe_service: StripeService,
        pipeline: FailedPaymentPipeline,
    ) -> None:
        self._settings = settings
        self._activity = activity
        self._stripe = stripe_service
        self._pipeline = pipeline

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify (or, in insecure mode, just parse) a webhook payload.

        Args:
            payload: Raw request body.
            signature: Stripe-Signature header value, if any.

        Returns:
            The decoded event.

        Raises:
            RelayError: INVALID_WEBHOOK_SIGNATURE or MALFORMED_WEBHOOK_PAYLOAD.
        """
        try:
            if self._settings.insecure_webhooks:
                return self._stripe.parse_event(payload)
            return self._stripe.verify_webhook_signature(payload, signature)
        except StripeServiceError as e:
            logger.warning(
                "Rejected webhook payload (sha256=%s)",
                self._stripe.compute_payload_hash(payload),
            )
            self._activity.append(
                f"Webhook signature verification failed: {e}", Severity.ERROR
            )
            code = (
                ErrorCode.MALFORMED_WEBHOOK_PAYLOAD
                if self._settings.insecure_webhooks
                else ErrorCode.INVALID_WEBHOOK_SIGNATURE
            )
            raise RelayError(code=code, details={"message": str(e)}) from e

    @staticmethod
    def extract_failed_payment(event: dict[str, Any]) -> FailedPaymentEvent:
        """Convert the event's ``data.object`` into a FailedPaymentEvent.

        Raises:
            RelayError: MALFORMED_WEBHOOK_PAYLOAD if the object is missing or invalid.
        """
        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            raise RelayError(
                code=ErrorCode.MALFORMED_WEBHOOK_PAYLOAD,
                details={"message": "Event has no data.object"},
            )

        try:
            return FailedPaymentEvent.from_stripe_object(obj)
        except ValidationError as e:
            raise RelayError(
                code=ErrorCode.MALFORMED_WEBHOOK_PAYLOAD,
                details={"message": f"Invalid payment object: {e.error_count()} validation error(s)"},
            ) from e

    async def handle(self, event: dict[str, Any]) -> PipelineOutcome | None:
        """Classify an event and run the pipeline for payment failures.

        Args:
            event: Decoded Stripe event.

        Returns:
            The pipeline outcome, or None if the event type was ignored.

        Raises:
            RelayError: If a payment-failure event carries a malformed object.
        """
        event_type = str(event.get("type") or "unknown")
        event_id = str(event.get("id") or "unknown")

        self._activity.append(f"Received Stripe webhook: {event_type}", Severity.INFO)

        if event_type not in FAILED_PAYMENT_EVENT_TYPES:
            log_webhook_event(logger, event_type, event_id, result="skipped")
            return None

        try:
            payment = self.extract_failed_payment(event)
        except RelayError as e:
            self._activity.append(
                f"Ignoring malformed {event_type} event {event_id}: {e.detail_message}",
                Severity.ERROR,
            )
            log_webhook_event(logger, event_type, event_id, result="error", error=e.detail_message)
            raise

        outcome = await self._pipeline.process(payment)
        log_webhook_event(
            logger,
            event_type,
            event_id,
            payment_id=payment.id,
            result="processed" if outcome.status is PipelineStatus.SUCCEEDED else "error",
            error=outcome.error,
        )
        return outcome

    async def receive(self, payload: bytes, signature: str | None) -> PipelineOutcome | None:
        """Verify and handle a raw webhook delivery."""
        event = self.construct_event(payload, signature)
        return await self.handle(event)


@lru_cache(maxsize=1)
def get_webhook_handler() -> WebhookHandler:
    """Get the shared WebhookHandler wired to the shared services."""
    return WebhookHandler(
        settings=get_settings(),
        activity=get_activity_log(),
        stripe_service=get_stripe_service(),
        pipeline=get_pipeline(),
    )
