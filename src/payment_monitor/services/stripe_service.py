"""Stripe integration for webhook verification and customer lookups.

Provides integration with Stripe using the v8+ StripeClient pattern.
Credentials come from Settings (environment or SSM).
"""

import hashlib
import json
import logging
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from payment_monitor.config import Settings, get_settings
from payment_monitor.models.results import EnrichmentResult

logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Raised when a Stripe operation fails."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        """Initialize with message and optional Stripe error code.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
        """
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class StripeService:
    """Service for Stripe operations used by the monitor.

    Handles:
    - Webhook signature verification
    - Customer email lookup (payment enrichment)

    Usage:
        stripe_svc = get_stripe_service()
        event = stripe_svc.verify_webhook_signature(payload, signature)
        result = stripe_svc.get_customer_email("cus_123")
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize Stripe service.

        Args:
            settings: Configuration to use. Defaults to get_settings().
        """
        self._settings = settings or get_settings()
        self._client: StripeClient | None = None

    @property
    def webhook_secret(self) -> str | None:
        return self._settings.stripe_webhook_secret

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization).

        Returns:
            Initialized StripeClient instance.

        Raises:
            StripeServiceError: If no API key is configured.
        """
        if self._client is None:
            secret_key = self._settings.stripe_secret_key
            if not secret_key:
                raise StripeServiceError("STRIPE_SECRET_KEY is not configured")
            self._client = StripeClient(
                secret_key,
                http_client=stripe.RequestsClient(
                    timeout=self._settings.external_timeout_seconds
                ),
            )
            logger.info("Stripe client initialized")
        return self._client

    def verify_webhook_signature(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            Parsed Stripe event dictionary.

        Raises:
            StripeServiceError: If the secret is missing, the signature is
                invalid, or the payload is not a JSON object.
        """
        if not self.webhook_secret:
            raise StripeServiceError("STRIPE_WEBHOOK_SECRET is not configured")
        if not signature:
            raise StripeServiceError("Missing Stripe-Signature header")

        try:
            body = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StripeServiceError("Webhook payload is not valid UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise StripeServiceError(f"Invalid webhook signature: {e}") from e

        event = self.parse_event(payload)
        logger.info("Webhook signature verified for event: %s", event.get("id"))
        return event

    @staticmethod
    def parse_event(payload: bytes) -> dict[str, Any]:
        """Parse an event body without verifying its signature.

        Args:
            payload: Raw request body bytes.

        Returns:
            Parsed event dictionary.

        Raises:
            StripeServiceError: If the body is not a JSON object.
        """
        try:
            event = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise StripeServiceError(f"Invalid payload: {e}") from e

        if not isinstance(event, dict):
            raise StripeServiceError("Invalid payload: expected a JSON object")
        return event

    def get_customer_email(self, customer_ref: str) -> EnrichmentResult:
        """Look up a customer's email address.

        Never raises; lookup failures are returned as EnrichmentResult.error.

        Args:
            customer_ref: Stripe customer ID (cus_xxx).

        Returns:
            EnrichmentResult with either the email or the failure reason.
        """
        try:
            client = self._get_client()
            customer = client.customers.retrieve(customer_ref)
        except StripeServiceError as e:
            return EnrichmentResult(error=str(e))
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe customer lookup failed for %s: %s (code: %s)",
                customer_ref,
                str(e),
                error_code,
            )
            return EnrichmentResult(error=str(e) or "Stripe customer lookup failed")

        if getattr(customer, "deleted", False):
            return EnrichmentResult(error=f"Customer {customer_ref} has been deleted")

        email = getattr(customer, "email", None)
        if not email:
            return EnrichmentResult(error=f"Customer {customer_ref} has no email")

        return EnrichmentResult(email=email)

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute SHA-256 hash of a webhook payload for log correlation.

        Args:
            payload: Raw webhook payload bytes.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        return hashlib.sha256(payload).hexdigest()


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance (singleton pattern)."""
    return StripeService()
