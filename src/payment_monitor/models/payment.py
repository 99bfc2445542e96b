"""Failed payment event model.

Built from the ``data.object`` of a Stripe payment-failure webhook (a
PaymentIntent, Charge or Invoice) or from the manual test trigger.
"""

import time
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

NOT_AVAILABLE = "N/A"
NO_DETAILS = "No additional details"
DEFAULT_CURRENCY = "USD"
STRIPE_DASHBOARD_URL = "https://dashboard.stripe.com/payments/{payment_id}"


class FailedPaymentEvent(BaseModel):
    """A single failed payment flowing through the alert pipeline.

    Amounts are in minor currency units (cents). The model is frozen;
    enrichment produces a copy with ``customer_email`` filled in.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Stripe object ID (pi_xxx, ch_xxx or in_xxx)",
        examples=["pi_3ABC123DEF456"],
    )
    amount: int = Field(default=0, description="Amount in minor currency units")
    currency: str = Field(default=DEFAULT_CURRENCY, description="Currency code")
    customer_ref: str | None = Field(
        default=None,
        description="Stripe customer ID (cus_xxx)",
        examples=["cus_test"],
    )
    customer_email: str | None = Field(default=None, description="Customer contact email")
    failure_reason: str | None = Field(default=None, description="Decline or outcome reason")
    failure_code: str | None = Field(default=None, description="Stripe failure code")
    failure_message: str | None = Field(default=None, description="Stripe failure message")
    created_at: int = Field(
        default_factory=lambda: int(time.time()),
        description="Unix timestamp (seconds) when the payment failed",
    )

    @field_validator("currency", mode="before")
    @classmethod
    def _normalize_currency(cls, value: Any) -> str:
        if not value:
            return DEFAULT_CURRENCY
        return str(value).upper()

    @classmethod
    def from_stripe_object(cls, obj: dict[str, Any]) -> "FailedPaymentEvent":
        """Build an event from a Stripe PaymentIntent, Charge or Invoice payload.

        Top-level failure fields win; otherwise they are taken from
        ``last_payment_error`` (PaymentIntent) or ``outcome`` (Charge).

        Args:
            obj: The ``data.object`` of a Stripe event.

        Returns:
            FailedPaymentEvent; optional fields absent from the payload stay None.

        Raises:
            pydantic.ValidationError: If the object has no usable ID.
        """
        last_error = obj.get("last_payment_error") or {}
        outcome = obj.get("outcome") or {}
        billing = obj.get("billing_details") or {}

        customer = obj.get("customer")
        if isinstance(customer, dict):
            # Expanded customer object
            customer = customer.get("id")

        amount = obj.get("amount")
        if amount is None:
            amount = obj.get("amount_due", 0)

        values: dict[str, Any] = {
            "id": obj.get("id"),
            "amount": amount,
            "currency": obj.get("currency"),
            "customer_ref": customer or None,
            "customer_email": (
                obj.get("customer_email")
                or obj.get("receipt_email")
                or billing.get("email")
                or None
            ),
            "failure_reason": (
                obj.get("failure_reason")
                or last_error.get("decline_code")
                or outcome.get("reason")
                or None
            ),
            "failure_code": obj.get("failure_code") or last_error.get("code") or None,
            "failure_message": (
                obj.get("failure_message") or last_error.get("message") or None
            ),
        }
        if obj.get("created") is not None:
            values["created_at"] = obj["created"]

        return cls(**values)

    def with_customer_email(self, email: str) -> "FailedPaymentEvent":
        """Return a copy with the resolved customer email."""
        return self.model_copy(update={"customer_email": email})

    @property
    def amount_decimal(self) -> str:
        """Amount in major units as a two-decimal string, e.g. '25.00'."""
        return f"{Decimal(self.amount) / 100:.2f}"

    @property
    def failed_at(self) -> datetime:
        return datetime.fromtimestamp(self.created_at, tz=UTC)

    @property
    def failed_at_iso(self) -> str:
        """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
        return self.failed_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @property
    def failed_at_display(self) -> str:
        return self.failed_at.strftime("%Y-%m-%d %H:%M:%S UTC")

    @property
    def dashboard_url(self) -> str:
        return STRIPE_DASHBOARD_URL.format(payment_id=self.id)
