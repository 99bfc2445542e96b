"""Standard error codes for the failed payments monitor.

Only webhook ingress rejections are raised to HTTP callers; every other
failure becomes an activity log entry.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Reasons a webhook delivery is rejected."""

    INVALID_WEBHOOK_SIGNATURE = "ERR_WEBHOOK_001"
    MALFORMED_WEBHOOK_PAYLOAD = "ERR_WEBHOOK_002"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.MALFORMED_WEBHOOK_PAYLOAD: "Malformed webhook payload",
}


class RelayError(Exception):
    """Rejection of a webhook delivery, answered with a plain-text 400."""

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.details = details
        super().__init__(self.message)

    @property
    def detail_message(self) -> str:
        """The most specific message available for this error."""
        if self.details and self.details.get("message"):
            return self.details["message"]
        return self.message


# Human-readable descriptions of common Stripe decline/failure codes,
# shown in alert emails next to the raw code.
STRIPE_FAILURE_DESCRIPTIONS: dict[str, str] = {
    "card_declined": "The card was declined.",
    "expired_card": "The card has expired.",
    "insufficient_funds": "The card has insufficient funds.",
    "incorrect_cvc": "The security code (CVC) is incorrect.",
    "incorrect_number": "The card number is incorrect.",
    "invalid_cvc": "The security code (CVC) is invalid.",
    "invalid_number": "The card number is invalid.",
    "lost_card": "The card was reported lost.",
    "stolen_card": "The card was reported stolen.",
    "fraudulent": "Stripe suspects the payment is fraudulent.",
    "do_not_honor": "The issuer declined without giving a reason.",
    "card_velocity_exceeded": "Too many transactions on the card.",
    "processing_error": "A processing error occurred at the issuer.",
    "authentication_required": "The payment requires customer authentication.",
    "generic_decline": "The card was declined.",
}


def describe_stripe_failure(code: Optional[str]) -> Optional[str]:
    """Get a human-readable description for a Stripe failure or decline code.

    Args:
        code: Stripe code such as 'card_declined' or 'insufficient_funds'.

    Returns:
        Description, or None if the code is unknown.
    """
    if not code:
        return None
    return STRIPE_FAILURE_DESCRIPTIONS.get(code)
