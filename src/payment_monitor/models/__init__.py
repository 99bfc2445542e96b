"""Pydantic models for the Stripe failed payments monitor."""

from .activity import LogEntry, Severity
from .errors import (
    ERROR_MESSAGES,
    STRIPE_FAILURE_DESCRIPTIONS,
    ErrorCode,
    RelayError,
    describe_stripe_failure,
)
from .payment import NOT_AVAILABLE, FailedPaymentEvent
from .results import (
    DeliveryResult,
    EnrichmentResult,
    PipelineOutcome,
    PipelineStatus,
)

__all__ = [
    # Activity log
    "LogEntry",
    "Severity",
    # Payment
    "FailedPaymentEvent",
    "NOT_AVAILABLE",
    # Results
    "DeliveryResult",
    "EnrichmentResult",
    "PipelineOutcome",
    "PipelineStatus",
    # Errors
    "ErrorCode",
    "ERROR_MESSAGES",
    "RelayError",
    "STRIPE_FAILURE_DESCRIPTIONS",
    "describe_stripe_failure",
]
