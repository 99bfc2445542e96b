"""API request/response models.

Domain models (FailedPaymentEvent, LogEntry) live in payment_monitor.models
and are reused here where appropriate.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from payment_monitor.models.activity import LogEntry


class ServiceStatus(BaseModel):
    """Service banner returned by GET /."""

    service: str = Field(..., examples=["Stripe Failed Payments Monitor"])
    status: str = Field(default="running")
    timestamp: datetime
    endpoints: dict[str, str]
    description: str
    webhook_verification: str = Field(
        ...,
        description="'enabled' when a webhook secret is configured, otherwise 'disabled'",
    )


class HealthResponse(BaseModel):
    """Liveness probe response."""

    status: str = Field(default="healthy")
    timestamp: datetime
    uptime: float = Field(..., ge=0, description="Seconds since the application started")
    logs_count: int = Field(..., ge=0, description="Entries currently in the activity log")


class LogsResponse(BaseModel):
    """Recent activity log entries, most recent first."""

    logs: list[LogEntry]
    total_logs: int
    showing: int


class ManualTriggerResponse(BaseModel):
    """Response of POST /test."""

    success: bool = True
    message: str
    test_data: dict[str, Any]


class ManualTriggerError(BaseModel):
    """Error response of POST /test."""

    success: bool = False
    error: str


class WebhookResponse(BaseModel):
    """Acknowledgement sent to Stripe for every accepted delivery."""

    received: bool = True


class InternalErrorResponse(BaseModel):
    """Body of the catch-all 500 response."""

    error: str = "Internal server error"
    message: str
