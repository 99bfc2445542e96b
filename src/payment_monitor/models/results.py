"""Result types returned by the best-effort pipeline steps.

Enrichment, notification and record storage never raise into the pipeline.
They report failure through these models and the pipeline decides how to log it.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EnrichmentResult(BaseModel):
    """Outcome of a customer email lookup."""

    model_config = ConfigDict(frozen=True)

    email: str | None = Field(default=None, description="Resolved customer email")
    error: str | None = Field(default=None, description="Why the lookup failed")

    @property
    def ok(self) -> bool:
        return self.email is not None and self.error is None


class DeliveryResult(BaseModel):
    """Outcome of sending an alert or writing a record."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reference: str | None = Field(
        default=None,
        description="External ID of the created message or record",
    )
    error: str | None = Field(default=None, description="Error message on failure")

    @classmethod
    def success(cls, reference: str | None = None) -> "DeliveryResult":
        return cls(ok=True, reference=reference)

    @classmethod
    def failure(cls, error: str) -> "DeliveryResult":
        return cls(ok=False, error=error)


class PipelineStatus(str, Enum):
    """Terminal state of one pipeline run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineOutcome(BaseModel):
    """Summary of one failed-payment pipeline run."""

    payment_id: str
    status: PipelineStatus
    enrichment: EnrichmentResult | None = None
    notification: DeliveryResult | None = None
    record: DeliveryResult | None = None
    error: str | None = None
