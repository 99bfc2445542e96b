"""Activity log entry model."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity of an activity log entry."""

    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single timestamped entry in the in-memory activity log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(..., description="When the entry was appended (UTC)")
    message: str = Field(..., description="Human-readable event description")
    type: Severity = Field(default=Severity.INFO, description="Entry severity")
