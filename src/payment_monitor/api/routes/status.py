"""Status, health and activity log endpoints."""

import re
import time
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Request

from payment_monitor.api.dependencies import get_activity, get_config
from payment_monitor.api.models import HealthResponse, LogsResponse, ServiceStatus
from payment_monitor.config import Settings
from payment_monitor.services.activity_log import ActivityLog

router = APIRouter(tags=["status"])

LEADING_INT = re.compile(r"\s*[+-]?\d+")

SERVICE_NAME = "Stripe Failed Payments Monitor"

ENDPOINTS = {
    "GET /": "Service status and endpoints",
    "GET /health": "Health check",
    "GET /logs": "View recent activity logs",
    "POST /test": "Manually test the failed payment processing",
    "POST /stripe-webhook": "Stripe webhook endpoint (for Stripe to call)",
}


def _parse_limit(raw: str | None) -> int | None:
    """Leading-integer parse of the query value; None when there is no number."""
    match = LEADING_INT.match(raw or "")
    return int(match.group()) if match else None


def _uptime_seconds(request: Request) -> float:
    started_at = getattr(request.app.state, "started_at", None)
    if started_at is None:
        return 0.0
    return max(time.monotonic() - started_at, 0.0)


@router.get(
    "/",
    summary="Service status and endpoint catalog",
    response_model=ServiceStatus,
)
async def service_status(settings: Settings = Depends(get_config)) -> ServiceStatus:
    return ServiceStatus(
        service=SERVICE_NAME,
        timestamp=datetime.now(UTC),
        endpoints=ENDPOINTS,
        description="Monitors Stripe for failed payments, sends Gmail alerts, and updates Airtable",
        webhook_verification="disabled" if settings.insecure_webhooks else "enabled",
    )


@router.get(
    "/health",
    summary="Liveness probe",
    response_model=HealthResponse,
)
async def health(
    request: Request,
    activity: ActivityLog = Depends(get_activity),
) -> HealthResponse:
    """Report process uptime and the current activity log size."""
    return HealthResponse(
        timestamp=datetime.now(UTC),
        uptime=_uptime_seconds(request),
        logs_count=len(activity),
    )


@router.get(
    "/logs",
    summary="View recent activity logs",
    description="Returns up to `limit` activity log entries, most recent first.",
    response_model=LogsResponse,
)
async def logs(
    limit: str | None = Query(
        default=None,
        description=(
            "Maximum number of entries to return. "
            "Missing, non-numeric or non-positive values mean 50."
        ),
    ),
    activity: ActivityLog = Depends(get_activity),
) -> LogsResponse:
    recent = activity.recent(_parse_limit(limit))
    return LogsResponse(
        logs=recent,
        total_logs=len(activity),
        showing=len(recent),
    )
