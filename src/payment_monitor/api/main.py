"""FastAPI application for the Stripe failed payments monitor.

This package provides REST endpoints for:
- Service status, health checks and activity logs
- A manual failed-payment test trigger
- Stripe webhook ingress
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from mangum import Mangum

from payment_monitor import __version__
from payment_monitor.api.exceptions import register_exception_handlers
from payment_monitor.api.middleware.correlation import CorrelationIdMiddleware
from payment_monitor.api.routes.manual import router as manual_router
from payment_monitor.api.routes.status import router as status_router
from payment_monitor.api.routes.webhooks import router as webhooks_router
from payment_monitor.config import get_settings
from payment_monitor.models.activity import Severity
from payment_monitor.services.activity_log import get_activity_log
from payment_monitor.services.airtable_service import get_airtable_store
from payment_monitor.utils.logging import configure_logging

logger = logging.getLogger(__name__)
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup checks and announcements."""
    settings = get_settings()
    activity = get_activity_log()
    app.state.started_at = time.monotonic()

    activity.append("Checking/initializing Failed Payments table in Airtable", Severity.INFO)
    get_airtable_store().check_table()

    if settings.insecure_webhooks:
        activity.append(
            "STRIPE_WEBHOOK_SECRET not set: webhook signatures will NOT be verified",
            Severity.WARN,
        )

    activity.append(
        f"Stripe Failed Payments Monitor started on port {settings.port}", Severity.SUCCESS
    )
    activity.append("Ready to monitor failed payments and send alerts", Severity.INFO)
    yield


app = FastAPI(
    title="Stripe Failed Payments Monitor",
    description="Monitors Stripe for failed payments, sends Gmail alerts, and updates Airtable",
    version=__version__,
    lifespan=lifespan,
)
app.state.started_at = time.monotonic()

app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.include_router(status_router)
app.include_router(manual_router)
app.include_router(webhooks_router)


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway.
# lifespan="auto" runs the startup checks on each cold start.
handler = Mangum(app, lifespan="auto")


def run_server(host: str = "0.0.0.0", port: int | None = None, reload: bool = False) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: PORT setting, 3000)
        reload: Enable hot reload for development (default: False)
    """
    import uvicorn

    port = port or get_settings().port

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run("payment_monitor.api.main:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
