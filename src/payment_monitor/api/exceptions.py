"""FastAPI exception handlers for the monitor's HTTP surface.

Only two kinds of failure are visible to callers:
- Webhook ingress rejections (RelayError) -> 400 plain text, which Stripe
  shows verbatim in its webhook delivery log
- Anything unexpected -> 500 JSON with a generic error

Every other failure ends up in the activity log (GET /logs).

Usage:
    from payment_monitor.api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from payment_monitor.api.dependencies import get_activity
from payment_monitor.api.models import InternalErrorResponse
from payment_monitor.models.activity import Severity
from payment_monitor.models.errors import RelayError
from payment_monitor.services.activity_log import ActivityLog

logger = logging.getLogger(__name__)


def _activity_for(request: Request) -> ActivityLog:
    """Resolve the activity log the routes of this app are using.

    Exception handlers take no dependencies, so honour the app's
    dependency_overrides the same way Depends(get_activity) would.
    """
    provider = request.app.dependency_overrides.get(get_activity, get_activity)
    return provider()


async def relay_error_handler(request: Request, exc: RelayError) -> PlainTextResponse:
    """Answer a rejected webhook delivery as ``Webhook Error: <message>``."""
    return PlainTextResponse(
        f"Webhook Error: {exc.detail_message}",
        status_code=HTTP_400_BAD_REQUEST,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with a generic 500 response.

    The error is recorded in the activity log so it shows up in GET /logs.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    _activity_for(request).append(f"Unhandled error: {exc}", Severity.ERROR)

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=InternalErrorResponse(message=str(exc)).model_dump(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(RelayError, relay_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
