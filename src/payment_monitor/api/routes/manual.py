"""Manual test trigger for operational checks.

POST /test runs a synthetic failed payment through the full pipeline, so a
real alert email and Airtable row are produced with test data.
"""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from payment_monitor.api.dependencies import get_activity, get_failed_payment_pipeline
from payment_monitor.api.models import ManualTriggerError, ManualTriggerResponse
from payment_monitor.models.activity import Severity
from payment_monitor.models.payment import FailedPaymentEvent
from payment_monitor.services.activity_log import ActivityLog
from payment_monitor.services.pipeline import FailedPaymentPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["testing"])


def build_sample_payment(now: float | None = None) -> dict[str, Any]:
    """Build a Stripe-shaped failed payment for the manual trigger.

    Args:
        now: Current time in seconds (defaults to time.time()).

    Returns:
        Dict shaped like a PaymentIntent ``data.object``.
    """
    now = time.time() if now is None else now
    return {
        "id": f"pi_test_{int(now * 1000)}",
        "amount": 2500,  # $25.00
        "currency": "usd",
        "customer": "cus_test",
        "customer_email": "test@example.com",
        "failure_reason": "insufficient_funds",
        "failure_code": "card_declined",
        "failure_message": "Your card was declined.",
        "created": int(now),
    }


@router.post(
    "/test",
    summary="Manually test the failed payment processing",
    response_model=ManualTriggerResponse,
    responses={
        500: {"description": "The test could not be run", "model": ManualTriggerError},
    },
)
async def trigger_test(
    activity: ActivityLog = Depends(get_activity),
    pipeline: FailedPaymentPipeline = Depends(get_failed_payment_pipeline),
) -> ManualTriggerResponse | JSONResponse:
    """Run a synthetic failed payment through the pipeline.

    Alert and storage failures do not fail the request; check GET /logs.
    """
    try:
        activity.append("Manual test triggered", Severity.INFO)

        sample = build_sample_payment()
        await pipeline.process(FailedPaymentEvent.from_stripe_object(sample))

        return ManualTriggerResponse(
            message="Test failed payment processed successfully",
            test_data=sample,
        )
    except Exception as e:
        logger.exception("Manual test failed")
        activity.append(f"Test failed: {e}", Severity.ERROR)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=ManualTriggerError(error=str(e)).model_dump(),
        )
