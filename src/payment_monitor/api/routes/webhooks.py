"""Stripe webhook endpoint.

This endpoint does NOT require authentication: payloads are verified with the
Stripe webhook signing secret. When no secret is configured the payload is
accepted unverified (reduced-trust mode, see Settings.insecure_webhooks).
"""

from fastapi import APIRouter, Depends, Request

from payment_monitor.api.dependencies import get_stripe_webhook_handler
from payment_monitor.api.models import WebhookResponse
from payment_monitor.services.webhook_handler import WebhookHandler

router = APIRouter(tags=["webhooks"])

SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/stripe-webhook",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- payment_intent.payment_failed
- charge.failed
- invoice.payment_failed

Each of these sends an alert email and records the failure in Airtable.
Other event types are acknowledged and ignored.

**No authentication required** - signature is verified using the Stripe webhook secret.

**Not idempotent**: redelivered events produce another alert and record.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received", "model": WebhookResponse},
        400: {
            "description": "Invalid signature or malformed payload (plain text)",
            "content": {"text/plain": {"example": "Webhook Error: Invalid webhook signature"}},
        },
    },
)
async def stripe_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_stripe_webhook_handler),
) -> WebhookResponse:
    """Verify, classify and process a Stripe delivery.

    The raw body is read before any JSON parsing so the signature can be
    checked against the exact bytes Stripe signed.
    """
    payload = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    await handler.receive(payload, signature)
    return WebhookResponse(received=True)
