"""Failed payment processing pipeline.

Runs one failed payment through enrichment, alert email and record storage.
Every step is best-effort: failures become activity log entries and the
pipeline always finishes. The same pipeline serves webhook deliveries and the
manual /test trigger.
"""

import logging
from functools import lru_cache

from starlette.concurrency import run_in_threadpool

from payment_monitor.models.activity import Severity
from payment_monitor.models.payment import FailedPaymentEvent
from payment_monitor.models.results import (
    DeliveryResult,
    EnrichmentResult,
    PipelineOutcome,
    PipelineStatus,
)
from payment_monitor.services.activity_log import ActivityLog, get_activity_log
from payment_monitor.services.airtable_service import AirtableStore, get_airtable_store
from payment_monitor.services.gmail_service import GmailNotifier, get_gmail_notifier
from payment_monitor.services.stripe_service import StripeService, get_stripe_service
from payment_monitor.utils.logging import log_pipeline_outcome

logger = logging.getLogger(__name__)


class FailedPaymentPipeline:
    """Orchestrates enrichment, notification and storage for one failed payment.

    Usage:
        pipeline = get_pipeline()
        outcome = await pipeline.process(event)
    """

    def __init__(
        self,
        *,
        activity: ActivityLog,
        stripe_service: StripeService,
        notifier: GmailNotifier,
        store: AirtableStore,
    ) -> None:
        self._activity = activity
        self._stripe = stripe_service
        self._notifier = notifier
        self._store = store

    async def _enrich(self, event: FailedPaymentEvent) -> tuple[FailedPaymentEvent, EnrichmentResult]:
        result = await run_in_threadpool(self._stripe.get_customer_email, event.customer_ref)
        if result.ok:
            return event.with_customer_email(result.email), result

        self._activity.append(
            f"Could not retrieve customer details: {result.error}", Severity.WARN
        )
        return event, result

    async def _notify(self, event: FailedPaymentEvent) -> DeliveryResult:
        result = await run_in_threadpool(self._notifier.send_alert, event)
        if result.ok:
            self._activity.append(f"Gmail alert sent for payment {event.id}", Severity.SUCCESS)
        else:
            self._activity.append(f"Failed to send Gmail alert: {result.error}", Severity.ERROR)
        return result

    async def _record(self, event: FailedPaymentEvent) -> DeliveryResult:
        result = await self._store.add_failed_payment(event)
        if result.ok:
            self._activity.append(
                f"Added failed payment record to Airtable: {event.id}", Severity.SUCCESS
            )
        else:
            self._activity.append(
                f"Failed to add record to Airtable: {result.error}", Severity.ERROR
            )
        return result

    async def process(self, event: FailedPaymentEvent) -> PipelineOutcome:
        """Process one failed payment.

        Never raises. Notification and storage failures are logged and do not
        change the outcome; any other error yields a FAILED outcome.

        Args:
            event: The failed payment to process.

        Returns:
            PipelineOutcome describing what happened.
        """
        outcome = PipelineOutcome(payment_id=event.id, status=PipelineStatus.SUCCEEDED)
        self._activity.append(f"Processing failed payment: {event.id}", Severity.INFO)

        try:
            if event.customer_ref:
                event, outcome.enrichment = await self._enrich(event)

            outcome.notification = await self._notify(event)
            outcome.record = await self._record(event)
        except Exception as e:
            # Unexpected errors outside the best-effort steps end here
            logger.exception("Pipeline error for payment %s", event.id)
            self._activity.append(
                f"Error processing failed payment {event.id}: {e}", Severity.ERROR
            )
            outcome.status = PipelineStatus.FAILED
            outcome.error = str(e)
            log_pipeline_outcome(logger, event, outcome)
            return outcome

        self._activity.append(
            f"Successfully processed failed payment: {event.id}", Severity.SUCCESS
        )
        log_pipeline_outcome(logger, event, outcome)
        return outcome


@lru_cache(maxsize=1)
def get_pipeline() -> FailedPaymentPipeline:
    """Get the shared FailedPaymentPipeline wired to the shared services."""
    return FailedPaymentPipeline(
        activity=get_activity_log(),
        stripe_service=get_stripe_service(),
        notifier=get_gmail_notifier(),
        store=get_airtable_store(),
    )
