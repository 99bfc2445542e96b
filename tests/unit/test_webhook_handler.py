"""Unit tests for WebhookHandler (ingress verification and classification)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import TEST_WEBHOOK_SECRET, create_stripe_signature, encode, make_event
from payment_monitor.models.errors import ErrorCode, RelayError
from payment_monitor.models.results import PipelineOutcome, PipelineStatus
from payment_monitor.services.pipeline import FailedPaymentPipeline
from payment_monitor.services.stripe_service import StripeService
from payment_monitor.services.webhook_handler import FAILED_PAYMENT_EVENT_TYPES, WebhookHandler


@pytest.fixture
def mock_pipeline() -> MagicMock:
    pipeline = MagicMock(spec=FailedPaymentPipeline)
    pipeline.process = AsyncMock(
        side_effect=lambda event: PipelineOutcome(
            payment_id=event.id, status=PipelineStatus.SUCCEEDED
        )
    )
    return pipeline


def _handler(settings, activity, pipeline) -> WebhookHandler:
    return WebhookHandler(
        settings=settings,
        activity=activity,
        stripe_service=StripeService(settings),
        pipeline=pipeline,
    )


class TestConstructEvent:
    """Signature verification and reduced-trust parsing."""

    def test_valid_signature(self, secure_settings, activity, mock_pipeline, sample_charge):
        payload = encode(make_event("charge.failed", sample_charge))
        signature = create_stripe_signature(payload, TEST_WEBHOOK_SECRET)

        event = _handler(secure_settings, activity, mock_pipeline).construct_event(payload, signature)

        assert event["type"] == "charge.failed"

    def test_invalid_signature_rejected_and_logged(self, secure_settings, activity, mock_pipeline, sample_charge):
        payload = encode(make_event("charge.failed", sample_charge))
        signature = create_stripe_signature(payload, "whsec_wrong")

        with pytest.raises(RelayError) as exc_info:
            _handler(secure_settings, activity, mock_pipeline).construct_event(payload, signature)

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_SIGNATURE
        assert activity.recent(1)[0].message.startswith("Webhook signature verification failed:")

    def test_missing_signature_rejected(self, secure_settings, activity, mock_pipeline):
        with pytest.raises(RelayError) as exc_info:
            _handler(secure_settings, activity, mock_pipeline).construct_event(b"{}", None)

        assert exc_info.value.code == ErrorCode.INVALID_WEBHOOK_SIGNATURE

    def test_insecure_mode_parses_without_signature(self, insecure_settings, activity, mock_pipeline, sample_charge):
        payload = encode(make_event("charge.failed", sample_charge))

        event = _handler(insecure_settings, activity, mock_pipeline).construct_event(payload, None)

        assert event["data"]["object"]["id"] == "ch_3ABC123DEF456"

    def test_insecure_mode_rejects_malformed_json(self, insecure_settings, activity, mock_pipeline):
        with pytest.raises(RelayError) as exc_info:
            _handler(insecure_settings, activity, mock_pipeline).construct_event(b"{nope", None)

        assert exc_info.value.code == ErrorCode.MALFORMED_WEBHOOK_PAYLOAD


class TestHandle:
    """Event classification."""

    @pytest.mark.parametrize("event_type", sorted(FAILED_PAYMENT_EVENT_TYPES))
    def test_failure_events_run_pipeline(self, event_type, insecure_settings, activity, mock_pipeline, sample_charge):
        handler = _handler(insecure_settings, activity, mock_pipeline)

        outcome = asyncio.run(handler.handle(make_event(event_type, sample_charge)))

        assert outcome.status == PipelineStatus.SUCCEEDED
        mock_pipeline.process.assert_awaited_once()
        assert mock_pipeline.process.await_args.args[0].id == "ch_3ABC123DEF456"
        assert f"Received Stripe webhook: {event_type}" in [e.message for e in activity.recent()]

    @pytest.mark.parametrize(
        "event_type",
        ["charge.succeeded", "payment_intent.created", "customer.created", "invoice.paid"],
    )
    def test_other_events_are_ignored(self, event_type, insecure_settings, activity, mock_pipeline, sample_charge):
        handler = _handler(insecure_settings, activity, mock_pipeline)

        outcome = asyncio.run(handler.handle(make_event(event_type, sample_charge)))

        assert outcome is None
        mock_pipeline.process.assert_not_awaited()
        assert activity.recent(1)[0].message == f"Received Stripe webhook: {event_type}"

    def test_missing_data_object_is_malformed(self, insecure_settings, activity, mock_pipeline):
        handler = _handler(insecure_settings, activity, mock_pipeline)

        with pytest.raises(RelayError) as exc_info:
            asyncio.run(handler.handle({"id": "evt_1", "type": "charge.failed", "data": {}}))

        assert exc_info.value.code == ErrorCode.MALFORMED_WEBHOOK_PAYLOAD
        mock_pipeline.process.assert_not_awaited()

    def test_object_without_id_is_malformed(self, insecure_settings, activity, mock_pipeline):
        handler = _handler(insecure_settings, activity, mock_pipeline)

        with pytest.raises(RelayError):
            asyncio.run(handler.handle(make_event("charge.failed", {"amount": 100})))

        mock_pipeline.process.assert_not_awaited()


class TestReceive:
    """construct_event + handle together."""

    def test_invalid_signature_never_reaches_pipeline(self, secure_settings, activity, mock_pipeline, sample_charge):
        payload = encode(make_event("charge.failed", sample_charge))
        handler = _handler(secure_settings, activity, mock_pipeline)

        with pytest.raises(RelayError):
            asyncio.run(handler.receive(payload, "t=1,v1=deadbeef"))

        mock_pipeline.process.assert_not_awaited()

    def test_signed_failure_event_is_processed(self, secure_settings, activity, mock_pipeline, sample_payment_intent):
        payload = encode(make_event("payment_intent.payment_failed", sample_payment_intent))
        signature = create_stripe_signature(payload, TEST_WEBHOOK_SECRET)
        handler = _handler(secure_settings, activity, mock_pipeline)

        asyncio.run(handler.receive(payload, signature))

        processed = mock_pipeline.process.await_args.args[0]
        assert processed.id == "pi_3ABC123DEF456"
        assert processed.failure_reason == "insufficient_funds"
