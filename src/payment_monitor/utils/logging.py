"""Process logging for the monitor.

Every line is prefixed with the correlation ID of the HTTP request that
produced it, so the log lines of one webhook delivery (verification, alert,
Airtable write) can be grepped together. Lines logged outside a request carry
``no-correlation-id``.

Usage:
    configure_logging()                      # once, at app import
    cid, token = bind_correlation_id(header) # per request (middleware)
    ...
    reset_correlation_id(token)
"""

import logging
import uuid
from contextvars import ContextVar, Token

from payment_monitor.models.payment import FailedPaymentEvent
from payment_monitor.models.results import PipelineOutcome, PipelineStatus

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
NO_CORRELATION_ID = "no-correlation-id"


def bind_correlation_id(incoming: str | None = None) -> tuple[str, Token]:
    """Set the correlation ID for the current context.

    Args:
        incoming: ID supplied by the caller, if any. A UUID4 is generated otherwise.

    Returns:
        The ID in effect and the token that restores the previous one.
    """
    correlation_id = incoming or str(uuid.uuid4())
    return correlation_id, _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    _correlation_id.reset(token)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


class StructuredFormatter(logging.Formatter):
    """Prefixes each line with ``[<correlation id>]``."""

    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return f"[{record.correlation_id}] {super().format(record)}"


def configure_logging(level: int = logging.INFO) -> None:
    """Install a StructuredFormatter handler on the root logger.

    Calling it again keeps the existing structured handler.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(LOG_FORMAT))
    root.addHandler(handler)


def _summary(title: str, fields: dict[str, object]) -> str:
    return " | ".join([title, *(f"{key}={value}" for key, value in fields.items())])


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    result: str,
    payment_id: str | None = None,
    error: str | None = None,
) -> None:
    """Log how one Stripe event was handled.

    Args:
        logger: Logger instance
        event_type: Stripe event type (e.g., "charge.failed")
        event_id: Stripe event ID
        result: processed, skipped or error
        payment_id: ID of the failed payment object, once extracted
        error: Why handling failed
    """
    fields: dict[str, object] = {"result": result}
    if payment_id:
        fields["payment"] = payment_id
    if error:
        fields["error"] = error

    context = {
        "event_type": event_type,
        "event_id": event_id,
        "payment_id": payment_id,
        "result": result,
        "error": error,
    }
    message = _summary(f"Webhook event: {event_type} ({event_id})", fields)

    if result == "error":
        logger.error(message, extra=context)
    elif result == "skipped":
        logger.warning(message, extra=context)
    else:
        logger.info(message, extra=context)


def log_pipeline_outcome(
    logger: logging.Logger, event: FailedPaymentEvent, outcome: PipelineOutcome
) -> None:
    """Log one summary line per pipeline run, with step results as record extras."""
    fields: dict[str, object] = {
        "amount_cents": event.amount,
        "currency": event.currency,
        "status": outcome.status.value,
        "email_sent": bool(outcome.notification and outcome.notification.ok),
        "record_created": bool(outcome.record and outcome.record.ok),
    }
    if outcome.error:
        fields["error"] = outcome.error

    level = logging.ERROR if outcome.status is PipelineStatus.FAILED else logging.INFO
    logger.log(
        level,
        _summary(f"Failed payment {event.id}", fields),
        extra={"payment_id": event.id, **fields},
    )
