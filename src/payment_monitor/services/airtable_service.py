"""Airtable record store for failed payments.

Each processed failed payment becomes one row in the configured table
(``Failed Payments`` by default) via the Airtable REST API.
"""

import logging
from functools import lru_cache
from typing import Any
from urllib.parse import quote

import httpx

from payment_monitor.config import Settings, get_settings
from payment_monitor.models.payment import NO_DETAILS, NOT_AVAILABLE, FailedPaymentEvent
from payment_monitor.models.results import DeliveryResult

logger = logging.getLogger(__name__)

AIRTABLE_API_URL = "https://api.airtable.com/v0"
FAILED_STATUS = "Failed"


class AirtableServiceError(Exception):
    """Raised when an Airtable request cannot be made or is rejected."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_record_fields(event: FailedPaymentEvent) -> dict[str, str]:
    """Map a failed payment to the Airtable field set.

    Args:
        event: The failed payment (already enriched).

    Returns:
        Field name to value mapping for one record.
    """
    return {
        "Payment ID": event.id,
        "Amount": event.amount_decimal,
        "Currency": event.currency.upper(),
        "Customer Email": event.customer_email or NOT_AVAILABLE,
        "Customer ID": event.customer_ref or NOT_AVAILABLE,
        "Failure Reason": event.failure_reason or NOT_AVAILABLE,
        "Failure Code": event.failure_code or NOT_AVAILABLE,
        "Failed At": event.failed_at_iso,
        "Stripe URL": event.dashboard_url,
        "Status": FAILED_STATUS,
        "Notes": f"Payment failed with message: {event.failure_message or NO_DETAILS}",
    }


def _error_message(response: httpx.Response) -> str:
    """Extract Airtable's error message from a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"

    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("type") or f"HTTP {response.status_code}"
    if isinstance(error, str):
        return error
    return f"HTTP {response.status_code}"


class AirtableStore:
    """Writes failed payment records to an Airtable table.

    Usage:
        store = get_airtable_store()
        result = await store.add_failed_payment(event)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            settings: Configuration to use. Defaults to get_settings().
            transport: Optional httpx transport (used by tests).
        """
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def table_name(self) -> str:
        return self._settings.airtable_table_name

    @property
    def table_url(self) -> str:
        base_id = self._settings.airtable_base_id or ""
        return f"{AIRTABLE_API_URL}/{base_id}/{quote(self.table_name, safe='')}"

    def _client(self) -> httpx.AsyncClient:
        if not self._settings.airtable_configured:
            raise AirtableServiceError("AIRTABLE_API_KEY and AIRTABLE_BASE_ID must be configured")
        return httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._settings.airtable_api_key}"},
            timeout=httpx.Timeout(self._settings.external_timeout_seconds),
            transport=self._transport,
        )

    def check_table(self) -> bool:
        """Report whether the failed payments table can be written to.

        Airtable creates no tables through the records API, so this only
        checks configuration; rows are created on first write.
        """
        if not self._settings.airtable_configured:
            logger.warning("Airtable is not configured; failed payments will not be recorded")
            return False
        return True

    async def create_record(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Create one record in the configured table.

        Args:
            fields: Field name to value mapping.

        Returns:
            The created record as returned by Airtable.

        Raises:
            AirtableServiceError: If the request fails or is rejected.
        """
        body = {"records": [{"fields": fields}], "typecast": True}

        try:
            async with self._client() as client:
                response = await client.post(self.table_url, json=body)
        except httpx.HTTPError as e:
            raise AirtableServiceError(f"Airtable request failed: {e}") from e

        if response.is_error:
            raise AirtableServiceError(
                _error_message(response), status_code=response.status_code
            )

        try:
            records = response.json().get("records")
        except (ValueError, AttributeError) as e:
            raise AirtableServiceError(f"Unexpected Airtable response: {e}") from e
        if not isinstance(records, list) or not records or not isinstance(records[0], dict):
            raise AirtableServiceError("Airtable returned no records")
        return records[0]

    async def add_failed_payment(self, event: FailedPaymentEvent) -> DeliveryResult:
        """Persist one failed payment row.

        Never raises; failures are returned as DeliveryResult.

        Args:
            event: The failed payment (already enriched).

        Returns:
            DeliveryResult with the Airtable record ID, or the error message.
        """
        try:
            record = await self.create_record(build_record_fields(event))
        except AirtableServiceError as e:
            logger.error(
                "Airtable write failed for payment %s: %s (status: %s)",
                event.id,
                e,
                e.status_code,
            )
            return DeliveryResult.failure(str(e))
        except Exception as e:
            # Record storage never aborts the pipeline
            logger.exception("Unexpected Airtable error for payment %s", event.id)
            return DeliveryResult.failure(str(e) or e.__class__.__name__)

        record_id = record.get("id")
        logger.info("Airtable record %s created for payment %s", record_id, event.id)
        return DeliveryResult.success(record_id)


@lru_cache(maxsize=1)
def get_airtable_store() -> AirtableStore:
    """Get the shared AirtableStore instance (singleton pattern)."""
    return AirtableStore()
