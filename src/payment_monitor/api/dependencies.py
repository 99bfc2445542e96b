"""FastAPI dependency injection providers for shared services.

Service instances are lazily created and cached by the get_* singletons in
payment_monitor.services; these providers expose them to routes so tests can
swap them with ``app.dependency_overrides``.

Usage in routes:
    from payment_monitor.api.dependencies import get_activity

    @router.get("/logs")
    async def logs(activity: ActivityLog = Depends(get_activity)):
        ...

Service Dependency Graph:
    Settings (get_settings)
        ├── StripeService
        ├── GmailNotifier
        └── AirtableStore
    ActivityLog
    FailedPaymentPipeline (ActivityLog, StripeService, GmailNotifier, AirtableStore)
        └── WebhookHandler

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from payment_monitor.config import Settings, get_settings
from payment_monitor.services.activity_log import ActivityLog, get_activity_log
from payment_monitor.services.airtable_service import get_airtable_store
from payment_monitor.services.gmail_service import get_gmail_notifier
from payment_monitor.services.pipeline import FailedPaymentPipeline, get_pipeline
from payment_monitor.services.ssm_service import get_ssm_service
from payment_monitor.services.stripe_service import get_stripe_service
from payment_monitor.services.webhook_handler import WebhookHandler, get_webhook_handler


def get_config() -> Settings:
    return get_settings()


def get_activity() -> ActivityLog:
    return get_activity_log()


def get_failed_payment_pipeline() -> FailedPaymentPipeline:
    return get_pipeline()


def get_stripe_webhook_handler() -> WebhookHandler:
    return get_webhook_handler()


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    get_webhook_handler.cache_clear()
    get_pipeline.cache_clear()
    get_airtable_store.cache_clear()
    get_gmail_notifier.cache_clear()
    get_stripe_service.cache_clear()
    get_activity_log.cache_clear()
    get_settings.cache_clear()
    get_ssm_service.cache_clear()
