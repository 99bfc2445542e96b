"""Runtime configuration for the failed payments monitor.

All settings come from environment variables. When ``SSM_PARAMETER_PREFIX`` is
set, secrets missing from the environment are looked up in SSM Parameter Store
under ``<prefix>/<variable name in lower case>``, e.g.
``/payment-monitor/prod/stripe_secret_key``.

Usage:
    from payment_monitor.config import get_settings

    settings = get_settings()
    if settings.insecure_webhooks:
        ...
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

from payment_monitor.services.ssm_service import SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_TABLE_NAME = "Failed Payments"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Environment variables that may be resolved from SSM when absent
SECRET_VARIABLES = (
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "GMAIL_ACCESS_TOKEN",
    "GMAIL_REFRESH_TOKEN",
    "GMAIL_CLIENT_SECRET",
    "AIRTABLE_API_KEY",
)


class Settings(BaseModel):
    """Configuration for external services and the HTTP listener."""

    model_config = ConfigDict(frozen=True)

    stripe_secret_key: str | None = Field(
        default=None, description="Stripe API secret key (sk_xxx)"
    )
    stripe_webhook_secret: str | None = Field(
        default=None,
        description="Webhook signing secret (whsec_xxx). Unset disables verification.",
    )
    gmail_access_token: str | None = Field(default=None, description="Gmail OAuth access token")
    gmail_refresh_token: str | None = Field(default=None, description="Gmail OAuth refresh token")
    gmail_client_id: str | None = Field(
        default=None, description="OAuth client ID, needed to refresh the access token"
    )
    gmail_client_secret: str | None = Field(
        default=None, description="OAuth client secret, needed to refresh the access token"
    )
    alert_email_to: str | None = Field(
        default=None,
        description="Alert recipient. Defaults to the authenticated Gmail address.",
    )
    airtable_api_key: str | None = Field(default=None, description="Airtable personal access token")
    airtable_base_id: str | None = Field(default=None, description="Airtable base ID (appXXX)")
    airtable_table_name: str = Field(default=DEFAULT_TABLE_NAME, description="Target table")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    external_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    @property
    def insecure_webhooks(self) -> bool:
        """True when webhook payloads are accepted without signature verification."""
        return not self.stripe_webhook_secret

    @property
    def gmail_configured(self) -> bool:
        return bool(self.gmail_access_token or self.gmail_refresh_token)

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Returns:
            Settings instance.
        """
        env = dict(os.environ if environ is None else environ)

        prefix = env.get("SSM_PARAMETER_PREFIX")
        if prefix:
            for name in SECRET_VARIABLES:
                if not env.get(name):
                    value = _secret_from_ssm(prefix, name)
                    if value:
                        env[name] = value

        values: dict[str, object] = {
            "stripe_secret_key": env.get("STRIPE_SECRET_KEY") or None,
            "stripe_webhook_secret": env.get("STRIPE_WEBHOOK_SECRET") or None,
            "gmail_access_token": env.get("GMAIL_ACCESS_TOKEN") or None,
            "gmail_refresh_token": env.get("GMAIL_REFRESH_TOKEN") or None,
            "gmail_client_id": env.get("GMAIL_CLIENT_ID") or None,
            "gmail_client_secret": env.get("GMAIL_CLIENT_SECRET") or None,
            "alert_email_to": env.get("ALERT_EMAIL_TO") or None,
            "airtable_api_key": env.get("AIRTABLE_API_KEY") or None,
            "airtable_base_id": env.get("AIRTABLE_BASE_ID") or None,
        }
        if env.get("AIRTABLE_TABLE_NAME"):
            values["airtable_table_name"] = env["AIRTABLE_TABLE_NAME"]
        if env.get("PORT"):
            values["port"] = int(env["PORT"])
        if env.get("EXTERNAL_TIMEOUT_SECONDS"):
            values["external_timeout_seconds"] = float(env["EXTERNAL_TIMEOUT_SECONDS"])

        return cls(**values)


def _secret_from_ssm(prefix: str, name: str) -> str | None:
    """Read one secret from SSM, returning None when it is not available."""
    path = f"{prefix.rstrip('/')}/{name.lower()}"
    try:
        return get_ssm_service().get_parameter(path)
    except SSMServiceError as e:
        logger.warning("Secret %s not loaded from SSM: %s", name, e)
        return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide Settings instance (singleton pattern)."""
    return Settings.from_env()
