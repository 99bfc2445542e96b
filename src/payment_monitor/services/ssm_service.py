"""Optional secret source backed by AWS SSM Parameter Store.

Only used when ``SSM_PARAMETER_PREFIX`` is set: Settings.from_env asks for
each secret missing from the environment, e.g.
``/payment-monitor/prod/stripe_secret_key``. Values are decrypted SecureStrings
and are cached for the lifetime of the service instance.
"""

import logging
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class SSMServiceError(Exception):
    """Raised when a parameter cannot be read from SSM."""

    pass


class SSMService:
    """Reads and caches SecureString parameters.

    Usage:
        value = get_ssm_service().get_parameter("/payment-monitor/prod/airtable_api_key")
    """

    def __init__(self, client=None) -> None:
        """Initialize the service.

        Args:
            client: boto3 SSM client. Defaults to ``boto3.client("ssm")``.
        """
        self._client = client or boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Return the decrypted value of one parameter.

        Args:
            name: Full parameter path.
            use_cache: Serve a previously read value without calling AWS.

        Raises:
            SSMServiceError: If the parameter is missing or cannot be read.
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            raise SSMServiceError(f"Failed to read SSM parameter {name}: {e}") from e
        except BotoCoreError as e:
            raise SSMServiceError(f"Failed to read SSM parameter {name}: {e}") from e

        value = response["Parameter"]["Value"]
        self._cache[name] = value
        logger.info("Loaded SSM parameter %s", name)
        return value


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance (singleton pattern)."""
    return SSMService()
