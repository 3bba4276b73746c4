"""Secret retrieval for the checkout API.

Secrets are read from AWS SSM Parameter Store (SecureString, decrypted);
a conventional environment variable, when set, takes precedence so local
development does not need AWS access.
"""

import logging
import os
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class SSMServiceError(Exception):
    """Raised when a secret cannot be retrieved."""


class SSMService:
    """Cached access to SSM parameters.

    Usage:
        ssm = get_ssm_service()
        key = ssm.get_secret("/checkout/dev/stripe/secret_key", env_var="STRIPE_SECRET_KEY")
    """

    def __init__(self, region: str | None = None) -> None:
        self._region = region or os.environ.get("AWS_DEFAULT_REGION", "eu-west-1")
        self._client = None
        self._cache: dict[str, str] = {}

    def _get_client(self):
        if self._client is None:
            self._client = boto3.client("ssm", region_name=self._region)
        return self._client

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a decrypted parameter value.

        Args:
            name: Full parameter path (e.g., "/checkout/dev/stripe/secret_key")
            use_cache: Whether to use a cached value if available

        Returns:
            The decrypted parameter value.

        Raises:
            SSMServiceError: If the parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            logger.debug("SSM cache hit for %s", name)
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._get_client().get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter: {name}. "
                    "Check IAM permissions for ssm:GetParameter."
                ) from e
            raise SSMServiceError(f"Failed to retrieve SSM parameter {name}: {e}") from e

        value = response["Parameter"]["Value"]
        self._cache[name] = value
        return value

    def get_secret(self, name: str, *, env_var: str | None = None) -> str:
        """Return ``env_var`` from the environment if set, else the SSM parameter ``name``."""
        if env_var:
            value = os.environ.get(env_var)
            if value:
                logger.debug("Using %s from environment", env_var)
                return value
        return self.get_parameter(name)

    def clear_cache(self) -> None:
        """Clear all cached parameters."""
        self._cache.clear()
        logger.info("SSM parameter cache cleared")


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance (singleton pattern)."""
    return SSMService()
