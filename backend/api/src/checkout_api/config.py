"""API configuration loaded from environment variables."""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class ApiSettings(BaseModel):
    """Settings for the checkout API."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment name")
    allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:3000", "http://127.0.0.1:3000"),
        description="Origins allowed by CORS",
    )
    rate_limit: str = Field(default="5/15 minutes", description="Per-client limit, slowapi notation")
    dev_rate_limit: str = Field(
        default="20/5 minutes", description="Per-client limit for development origins"
    )
    product_description: str = Field(
        default="Checkout ticket", description="Prefix of the PaymentIntent description"
    )

    @classmethod
    def from_env(cls) -> "ApiSettings":
        """Build settings from environment variables.

        ``CHECKOUT_ALLOWED_ORIGINS`` is a comma-separated list.
        """
        env = os.environ
        overrides: dict[str, object] = {}
        if env.get("ENVIRONMENT"):
            overrides["environment"] = env["ENVIRONMENT"]
        if env.get("CHECKOUT_ALLOWED_ORIGINS"):
            overrides["allowed_origins"] = tuple(
                origin.strip()
                for origin in env["CHECKOUT_ALLOWED_ORIGINS"].split(",")
                if origin.strip()
            )
        if env.get("CHECKOUT_PRODUCT_DESCRIPTION"):
            overrides["product_description"] = env["CHECKOUT_PRODUCT_DESCRIPTION"]
        return cls.model_validate(overrides)


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    """Get cached ApiSettings instance."""
    return ApiSettings.from_env()
