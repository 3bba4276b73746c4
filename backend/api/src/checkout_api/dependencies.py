"""FastAPI dependency providers.

Services are cached with ``lru_cache`` so one instance serves every
request in a process. Tests override them through
``app.dependency_overrides`` or clear them with ``reset_services()``.
"""

from checkout.services.stripe_service import StripeService, get_stripe_service
from checkout_api.config import ApiSettings, get_api_settings
from checkout_api.rate_limit import limiter


def get_settings() -> ApiSettings:
    return get_api_settings()


def get_stripe() -> StripeService:
    return get_stripe_service()


def reset_services() -> None:
    """Clear all cached instances and rate-limit counters.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    limiter.reset()
    get_api_settings.cache_clear()
    get_stripe_service.cache_clear()
