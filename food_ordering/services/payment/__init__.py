"""
Payment Service Factory

Provides a single entry point for obtaining a payment service instance.
The factory pattern allows the rest of the application to remain agnostic
about which implementation is being used.

Usage:
    from food_ordering.services.payment import get_payment_service

    # FastAPI handlers receive it as a dependency
    async def handler(payment_service = Depends(get_payment_service)): ...

Environment Switching:
    - ENV_MODE=development → MockPaymentService (no API calls)
    - ENV_MODE=staging → StripePaymentService (test keys)
    - ENV_MODE=production → StripePaymentService (live keys)
"""

import logging
from functools import lru_cache

from food_ordering.core.config import get_settings
from food_ordering.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    WebhookEvent,
)
from food_ordering.services.payment.mock import MockPaymentService
from food_ordering.services.payment.schemas import CHECKOUT_SESSION_COMPLETED
from food_ordering.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Get the configured payment service instance.

    Returns MockPaymentService or StripePaymentService depending on
    ENV_MODE. The instance is cached, so one provider client lives for
    the whole process.

    Raises:
        ValueError: If Stripe is selected but no key is configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payment Service: Using MockPaymentService (development mode)")
        return MockPaymentService(
            failure_rate=settings.mock_payment_failure_rate,
            min_latency=0.05,
            max_latency=0.2,
            webhook_secret=settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance,
        )

    logger.info(
        f"Payment Service: Using StripePaymentService "
        f"({settings.env_mode.value} mode)"
    )
    return StripePaymentService()


__all__ = [
    "get_payment_service",
    "BasePaymentService",
    "CheckoutSessionResult",
    "WebhookEvent",
    "CHECKOUT_SESSION_COMPLETED",
    "MockPaymentService",
    "StripePaymentService",
]
