"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Exercise the complete checkout flow locally
    - Run tests without network access or API keys

Behavior:
    - Optional simulated latency
    - Fails session creation with probability ``failure_rate``
    - Generates Stripe-like session IDs and URLs (cs_mock_xxx)
    - Verifies webhook signatures with the Stripe scheme when a signing
      secret is configured; otherwise accepts unsigned payloads
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime
from typing import Optional

from food_ordering.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    WebhookEvent,
    parse_webhook_event,
    verify_stripe_signature,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment service.

    Attributes:
        failure_rate: Probability of a simulated provider failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        webhook_secret: Signing secret; None skips verification
        sessions: Every session request received, newest last

    Example:
        >>> service = MockPaymentService(failure_rate=0.0)
        >>> result = await service.create_checkout_session(...)
        >>> print(result.url)
        'https://checkout.mock.local/pay/cs_mock_...'
    """

    CHECKOUT_BASE_URL = "https://checkout.mock.local/pay"

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        webhook_secret: Optional[str] = None,
        tolerance: int = 300,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self.sessions: list[dict] = []

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        """Determine if this request should simulate a failure."""
        return random.random() < self.failure_rate

    async def create_checkout_session(
        self,
        line_items: list[dict],
        delivery_option: dict,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """Simulate creating a checkout session."""
        start_time = datetime.now()
        latency_ms = await self._simulate_latency()

        self.sessions.append({
            "line_items": line_items,
            "shipping_options": [delivery_option],
            "mode": "payment",
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        })

        if self._should_fail():
            logger.debug("Mock: Checkout session creation failed")
            return CheckoutSessionResult(
                success=False,
                error_message="Error creating stripe session",
                error_code="api_error",
                response_time_ms=latency_ms,
            )

        session_id = self._generate_session_id()
        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        logger.info(
            f"Mock: Checkout session created - {session_id} - "
            f"order={metadata.get('orderId')}"
        )

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            url=f"{self.CHECKOUT_BASE_URL}/{session_id}",
            response_time_ms=elapsed_ms,
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> WebhookEvent:
        """
        Verify a webhook when a secret is configured, then parse it.

        Without a secret the payload is trusted, which is only
        acceptable in development.
        """
        if self.webhook_secret:
            verify_stripe_signature(payload, signature, self.webhook_secret, self.tolerance)
        else:
            logger.warning("Mock: Webhook secret not configured, skipping verification")

        return parse_webhook_event(payload)

    async def health_check(self) -> bool:
        """
        Mock health check always returns True.

        In development, we assume the mock service is always available.
        """
        logger.debug("Mock: Health check passed")
        return True
