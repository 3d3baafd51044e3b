"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - Always verify webhook signatures
    - The SDK client is owned by this service instance; the global
      ``stripe.api_key`` is never set
"""

import logging
from datetime import datetime
from typing import Optional

import stripe

from food_ordering.core.config import get_settings
from food_ordering.exceptions import WebhookSignatureError
from food_ordering.services.payment.base import (
    BasePaymentService,
    CheckoutSessionResult,
    WebhookEvent,
    parse_webhook_event,
    verify_stripe_signature,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Production Stripe payment service implementation.

    Creates Stripe Checkout sessions and verifies Stripe webhooks.

    Example:
        >>> service = StripePaymentService(api_key="sk_test_...")
        >>> result = await service.create_checkout_session(...)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        client: Optional[stripe.StripeClient] = None,
    ):
        """
        Initialize the Stripe client.

        Args:
            api_key: Secret key; defaults to STRIPE_SECRET_KEY
            webhook_secret: Signing secret; defaults to STRIPE_WEBHOOK_SECRET
            client: Pre-built StripeClient (tests, custom HTTP clients)

        Raises:
            ValueError: If no API key is configured
        """
        settings = get_settings()

        api_key = api_key or settings.stripe_secret_key
        if client is None and not api_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._client = client or stripe.StripeClient(api_key, max_network_retries=2)
        self._webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self._tolerance = settings.stripe_webhook_tolerance

        logger.info("StripePaymentService initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "stripe"

    async def create_checkout_session(
        self,
        line_items: list[dict],
        delivery_option: dict,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """Create a Stripe Checkout session in payment mode."""
        start_time = datetime.now()

        try:
            session = self._client.checkout.sessions.create(params={
                "line_items": line_items,
                "shipping_options": [delivery_option],
                "mode": "payment",
                "metadata": metadata,
                "success_url": success_url,
                "cancel_url": cancel_url,
            })

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            logger.info(
                f"Stripe: Checkout session created - {session.id} - "
                f"order={metadata.get('orderId')}"
            )

            return CheckoutSessionResult(
                success=True,
                session_id=session.id,
                url=session.url,
                response_time_ms=elapsed_ms,
            )

        except stripe.InvalidRequestError as e:
            # Invalid parameters
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Invalid request - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message=e.user_message or str(e),
                error_code="invalid_request",
                response_time_ms=elapsed_ms,
            )

        except stripe.AuthenticationError as e:
            # API key issues
            logger.critical(f"Stripe: Authentication failed - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            # Network issues
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Connection error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        except stripe.StripeError as e:
            # Generic Stripe error
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Error creating stripe session",
                error_code="stripe_error",
                response_time_ms=elapsed_ms,
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> WebhookEvent:
        """
        Verify and parse a Stripe webhook event.

        SECURITY: Unsigned events are never accepted here, even when
        the signing secret is missing from configuration.
        """
        if not self._webhook_secret:
            logger.error("Stripe: Webhook secret not configured, rejecting event")
            raise WebhookSignatureError("Webhook secret not configured")

        verify_stripe_signature(payload, signature, self._webhook_secret, self._tolerance)
        event = parse_webhook_event(payload)

        logger.debug(f"Stripe: Webhook verified - {event.type} - {event.id}")
        return event

    async def health_check(self) -> bool:
        """
        Verify Stripe API connectivity.

        Makes a lightweight API call to verify credentials and connectivity.
        """
        try:
            self._client.balance.retrieve()
            logger.debug("Stripe: Health check passed")
            return True

        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
