"""
Payment Service Abstract Base Class

Defines the interface contract for all payment service implementations.
Both MockPaymentService and StripePaymentService implement these methods,
so the checkout flow behaves the same regardless of which one is active.

Design Pattern: Strategy Pattern
    - Allows runtime switching between payment providers
    - Facilitates testing with the mock implementation
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import stripe
from pydantic import ValidationError

from food_ordering.exceptions import WebhookSignatureError
from food_ordering.services.payment.schemas import StripeEventPayload

logger = logging.getLogger(__name__)


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from creating a hosted checkout session.

    Attributes:
        success: Whether the provider created the session
        session_id: Provider session identifier (Stripe format: cs_xxx)
        url: Hosted payment page the customer is redirected to
        error_message: Error description if creation failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the provider call
    """
    success: bool
    session_id: Optional[str] = None
    url: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0


@dataclass
class WebhookEvent:
    """
    Verified payment provider event.

    Attributes:
        id: Provider event id, the deduplication key
        type: Event type (e.g. checkout.session.completed)
        order_id: Order referenced by the session metadata
        restaurant_id: Restaurant referenced by the session metadata
        amount_total: Amount the provider charged, when reported
    """
    id: str
    type: str
    order_id: Optional[str] = None
    restaurant_id: Optional[str] = None
    amount_total: Optional[int] = None


def verify_stripe_signature(
    payload: bytes,
    signature: Optional[str],
    secret: str,
    tolerance: int,
) -> None:
    """
    Check a ``Stripe-Signature`` header against the raw request body.

    Raises:
        WebhookSignatureError: Header missing, malformed, stale or wrong
    """
    if not signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            signature,
            secret,
            tolerance,
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        logger.warning(f"Webhook signature invalid - {e}")
        raise WebhookSignatureError(f"Webhook error: {e}") from e


def parse_webhook_event(payload: bytes) -> WebhookEvent:
    """
    Parse a raw Stripe event body into a WebhookEvent.

    Raises:
        WebhookSignatureError: Body is not a Stripe event
    """
    try:
        event = StripeEventPayload.model_validate(json.loads(payload))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Webhook payload invalid - {e}")
        raise WebhookSignatureError("Webhook error: invalid payload") from e

    session = event.data.object
    return WebhookEvent(
        id=event.id,
        type=event.type,
        order_id=session.metadata.get("orderId"),
        restaurant_id=session.metadata.get("restaurantId"),
        amount_total=session.amount_total,
    )


class BasePaymentService(ABC):
    """
    Abstract base class for payment services.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_checkout_session(
        ...     line_items=line_items,
        ...     delivery_option=build_delivery_option(300, "usd"),
        ...     metadata={"orderId": order_id, "restaurantId": restaurant_id},
        ...     success_url=success_url,
        ...     cancel_url=cancel_url,
        ... )
        >>> if result.success:
        ...     print(result.url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the payment provider.

        Returns:
            str: Provider name (e.g., "mock", "stripe")
        """
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        line_items: list[dict],
        delivery_option: dict,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session.

        Args:
            line_items: Priced line items (see pricing.build_line_items)
            delivery_option: Fixed-amount shipping option for delivery
            metadata: Opaque data echoed back in the completion webhook
            success_url: Redirect after a completed payment
            cancel_url: Redirect after the customer cancels

        Returns:
            CheckoutSessionResult: Standardized result object
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> WebhookEvent:
        """
        Verify and parse a webhook from the payment provider.

        Args:
            payload: Raw request body bytes
            signature: Signature header from the request

        Returns:
            WebhookEvent: The verified event

        Raises:
            WebhookSignatureError: Verification failed
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the payment service.

        Returns:
            bool: True if service is reachable and operational
        """
        pass
