"""
Stripe Webhook Payload Schemas

Pydantic models for the parts of a Stripe event the reconciler reads.
Unknown fields are ignored, so any event type parses; only
``checkout.session.completed`` events are acted upon.

Example payload (trimmed):
    {
        "id": "evt_1Pq...",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_a1...",
                "amount_total": 2300,
                "metadata": {"orderId": "...", "restaurantId": "..."}
            }
        }
    }

Reference:
    https://docs.stripe.com/api/events/object
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class StripeEventObject(BaseModel):
    """The ``data.object`` of an event; a Checkout Session for our events."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    amount_total: Optional[int] = Field(
        None,
        description="Amount charged in the minor currency unit"
    )
    metadata: dict[str, str] = Field(default_factory=dict)


class StripeEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: StripeEventObject = Field(default_factory=StripeEventObject)


class StripeEventPayload(BaseModel):
    """Top-level Stripe event."""
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData = Field(default_factory=StripeEventData)
