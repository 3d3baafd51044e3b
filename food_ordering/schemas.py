"""
Pydantic Schemas for Request/Response Validation

JSON bodies use camelCase field names (``cartItems``, ``menuItemId``,
``totalAmount``) to match the web client; snake_case is accepted on
input as well.
"""

import re
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from food_ordering.models import Order, OrderStatus, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class CartItemIn(CamelModel):
    """Single cart line as submitted by the client."""
    menu_item_id: str = Field(..., min_length=1, examples=["2b0c1d7e-0d7c-4d0e-9a57-5b4c3f1e2a10"])
    name: str = Field(..., min_length=1, max_length=255, examples=["Pizza Margherita"])
    quantity: str = Field(..., min_length=1, max_length=10, examples=["2"])

    @field_validator("quantity", mode="before")
    @classmethod
    def quantity_as_text(cls, v: Union[str, int]) -> str:
        # Parsed to an integer when the order is priced
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class DeliveryDetails(CamelModel):
    email: str = Field(..., max_length=255, examples=["john@example.com"])
    name: str = Field(..., min_length=1, max_length=100, examples=["John Doe"])
    address_line1: str = Field(..., min_length=1, max_length=255, examples=["350 Fifth Avenue"])
    city: str = Field(..., min_length=1, max_length=100, examples=["New York"])

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not re.match(r"^[\w\.\+-]+@[\w\.-]+\.\w+$", v):
            raise ValueError("Invalid email format")
        return v


class CheckoutSessionRequest(CamelModel):
    """Request schema for starting a checkout."""
    cart_items: List[CartItemIn] = Field(..., min_length=1)
    delivery_details: DeliveryDetails
    restaurant_id: str = Field(..., min_length=1)


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class CheckoutSessionResponse(CamelModel):
    url: str


class MenuItemResponse(CamelModel):
    id: str
    name: str
    price: int


class RestaurantResponse(CamelModel):
    id: str
    user_id: str
    restaurant_name: str
    city: str
    country: str
    delivery_price: int
    estimated_delivery_time: int
    cuisines: List[str]
    menu_items: List[MenuItemResponse]
    image_url: str
    last_updated: datetime


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    role: UserRole


class DeliveryDetailsResponse(CamelModel):
    """Delivery details as stored on the order, returned unvalidated."""
    email: str
    name: str
    address_line1: str
    city: str


class CartItemResponse(CamelModel):
    menu_item_id: str
    name: str
    quantity: str


class OrderResponse(CamelModel):
    """Order with its restaurant and user expanded."""
    id: str
    restaurant: RestaurantResponse
    user: UserResponse
    delivery_details: DeliveryDetailsResponse
    cart_items: List[CartItemResponse]
    total_amount: Optional[int]
    status: OrderStatus
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order, total_amount: Optional[int] = None) -> "OrderResponse":
        """
        Build the response for an ORM order.

        Args:
            order: Order with restaurant, user and cart items loaded
            total_amount: Overrides the stored total (backfilled value)
        """
        return cls(
            id=order.id,
            restaurant=RestaurantResponse.model_validate(order.restaurant),
            user=UserResponse.model_validate(order.user),
            delivery_details=DeliveryDetailsResponse(
                email=order.delivery_email,
                name=order.delivery_name,
                address_line1=order.delivery_address_line1,
                city=order.delivery_city,
            ),
            cart_items=[CartItemResponse.model_validate(item) for item in order.cart_items],
            total_amount=order.total_amount if total_amount is None else total_amount,
            status=order.status,
            created_at=order.created_at,
        )


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    timestamp: datetime
