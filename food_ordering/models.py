"""
SQLAlchemy Database Models

Users, restaurants with their menus, orders with embedded cart items,
and the ledger of processed payment webhook events.

Amounts are integers in the minor currency unit (cents for USD), the
unit Stripe uses for line items and session totals.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from food_ordering.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    """Order status workflow, one-way from PLACED to DELIVERED."""
    PLACED = "placed"
    PAID = "paid"
    IN_PROGRESS = "inProgress"
    OUT_FOR_DELIVERY = "outForDelivery"
    DELIVERED = "delivered"


class User(Base):
    """Customer or admin account, keyed to the external auth identity."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    auth0_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    address_line1 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        default=UserRole.USER,
        nullable=False,
    )

    def __repr__(self):
        return f"<User {self.id} - {self.email} - {self.role.value}>"


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    restaurant_name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    delivery_price = Column(Integer, nullable=False)
    estimated_delivery_time = Column(Integer, nullable=False)
    cuisines = Column(JSON, nullable=False, default=list)
    image_url = Column(String(500), nullable=False)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    menu_items = relationship(
        "MenuItem",
        order_by="MenuItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Restaurant {self.id} - {self.restaurant_name}>"


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<MenuItem {self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    Customer order placed through checkout.

    The cart and delivery details belong to the order; the restaurant
    and user are references. ``total_amount`` is nullable because
    orders stored before totals were persisted have none.
    """
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # =========================================================================
    # DELIVERY DETAILS
    # =========================================================================
    delivery_email = Column(String(255), nullable=False)
    delivery_name = Column(String(100), nullable=False)
    delivery_address_line1 = Column(String(255), nullable=False)
    delivery_city = Column(String(100), nullable=False)

    # =========================================================================
    # PRICING & STATUS
    # =========================================================================
    total_amount = Column(BigInteger, nullable=True)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    cart_items = relationship(
        "CartItem",
        order_by="CartItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    restaurant = relationship("Restaurant", lazy="selectin")
    user = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Order {self.id} - {self.status.value} - {self.total_amount}>"


class CartItem(Base):
    """A cart line as submitted by the customer, before pricing."""
    __tablename__ = "order_cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    menu_item_id = Column(String(36), nullable=False)
    quantity = Column(String(10), nullable=False)
    name = Column(String(255), nullable=False)  # display copy only
    position = Column(Integer, nullable=False, default=0)


class ProcessedWebhookEvent(Base):
    """
    Payment provider events already applied.

    Stripe delivers webhooks at least once; an event id found here is
    acknowledged without touching the order again.
    """
    __tablename__ = "processed_webhook_events"

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    order_id = Column(String(36), nullable=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ProcessedWebhookEvent {self.event_id} - {self.event_type}>"
