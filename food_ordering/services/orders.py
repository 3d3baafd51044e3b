"""
Order Operations

The business flows behind the order endpoints:
    - list_user_orders: a customer's orders, backfilling missing totals
    - create_checkout_session: price a cart, store the order, open a
      hosted payment session
    - handle_payment_webhook: mark an order paid when the provider
      reports a completed session
    - delete_order: remove an order the caller owns
    - update_order_status: restaurant owner moves an order forward

Status changes are compare-and-set updates on the current status, so
concurrent requests cannot move an order backwards.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.core.config import Settings
from food_ordering.exceptions import (
    InvalidOrderStateError,
    OrderForbiddenError,
    OrderNotFoundError,
    PaymentProviderError,
    RestaurantNotFoundError,
)
from food_ordering.models import (
    CartItem,
    Order,
    OrderStatus,
    ProcessedWebhookEvent,
    Restaurant,
    new_id,
    utcnow,
)
from food_ordering.schemas import CheckoutSessionRequest, OrderResponse
from food_ordering.services.payment import (
    CHECKOUT_SESSION_COMPLETED,
    BasePaymentService,
)
from food_ordering.services.pricing import (
    build_delivery_option,
    build_line_items,
    calculate_missing_order_total,
    calculate_order_total,
)
from food_ordering.tasks import backfill_order_total

logger = logging.getLogger(__name__)

# Forward steps a restaurant owner may take. PLACED -> PAID belongs to
# the payment webhook.
NEXT_STATUS = {
    OrderStatus.PAID: OrderStatus.IN_PROGRESS,
    OrderStatus.IN_PROGRESS: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}


# =============================================================================
# LISTING
# =============================================================================

def schedule_total_backfill(order_id: str, total_amount: int) -> None:
    """
    Queue persistence of a computed total.

    Best effort: the read that computed the total has already been
    answered, so an unreachable broker is logged and nothing more.
    """
    try:
        backfill_order_total.delay(order_id, total_amount)
    except Exception:
        logger.exception(f"Could not queue total backfill for order {order_id}")


async def list_user_orders(
    db: AsyncSession,
    user_id: str,
    background_tasks: BackgroundTasks,
) -> list[OrderResponse]:
    """
    Return the user's orders, newest first, with restaurant and user
    expanded and a total on every order.

    Orders stored without a total get one from the lenient calculator;
    persisting it is queued after the response is sent.
    """
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
    )
    orders = result.scalars().all()

    responses = []
    for order in orders:
        total_amount: Optional[int] = None

        if order.total_amount is None:
            restaurant = order.restaurant
            total_amount = calculate_missing_order_total(
                order.cart_items,
                restaurant.menu_items,
                restaurant.delivery_price,
            )
            logger.info(f"Order {order.id} has no total, computed {total_amount}")
            background_tasks.add_task(schedule_total_backfill, order.id, total_amount)

        responses.append(OrderResponse.from_order(order, total_amount))

    return responses


# =============================================================================
# CHECKOUT
# =============================================================================

async def create_checkout_session(
    db: AsyncSession,
    payment_service: BasePaymentService,
    settings: Settings,
    user_id: str,
    checkout_request: CheckoutSessionRequest,
) -> str:
    """
    Create a PLACED order and a hosted checkout session for it.

    The order is flushed inside the request transaction and committed
    only once the provider has returned a session URL; any failure
    rolls it back, so no order exists without a session.

    Returns:
        str: Checkout URL to redirect the customer to

    Raises:
        RestaurantNotFoundError: Unknown restaurant
        MenuItemNotFoundError: Cart references an item not on the menu
        InvalidQuantityError: Cart quantity is not a positive integer
        PaymentProviderError: Session creation failed
    """
    restaurant = await db.get(Restaurant, checkout_request.restaurant_id)
    if restaurant is None:
        raise RestaurantNotFoundError()

    cart_items = checkout_request.cart_items
    total_amount = calculate_order_total(
        cart_items,
        restaurant.menu_items,
        restaurant.delivery_price,
    )
    line_items = build_line_items(cart_items, restaurant.menu_items, settings.stripe_currency)

    # Rollback expires loaded instances; keep plain values for logging
    restaurant_id = restaurant.id
    order_id = new_id()

    details = checkout_request.delivery_details
    order = Order(
        id=order_id,
        restaurant_id=restaurant_id,
        user_id=user_id,
        status=OrderStatus.PLACED,
        delivery_email=details.email,
        delivery_name=details.name,
        delivery_address_line1=details.address_line1,
        delivery_city=details.city,
        cart_items=[
            CartItem(
                menu_item_id=item.menu_item_id,
                quantity=item.quantity,
                name=item.name,
                position=position,
            )
            for position, item in enumerate(cart_items)
        ],
        total_amount=total_amount,
        created_at=utcnow(),
    )
    db.add(order)
    await db.flush()

    try:
        session = await payment_service.create_checkout_session(
            line_items=line_items,
            delivery_option=build_delivery_option(
                restaurant.delivery_price,
                settings.stripe_currency,
            ),
            metadata={
                "orderId": order_id,
                "restaurantId": restaurant_id,
            },
            success_url=f"{settings.frontend_url}/order-status?success=true",
            cancel_url=f"{settings.frontend_url}/detail/{restaurant_id}?cancelled=true",
        )
    except Exception as e:
        await db.rollback()
        logger.exception(f"Checkout session failed for restaurant {restaurant_id}")
        raise PaymentProviderError() from e

    if not session.success or not session.url:
        await db.rollback()
        logger.error(
            f"Checkout session failed for restaurant {restaurant_id}: "
            f"{session.error_code} {session.error_message}"
        )
        raise PaymentProviderError(session.error_message)

    await db.commit()

    logger.info(
        f"Order {order_id} placed (total={total_amount}, "
        f"session={session.session_id})"
    )
    return session.url


# =============================================================================
# PAYMENT WEBHOOK
# =============================================================================

async def handle_payment_webhook(
    db: AsyncSession,
    payment_service: BasePaymentService,
    payload: bytes,
    signature: Optional[str],
) -> None:
    """
    Apply a payment provider webhook.

    A completed checkout session marks its order PAID, and the amount
    the provider charged, when reported, replaces the stored total.
    Orders no longer PLACED are left as they are. Each event id is
    applied at most once.

    Raises:
        WebhookSignatureError: Signature verification failed
        OrderNotFoundError: The event references no stored order
    """
    event = await payment_service.verify_webhook(payload, signature)

    if event.type != CHECKOUT_SESSION_COMPLETED:
        logger.debug(f"Ignoring webhook event {event.id} ({event.type})")
        return

    if await db.get(ProcessedWebhookEvent, event.id) is not None:
        logger.info(f"Webhook event {event.id} already processed")
        return

    order = await db.get(Order, event.order_id) if event.order_id else None
    if order is None:
        logger.warning(f"Webhook event {event.id} references unknown order {event.order_id}")
        raise OrderNotFoundError()

    values = {"status": OrderStatus.PAID}
    if event.amount_total is not None:
        values["total_amount"] = event.amount_total

    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == OrderStatus.PLACED)
        .values(**values)
    )
    if result.rowcount == 0:
        logger.info(f"Order {order.id} is {order.status.value}, not marking paid again")

    db.add(ProcessedWebhookEvent(
        event_id=event.id,
        event_type=event.type,
        order_id=order.id,
    ))

    try:
        await db.commit()
    except IntegrityError:
        # Same event delivered concurrently; the other delivery won
        await db.rollback()
        logger.info(f"Webhook event {event.id} processed concurrently")
        return

    if result.rowcount:
        logger.info(f"Order {order.id} paid (amount_total={event.amount_total})")


# =============================================================================
# LIFECYCLE
# =============================================================================

async def delete_order(db: AsyncSession, order_id: str, user_id: str) -> None:
    """
    Permanently delete an order owned by the caller.

    Raises:
        OrderNotFoundError: No such order
        OrderForbiddenError: Caller does not own the order
        InvalidOrderStateError: Order is in progress
    """
    order = await db.get(Order, order_id)

    if order is None:
        raise OrderNotFoundError()

    if order.user_id != user_id:
        raise OrderForbiddenError("Unauthorized to delete this order")

    if order.status == OrderStatus.IN_PROGRESS:
        raise InvalidOrderStateError("Cannot delete order that is in progress")

    await db.execute(delete(CartItem).where(CartItem.order_id == order_id))
    result = await db.execute(
        delete(Order).where(
            Order.id == order_id,
            Order.status != OrderStatus.IN_PROGRESS,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidOrderStateError("Cannot delete order that is in progress")

    await db.commit()
    logger.info(f"Order {order_id} deleted by user {user_id}")


async def update_order_status(
    db: AsyncSession,
    order_id: str,
    user_id: str,
    new_status: OrderStatus,
) -> OrderResponse:
    """
    Move an order one step forward, on behalf of the restaurant owner.

    Raises:
        OrderNotFoundError: No such order
        OrderForbiddenError: Caller does not own the order's restaurant
        InvalidOrderStateError: Not the next step, or the status changed
            underneath us
    """
    order = await db.get(Order, order_id)

    if order is None:
        raise OrderNotFoundError()

    if order.restaurant.user_id != user_id:
        raise OrderForbiddenError()

    current = order.status
    if NEXT_STATUS.get(current) != new_status:
        raise InvalidOrderStateError(
            f"Cannot change order status from {current.value} to {new_status.value}"
        )

    result = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status == current)
        .values(status=new_status)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidOrderStateError("Order status changed, reload and retry")

    await db.commit()
    await db.refresh(order)

    logger.info(f"Order {order_id}: {current.value} -> {new_status.value}")
    return OrderResponse.from_order(order)
