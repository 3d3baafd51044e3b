"""
Order Pricing

Computes order totals from cart lines and menu prices, and builds the
Stripe Checkout line items for the same cart.

All amounts are integers in the minor currency unit.

Two total calculators exist:
    - calculate_order_total: strict, used when an order is created.
      Unknown menu items and bad quantities raise.
    - calculate_missing_order_total: lenient, used to backfill totals
      of stored orders. Problem lines contribute nothing.
"""

import logging
from typing import Iterable, Optional, Protocol, Sequence, Union

from food_ordering.exceptions import InvalidQuantityError, MenuItemNotFoundError

logger = logging.getLogger(__name__)

# Upper bound for a single cart line
MAX_QUANTITY = 1000


class CartLine(Protocol):
    menu_item_id: str
    quantity: Union[str, int]


class PricedItem(Protocol):
    id: str
    name: str
    price: int


def parse_quantity(value: Union[str, int]) -> int:
    """
    Parse a cart quantity.

    Cart quantities arrive as text. Surrounding whitespace is allowed;
    anything that is not a whole number from 1 to MAX_QUANTITY is
    rejected.

    Raises:
        InvalidQuantityError: Quantity is not an integer in range
    """
    if isinstance(value, bool):
        raise InvalidQuantityError(value)
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, str) and value.strip().isdecimal():
        quantity = int(value.strip())
    else:
        raise InvalidQuantityError(value)

    if quantity < 1 or quantity > MAX_QUANTITY:
        raise InvalidQuantityError(value)
    return quantity


def find_menu_item(
    menu_items: Iterable[PricedItem],
    menu_item_id: str,
) -> Optional[PricedItem]:
    """Resolve a menu item by identifier equality."""
    wanted = str(menu_item_id)
    for item in menu_items:
        if str(item.id) == wanted:
            return item
    return None


def calculate_order_total(
    cart_items: Sequence[CartLine],
    menu_items: Sequence[PricedItem],
    delivery_price: int,
) -> int:
    """
    Calculate the authoritative total for a new order.

    Args:
        cart_items: Cart lines to price
        menu_items: The restaurant's menu
        delivery_price: Flat delivery fee, added once

    Returns:
        int: Sum of price x quantity over the cart, plus delivery

    Raises:
        MenuItemNotFoundError: A cart line references an unknown item
        InvalidQuantityError: A cart line has an unparsable quantity
    """
    total = 0

    for cart_item in cart_items:
        menu_item = find_menu_item(menu_items, cart_item.menu_item_id)
        if menu_item is None:
            raise MenuItemNotFoundError(cart_item.menu_item_id)
        total += menu_item.price * parse_quantity(cart_item.quantity)

    total += delivery_price
    return total


def calculate_missing_order_total(
    cart_items: Sequence[CartLine],
    menu_items: Sequence[PricedItem],
    delivery_price: Optional[int],
) -> int:
    """
    Best-effort total for a stored order that has none.

    Lines whose menu item no longer exists, or whose quantity cannot be
    parsed, are skipped. The delivery price is added when known.
    """
    total = 0

    for cart_item in cart_items:
        menu_item = find_menu_item(menu_items, cart_item.menu_item_id)
        if menu_item is None:
            logger.debug(f"Skipping unknown menu item {cart_item.menu_item_id}")
            continue
        try:
            quantity = parse_quantity(cart_item.quantity)
        except InvalidQuantityError:
            logger.warning(
                f"Skipping cart line for {cart_item.menu_item_id}: "
                f"invalid quantity {cart_item.quantity!r}"
            )
            continue
        total += menu_item.price * quantity

    if delivery_price is not None:
        total += delivery_price

    return total


# =============================================================================
# CHECKOUT LINE ITEMS
# =============================================================================

def build_line_items(
    cart_items: Sequence[CartLine],
    menu_items: Sequence[PricedItem],
    currency: str,
) -> list[dict]:
    """
    Build Stripe Checkout line items, one per cart line, in cart order.

    Name and unit price come from the menu, not from the cart.
    """
    line_items = []

    for cart_item in cart_items:
        menu_item = find_menu_item(menu_items, cart_item.menu_item_id)
        if menu_item is None:
            raise MenuItemNotFoundError(cart_item.menu_item_id)

        line_items.append({
            "price_data": {
                "currency": currency,
                "unit_amount": menu_item.price,
                "product_data": {
                    "name": menu_item.name,
                },
            },
            "quantity": parse_quantity(cart_item.quantity),
        })

    return line_items


def build_delivery_option(delivery_price: int, currency: str) -> dict:
    """Fixed-amount shipping option carrying the delivery fee."""
    return {
        "shipping_rate_data": {
            "display_name": "Delivery",
            "type": "fixed_amount",
            "fixed_amount": {
                "amount": delivery_price,
                "currency": currency,
            },
        },
    }
