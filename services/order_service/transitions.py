"""
Which status changes an order may go through.

    processing -> shipped | cancelled
    shipped    -> delivered

`delivered` and `cancelled` are terminal. `refunded` and
`partially_refunded` are only ever set by the refund processor, and once an
order carries either, its status is frozen. Marking a single item delivered
is not a status change and is allowed at any time unless that item has been
refunded.
"""
from shared.errors import ValidationError
from .models import Order, OrderItem, OrderStatus

ALLOWED_TRANSITIONS = {
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
    OrderStatus.PARTIALLY_REFUNDED: set(),
}

REFUND_STATUSES = {OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED}

ALREADY_SHIPPED_MESSAGE = "Cannot cancel order that has already been shipped. Please initiate a refund instead."


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}")


def refund_lock_reason(order: Order) -> str | None:
    if order.refunded or order.status == OrderStatus.REFUNDED:
        return "This order has been fully refunded. Status cannot be changed."
    if order.partially_refunded or order.status == OrderStatus.PARTIALLY_REFUNDED:
        return "This order has been partially refunded. Status cannot be changed."
    return None


def cancellation_block_reason(order: Order) -> str | None:
    status = parse_status(order.status)
    if status == OrderStatus.PROCESSING and refund_lock_reason(order) is None:
        return None
    if status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
        return ALREADY_SHIPPED_MESSAGE
    if status == OrderStatus.CANCELLED:
        return "Order has already been cancelled."
    if status == OrderStatus.PARTIALLY_REFUNDED or order.partially_refunded:
        return "Order has been partially refunded and cannot be cancelled. Please refund the remaining items instead."
    return "Order has already been refunded and cannot be cancelled."


def can_cancel(order: Order) -> bool:
    return cancellation_block_reason(order) is None


def check_can_cancel(order: Order):
    reason = cancellation_block_reason(order)
    if reason:
        raise ValidationError(reason)


def check_status_change(order: Order, target: OrderStatus):
    lock = refund_lock_reason(order)
    if lock:
        raise ValidationError(lock)
    if target in REFUND_STATUSES:
        raise ValidationError("Refund statuses can only be set by processing a refund.")
    current = parse_status(order.status)
    if target == current:
        raise ValidationError(f"Order is already {current.value}.")
    if target == OrderStatus.CANCELLED:
        check_can_cancel(order)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(f"Cannot change order status from {current.value} to {target.value}.")


def check_item_delivery(item: OrderItem):
    if item.refunded_quantity > 0:
        raise ValidationError(f"Item {item.name} has been refunded and cannot be marked as delivered.")
    if item.delivered:
        raise ValidationError(f"Item {item.name} is already marked as delivered.")
