"""
Refund amount arithmetic, all in minor units.

Tax and shipping are spread over refunded lines in proportion to each line's
share of the order subtotal, and every line is rounded on its own before the
lines are summed.
"""
from dataclasses import dataclass

from services.order_service.models import Order, OrderItem
from shared.money import round_half_up


@dataclass(frozen=True)
class RefundLine:
    item_id: str
    quantity: int
    reason: str


def item_refund_cents(order: Order, item: OrderItem, quantity: int) -> int:
    item_money = item.unit_price_cents * quantity
    if order.subtotal_cents <= 0:
        return round_half_up(item_money)
    proportion = item_money / order.subtotal_cents
    item_tax = order.tax_amount_cents * proportion
    item_shipping = order.shipping_cost_cents * proportion
    return round_half_up(item_money + item_tax + item_shipping)


def lines_refund_cents(order: Order, lines: list[RefundLine]) -> int:
    return sum(item_refund_cents(order, order.get_item(line.item_id), line.quantity) for line in lines)


def outstanding_lines(order: Order, reason: str) -> list[RefundLine]:
    """Every unit not yet refunded, one line per item that still has some."""
    return [
        RefundLine(item.id, item.refundable_quantity, reason)
        for item in order.items
        if item.refundable_quantity > 0
    ]
