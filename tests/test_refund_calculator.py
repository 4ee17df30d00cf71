import pytest

from services.order_service.models import Order, OrderItem
from services.refund_service.calculator import (
    RefundLine,
    item_refund_cents,
    lines_refund_cents,
    outstanding_lines,
)
from shared.money import format_dollars, round_half_up, to_cents


def make_order(subtotal, tax=0, shipping=0, items=()):
    return Order(
        subtotal_cents=subtotal,
        tax_amount_cents=tax,
        shipping_cost_cents=shipping,
        total_cents=subtotal + tax + shipping,
        refunded_amount_cents=0,
        items=[
            OrderItem(id=item_id, name=item_id, unit_price_cents=price, quantity=qty, refunded_quantity=refunded)
            for item_id, price, qty, refunded in items
        ],
    )


class TestItemRefund:
    def test_tax_and_shipping_follow_the_item_share(self):
        order = make_order(10000, tax=800, shipping=500, items=[("a", 5000, 1, 0), ("b", 5000, 1, 0)])

        assert item_refund_cents(order, order.get_item("a"), 1) == 5650

    def test_all_lines_together_return_the_order_total(self):
        order = make_order(10000, tax=800, shipping=500, items=[("a", 5000, 1, 0), ("b", 5000, 1, 0)])
        lines = [RefundLine("a", 1, "Damaged"), RefundLine("b", 1, "Damaged")]

        assert lines_refund_cents(order, lines) == order.total_cents

    def test_half_cent_rounds_up(self):
        order = make_order(2000, tax=1, items=[("a", 1000, 1, 0), ("b", 1000, 1, 0)])

        assert item_refund_cents(order, order.get_item("a"), 1) == 1001

    def test_each_line_is_rounded_before_summing(self):
        order = make_order(3000, tax=100, items=[("a", 1000, 1, 0), ("b", 1000, 1, 0), ("c", 1000, 1, 0)])
        lines = [RefundLine(i, 1, "") for i in ("a", "b", "c")]

        # 1033.33 per line, rounded to 1033 three times
        assert lines_refund_cents(order, lines) == 3099

    def test_zero_subtotal_refunds_only_the_item_price(self):
        order = make_order(0, tax=800, shipping=500, items=[("a", 2500, 2, 0)])

        assert item_refund_cents(order, order.get_item("a"), 2) == 5000

    def test_outstanding_lines_skip_fully_refunded_items(self):
        order = make_order(9000, items=[("a", 3000, 2, 2), ("b", 3000, 1, 0), ("c", 1000, 3, 1)])

        lines = outstanding_lines(order, "Full refund")

        assert [(l.item_id, l.quantity) for l in lines] == [("b", 1), ("c", 2)]
        assert all(l.reason == "Full refund" for l in lines)


class TestMoney:
    @pytest.mark.parametrize("value,expected", [
        ("19.99", 1999),
        (100, 10000),
        (0.1 + 0.2, 30),
        ("0.005", 1),
        (None, 0),
        ("", 0),
    ])
    def test_to_cents(self, value, expected):
        assert to_cents(value) == expected

    def test_to_cents_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_cents("twelve dollars")

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "-Infinity", "NaN"])
    def test_to_cents_rejects_non_finite_amounts(self, value):
        with pytest.raises(ValueError):
            to_cents(value)

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4999) == 2
        assert round_half_up(-0.5) == 0
        assert round_half_up(-2.5) == -2

    def test_format_dollars(self):
        assert format_dollars(5650) == "$56.50"
        assert format_dollars(0) == "$0.00"
