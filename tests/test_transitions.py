import pytest

from services.order_service.models import Order, OrderItem, OrderStatus
from services.order_service.transitions import (
    ALREADY_SHIPPED_MESSAGE,
    can_cancel,
    check_can_cancel,
    check_item_delivery,
    check_status_change,
    parse_status,
)
from shared.errors import ValidationError


def order_with(status: OrderStatus, refunded=False, partially_refunded=False) -> Order:
    return Order(status=status.value, refunded=refunded, partially_refunded=partially_refunded)


class TestCancellation:
    @pytest.mark.parametrize("status,allowed", [
        (OrderStatus.PROCESSING, True),
        (OrderStatus.SHIPPED, False),
        (OrderStatus.DELIVERED, False),
        (OrderStatus.CANCELLED, False),
        (OrderStatus.REFUNDED, False),
        (OrderStatus.PARTIALLY_REFUNDED, False),
    ])
    def test_only_processing_orders_can_be_cancelled(self, status, allowed):
        assert can_cancel(order_with(status)) is allowed

    @pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED])
    def test_shipped_orders_point_to_refunds(self, status):
        with pytest.raises(ValidationError) as exc:
            check_can_cancel(order_with(status))
        assert exc.value.message == ALREADY_SHIPPED_MESSAGE

    def test_partially_refunded_order_explains_itself(self):
        with pytest.raises(ValidationError) as exc:
            check_can_cancel(order_with(OrderStatus.PARTIALLY_REFUNDED, partially_refunded=True))
        assert "partially refunded" in exc.value.message

    def test_refund_flag_blocks_processing_order(self):
        assert not can_cancel(order_with(OrderStatus.PROCESSING, refunded=True))


class TestStatusChange:
    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
    ])
    def test_allowed(self, current, target):
        check_status_change(order_with(current), target)

    @pytest.mark.parametrize("current,target", [
        (OrderStatus.PROCESSING, OrderStatus.DELIVERED),
        (OrderStatus.DELIVERED, OrderStatus.SHIPPED),
        (OrderStatus.CANCELLED, OrderStatus.PROCESSING),
        (OrderStatus.SHIPPED, OrderStatus.PROCESSING),
    ])
    def test_rejected(self, current, target):
        with pytest.raises(ValidationError):
            check_status_change(order_with(current), target)

    def test_same_status_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            check_status_change(order_with(OrderStatus.SHIPPED), OrderStatus.SHIPPED)
        assert exc.value.message == "Order is already shipped."

    @pytest.mark.parametrize("target", [OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED])
    def test_refund_statuses_cannot_be_set_directly(self, target):
        with pytest.raises(ValidationError) as exc:
            check_status_change(order_with(OrderStatus.PROCESSING), target)
        assert exc.value.message == "Refund statuses can only be set by processing a refund."

    def test_fully_refunded_order_is_frozen(self):
        order = order_with(OrderStatus.REFUNDED, refunded=True)
        with pytest.raises(ValidationError) as exc:
            check_status_change(order, OrderStatus.SHIPPED)
        assert exc.value.message == "This order has been fully refunded. Status cannot be changed."

    def test_partially_refunded_order_is_frozen(self):
        order = order_with(OrderStatus.PARTIALLY_REFUNDED, partially_refunded=True)
        with pytest.raises(ValidationError) as exc:
            check_status_change(order, OrderStatus.DELIVERED)
        assert exc.value.message == "This order has been partially refunded. Status cannot be changed."

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_status("lost")
        assert exc.value.message == "Invalid status: lost"


class TestItemDelivery:
    def test_refunded_item_cannot_be_delivered(self):
        item = OrderItem(name="Phone", refunded_quantity=1, delivered=False)
        with pytest.raises(ValidationError):
            check_item_delivery(item)

    def test_delivered_item_cannot_be_delivered_again(self):
        item = OrderItem(name="Phone", refunded_quantity=0, delivered=True)
        with pytest.raises(ValidationError) as exc:
            check_item_delivery(item)
        assert exc.value.message == "Item Phone is already marked as delivered."
