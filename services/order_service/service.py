from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.service import NotificationService
from services.product_service.service import InventoryService, StockRestoration
from services.refund_service.service import RefundService
from shared.best_effort import BestEffortResult, run_best_effort
from shared.clock import utcnow
from shared.errors import AuthorizationError, NotFoundError, PaymentProcessorError, ValidationError
from shared.observability.metrics import ecomm_cancellations_total
from shared.security import CurrentUser
from .models import Order, OrderStatus
from .repository import OrderRepository
from .schemas import StatusUpdateRequest
from .transitions import check_can_cancel, check_item_delivery, check_status_change, parse_status

logger = structlog.get_logger(__name__)


@dataclass
class CancellationOutcome:
    order: Order
    refund_id: str | None
    inventory: BestEffortResult
    notification: BestEffortResult


class OrderService:
    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    @staticmethod
    async def get_customer_order(db: AsyncSession, order_id: str, user: CurrentUser) -> Order:
        order = await OrderService.get_order(db, order_id)
        if order.customer_id != user.user_id:
            raise AuthorizationError("You are not authorized to view this order")
        return order

    @staticmethod
    async def list_customer_orders(db: AsyncSession, user: CurrentUser) -> list[Order]:
        return await OrderRepository.list_for_customer(db, user.user_id)

    @staticmethod
    async def list_recent_orders(db: AsyncSession, limit: int = 50) -> list[Order]:
        return await OrderRepository.list_recent(db, limit)

    @staticmethod
    async def cancel_order(
        db: AsyncSession, order_id: str, user: CurrentUser, as_admin: bool = False
    ) -> CancellationOutcome:
        """
        Cancel a processing order.

        A paid order first gets its remaining balance refunded through the
        refund processor; if Stripe refuses, nothing changes. Stock is then
        put back and the customer notified, both best-effort.
        """
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        if not order:
            raise NotFoundError("Order not found")
        if not as_admin and order.customer_id != user.user_id:
            raise AuthorizationError("You are not authorized to cancel this order")
        check_can_cancel(order)

        paid = order.payment_captured
        refund_id = None
        if paid and order.max_refundable_cents > 0:
            try:
                refund = await RefundService.refund_remaining(
                    db, order_id, processed_by=user.email or user.user_id, reason="Order cancellation"
                )
            except PaymentProcessorError as e:
                logger.error("cancellation_refund_failed", order_id=order_id, error=e.message)
                raise PaymentProcessorError("Failed to process refund. Please try again or contact support.")
            refund_id = refund.refund_id
            order = refund.order

        now = utcnow()
        order.status = OrderStatus.CANCELLED.value
        order.cancelled_at = now
        order.updated_at = now
        order = await OrderRepository.save(db, order)
        ecomm_cancellations_total.labels(paid=str(paid).lower()).inc()
        logger.info("order_cancelled", order_id=order.id, paid=paid, refund_id=refund_id, by=user.user_id)

        inventory = await run_best_effort("inventory_restoration", InventoryService.restore_for_order(db, order.id))
        order = await OrderRepository.get_order(db, order.id, refresh=True)
        notification = await run_best_effort("cancellation_email", NotificationService.send_cancellation_email(order))
        return CancellationOutcome(order=order, refund_id=refund_id, inventory=inventory, notification=notification)

    @staticmethod
    async def update_status(
        db: AsyncSession, order_id: str, request: StatusUpdateRequest, admin: CurrentUser
    ) -> Order:
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        if not order:
            raise NotFoundError("Order not found")
        target = parse_status(request.status)
        now = utcnow()

        if request.item_id:
            if target != OrderStatus.DELIVERED:
                raise ValidationError("Only the delivered status can be set on a single item.")
            item = order.get_item(request.item_id)
            if item is None:
                raise NotFoundError(f"Item with ID {request.item_id} not found in order")
            check_item_delivery(item)
            item.delivered = True
            item.delivered_at = now
            order.updated_at = now
            order = await OrderRepository.save(db, order)
            logger.info("item_delivered", order_id=order.id, item_id=item.id, by=admin.user_id)
            return order

        check_status_change(order, target)
        if target == OrderStatus.CANCELLED:
            outcome = await OrderService.cancel_order(db, order_id, admin, as_admin=True)
            return outcome.order

        previous = order.status
        order.status = target.value
        order.updated_at = now
        if target == OrderStatus.DELIVERED:
            order.delivered_at = now
            for item in order.items:
                if not item.delivered:
                    item.delivered = True
                    item.delivered_at = now
        order = await OrderRepository.save(db, order)
        logger.info("order_status_changed", order_id=order.id, previous=previous, status=order.status, by=admin.user_id)
        return order

    @staticmethod
    async def restore_inventory(db: AsyncSession, order_id: str) -> list[StockRestoration]:
        """Re-run stock reconciliation for an order, surfacing any failure to the caller."""
        await OrderService.get_order(db, order_id)
        return await InventoryService.restore_for_order(db, order_id)
