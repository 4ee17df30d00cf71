"""
Refund processor.

A refund is checked entirely against the stored order before Stripe is
called, so a rejected request leaves no trace. Once Stripe has accepted it,
the RefundRecord, the order totals and status, and the per-item refunded
quantities are committed together. Inventory restoration follows as a
best-effort step: the money has already moved and that cannot be undone
because a stock counter failed to update.

Two guards cover concurrent refunds of the same order. Callers may pass the
order version they last saw and are rejected if it has moved. Every Stripe
call also carries an idempotency key built from the order id and version, so
two requests racing against the same order state cannot both move money.
A failed Stripe call moves the order to a new version, so the next attempt
is sent under a fresh key.
"""
from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import Order, OrderStatus, RefundRecord
from services.order_service.repository import STALE_ORDER_MESSAGE, OrderRepository
from services.payment_service.gateway import get_gateway
from services.product_service.service import InventoryService
from shared.best_effort import BestEffortResult, run_best_effort
from shared.clock import utcnow
from shared.errors import ConflictError, DomainError, NotFoundError, ValidationError
from shared.money import format_dollars, to_cents
from shared.observability.metrics import ecomm_refunded_cents_total, ecomm_refunds_total
from .calculator import RefundLine, lines_refund_cents, outstanding_lines
from .schemas import RefundRequest

logger = structlog.get_logger(__name__)


class RefundMode(str, Enum):
    ITEMS = "items"
    AMOUNT = "amount"


@dataclass(frozen=True)
class RefundPlan:
    mode: RefundMode
    lines: list[RefundLine]
    amount_cents: int
    reason: str
    custom_reason: str


@dataclass
class RefundOutcome:
    refund_id: str
    amount_cents: int
    order: Order
    inventory: BestEffortResult

    @property
    def amount(self) -> float:
        return self.amount_cents / 100

    @property
    def message(self) -> str:
        return f"Successfully processed refund of {format_dollars(self.amount_cents)}"


def _check_refundable(order: Order):
    if not order.payment_captured:
        raise ValidationError(
            "Order cannot be refunded. Payment was not successful or payment intent is missing."
        )


def _check_amount(order: Order, amount_cents: int):
    if amount_cents <= 0:
        raise ValidationError("Refund amount must be greater than zero")
    if amount_cents > order.max_refundable_cents:
        raise ValidationError(
            f"Refund amount exceeds maximum refundable amount of {format_dollars(order.max_refundable_cents)}"
        )


def _itemized_plan(order: Order, request: RefundRequest) -> RefundPlan:
    requested = {}
    lines = []
    for entry in request.items:
        item = order.get_item(entry.item_id)
        if item is None:
            raise ValidationError(f"Item with ID {entry.item_id} not found in order")
        if entry.quantity <= 0:
            raise ValidationError(f"Refund quantity for item {item.name} must be greater than zero")
        available = item.refundable_quantity - requested.get(item.id, 0)
        if entry.quantity > available:
            raise ValidationError(
                f"Requested quantity ({entry.quantity}) exceeds available quantity ({available}) for item {item.name}"
            )
        requested[item.id] = requested.get(item.id, 0) + entry.quantity
        lines.append(RefundLine(item.id, entry.quantity, entry.reason or request.reason or "Partial refund"))

    amount_cents = lines_refund_cents(order, lines)
    _check_amount(order, amount_cents)
    return RefundPlan(
        mode=RefundMode.ITEMS,
        lines=lines,
        amount_cents=amount_cents,
        reason=request.reason or "Partial refund by admin",
        custom_reason=request.reason or "Admin initiated refund",
    )


def _requested_cents(amount) -> int:
    try:
        return to_cents(amount)
    except ValueError:
        raise ValidationError("Refund amount must be a finite number")


def _remaining_balance_plan(order: Order, reason: str | None, amount_cents: int | None = None) -> RefundPlan:
    """Whole-order refund: the amount must be exactly what is left, and every unit is marked refunded."""
    remaining = order.max_refundable_cents
    if amount_cents is None:
        amount_cents = remaining
    _check_amount(order, amount_cents)
    if amount_cents != remaining:
        raise ValidationError(
            f"Amount refunds must cover the full remaining balance of {format_dollars(remaining)}. "
            "Use an itemized refund for a partial amount."
        )
    return RefundPlan(
        mode=RefundMode.AMOUNT,
        lines=outstanding_lines(order, reason or "Full refund"),
        amount_cents=amount_cents,
        reason=reason or "Full refund by admin",
        custom_reason=reason or "Admin initiated refund",
    )


class RefundService:

    @staticmethod
    async def refund(db: AsyncSession, order_id: str, request: RefundRequest, processed_by: str) -> RefundOutcome:
        mode = RefundMode.ITEMS if request.items else RefundMode.AMOUNT
        try:
            if not request.items and not request.amount:
                raise ValidationError("Either items or amount must be specified for refund")

            order = await OrderRepository.get_order(db, order_id, refresh=True)
            if order is None:
                raise NotFoundError("Order not found")
            if request.expected_version is not None and request.expected_version != order.version:
                raise ConflictError(STALE_ORDER_MESSAGE)
            _check_refundable(order)

            if request.items:
                plan = _itemized_plan(order, request)
            else:
                plan = _remaining_balance_plan(order, request.reason, _requested_cents(request.amount))
        except DomainError as e:
            ecomm_refunds_total.labels(mode=mode.value, outcome="rejected").inc()
            logger.info("refund_rejected", order_id=order_id, mode=mode.value, reason=e.message)
            raise

        return await RefundService._execute(db, order, plan, processed_by)

    @staticmethod
    async def refund_remaining(db: AsyncSession, order_id: str, processed_by: str, reason: str) -> RefundOutcome:
        """Refund whatever is left on the order; used when a paid order is cancelled."""
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        if order is None:
            raise NotFoundError("Order not found")
        _check_refundable(order)
        return await RefundService._execute(db, order, _remaining_balance_plan(order, reason), processed_by)

    @staticmethod
    async def _retire_idempotency_key(db: AsyncSession, order: Order):
        """
        Move the order to a new version after a failed processor call.

        Stripe replays the stored result for a key it has already seen, so a
        retry under the old key would get the same error back even once the
        cause is fixed. Money fields are left untouched.
        """
        order_id = order.id
        order.updated_at = utcnow()
        try:
            await OrderRepository.save(db, order)
        except ConflictError:
            # Another request already moved the version, which is all we need
            logger.info("refund_key_already_retired", order_id=order_id)

    @staticmethod
    async def _execute(db: AsyncSession, order: Order, plan: RefundPlan, processed_by: str) -> RefundOutcome:
        order_id = order.id
        try:
            processor_refund = await get_gateway().create_refund(
                payment_intent_id=order.payment_intent_id,
                amount_cents=plan.amount_cents,
                metadata={
                    "orderId": order.id,
                    "orderNumber": order.order_number,
                    "refundType": plan.mode.value,
                    "processedBy": processed_by,
                    "customReason": plan.custom_reason,
                },
                idempotency_key=f"refund-{order.id}-v{order.version}",
            )
        except DomainError as e:
            ecomm_refunds_total.labels(mode=plan.mode.value, outcome="processor_error").inc()
            logger.error("refund_processor_failed", order_id=order_id, amount_cents=plan.amount_cents, error=e.message)
            await RefundService._retire_idempotency_key(db, order)
            raise

        now = utcnow()
        order.refunds.append(RefundRecord(
            id=processor_refund.id,
            amount_cents=plan.amount_cents,
            reason=plan.reason,
            stripe_reason=processor_refund.reason,
            items=[{"item_id": l.item_id, "quantity": l.quantity, "reason": l.reason} for l in plan.lines],
            processed_by=processed_by,
            created_at=now,
        ))
        order.refunded_amount_cents += plan.amount_cents
        order.refunded_at = now
        order.updated_at = now
        if order.refunded_amount_cents >= order.total_cents:
            order.refunded = True
            order.partially_refunded = False
            order.status = OrderStatus.REFUNDED.value
        elif order.refunded_amount_cents > 0:
            order.partially_refunded = True
            order.status = OrderStatus.PARTIALLY_REFUNDED.value

        for line in plan.lines:
            item = order.get_item(line.item_id)
            item.refunded_quantity += line.quantity
            item.refund_reason = line.reason
            item.last_refunded_at = now

        try:
            await OrderRepository.save(db, order)
        except ConflictError:
            logger.critical(
                "refund_not_recorded",
                order_id=order_id,
                refund_id=processor_refund.id,
                amount_cents=plan.amount_cents,
            )
            raise ConflictError(
                f"Refund {processor_refund.id} was issued but the order changed before it could be recorded. "
                "Reconcile this order manually."
            )

        ecomm_refunds_total.labels(mode=plan.mode.value, outcome="succeeded").inc()
        ecomm_refunded_cents_total.inc(plan.amount_cents)
        logger.info(
            "refund_processed",
            order_id=order_id,
            refund_id=processor_refund.id,
            mode=plan.mode.value,
            amount_cents=plan.amount_cents,
            processed_by=processed_by,
        )

        inventory = await run_best_effort(
            "inventory_restoration",
            InventoryService.restore_for_order(db, order_id, [l.item_id for l in plan.lines]),
        )
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        return RefundOutcome(
            refund_id=processor_refund.id,
            amount_cents=plan.amount_cents,
            order=order,
            inventory=inventory,
        )
