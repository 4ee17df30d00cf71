"""
Payment capture intake.

Turns a verified `payment_intent.succeeded` event into an Order. Pricing was
settled when the PaymentIntent was created and travels in its metadata; it
is trusted here, only names, prices and images are snapshotted from the
current product records.

Creation is keyed by the PaymentIntent id, so a redelivered event returns the
existing order instead of creating a second one. Because of that, transient
failures are reported back to Stripe (which redelivers); payloads that can
never succeed are logged and acknowledged.
"""
import json
import random
from datetime import timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.cart_service.service import CartService
from services.order_service.models import Order, OrderItem, OrderStatus
from services.order_service.repository import OrderRepository
from services.product_service.repository import ProductRepository
from shared.best_effort import run_best_effort
from shared.clock import utcnow
from shared.money import to_cents
from shared.observability.metrics import ecomm_orders_created_total

logger = structlog.get_logger(__name__)

DELIVERY_DAYS = {
    "standard": 7,
    "express": 3,
    "overnight": 1,
}
DEFAULT_DELIVERY_DAYS = 7

# Emitted by Stripe while our own refund calls run; handled by the refund API already
REFUND_EVENT_TYPES = {"refund.created", "refund.updated", "charge.refunded", "charge.refund.updated"}


class InvalidPaymentEvent(ValueError):
    """The event can never produce an order, however often it is redelivered."""


def generate_order_number(now=None) -> str:
    now = now or utcnow()
    return f"ORD-{now.strftime('%y%m%d')}-{random.randint(1000, 9999)}"


def estimate_delivery(shipping_method: str | None, now=None):
    now = now or utcnow()
    return now + timedelta(days=DELIVERY_DAYS.get(shipping_method or "", DEFAULT_DELIVERY_DAYS))


def parse_cart(raw: str | None) -> list[dict]:
    try:
        cart = json.loads(raw or "[]")
    except ValueError as e:
        raise InvalidPaymentEvent(f"Cart metadata is not valid JSON: {e}")
    if not isinstance(cart, list):
        raise InvalidPaymentEvent("Cart metadata must be a list")
    for line in cart:
        if not isinstance(line, dict) or not line.get("productId"):
            raise InvalidPaymentEvent("Every cart line needs a productId")
        try:
            quantity = int(line.get("quantity", 1))
        except (TypeError, ValueError):
            raise InvalidPaymentEvent(f"Cart line {line['productId']} has a non-numeric quantity")
        if quantity < 1:
            raise InvalidPaymentEvent(f"Cart line {line['productId']} has quantity {quantity}")
        line["quantity"] = quantity
    return cart


class PaymentService:

    @staticmethod
    async def handle_event(db: AsyncSession, event: dict) -> Order | None:
        event_type = event.get("type", "")
        obj = event.get("data", {}).get("object", {})

        if event_type == "payment_intent.succeeded":
            return await PaymentService.handle_payment_intent_succeeded(db, obj)
        if event_type == "payment_intent.payment_failed":
            logger.error("payment_failed", payment_intent_id=obj.get("id"))
        elif event_type in REFUND_EVENT_TYPES:
            pass
        elif "refund" not in event_type:
            logger.info("webhook_unhandled_event", event_type=event_type)
        return None

    @staticmethod
    async def handle_payment_intent_succeeded(db: AsyncSession, intent: dict) -> Order | None:
        payment_intent_id = intent.get("id")
        metadata = intent.get("metadata") or {}
        user_id = metadata.get("userId")

        if not user_id or not payment_intent_id:
            logger.error("payment_missing_user", payment_intent_id=payment_intent_id)
            ecomm_orders_created_total.labels(outcome="rejected").inc()
            return None

        existing = await OrderRepository.get_by_payment_intent(db, payment_intent_id)
        if existing:
            logger.info("payment_event_duplicate", payment_intent_id=payment_intent_id, order_id=existing.id)
            ecomm_orders_created_total.labels(outcome="duplicate").inc()
            return existing

        try:
            order = await PaymentService._build_order(db, intent, metadata, user_id)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("payment_event_invalid", payment_intent_id=payment_intent_id, error=str(e))
            ecomm_orders_created_total.labels(outcome="rejected").inc()
            return None

        try:
            order = await OrderRepository.create_order(db, order)
        except IntegrityError:
            # A concurrent delivery of the same event won the insert
            await db.rollback()
            existing = await OrderRepository.get_by_payment_intent(db, payment_intent_id)
            if existing is None:
                ecomm_orders_created_total.labels(outcome="failed").inc()
                raise
            ecomm_orders_created_total.labels(outcome="duplicate").inc()
            return existing
        except Exception:
            ecomm_orders_created_total.labels(outcome="failed").inc()
            logger.exception("order_creation_failed", payment_intent_id=payment_intent_id)
            raise

        ecomm_orders_created_total.labels(outcome="created").inc()
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            total_cents=order.total_cents,
            items=len(order.items),
        )

        await run_best_effort("cart_clear", CartService.clear_cart(db, user_id))
        return order

    @staticmethod
    async def _build_order(db: AsyncSession, intent: dict, metadata: dict, user_id: str) -> Order:
        cart = parse_cart(metadata.get("cart"))
        products = await ProductRepository.get_products_by_ids(db, [line["productId"] for line in cart])
        shipping = intent.get("shipping") or {}
        vat_valid = metadata.get("vatValid") == "true"
        now = utcnow()

        items = []
        for position, line in enumerate(cart):
            product = products.get(line["productId"])
            items.append(OrderItem(
                position=position,
                product_id=line["productId"],
                name=product.name if product else "Unknown Product",
                unit_price_cents=product.price_cents if product else 0,
                quantity=line["quantity"],
                color=line.get("color"),
                storage=line.get("storage"),
                image_url=product.primary_image if product else "",
                delivered=False,
                refunded_quantity=0,
                restocked_quantity=0,
                refund_reason="",
            ))

        payment_method_types = intent.get("payment_method_types") or ["card"]
        return Order(
            order_number=generate_order_number(now),
            customer_id=str(user_id),
            customer_name=shipping.get("name") or "",
            customer_email=intent.get("receipt_email") or "",
            customer_phone=shipping.get("phone") or "",
            vat_number=metadata.get("vatNumber") or "",
            vat_valid=vat_valid,
            guest=False,
            status=OrderStatus.PROCESSING.value,
            currency=intent.get("currency") or "usd",
            subtotal_cents=to_cents(metadata.get("subtotal")),
            shipping_cost_cents=to_cents(metadata.get("shippingCost")),
            tax_amount_cents=to_cents(metadata.get("taxAmount")),
            tax_rate=float(metadata.get("taxRate") or 0),
            discount_cents=0,
            total_cents=int(intent["amount"]),
            payment_method=payment_method_types[0],
            payment_status=intent.get("status") or "",
            payment_intent_id=intent.get("id"),
            transaction_id=intent.get("latest_charge") or "",
            shipping_method=metadata.get("shippingMethod") or "standard",
            shipping_address=shipping.get("address") or {},
            estimated_delivery=estimate_delivery(metadata.get("shippingMethod"), now),
            notes=metadata.get("notes") or "",
            source="web",
            ip_address=metadata.get("clientIp") or "",
            user_agent=metadata.get("userAgent") or "",
            order_date=now,
            created_at=now,
            updated_at=now,
            items=items,
        )
