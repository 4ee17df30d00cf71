import uuid
from enum import Enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from shared.clock import utcnow
from shared.config.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class OrderStatus(str, Enum):
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# Stripe's PaymentIntent status for a captured charge
PAYMENT_SUCCEEDED = "succeeded"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(String(20), nullable=False, index=True)  # ORD-YYMMDD-NNNN

    # Customer
    customer_id = Column(String(64), nullable=False, index=True)
    customer_name = Column(String(255), default="")
    customer_email = Column(String(255), default="")
    customer_phone = Column(String(64), default="")
    vat_number = Column(String(64), default="")
    vat_valid = Column(Boolean, default=False, nullable=False)
    guest = Column(Boolean, default=False, nullable=False)

    status = Column(String(32), default=OrderStatus.PROCESSING.value, nullable=False)

    # Money, all in minor units
    currency = Column(String(3), default="usd", nullable=False)
    subtotal_cents = Column(Integer, nullable=False, default=0)
    shipping_cost_cents = Column(Integer, nullable=False, default=0)
    tax_amount_cents = Column(Integer, nullable=False, default=0)
    tax_rate = Column(Float, nullable=False, default=0.0)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False)

    # Payment
    payment_method = Column(String(32), default="card")
    payment_status = Column(String(32), nullable=False)
    payment_intent_id = Column(String(255), unique=True, nullable=True)
    transaction_id = Column(String(255), default="")

    # Refund bookkeeping, derived from the refunds log
    refunded_amount_cents = Column(Integer, nullable=False, default=0)
    refunded = Column(Boolean, nullable=False, default=False)
    partially_refunded = Column(Boolean, nullable=False, default=False)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    # Shipping
    shipping_method = Column(String(32), default="standard")
    shipping_address = Column(JSON, default=dict)
    tracking_number = Column(String(255), default="")
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Request metadata captured at checkout
    notes = Column(Text, default="")
    source = Column(String(32), default="web")
    ip_address = Column(String(64), default="")
    user_agent = Column(String(512), default="")

    order_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Optimistic concurrency token, bumped on every UPDATE of this row
    version = Column(Integer, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )
    refunds = relationship(
        "RefundRecord",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="RefundRecord.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def refunded_amount(self) -> float:
        """Money returned so far, in major units."""
        return self.refunded_amount_cents / 100

    @property
    def max_refundable_cents(self) -> int:
        return self.total_cents - self.refunded_amount_cents

    @property
    def payment_captured(self) -> bool:
        return self.payment_status == PAYMENT_SUCCEEDED and bool(self.payment_intent_id)

    def get_item(self, item_id: str):
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Snapshot taken when the order was placed; the product may change or vanish later
    product_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)
    color = Column(JSON, nullable=True)
    storage = Column(JSON, nullable=True)
    image_url = Column(String(1024), default="")

    delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    refunded_quantity = Column(Integer, nullable=False, default=0)
    refund_reason = Column(String(255), default="")
    last_refunded_at = Column(DateTime(timezone=True), nullable=True)

    # Units already put back into product stock
    restocked_quantity = Column(Integer, nullable=False, default=0)

    order = relationship("Order", back_populates="items")

    @property
    def refundable_quantity(self) -> int:
        return self.quantity - self.refunded_quantity


class RefundRecord(Base):
    """Append-only audit entry, one per successful processor refund."""
    __tablename__ = "order_refunds"

    id = Column(String(255), primary_key=True)  # processor refund id
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    stripe_reason = Column(String(64), default="")
    items = Column(JSON, nullable=False, default=list)  # [{"item_id", "quantity", "reason"}]
    processed_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    order = relationship("Order", back_populates="refunds")

    @property
    def amount(self) -> float:
        return self.amount_cents / 100
