"""Pytest fixtures for the storefront order services."""

import asyncio
import json
import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["TRACING_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

import pytest
from fastapi.testclient import TestClient

import main
from services.order_service.models import Order, OrderItem, OrderStatus, PAYMENT_SUCCEEDED
from services.payment_service.gateway import ProcessorRefund, set_gateway
from services.product_service.models import Product
from shared.config.database import AsyncSessionLocal, Base, engine
from shared.errors import PaymentProcessorError, ValidationError
from shared.security import ADMIN_ROLE, CurrentUser, create_access_token

CUSTOMER = CurrentUser(user_id="user-1", email="jane@example.com", role="customer")
OTHER_CUSTOMER = CurrentUser(user_id="user-2", email="bob@example.com", role="customer")
ADMIN = CurrentUser(user_id="admin-1", email="admin@example.com", role=ADMIN_ROLE)


class FakeGateway:
    """Stands in for Stripe: records refund calls and can be told to fail."""

    def __init__(self):
        self.refund_calls = []
        self.attempted_keys = []
        self.fail_with = None

    def parse_event(self, payload: bytes, signature: str) -> dict:
        if signature != "valid":
            raise ValidationError("Webhook Error: No signatures found matching the expected signature for payload")
        return json.loads(payload)

    async def create_refund(self, payment_intent_id, amount_cents, metadata, idempotency_key,
                            reason="requested_by_customer"):
        self.attempted_keys.append((idempotency_key, amount_cents))
        if self.fail_with:
            raise PaymentProcessorError(f"Failed to process refund with Stripe: {self.fail_with}")
        self.refund_calls.append({
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "metadata": metadata,
            "idempotency_key": idempotency_key,
            "reason": reason,
        })
        return ProcessorRefund(
            id=f"re_{len(self.refund_calls)}",
            amount_cents=amount_cents,
            reason=reason,
            status="succeeded",
        )


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture(autouse=True)
def database():
    """Fresh tables for every test."""
    asyncio.run(_reset_schema())
    yield


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    set_gateway(None)


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def in_session():
    """Run `fn(db)` inside a fresh AsyncSession and return its result."""
    def call(fn):
        async def scenario():
            async with AsyncSessionLocal() as db:
                return await fn(db)
        return asyncio.run(scenario())
    return call


def token_for(user: CurrentUser) -> str:
    return create_access_token(user.user_id, user.email, user.role)


def auth_headers(user: CurrentUser) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


async def add_products(db, *products: Product):
    for product in products:
        db.add(product)
    await db.commit()


async def add_order(db, items, **fields) -> Order:
    """Persist a paid processing order owned by CUSTOMER with the given (product_id, price_cents, qty) lines."""
    defaults = dict(
        order_number="ORD-261019-1234",
        customer_id=CUSTOMER.user_id,
        customer_email=CUSTOMER.email,
        status=OrderStatus.PROCESSING.value,
        payment_status=PAYMENT_SUCCEEDED,
        payment_intent_id="pi_123",
        subtotal_cents=sum(price * qty for _, price, qty in items),
        shipping_cost_cents=0,
        tax_amount_cents=0,
        tax_rate=0.0,
        discount_cents=0,
    )
    defaults.update(fields)
    if "total_cents" not in defaults:
        defaults["total_cents"] = (
            defaults["subtotal_cents"] + defaults["shipping_cost_cents"] + defaults["tax_amount_cents"]
        )
    order = Order(
        items=[
            OrderItem(position=i, product_id=product_id, name=f"Product {product_id}",
                      unit_price_cents=price, quantity=qty)
            for i, (product_id, price, qty) in enumerate(items)
        ],
        **defaults,
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)
    return order


async def stock_of(db, product_id: str) -> int:
    product = await db.get(Product, product_id, populate_existing=True)
    return product.stock


@pytest.fixture
def two_item_order(in_session):
    """$100 subtotal of two $50 items, $8 tax, $5 shipping, both products stocked at 10."""
    async def seed(db):
        await add_products(
            db,
            Product(id="p1", name="Phone", price_cents=5000, stock=10),
            Product(id="p2", name="Case", price_cents=5000, stock=10),
        )
        return await add_order(
            db,
            [("p1", 5000, 1), ("p2", 5000, 1)],
            tax_amount_cents=800,
            shipping_cost_cents=500,
        )
    return in_session(seed)


@pytest.fixture
def hundred_dollar_order(in_session):
    """Total of exactly $100: two units at $30 and one at $40, no tax or shipping."""
    async def seed(db):
        await add_products(
            db,
            Product(id="p1", name="Headphones", price_cents=3000, stock=5),
            Product(id="p2", name="Charger", price_cents=4000, stock=5),
        )
        return await add_order(db, [("p1", 3000, 2), ("p2", 4000, 1)])
    return in_session(seed)
