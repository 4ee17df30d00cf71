from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from shared.errors import ConflictError
from .models import Order, OrderItem

STALE_ORDER_MESSAGE = "Order was modified by another request. Reload it and try again."


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order) -> Order:
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str, refresh: bool = False) -> Order | None:
        stmt = select(Order).where(Order.id == order_id)
        if refresh:
            # Re-read the row even if this session already holds the order
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_payment_intent(db: AsyncSession, payment_intent_id: str) -> Order | None:
        result = await db.execute(select(Order).where(Order.payment_intent_id == payment_intent_id))
        return result.scalars().first()

    @staticmethod
    async def list_for_customer(db: AsyncSession, customer_id: str) -> list[Order]:
        result = await db.execute(
            select(Order).where(Order.customer_id == customer_id).order_by(Order.order_date.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_recent(db: AsyncSession, limit: int = 50) -> list[Order]:
        result = await db.execute(select(Order).order_by(Order.order_date.desc()).limit(limit))
        return list(result.scalars().all())

    @staticmethod
    async def save(db: AsyncSession, order: Order) -> Order:
        """Commit pending changes to an order, failing if its version moved underneath us."""
        try:
            await db.commit()
        except StaleDataError:
            await db.rollback()
            raise ConflictError(STALE_ORDER_MESSAGE)
        await db.refresh(order)
        return order


    @staticmethod
    async def advance_restock_watermark(db: AsyncSession, item_id: str, seen: int, quantity: int) -> bool:
        """Compare-and-swap on an item's restocked_quantity; the caller owns the commit."""
        result = await db.execute(
            update(OrderItem)
            .where(OrderItem.id == item_id, OrderItem.restocked_quantity == seen)
            .values(restocked_quantity=seen + quantity)
        )
        return result.rowcount > 0
