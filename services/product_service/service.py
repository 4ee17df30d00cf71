"""
Inventory reconciliation.

Stock is put back from the order's own state, never from a quantity handed
in by the caller. Each order item keeps a `restocked_quantity` watermark; a
run restores only the difference between what the item has given back
(everything for a cancelled order, the refunded units otherwise) and what
was already restocked, then raises the watermark. Running it twice for the
same state restores nothing the second time.
"""
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import OrderItem, OrderStatus
from services.order_service.repository import OrderRepository
from .repository import ProductRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockRestoration:
    item_id: str
    product_id: str
    quantity: int


def returned_quantity(item: OrderItem, order_status: str) -> int:
    if order_status == OrderStatus.CANCELLED:
        return item.quantity
    return item.refunded_quantity


class InventoryService:

    @staticmethod
    async def restore_for_order(
        db: AsyncSession, order_id: str, item_ids: list[str] | None = None
    ) -> list[StockRestoration]:
        """Restore stock for the given items of an order (all items when None)."""
        order = await OrderRepository.get_order(db, order_id, refresh=True)
        if order is None:
            raise LookupError(f"Order {order_id} not found")

        wanted = set(item_ids) if item_ids is not None else None
        restored = []
        try:
            for item in order.items:
                if wanted is not None and item.id not in wanted:
                    continue
                outstanding = returned_quantity(item, order.status) - item.restocked_quantity
                if outstanding <= 0:
                    continue
                claimed = await OrderRepository.advance_restock_watermark(
                    db, item.id, item.restocked_quantity, outstanding
                )
                if not claimed:
                    # Another run restocked this item since we read it
                    continue
                found = await ProductRepository.increment_stock(db, item.product_id, outstanding)
                if not found:
                    # Deleted products cannot take stock back; the watermark still moves
                    logger.warning(
                        "restock_product_missing",
                        order_id=order.id, item_id=item.id, product_id=item.product_id,
                    )
                    continue
                restored.append(StockRestoration(item.id, item.product_id, outstanding))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if restored:
            logger.info(
                "inventory_restored",
                order_id=order.id,
                units=sum(r.quantity for r in restored),
                products=[r.product_id for r in restored],
            )
        return restored
