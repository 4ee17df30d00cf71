import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from .models import CartItem
from .repository import CartRepository

logger = structlog.get_logger(__name__)

class CartService:
    @staticmethod
    async def get_cart(db: AsyncSession, user_id: str):
        return await CartRepository.get_cart(db, user_id)

    @staticmethod
    async def add_item(db: AsyncSession, user_id: str, product_id: str, quantity: int = 1,
                       color: dict | None = None, storage: dict | None = None):
        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity, color=color, storage=storage)
        await CartRepository.add_item(db, item)
        return await CartRepository.get_cart(db, user_id)

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: str) -> int:
        removed = await CartRepository.clear_cart(db, user_id)
        logger.info("cart_cleared", user_id=user_id, items=removed)
        return removed
