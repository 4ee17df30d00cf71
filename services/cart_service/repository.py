from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from .models import Cart, CartItem

class CartRepository:
    @staticmethod
    async def get_cart(db: AsyncSession, user_id: str):
        result = await db.execute(select(Cart).where(Cart.user_id == user_id))
        return result.scalars().first()

    @staticmethod
    async def add_item(db: AsyncSession, item: CartItem):
        cart = await CartRepository.get_cart(db, item.user_id)
        if cart is None:
            db.add(Cart(user_id=item.user_id))

        result = await db.execute(
            select(CartItem)
            .where(CartItem.user_id == item.user_id)
            .where(CartItem.product_id == item.product_id)
        )
        existing_item = result.scalars().first()

        if existing_item:
            existing_item.quantity += item.quantity
        else:
            db.add(item)

        await db.commit()
        return True

    @staticmethod
    async def clear_cart(db: AsyncSession, user_id: str) -> int:
        """Deletes all items in the user's cart and commits."""
        stmt = delete(CartItem).where(CartItem.user_id == user_id)
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount
