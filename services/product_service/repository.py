from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from .models import Product

class ProductRepository:

    @staticmethod
    async def get_products_by_ids(db: AsyncSession, product_ids: list[str]) -> dict[str, Product]:
        if not product_ids:
            return {}
        result = await db.execute(select(Product).where(Product.id.in_(set(product_ids))))
        return {p.id: p for p in result.scalars().all()}

    @staticmethod
    async def increment_stock(db: AsyncSession, product_id: str, quantity: int) -> bool:
        """Blind atomic increment; the caller owns the commit. False if the product is gone."""
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity)
        )
        return result.rowcount > 0
