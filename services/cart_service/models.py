from sqlalchemy import JSON, Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from shared.config.database import Base

class Cart(Base):
    __tablename__ = "carts"

    user_id = Column(String(64), primary_key=True, index=True)

    # Relationship to items
    items = relationship("CartItem", back_populates="cart", lazy="selectin", cascade="all, delete-orphan")

class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("carts.user_id"), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    quantity = Column(Integer, default=1)
    color = Column(JSON, nullable=True)
    storage = Column(JSON, nullable=True)

    cart = relationship("Cart", back_populates="items")
