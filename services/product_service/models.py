from sqlalchemy import JSON, Column, Integer, String
from shared.config.database import Base

class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String, nullable=False)
    price_cents = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image_urls = Column(JSON, nullable=False, default=list)

    @property
    def primary_image(self) -> str:
        return self.image_urls[0] if self.image_urls else ""
