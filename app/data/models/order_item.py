from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from app.data.database import Base


class OrderItemModel(Base):
    """Snapshot pozycji - niezalezny od pozniejszych zmian w katalogu."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="RESTRICT"), nullable=False)

    product_name = Column(String(255), nullable=False)
    product_sku = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="items")
    #tylko do wyswietlenia, snapshot sie nie zmienia
    product = relationship("ProductModel")
    store = relationship("StoreModel")

    @property
    def store_name(self):
        return self.store.name if self.store else None

    @property
    def store_code(self):
        return self.store.code if self.store else None

    @property
    def current_product_status(self):
        return self.product.status if self.product else None
