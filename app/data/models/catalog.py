#app/data/models/catalog.py
#katalog jest zarzadzany gdzie indziej, tutaj tylko odczyt stanu i cen
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, UniqueConstraint

from app.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(100), nullable=True, unique=True)
    price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active, inactive


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True)


class ProductStoreModel(Base):
    __tablename__ = "product_store"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)

    stock = Column(Integer, nullable=False, default=0)
    #null = cena bazowa produktu
    price = Column(Numeric(10, 2), nullable=True)

    __table_args__ = (UniqueConstraint("product_id", "store_id", name="uq_product_store"),)
