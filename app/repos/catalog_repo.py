# app/repos/catalog_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.catalog import ProductModel, StoreModel, ProductStoreModel


class CatalogRepo:
    """Odczyt katalogu (produkty, sklepy, stany). Zapisy robi serwis katalogu."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_product(self, product_id: int) -> ProductModel | None:
        return self.db.execute(
            select(ProductModel).where(
                ProductModel.id == product_id,
                ProductModel.status == "active",
            )
        ).scalar_one_or_none()

    def get_store(self, store_id: int) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def get_product_store(self, product_id: int, store_id: int) -> ProductStoreModel | None:
        return self.db.execute(
            select(ProductStoreModel).where(
                ProductStoreModel.product_id == product_id,
                ProductStoreModel.store_id == store_id,
            )
        ).scalar_one_or_none()
