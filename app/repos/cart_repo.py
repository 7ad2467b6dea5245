# app/repos/cart_repo.py
from datetime import datetime, timezone
from typing import List, Tuple

from sqlalchemy import select, delete, update, and_
from sqlalchemy.orm import Session

from app.data.models.cart import CartModel
from app.data.models.cart_item import CartItemModel
from app.data.models.catalog import ProductModel, StoreModel, ProductStoreModel

#wiersz widoku koszyka: pozycja + produkt + sklep + stan magazynowy (moze nie istniec)
CartLineRow = Tuple[CartItemModel, ProductModel, StoreModel, ProductStoreModel | None]


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_customer(self, customer_id: int, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.customer_id == customer_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_item(self, item_id: int, cart_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        ).scalar_one_or_none()

    def get_item_by_product_store(self, cart_id: int, product_id: int, store_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                CartItemModel.store_id == store_id,
            )
        ).scalar_one_or_none()

    def get_items(self, cart_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def add_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_item(self, item_id: int, cart_id: int) -> int:
        result = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.id == item_id,
                CartItemModel.cart_id == cart_id,
            )
        )
        return result.rowcount

    def delete_items(self, cart_id: int) -> int:
        result = self.db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart_id))
        return result.rowcount

    def touch_cart(self, cart_id: int):
        self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(updated_at=datetime.now(timezone.utc))
        )

    def get_lines(self, cart_id: int, item_id: int | None = None) -> List[CartLineRow]:
        stmt = (
            select(CartItemModel, ProductModel, StoreModel, ProductStoreModel)
            .join(ProductModel, CartItemModel.product_id == ProductModel.id)
            .join(StoreModel, CartItemModel.store_id == StoreModel.id)
            .outerjoin(
                ProductStoreModel,
                and_(
                    ProductStoreModel.product_id == CartItemModel.product_id,
                    ProductStoreModel.store_id == CartItemModel.store_id,
                ),
            )
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.created_at.desc(), CartItemModel.id.desc())
        )
        if item_id is not None:
            stmt = stmt.where(CartItemModel.id == item_id)

        return [tuple(row) for row in self.db.execute(stmt).all()]
