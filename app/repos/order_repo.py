# app/repos/order_repo.py
from datetime import datetime
from typing import Any, Dict, Iterable, List

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session, selectinload

from app.data.models.customer import CustomerModel
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_items(self, items: Iterable[OrderItemModel]) -> List[OrderItemModel]:
        items = list(items)
        self.db.add_all(items)
        self.db.flush()
        return items

    def order_number_exists(self, order_number: str) -> bool:
        return self.db.execute(
            select(OrderModel.id).where(OrderModel.order_number == order_number)
        ).first() is not None

    def get_order(self, order_id: int, customer_id: int | None = None) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .options(
                selectinload(OrderModel.items).selectinload(OrderItemModel.store),
                selectinload(OrderModel.items).selectinload(OrderItemModel.product),
                selectinload(OrderModel.shipping_address),
                selectinload(OrderModel.customer),
            )
            .where(OrderModel.id == order_id)
        )
        if customer_id is not None:
            stmt = stmt.where(OrderModel.customer_id == customer_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_gateway_order_id(self, gateway_order_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.gateway_order_id == gateway_order_id)
        ).scalars().first()

    def get_by_gateway_payment_id(self, gateway_payment_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.gateway_payment_id == gateway_payment_id)
        ).scalars().first()

    def list_orders(
        self,
        customer_id: int | None = None,
        status: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[tuple]:
        """Zwraca (order, item_count, customer_name, customer_email), najnowsze najpierw."""
        item_count = (
            select(func.count(OrderItemModel.id))
            .where(OrderItemModel.order_id == OrderModel.id)
            .correlate(OrderModel)
            .scalar_subquery()
        )
        stmt = select(
            OrderModel,
            item_count.label("item_count"),
            CustomerModel.name.label("customer_name"),
            CustomerModel.email.label("customer_email"),
        ).outerjoin(CustomerModel, CustomerModel.id == OrderModel.customer_id)
        if customer_id is not None:
            stmt = stmt.where(OrderModel.customer_id == customer_id)
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        if from_date is not None:
            stmt = stmt.where(OrderModel.created_at >= from_date)
        if to_date is not None:
            stmt = stmt.where(OrderModel.created_at <= to_date)

        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(limit).offset(offset)
        return [tuple(row) for row in self.db.execute(stmt).all()]

    def update_order_version(
        self,
        order_id: int,
        expected_status: str,
        old_version: int,
        new_data: Dict[str, Any],
    ) -> int:
        # Optimistic locking: update ... where id and status and version
        # 0 wierszy = ktos nas wyprzedzil
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status == expected_status,
                OrderModel.version == old_version,
            )
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def set_refund_required(self, order_id: int, value: bool) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .values(refund_required=value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
