from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean, Text
from sqlalchemy.orm import relationship

from app.data.database import Base
from app.domain.order_status import OrderStatus


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    shipping_address_id = Column(
        Integer,
        ForeignKey("customer_addresses.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status = Column(String(20), nullable=False, default=OrderStatus.CREATED.value, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    #identyfikatory bramki, null dopoki platnosc nie ruszy
    gateway_order_id = Column(String(100), nullable=True, index=True)
    gateway_payment_id = Column(String(100), nullable=True, index=True)
    gateway_signature = Column(String(255), nullable=True)
    payment_completed_at = Column(DateTime(timezone=True), nullable=True)

    #anulowane po oplaceniu - zwrot robiony recznie
    refund_required = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    #optimistic locking dla przejsc statusu
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    shipping_address = relationship("CustomerAddressModel")
    customer = relationship("CustomerModel")

    @property
    def customer_name(self):
        return self.customer.name if self.customer else None

    @property
    def customer_email(self):
        return self.customer.email if self.customer else None
