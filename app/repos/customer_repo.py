from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.customer import CustomerModel, CustomerAddressModel


class CustomerRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_customer(self, customer_id: int) -> CustomerModel | None:
        return self.db.get(CustomerModel, customer_id)

    def get_address(self, address_id: int, customer_id: int) -> CustomerAddressModel | None:
        #adres musi nalezec do klienta
        return self.db.execute(
            select(CustomerAddressModel).where(
                CustomerAddressModel.id == address_id,
                CustomerAddressModel.customer_id == customer_id,
            )
        ).scalar_one_or_none()
