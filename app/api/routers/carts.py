#app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import CurrentUser, require_customer
from app.data.database import get_db
from app.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartLineOut,
    CartOut,
    CartValidationOut,
    MessageOut,
)
from app.services.cart_service import CartService
from app.services.checkout_validator import CheckoutValidator

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    return svc.get_cart(user.id)


@router.get("/validate", response_model=CartValidationOut)
def validate_cart(
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    validation = CheckoutValidator(svc).validate(user.id)
    return {
        "valid": validation.valid,
        "issues": validation.issues,
        "cart_summary": validation.cart["summary"],
    }


@router.post("/items", response_model=CartLineOut, status_code=201)
def add_item(
    payload: CartItemIn,
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    return svc.add_item(
        customer_id=user.id,
        product_id=payload.product_id,
        store_id=payload.store_id,
        quantity=payload.quantity,
    )


@router.put("/items/{item_id}", response_model=CartLineOut | MessageOut)
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    line = svc.update_item(user.id, item_id, payload.quantity)
    if line is None:
        return {"message": "Item removed from cart"}
    return line


@router.delete("/items/{item_id}", response_model=MessageOut)
def remove_item(
    item_id: int,
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    svc.remove_item(user.id, item_id)
    return {"message": "Item removed from cart"}


@router.delete("", response_model=MessageOut)
def clear_cart(
    user: CurrentUser = Depends(require_customer),
    svc: CartService = Depends(get_service),
):
    svc.clear_cart(user.id)
    return {"message": "Cart cleared successfully"}
