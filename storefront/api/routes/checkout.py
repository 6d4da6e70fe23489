from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, get_shopper
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.schemas import OrderSummary
from storefront.services import checkout
from storefront.services.sessions import Shopper

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("", summary="Place an order for the current cart")
def place_order(payload: dict = Body(...), db: Session = Depends(get_db), shopper: Shopper = Depends(get_shopper)):
    """Expects the shipping address fields: line1, line2, city, state, country, postal_code."""
    return checkout.create_order(db, shopper, payload)


@router.get("/orders/{order_id}", response_model=OrderSummary, summary="Order confirmation")
def order_confirmation(
    order_id: str,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
):
    order = checkout.get_order_by_id(db, order_id, viewer=user)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
