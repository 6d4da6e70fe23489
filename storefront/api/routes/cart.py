from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_shopper
from storefront.db.session import get_db
from storefront.schemas import CartView
from storefront.services import cart as cart_service
from storefront.services.sessions import Shopper

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def _with_cart(db: Session, shopper: Shopper, result: dict) -> dict:
    # Every mutation answers with the authoritative cart so clients can replace their copy.
    cart = cart_service.get_cart(db, shopper)
    return {**result, "cart": cart.model_dump(mode="json") if cart is not None else None}


@router.get("", response_model=Optional[CartView], summary="Current shopper's cart")
def read_cart(db: Session = Depends(get_db), shopper: Shopper = Depends(get_shopper)):
    return cart_service.get_cart(db, shopper)


@router.post("/items", summary="Add a variant to the cart")
def add_item(payload: dict = Body(...), db: Session = Depends(get_db), shopper: Shopper = Depends(get_shopper)):
    return _with_cart(db, shopper, cart_service.add_cart_item(db, shopper, payload))


@router.patch("/items/{item_id}", summary="Change a line's quantity")
def update_item(
    item_id: str,
    quantity: int = Body(..., embed=True),
    db: Session = Depends(get_db),
    shopper: Shopper = Depends(get_shopper),
):
    return _with_cart(db, shopper, cart_service.update_cart_item_quantity(db, shopper, item_id, quantity))


@router.delete("/items/{item_id}", summary="Remove a line")
def remove_item(item_id: str, db: Session = Depends(get_db), shopper: Shopper = Depends(get_shopper)):
    return _with_cart(db, shopper, cart_service.remove_cart_item(db, shopper, item_id))


@router.delete("", summary="Empty the cart")
def clear(db: Session = Depends(get_db), shopper: Shopper = Depends(get_shopper)):
    return _with_cart(db, shopper, cart_service.clear_cart(db, shopper))
