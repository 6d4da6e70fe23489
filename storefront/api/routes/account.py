from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user, require_user
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.schemas import AddressView, UserOrder, UserProfile
from storefront.services import account, newsletter

router = APIRouter(prefix="/api", tags=["Account"])


@router.get("/account/profile", response_model=Optional[UserProfile])
def read_profile(db: Session = Depends(get_db), user: Optional[User] = Depends(get_current_user)):
    return account.get_user_profile(db, user)


@router.put("/account/profile")
def update_profile(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
):
    return account.update_user_profile(db, user, payload)


@router.get("/account/orders", response_model=List[UserOrder])
def order_history(db: Session = Depends(get_db), user: Optional[User] = Depends(get_current_user)):
    return account.get_user_orders(db, user)


@router.get("/account/addresses", response_model=List[AddressView])
def addresses(db: Session = Depends(get_db), user: Optional[User] = Depends(get_current_user)):
    return account.get_user_addresses(db, user)


@router.post("/account/addresses", summary="Add an address, or update one when `id` is given")
def save_address(
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
):
    return account.add_or_update_user_address(db, user, payload)


@router.get("/account/favorites", response_model=List[str])
def favorites(db: Session = Depends(get_db), user: User = Depends(require_user)):
    return account.get_favorite_product_ids(db, user)


@router.post("/account/favorites/{product_id}", summary="Toggle a product in the favorites list")
def toggle_favorite(product_id: str, db: Session = Depends(get_db), user: User = Depends(require_user)):
    return account.toggle_favorite(db, user, product_id)


@router.post("/newsletter", tags=["Newsletter"], summary="Subscribe to the newsletter")
def subscribe(payload: dict = Body(...), db: Session = Depends(get_db)):
    return newsletter.subscribe_to_newsletter(db, payload)
