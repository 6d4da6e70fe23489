"""Signed-in shopper's account: profile, order history, addresses and favorites."""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Address, Order, Product, User, Wishlist
from storefront.forms import AddressForm, ProfileForm
from storefront.schemas import AddressView, UserOrder, UserProfile
from storefront.services.common import first_error_message, parse_uuid

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_user_profile(db: Session, user: Optional[User]) -> Optional[UserProfile]:
    if user is None:
        return None
    return UserProfile.model_validate(user)


# PUBLIC_INTERFACE
def update_user_profile(db: Session, user: Optional[User], payload: dict) -> dict:
    if user is None:
        return {"success": False, "message": "You must be logged in to update your profile"}
    try:
        form = ProfileForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "message": first_error_message(exc)}

    try:
        db.execute(update(User).where(User.id == user.id).values(name=form.name))
        db.commit()
        return {"success": True, "message": "Profile updated successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating user profile")
        return {"success": False, "message": "Failed to update profile"}


# PUBLIC_INTERFACE
def get_user_orders(db: Session, user: Optional[User]) -> List[UserOrder]:
    """The user's orders, newest first."""
    if user is None:
        return []
    try:
        rows = db.execute(
            select(Order.id, Order.created_at, Order.status, Order.total_amount)
            .where(Order.user_id == user.id)
            .order_by(Order.created_at.desc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching user orders")
        raise RuntimeError("Failed to fetch order history") from exc
    return [
        UserOrder(order_id=r.id, created_at=r.created_at, status=r.status, total_amount=float(r.total_amount))
        for r in rows
    ]


# PUBLIC_INTERFACE
def get_user_addresses(db: Session, user: Optional[User]) -> List[AddressView]:
    """The user's addresses, defaults first."""
    if user is None:
        return []
    try:
        addresses = (
            db.execute(select(Address).where(Address.user_id == user.id).order_by(Address.is_default.desc()))
            .scalars()
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching user addresses")
        raise RuntimeError("Failed to fetch addresses") from exc
    return [AddressView.model_validate(address) for address in addresses]


# PUBLIC_INTERFACE
def add_or_update_user_address(db: Session, user: Optional[User], payload: dict) -> dict:
    """
    Create an address, or update one the user owns when `id` is given.

    Marking an address as default clears the flag on the user's other addresses
    of the same type.
    """
    if user is None:
        return {"success": False, "message": "You must be logged in to manage addresses"}
    try:
        form = AddressForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "message": first_error_message(exc)}

    values = form.model_dump(exclude={"id"})
    try:
        if form.is_default:
            db.execute(
                update(Address)
                .where(Address.user_id == user.id, Address.type == form.type)
                .values(is_default=False)
            )
        if form.id is not None:
            result = db.execute(
                update(Address).where(Address.id == form.id, Address.user_id == user.id).values(**values)
            )
            if result.rowcount == 0:
                db.rollback()
                return {"success": False, "message": "Address not found"}
        else:
            db.add(Address(user_id=user.id, **values))
        db.commit()
        return {
            "success": True,
            "message": "Address updated successfully" if form.id else "Address added successfully",
        }
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error adding/updating user address")
        return {"success": False, "message": "Failed to save address"}


# ---------- Favorites ----------

# PUBLIC_INTERFACE
def get_favorite_product_ids(db: Session, user: User) -> List[str]:
    rows = db.execute(
        select(Wishlist.product_id).where(Wishlist.user_id == user.id).order_by(Wishlist.added_at)
    ).scalars()
    return [str(product_id) for product_id in rows]


# PUBLIC_INTERFACE
def toggle_favorite(db: Session, user: User, product_id) -> dict:
    """Add the product to the user's favorites, or remove it if already there."""
    pid = parse_uuid(product_id)
    if pid is None:
        return {"success": False, "error": "Invalid product ID"}
    try:
        if db.get(Product, pid) is None:
            return {"success": False, "error": "Product not found"}
        existing = db.execute(
            select(Wishlist.id).where(Wishlist.user_id == user.id, Wishlist.product_id == pid)
        ).first()
        if existing is not None:
            db.execute(delete(Wishlist).where(Wishlist.id == existing.id))
        else:
            db.add(Wishlist(user_id=user.id, product_id=pid))
        db.commit()
        return {"success": True, "is_favorite": existing is None}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error toggling favorite")
        return {"success": False, "error": "Failed to update favorites"}
