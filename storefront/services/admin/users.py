"""Admin: users."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from storefront.db.models import Address, Order, OrderItem, ProductVariant, User
from storefront.schemas import AddressView, AdminUserListItem, PaginatedUsers, UserDetails, UserOrderHistory
from storefront.services.admin.orders import order_line
from storefront.services.common import parse_uuid

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_admin_users(db: Session, page: int = 1, limit: int = 20, search: Optional[str] = None) -> PaginatedUsers:
    """One page of users, newest first, optionally matched on name or email."""
    page = max(1, page)
    limit = max(1, limit)
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    try:
        users = (
            db.execute(
                select(User)
                .where(*conditions)
                .order_by(User.created_at.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            .scalars()
            .all()
        )
        total_count = db.execute(select(func.count(User.id)).where(*conditions)).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching admin users")
        raise RuntimeError("Failed to fetch users") from exc

    return PaginatedUsers(
        users=[AdminUserListItem.model_validate(user) for user in users],
        total_count=total_count,
        total_pages=math.ceil(total_count / limit),
        current_page=page,
    )


# PUBLIC_INTERFACE
def toggle_admin_status(db: Session, current_user: User, user_id) -> dict:
    """Flip a user's admin flag. Admins cannot demote themselves."""
    uid = parse_uuid(user_id)
    if uid is None:
        return {"success": False, "message": "User not found"}
    if current_user is not None and current_user.id == uid:
        return {"success": False, "message": "You cannot revoke your own admin privileges"}

    try:
        user = db.get(User, uid)
        if user is None:
            return {"success": False, "message": "User not found"}
        user.is_admin = not user.is_admin
        db.commit()
        verb = "granted" if user.is_admin else "revoked"
        logger.info("Admin privileges %s for user %s", verb, uid)
        return {"success": True, "message": f"User {verb} admin privileges successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error toggling admin status")
        return {"success": False, "message": "Failed to update admin status"}


# PUBLIC_INTERFACE
def get_admin_user_details(db: Session, user_id) -> Optional[UserDetails]:
    uid = parse_uuid(user_id)
    if uid is None:
        return None
    try:
        user = db.get(User, uid)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching user details")
        raise RuntimeError("Failed to fetch user details") from exc
    return UserDetails.model_validate(user) if user is not None else None


# PUBLIC_INTERFACE
def get_admin_user_orders(db: Session, user_id) -> List[UserOrderHistory]:
    """A user's orders, newest first, with their lines."""
    uid = parse_uuid(user_id)
    if uid is None:
        return []
    try:
        orders = (
            db.execute(
                select(Order)
                .options(
                    selectinload(Order.items).joinedload(OrderItem.variant).joinedload(ProductVariant.product),
                    selectinload(Order.items).joinedload(OrderItem.variant).selectinload(ProductVariant.attribute_values),
                )
                .where(Order.user_id == uid)
                .order_by(Order.created_at.desc())
            )
            .scalars()
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching user orders")
        raise RuntimeError("Failed to fetch user orders") from exc

    return [
        UserOrderHistory(
            order_id=order.id,
            status=order.status,
            total_amount=float(order.total_amount),
            created_at=order.created_at,
            items=[order_line(item) for item in order.items],
        )
        for order in orders
    ]


# PUBLIC_INTERFACE
def get_admin_user_addresses(db: Session, user_id) -> List[AddressView]:
    uid = parse_uuid(user_id)
    if uid is None:
        return []
    try:
        addresses = (
            db.execute(
                select(Address)
                .where(Address.user_id == uid)
                .order_by(Address.is_default.desc(), Address.type.asc())
            )
            .scalars()
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching user addresses")
        raise RuntimeError("Failed to fetch user addresses") from exc
    return [AddressView.model_validate(address) for address in addresses]
