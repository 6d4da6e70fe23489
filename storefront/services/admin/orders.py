"""Admin: orders."""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.db.models import ORDER_STATUSES, Order, OrderItem, ProductVariant, User
from storefront.schemas import (
    AddressView,
    AdminOrderDetails,
    AdminOrderLine,
    AdminOrderListItem,
    AdminUserListItem,
    PaginatedOrders,
)
from storefront.services.common import parse_uuid

logger = logging.getLogger(__name__)

INVALID_ORDER_ID = "Invalid order ID format"
ORDER_NOT_FOUND = "Order not found"


def order_number(order_id) -> str:
    """Short human-facing reference: the last 8 characters of the id, upper-cased."""
    return str(order_id)[-8:].upper()


def order_line(item: OrderItem) -> AdminOrderLine:
    variant = item.variant
    return AdminOrderLine(
        id=item.id,
        product_variant_id=item.product_variant_id,
        quantity=item.quantity,
        price_at_purchase=float(item.price_at_purchase),
        sku=variant.sku,
        product_id=variant.product.id,
        product_name=variant.product.name,
        attributes={av.attribute.display_name: av.value for av in variant.attribute_values},
    )


def order_list_query(*conditions):
    """Orders with customer and line count, newest first."""
    item_counts = (
        select(OrderItem.order_id, func.count(OrderItem.id).label("item_count"))
        .group_by(OrderItem.order_id)
        .subquery("item_counts")
    )
    return (
        select(
            Order.id,
            Order.status,
            Order.total_amount,
            Order.created_at,
            User.name.label("customer_name"),
            User.email.label("customer_email"),
            item_counts.c.item_count,
        )
        .outerjoin(User, User.id == Order.user_id)
        .outerjoin(item_counts, item_counts.c.order_id == Order.id)
        .where(*conditions)
        .order_by(Order.created_at.desc())
    )


def order_list_item(row) -> AdminOrderListItem:
    return AdminOrderListItem(
        id=row.id,
        order_number=order_number(row.id),
        customer_name=row.customer_name,
        customer_email=row.customer_email or "Guest",
        status=row.status,
        total_amount=float(row.total_amount),
        created_at=row.created_at,
        item_count=row.item_count or 0,
    )


# PUBLIC_INTERFACE
def get_admin_orders(
    db: Session,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> PaginatedOrders:
    """One page of orders, searchable by customer name, email or order id, optionally by status."""
    page = max(1, page)
    limit = max(1, limit)
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.name.ilike(pattern), User.email.ilike(pattern), cast(Order.id, String).ilike(pattern)))
    if status and status != "all":
        conditions.append(Order.status == status)

    try:
        rows = db.execute(order_list_query(*conditions).limit(limit).offset((page - 1) * limit)).all()
        total_count = db.execute(
            select(func.count(Order.id)).outerjoin(User, User.id == Order.user_id).where(*conditions)
        ).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching admin orders")
        raise RuntimeError("Failed to fetch orders") from exc

    return PaginatedOrders(
        orders=[order_list_item(row) for row in rows],
        total_count=total_count,
        total_pages=math.ceil(total_count / limit),
        current_page=page,
    )


# PUBLIC_INTERFACE
def get_admin_order_details(db: Session, order_id) -> Optional[AdminOrderDetails]:
    oid = parse_uuid(order_id)
    if oid is None:
        return None
    try:
        order = db.execute(
            select(Order)
            .options(
                joinedload(Order.user),
                joinedload(Order.shipping_address),
                joinedload(Order.billing_address),
                selectinload(Order.items).joinedload(OrderItem.variant).joinedload(ProductVariant.product),
                selectinload(Order.items).joinedload(OrderItem.variant).selectinload(ProductVariant.attribute_values),
            )
            .where(Order.id == oid)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching order details")
        raise RuntimeError("Failed to fetch order details") from exc
    if order is None:
        return None

    items = sorted(order.items, key=lambda item: item.variant.product.name)
    return AdminOrderDetails(
        id=order.id,
        status=order.status,
        total_amount=float(order.total_amount),
        created_at=order.created_at,
        user=AdminUserListItem.model_validate(order.user) if order.user else None,
        shipping_address=AddressView.model_validate(order.shipping_address) if order.shipping_address else None,
        billing_address=AddressView.model_validate(order.billing_address) if order.billing_address else None,
        items=[order_line(item) for item in items],
    )


# PUBLIC_INTERFACE
def update_order_status(db: Session, order_id, new_status: str) -> dict:
    oid = parse_uuid(order_id)
    if oid is None:
        return {"success": False, "message": INVALID_ORDER_ID}
    if new_status not in ORDER_STATUSES:
        return {"success": False, "message": "Invalid order status"}

    try:
        order = db.get(Order, oid)
        if order is None:
            return {"success": False, "message": ORDER_NOT_FOUND}
        order.status = new_status
        db.commit()
        logger.info("Order %s moved to %s", oid, new_status)
        return {"success": True, "message": f"Order status updated to {new_status}"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating order status")
        return {"success": False, "message": "Failed to update order status"}


# PUBLIC_INTERFACE
def delete_order(db: Session, order_id) -> dict:
    """Delete an order and its lines."""
    oid = parse_uuid(order_id)
    if oid is None:
        return {"success": False, "message": INVALID_ORDER_ID}

    try:
        if db.execute(select(Order.id).where(Order.id == oid)).first() is None:
            return {"success": False, "message": ORDER_NOT_FOUND}
        db.execute(delete(OrderItem).where(OrderItem.order_id == oid))
        db.execute(delete(Order).where(Order.id == oid))
        db.commit()
        return {"success": True, "message": "Order deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting order")
        return {"success": False, "message": "Failed to delete order"}


# PUBLIC_INTERFACE
def recent_orders(db: Session, limit: int = 5) -> List[AdminOrderListItem]:
    return [order_list_item(row) for row in db.execute(order_list_query().limit(limit)).all()]
