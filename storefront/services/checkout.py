"""Checkout: turn the shopper's cart into a pending order."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.config import settings
from storefront.db.models import Address, CartItem, Order, OrderItem, Product, ProductVariant, User
from storefront.forms import ShippingAddressForm
from storefront.schemas import AddressView, LineProduct, OrderItemView, OrderSummary, OrderVariant
from storefront.services.cart import find_cart, load_cart_items, unit_price
from storefront.services.catalog import primary_image_url, variant_attributes
from storefront.services.common import first_error_message, parse_uuid
from storefront.services.sessions import Shopper, discard_guest

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
GUEST_USER_NAME = "Guest User"


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal

    @property
    def total(self) -> Decimal:
        return (self.subtotal + self.shipping + self.tax).quantize(CENTS, rounding=ROUND_HALF_UP)


# PUBLIC_INTERFACE
def compute_totals(subtotal: Decimal) -> OrderTotals:
    """Shipping is free above the threshold, flat otherwise; tax applies to the subtotal."""
    shipping = Decimal("0") if subtotal > settings.free_shipping_threshold else settings.shipping_flat_rate
    tax = (subtotal * settings.tax_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    return OrderTotals(subtotal=subtotal, shipping=shipping, tax=tax)


def _placeholder_user() -> User:
    return User(email=f"guest-{uuid.uuid4()}@temp.com", name=GUEST_USER_NAME)


# PUBLIC_INTERFACE
def create_order(db: Session, shopper: Shopper, payload: dict) -> dict:
    """
    Place an order for everything in the shopper's cart.

    Records the shipping address, the order and its lines with the unit price paid,
    then empties the cart. A guest's session row is dropped afterwards so the next
    request starts a fresh guest session.
    """
    try:
        address_form = ShippingAddressForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        cart = find_cart(db, shopper)
        if cart is None:
            return {"success": False, "error": "No cart found. Please add items to your cart first."}
        items = load_cart_items(db, cart.id)
        if not items:
            return {"success": False, "error": "Your cart is empty. Please add items to your cart first."}

        subtotal = sum((unit_price(item.variant) * item.quantity for item in items), Decimal("0"))
        totals = compute_totals(subtotal)

        owner = shopper.user if shopper.user is not None else _placeholder_user()
        if shopper.is_guest:
            db.add(owner)
            db.flush()
        address = Address(user_id=owner.id, type="shipping", **address_form.model_dump())
        db.add(address)
        db.flush()

        order = Order(
            user_id=shopper.user.id if shopper.user is not None else None,
            status="pending",
            total_amount=totals.total,
            shipping_address_id=address.id,
        )
        db.add(order)
        db.flush()
        db.add_all(
            OrderItem(
                order_id=order.id,
                product_variant_id=item.product_variant_id,
                quantity=item.quantity,
                price_at_purchase=unit_price(item.variant),
            )
            for item in items
        )

        db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        if shopper.is_guest and shopper.guest is not None:
            discard_guest(db, shopper.guest.id)

        db.commit()
        logger.info("Created order %s with %d item(s)", order.id, len(items))
        return {"success": True, "order_id": str(order.id)}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating order")
        return {"success": False, "error": "Failed to create order. Please try again."}


def order_summary(order: Order) -> OrderSummary:
    return OrderSummary(
        id=order.id,
        status=order.status,
        total_amount=float(order.total_amount),
        created_at=order.created_at,
        shipping_address=(
            AddressView.model_validate(order.shipping_address) if order.shipping_address else AddressView()
        ),
        items=[
            OrderItemView(
                id=item.id,
                quantity=item.quantity,
                price_at_purchase=float(item.price_at_purchase),
                variant=OrderVariant(
                    id=item.variant.id,
                    sku=item.variant.sku,
                    product=LineProduct(
                        id=item.variant.product.id,
                        name=item.variant.product.name,
                        image_url=primary_image_url(item.variant.product.images),
                    ),
                    attributes=variant_attributes(item.variant),
                ),
            )
            for item in order.items
        ],
    )


def _can_view(order: Order, viewer: Optional[User]) -> bool:
    if order.user_id is None:
        return True
    return viewer is not None and (viewer.id == order.user_id or viewer.is_admin)


# PUBLIC_INTERFACE
def get_order_by_id(db: Session, order_id, viewer: Optional[User] = None) -> Optional[OrderSummary]:
    """
    Order confirmation. An order placed by a signed-in user is only shown to that
    user or to an admin; guest orders are visible to anyone holding the id.
    """
    oid = parse_uuid(order_id)
    if oid is None:
        return None
    try:
        order = db.execute(
            select(Order)
            .options(
                joinedload(Order.shipping_address),
                selectinload(Order.items)
                .joinedload(OrderItem.variant)
                .joinedload(ProductVariant.product)
                .selectinload(Product.images),
                selectinload(Order.items).joinedload(OrderItem.variant).selectinload(ProductVariant.attribute_values),
            )
            .where(Order.id == oid)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching order")
        raise RuntimeError("Failed to fetch order") from exc
    if order is None or not _can_view(order, viewer):
        return None
    return order_summary(order)
