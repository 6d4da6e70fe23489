"""Cart actions for the current shopper (signed-in user or guest)."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.db.models import Cart, CartItem, Product, ProductVariant
from storefront.forms import AddCartItemForm
from storefront.schemas import CartItemView, CartVariant, CartView, LineProduct
from storefront.services.catalog import primary_image_url, variant_attributes
from storefront.services.common import first_error_message, parse_uuid
from storefront.services.sessions import Shopper

logger = logging.getLogger(__name__)


def _owner_condition(shopper: Shopper):
    if shopper.user is not None:
        return Cart.user_id == shopper.user.id
    return Cart.guest_id == shopper.guest.id


def find_cart(db: Session, shopper: Shopper) -> Optional[Cart]:
    return db.execute(
        select(Cart).where(_owner_condition(shopper)).order_by(Cart.created_at).limit(1)
    ).scalar_one_or_none()


# PUBLIC_INTERFACE
def get_or_create_cart(db: Session, shopper: Shopper) -> Cart:
    """The shopper's cart, inserted (flushed, not committed) when absent."""
    cart = find_cart(db, shopper)
    if cart is None:
        cart = Cart(
            user_id=shopper.user.id if shopper.user is not None else None,
            guest_id=shopper.guest.id if shopper.user is None else None,
        )
        db.add(cart)
        db.flush()
    return cart


def load_cart_items(db: Session, cart_id):
    return (
        db.execute(
            select(CartItem)
            .options(
                joinedload(CartItem.variant).joinedload(ProductVariant.product).selectinload(Product.images),
                joinedload(CartItem.variant).selectinload(ProductVariant.attribute_values),
            )
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at.desc())
        )
        .scalars()
        .all()
    )


def unit_price(variant: ProductVariant) -> Decimal:
    """Sale price when set, otherwise the list price."""
    return variant.sale_price if variant.sale_price is not None else variant.price


def _item_view(item: CartItem) -> CartItemView:
    variant = item.variant
    return CartItemView(
        id=item.id,
        cart_id=item.cart_id,
        product_variant_id=item.product_variant_id,
        quantity=item.quantity,
        variant=CartVariant(
            id=variant.id,
            sku=variant.sku,
            price=float(variant.price),
            sale_price=float(variant.sale_price) if variant.sale_price is not None else None,
            in_stock=variant.in_stock > 0,
            product=LineProduct(
                id=variant.product.id,
                name=variant.product.name,
                image_url=primary_image_url(variant.product.images),
            ),
            attributes=variant_attributes(variant),
        ),
    )


# PUBLIC_INTERFACE
def get_cart(db: Session, shopper: Shopper) -> Optional[CartView]:
    """
    The shopper's cart with items, total and item count, creating the cart if needed.

    Returns None when the cart cannot be loaded.
    """
    try:
        cart = get_or_create_cart(db, shopper)
        db.commit()
        items = load_cart_items(db, cart.id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error getting cart")
        return None

    total = sum((unit_price(item.variant) * item.quantity for item in items), Decimal("0"))
    return CartView(
        id=cart.id,
        user_id=cart.user_id,
        guest_id=cart.guest_id,
        items=[_item_view(item) for item in items],
        total=float(total),
        item_count=sum(item.quantity for item in items),
    )


# PUBLIC_INTERFACE
def add_cart_item(db: Session, shopper: Shopper, payload: dict) -> dict:
    """Add a variant to the cart, or bump the quantity of the line already holding it."""
    try:
        form = AddCartItemForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        variant = db.get(ProductVariant, form.variant_id)
        if variant is None:
            return {"success": False, "error": "Product variant not found"}

        cart = get_or_create_cart(db, shopper)
        existing = db.execute(
            select(CartItem).where(CartItem.cart_id == cart.id, CartItem.product_variant_id == variant.id)
        ).scalar_one_or_none()
        if existing is not None:
            existing.quantity = existing.quantity + form.quantity
        else:
            db.add(CartItem(cart_id=cart.id, product_variant_id=variant.id, quantity=form.quantity))
        db.commit()
        return {"success": True, "message": "Item added to cart!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error adding cart item")
        return {"success": False, "error": "Failed to add item to cart"}


def _owned_item(db: Session, shopper: Shopper, item_id) -> Optional[CartItem]:
    iid = parse_uuid(item_id)
    if iid is None:
        return None
    return db.execute(
        select(CartItem).join(Cart, Cart.id == CartItem.cart_id).where(CartItem.id == iid, _owner_condition(shopper))
    ).scalar_one_or_none()


# PUBLIC_INTERFACE
def update_cart_item_quantity(db: Session, shopper: Shopper, item_id, quantity: int) -> dict:
    """Set a line's quantity; zero or less removes the line."""
    if quantity <= 0:
        return remove_cart_item(db, shopper, item_id)
    try:
        item = _owned_item(db, shopper, item_id)
        if item is None:
            return {"success": False, "error": "Cart item not found"}
        item.quantity = quantity
        db.commit()
        return {"success": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating cart item quantity")
        return {"success": False, "error": "Failed to update quantity"}


# PUBLIC_INTERFACE
def remove_cart_item(db: Session, shopper: Shopper, item_id) -> dict:
    try:
        item = _owned_item(db, shopper, item_id)
        if item is None:
            return {"success": False, "error": "Cart item not found"}
        db.delete(item)
        db.commit()
        return {"success": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error removing cart item")
        return {"success": False, "error": "Failed to remove item"}


# PUBLIC_INTERFACE
def clear_cart(db: Session, shopper: Shopper) -> dict:
    try:
        cart = find_cart(db, shopper)
        if cart is not None:
            db.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        db.commit()
        return {"success": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error clearing cart")
        return {"success": False, "error": "Failed to clear cart"}
