"""
SQLAlchemy ORM models for the storefront schema.

Important:
- Column types are the generic SQLAlchemy ones (Uuid, JSON, Numeric) so the same
  mappings serve PostgreSQL in production and SQLite in the test suite.
- Primary keys and timestamps get Python-side defaults; the server defaults mirror
  them for rows written outside the ORM.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base

ORDER_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled")
ADDRESS_TYPES = ("billing", "shipping")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


def _created_at() -> Mapped[datetime]:
    return mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class TimestampMixin:
    """Common timestamp columns in the schema."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class User(Base, TimestampMixin):
    """users table."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    addresses: Mapped[List["Address"]] = relationship("Address", back_populates="user", passive_deletes=True)
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="user")


class AuthSession(Base, TimestampMixin):
    """sessions table (rows issued by the auth layer)."""

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = _pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    ip_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship("User")


class Guest(Base):
    """guests table."""

    __tablename__ = "guests"

    id: Mapped[uuid.UUID] = _pk()
    session_token: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = _created_at()
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Address(Base):
    """addresses table."""

    __tablename__ = "addresses"

    id: Mapped[uuid.UUID] = _pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    line1: Mapped[str] = mapped_column(Text, nullable=False)
    line2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False)
    country: Mapped[str] = mapped_column(Text, nullable=False)
    postal_code: Mapped[str] = mapped_column(Text, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    user: Mapped[User] = relationship("User", back_populates="addresses")

    __table_args__ = (CheckConstraint("type in ('billing','shipping')", name="addresses_type_check"),)


class Brand(Base):
    """brands table."""

    __tablename__ = "brands"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Category(Base):
    """categories table."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    parent: Mapped[Optional["Category"]] = relationship("Category", remote_side="Category.id")


class Gender(Base):
    """genders table."""

    __tablename__ = "genders"

    id: Mapped[uuid.UUID] = _pk()
    label: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class ProductType(Base, TimestampMixin):
    """product_types table (a.k.a. attribute sets in the admin console)."""

    __tablename__ = "product_types"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class Attribute(Base, TimestampMixin):
    """attributes table."""

    __tablename__ = "attributes"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)

    values: Mapped[List["AttributeValue"]] = relationship(
        "AttributeValue",
        back_populates="attribute",
        order_by="AttributeValue.sort_order",
        passive_deletes=True,
    )


class AttributeValue(Base):
    """attribute_values table."""

    __tablename__ = "attribute_values"

    id: Mapped[uuid.UUID] = _pk()
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = _created_at()

    attribute: Mapped[Attribute] = relationship("Attribute", back_populates="values", lazy="joined")


class ProductTypeAttribute(Base):
    """product_type_attributes join table."""

    __tablename__ = "product_type_attributes"

    id: Mapped[uuid.UUID] = _pk()
    product_type_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_types.id", ondelete="CASCADE"), nullable=False
    )
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("attributes.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("product_type_id", "attribute_id", name="product_type_attributes_type_attribute_key"),
    )


class Product(Base, TimestampMixin):
    """products table."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    product_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    gender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("genders.id", ondelete="SET NULL"), nullable=True
    )
    brand_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True
    )
    product_type_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_types.id", ondelete="SET NULL"), nullable=True
    )

    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    # Not a foreign key: it would form a cycle with product_variants.product_id.
    default_variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    brand: Mapped[Optional[Brand]] = relationship("Brand")
    category: Mapped[Optional[Category]] = relationship("Category")
    gender: Mapped[Optional[Gender]] = relationship("Gender")
    product_type: Mapped[Optional[ProductType]] = relationship("ProductType")

    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.created_at",
        passive_deletes=True,
    )
    images: Mapped[List["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        order_by="ProductImage.sort_order",
        passive_deletes=True,
    )
    collections: Mapped[List["Collection"]] = relationship(
        "Collection",
        secondary="product_collections",
        viewonly=True,
    )


class ProductVariant(Base):
    """product_variants table."""

    __tablename__ = "product_variants"

    id: Mapped[uuid.UUID] = _pk()
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    sku: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    sale_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    in_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    dimensions: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    product: Mapped[Product] = relationship("Product", back_populates="variants")
    attribute_values: Mapped[List[AttributeValue]] = relationship(
        "AttributeValue",
        secondary="variant_attribute_values",
        viewonly=True,
        order_by="AttributeValue.sort_order",
    )


class VariantAttributeValue(Base):
    """variant_attribute_values join table."""

    __tablename__ = "variant_attribute_values"

    id: Mapped[uuid.UUID] = _pk()
    variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False
    )
    attribute_value_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("attribute_values.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        UniqueConstraint("variant_id", "attribute_value_id", name="variant_attribute_values_variant_value_key"),
    )


class ProductImage(Base):
    """product_images table."""

    __tablename__ = "product_images"

    id: Mapped[uuid.UUID] = _pk()
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    product: Mapped[Product] = relationship("Product", back_populates="images")


class Collection(Base):
    """collections table."""

    __tablename__ = "collections"

    id: Mapped[uuid.UUID] = _pk()
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = _created_at()


class ProductCollection(Base):
    """product_collections join table."""

    __tablename__ = "product_collections"

    id: Mapped[uuid.UUID] = _pk()
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    collection_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False
    )


class Cart(Base, TimestampMixin):
    """carts table; owned by a user or by a guest session."""

    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = _pk()
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    guest_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("guests.id", ondelete="SET NULL"), nullable=True
    )

    items: Mapped[List["CartItem"]] = relationship(
        "CartItem",
        back_populates="cart",
        order_by="CartItem.created_at",
        passive_deletes=True,
    )


class CartItem(Base):
    """cart_items table."""

    __tablename__ = "cart_items"

    id: Mapped[uuid.UUID] = _pk()
    cart_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_at: Mapped[datetime] = _created_at()

    cart: Mapped[Cart] = relationship("Cart", back_populates="items")
    variant: Mapped[ProductVariant] = relationship("ProductVariant")

    __table_args__ = (CheckConstraint("quantity > 0", name="cart_items_quantity_check"),)


class Order(Base):
    """orders table."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = _pk()
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", server_default="pending")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    shipping_address_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )
    billing_address_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("addresses.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = _created_at()

    user: Mapped[Optional[User]] = relationship("User", back_populates="orders")
    shipping_address: Mapped[Optional[Address]] = relationship("Address", foreign_keys=[shipping_address_id])
    billing_address: Mapped[Optional[Address]] = relationship("Address", foreign_keys=[billing_address_id])
    items: Mapped[List["OrderItem"]] = relationship("OrderItem", back_populates="order", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','paid','shipped','delivered','cancelled')",
            name="orders_status_check",
        ),
        CheckConstraint("total_amount >= 0", name="orders_total_amount_check"),
    )


class OrderItem(Base):
    """order_items table."""

    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = _pk()
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_variant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    price_at_purchase: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="items")
    variant: Mapped[ProductVariant] = relationship("ProductVariant")

    __table_args__ = (CheckConstraint("quantity > 0", name="order_items_quantity_check"),)


class Review(Base):
    """reviews table."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = _pk()
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    user: Mapped[User] = relationship("User")

    __table_args__ = (CheckConstraint("rating >= 1 and rating <= 5", name="reviews_rating_check"),)


class Wishlist(Base):
    """wishlists table (server-side favorites)."""

    __tablename__ = "wishlists"

    id: Mapped[uuid.UUID] = _pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    added_at: Mapped[datetime] = _created_at()

    __table_args__ = (UniqueConstraint("user_id", "product_id", name="wishlists_user_product_key"),)


class Subscriber(Base):
    """subscribers table (newsletter)."""

    __tablename__ = "subscribers"

    id: Mapped[uuid.UUID] = _pk()
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = _created_at()
