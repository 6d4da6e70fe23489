"""
Admin: products, their variants, images and collection links.

Create and update write the whole product graph in one transaction: the product
row, its variants with their attribute values, product-level images (first one
primary), variant-scoped images and collection links.
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.db.models import (
    Attribute,
    AttributeValue,
    Brand,
    CartItem,
    Category,
    Collection,
    Gender,
    Order,
    OrderItem,
    Product,
    ProductCollection,
    ProductImage,
    ProductType,
    ProductTypeAttribute,
    ProductVariant,
    VariantAttributeValue,
)
from storefront.forms import ProductForm, VariantForm
from storefront.schemas import AdminProduct, AdminProductListItem, AdminVariant, PaginatedProducts
from storefront.services.catalog import variant_attributes
from storefront.services.common import first_error_message, parse_uuid

logger = logging.getLogger(__name__)

ACTIVE_ORDER_STATUSES = ("pending", "paid")
CLOSED_ORDER_STATUSES = ("cancelled", "delivered")


# PUBLIC_INTERFACE
def get_admin_products(db: Session, page: int = 1, limit: int = 20, search: Optional[str] = None) -> PaginatedProducts:
    """Newest products first, with variant count, total stock and price range per row."""
    page = max(1, page)
    limit = max(1, limit)
    conditions = [Product.name.ilike(f"%{search}%")] if search else []

    stats = (
        select(
            ProductVariant.product_id,
            func.count(ProductVariant.id).label("variant_count"),
            func.sum(ProductVariant.in_stock).label("total_stock"),
            func.min(ProductVariant.price).label("min_price"),
            func.max(ProductVariant.price).label("max_price"),
        )
        .group_by(ProductVariant.product_id)
        .subquery("stats")
    )
    try:
        rows = db.execute(
            select(Product, stats.c.variant_count, stats.c.total_stock, stats.c.min_price, stats.c.max_price)
            .outerjoin(stats, stats.c.product_id == Product.id)
            .options(joinedload(Product.category), joinedload(Product.gender), joinedload(Product.brand))
            .where(*conditions)
            .order_by(Product.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).all()
        total_count = db.execute(select(func.count(Product.id)).where(*conditions)).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching admin products")
        raise RuntimeError("Failed to fetch products") from exc

    products = [
        AdminProductListItem(
            id=product.id,
            name=product.name,
            description=product.description,
            is_published=product.is_published,
            created_at=product.created_at,
            updated_at=product.updated_at,
            category=product.category,
            gender=product.gender,
            brand=product.brand,
            variant_count=variant_count or 0,
            total_stock=int(total_stock or 0),
            min_price=float(min_price) if min_price is not None else None,
            max_price=float(max_price) if max_price is not None else None,
        )
        for product, variant_count, total_stock, min_price, max_price in rows
    ]
    return PaginatedProducts(
        products=products,
        total_count=total_count,
        total_pages=math.ceil(total_count / limit),
        current_page=page,
    )


# PUBLIC_INTERFACE
def get_product_for_edit(db: Session, product_id) -> Optional[AdminProduct]:
    """Everything the edit form needs, or None for an unknown or malformed id."""
    pid = parse_uuid(product_id)
    if pid is None:
        return None
    try:
        product = db.execute(
            select(Product)
            .options(
                selectinload(Product.variants).selectinload(ProductVariant.attribute_values),
                selectinload(Product.images),
                selectinload(Product.collections),
            )
            .where(Product.id == pid)
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching product for edit")
        raise RuntimeError("Failed to fetch product") from exc
    if product is None:
        return None

    variant_images = {img.variant_id: img.url for img in product.images if img.variant_id is not None}
    return AdminProduct(
        id=product.id,
        name=product.name,
        description=product.description,
        product_code=product.product_code,
        category_id=product.category_id,
        gender_id=product.gender_id,
        brand_id=product.brand_id,
        product_type_id=product.product_type_id,
        is_published=product.is_published,
        default_variant_id=product.default_variant_id,
        created_at=product.created_at,
        updated_at=product.updated_at,
        collection_ids=[collection.id for collection in product.collections],
        variants=[
            AdminVariant(
                id=variant.id,
                sku=variant.sku,
                price=float(variant.price),
                sale_price=float(variant.sale_price) if variant.sale_price is not None else None,
                in_stock=variant.in_stock,
                attribute_value_ids=[av.id for av in variant.attribute_values],
                attributes=variant_attributes(variant),
                image_url=variant_images.get(variant.id),
            )
            for variant in product.variants
        ],
        product_images=[img.url for img in product.images if img.variant_id is None],
    )


def _set_variant_values(db: Session, variant_id: uuid.UUID, attribute_value_ids: List[uuid.UUID]) -> None:
    db.execute(delete(VariantAttributeValue).where(VariantAttributeValue.variant_id == variant_id))
    db.add_all(
        VariantAttributeValue(variant_id=variant_id, attribute_value_id=value_id)
        for value_id in dict.fromkeys(attribute_value_ids)
    )


def _write_links_and_images(db: Session, product: Product, form: ProductForm, variant_ids: List[uuid.UUID]) -> None:
    """Replace collection links and images with what the form carries."""
    db.execute(delete(ProductCollection).where(ProductCollection.product_id == product.id))
    db.add_all(
        ProductCollection(product_id=product.id, collection_id=collection_id)
        for collection_id in dict.fromkeys(form.collection_ids)
    )

    db.execute(delete(ProductImage).where(ProductImage.product_id == product.id))
    db.add_all(
        ProductImage(product_id=product.id, variant_id=None, url=url, sort_order=index, is_primary=index == 0)
        for index, url in enumerate(form.product_images)
    )
    db.add_all(
        ProductImage(product_id=product.id, variant_id=variant_id, url=variant.image_url, sort_order=0, is_primary=False)
        for variant, variant_id in zip(form.variants, variant_ids)
        if variant.image_url
    )


def _apply_product_fields(product: Product, form: ProductForm) -> None:
    product.name = form.name
    product.description = form.description
    product.product_code = form.product_code
    product.category_id = form.category_id
    product.gender_id = form.gender_id
    product.brand_id = form.brand_id
    product.product_type_id = form.product_type_id
    product.is_published = form.is_published


def _new_variant(db: Session, product_id: uuid.UUID, data: VariantForm) -> ProductVariant:
    variant = ProductVariant(
        product_id=product_id,
        sku=data.sku,
        price=data.price,
        sale_price=data.sale_price,
        in_stock=data.in_stock,
    )
    db.add(variant)
    db.flush()
    return variant


# PUBLIC_INTERFACE
def create_product(db: Session, payload: dict) -> dict:
    """Create a product with its variants; the first variant becomes the default."""
    try:
        form = ProductForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        product = Product()
        _apply_product_fields(product, form)
        db.add(product)
        db.flush()

        variant_ids = []
        for data in form.variants:
            variant = _new_variant(db, product.id, data)
            _set_variant_values(db, variant.id, data.attribute_value_ids)
            variant_ids.append(variant.id)
        product.default_variant_id = variant_ids[0]

        _write_links_and_images(db, product, form, variant_ids)
        db.commit()
        logger.info("Created product %s with %d variant(s)", product.id, len(variant_ids))
        return {"success": True, "product_id": str(product.id), "message": "Product created successfully!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating product")
        return {"success": False, "error": "Failed to create product"}


# PUBLIC_INTERFACE
def update_product(db: Session, product_id, payload: dict) -> dict:
    """
    Update a product from the full edit form.

    Submitted variants carrying a known id are updated, the rest are inserted, and
    existing variants missing from the submission are deleted. Collection links
    and images are replaced wholesale.
    """
    pid = parse_uuid(product_id)
    if pid is None:
        return {"success": False, "error": "Invalid product ID"}
    try:
        form = ProductForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        product = db.get(Product, pid)
        if product is None:
            return {"success": False, "error": "Product not found"}
        _apply_product_fields(product, form)

        existing: Dict[uuid.UUID, ProductVariant] = {
            variant.id: variant
            for variant in db.execute(select(ProductVariant).where(ProductVariant.product_id == pid)).scalars()
        }
        submitted = {parse_uuid(data.id) for data in form.variants if data.id}
        stale = [variant_id for variant_id in existing if variant_id not in submitted]
        if stale:
            db.execute(delete(ProductVariant).where(ProductVariant.id.in_(stale)))

        variant_ids = []
        for data in form.variants:
            variant = existing.get(parse_uuid(data.id)) if data.id else None
            if variant is not None:
                variant.sku = data.sku
                variant.price = data.price
                variant.sale_price = data.sale_price
                variant.in_stock = data.in_stock
            else:
                variant = _new_variant(db, pid, data)
            _set_variant_values(db, variant.id, data.attribute_value_ids)
            variant_ids.append(variant.id)
        product.default_variant_id = variant_ids[0]

        _write_links_and_images(db, product, form, variant_ids)
        db.commit()
        return {"success": True, "message": "Product updated successfully!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating product")
        return {"success": False, "error": "Failed to update product"}


# PUBLIC_INTERFACE
def delete_product(db: Session, product_id) -> dict:
    pid = parse_uuid(product_id)
    if pid is None:
        return {"success": False, "error": "Invalid product ID"}
    try:
        if db.get(Product, pid) is None:
            return {"success": False, "error": "Product not found"}
        db.execute(delete(Product).where(Product.id == pid))
        db.commit()
        return {"success": True, "message": "Product deleted successfully!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting product")
        return {"success": False, "error": "Failed to delete product"}


# PUBLIC_INTERFACE
def bulk_delete_products(db: Session, product_ids: List[str]) -> dict:
    """
    Delete several products at once.

    Refused while any of them appears on a pending or paid order. Otherwise the
    order lines of cancelled or delivered orders and any cart lines pointing at
    their variants are removed first.
    """
    ids = []
    for raw in product_ids:
        parsed = parse_uuid(raw)
        if parsed is None:
            return {"success": False, "error": "Invalid product ID in selection"}
        ids.append(parsed)
    if not ids:
        return {"success": False, "error": "No products selected"}
    ids = list(dict.fromkeys(ids))

    try:
        found = db.execute(select(func.count(Product.id)).where(Product.id.in_(ids))).scalar_one()
        if found != len(ids):
            return {"success": False, "error": "Some selected products were not found"}

        blocked = db.execute(
            select(Product.name)
            .where(
                Product.id.in_(
                    select(ProductVariant.product_id)
                    .join(OrderItem, OrderItem.product_variant_id == ProductVariant.id)
                    .join(Order, Order.id == OrderItem.order_id)
                    .where(ProductVariant.product_id.in_(ids), Order.status.in_(ACTIVE_ORDER_STATUSES))
                )
            )
            .order_by(Product.name)
        ).scalars().all()
        if blocked:
            return {
                "success": False,
                "error": "Cannot delete products that have active orders (pending or paid): " + ", ".join(blocked),
            }

        variant_ids = select(ProductVariant.id).where(ProductVariant.product_id.in_(ids))
        db.execute(
            delete(OrderItem).where(
                OrderItem.product_variant_id.in_(variant_ids),
                exists().where(Order.id == OrderItem.order_id, Order.status.in_(CLOSED_ORDER_STATUSES)),
            )
        )
        db.execute(delete(CartItem).where(CartItem.product_variant_id.in_(variant_ids)))
        db.execute(delete(Product).where(Product.id.in_(ids)))
        db.commit()
        noun = "products" if len(ids) > 1 else "product"
        return {"success": True, "message": f"{len(ids)} {noun} deleted successfully!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error bulk deleting products")
        return {"success": False, "error": "Failed to delete products"}


# ---------- Reference data for the product form ----------

# PUBLIC_INTERFACE
def get_product_form_options(db: Session) -> dict:
    """Brands, categories, genders, product types and collections for the product form selects."""
    try:
        return {
            "brands": [
                {"id": str(b.id), "name": b.name, "slug": b.slug}
                for b in db.execute(select(Brand).order_by(Brand.name)).scalars()
            ],
            "categories": [
                {"id": str(c.id), "name": c.name, "slug": c.slug, "parent_id": str(c.parent_id) if c.parent_id else None}
                for c in db.execute(select(Category).order_by(Category.name)).scalars()
            ],
            "genders": [
                {"id": str(g.id), "label": g.label, "slug": g.slug}
                for g in db.execute(select(Gender).order_by(Gender.label)).scalars()
            ],
            "product_types": [
                {"id": str(t.id), "name": t.name}
                for t in db.execute(select(ProductType).order_by(ProductType.name)).scalars()
            ],
            "collections": [
                {"id": str(c.id), "name": c.name, "slug": c.slug}
                for c in db.execute(select(Collection).order_by(Collection.name)).scalars()
            ],
        }
    except SQLAlchemyError as exc:
        logger.exception("Error fetching product form options")
        raise RuntimeError("Failed to fetch product form options") from exc


# PUBLIC_INTERFACE
def get_attribute_values_for_product_type(db: Session, product_type_id) -> List[dict]:
    """Attributes linked to a product type, each with its selectable values."""
    tid = parse_uuid(product_type_id)
    if tid is None:
        return []
    try:
        rows = db.execute(
            select(Attribute.id, Attribute.name, Attribute.display_name, AttributeValue.id, AttributeValue.value)
            .join(ProductTypeAttribute, ProductTypeAttribute.attribute_id == Attribute.id)
            .join(AttributeValue, AttributeValue.attribute_id == Attribute.id)
            .where(ProductTypeAttribute.product_type_id == tid)
            .order_by(Attribute.display_name, AttributeValue.sort_order, AttributeValue.value)
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching attribute values for product type")
        raise RuntimeError("Failed to fetch attribute values") from exc

    grouped: Dict[uuid.UUID, dict] = {}
    for attribute_id, name, display_name, value_id, value in rows:
        entry = grouped.setdefault(
            attribute_id, {"id": str(attribute_id), "name": name, "display_name": display_name, "values": []}
        )
        entry["values"].append({"id": str(value_id), "value": value})
    return list(grouped.values())
