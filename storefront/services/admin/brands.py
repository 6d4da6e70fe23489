"""Admin: brands."""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Brand, Product
from storefront.forms import BrandForm
from storefront.schemas import BrandRef, BrandWithProductCount
from storefront.services.common import first_error_message, parse_uuid, slugify

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_brands(db: Session) -> List[BrandWithProductCount]:
    """All brands with the number of products using each, by name."""
    try:
        rows = db.execute(
            select(Brand.id, Brand.name, Brand.slug, Brand.logo_url, func.count(Product.id).label("product_count"))
            .outerjoin(Product, Product.brand_id == Brand.id)
            .group_by(Brand.id, Brand.name, Brand.slug, Brand.logo_url)
            .order_by(Brand.name.asc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching brands")
        raise RuntimeError("Failed to fetch brands") from exc
    return [BrandWithProductCount.model_validate(row) for row in rows]


def _slug_taken(db: Session, slug: str) -> bool:
    return db.execute(select(Brand.id).where(Brand.slug == slug).limit(1)).first() is not None


# PUBLIC_INTERFACE
def create_brand(db: Session, payload: dict) -> dict:
    try:
        form = BrandForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        if _slug_taken(db, form.slug):
            return {"success": False, "error": "A brand with this slug already exists"}
        brand = Brand(name=form.name, slug=form.slug, logo_url=form.logo_url)
        db.add(brand)
        db.commit()
        return {"success": True, "brand": BrandRef.model_validate(brand).model_dump(mode="json")}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating brand")
        return {"success": False, "error": "Failed to create brand"}


# PUBLIC_INTERFACE
def create_brand_on_the_fly(db: Session, name: str) -> dict:
    """Create a brand from just a name, deriving its slug."""
    name = (name or "").strip()
    if not name:
        return {"success": False, "error": "Brand name is required"}

    slug = slugify(name)
    try:
        if _slug_taken(db, slug):
            return {"success": False, "error": "A brand with this name already exists"}
        brand = Brand(name=name, slug=slug, logo_url=None)
        db.add(brand)
        db.commit()
        return {"success": True, "brand": BrandRef.model_validate(brand).model_dump(mode="json")}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating brand on-the-fly")
        return {"success": False, "error": "Failed to create brand"}


# PUBLIC_INTERFACE
def delete_brand(db: Session, brand_id) -> dict:
    """Delete a brand no product uses."""
    bid = parse_uuid(brand_id)
    if bid is None:
        return {"success": False, "error": "Invalid brand ID"}

    try:
        if db.get(Brand, bid) is None:
            return {"success": False, "error": "Brand not found"}

        in_use = db.execute(select(func.count(Product.id)).where(Product.brand_id == bid)).scalar_one()
        if in_use > 0:
            return {"success": False, "error": f"Cannot delete brand. It is currently used by {in_use} product(s)."}

        db.execute(delete(Brand).where(Brand.id == bid))
        db.commit()
        return {"success": True, "message": "Brand deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting brand")
        return {"success": False, "error": "Failed to delete brand"}
