"""Admin: categories (a self-referencing tree)."""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Category, Collection, Product
from storefront.forms import CategoryForm
from storefront.schemas import CategoryRef, CategoryWithProductCount
from storefront.services.common import first_error_message, parse_uuid, slugify

logger = logging.getLogger(__name__)


def _categories_with_counts(*conditions):
    return (
        select(
            Category.id,
            Category.name,
            Category.slug,
            Category.parent_id,
            func.count(Product.id).label("product_count"),
        )
        .outerjoin(Product, Product.category_id == Category.id)
        .where(*conditions)
        .group_by(Category.id, Category.name, Category.slug, Category.parent_id)
        .order_by(Category.name.asc())
    )


# PUBLIC_INTERFACE
def get_categories(db: Session) -> List[CategoryWithProductCount]:
    try:
        rows = db.execute(_categories_with_counts()).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching categories")
        raise RuntimeError("Failed to fetch categories") from exc
    return [CategoryWithProductCount.model_validate(row) for row in rows]


# PUBLIC_INTERFACE
def get_root_categories(db: Session) -> List[CategoryWithProductCount]:
    """Categories without a parent."""
    try:
        rows = db.execute(_categories_with_counts(Category.parent_id.is_(None))).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching root categories")
        raise RuntimeError("Failed to fetch root categories") from exc
    return [CategoryWithProductCount.model_validate(row) for row in rows]


def _slug_taken(db: Session, slug: str) -> bool:
    return db.execute(select(Category.id).where(Category.slug == slug).limit(1)).first() is not None


# PUBLIC_INTERFACE
def create_category(db: Session, payload: dict) -> dict:
    try:
        form = CategoryForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        if _slug_taken(db, form.slug):
            return {"success": False, "error": "A category with this slug already exists"}
        if form.parent_id is not None and db.get(Category, form.parent_id) is None:
            return {"success": False, "error": "Parent category not found"}

        category = Category(name=form.name, slug=form.slug, parent_id=form.parent_id)
        db.add(category)
        db.commit()
        return {"success": True, "category": CategoryRef.model_validate(category).model_dump(mode="json")}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating category")
        return {"success": False, "error": "Failed to create category"}


# PUBLIC_INTERFACE
def create_category_on_the_fly(db: Session, name: str) -> dict:
    name = (name or "").strip()
    if not name:
        return {"success": False, "error": "Category name is required"}

    slug = slugify(name)
    try:
        if _slug_taken(db, slug):
            return {"success": False, "error": "A category with this name already exists"}
        category = Category(name=name, slug=slug)
        db.add(category)
        db.commit()
        return {"success": True, "category": CategoryRef.model_validate(category).model_dump(mode="json")}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating category on-the-fly")
        return {"success": False, "error": "Failed to create category"}


# PUBLIC_INTERFACE
def delete_category(db: Session, category_id) -> dict:
    """Delete a category that has neither products nor subcategories."""
    cid = parse_uuid(category_id)
    if cid is None:
        return {"success": False, "error": "Invalid category ID"}

    try:
        if db.get(Category, cid) is None:
            return {"success": False, "error": "Category not found"}

        products = db.execute(select(func.count(Product.id)).where(Product.category_id == cid)).scalar_one()
        if products > 0:
            return {
                "success": False,
                "error": f"Cannot delete category. It is currently used by {products} product(s).",
            }

        children = db.execute(select(func.count(Category.id)).where(Category.parent_id == cid)).scalar_one()
        if children > 0:
            return {"success": False, "error": f"Cannot delete category. It has {children} subcategory(ies)."}

        db.execute(delete(Category).where(Category.id == cid))
        db.commit()
        return {"success": True, "message": "Category deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting category")
        return {"success": False, "error": "Failed to delete category"}


# PUBLIC_INTERFACE
def get_featured_collections(db: Session) -> List[dict]:
    """Featured collections, by name."""
    try:
        rows = db.execute(
            select(Collection.id, Collection.name, Collection.slug, Collection.is_featured, Collection.created_at)
            .where(Collection.is_featured.is_(True))
            .order_by(Collection.name.asc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching featured collections")
        raise RuntimeError("Failed to fetch featured collections") from exc
    return [dict(row._mapping) for row in rows]
