"""Admin: attribute sets (product types) and the attributes linked to them."""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Product, ProductType, ProductTypeAttribute
from storefront.forms import AttributeSetForm
from storefront.schemas import AttributeSetWithProductCount
from storefront.services.common import first_error_message, parse_uuid

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_attribute_sets(db: Session) -> List[AttributeSetWithProductCount]:
    try:
        rows = db.execute(
            select(
                ProductType.id,
                ProductType.name,
                ProductType.created_at,
                ProductType.updated_at,
                func.count(Product.id).label("product_count"),
            )
            .outerjoin(Product, Product.product_type_id == ProductType.id)
            .group_by(ProductType.id, ProductType.name, ProductType.created_at, ProductType.updated_at)
            .order_by(ProductType.name.asc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching attribute sets")
        raise RuntimeError("Failed to fetch attribute sets") from exc
    return [AttributeSetWithProductCount.model_validate(row) for row in rows]


# PUBLIC_INTERFACE
def create_attribute_set(db: Session, payload: dict) -> dict:
    try:
        form = AttributeSetForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        if db.execute(select(ProductType.id).where(ProductType.name == form.name).limit(1)).first() is not None:
            return {"success": False, "error": "An attribute set with this name already exists"}
        product_type = ProductType(name=form.name)
        db.add(product_type)
        db.commit()
        return {"success": True, "attribute_set_id": str(product_type.id)}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating attribute set")
        return {"success": False, "error": "Failed to create attribute set"}


# PUBLIC_INTERFACE
def delete_attribute_set(db: Session, attribute_set_id) -> dict:
    sid = parse_uuid(attribute_set_id)
    if sid is None:
        return {"success": False, "error": "Invalid attribute set ID"}

    try:
        if db.get(ProductType, sid) is None:
            return {"success": False, "error": "Attribute set not found"}

        products = db.execute(select(func.count(Product.id)).where(Product.product_type_id == sid)).scalar_one()
        if products > 0:
            return {
                "success": False,
                "error": f"Cannot delete attribute set. It is currently used by {products} product(s).",
            }

        db.execute(delete(ProductType).where(ProductType.id == sid))
        db.commit()
        return {"success": True, "message": "Attribute set deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting attribute set")
        return {"success": False, "error": "Failed to delete attribute set"}


# PUBLIC_INTERFACE
def get_attributes_for_attribute_set(db: Session, attribute_set_id) -> List[str]:
    """Ids of the attributes linked to an attribute set."""
    sid = parse_uuid(attribute_set_id)
    if sid is None:
        raise RuntimeError("Invalid attribute set ID")
    try:
        ids = db.execute(
            select(ProductTypeAttribute.attribute_id).where(ProductTypeAttribute.product_type_id == sid)
        ).scalars()
        return [str(attribute_id) for attribute_id in ids]
    except SQLAlchemyError as exc:
        logger.exception("Error fetching attributes for attribute set")
        raise RuntimeError("Failed to fetch attributes for attribute set") from exc


# PUBLIC_INTERFACE
def update_attributes_for_set(db: Session, attribute_set_id, attribute_ids: List[str]) -> dict:
    """Make the set's linked attributes exactly `attribute_ids`, touching only the difference."""
    sid = parse_uuid(attribute_set_id)
    if sid is None:
        return {"success": False, "error": "Invalid attribute set ID"}
    wanted = []
    for raw in attribute_ids:
        parsed = parse_uuid(raw)
        if parsed is None:
            return {"success": False, "error": "Invalid attribute ID"}
        if parsed not in wanted:
            wanted.append(parsed)

    try:
        if db.get(ProductType, sid) is None:
            return {"success": False, "error": "Attribute set not found"}

        current = set(
            db.execute(
                select(ProductTypeAttribute.attribute_id).where(ProductTypeAttribute.product_type_id == sid)
            ).scalars()
        )
        to_remove = [attribute_id for attribute_id in current if attribute_id not in wanted]
        to_add = [attribute_id for attribute_id in wanted if attribute_id not in current]

        if to_remove:
            db.execute(
                delete(ProductTypeAttribute).where(
                    ProductTypeAttribute.product_type_id == sid,
                    ProductTypeAttribute.attribute_id.in_(to_remove),
                )
            )
        db.add_all(ProductTypeAttribute(product_type_id=sid, attribute_id=attribute_id) for attribute_id in to_add)
        db.commit()
        return {"success": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating attributes for set")
        return {"success": False, "error": "Failed to update attributes for set"}
