"""Admin: attributes and their values."""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Attribute, AttributeValue, ProductTypeAttribute, VariantAttributeValue
from storefront.forms import AttributeForm, AttributeValueForm
from storefront.schemas import AttributeValueItem, AttributeValueWithUsage, AttributeWithValues
from storefront.services.common import first_error_message, parse_uuid

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_attributes(db: Session) -> List[AttributeWithValues]:
    """Attributes by display name, each with its values and usage counts."""
    try:
        attributes = db.execute(select(Attribute).order_by(Attribute.display_name.asc())).scalars().all()
        values = (
            db.execute(
                select(AttributeValue).order_by(AttributeValue.sort_order.asc(), AttributeValue.value.asc())
            )
            .scalars()
            .all()
        )
        type_counts = dict(
            db.execute(
                select(ProductTypeAttribute.attribute_id, func.count(ProductTypeAttribute.id)).group_by(
                    ProductTypeAttribute.attribute_id
                )
            ).all()
        )
        variant_counts = dict(
            db.execute(
                select(AttributeValue.attribute_id, func.count(VariantAttributeValue.id))
                .join(VariantAttributeValue, VariantAttributeValue.attribute_value_id == AttributeValue.id)
                .group_by(AttributeValue.attribute_id)
            ).all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Error fetching attributes")
        raise RuntimeError("Failed to fetch attributes") from exc

    values_by_attribute = {}
    for value in values:
        values_by_attribute.setdefault(value.attribute_id, []).append(AttributeValueItem.model_validate(value))

    return [
        AttributeWithValues(
            id=attribute.id,
            name=attribute.name,
            display_name=attribute.display_name,
            created_at=attribute.created_at,
            updated_at=attribute.updated_at,
            values=values_by_attribute.get(attribute.id, []),
            product_type_count=type_counts.get(attribute.id, 0),
            variant_count=variant_counts.get(attribute.id, 0),
        )
        for attribute in attributes
    ]


# PUBLIC_INTERFACE
def get_attribute_values(db: Session, attribute_id) -> List[AttributeValueWithUsage]:
    """Values of one attribute with the number of variants using each."""
    aid = parse_uuid(attribute_id)
    if aid is None:
        raise RuntimeError("Invalid attribute ID")
    try:
        rows = db.execute(
            select(
                AttributeValue.id,
                AttributeValue.attribute_id,
                AttributeValue.value,
                AttributeValue.sort_order,
                AttributeValue.created_at,
                func.count(VariantAttributeValue.id).label("variant_count"),
            )
            .outerjoin(VariantAttributeValue, VariantAttributeValue.attribute_value_id == AttributeValue.id)
            .where(AttributeValue.attribute_id == aid)
            .group_by(
                AttributeValue.id,
                AttributeValue.attribute_id,
                AttributeValue.value,
                AttributeValue.sort_order,
                AttributeValue.created_at,
            )
            .order_by(AttributeValue.sort_order.asc(), AttributeValue.value.asc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching attribute values")
        raise RuntimeError("Failed to fetch attribute values") from exc
    return [AttributeValueWithUsage.model_validate(row) for row in rows]


# PUBLIC_INTERFACE
def create_attribute(db: Session, payload: dict) -> dict:
    try:
        form = AttributeForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        if db.execute(select(Attribute.id).where(Attribute.name == form.name).limit(1)).first() is not None:
            return {"success": False, "error": "An attribute with this name already exists"}
        attribute = Attribute(name=form.name, display_name=form.display_name)
        db.add(attribute)
        db.commit()
        return {"success": True, "attribute_id": str(attribute.id)}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating attribute")
        return {"success": False, "error": "Failed to create attribute"}


def _insert_value(db: Session, form: AttributeValueForm) -> dict:
    if db.get(Attribute, form.attribute_id) is None:
        return {"success": False, "error": "Attribute not found"}

    duplicate = db.execute(
        select(AttributeValue.id)
        .where(AttributeValue.attribute_id == form.attribute_id, AttributeValue.value == form.value)
        .limit(1)
    ).first()
    if duplicate is not None:
        return {"success": False, "error": "This value already exists for this attribute"}

    value = AttributeValue(attribute_id=form.attribute_id, value=form.value, sort_order=form.sort_order)
    db.add(value)
    db.commit()
    return {"success": True, "attribute_value": AttributeValueItem.model_validate(value).model_dump(mode="json")}


# PUBLIC_INTERFACE
def add_attribute_value(db: Session, payload: dict) -> dict:
    try:
        form = AttributeValueForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        return _insert_value(db, form)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating attribute value")
        return {"success": False, "error": "Failed to create attribute value"}


# PUBLIC_INTERFACE
def create_attribute_value_on_the_fly(db: Session, attribute_id, name: str) -> dict:
    """Add a value by name with the default sort order."""
    if not attribute_id:
        return {"success": False, "error": "Attribute ID is required"}
    try:
        form = AttributeValueForm.model_validate({"attribute_id": attribute_id, "value": name, "sort_order": 0})
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        return _insert_value(db, form)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating attribute value on-the-fly")
        return {"success": False, "error": "Failed to create attribute value"}


# PUBLIC_INTERFACE
def delete_attribute(db: Session, attribute_id) -> dict:
    """Delete an attribute not linked to any product type and whose values no variant uses."""
    aid = parse_uuid(attribute_id)
    if aid is None:
        return {"success": False, "error": "Invalid attribute ID"}

    try:
        if db.get(Attribute, aid) is None:
            return {"success": False, "error": "Attribute not found"}

        types = db.execute(
            select(func.count(ProductTypeAttribute.id)).where(ProductTypeAttribute.attribute_id == aid)
        ).scalar_one()
        if types > 0:
            return {
                "success": False,
                "error": f"Cannot delete attribute. It is currently used by {types} product type(s).",
            }

        variants = db.execute(
            select(func.count(VariantAttributeValue.id))
            .join(AttributeValue, AttributeValue.id == VariantAttributeValue.attribute_value_id)
            .where(AttributeValue.attribute_id == aid)
        ).scalar_one()
        if variants > 0:
            return {
                "success": False,
                "error": f"Cannot delete attribute. Its values are currently used by {variants} variant(s).",
            }

        db.execute(delete(Attribute).where(Attribute.id == aid))
        db.commit()
        return {"success": True, "message": "Attribute deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting attribute")
        return {"success": False, "error": "Failed to delete attribute"}


# PUBLIC_INTERFACE
def delete_attribute_value(db: Session, value_id) -> dict:
    vid = parse_uuid(value_id)
    if vid is None:
        return {"success": False, "error": "Invalid attribute value ID"}

    try:
        if db.get(AttributeValue, vid) is None:
            return {"success": False, "error": "Attribute value not found"}

        variants = db.execute(
            select(func.count(VariantAttributeValue.id)).where(VariantAttributeValue.attribute_value_id == vid)
        ).scalar_one()
        if variants > 0:
            return {
                "success": False,
                "error": f"Cannot delete attribute value. It is currently used by {variants} variant(s).",
            }

        db.execute(delete(AttributeValue).where(AttributeValue.id == vid))
        db.commit()
        return {"success": True, "message": "Attribute value deleted successfully"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting attribute value")
        return {"success": False, "error": "Failed to delete attribute value"}
