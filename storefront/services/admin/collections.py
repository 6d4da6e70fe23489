"""Admin: collections."""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Collection, ProductCollection
from storefront.forms import CollectionForm
from storefront.schemas import CollectionView, CollectionWithProductCount
from storefront.services.common import first_error_message, parse_uuid

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def get_collections(db: Session) -> List[CollectionWithProductCount]:
    try:
        rows = db.execute(
            select(
                Collection.id,
                Collection.name,
                Collection.slug,
                Collection.description,
                Collection.image_url,
                Collection.is_featured,
                Collection.created_at,
                func.count(ProductCollection.id).label("product_count"),
            )
            .outerjoin(ProductCollection, ProductCollection.collection_id == Collection.id)
            .group_by(
                Collection.id,
                Collection.name,
                Collection.slug,
                Collection.description,
                Collection.image_url,
                Collection.is_featured,
                Collection.created_at,
            )
            .order_by(Collection.name.asc())
        ).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching collections")
        raise RuntimeError("Failed to fetch collections") from exc
    return [CollectionWithProductCount.model_validate(row) for row in rows]


# PUBLIC_INTERFACE
def get_collection_by_id(db: Session, collection_id) -> Optional[CollectionView]:
    cid = parse_uuid(collection_id)
    if cid is None:
        return None
    collection = db.get(Collection, cid)
    return CollectionView.model_validate(collection) if collection is not None else None


# PUBLIC_INTERFACE
def create_or_update_collection(db: Session, payload: dict) -> dict:
    """Update the collection named by `id`, or create a new one; slugs stay unique."""
    try:
        form = CollectionForm.model_validate(payload)
    except ValidationError as exc:
        return {"success": False, "error": first_error_message(exc)}

    try:
        clash = select(Collection.id).where(Collection.slug == form.slug)
        if form.id is not None:
            clash = clash.where(Collection.id != form.id)
        if db.execute(clash.limit(1)).first() is not None:
            return {"success": False, "error": "A collection with this slug already exists"}

        values = form.model_dump(exclude={"id"})
        if form.id is not None:
            collection = db.get(Collection, form.id)
            if collection is None:
                return {"success": False, "error": "Collection not found"}
            for key, value in values.items():
                setattr(collection, key, value)
            db.commit()
            return {"success": True, "message": "Collection updated successfully!"}

        collection = Collection(**values)
        db.add(collection)
        db.commit()
        return {"success": True, "message": "Collection created successfully!", "collection_id": str(collection.id)}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating/updating collection")
        return {"success": False, "error": "Failed to create/update collection"}


# PUBLIC_INTERFACE
def delete_collection(db: Session, collection_id) -> dict:
    """Delete a collection that no product is linked to."""
    cid = parse_uuid(collection_id)
    if cid is None:
        return {"success": False, "error": "Invalid collection ID"}

    try:
        if db.get(Collection, cid) is None:
            return {"success": False, "error": "Collection not found"}

        linked = db.execute(
            select(func.count(ProductCollection.id)).where(ProductCollection.collection_id == cid)
        ).scalar_one()
        if linked > 0:
            return {
                "success": False,
                "error": f"Cannot delete collection. It is currently used by {linked} product(s).",
            }

        db.execute(delete(Collection).where(Collection.id == cid))
        db.commit()
        return {"success": True, "message": "Collection deleted successfully!"}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting collection")
        return {"success": False, "error": "Failed to delete collection"}
