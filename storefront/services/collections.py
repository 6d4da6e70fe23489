"""Public collection pages."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.db.models import Collection, Product, ProductCollection
from storefront.schemas import CollectionOption, CollectionView, CollectionWithProducts
from storefront.services.catalog import query_product_list
from storefront.services.filters import NormalizedProductFilters

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def list_collections(db: Session) -> List[CollectionOption]:
    try:
        rows = db.execute(select(Collection.name, Collection.slug).order_by(Collection.name)).all()
    except SQLAlchemyError as exc:
        logger.exception("Error fetching collections")
        raise RuntimeError("Failed to fetch collections") from exc
    return [CollectionOption(name=name, slug=slug) for name, slug in rows]


# PUBLIC_INTERFACE
def get_products_by_collection_slug(db: Session, slug: str) -> Optional[CollectionWithProducts]:
    """The collection and every published product linked to it, newest first; None if unknown."""
    collection = db.execute(select(Collection).where(Collection.slug == slug)).scalar_one_or_none()
    if collection is None:
        return None

    in_collection = Product.id.in_(
        select(ProductCollection.product_id).where(ProductCollection.collection_id == collection.id)
    )
    listing = query_product_list(db, NormalizedProductFilters(), in_collection, paginate=False)
    return CollectionWithProducts(
        collection=CollectionView.model_validate(collection),
        products=listing.products,
        total_count=listing.total_count,
    )
