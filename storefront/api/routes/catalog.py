from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from storefront.api.deps import require_user
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.schemas import (
    CollectionOption,
    CollectionWithProducts,
    FilterOptions,
    FullProduct,
    LiveSearchResult,
    ProductListResult,
    ProductsAndFilters,
    RecommendedProduct,
    ReviewView,
)
from storefront.services import catalog, collections
from storefront.services.filters import group_query_items, parse_filter_params

router = APIRouter(prefix="/api", tags=["Catalog"])


def _filters(request: Request):
    return parse_filter_params(group_query_items(request.query_params.multi_items()))


@router.get("/products", response_model=ProductListResult, summary="Filtered product listing")
def list_products(request: Request, db: Session = Depends(get_db)):
    """
    Published products filtered by the query string.

    Accepts `search`, `gender`, `brand`, `category` (repeatable, `key[]` also
    accepted), `price=min-max`, `priceMin`, `priceMax`, `sort`, `page`, `limit`;
    any other key is an attribute facet such as `size=m`.
    """
    return catalog.get_all_products(db, _filters(request))


@router.get("/products/with-filters", response_model=ProductsAndFilters, summary="Listing plus available facets")
def list_products_with_filters(request: Request, db: Session = Depends(get_db)):
    return catalog.get_products_and_filters(db, _filters(request))


@router.get("/filters", response_model=FilterOptions, summary="Facets used by published products")
def filter_options(db: Session = Depends(get_db)):
    return catalog.get_filter_options(db)


@router.get("/search", response_model=List[LiveSearchResult], summary="Live search")
def live_search(q: Optional[str] = Query(None), db: Session = Depends(get_db)):
    return catalog.get_live_search_results(db, q)


@router.get("/products/{product_id}", response_model=FullProduct, summary="Product detail")
def product_detail(product_id: str, db: Session = Depends(get_db)):
    product = catalog.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/products/{product_id}/recommended", response_model=List[RecommendedProduct])
def recommended_products(product_id: str, db: Session = Depends(get_db)):
    return catalog.get_recommended_products(db, product_id)


@router.get("/products/{product_id}/reviews", response_model=List[ReviewView])
def product_reviews(product_id: str, db: Session = Depends(get_db)):
    return catalog.get_product_reviews(db, product_id)


@router.post("/products/{product_id}/reviews", summary="Review a product")
def review_product(
    product_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
):
    return catalog.create_review(db, product_id, user.id, payload.get("rating", 0), payload.get("comment"))


@router.get("/collections", response_model=List[CollectionOption], summary="All collections")
def all_collections(db: Session = Depends(get_db)):
    return collections.list_collections(db)


@router.get("/collections/{slug}", response_model=CollectionWithProducts, summary="Collection with its products")
def collection_products(slug: str, db: Session = Depends(get_db)):
    result = collections.get_products_by_collection_slug(db, slug)
    if result is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return result
