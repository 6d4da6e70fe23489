"""
Storefront catalog reads: filtered product listing, filter facets, product detail,
recommendations, live search and reviews.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, case, distinct, func, literal, or_, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.db.models import (
    Attribute,
    AttributeValue,
    Brand,
    Category,
    Gender,
    Product,
    ProductImage,
    ProductVariant,
    Review,
    User,
    VariantAttributeValue,
)
from storefront.schemas import (
    AttributeFilterOption,
    AttributeValueOption,
    CategoryNode,
    FilterOption,
    FilterOptions,
    FullProduct,
    LiveSearchResult,
    ProductInfo,
    ProductListItem,
    ProductListResult,
    ProductsAndFilters,
    ProductVariantView,
    RecommendedProduct,
    ReviewView,
    VariantAttribute,
)
from storefront.services.common import is_connection_error, parse_uuid, value_slug
from storefront.services.filters import NormalizedProductFilters

logger = logging.getLogger(__name__)

IMAGE_URLS_PER_PRODUCT = 4
RECOMMENDED_LIMIT = 6
RECOMMENDED_CANDIDATES = 8
LIVE_SEARCH_MIN_CHARS = 2
LIVE_SEARCH_LIMIT = 5
REVIEWS_LIMIT = 10


def _money(value) -> Optional[float]:
    return None if value is None else float(value)


# ---------- Listing query ----------

def _attribute_condition(name: str, values: List[str]):
    """EXISTS over the variant's attribute values; correlated on product_variants."""
    return (
        select(VariantAttributeValue.id)
        .join(AttributeValue, AttributeValue.id == VariantAttributeValue.attribute_value_id)
        .join(Attribute, Attribute.id == AttributeValue.attribute_id)
        .where(
            VariantAttributeValue.variant_id == ProductVariant.id,
            Attribute.name.ilike(f"%{name}%"),
            or_(
                func.lower(AttributeValue.value).in_(values),
                func.lower(func.replace(AttributeValue.value, " ", "-")).in_(values),
            ),
        )
        .exists()
    )


def _price_condition(filters: NormalizedProductFilters):
    bounds = []
    for low, high in [*filters.price_ranges, (filters.price_min, filters.price_max)]:
        parts = []
        if low is not None:
            parts.append(ProductVariant.price >= Decimal(str(low)))
        if high is not None:
            parts.append(ProductVariant.price <= Decimal(str(high)))
        if parts:
            bounds.append(and_(*parts))
    return or_(*bounds) if bounds else None


def _variant_conditions(filters: NormalizedProductFilters) -> list:
    conds = [_attribute_condition(name, values) for name, values in filters.attribute_filters.items() if values]
    price = _price_condition(filters)
    if price is not None:
        conds.append(price)
    return conds


def _product_conditions(filters: NormalizedProductFilters) -> list:
    conds = [Product.is_published.is_(True)]
    if filters.search:
        pattern = f"%{filters.search}%"
        conds.append(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if filters.gender_slugs:
        conds.append(Gender.slug.in_(filters.gender_slugs))
    if filters.brand_slugs:
        conds.append(Brand.slug.in_(filters.brand_slugs))
    if filters.category_slugs:
        conds.append(Category.slug.in_(filters.category_slugs))
    return conds


def _primary_images():
    """Product-level images ranked per product; rn == 1 is the primary one."""
    rn = (
        func.row_number()
        .over(
            partition_by=ProductImage.product_id,
            order_by=(ProductImage.is_primary.desc(), ProductImage.sort_order.asc()),
        )
        .label("rn")
    )
    return (
        select(ProductImage.product_id, ProductImage.url, rn)
        .where(ProductImage.variant_id.is_(None))
        .subquery("pi")
    )


def _with_listing_joins(stmt, v, filters: NormalizedProductFilters, extra_conditions: Iterable, variant_filtered: bool):
    stmt = (
        stmt.select_from(Product)
        .outerjoin(v, v.c.product_id == Product.id)
        .outerjoin(Gender, Gender.id == Product.gender_id)
        .outerjoin(Brand, Brand.id == Product.brand_id)
        .outerjoin(Category, Category.id == Product.category_id)
        .where(*_product_conditions(filters), *extra_conditions)
    )
    if variant_filtered:
        stmt = stmt.where(v.c.variant_id.is_not(None))
    return stmt


def _variant_subquery(filters: NormalizedProductFilters):
    variant_conds = _variant_conditions(filters)
    stmt = select(
        ProductVariant.id.label("variant_id"),
        ProductVariant.product_id,
        ProductVariant.price,
        ProductVariant.sale_price,
    )
    if variant_conds:
        stmt = stmt.where(and_(*variant_conds))
    return stmt.subquery("v"), bool(variant_conds)


def image_urls_by_product(db: Session, product_ids: List[uuid.UUID], per_product: int = IMAGE_URLS_PER_PRODUCT):
    """Up to `per_product` distinct product-level image urls per product, primary first."""
    if not product_ids:
        return {}
    rows = db.execute(
        select(ProductImage.product_id, ProductImage.url)
        .where(ProductImage.product_id.in_(product_ids), ProductImage.variant_id.is_(None))
        .order_by(ProductImage.product_id, ProductImage.is_primary.desc(), ProductImage.sort_order.asc())
    ).all()
    urls: Dict[uuid.UUID, List[str]] = {}
    for product_id, url in rows:
        bucket = urls.setdefault(product_id, [])
        if url not in bucket and len(bucket) < per_product:
            bucket.append(url)
    return urls


def query_product_list(
    db: Session,
    filters: NormalizedProductFilters,
    *extra_conditions,
    paginate: bool = True,
) -> ProductListResult:
    """Run the listing query without the transient-failure fallback."""
    v, variant_filtered = _variant_subquery(filters)
    pi = _primary_images()

    if filters.sort == "price_asc":
        primary_order = func.min(v.c.price).asc()
    elif filters.sort == "price_desc":
        primary_order = func.max(v.c.price).desc()
    else:
        primary_order = Product.created_at.desc()

    stmt = select(
        Product.id,
        Product.name,
        Product.created_at,
        Gender.label.label("gender_label"),
        func.min(v.c.price).label("min_price"),
        func.max(v.c.price).label("max_price"),
        func.min(v.c.sale_price).label("min_sale_price"),
        func.max(v.c.sale_price).label("max_sale_price"),
        func.max(pi.c.url).label("image_url"),
    )
    stmt = _with_listing_joins(stmt, v, filters, extra_conditions, variant_filtered)
    stmt = (
        stmt.outerjoin(pi, and_(pi.c.product_id == Product.id, pi.c.rn == 1))
        .group_by(Product.id, Product.name, Product.created_at, Gender.label)
        .order_by(primary_order, Product.created_at.desc(), Product.id.asc())
    )
    if paginate:
        stmt = stmt.limit(filters.limit).offset(filters.offset)
    rows = db.execute(stmt).all()

    count_stmt = _with_listing_joins(
        select(func.count(distinct(Product.id))), v, filters, extra_conditions, variant_filtered
    )
    total_count = db.execute(count_stmt).scalar_one()

    urls = image_urls_by_product(db, [r.id for r in rows])
    products = [
        ProductListItem(
            id=r.id,
            name=r.name,
            image_url=r.image_url,
            image_urls=urls.get(r.id, []),
            min_price=_money(r.min_price),
            max_price=_money(r.max_price),
            min_sale_price=_money(r.min_sale_price),
            max_sale_price=_money(r.max_sale_price),
            created_at=r.created_at,
            subtitle=f"{r.gender_label} Apparel" if r.gender_label else None,
        )
        for r in rows
    ]
    return ProductListResult(products=products, total_count=total_count)


# PUBLIC_INTERFACE
def get_all_products(db: Session, filters: NormalizedProductFilters) -> ProductListResult:
    """
    Published products matching `filters`, one page at a time.

    Facets on gender, brand and category match slugs; attribute and price facets
    require at least one matching variant. A connection timeout degrades to an
    empty page, any other database error propagates.
    """
    try:
        return query_product_list(db, filters)
    except OperationalError as exc:
        if not is_connection_error(exc):
            raise
        logger.warning("Database connection timeout while listing products, returning empty results")
        return ProductListResult(products=[], total_count=0)


# ---------- Filter options ----------

def _filter_options(db: Session, brand_scope=(), category_scope=(), gender_scope=(), attribute_scope=()) -> FilterOptions:
    """Facets used by published products; each facet may be narrowed by its own extra conditions."""
    published = Product.is_published.is_(True)

    brands = db.execute(
        select(Brand.name, Brand.slug)
        .join(Product, Product.brand_id == Brand.id)
        .where(published, *brand_scope)
        .distinct()
        .order_by(Brand.name)
    ).all()
    categories = db.execute(
        select(Category.name, Category.slug)
        .join(Product, Product.category_id == Category.id)
        .where(published, *category_scope)
        .distinct()
        .order_by(Category.name)
    ).all()
    genders = db.execute(
        select(Gender.label, Gender.slug)
        .join(Product, Product.gender_id == Gender.id)
        .where(published, *gender_scope)
        .distinct()
        .order_by(Gender.label)
    ).all()
    attribute_rows = db.execute(
        select(Attribute.id, Attribute.name, Attribute.display_name, AttributeValue.value)
        .join(AttributeValue, AttributeValue.attribute_id == Attribute.id)
        .join(VariantAttributeValue, VariantAttributeValue.attribute_value_id == AttributeValue.id)
        .join(ProductVariant, ProductVariant.id == VariantAttributeValue.variant_id)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(published, *attribute_scope)
        .order_by(Attribute.display_name, AttributeValue.sort_order, AttributeValue.value)
    ).all()

    attributes: Dict[uuid.UUID, AttributeFilterOption] = {}
    for attribute_id, name, display_name, value in attribute_rows:
        option = attributes.setdefault(
            attribute_id, AttributeFilterOption(name=name, display_name=display_name, values=[])
        )
        slug = value_slug(value)
        if not any(v.slug == slug for v in option.values):
            option.values.append(AttributeValueOption(value=value, slug=slug))

    return FilterOptions(
        brands=[FilterOption(name=name, slug=slug) for name, slug in brands],
        categories=[FilterOption(name=name, slug=slug) for name, slug in categories],
        genders=[FilterOption(name=label, slug=slug) for label, slug in genders],
        attributes=list(attributes.values()),
    )


def context_product_ids(filters: NormalizedProductFilters, by_gender: bool = True, by_category: bool = False):
    """
    Ids of published products in the shopper's browsing context.

    The context is the free-text search plus, optionally, the gender and category
    facets. Brand, attribute and price facets never narrow it, so the options for
    those facets stay selectable while one of their values is active.
    """
    conds = [Product.is_published.is_(True)]
    if filters.search:
        pattern = f"%{filters.search}%"
        conds.append(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if by_gender and filters.gender_slugs:
        conds.append(Gender.slug.in_(filters.gender_slugs))
    if by_category and filters.category_slugs:
        conds.append(Category.slug.in_(filters.category_slugs))
    return (
        select(Product.id)
        .outerjoin(Gender, Gender.id == Product.gender_id)
        .outerjoin(Category, Category.id == Product.category_id)
        .where(*conds)
        .correlate(None)
    )


def category_tree(db: Session, gender_slugs: List[str]) -> List[CategoryNode]:
    """
    Subcategories arranged under their parents, featured first then by name.

    With a gender selected, only subcategories holding published products for
    that gender are kept. A node whose parent is not kept becomes a root.
    """
    stmt = select(Category).where(Category.parent_id.is_not(None)).order_by(Category.name)
    if gender_slugs:
        stmt = stmt.where(
            Category.id.in_(
                select(Product.category_id)
                .join(Gender, Gender.id == Product.gender_id)
                .where(Product.is_published.is_(True), Gender.slug.in_(gender_slugs))
            )
        )
    rows = db.execute(stmt).scalars().all()

    nodes = {
        row.id: CategoryNode(
            id=row.id,
            name=row.name,
            slug=row.slug,
            parent_id=row.parent_id,
            image_url=row.image_url,
            is_featured=row.is_featured,
            children=[],
        )
        for row in rows
    }
    roots: List[CategoryNode] = []
    for node in nodes.values():
        parent = nodes.get(node.parent_id)
        (parent.children if parent is not None else roots).append(node)

    def arrange(level: List[CategoryNode]) -> List[CategoryNode]:
        level.sort(key=lambda n: (not n.is_featured, n.name.lower()))
        for n in level:
            arrange(n.children)
        return level

    return arrange(roots)


# PUBLIC_INTERFACE
def get_filter_options(db: Session) -> FilterOptions:
    """Facets used by at least one published product."""
    try:
        return _filter_options(db)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching filter options")
        raise RuntimeError("Failed to fetch filter options") from exc


# PUBLIC_INTERFACE
def get_products_and_filters(db: Session, filters: NormalizedProductFilters) -> ProductsAndFilters:
    """
    Product page plus the facets available in the current browsing context.

    Brand and category options come from the search and gender context, gender
    options from the search alone, and attribute options additionally follow the
    selected categories. `total_count` covers every matching product whatever
    the requested page.
    """
    try:
        listing = query_product_list(db, filters)
        options = _filter_options(
            db,
            brand_scope=[Product.id.in_(context_product_ids(filters))],
            category_scope=[Product.id.in_(context_product_ids(filters))],
            gender_scope=[Product.id.in_(context_product_ids(filters, by_gender=False))],
            attribute_scope=[Product.id.in_(context_product_ids(filters, by_category=True))],
        )
        tree = category_tree(db, filters.gender_slugs)
    except OperationalError as exc:
        if not is_connection_error(exc):
            raise
        logger.warning("Database connection timeout while listing products, returning empty results")
        return ProductsAndFilters(products=[], total_count=0, filter_options=FilterOptions())
    return ProductsAndFilters(
        products=listing.products,
        total_count=listing.total_count,
        filter_options=options,
        hierarchical_categories=tree,
    )


# ---------- Product detail ----------

def variant_attributes(variant: ProductVariant) -> List[VariantAttribute]:
    return [
        VariantAttribute(name=av.attribute.name, value=av.value, display_name=av.attribute.display_name)
        for av in variant.attribute_values
    ]


def primary_image_url(images: Iterable[ProductImage]) -> Optional[str]:
    """Primary product-level image; falls back to the lowest sort order."""
    ranked = sorted(
        (img for img in images if img.variant_id is None),
        key=lambda img: (not img.is_primary, img.sort_order),
    )
    return ranked[0].url if ranked else None


# PUBLIC_INTERFACE
def get_product(db: Session, product_id) -> Optional[FullProduct]:
    """Product with its references, variants and gallery; None when absent or the id is malformed."""
    pid = parse_uuid(product_id)
    if pid is None:
        return None

    product = db.execute(
        select(Product)
        .options(
            joinedload(Product.brand),
            joinedload(Product.category),
            joinedload(Product.gender),
            joinedload(Product.product_type),
            selectinload(Product.variants).selectinload(ProductVariant.attribute_values),
            selectinload(Product.images),
        )
        .where(Product.id == pid)
    ).scalar_one_or_none()
    if product is None:
        return None

    variant_images = {img.variant_id: img.url for img in product.images if img.variant_id is not None}
    variants = [
        ProductVariantView(
            id=variant.id,
            sku=variant.sku,
            price=float(variant.price),
            sale_price=_money(variant.sale_price),
            in_stock=bool(variant.in_stock),
            image_url=variant_images.get(variant.id),
            attributes=variant_attributes(variant),
        )
        for variant in product.variants
    ]
    gallery = sorted(
        (img for img in product.images if img.variant_id is None),
        key=lambda img: (not img.is_primary, img.sort_order),
    )
    return FullProduct(
        product=ProductInfo.model_validate(product),
        variants=variants,
        gallery_images=[img.url for img in gallery],
    )


# PUBLIC_INTERFACE
def get_recommended_products(db: Session, product_id) -> List[RecommendedProduct]:
    """Other published products ranked by shared category (x3), brand (x2) and gender (x1)."""
    pid = parse_uuid(product_id)
    if pid is None:
        return []
    base = db.get(Product, pid)
    if base is None:
        return []

    terms = [
        case((column == value, weight), else_=0)
        for column, value, weight in (
            (Product.category_id, base.category_id, 3),
            (Product.brand_id, base.brand_id, 2),
            (Product.gender_id, base.gender_id, 1),
        )
        if value is not None
    ]
    priority = sum(terms[1:], terms[0]) if terms else literal(0)

    v = select(ProductVariant.product_id, ProductVariant.price).subquery("v")
    pi = _primary_images()
    rows = db.execute(
        select(
            Product.id,
            Product.name,
            func.min(v.c.price).label("min_price"),
            func.max(pi.c.url).label("image_url"),
        )
        .select_from(Product)
        .outerjoin(v, v.c.product_id == Product.id)
        .outerjoin(pi, and_(pi.c.product_id == Product.id, pi.c.rn == 1))
        .where(Product.is_published.is_(True), Product.id != pid)
        .group_by(Product.id, Product.name, Product.created_at)
        .order_by(priority.desc(), Product.created_at.desc(), Product.id.asc())
        .limit(RECOMMENDED_CANDIDATES)
    ).all()

    picked = [r for r in rows if r.image_url and r.image_url.strip()][:RECOMMENDED_LIMIT]
    urls = image_urls_by_product(db, [r.id for r in picked])
    return [
        RecommendedProduct(
            id=r.id,
            title=r.name,
            price=_money(r.min_price),
            image_url=r.image_url.strip(),
            image_urls=[u for u in urls.get(r.id, []) if u != r.image_url][:3],
        )
        for r in picked
    ]


# PUBLIC_INTERFACE
def get_live_search_results(db: Session, query: Optional[str]) -> List[LiveSearchResult]:
    """Newest published products whose name or description contains `query`."""
    term = (query or "").strip()
    if len(term) < LIVE_SEARCH_MIN_CHARS:
        return []

    pattern = f"%{term}%"
    rows = db.execute(
        select(Product.id, Product.name)
        .where(
            Product.is_published.is_(True),
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern)),
        )
        .order_by(Product.created_at.desc())
        .limit(LIVE_SEARCH_LIMIT)
    ).all()
    urls = image_urls_by_product(db, [r.id for r in rows], per_product=1)
    return [LiveSearchResult(id=r.id, name=r.name, image_url=(urls.get(r.id) or [None])[0]) for r in rows]


# ---------- Reviews ----------

# PUBLIC_INTERFACE
def get_product_reviews(db: Session, product_id) -> List[ReviewView]:
    pid = parse_uuid(product_id)
    if pid is None:
        return []
    rows = db.execute(
        select(Review.id, Review.rating, Review.comment, Review.created_at, User.name, User.email)
        .join(User, User.id == Review.user_id)
        .where(Review.product_id == pid)
        .order_by(Review.created_at.desc())
        .limit(REVIEWS_LIMIT)
    ).all()
    return [
        ReviewView(
            id=r.id,
            author=(r.name or "").strip() or r.email or "Anonymous",
            rating=r.rating,
            content=r.comment or "",
            created_at=r.created_at,
        )
        for r in rows
    ]


# PUBLIC_INTERFACE
def create_review(db: Session, product_id, user_id, rating: int, comment: Optional[str] = None) -> dict:
    """One review per user and product; rating within 1..5."""
    pid, uid = parse_uuid(product_id), parse_uuid(user_id)
    if pid is None or uid is None:
        return {"success": False, "error": "Invalid product or user ID"}
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        rating = 0
    if not 1 <= rating <= 5:
        return {"success": False, "error": "Rating must be between 1 and 5"}

    try:
        existing = db.execute(
            select(Review.id).where(Review.product_id == pid, Review.user_id == uid).limit(1)
        ).first()
        if existing is not None:
            return {"success": False, "error": "You have already reviewed this product"}

        db.add(Review(product_id=pid, user_id=uid, rating=rating, comment=comment or None))
        db.commit()
        return {"success": True}
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating review")
        return {"success": False, "error": "Failed to create review"}
