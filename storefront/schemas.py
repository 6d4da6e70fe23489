"""
Read models returned by the storefront and admin actions.

Each model maps 1:1 onto the JSON the API serves; ORM rows convert through
`from_attributes`.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------- Catalog ----------

class ProductListItem(ReadModel):
    id: uuid.UUID
    name: str
    image_url: Optional[str] = None
    image_urls: List[str] = []
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_sale_price: Optional[float] = None
    max_sale_price: Optional[float] = None
    created_at: datetime
    subtitle: Optional[str] = None


class ProductListResult(ReadModel):
    products: List[ProductListItem]
    total_count: int


class FilterOption(ReadModel):
    name: str
    slug: str


class AttributeValueOption(ReadModel):
    value: str
    slug: str


class AttributeFilterOption(ReadModel):
    name: str
    display_name: str
    values: List[AttributeValueOption]


class FilterOptions(ReadModel):
    brands: List[FilterOption] = []
    categories: List[FilterOption] = []
    genders: List[FilterOption] = []
    attributes: List[AttributeFilterOption] = []


class CategoryNode(ReadModel):
    id: uuid.UUID
    name: str
    slug: str
    parent_id: Optional[uuid.UUID] = None
    image_url: Optional[str] = None
    is_featured: bool = False
    children: List["CategoryNode"] = []


class ProductsAndFilters(ProductListResult):
    filter_options: FilterOptions
    hierarchical_categories: List[CategoryNode] = []


class BrandRef(ReadModel):
    id: uuid.UUID
    name: str
    slug: str
    logo_url: Optional[str] = None


class CategoryRef(ReadModel):
    id: uuid.UUID
    name: str
    slug: str
    parent_id: Optional[uuid.UUID] = None


class GenderRef(ReadModel):
    id: uuid.UUID
    label: str
    slug: str


class ProductTypeRef(ReadModel):
    id: uuid.UUID
    name: str


class VariantAttribute(ReadModel):
    name: str
    value: str
    display_name: str


class ProductVariantView(ReadModel):
    id: uuid.UUID
    sku: str
    price: float
    sale_price: Optional[float] = None
    in_stock: bool
    image_url: Optional[str] = None
    attributes: List[VariantAttribute] = []


class ProductInfo(ReadModel):
    id: uuid.UUID
    name: str
    description: str
    product_code: Optional[str] = None
    is_published: bool
    default_variant_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    brand: Optional[BrandRef] = None
    category: Optional[CategoryRef] = None
    gender: Optional[GenderRef] = None
    product_type: Optional[ProductTypeRef] = None


class FullProduct(ReadModel):
    product: ProductInfo
    variants: List[ProductVariantView]
    gallery_images: List[str]


class ReviewView(ReadModel):
    id: uuid.UUID
    author: str
    rating: int
    content: str
    created_at: datetime


class RecommendedProduct(ReadModel):
    id: uuid.UUID
    title: str
    price: Optional[float] = None
    image_url: str
    image_urls: List[str] = []


class LiveSearchResult(ReadModel):
    id: uuid.UUID
    name: str
    image_url: Optional[str] = None


class CollectionOption(ReadModel):
    name: str
    slug: str


class CollectionView(ReadModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_featured: bool


class CollectionWithProducts(ReadModel):
    collection: CollectionView
    products: List[ProductListItem]
    total_count: int


# ---------- Cart / orders ----------

class LineProduct(ReadModel):
    id: uuid.UUID
    name: str
    image_url: Optional[str] = None


class CartVariant(ReadModel):
    id: uuid.UUID
    sku: str
    price: float
    sale_price: Optional[float] = None
    in_stock: bool
    product: LineProduct
    attributes: List[VariantAttribute] = []


class CartItemView(ReadModel):
    id: uuid.UUID
    cart_id: uuid.UUID
    product_variant_id: uuid.UUID
    quantity: int
    variant: CartVariant


class CartView(ReadModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    guest_id: Optional[uuid.UUID] = None
    items: List[CartItemView]
    total: float
    item_count: int


class AddressView(ReadModel):
    id: Optional[uuid.UUID] = None
    type: Optional[str] = None
    line1: str = ""
    line2: Optional[str] = None
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""
    is_default: bool = False


class OrderVariant(ReadModel):
    id: uuid.UUID
    sku: str
    product: LineProduct
    attributes: List[VariantAttribute] = []


class OrderItemView(ReadModel):
    id: uuid.UUID
    quantity: int
    price_at_purchase: float
    variant: OrderVariant


class OrderSummary(ReadModel):
    id: uuid.UUID
    status: str
    total_amount: float
    created_at: datetime
    shipping_address: AddressView
    items: List[OrderItemView]


# ---------- Account ----------

class UserProfile(ReadModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str


class UserOrder(ReadModel):
    order_id: uuid.UUID
    created_at: datetime
    status: str
    total_amount: float


# ---------- Admin ----------

class BrandWithProductCount(BrandRef):
    product_count: int


class CategoryWithProductCount(CategoryRef):
    product_count: int


class CollectionWithProductCount(CollectionView):
    created_at: datetime
    product_count: int


class AttributeValueItem(ReadModel):
    id: uuid.UUID
    value: str
    sort_order: int
    created_at: datetime


class AttributeWithValues(ReadModel):
    id: uuid.UUID
    name: str
    display_name: str
    created_at: datetime
    updated_at: datetime
    values: List[AttributeValueItem]
    product_type_count: int
    variant_count: int


class AttributeValueWithUsage(AttributeValueItem):
    attribute_id: uuid.UUID
    variant_count: int


class AttributeSetWithProductCount(ReadModel):
    id: uuid.UUID
    name: str
    created_at: datetime
    updated_at: datetime
    product_count: int


class AdminProductListItem(ReadModel):
    id: uuid.UUID
    name: str
    description: str
    is_published: bool
    created_at: datetime
    updated_at: datetime
    category: Optional[CategoryRef] = None
    gender: Optional[GenderRef] = None
    brand: Optional[BrandRef] = None
    variant_count: int = 0
    total_stock: int = 0
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class PaginatedProducts(ReadModel):
    products: List[AdminProductListItem]
    total_count: int
    total_pages: int
    current_page: int


class AdminVariant(ReadModel):
    id: uuid.UUID
    sku: str
    price: float
    sale_price: Optional[float] = None
    in_stock: int
    attribute_value_ids: List[uuid.UUID]
    attributes: List[VariantAttribute] = []
    image_url: Optional[str] = None


class AdminProduct(ReadModel):
    id: uuid.UUID
    name: str
    description: str
    product_code: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    gender_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    product_type_id: Optional[uuid.UUID] = None
    is_published: bool
    default_variant_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    collection_ids: List[uuid.UUID] = []
    variants: List[AdminVariant] = []
    product_images: List[str] = []


class AdminOrderListItem(ReadModel):
    id: uuid.UUID
    order_number: str
    customer_name: Optional[str] = None
    customer_email: str
    status: str
    total_amount: float
    created_at: datetime
    item_count: int


class PaginatedOrders(ReadModel):
    orders: List[AdminOrderListItem]
    total_count: int
    total_pages: int
    current_page: int


class AdminOrderLine(ReadModel):
    id: uuid.UUID
    product_variant_id: uuid.UUID
    quantity: int
    price_at_purchase: float
    sku: str
    product_id: uuid.UUID
    product_name: str
    attributes: dict = {}


class AdminUserListItem(ReadModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    is_admin: bool
    created_at: datetime


class AdminOrderDetails(ReadModel):
    id: uuid.UUID
    status: str
    total_amount: float
    created_at: datetime
    user: Optional[AdminUserListItem] = None
    shipping_address: Optional[AddressView] = None
    billing_address: Optional[AddressView] = None
    items: List[AdminOrderLine]


class PaginatedUsers(ReadModel):
    users: List[AdminUserListItem]
    total_count: int
    total_pages: int
    current_page: int


class UserDetails(AdminUserListItem):
    updated_at: datetime
    image: Optional[str] = None
    email_verified: bool


class UserOrderHistory(ReadModel):
    order_id: uuid.UUID
    status: str
    total_amount: float
    created_at: datetime
    items: List[AdminOrderLine]


class DashboardStats(ReadModel):
    total_revenue: float
    total_sales: int
    total_products: int
    total_users: int
    recent_orders: List[AdminOrderListItem]
