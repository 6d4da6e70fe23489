"""Admin console routes. Every route requires a signed-in admin."""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.db.models import User
from storefront.db.session import get_db
from storefront.schemas import (
    AddressView,
    AdminOrderDetails,
    AdminProduct,
    AttributeSetWithProductCount,
    AttributeValueWithUsage,
    AttributeWithValues,
    BrandWithProductCount,
    CategoryWithProductCount,
    CollectionView,
    CollectionWithProductCount,
    DashboardStats,
    PaginatedOrders,
    PaginatedProducts,
    PaginatedUsers,
    UserDetails,
    UserOrderHistory,
)
from storefront.services.admin import (
    attribute_sets,
    attributes,
    brands,
    categories,
    collections,
    dashboard,
    orders,
    products,
    users,
)

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def _name(payload: dict) -> str:
    return str(payload.get("name") or "")


# ---------- Dashboard ----------

@router.get("/dashboard", response_model=DashboardStats)
def dashboard_stats(db: Session = Depends(get_db)):
    return dashboard.get_dashboard_stats(db)


# ---------- Brands ----------

@router.get("/brands", response_model=List[BrandWithProductCount])
def list_brands(db: Session = Depends(get_db)):
    return brands.get_brands(db)


@router.post("/brands")
def create_brand(payload: dict = Body(...), db: Session = Depends(get_db)):
    return brands.create_brand(db, payload)


@router.post("/brands/quick", summary="Create a brand from a name only")
def create_brand_quick(payload: dict = Body(...), db: Session = Depends(get_db)):
    return brands.create_brand_on_the_fly(db, _name(payload))


@router.delete("/brands/{brand_id}")
def delete_brand(brand_id: str, db: Session = Depends(get_db)):
    return brands.delete_brand(db, brand_id)


# ---------- Categories ----------

@router.get("/categories", response_model=List[CategoryWithProductCount])
def list_categories(db: Session = Depends(get_db)):
    return categories.get_categories(db)


@router.get("/categories/roots", response_model=List[CategoryWithProductCount])
def list_root_categories(db: Session = Depends(get_db)):
    return categories.get_root_categories(db)


@router.post("/categories")
def create_category(payload: dict = Body(...), db: Session = Depends(get_db)):
    return categories.create_category(db, payload)


@router.post("/categories/quick", summary="Create a category from a name only")
def create_category_quick(payload: dict = Body(...), db: Session = Depends(get_db)):
    return categories.create_category_on_the_fly(db, _name(payload))


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db)):
    return categories.delete_category(db, category_id)


# ---------- Collections ----------

@router.get("/collections", response_model=List[CollectionWithProductCount])
def list_collections(db: Session = Depends(get_db)):
    return collections.get_collections(db)


@router.get("/collections/featured")
def featured_collections(db: Session = Depends(get_db)):
    return categories.get_featured_collections(db)


@router.get("/collections/{collection_id}", response_model=CollectionView)
def read_collection(collection_id: str, db: Session = Depends(get_db)):
    collection = collections.get_collection_by_id(db, collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


@router.post("/collections", summary="Create a collection, or update it when `id` is given")
def save_collection(payload: dict = Body(...), db: Session = Depends(get_db)):
    return collections.create_or_update_collection(db, payload)


@router.delete("/collections/{collection_id}")
def delete_collection(collection_id: str, db: Session = Depends(get_db)):
    return collections.delete_collection(db, collection_id)


# ---------- Attributes ----------

@router.get("/attributes", response_model=List[AttributeWithValues])
def list_attributes(db: Session = Depends(get_db)):
    return attributes.get_attributes(db)


@router.post("/attributes")
def create_attribute(payload: dict = Body(...), db: Session = Depends(get_db)):
    return attributes.create_attribute(db, payload)


@router.delete("/attributes/{attribute_id}")
def delete_attribute(attribute_id: str, db: Session = Depends(get_db)):
    return attributes.delete_attribute(db, attribute_id)


@router.get("/attributes/{attribute_id}/values", response_model=List[AttributeValueWithUsage])
def list_attribute_values(attribute_id: str, db: Session = Depends(get_db)):
    return attributes.get_attribute_values(db, attribute_id)


@router.post("/attributes/{attribute_id}/values")
def add_attribute_value(attribute_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    return attributes.add_attribute_value(db, {**payload, "attribute_id": attribute_id})


@router.post("/attributes/{attribute_id}/values/quick", summary="Create a value from a name only")
def add_attribute_value_quick(attribute_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    return attributes.create_attribute_value_on_the_fly(db, attribute_id, _name(payload))


@router.delete("/attribute-values/{value_id}")
def delete_attribute_value(value_id: str, db: Session = Depends(get_db)):
    return attributes.delete_attribute_value(db, value_id)


# ---------- Attribute sets ----------

@router.get("/attribute-sets", response_model=List[AttributeSetWithProductCount])
def list_attribute_sets(db: Session = Depends(get_db)):
    return attribute_sets.get_attribute_sets(db)


@router.post("/attribute-sets")
def create_attribute_set(payload: dict = Body(...), db: Session = Depends(get_db)):
    return attribute_sets.create_attribute_set(db, payload)


@router.delete("/attribute-sets/{attribute_set_id}")
def delete_attribute_set(attribute_set_id: str, db: Session = Depends(get_db)):
    return attribute_sets.delete_attribute_set(db, attribute_set_id)


@router.get("/attribute-sets/{attribute_set_id}/attributes", response_model=List[str])
def attribute_set_attributes(attribute_set_id: str, db: Session = Depends(get_db)):
    return attribute_sets.get_attributes_for_attribute_set(db, attribute_set_id)


@router.put("/attribute-sets/{attribute_set_id}/attributes")
def replace_attribute_set_attributes(
    attribute_set_id: str,
    attribute_ids: List[str] = Body(..., embed=True),
    db: Session = Depends(get_db),
):
    return attribute_sets.update_attributes_for_set(db, attribute_set_id, attribute_ids)


@router.get("/attribute-sets/{attribute_set_id}/values", summary="Attribute values selectable for a product type")
def attribute_set_values(attribute_set_id: str, db: Session = Depends(get_db)):
    return products.get_attribute_values_for_product_type(db, attribute_set_id)


# ---------- Products ----------

@router.get("/products", response_model=PaginatedProducts)
def list_products(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return products.get_admin_products(db, page=page, limit=limit, search=search)


@router.get("/products/form-options", summary="Reference data for the product form")
def product_form_options(db: Session = Depends(get_db)):
    return products.get_product_form_options(db)


@router.post("/products")
def create_product(payload: dict = Body(...), db: Session = Depends(get_db)):
    return products.create_product(db, payload)


@router.post("/products/bulk-delete")
def bulk_delete_products(product_ids: List[str] = Body(..., embed=True), db: Session = Depends(get_db)):
    return products.bulk_delete_products(db, product_ids)


@router.get("/products/{product_id}", response_model=AdminProduct)
def read_product(product_id: str, db: Session = Depends(get_db)):
    product = products.get_product_for_edit(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.put("/products/{product_id}")
def update_product(product_id: str, payload: dict = Body(...), db: Session = Depends(get_db)):
    return products.update_product(db, product_id, payload)


@router.delete("/products/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db)):
    return products.delete_product(db, product_id)


# ---------- Orders ----------

@router.get("/orders", response_model=PaginatedOrders)
def list_orders(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return orders.get_admin_orders(db, page=page, limit=limit, search=search, status=status)


@router.get("/orders/{order_id}", response_model=AdminOrderDetails)
def read_order(order_id: str, db: Session = Depends(get_db)):
    order = orders.get_admin_order_details(db, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.patch("/orders/{order_id}/status")
def update_order_status(order_id: str, status: str = Body(..., embed=True), db: Session = Depends(get_db)):
    return orders.update_order_status(db, order_id, status)


@router.delete("/orders/{order_id}")
def delete_order(order_id: str, db: Session = Depends(get_db)):
    return orders.delete_order(db, order_id)


# ---------- Users ----------

@router.get("/users", response_model=PaginatedUsers)
def list_users(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    return users.get_admin_users(db, page=page, limit=limit, search=search)


@router.get("/users/{user_id}", response_model=UserDetails)
def read_user(user_id: str, db: Session = Depends(get_db)):
    user = users.get_admin_user_details(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users/{user_id}/orders", response_model=List[UserOrderHistory])
def user_orders(user_id: str, db: Session = Depends(get_db)):
    return users.get_admin_user_orders(db, user_id)


@router.get("/users/{user_id}/addresses", response_model=List[AddressView])
def user_addresses(user_id: str, db: Session = Depends(get_db)):
    return users.get_admin_user_addresses(db, user_id)


@router.post("/users/{user_id}/toggle-admin")
def toggle_admin(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return users.toggle_admin_status(db, admin, user_id)
