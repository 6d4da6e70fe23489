import uuid

from sqlalchemy import func, select

from storefront.db.models import CartItem, Cart, OrderItem, Product, ProductImage
from storefront.services.admin import products
from tests.factories import make_order, make_user, variant_by_sku


def _payload(catalog, **overrides):
    payload = {
        "name": "Court Sneaker",
        "description": "Low-top leather sneaker",
        "product_code": "CRT-1",
        "brand_id": str(catalog.nike.id),
        "gender_id": str(catalog.men.id),
        "category_id": str(catalog.shoes.id),
        "product_type_id": str(catalog.apparel.id),
        "is_published": True,
        "collection_ids": [str(catalog.summer.id)],
        "product_images": ["https://cdn.example.com/court-1.jpg", "https://cdn.example.com/court-2.jpg"],
        "variants": [
            {
                "sku": "CRT-S",
                "price": "80",
                "in_stock": 4,
                "attribute_value_ids": [str(catalog.small.id), str(catalog.red.id)],
                "image_url": "https://cdn.example.com/court-s.jpg",
            },
            {"sku": "CRT-M", "price": "85.50", "sale_price": "70", "in_stock": 0, "attribute_value_ids": [str(catalog.medium.id)]},
        ],
    }
    payload.update(overrides)
    return payload


def test_admin_product_list_has_stats(db, catalog):
    page = products.get_admin_products(db, page=1, limit=2)
    assert page.total_count == 3
    assert page.total_pages == 2
    assert [p.name for p in page.products] == ["Hidden Draft", "Trail Shirt"]

    runner = products.get_admin_products(db, search="runner").products[0]
    assert runner.variant_count == 2
    assert runner.total_stock == 5
    assert (runner.min_price, runner.max_price) == (50.0, 120.0)
    assert runner.brand.slug == "nike"


def test_create_product_writes_the_whole_graph(db, catalog):
    result = products.create_product(db, _payload(catalog))
    assert result["success"] is True
    assert result["message"] == "Product created successfully!"

    product = products.get_product_for_edit(db, result["product_id"])
    assert [v.sku for v in product.variants] == ["CRT-S", "CRT-M"]
    assert product.default_variant_id == product.variants[0].id
    assert product.variants[0].image_url == "https://cdn.example.com/court-s.jpg"
    assert product.variants[1].sale_price == 70.0
    assert set(product.variants[0].attribute_value_ids) == {catalog.small.id, catalog.red.id}
    assert product.product_images == ["https://cdn.example.com/court-1.jpg", "https://cdn.example.com/court-2.jpg"]
    assert product.collection_ids == [catalog.summer.id]

    primary = db.execute(
        select(ProductImage.url).where(
            ProductImage.product_id == uuid.UUID(result["product_id"]), ProductImage.is_primary.is_(True)
        )
    ).scalars().all()
    assert primary == ["https://cdn.example.com/court-1.jpg"]


def test_create_product_validation(db, catalog):
    assert products.create_product(db, _payload(catalog, variants=[]))["error"] == "At least one variant is required"
    assert products.create_product(db, _payload(catalog, name=""))["error"] == "Product name is required"
    assert products.create_product(db, _payload(catalog, product_type_id=None))["error"] == "Product type is required"

    def one_variant(**fields):
        variant = {"sku": "X-1", "price": "10", "in_stock": 1, "attribute_value_ids": [str(catalog.small.id)]}
        variant.update(fields)
        return _payload(catalog, variants=[variant])

    assert products.create_product(db, one_variant(attribute_value_ids=[]))["error"] == (
        "At least one attribute value is required"
    )
    assert products.create_product(db, one_variant(price="-5"))["error"] == "Price must be a positive number"
    assert products.create_product(db, one_variant(price=""))["error"] == "Price is required"
    assert products.create_product(db, one_variant(in_stock=-1))["error"] == "Stock must be non-negative"


def test_update_product_upserts_variants(db, catalog):
    product_id = products.create_product(db, _payload(catalog))["product_id"]
    current = products.get_product_for_edit(db, product_id)
    kept = current.variants[0]

    payload = _payload(
        catalog,
        name="Court Sneaker II",
        collection_ids=[],
        product_images=["https://cdn.example.com/court-new.jpg"],
        variants=[
            {
                "id": str(kept.id),
                "sku": "CRT-S",
                "price": "90",
                "in_stock": 9,
                "attribute_value_ids": [str(catalog.small.id)],
            },
            {"sku": "CRT-L", "price": "95", "in_stock": 1, "attribute_value_ids": [str(catalog.extra_large.id)]},
        ],
    )
    result = products.update_product(db, product_id, payload)
    assert result == {"success": True, "message": "Product updated successfully!"}

    db.expire_all()
    updated = products.get_product_for_edit(db, product_id)
    assert updated.name == "Court Sneaker II"
    assert [v.sku for v in updated.variants] == ["CRT-S", "CRT-L"]
    assert updated.variants[0].id == kept.id
    assert updated.variants[0].price == 90.0
    assert updated.variants[0].attribute_value_ids == [catalog.small.id]
    assert updated.collection_ids == []
    assert updated.product_images == ["https://cdn.example.com/court-new.jpg"]


def test_delete_product(db, catalog):
    product_id = products.create_product(db, _payload(catalog))["product_id"]
    assert products.delete_product(db, product_id) == {"success": True, "message": "Product deleted successfully!"}
    assert products.get_product_for_edit(db, product_id) is None


def test_bulk_delete_blocked_by_active_orders(db, catalog):
    user = make_user(db)
    make_order(db, user, variant_by_sku(db, "RUN-S-RED"), status="paid")

    result = products.bulk_delete_products(db, [str(catalog.runner.id), str(catalog.shirt.id)])
    assert result == {
        "success": False,
        "error": "Cannot delete products that have active orders (pending or paid): Runner Shoe",
    }
    assert db.execute(select(func.count(Product.id))).scalar_one() == 3


def test_bulk_delete_purges_closed_order_lines_and_cart_lines(db, catalog):
    user = make_user(db)
    shirt_variant = variant_by_sku(db, "TRL-M-RED")
    make_order(db, user, shirt_variant, status="delivered")
    cart = Cart(user_id=user.id)
    db.add(cart)
    db.flush()
    db.add(CartItem(cart_id=cart.id, product_variant_id=shirt_variant.id, quantity=1))
    db.commit()

    result = products.bulk_delete_products(db, [str(catalog.shirt.id), str(catalog.draft.id)])
    assert result == {"success": True, "message": "2 products deleted successfully!"}
    assert db.execute(select(func.count(OrderItem.id))).scalar_one() == 0
    assert db.execute(select(func.count(CartItem.id))).scalar_one() == 0
    assert db.execute(select(Product.name)).scalars().all() == ["Runner Shoe"]


def test_bulk_delete_input_checks(db, catalog):
    assert products.bulk_delete_products(db, []) == {"success": False, "error": "No products selected"}
    assert products.bulk_delete_products(db, ["bad"])["error"] == "Invalid product ID in selection"
    missing = products.bulk_delete_products(db, [str(catalog.runner.id), str(uuid.uuid4())])
    assert missing == {"success": False, "error": "Some selected products were not found"}


def test_form_reference_data(db, catalog):
    options = products.get_product_form_options(db)
    assert [b["slug"] for b in options["brands"]] == ["adidas", "nike"]
    assert [t["name"] for t in options["product_types"]] == ["Apparel"]

    grouped = products.get_attribute_values_for_product_type(db, str(catalog.apparel.id))
    assert [a["name"] for a in grouped] == ["color", "size"]
    assert [v["value"] for v in grouped[1]["values"]] == ["S", "M", "Extra Large"]
