"""Row builders shared by the test modules."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from sqlalchemy import select

from storefront.config import settings
from storefront.db.models import (
    Attribute,
    AttributeValue,
    Brand,
    Category,
    Collection,
    Gender,
    Order,
    OrderItem,
    Product,
    ProductCollection,
    ProductImage,
    ProductType,
    ProductTypeAttribute,
    ProductVariant,
    User,
    VariantAttributeValue,
)
from storefront.services.sessions import create_user_session

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_user(db, email="shopper@example.com", name="Sam Shopper", is_admin=False):
    user = User(email=email, name=name, is_admin=is_admin)
    db.add(user)
    db.commit()
    return user


def sign_in(client, db, user):
    """Issue an auth session for `user` and attach its cookie to the test client."""
    auth_session = create_user_session(db, user.id)
    client.cookies.set(settings.auth_session_cookie, auth_session.token)
    return auth_session


def make_product(db, name, variants, brand=None, gender=None, category=None, product_type=None,
                 images=(), published=True, created_at=None, description=None):
    """`variants` is a list of (sku, price, sale_price, stock, [AttributeValue, ...])."""
    product = Product(
        name=name,
        description=description or f"{name} description",
        product_code=name.upper().replace(" ", "-"),
        brand_id=brand.id if brand else None,
        gender_id=gender.id if gender else None,
        category_id=category.id if category else None,
        product_type_id=product_type.id if product_type else None,
        is_published=published,
        created_at=created_at or BASE_TIME,
    )
    db.add(product)
    db.flush()

    for sku, price, sale_price, stock, values in variants:
        variant = ProductVariant(
            product_id=product.id,
            sku=sku,
            price=Decimal(str(price)),
            sale_price=Decimal(str(sale_price)) if sale_price is not None else None,
            in_stock=stock,
        )
        db.add(variant)
        db.flush()
        db.add_all(VariantAttributeValue(variant_id=variant.id, attribute_value_id=v.id) for v in values)
        if product.default_variant_id is None:
            product.default_variant_id = variant.id

    db.add_all(
        ProductImage(product_id=product.id, url=url, sort_order=index, is_primary=index == 0)
        for index, url in enumerate(images)
    )
    db.commit()
    return product


def make_order(db, user, variant, status="pending", quantity=1):
    order = Order(
        user_id=user.id if user else None,
        status=status,
        total_amount=variant.price * quantity,
    )
    db.add(order)
    db.flush()
    db.add(OrderItem(order_id=order.id, product_variant_id=variant.id, quantity=quantity, price_at_purchase=variant.price))
    db.commit()
    return order


def seed_catalog(db):
    men = Gender(label="Men", slug="men")
    women = Gender(label="Women", slug="women")
    nike = Brand(name="Nike", slug="nike")
    adidas = Brand(name="Adidas", slug="adidas")
    shoes = Category(name="Shoes", slug="shoes")
    shirts = Category(name="Shirts", slug="shirts")
    size = Attribute(name="size", display_name="Size")
    color = Attribute(name="color", display_name="Color")
    apparel = ProductType(name="Apparel")
    db.add_all([men, women, nike, adidas, shoes, shirts, size, color, apparel])
    db.flush()

    small = AttributeValue(attribute_id=size.id, value="S", sort_order=0)
    medium = AttributeValue(attribute_id=size.id, value="M", sort_order=1)
    extra_large = AttributeValue(attribute_id=size.id, value="Extra Large", sort_order=2)
    red = AttributeValue(attribute_id=color.id, value="Red", sort_order=0)
    blue = AttributeValue(attribute_id=color.id, value="Blue", sort_order=1)
    db.add_all([small, medium, extra_large, red, blue])
    db.add_all(
        [
            ProductTypeAttribute(product_type_id=apparel.id, attribute_id=size.id),
            ProductTypeAttribute(product_type_id=apparel.id, attribute_id=color.id),
        ]
    )
    db.commit()

    runner = make_product(
        db,
        "Runner Shoe",
        [("RUN-S-RED", 50, None, 5, [small, red]), ("RUN-M-BLUE", 120, 100, 0, [medium, blue])],
        brand=nike,
        gender=men,
        category=shoes,
        product_type=apparel,
        images=["https://cdn.example.com/runner-1.jpg", "https://cdn.example.com/runner-2.jpg"],
        created_at=BASE_TIME,
    )
    shirt = make_product(
        db,
        "Trail Shirt",
        [("TRL-M-RED", 30, None, 10, [medium, red]), ("TRL-XL-RED", 35, None, 2, [extra_large, red])],
        brand=adidas,
        gender=women,
        category=shirts,
        product_type=apparel,
        images=["https://cdn.example.com/shirt-1.jpg"],
        created_at=BASE_TIME + timedelta(days=1),
    )
    draft = make_product(
        db,
        "Hidden Draft",
        [("DRF-S", 10, None, 1, [small])],
        brand=nike,
        gender=men,
        category=shoes,
        product_type=apparel,
        published=False,
        created_at=BASE_TIME + timedelta(days=2),
    )

    summer = Collection(name="Summer", slug="summer", is_featured=True)
    db.add(summer)
    db.flush()
    db.add(ProductCollection(product_id=shirt.id, collection_id=summer.id))
    db.commit()

    return SimpleNamespace(
        men=men,
        women=women,
        nike=nike,
        adidas=adidas,
        shoes=shoes,
        shirts=shirts,
        size=size,
        color=color,
        apparel=apparel,
        small=small,
        medium=medium,
        extra_large=extra_large,
        red=red,
        blue=blue,
        runner=runner,
        shirt=shirt,
        draft=draft,
        summer=summer,
    )


def variant_by_sku(db, sku):
    return db.execute(select(ProductVariant).where(ProductVariant.sku == sku)).scalar_one()
