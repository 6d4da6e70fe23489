from storefront.services.admin import attribute_sets, attributes, brands, categories, collections


# ---------- Brands ----------

def test_brand_list_counts_products(db, catalog):
    counts = {b.slug: b.product_count for b in brands.get_brands(db)}
    assert counts == {"adidas": 1, "nike": 2}


def test_brand_duplicate_slug_rejected(db, catalog):
    result = brands.create_brand(db, {"name": "Nike Two", "slug": "nike"})
    assert result == {"success": False, "error": "A brand with this slug already exists"}


def test_brand_validation(db):
    assert brands.create_brand(db, {"slug": "x"})["error"] == "Brand name is required"
    invalid_logo = brands.create_brand(db, {"name": "X", "slug": "x", "logo_url": "not a url"})
    assert invalid_logo["error"] == "Invalid logo URL"


def test_brand_on_the_fly_derives_slug(db):
    created = brands.create_brand_on_the_fly(db, "New Balance")
    assert created["success"] is True
    assert created["brand"]["slug"] == "new-balance"
    again = brands.create_brand_on_the_fly(db, "new balance")
    assert again == {"success": False, "error": "A brand with this name already exists"}


def test_brand_in_use_cannot_be_deleted(db, catalog):
    result = brands.delete_brand(db, str(catalog.nike.id))
    assert result == {"success": False, "error": "Cannot delete brand. It is currently used by 2 product(s)."}


def test_brand_delete(db):
    brand_id = brands.create_brand(db, {"name": "Puma", "slug": "puma"})["brand"]["id"]
    assert brands.delete_brand(db, brand_id) == {"success": True, "message": "Brand deleted successfully"}
    assert brands.delete_brand(db, brand_id) == {"success": False, "error": "Brand not found"}
    assert brands.delete_brand(db, "nope") == {"success": False, "error": "Invalid brand ID"}


# ---------- Categories ----------

def test_category_duplicate_slug_and_missing_parent(db, catalog):
    assert categories.create_category(db, {"name": "Shoes", "slug": "shoes"})["error"] == (
        "A category with this slug already exists"
    )
    orphan = categories.create_category(
        db, {"name": "Boots", "slug": "boots", "parent_id": "00000000-0000-0000-0000-000000000000"}
    )
    assert orphan == {"success": False, "error": "Parent category not found"}


def test_category_delete_guards(db, catalog):
    assert categories.delete_category(db, str(catalog.shoes.id))["error"] == (
        "Cannot delete category. It is currently used by 2 product(s)."
    )

    tops = categories.create_category(db, {"name": "Tops", "slug": "tops"})["category"]
    categories.create_category(db, {"name": "Tanks", "slug": "tanks", "parent_id": tops["id"]})
    assert categories.delete_category(db, tops["id"])["error"] == "Cannot delete category. It has 1 subcategory(ies)."

    roots = {c.slug for c in categories.get_root_categories(db)}
    assert "tops" in roots and "tanks" not in roots


def test_category_on_the_fly(db):
    created = categories.create_category_on_the_fly(db, "Rain Jackets")
    assert created["category"]["slug"] == "rain-jackets"
    assert categories.delete_category(db, created["category"]["id"])["success"] is True


# ---------- Collections ----------

def test_collection_create_update_and_duplicate_slug(db, catalog):
    created = collections.create_or_update_collection(db, {"name": "Winter", "slug": "winter"})
    assert created["message"] == "Collection created successfully!"

    clash = collections.create_or_update_collection(db, {"id": created["collection_id"], "name": "W", "slug": "summer"})
    assert clash == {"success": False, "error": "A collection with this slug already exists"}

    updated = collections.create_or_update_collection(
        db, {"id": created["collection_id"], "name": "Winter Sale", "slug": "winter", "is_featured": True}
    )
    assert updated == {"success": True, "message": "Collection updated successfully!"}
    assert collections.get_collection_by_id(db, created["collection_id"]).name == "Winter Sale"
    assert [c["slug"] for c in categories.get_featured_collections(db)] == ["summer", "winter"]


def test_collection_in_use_cannot_be_deleted(db, catalog):
    result = collections.delete_collection(db, str(catalog.summer.id))
    assert result == {"success": False, "error": "Cannot delete collection. It is currently used by 1 product(s)."}

    empty = collections.create_or_update_collection(db, {"name": "Empty", "slug": "empty"})
    assert collections.delete_collection(db, empty["collection_id"])["success"] is True


# ---------- Attributes ----------

def test_attribute_listing_counts_usage(db, catalog):
    size = next(a for a in attributes.get_attributes(db) if a.name == "size")
    assert [v.value for v in size.values] == ["S", "M", "Extra Large"]
    assert size.product_type_count == 1
    # RUN-S-RED, RUN-M-BLUE, TRL-M-RED, TRL-XL-RED, DRF-S
    assert size.variant_count == 5

    usage = {v.value: v.variant_count for v in attributes.get_attribute_values(db, str(catalog.size.id))}
    assert usage == {"S": 2, "M": 2, "Extra Large": 1}


def test_attribute_delete_is_guarded_by_product_types_then_variants(db, catalog):
    size_id = str(catalog.size.id)
    assert attributes.delete_attribute(db, size_id)["error"] == (
        "Cannot delete attribute. It is currently used by 1 product type(s)."
    )

    remaining = [str(catalog.color.id)]
    assert attribute_sets.update_attributes_for_set(db, str(catalog.apparel.id), remaining) == {"success": True}
    assert attributes.delete_attribute(db, size_id)["error"] == (
        "Cannot delete attribute. Its values are currently used by 5 variant(s)."
    )


def test_unused_attribute_can_be_deleted(db):
    created = attributes.create_attribute(db, {"name": "material", "display_name": "Material"})
    assert created["success"] is True
    assert attributes.create_attribute(db, {"name": "material", "display_name": "M"})["error"] == (
        "An attribute with this name already exists"
    )
    assert attributes.delete_attribute(db, created["attribute_id"]) == {
        "success": True,
        "message": "Attribute deleted successfully",
    }


def test_attribute_values(db, catalog):
    color_id = str(catalog.color.id)
    added = attributes.add_attribute_value(db, {"attribute_id": color_id, "value": "Green", "sort_order": "2"})
    assert added["success"] is True
    assert added["attribute_value"]["sort_order"] == 2

    duplicate = attributes.add_attribute_value(db, {"attribute_id": color_id, "value": "Green"})
    assert duplicate == {"success": False, "error": "This value already exists for this attribute"}
    negative = attributes.add_attribute_value(db, {"attribute_id": color_id, "value": "Pink", "sort_order": -1})
    assert negative["error"] == "Sort order must be non-negative"

    quick = attributes.create_attribute_value_on_the_fly(db, color_id, "Yellow")
    assert quick["attribute_value"]["sort_order"] == 0

    in_use = attributes.delete_attribute_value(db, str(catalog.red.id))
    assert in_use["error"] == "Cannot delete attribute value. It is currently used by 3 variant(s)."
    assert attributes.delete_attribute_value(db, added["attribute_value"]["id"])["success"] is True


# ---------- Attribute sets ----------

def test_attribute_set_lifecycle(db, catalog):
    assert attribute_sets.create_attribute_set(db, {"name": "Apparel"})["error"] == (
        "An attribute set with this name already exists"
    )
    assert attribute_sets.delete_attribute_set(db, str(catalog.apparel.id))["error"] == (
        "Cannot delete attribute set. It is currently used by 3 product(s)."
    )

    created = attribute_sets.create_attribute_set(db, {"name": "Footwear"})
    set_id = created["attribute_set_id"]
    size_id, color_id = str(catalog.size.id), str(catalog.color.id)

    assert attribute_sets.update_attributes_for_set(db, set_id, [size_id, color_id]) == {"success": True}
    assert set(attribute_sets.get_attributes_for_attribute_set(db, set_id)) == {size_id, color_id}
    assert attribute_sets.update_attributes_for_set(db, set_id, [color_id]) == {"success": True}
    assert attribute_sets.get_attributes_for_attribute_set(db, set_id) == [color_id]

    counts = {s.name: s.product_count for s in attribute_sets.get_attribute_sets(db)}
    assert counts == {"Apparel": 3, "Footwear": 0}
    assert attribute_sets.delete_attribute_set(db, set_id)["success"] is True
