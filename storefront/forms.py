"""
Input models for the mutating actions.

Validators raise `ValueError` with the message shown to the user; the actions
surface the first one through `first_error_message`.
"""

from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from pydantic import AnyUrl, BaseModel, ConfigDict, EmailStr, TypeAdapter, ValidationError, field_validator

from storefront.db.models import ADDRESS_TYPES
from storefront.services.common import parse_uuid

_URL = TypeAdapter(AnyUrl)


class FormModel(BaseModel):
    # Defaults go through the validators too, so a missing field reports its own message.
    model_config = ConfigDict(validate_default=True, str_strip_whitespace=True, extra="ignore")


def _text(value, required: str, max_length: Optional[int] = None, too_long: Optional[str] = None) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError(required)
    if max_length is not None and len(text) > max_length:
        raise ValueError(too_long)
    return text


def _optional_text(value) -> Optional[str]:
    text = "" if value is None else str(value).strip()
    return text or None


def _uuid(value, message: str) -> uuid.UUID:
    parsed = parse_uuid(value)
    if parsed is None:
        raise ValueError(message)
    return parsed


def _optional_uuid(value, message: str) -> Optional[uuid.UUID]:
    if value in (None, ""):
        return None
    return _uuid(value, message)


def _positive_amount(value, message: str) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(message) from None
    if not amount.is_finite() or amount <= 0:
        raise ValueError(message)
    return amount


# ---------- Storefront ----------

class AddCartItemForm(FormModel):
    variant_id: Optional[uuid.UUID] = None
    quantity: int = 1

    @field_validator("variant_id", mode="before")
    @classmethod
    def _variant_id(cls, value):
        if value in (None, ""):
            raise ValueError("Variant ID is required")
        return _uuid(value, "Invalid variant ID")

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value):
        try:
            quantity = int(value)
        except (TypeError, ValueError):
            return 1
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        return quantity


class ShippingAddressForm(FormModel):
    line1: str = ""
    line2: Optional[str] = None
    city: str = ""
    state: str = ""
    country: str = ""
    postal_code: str = ""

    @field_validator("line1", mode="before")
    @classmethod
    def _line1(cls, value):
        return _text(value, "Address line 1 is required")

    @field_validator("line2", mode="before")
    @classmethod
    def _line2(cls, value):
        return _optional_text(value)

    @field_validator("city", mode="before")
    @classmethod
    def _city(cls, value):
        return _text(value, "City is required")

    @field_validator("state", mode="before")
    @classmethod
    def _state(cls, value):
        return _text(value, "State is required")

    @field_validator("country", mode="before")
    @classmethod
    def _country(cls, value):
        return _text(value, "Country is required")

    @field_validator("postal_code", mode="before")
    @classmethod
    def _postal_code(cls, value):
        return _text(value, "Postal code is required")


class AddressForm(ShippingAddressForm):
    id: Optional[uuid.UUID] = None
    type: str = ""
    is_default: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value):
        return _optional_uuid(value, "Invalid address ID")

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value):
        if value not in ADDRESS_TYPES:
            raise ValueError("Address type must be billing or shipping")
        return value

    @field_validator("is_default", mode="before")
    @classmethod
    def _is_default(cls, value):
        return False if value is None else value


class ProfileForm(FormModel):
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Name is required", 100, "Name must be less than 100 characters")


class NewsletterForm(FormModel):
    email: EmailStr = None

    @field_validator("email", mode="wrap")
    @classmethod
    def _email(cls, value, handler):
        try:
            return handler(value)
        except ValidationError:
            raise ValueError("Please enter a valid email address") from None


# ---------- Admin: catalog structure ----------

class BrandForm(FormModel):
    name: str = ""
    slug: str = ""
    logo_url: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Brand name is required", 100, "Brand name must be less than 100 characters")

    @field_validator("slug", mode="before")
    @classmethod
    def _slug(cls, value):
        return _text(value, "Brand slug is required", 100, "Brand slug must be less than 100 characters")

    @field_validator("logo_url", mode="before")
    @classmethod
    def _logo_url(cls, value):
        url = _optional_text(value)
        if url is None:
            return None
        try:
            _URL.validate_python(url)
        except ValidationError:
            raise ValueError("Invalid logo URL") from None
        return url


class CategoryForm(FormModel):
    name: str = ""
    slug: str = ""
    parent_id: Optional[uuid.UUID] = None

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Category name is required", 100, "Category name must be less than 100 characters")

    @field_validator("slug", mode="before")
    @classmethod
    def _slug(cls, value):
        return _text(value, "Category slug is required", 100, "Category slug must be less than 100 characters")

    @field_validator("parent_id", mode="before")
    @classmethod
    def _parent_id(cls, value):
        return _optional_uuid(value, "Invalid parent category ID")


class CollectionForm(FormModel):
    id: Optional[uuid.UUID] = None
    name: str = ""
    slug: str = ""
    description: Optional[str] = None
    is_featured: bool = False
    image_url: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value):
        return _optional_uuid(value, "Invalid collection ID")

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Collection name is required")

    @field_validator("slug", mode="before")
    @classmethod
    def _slug(cls, value):
        return _text(value, "Collection slug is required")

    @field_validator("description", "image_url", mode="before")
    @classmethod
    def _optional(cls, value):
        return _optional_text(value)

    @field_validator("is_featured", mode="before")
    @classmethod
    def _is_featured(cls, value):
        return False if value is None else value


class AttributeForm(FormModel):
    name: str = ""
    display_name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Attribute name is required", 100, "Attribute name must be less than 100 characters")

    @field_validator("display_name", mode="before")
    @classmethod
    def _display_name(cls, value):
        return _text(value, "Display name is required", 100, "Display name must be less than 100 characters")


class AttributeValueForm(FormModel):
    attribute_id: Optional[uuid.UUID] = None
    value: str = ""
    sort_order: int = 0

    @field_validator("attribute_id", mode="before")
    @classmethod
    def _attribute_id(cls, value):
        return _uuid(value, "Invalid attribute ID")

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, value):
        return _text(value, "Attribute value is required", 100, "Attribute value must be less than 100 characters")

    @field_validator("sort_order", mode="before")
    @classmethod
    def _sort_order(cls, value):
        if value in (None, ""):
            return 0
        try:
            sort_order = int(value)
        except (TypeError, ValueError):
            raise ValueError("Sort order must be a whole number") from None
        if sort_order < 0:
            raise ValueError("Sort order must be non-negative")
        return sort_order


class AttributeSetForm(FormModel):
    name: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(
            value, "Attribute set name is required", 100, "Attribute set name must be less than 100 characters"
        )


# ---------- Admin: products ----------

class VariantForm(FormModel):
    id: Optional[str] = None
    sku: str = ""
    price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    attribute_value_ids: List[uuid.UUID] = []
    in_stock: int = 0
    image_url: Optional[str] = None

    @field_validator("sku", mode="before")
    @classmethod
    def _sku(cls, value):
        return _text(value, "SKU is required")

    @field_validator("price", mode="before")
    @classmethod
    def _price(cls, value):
        if value in (None, ""):
            raise ValueError("Price is required")
        return _positive_amount(value, "Price must be a positive number")

    @field_validator("sale_price", mode="before")
    @classmethod
    def _sale_price(cls, value):
        if value in (None, ""):
            return None
        return _positive_amount(value, "Sale price must be a positive number")

    @field_validator("attribute_value_ids", mode="before")
    @classmethod
    def _attribute_value_ids(cls, value):
        ids = [_uuid(v, "Invalid attribute value") for v in (value or [])]
        if not ids:
            raise ValueError("At least one attribute value is required")
        return ids

    @field_validator("in_stock", mode="before")
    @classmethod
    def _in_stock(cls, value):
        try:
            stock = int(value)
        except (TypeError, ValueError):
            raise ValueError("Stock must be a whole number") from None
        if stock < 0:
            raise ValueError("Stock must be non-negative")
        return stock

    @field_validator("id", "image_url", mode="before")
    @classmethod
    def _optional(cls, value):
        return _optional_text(value)


class ProductForm(FormModel):
    name: str = ""
    description: str = ""
    product_code: str = ""
    category_id: Optional[uuid.UUID] = None
    gender_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    product_type_id: Optional[uuid.UUID] = None
    is_published: bool = False
    collection_ids: List[uuid.UUID] = []
    variants: List[VariantForm] = []
    product_images: List[str] = []

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value):
        return _text(value, "Product name is required")

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value):
        return _text(value, "Product description is required")

    @field_validator("product_code", mode="before")
    @classmethod
    def _product_code(cls, value):
        return _text(value, "Product code is required")

    @field_validator("category_id", "gender_id", "brand_id", mode="before")
    @classmethod
    def _optional_refs(cls, value):
        return _optional_uuid(value, "Invalid reference ID")

    @field_validator("product_type_id", mode="before")
    @classmethod
    def _product_type_id(cls, value):
        return _uuid(value, "Product type is required")

    @field_validator("is_published", mode="before")
    @classmethod
    def _is_published(cls, value):
        return False if value is None else value

    @field_validator("collection_ids", mode="before")
    @classmethod
    def _collection_ids(cls, value):
        return [_uuid(v, "Invalid collection ID") for v in (value or [])]

    @field_validator("variants", mode="after")
    @classmethod
    def _variants(cls, value):
        if not value:
            raise ValueError("At least one variant is required")
        return value

    @field_validator("product_images", mode="before")
    @classmethod
    def _product_images(cls, value):
        return [str(url).strip() for url in (value or []) if url and str(url).strip()]
