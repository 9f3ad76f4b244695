"""
Domain rules for product listings.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum


# Largest value a DecimalField(max_digits=14, decimal_places=2) column holds
MAX_PRICE = Decimal("999999999999.99")


class ProductCondition(str, Enum):
    """Condition of a listed item."""
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"


class ProductCategory(str, Enum):
    """Listing categories offered by the upload form."""
    ELEKTRONIK = "Elektronik"
    FASHION = "Fashion"
    BUKU = "Buku"
    AKSESORIS = "Aksesoris"
    LAINNYA = "Lainnya"


def parse_price(value) -> Decimal:
    """Parse a positive price."""
    if value is None or value == "":
        raise ValueError("Price is required")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid price: {value}")
    if not price.is_finite() or price <= 0:
        raise ValueError("Price must be positive")
    if price > MAX_PRICE:
        raise ValueError(f"Price must not exceed {MAX_PRICE}")
    return price.quantize(Decimal("0.01"))


def parse_condition(value: str) -> ProductCondition:
    try:
        return ProductCondition(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ProductCondition)
        raise ValueError(f"Invalid condition '{value}'. Allowed: {allowed}")


def parse_category(value: str) -> ProductCategory:
    try:
        return ProductCategory(value)
    except ValueError:
        allowed = ", ".join(c.value for c in ProductCategory)
        raise ValueError(f"Invalid category '{value}'. Allowed: {allowed}")


@dataclass
class Listing:
    """Validated product listing fields."""
    title: str
    description: str
    price: Decimal
    condition: ProductCondition
    image_url: str
    category: ProductCategory = ProductCategory.LAINNYA

    @classmethod
    def from_payload(cls, data: dict) -> "Listing":
        """Build a listing from request data; every field except category is required."""
        missing = [
            field for field in ("title", "description", "price", "condition", "image_url")
            if not data.get(field)
        ]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        category = data.get("category")
        return cls(
            title=str(data["title"]).strip(),
            description=str(data["description"]).strip(),
            price=parse_price(data["price"]),
            condition=parse_condition(data["condition"]),
            image_url=str(data["image_url"]).strip(),
            category=parse_category(category) if category else ProductCategory.LAINNYA,
        )


def clean_listing_update(data: dict) -> dict:
    """Validate a partial listing update and return model field values."""
    changes = {}
    for field in ("title", "description", "image_url"):
        if field in data:
            value = str(data[field] or "").strip()
            if not value:
                raise ValueError(f"{field} cannot be empty")
            changes[field] = value
    if "price" in data:
        changes["price"] = parse_price(data["price"])
    if "condition" in data:
        changes["condition"] = parse_condition(data["condition"]).value
    if "category" in data:
        changes["category"] = parse_category(data["category"]).value
    return changes
