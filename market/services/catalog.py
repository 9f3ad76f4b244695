"""
Catalog services: product listings and wishlists.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction

from market.domain.product import Listing, clean_listing_update, parse_category, parse_condition
from market.errors import ServiceError
from market.infra.models import ProductORM, UserORM, WishlistORM
from market.infra.repositories import ProductFilter, ProductRepository, WishlistRepository


logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def _parse_bound(value, label: str) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        bound = Decimal(str(value))
    except InvalidOperation:
        raise ServiceError(f"Invalid {label}: {value}")
    if not bound.is_finite():
        raise ServiceError(f"Invalid {label}: {value}")
    return bound


def _parse_positive_int(value, default: int, label: str) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ServiceError(f"Invalid {label}: {value}")
    if number < 1:
        raise ServiceError(f"{label} must be at least 1")
    return number


def build_filter(params) -> ProductFilter:
    """Build a product filter from query parameters."""
    try:
        condition = parse_condition(params["condition"]).value if params.get("condition") else None
        category = parse_category(params["category"]).value if params.get("category") else None
    except ValueError as e:
        raise ServiceError(str(e))
    return ProductFilter(
        min_price=_parse_bound(params.get("minPrice"), "minPrice"),
        max_price=_parse_bound(params.get("maxPrice"), "maxPrice"),
        condition=condition,
        category=category,
        search=(params.get("search") or "").strip() or None,
    )


class CatalogService:
    """Service for products and wishlists."""

    def __init__(
        self,
        product_repo: ProductRepository | None = None,
        wishlist_repo: WishlistRepository | None = None,
    ):
        self.product_repo = product_repo or ProductRepository()
        self.wishlist_repo = wishlist_repo or WishlistRepository()

    def list_products(self, filters: ProductFilter, page=None, page_size=None) -> dict:
        """Unsold products, newest first, one page at a time."""
        page = _parse_positive_int(page, 1, "page")
        page_size = min(_parse_positive_int(page_size, settings.PRODUCTS_PAGE_SIZE, "page_size"), MAX_PAGE_SIZE)
        items, total = self.product_repo.list_available(filters, limit=page_size, offset=(page - 1) * page_size)
        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "has_next": page * page_size < total,
        }

    def get_product(self, product_id) -> ProductORM:
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise ServiceError("Product not found", "NOT_FOUND")
        return product

    def my_products(self, user: UserORM) -> list[ProductORM]:
        return self.product_repo.list_by_seller(user.id)

    @transaction.atomic
    def create_product(self, user: UserORM, data: dict) -> ProductORM:
        try:
            listing = Listing.from_payload(data)
        except ValueError as e:
            raise ServiceError(str(e))

        product = self.product_repo.create(user.id, listing)
        logger.info("product_created", extra={"product_id": str(product.id), "user_id": str(user.id)})
        return product

    @transaction.atomic
    def update_product(self, user: UserORM, product_id, data: dict) -> ProductORM:
        product = self._get_editable(user, product_id)
        try:
            changes = clean_listing_update(data)
        except ValueError as e:
            raise ServiceError(str(e))
        if not changes:
            return product
        self.product_repo.update(product, changes)
        logger.info("product_updated", extra={"product_id": str(product.id), "user_id": str(user.id)})
        return product

    @transaction.atomic
    def delete_product(self, user: UserORM, product_id) -> None:
        product = self._get_editable(user, product_id)
        if product.transactions.exists():
            raise ServiceError("Products with transactions cannot be deleted", "INVALID_STATE")
        self.product_repo.delete(product)
        logger.info("product_deleted", extra={"product_id": str(product_id), "user_id": str(user.id)})

    @transaction.atomic
    def mark_sold(self, user: UserORM, product_id) -> ProductORM:
        product = self.product_repo.get_for_update(product_id)
        if product is None:
            raise ServiceError("Product not found", "NOT_FOUND")
        if product.seller_id != user.id:
            raise ServiceError("Only the seller can mark this product as sold", "FORBIDDEN")
        if not product.is_sold:
            self.product_repo.update(product, {"is_sold": True})
            logger.info("product_marked_sold", extra={"product_id": str(product.id), "user_id": str(user.id)})
        return product

    def _get_editable(self, user: UserORM, product_id) -> ProductORM:
        product = self.get_product(product_id)
        if product.seller_id != user.id and not user.is_admin:
            raise ServiceError("You can only modify your own products", "FORBIDDEN")
        return product

    # Wishlist

    def list_wishlist(self, user: UserORM) -> list[WishlistORM]:
        return self.wishlist_repo.list_for_user(user.id)

    def add_to_wishlist(self, user: UserORM, product_id) -> WishlistORM:
        if not product_id:
            raise ServiceError("Product ID is required")
        product = self.get_product(product_id)
        if self.wishlist_repo.exists(user.id, product.id):
            raise ServiceError("Product already in wishlist")
        try:
            with transaction.atomic():
                entry = self.wishlist_repo.add(user.id, product.id)
        except IntegrityError:
            raise ServiceError("Product already in wishlist")
        logger.info("wishlist_added", extra={"product_id": str(product.id), "user_id": str(user.id)})
        return entry

    def remove_from_wishlist(self, user: UserORM, product_id) -> None:
        if not product_id:
            raise ServiceError("Product ID is required")
        removed = self.wishlist_repo.remove(user.id, product_id)
        logger.info(
            "wishlist_removed",
            extra={"product_id": str(product_id), "user_id": str(user.id), "status": bool(removed)},
        )
