"""
GraphQL schema definition using Ariadne.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from ariadne import (
    MutationType,
    QueryType,
    ScalarType,
    load_schema_from_path,
    make_executable_schema,
)

from market.api.auth import require_user
from market.services.catalog import CatalogService, build_filter
from market.services.payments import PaymentService
from market.services.withdrawals import WithdrawalService

# Load schema from .graphql files
SCHEMAS_DIR = Path(__file__).parent / "schemas"
type_defs = "\n".join([
    load_schema_from_path(SCHEMAS_DIR / "common"),
    load_schema_from_path(SCHEMAS_DIR / "query"),
    load_schema_from_path(SCHEMAS_DIR / "mutation"),
])

query = QueryType()
mutation = MutationType()


def _user(info):
    return require_user(info.context["request"])


@query.field("products")
def resolve_products(_, info, filter=None, page=None, page_size=None):
    """Resolve the paginated catalog."""
    filter = filter or {}
    params = {
        "minPrice": filter.get("min_price"),
        "maxPrice": filter.get("max_price"),
        "condition": filter.get("condition"),
        "category": filter.get("category"),
        "search": filter.get("search"),
    }
    result = CatalogService().list_products(build_filter(params), page=page, page_size=page_size)
    result["items"] = list(result["items"])
    return result


@query.field("product")
def resolve_product(_, info, id):
    product = CatalogService().product_repo.get_by_id(id)
    return product


@query.field("wishlist")
def resolve_wishlist(_, info):
    return CatalogService().list_wishlist(_user(info))


@query.field("myTransactions")
def resolve_my_transactions(_, info):
    return PaymentService().list_transactions(_user(info))


@query.field("dashboard")
def resolve_dashboard(_, info):
    return WithdrawalService().dashboard(_user(info))


@mutation.field("addToWishlist")
def resolve_add_to_wishlist(_, info, product_id):
    CatalogService().add_to_wishlist(_user(info), product_id)
    return {"product_id": product_id, "in_wishlist": True}


@mutation.field("removeFromWishlist")
def resolve_remove_from_wishlist(_, info, product_id):
    CatalogService().remove_from_wishlist(_user(info), product_id)
    return {"product_id": product_id, "in_wishlist": False}


# Define custom scalars
decimal_scalar = ScalarType("Decimal")
uuid_scalar = ScalarType("UUID")
datetime_scalar = ScalarType("DateTime")


@decimal_scalar.serializer
def serialize_decimal(value):
    """Serialize Decimal to string."""
    return str(value)


@decimal_scalar.value_parser
def parse_decimal_value(value):
    """Parse Decimal from string or number."""
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid decimal: {value}")


@uuid_scalar.serializer
def serialize_uuid(value):
    return str(value)


@uuid_scalar.value_parser
def parse_uuid_value(value):
    """Parse UUID from string."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))


@datetime_scalar.serializer
def serialize_datetime(value):
    """Serialize DateTime to ISO format string."""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# Create executable schema
schema = make_executable_schema(
    type_defs,
    query,
    mutation,
    decimal_scalar,
    uuid_scalar,
    datetime_scalar,
    convert_names_case=True,
)
