"""
Product and wishlist routes.
"""
from django.http import JsonResponse

from market.api.auth import api_view, parse_uuid, read_json, require_user
from market.api.serializers import product_to_dict, wishlist_to_dict
from market.services.catalog import CatalogService, build_filter


@api_view(["GET", "POST"], auth=None)
def products(request):
    service = CatalogService()
    if request.method == "POST":
        user = require_user(request)
        product = service.create_product(user, read_json(request))
        return JsonResponse({"product": product_to_dict(product)}, status=201)

    page = service.list_products(
        build_filter(request.GET),
        page=request.GET.get("page"),
        page_size=request.GET.get("page_size"),
    )
    return JsonResponse({
        "products": [product_to_dict(p) for p in page["items"]],
        "pagination": {
            "page": page["page"],
            "page_size": page["page_size"],
            "total": page["total"],
            "has_next": page["has_next"],
        },
    })


@api_view(["GET"])
def my_products(request, user):
    items = CatalogService().my_products(user)
    return JsonResponse({"products": [product_to_dict(p) for p in items]})


@api_view(["GET", "PATCH", "DELETE"], auth=None)
def product_detail(request, product_id):
    service = CatalogService()
    if request.method == "GET":
        return JsonResponse({"product": product_to_dict(service.get_product(product_id))})

    user = require_user(request)
    if request.method == "PATCH":
        product = service.update_product(user, product_id, read_json(request))
        return JsonResponse({"product": product_to_dict(product)})

    service.delete_product(user, product_id)
    return JsonResponse({"message": "Product deleted"})


@api_view(["POST"])
def mark_sold(request, product_id, user):
    product = CatalogService().mark_sold(user, product_id)
    return JsonResponse({"message": "Product marked as sold", "product": product_to_dict(product)})


@api_view(["GET", "POST"])
def wishlist(request, user):
    service = CatalogService()
    if request.method == "POST":
        product_id = parse_uuid(read_json(request).get("productId"), "Product ID")
        entry = service.add_to_wishlist(user, product_id)
        return JsonResponse({"message": "Added to wishlist", "item": wishlist_to_dict(entry)}, status=201)

    return JsonResponse({"wishlist": [wishlist_to_dict(e) for e in service.list_wishlist(user)]})


@api_view(["DELETE"])
def wishlist_item(request, product_id, user):
    CatalogService().remove_from_wishlist(user, product_id)
    return JsonResponse({"message": "Removed from wishlist"})
