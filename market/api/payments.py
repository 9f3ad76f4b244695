"""
Checkout and transaction history routes.
"""
from django.http import JsonResponse

from market.api.auth import api_view, parse_uuid, read_json
from market.api.serializers import transaction_to_dict
from market.services.payments import PaymentService


@api_view(["POST"])
def create_transaction(request, user):
    data = read_json(request)
    product_id = parse_uuid(data.get("productId"), "Product ID")
    result = PaymentService().create_transaction(user, product_id, data.get("gateway"))
    return JsonResponse(result)


@api_view(["GET"], auth=None)
def payment_status(request):
    result = PaymentService().payment_status(
        bill_link_id=request.GET.get("bill_link_id"),
        order_id=request.GET.get("order_id"),
    )
    return JsonResponse(result)


@api_view(["GET"])
def transactions(request, user):
    history = PaymentService().list_transactions(user)
    return JsonResponse({
        "purchases": [transaction_to_dict(t) for t in history["purchases"]],
        "sales": [transaction_to_dict(t) for t in history["sales"]],
    })


@api_view(["GET"])
def transaction_detail(request, order_id, user):
    transaction = PaymentService().get_transaction(user, order_id)
    return JsonResponse({"transaction": transaction_to_dict(transaction)})
