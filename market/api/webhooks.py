"""
Gateway callback routes.

Callers are payment gateways, so there is no session; each handler verifies
the sender itself (signature or callback token).
"""
import json
import logging

from django.http import JsonResponse

from market.api.auth import FORM_CONTENT_TYPES, api_view, read_json
from market.errors import ServiceError
from market.infra.pii_masker import mask_pii_in_dict
from market.services.payments import PaymentService
from market.services.withdrawals import WithdrawalService

logger = logging.getLogger(__name__)


@api_view(["POST"], auth=None)
def midtrans_webhook(request):
    payload = read_json(request)
    logger.info(
        "midtrans_webhook_received",
        extra={"order_id": payload.get("order_id"), "status": payload.get("transaction_status")},
    )
    result = PaymentService().handle_midtrans_notification(payload)
    return JsonResponse({"status": "success", "result": result})


def _flip_payload(request) -> tuple[dict, str | None]:
    """Flip posts form data with a JSON ``data`` field; JSON bodies are accepted too."""
    if request.content_type in FORM_CONTENT_TYPES:
        raw = request.POST.get("data")
        if not raw:
            raise ServiceError("Invalid callback payload")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            raise ServiceError("Invalid callback payload")
        if not isinstance(payload, dict):
            raise ServiceError("Invalid callback payload")
        return payload, request.POST.get("token")

    payload = read_json(request)
    token = payload.pop("token", None) or request.headers.get("X-Callback-Token")
    return payload, token


@api_view(["POST"], auth=None)
def flip_webhook(request):
    payload, token = _flip_payload(request)
    logger.info("flip_webhook_received", extra={"payload": mask_pii_in_dict(payload)})
    result = PaymentService().handle_flip_callback(payload, token)
    return JsonResponse({"status": "success", "result": result})


@api_view(["POST"], auth=None)
def xendit_webhook(request):
    payload = read_json(request)
    logger.info("xendit_webhook_received", extra={"payload": mask_pii_in_dict(payload)})
    result = WithdrawalService().handle_xendit_callback(payload, request.headers.get("X-Callback-Token"))
    return JsonResponse({"status": "success", "result": result})
