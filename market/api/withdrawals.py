"""
Withdrawal, dashboard and admin routes.
"""
import logging

from django.db import IntegrityError
from django.http import JsonResponse

from market.api.auth import api_view, read_json
from market.api.serializers import withdrawal_to_dict
from market.infra.repositories import IdempotencyStore
from market.services.withdrawals import WithdrawalService

logger = logging.getLogger(__name__)

REQUEST_WITHDRAWAL = "REQUEST_WITHDRAWAL"


@api_view(["POST"])
def withdraw(request, user):
    """Request a withdrawal; an Idempotency-Key header makes retries safe."""
    data = read_json(request)
    idempotency_key = request.headers.get("Idempotency-Key")
    store = IdempotencyStore()
    request_hash = store.request_hash(data)
    service = WithdrawalService()

    if not idempotency_key:
        return _submitted(service.request_withdrawal(user, data))

    cached = store.lookup(idempotency_key, user.id, REQUEST_WITHDRAWAL, request_hash)
    if cached is not None:
        return _replay(service, cached)

    def reserve_key(withdrawal):
        # Committed in the same transaction as the withdrawal
        store.save(
            idempotency_key,
            user.id,
            REQUEST_WITHDRAWAL,
            request_hash,
            {"withdrawal_id": str(withdrawal.id)},
        )

    try:
        withdrawal = service.request_withdrawal(user, data, on_created=reserve_key)
    except IntegrityError:
        logger.info(
            "idempotency_key_race",
            extra={"user_id": str(user.id), "idempotency_key": idempotency_key[:8] + "..."},
        )
        cached = store.lookup(idempotency_key, user.id, REQUEST_WITHDRAWAL, request_hash)
        if cached is None:
            raise
        return _replay(service, cached)
    return _submitted(withdrawal)


def _submitted(withdrawal):
    return JsonResponse(
        {"message": "Withdrawal request submitted", "withdrawal": withdrawal_to_dict(withdrawal)},
        status=201,
    )


def _replay(service: WithdrawalService, cached: dict):
    return _submitted(service.get_withdrawal(cached["withdrawal_id"]))


@api_view(["GET"])
def dashboard(request, user):
    summary = WithdrawalService().dashboard(user)
    summary["recent_withdrawals"] = [withdrawal_to_dict(w) for w in summary["recent_withdrawals"]]
    return JsonResponse(summary)


@api_view(["GET"], auth="admin")
def admin_withdrawals(request, user):
    items = WithdrawalService().list_withdrawals(request.GET.get("status"))
    return JsonResponse({"withdrawals": [withdrawal_to_dict(w, include_user=True) for w in items]})


@api_view(["POST"], auth="admin")
def admin_process_withdrawal(request, withdrawal_id, user):
    withdrawal = WithdrawalService().process_withdrawal(withdrawal_id, actor=str(user.id))
    return JsonResponse({"withdrawal": withdrawal_to_dict(withdrawal, include_user=True)})


@api_view(["POST"], auth="admin")
def admin_reject_withdrawal(request, withdrawal_id, user):
    reason = str(read_json(request).get("reason") or "")
    withdrawal = WithdrawalService().reject_withdrawal(withdrawal_id, reason=reason, actor=str(user.id))
    return JsonResponse({"withdrawal": withdrawal_to_dict(withdrawal, include_user=True)})


@api_view(["GET"], auth="admin")
def admin_stats(request, user):
    return JsonResponse(WithdrawalService().admin_stats())
