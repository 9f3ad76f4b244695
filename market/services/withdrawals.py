"""
Withdrawal services: balance, payout requests, disbursement and admin review.
"""
from __future__ import annotations

import hmac
import logging
from typing import Callable
from uuid import uuid4

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from market.domain.events import WithdrawalCompleted, WithdrawalRejected
from market.domain.withdrawal import (
    DisbursementGateway,
    Withdrawal,
    WithdrawalStatus,
    available_balance,
    is_ewallet,
    map_disbursement_status,
    parse_amount,
)
from market.errors import GatewayError, ServiceError
from market.gateways import FlipClient, XenditClient
from market.infra.models import UserORM, WithdrawalORM
from market.infra.outbox import OutboxRepository
from market.infra.pii_masker import mask_account_number
from market.infra.repositories import (
    ProductRepository,
    TransactionRepository,
    UserRepository,
    WithdrawalRepository,
)


logger = logging.getLogger(__name__)


class WithdrawalService:
    """Service for seller withdrawals."""

    def __init__(
        self,
        withdrawal_repo: WithdrawalRepository | None = None,
        transaction_repo: TransactionRepository | None = None,
        product_repo: ProductRepository | None = None,
        user_repo: UserRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
        flip_client: FlipClient | None = None,
        xendit_client: XenditClient | None = None,
    ):
        self.withdrawal_repo = withdrawal_repo or WithdrawalRepository()
        self.transaction_repo = transaction_repo or TransactionRepository()
        self.product_repo = product_repo or ProductRepository()
        self.user_repo = user_repo or UserRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()
        self._flip_client = flip_client
        self._xendit_client = xendit_client

    @property
    def flip(self) -> FlipClient:
        if self._flip_client is None:
            self._flip_client = FlipClient()
        return self._flip_client

    @property
    def xendit(self) -> XenditClient:
        if self._xendit_client is None:
            self._xendit_client = XenditClient()
        return self._xendit_client

    def get_balance(self, user_id) -> dict:
        """Available balance of a seller."""
        balance = available_balance(
            self.transaction_repo.unpaid_sales(user_id),
            self.withdrawal_repo.committed_amounts(user_id),
        )
        return {"user_id": str(user_id), "balance": balance}

    def request_withdrawal(
        self,
        user: UserORM,
        data: dict,
        on_created: Callable[[WithdrawalORM], None] | None = None,
    ) -> WithdrawalORM:
        """
        Create a pending withdrawal against the seller balance.

        ``on_created`` runs inside the creating transaction; an exception from
        it rolls the withdrawal back.
        """
        method = str(data.get("method") or data.get("withdrawal_method") or "").strip()
        account = str(data.get("account") or data.get("withdrawal_account") or "").strip()
        name = str(data.get("name") or data.get("withdrawal_name") or "").strip()
        if not data.get("amount") or not method or not account or not name:
            raise ServiceError("Please fill in all withdrawal details")
        try:
            amount = parse_amount(data["amount"])
            withdrawal = Withdrawal(user_id=user.id, amount=amount, method=method, account=account, name=name)
        except ValueError as e:
            raise ServiceError(str(e))

        with transaction.atomic():
            # Serializes concurrent requests of one user against the same balance
            locked_user = UserORM.objects.select_for_update().get(id=user.id)
            balance = self.get_balance(locked_user.id)["balance"]
            if amount > balance:
                logger.warning(
                    "withdrawal_insufficient_balance",
                    extra={"user_id": str(user.id), "amount": str(amount), "balance": str(balance)},
                )
                raise ServiceError("Insufficient balance", "INSUFFICIENT_BALANCE")

            withdrawal_orm = self.withdrawal_repo.create(withdrawal)
            self.user_repo.update(
                locked_user,
                withdrawal_method=withdrawal.method,
                withdrawal_account=withdrawal.account,
                withdrawal_name=withdrawal.name,
            )
            if on_created is not None:
                on_created(withdrawal_orm)

        logger.info(
            "withdrawal_requested",
            extra={
                "withdrawal_id": str(withdrawal_orm.id),
                "user_id": str(user.id),
                "amount": str(amount),
                "account": mask_account_number(account),
            },
        )

        if settings.WITHDRAWAL_AUTO_DISBURSE:
            withdrawal_orm = self.disburse(withdrawal_orm.id)
        return withdrawal_orm

    def get_withdrawal(self, withdrawal_id) -> WithdrawalORM:
        withdrawal_orm = self.withdrawal_repo.get_by_id(withdrawal_id)
        if withdrawal_orm is None:
            raise ServiceError("Withdrawal not found", "NOT_FOUND")
        return withdrawal_orm

    def disburse(self, withdrawal_id) -> WithdrawalORM:
        """Send a pending withdrawal to the configured disbursement gateway."""
        try:
            gateway = DisbursementGateway(settings.DISBURSEMENT_GATEWAY)
        except ValueError:
            raise ServiceError(
                f"Unknown disbursement gateway: {settings.DISBURSEMENT_GATEWAY}", "CONFIGURATION_ERROR"
            )

        with transaction.atomic():
            withdrawal_orm = self._get_pending(withdrawal_id, "processed")
            self.withdrawal_repo.update(withdrawal_orm, gateway=gateway.value)

            if gateway == DisbursementGateway.MANUAL:
                self._apply_status(withdrawal_orm, WithdrawalStatus.COMPLETED, "MANUAL", None)
                return withdrawal_orm

        try:
            response = self._send(withdrawal_orm, gateway)
        except GatewayError as e:
            with transaction.atomic():
                withdrawal_orm = self.withdrawal_repo.get_by_id(withdrawal_id, for_update=True)
                if withdrawal_orm.status == WithdrawalStatus.PENDING.value:
                    self._apply_status(
                        withdrawal_orm,
                        WithdrawalStatus.REJECTED,
                        "ERROR",
                        {"error": str(e), "response": e.payload},
                        reason="Disbursement failed",
                    )
            logger.error(
                "withdrawal_disbursement_failed",
                extra={"withdrawal_id": str(withdrawal_id), "gateway": gateway.value, "error": str(e)},
            )
            raise ServiceError(f"Failed to process withdrawal: {e.message}", "GATEWAY_ERROR")

        raw_status = str(response.get("status") or "PENDING")
        with transaction.atomic():
            withdrawal_orm = self.withdrawal_repo.get_by_id(withdrawal_id, for_update=True)
            self.withdrawal_repo.update(withdrawal_orm, disbursement_id=str(response.get("id") or ""))
            try:
                target = map_disbursement_status(raw_status)
            except ValueError:
                logger.warning(
                    "withdrawal_unknown_disbursement_status",
                    extra={"withdrawal_id": str(withdrawal_id), "status": raw_status},
                )
                target = WithdrawalStatus.PENDING
            self._apply_status(withdrawal_orm, target, raw_status, response)

        logger.info(
            "withdrawal_disbursed",
            extra={"withdrawal_id": str(withdrawal_id), "gateway": gateway.value, "status": withdrawal_orm.status},
        )
        return withdrawal_orm

    def _send(self, withdrawal_orm: WithdrawalORM, gateway: DisbursementGateway) -> dict:
        remark = f"Withdrawal {withdrawal_orm.external_id}"
        if gateway == DisbursementGateway.FLIP:
            return self.flip.create_disbursement(
                idempotency_key=withdrawal_orm.external_id,
                account_number=withdrawal_orm.withdrawal_account,
                bank_code=withdrawal_orm.withdrawal_method,
                amount=withdrawal_orm.amount,
                remark=remark,
            )
        if is_ewallet(withdrawal_orm.withdrawal_method):
            return self.xendit.create_ewallet_charge(
                reference_id=withdrawal_orm.external_id,
                amount=withdrawal_orm.amount,
                method=withdrawal_orm.withdrawal_method,
                mobile_number=withdrawal_orm.withdrawal_account,
            )
        return self.xendit.create_disbursement(
            external_id=withdrawal_orm.external_id,
            amount=withdrawal_orm.amount,
            bank_code=withdrawal_orm.withdrawal_method,
            account_holder_name=withdrawal_orm.withdrawal_name,
            account_number=withdrawal_orm.withdrawal_account,
            description=remark,
        )

    def _apply_status(
        self,
        withdrawal_orm: WithdrawalORM,
        target: WithdrawalStatus,
        raw_status: str,
        response,
        reason: str = "",
    ) -> bool:
        """Record a gateway report and move the withdrawal if the state machine allows it."""
        fields = {"disbursement_status": raw_status}
        if response is not None:
            fields["disbursement_response"] = response

        withdrawal = self.withdrawal_repo._to_domain(withdrawal_orm)
        changed = False
        if target != withdrawal.status and target != WithdrawalStatus.PENDING:
            try:
                if target == WithdrawalStatus.COMPLETED:
                    withdrawal.complete()
                else:
                    withdrawal.reject()
                changed = True
            except ValueError as e:
                logger.warning(
                    "withdrawal_transition_ignored",
                    extra={"withdrawal_id": str(withdrawal_orm.id), "status": target.value, "error": str(e)},
                )
                return False

        if changed:
            fields["status"] = withdrawal.status.value
            fields["processed_at"] = timezone.now()
        self.withdrawal_repo.update(withdrawal_orm, **fields)

        if changed and withdrawal.status == WithdrawalStatus.COMPLETED:
            event = WithdrawalCompleted(
                event_id=uuid4(),
                aggregate_id=withdrawal_orm.id,
                event_type="WithdrawalCompleted",
                user_id=withdrawal_orm.user_id,
                amount=withdrawal_orm.amount,
            )
            self.outbox_repo.add_event(event, "Withdrawal")
        elif changed:
            event = WithdrawalRejected(
                event_id=uuid4(),
                aggregate_id=withdrawal_orm.id,
                event_type="WithdrawalRejected",
                user_id=withdrawal_orm.user_id,
                amount=withdrawal_orm.amount,
                reason=reason,
            )
            self.outbox_repo.add_event(event, "Withdrawal")
        return changed

    def _get_pending(self, withdrawal_id, action: str) -> WithdrawalORM:
        withdrawal_orm = self.withdrawal_repo.get_by_id(withdrawal_id, for_update=True)
        if withdrawal_orm is None:
            raise ServiceError("Withdrawal not found", "NOT_FOUND")
        if withdrawal_orm.status != WithdrawalStatus.PENDING.value:
            raise ServiceError(f"Only pending withdrawals can be {action}", "INVALID_STATE")
        return withdrawal_orm

    # Gateway callbacks

    def handle_disbursement_callback(
        self,
        status: str,
        payload: dict,
        disbursement_id=None,
        external_id: str | None = None,
    ) -> dict:
        """Apply a disbursement status report from Flip or Xendit."""
        if not status or not (disbursement_id or external_id):
            raise ServiceError("Invalid callback payload")
        try:
            target = map_disbursement_status(status)
        except ValueError as e:
            raise ServiceError(str(e))

        with transaction.atomic():
            if external_id:
                withdrawal_orm = self.withdrawal_repo.get_by_external_id(external_id, for_update=True)
            else:
                withdrawal_orm = self.withdrawal_repo.get_by_disbursement_id(disbursement_id, for_update=True)
            if withdrawal_orm is None:
                raise ServiceError("Withdrawal not found", "NOT_FOUND")
            changed = self._apply_status(
                withdrawal_orm,
                target,
                str(status).upper(),
                payload,
                reason=str(payload.get("reason") or payload.get("failure_code") or ""),
            )

        logger.info(
            "disbursement_callback_applied",
            extra={"withdrawal_id": str(withdrawal_orm.id), "status": withdrawal_orm.status, "changed": changed},
        )
        return {"withdrawal_id": str(withdrawal_orm.id), "status": withdrawal_orm.status, "changed": changed}

    def handle_xendit_callback(self, payload: dict, callback_token: str | None) -> dict:
        expected = settings.XENDIT_CALLBACK_TOKEN
        if not expected or not hmac.compare_digest(str(callback_token or "").encode(), expected.encode()):
            logger.warning("xendit_invalid_callback_token")
            raise ServiceError("Invalid callback token", "INVALID_TOKEN")

        # E-wallet charge callbacks wrap the charge in "data"
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        external_id = data.get("external_id") or data.get("reference_id")
        return self.handle_disbursement_callback(
            status=str(data.get("status") or ""),
            payload=payload,
            external_id=external_id,
        )

    # Admin

    def list_withdrawals(self, status: str | None = None) -> list[WithdrawalORM]:
        if status:
            try:
                status = WithdrawalStatus(status).value
            except ValueError:
                raise ServiceError(f"Invalid status: {status}")
        return self.withdrawal_repo.list_all(status)

    def process_withdrawal(self, withdrawal_id, actor: str = "") -> WithdrawalORM:
        logger.info(
            "withdrawal_process_requested",
            extra={"withdrawal_id": str(withdrawal_id), "user_id": actor},
        )
        return self.disburse(withdrawal_id)

    @transaction.atomic
    def reject_withdrawal(self, withdrawal_id, reason: str = "", actor: str = "") -> WithdrawalORM:
        withdrawal_orm = self._get_pending(withdrawal_id, "rejected")
        self._apply_status(withdrawal_orm, WithdrawalStatus.REJECTED, "REJECTED", None, reason=reason)
        logger.info(
            "withdrawal_rejected",
            extra={"withdrawal_id": str(withdrawal_id), "user_id": actor},
        )
        return withdrawal_orm

    # Summaries

    def dashboard(self, user: UserORM) -> dict:
        counts = self.product_repo.count_for_seller(user.id)
        return {
            "total_sales": self.transaction_repo.total_sales(user.id),
            "total_purchases": self.transaction_repo.total_purchases(user.id),
            "total_withdrawn": self.withdrawal_repo.total_withdrawn(user.id),
            "available_balance": self.get_balance(user.id)["balance"],
            "active_products": counts["active"],
            "sold_products": counts["sold"],
            "recent_withdrawals": self.withdrawal_repo.recent_for_user(user.id),
        }

    def admin_stats(self) -> dict:
        return {
            "total_products": self.product_repo.count(),
            "total_transactions": self.transaction_repo.count(),
            "total_users": self.user_repo.count(),
            "total_revenue": self.transaction_repo.completed_revenue(),
        }
