"""
Payment services: checkout creation and gateway webhook reconciliation.
"""
from __future__ import annotations

import hmac
import logging
import time
from typing import Callable
from uuid import uuid4

from django.conf import settings
from django.db import transaction

from market.domain.events import PaymentCompleted, SellerPayoutFailed
from market.domain.transaction import (
    PaymentGateway,
    SellerPaymentStatus,
    Transaction,
    TransactionStatus,
    map_flip_bill_status,
    map_midtrans_status,
    new_order_id,
    seller_payout_amount,
)
from market.errors import GatewayError, ServiceError
from market.gateways import FlipClient, MidtransSnapClient
from market.gateways.midtrans import verify_signature
from market.infra.models import TransactionORM, UserORM
from market.infra.outbox import OutboxRepository
from market.infra.repositories import ProductRepository, TransactionRepository
from market.services.compensation import RefundService
from market.services.withdrawals import WithdrawalService


logger = logging.getLogger(__name__)

MIDTRANS_REQUIRED_FIELDS = ("order_id", "status_code", "gross_amount", "signature_key", "transaction_status")


def _absolute_url(url: str) -> str:
    if url and not url.startswith(("http://", "https://")):
        return f"https://{url}"
    return url


class PaymentService:
    """Service for purchase transactions."""

    def __init__(
        self,
        transaction_repo: TransactionRepository | None = None,
        product_repo: ProductRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
        refund_service: RefundService | None = None,
        midtrans_client: MidtransSnapClient | None = None,
        flip_client: FlipClient | None = None,
    ):
        self.transaction_repo = transaction_repo or TransactionRepository()
        self.product_repo = product_repo or ProductRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()
        self.refund_service = refund_service or RefundService(
            transaction_repo=self.transaction_repo,
            product_repo=self.product_repo,
            outbox_repo=self.outbox_repo,
        )
        # Clients read their keys from settings, so they are built on first use
        self._midtrans_client = midtrans_client
        self._flip_client = flip_client

    @property
    def midtrans(self) -> MidtransSnapClient:
        if self._midtrans_client is None:
            self._midtrans_client = MidtransSnapClient()
        return self._midtrans_client

    @property
    def flip(self) -> FlipClient:
        if self._flip_client is None:
            self._flip_client = FlipClient()
        return self._flip_client

    # Checkout

    def create_transaction(self, buyer: UserORM, product_id, gateway: str | None = None) -> dict:
        """Start a payment for a product and return the gateway checkout data."""
        try:
            gateway = PaymentGateway((gateway or PaymentGateway.MIDTRANS.value).lower())
        except ValueError:
            raise ServiceError(f"Unsupported payment gateway: {gateway}")
        self._check_configured(gateway)
        if not product_id:
            raise ServiceError("Product ID is required")

        with transaction.atomic():
            product = self.product_repo.get_for_update(product_id)
            if product is None:
                raise ServiceError("Product not found", "NOT_FOUND")
            if product.is_sold:
                raise ServiceError("Product is no longer available")
            if product.seller_id == buyer.id:
                raise ServiceError("You cannot buy your own product")

            existing = self.transaction_repo.find_open(buyer.id, product.id)
            if existing is not None and existing.gateway == gateway.value and (
                existing.snap_token or existing.flip_payment_url
            ):
                logger.info(
                    "transaction_reused",
                    extra={"order_id": existing.order_id, "user_id": str(buyer.id), "gateway": gateway.value},
                )
                return self._checkout_payload(existing, reused=True)

            domain_tx = Transaction(
                order_id=new_order_id(int(time.time() * 1000)),
                product_id=product.id,
                buyer_id=buyer.id,
                seller_id=product.seller_id,
                amount=product.price,
                gateway=gateway,
            )
            transaction_orm = self.transaction_repo.create(domain_tx)

        logger.info(
            "transaction_created",
            extra={"order_id": transaction_orm.order_id, "user_id": str(buyer.id), "gateway": gateway.value},
        )

        try:
            if gateway == PaymentGateway.MIDTRANS:
                result = self.midtrans.create_transaction(
                    order_id=transaction_orm.order_id,
                    amount=product.price,
                    item_id=str(product.id),
                    item_name=product.title,
                    customer={"name": buyer.name, "email": buyer.email, "phone": buyer.phone or buyer.whatsapp},
                )
                self.transaction_repo.update(
                    transaction_orm,
                    snap_token=result.get("token", ""),
                    snap_redirect_url=result.get("redirect_url", ""),
                )
            else:
                result = self.flip.create_bill(
                    title=f"{product.title} ({transaction_orm.order_id})",
                    amount=product.price,
                    redirect_url=settings.FLIP_REDIRECT_URL or f"{settings.SITE_URL}/payment-success",
                )
                self.transaction_repo.update(
                    transaction_orm,
                    flip_bill_link_id=str(result.get("link_id", "")),
                    flip_payment_url=_absolute_url(result.get("link_url", "")),
                )
        except GatewayError as e:
            self.transaction_repo.update(
                transaction_orm,
                status=TransactionStatus.FAILED.value,
                gateway_status="ERROR",
                payment_details={"error": str(e), "response": e.payload},
            )
            logger.error(
                "transaction_gateway_error",
                extra={"order_id": transaction_orm.order_id, "gateway": gateway.value, "error": str(e)},
            )
            raise ServiceError("Failed to create payment", "GATEWAY_ERROR")

        return self._checkout_payload(transaction_orm, reused=False)

    def _check_configured(self, gateway: PaymentGateway) -> None:
        if gateway == PaymentGateway.MIDTRANS:
            configured = settings.MIDTRANS_SERVER_KEY and settings.MIDTRANS_CLIENT_KEY
        else:
            configured = settings.FLIP_API_KEY
        if not configured:
            logger.error("payment_gateway_not_configured", extra={"gateway": gateway.value})
            raise ServiceError("Payment system configuration error", "CONFIGURATION_ERROR")

    def _checkout_payload(self, transaction_orm: TransactionORM, reused: bool) -> dict:
        if transaction_orm.gateway == PaymentGateway.FLIP.value:
            return {
                "order_id": transaction_orm.order_id,
                "gateway": transaction_orm.gateway,
                "bill_link_id": transaction_orm.flip_bill_link_id,
                "payment_url": transaction_orm.flip_payment_url,
                "redirect_url": transaction_orm.flip_payment_url,
                "reused": reused,
            }
        return {
            "order_id": transaction_orm.order_id,
            "gateway": transaction_orm.gateway,
            "token": transaction_orm.snap_token,
            "redirect_url": transaction_orm.snap_redirect_url,
            "reused": reused,
        }

    # Webhooks

    def handle_midtrans_notification(self, payload: dict) -> dict:
        """Verify and apply a Midtrans HTTP notification."""
        server_key = settings.MIDTRANS_SERVER_KEY
        if not server_key:
            raise ServiceError("Payment system configuration error", "CONFIGURATION_ERROR")

        missing = [field for field in MIDTRANS_REQUIRED_FIELDS if not payload.get(field)]
        if missing:
            raise ServiceError(f"Invalid notification payload, missing: {', '.join(missing)}")
        if not verify_signature(payload, server_key):
            logger.warning("midtrans_invalid_signature", extra={"order_id": payload.get("order_id")})
            raise ServiceError("Invalid signature", "INVALID_SIGNATURE")

        raw_status = payload["transaction_status"]
        try:
            target = map_midtrans_status(raw_status, payload.get("fraud_status"))
        except ValueError as e:
            raise ServiceError(str(e))

        order_id = payload["order_id"]
        return self._apply_gateway_status(
            lambda: self.transaction_repo.get_by_order_id(order_id, for_update=True),
            target,
            raw_status,
            payload,
        )

    def handle_flip_callback(self, payload: dict, token: str | None) -> dict:
        """Route a Flip callback to bill or disbursement handling."""
        expected = settings.FLIP_VALIDATION_TOKEN
        if expected and not hmac.compare_digest(str(token or "").encode(), expected.encode()):
            logger.warning("flip_invalid_callback_token")
            raise ServiceError("Invalid callback token", "INVALID_TOKEN")

        if payload.get("bill_link_id"):
            return self.handle_flip_bill_callback(payload)
        if payload.get("id") and payload.get("status"):
            return WithdrawalService(flip_client=self._flip_client).handle_disbursement_callback(
                status=str(payload["status"]),
                payload=payload,
                disbursement_id=payload["id"],
            )
        raise ServiceError("Invalid callback payload")

    def handle_flip_bill_callback(self, payload: dict) -> dict:
        """Apply a Flip accept-payment callback."""
        bill_link_id = payload.get("bill_link_id")
        raw_status = str(payload.get("status") or "")
        if not bill_link_id or not raw_status:
            raise ServiceError("Invalid callback payload")
        try:
            target = map_flip_bill_status(raw_status)
        except ValueError as e:
            raise ServiceError(str(e))

        return self._apply_gateway_status(
            lambda: self.transaction_repo.get_by_bill_link_id(bill_link_id, for_update=True),
            target,
            raw_status,
            payload,
        )

    def _apply_gateway_status(
        self,
        load: Callable[[], TransactionORM | None],
        target: TransactionStatus,
        raw_status: str,
        payload: dict,
    ) -> dict:
        with transaction.atomic():
            transaction_orm = load()
            if transaction_orm is None:
                raise ServiceError("Transaction not found", "NOT_FOUND")

            domain_tx = self.transaction_repo._to_domain(transaction_orm)
            previous = domain_tx.status
            try:
                changed = domain_tx.apply_status(target)
            except ValueError as e:
                # Late or out-of-order delivery; the current status wins
                logger.warning(
                    "transaction_transition_ignored",
                    extra={"order_id": transaction_orm.order_id, "status": target.value, "error": str(e)},
                )
                return {"order_id": transaction_orm.order_id, "status": previous.value, "changed": False}

            domain_tx.gateway_status = raw_status
            self.transaction_repo.save_status(transaction_orm, domain_tx, payment_details=payload)

            if changed and domain_tx.status == TransactionStatus.COMPLETED:
                self._complete_sale(transaction_orm)
            elif changed and previous == TransactionStatus.COMPLETED and domain_tx.status == TransactionStatus.REFUNDED:
                self.refund_service.revert_sale(transaction_orm)

        logger.info(
            "transaction_status_applied",
            extra={
                "order_id": transaction_orm.order_id,
                "gateway": transaction_orm.gateway,
                "status": domain_tx.status.value,
                "changed": changed,
            },
        )

        if (
            changed
            and domain_tx.status == TransactionStatus.COMPLETED
            and transaction_orm.gateway == PaymentGateway.FLIP.value
        ):
            self.pay_out_seller(transaction_orm.order_id)

        return {"order_id": transaction_orm.order_id, "status": domain_tx.status.value, "changed": changed}

    def _complete_sale(self, transaction_orm: TransactionORM) -> None:
        self.product_repo.set_sold(transaction_orm.product_id)
        event = PaymentCompleted(
            event_id=uuid4(),
            aggregate_id=transaction_orm.id,
            event_type="PaymentCompleted",
            order_id=transaction_orm.order_id,
            product_id=transaction_orm.product_id,
            buyer_id=transaction_orm.buyer_id,
            seller_id=transaction_orm.seller_id,
            amount=transaction_orm.amount,
            gateway=transaction_orm.gateway,
        )
        self.outbox_repo.add_event(event, "Transaction")

    def pay_out_seller(self, order_id: str) -> TransactionORM:
        """Disburse the seller's share of a completed Flip payment."""
        transaction_orm = self.transaction_repo.get_by_order_id(order_id)
        if transaction_orm.seller_payment_status != SellerPaymentStatus.NONE.value:
            return transaction_orm

        amount = seller_payout_amount(transaction_orm.amount, settings.PLATFORM_FEE_RATE)
        seller = transaction_orm.seller
        details, error = None, ""
        if not seller.withdrawal_account or not seller.withdrawal_method:
            error = "Seller has no withdrawal account"
        else:
            try:
                details = self.flip.create_disbursement(
                    idempotency_key=f"payout-{transaction_orm.order_id}",
                    account_number=seller.withdrawal_account,
                    bank_code=seller.withdrawal_method,
                    amount=amount,
                    remark=f"Order {transaction_orm.order_id}",
                )
            except GatewayError as e:
                error = str(e)

        with transaction.atomic():
            if error:
                self.transaction_repo.update(
                    transaction_orm,
                    seller_payment_status=SellerPaymentStatus.FAILED.value,
                    seller_payment_amount=amount,
                    seller_payment_error=error,
                )
                event = SellerPayoutFailed(
                    event_id=uuid4(),
                    aggregate_id=transaction_orm.id,
                    event_type="SellerPayoutFailed",
                    order_id=transaction_orm.order_id,
                    seller_id=transaction_orm.seller_id,
                    amount=amount,
                    error=error,
                )
                self.outbox_repo.add_event(event, "Transaction")
                logger.error(
                    "seller_payout_failed",
                    extra={"order_id": transaction_orm.order_id, "error": error},
                )
            else:
                self.transaction_repo.update(
                    transaction_orm,
                    seller_payment_status=SellerPaymentStatus.PROCESSED.value,
                    seller_payment_amount=amount,
                    seller_payment_details=details,
                )
                logger.info("seller_payout_processed", extra={"order_id": transaction_orm.order_id})
        return transaction_orm

    # Queries

    def payment_status(self, bill_link_id: str | None = None, order_id: str | None = None) -> dict:
        if bill_link_id:
            transaction_orm = self.transaction_repo.get_by_bill_link_id(bill_link_id)
        elif order_id:
            transaction_orm = self.transaction_repo.get_by_order_id(order_id)
        else:
            raise ServiceError("bill_link_id or order_id is required")
        if transaction_orm is None:
            raise ServiceError("Transaction not found", "NOT_FOUND")
        return {"order_id": transaction_orm.order_id, "status": transaction_orm.status}

    def list_transactions(self, user: UserORM) -> dict:
        return {
            "purchases": self.transaction_repo.purchases(user.id),
            "sales": self.transaction_repo.sales(user.id),
        }

    def get_transaction(self, user: UserORM, order_id: str) -> TransactionORM:
        transaction_orm = self.transaction_repo.get_by_order_id(order_id)
        if transaction_orm is None:
            raise ServiceError("Transaction not found", "NOT_FOUND")
        if user.id not in (transaction_orm.buyer_id, transaction_orm.seller_id) and not user.is_admin:
            raise ServiceError("You do not have access to this transaction", "FORBIDDEN")
        return transaction_orm
