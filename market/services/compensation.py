"""
Compensation for sales reversed after completion.
"""
from __future__ import annotations

import logging
from uuid import uuid4

from django.db import transaction

from market.domain.events import PaymentRefunded
from market.infra.models import TransactionORM
from market.infra.outbox import OutboxRepository
from market.infra.repositories import ProductRepository, TransactionRepository


logger = logging.getLogger(__name__)


class RefundService:
    """Undo the side effects of a completed sale (refund or chargeback)."""

    def __init__(
        self,
        transaction_repo: TransactionRepository | None = None,
        product_repo: ProductRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.transaction_repo = transaction_repo or TransactionRepository()
        self.product_repo = product_repo or ProductRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()

    @transaction.atomic
    def revert_sale(self, transaction_orm: TransactionORM) -> bool:
        """
        Relist the product of a refunded transaction.

        The product stays sold when another completed transaction exists for
        it. Returns True when the product was relisted.
        """
        relisted = False
        if not self.transaction_repo.other_completed_exists(transaction_orm.product_id, transaction_orm.order_id):
            relisted = bool(self.product_repo.set_sold(transaction_orm.product_id, False))

        event = PaymentRefunded(
            event_id=uuid4(),
            aggregate_id=transaction_orm.id,
            event_type="PaymentRefunded",
            order_id=transaction_orm.order_id,
            product_id=transaction_orm.product_id,
            buyer_id=transaction_orm.buyer_id,
            seller_id=transaction_orm.seller_id,
            amount=transaction_orm.amount,
        )
        self.outbox_repo.add_event(event, "Transaction")

        logger.info(
            "sale_reverted",
            extra={"order_id": transaction_orm.order_id, "status": "relisted" if relisted else "kept_sold"},
        )
        return relisted
