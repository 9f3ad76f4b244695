"""
Infrastructure repositories for marketplace entities.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from django.db.models import Q, Sum

from market.domain.product import Listing
from market.domain.transaction import PaymentGateway, Transaction, TransactionStatus
from market.domain.withdrawal import Withdrawal, WithdrawalStatus
from market.errors import ServiceError
from market.infra.models import (
    IdempotencyKey,
    MessageORM,
    NotificationORM,
    ProductORM,
    TransactionORM,
    UserORM,
    WishlistORM,
    WithdrawalORM,
)


logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user profiles."""

    def get_by_id(self, user_id) -> UserORM | None:
        return UserORM.objects.filter(id=user_id).first()

    def get_by_email(self, email: str) -> UserORM | None:
        return UserORM.objects.filter(email__iexact=email).first()

    def email_exists(self, email: str) -> bool:
        return UserORM.objects.filter(email__iexact=email).exists()

    def create(self, name: str, email: str, password: str, whatsapp: str, role: str = "user") -> UserORM:
        """Create user; ``password`` must already be hashed."""
        return UserORM.objects.create(
            name=name,
            email=email.lower(),
            password=password,
            whatsapp=whatsapp,
            role=role,
        )

    def update(self, user: UserORM, **fields) -> UserORM:
        for field, value in fields.items():
            setattr(user, field, value)
        user.save(update_fields=[*fields.keys(), "updated_at"])
        return user

    def count(self) -> int:
        return UserORM.objects.count()


@dataclass
class ProductFilter:
    """Catalog filter built from query parameters."""
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    condition: str | None = None
    category: str | None = None
    search: str | None = None


class ProductRepository:
    """Repository for product listings."""

    def get_by_id(self, product_id) -> ProductORM | None:
        return ProductORM.objects.select_related("seller").filter(id=product_id).first()

    def get_for_update(self, product_id) -> ProductORM | None:
        return ProductORM.objects.select_for_update().filter(id=product_id).first()

    def list_available(self, filters: ProductFilter, limit: int, offset: int = 0) -> tuple[list[ProductORM], int]:
        """Unsold products matching ``filters``, newest first, with total count."""
        queryset = ProductORM.objects.select_related("seller").filter(is_sold=False)
        if filters.min_price is not None:
            queryset = queryset.filter(price__gte=filters.min_price)
        if filters.max_price is not None:
            queryset = queryset.filter(price__lte=filters.max_price)
        if filters.condition:
            queryset = queryset.filter(condition=filters.condition)
        if filters.category:
            queryset = queryset.filter(category=filters.category)
        if filters.search:
            queryset = queryset.filter(title__icontains=filters.search)

        total = queryset.count()
        items = list(queryset.order_by("-created_at")[offset:offset + limit])
        return items, total

    def list_by_seller(self, seller_id) -> list[ProductORM]:
        return list(
            ProductORM.objects
            .select_related("seller")
            .filter(seller_id=seller_id)
            .order_by("-created_at")
        )

    def create(self, seller_id, listing: Listing) -> ProductORM:
        return ProductORM.objects.create(
            seller_id=seller_id,
            title=listing.title,
            description=listing.description,
            price=listing.price,
            condition=listing.condition.value,
            image_url=listing.image_url,
            category=listing.category.value,
        )

    def update(self, product: ProductORM, changes: dict) -> ProductORM:
        for field, value in changes.items():
            setattr(product, field, value)
        product.save(update_fields=[*changes.keys(), "updated_at"])
        return product

    def delete(self, product: ProductORM) -> None:
        product.delete()

    def set_sold(self, product_id, is_sold: bool = True) -> int:
        return ProductORM.objects.filter(id=product_id).update(is_sold=is_sold)

    def count_for_seller(self, seller_id) -> dict:
        queryset = ProductORM.objects.filter(seller_id=seller_id)
        return {
            "active": queryset.filter(is_sold=False).count(),
            "sold": queryset.filter(is_sold=True).count(),
        }

    def count(self) -> int:
        return ProductORM.objects.count()


class WishlistRepository:
    """Repository for wishlist entries."""

    def list_for_user(self, user_id) -> list[WishlistORM]:
        return list(
            WishlistORM.objects
            .select_related("product", "product__seller")
            .filter(user_id=user_id)
            .order_by("-created_at")
        )

    def exists(self, user_id, product_id) -> bool:
        return WishlistORM.objects.filter(user_id=user_id, product_id=product_id).exists()

    def add(self, user_id, product_id) -> WishlistORM:
        return WishlistORM.objects.create(user_id=user_id, product_id=product_id)

    def remove(self, user_id, product_id) -> int:
        deleted, _ = WishlistORM.objects.filter(user_id=user_id, product_id=product_id).delete()
        return deleted


class MessageRepository:
    """Repository for chat messages."""

    def create(self, sender_id, receiver_id, product_id, message: str) -> MessageORM:
        return MessageORM.objects.create(
            sender_id=sender_id,
            receiver_id=receiver_id,
            product_id=product_id,
            message=message,
        )

    def conversation(self, user_id, other_user_id, product_id) -> list[MessageORM]:
        """Messages between two users about one product, oldest first."""
        return list(
            MessageORM.objects
            .select_related("sender", "receiver")
            .filter(product_id=product_id)
            .filter(
                Q(sender_id=user_id, receiver_id=other_user_id)
                | Q(sender_id=other_user_id, receiver_id=user_id)
            )
            .order_by("created_at", "id")
        )

    def mark_read(self, receiver_id, sender_id, product_id) -> int:
        return MessageORM.objects.filter(
            product_id=product_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            is_read=False,
        ).update(is_read=True)

    def for_user(self, user_id) -> list[MessageORM]:
        """All messages the user sent or received, newest first."""
        return list(
            MessageORM.objects
            .filter(Q(sender_id=user_id) | Q(receiver_id=user_id))
            .order_by("-created_at", "-id")
        )


class NotificationRepository:
    """Repository for notifications."""

    def list_for_user(self, user_id, limit: int = 50) -> list[NotificationORM]:
        return list(NotificationORM.objects.filter(user_id=user_id).order_by("-created_at")[:limit])

    def get_for_user(self, notification_id, user_id) -> NotificationORM | None:
        return NotificationORM.objects.filter(id=notification_id, user_id=user_id).first()

    def mark_read(self, notification: NotificationORM) -> None:
        notification.is_read = True
        notification.save(update_fields=["is_read", "updated_at"])

    def delete(self, notification: NotificationORM) -> None:
        notification.delete()

    def unread_count(self, user_id) -> int:
        return NotificationORM.objects.filter(user_id=user_id, is_read=False).count()


class TransactionRepository:
    """Repository for purchase transactions."""

    def get_by_order_id(self, order_id: str, for_update: bool = False) -> TransactionORM | None:
        queryset = TransactionORM.objects.select_related("product", "buyer", "seller")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(order_id=order_id).first()

    def get_by_bill_link_id(self, bill_link_id, for_update: bool = False) -> TransactionORM | None:
        queryset = TransactionORM.objects.select_related("product", "buyer", "seller")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(flip_bill_link_id=str(bill_link_id)).first()

    def find_open(self, buyer_id, product_id) -> TransactionORM | None:
        """Latest pending transaction of the buyer for the product."""
        return (
            TransactionORM.objects
            .filter(buyer_id=buyer_id, product_id=product_id, status=TransactionStatus.PENDING.value)
            .order_by("-created_at")
            .first()
        )

    def create(self, transaction: Transaction) -> TransactionORM:
        return TransactionORM.objects.create(
            id=transaction.id,
            order_id=transaction.order_id,
            product_id=transaction.product_id,
            buyer_id=transaction.buyer_id,
            seller_id=transaction.seller_id,
            amount=transaction.amount,
            status=transaction.status.value,
            gateway=transaction.gateway.value,
        )

    def update(self, transaction_orm: TransactionORM, **fields) -> TransactionORM:
        for field, value in fields.items():
            setattr(transaction_orm, field, value)
        transaction_orm.save(update_fields=[*fields.keys(), "updated_at"])
        return transaction_orm

    def save_status(self, transaction_orm: TransactionORM, transaction: Transaction, **fields) -> TransactionORM:
        """Persist the domain status together with extra columns."""
        return self.update(
            transaction_orm,
            status=transaction.status.value,
            gateway_status=transaction.gateway_status,
            **fields,
        )

    def purchases(self, buyer_id) -> list[TransactionORM]:
        return list(
            TransactionORM.objects
            .select_related("product", "seller")
            .filter(buyer_id=buyer_id)
            .order_by("-created_at")
        )

    def sales(self, seller_id) -> list[TransactionORM]:
        return list(
            TransactionORM.objects
            .select_related("product", "buyer")
            .filter(seller_id=seller_id)
            .order_by("-created_at")
        )

    def other_completed_exists(self, product_id, exclude_order_id: str) -> bool:
        return (
            TransactionORM.objects
            .filter(product_id=product_id, status=TransactionStatus.COMPLETED.value)
            .exclude(order_id=exclude_order_id)
            .exists()
        )

    def total_sales(self, seller_id) -> Decimal:
        return self._sum(seller_id=seller_id, status=TransactionStatus.COMPLETED.value)

    def total_purchases(self, buyer_id) -> Decimal:
        return self._sum(buyer_id=buyer_id, status=TransactionStatus.COMPLETED.value)

    def unpaid_sales(self, seller_id) -> list[Decimal]:
        """Completed sales whose money was not paid out automatically."""
        return list(
            TransactionORM.objects
            .filter(seller_id=seller_id, status=TransactionStatus.COMPLETED.value)
            .exclude(seller_payment_status="processed")
            .values_list("amount", flat=True)
        )

    def completed_revenue(self) -> Decimal:
        return self._sum(status=TransactionStatus.COMPLETED.value)

    def count(self) -> int:
        return TransactionORM.objects.count()

    def _sum(self, **filters) -> Decimal:
        total = TransactionORM.objects.filter(**filters).aggregate(total=Sum("amount"))["total"]
        return total or Decimal("0.00")

    def _to_domain(self, transaction_orm: TransactionORM) -> Transaction:
        """Convert ORM model to domain entity."""
        return Transaction(
            id=transaction_orm.id,
            order_id=transaction_orm.order_id,
            product_id=transaction_orm.product_id,
            buyer_id=transaction_orm.buyer_id,
            seller_id=transaction_orm.seller_id,
            amount=transaction_orm.amount,
            gateway=PaymentGateway(transaction_orm.gateway),
            status=TransactionStatus(transaction_orm.status),
            gateway_status=transaction_orm.gateway_status,
        )


class WithdrawalRepository:
    """Repository for withdrawals."""

    def get_by_id(self, withdrawal_id, for_update: bool = False) -> WithdrawalORM | None:
        queryset = WithdrawalORM.objects.select_related("user")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(id=withdrawal_id).first()

    def get_by_external_id(self, external_id: str, for_update: bool = False) -> WithdrawalORM | None:
        queryset = WithdrawalORM.objects.select_related("user")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(external_id=external_id).first()

    def get_by_disbursement_id(self, disbursement_id, for_update: bool = False) -> WithdrawalORM | None:
        queryset = WithdrawalORM.objects.select_related("user")
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(disbursement_id=str(disbursement_id)).first()

    def create(self, withdrawal: Withdrawal) -> WithdrawalORM:
        return WithdrawalORM.objects.create(
            id=withdrawal.id,
            user_id=withdrawal.user_id,
            amount=withdrawal.amount,
            status=withdrawal.status.value,
            withdrawal_method=withdrawal.method,
            withdrawal_account=withdrawal.account,
            withdrawal_name=withdrawal.name,
            external_id=withdrawal.external_id,
        )

    def update(self, withdrawal_orm: WithdrawalORM, **fields) -> WithdrawalORM:
        for field, value in fields.items():
            setattr(withdrawal_orm, field, value)
        withdrawal_orm.save(update_fields=[*fields.keys(), "updated_at"])
        return withdrawal_orm

    def list_all(self, status: str | None = None) -> list[WithdrawalORM]:
        queryset = WithdrawalORM.objects.select_related("user")
        if status:
            queryset = queryset.filter(status=status)
        return list(queryset.order_by("-created_at"))

    def recent_for_user(self, user_id, limit: int = 5) -> list[WithdrawalORM]:
        return list(WithdrawalORM.objects.filter(user_id=user_id).order_by("-created_at")[:limit])

    def committed_amounts(self, user_id) -> list[Decimal]:
        """Amounts of withdrawals that are pending or already paid."""
        return list(
            WithdrawalORM.objects
            .filter(
                user_id=user_id,
                status__in=[WithdrawalStatus.PENDING.value, WithdrawalStatus.COMPLETED.value],
            )
            .values_list("amount", flat=True)
        )

    def total_withdrawn(self, user_id) -> Decimal:
        total = (
            WithdrawalORM.objects
            .filter(user_id=user_id, status=WithdrawalStatus.COMPLETED.value)
            .aggregate(total=Sum("amount"))["total"]
        )
        return total or Decimal("0.00")

    def _to_domain(self, withdrawal_orm: WithdrawalORM) -> Withdrawal:
        """Convert ORM model to domain entity."""
        return Withdrawal(
            id=withdrawal_orm.id,
            user_id=withdrawal_orm.user_id,
            amount=withdrawal_orm.amount,
            method=withdrawal_orm.withdrawal_method,
            account=withdrawal_orm.withdrawal_account,
            name=withdrawal_orm.withdrawal_name,
            status=WithdrawalStatus(withdrawal_orm.status),
        )


class IdempotencyStore:
    """Stored responses for requests carrying an Idempotency-Key header."""

    @staticmethod
    def request_hash(payload: dict) -> str:
        """Create hash of request for deduplication."""
        content = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(content.encode()).hexdigest()

    def lookup(self, key: str, user_id: UUID, operation: str, request_hash: str) -> dict | None:
        """
        Return the stored response for a replayed request.

        Raises ``ServiceError(DUPLICATE_REQUEST)`` when the key was used with a
        different request body.
        """
        existing = IdempotencyKey.objects.filter(key=key, user_id=user_id, operation=operation).first()
        if existing is None:
            return None
        if existing.request_hash != request_hash:
            logger.warning(
                "idempotency_key_conflict",
                extra={"user_id": str(user_id), "operation": operation, "idempotency_key": key[:8] + "..."},
            )
            raise ServiceError("Idempotency key already used with different request", "DUPLICATE_REQUEST")
        logger.info(
            "idempotent_request_cached",
            extra={"user_id": str(user_id), "operation": operation, "idempotency_key": key[:8] + "..."},
        )
        return existing.response_payload

    def save(self, key: str, user_id: UUID, operation: str, request_hash: str, response_payload: dict) -> None:
        IdempotencyKey.objects.create(
            key=key,
            user_id=user_id,
            operation=operation,
            request_hash=request_hash,
            response_payload=response_payload,
        )
