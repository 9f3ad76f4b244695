from __future__ import annotations

from uuid import uuid4

from django.db import models

from market.domain.product import ProductCategory, ProductCondition
from market.domain.transaction import PaymentGateway, SellerPaymentStatus, TransactionStatus
from market.domain.withdrawal import DisbursementGateway, WithdrawalStatus


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum_cls]


OPERATION_TYPE = (
    ("REQUEST_WITHDRAWAL", "Request withdrawal"),
    ("CREATE_TRANSACTION", "Create transaction"),
)

NOTIFICATION_TYPE = (
    ("transaction", "Transaction"),
    ("chat", "Chat"),
    ("withdrawal", "Withdrawal"),
)


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class UserORM(TimeStampedModel):
    ROLE_CHOICES = (
        ("user", "User"),
        ("admin", "Admin"),
    )

    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, unique=True)
    password = models.CharField(max_length=255, blank=True, default="")
    whatsapp = models.CharField(max_length=20, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default="user")
    withdrawal_method = models.CharField(max_length=50, blank=True, default="")
    withdrawal_account = models.CharField(max_length=100, blank=True, default="")
    withdrawal_name = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        db_table = "users"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __str__(self):
        return f"{self.name} <{self.email}>"


class ProductORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    seller = models.ForeignKey(
        UserORM,
        on_delete=models.CASCADE,
        related_name="products",
    )
    title = models.CharField(max_length=255)
    description = models.TextField()
    price = models.DecimalField(max_digits=14, decimal_places=2)
    image_url = models.URLField(max_length=500)
    condition = models.CharField(max_length=20, choices=_choices(ProductCondition))
    category = models.CharField(
        max_length=30,
        choices=_choices(ProductCategory),
        default=ProductCategory.LAINNYA.value,
    )
    is_sold = models.BooleanField(default=False)

    class Meta:
        db_table = "products"
        indexes = [
            models.Index(fields=("is_sold", "-created_at")),
            models.Index(fields=("seller",)),
        ]

    def __str__(self):
        return self.title


class WishlistORM(TimeStampedModel):
    user = models.ForeignKey(
        UserORM,
        on_delete=models.CASCADE,
        related_name="wishlist",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="wishlisted_by",
    )

    class Meta:
        db_table = "wishlists"
        unique_together = [("user", "product")]


class MessageORM(TimeStampedModel):
    sender = models.ForeignKey(
        UserORM,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    receiver = models.ForeignKey(
        UserORM,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    message = models.TextField()
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "messages"
        indexes = [
            models.Index(fields=("product", "created_at")),
            models.Index(fields=("receiver", "is_read")),
        ]


class NotificationORM(TimeStampedModel):
    user = models.ForeignKey(
        UserORM,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=20, choices=NOTIFICATION_TYPE)
    title = models.CharField(max_length=255, blank=True, default="")
    body = models.TextField(blank=True, default="")
    link = models.CharField(max_length=255, blank=True, default="")
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = "notifications"
        indexes = [
            models.Index(fields=("user", "-created_at")),
        ]


class TransactionORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    order_id = models.CharField(max_length=64, unique=True)
    product = models.ForeignKey(
        ProductORM,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    buyer = models.ForeignKey(
        UserORM,
        on_delete=models.PROTECT,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        UserORM,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=_choices(TransactionStatus),
        default=TransactionStatus.PENDING.value,
    )
    gateway = models.CharField(
        max_length=20,
        choices=_choices(PaymentGateway),
        default=PaymentGateway.MIDTRANS.value,
    )
    gateway_status = models.CharField(max_length=50, blank=True, default="")
    snap_token = models.CharField(max_length=255, blank=True, default="")
    snap_redirect_url = models.URLField(max_length=500, blank=True, default="")
    flip_bill_link_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    flip_payment_url = models.URLField(max_length=500, blank=True, default="")
    payment_details = models.JSONField(null=True, blank=True)
    seller_payment_status = models.CharField(
        max_length=20,
        choices=_choices(SellerPaymentStatus),
        default=SellerPaymentStatus.NONE.value,
    )
    seller_payment_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    seller_payment_details = models.JSONField(null=True, blank=True)
    seller_payment_error = models.TextField(blank=True, default="")

    class Meta:
        db_table = "transactions"
        indexes = [
            models.Index(fields=("buyer", "-created_at")),
            models.Index(fields=("seller", "status")),
            models.Index(fields=("product", "buyer", "status")),
        ]


class WithdrawalORM(TimeStampedModel):
    id = models.UUIDField(primary_key=True, default=uuid4, editable=False)
    user = models.ForeignKey(
        UserORM,
        on_delete=models.PROTECT,
        related_name="withdrawals",
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=_choices(WithdrawalStatus),
        default=WithdrawalStatus.PENDING.value,
    )
    withdrawal_method = models.CharField(max_length=50)
    withdrawal_account = models.CharField(max_length=100)
    withdrawal_name = models.CharField(max_length=255)
    gateway = models.CharField(max_length=20, choices=_choices(DisbursementGateway), blank=True, default="")
    external_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    disbursement_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    disbursement_status = models.CharField(max_length=30, blank=True, default="")
    disbursement_response = models.JSONField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "withdrawals"
        indexes = [
            models.Index(fields=("user", "status")),
            models.Index(fields=("status", "-created_at")),
        ]


class IdempotencyKey(TimeStampedModel):
    key = models.CharField(max_length=255)
    user_id = models.UUIDField()
    operation = models.CharField(max_length=30, choices=OPERATION_TYPE)
    request_hash = models.CharField(max_length=255)
    response_payload = models.JSONField()

    class Meta:
        unique_together = [("key", "user_id", "operation")]
        indexes = [
            models.Index(fields=("request_hash",)),
        ]
