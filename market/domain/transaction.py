"""
Domain model for purchase transactions.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from uuid import UUID, uuid4


class TransactionStatus(str, Enum):
    """Internal payment status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentGateway(str, Enum):
    MIDTRANS = "midtrans"
    FLIP = "flip"


class SellerPaymentStatus(str, Enum):
    """State of the automatic payout to the seller."""
    NONE = "none"
    PROCESSED = "processed"
    FAILED = "failed"


ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {
        TransactionStatus.COMPLETED,
        TransactionStatus.FAILED,
        TransactionStatus.REFUNDED,
    },
    TransactionStatus.COMPLETED: {TransactionStatus.REFUNDED},
    TransactionStatus.FAILED: set(),
    TransactionStatus.REFUNDED: set(),
}

MIDTRANS_STATUS_MAP = {
    "settlement": TransactionStatus.COMPLETED,
    "pending": TransactionStatus.PENDING,
    "deny": TransactionStatus.FAILED,
    "cancel": TransactionStatus.FAILED,
    "expire": TransactionStatus.FAILED,
    "failure": TransactionStatus.FAILED,
    "refund": TransactionStatus.REFUNDED,
    "partial_refund": TransactionStatus.REFUNDED,
    "chargeback": TransactionStatus.REFUNDED,
    "partial_chargeback": TransactionStatus.REFUNDED,
}

FLIP_BILL_STATUS_MAP = {
    "SUCCESSFUL": TransactionStatus.COMPLETED,
    "SUCCESS": TransactionStatus.COMPLETED,
    "PENDING": TransactionStatus.PENDING,
    "FAILED": TransactionStatus.FAILED,
    "CANCELLED": TransactionStatus.FAILED,
    "EXPIRED": TransactionStatus.FAILED,
}


def map_midtrans_status(transaction_status: str, fraud_status: str | None = None) -> TransactionStatus:
    """Map a Midtrans notification to an internal status."""
    status = (transaction_status or "").lower()
    if status == "capture":
        # Card captures are only final once the fraud check accepts them
        fraud = (fraud_status or "accept").lower()
        if fraud == "challenge":
            return TransactionStatus.PENDING
        if fraud == "deny":
            return TransactionStatus.FAILED
        return TransactionStatus.COMPLETED
    try:
        return MIDTRANS_STATUS_MAP[status]
    except KeyError:
        raise ValueError(f"Unknown Midtrans transaction status: {transaction_status}")


def map_flip_bill_status(status: str) -> TransactionStatus:
    """Map a Flip bill payment callback status to an internal status."""
    try:
        return FLIP_BILL_STATUS_MAP[(status or "").upper()]
    except KeyError:
        raise ValueError(f"Unknown Flip payment status: {status}")


def new_order_id(now_ms: int) -> str:
    """Order id sent to the gateway."""
    return f"ORDER-{now_ms}-{uuid4().hex[:6]}"


def seller_payout_amount(amount: Decimal, fee_rate: Decimal) -> Decimal:
    """Amount paid out to the seller after the platform fee."""
    return (amount * (Decimal("1") - fee_rate)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class Transaction:
    """Purchase transaction aggregate."""

    def __init__(
        self,
        order_id: str,
        product_id: UUID,
        buyer_id: UUID,
        seller_id: UUID,
        amount: Decimal,
        gateway: PaymentGateway = PaymentGateway.MIDTRANS,
        status: TransactionStatus = TransactionStatus.PENDING,
        id: UUID | None = None,
        gateway_status: str = "",
    ):
        if amount <= 0:
            raise ValueError("Transaction amount must be positive")

        self.id = id or uuid4()
        self.order_id = order_id
        self.product_id = product_id
        self.buyer_id = buyer_id
        self.seller_id = seller_id
        self.amount = amount
        self.gateway = gateway
        self.gateway_status = gateway_status
        self._status = status

    @property
    def status(self) -> TransactionStatus:
        return self._status

    def can_transition(self, new_status: TransactionStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self._status]

    def apply_status(self, new_status: TransactionStatus) -> bool:
        """
        Move to ``new_status``.

        Returns True when the status changed, False for a repeated status.
        Raises ValueError for a transition the state machine forbids.
        """
        if new_status == self._status:
            return False
        if not self.can_transition(new_status):
            raise ValueError(
                f"Cannot move transaction {self.order_id} from {self._status.value} to {new_status.value}"
            )
        self._status = new_status
        return True
