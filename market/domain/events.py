"""
Domain events written to the outbox (lightweight).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class EventVersion(str, Enum):
    """Event version for upcasting."""
    V1 = "1.0"


@dataclass
class DomainEvent:
    """Base domain event."""
    event_id: UUID
    aggregate_id: UUID
    event_type: str
    # version and occurred_at are set in subclasses to avoid dataclass field ordering issues


# Payment events
@dataclass
class PaymentCompleted(DomainEvent):
    """Buyer paid; the product is sold."""
    order_id: str
    product_id: UUID
    buyer_id: UUID
    seller_id: UUID
    amount: Decimal
    gateway: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class PaymentRefunded(DomainEvent):
    """A completed payment was refunded or charged back."""
    order_id: str
    product_id: UUID
    buyer_id: UUID
    seller_id: UUID
    amount: Decimal
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class SellerPayoutFailed(DomainEvent):
    """Automatic payout to the seller failed."""
    order_id: str
    seller_id: UUID
    amount: Decimal
    error: str = ""
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


# Chat events
@dataclass
class MessageSent(DomainEvent):
    """Chat message sent about a product."""
    product_id: UUID
    sender_id: UUID
    receiver_id: UUID
    sender_name: str
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


# Withdrawal events
@dataclass
class WithdrawalCompleted(DomainEvent):
    """Withdrawal paid out."""
    user_id: UUID
    amount: Decimal
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""


@dataclass
class WithdrawalRejected(DomainEvent):
    """Withdrawal rejected by an admin or the gateway."""
    user_id: UUID
    amount: Decimal
    reason: str = ""
    version: EventVersion = EventVersion.V1
    occurred_at: str = ""
