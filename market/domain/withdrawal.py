"""
Domain model for seller withdrawals.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterable
from uuid import UUID, uuid4


class WithdrawalStatus(str, Enum):
    """Withdrawal status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class DisbursementGateway(str, Enum):
    FLIP = "flip"
    XENDIT = "xendit"
    MANUAL = "manual"


# Upper bound of the amount columns (max_digits=14, decimal_places=2)
MAX_AMOUNT = Decimal("999999999999.99")

EWALLET_METHODS = {"dana", "ovo", "shopeepay", "linkaja", "paytren", "gopay"}

DISBURSEMENT_STATUS_MAP = {
    "DONE": WithdrawalStatus.COMPLETED,
    "SUCCESS": WithdrawalStatus.COMPLETED,
    "COMPLETED": WithdrawalStatus.COMPLETED,
    "SUCCEEDED": WithdrawalStatus.COMPLETED,
    "PENDING": WithdrawalStatus.PENDING,
    "ACCEPTED": WithdrawalStatus.PENDING,
    "CANCELLED": WithdrawalStatus.REJECTED,
    "FAILED": WithdrawalStatus.REJECTED,
}


def map_disbursement_status(status: str) -> WithdrawalStatus:
    """Map a Flip/Xendit disbursement status to a withdrawal status."""
    try:
        return DISBURSEMENT_STATUS_MAP[(status or "").upper()]
    except KeyError:
        raise ValueError(f"Unknown disbursement status: {status}")


def is_ewallet(method: str) -> bool:
    return (method or "").lower() in EWALLET_METHODS


def parse_amount(value) -> Decimal:
    if value is None or value == "":
        raise ValueError("Amount is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid amount: {value}")
    if not amount.is_finite() or amount <= 0:
        raise ValueError("Please enter a valid amount")
    if amount > MAX_AMOUNT:
        raise ValueError(f"Amount must not exceed {MAX_AMOUNT}")
    return amount.quantize(Decimal("0.01"))


def available_balance(sales: Iterable[Decimal], withdrawals: Iterable[Decimal]) -> Decimal:
    """Seller balance: settled sales minus money already withdrawn or on its way out."""
    earned = sum(sales, Decimal("0.00"))
    withdrawn = sum(withdrawals, Decimal("0.00"))
    return earned - withdrawn


class Withdrawal:
    """Withdrawal aggregate root."""

    def __init__(
        self,
        user_id: UUID,
        amount: Decimal,
        method: str,
        account: str,
        name: str,
        status: WithdrawalStatus = WithdrawalStatus.PENDING,
        id: UUID | None = None,
    ):
        if amount <= 0:
            raise ValueError("Withdrawal amount must be positive")
        if not method or not account or not name:
            raise ValueError("Please fill in all withdrawal details")

        self.id = id or uuid4()
        self.user_id = user_id
        self.amount = amount
        self.method = method.lower()
        self.account = account
        self.name = name
        self._status = status

    @property
    def status(self) -> WithdrawalStatus:
        return self._status

    @property
    def external_id(self) -> str:
        """Reference sent to the disbursement gateway; also its idempotency key."""
        return f"wd-{self.id}"

    def complete(self) -> None:
        if self._status != WithdrawalStatus.PENDING:
            raise ValueError("Can only complete pending withdrawals")
        self._status = WithdrawalStatus.COMPLETED

    def reject(self) -> None:
        if self._status != WithdrawalStatus.PENDING:
            raise ValueError("Can only reject pending withdrawals")
        self._status = WithdrawalStatus.REJECTED

    def apply_disbursement_status(self, status: str) -> bool:
        """Apply a gateway status; returns True when the withdrawal changed."""
        target = map_disbursement_status(status)
        if target == self._status:
            return False
        if target == WithdrawalStatus.COMPLETED:
            self.complete()
        elif target == WithdrawalStatus.REJECTED:
            self.reject()
        else:
            # A pending report never re-opens a finished withdrawal
            return False
        return True
