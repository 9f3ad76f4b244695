from market.domain.transaction import Transaction, TransactionStatus
from market.domain.withdrawal import Withdrawal, WithdrawalStatus

__all__ = ["Transaction", "TransactionStatus", "Withdrawal", "WithdrawalStatus"]
