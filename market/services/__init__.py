from market.services.accounts import AccountService
from market.services.catalog import CatalogService
from market.services.chat import ChatService, NotificationService
from market.services.compensation import RefundService
from market.services.payments import PaymentService
from market.services.withdrawals import WithdrawalService

__all__ = [
    "AccountService",
    "CatalogService",
    "ChatService",
    "NotificationService",
    "PaymentService",
    "RefundService",
    "WithdrawalService",
]
