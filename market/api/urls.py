from django.urls import path

from market.api import accounts, catalog, chat, payments, webhooks, withdrawals

urlpatterns = [
    path("auth/register", accounts.register, name="register"),
    path("auth/login", accounts.login, name="login"),
    path("auth/signout", accounts.signout, name="signout"),
    path("profile", accounts.profile, name="profile"),

    path("products", catalog.products, name="products"),
    path("my-products", catalog.my_products, name="my-products"),
    path("products/<uuid:product_id>", catalog.product_detail, name="product-detail"),
    path("products/<uuid:product_id>/sold", catalog.mark_sold, name="product-sold"),
    path("wishlist", catalog.wishlist, name="wishlist"),
    path("wishlist/<uuid:product_id>", catalog.wishlist_item, name="wishlist-item"),

    path("chat", chat.chat, name="chat"),
    path("chats", chat.chats, name="chats"),
    path("notifications", chat.notifications, name="notifications"),
    path("notifications/<int:notification_id>", chat.notification_detail, name="notification-detail"),

    path("create-transaction", payments.create_transaction, name="create-transaction"),
    path("payment-status", payments.payment_status, name="payment-status"),
    path("transactions", payments.transactions, name="transactions"),
    path("transactions/<str:order_id>", payments.transaction_detail, name="transaction-detail"),

    path("midtrans-webhook", webhooks.midtrans_webhook, name="midtrans-webhook"),
    path("flip-webhook", webhooks.flip_webhook, name="flip-webhook"),
    path("xendit-webhook", webhooks.xendit_webhook, name="xendit-webhook"),

    path("withdraw", withdrawals.withdraw, name="withdraw"),
    path("dashboard", withdrawals.dashboard, name="dashboard"),
    path("admin/withdrawals", withdrawals.admin_withdrawals, name="admin-withdrawals"),
    path(
        "admin/withdrawals/<uuid:withdrawal_id>/process",
        withdrawals.admin_process_withdrawal,
        name="admin-withdrawal-process",
    ),
    path(
        "admin/withdrawals/<uuid:withdrawal_id>/reject",
        withdrawals.admin_reject_withdrawal,
        name="admin-withdrawal-reject",
    ),
    path("admin/stats", withdrawals.admin_stats, name="admin-stats"),
]
