from django.contrib import admin, messages

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
from market.infra.outbox import OutboxEvent
from market.services.withdrawals import WithdrawalService


@admin.register(UserORM)
class UserAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "email", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("name", "email")
    exclude = ("password",)


@admin.register(ProductORM)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "seller", "price", "condition", "category", "is_sold", "created_at")
    list_filter = ("is_sold", "condition", "category")
    search_fields = ("title", "seller__name")


@admin.register(WishlistORM)
class WishlistAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "product", "created_at")


@admin.register(MessageORM)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "sender", "receiver", "product", "is_read", "created_at")
    list_filter = ("is_read",)


@admin.register(NotificationORM)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "type", "title", "is_read", "created_at")
    list_filter = ("type", "is_read")


@admin.register(TransactionORM)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("order_id", "buyer", "seller", "amount", "status", "gateway", "seller_payment_status", "created_at")
    list_filter = ("status", "gateway", "seller_payment_status")
    search_fields = ("order_id", "buyer__name", "seller__name")
    readonly_fields = ("payment_details", "seller_payment_details")


@admin.register(WithdrawalORM)
class WithdrawalAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "amount", "status", "withdrawal_method", "gateway", "disbursement_status", "created_at")
    list_filter = ("status", "gateway")
    search_fields = ("user__name", "user__email", "external_id")
    readonly_fields = ("disbursement_response",)
    actions = ("process_withdrawals", "reject_withdrawals")

    @admin.action(description="Process selected pending withdrawals")
    def process_withdrawals(self, request, queryset):
        self._run(request, queryset, "process_withdrawal", "processed")

    @admin.action(description="Reject selected pending withdrawals")
    def reject_withdrawals(self, request, queryset):
        self._run(request, queryset, "reject_withdrawal", "rejected")

    def _run(self, request, queryset, method: str, verb: str):
        service = WithdrawalService()
        actor = f"staff:{request.user.pk}"
        done = 0
        for withdrawal in queryset:
            try:
                getattr(service, method)(withdrawal.id, actor=actor)
                done += 1
            except ServiceError as e:
                self.message_user(request, f"{withdrawal.id}: {e.message}", level=messages.ERROR)
        if done:
            self.message_user(request, f"{done} withdrawal(s) {verb}", level=messages.SUCCESS)


@admin.register(IdempotencyKey)
class IdempotencyAdmin(admin.ModelAdmin):
    list_display = ("key", "user_id", "operation", "created_at")
    list_filter = ("operation", "created_at")
    search_fields = ("key", "user_id")


@admin.register(OutboxEvent)
class OutboxEventAdmin(admin.ModelAdmin):
    list_display = ("id", "event_type", "aggregate_type", "processed", "retry_count", "created_at")
    list_filter = ("processed", "event_type")
    readonly_fields = ("event_data", "last_error")
