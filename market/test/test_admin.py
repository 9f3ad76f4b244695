"""
Tests for the withdrawal admin actions.
"""
from decimal import Decimal
from unittest import mock

from django.contrib import admin, messages
from django.test import RequestFactory, TestCase, override_settings

from market.admin import WithdrawalAdmin
from market.infra.models import WithdrawalORM
from market.infra.outbox import OutboxEvent
from market.test.helpers import make_product, make_transaction, make_user


@override_settings(DISBURSEMENT_GATEWAY="manual", WITHDRAWAL_AUTO_DISBURSE=False)
class WithdrawalAdminActionsTest(TestCase):

    def setUp(self):
        seller = make_user(name="Seller")
        make_transaction(make_product(seller, is_sold=True), make_user(name="Buyer"), status="completed")
        self.pending = self.make_withdrawal(seller, "40000.00")
        self.other = self.make_withdrawal(seller, "10000.00")
        self.model_admin = WithdrawalAdmin(WithdrawalORM, admin.site)
        self.request = RequestFactory().post("/admin/market/withdrawalorm/")
        self.request.user = mock.Mock(pk=7)

    def make_withdrawal(self, seller, amount, **fields):
        return WithdrawalORM.objects.create(
            user=seller,
            amount=Decimal(amount),
            withdrawal_method="bca",
            withdrawal_account="1234567890",
            withdrawal_name="Seller",
            **fields,
        )

    def run_action(self, name, queryset):
        with mock.patch.object(self.model_admin, "message_user") as message_user:
            getattr(self.model_admin, name)(self.request, queryset)
        return message_user

    def test_actions_are_registered(self):
        self.assertEqual(self.model_admin.actions, ("process_withdrawals", "reject_withdrawals"))

    def test_process_selected(self):
        message_user = self.run_action("process_withdrawals", WithdrawalORM.objects.all())

        statuses = set(WithdrawalORM.objects.values_list("status", flat=True))
        self.assertEqual(statuses, {"completed"})
        self.assertTrue(OutboxEvent.objects.filter(event_type="WithdrawalCompleted").exists())
        message_user.assert_called_once_with(self.request, "2 withdrawal(s) processed", level=messages.SUCCESS)

    def test_reject_selected(self):
        message_user = self.run_action("reject_withdrawals", WithdrawalORM.objects.filter(id=self.pending.id))

        self.pending.refresh_from_db()
        self.other.refresh_from_db()
        self.assertEqual(self.pending.status, "rejected")
        self.assertEqual(self.other.status, "pending")
        message_user.assert_called_once_with(self.request, "1 withdrawal(s) rejected", level=messages.SUCCESS)

    def test_non_pending_withdrawal_reports_error(self):
        WithdrawalORM.objects.filter(id=self.other.id).update(status="rejected")

        message_user = self.run_action("process_withdrawals", WithdrawalORM.objects.order_by("amount"))

        self.pending.refresh_from_db()
        self.assertEqual(self.pending.status, "completed")
        self.assertEqual(message_user.call_count, 2)
        error_call, success_call = message_user.call_args_list
        self.assertTrue(error_call.args[1].startswith(f"{self.other.id}: "))
        self.assertEqual(error_call.kwargs["level"], messages.ERROR)
        self.assertEqual(success_call.args[1], "1 withdrawal(s) processed")

    def test_nothing_done_sends_only_errors(self):
        WithdrawalORM.objects.update(status="completed")

        message_user = self.run_action("reject_withdrawals", WithdrawalORM.objects.all())

        self.assertEqual(message_user.call_count, 2)
        for call in message_user.call_args_list:
            self.assertEqual(call.kwargs["level"], messages.ERROR)
