"""
Unit tests for domain rules.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from django.test import SimpleTestCase

from market.domain.chat import group_threads
from market.domain.product import Listing, ProductCategory, ProductCondition, clean_listing_update
from market.domain.transaction import (
    Transaction,
    TransactionStatus,
    map_flip_bill_status,
    map_midtrans_status,
    new_order_id,
    seller_payout_amount,
)
from market.domain.withdrawal import (
    MAX_AMOUNT,
    Withdrawal,
    WithdrawalStatus,
    available_balance,
    is_ewallet,
    map_disbursement_status,
    parse_amount,
)


class ListingTest(SimpleTestCase):
    """Tests for product listing validation."""

    def valid_payload(self, **overrides):
        data = {
            "title": " Buku Kalkulus ",
            "description": "Edisi 9",
            "price": "75000",
            "condition": "like_new",
            "image_url": "https://cdn.example.com/kalkulus.jpg",
        }
        data.update(overrides)
        return data

    def test_from_payload_defaults_category(self):
        listing = Listing.from_payload(self.valid_payload())
        self.assertEqual(listing.title, "Buku Kalkulus")
        self.assertEqual(listing.price, Decimal("75000.00"))
        self.assertEqual(listing.condition, ProductCondition.LIKE_NEW)
        self.assertEqual(listing.category, ProductCategory.LAINNYA)

    def test_missing_fields_are_listed(self):
        with self.assertRaisesMessage(ValueError, "Missing required fields: title, image_url"):
            Listing.from_payload(self.valid_payload(title="", image_url=None))

    def test_non_positive_price_fails(self):
        with self.assertRaises(ValueError):
            Listing.from_payload(self.valid_payload(price="0"))
        with self.assertRaises(ValueError):
            Listing.from_payload(self.valid_payload(price="abc"))

    def test_unknown_condition_and_category_fail(self):
        with self.assertRaises(ValueError):
            Listing.from_payload(self.valid_payload(condition="broken"))
        with self.assertRaises(ValueError):
            Listing.from_payload(self.valid_payload(category="Makanan"))

    def test_clean_listing_update(self):
        changes = clean_listing_update({"price": "10", "category": "Buku"})
        self.assertEqual(changes, {"price": Decimal("10.00"), "category": "Buku"})
        with self.assertRaises(ValueError):
            clean_listing_update({"title": "  "})


class TransactionStatusTest(SimpleTestCase):
    """Tests for the transaction state machine and gateway mappings."""

    def make_transaction(self, status=TransactionStatus.PENDING):
        return Transaction(
            order_id="ORDER-1-abcdef",
            product_id=uuid4(),
            buyer_id=uuid4(),
            seller_id=uuid4(),
            amount=Decimal("100.00"),
            status=status,
        )

    def test_midtrans_mapping(self):
        self.assertEqual(map_midtrans_status("settlement"), TransactionStatus.COMPLETED)
        self.assertEqual(map_midtrans_status("capture", "accept"), TransactionStatus.COMPLETED)
        self.assertEqual(map_midtrans_status("capture"), TransactionStatus.COMPLETED)
        self.assertEqual(map_midtrans_status("capture", "challenge"), TransactionStatus.PENDING)
        self.assertEqual(map_midtrans_status("pending"), TransactionStatus.PENDING)
        for status in ("deny", "cancel", "expire", "failure"):
            self.assertEqual(map_midtrans_status(status), TransactionStatus.FAILED)
        for status in ("refund", "partial_refund", "chargeback", "partial_chargeback"):
            self.assertEqual(map_midtrans_status(status), TransactionStatus.REFUNDED)
        with self.assertRaises(ValueError):
            map_midtrans_status("authorize")

    def test_flip_mapping_is_case_insensitive(self):
        self.assertEqual(map_flip_bill_status("SUCCESSFUL"), TransactionStatus.COMPLETED)
        self.assertEqual(map_flip_bill_status("success"), TransactionStatus.COMPLETED)
        self.assertEqual(map_flip_bill_status("PENDING"), TransactionStatus.PENDING)
        self.assertEqual(map_flip_bill_status("expired"), TransactionStatus.FAILED)
        with self.assertRaises(ValueError):
            map_flip_bill_status("UNKNOWN")

    def test_pending_to_completed(self):
        tx = self.make_transaction()
        self.assertTrue(tx.apply_status(TransactionStatus.COMPLETED))
        self.assertEqual(tx.status, TransactionStatus.COMPLETED)

    def test_repeated_status_is_noop(self):
        tx = self.make_transaction(TransactionStatus.COMPLETED)
        self.assertFalse(tx.apply_status(TransactionStatus.COMPLETED))

    def test_completed_can_only_be_refunded(self):
        tx = self.make_transaction(TransactionStatus.COMPLETED)
        with self.assertRaises(ValueError):
            tx.apply_status(TransactionStatus.FAILED)
        self.assertTrue(tx.apply_status(TransactionStatus.REFUNDED))

    def test_terminal_statuses(self):
        for status in (TransactionStatus.FAILED, TransactionStatus.REFUNDED):
            tx = self.make_transaction(status)
            with self.assertRaises(ValueError):
                tx.apply_status(TransactionStatus.COMPLETED)

    def test_amount_must_be_positive(self):
        with self.assertRaises(ValueError):
            Transaction(
                order_id="ORDER-1",
                product_id=uuid4(),
                buyer_id=uuid4(),
                seller_id=uuid4(),
                amount=Decimal("0"),
            )

    def test_order_id_format(self):
        order_id = new_order_id(1700000000123)
        self.assertRegex(order_id, r"^ORDER-1700000000123-[0-9a-f]{6}$")
        self.assertNotEqual(order_id, new_order_id(1700000000123))

    def test_seller_payout_amount(self):
        self.assertEqual(seller_payout_amount(Decimal("150000.00"), Decimal("0.05")), Decimal("142500.00"))
        self.assertEqual(seller_payout_amount(Decimal("10.01"), Decimal("0.05")), Decimal("9.51"))


class WithdrawalTest(SimpleTestCase):
    """Tests for Withdrawal aggregate."""

    def make_withdrawal(self, **overrides):
        data = {
            "user_id": uuid4(),
            "amount": Decimal("50000.00"),
            "method": "BCA",
            "account": "1234567890",
            "name": "Budi",
        }
        data.update(overrides)
        return Withdrawal(**data)

    def test_method_is_lowercased(self):
        withdrawal = self.make_withdrawal()
        self.assertEqual(withdrawal.method, "bca")
        self.assertEqual(withdrawal.status, WithdrawalStatus.PENDING)
        self.assertEqual(withdrawal.external_id, f"wd-{withdrawal.id}")

    def test_missing_details_fail(self):
        with self.assertRaises(ValueError):
            self.make_withdrawal(account="")

    def test_parse_amount(self):
        self.assertEqual(parse_amount("1000"), Decimal("1000.00"))
        self.assertEqual(parse_amount(MAX_AMOUNT), MAX_AMOUNT)
        for value in ("", None, "-5", "0", "abc", "NaN", "1e400", "1000000000000"):
            with self.assertRaises(ValueError):
                parse_amount(value)

    def test_disbursement_status_mapping(self):
        for status in ("DONE", "success", "COMPLETED", "SUCCEEDED"):
            self.assertEqual(map_disbursement_status(status), WithdrawalStatus.COMPLETED)
        for status in ("PENDING", "ACCEPTED"):
            self.assertEqual(map_disbursement_status(status), WithdrawalStatus.PENDING)
        for status in ("CANCELLED", "FAILED"):
            self.assertEqual(map_disbursement_status(status), WithdrawalStatus.REJECTED)

    def test_apply_disbursement_status(self):
        withdrawal = self.make_withdrawal()
        self.assertFalse(withdrawal.apply_disbursement_status("PENDING"))
        self.assertTrue(withdrawal.apply_disbursement_status("DONE"))
        self.assertEqual(withdrawal.status, WithdrawalStatus.COMPLETED)
        # A late pending report does not reopen it
        self.assertFalse(withdrawal.apply_disbursement_status("PENDING"))
        with self.assertRaises(ValueError):
            withdrawal.apply_disbursement_status("CANCELLED")

    def test_reject_only_pending(self):
        withdrawal = self.make_withdrawal()
        withdrawal.reject()
        with self.assertRaises(ValueError):
            withdrawal.complete()

    def test_available_balance(self):
        balance = available_balance([Decimal("100.00"), Decimal("50.00")], [Decimal("30.00")])
        self.assertEqual(balance, Decimal("120.00"))
        self.assertEqual(available_balance([], []), Decimal("0.00"))

    def test_is_ewallet(self):
        self.assertTrue(is_ewallet("OVO"))
        self.assertFalse(is_ewallet("bca"))


class ChatThreadTest(SimpleTestCase):
    """Tests for grouping messages into threads."""

    def test_group_threads(self):
        me, alice, bob = uuid4(), uuid4(), uuid4()
        product_a, product_b = uuid4(), uuid4()
        now = datetime(2024, 5, 1, 12, 0)

        def msg(sender, receiver, product, text, minutes_ago, is_read=False):
            return SimpleNamespace(
                sender_id=sender,
                receiver_id=receiver,
                product_id=product,
                message=text,
                is_read=is_read,
                created_at=now - timedelta(minutes=minutes_ago),
            )

        messages = [
            msg(alice, me, product_a, "masih ada?", 1),
            msg(me, bob, product_b, "halo", 2),
            msg(alice, me, product_a, "halo kak", 3),
            msg(me, alice, product_a, "iya", 4, is_read=True),
            msg(alice, me, product_a, "read one", 5, is_read=True),
        ]

        threads = group_threads(messages, me)

        self.assertEqual(len(threads), 2)
        first, second = threads
        self.assertEqual((first.product_id, first.other_user_id), (product_a, alice))
        self.assertEqual(first.last_message, "masih ada?")
        self.assertEqual(first.unread_count, 2)
        self.assertEqual((second.product_id, second.other_user_id), (product_b, bob))
        self.assertEqual(second.unread_count, 0)
