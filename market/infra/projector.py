"""
Projector turning outbox events into user notifications.
"""
from __future__ import annotations

import logging
from uuid import UUID

from django.db import transaction

from market.infra.models import NotificationORM
from market.infra.outbox import OutboxEvent, OutboxRepository


logger = logging.getLogger(__name__)


class Projector:
    """Projector for updating notifications from domain events."""

    def __init__(self, outbox_repo: OutboxRepository | None = None):
        self.outbox_repo = outbox_repo or OutboxRepository()
        self._handlers = {
            "PaymentCompleted": self._handle_payment_completed,
            "PaymentRefunded": self._handle_payment_refunded,
            "SellerPayoutFailed": self._handle_seller_payout_failed,
            "MessageSent": self._handle_message_sent,
            "WithdrawalCompleted": self._handle_withdrawal_completed,
            "WithdrawalRejected": self._handle_withdrawal_rejected,
        }

    def process_outbox_events(self, limit: int = 100) -> int:
        """Process unprocessed outbox events."""
        events = self.outbox_repo.get_unprocessed_events(limit=limit)
        processed_count = 0

        for event_orm in events:
            try:
                with transaction.atomic():
                    self._process_event(event_orm)
                    self.outbox_repo.mark_processed(event_orm.id)
                processed_count += 1
            except Exception as e:
                # Increment retry count, log error and continue processing
                self.outbox_repo.increment_retry(event_orm.id, f"{type(e).__name__}: {e}")
                logger.error(
                    "projector_error",
                    extra={
                        "event_id": str(event_orm.id),
                        "event_type": event_orm.event_type,
                        "error": str(e),
                    },
                    exc_info=True,
                )

        return processed_count

    def _process_event(self, event_orm: OutboxEvent) -> None:
        """Process single event."""
        handler = self._handlers.get(event_orm.event_type)
        if handler is None:
            logger.warning("projector_unknown_event", extra={"event_type": event_orm.event_type})
            return
        handler(event_orm.event_data)

    def _notify(self, user_id: str, type: str, title: str, body: str, link: str = "") -> None:
        NotificationORM.objects.create(
            user_id=UUID(user_id),
            type=type,
            title=title,
            body=body,
            link=link,
        )

    def _handle_payment_completed(self, event_data: dict) -> None:
        """Handle PaymentCompleted event."""
        link = f"/transactions/{event_data['order_id']}"
        self._notify(
            event_data["buyer_id"],
            "transaction",
            "Pembayaran Berhasil",
            "Transaksi Anda telah berhasil dan produk siap diambil.",
            link,
        )
        if event_data.get("gateway") == "flip":
            seller_body = "Produk Anda telah terjual dan pembayaran akan diproses dalam 1x24 jam."
        else:
            seller_body = "Produk Anda telah terjual dan pembayaran sudah diterima."
        self._notify(event_data["seller_id"], "transaction", "Produk Terjual", seller_body, link)

    def _handle_payment_refunded(self, event_data: dict) -> None:
        """Handle PaymentRefunded event."""
        link = f"/transactions/{event_data['order_id']}"
        self._notify(
            event_data["buyer_id"],
            "transaction",
            "Dana Dikembalikan",
            f"Pembayaran untuk pesanan {event_data['order_id']} telah dikembalikan.",
            link,
        )
        self._notify(
            event_data["seller_id"],
            "transaction",
            "Transaksi Dibatalkan",
            "Pembayaran produk Anda dikembalikan ke pembeli. Produk ditampilkan kembali.",
            link,
        )

    def _handle_seller_payout_failed(self, event_data: dict) -> None:
        """Handle SellerPayoutFailed event."""
        self._notify(
            event_data["seller_id"],
            "withdrawal",
            "Pencairan Gagal",
            "Pencairan otomatis gagal. Periksa data rekening penarikan Anda.",
            "/dashboard",
        )

    def _handle_message_sent(self, event_data: dict) -> None:
        """Handle MessageSent event."""
        self._notify(
            event_data["receiver_id"],
            "chat",
            "Pesan Baru",
            f"New message from {event_data['sender_name']}",
            f"/chat/{event_data['product_id']}/{event_data['sender_id']}",
        )

    def _handle_withdrawal_completed(self, event_data: dict) -> None:
        """Handle WithdrawalCompleted event."""
        self._notify(
            event_data["user_id"],
            "withdrawal",
            "Penarikan Berhasil",
            f"Penarikan sebesar Rp {event_data['amount']} telah diproses.",
            "/dashboard",
        )

    def _handle_withdrawal_rejected(self, event_data: dict) -> None:
        """Handle WithdrawalRejected event."""
        body = f"Penarikan sebesar Rp {event_data['amount']} ditolak."
        if event_data.get("reason"):
            body = f"{body} {event_data['reason']}"
        self._notify(event_data["user_id"], "withdrawal", "Penarikan Ditolak", body, "/dashboard")
