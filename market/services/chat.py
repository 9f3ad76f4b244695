"""
Chat services: product conversations and the notification inbox.
"""
from __future__ import annotations

import logging
from uuid import uuid4

from django.db import transaction

from market.domain.chat import ChatThread, group_threads
from market.domain.events import MessageSent
from market.errors import ServiceError
from market.infra.models import MessageORM, NotificationORM, ProductORM, UserORM
from market.infra.outbox import OutboxRepository
from market.infra.repositories import (
    MessageRepository,
    NotificationRepository,
    ProductRepository,
    UserRepository,
)


logger = logging.getLogger(__name__)


class ChatService:
    """Service for chat messages."""

    def __init__(
        self,
        message_repo: MessageRepository | None = None,
        product_repo: ProductRepository | None = None,
        user_repo: UserRepository | None = None,
        outbox_repo: OutboxRepository | None = None,
    ):
        self.message_repo = message_repo or MessageRepository()
        self.product_repo = product_repo or ProductRepository()
        self.user_repo = user_repo or UserRepository()
        self.outbox_repo = outbox_repo or OutboxRepository()

    @transaction.atomic
    def send_message(self, sender: UserORM, product_id, receiver_id, message: str) -> MessageORM:
        if message is not None and not isinstance(message, str):
            raise ServiceError("message must be a string")
        message = (message or "").strip()
        if not product_id or not receiver_id or not message:
            raise ServiceError("Missing required fields")

        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise ServiceError("Product not found", "NOT_FOUND")
        receiver = self.user_repo.get_by_id(receiver_id)
        if receiver is None:
            raise ServiceError("Receiver not found", "NOT_FOUND")
        if receiver.id == sender.id:
            raise ServiceError("You cannot send a message to yourself")

        msg = self.message_repo.create(sender.id, receiver.id, product.id, message)

        event = MessageSent(
            event_id=uuid4(),
            aggregate_id=product.id,
            event_type="MessageSent",
            product_id=product.id,
            sender_id=sender.id,
            receiver_id=receiver.id,
            sender_name=sender.name,
        )
        self.outbox_repo.add_event(event, "Message")

        logger.info(
            "message_sent",
            extra={"product_id": str(product.id), "user_id": str(sender.id)},
        )
        return msg

    @transaction.atomic
    def get_conversation(self, user: UserORM, product_id, other_user_id) -> list[MessageORM]:
        """Messages about a product between the user and ``other_user_id``; marks incoming ones read."""
        if not product_id or not other_user_id:
            raise ServiceError("Missing required parameters")

        messages = self.message_repo.conversation(user.id, other_user_id, product_id)
        marked = self.message_repo.mark_read(user.id, other_user_id, product_id)
        if marked:
            for msg in messages:
                if msg.receiver_id == user.id:
                    msg.is_read = True
        return messages

    def list_chats(self, user: UserORM) -> list[dict]:
        """One entry per (product, other user), newest thread first."""
        threads: list[ChatThread] = group_threads(self.message_repo.for_user(user.id), user.id)
        if not threads:
            return []

        products = ProductORM.objects.in_bulk({t.product_id for t in threads})
        users = UserORM.objects.in_bulk({t.other_user_id for t in threads})

        result = []
        for thread in threads:
            product = products.get(thread.product_id)
            other = users.get(thread.other_user_id)
            result.append({
                "key": thread.key,
                "product_id": thread.product_id,
                "product_title": product.title if product else "",
                "product_image": product.image_url if product else "",
                "other_user_id": thread.other_user_id,
                "other_user_name": other.name if other else "",
                "last_message": thread.last_message,
                "last_message_time": thread.last_message_time,
                "unread_count": thread.unread_count,
            })
        return result


class NotificationService:
    """Service for a user's notifications."""

    def __init__(self, notification_repo: NotificationRepository | None = None):
        self.notification_repo = notification_repo or NotificationRepository()

    def list_notifications(self, user: UserORM) -> list[NotificationORM]:
        return self.notification_repo.list_for_user(user.id)

    def unread_count(self, user: UserORM) -> int:
        return self.notification_repo.unread_count(user.id)

    def mark_read(self, user: UserORM, notification_id) -> NotificationORM:
        notification = self._get_own(user, notification_id)
        if not notification.is_read:
            self.notification_repo.mark_read(notification)
        return notification

    def delete(self, user: UserORM, notification_id) -> None:
        notification = self._get_own(user, notification_id)
        self.notification_repo.delete(notification)

    def _get_own(self, user: UserORM, notification_id) -> NotificationORM:
        notification = self.notification_repo.get_for_user(notification_id, user.id)
        if notification is None:
            raise ServiceError("Notification not found", "NOT_FOUND")
        return notification
