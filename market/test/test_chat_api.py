"""
Integration tests for chat and notification routes.
"""
import json
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from market.infra.models import MessageORM, NotificationORM
from market.infra.outbox import OutboxEvent
from market.infra.projector import Projector
from market.test.helpers import login, make_product, make_user


class ChatTest(TestCase):

    def setUp(self):
        self.seller = make_user(name="Seller")
        self.buyer = make_user(name="Buyer")
        self.product = make_product(self.seller)

    def send(self, receiver, message="Masih ada kak?", product=None):
        return self.client.post(
            "/api/chat",
            data={
                "productId": str((product or self.product).id),
                "receiverId": str(receiver.id),
                "message": message,
            },
            content_type="application/json",
        )

    def test_send_message_queues_notification(self):
        login(self.client, self.buyer)
        response = self.send(self.seller)

        self.assertEqual(response.status_code, 201)
        msg = MessageORM.objects.get()
        self.assertEqual(msg.sender_id, self.buyer.id)
        self.assertEqual(msg.receiver_id, self.seller.id)

        event = OutboxEvent.objects.get(event_type="MessageSent")
        self.assertFalse(event.processed)

        Projector().process_outbox_events()
        notification = NotificationORM.objects.get(user=self.seller)
        self.assertEqual(notification.type, "chat")
        self.assertEqual(notification.link, f"/chat/{self.product.id}/{self.buyer.id}")
        self.assertIn(self.buyer.name, notification.body)

    def test_send_validation(self):
        login(self.client, self.buyer)
        self.assertEqual(self.send(self.seller, message="").status_code, 400)
        self.assertEqual(self.send(self.buyer).status_code, 400)

    def test_non_string_message(self):
        login(self.client, self.buyer)
        response = self.send(self.seller, message=123)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content)["error"]["code"], "VALIDATION_ERROR")
        self.assertFalse(MessageORM.objects.exists())

    def test_send_requires_login(self):
        self.assertEqual(self.send(self.seller).status_code, 401)

    def test_conversation_is_ordered_and_marks_read(self):
        base = timezone.now()
        first = MessageORM.objects.create(
            sender=self.buyer, receiver=self.seller, product=self.product, message="halo"
        )
        second = MessageORM.objects.create(
            sender=self.seller, receiver=self.buyer, product=self.product, message="iya"
        )
        MessageORM.objects.filter(id=first.id).update(created_at=base - timedelta(minutes=2))
        MessageORM.objects.filter(id=second.id).update(created_at=base - timedelta(minutes=1))
        # Unrelated thread
        MessageORM.objects.create(
            sender=self.buyer, receiver=self.seller, product=make_product(self.seller), message="lain"
        )

        login(self.client, self.seller)
        response = self.client.get("/api/chat", {"productId": str(self.product.id), "userId": str(self.buyer.id)})

        self.assertEqual(response.status_code, 200)
        messages = json.loads(response.content)["messages"]
        self.assertEqual([m["message"] for m in messages], ["halo", "iya"])
        self.assertEqual(messages[0]["sender"]["name"], self.buyer.name)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertTrue(first.is_read)
        self.assertFalse(second.is_read)

    def test_conversation_requires_params(self):
        login(self.client, self.seller)
        self.assertEqual(self.client.get("/api/chat", {"productId": str(self.product.id)}).status_code, 400)

    def test_chat_list(self):
        other_product = make_product(self.seller, title="Meja Belajar")
        base = timezone.now()
        for minutes, product, text in ((3, self.product, "lama"), (2, self.product, "baru"), (1, other_product, "meja?")):
            msg = MessageORM.objects.create(sender=self.buyer, receiver=self.seller, product=product, message=text)
            MessageORM.objects.filter(id=msg.id).update(created_at=base - timedelta(minutes=minutes))

        login(self.client, self.seller)
        chats = json.loads(self.client.get("/api/chats").content)["chats"]

        self.assertEqual(len(chats), 2)
        self.assertEqual(chats[0]["product_title"], "Meja Belajar")
        self.assertEqual(chats[0]["unread_count"], 1)
        self.assertEqual(chats[1]["last_message"], "baru")
        self.assertEqual(chats[1]["unread_count"], 2)
        self.assertEqual(chats[1]["other_user_name"], self.buyer.name)


class NotificationTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.other = make_user()
        self.notification = NotificationORM.objects.create(user=self.user, type="transaction", title="Hi")
        self.foreign = NotificationORM.objects.create(user=self.other, type="chat", title="Not yours")
        login(self.client, self.user)

    def test_list_only_own(self):
        data = json.loads(self.client.get("/api/notifications").content)
        self.assertEqual([n["title"] for n in data["notifications"]], ["Hi"])
        self.assertEqual(data["unread_count"], 1)

    def test_mark_read(self):
        response = self.client.post(f"/api/notifications/{self.notification.id}")
        self.assertEqual(response.status_code, 200)
        self.notification.refresh_from_db()
        self.assertTrue(self.notification.is_read)

    def test_delete(self):
        self.assertEqual(self.client.delete(f"/api/notifications/{self.notification.id}").status_code, 200)
        self.assertFalse(NotificationORM.objects.filter(id=self.notification.id).exists())

    def test_cannot_touch_other_users_notification(self):
        self.assertEqual(self.client.post(f"/api/notifications/{self.foreign.id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/notifications/{self.foreign.id}").status_code, 404)
