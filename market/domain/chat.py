"""
Grouping of chat messages into conversation threads.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol
from uuid import UUID


class ChatMessage(Protocol):
    product_id: UUID
    sender_id: UUID
    receiver_id: UUID
    message: str
    is_read: bool
    created_at: datetime


@dataclass
class ChatThread:
    """Conversation with one user about one product."""
    product_id: UUID
    other_user_id: UUID
    last_message: str
    last_message_time: datetime
    unread_count: int = 0

    @property
    def key(self) -> str:
        return f"{self.product_id}-{self.other_user_id}"


def group_threads(messages: Iterable[ChatMessage], user_id: UUID) -> list[ChatThread]:
    """
    Group a user's messages by (product, other participant).

    ``messages`` must be ordered newest first so the first message seen for a
    thread is its latest one.
    """
    threads: dict[tuple[UUID, UUID], ChatThread] = {}
    for msg in messages:
        other_user_id = msg.receiver_id if msg.sender_id == user_id else msg.sender_id
        unread = 1 if msg.receiver_id == user_id and not msg.is_read else 0
        key = (msg.product_id, other_user_id)

        thread = threads.get(key)
        if thread is None:
            threads[key] = ChatThread(
                product_id=msg.product_id,
                other_user_id=other_user_id,
                last_message=msg.message,
                last_message_time=msg.created_at,
                unread_count=unread,
            )
        else:
            thread.unread_count += unread

    return list(threads.values())
