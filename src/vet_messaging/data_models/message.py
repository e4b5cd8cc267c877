"""
Message data models.

'Message' mirrors a row of the 'messages' table: it is immutable once created and
always addressed between two different participants. 'MessageDraft' is the
insert payload (the store assigns 'id' and 'created_at'). 'ClientMessage' is the
entry the live session displays; it adds the optimistic-send bookkeeping
('provisional', 'delivery_failed') that never reaches the store.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from vet_messaging.utils.database import generate_provisional_id, is_provisional_id
from vet_messaging.utils.time import get_current_timestamp


class MessageDraft(BaseModel):
    """A message about to be persisted."""

    model_config = ConfigDict(frozen=True)

    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False

    @field_validator("is_read", mode="before")
    @classmethod
    def _unread_by_default(cls, value: object) -> object:
        return False if value is None else value

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message content must not be empty")
        return value

    @model_validator(mode="after")
    def _distinct_participants(self) -> "MessageDraft":
        if self.sender_id == self.receiver_id:
            raise ValueError("A message cannot be addressed to its own sender")
        return self


class Message(MessageDraft):
    """
    A persisted message.

    'created_at' is server-assigned for stored rows and client-assigned for
    provisional ones; the conversation is read oldest first. Naive timestamps
    are taken to be UTC so stored and provisional entries always compare.
    """

    id: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ClientMessage(Message):
    provisional: bool = False
    delivery_failed: bool = False

    @classmethod
    def from_message(cls, message: Message) -> "ClientMessage":
        return cls(**message.model_dump())

    @classmethod
    def provisional_from(cls, draft: MessageDraft) -> "ClientMessage":
        return cls(
            id=generate_provisional_id(),
            sender_id=draft.sender_id,
            receiver_id=draft.receiver_id,
            content=draft.content,
            is_read=draft.is_read,
            created_at=get_current_timestamp(),
            provisional=True,
        )

    @property
    def is_pending(self) -> bool:
        return self.provisional and not self.delivery_failed and is_provisional_id(self.id)

    def matches(self, message: Message) -> bool:
        """True when 'message' is the stored copy of this provisional entry."""
        return (
            self.sender_id == message.sender_id
            and self.receiver_id == message.receiver_id
            and self.content == message.content
        )
