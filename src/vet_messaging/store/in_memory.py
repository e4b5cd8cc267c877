"""
In-memory relational store.

Tables are plain lists of row dicts shaped like the hosted tables, so rows can
be published to an 'InMemoryRealtimeFeed' exactly as the feed would deliver
them. Ids and 'created_at' are assigned on insert. 'fail_on' makes the named
operations raise 'StoreError', which is how tests exercise the degraded paths.
"""

from collections.abc import Iterable, Sequence
from datetime import timedelta
from typing import Any

from loguru import logger

from vet_messaging.data_models.message import Message, MessageDraft
from vet_messaging.data_models.profile import ProfileRecord
from vet_messaging.exceptions import StoreError
from vet_messaging.realtime.in_memory import InMemoryRealtimeFeed
from vet_messaging.store.base import RelationalStore, parse_message_rows
from vet_messaging.utils.database import generate_uid
from vet_messaging.utils.time import get_current_timestamp

CLIENT_ROLE = "client"


class InMemoryRelationalStore(RelationalStore):
    def __init__(
        self,
        feed: InMemoryRealtimeFeed | None = None,
        messages_table: str = "messages",
        client_role: str = CLIENT_ROLE,
    ) -> None:
        self.feed = feed
        self.messages_table = messages_table
        self.client_role = client_role
        self.clients: list[dict[str, Any]] = []
        self.users: list[dict[str, Any]] = []
        self.messages: list[dict[str, Any]] = []
        self.fail_on: set[str] = set()
        self.calls: list[tuple[str, Any]] = []

    def _record(self, operation: str, argument: Any) -> None:
        self.calls.append((operation, argument))
        if operation in self.fail_on:
            raise StoreError(operation, "injected failure")

    def calls_to(self, operation: str) -> list[Any]:
        return [argument for name, argument in self.calls if name == operation]

    def add_client(self, client_id: str, email: str) -> None:
        self.clients.append({"id": client_id, "email": email})

    def add_user(
        self,
        user_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
        clinic_id: str | None = None,
        avatar_url: str | None = None,
    ) -> None:
        self.users.append(
            {
                "id": user_id,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
                "clinic_id": clinic_id,
                "avatar_url": avatar_url,
            }
        )

    def add_message(self, sender_id: str, receiver_id: str, content: str, **row: Any) -> dict[str, Any]:
        """Seed a stored message without publishing it. Timestamps increase with each seed."""
        created_at = row.pop("created_at", None)
        if created_at is None:
            created_at = get_current_timestamp() + timedelta(microseconds=len(self.messages))
        stored = {
            "id": row.pop("id", generate_uid()),
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": content,
            "created_at": created_at,
            "is_read": row.pop("is_read", False),
        }
        self.messages.append(stored)
        return stored

    async def find_client_by_email(self, email: str) -> str | None:
        self._record("find_client_by_email", email)
        return next((client["id"] for client in self.clients if client["email"] == email), None)

    async def list_messages(self, participant_ids: Iterable[str]) -> list[Message]:
        ids = set(participant_ids)
        self._record("list_messages", ids)
        rows = [row for row in self.messages if row["sender_id"] in ids or row["receiver_id"] in ids]
        return sorted(parse_message_rows(rows), key=lambda m: m.created_at)

    async def insert_message(self, draft: MessageDraft) -> None:
        self._record("insert_message", draft)
        row = {
            "id": generate_uid(),
            **draft.model_dump(),
            "created_at": get_current_timestamp(),
        }
        self.messages.append(row)
        logger.debug(f"Inserted message {row['id']} from {draft.sender_id} to {draft.receiver_id}")
        if self.feed is not None:
            self.feed.publish(self.messages_table, row)

    async def find_user_profiles(self, ids: Sequence[str]) -> list[ProfileRecord]:
        self._record("find_user_profiles", list(ids))
        wanted = set(ids)
        return [ProfileRecord.model_validate(user) for user in self.users if user["id"] in wanted]

    async def find_clinic_staff(self, clinic_id: str, role: str | None = None) -> str | None:
        self._record("find_clinic_staff", (clinic_id, role))
        for user in self.users:
            if user["clinic_id"] != clinic_id:
                continue
            if role is not None and user["role"] == role:
                return user["id"]
            if role is None and user["role"] not in (None, self.client_role):
                return user["id"]
        return None

    async def find_user_clinic(self, user_id: str) -> str | None:
        self._record("find_user_clinic", user_id)
        return next((user["clinic_id"] for user in self.users if user["id"] == user_id), None)
