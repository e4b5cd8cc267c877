"""
Relational store interface.

The portal's data lives in a hosted backend whose row-level security decides
what the signed-in owner may read. The messaging code only needs six typed
table operations, collected in the 'RelationalStore' ABC. Implementations
raise 'StoreError' when the backend cannot be reached or answers with an error.
A stored message row that does not validate is skipped on its own, the same way
the realtime path drops it, so one bad row never hides the rest of the history.

Concrete implementations: 'InMemoryRelationalStore', 'PostgrestRelationalStore'.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from loguru import logger
from pydantic import ValidationError

from vet_messaging.data_models.message import Message, MessageDraft
from vet_messaging.data_models.profile import ProfileRecord


def parse_message_rows(rows: Iterable[Mapping[str, Any]]) -> list[Message]:
    messages = []
    for row in rows:
        try:
            messages.append(Message.model_validate(row))
        except ValidationError as exc:
            logger.warning(f"Skipping malformed message row {row.get('id')!r}: {exc}")
    return messages


class RelationalStore(ABC):
    """Abstract repository over the 'client', 'users' and 'messages' tables."""

    @abstractmethod
    async def find_client_by_email(self, email: str) -> str | None:
        """Return the id of the 'client' record with this email, if any."""
        pass

    @abstractmethod
    async def list_messages(self, participant_ids: Iterable[str]) -> list[Message]:
        """Messages sent or received by any of 'participant_ids', oldest first."""
        pass

    @abstractmethod
    async def insert_message(self, draft: MessageDraft) -> None:
        pass

    @abstractmethod
    async def find_user_profiles(self, ids: Sequence[str]) -> list[ProfileRecord]:
        """Profiles for 'ids'. Ids without a row are simply absent from the result."""
        pass

    @abstractmethod
    async def find_clinic_staff(self, clinic_id: str, role: str | None = None) -> str | None:
        """
        One staff member of 'clinic_id'.

        With 'role', only users holding that role qualify; without it, any user
        of the clinic who is not a client does.
        """
        pass

    @abstractmethod
    async def find_user_clinic(self, user_id: str) -> str | None:
        pass
