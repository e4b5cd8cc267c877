"""
Conversation store adapter.

'ConversationStoreAdapter' is the boundary between the live session and the
relational store. It scopes every query to the caller's 'SelfIdentity', fills
the profile cache for participants it has not seen, decides who a message goes
to, and turns every store failure into a typed outcome. Nothing above this
layer handles collaborator exceptions.

Recipient resolution:
    1. reply to whoever spoke last (the most recent message not sent by "me");
    2. otherwise a doctor of the owner's clinic;
    3. otherwise any staff member of that clinic.
The clinic is taken from the caller when known, else from the owner's account.
"""

from collections.abc import Iterable, Sequence

from loguru import logger

from vet_messaging.data_models.identity import SelfIdentity
from vet_messaging.data_models.message import Message, MessageDraft
from vet_messaging.data_models.profile import PRIVILEGED_ROLE, ParticipantProfile
from vet_messaging.outcomes import FailureReason, FetchOutcome, SendOutcome, TargetOutcome
from vet_messaging.profile_cache import ProfileCache
from vet_messaging.store.base import RelationalStore


def is_relevant(message: Message, identity: SelfIdentity) -> bool:
    """A message belongs to the conversation if "me" sent or received it."""
    return identity.contains(message.sender_id) or identity.contains(message.receiver_id)


def reply_target(messages: Sequence[Message], identity: SelfIdentity) -> str | None:
    """Sender of the most recent message that was not sent by "me"."""
    for message in reversed(messages):
        if not identity.contains(message.sender_id):
            return message.sender_id
    return None


class ConversationStoreAdapter:
    def __init__(self, store: RelationalStore, privileged_role: str = PRIVILEGED_ROLE) -> None:
        self.store = store
        self.privileged_role = privileged_role

    async def fetch(self, identity: SelfIdentity, cache: ProfileCache) -> FetchOutcome:
        """
        Load the conversation for 'identity', oldest first.

        A failed load is reported as 'FETCH_FAILED', never as an empty
        conversation. Profiles of other senders are resolved before returning.
        """
        try:
            messages = await self.store.list_messages(identity.ids)
        except Exception as exc:
            logger.warning(f"Could not load messages for {identity.ids}: {exc}")
            return FetchOutcome.failure(FailureReason.FETCH_FAILED)

        messages = sorted(
            (message for message in messages if is_relevant(message, identity)),
            key=lambda m: m.created_at,
        )
        other_senders = [message.sender_id for message in messages if not identity.contains(message.sender_id)]
        await self.resolve_profiles(other_senders, cache)
        logger.debug(f"Loaded {len(messages)} messages for {identity.ids}")
        return FetchOutcome(messages=messages)

    async def resolve_profiles(
        self,
        participant_ids: Iterable[str],
        cache: ProfileCache,
        fallback: bool = True,
    ) -> list[str]:
        """
        Cache profiles for the ids in 'participant_ids' that are not cached yet.

        With 'fallback', ids the store has no row for (or all ids, if the lookup
        fails) get a placeholder profile. Returns the ids that were looked up.
        """
        missing = cache.missing(participant_ids)
        if not missing:
            return []

        try:
            records = await self.store.find_user_profiles(missing)
        except Exception as exc:
            logger.warning(f"Profile lookup failed for {missing}: {exc}")
            records = []

        for record in records:
            cache.put(ParticipantProfile.from_record(record))
        if fallback:
            for participant_id in missing:
                if participant_id not in cache:
                    cache.put(ParticipantProfile.fallback(participant_id))
        return missing

    async def resolve_target(
        self,
        messages: Sequence[Message],
        identity: SelfIdentity,
        clinic_id: str | None = None,
    ) -> TargetOutcome:
        target = reply_target(messages, identity)
        if target is None:
            target = await self._clinic_target(identity, clinic_id)
        if target is None:
            logger.warning(f"No recipient available for {identity.primary} (clinic={clinic_id!r})")
            return TargetOutcome.failure(FailureReason.NO_RECIPIENT)
        if identity.contains(target):
            return TargetOutcome.failure(FailureReason.SELF_ADDRESSED)
        return TargetOutcome(target_id=target)

    async def _clinic_target(self, identity: SelfIdentity, clinic_id: str | None) -> str | None:
        if clinic_id is None:
            try:
                clinic_id = await self.store.find_user_clinic(identity.primary)
            except Exception as exc:
                logger.warning(f"Clinic lookup failed for {identity.primary}: {exc}")
                return None
            if clinic_id is None:
                return None

        for role in (self.privileged_role, None):
            try:
                staff_id = await self.store.find_clinic_staff(clinic_id, role)
            except Exception as exc:
                logger.warning(f"Staff lookup failed for clinic {clinic_id} (role={role!r}): {exc}")
                continue
            if staff_id is not None:
                return staff_id
        return None

    async def send(
        self,
        identity: SelfIdentity,
        receiver_id: str,
        content: str,
        sender_id: str | None = None,
    ) -> SendOutcome:
        """
        Persist one message from 'sender_id' (default: the primary id) to 'receiver_id'.

        'sender_id' is chosen by the calling code: a sender outside 'identity'
        is a programming error and raises ValueError. 'receiver_id' comes from
        stored data (the resolved recipient): a receiver inside the self set
        returns a 'SELF_ADDRESSED' outcome, like blank content ('EMPTY_CONTENT')
        and a failed insert ('PERSIST_FAILED').
        """
        sender_id = sender_id or identity.primary
        if not identity.contains(sender_id):
            raise ValueError(f"Sender {sender_id!r} is not one of {identity.ids}")
        if identity.contains(receiver_id):
            return SendOutcome.failure(FailureReason.SELF_ADDRESSED)
        if not content.strip():
            return SendOutcome.failure(FailureReason.EMPTY_CONTENT)

        draft = MessageDraft(sender_id=sender_id, receiver_id=receiver_id, content=content)
        try:
            await self.store.insert_message(draft)
        except Exception as exc:
            logger.warning(f"Could not persist message from {sender_id} to {receiver_id}: {exc}")
            return SendOutcome.failure(FailureReason.PERSIST_FAILED, f"Your message could not be delivered: {exc}")
        return SendOutcome()
