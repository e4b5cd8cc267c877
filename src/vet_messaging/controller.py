"""
Live session controller (Facade).

'LiveSessionController' owns the conversation a signed-in pet owner sees. It
resolves the owner's identity, loads the conversation through the
'ConversationStoreAdapter', subscribes to inserts on the messages table, and
keeps the displayed list in sync while the owner sends and receives messages.

Session states:

    IDLE    - nobody signed in, nothing loaded.
    LOADING - identity resolved, conversation fetch in flight.
    READY   - conversation displayed, realtime subscription active.
    ERRORED - the fetch failed; left only by a reload or a grown identity.

Realtime rows are pushed by the feed into a 'MessageChannel' and processed one
at a time by a single drain task, in delivery order. Rows are de-duplicated by
id. The realtime echo of the owner's own message replaces the matching
provisional entry instead of being appended a second time.

A send that fails to persist keeps its provisional entry visible, marked
'delivery_failed', and sets 'last_error'.
"""

import asyncio
import contextlib
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import ValidationError

from vet_messaging.adapter import ConversationStoreAdapter, is_relevant
from vet_messaging.adapter import reply_target as find_reply_target
from vet_messaging.auth.base import IdentityProvider, SessionEvent, Subject
from vet_messaging.config import MessagingSettings
from vet_messaging.data_models.identity import SelfIdentity
from vet_messaging.data_models.message import ClientMessage, Message, MessageDraft
from vet_messaging.identity import IdentityResolver
from vet_messaging.outcomes import FailureReason, FetchOutcome, SendOutcome
from vet_messaging.profile_cache import ProfileCache
from vet_messaging.realtime.base import RealtimeFeed, Subscription
from vet_messaging.realtime.channel import MessageChannel


class SessionState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


class LiveSessionController:
    def __init__(
        self,
        adapter: ConversationStoreAdapter,
        resolver: IdentityResolver,
        feed: RealtimeFeed,
        cache: ProfileCache | None = None,
        settings: MessagingSettings | None = None,
    ):
        self.adapter = adapter
        self.resolver = resolver
        self.feed = feed
        self.settings = settings or MessagingSettings()
        self._cache = cache if cache is not None else ProfileCache()

        self._state = SessionState.IDLE
        self._subject: Subject | None = None
        self._identity: SelfIdentity | None = None
        self._messages: list[ClientMessage] = []
        self._seen_ids: set[str] = set()
        self._last_error: str | None = None

        self._provider: IdentityProvider | None = None
        self._channel: MessageChannel | None = None
        self._subscription: Subscription | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._resubscribe_task: asyncio.Task[None] | None = None
        self._resubscribed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> SelfIdentity | None:
        return self._identity

    @property
    def messages(self) -> list[ClientMessage]:
        return list(self._messages)

    @property
    def profiles(self) -> ProfileCache:
        return self._cache

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_live(self) -> bool:
        return self._subscription is not None

    @property
    def reply_target(self) -> str | None:
        if self._identity is None:
            return None
        return find_reply_target(self._messages, self._identity)

    def display_name(self, participant_id: str) -> str:
        return self._cache.display_name(participant_id)

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.info(f"Messaging session {self._state} -> {state}")
            self._state = state

    async def __aenter__(self) -> "LiveSessionController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.unbind()

    # Session lifecycle

    async def bind(self, provider: IdentityProvider) -> None:
        """Follow 'provider': start on sign-in, tear down on sign-out."""
        self._provider = provider
        provider.add_session_listener(self._on_session_change)
        subject = provider.get_current_subject()
        if subject is not None:
            await self.start(subject)

    async def unbind(self) -> None:
        if self._provider is not None:
            self._provider.remove_session_listener(self._on_session_change)
            self._provider = None
        await self.stop()

    async def _on_session_change(self, event: SessionEvent, subject: Subject | None) -> None:
        if event is SessionEvent.SIGNED_IN and subject is not None:
            await self.start(subject)
        elif event is SessionEvent.SIGNED_OUT:
            await self.stop()

    async def start(self, subject: Subject) -> FetchOutcome:
        if self._state is not SessionState.IDLE:
            await self.stop()
        self._subject = subject
        self._cache.clear()
        identity = await self.resolver.resolve(subject.subject_id, subject.email)
        return await self._load(identity)

    async def stop(self) -> None:
        """Release the subscription and forget everything about the session."""
        if self._subscription is not None:
            subscription, self._subscription = self._subscription, None
            try:
                await self.feed.unsubscribe(subscription)
            except Exception as exc:
                logger.warning(f"Could not release realtime subscription {subscription.id}: {exc}")
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        for task in (self._drain_task, self._resubscribe_task):
            if task is not None and task is not asyncio.current_task() and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._drain_task = None
        self._resubscribe_task = None
        self._resubscribed = False

        self._subject = None
        self._identity = None
        self._messages = []
        self._seen_ids = set()
        self._last_error = None
        self._cache.clear()
        self._set_state(SessionState.IDLE)

    async def _load(self, identity: SelfIdentity) -> FetchOutcome:
        self._identity = identity
        self._last_error = None
        self._set_state(SessionState.LOADING)

        # Own profiles are seeded without placeholders: an echo from an id with
        # no profile means the identity set cannot be trusted yet.
        await self.adapter.resolve_profiles(identity.ids, self._cache, fallback=False)
        outcome = await self.adapter.fetch(identity, self._cache)
        if not outcome.ok:
            self._last_error = outcome.detail
            self._set_state(SessionState.ERRORED)
            return outcome

        self._messages = self._merge_reloaded(outcome.messages)
        self._set_state(SessionState.READY)
        await self._ensure_subscribed()
        return outcome

    async def reload(self) -> FetchOutcome:
        """Re-fetch the conversation. A READY session stays READY throughout."""
        if self._identity is None:
            return FetchOutcome.failure(FailureReason.NOT_READY)
        if self._state is not SessionState.READY:
            return await self._load(self._identity)

        outcome = await self.adapter.fetch(self._identity, self._cache)
        if not outcome.ok:
            self._last_error = outcome.detail
            return outcome
        self._messages = self._merge_reloaded(outcome.messages)
        if self._subscription is None:
            # the next loss gets its own resubscription attempt
            self._resubscribed = False
        await self._ensure_subscribed()
        return outcome

    async def refresh_identity(self) -> SelfIdentity | None:
        """Re-run identity resolution and reload if the self set grew."""
        if self._subject is None or self._identity is None:
            return None
        resolved = await self.resolver.resolve(self._subject.subject_id, self._subject.email)
        grown = self._identity.with_linked(resolved.linked)
        if self._identity.covers(grown):
            return self._identity

        logger.info(f"Identity grew from {self._identity.ids} to {grown.ids}")
        self._identity = grown
        if self._state is SessionState.READY:
            await self.adapter.resolve_profiles(grown.ids, self._cache, fallback=False)
            await self.reload()
        else:
            await self._load(grown)
        return grown

    def _merge_reloaded(self, fetched: Sequence[Message]) -> list[ClientMessage]:
        """
        Combine a fresh fetch with what is already displayed.

        Live arrivals the fetch missed and failed sends are kept. A pending
        provisional entry is dropped once its stored copy shows up.
        """
        merged = [ClientMessage.from_message(message) for message in fetched]
        fetched_ids = {message.id for message in merged}
        candidates = [
            message
            for message in merged
            if message.id not in self._seen_ids
            and self._identity is not None
            and self._identity.contains(message.sender_id)
        ]
        for entry in self._messages:
            if entry.id in fetched_ids:
                continue
            if entry.is_pending:
                stored = next((message for message in candidates if entry.matches(message)), None)
                if stored is not None:
                    candidates.remove(stored)
                    continue
            merged.append(entry)
        self._seen_ids |= fetched_ids
        return sorted(merged, key=lambda m: m.created_at)

    # Realtime

    async def _ensure_subscribed(self) -> None:
        if self._subscription is not None:
            return
        if self._channel is None:
            self._channel = MessageChannel(self.settings.channel_maxsize)
        try:
            self._subscription = await self.feed.subscribe(
                self.settings.messages_table, self._channel.push, self._on_feed_error
            )
        except Exception as exc:
            logger.warning(f"Realtime subscription failed, live updates disabled until reload: {exc}")
            return
        logger.info(f"Subscribed to {self.settings.messages_table!r} inserts")
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain(self._channel))

    def _on_feed_error(self, error: Exception) -> None:
        logger.warning(f"Realtime subscription lost: {error}")
        self._subscription = None
        if self._state is not SessionState.READY:
            return
        if self._resubscribed:
            logger.warning("Realtime updates stopped until the next reload")
            return
        self._resubscribed = True
        self._resubscribe_task = asyncio.get_running_loop().create_task(self._ensure_subscribed())

    async def _drain(self, channel: MessageChannel) -> None:
        async for row in channel:
            try:
                await self._handle_row(row)
            except Exception:
                logger.exception(f"Failed to apply realtime row {row.get('id')!r}")
            finally:
                channel.task_done()

    async def _handle_row(self, row: dict[str, Any]) -> None:
        identity = self._identity
        if self._state is not SessionState.READY or identity is None:
            return
        try:
            message = Message.model_validate(row)
        except ValidationError as exc:
            logger.warning(f"Ignoring malformed realtime row {row.get('id')!r}: {exc}")
            return
        if not is_relevant(message, identity):
            return
        if message.id in self._seen_ids:
            logger.debug(f"Ignoring duplicate delivery of {message.id}")
            return

        if identity.contains(message.sender_id):
            if message.sender_id not in self._cache:
                logger.info(f"Echo from unprofiled self id {message.sender_id}, reloading conversation")
                await self.reload()
                return
            self._seen_ids.add(message.id)
            self._confirm(message)
            return

        self._seen_ids.add(message.id)
        self._messages.append(ClientMessage.from_message(message))
        if message.sender_id not in self._cache:
            await self.adapter.resolve_profiles([message.sender_id], self._cache)

    def _confirm(self, message: Message) -> None:
        for index, entry in enumerate(self._messages):
            if entry.is_pending and entry.matches(message):
                self._messages[index] = ClientMessage.from_message(message)
                return
        self._messages.append(ClientMessage.from_message(message))

    async def settle(self) -> None:
        """Wait until every realtime row received so far has been applied."""
        if self._resubscribe_task is not None:
            await self._resubscribe_task
        if self._channel is not None and self._drain_task is not None:
            await self._channel.join()

    # Sending

    def _fail(self, outcome: SendOutcome) -> SendOutcome:
        self._last_error = outcome.detail
        return outcome

    async def send(self, text: str, clinic_id: str | None = None) -> SendOutcome:
        identity = self._identity
        if self._state is not SessionState.READY or identity is None:
            return self._fail(SendOutcome.failure(FailureReason.NOT_READY))
        content = text.strip()
        if not content:
            return self._fail(SendOutcome.failure(FailureReason.EMPTY_CONTENT))

        target = await self.adapter.resolve_target(self._messages, identity, clinic_id)
        if not target.ok or target.target_id is None:
            return self._fail(SendOutcome.failure(target.reason or FailureReason.NO_RECIPIENT, target.detail))

        provisional = ClientMessage.provisional_from(
            MessageDraft(sender_id=identity.primary, receiver_id=target.target_id, content=content)
        )
        self._messages.append(provisional)

        outcome = await self.adapter.send(identity, target.target_id, content, sender_id=identity.primary)
        if not outcome.ok:
            failed = self._mark_failed(provisional)
            return self._fail(SendOutcome.failure(outcome.reason or FailureReason.PERSIST_FAILED, outcome.detail, message=failed))

        self._last_error = None
        if self.settings.refetch_after_send:
            await self.reload()
        return SendOutcome(message=provisional)

    def _mark_failed(self, provisional: ClientMessage) -> ClientMessage:
        failed = provisional.model_copy(update={"delivery_failed": True})
        for index, entry in enumerate(self._messages):
            if entry.id == provisional.id:
                self._messages[index] = failed
                break
        return failed
