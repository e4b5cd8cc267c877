"""
Clinic messaging for the veterinary client portal.

The subsystem is built bottom-up from pluggable collaborators:

    from vet_messaging import (
        InMemoryRelationalStore, InMemoryRealtimeFeed,
        IdentityResolver, ConversationStoreAdapter, LiveSessionController,
    )

'PostgrestRelationalStore' (in 'vet_messaging.store.postgrest') talks to the
hosted backend over HTTP; the in-memory implementations back tests and the demo.
"""

from vet_messaging.adapter import ConversationStoreAdapter, is_relevant, reply_target
from vet_messaging.auth.base import IdentityProvider, SessionEvent, Subject
from vet_messaging.auth.in_memory import InMemoryIdentityProvider
from vet_messaging.config import MessagingSettings, load_settings
from vet_messaging.controller import LiveSessionController, SessionState
from vet_messaging.data_models.identity import SelfIdentity
from vet_messaging.data_models.message import ClientMessage, Message, MessageDraft
from vet_messaging.data_models.profile import ParticipantProfile, ProfileRecord
from vet_messaging.exceptions import MessagingError, StoreError, SubscriptionError
from vet_messaging.identity import IdentityResolver
from vet_messaging.outcomes import FailureReason, FetchOutcome, SendOutcome, TargetOutcome
from vet_messaging.profile_cache import ProfileCache
from vet_messaging.realtime.base import RealtimeFeed, Subscription
from vet_messaging.realtime.channel import MessageChannel
from vet_messaging.realtime.in_memory import InMemoryRealtimeFeed
from vet_messaging.store.base import RelationalStore
from vet_messaging.store.in_memory import InMemoryRelationalStore

__all__ = [
    "ClientMessage",
    "ConversationStoreAdapter",
    "FailureReason",
    "FetchOutcome",
    "IdentityProvider",
    "IdentityResolver",
    "InMemoryIdentityProvider",
    "InMemoryRealtimeFeed",
    "InMemoryRelationalStore",
    "LiveSessionController",
    "Message",
    "MessageChannel",
    "MessageDraft",
    "MessagingError",
    "MessagingSettings",
    "ParticipantProfile",
    "ProfileCache",
    "ProfileRecord",
    "RealtimeFeed",
    "RelationalStore",
    "SelfIdentity",
    "SendOutcome",
    "SessionEvent",
    "SessionState",
    "StoreError",
    "Subject",
    "Subscription",
    "SubscriptionError",
    "TargetOutcome",
    "is_relevant",
    "load_settings",
    "reply_target",
]
