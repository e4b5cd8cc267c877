import pytest

from vet_messaging.adapter import ConversationStoreAdapter
from vet_messaging.config import MessagingSettings
from vet_messaging.controller import LiveSessionController
from vet_messaging.data_models.identity import SelfIdentity
from vet_messaging.identity import IdentityResolver
from vet_messaging.profile_cache import ProfileCache
from vet_messaging.realtime.in_memory import InMemoryRealtimeFeed
from vet_messaging.store.in_memory import InMemoryRelationalStore


@pytest.fixture
def feed():
    """Realtime feed that delivers inserts synchronously"""
    return InMemoryRealtimeFeed()


@pytest.fixture
def store(feed):
    """Empty in-memory store publishing inserts to the feed"""
    return InMemoryRelationalStore(feed=feed)


@pytest.fixture
def clinic_store(store):
    """Store with one clinic: a doctor, an assistant and the owner u1"""
    store.add_user("u1", "Jane", "Doe", role="client", clinic_id="clinic1")
    store.add_user("doc7", "Emily", "Carter", role="doctor", clinic_id="clinic1")
    store.add_user("desk1", "Front", "Desk", role="assistant", clinic_id="clinic1")
    return store


@pytest.fixture
def adapter(store):
    return ConversationStoreAdapter(store)


@pytest.fixture
def cache():
    return ProfileCache()


@pytest.fixture
def me():
    return SelfIdentity(primary="u1")


@pytest.fixture
def make_controller(store, feed):
    """Factory for controllers over the shared store and feed"""

    def factory(**settings):
        return LiveSessionController(
            adapter=ConversationStoreAdapter(store),
            resolver=IdentityResolver(store),
            feed=feed,
            settings=MessagingSettings(**settings),
        )

    return factory
