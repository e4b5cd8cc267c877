from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from vet_messaging.data_models.message import ClientMessage, Message, MessageDraft
from vet_messaging.data_models.profile import ParticipantProfile, ProfileRecord
from vet_messaging.profile_cache import ProfileCache
from vet_messaging.utils.database import is_provisional_id


def test_draft_strips_content():
    draft = MessageDraft(sender_id="u1", receiver_id="doc7", content="  hello \n")
    assert draft.content == "hello"
    assert draft.is_read is False


@pytest.mark.parametrize(
    "fields",
    [
        {"sender_id": "u1", "receiver_id": "doc7", "content": "   "},
        {"sender_id": "u1", "receiver_id": "u1", "content": "hello"},
    ],
)
def test_draft_rejects_invalid_messages(fields):
    with pytest.raises(ValidationError):
        MessageDraft(**fields)


def test_message_parses_store_row():
    message = Message.model_validate(
        {
            "id": "m1",
            "sender_id": "doc7",
            "receiver_id": "u1",
            "content": "Results are in",
            "created_at": "2026-03-01T09:00:00+00:00",
            "is_read": True,
        }
    )
    assert message.created_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert message.is_read


def test_message_row_defaults():
    message = Message.model_validate(
        {
            "id": "m1",
            "sender_id": "doc7",
            "receiver_id": "u1",
            "content": "Results are in",
            "created_at": "2026-03-01T09:00:00",
            "is_read": None,
        }
    )
    assert message.created_at == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert message.is_read is False


def test_messages_are_immutable():
    message = Message(
        id="m1", sender_id="doc7", receiver_id="u1", content="hi", created_at=datetime.now(timezone.utc)
    )
    with pytest.raises(ValidationError):
        message.content = "changed"


def test_provisional_ids_are_distinct_and_recognisable():
    draft = MessageDraft(sender_id="u1", receiver_id="doc7", content="hello")
    first = ClientMessage.provisional_from(draft)
    second = ClientMessage.provisional_from(draft)

    assert first.id != second.id
    assert is_provisional_id(first.id)
    assert not is_provisional_id("6f1c0a52-0000-4000-8000-000000000000")
    assert first.is_pending
    assert not first.model_copy(update={"delivery_failed": True}).is_pending


def test_profile_from_record_and_fallback():
    profile = ParticipantProfile.from_record(ProfileRecord(id="doc7", first_name="Emily", last_name="Carter", role="doctor"))
    assert profile.display_name == "Emily Carter"
    assert profile.role == "doctor"

    fallback = ParticipantProfile.fallback("ghost")
    assert (fallback.first_name, fallback.last_name) == ("Membre", "Clinique")
    assert fallback.display_name == "Membre de la clinique"


def test_profile_cache_missing_and_clear():
    cache = ProfileCache()
    cache.put(ParticipantProfile.fallback("a"))

    assert cache.missing(["a", "b", "b", "c"]) == ["b", "c"]
    assert cache.display_name("unknown") == "Membre de la clinique"

    cache.clear()
    assert len(cache) == 0
