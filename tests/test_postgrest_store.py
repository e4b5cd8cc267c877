import asyncio
import json

import httpx
import pytest

from vet_messaging.config import MessagingSettings
from vet_messaging.data_models.message import MessageDraft
from vet_messaging.exceptions import StoreError
from vet_messaging.store.postgrest import PostgrestRelationalStore

SETTINGS = MessagingSettings(supabase_url="https://clinic.supabase.co/", supabase_key="anon-key")


def make_store(handler):
    requests = []

    def recording_handler(request):
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler), base_url=SETTINGS.rest_url)
    return PostgrestRelationalStore(SETTINGS, client=client), requests


def test_list_messages_builds_or_filter():
    rows = [
        {
            "id": "m1",
            "sender_id": "doc7",
            "receiver_id": "u1",
            "content": "Results are in",
            "created_at": "2026-03-01T09:00:00+00:00",
            "is_read": False,
        }
    ]
    store, requests = make_store(lambda request: httpx.Response(200, json=rows))

    messages = asyncio.run(store.list_messages(["u1", "c9"]))

    assert [m.id for m in messages] == ["m1"]
    request = requests[0]
    assert request.url.path == "/rest/v1/messages"
    assert request.url.params["or"] == '(sender_id.in.("u1","c9"),receiver_id.in.("u1","c9"))'
    assert request.url.params["order"] == "created_at.asc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"


def test_insert_message_posts_unread_row():
    store, requests = make_store(lambda request: httpx.Response(201))

    asyncio.run(store.insert_message(MessageDraft(sender_id="u1", receiver_id="doc7", content="hello")))

    request = requests[0]
    assert request.method == "POST"
    assert request.headers["prefer"] == "return=minimal"
    assert json.loads(request.content) == {
        "sender_id": "u1",
        "receiver_id": "doc7",
        "content": "hello",
        "is_read": False,
    }


def test_find_client_by_email():
    store, requests = make_store(lambda request: httpx.Response(200, json=[{"id": "c9"}]))

    assert asyncio.run(store.find_client_by_email("a+pets@x.com")) == "c9"
    assert requests[0].url.path == "/rest/v1/client"
    assert requests[0].url.params["email"] == "eq.a+pets@x.com"


def test_find_clinic_staff_filters_by_role():
    store, requests = make_store(lambda request: httpx.Response(200, json=[]))

    async def scenario():
        doctor = await store.find_clinic_staff("clinic1", "doctor")
        anyone = await store.find_clinic_staff("clinic1")
        return doctor, anyone

    assert asyncio.run(scenario()) == (None, None)
    assert requests[0].url.params["role"] == "eq.doctor"
    assert requests[1].url.params["role"] == "neq.client"
    assert requests[1].url.params["clinic_id"] == "eq.clinic1"


def test_find_user_profiles_and_clinic():
    def handler(request):
        if request.url.params["select"] == "clinic_id":
            return httpx.Response(200, json=[{"clinic_id": "clinic1"}])
        return httpx.Response(200, json=[{"id": "doc7", "first_name": "Emily", "last_name": None, "role": "doctor"}])

    store, requests = make_store(handler)

    async def scenario():
        profiles = await store.find_user_profiles(["doc7", "ghost"])
        clinic = await store.find_user_clinic("u1")
        empty = await store.find_user_profiles([])
        return profiles, clinic, empty

    profiles, clinic, empty = asyncio.run(scenario())

    assert [p.id for p in profiles] == ["doc7"]
    assert requests[0].url.params["id"] == 'in.("doc7","ghost")'
    assert clinic == "clinic1"
    assert empty == []
    assert len(requests) == 2


def test_http_error_becomes_store_error():
    store, _ = make_store(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(store.list_messages(["u1"]))

    assert excinfo.value.operation == "list_messages"
    assert "HTTP 500" in str(excinfo.value)


def test_transport_error_becomes_store_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    store, _ = make_store(handler)

    with pytest.raises(StoreError):
        asyncio.run(store.find_user_clinic("u1"))


def test_malformed_rows_are_skipped():
    base = {"sender_id": "doc7", "receiver_id": "u1", "created_at": "2026-03-01T09:00:00", "is_read": False}
    rows = [
        {**base, "id": "m1", "content": "Results are in"},
        {**base, "id": "m2", "content": "   "},
        {**base, "id": "m3", "content": "Call us back", "is_read": None},
        {**base, "id": "m4", "content": "loop", "receiver_id": "doc7"},
        {"id": "m5"},
    ]
    store, _ = make_store(lambda request: httpx.Response(200, json=rows))

    messages = asyncio.run(store.list_messages(["u1"]))

    assert [m.id for m in messages] == ["m1", "m3"]
    assert messages[1].is_read is False
    assert messages[0].created_at.tzinfo is not None


def test_requires_api_key():
    with pytest.raises(ValueError):
        PostgrestRelationalStore(MessagingSettings(supabase_url="https://clinic.supabase.co"))
