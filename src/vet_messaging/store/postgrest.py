"""
Relational store backed by the hosted backend's REST endpoint.

The portal's backend exposes its tables through PostgREST ('<project>/rest/v1').
Each 'RelationalStore' operation maps to one HTTP call made with a shared
'httpx.AsyncClient'; filters use PostgREST's operator syntax ('eq.', 'in.()',
'or=()'). Row-level security on the server decides what the key may see, so no
access checks happen here. Transport errors, non-2xx statuses and malformed
profile rows are raised as 'StoreError'; malformed message rows are skipped.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from vet_messaging.config import MessagingSettings
from vet_messaging.data_models.message import Message, MessageDraft
from vet_messaging.data_models.profile import ProfileRecord
from vet_messaging.exceptions import StoreError
from vet_messaging.store.base import RelationalStore, parse_message_rows

PROFILE_COLUMNS = "id,first_name,last_name,role,avatar_url,clinic_id"


def _in_list(ids: Iterable[str]) -> str:
    return "(" + ",".join(f'"{participant_id}"' for participant_id in ids) + ")"


class PostgrestRelationalStore(RelationalStore):
    def __init__(self, settings: MessagingSettings, client: httpx.AsyncClient | None = None) -> None:
        if not settings.supabase_key:
            raise ValueError("PostgrestRelationalStore requires an API key")
        self.settings = settings
        self._client = client or httpx.AsyncClient(base_url=settings.rest_url, timeout=settings.request_timeout)
        self._headers = {
            "apikey": settings.supabase_key,
            "Authorization": f"Bearer {settings.supabase_key}",
        }

    async def __aenter__(self) -> "PostgrestRelationalStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        operation: str,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers={**self._headers, **(headers or {})},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreError(operation, f"HTTP {exc.response.status_code}: {exc.response.text[:200]}") from exc
        except httpx.HTTPError as exc:
            raise StoreError(operation, str(exc)) from exc

        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise StoreError(operation, "response is not JSON") from exc
        if not isinstance(payload, list):
            raise StoreError(operation, f"expected a list of rows, got {type(payload).__name__}")
        return payload

    async def find_client_by_email(self, email: str) -> str | None:
        rows = await self._request(
            "find_client_by_email",
            "GET",
            self.settings.clients_table,
            params={"select": "id", "email": f"eq.{email}", "limit": "1"},
        )
        return rows[0]["id"] if rows else None

    async def list_messages(self, participant_ids: Iterable[str]) -> list[Message]:
        id_list = _in_list(participant_ids)
        rows = await self._request(
            "list_messages",
            "GET",
            self.settings.messages_table,
            params={
                "select": "*",
                "or": f"(sender_id.in.{id_list},receiver_id.in.{id_list})",
                "order": "created_at.asc",
            },
        )
        return parse_message_rows(rows)

    async def insert_message(self, draft: MessageDraft) -> None:
        await self._request(
            "insert_message",
            "POST",
            self.settings.messages_table,
            json=draft.model_dump(),
            headers={"Prefer": "return=minimal"},
        )
        logger.debug(f"Inserted message from {draft.sender_id} to {draft.receiver_id}")

    async def find_user_profiles(self, ids: Sequence[str]) -> list[ProfileRecord]:
        if not ids:
            return []
        rows = await self._request(
            "find_user_profiles",
            "GET",
            self.settings.users_table,
            params={"select": PROFILE_COLUMNS, "id": f"in.{_in_list(ids)}"},
        )
        try:
            return [ProfileRecord.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise StoreError("find_user_profiles", f"malformed user row: {exc}") from exc

    async def find_clinic_staff(self, clinic_id: str, role: str | None = None) -> str | None:
        params = {"select": "id", "clinic_id": f"eq.{clinic_id}", "limit": "1"}
        if role is not None:
            params["role"] = f"eq.{role}"
        else:
            params["role"] = f"neq.{self.settings.client_role}"
        rows = await self._request("find_clinic_staff", "GET", self.settings.users_table, params=params)
        return rows[0]["id"] if rows else None

    async def find_user_clinic(self, user_id: str) -> str | None:
        rows = await self._request(
            "find_user_clinic",
            "GET",
            self.settings.users_table,
            params={"select": "clinic_id", "id": f"eq.{user_id}", "limit": "1"},
        )
        return rows[0].get("clinic_id") if rows else None
