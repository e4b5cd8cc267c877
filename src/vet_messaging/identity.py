"""
Identity resolution.

Maps the signed-in subject to every id that may appear as "me" in the
conversation. Resolution is best-effort: if the linked client lookup fails the
session continues with the subject id alone, which only hides history stored
under the linked record.
"""

from loguru import logger

from vet_messaging.data_models.identity import SelfIdentity
from vet_messaging.store.base import RelationalStore


class IdentityResolver:
    def __init__(self, store: RelationalStore) -> None:
        self.store = store

    async def resolve(self, subject_id: str, email: str | None = None) -> SelfIdentity:
        identity = SelfIdentity(primary=subject_id)
        if not email:
            return identity

        try:
            linked_id = await self.store.find_client_by_email(email)
        except Exception as exc:
            logger.warning(f"Linked client lookup failed for {subject_id}: {exc}")
            return identity

        if linked_id is not None:
            logger.debug(f"Subject {subject_id} linked to client record {linked_id}")
        return identity.with_linked(linked_id)

    async def resolve_ids(self, subject_id: str, email: str | None = None) -> list[str]:
        return list((await self.resolve(subject_id, email)).ids)
