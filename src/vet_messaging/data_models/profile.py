"""
Participant profile data models.

'ProfileRecord' is a raw row from the 'users' table, where every column except
'id' may be null. 'ParticipantProfile' is what the conversation view renders:
it always has something readable to show, so a raw id never reaches the pet
owner. Placeholder names follow the portal's French UI copy.
"""

from pydantic import BaseModel

FALLBACK_FIRST_NAME = "Membre"
FALLBACK_LAST_NAME = "Clinique"
FALLBACK_DISPLAY_NAME = "Membre de la clinique"

PRIVILEGED_ROLE = "doctor"


class ProfileRecord(BaseModel):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    role: str | None = None
    avatar_url: str | None = None
    clinic_id: str | None = None


class ParticipantProfile(BaseModel):
    """
    Display data for a conversation participant.

    'is_fallback' is set on profiles synthesised for ids the store had no row
    for, so callers can tell a real name from a placeholder.
    """

    id: str
    first_name: str = FALLBACK_FIRST_NAME
    last_name: str = ""
    role: str | None = None
    avatar_url: str | None = None
    is_fallback: bool = False

    @property
    def display_name(self) -> str:
        if self.is_fallback:
            return FALLBACK_DISPLAY_NAME
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_record(cls, record: ProfileRecord) -> "ParticipantProfile":
        return cls(
            id=record.id,
            first_name=record.first_name or FALLBACK_FIRST_NAME,
            last_name=record.last_name or "",
            role=record.role,
            avatar_url=record.avatar_url,
        )

    @classmethod
    def fallback(cls, participant_id: str) -> "ParticipantProfile":
        return cls(
            id=participant_id,
            first_name=FALLBACK_FIRST_NAME,
            last_name=FALLBACK_LAST_NAME,
            is_fallback=True,
        )
