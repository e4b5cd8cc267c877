"""
Self identity value type.

A pet owner can be addressed under two ids at once: the account id issued by
the identity provider and a legacy 'client' record matched by email. Both count
as "me" when filtering the conversation, so they travel together as one
immutable 'SelfIdentity' instead of a loose list of strings.
"""

from pydantic import BaseModel, ConfigDict


class SelfIdentity(BaseModel):
    """The set of participant ids treated as the current user."""

    model_config = ConfigDict(frozen=True)

    primary: str
    linked: str | None = None

    @property
    def ids(self) -> tuple[str, ...]:
        """Primary id first, then the linked id if one was resolved."""
        if self.linked is None:
            return (self.primary,)
        return (self.primary, self.linked)

    def contains(self, participant_id: str | None) -> bool:
        return participant_id is not None and participant_id in self.ids

    def __contains__(self, participant_id: object) -> bool:
        return isinstance(participant_id, str) and self.contains(participant_id)

    def __len__(self) -> int:
        return len(self.ids)

    def with_linked(self, linked: str | None) -> "SelfIdentity":
        """Return an identity that also includes 'linked'. The set only grows."""
        if linked is None or linked == self.primary or self.linked is not None:
            return self
        return SelfIdentity(primary=self.primary, linked=linked)

    def covers(self, other: "SelfIdentity") -> bool:
        return all(self.contains(participant_id) for participant_id in other.ids)
