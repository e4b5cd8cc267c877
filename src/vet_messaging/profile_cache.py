from collections.abc import Iterable, Iterator

from vet_messaging.data_models.profile import ParticipantProfile


class ProfileCache:
    """
    Participant profiles known to one live session.

    Entries are added lazily and overwritten on re-fetch; nothing is evicted
    until 'clear' is called at a session boundary.
    """

    def __init__(self) -> None:
        self._profiles: dict[str, ParticipantProfile] = {}

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self) -> Iterator[ParticipantProfile]:
        return iter(list(self._profiles.values()))

    def get(self, participant_id: str) -> ParticipantProfile | None:
        return self._profiles.get(participant_id)

    def put(self, profile: ParticipantProfile) -> None:
        self._profiles[profile.id] = profile

    def missing(self, participant_ids: Iterable[str]) -> list[str]:
        """Ids not yet cached, deduplicated, in first-seen order."""
        return list(dict.fromkeys(pid for pid in participant_ids if pid not in self._profiles))

    def display_name(self, participant_id: str) -> str:
        profile = self._profiles.get(participant_id)
        if profile is None:
            return ParticipantProfile.fallback(participant_id).display_name
        return profile.display_name

    def clear(self) -> None:
        self._profiles.clear()
