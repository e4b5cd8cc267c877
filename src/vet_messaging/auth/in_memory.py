from loguru import logger

from vet_messaging.auth.base import IdentityProvider, SessionEvent, SessionListener, Subject


class InMemoryIdentityProvider(IdentityProvider):
    """Identity provider whose session is driven explicitly with 'sign_in' / 'sign_out'."""

    def __init__(self, subject: Subject | None = None) -> None:
        self._subject = subject
        self._listeners: list[SessionListener] = []

    def get_current_subject(self) -> Subject | None:
        return self._subject

    def add_session_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_session_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def sign_in(self, subject: Subject) -> None:
        self._subject = subject
        logger.info(f"Signed in as {subject.subject_id}")
        for listener in list(self._listeners):
            await listener(SessionEvent.SIGNED_IN, subject)

    async def sign_out(self) -> None:
        if self._subject is None:
            return
        logger.info(f"Signed out {self._subject.subject_id}")
        self._subject = None
        for listener in list(self._listeners):
            await listener(SessionEvent.SIGNED_OUT, None)
