"""
Identity provider abstractions.

An 'IdentityProvider' knows who is signed in and tells its listeners when that
changes. The live session binds to it: a sign-in starts a session for the new
subject, a sign-out tears everything down.

Concrete implementations: 'InMemoryIdentityProvider'.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import StrEnum

from pydantic import BaseModel


class SessionEvent(StrEnum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


class Subject(BaseModel):
    """The authenticated principal: a stable id and, when known, an email."""

    subject_id: str
    email: str | None = None


SessionListener = Callable[[SessionEvent, Subject | None], Awaitable[None]]


class IdentityProvider(ABC):
    """
    Abstract base class for authentication backends.

    Listeners are awaited in registration order on every session change and
    receive the new subject ('None' on sign-out).
    """

    @abstractmethod
    def get_current_subject(self) -> Subject | None:
        """Return the signed-in subject, or None if nobody is authenticated."""
        pass

    @abstractmethod
    def add_session_listener(self, listener: SessionListener) -> None:
        pass

    @abstractmethod
    def remove_session_listener(self, listener: SessionListener) -> None:
        pass
