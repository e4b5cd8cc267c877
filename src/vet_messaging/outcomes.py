"""
Typed results returned by the conversation store adapter and the live session.

Every operation that touches a collaborator returns an 'Outcome' instead of
raising. 'reason' tells the UI which of the failure classes it is looking at;
'detail' is the message shown to the pet owner.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from vet_messaging.data_models.message import ClientMessage, Message


class FailureReason(StrEnum):
    FETCH_FAILED = "fetch_failed"
    NO_RECIPIENT = "no_recipient"
    SELF_ADDRESSED = "self_addressed"
    PERSIST_FAILED = "persist_failed"
    EMPTY_CONTENT = "empty_content"
    NOT_READY = "not_ready"


FAILURE_DETAILS: dict[FailureReason, str] = {
    FailureReason.FETCH_FAILED: "Could not load your messages. Please try again later.",
    FailureReason.NO_RECIPIENT: (
        "No recipient available: your clinic has no staff member who can receive messages. "
        "Please contact the clinic directly."
    ),
    FailureReason.SELF_ADDRESSED: "A message cannot be sent to yourself.",
    FailureReason.PERSIST_FAILED: "Your message could not be delivered.",
    FailureReason.EMPTY_CONTENT: "Please type a message before sending.",
    FailureReason.NOT_READY: "Messaging is not available until your conversation has loaded.",
}


class Outcome(BaseModel):
    ok: bool = True
    reason: FailureReason | None = None
    detail: str = ""

    @classmethod
    def failure(cls, reason: FailureReason, detail: str | None = None, **fields):
        return cls(ok=False, reason=reason, detail=detail or FAILURE_DETAILS[reason], **fields)


class FetchOutcome(Outcome):
    messages: list[Message] = Field(default_factory=list)


class TargetOutcome(Outcome):
    target_id: str | None = None


class SendOutcome(Outcome):
    message: ClientMessage | None = None
