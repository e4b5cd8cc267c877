"""
Exceptions raised by the messaging collaborators.

Stores and feeds raise these; 'ConversationStoreAdapter' converts them into
typed outcomes so the live session never sees a raw exception.
"""


class MessagingError(Exception):
    pass


class StoreError(MessagingError):
    """A relational store call failed (network, HTTP status, malformed row)."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}" if detail else f"{operation} failed")


class SubscriptionError(MessagingError):
    """The realtime feed could not deliver or keep a subscription."""
