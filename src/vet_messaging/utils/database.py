import itertools
import uuid

from vet_messaging.utils.time import get_current_timestamp_ns

PROVISIONAL_ID_PREFIX = "local-"

_provisional_counter = itertools.count()


def generate_uid() -> str:
    return str(uuid.uuid4())


def generate_provisional_id() -> str:
    """Client-side id for an optimistic message. Never collides with store ids."""
    return f"{PROVISIONAL_ID_PREFIX}{get_current_timestamp_ns()}-{next(_provisional_counter)}"


def is_provisional_id(message_id: str) -> bool:
    return message_id.startswith(PROVISIONAL_ID_PREFIX)
