import time
from datetime import datetime, timezone


def get_current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def get_current_timestamp_ns() -> int:
    return time.time_ns()
