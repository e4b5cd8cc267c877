"""
Settings for the messaging subsystem.

Values come from 'VET_MESSAGING_*' environment variables. The backend API key is
a secret and is read from '/secrets/SUPABASE_KEY' first (mounted secret file),
then from the 'SUPABASE_KEY' environment variable.
"""

import os
from pathlib import Path

from pydantic import BaseModel

ENV_PREFIX = "VET_MESSAGING_"
SECRETS_DIR = Path("/secrets")


class MessagingSettings(BaseModel):
    supabase_url: str | None = None
    supabase_key: str | None = None
    messages_table: str = "messages"
    users_table: str = "users"
    clients_table: str = "client"
    privileged_role: str = "doctor"
    client_role: str = "client"
    request_timeout: float = 30.0
    channel_maxsize: int = 0
    refetch_after_send: bool = False
    log_level: str = "INFO"

    @property
    def rest_url(self) -> str:
        if not self.supabase_url:
            raise ValueError(f"{ENV_PREFIX}SUPABASE_URL is not set")
        return f"{self.supabase_url.rstrip('/')}/rest/v1"


def get_secret(name: str, required: bool = True, secrets_dir: Path | None = None) -> str | None:
    """Load a secret from a mounted secret file or an environment variable.

    Checks '<secrets_dir>/<name>' first, then the '<name>' environment variable.
    Raises ValueError if neither is available and the secret is required.
    """
    secret_file = (secrets_dir or SECRETS_DIR) / name
    if secret_file.exists():
        return secret_file.read_text().strip()
    value = os.environ.get(name, "")
    if value:
        return value
    if required:
        raise ValueError(
            f"{name} not found. Either:\n"
            f"  - Mount it as a secret file at {secret_file}, or\n"
            f"  - Set the {name} environment variable."
        )
    return None


def load_settings(environ: dict[str, str] | None = None, require_backend: bool = False) -> MessagingSettings:
    """Build 'MessagingSettings' from the environment.

    Unset variables keep their defaults. With 'require_backend', a missing URL or
    API key raises ValueError instead of leaving the store unconfigured.
    """
    env = os.environ if environ is None else environ
    values: dict[str, str] = {}
    for field in MessagingSettings.model_fields:
        raw = env.get(f"{ENV_PREFIX}{field.upper()}")
        if raw is not None and raw != "":
            values[field] = raw
    if "supabase_key" not in values:
        key = get_secret("SUPABASE_KEY", required=require_backend)
        if key:
            values["supabase_key"] = key
    settings = MessagingSettings.model_validate(values)
    if require_backend and not settings.supabase_url:
        raise ValueError(f"{ENV_PREFIX}SUPABASE_URL is not set")
    return settings
