import pytest

from vet_messaging.config import MessagingSettings, get_secret, load_settings


@pytest.fixture(autouse=True)
def no_ambient_key(monkeypatch, tmp_path):
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    monkeypatch.setattr("vet_messaging.config.SECRETS_DIR", tmp_path)


def test_defaults():
    settings = load_settings(environ={})

    assert settings.messages_table == "messages"
    assert settings.privileged_role == "doctor"
    assert settings.supabase_key is None
    assert settings.refetch_after_send is False


def test_environment_overrides():
    settings = load_settings(
        environ={
            "VET_MESSAGING_PRIVILEGED_ROLE": "vet",
            "VET_MESSAGING_CHANNEL_MAXSIZE": "5",
            "VET_MESSAGING_REFETCH_AFTER_SEND": "true",
            "VET_MESSAGING_SUPABASE_URL": "https://clinic.supabase.co",
            "VET_MESSAGING_SUPABASE_KEY": "anon-key",
        }
    )

    assert settings.privileged_role == "vet"
    assert settings.channel_maxsize == 5
    assert settings.refetch_after_send is True
    assert settings.rest_url == "https://clinic.supabase.co/rest/v1"


def test_key_from_environment(monkeypatch):
    monkeypatch.setenv("SUPABASE_KEY", "env-key")

    assert load_settings(environ={}).supabase_key == "env-key"


def test_secret_file_wins(monkeypatch, tmp_path):
    monkeypatch.setenv("SUPABASE_KEY", "env-key")
    (tmp_path / "SUPABASE_KEY").write_text("file-key\n")

    assert get_secret("SUPABASE_KEY", secrets_dir=tmp_path) == "file-key"


def test_missing_backend_is_an_error():
    with pytest.raises(ValueError):
        load_settings(environ={}, require_backend=True)

    with pytest.raises(ValueError):
        MessagingSettings().rest_url
