import pytest
from pydantic import ValidationError

from ..config import Settings


def test_settings_require_secret_key(monkeypatch, tmp_path):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ValidationError):
        Settings()


def test_blank_secret_key_is_rejected():
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY="  ", _env_file=None)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "env-secret")
    monkeypatch.setenv("PORT", "7000")
    monkeypatch.setenv("HISTORY_MAX_LIMIT", "20")
    monkeypatch.setenv("ENVIRONMENT", "Production")
    settings = Settings(_env_file=None)
    assert settings.SECRET_KEY == "env-secret"
    assert settings.PORT == 7000
    assert settings.HISTORY_MAX_LIMIT == 20
    assert settings.is_production


def test_settings_read_env_file(monkeypatch, tmp_path):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("SECRET_KEY=file-secret\nUNRELATED=1\n")
    settings = Settings(_env_file=env_file)
    assert settings.SECRET_KEY == "file-secret"
    assert not settings.is_production
