from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from login_firewall.config.zoraxy import ZoraxySettings
from login_firewall.runtime.settings import Settings

_ENV_VARS = (
    "ZORAXY_API_URL",
    "ZORAXY_USERNAME",
    "ZORAXY_PASSWORD",
    "ZORAXY_TIMEOUT_SECONDS",
    "WHITELIST_TTL_HOURS",
    "WHITELIST_SWEEP_INTERVAL_SECONDS",
    "WHITELIST_COMMENT",
    "WHITELIST_MAX_CONCURRENCY",
    "WHITELIST_STATE_FILE",
    "ENABLE_CLOUD_LOGGING",
    "GCP_PROJECT",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_settings_loads_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Settings loads from environment variables."""
    monkeypatch.setenv("ZORAXY_API_URL", "https://zoraxy.internal:8000")
    monkeypatch.setenv("ZORAXY_USERNAME", "admin")
    monkeypatch.setenv("ZORAXY_PASSWORD", "s3cret")
    monkeypatch.setenv("WHITELIST_TTL_HOURS", "12")
    monkeypatch.setenv("WHITELIST_STATE_FILE", "/var/lib/login-firewall/state.json")

    settings = Settings.load()

    assert settings.zoraxy.is_configured
    assert settings.zoraxy.password_value == "s3cret"
    assert "s3cret" not in repr(settings)
    assert settings.whitelist.ttl == timedelta(hours=12)
    assert settings.whitelist.state_file == Path("/var/lib/login-firewall/state.json")


def test_defaults_without_environment() -> None:
    settings = Settings.load()

    assert settings.zoraxy.missing_fields() == ("ZORAXY_API_URL", "ZORAXY_USERNAME", "ZORAXY_PASSWORD")
    assert settings.zoraxy.timeout_seconds == 10.0
    assert settings.whitelist.ttl == timedelta(hours=24)
    assert settings.whitelist.sweep_interval_seconds == 3600.0
    assert settings.whitelist.comment == "Added via LoginFirewall - 24h access"
    assert settings.whitelist.max_concurrency == 4
    assert settings.whitelist.state_file is None
    assert not settings.observability.enable_cloud_logging


def test_settings_read_dotenv_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("ZORAXY_USERNAME=from-dotenv\n", encoding="utf-8")

    assert ZoraxySettings().username == "from-dotenv"


@pytest.mark.parametrize("value", ["0", "61"])
def test_timeout_is_bounded(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("ZORAXY_TIMEOUT_SECONDS", value)

    with pytest.raises(ValidationError):
        ZoraxySettings()
