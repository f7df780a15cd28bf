"""Zoraxy admin API connectivity settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from login_firewall.clients import ZORAXY


class ZoraxySettings(BaseSettings):
    """Endpoint and credentials used to log into the Zoraxy admin API."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    api_url: str | None = Field(default=None, alias="ZORAXY_API_URL")
    username: str | None = Field(default=None, alias="ZORAXY_USERNAME")
    password: SecretStr | None = Field(default=None, alias="ZORAXY_PASSWORD")
    timeout_seconds: float = Field(
        default=ZORAXY.timeout_seconds,
        alias="ZORAXY_TIMEOUT_SECONDS",
        ge=1.0,
        le=60.0,
    )

    @property
    def password_value(self) -> str:
        return self.password.get_secret_value() if self.password else ""

    def missing_fields(self) -> tuple[str, ...]:
        """Return the environment variable names that still need a value."""
        missing = []
        if not (self.api_url or "").strip():
            missing.append("ZORAXY_API_URL")
        if not (self.username or "").strip():
            missing.append("ZORAXY_USERNAME")
        if not self.password_value:
            missing.append("ZORAXY_PASSWORD")
        return tuple(missing)

    @property
    def is_configured(self) -> bool:
        return not self.missing_fields()


__all__ = ["ZoraxySettings"]
