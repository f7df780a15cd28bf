"""Whitelist lifecycle tuning (TTL, sweep cadence, fan-out width)."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from login_firewall.clients import WHITELIST


class WhitelistSettings(BaseSettings):
    """Lifetime and scheduling of IP grants."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    ttl_hours: float = Field(default=WHITELIST.ttl_hours, alias="WHITELIST_TTL_HOURS", gt=0.0)
    sweep_interval_seconds: float = Field(
        default=WHITELIST.sweep_interval_seconds,
        alias="WHITELIST_SWEEP_INTERVAL_SECONDS",
        gt=0.0,
    )
    comment: str = Field(default=WHITELIST.comment, alias="WHITELIST_COMMENT")
    max_concurrency: int = Field(
        default=WHITELIST.max_concurrency,
        alias="WHITELIST_MAX_CONCURRENCY",
        ge=1,
    )
    state_file: Path | None = Field(default=None, alias="WHITELIST_STATE_FILE")

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.ttl_hours)


__all__ = ["WhitelistSettings"]
