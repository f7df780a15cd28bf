"""Configuration aggregate for the login firewall runtime."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from login_firewall.config.observability import ObservabilitySettings
from login_firewall.config.whitelist import WhitelistSettings
from login_firewall.config.zoraxy import ZoraxySettings


class Settings(BaseSettings):
    """Runtime configuration resolved from the environment (and ``.env``)."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    zoraxy: ZoraxySettings = Field(default_factory=ZoraxySettings)
    whitelist: WhitelistSettings = Field(default_factory=WhitelistSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def load(cls) -> Settings:
        instance = cls()
        logger = logging.getLogger("login_firewall.settings")
        logger.info("login firewall settings loaded: %r", instance)
        return instance


__all__ = ["Settings"]
