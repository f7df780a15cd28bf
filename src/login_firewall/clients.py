"""Shared client defaults (paths, markers, timeouts) for the Zoraxy admin API."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ZoraxyDefaults:
    timeout_seconds: float = 10.0
    login_page_path: str = "/login.html"
    login_path: str = "/api/auth/login"
    whitelist_add_path: str = "/api/whitelist/ip/add"
    whitelist_remove_path: str = "/api/whitelist/ip/remove"
    csrf_cookie_name: str = "zoraxy_csrf"
    csrf_meta_name: str = "zoraxy.csrf.Token"
    csrf_header: str = "x-csrf-token"
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass(frozen=True, slots=True)
class WhitelistDefaults:
    ttl_hours: float = 24.0
    sweep_interval_seconds: float = 3600.0
    comment: str = "Added via LoginFirewall - 24h access"
    max_concurrency: int = 4


ZORAXY = ZoraxyDefaults()
WHITELIST = WhitelistDefaults()

__all__ = ["WHITELIST", "ZORAXY", "WhitelistDefaults", "ZoraxyDefaults"]
