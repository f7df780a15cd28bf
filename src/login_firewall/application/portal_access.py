"""Portal-facing login/logout hooks that never block the portal session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from login_firewall.application.whitelist_lifecycle import WhitelistLifecycleManager
from login_firewall.domain.whitelist import normalize_ip

DEFAULT_CLIENT_IP = "127.0.0.1"

logger = logging.getLogger("login_firewall.portal")


class AccessStatus(str, Enum):
    """How much network access a login ended up with."""

    GRANTED = "granted"
    PARTIAL = "partial"
    NO_TARGETS = "no_targets"
    DEGRADED = "degraded"


@dataclass(frozen=True, slots=True)
class AccessGrant:
    status: AccessStatus
    ip: str | None
    succeeded_targets: tuple[str, ...] = ()
    failed_targets: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AccessRevocation:
    ok: bool
    revoked: int = 0


def client_ip_from_forwarded_for(header: str | None, *, fallback: str = DEFAULT_CLIENT_IP) -> str:
    """Return the originating client IP from an ``X-Forwarded-For`` value.

    The first hop is the client as seen by the outermost proxy. Missing or
    empty headers yield ``fallback``; a malformed first hop raises ``ValueError``.
    """

    first = (header or "").split(",", 1)[0].strip()
    if not first:
        return normalize_ip(fallback)
    return normalize_ip(first)


class PortalAccessService:
    """Adapts whitelist propagation to the portal's login and logout flow."""

    def __init__(self, manager: WhitelistLifecycleManager, *, fallback_ip: str = DEFAULT_CLIENT_IP) -> None:
        self._manager = manager
        self._fallback_ip = fallback_ip

    async def grant_on_login(self, user_id: str, *, forwarded_for: str | None) -> AccessGrant:
        try:
            ip = client_ip_from_forwarded_for(forwarded_for, fallback=self._fallback_ip)
        except ValueError as exc:
            logger.warning(
                "cannot determine client ip for login",
                extra={"data": {"user_id": user_id, "forwarded_for": forwarded_for}},
                exc_info=exc,
            )
            return AccessGrant(status=AccessStatus.DEGRADED, ip=None)

        try:
            result = await self._manager.propagate(user_id, ip)
        except Exception as exc:
            logger.error(
                "whitelist propagation failed for login",
                extra={"data": {"user_id": user_id, "ip": ip}},
                exc_info=exc,
            )
            return AccessGrant(status=AccessStatus.DEGRADED, ip=ip)

        if not result.has_targets:
            status = AccessStatus.NO_TARGETS
        elif result.degraded:
            status = AccessStatus.DEGRADED
        elif result.failed_targets:
            status = AccessStatus.PARTIAL
        else:
            status = AccessStatus.GRANTED
        return AccessGrant(
            status=status,
            ip=ip,
            succeeded_targets=result.succeeded_targets,
            failed_targets=result.failed_targets,
        )

    async def revoke_on_logout(self, user_id: str) -> AccessRevocation:
        try:
            revoked = await self._manager.revoke_all(user_id)
        except Exception as exc:
            logger.error(
                "whitelist revoke failed for logout",
                extra={"data": {"user_id": user_id}},
                exc_info=exc,
            )
            return AccessRevocation(ok=False)
        return AccessRevocation(ok=True, revoked=revoked)


__all__ = [
    "AccessGrant",
    "AccessRevocation",
    "AccessStatus",
    "PortalAccessService",
    "client_ip_from_forwarded_for",
]
