"""Whitelist grant records and fan-out results."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import NamedTuple


class EntryKey(NamedTuple):
    """Uniqueness key of a grant."""

    user_id: str
    target_id: str
    ip: str


def normalize_ip(value: str) -> str:
    """Return the canonical textual form of an IPv4/IPv6 literal."""

    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError as exc:
        raise ValueError(f"invalid IP address literal: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class WhitelistEntry:
    """One user's IP granted on one remote whitelist."""

    user_id: str
    target_id: str
    ip: str
    created_at: datetime
    expires_at: datetime
    remote_comment: str = ""

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("user_id must not be empty")
        if not self.target_id:
            raise ValueError("target_id must not be empty")
        object.__setattr__(self, "ip", normalize_ip(self.ip))
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")

    @classmethod
    def grant(
        cls,
        *,
        user_id: str,
        target_id: str,
        ip: str,
        now: datetime,
        ttl: timedelta,
        comment: str = "",
    ) -> WhitelistEntry:
        return cls(
            user_id=user_id,
            target_id=target_id,
            ip=ip,
            created_at=now,
            expires_at=now + ttl,
            remote_comment=comment,
        )

    @property
    def key(self) -> EntryKey:
        return EntryKey(self.user_id, self.target_id, self.ip)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now

    def renew(self, *, now: datetime, ttl: timedelta, comment: str | None = None) -> WhitelistEntry:
        """Return the entry with its expiry moved to ``now + ttl``."""
        return replace(
            self,
            expires_at=now + ttl,
            remote_comment=self.remote_comment if comment is None else comment,
        )


@dataclass(frozen=True, slots=True)
class PropagationResult:
    """Targets a login was (and was not) propagated to."""

    succeeded_targets: tuple[str, ...] = ()
    failed_targets: tuple[str, ...] = ()

    @property
    def has_targets(self) -> bool:
        return bool(self.succeeded_targets or self.failed_targets)

    @property
    def degraded(self) -> bool:
        """True when there were targets but none of them accepted the IP."""
        return bool(self.failed_targets) and not self.succeeded_targets


@dataclass(frozen=True, slots=True)
class SweepResult:
    """Outcome of one sweep over expired grants."""

    removed: tuple[EntryKey, ...] = ()
    still_failing: tuple[EntryKey, ...] = ()
    skipped: bool = False


__all__ = [
    "EntryKey",
    "PropagationResult",
    "SweepResult",
    "WhitelistEntry",
    "normalize_ip",
]
