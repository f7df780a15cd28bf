"""Port describing persistence of whitelist grants."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from login_firewall.domain.whitelist import EntryKey, WhitelistEntry


class WhitelistEntryStorePort(Protocol):
    """Record store keyed by ``(user_id, target_id, ip)``."""

    def upsert(self, entry: WhitelistEntry) -> None:
        """Insert the entry or replace the one stored under the same key."""

    def get(self, key: EntryKey) -> WhitelistEntry | None:
        """Return the entry stored under ``key``."""

    def find_by_user(self, user_id: str) -> Sequence[WhitelistEntry]:
        """Return every entry owned by ``user_id``."""

    def find_expired(self, now: datetime) -> Sequence[WhitelistEntry]:
        """Return entries whose ``expires_at`` lies before ``now``."""

    def delete(self, key: EntryKey) -> None:
        """Remove the entry, if present."""


__all__ = ["WhitelistEntryStorePort"]
