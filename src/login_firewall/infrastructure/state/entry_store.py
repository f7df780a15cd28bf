"""In-memory whitelist grant store."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from threading import Lock

from login_firewall.application.ports.entry_store import WhitelistEntryStorePort
from login_firewall.domain.whitelist import EntryKey, WhitelistEntry


class InMemoryWhitelistEntryStore(WhitelistEntryStorePort):
    """Stores grant records in memory, keyed by ``(user_id, target_id, ip)``."""

    def __init__(self, entries: Sequence[WhitelistEntry] = ()) -> None:
        self._entries: dict[EntryKey, WhitelistEntry] = {entry.key: entry for entry in entries}
        self._lock = Lock()

    def upsert(self, entry: WhitelistEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry

    def get(self, key: EntryKey) -> WhitelistEntry | None:
        with self._lock:
            return self._entries.get(key)

    def find_by_user(self, user_id: str) -> list[WhitelistEntry]:
        with self._lock:
            return [entry for entry in self._entries.values() if entry.user_id == user_id]

    def find_expired(self, now: datetime) -> list[WhitelistEntry]:
        with self._lock:
            return [entry for entry in self._entries.values() if entry.is_expired(now)]

    def delete(self, key: EntryKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def all(self) -> list[WhitelistEntry]:
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["InMemoryWhitelistEntryStore"]
