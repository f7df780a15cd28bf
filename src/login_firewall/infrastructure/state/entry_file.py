"""JSON-file-backed whitelist grant store.

Grants outlive the portal process this way, so an expired remote entry is
still known to the next sweep after a restart.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, ValidationError

from login_firewall.domain.whitelist import EntryKey, WhitelistEntry
from login_firewall.infrastructure.state.entry_store import InMemoryWhitelistEntryStore


class WhitelistEntryRecord(BaseModel):
    """On-disk representation of one grant."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_id: str
    target_id: str
    ip: str
    created_at: datetime
    expires_at: datetime
    remote_comment: str = ""

    @classmethod
    def from_entry(cls, entry: WhitelistEntry) -> WhitelistEntryRecord:
        return cls(
            user_id=entry.user_id,
            target_id=entry.target_id,
            ip=entry.ip,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            remote_comment=entry.remote_comment,
        )

    def to_entry(self) -> WhitelistEntry:
        return WhitelistEntry(
            user_id=self.user_id,
            target_id=self.target_id,
            ip=self.ip,
            created_at=self.created_at,
            expires_at=self.expires_at,
            remote_comment=self.remote_comment,
        )


class WhitelistStateFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    entries: list[WhitelistEntryRecord] = []


class JsonFileWhitelistEntryStore(InMemoryWhitelistEntryStore):
    """In-memory store that rewrites ``path`` on every mutation.

    The file is replaced before memory changes, so a failed write leaves both
    on the previous state.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._write_lock = Lock()
        super().__init__(self._load(path))

    @property
    def path(self) -> Path:
        return self._path

    def upsert(self, entry: WhitelistEntry) -> None:
        with self._write_lock:
            candidate = {stored.key: stored for stored in self.all()}
            candidate[entry.key] = entry
            self._flush(candidate.values())
            super().upsert(entry)

    def delete(self, key: EntryKey) -> None:
        with self._write_lock:
            self._flush(stored for stored in self.all() if stored.key != key)
            super().delete(key)

    # ------------------------------------------------------------------
    # helpers

    @staticmethod
    def _load(path: Path) -> list[WhitelistEntry]:
        if not path.exists():
            return []
        text = path.read_text(encoding="utf-8").strip()
        if not text:
            return []
        try:
            state = WhitelistStateFile.model_validate_json(text)
        except ValidationError as exc:
            raise ValueError(f"whitelist state file {path} is invalid: {exc}") from exc
        return [record.to_entry() for record in state.entries]

    def _flush(self, entries: Iterable[WhitelistEntry]) -> None:
        state = WhitelistStateFile(
            entries=[WhitelistEntryRecord.from_entry(entry) for entry in entries],
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = Path(f"{self._path}.tmp")
        try:
            tmp_path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


__all__ = ["JsonFileWhitelistEntryStore", "WhitelistEntryRecord"]
