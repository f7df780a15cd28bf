"""Grant, renew, revoke and expire per-user IP whitelist entries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar

from login_firewall.application.key_locks import KeyedLocks
from login_firewall.application.ports.entry_store import WhitelistEntryStorePort
from login_firewall.application.ports.membership import MembershipResolverPort
from login_firewall.application.ports.whitelist_gateway import WhitelistGatewayPort
from login_firewall.clients import WHITELIST
from login_firewall.domain.whitelist import (
    EntryKey,
    PropagationResult,
    SweepResult,
    WhitelistEntry,
    normalize_ip,
)
from login_firewall.errors import MembershipLookupError

Clock = Callable[[], datetime]
T = TypeVar("T")
R = TypeVar("R")

logger = logging.getLogger("login_firewall.whitelist")


@dataclass(frozen=True)
class LifecycleConfig:
    """Static parameters for issuing grants."""

    ttl: timedelta = timedelta(hours=WHITELIST.ttl_hours)
    comment: str = WHITELIST.comment
    max_concurrency: int = WHITELIST.max_concurrency

    def __post_init__(self) -> None:
        if self.ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")


class _SweepOutcome(Enum):
    REMOVED = "removed"
    FAILED = "failed"
    SKIPPED = "skipped"


class WhitelistLifecycleManager:
    """Owns the grant records and keeps them in step with the remote whitelists.

    Every operation fans out over targets or records independently: one
    failing remote call is logged and reported, never allowed to stop its
    siblings. A record is only deleted after the remote side confirmed the IP
    is gone, so nothing is left on a remote whitelist without a record that
    would eventually clean it up.
    """

    def __init__(
        self,
        *,
        gateway: WhitelistGatewayPort,
        membership: MembershipResolverPort,
        entries: WhitelistEntryStorePort,
        clock: Clock,
        config: LifecycleConfig | None = None,
    ) -> None:
        self._gateway = gateway
        self._membership = membership
        self._entries = entries
        self._clock = clock
        self._config = config or LifecycleConfig()
        self._locks = KeyedLocks()
        self._sweeping = False

    @property
    def sweep_in_flight(self) -> bool:
        return self._sweeping

    async def propagate(self, user_id: str, ip: str) -> PropagationResult:
        """Whitelist ``ip`` on every target of ``user_id`` and record the grants."""
        address = normalize_ip(ip)
        targets = self._resolve_targets(user_id)
        if not targets:
            logger.info(
                "user has no whitelist targets",
                extra={"data": {"user_id": user_id, "ip": address}},
            )
            return PropagationResult()

        now = self._clock()

        async def grant(target_id: str) -> bool:
            return await self._grant_one(user_id=user_id, target_id=target_id, ip=address, now=now)

        outcomes = await self._fan_out(grant, targets)
        result = PropagationResult(
            succeeded_targets=tuple(t for t, ok in zip(targets, outcomes, strict=True) if ok),
            failed_targets=tuple(t for t, ok in zip(targets, outcomes, strict=True) if not ok),
        )
        log = logger.warning if result.failed_targets else logger.info
        log(
            "whitelist propagation finished",
            extra={
                "data": {
                    "user_id": user_id,
                    "ip": address,
                    "succeeded_targets": result.succeeded_targets,
                    "failed_targets": result.failed_targets,
                }
            },
        )
        return result

    async def revoke_all(self, user_id: str) -> int:
        """Remove every grant of ``user_id``; returns how many were revoked."""
        entries = list(self._entries.find_by_user(user_id))
        if not entries:
            return 0
        outcomes = await self._fan_out(self._revoke_one, entries)
        revoked = sum(1 for ok in outcomes if ok)
        log = logger.warning if revoked < len(entries) else logger.info
        log(
            "whitelist revoke finished",
            extra={"data": {"user_id": user_id, "revoked": revoked, "total": len(entries)}},
        )
        return revoked

    async def sweep(self) -> SweepResult:
        """Remove expired grants remotely, then locally.

        Records whose removal fails stay in place for the next sweep. A call
        made while another sweep is running returns at once with
        ``skipped=True``.
        """
        if self._sweeping:
            logger.info("whitelist sweep already running, skipping")
            return SweepResult(skipped=True)
        self._sweeping = True
        try:
            now = self._clock()
            expired = list(self._entries.find_expired(now))
            if not expired:
                logger.debug("whitelist sweep found no expired entries")
                return SweepResult()

            async def expire(entry: WhitelistEntry) -> _SweepOutcome:
                return await self._expire_one(entry, now=now)

            outcomes = await self._fan_out(expire, expired)
        finally:
            self._sweeping = False

        pairs = list(zip(expired, outcomes, strict=True))
        result = SweepResult(
            removed=tuple(e.key for e, o in pairs if o is _SweepOutcome.REMOVED),
            still_failing=tuple(e.key for e, o in pairs if o is _SweepOutcome.FAILED),
        )
        log = logger.warning if result.still_failing else logger.info
        log(
            "whitelist sweep finished",
            extra={
                "data": {
                    "expired": len(expired),
                    "removed": len(result.removed),
                    "still_failing": len(result.still_failing),
                }
            },
        )
        return result

    # ------------------------------------------------------------------
    # per-key steps

    async def _grant_one(self, *, user_id: str, target_id: str, ip: str, now: datetime) -> bool:
        key = EntryKey(user_id, target_id, ip)
        async with self._locks.hold(key):
            try:
                await self._gateway.add_entry(target_id, ip, self._config.comment)
            except Exception as exc:
                logger.warning(
                    "whitelist add failed",
                    extra={"data": {"user_id": user_id, "target_id": target_id, "ip": ip}},
                    exc_info=exc,
                )
                return False

            try:
                existing = self._entries.get(key)
                if existing is None:
                    entry = WhitelistEntry.grant(
                        user_id=user_id,
                        target_id=target_id,
                        ip=ip,
                        now=now,
                        ttl=self._config.ttl,
                        comment=self._config.comment,
                    )
                else:
                    entry = existing.renew(now=now, ttl=self._config.ttl, comment=self._config.comment)
                self._entries.upsert(entry)
            except Exception as exc:
                logger.error(
                    "whitelist entry added remotely but not recorded",
                    extra={"data": {"user_id": user_id, "target_id": target_id, "ip": ip}},
                    exc_info=exc,
                )
                return False
            return True

    async def _revoke_one(self, entry: WhitelistEntry) -> bool:
        async with self._locks.hold(entry.key):
            readable, current = self._read_record(entry, reason="revoke")
            if not readable or current is None:
                return False
            if not await self._remove_remote(current, reason="revoke"):
                return False
            return self._delete_record(current, reason="revoke")

    async def _expire_one(self, entry: WhitelistEntry, *, now: datetime) -> _SweepOutcome:
        async with self._locks.hold(entry.key):
            readable, current = self._read_record(entry, reason="expired")
            if not readable:
                return _SweepOutcome.FAILED
            # A login may have renewed or a logout removed the grant since the query.
            if current is None or not current.is_expired(now):
                return _SweepOutcome.SKIPPED
            if not await self._remove_remote(current, reason="expired"):
                return _SweepOutcome.FAILED
            if not self._delete_record(current, reason="expired"):
                return _SweepOutcome.FAILED
            return _SweepOutcome.REMOVED

    def _read_record(self, entry: WhitelistEntry, *, reason: str) -> tuple[bool, WhitelistEntry | None]:
        try:
            return True, self._entries.get(entry.key)
        except Exception as exc:
            logger.error(
                "whitelist record could not be read",
                extra={"data": _entry_data(entry, reason)},
                exc_info=exc,
            )
            return False, None

    def _delete_record(self, entry: WhitelistEntry, *, reason: str) -> bool:
        try:
            self._entries.delete(entry.key)
        except Exception as exc:
            # Remote side is already clean; the next sweep retries the record.
            logger.error(
                "whitelist entry removed remotely but record not deleted",
                extra={"data": _entry_data(entry, reason)},
                exc_info=exc,
            )
            return False
        return True

    async def _remove_remote(self, entry: WhitelistEntry, *, reason: str) -> bool:
        data = _entry_data(entry, reason)
        try:
            removed = await self._gateway.remove_entry(entry.target_id, entry.ip)
        except Exception as exc:
            logger.warning("whitelist remove failed", extra={"data": data}, exc_info=exc)
            return False
        if not removed:
            logger.info("whitelist entry was already gone remotely", extra={"data": data})
        return True

    # ------------------------------------------------------------------
    # helpers

    def _resolve_targets(self, user_id: str) -> tuple[str, ...]:
        try:
            targets = self._membership.targets_for_user(user_id)
        except MembershipLookupError:
            raise
        except Exception as exc:
            raise MembershipLookupError(f"cannot resolve whitelist targets for user {user_id!r}") from exc
        return tuple(sorted(targets))

    async def _fan_out(self, work: Callable[[T], Awaitable[R]], items: Sequence[T]) -> list[R]:
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def bounded(item: T) -> R:
            async with semaphore:
                return await work(item)

        # Siblings are cancelled and awaited before an unexpected error leaves this call.
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(bounded(item)) for item in items]
        return [task.result() for task in tasks]


def _entry_data(entry: WhitelistEntry, reason: str) -> dict[str, str]:
    return {
        "user_id": entry.user_id,
        "target_id": entry.target_id,
        "ip": entry.ip,
        "reason": reason,
    }


__all__ = ["Clock", "LifecycleConfig", "WhitelistLifecycleManager"]
