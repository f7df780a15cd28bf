"""Background task that sweeps expired whitelist grants on a fixed cadence."""

from __future__ import annotations

import asyncio
import logging

from login_firewall.application.whitelist_lifecycle import WhitelistLifecycleManager
from login_firewall.clients import WHITELIST
from login_firewall.domain.whitelist import SweepResult

logger = logging.getLogger("login_firewall.sweep_worker")


class SweepWorker:
    """Runs ``WhitelistLifecycleManager.sweep`` every ``interval_seconds``.

    The worker is an asyncio task on the same loop as the portal so it shares
    the Zoraxy session. A failing sweep is logged and retried on the next tick.
    """

    worker_name = "whitelist-sweep-worker"

    def __init__(
        self,
        *,
        manager: WhitelistLifecycleManager,
        interval_seconds: float = WHITELIST.sweep_interval_seconds,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._manager = manager
        self._interval = interval_seconds
        self._stop = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.last_result: SweepResult | None = None

    def start(self) -> None:
        """Start the sweep task (idempotent)."""
        if self._task is not None and not self._task.done():
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name=self.worker_name)
        logger.info("whitelist sweep worker started", extra={"data": {"interval_s": self._interval}})

    async def stop(self, *, timeout: float = 5.0) -> None:
        """Request stop and wait for the current sweep to finish."""
        task = self._task
        if task is None:
            return
        self._stop.set()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        finally:
            self._task = None

    @property
    def running(self) -> bool:
        task = self._task
        return bool(task is not None and not task.done())

    async def run_once(self) -> SweepResult | None:
        try:
            result = await self._manager.sweep()
        except Exception:
            logger.exception("whitelist sweep failed")
            return None
        self.last_result = result
        return result

    async def _run(self) -> None:
        while not self._stop.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except TimeoutError:
                continue


__all__ = ["SweepWorker"]
