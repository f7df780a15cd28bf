from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from login_firewall.application.whitelist_lifecycle import WhitelistLifecycleManager
from login_firewall.infrastructure.state.entry_store import InMemoryWhitelistEntryStore
from login_firewall.runtime.sweep_worker import SweepWorker
from tests.fixtures.fakes import FakeGateway, FakeMembership, MutableClock

pytestmark = pytest.mark.anyio("asyncio")

IP = "203.0.113.7"


def _manager(clock: MutableClock) -> tuple[WhitelistLifecycleManager, FakeGateway]:
    gateway = FakeGateway()
    manager = WhitelistLifecycleManager(
        gateway=gateway,
        membership=FakeMembership({"alice": {"wl-a"}}),
        entries=InMemoryWhitelistEntryStore(),
        clock=clock,
    )
    return manager, gateway


def test_interval_must_be_positive() -> None:
    manager, _ = _manager(MutableClock(datetime(2026, 3, 2, tzinfo=UTC)))

    with pytest.raises(ValueError, match="interval"):
        SweepWorker(manager=manager, interval_seconds=0)


async def test_run_once_records_last_result() -> None:
    clock = MutableClock(datetime(2026, 3, 2, tzinfo=UTC))
    manager, gateway = _manager(clock)
    await manager.propagate("alice", IP)
    clock.advance(timedelta(days=2))
    worker = SweepWorker(manager=manager, interval_seconds=60)

    result = await worker.run_once()

    assert result is not None
    assert len(result.removed) == 1
    assert worker.last_result is result
    assert gateway.remote["wl-a"] == set()


async def test_run_once_logs_and_swallows_failures(caplog: pytest.LogCaptureFixture) -> None:
    class ExplodingManager:
        async def sweep(self) -> None:
            raise RuntimeError("store unavailable")

    worker = SweepWorker(manager=ExplodingManager(), interval_seconds=60)  # type: ignore[arg-type]

    with caplog.at_level(logging.ERROR, logger="login_firewall.sweep_worker"):
        assert await worker.run_once() is None

    assert "whitelist sweep failed" in caplog.text
    assert worker.last_result is None


async def test_worker_sweeps_on_start_and_stops_promptly() -> None:
    clock = MutableClock(datetime(2026, 3, 2, tzinfo=UTC))
    manager, gateway = _manager(clock)
    await manager.propagate("alice", IP)
    clock.advance(timedelta(days=2))
    worker = SweepWorker(manager=manager, interval_seconds=3600)

    worker.start()
    worker.start()
    for _ in range(100):
        if worker.last_result is not None:
            break
        await asyncio.sleep(0.01)

    assert worker.running
    assert worker.last_result is not None
    assert gateway.remove_calls == [("wl-a", IP)]

    await asyncio.wait_for(worker.stop(), timeout=1)
    assert not worker.running


async def test_stop_without_start_is_noop() -> None:
    manager, _ = _manager(MutableClock(datetime(2026, 3, 2, tzinfo=UTC)))

    await SweepWorker(manager=manager, interval_seconds=60).stop()
