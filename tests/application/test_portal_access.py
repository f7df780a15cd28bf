from __future__ import annotations

from datetime import UTC, datetime

import pytest

from login_firewall.application.portal_access import (
    AccessStatus,
    PortalAccessService,
    client_ip_from_forwarded_for,
)
from login_firewall.application.whitelist_lifecycle import WhitelistLifecycleManager
from login_firewall.infrastructure.state.entry_store import InMemoryWhitelistEntryStore
from tests.fixtures.fakes import FakeGateway, FakeMembership, MutableClock

pytestmark = pytest.mark.anyio("asyncio")


def _service(targets: dict[str, set[str]]) -> tuple[PortalAccessService, FakeGateway, FakeMembership]:
    gateway = FakeGateway()
    membership = FakeMembership(targets)
    manager = WhitelistLifecycleManager(
        gateway=gateway,
        membership=membership,
        entries=InMemoryWhitelistEntryStore(),
        clock=MutableClock(datetime(2026, 3, 2, tzinfo=UTC)),
    )
    return PortalAccessService(manager), gateway, membership


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("203.0.113.7", "203.0.113.7"),
        ("203.0.113.7, 10.0.0.1, 10.0.0.2", "203.0.113.7"),
        ("  2001:DB8::1 ,10.0.0.1", "2001:db8::1"),
        (None, "127.0.0.1"),
        ("", "127.0.0.1"),
    ],
)
def test_client_ip_from_forwarded_for(header: str | None, expected: str) -> None:
    assert client_ip_from_forwarded_for(header) == expected


def test_client_ip_from_forwarded_for_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        client_ip_from_forwarded_for("unknown, 10.0.0.1")


async def test_grant_on_login_reports_granted() -> None:
    service, gateway, _ = _service({"alice": {"wl-a"}})

    grant = await service.grant_on_login("alice", forwarded_for="203.0.113.7, 10.0.0.1")

    assert grant.status is AccessStatus.GRANTED
    assert grant.ip == "203.0.113.7"
    assert grant.succeeded_targets == ("wl-a",)
    assert gateway.remote["wl-a"] == {"203.0.113.7"}


async def test_grant_on_login_reports_partial() -> None:
    service, gateway, _ = _service({"alice": {"wl-a", "wl-b"}})
    gateway.failing_add_targets.add("wl-b")

    grant = await service.grant_on_login("alice", forwarded_for="203.0.113.7")

    assert grant.status is AccessStatus.PARTIAL
    assert grant.failed_targets == ("wl-b",)


async def test_grant_on_login_reports_degraded_when_every_target_fails() -> None:
    service, gateway, _ = _service({"alice": {"wl-a"}})
    gateway.failing_add_targets.add("wl-a")

    grant = await service.grant_on_login("alice", forwarded_for="203.0.113.7")

    assert grant.status is AccessStatus.DEGRADED


async def test_grant_on_login_reports_no_targets() -> None:
    service, gateway, _ = _service({})

    grant = await service.grant_on_login("carol", forwarded_for=None)

    assert grant.status is AccessStatus.NO_TARGETS
    assert grant.ip == "127.0.0.1"
    assert gateway.add_calls == []


async def test_grant_on_login_never_raises() -> None:
    service, gateway, membership = _service({"alice": {"wl-a"}})
    membership.error = RuntimeError("directory down")

    lookup_failed = await service.grant_on_login("alice", forwarded_for="203.0.113.7")
    bad_header = await service.grant_on_login("alice", forwarded_for="not-an-ip")

    assert lookup_failed.status is AccessStatus.DEGRADED
    assert lookup_failed.ip == "203.0.113.7"
    assert bad_header.status is AccessStatus.DEGRADED
    assert bad_header.ip is None
    assert gateway.add_calls == []


async def test_revoke_on_logout_counts_removed_entries() -> None:
    service, gateway, _ = _service({"alice": {"wl-a", "wl-b"}})
    await service.grant_on_login("alice", forwarded_for="203.0.113.7")

    revocation = await service.revoke_on_logout("alice")

    assert revocation.ok
    assert revocation.revoked == 2
    assert gateway.remote["wl-a"] == set()
