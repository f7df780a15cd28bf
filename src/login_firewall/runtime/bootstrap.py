"""Runtime wiring for the login firewall."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from login_firewall.application.portal_access import PortalAccessService
from login_firewall.application.ports.entry_store import WhitelistEntryStorePort
from login_firewall.application.ports.membership import MembershipResolverPort
from login_firewall.application.whitelist_lifecycle import (
    Clock,
    LifecycleConfig,
    WhitelistLifecycleManager,
)
from login_firewall.config.whitelist import WhitelistSettings
from login_firewall.infrastructure.state.entry_file import JsonFileWhitelistEntryStore
from login_firewall.infrastructure.state.entry_store import InMemoryWhitelistEntryStore
from login_firewall.infrastructure.zoraxy.auth_client import RemoteAuthClient
from login_firewall.infrastructure.zoraxy.whitelist_gateway import ZoraxyWhitelistGateway
from login_firewall.runtime.settings import Settings
from login_firewall.runtime.sweep_worker import SweepWorker

logger = logging.getLogger("login_firewall.runtime")


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Aggregated runtime components shared by the portal and the CLI."""

    settings: Settings
    auth_client: RemoteAuthClient
    gateway: ZoraxyWhitelistGateway
    entries: WhitelistEntryStorePort
    membership: MembershipResolverPort
    manager: WhitelistLifecycleManager
    portal: PortalAccessService
    sweep_worker: SweepWorker

    async def aclose(self) -> None:
        await self.sweep_worker.stop()
        await self.auth_client.aclose()


def build_entry_store(settings: WhitelistSettings) -> WhitelistEntryStorePort:
    if settings.state_file is None:
        return InMemoryWhitelistEntryStore()
    return JsonFileWhitelistEntryStore(settings.state_file)


def build_runtime(
    settings: Settings | None = None,
    *,
    membership: MembershipResolverPort,
    entries: WhitelistEntryStorePort | None = None,
    clock: Clock = utc_now,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RuntimeContext:
    """Construct the runtime context; the sweep worker is created but not started."""
    resolved = settings or Settings.load()
    missing = resolved.zoraxy.missing_fields()
    if missing:
        logger.warning(
            "zoraxy is not configured; IP whitelisting is disabled until these are set",
            extra={"data": {"missing": missing}},
        )

    auth_client = RemoteAuthClient.from_settings(resolved.zoraxy, transport=transport)
    gateway = ZoraxyWhitelistGateway(auth_client)
    store = entries if entries is not None else build_entry_store(resolved.whitelist)
    manager = WhitelistLifecycleManager(
        gateway=gateway,
        membership=membership,
        entries=store,
        clock=clock,
        config=LifecycleConfig(
            ttl=resolved.whitelist.ttl,
            comment=resolved.whitelist.comment,
            max_concurrency=resolved.whitelist.max_concurrency,
        ),
    )
    return RuntimeContext(
        settings=resolved,
        auth_client=auth_client,
        gateway=gateway,
        entries=store,
        membership=membership,
        manager=manager,
        portal=PortalAccessService(manager),
        sweep_worker=SweepWorker(
            manager=manager,
            interval_seconds=resolved.whitelist.sweep_interval_seconds,
        ),
    )


__all__ = ["RuntimeContext", "build_entry_store", "build_runtime", "utc_now"]
