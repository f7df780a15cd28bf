"""Port describing remote whitelist mutations."""

from __future__ import annotations

from typing import Protocol


class WhitelistGatewayPort(Protocol):
    """Adds and removes IPs on a remote, named whitelist."""

    async def add_entry(self, target_id: str, ip: str, comment: str) -> None:
        """Whitelist ``ip`` on ``target_id``; raises ``RemoteError`` on failure."""

    async def remove_entry(self, target_id: str, ip: str) -> bool:
        """Remove ``ip`` from ``target_id``.

        Returns ``False`` when the remote confirms the IP was not listed.
        """


__all__ = ["WhitelistGatewayPort"]
