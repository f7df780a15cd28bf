"""Port resolving which whitelists a user is entitled to."""

from __future__ import annotations

from typing import Protocol


class MembershipResolverPort(Protocol):
    """Maps a portal user onto remote whitelist target ids."""

    def targets_for_user(self, user_id: str) -> frozenset[str]:
        """Return the whitelist ids derived from the user's group memberships."""


__all__ = ["MembershipResolverPort"]
