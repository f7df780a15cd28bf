"""Group-membership lookup backed by in-memory mappings."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from login_firewall.application.ports.membership import MembershipResolverPort


class StaticMembershipResolver(MembershipResolverPort):
    """Resolves targets from ``user -> groups`` and ``group -> whitelist id`` maps.

    Groups without a whitelist id grant nothing; unknown users belong to no group.
    """

    def __init__(
        self,
        *,
        group_whitelists: Mapping[str, str | None],
        user_groups: Mapping[str, Iterable[str]],
    ) -> None:
        self._group_whitelists = dict(group_whitelists)
        self._user_groups = {user: tuple(groups) for user, groups in user_groups.items()}

    def targets_for_user(self, user_id: str) -> frozenset[str]:
        targets = set()
        for group in self._user_groups.get(user_id, ()):
            whitelist_id = (self._group_whitelists.get(group) or "").strip()
            if whitelist_id:
                targets.add(whitelist_id)
        return frozenset(targets)


__all__ = ["StaticMembershipResolver"]
