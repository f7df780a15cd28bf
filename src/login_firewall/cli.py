"""Operator CLI for checking the Zoraxy integration by hand."""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence

from login_firewall.config.observability import ObservabilitySettings
from login_firewall.infrastructure.state.membership import StaticMembershipResolver
from login_firewall.observability.logging import configure_logging
from login_firewall.observability.tracing import configure_tracing
from login_firewall.runtime.bootstrap import RuntimeContext, build_runtime
from login_firewall.runtime.settings import Settings

_DEFAULT_CLI_COMMENT = "CLI Zoraxy test"


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="login-firewall",
        description="Add/remove IPs on Zoraxy whitelists and sweep expired grants.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Whitelist an IP on one Zoraxy access rule.")
    add.add_argument("whitelist_id", help="Zoraxy access-rule id.")
    add.add_argument("ip", help="IPv4/IPv6 address to allow.")
    add.add_argument("comment", nargs="*", help="Comment stored with the remote entry.")

    remove = commands.add_parser("remove", help="Remove an IP from one Zoraxy access rule.")
    remove.add_argument("whitelist_id", help="Zoraxy access-rule id.")
    remove.add_argument("ip", help="IPv4/IPv6 address to remove.")

    commands.add_parser("sweep", help="Remove expired grants recorded in WHITELIST_STATE_FILE.")

    revoke = commands.add_parser("revoke", help="Revoke every grant of a user in WHITELIST_STATE_FILE.")
    revoke.add_argument("user_id", help="Portal user id.")
    return parser


async def _dispatch(args: argparse.Namespace, runtime: RuntimeContext) -> dict[str, object]:
    match args.command:
        case "add":
            comment = " ".join(args.comment) or _DEFAULT_CLI_COMMENT
            await runtime.gateway.add_entry(args.whitelist_id, args.ip, comment)
            return {"action": "add", "whitelist_id": args.whitelist_id, "ip": args.ip}
        case "remove":
            removed = await runtime.gateway.remove_entry(args.whitelist_id, args.ip)
            return {"action": "remove", "whitelist_id": args.whitelist_id, "ip": args.ip, "removed": removed}
        case "sweep":
            result = await runtime.manager.sweep()
            return {
                "action": "sweep",
                "removed": [list(key) for key in result.removed],
                "still_failing": [list(key) for key in result.still_failing],
            }
        case "revoke":
            revoked = await runtime.manager.revoke_all(args.user_id)
            return {"action": "revoke", "user_id": args.user_id, "revoked": revoked}
    raise ValueError(f"unknown command: {args.command}")


async def _amain(argv: Sequence[str] | None) -> None:
    args = _parser().parse_args(list(argv) if argv is not None else None)
    settings = Settings.load()
    if args.command in {"sweep", "revoke"} and settings.whitelist.state_file is None:
        raise RuntimeError(f"WHITELIST_STATE_FILE must be set for '{args.command}'")

    runtime = build_runtime(
        settings,
        membership=StaticMembershipResolver(group_whitelists={}, user_groups={}),
    )
    try:
        result = await _dispatch(args, runtime)
    finally:
        session = runtime.auth_client.debug_state()
        await runtime.aclose()
    print(json.dumps({"result": result, "session": session}))


def main(argv: Sequence[str] | None = None) -> None:
    observability = ObservabilitySettings()
    configure_logging(
        cloud_logging_enabled=observability.enable_cloud_logging,
        gcp_project=observability.gcp_project,
    )
    configure_tracing(service_name="login-firewall-cli")
    try:
        asyncio.run(_amain(argv))
    except KeyboardInterrupt:
        raise
    except Exception as exc:
        raise SystemExit(str(exc)) from exc


__all__ = ["main"]
