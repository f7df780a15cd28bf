"""Zoraxy access-rule whitelist adapter with a single re-login retry."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

import httpx

from login_firewall.application.ports.whitelist_gateway import WhitelistGatewayPort
from login_firewall.clients import WHITELIST, ZORAXY
from login_firewall.domain.session import SessionState
from login_firewall.errors import AuthError, RemoteError
from login_firewall.infrastructure.zoraxy.auth_client import RemoteAuthClient, remote_error_message

logger = logging.getLogger("login_firewall.zoraxy.whitelist")

_AUTH_FAILURE_STATUSES = frozenset({httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN})
# Only a message about the IP itself missing from the list confirms absence.
_ABSENT_PATTERN = re.compile(
    r"^\s*(?:the\s+)?(?:ip|ip\s+address|address|entry)\b.*?"
    r"\b(?:not\s+found|does\s+not\s+exist|not\s+(?:in|on)\s+(?:the\s+)?whitelist)\b",
    re.IGNORECASE,
)


class ZoraxyWhitelistGateway(WhitelistGatewayPort):
    """Implementation of WhitelistGatewayPort backed by the Zoraxy admin API.

    A 401/403 answer is retried exactly once with a fresh login. A second
    rejection means the credentials or endpoint are wrong, and is surfaced.
    """

    def __init__(self, auth: RemoteAuthClient) -> None:
        self._auth = auth

    async def add_entry(self, target_id: str, ip: str, comment: str = WHITELIST.comment) -> None:
        path = ZORAXY.whitelist_add_path
        response = await self._post(path, {"ip": ip, "comment": comment, "id": target_id})
        error = remote_error_message(response)
        if error is not None:
            raise RemoteError(
                f"zoraxy rejected adding {ip} to whitelist {target_id}: {error}",
                status_code=response.status_code,
            )
        logger.info(
            "whitelist entry added",
            extra={"data": {"target_id": target_id, "ip": ip}},
        )

    async def remove_entry(self, target_id: str, ip: str) -> bool:
        path = ZORAXY.whitelist_remove_path
        response = await self._post(path, {"ip": ip, "id": target_id}, allow_not_found=True)
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info(
                "whitelist entry already absent",
                extra={"data": {"target_id": target_id, "ip": ip, "status_code": 404}},
            )
            return False
        error = remote_error_message(response)
        if error is not None:
            if _ABSENT_PATTERN.search(error):
                logger.info(
                    "whitelist entry already absent",
                    extra={"data": {"target_id": target_id, "ip": ip, "error": error}},
                )
                return False
            raise RemoteError(
                f"zoraxy rejected removing {ip} from whitelist {target_id}: {error}",
                status_code=response.status_code,
            )
        logger.info(
            "whitelist entry removed",
            extra={"data": {"target_id": target_id, "ip": ip}},
        )
        return True

    # ------------------------------------------------------------------
    # internal

    async def _post(
        self,
        path: str,
        form: Mapping[str, str],
        *,
        allow_not_found: bool = False,
    ) -> httpx.Response:
        session = await self._authenticate()
        response = await self._send(path, form, session)
        if response.status_code in _AUTH_FAILURE_STATUSES:
            logger.warning(
                "zoraxy session rejected, re-authenticating once",
                extra={"data": {"path": path, "status_code": response.status_code}},
            )
            self._auth.invalidate(session)
            session = await self._authenticate()
            response = await self._send(path, form, session)
            if response.status_code in _AUTH_FAILURE_STATUSES:
                self._auth.invalidate(session)
                raise RemoteError(
                    f"zoraxy rejected a fresh session for POST {path} with {response.status_code}",
                    status_code=response.status_code,
                )
        if response.is_success:
            return response
        if allow_not_found and response.status_code == httpx.codes.NOT_FOUND:
            return response
        raise RemoteError(
            f"zoraxy returned {response.status_code} for POST {path}",
            status_code=response.status_code,
        )

    async def _authenticate(self) -> SessionState:
        try:
            return await self._auth.ensure_authenticated()
        except AuthError as exc:
            raise RemoteError(f"zoraxy authentication failed: {exc}") from exc

    async def _send(self, path: str, form: Mapping[str, str], session: SessionState) -> httpx.Response:
        try:
            return await self._auth.post_form(path, form, session)
        except httpx.HTTPError as exc:
            raise RemoteError(f"zoraxy request POST {path} failed: {exc.__class__.__name__}: {exc}") from exc


__all__ = ["ZoraxyWhitelistGateway"]
