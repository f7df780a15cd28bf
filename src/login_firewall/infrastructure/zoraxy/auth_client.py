"""Session-authenticated HTTP client for the Zoraxy admin API."""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Mapping
from http.cookiejar import CookieJar, DefaultCookiePolicy
from types import TracebackType

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind

from login_firewall.clients import ZORAXY
from login_firewall.config.zoraxy import ZoraxySettings
from login_firewall.domain.session import SessionState, merge_cookies
from login_firewall.errors import AuthError, NotConfiguredError
from login_firewall.infrastructure.zoraxy.session_store import SessionStore

logger = logging.getLogger("login_firewall.zoraxy.auth")

_CSRF_META_PATTERN = re.compile(
    r"name=[\"']" + re.escape(ZORAXY.csrf_meta_name) + r"[\"']\s+content=[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"


def extract_csrf_from_meta(html: str) -> str | None:
    """Return the CSRF token embedded in the login page's meta tag."""

    match = _CSRF_META_PATTERN.search(html or "")
    return match.group(1) if match else None


def remote_error_message(response: httpx.Response) -> str | None:
    """Return the ``error`` field Zoraxy puts in JSON bodies of failed calls."""

    if "json" not in response.headers.get("content-type", ""):
        return None
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, Mapping) and payload.get("error"):
        return str(payload["error"])
    return None


def _jarless_cookies() -> CookieJar:
    # Session cookies live in SessionState; the transport must neither store nor replay any.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


class RemoteAuthClient:
    """Keeps one Zoraxy admin login alive and signs requests with it."""

    def __init__(
        self,
        *,
        base_url: str | None,
        username: str | None,
        password: str | None,
        timeout_seconds: float = ZORAXY.timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
        store: SessionStore | None = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._username = username or ""
        self._password = password or ""
        self._store = store or SessionStore()
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_seconds,
            transport=transport,
            cookies=_jarless_cookies(),
        )

    @classmethod
    def from_settings(
        cls,
        settings: ZoraxySettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RemoteAuthClient:
        return cls(
            base_url=settings.api_url,
            username=settings.username,
            password=settings.password_value,
            timeout_seconds=settings.timeout_seconds,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url and self._username and self._password)

    @property
    def session(self) -> SessionState:
        return self._store.state

    async def ensure_authenticated(self) -> SessionState:
        """Return a session with cookies and a CSRF token, logging in if needed.

        An already populated session is trusted as-is; staleness is detected
        by callers from 401/403 responses.
        """

        if not self.is_configured:
            raise NotConfiguredError(
                "ZORAXY_API_URL, ZORAXY_USERNAME and ZORAXY_PASSWORD must all be set",
            )
        return await self._store.acquire(self._login)

    def reset(self) -> None:
        self._store.reset()

    def invalidate(self, observed: SessionState) -> bool:
        return self._store.invalidate(observed)

    def debug_state(self) -> dict[str, object]:
        snapshot = self._store.state.redacted()
        snapshot["login_in_flight"] = self._store.login_in_flight
        return snapshot

    async def post_form(
        self,
        path: str,
        form: Mapping[str, str],
        session: SessionState,
    ) -> httpx.Response:
        """POST a form with ``session``'s cookies and CSRF header attached."""
        return await self._request("POST", path, data=dict(form), headers=self._auth_headers(session))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RemoteAuthClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # login handshake

    async def _login(self) -> SessionState:
        start = time.perf_counter()
        try:
            state = await self._handshake()
        except AuthError as exc:
            logger.warning(
                "zoraxy login failed",
                extra={"data": {"base_url": self._base_url, "error": str(exc)}},
            )
            raise
        logger.info(
            "zoraxy login succeeded",
            extra={
                "data": {
                    "base_url": self._base_url,
                    "cookie_names": sorted(state.cookies),
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                }
            },
        )
        return state

    async def _handshake(self) -> SessionState:
        try:
            page = await self._request(
                "GET",
                ZORAXY.login_page_path,
                headers={"User-Agent": ZORAXY.user_agent, "Accept": "text/html"},
            )
            page.raise_for_status()
            cookies = merge_cookies({}, page.headers.get_list("set-cookie"))
            if not cookies:
                logger.warning("zoraxy login page returned no cookies")

            token = extract_csrf_from_meta(page.text)
            if token is None:
                token = cookies.get(ZORAXY.csrf_cookie_name)
                if token:
                    logger.info("zoraxy csrf token taken from cookie fallback")
            if not token:
                raise AuthError("zoraxy login page carried no CSRF token (meta tag or cookie)")

            pending = SessionState(cookies=cookies, csrf_token=token)
            headers = self._auth_headers(pending)
            headers["Accept"] = "*/*"
            headers["Referer"] = f"{self._base_url}{ZORAXY.login_page_path}"
            response = await self._request(
                "POST",
                ZORAXY.login_path,
                data={"username": self._username, "password": self._password, "rmbme": "false"},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AuthError(
                f"zoraxy login failed: {exc.request.method} {exc.request.url.path} "
                f"returned {exc.response.status_code}",
            ) from exc
        except httpx.HTTPError as exc:
            raise AuthError(f"zoraxy login failed: {exc.__class__.__name__}: {exc}") from exc

        rejection = remote_error_message(response)
        if rejection is not None:
            raise AuthError(f"zoraxy rejected login: {rejection}")

        cookies = merge_cookies(cookies, response.headers.get_list("set-cookie"))
        state = SessionState(
            cookies=cookies,
            csrf_token=token,
            csrf_cookie_token=cookies.get(ZORAXY.csrf_cookie_name),
        )
        if not state.authenticated:
            raise AuthError("zoraxy login produced no session cookies")
        return state

    # ------------------------------------------------------------------
    # transport

    def _auth_headers(self, session: SessionState) -> dict[str, str]:
        return {
            "Content-Type": _FORM_CONTENT_TYPE,
            "Cookie": session.cookie_header(),
            ZORAXY.csrf_header: session.csrf_token or "",
            "x-requested-with": "XMLHttpRequest",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str],
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        tracer = trace.get_tracer("login_firewall.zoraxy")
        with tracer.start_as_current_span(
            "zoraxy.request",
            kind=SpanKind.CLIENT,
            attributes={"http.method": method, "http.target": path},
        ) as span:
            start = time.perf_counter()
            response = await self._client.request(method, path, data=data, headers=dict(headers))
            span.set_attribute("http.status_code", response.status_code)
            logger.debug(
                "zoraxy.request.complete",
                extra={
                    "data": {
                        "method": method,
                        "path": path,
                        "status_code": response.status_code,
                        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                    }
                },
            )
            return response


__all__ = ["RemoteAuthClient", "extract_csrf_from_meta", "remote_error_message"]
