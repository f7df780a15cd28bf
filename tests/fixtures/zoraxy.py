"""In-process stand-in for the Zoraxy admin API, served through httpx.MockTransport."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from urllib.parse import parse_qs

import httpx

BASE_URL = "https://zoraxy.test"
USERNAME = "admin"
PASSWORD = "hunter2"

_LOGIN_PAGE = """<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
{meta}
<title>Login</title>
</head><body></body></html>
"""


def _form(request: httpx.Request) -> dict[str, str]:
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


def _cookies(request: httpx.Request) -> dict[str, str]:
    header = request.headers.get("cookie", "")
    pairs = (part.strip().partition("=") for part in header.split(";") if part.strip())
    return {name: value for name, _, value in pairs}


class FakeZoraxy:
    """Tracks handshakes and whitelist calls; behaviour is tuned per test."""

    def __init__(
        self,
        *,
        meta_token: str | None = "meta-token",
        csrf_cookie: str | None = "cookie-token",
        login_delay: float = 0.0,
    ) -> None:
        self.meta_token = meta_token
        self.csrf_cookie = csrf_cookie
        self.login_delay = login_delay
        self.accept_login = True
        self.login_page_status = 200
        self.login_page_hits = 0
        self.login_posts: list[httpx.Request] = []
        self.whitelist_requests: list[httpx.Request] = []
        self.reject_next_calls = 0
        self.failing_targets: set[str] = set()
        self.whitelists: defaultdict[str, set[str]] = defaultdict(set)
        self.active_session: str | None = None
        self._sessions_issued = 0

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def expected_token(self) -> str | None:
        return self.meta_token or self.csrf_cookie

    def expire_session(self) -> None:
        self.active_session = None

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path == "/login.html":
            return self._login_page(request)
        if request.method == "POST" and path == "/api/auth/login":
            return await self._login(request)
        if request.method == "POST" and path in {"/api/whitelist/ip/add", "/api/whitelist/ip/remove"}:
            return self._whitelist(request, path)
        return httpx.Response(404, request=request)

    def _login_page(self, request: httpx.Request) -> httpx.Response:
        self.login_page_hits += 1
        meta = f'<meta name="zoraxy.csrf.Token" content="{self.meta_token}">' if self.meta_token else ""
        headers = [("set-cookie", f"Zoraxy=pre-{self.login_page_hits}; Path=/; HttpOnly")]
        if self.csrf_cookie:
            headers.append(("set-cookie", f"zoraxy_csrf={self.csrf_cookie}; Path=/; SameSite=Strict"))
        return httpx.Response(
            self.login_page_status,
            headers=headers,
            text=_LOGIN_PAGE.format(meta=meta),
            request=request,
        )

    async def _login(self, request: httpx.Request) -> httpx.Response:
        self.login_posts.append(request)
        if self.login_delay:
            await asyncio.sleep(self.login_delay)
        form = _form(request)
        if request.headers.get("x-csrf-token") != self.expected_token:
            return httpx.Response(403, text="CSRF token invalid", request=request)
        if not self.accept_login or form.get("password") != PASSWORD:
            return httpx.Response(200, json={"error": "Invalid username or password"}, request=request)
        self._sessions_issued += 1
        self.active_session = f"session-{self._sessions_issued}"
        return httpx.Response(
            200,
            headers=[
                ("set-cookie", f"Zoraxy={self.active_session}; Path=/; HttpOnly"),
                ("set-cookie", "zoraxy_csrf=rotated-cookie-token; Path=/"),
            ],
            json="OK",
            request=request,
        )

    def _whitelist(self, request: httpx.Request, path: str) -> httpx.Response:
        self.whitelist_requests.append(request)
        if self.reject_next_calls > 0:
            self.reject_next_calls -= 1
            return httpx.Response(401, text="Unauthorized", request=request)
        cookies = _cookies(request)
        if self.active_session is None or cookies.get("Zoraxy") != self.active_session:
            return httpx.Response(401, text="Unauthorized", request=request)
        if request.headers.get("x-csrf-token") != self.expected_token:
            return httpx.Response(403, text="CSRF token invalid", request=request)

        form = _form(request)
        target, ip = form["id"], form["ip"]
        if target in self.failing_targets:
            return httpx.Response(500, text="internal error", request=request)
        if path.endswith("/add"):
            self.whitelists[target].add(ip)
            return httpx.Response(200, json="OK", request=request)
        if ip not in self.whitelists[target]:
            return httpx.Response(200, json={"error": "IP not found in whitelist"}, request=request)
        self.whitelists[target].discard(ip)
        return httpx.Response(200, json="OK", request=request)
