"""Snapshot of one Zoraxy admin login session."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


def _frozen(cookies: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(cookies))


@dataclass(frozen=True, slots=True)
class SessionState:
    """Cookies and CSRF tokens of a remote login.

    Instances are immutable; a login installs a whole new snapshot so readers
    never observe cookies from one session mixed with tokens from another.
    """

    cookies: Mapping[str, str] = field(default_factory=dict)
    csrf_token: str | None = None
    csrf_cookie_token: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "cookies", _frozen(self.cookies))

    @property
    def authenticated(self) -> bool:
        return bool(self.cookies) and bool(self.csrf_token)

    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def redacted(self) -> dict[str, object]:
        """Describe the session without leaking cookie or token values."""
        return {
            "authenticated": self.authenticated,
            "cookie_names": sorted(self.cookies),
            "csrf_token_present": self.csrf_token is not None,
            "csrf_cookie_token_present": self.csrf_cookie_token is not None,
        }


def parse_set_cookie(header: str) -> tuple[str, str] | None:
    """Return ``(name, value)`` from a ``Set-Cookie`` header, ignoring attributes."""

    pair = header.split(";", 1)[0]
    name, sep, value = pair.partition("=")
    name = name.strip()
    if not name or not sep:
        return None
    return name, value.strip()


def merge_cookies(
    cookies: Mapping[str, str],
    set_cookie_headers: Iterable[str],
) -> dict[str, str]:
    """Return ``cookies`` updated with every parsable ``Set-Cookie`` header."""

    merged = dict(cookies)
    for header in set_cookie_headers:
        parsed = parse_set_cookie(header)
        if parsed is None:
            continue
        name, value = parsed
        merged[name] = value
    return merged


EMPTY_SESSION = SessionState()

__all__ = ["EMPTY_SESSION", "SessionState", "merge_cookies", "parse_set_cookie"]
