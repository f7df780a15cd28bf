"""Exception types shared across the login firewall."""

from __future__ import annotations


class LoginFirewallError(Exception):
    """Base class for login-firewall failures."""


class NotConfiguredError(LoginFirewallError):
    """Raised when the Zoraxy endpoint or credentials are missing."""


class AuthError(LoginFirewallError):
    """Raised when the Zoraxy login handshake fails."""


class RemoteError(LoginFirewallError):
    """Raised when an authenticated whitelist call fails after its single retry."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MembershipLookupError(LoginFirewallError):
    """Raised when a user's whitelist targets cannot be determined at all."""


__all__ = [
    "AuthError",
    "LoginFirewallError",
    "MembershipLookupError",
    "NotConfiguredError",
    "RemoteError",
]
