"""Single owner of the Zoraxy session snapshot and its in-flight login."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from login_firewall.domain.session import EMPTY_SESSION, SessionState

Handshake = Callable[[], Awaitable[SessionState]]

logger = logging.getLogger("login_firewall.zoraxy.session")


class SessionStore:
    """Holds the current ``SessionState`` and collapses concurrent logins.

    The store is bound to the event loop that first starts a login. State is
    only ever replaced wholesale: by a finished handshake, or by ``reset`` /
    ``invalidate`` after the remote rejected the session.
    """

    def __init__(self) -> None:
        self._state: SessionState = EMPTY_SESSION
        self._attempt: asyncio.Task[SessionState] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def login_in_flight(self) -> bool:
        return self._attempt is not None

    async def acquire(self, handshake: Handshake) -> SessionState:
        """Return an authenticated state, running ``handshake`` at most once at a time.

        Callers arriving while a login runs await that same login. Waiters are
        shielded: cancelling one of them leaves the shared handshake running
        for the others.
        """

        state = self._state
        if state.authenticated:
            return state
        attempt = self._attempt
        if attempt is None:
            attempt = asyncio.get_running_loop().create_task(
                self._run(handshake),
                name="zoraxy-login",
            )
            attempt.add_done_callback(_retrieve_outcome)
            self._attempt = attempt
        return await asyncio.shield(attempt)

    def reset(self) -> None:
        """Drop cookies and tokens; the next caller logs in from scratch."""
        if self._state.authenticated:
            logger.info("zoraxy session reset")
        self._state = EMPTY_SESSION

    def invalidate(self, observed: SessionState) -> bool:
        """Reset only if ``observed`` is still the current session.

        Returns ``False`` when a newer login already replaced it.
        """
        if self._state is not observed:
            return False
        self.reset()
        return True

    async def _run(self, handshake: Handshake) -> SessionState:
        try:
            state = await handshake()
        except BaseException:
            self._state = EMPTY_SESSION
            raise
        else:
            self._state = state
            return state
        finally:
            self._attempt = None


def _retrieve_outcome(task: asyncio.Task[SessionState]) -> None:
    # Every waiter may have been cancelled; mark the failure as observed.
    if not task.cancelled():
        task.exception()


__all__ = ["Handshake", "SessionStore"]
