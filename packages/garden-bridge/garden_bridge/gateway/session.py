"""Gateway layer — Pairing session state machine.

One ``PairingSession`` exists per connection attempt::

    disconnected -> connecting -> connected -> paired
                                  (any) -> error(reason)

``error`` is terminal: recovering means building a new session.  A challenge
nonce is signed at most once; a challenge repeating a consumed nonce is
dropped so it can never be replayed into a second hello.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from garden_bridge.exceptions import SessionStateError
from garden_bridge.logging import get_logger

log = get_logger(__name__)


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    PAIRED = "paired"
    ERROR = "error"


_ALLOWED: dict[SessionState, frozenset[SessionState]] = {
    SessionState.DISCONNECTED: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset({SessionState.CONNECTED, SessionState.DISCONNECTED}),
    SessionState.CONNECTED: frozenset({SessionState.PAIRED, SessionState.DISCONNECTED}),
    SessionState.PAIRED: frozenset({SessionState.DISCONNECTED}),
    SessionState.ERROR: frozenset(),
}

StateListener = Callable[[SessionState, "str | None"], None]


@dataclass(frozen=True)
class Challenge:
    nonce: str
    timestamp: int


class PairingSession:
    """State and handshake data for a single gateway connection attempt."""

    def __init__(self, on_change: StateListener | None = None) -> None:
        self._state = SessionState.DISCONNECTED
        self._reason: str | None = None
        self._challenge: Challenge | None = None
        self._consumed: set[str] = set()
        self._device_token: str | None = None
        self._started = False
        self._has_paired = False
        self._challenge_arrived = asyncio.Event()
        self._on_change = on_change

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def device_token(self) -> str | None:
        return self._device_token

    @property
    def has_paired(self) -> bool:
        return self._has_paired

    @property
    def pending_challenge(self) -> Challenge | None:
        return self._challenge

    @property
    def is_active(self) -> bool:
        return self._state in (SessionState.CONNECTING, SessionState.CONNECTED, SessionState.PAIRED)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_connect(self) -> None:
        # A session is single-use; a closed one cannot connect again.
        if self._started:
            raise SessionStateError(self._state.value, SessionState.CONNECTING.value)
        self._transition(SessionState.CONNECTING)
        self._started = True

    def mark_connected(self) -> None:
        self._transition(SessionState.CONNECTED)

    def mark_paired(self, device_token: str | None = None) -> None:
        self._transition(SessionState.PAIRED)
        self._has_paired = True
        if device_token:
            self._device_token = device_token

    def close(self) -> None:
        """Move to ``disconnected``.  A failed session keeps its error."""
        if self._state in (SessionState.ERROR, SessionState.DISCONNECTED):
            return
        self._challenge = None
        self._transition(SessionState.DISCONNECTED)

    def fail(self, reason: str) -> None:
        """Enter ``error``.  Valid from every state; the first reason wins."""
        if self._state is SessionState.ERROR:
            return
        self._challenge = None
        self._reason = reason
        self._set(SessionState.ERROR)

    # ------------------------------------------------------------------
    # Challenge handling
    # ------------------------------------------------------------------

    def record_challenge(self, nonce: str, timestamp: int) -> bool:
        """Remember a challenge.  Returns False when it was ignored."""
        if self._state not in (SessionState.CONNECTING, SessionState.CONNECTED):
            log.debug("challenge_ignored", state=self._state.value)
            return False
        if nonce in self._consumed:
            log.warning("challenge_replayed", nonce=nonce)
            return False
        self._challenge = Challenge(nonce=nonce, timestamp=timestamp)
        self._challenge_arrived.set()
        return True

    def take_challenge(self) -> Challenge | None:
        """Hand out the pending challenge once and mark its nonce consumed."""
        challenge, self._challenge = self._challenge, None
        if challenge is not None:
            self._consumed.add(challenge.nonce)
        self._challenge_arrived.clear()
        return challenge

    async def wait_for_challenge(self, timeout: float) -> bool:
        if self._challenge is not None:
            return True
        try:
            await asyncio.wait_for(self._challenge_arrived.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self._challenge is not None

    # ------------------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in _ALLOWED[self._state]:
            raise SessionStateError(self._state.value, target.value)
        self._set(target)

    def _set(self, target: SessionState) -> None:
        previous, self._state = self._state, target
        log.info(
            "session_state_changed",
            previous=previous.value,
            state=target.value,
            reason=self._reason if target is SessionState.ERROR else None,
        )
        if self._on_change is not None:
            self._on_change(target, self._reason if target is SessionState.ERROR else None)
