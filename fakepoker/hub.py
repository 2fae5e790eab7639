"""Connected client sessions and the ways of sending them events."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

__all__ = ["PLAYER_ID_KEY", "Session", "Hub", "player_id_of"]

log = logging.getLogger(__name__)

PLAYER_ID_KEY = "player_id"


@dataclass(eq=False)
class Session:
    """One connected client.

    ``send`` delivers a payload to the client; sessions that never set a
    player id are hub screens rather than players.
    """

    send: Callable[[bytes], None]
    remote_address: str = ""
    keys: dict[str, Any] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``, or ``None``."""
        with self._lock:
            return self.keys.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self.keys[key] = value

    def write(self, payload: bytes) -> None:
        """Send ``payload`` to this client."""
        self.send(payload)


def player_id_of(session: Session) -> int | None:
    """Return the player id stored on ``session``, or ``None`` for a hub screen."""
    value = session.get(PLAYER_ID_KEY)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        log.error("player id of %s has the wrong type: %r", session.remote_address, value)
        return None
    return value


class Hub:
    """The set of connected sessions; safe to use from several threads."""

    def __init__(self) -> None:
        self._sessions: list[Session] = []
        self._lock = threading.Lock()

    def register(self, session: Session) -> None:
        with self._lock:
            if session not in self._sessions:
                self._sessions.append(session)

    def unregister(self, session: Session) -> None:
        with self._lock:
            if session in self._sessions:
                self._sessions.remove(session)

    def broadcast(self, payload: bytes) -> None:
        """Send ``payload`` to every session."""
        self.broadcast_filter(payload, lambda session: True)

    def broadcast_filter(self, payload: bytes, predicate: Callable[[Session], bool]) -> None:
        """Send ``payload`` to the sessions for which ``predicate`` is true.

        A session that fails to take the payload is logged and skipped.
        """
        with self._lock:
            targets = [session for session in self._sessions if predicate(session)]
        for session in targets:
            try:
                session.write(payload)
            except Exception:
                log.exception("failed to write to %s", session.remote_address)

    def broadcast_others(self, payload: bytes, session: Session) -> None:
        """Send ``payload`` to every session except ``session``."""
        self.broadcast_filter(payload, lambda other: other is not session)

    def broadcast_to_hub(self, payload: bytes) -> None:
        """Send ``payload`` to the sessions that are not players."""
        self.broadcast_filter(payload, lambda session: player_id_of(session) is None)

    def broadcast_to_player(self, payload: bytes, player_id: int) -> None:
        """Send ``payload`` to the sessions of ``player_id``."""
        self.broadcast_filter(payload, lambda session: player_id_of(session) == player_id)