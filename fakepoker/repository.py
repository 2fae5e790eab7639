"""SQLite storage for players, their hands, scores and whose turn it is."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable

from fakepoker.models import Card, Score

__all__ = [
    "RepositoryError",
    "PlayerCountTooHigh",
    "PlayerAlreadyExists",
    "Repository",
    "open_database",
]

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS players (
    player_id INTEGER PRIMARY KEY AUTOINCREMENT,
    player_name TEXT NOT NULL UNIQUE,
    is_active BOOLEAN NOT NULL DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS player_scores (
    player_id INTEGER PRIMARY KEY REFERENCES players (player_id),
    points INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS player_hand (
    player_id INTEGER NOT NULL REFERENCES players (player_id),
    card_id INTEGER NOT NULL,
    card_type INTEGER NOT NULL,
    is_real BOOLEAN NOT NULL
);

CREATE TABLE IF NOT EXISTS current_player (
    current_player_id INTEGER NOT NULL
);
"""


class RepositoryError(Exception):
    """Base class of the storage errors."""


class PlayerCountTooHigh(RepositoryError):
    """Raised when a new player would exceed the player limit."""

    def __init__(self, message: str = "player count too high") -> None:
        super().__init__(message)


class PlayerAlreadyExists(RepositoryError):
    """Raised when a player of that name is already present."""

    def __init__(self, message: str = "player already exists") -> None:
        super().__init__(message)


def open_database(path: str = ":memory:") -> sqlite3.Connection:
    """Open a SQLite connection usable from several threads."""
    return sqlite3.connect(path, check_same_thread=False)


class Repository:
    """Game state kept in a SQLite database; every method is thread safe."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._lock = threading.RLock()

    def migrate(self) -> None:
        """Create the tables if they do not exist yet."""
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    def swap_card_holders(self, card1: Card, card2: Card, player1: int, player2: int) -> None:
        """Give ``card1`` from ``player1`` to ``player2`` and ``card2`` back, atomically."""
        query = """
            UPDATE player_hand
            SET player_id = ?
            WHERE player_id = ? AND card_id = ? AND card_type = ? AND is_real = ?
        """
        with self._lock, self._conn:
            self._conn.execute(query, (player2, player1, card1.id, card1.type, card1.is_real))
            self._conn.execute(query, (player1, player2, card2.id, card2.type, card2.is_real))

    def get_player_scores(self) -> list[Score]:
        """Return the scores of the active players."""
        log.debug("getting player scores")
        query = """
            SELECT ps.player_id, ps.points
            FROM player_scores AS ps JOIN players AS p ON ps.player_id = p.player_id
            WHERE p.is_active = TRUE
            ORDER BY ps.player_id
        """
        with self._lock:
            rows = self._conn.execute(query).fetchall()
        scores = [Score(player_id=player_id, points=points) for player_id, points in rows]
        log.debug("player scores retrieved: %s", scores)
        return scores

    def new_player(self, player_name: str, max_players: int) -> int:
        """Add or reactivate the player named ``player_name`` and return its id.

        Raises :class:`PlayerCountTooHigh` when ``max_players`` other players
        are already active.
        """
        log.debug("creating new player %r", player_name)
        with self._lock, self._conn:
            (count,) = self._conn.execute(
                "SELECT COUNT(*) FROM players WHERE is_active = TRUE AND player_name <> ?",
                (player_name,),
            ).fetchone()
            if count >= max_players:
                log.warning("player count too high: %d (max %d)", count, max_players)
                raise PlayerCountTooHigh()
            self._conn.execute(
                """
                INSERT INTO players (player_name) VALUES (?)
                ON CONFLICT(player_name) DO UPDATE SET is_active = TRUE
                """,
                (player_name,),
            )
            (player_id,) = self._conn.execute(
                "SELECT player_id FROM players WHERE player_name = ?", (player_name,)
            ).fetchone()
            self._conn.execute(
                "INSERT OR IGNORE INTO player_scores (player_id, points) VALUES (?, 0)",
                (player_id,),
            )
        log.debug("new player %d created for %r", player_id, player_name)
        return player_id

    def close_player(self, player_id: int) -> None:
        """Mark a player as no longer active."""
        log.debug("closing player %d", player_id)
        with self._lock, self._conn:
            self._conn.execute(
                "UPDATE players SET is_active = FALSE WHERE player_id = ?", (player_id,)
            )

    def get_active_player_count(self) -> int:
        with self._lock:
            (count,) = self._conn.execute(
                "SELECT COUNT(*) FROM players WHERE is_active = TRUE"
            ).fetchone()
        return count

    def get_active_player_ids(self) -> list[int]:
        """Return the ids of the active players in ascending order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT player_id FROM players WHERE is_active = TRUE ORDER BY player_id"
            ).fetchall()
        return [player_id for (player_id,) in rows]

    def drop_player_hands(self) -> None:
        """Remove every card from every hand."""
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM player_hand")

    def set_player_hand(self, player_id: int, cards: Iterable[Card]) -> None:
        """Add ``cards`` to the hand of ``player_id``; the hand must not be empty."""
        rows = [(player_id, card.id, card.type, card.is_real) for card in cards]
        if not rows:
            raise ValueError("a hand needs at least one card")
        log.debug("setting hand of player %d: %s", player_id, rows)
        with self._lock, self._conn:
            self._conn.executemany(
                "INSERT INTO player_hand (player_id, card_id, card_type, is_real) VALUES (?, ?, ?, ?)",
                rows,
            )

    def get_player_hand(self, player_id: int) -> list[Card]:
        """Return the cards held by ``player_id``."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT card_id, card_type, is_real
                FROM player_hand
                WHERE player_id = ?
                ORDER BY rowid
                """,
                (player_id,),
            ).fetchall()
        return [Card(id=card_id, type=card_type, is_real=bool(is_real)) for card_id, card_type, is_real in rows]

    def get_current_player_id(self) -> int:
        """Return whose turn it is; raises :class:`RepositoryError` if nobody's."""
        with self._lock:
            row = self._conn.execute("SELECT current_player_id FROM current_player").fetchone()
        if row is None:
            raise RepositoryError("no current player")
        return row[0]

    def set_current_player_id(self, player_id: int) -> None:
        """Make it ``player_id``'s turn."""
        log.debug("setting current player %d", player_id)
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM current_player")
            self._conn.execute(
                "INSERT INTO current_player (current_player_id) VALUES (?)", (player_id,)
            )