"""Handling of client connections and the messages they send."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Mapping
from typing import Any

from fakepoker.config import Config
from fakepoker.game import Game
from fakepoker.hub import PLAYER_ID_KEY, Hub, Session, player_id_of
from fakepoker.models import (
    BidSelected,
    Card,
    Envelope,
    EventType,
    IncomingEnvelope,
    PlayerJoined,
    PlayerOffer,
    SetNameResponse,
)
from fakepoker.repository import Repository, RepositoryError

__all__ = ["Service", "PLAYERS_PER_GAME"]

log = logging.getLogger(__name__)

PLAYERS_PER_GAME = 4


def _object(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object, got {data!r}")
    return data


def _card(data: Any) -> Card:
    return Card.from_dict(_object(data, "card"))


def _parse_bid(data: Any) -> BidSelected:
    fields = _object(data, "bid_selected event")
    is_round_over = fields.get("is_round_over")
    if is_round_over is None:
        is_round_over = False
    elif not isinstance(is_round_over, bool):
        raise ValueError(f"field 'is_round_over' must be a boolean, got {is_round_over!r}")
    return BidSelected(card=_card(fields.get("card")), is_round_done=is_round_over)


def _parse_player_id(data: Any) -> int:
    fields = _object(data, "player_choose_offer event")
    player_id = fields.get("player_id")
    if player_id is None:
        return 0
    if isinstance(player_id, bool) or not isinstance(player_id, int):
        raise ValueError(f"field 'player_id' must be an integer, got {player_id!r}")
    return player_id


def _parse_name(data: Any) -> str:
    fields = _object(data, "set_name event")
    name = fields.get("name")
    if name is None:
        return ""
    if not isinstance(name, str):
        raise ValueError(f"field 'name' must be a string, got {name!r}")
    return name


class Service:
    """Reacts to connections, disconnections and messages of clients."""

    def __init__(self, repository: Repository, hub: Hub, game: Game, config: Config) -> None:
        self._repo = repository
        self._hub = hub
        self._game = game
        self._config = config
        self._handlers: dict[str, Callable[[Session, Any], None]] = {
            EventType.SET_NAME.value: self._handle_set_name,
            EventType.BID_SELECTED.value: self._handle_bid_selected,
            EventType.OFFER_SELECTED.value: self._handle_offer_selected,
            EventType.PLAYER_CHOOSE_OFFER.value: self._handle_player_choose_offer,
        }

    def new_connection(self, session: Session) -> None:
        """Add a freshly connected client to the hub."""
        self._hub.register(session)
        log.info("new connection established from %s", session.remote_address)

    def closed_connection(self, session: Session) -> None:
        """Remove a client from the hub and mark its player inactive."""
        self._hub.unregister(session)
        player_id = player_id_of(session)
        if player_id is None:
            log.error("no player id on closed session %s", session.remote_address)
            return
        try:
            self._repo.close_player(player_id)
        except (RepositoryError, sqlite3.Error):
            log.exception("failed to close player %d", player_id)

    def handle_message(self, session: Session, data: bytes | str) -> None:
        """Dispatch one client message by its event type.

        Malformed messages are logged and dropped; an offer from a session
        without a player raises ``LookupError`` and a malformed offer card
        raises ``ValueError``.
        """
        try:
            envelope = IncomingEnvelope.from_json(data)
        except ValueError:
            log.error("failed to decode message from %s", session.remote_address)
            return
        handler = self._handlers.get(envelope.type)
        if handler is None:
            log.warning("unknown message type %r", envelope.type)
            return
        handler(session, envelope.event_data)

    def _handle_player_choose_offer(self, session: Session, data: Any) -> None:
        try:
            player_id = _parse_player_id(data)
        except ValueError:
            log.exception("failed to decode player_choose_offer event")
            return
        log.debug("player_choose_offer event received for player %d", player_id)
        self._game.submit_offer_choice(player_id)

    def _handle_offer_selected(self, session: Session, data: Any) -> None:
        player_id = player_id_of(session)
        if player_id is None:
            log.error("no player id on session selecting an offer")
            raise LookupError("session player id not found")
        self._game.submit_offer(PlayerOffer(player_id=player_id, card=_card(data)))

    def _handle_bid_selected(self, session: Session, data: Any) -> None:
        try:
            bid = _parse_bid(data)
        except ValueError:
            log.exception("failed to decode bid_selected event")
            return
        self._game.submit_bid(bid)

    def _handle_set_name(self, session: Session, data: Any) -> None:
        log.debug("handling set_name event: %r", data)
        try:
            name = _parse_name(data)
        except ValueError:
            log.exception("failed to decode set_name event")
            return

        try:
            player_id = self._repo.new_player(name, self._config.max_players)
        except (RepositoryError, sqlite3.Error):
            log.exception("failed to create new player %r", name)
            return

        session.set(PLAYER_ID_KEY, player_id)

        response = Envelope(
            type=EventType.SET_NAME_RESPONSE,
            event_data=SetNameResponse(assigned_player_id=player_id),
        )
        session.write(response.to_json())

        joined = Envelope(
            type=EventType.PLAYER_JOINED,
            event_data=PlayerJoined(player_id=player_id, name=name),
        )
        self._hub.broadcast_others(joined.to_json(), session)
        log.debug("player %d joined as %r", player_id, name)

        try:
            count = self._repo.get_active_player_count()
        except sqlite3.Error:
            log.exception("failed to get active player count")
        else:
            if count == PLAYERS_PER_GAME:
                threading.Thread(target=self._game.start_round, name="round", daemon=True).start()
        log.info("set_name event received: player %d is %r", player_id, name)