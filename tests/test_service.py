import dataclasses
import json
import random
import threading
from types import SimpleNamespace

import pytest

from fakepoker.config import Config, Timeouts
from fakepoker.game import Game
from fakepoker.hub import PLAYER_ID_KEY, Hub, Session
from fakepoker.models import Card, PlayerOffer
from fakepoker.repository import Repository, open_database
from fakepoker.service import Service


def _config(**overrides):
    zero = Timeouts(**{f.name: 0 for f in dataclasses.fields(Timeouts)})
    return Config(timeouts=zero, **overrides)


def _world(**overrides):
    repo = Repository(open_database())
    repo.migrate()
    hub = Hub()
    config = _config(**overrides)
    game = Game(repo, hub, config, random.Random(7))
    service = Service(repo, hub, game, config)
    return SimpleNamespace(repo=repo, hub=hub, game=game, service=service)


@pytest.fixture
def world():
    w = _world()
    yield w
    w.game.stop()


def _connect(service, name="client"):
    inbox = []
    session = Session(send=inbox.append, remote_address=name)
    service.new_connection(session)
    return session, inbox


def _message(event_type, data):
    return json.dumps({"type": event_type, "event_data": data}).encode()


def test_set_name_assigns_player_and_notifies_others(world):
    player, inbox = _connect(world.service, "player")
    screen, screen_inbox = _connect(world.service, "screen")

    world.service.handle_message(player, _message("set_name_request", {"name": "alice"}))

    (pid,) = world.repo.get_active_player_ids()
    assert player.get(PLAYER_ID_KEY) == pid
    assert inbox == [
        b'{"type":"set_name_response","event_data":{"assigned_player_id":%d}}' % pid
    ]
    assert [json.loads(p) for p in screen_inbox] == [
        {"type": "player_joined", "event_data": {"player_id": pid, "name": "alice"}}
    ]


def test_set_name_rejected_when_too_many_players():
    w = _world(max_players=1)
    alice, _ = _connect(w.service, "a")
    bob, bob_inbox = _connect(w.service, "b")
    w.service.handle_message(alice, _message("set_name_request", {"name": "alice"}))
    w.service.handle_message(bob, _message("set_name_request", {"name": "bob"}))
    assert bob.get(PLAYER_ID_KEY) is None
    assert bob_inbox[1:] == []
    assert w.repo.get_active_player_count() == 1


def test_malformed_messages_are_dropped(world):
    session, inbox = _connect(world.service)
    world.service.handle_message(session, b"not json")
    world.service.handle_message(session, _message("set_name_request", "oops"))
    world.service.handle_message(session, _message("no_such_event", {}))
    assert inbox == []
    assert world.repo.get_active_player_count() == 0


def test_bid_selected_reaches_game(world):
    session, _ = _connect(world.service)
    pid = world.repo.new_player("alice", 10)
    world.repo.set_player_hand(pid, [Card(1, 1, True), Card(2, 1, True), Card(1, 2, False)])
    world.repo.set_current_player_id(pid)

    world.service.handle_message(
        session, _message("bid_selected", {"card": {"id": 2, "type": 1, "is_real": True}})
    )
    assert world.game.start_player_bid() == Card(2, 1, True)


def test_bid_round_over_ends_round(world):
    session, _ = _connect(world.service)
    pid = world.repo.new_player("alice", 10)
    world.repo.set_player_hand(pid, [Card(1, 1, True)])
    world.repo.set_current_player_id(pid)

    world.service.handle_message(session, _message("bid_selected", {"is_round_over": True}))
    assert world.game.start_player_bid() is None


def test_player_choose_offer_reaches_game(world):
    session, _ = _connect(world.service)
    p1, p2, p3 = (world.repo.new_player(name, 10) for name in ("a", "b", "c"))
    bid = Card(1, 1, True)
    world.repo.set_player_hand(p1, [bid])
    world.repo.set_player_hand(p2, [Card(1, 2, True)])
    world.repo.set_player_hand(p3, [Card(1, 3, True)])
    offers = [PlayerOffer(p2, Card(1, 2, True)), PlayerOffer(p3, Card(1, 3, True))]

    world.service.handle_message(session, _message("player_choose_offer", {"player_id": p3}))

    assert world.game.current_player_chooses_offer(bid, offers, p1) == p3
    assert world.repo.get_player_hand(p3) == [bid]
    assert world.repo.get_player_hand(p1) == [Card(1, 3, True)]


def test_offer_selected_reaches_game(world):
    p1 = world.repo.new_player("a", 10)
    p2 = world.repo.new_player("b", 10)
    world.repo.set_player_hand(p1, [Card(1, 1, True)])
    world.repo.set_player_hand(p2, [Card(3, 2, True), Card(4, 2, True)])
    world.repo.set_current_player_id(p1)
    session, _ = _connect(world.service)
    session.set(PLAYER_ID_KEY, p2)

    world.service.handle_message(
        session, _message("Offer_selected", {"id": 4, "type": 2, "is_real": True})
    )
    assert world.game.start_players_offers(Card(1, 1, True)) == [
        PlayerOffer(p2, Card(4, 2, True))
    ]


def test_offer_without_player_raises(world):
    session, _ = _connect(world.service)
    with pytest.raises(LookupError):
        world.service.handle_message(session, _message("Offer_selected", {"id": 1}))


def test_closed_connection_deactivates_player(world):
    session, inbox = _connect(world.service)
    world.service.handle_message(session, _message("set_name_request", {"name": "alice"}))
    before = list(inbox)

    world.service.closed_connection(session)
    world.hub.broadcast(b"ping")

    assert world.repo.get_active_player_count() == 0
    assert inbox == before


def test_closed_hub_session_keeps_players(world):
    world.repo.new_player("alice", 10)
    screen, inbox = _connect(world.service)
    world.service.closed_connection(screen)
    world.hub.broadcast(b"ping")
    assert world.repo.get_active_player_count() == 1
    assert inbox == []


def test_new_connection_receives_broadcasts(world):
    _, inbox = _connect(world.service)
    world.hub.broadcast(b"ping")
    assert inbox == [b"ping"]


def test_fourth_player_starts_round(world):
    dealing = threading.Event()

    def send(payload):
        if b'"dealing_cards"' in payload:
            dealing.set()

    sessions = [Session(send=send, remote_address=str(n)) for n in range(4)]
    for n, session in enumerate(sessions):
        world.service.new_connection(session)
        world.service.handle_message(session, _message("set_name_request", {"name": f"p{n}"}))

    started = dealing.wait(5)
    world.game.stop()
    assert started is True
    assert world.repo.get_active_player_count() == 4