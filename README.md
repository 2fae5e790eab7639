# fakepoker

A WebSocket game server for a four-player bluffing card game. Each round every
active player is dealt five cards from a deck of sixteen real cards (four
numbers in each of four types) and four fake cards. On their turn a player bids
one card; the other players each offer a card, the bidder takes one offer, and
the two cards change hands. A player holding four of a type, one card of each
type, or all four fakes may end the round instead of bidding, after which every
hand is scored.

Game state lives in an in-memory SQLite database. Clients connect over a
WebSocket at `/ws`. A connection that has not sent a name is treated as the
shared "hub" screen and receives the public events; named players receive the
events about their own hand.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
fakepoker
```

The server listens on the port given by `PORT` (8080 by default) and logs at
debug level to standard error. Settings are read from the environment and from
a `.env` file in the working directory; a variable that is empty counts as
unset, and a value of the wrong kind raises `fakepoker.config.ConfigError`.

## Configuration

| Variable | Default | Meaning |
| --- | --- | --- |
| `MAX_PLAYERS` | 100 | Most other active players allowed when a name is set |
| `PORT` | 8080 | HTTP port |
| `ZROK_USE_RESERVED` | false | Read into `Config.zrok`; not used by the server |
| `ZROK_RESERVED_NAME` | | Read into `Config.zrok`; not used by the server |
| `TIMEOUT_PLAYER_CHOOSE_BID_MILLISECONDS` | 5000 | Time to choose a bid |
| `TIMEOUT_SHOW_BID_MILLISECONDS` | 1500 | Time the bid is shown |
| `TIMEOUT_PLAYER_CHOOSE_OFFER_MILLISECONDS` | 5000 | Time to make or choose an offer |
| `TIMEOUT_SHOW_OFFER_MILLISECONDS` | 2500 | Read into `Config.timeouts` |
| `TIMEOUT_BETWEEN_ACTIONS_MILLISECONDS` | 1000 | Pause between repeated offer announcements |
| `TIMEOUT_OFFERS_FINISHED_MILLISECONDS` | 3000 | Time the collected offers are shown |
| `TIMEOUT_SHOW_SELECTED_OFFER_MILLISECONDS` | 2000 | Time the chosen offer is shown |
| `TIMEOUT_PREPARE_FOR_NEXT_TURN_MILLISECONDS` | 2000 | Pause before the next turn or round |
| `TIMEOUT_END_OF_ROUND_SCREEN` | 3000 | End-of-round screen |
| `TIMEOUT_UPDATE_SCORE_SCREEN` | 6500 | Hand-score screen |
| `TIMEOUT_SUMSCORE` | 4000 | Total-score screen |
| `POINTS_FAKE_POKER` | 8000 | Four fakes |
| `POINTS_POKER` | 5000 | Four of one type |
| `POINTS_ONE_OF_EACH` | 4000 | One of every type |
| `POINTS_FULL_HOUSE` | 3500 | Every type present appears two or three times |
| `POINTS_THREE_OF_A_KIND` | 3000 | Three of a kind |
| `POINTS_TWO_PAIR` | 2500 | Two pairs |
| `POINTS_PAIR` | 2000 | One pair |
| `POINTS_FAKE_ONE` | -250 | Penalty for one fake |
| `POINTS_FAKE_TWO` | -1000 | Penalty for two fakes |
| `POINTS_FAKE_THREE` | -2500 | Penalty for three fakes |

A hand is scored with its best combination only, plus the fake penalty; a hand
of four fakes carries no penalty.

## Protocol

Every message is a JSON object of the form
`{"type": "<event type>", "event_data": {...}}`. The server accepts:

- `set_name_request` with `{"name": "..."}`: joins (or rejoins) as that player.
  The sender gets `set_name_response` with `assigned_player_id`, and every
  other connection gets `player_joined`. When the number of active players
  becomes four, the round loop starts.
- `bid_selected` with `{"card": {...}, "is_round_over": false}`: the current
  player's bid, or `"is_round_over": true` to end the round.
- `Offer_selected` with a card object as `event_data`: a player's offer.
- `player_choose_offer` with `{"player_id": n}`: which offer the bidder takes.

Cards are `{"id": n, "type": n, "is_real": bool}`. A choice not made in time is
made at random. Unknown or malformed messages are logged and ignored.

## Library use

The pieces can be used on their own:

```python
from fakepoker.config import Points
from fakepoker.models import Card
from fakepoker.scoring import round_points

hand = [Card(1, 1, True), Card(2, 1, True), Card(3, 2, True), Card(4, 2, True), Card(1, 3, False)]
print(round_points(hand, Points()))  # 2250: two pair, one fake
```

- `fakepoker.repository.Repository` stores players, hands and turns in SQLite
  (`open_database`, then `migrate()`).
- `fakepoker.scoring.deal_cards(player_ids, rng)` deals five cards to each player.
- `fakepoker.hub.Hub` and `Session` hold the connected clients.
- `fakepoker.game.Game` runs rounds and turns; `Game.stop()` ends the loop.
- `fakepoker.service.Service` dispatches client messages.
- `fakepoker.server.create_app(service, hub)` builds the aiohttp application
  used by the `fakepoker` command.

## What it does not do

- It does not publish the server through a tunnel or public share; it only
  listens on the local port. The `ZROK_*` settings are read but unused.
- Game state is kept in memory only and is lost when the server stops.
- Round scores are shown on the score screens but not added to the stored
  totals, so every round starts from the same totals.
- There is no end of game: rounds continue until the server is stopped.