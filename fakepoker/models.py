"""Cards, score records and the JSON events exchanged with clients."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _to_json_bytes(value: Any) -> bytes:
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    for char, escaped in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def to_payload(value: Any) -> Any:
    """Convert models, enums and containers into JSON-ready Python values."""
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.metadata.get("json", f.name): to_payload(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        return {str(key): to_payload(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    return value


def _int_field(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Card:
    """A card: its number within a type, its type, and whether it is real."""

    id: int
    type: int
    is_real: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "is_real": self.is_real}

    @classmethod
    def from_dict(cls, data: Any) -> Card:
        """Build a card from decoded JSON; missing fields take zero values."""
        if not isinstance(data, Mapping):
            raise ValueError(f"card must be a JSON object, got {data!r}")
        is_real = data.get("is_real")
        if is_real is None:
            is_real = False
        elif not isinstance(is_real, bool):
            raise ValueError(f"field 'is_real' must be a boolean, got {is_real!r}")
        return cls(id=_int_field(data, "id"), type=_int_field(data, "type"), is_real=is_real)


AVAILABLE_REAL_CARDS: tuple[Card, ...] = tuple(
    Card(id=number, type=kind, is_real=True) for kind in range(1, 5) for number in range(1, 5)
)

AVAILABLE_FAKE_CARDS: tuple[Card, ...] = tuple(
    Card(id=1, type=kind, is_real=False) for kind in range(1, 5)
)


class EventType(str, Enum):
    """Names of the events on the wire."""

    END_OF_ROUND = "end_of_round"
    UPDATE_SCORE = "update_score"
    SUM_SCORE = "sum_score"
    PREPARE_FOR_NEXT_TURN = "prepare_for_next_turn"
    CHOOSE_OFFER = "choose_Offer"
    OFFER_SELECTED = "Offer_selected"
    MADE_OFFER = "made_offer"
    OFFERS_FINISHED = "offers_finished"
    SELECT_OFFER_CHOICES = "select_offer_choices"
    SELECT_OFFER_CHOSEN = "select_offer_chosen"
    PLAYER_CHOOSE_OFFER = "player_choose_offer"
    CHOOSE_BID = "choose_bid"
    SHOW_BACK_OF_CARD_BID = "show_back_of_card_bid"
    BID_SELECTED = "bid_selected"
    CARDS_UPDATE = "cards_update"
    DEALING_CARDS = "dealing_cards"
    CARDS_DEALT = "cards_dealt"
    SET_NAME = "set_name_request"
    SET_NAME_RESPONSE = "set_name_response"
    PLAYER_JOINED = "player_joined"


@dataclass
class Envelope(Generic[T]):
    """An outgoing event: its type and its data."""

    type: EventType
    event_data: T

    def to_json(self) -> bytes:
        """Encode the event as compact UTF-8 JSON."""
        return _to_json_bytes(to_payload(self))


@dataclass
class IncomingEnvelope:
    """A message from a client, with its data left decoded but uninterpreted."""

    type: str
    event_data: Any

    @classmethod
    def from_json(cls, raw: bytes | str) -> IncomingEnvelope:
        """Decode a client message; raises ``ValueError`` on malformed input."""
        decoded = json.loads(raw)
        if decoded is None:
            return cls(type="", event_data=None)
        if not isinstance(decoded, dict):
            raise ValueError("message must be a JSON object")
        event_type = decoded.get("type")
        if event_type is None:
            event_type = ""
        elif not isinstance(event_type, str):
            raise ValueError("field 'type' must be a string")
        return cls(type=event_type, event_data=decoded.get("event_data"))


@dataclass
class PlayerOffer:
    player_id: int
    card: Card


@dataclass
class HandScore:
    player_id: int
    points: int
    cards: list[Card] = field(default_factory=list)


@dataclass
class ScoreChange:
    player_id: int
    old_score: int
    new_score: int


@dataclass
class Score:
    """A player's accumulated points."""

    player_id: int
    points: int


@dataclass
class UpdatedScore:
    """A player's points before and after the current round."""

    player_id: int
    round_points: int
    old_points: int
    new_points: int
    hand: list[Card] = field(default_factory=list, metadata={"json": "cards"})


@dataclass
class EndOfRound:
    timeout: int


@dataclass
class UpdateScore:
    timeout: int
    scores: list[HandScore] = field(default_factory=list)


@dataclass
class SumScore:
    timeout: int
    scores: list[ScoreChange] = field(default_factory=list)


@dataclass
class PrepareForNextTurn:
    timeout: int
    next_bidder: int = 0


@dataclass
class PlayerChooseOffer:
    player_id: int


@dataclass
class SelectOfferChosen:
    timeout: int
    player_id: int


@dataclass
class SelectOfferChoices:
    offers: list[PlayerOffer]
    timeout: int


@dataclass
class OffersFinished:
    offers: list[PlayerOffer]
    timeout: int


@dataclass
class MadeOffer:
    player_ids: list[int]


@dataclass
class ChooseOffer:
    player_ids: list[int]
    timeout: int


@dataclass
class OfferSelected:
    card: Card


@dataclass
class ShowBackOfCardBid:
    timeout: int


@dataclass
class ChooseBid:
    player_id: int
    timeout: int
    can_finish_round: bool


@dataclass
class ShowBidSelected:
    card: Card
    timeout: int


@dataclass
class BidSelected:
    card: Card
    is_round_done: bool = field(default=False, metadata={"json": "is_round_over"})


@dataclass
class CardsUpdate:
    cards: list[Card]


@dataclass
class DealingCards:
    pass


@dataclass
class CardsDealt:
    cards: list[Card]


@dataclass
class SetName:
    name: str


@dataclass
class SetNameResponse:
    assigned_player_id: int


@dataclass
class PlayerJoined:
    player_id: int
    name: str