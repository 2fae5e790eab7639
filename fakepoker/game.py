"""The round and turn loop of the game: dealing, bidding, offering and scoring."""

from __future__ import annotations

import logging
import queue
import random
import threading
import time
from collections.abc import Sequence
from typing import Any

from fakepoker.config import Config
from fakepoker.hub import Hub, player_id_of
from fakepoker.models import (
    BidSelected,
    Card,
    CardsDealt,
    CardsUpdate,
    ChooseBid,
    ChooseOffer,
    DealingCards,
    EndOfRound,
    Envelope,
    EventType,
    HandScore,
    MadeOffer,
    OffersFinished,
    OfferSelected,
    PlayerOffer,
    PrepareForNextTurn,
    ScoreChange,
    SelectOfferChoices,
    SelectOfferChosen,
    ShowBackOfCardBid,
    ShowBidSelected,
    SumScore,
    UpdatedScore,
    UpdateScore,
)
from fakepoker.repository import Repository
from fakepoker.scoring import can_finish_round, deal_cards, round_points

__all__ = ["Game"]

log = logging.getLogger(__name__)


def _encode(event_type: EventType, data: Any) -> bytes:
    return Envelope(type=event_type, event_data=data).to_json()


class Game:
    """Runs rounds and turns, taking player choices submitted from other threads.

    Every choice a player does not make in time is made at random.
    """

    def __init__(
        self,
        repository: Repository,
        hub: Hub,
        config: Config,
        rng: random.Random | None = None,
    ) -> None:
        self._repo = repository
        self._hub = hub
        self._config = config
        self._rng = rng if rng is not None else random.Random()
        self._bids: queue.Queue[BidSelected] = queue.Queue(maxsize=1)
        self._offers: queue.Queue[PlayerOffer] = queue.Queue(maxsize=3)
        self._offer_choices: queue.Queue[int] = queue.Queue(maxsize=1)
        self._stopped = threading.Event()

    # Player input -------------------------------------------------------

    def submit_bid(self, bid: BidSelected) -> None:
        """Hand in the current player's bid, or their wish to end the round."""
        self._bids.put(bid)

    def submit_offer(self, offer: PlayerOffer) -> None:
        """Hand in a card a player offers for the current bid."""
        self._offers.put(offer)

    def submit_offer_choice(self, player_id: int) -> None:
        """Hand in which player's offer the current player takes."""
        self._offer_choices.put(player_id)

    def stop(self) -> None:
        """Make a running round loop return and cut short any pause."""
        self._stopped.set()

    # Helpers ------------------------------------------------------------

    def _pause(self, milliseconds: int) -> None:
        self._stopped.wait(milliseconds / 1000)

    @staticmethod
    def _take(source: queue.Queue[Any], seconds: float) -> Any:
        try:
            return source.get(timeout=max(0.0, seconds))
        except queue.Empty:
            return None

    def _to_player(self, player_id: int, event_type: EventType, data: Any) -> None:
        self._hub.broadcast_to_player(_encode(event_type, data), player_id)

    def _to_hub(self, event_type: EventType, data: Any) -> None:
        self._hub.broadcast_to_hub(_encode(event_type, data))

    # Rounds -------------------------------------------------------------

    def start_round(self) -> None:
        """Deal and play rounds one after another until :meth:`stop` is called."""
        while not self._stopped.is_set():
            self._deal()
            while not self._stopped.is_set() and self.start_turn():
                pass
            if self._stopped.is_set():
                return
            self.end_of_round()

    def _deal(self) -> None:
        log.info("starting a new round")
        player_ids = self._repo.get_active_player_ids()
        if not player_ids:
            raise ValueError("no active players to deal to")
        self._repo.drop_player_hands()
        self._hub.broadcast(_encode(EventType.DEALING_CARDS, DealingCards()))

        for player_id, cards in deal_cards(player_ids, self._rng).items():
            log.info("dealing cards to player %d: %s", player_id, cards)
            self._repo.set_player_hand(player_id, cards)
            self._to_player(player_id, EventType.CARDS_DEALT, CardsDealt(cards=cards))

        starting = player_ids[self._rng.randrange(len(player_ids))]
        self._repo.set_current_player_id(starting)

    def end_of_round(self) -> list[UpdatedScore]:
        """Show the end-of-round screens with every player's round score."""
        log.info("ending round")
        timeouts = self._config.timeouts
        scores = self.score_board()

        self._to_hub(EventType.END_OF_ROUND, EndOfRound(timeout=timeouts.end_of_round_screen))
        self._pause(timeouts.end_of_round_screen)

        update = UpdateScore(
            timeout=timeouts.update_score_screen,
            scores=[
                HandScore(player_id=s.player_id, points=s.round_points, cards=s.hand)
                for s in scores
            ],
        )
        self._to_hub(EventType.UPDATE_SCORE, update)
        self._pause(timeouts.update_score_screen)

        summed = SumScore(
            timeout=timeouts.sum_score,
            scores=[
                ScoreChange(player_id=s.player_id, old_score=s.old_points, new_score=s.new_points)
                for s in scores
            ],
        )
        self._to_hub(EventType.SUM_SCORE, summed)
        self._pause(timeouts.sum_score)

        prepare = PrepareForNextTurn(timeout=timeouts.prepare_for_next_turn_milliseconds)
        self._hub.broadcast(_encode(EventType.PREPARE_FOR_NEXT_TURN, prepare))
        self._pause(timeouts.prepare_for_next_turn_milliseconds)
        return scores

    def score_board(self) -> list[UpdatedScore]:
        """Return every active player's points before and after this round's hand."""
        board = []
        for score in self._repo.get_player_scores():
            hand = self._repo.get_player_hand(score.player_id)
            points = round_points(hand, self._config.points)
            board.append(
                UpdatedScore(
                    player_id=score.player_id,
                    round_points=points,
                    old_points=score.points,
                    new_points=score.points + points,
                    hand=hand,
                )
            )
        return board

    # Turns --------------------------------------------------------------

    def start_turn(self) -> bool:
        """Play one turn; return ``False`` when the current player ended the round."""
        bid = self.start_player_bid()
        if bid is None:
            return False
        offers = self.start_players_offers(bid)
        current_player_id = self._repo.get_current_player_id()
        self.current_player_chooses_offer(bid, offers, current_player_id)
        self.prepare_for_next_turn()
        return True

    def start_player_bid(self) -> Card | None:
        """Let the current player pick a card to bid; ``None`` means the round is over."""
        timeouts = self._config.timeouts
        current_player_id = self._repo.get_current_player_id()
        wait = timeouts.player_choose_bid_milliseconds

        hand = self._repo.get_player_hand(current_player_id)
        log.debug("asking player %d for a bid", current_player_id)
        self._to_player(
            current_player_id,
            EventType.CHOOSE_BID,
            ChooseBid(
                player_id=current_player_id,
                timeout=wait,
                can_finish_round=can_finish_round(hand),
            ),
        )

        hand = self._repo.get_player_hand(current_player_id)
        choice = self._rng.choice(hand)
        bid = self._take(self._bids, wait / 1000)
        if bid is not None:
            if bid.is_round_done:
                return None
            choice = bid.card

        self._to_hub(
            EventType.SHOW_BACK_OF_CARD_BID,
            ShowBackOfCardBid(timeout=timeouts.show_bid_milliseconds),
        )
        self._pause(timeouts.show_bid_milliseconds)

        self._to_player(
            current_player_id,
            EventType.BID_SELECTED,
            ShowBidSelected(card=choice, timeout=timeouts.show_bid_milliseconds),
        )
        log.debug("player %d bid %s", current_player_id, choice)
        self._pause(timeouts.show_bid_milliseconds)
        return choice

    def start_players_offers(self, bid: Card) -> list[PlayerOffer]:
        """Collect one offer from every other player, chosen at random if not given in time."""
        timeouts = self._config.timeouts
        current_player_id = self._repo.get_current_player_id()
        player_ids = [
            pid for pid in self._repo.get_active_player_ids() if pid != current_player_id
        ]
        wait = timeouts.player_choose_offer_milliseconds

        def asked(session: Any) -> bool:
            pid = player_id_of(session)
            return pid is None or pid in player_ids

        self._hub.broadcast_filter(
            _encode(EventType.CHOOSE_OFFER, ChooseOffer(player_ids=player_ids, timeout=wait)),
            asked,
        )
        log.debug("asked players %s for offers on %s", player_ids, bid)

        deadline = time.monotonic() + wait / 1000
        offered: dict[int, Card] = {
            pid: self._rng.choice(self._repo.get_player_hand(pid)) for pid in player_ids
        }
        did_offer: list[int] = []

        for _ in player_ids:
            offer = self._take(self._offers, deadline - time.monotonic())
            if offer is None:
                log.debug("timeout reached for player offers")
                for pid in player_ids:
                    self._send_offer_back(pid, offered[pid])
                break
            offered[offer.player_id] = offer.card
            did_offer.append(offer.player_id)
            self._send_offer_back(offer.player_id, offer.card)
            self._to_hub(EventType.MADE_OFFER, MadeOffer(player_ids=list(did_offer)))

        offers = [PlayerOffer(player_id=pid, card=card) for pid, card in offered.items()]
        self._send_all_offers(offers, current_player_id)
        return offers

    def _send_offer_back(self, player_id: int, card: Card) -> None:
        self._to_player(player_id, EventType.OFFER_SELECTED, OfferSelected(card=card))

    def _send_all_offers(self, offers: Sequence[PlayerOffer], current_player_id: int) -> None:
        timeouts = self._config.timeouts
        self._to_hub(
            EventType.MADE_OFFER, MadeOffer(player_ids=[offer.player_id for offer in offers])
        )
        finished = OffersFinished(
            offers=list(offers), timeout=timeouts.offers_finished_milliseconds
        )
        payload = _encode(EventType.OFFER_SELECTED, finished)
        self._hub.broadcast_to_player(payload, current_player_id)
        self._pause(timeouts.time_between_actions_milliseconds)
        self._hub.broadcast_to_player(payload, current_player_id)
        self._pause(timeouts.offers_finished_milliseconds)

    def current_player_chooses_offer(
        self, bid: Card, offers: Sequence[PlayerOffer], current_player_id: int
    ) -> int:
        """Let the current player take one offer, swap the cards and return the offerer's id.

        Raises ``ValueError`` when the chosen player made no offer.
        """
        timeouts = self._config.timeouts
        wait = timeouts.player_choose_offer_milliseconds
        self._to_player(
            current_player_id,
            EventType.SELECT_OFFER_CHOICES,
            SelectOfferChoices(offers=list(offers), timeout=wait),
        )

        selected = offers[self._rng.randrange(len(offers))]
        chosen_player = self._take(self._offer_choices, wait / 1000)
        if chosen_player is not None:
            selected = next(
                (offer for offer in offers if offer.player_id == chosen_player), None
            )
            if selected is None:
                raise ValueError(f"player {chosen_player} made no offer")

        offerer_id = selected.player_id
        self._repo.swap_card_holders(bid, selected.card, current_player_id, offerer_id)

        for pid in (current_player_id, offerer_id):
            cards = self._repo.get_player_hand(pid)
            self._to_player(pid, EventType.CARDS_UPDATE, CardsUpdate(cards=cards))

        self._to_hub(
            EventType.SELECT_OFFER_CHOSEN,
            SelectOfferChosen(timeout=timeouts.show_selected_offer, player_id=offerer_id),
        )
        self._pause(timeouts.show_selected_offer)
        return offerer_id

    def prepare_for_next_turn(self) -> int:
        """Pass the turn to the next active player and return their id."""
        current_player_id = self._repo.get_current_player_id()
        player_ids = self._repo.get_active_player_ids()
        if not player_ids:
            raise ValueError("no active players")
        try:
            index = player_ids.index(current_player_id)
        except ValueError:
            index = -1
        next_player_id = player_ids[(index + 1) % len(player_ids)]
        self._repo.set_current_player_id(next_player_id)

        wait = self._config.timeouts.prepare_for_next_turn_milliseconds
        self._to_player(
            next_player_id,
            EventType.PREPARE_FOR_NEXT_TURN,
            PrepareForNextTurn(timeout=wait, next_bidder=next_player_id),
        )
        self._pause(wait)
        return next_player_id