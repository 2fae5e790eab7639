"""Runtime settings read from environment variables and an optional ``.env`` file."""

from __future__ import annotations

import dataclasses
import functools
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

__all__ = [
    "ConfigError",
    "ZrokSettings",
    "Timeouts",
    "Points",
    "Config",
    "load_config",
    "get_config",
]

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_INTEGER = re.compile(r"[+-]?[0-9]+\Z")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


class ConfigError(ValueError):
    """Raised when an environment variable holds a value of the wrong kind."""


def _env(name: str, default: Any) -> Any:
    return field(default=default, metadata={"env": name})


@dataclass(frozen=True)
class ZrokSettings:
    """How the public share is obtained."""

    use_reserved: bool = _env("ZROK_USE_RESERVED", False)
    reserved_name: str = _env("ZROK_RESERVED_NAME", "")


@dataclass(frozen=True)
class Timeouts:
    """Durations of the game's phases, in milliseconds."""

    player_choose_bid_milliseconds: int = _env("TIMEOUT_PLAYER_CHOOSE_BID_MILLISECONDS", 5000)
    show_bid_milliseconds: int = _env("TIMEOUT_SHOW_BID_MILLISECONDS", 1500)
    player_choose_offer_milliseconds: int = _env("TIMEOUT_PLAYER_CHOOSE_OFFER_MILLISECONDS", 5000)
    show_offer_milliseconds: int = _env("TIMEOUT_SHOW_OFFER_MILLISECONDS", 2500)
    time_between_actions_milliseconds: int = _env("TIMEOUT_BETWEEN_ACTIONS_MILLISECONDS", 1000)
    offers_finished_milliseconds: int = _env("TIMEOUT_OFFERS_FINISHED_MILLISECONDS", 3000)
    show_selected_offer: int = _env("TIMEOUT_SHOW_SELECTED_OFFER_MILLISECONDS", 2000)
    prepare_for_next_turn_milliseconds: int = _env("TIMEOUT_PREPARE_FOR_NEXT_TURN_MILLISECONDS", 2000)
    end_of_round_screen: int = _env("TIMEOUT_END_OF_ROUND_SCREEN", 3000)
    update_score_screen: int = _env("TIMEOUT_UPDATE_SCORE_SCREEN", 6500)
    sum_score: int = _env("TIMEOUT_SUMSCORE", 4000)


@dataclass(frozen=True)
class Points:
    """Points awarded for hands and deducted for fake cards."""

    fake_poker: int = _env("POINTS_FAKE_POKER", 8000)
    poker: int = _env("POINTS_POKER", 5000)
    one_of_each: int = _env("POINTS_ONE_OF_EACH", 4000)
    full_house: int = _env("POINTS_FULL_HOUSE", 3500)
    three_of_a_kind: int = _env("POINTS_THREE_OF_A_KIND", 3000)
    two_pair: int = _env("POINTS_TWO_PAIR", 2500)
    pair: int = _env("POINTS_PAIR", 2000)
    fake_one: int = _env("POINTS_FAKE_ONE", -250)
    fake_two: int = _env("POINTS_FAKE_TWO", -1000)
    fake_three: int = _env("POINTS_FAKE_THREE", -2500)


@dataclass(frozen=True)
class Config:
    """All settings of the server."""

    max_players: int = _env("MAX_PLAYERS", 100)
    zrok: ZrokSettings = field(default_factory=ZrokSettings)
    port: int = _env("PORT", 8080)
    timeouts: Timeouts = field(default_factory=Timeouts)
    points: Points = field(default_factory=Points)


def _parse_value(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        if raw in _TRUE_WORDS:
            return True
        if raw in _FALSE_WORDS:
            return False
        raise ConfigError(f"{name}: invalid boolean {raw!r}")
    if isinstance(default, int):
        if not _INTEGER.match(raw):
            raise ConfigError(f"{name}: invalid integer {raw!r}")
        number = int(raw)
        if not _INT_MIN <= number <= _INT_MAX:
            raise ConfigError(f"{name}: integer {raw!r} out of range")
        return number
    return raw


def _build(cls: type, environ: Mapping[str, str]) -> Any:
    values: dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        name = f.metadata.get("env")
        if name is None:
            values[f.name] = _build(f.default_factory().__class__, environ)  # type: ignore[misc]
            continue
        raw = environ.get(name, "")
        if raw != "":
            values[f.name] = _parse_value(name, raw, f.default)
    return cls(**values)


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a :class:`Config` from ``environ`` (``os.environ`` by default).

    Variables that are missing or empty take their default value.
    """
    return _build(Config, os.environ if environ is None else environ)


@functools.lru_cache(maxsize=None)
def get_config() -> Config:
    """Return the process-wide settings, loading ``.env`` from the working directory once."""
    load_dotenv(Path.cwd() / ".env")
    return load_config(os.environ)