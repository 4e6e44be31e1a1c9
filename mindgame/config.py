"""Environment-driven settings for the Mind Game engine.

Every knob has a sensible default so the engine runs with no environment at
all. Values are read once and cached; tests that change the environment call
``get_settings.cache_clear()``.

Environment variables:

- ``MINDGAME_DEFAULT_BOARD_SIZE`` (default: 5) board size for hosted games
- ``MINDGAME_GAME_TTL_SEC`` (default: 86400) store expiry for saved games
- ``MINDGAME_MAX_UNDO_HISTORY`` (default: 32) in-turn undo snapshots kept
- ``MINDGAME_DEFAULT_DIFFICULTY`` (default: medium) AI tier for AI games
- ``MINDGAME_LOG_LEVEL`` (default: INFO) level used by the CLI
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from .errors import ConfigurationError
from .models import AIDifficulty, SpecialEffect

MIN_BOARD_SIZE = 3
MAX_BOARD_SIZE = 9

# Starting special stones per side when no loadout phase is used
DEFAULT_INVENTORY = {
    SpecialEffect.AGGRESSION: 2,
    SpecialEffect.MANIPULATION: 1,
    SpecialEffect.CONTROL: 1,
    SpecialEffect.EMPATHY: 1,
}

# Loadout rules: each effect can be picked at most twice, an aggression pick
# grants two charges (the beam needs a pair of stones).
LOADOUT_MAX_PER_EFFECT = 2
LOADOUT_AGGRESSION_CHARGES = 2


@dataclass(frozen=True)
class GameSettings:
    """Resolved runtime settings."""

    default_board_size: int = 5
    game_ttl_sec: int = 86400
    max_undo_history: int = 32
    default_difficulty: AIDifficulty = AIDifficulty.MEDIUM
    log_level: str = "INFO"


def _int_env(name: str, default: int, minimum: int, maximum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer", context={"value": raw}
        ) from e
    if value < minimum or (maximum is not None and value > maximum):
        raise ConfigurationError(
            f"{name} out of range",
            context={"value": value, "min": minimum, "max": maximum},
        )
    return value


@lru_cache(maxsize=1)
def get_settings() -> GameSettings:
    """Build settings from the environment."""
    difficulty_raw = os.getenv("MINDGAME_DEFAULT_DIFFICULTY", "medium").lower()
    try:
        difficulty = AIDifficulty(difficulty_raw)
    except ValueError as e:
        raise ConfigurationError(
            "MINDGAME_DEFAULT_DIFFICULTY is not a known tier",
            context={"value": difficulty_raw},
        ) from e

    return GameSettings(
        default_board_size=_int_env(
            "MINDGAME_DEFAULT_BOARD_SIZE", 5, MIN_BOARD_SIZE, MAX_BOARD_SIZE
        ),
        game_ttl_sec=_int_env("MINDGAME_GAME_TTL_SEC", 86400, 1),
        max_undo_history=_int_env("MINDGAME_MAX_UNDO_HISTORY", 32, 1),
        default_difficulty=difficulty,
        log_level=os.getenv("MINDGAME_LOG_LEVEL", "INFO").upper(),
    )
