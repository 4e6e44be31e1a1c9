"""AI factory and decision entry point for Mind Game.

:func:`get_ai_decision` is the single call the request handlers make to get
a computer move. It asks the behavior tree first (white only, when the game
is configured with the default tree) and falls back to minimax search.

Usage:
    from mindgame.ai.factory import AIType, create_ai, get_ai_decision

    move = get_ai_decision(state, AIDifficulty.HARD)
    ai = create_ai(AIType.RANDOM, Player.BLACK, AIConfig(rngSeed=7))
"""

from __future__ import annotations

import logging
import random
import time
from enum import Enum
from typing import Dict, Optional, Type

from ..config import get_settings
from ..metrics import BEHAVIOR_SELECTIONS, observe_ai_decision
from ..models import AIBehavior, AIConfig, AIDifficulty, GamePhase, GameState, Move, Player
from .base import BaseAI
from .behavior_tree import select_behavior
from .heuristic_ai import HeuristicAI
from .minimax_ai import MinimaxAI
from .random_ai import RandomAI

logger = logging.getLogger(__name__)


class AIType(str, Enum):
    """Built-in AI implementations."""
    MINIMAX = "minimax"
    HEURISTIC = "heuristic"
    RANDOM = "random"


_AI_CLASSES: Dict[AIType, Type[BaseAI]] = {
    AIType.MINIMAX: MinimaxAI,
    AIType.HEURISTIC: HeuristicAI,
    AIType.RANDOM: RandomAI,
}


def create_ai(
    ai_type: AIType,
    player: Player,
    config: Optional[AIConfig] = None,
    rng: Optional[random.Random] = None,
) -> BaseAI:
    """Create an AI instance with explicit type and configuration.

    Raises:
        ValueError: If the AI type is not supported
    """
    try:
        ai_class = _AI_CLASSES[AIType(ai_type)]
    except (KeyError, ValueError) as e:
        raise ValueError(f"Unsupported AI type: {ai_type}") from e
    return ai_class(player, config or AIConfig(), rng=rng)


def get_ai_decision(
    state: GameState,
    difficulty: Optional[AIDifficulty] = None,
    rng: Optional[random.Random] = None,
) -> Optional[Move]:
    """Choose a move for the side to play in ``state``.

    Returns None when the game is over, still in loadout, or no legal
    placement exists.
    """
    if state.game_over or state.phase != GamePhase.PLAYING:
        return None

    if difficulty is None:
        difficulty = state.difficulty or get_settings().default_difficulty
    if rng is None:
        rng = random.Random()

    start = time.perf_counter()
    move: Optional[Move] = None
    source = "none"

    if state.behavior_tree == AIBehavior.DEFAULT and state.turn is Player.WHITE:
        picked = select_behavior(state, rng)
        if picked is not None:
            behavior, move = picked
            source = "behavior_tree"
            BEHAVIOR_SELECTIONS.labels(behavior=behavior.name).inc()

    if move is None:
        ai = create_ai(AIType.MINIMAX, state.turn, AIConfig(difficulty=difficulty), rng=rng)
        move = ai.select_move(state)
        if move is not None:
            source = "minimax"

    elapsed = time.perf_counter() - start
    observe_ai_decision(source, difficulty.value, elapsed)
    logger.debug(
        "AI decision for %s via %s in %.3fs: %s",
        state.turn.value,
        source,
        elapsed,
        None if move is None else (move.r, move.c, move.effect),
    )
    return move
