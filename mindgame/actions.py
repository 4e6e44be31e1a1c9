"""Request handlers: the only boundary callers use.

Each handler loads the game from a :class:`~mindgame.storage.GameStore`,
calls into :class:`~mindgame.game_engine.GameEngine` and saves the result.
An illegal action is logged at debug level, counted, and reported as
``None`` with the stored game left untouched. An unknown game id raises
:class:`~mindgame.errors.GameNotFoundError`.
"""

from __future__ import annotations

import logging
import random
import string
from typing import Callable, Optional, Sequence, Tuple

from .ai.base import BaseAI
from .ai.factory import get_ai_decision
from .config import get_settings
from .errors import AIError, GameNotFoundError, RulesViolationError
from .game_engine import GameEngine
from .metrics import GAME_OUTCOMES, ILLEGAL_ACTIONS
from .models import (
    AIBehavior,
    AIDifficulty,
    GameState,
    Move,
    Player,
    SpecialEffect,
)
from .storage import GameStore

logger = logging.getLogger(__name__)

GAME_ID_ALPHABET = string.ascii_uppercase + string.digits
GAME_ID_LENGTH = 6


def _load(store: GameStore, game_id: str) -> GameState:
    state = store.get(game_id)
    if state is None:
        raise GameNotFoundError(game_id)
    return state


def _apply(
    store: GameStore,
    game_id: str,
    action: str,
    operation: Callable[[GameState], GameState],
) -> Optional[GameState]:
    """Load, transform and save; illegal actions become None."""
    state = _load(store, game_id)
    try:
        new_state = operation(state)
    except RulesViolationError as e:
        ILLEGAL_ACTIONS.labels(action=action, rule=e.rule_ref or "unknown").inc()
        logger.debug("Rejected %s on game %s: %s", action, game_id, e)
        return None
    store.set(game_id, new_state)
    return new_state


def _record_outcome(game_id: str, state: GameState) -> None:
    if not state.game_over:
        return
    winner = state.winner.value if state.winner else "none"
    GAME_OUTCOMES.labels(winner=winner).inc()
    logger.info(
        "Game %s over after %d turns, winner: %s", game_id, state.turn_count, winner
    )


def host_game(
    store: GameStore,
    *,
    size: Optional[int] = None,
    is_ai_game: bool = False,
    difficulty: Optional[AIDifficulty] = None,
    turn_limit: Optional[int] = None,
    behavior_tree: Optional[AIBehavior] = None,
    loadout_limit: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[str, GameState]:
    """Create and store a new game; returns ``(game_id, state)``.

    AI games default to the configured difficulty and the default behavior
    tree.
    """
    rng = rng or random.Random()
    settings = get_settings()
    if is_ai_game:
        difficulty = difficulty or settings.default_difficulty
        behavior_tree = behavior_tree or AIBehavior.DEFAULT

    state = GameEngine.create_game(
        size or settings.default_board_size,
        rng=rng,
        is_ai_game=is_ai_game,
        difficulty=difficulty,
        turn_limit=turn_limit,
        behavior_tree=behavior_tree,
        loadout_limit=loadout_limit,
    )
    game_id = "".join(rng.choices(GAME_ID_ALPHABET, k=GAME_ID_LENGTH))
    store.set(game_id, state)
    logger.info(
        "Hosted game %s (size=%d, ai=%s, difficulty=%s)",
        game_id,
        state.board_size,
        is_ai_game,
        difficulty.value if difficulty else None,
    )
    return game_id, state


def join_game(store: GameStore, game_id: str) -> GameState:
    return _load(store, game_id)


def poll_game(store: GameStore, game_id: str) -> GameState:
    return _load(store, game_id)


def make_move(
    store: GameStore,
    game_id: str,
    r: int,
    c: int,
    effect: Optional[SpecialEffect] = None,
) -> Optional[GameState]:
    move = Move(r=r, c=c, effect=effect)
    return _apply(store, game_id, "move", lambda s: GameEngine.apply_move(s, move))


def swap_move(
    store: GameStore, game_id: str, r1: int, c1: int, r2: int, c2: int
) -> Optional[GameState]:
    return _apply(
        store, game_id, "swap", lambda s: GameEngine.apply_swap(s, r1, c1, r2, c2)
    )


def undo_action(store: GameStore, game_id: str) -> Optional[GameState]:
    return _apply(store, game_id, "undo", GameEngine.undo)


def commit_turn(
    store: GameStore, game_id: str, rng: Optional[random.Random] = None
) -> Optional[GameState]:
    rng = rng or random.Random()
    state = _apply(
        store, game_id, "commit", lambda s: GameEngine.commit_turn(s, rng)
    )
    if state is not None:
        _record_outcome(game_id, state)
    return state


def confirm_loadout(
    store: GameStore,
    game_id: str,
    player: Player,
    picks: Sequence[SpecialEffect],
    limit: int,
) -> Optional[GameState]:
    return _apply(
        store,
        game_id,
        "loadout",
        lambda s: GameEngine.confirm_loadout(s, player, picks, limit),
    )


def play_ai_turn(
    store: GameStore,
    game_id: str,
    *,
    rng: Optional[random.Random] = None,
    ai: Optional[BaseAI] = None,
) -> Optional[GameState]:
    """Let the computer play and commit a full turn for the side to move.

    ``ai`` overrides the default decision path (behavior tree, then
    minimax). Returns None when no move could be made. A move the engine
    rejects is a decision bug and raises :class:`~mindgame.errors.AIError`.
    """
    rng = rng or random.Random()
    state = _load(store, game_id)
    if ai is not None:
        move = ai.select_move(state) if not state.game_over else None
    else:
        move = get_ai_decision(state, state.difficulty, rng)
    if move is None:
        logger.debug("No AI move for %s in game %s", state.turn.value, game_id)
        return None

    def play(s: GameState) -> GameState:
        try:
            s = GameEngine.apply_move(s, move)
            if move.swap is not None:
                sw = move.swap
                s = GameEngine.apply_swap(s, sw.r1, sw.c1, sw.r2, sw.c2)
        except RulesViolationError as e:
            raise AIError(
                f"AI proposed an illegal move: {e.message}",
                context={"game_id": game_id, "move": move.model_dump(exclude_none=True)},
            ) from e
        return GameEngine.commit_turn(s, rng)

    new_state = _apply(store, game_id, "ai_turn", play)
    if new_state is not None:
        _record_outcome(game_id, new_state)
    return new_state
