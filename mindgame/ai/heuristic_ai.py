"""Static board evaluation for Mind Game.

:func:`evaluate_board` scores a board from white's point of view (positive
favours the defender). It combines three families of terms:

* group vitality: size and liberty bands for every group, with white and
  resistance evaluated as one allegiance;
* special stones: resistance and empathy bonuses inside white groups, and an
  owner-conditional control bonus;
* position: every empty cell costs a little in proportion to its Manhattan
  distance from the board centre.

The evaluator is deterministic and has no side effects, so search results
depend only on the board being searched.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..game_engine import GameEngine, resolve_turn
from ..models import Board, GameState, Move
from .base import BaseAI
from .search_board import EMPATHY_BIT, RESISTANCE, SIDE, WHITE_SIDE, SearchBoard


@dataclass(frozen=True)
class HeuristicWeights:
    """Scalar weights used by :func:`evaluate_board`."""

    white_stone: float = 15.0
    white_atari: float = -150.0
    white_two_liberties: float = 40.0
    white_safe: float = 100.0
    resistance_stone: float = 120.0
    white_empathy_group: float = 60.0

    black_stone: float = -25.0
    black_captured: float = 400.0
    black_atari: float = 120.0
    black_safe: float = -60.0

    empty_center_distance: float = -3.0
    control_stone: float = 20.0


DEFAULT_WEIGHTS = HeuristicWeights()


def evaluate_search_board(
    board: SearchBoard, weights: HeuristicWeights = DEFAULT_WEIGHTS
) -> float:
    """Score a :class:`SearchBoard` from white's perspective."""
    score = 0.0
    types, effects = board.types, board.effects

    for stones, libs in board.groups():
        count = len(stones)
        if SIDE[types[stones[0]]] == WHITE_SIDE:
            score += count * weights.white_stone
            if libs == 1:
                score += weights.white_atari
            elif libs == 2:
                score += weights.white_two_liberties
            elif libs >= 3:
                score += weights.white_safe

            score += weights.resistance_stone * sum(
                1 for i in stones if types[i] == RESISTANCE
            )
            if any(effects[i] & EMPATHY_BIT for i in stones):
                score += weights.white_empathy_group
        else:
            score += count * weights.black_stone
            if libs == 0:
                score += weights.black_captured
            elif libs == 1:
                score += weights.black_atari
            elif libs >= 3:
                score += weights.black_safe

    score += weights.empty_center_distance * board.empty_distance_sum()
    score += weights.control_stone * board.control_balance()
    return score


def evaluate_board(board: Board, weights: HeuristicWeights = DEFAULT_WEIGHTS) -> float:
    """Score ``board`` from white's perspective."""
    return evaluate_search_board(SearchBoard.from_board(board), weights)


class HeuristicAI(BaseAI):
    """One-ply greedy AI over plain placements.

    Each legal cell is tried with a plain stone, the turn is resolved with
    :func:`resolve_turn` and the resulting board is scored with
    :func:`evaluate_board`. Serves as the evaluation base for
    :class:`~mindgame.ai.minimax_ai.MinimaxAI`.
    """

    weights: HeuristicWeights = DEFAULT_WEIGHTS

    def evaluate_board(self, board: Board) -> float:
        """Score ``board`` from this AI's perspective."""
        return self.perspective(evaluate_board(board, self.weights))

    def evaluate_position(self, game_state: GameState) -> float:
        return self.evaluate_board(game_state.board)

    def select_move(self, game_state: GameState) -> Optional[Move]:
        best_move: Optional[Move] = None
        best_score = float("-inf")
        for r, c in self.get_valid_placements(game_state):
            move = Move(r=r, c=c)
            placed = GameEngine.apply_move(game_state, move)
            result = resolve_turn(
                placed.board, game_state.turn, None, game_state.turn_count, self.rng
            )
            score = self.evaluate_board(result.board)
            if score > best_score:
                best_score, best_move = score, move
        if best_move is not None:
            self.move_count += 1
        return best_move
