"""Minimax AI implementation for Mind Game.

:func:`search` is a depth-limited minimax with alpha-beta pruning over plain
placements. White maximises and black minimises the white-positive
:func:`~mindgame.ai.heuristic_ai.evaluate_board` score. Each ply places the
mover's stone, resolves the mover's captures and then applies the start of
the next turn (empathy spread, plus resistance spread when white is next).
The tree is walked on a :class:`~mindgame.ai.search_board.SearchBoard`, so
no pydantic cells are built below the root.

:class:`MinimaxAI` is the top-level decision maker. It tries every legal
cell with every special stone still in inventory (manipulation expanded over
each swap partner), simulates the full turn with
:func:`~mindgame.game_engine.resolve_turn` and scores the result with
:func:`search` one ply shallower. On the tiers that keep only the single
best candidate, each search runs with a window raised to the best score
found so far, so candidates that cannot win are cut early.

Difficulty and depth (see :func:`get_search_depth`):

- easy / medium -> depth 1
- hard          -> depth 2
- expert        -> depth 3
- impossible    -> depth 4

Depth is capped to 2 on boards of size 6+ or with more than 20 empty cells.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..board_manager import BoardManager
from ..game_engine import GameEngine, place_stone, resolve_turn, swap_stones
from ..models import AIDifficulty, Board, GameState, Move, Player, SpecialEffect, SwapTarget
from .heuristic_ai import HeuristicAI, evaluate_search_board
from .search_board import SearchBoard

logger = logging.getLogger(__name__)

# Territorial spread inside search draws from generators seeded with this
# value, so a search is a pure function of its arguments.
SEARCH_SEED = 0x5EED

_DIFFICULTY_DEPTH = {
    AIDifficulty.EASY: 1,
    AIDifficulty.MEDIUM: 1,
    AIDifficulty.HARD: 2,
    AIDifficulty.EXPERT: 3,
    AIDifficulty.IMPOSSIBLE: 4,
}
ADAPTIVE_DEPTH_CAP = 2
LARGE_BOARD_SIZE = 6
MANY_EMPTY_CELLS = 20

# Subtracted when a move recreates the board of one / two commits ago
REPETITION_PENALTIES = (1000.0, 800.0)
MEDIUM_TOP_K = 3

# Tiers that sample among several candidates need exact scores for all
_SAMPLING_TIERS = (AIDifficulty.EASY, AIDifficulty.MEDIUM)


def get_search_depth(difficulty: AIDifficulty, size: int, empty_count: int) -> int:
    """Search depth for a difficulty tier with the adaptive cap applied."""
    depth = _DIFFICULTY_DEPTH.get(difficulty, 1)
    if size >= LARGE_BOARD_SIZE or empty_count > MANY_EMPTY_CELLS:
        depth = min(depth, ADAPTIVE_DEPTH_CAP)
    return depth


def search(
    board: Board,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    size: int,
    rng: Optional[random.Random] = None,
) -> float:
    """Alpha-beta minimax value of ``board`` (white-positive).

    ``maximizing`` is True when white is to move. Without ``rng`` the fixed
    search seed is used, so repeated calls return the same score; with one,
    a single draw from it picks the seed.
    """
    seed = SEARCH_SEED if rng is None else rng.getrandbits(32)
    return _search(SearchBoard.from_board(board), depth, alpha, beta, maximizing, seed)


def _search(
    board: SearchBoard,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    seed: int,
) -> float:
    if depth <= 0:
        return evaluate_search_board(board)

    moves = board.ordered_empties()
    if not moves:
        return evaluate_search_board(board)

    mover = Player.WHITE if maximizing else Player.BLACK
    next_side = mover.opponent
    best = float("-inf") if maximizing else float("inf")

    for i in moves:
        child = board.copy()
        child.place(i, mover)
        child.resolve_captures(mover)
        child.spread_viral(next_side)
        if next_side is Player.WHITE:
            # Per-node generator: the value of a position never depends on
            # which siblings were searched before it.
            child.spread_reinforcement(random.Random(seed))

        value = _search(child, depth - 1, alpha, beta, not maximizing, seed)
        if maximizing:
            best = max(best, value)
            alpha = max(alpha, value)
        else:
            best = min(best, value)
            beta = min(beta, value)
        if beta <= alpha:
            break

    return best


@dataclass
class ScoredMove:
    move: Move
    score: float


class MinimaxAI(HeuristicAI):
    """AI that scores every (cell, special stone) pair with alpha-beta search.

    Scores are kept from the deciding side's point of view, so the same code
    plays either colour. Final choice depends on the difficulty tier:

    - easy: uniform among all scored candidates;
    - medium: uniform among the best three;
    - hard and above: the single best.
    """

    def select_move(self, game_state: GameState) -> Optional[Move]:
        placements = self.get_valid_placements(game_state)
        if not placements:
            return None

        size = game_state.board_size
        depth = get_search_depth(self.config.difficulty, size, len(placements))
        recent = self.recent_hashes(game_state)
        effects: List[Optional[SpecialEffect]] = [None]
        effects += GameEngine.available_effects(game_state, game_state.turn)
        windowed = self.config.difficulty not in _SAMPLING_TIERS

        floor = float("-inf")
        candidates: List[ScoredMove] = []
        for r, c in placements:
            best: Optional[ScoredMove] = None
            for effect in effects:
                for move in self.expand_move(game_state, r, c, effect):
                    score = self.score_move(
                        game_state, move, depth, recent, floor if windowed else None
                    )
                    if best is None or score > best.score:
                        best = ScoredMove(move, score)
                    floor = max(floor, score)
            if best is not None:
                candidates.append(best)

        candidates.sort(key=lambda sm: sm.score, reverse=True)
        chosen = self.select_by_tier(candidates)
        if chosen is not None:
            self.move_count += 1
            logger.debug(
                "minimax %s picked (%d,%d) effect=%s score=%.1f depth=%d of %d",
                self.player.value,
                chosen.move.r,
                chosen.move.c,
                chosen.move.effect.value if chosen.move.effect else None,
                chosen.score,
                depth,
                len(candidates),
            )
            return chosen.move
        return None

    @staticmethod
    def expand_move(
        game_state: GameState, r: int, c: int, effect: Optional[SpecialEffect]
    ) -> List[Move]:
        """Concrete moves for one (cell, effect) pair.

        Manipulation is expanded into one move per occupied neighbour to
        swap with; with no partner available it yields nothing.
        """
        if effect != SpecialEffect.MANIPULATION:
            return [Move(r=r, c=c, effect=effect)]
        board = game_state.board
        return [
            Move(
                r=r,
                c=c,
                effect=effect,
                swap=SwapTarget(r1=r, c1=c, r2=nr, c2=nc),
            )
            for nr, nc in BoardManager.get_neighbors(r, c, len(board))
            if BoardManager.is_stone(board[nr][nc])
        ]

    @staticmethod
    def simulate(game_state: GameState, move: Move) -> Board:
        """Board after ``move`` and the mover's full commit resolution.

        Works on one clone of the board; the state itself is not copied.
        """
        board = BoardManager.clone_board(game_state.board)
        place_stone(board, move.r, move.c, game_state.turn, move.effect)
        swapped = None
        if move.swap is not None:
            s = move.swap
            swap_stones(board, s.r1, s.c1, s.r2, s.c2)
            swapped = [(s.r1, s.c1), (s.r2, s.c2)]
        result = resolve_turn(
            board,
            game_state.turn,
            swapped,
            game_state.turn_count,
            random.Random(SEARCH_SEED),
        )
        return result.board

    def score_move(
        self,
        game_state: GameState,
        move: Move,
        depth: int,
        recent: Sequence[str],
        floor: Optional[float] = None,
    ) -> float:
        """Score of ``move`` for this AI, repetition penalties included.

        With ``floor`` the search may stop as soon as the move is proven to
        score at most ``floor``; the returned value is then only an upper
        bound, never above ``floor``.
        """
        board = self.simulate(game_state, move)

        penalty = 0.0
        board_key = BoardManager.board_hash(board)
        for back, amount in enumerate(REPETITION_PENALTIES, start=1):
            if len(recent) >= back and recent[-back] == board_key:
                penalty += amount

        alpha, beta = float("-inf"), float("inf")
        if floor is not None:
            bound = floor + penalty
            if self.player is Player.WHITE:
                alpha = bound
            else:
                beta = -bound

        opponent = game_state.turn.opponent
        value = search(
            board,
            depth - 1,
            alpha,
            beta,
            opponent is Player.WHITE,
            game_state.board_size,
        )
        return self.perspective(value) - penalty

    @staticmethod
    def recent_hashes(game_state: GameState) -> List[str]:
        """Hashes of the last two committed boards, oldest first."""
        if game_state.recent_boards:
            boards = game_state.recent_boards
        else:
            boards = [entry.board for entry in game_state.history]
        return [BoardManager.board_hash(b) for b in boards[-2:]]

    def select_by_tier(self, candidates: List[ScoredMove]) -> Optional[ScoredMove]:
        """Pick from best-first ``candidates`` according to difficulty."""
        if not candidates:
            return None
        difficulty = self.config.difficulty
        if difficulty == AIDifficulty.EASY:
            return self.get_random_element(candidates)
        if difficulty == AIDifficulty.MEDIUM:
            return self.get_random_element(candidates[:MEDIUM_TOP_K])
        return candidates[0]
