"""
Priority-ordered, chance-gated behavior tree for the computer-controlled
defender (white).

Each :class:`Behavior` pairs a priority and a trigger chance with a pure
generator ``(state, rng) -> Move | None``. :func:`select_behavior` walks the
list from the highest priority down; a behavior is considered only when a
uniform draw is ``<= trigger_chance``, and its candidate is taken only if it
passes every hard filter:

- the target is a legal placement (empty, no fresh aftershock against white,
  requested effect in stock);
- it is not both isolated from white stones and caught between two black
  aggression stones on one axis;
- it does not recreate either of the last two committed boards;
- below :data:`EMPATHY_RISK_PRIORITY` it is not next to an active black
  empathy stone.

When nothing survives, the caller falls back to minimax search.

Priority scale:
    100  critical survival
     80  immediate counter / defense
     50  special stone opportunities
     10  positional fallback
      0  last resort
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ..board_manager import BoardManager, GroupInfo, side_of
from ..game_engine import (
    GameEngine,
    is_placement_blocked,
    place_stone,
    resolve_captures,
    swap_stones,
    trigger_beam,
)
from ..models import Board, GameState, Move, Player, SpecialEffect, StoneType, SwapTarget

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]
T = TypeVar("T")

NPC = Player.WHITE
ENEMY = Player.BLACK

# Behaviors at or above this priority may play next to active enemy empathy
EMPATHY_RISK_PRIORITY = 96


@dataclass(frozen=True)
class Behavior:
    priority: int
    trigger_chance: float
    name: str
    generate: Callable[[GameState, random.Random], Optional[Move]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _random_from(items: Sequence[T], rng: random.Random) -> Optional[T]:
    if not items:
        return None
    return rng.choice(items)


def _is_empty(board: Board, r: int, c: int) -> bool:
    return board[r][c].type == StoneType.EMPTY


def _has_effect(state: GameState, effect: SpecialEffect) -> bool:
    return state.inventory.get(NPC, {}).get(effect, 0) > 0


def _white_groups(board: Board) -> List[GroupInfo]:
    return BoardManager.get_all_groups(board, lambda t: side_of(t) is NPC)


def _black_groups(board: Board) -> List[GroupInfo]:
    return BoardManager.get_all_groups(board, lambda t: t == StoneType.BLACK)


def _black_stones_with(board: Board, effect: SpecialEffect) -> List[Coord]:
    return BoardManager.find_cells(
        board, lambda cell: cell.type == StoneType.BLACK and effect in cell.effects
    )


def _empty_neighbors(board: Board, r: int, c: int) -> List[Coord]:
    return [
        (nr, nc)
        for nr, nc in BoardManager.get_neighbors(r, c, len(board))
        if _is_empty(board, nr, nc)
    ]


def _single_liberty(board: Board, group: GroupInfo) -> Optional[Move]:
    if group.liberty_count == 1:
        r, c = group.liberties[0]
        if _is_empty(board, r, c):
            return Move(r=r, c=c)
    return None


# ---------------------------------------------------------------------------
# Hard filters
# ---------------------------------------------------------------------------


def is_legal_candidate(state: GameState, move: Move) -> bool:
    size = len(state.board)
    if not (0 <= move.r < size and 0 <= move.c < size):
        return False
    cell = state.board[move.r][move.c]
    if cell.type != StoneType.EMPTY:
        return False
    if is_placement_blocked(cell, state.turn, state.turn_count):
        return False
    return move.effect is None or (
        state.inventory.get(state.turn, {}).get(move.effect, 0) > 0
    )


def weakens_resistance(move: Move, board: Board) -> bool:
    """True when the placement touches no white or resistance stone."""
    return not any(
        side_of(board[nr][nc].type) is NPC
        for nr, nc in BoardManager.get_neighbors(move.r, move.c, len(board))
    )


def creates_aggression_vulnerability(move: Move, board: Board) -> bool:
    """True when the cell sits between two black aggression stones on an axis.

    Both sides of the axis must reach a black aggression stone over a
    contiguous run of stones; an empty or collapsed cell breaks the run.
    """
    size = len(board)
    for dr, dc in ((0, 1), (1, 0)):
        found = []
        for sign in (-1, 1):
            r, c = move.r + dr * sign, move.c + dc * sign
            hit = False
            while 0 <= r < size and 0 <= c < size:
                cell = board[r][c]
                if cell.type in (StoneType.EMPTY, StoneType.COLLAPSE):
                    break
                if cell.type == StoneType.BLACK and SpecialEffect.AGGRESSION in cell.effects:
                    hit = True
                    break
                r, c = r + dr * sign, c + dc * sign
            found.append(hit)
        if all(found):
            return True
    return False


def _placed_board(state: GameState, move: Move) -> Board:
    board = BoardManager.clone_board(state.board)
    place_stone(board, move.r, move.c, state.turn, move.effect)
    if move.swap is not None:
        s = move.swap
        swap_stones(board, s.r1, s.c1, s.r2, s.c2)
    return board


def is_negation_move(move: Move, state: GameState) -> bool:
    """True when the placement recreates one of the last two boards."""
    if state.recent_boards:
        recent = state.recent_boards[-2:]
    else:
        recent = [entry.board for entry in state.history[-2:]]
    if not recent:
        return False
    key = BoardManager.board_hash(_placed_board(state, move))
    return any(BoardManager.board_hash(b) == key for b in recent)


def is_adjacent_to_active_empathy(move: Move, board: Board, opponent: Player) -> bool:
    return any(
        side_of(board[nr][nc].type) is opponent
        and SpecialEffect.EMPATHY in board[nr][nc].effects
        and not BoardManager.is_suppressed(board, nr, nc)
        for nr, nc in BoardManager.get_neighbors(move.r, move.c, len(board))
    )


# ---------------------------------------------------------------------------
# Behavior generators
# ---------------------------------------------------------------------------


def prevent_resistance_loss(state: GameState, rng: random.Random) -> Optional[Move]:
    """Fill the last liberty of a group that contains resistance."""
    board = state.board
    for group in _white_groups(board):
        if not any(board[r][c].type == StoneType.RESISTANCE for r, c in group.stones):
            continue
        move = _single_liberty(board, group)
        if move is not None:
            return move
    return None


def avoid_encirclement(state: GameState, rng: random.Random) -> Optional[Move]:
    """Extend the white group with the fewest liberties (two at most)."""
    board = state.board
    at_risk = sorted(
        (g for g in _white_groups(board) if g.liberty_count <= 2),
        key=lambda g: g.liberty_count,
    )
    for group in at_risk:
        target = _random_from(
            [(r, c) for r, c in group.liberties if _is_empty(board, r, c)], rng
        )
        if target is not None:
            return Move(r=target[0], c=target[1])
    return None


def capture_player_stones(state: GameState, rng: random.Random) -> Optional[Move]:
    """Take the last liberty of the largest black group in atari."""
    board = state.board
    atari = sorted(
        (g for g in _black_groups(board) if g.liberty_count == 1),
        key=lambda g: g.size,
        reverse=True,
    )
    for group in atari:
        move = _single_liberty(board, group)
        if move is not None:
            return move
    return None


def prevent_control_of_resistance(state: GameState, rng: random.Random) -> Optional[Move]:
    """Answer an active black control stone that touches resistance."""
    board = state.board
    size = len(board)
    for r, c in BoardManager.find_cells(board, lambda cell: cell.type == StoneType.RESISTANCE):
        for nr, nc in BoardManager.get_neighbors(r, c, size):
            neighbor = board[nr][nc]
            if not (
                neighbor.type == StoneType.BLACK
                and SpecialEffect.CONTROL in neighbor.effects
                and not BoardManager.is_suppressed(board, nr, nc)
            ):
                continue
            target = _random_from(_empty_neighbors(board, nr, nc), rng)
            if target is None:
                continue
            effect = SpecialEffect.CONTROL if _has_effect(state, SpecialEffect.CONTROL) else None
            return Move(r=target[0], c=target[1], effect=effect)
    return None


def respond_to_empathy(state: GameState, rng: random.Random) -> Optional[Move]:
    """Neutralise black empathy with control, or capture it when in atari."""
    board = state.board
    empathy = _black_stones_with(board, SpecialEffect.EMPATHY)
    if not empathy:
        return None

    if _has_effect(state, SpecialEffect.CONTROL):
        for r, c in empathy:
            target = _random_from(_empty_neighbors(board, r, c), rng)
            if target is not None:
                return Move(r=target[0], c=target[1], effect=SpecialEffect.CONTROL)

    for r, c in empathy:
        move = _single_liberty(board, BoardManager.get_group(board, r, c))
        if move is not None:
            return move
    return None


def respond_to_aggression(state: GameState, rng: random.Random) -> Optional[Move]:
    """Press black aggression groups instead of stepping into the beam."""
    board = state.board
    for r, c in _black_stones_with(board, SpecialEffect.AGGRESSION):
        group = BoardManager.get_group(board, r, c)
        move = _single_liberty(board, group)
        if move is not None:
            return move
        if group.liberty_count == 2:
            target = _random_from(
                [(lr, lc) for lr, lc in group.liberties if _is_empty(board, lr, lc)], rng
            )
            if target is not None:
                return Move(r=target[0], c=target[1])
    return None


def respond_to_control(state: GameState, rng: random.Random) -> Optional[Move]:
    """Counter an active black control stone anywhere on the board."""
    board = state.board
    active = [
        (r, c)
        for r, c in _black_stones_with(board, SpecialEffect.CONTROL)
        if not BoardManager.is_suppressed(board, r, c)
    ]
    for r, c in active:
        if _has_effect(state, SpecialEffect.CONTROL):
            target = _random_from(_empty_neighbors(board, r, c), rng)
            if target is not None:
                return Move(r=target[0], c=target[1], effect=SpecialEffect.CONTROL)
        move = _single_liberty(board, BoardManager.get_group(board, r, c))
        if move is not None:
            return move
    return None


def expand_resistance(state: GameState, rng: random.Random) -> Optional[Move]:
    """Play next to resistance, preferring the most cramped spots."""
    board = state.board
    size = len(board)
    candidates = [
        (r, c)
        for r, c in BoardManager.empty_cells(board)
        if any(
            board[nr][nc].type == StoneType.RESISTANCE
            for nr, nc in BoardManager.get_neighbors(r, c, size)
        )
    ]
    if not candidates:
        return None
    r, c = min(candidates, key=lambda rc: len(_empty_neighbors(board, *rc)))
    return Move(r=r, c=c)


def enable_resistance_growth(state: GameState, rng: random.Random) -> Optional[Move]:
    """Give a lone resistance stone a white neighbour to grow through."""
    board = state.board
    size = len(board)
    for r, c in BoardManager.find_cells(board, lambda cell: cell.type == StoneType.RESISTANCE):
        neighbors = BoardManager.get_neighbors(r, c, size)
        if any(board[nr][nc].type == StoneType.WHITE for nr, nc in neighbors):
            continue
        target = _random_from(_empty_neighbors(board, r, c), rng)
        if target is not None:
            return Move(r=target[0], c=target[1])
    return None


def place_npc_control(state: GameState, rng: random.Random) -> Optional[Move]:
    """Drop control where it touches the most black stones (empathy x3)."""
    if not _has_effect(state, SpecialEffect.CONTROL):
        return None
    board = state.board
    size = len(board)
    best: Optional[Coord] = None
    best_score = 0
    for r, c in BoardManager.empty_cells(board):
        score = 0
        for nr, nc in BoardManager.get_neighbors(r, c, size):
            neighbor = board[nr][nc]
            if neighbor.type == StoneType.BLACK:
                score += 3 if SpecialEffect.EMPATHY in neighbor.effects else 1
        if score > best_score:
            best, best_score = (r, c), score
    if best is None:
        return None
    return Move(r=best[0], c=best[1], effect=SpecialEffect.CONTROL)


def use_npc_manipulation(state: GameState, rng: random.Random) -> Optional[Move]:
    """Find a manipulation swap whose beams and captures net black losses."""
    if not _has_effect(state, SpecialEffect.MANIPULATION):
        return None
    board = state.board
    size = len(board)
    best_move: Optional[Move] = None
    best_score = 0

    for r, c in BoardManager.empty_cells(board):
        for nr, nc in BoardManager.get_neighbors(r, c, size):
            if not BoardManager.is_stone(board[nr][nc]):
                continue
            move = Move(
                r=r,
                c=c,
                effect=SpecialEffect.MANIPULATION,
                swap=SwapTarget(r1=r, c1=c, r2=nr, c2=nc),
            )
            sim = _placed_board(state, move)
            destroyed = []
            for pos in ((r, c), (nr, nc)):
                sim, hit = trigger_beam(sim, pos)
                destroyed.extend(hit)
            sim, captured = resolve_captures(sim, NPC)
            destroyed.extend(captured)

            gain = sum(1 for d in destroyed if d.type == StoneType.BLACK)
            loss = sum(1 for d in destroyed if side_of(d.type) is NPC)
            score = gain * 10 - loss * 15
            if score > best_score:
                best_score, best_move = score, move
    return best_move


def place_npc_aggression(state: GameState, rng: random.Random) -> Optional[Move]:
    """Pair a new aggression stone with an existing one for a profitable beam.

    Beam value: +1 per black stone, +2 per black special stone, -1 per own
    white stone; any resistance in the path rules the pairing out. The best
    pairing must score above 1 and destroy more black than white stones.
    """
    if not _has_effect(state, SpecialEffect.AGGRESSION):
        return None
    board = state.board
    existing = BoardManager.find_cells(
        board,
        lambda cell: cell.type == StoneType.WHITE and SpecialEffect.AGGRESSION in cell.effects,
    )
    best_score = 1
    best_move: Optional[Move] = None

    for r, c in BoardManager.empty_cells(board):
        for er, ec in existing:
            if er != r and ec != c:
                continue
            if er == r:
                path = [(r, cc) for cc in range(min(ec, c) + 1, max(ec, c))]
            else:
                path = [(rr, c) for rr in range(min(er, r) + 1, max(er, r))]

            net = black = white = 0
            viable = bool(path)
            for pr, pc in path:
                cell = board[pr][pc]
                if (
                    cell.type in (StoneType.EMPTY, StoneType.COLLAPSE, StoneType.RESISTANCE)
                    or SpecialEffect.AGGRESSION in cell.effects
                ):
                    # The beam would stop here, or would hit resistance
                    viable = False
                    break
                if cell.type == StoneType.WHITE:
                    net -= 1
                    white += 1
                else:
                    net += 2 if cell.effects else 1
                    black += 1

            if viable and net > best_score and black > white:
                best_score = net
                best_move = Move(r=r, c=c, effect=SpecialEffect.AGGRESSION)
    return best_move


def place_npc_empathy(state: GameState, rng: random.Random) -> Optional[Move]:
    """Place empathy touching at least two plain black stones."""
    if not _has_effect(state, SpecialEffect.EMPATHY):
        return None
    board = state.board
    size = len(board)
    for r, c in BoardManager.empty_cells(board):
        plain_black = sum(
            1
            for nr, nc in BoardManager.get_neighbors(r, c, size)
            if board[nr][nc].type == StoneType.BLACK and not board[nr][nc].effects
        )
        if plain_black >= 2:
            return Move(r=r, c=c, effect=SpecialEffect.EMPATHY)
    return None


def break_player_structure(state: GameState, rng: random.Random) -> Optional[Move]:
    """Take the liberty shared by most stones of the largest black group."""
    board = state.board
    groups = _black_groups(board)
    if not groups:
        return None
    largest = max(groups, key=lambda g: g.size)
    counts: Dict[Coord, int] = {}
    for r, c in largest.stones:
        for nr, nc in _empty_neighbors(board, r, c):
            counts[(nr, nc)] = counts.get((nr, nc), 0) + 1
    if not counts:
        return None
    r, c = max(counts, key=counts.get)
    return Move(r=r, c=c)


def positional_improvement(state: GameState, rng: random.Random) -> Optional[Move]:
    """Best cell by neighbourhood and centrality, shunning active empathy."""
    board = state.board
    size = len(board)
    center = size / 2
    best: Optional[Coord] = None
    best_score = float("-inf")
    for r, c in BoardManager.empty_cells(board):
        score = 0.0
        for nr, nc in BoardManager.get_neighbors(r, c, size):
            neighbor = board[nr][nc]
            if neighbor.type == StoneType.RESISTANCE:
                score += 20
            elif neighbor.type == StoneType.WHITE:
                score += 10
            elif neighbor.type == StoneType.BLACK:
                score += 5
                if (
                    SpecialEffect.EMPATHY in neighbor.effects
                    and not BoardManager.is_suppressed(board, nr, nc)
                ):
                    score -= 60
        score -= 2 * (abs(r - center) + abs(c - center))
        if score > best_score:
            best, best_score = (r, c), score
    if best is None:
        return None
    return Move(r=best[0], c=best[1])


def panic_fallback(state: GameState, rng: random.Random) -> Optional[Move]:
    """First legal cell in row-major order."""
    placements = GameEngine.get_valid_placements(state)
    if not placements:
        return None
    r, c = placements[0]
    return Move(r=r, c=c)


DEFAULT_BEHAVIORS: Tuple[Behavior, ...] = (
    Behavior(100, 1.0, "Prevent Resistance Loss", prevent_resistance_loss),
    Behavior(90, 0.95, "Avoid Encirclement", avoid_encirclement),
    Behavior(85, 0.85, "Capture Player Stones", capture_player_stones),
    Behavior(80, 0.9, "Prevent Control of Resistance", prevent_control_of_resistance),
    Behavior(90, 1.0, "Respond to Empathy", respond_to_empathy),
    Behavior(70, 0.8, "Respond to Aggression", respond_to_aggression),
    Behavior(65, 0.75, "Respond to Control", respond_to_control),
    Behavior(48, 0.68, "Expand Resistance", expand_resistance),
    Behavior(44, 0.64, "Enable Resistance Growth", enable_resistance_growth),
    Behavior(50, 0.65, "Place NPC Control", place_npc_control),
    Behavior(50, 0.6, "Use NPC Manipulation", use_npc_manipulation),
    Behavior(45, 0.6, "Place NPC Aggression", place_npc_aggression),
    Behavior(40, 0.6, "Place NPC Empathy", place_npc_empathy),
    Behavior(35, 0.5, "Break Player Structure", break_player_structure),
    Behavior(10, 1.0, "Positional Improvement", positional_improvement),
    Behavior(0, 1.0, "Panic Fallback", panic_fallback),
)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def select_behavior(
    state: GameState,
    rng: random.Random,
    behaviors: Sequence[Behavior] = DEFAULT_BEHAVIORS,
) -> Optional[Tuple[Behavior, Move]]:
    """Return the first behavior (by priority) that yields a filtered move."""
    board = state.board
    opponent = state.turn.opponent

    for behavior in sorted(behaviors, key=lambda b: b.priority, reverse=True):
        if rng.random() > behavior.trigger_chance:
            continue

        candidate = behavior.generate(state, rng)
        if candidate is None:
            continue

        if not is_legal_candidate(state, candidate):
            continue
        if weakens_resistance(candidate, board) and creates_aggression_vulnerability(
            candidate, board
        ):
            continue
        if is_negation_move(candidate, state):
            continue
        if behavior.priority < EMPATHY_RISK_PRIORITY and is_adjacent_to_active_empathy(
            candidate, board, opponent
        ):
            logger.debug("behavior %r skipped: empathy conversion risk", behavior.name)
            continue

        logger.debug(
            "behavior %r -> (%d,%d) effect=%s",
            behavior.name,
            candidate.r,
            candidate.c,
            candidate.effect.value if candidate.effect else None,
        )
        return behavior, candidate

    return None


def run_behavior_tree(
    state: GameState,
    rng: random.Random,
    behaviors: Sequence[Behavior] = DEFAULT_BEHAVIORS,
) -> Optional[Move]:
    """Move chosen by the behavior tree, or None to fall back to search."""
    picked = select_behavior(state, rng, behaviors)
    return picked[1] if picked is not None else None
