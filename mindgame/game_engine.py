"""Core rules engine for Mind Game.

All resolution is deferred to commit: a placement (and the optional
manipulation swap that follows it) only changes the acting cells, and the
full pipeline below runs when the turn is committed:

1. fire every aggression beam owned by the mover, plus beams anchored on
   cells moved by a swap this turn (whoever owns them now);
2. resolve captures for the mover (opponent groups first, then its own);
3. hand the turn over, spread empathy for the new side and, when the new
   side is white, convert one eligible white stone to resistance;
4. resolve captures for the new side;
5. run the mass-destruction escalation over everything destroyed;
6. expire old aftershocks;
7. check win conditions and the round limit;
8. advance the turn counter.

Steps 1-6 live in :func:`resolve_turn`, which the AI reuses to simulate
hypothetical turns. Every function clones before mutating; inputs are never
modified. Illegal player actions raise :class:`RulesViolationError`.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .board_manager import ORTHOGONAL_DIRECTIONS, BoardManager, side_of
from .config import (
    DEFAULT_INVENTORY,
    LOADOUT_AGGRESSION_CHARGES,
    LOADOUT_MAX_PER_EFFECT,
    MAX_BOARD_SIZE,
    MIN_BOARD_SIZE,
    get_settings,
)
from .errors import InvalidStateError, RulesViolationError
from .models import (
    AIBehavior,
    AIDifficulty,
    Aftershock,
    Board,
    Cell,
    GamePhase,
    GameState,
    Inventory,
    LastAction,
    LastActionType,
    Move,
    Player,
    Position,
    SpecialEffect,
    StoneType,
)

Coord = Tuple[int, int]

# Destroyed cells needed in one commit to collapse a cell
ESCALATION_THRESHOLD = 4
# Aftershocks block their side for this many turns (one full round)
AFTERSHOCK_TURNS = 2


@dataclass(frozen=True)
class DestroyedCell:
    """A cell emptied by a beam or a capture, with its prior occupant."""
    r: int
    c: int
    type: StoneType

    @property
    def position(self) -> Position:
        return Position(r=self.r, c=self.c)


@dataclass
class TurnResolution:
    """Board-level outcome of :func:`resolve_turn`."""
    board: Board
    destroyed: List[DestroyedCell] = field(default_factory=list)
    converted: List[Coord] = field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════
# Board pipeline
# ═══════════════════════════════════════════════════════════════════════════


def _destroy(board: Board, r: int, c: int) -> None:
    cell = board[r][c]
    cell.type = StoneType.EMPTY
    cell.effects = []


def trigger_beam(board: Board, origin: Coord) -> Tuple[Board, List[DestroyedCell]]:
    """Fire the aggression beam anchored at ``origin``.

    For each of the four directions the scan walks outward over stones; it
    stops at an empty or collapsed cell or at the board edge. When it meets
    another aggression stone first, every cell strictly between the two is
    destroyed. All directions read the pre-trigger board.

    A missing or suppressed aggression stone at ``origin`` is a no-op.
    """
    r, c = origin
    if not BoardManager.has_active_effect(board, r, c, SpecialEffect.AGGRESSION):
        return board, []

    size = len(board)
    new_board = BoardManager.clone_board(board)
    destroyed: List[DestroyedCell] = []

    for dr, dc in ORTHOGONAL_DIRECTIONS:
        between: List[Coord] = []
        cr, cc = r + dr, c + dc
        while 0 <= cr < size and 0 <= cc < size:
            cell = board[cr][cc]
            if cell.type in (StoneType.EMPTY, StoneType.COLLAPSE):
                between = []
                break
            if SpecialEffect.AGGRESSION in cell.effects:
                break
            between.append((cr, cc))
            cr, cc = cr + dr, cc + dc
        else:
            # Ran off the edge without meeting a partner
            between = []

        for br, bc in between:
            destroyed.append(DestroyedCell(br, bc, board[br][bc].type))
            _destroy(new_board, br, bc)

    return new_board, destroyed


def resolve_captures(
    board: Board, acting_side: Player
) -> Tuple[Board, List[DestroyedCell]]:
    """Remove zero-liberty groups: the opponent's first, then the actor's.

    Self-capture is allowed; the actor's groups are only examined on the
    board left after the opponent's captures. When nothing is captured the
    input board is returned as is.
    """
    new_board = board
    destroyed: List[DestroyedCell] = []

    for side in (acting_side.opponent, acting_side):
        groups = BoardManager.get_all_groups(
            new_board, lambda t, side=side: side_of(t) is side
        )
        for group in groups:
            if group.liberty_count:
                continue
            if new_board is board:
                new_board = BoardManager.clone_board(board)
            for r, c in group.stones:
                destroyed.append(DestroyedCell(r, c, new_board[r][c].type))
                _destroy(new_board, r, c)

    return new_board, destroyed


def spread_viral(board: Board, active_side: Player) -> Board:
    """Convert plain enemy stones next to active empathy stones.

    Converted stones join ``active_side`` and carry empathy themselves.
    Resistance is never converted. Conversions are computed against the
    input board and applied together.
    """
    size = len(board)
    targets = set()
    for r, row in enumerate(board):
        for c, cell in enumerate(row):
            if side_of(cell.type) is not active_side:
                continue
            if not BoardManager.has_active_effect(board, r, c, SpecialEffect.EMPATHY):
                continue
            for nr, nc in BoardManager.get_neighbors(r, c, size):
                neighbor = board[nr][nc]
                if (
                    side_of(neighbor.type) is active_side.opponent
                    and neighbor.type != StoneType.RESISTANCE
                    and not neighbor.effects
                ):
                    targets.add((nr, nc))

    if not targets:
        return board
    new_board = BoardManager.clone_board(board)
    for r, c in targets:
        new_board[r][c].type = active_side.stone
        new_board[r][c].effects = [SpecialEffect.EMPATHY]
    return new_board


def spread_reinforcement(board: Board, rng: random.Random) -> Board:
    """Turn one random eligible white stone into resistance.

    Eligible stones are plain (no effects), unsuppressed and touch at least
    one resistance stone.
    """
    size = len(board)
    eligible = [
        (r, c)
        for r, c in BoardManager.find_cells(
            board, lambda cell: cell.type == StoneType.WHITE and not cell.effects
        )
        if not BoardManager.is_suppressed(board, r, c)
        and any(
            board[nr][nc].type == StoneType.RESISTANCE
            for nr, nc in BoardManager.get_neighbors(r, c, size)
        )
    ]
    if not eligible:
        return board
    r, c = rng.choice(eligible)
    new_board = BoardManager.clone_board(board)
    new_board[r][c].type = StoneType.RESISTANCE
    return new_board


def collapse_target(
    size: int, cells: Sequence[Coord], blocked: Iterable[Coord] = ()
) -> Coord:
    """Grid cell nearest (Manhattan) to the centroid of ``cells``.

    Cells in ``blocked`` (already collapsed) are never chosen. Ties go to
    the lowest column, then the lowest row.
    """
    centroid = np.asarray(cells, dtype=float).mean(axis=0)
    rows, cols = np.indices((size, size))
    distance = np.abs(rows - centroid[0]) + np.abs(cols - centroid[1])
    for r, c in blocked:
        distance[r, c] = np.inf
    # Column-major flattening puts lower columns first
    flat = distance.T.ravel()
    best = int(np.flatnonzero(np.isclose(flat, flat.min()))[0])
    c, r = divmod(best, size)
    return r, c


def handle_resolution_event(
    board: Board, destroyed: Iterable[DestroyedCell], turn_count: int
) -> Board:
    """Apply escalation and aftershocks for one commit's destruction.

    Four or more destroyed cells collapse the cell nearest their centroid.
    Every other destroyed cell is left empty with an aftershock blocking
    the side whose stone was lost there.
    """
    unique: Dict[Coord, DestroyedCell] = {}
    for d in destroyed:
        unique[(d.r, d.c)] = d
    if not unique:
        return board

    new_board = BoardManager.clone_board(board)
    collapsed: Optional[Coord] = None
    if len(unique) >= ESCALATION_THRESHOLD:
        collapsed = collapse_target(
            len(board),
            list(unique),
            BoardManager.find_cells(
                board, lambda cell: cell.type == StoneType.COLLAPSE
            ),
        )
        cell = new_board[collapsed[0]][collapsed[1]]
        cell.type = StoneType.COLLAPSE
        cell.effects = []
        cell.aftershock = None

    for (r, c), d in unique.items():
        if (r, c) == collapsed:
            continue
        owner = side_of(d.type)
        if owner is None:
            raise InvalidStateError(
                "Destroyed cell has no owning side",
                context={"r": r, "c": c, "type": d.type.value},
            )
        cell = new_board[r][c]
        cell.type = StoneType.EMPTY
        cell.effects = []
        cell.aftershock = Aftershock(type=owner, turn_created=turn_count)
    return new_board


def expire_aftershocks(board: Board, turn_count: int) -> Board:
    """Drop aftershocks that are at least one full round old."""
    stale = BoardManager.find_cells(
        board,
        lambda cell: cell.aftershock is not None
        and turn_count - cell.aftershock.turn_created >= AFTERSHOCK_TURNS,
    )
    if not stale:
        return board
    new_board = BoardManager.clone_board(board)
    for r, c in stale:
        new_board[r][c].aftershock = None
    return new_board


def is_placement_blocked(cell: Cell, player: Player, turn_count: int) -> bool:
    """True while an aftershock against ``player`` is still fresh."""
    shock = cell.aftershock
    return (
        shock is not None
        and shock.type is player
        and turn_count - shock.turn_created < AFTERSHOCK_TURNS
    )


def check_win(
    board: Board, turn: Player, turn_count: int
) -> Tuple[bool, Optional[Player]]:
    """Evaluate win conditions for the side about to play.

    - no resistance left: black wins;
    - black to play with no empty cell: white wins;
    - from turn 2 on, a side with no stones left loses.
    """
    resistance = BoardManager.count_stones(board, StoneType.RESISTANCE)
    if resistance == 0:
        return True, Player.BLACK

    if turn is Player.BLACK and not BoardManager.empty_cells(board):
        return True, Player.WHITE

    if turn_count > 1:
        if BoardManager.count_stones(board, StoneType.BLACK) == 0:
            return True, Player.WHITE
        if BoardManager.count_stones(board, StoneType.WHITE, StoneType.RESISTANCE) == 0:
            return True, Player.BLACK

    return False, None


def place_stone(
    board: Board, r: int, c: int, player: Player, effect: Optional[SpecialEffect] = None
) -> None:
    """Put ``player``'s stone on ``(r, c)`` in place, clearing any aftershock."""
    cell = board[r][c]
    cell.type = player.stone
    cell.effects = [effect] if effect is not None else []
    cell.aftershock = None


def swap_stones(board: Board, r1: int, c1: int, r2: int, c2: int) -> None:
    """Exchange two stones in place, consuming manipulation on both cells."""
    a, b = board[r1][c1], board[r2][c2]
    a.type, b.type = b.type, a.type
    a.effects, b.effects = b.effects, a.effects
    a.id, b.id = b.id, a.id
    for cell in (a, b):
        cell.effects = [e for e in cell.effects if e != SpecialEffect.MANIPULATION]
        cell.aftershock = None


def resolve_turn(
    board: Board,
    mover: Player,
    swapped_positions: Optional[Iterable[Coord]],
    turn_count: int,
    rng: random.Random,
) -> TurnResolution:
    """Run the board part of the commit pipeline (steps 1-6)."""
    swapped = set(swapped_positions or ())
    destroyed: List[DestroyedCell] = []

    origins = BoardManager.find_cells(
        board,
        lambda cell: side_of(cell.type) is mover
        and SpecialEffect.AGGRESSION in cell.effects,
    )
    origins += sorted(swapped - set(origins))
    for origin in origins:
        board, hit = trigger_beam(board, origin)
        destroyed.extend(hit)

    board, captured = resolve_captures(board, mover)
    destroyed.extend(captured)

    next_side = mover.opponent
    before = board
    board = spread_viral(board, next_side)
    if next_side is Player.WHITE:
        board = spread_reinforcement(board, rng)
    converted = [
        (r, c)
        for r, row in enumerate(board)
        for c, cell in enumerate(row)
        if cell.type != before[r][c].type
    ]

    board, captured = resolve_captures(board, next_side)
    destroyed.extend(captured)

    board = handle_resolution_event(board, destroyed, turn_count)
    board = expire_aftershocks(board, turn_count)
    return TurnResolution(board=board, destroyed=destroyed, converted=converted)


# ═══════════════════════════════════════════════════════════════════════════
# State operations
# ═══════════════════════════════════════════════════════════════════════════


def _empty_inventory() -> Inventory:
    return {effect: 0 for effect in SpecialEffect}


def _inventory_from_picks(picks: Iterable[SpecialEffect]) -> Inventory:
    inventory = _empty_inventory()
    for effect in picks:
        inventory[effect] += (
            LOADOUT_AGGRESSION_CHARGES if effect == SpecialEffect.AGGRESSION else 1
        )
    return inventory


def _snapshot(state: GameState) -> GameState:
    """Independent copy of ``state`` with an empty history of its own."""
    return state.model_copy(update={"history": []}).model_copy(deep=True)


def _copy_history(state: GameState) -> List[GameState]:
    return [entry.model_copy(deep=True) for entry in state.history]


def _reject(message: str, rule: str, **context) -> RulesViolationError:
    return RulesViolationError(message, rule_ref=rule, context=context or None)


class GameEngine:
    """State-level operations on :class:`GameState`.

    Every method returns a new state and leaves its input untouched. Illegal
    actions raise :class:`RulesViolationError`; contract breaches (such as
    off-board coordinates) raise :class:`InvalidStateError`.
    """

    @staticmethod
    def create_game(
        size: int,
        *,
        rng: random.Random,
        is_ai_game: bool = False,
        difficulty: Optional[AIDifficulty] = None,
        turn_limit: Optional[int] = None,
        behavior_tree: Optional[AIBehavior] = None,
        loadout_limit: Optional[int] = None,
    ) -> GameState:
        """Create the initial state for a new game.

        Without ``loadout_limit`` both sides start with the default
        inventory. With it, the game opens in the loadout phase and each
        side picks up to ``loadout_limit`` special stones; in AI games the
        computer's picks are drawn at random immediately.
        """
        if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
            raise InvalidStateError(
                "Unsupported board size",
                context={"size": size, "min": MIN_BOARD_SIZE, "max": MAX_BOARD_SIZE},
            )

        state = GameState(
            board=BoardManager.create_initial_board(size, rng),
            board_size=size,
            is_ai_game=is_ai_game,
            difficulty=difficulty,
            turn_limit=turn_limit,
            behavior_tree=behavior_tree,
            inventory={
                Player.BLACK: dict(DEFAULT_INVENTORY),
                Player.WHITE: dict(DEFAULT_INVENTORY),
            },
        )
        if loadout_limit is None:
            return state

        if loadout_limit < 0:
            raise InvalidStateError(
                "Loadout limit must not be negative",
                context={"loadout_limit": loadout_limit},
            )
        state.phase = GamePhase.LOADOUT
        state.inventory = {
            Player.BLACK: _empty_inventory(),
            Player.WHITE: _empty_inventory(),
        }
        state.loadout_confirmed = {Player.BLACK: False, Player.WHITE: False}
        if is_ai_game:
            picks = GameEngine.random_loadout(loadout_limit, rng)
            state.inventory[Player.WHITE] = _inventory_from_picks(picks)
            state.npc_effect_types = sorted(set(picks), key=list(SpecialEffect).index)
            state.loadout_confirmed[Player.WHITE] = True
        return state

    @staticmethod
    def random_loadout(limit: int, rng: random.Random) -> List[SpecialEffect]:
        """Draw ``limit`` picks honouring the per-effect cap."""
        pool = [e for e in SpecialEffect for _ in range(LOADOUT_MAX_PER_EFFECT)]
        return rng.sample(pool, min(limit, len(pool)))

    @staticmethod
    def confirm_loadout(
        state: GameState,
        player: Player,
        picks: Sequence[SpecialEffect],
        limit: int,
    ) -> GameState:
        """Lock in ``player``'s special stone picks for a loadout game."""
        if state.phase != GamePhase.LOADOUT:
            raise _reject("Game is not in the loadout phase", "not_loadout")
        if state.loadout_confirmed.get(player):
            raise _reject(
                "Loadout already confirmed", "loadout_confirmed", player=player.value
            )
        if len(picks) > limit:
            raise _reject(
                "Too many special stones", "loadout_limit",
                picks=len(picks), limit=limit,
            )
        over = [e.value for e, n in Counter(picks).items() if n > LOADOUT_MAX_PER_EFFECT]
        if over:
            raise _reject("Effect picked too often", "loadout_duplicate", effects=over)

        new_state = state.model_copy(deep=True)
        new_state.inventory[player] = _inventory_from_picks(picks)
        new_state.loadout_confirmed[player] = True
        if all(new_state.loadout_confirmed.get(p) for p in Player):
            new_state.phase = GamePhase.PLAYING
        return new_state

    # ------------------------------------------------------------------
    # Placement, swap, undo
    # ------------------------------------------------------------------

    @staticmethod
    def _check_can_act(state: GameState) -> None:
        if state.game_over or state.phase == GamePhase.GAMEOVER:
            raise _reject("Game is over", "game_over")
        if state.phase == GamePhase.LOADOUT:
            raise _reject("Loadout not finished", "loadout_pending")

    @staticmethod
    def placement_error(state: GameState, r: int, c: int) -> Optional[str]:
        """Rule blocking a plain placement at ``(r, c)``, or None."""
        cell = BoardManager.get_cell(state.board, r, c)
        if cell.type != StoneType.EMPTY:
            return "occupied"
        if is_placement_blocked(cell, state.turn, state.turn_count):
            return "aftershock"
        return None

    @staticmethod
    def get_valid_placements(state: GameState) -> List[Coord]:
        """Cells where the side to move may place a stone."""
        return [
            (r, c)
            for r, c in BoardManager.empty_cells(state.board)
            if not is_placement_blocked(state.board[r][c], state.turn, state.turn_count)
        ]

    @staticmethod
    def available_effects(state: GameState, player: Optional[Player] = None) -> List[SpecialEffect]:
        inventory = state.inventory.get(player or state.turn, {})
        return [e for e in SpecialEffect if inventory.get(e, 0) > 0]

    @staticmethod
    def apply_move(state: GameState, move: Move) -> GameState:
        """Place the mover's stone, optionally with a special effect.

        Records an undo snapshot, spends the inventory charge and, for a
        manipulation stone, opens the swap step. Nothing is resolved here.
        """
        GameEngine._check_can_act(state)
        if state.move_confirmed:
            raise _reject("A stone was already placed this turn", "already_moved")

        rule = GameEngine.placement_error(state, move.r, move.c)
        if rule == "occupied":
            raise _reject("Cell is not empty", rule, r=move.r, c=move.c)
        if rule == "aftershock":
            raise _reject("Cell is blocked by an aftershock", rule, r=move.r, c=move.c)

        player = state.turn
        if move.effect is not None and state.inventory.get(player, {}).get(move.effect, 0) <= 0:
            raise _reject(
                "Special stone not available", "no_inventory",
                effect=move.effect.value,
            )

        new_state = _snapshot(state)
        history = _copy_history(state) + [_snapshot(state)]
        new_state.history = history[-get_settings().max_undo_history:]

        place_stone(new_state.board, move.r, move.c, player, move.effect)
        new_state.board[move.r][move.c].id = BoardManager.new_stone_id(move.r, move.c)

        if move.effect is not None:
            new_state.inventory[player][move.effect] -= 1
        new_state.move_confirmed = True
        new_state.pending_swap = (
            Position(r=move.r, c=move.c)
            if move.effect == SpecialEffect.MANIPULATION
            else None
        )
        new_state.last_action = LastAction(
            type=LastActionType.MOVE, cells=[Position(r=move.r, c=move.c)]
        )
        return new_state

    @staticmethod
    def apply_swap(state: GameState, r1: int, c1: int, r2: int, c2: int) -> GameState:
        """Exchange two stones next to the pending manipulation stone.

        Type, effects and identity move together; manipulation is consumed
        from both cells and any aftershock on them is cleared.
        """
        GameEngine._check_can_act(state)
        origin = state.pending_swap
        if origin is None:
            raise _reject("No swap pending", "no_pending_swap")

        size = state.board_size
        BoardManager.check_bounds(r1, c1, size)
        BoardManager.check_bounds(r2, c2, size)
        if (r1, c1) == (r2, c2):
            raise _reject("Swap needs two different cells", "same_cell")
        for r, c in ((r1, c1), (r2, c2)):
            if abs(r - origin.r) + abs(c - origin.c) > 1:
                raise _reject(
                    "Swap target not adjacent to the manipulation stone",
                    "not_adjacent", r=r, c=c,
                )
            if not BoardManager.is_stone(state.board[r][c]):
                raise _reject("Swap target holds no stone", "empty_target", r=r, c=c)

        new_state = _snapshot(state)
        history = _copy_history(state) + [_snapshot(state)]
        new_state.history = history[-get_settings().max_undo_history:]

        swap_stones(new_state.board, r1, c1, r2, c2)

        swapped = list(new_state.swapped_positions or [])
        for pos in (Position(r=r1, c=c1), Position(r=r2, c=c2)):
            if pos not in swapped:
                swapped.append(pos)
        new_state.swapped_positions = swapped
        new_state.pending_swap = None
        new_state.last_action = LastAction(
            type=LastActionType.SWAP,
            cells=[Position(r=r1, c=c1), Position(r=r2, c=c2)],
        )
        return new_state

    @staticmethod
    def undo(state: GameState) -> GameState:
        """Return to the state before the last placement or swap."""
        if not state.history:
            raise _reject("Nothing to undo", "nothing_to_undo")
        previous = state.history[-1].model_copy(deep=True)
        previous.history = [entry.model_copy(deep=True) for entry in state.history[:-1]]
        return previous

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    @staticmethod
    def commit_turn(state: GameState, rng: random.Random) -> GameState:
        """End the mover's turn and run the full resolution pipeline."""
        GameEngine._check_can_act(state)
        if not state.move_confirmed:
            raise _reject("Place a stone before ending the turn", "no_move")

        mover = state.turn
        next_side = mover.opponent
        swapped = [(p.r, p.c) for p in state.swapped_positions or []]
        result = resolve_turn(state.board, mover, swapped, state.turn_count, rng)

        game_over, winner = check_win(result.board, next_side, state.turn_count + 1)
        if (
            not game_over
            and mover is Player.BLACK
            and state.is_ai_game
            and state.turn_limit is not None
            and state.turn_count // 2 + 1 >= state.turn_limit
            and BoardManager.count_stones(result.board, StoneType.RESISTANCE) > 0
        ):
            game_over, winner = True, Player.WHITE

        new_state = state.model_copy(
            update={"history": [], "recent_boards": None, "board": result.board}
        ).model_copy(deep=True)
        new_state.turn = next_side
        new_state.pending_swap = None
        new_state.swapped_positions = None
        new_state.move_confirmed = False
        new_state.turn_count = state.turn_count + 1
        new_state.game_over = game_over
        new_state.winner = winner
        if game_over:
            new_state.phase = GamePhase.GAMEOVER

        if result.destroyed:
            new_state.last_action = LastAction(
                type=LastActionType.CAPTURE,
                cells=[d.position for d in result.destroyed],
            )
        elif result.converted:
            new_state.last_action = LastAction(
                type=LastActionType.SPREAD,
                cells=[Position(r=r, c=c) for r, c in result.converted],
            )

        recent = [BoardManager.clone_board(b) for b in state.recent_boards or []]
        recent.append(BoardManager.clone_board(result.board))
        new_state.recent_boards = recent[-2:]
        return new_state
