"""Board-level helpers for the Mind Game engine.

This module is the single home for grid geometry, group/liberty analysis and
the suppression (control) resolver. Everything here is side-effect free:
callers pass in boards and receive derived views or new boards, never a
mutated input.

Allegiance rules used throughout:

- black stones connect only with black stones;
- white and resistance stones form a single allegiance for grouping,
  capture and suppression, while win checks still count resistance apart.
"""
from __future__ import annotations

import random
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from .errors import BoardIndexError, InvalidStateError
from .models import Board, Cell, Player, SpecialEffect, StoneType

__all__ = ["BoardManager", "GroupInfo", "side_of"]

Coord = Tuple[int, int]

# up, down, left, right
ORTHOGONAL_DIRECTIONS: Tuple[Coord, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))

_STONE_CODES = {
    StoneType.EMPTY: ".",
    StoneType.BLACK: "B",
    StoneType.WHITE: "W",
    StoneType.RESISTANCE: "R",
    StoneType.COLLAPSE: "#",
}
_CODE_STONES = {v: k for k, v in _STONE_CODES.items()}
_EFFECT_CODES = {
    SpecialEffect.EMPATHY: "e",
    SpecialEffect.CONTROL: "c",
    SpecialEffect.AGGRESSION: "a",
    SpecialEffect.MANIPULATION: "m",
}
_CODE_EFFECTS = {v: k for k, v in _EFFECT_CODES.items()}


def side_of(stone_type: StoneType) -> Optional[Player]:
    """Return the side owning ``stone_type`` (resistance belongs to white)."""
    if stone_type == StoneType.BLACK:
        return Player.BLACK
    if stone_type in (StoneType.WHITE, StoneType.RESISTANCE):
        return Player.WHITE
    return None


@dataclass
class GroupInfo:
    """Connected same-allegiance stones and their empty neighbours."""

    stones: List[Coord] = field(default_factory=list)
    liberties: List[Coord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.stones)

    @property
    def liberty_count(self) -> int:
        return len(self.liberties)


class BoardManager:
    """Helper for board-level operations.

    Provides:

    - neighbour enumeration and bounds checks,
    - value-semantics board cloning and initial board creation,
    - group / liberty flood fill,
    - the control (suppression) resolver,
    - id-free board hashing and a compact text diagram codec.
    """

    @staticmethod
    def check_bounds(r: int, c: int, size: int) -> None:
        """Raise :class:`BoardIndexError` when ``(r, c)`` is off the board."""
        if not (0 <= r < size and 0 <= c < size):
            raise BoardIndexError(r, c, size)

    @staticmethod
    def get_cell(board: Board, r: int, c: int) -> Cell:
        """Return the cell at ``(r, c)`` with a bounds check."""
        BoardManager.check_bounds(r, c, len(board))
        return board[r][c]

    @staticmethod
    def get_neighbors(r: int, c: int, size: int) -> List[Coord]:
        """Return the up-to-4 orthogonal in-bounds neighbours of ``(r, c)``."""
        BoardManager.check_bounds(r, c, size)
        neighbors = []
        for dr, dc in ORTHOGONAL_DIRECTIONS:
            nr, nc = r + dr, c + dc
            if 0 <= nr < size and 0 <= nc < size:
                neighbors.append((nr, nc))
        return neighbors

    @staticmethod
    def clone_board(board: Board) -> Board:
        """Return a deep, independent copy of ``board``.

        Aftershock records are never mutated in place (only replaced), so
        they are shared between the copies.
        """
        return [
            [
                Cell.model_construct(
                    type=cell.type,
                    effects=list(cell.effects),
                    id=cell.id,
                    aftershock=cell.aftershock,
                )
                for cell in row
            ]
            for row in board
        ]

    @staticmethod
    def new_stone_id(r: int, c: int) -> str:
        """Opaque identity token for a stone placed at ``(r, c)``."""
        return f"{r}-{c}-{uuid.uuid4().hex[:9]}"

    @staticmethod
    def create_initial_board(size: int, rng: random.Random) -> Board:
        """Create an empty ``size`` x ``size`` board seeded with resistance.

        One to three resistance stones are dropped on distinct random cells.
        """
        if size < 1:
            raise InvalidStateError(
                "Board size must be positive", context={"size": size}
            )
        board: Board = [
            [Cell(id=BoardManager.new_stone_id(r, c)) for c in range(size)]
            for r in range(size)
        ]
        count = min(rng.randint(1, 3), size * size)
        for r, c in rng.sample(
            [(r, c) for r in range(size) for c in range(size)], count
        ):
            board[r][c].type = StoneType.RESISTANCE
        return board

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def is_stone(cell: Cell) -> bool:
        """True for cells holding a black, white or resistance stone."""
        return side_of(cell.type) is not None

    @staticmethod
    def same_allegiance(a: StoneType, b: StoneType) -> bool:
        side_a = side_of(a)
        return side_a is not None and side_a is side_of(b)

    @staticmethod
    def empty_cells(board: Board) -> List[Coord]:
        """All cells whose type is empty (residue cells included)."""
        return [
            (r, c)
            for r, row in enumerate(board)
            for c, cell in enumerate(row)
            if cell.type == StoneType.EMPTY
        ]

    @staticmethod
    def count_stones(board: Board, *types: StoneType) -> int:
        return sum(1 for row in board for cell in row if cell.type in types)

    @staticmethod
    def find_cells(
        board: Board,
        predicate: Callable[[Cell], bool],
    ) -> List[Coord]:
        """Coordinates of every cell matching ``predicate`` in row order."""
        return [
            (r, c)
            for r, row in enumerate(board)
            for c, cell in enumerate(row)
            if predicate(cell)
        ]

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    @staticmethod
    def get_group(board: Board, r: int, c: int) -> GroupInfo:
        """Flood-fill the group containing ``(r, c)``.

        Raises:
            InvalidStateError: if the start cell holds no stone.
        """
        start = BoardManager.get_cell(board, r, c)
        if not BoardManager.is_stone(start):
            raise InvalidStateError(
                "Group search started on a cell without a stone",
                context={"r": r, "c": c, "type": start.type.value},
            )
        size = len(board)
        group_type = start.type

        stones: List[Coord] = []
        liberties: List[Coord] = []
        seen_liberties = set()
        visited = {(r, c)}
        queue = deque([(r, c)])

        while queue:
            cr, cc = queue.popleft()
            stones.append((cr, cc))
            for nr, nc in BoardManager.get_neighbors(cr, cc, size):
                n_type = board[nr][nc].type
                if n_type == StoneType.EMPTY:
                    if (nr, nc) not in seen_liberties:
                        seen_liberties.add((nr, nc))
                        liberties.append((nr, nc))
                elif (
                    (nr, nc) not in visited
                    and BoardManager.same_allegiance(group_type, n_type)
                ):
                    visited.add((nr, nc))
                    queue.append((nr, nc))

        return GroupInfo(stones=stones, liberties=liberties)

    @staticmethod
    def get_all_groups(
        board: Board,
        predicate: Optional[Callable[[StoneType], bool]] = None,
    ) -> List[GroupInfo]:
        """Sweep the board once and return every group whose start stone
        matches ``predicate`` (all groups when omitted)."""
        visited = set()
        groups = []
        for r, row in enumerate(board):
            for c, cell in enumerate(row):
                if (r, c) in visited or not BoardManager.is_stone(cell):
                    continue
                if predicate is not None and not predicate(cell.type):
                    continue
                info = BoardManager.get_group(board, r, c)
                visited.update(info.stones)
                groups.append(info)
        return groups

    # ------------------------------------------------------------------
    # Suppression
    # ------------------------------------------------------------------

    @staticmethod
    def _opposing_controls(board: Board, r: int, c: int, side: Player) -> List[Coord]:
        return [
            (nr, nc)
            for nr, nc in BoardManager.get_neighbors(r, c, len(board))
            if side_of(board[nr][nc].type) is side.opponent
            and SpecialEffect.CONTROL in board[nr][nc].effects
        ]

    @staticmethod
    def _control_cancelled(board: Board, r: int, c: int) -> bool:
        """A control stone next to any opposing control stone is cancelled."""
        side = side_of(board[r][c].type)
        return side is not None and bool(
            BoardManager._opposing_controls(board, r, c, side)
        )

    @staticmethod
    def is_suppressed(board: Board, r: int, c: int) -> bool:
        """Return True if the abilities of the stone at ``(r, c)`` are off.

        Two cases, resolved without mutual recursion:

        - a control stone is cancelled by any adjacent opposing control
          stone, whether or not that neighbour is itself active;
        - any other stone is suppressed by an adjacent opposing control
          stone only if that control stone is active (not cancelled).
        """
        cell = BoardManager.get_cell(board, r, c)
        side = side_of(cell.type)
        if side is None:
            return False

        opposing = BoardManager._opposing_controls(board, r, c, side)
        if SpecialEffect.CONTROL in cell.effects:
            return bool(opposing)
        return any(
            not BoardManager._control_cancelled(board, nr, nc)
            for nr, nc in opposing
        )

    @staticmethod
    def has_active_effect(
        board: Board, r: int, c: int, effect: SpecialEffect
    ) -> bool:
        """True if the stone carries ``effect`` and is not suppressed."""
        cell = BoardManager.get_cell(board, r, c)
        return effect in cell.effects and not BoardManager.is_suppressed(board, r, c)

    # ------------------------------------------------------------------
    # Hashing and diagrams
    # ------------------------------------------------------------------

    @staticmethod
    def board_hash(board: Board) -> str:
        """Comparable board fingerprint: stone type plus sorted effects.

        Stone ids and aftershocks are ignored.
        """
        return ";".join(
            ",".join(
                _STONE_CODES[cell.type]
                + "".join(sorted(_EFFECT_CODES[e] for e in cell.effects))
                for cell in row
            )
            for row in board
        )

    @staticmethod
    def boards_equal(a: Board, b: Board) -> bool:
        return BoardManager.board_hash(a) == BoardManager.board_hash(b)

    @staticmethod
    def board_from_diagram(diagram: str | Iterable[str]) -> Board:
        """Parse a text diagram into a board.

        One row per line, cells separated by whitespace. A cell is a stone
        code (``.`` empty, ``B`` black, ``W`` white, ``R`` resistance,
        ``#`` collapse) followed by effect letters (``e`` empathy,
        ``c`` control, ``a`` aggression, ``m`` manipulation)::

            . B  Wc .
            R Ba .  .
        """
        lines = diagram.splitlines() if isinstance(diagram, str) else list(diagram)
        rows = [line.split() for line in lines if line.strip()]
        size = len(rows)
        if any(len(row) != size for row in rows):
            raise InvalidStateError(
                "Diagram must be square", context={"rows": [len(r) for r in rows]}
            )

        board: Board = []
        for r, tokens in enumerate(rows):
            row = []
            for c, token in enumerate(tokens):
                try:
                    stone = _CODE_STONES[token[0]]
                    effects = [_CODE_EFFECTS[ch] for ch in token[1:]]
                except KeyError as e:
                    raise InvalidStateError(
                        "Unknown diagram token", context={"token": token}
                    ) from e
                row.append(Cell(type=stone, effects=effects, id=f"{r}-{c}"))
            board.append(row)
        return board

    @staticmethod
    def board_to_diagram(board: Board) -> str:
        """Render ``board`` in the :meth:`board_from_diagram` format."""
        rows = [
            [
                _STONE_CODES[cell.type]
                + "".join(_EFFECT_CODES[e] for e in cell.effects)
                for cell in row
            ]
            for row in board
        ]
        width = max((len(t) for row in rows for t in row), default=1)
        return "\n".join(
            " ".join(t.ljust(width) for t in row).rstrip() for row in rows
        )
