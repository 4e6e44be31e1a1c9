"""Compact mutable board used inside the alpha-beta search.

The pydantic :class:`~mindgame.models.Cell` grid is the right shape for the
wire and for the rules engine, but building thousands of cell models per
decision dominates search time. :class:`SearchBoard` keeps the same
position in two flat integer lists (stone codes and effect bit masks) with a
shared neighbour table, so copying a node is two list slices.

Only what the search needs is implemented here: placement, captures,
empathy spread, resistance spread and static evaluation. Ids and
aftershocks are dropped. The rules mirror :mod:`mindgame.game_engine` and
:mod:`mindgame.board_manager` exactly.
"""

from __future__ import annotations

import random
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..board_manager import ORTHOGONAL_DIRECTIONS
from ..models import Board, Player, SpecialEffect, StoneType
from .move_ordering import DEFAULT_SCORER, PlacementScorer

# Stone codes
EMPTY, BLACK, WHITE, RESISTANCE, COLLAPSE = range(5)

_CODE_OF = {
    StoneType.EMPTY: EMPTY,
    StoneType.BLACK: BLACK,
    StoneType.WHITE: WHITE,
    StoneType.RESISTANCE: RESISTANCE,
    StoneType.COLLAPSE: COLLAPSE,
}
STONE_OF = {code: stone for stone, code in _CODE_OF.items()}

# Side of each stone code: 0 none, 1 black, 2 white (resistance included)
NO_SIDE, BLACK_SIDE, WHITE_SIDE = 0, 1, 2
SIDE = (NO_SIDE, BLACK_SIDE, WHITE_SIDE, WHITE_SIDE, NO_SIDE)
_SIDE_OF_PLAYER = {Player.BLACK: BLACK_SIDE, Player.WHITE: WHITE_SIDE}
_STONE_OF_SIDE = {BLACK_SIDE: BLACK, WHITE_SIDE: WHITE}

# Effect bits
EMPATHY_BIT = 1
CONTROL_BIT = 2
AGGRESSION_BIT = 4
MANIPULATION_BIT = 8
_BIT_OF = {
    SpecialEffect.EMPATHY: EMPATHY_BIT,
    SpecialEffect.CONTROL: CONTROL_BIT,
    SpecialEffect.AGGRESSION: AGGRESSION_BIT,
    SpecialEffect.MANIPULATION: MANIPULATION_BIT,
}


def side_code(player: Player) -> int:
    return _SIDE_OF_PLAYER[player]


@lru_cache(maxsize=16)
def neighbor_table(size: int) -> Tuple[Tuple[int, ...], ...]:
    """Flat neighbour indices per cell, in up/down/left/right order."""
    table = []
    for r in range(size):
        for c in range(size):
            table.append(tuple(
                (r + dr) * size + (c + dc)
                for dr, dc in ORTHOGONAL_DIRECTIONS
                if 0 <= r + dr < size and 0 <= c + dc < size
            ))
    return tuple(table)


@lru_cache(maxsize=16)
def center_distance(size: int) -> Tuple[float, ...]:
    """Manhattan distance of every cell to the (real-valued) board centre."""
    rows, cols = np.indices((size, size))
    center = size / 2
    grid = np.abs(rows - center) + np.abs(cols - center)
    return tuple(float(d) for d in grid.ravel())


class SearchBoard:
    """Flat, mutable copy of a board for search.

    Cells are addressed by ``i = r * size + c``. Mutating methods change
    the board in place; take a :meth:`copy` first when the parent position
    is still needed.
    """

    __slots__ = ("size", "types", "effects", "neighbors")

    def __init__(self, size: int, types: List[int], effects: List[int]):
        self.size = size
        self.types = types
        self.effects = effects
        self.neighbors = neighbor_table(size)

    @classmethod
    def from_board(cls, board: Board) -> "SearchBoard":
        types = []
        effects = []
        for row in board:
            for cell in row:
                types.append(_CODE_OF[cell.type])
                mask = 0
                for effect in cell.effects:
                    mask |= _BIT_OF[effect]
                effects.append(mask)
        return cls(len(board), types, effects)

    def copy(self) -> "SearchBoard":
        return SearchBoard(self.size, self.types[:], self.effects[:])

    def stone_types(self) -> List[List[StoneType]]:
        """Grid of :class:`StoneType`, for comparisons in tests and logs."""
        n = self.size
        return [
            [STONE_OF[t] for t in self.types[r * n:(r + 1) * n]]
            for r in range(n)
        ]

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def _flood(self, start: int, seen: bytearray) -> Tuple[List[int], int]:
        """Stones of the group at ``start`` and its liberty count."""
        types = self.types
        neighbors = self.neighbors
        side = SIDE[types[start]]
        seen[start] = 1
        stack = [start]
        stones = []
        liberties = set()
        while stack:
            i = stack.pop()
            stones.append(i)
            for j in neighbors[i]:
                t = types[j]
                if t == EMPTY:
                    liberties.add(j)
                elif not seen[j] and SIDE[t] == side:
                    seen[j] = 1
                    stack.append(j)
        return stones, len(liberties)

    def groups(self, side: Optional[int] = None) -> Iterator[Tuple[List[int], int]]:
        """Yield ``(stones, liberty_count)`` for every group, row-major."""
        types = self.types
        seen = bytearray(len(types))
        for i, t in enumerate(types):
            if seen[i]:
                continue
            s = SIDE[t]
            if s == NO_SIDE or (side is not None and s != side):
                continue
            yield self._flood(i, seen)

    # ------------------------------------------------------------------
    # Suppression
    # ------------------------------------------------------------------

    def _has_opposing_control(self, i: int, side: int) -> bool:
        types, effects = self.types, self.effects
        enemy = 3 - side
        return any(
            SIDE[types[j]] == enemy and effects[j] & CONTROL_BIT
            for j in self.neighbors[i]
        )

    def is_suppressed(self, i: int) -> bool:
        """Same two cases as :meth:`BoardManager.is_suppressed`."""
        types, effects = self.types, self.effects
        side = SIDE[types[i]]
        if side == NO_SIDE:
            return False
        if effects[i] & CONTROL_BIT:
            return self._has_opposing_control(i, side)
        enemy = 3 - side
        for j in self.neighbors[i]:
            if SIDE[types[j]] == enemy and effects[j] & CONTROL_BIT:
                if not self._has_opposing_control(j, enemy):
                    return True
        return False

    # ------------------------------------------------------------------
    # Turn pipeline pieces
    # ------------------------------------------------------------------

    def place(self, i: int, player: Player) -> None:
        self.types[i] = _STONE_OF_SIDE[side_code(player)]

    def resolve_captures(self, acting_side: Player) -> int:
        """Remove zero-liberty groups, opponent first; returns stones removed."""
        acting = side_code(acting_side)
        removed = 0
        for side in (3 - acting, acting):
            dead = [
                i
                for stones, liberties in self.groups(side)
                if not liberties
                for i in stones
            ]
            for i in dead:
                self.types[i] = EMPTY
                self.effects[i] = 0
            removed += len(dead)
        return removed

    def spread_viral(self, active_side: Player) -> None:
        types, effects = self.types, self.effects
        active = side_code(active_side)
        enemy = 3 - active
        targets = set()
        for i, t in enumerate(types):
            if SIDE[t] != active or not effects[i] & EMPATHY_BIT:
                continue
            if self.is_suppressed(i):
                continue
            for j in self.neighbors[i]:
                tj = types[j]
                if SIDE[tj] == enemy and tj != RESISTANCE and not effects[j]:
                    targets.add(j)
        stone = _STONE_OF_SIDE[active]
        for j in targets:
            types[j] = stone
            effects[j] = EMPATHY_BIT

    def spread_reinforcement(self, rng: random.Random) -> None:
        types = self.types
        eligible = [
            i
            for i, t in enumerate(types)
            if t == WHITE
            and not self.effects[i]
            and not self.is_suppressed(i)
            and any(types[j] == RESISTANCE for j in self.neighbors[i])
        ]
        if eligible:
            types[rng.choice(eligible)] = RESISTANCE

    # ------------------------------------------------------------------
    # Move ordering
    # ------------------------------------------------------------------

    def ordered_empties(self, scorer: PlacementScorer = DEFAULT_SCORER) -> List[int]:
        """Empty cells best-first by neighbour bonus, stable in row-major order."""
        types = self.types
        neighbors = self.neighbors
        scored = []
        for i, t in enumerate(types):
            if t != EMPTY:
                continue
            score = 0
            for j in neighbors[i]:
                tj = types[j]
                if tj == BLACK:
                    score += scorer.adjacent_black
                elif tj == RESISTANCE:
                    score += scorer.adjacent_resistance
            scored.append((score, i))
        scored.sort(key=lambda si: si[0], reverse=True)
        return [i for _, i in scored]

    def empty_distance_sum(self) -> float:
        return sum(
            d for d, t in zip(center_distance(self.size), self.types) if t == EMPTY
        )

    def control_balance(self) -> int:
        """White control stones minus black control stones."""
        balance = 0
        for t, e in zip(self.types, self.effects):
            if e & CONTROL_BIT:
                side = SIDE[t]
                if side == WHITE_SIDE:
                    balance += 1
                elif side == BLACK_SIDE:
                    balance -= 1
        return balance
