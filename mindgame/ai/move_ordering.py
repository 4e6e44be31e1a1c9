"""
Move ordering for the Mind Game alpha-beta search.

Placements next to black stones or resistance tend to be the most forcing
ones (they take liberties or shore up the target groups), so trying them
first lets alpha-beta cut more of the tree. Ordering never changes the
value a search returns, only how fast it gets there.
The search itself applies the same scorer to its flat board through
:meth:`~mindgame.ai.search_board.SearchBoard.ordered_empties`.

Usage Example:
```python
from mindgame.ai.move_ordering import order_placements

for r, c in order_placements(board):
    ...
```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..board_manager import BoardManager
from ..models import Board, StoneType

Coord = Tuple[int, int]


@dataclass(frozen=True)
class PlacementScorer:
    """Cheap static score for a candidate placement.

    Attributes
    ----------
    adjacent_black : int
        Bonus per orthogonally adjacent black stone.
    adjacent_resistance : int
        Bonus per orthogonally adjacent resistance stone.
    """

    adjacent_black: int = 10
    adjacent_resistance: int = 20

    def score(self, board: Board, r: int, c: int) -> int:
        total = 0
        for nr, nc in BoardManager.get_neighbors(r, c, len(board)):
            neighbor = board[nr][nc].type
            if neighbor == StoneType.BLACK:
                total += self.adjacent_black
            elif neighbor == StoneType.RESISTANCE:
                total += self.adjacent_resistance
        return total


DEFAULT_SCORER = PlacementScorer()


def order_placements(
    board: Board,
    cells: Optional[Iterable[Coord]] = None,
    scorer: PlacementScorer = DEFAULT_SCORER,
) -> List[Coord]:
    """Return ``cells`` (all empty cells by default) best-first.

    The sort is stable, so equally scored cells keep row-major order.
    """
    candidates = list(cells) if cells is not None else BoardManager.empty_cells(board)
    return sorted(candidates, key=lambda rc: scorer.score(board, *rc), reverse=True)
