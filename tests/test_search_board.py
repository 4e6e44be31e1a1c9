"""The flat search board must play by exactly the engine's rules."""

import random

import pytest

from mindgame.ai.heuristic_ai import evaluate_board, evaluate_search_board
from mindgame.ai.move_ordering import PlacementScorer, order_placements
from mindgame.ai.search_board import SearchBoard, center_distance, neighbor_table
from mindgame.board_manager import BoardManager
from mindgame.game_engine import resolve_captures, spread_reinforcement, spread_viral
from mindgame.models import Player, StoneType

TOKENS = [".", ".", ".", "B", "B", "W", "W", "R", "#", "Be", "We", "Bc", "Wc", "Ba", "Wa"]


def _random_board(seed, size=5):
    rng = random.Random(seed)
    rows = [" ".join(rng.choice(TOKENS) for _ in range(size)) for _ in range(size)]
    return BoardManager.board_from_diagram(rows)


def _same(search_board, board):
    expected = SearchBoard.from_board(board)
    assert search_board.types == expected.types
    assert search_board.effects == expected.effects


SEEDS = range(20)


class TestTables:

    def test_neighbor_order_matches_board_manager(self):
        table = neighbor_table(4)
        for r in range(4):
            for c in range(4):
                expected = [nr * 4 + nc for nr, nc in BoardManager.get_neighbors(r, c, 4)]
                assert list(table[r * 4 + c]) == expected

    def test_center_distance(self):
        distances = center_distance(3)
        assert distances[0] == 3.0
        assert distances[4] == 1.0
        assert distances[8] == 1.0


@pytest.mark.parametrize("seed", SEEDS)
class TestEngineParity:

    def test_groups(self, seed):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        expected = sorted(
            (sorted(r * 5 + c for r, c in g.stones), g.liberty_count)
            for g in BoardManager.get_all_groups(board)
        )
        assert sorted((sorted(s), libs) for s, libs in sb.groups()) == expected

    def test_suppression(self, seed):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        for r in range(5):
            for c in range(5):
                assert sb.is_suppressed(r * 5 + c) == BoardManager.is_suppressed(board, r, c)

    @pytest.mark.parametrize("side", list(Player))
    def test_captures(self, seed, side):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        expected, destroyed = resolve_captures(board, side)
        assert sb.resolve_captures(side) == len(destroyed)
        _same(sb, expected)

    @pytest.mark.parametrize("side", list(Player))
    def test_viral_spread(self, seed, side):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        sb.spread_viral(side)
        _same(sb, spread_viral(board, side))

    def test_reinforcement_draws_like_the_engine(self, seed):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        sb.spread_reinforcement(random.Random(seed))
        _same(sb, spread_reinforcement(board, random.Random(seed)))

    def test_move_ordering(self, seed):
        board = _random_board(seed)
        sb = SearchBoard.from_board(board)
        ordered = sb.ordered_empties()
        assert [divmod(i, 5) for i in ordered] == order_placements(board)

    def test_custom_scorer_ordering(self, seed):
        board = _random_board(seed)
        scorer = PlacementScorer(adjacent_black=50, adjacent_resistance=1)
        ordered = SearchBoard.from_board(board).ordered_empties(scorer)
        assert [divmod(i, 5) for i in ordered] == order_placements(board, scorer=scorer)


class TestSearchBoard:

    def test_copy_is_independent(self):
        sb = SearchBoard.from_board(BoardManager.board_from_diagram(". B\nW R"))
        child = sb.copy()
        child.place(0, Player.WHITE)
        assert sb.stone_types()[0][0] == StoneType.EMPTY
        assert child.stone_types()[0][0] == StoneType.WHITE

    def test_evaluation_matches_board_evaluation(self):
        board = BoardManager.board_from_diagram(
            """
            . B  .
            W Wc R
            . .  .
            """
        )
        assert evaluate_search_board(SearchBoard.from_board(board)) == evaluate_board(board)
