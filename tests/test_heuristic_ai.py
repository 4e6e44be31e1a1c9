"""Tests for the static evaluator, HeuristicAI and placement ordering."""

import unittest

from mindgame.ai.heuristic_ai import DEFAULT_WEIGHTS, HeuristicAI, HeuristicWeights, evaluate_board
from mindgame.ai.move_ordering import PlacementScorer, order_placements
from mindgame.board_manager import BoardManager
from mindgame.game_engine import GameEngine
from mindgame.models import AIConfig, Player


def _board(text):
    return BoardManager.board_from_diagram(text)


class TestEvaluateBoard(unittest.TestCase):
    """Hand-computed scores on a 3x3 board (centre at 1.5, 1.5).

    With one stone in the middle the eight empty cells sit at a total
    Manhattan distance of 14 from the centre, costing 14 * -3 = -42.
    """

    def test_single_white_stone(self):
        # 15 (stone) + 100 (four liberties) - 42
        self.assertEqual(evaluate_board(_board(". . .\n. W .\n. . .")), 73.0)

    def test_single_black_stone(self):
        # -25 (stone) - 60 (four liberties) - 42
        self.assertEqual(evaluate_board(_board(". . .\n. B .\n. . .")), -127.0)

    def test_resistance_bonus(self):
        self.assertEqual(evaluate_board(_board(". . .\n. R .\n. . .")), 193.0)

    def test_empathy_group_bonus(self):
        self.assertEqual(evaluate_board(_board(". . .\n. We .\n. . .")), 133.0)

    def test_control_bonus_follows_owner(self):
        plain_white = evaluate_board(_board(". . .\n. W .\n. . ."))
        plain_black = evaluate_board(_board(". . .\n. B .\n. . ."))
        self.assertEqual(evaluate_board(_board(". . .\n. Wc .\n. . .")), plain_white + 20)
        self.assertEqual(evaluate_board(_board(". . .\n. Bc .\n. . .")), plain_black - 20)

    def test_white_atari_is_penalised(self):
        # W at (0,0) touching B at (0,1) keeps one liberty at (1,0)
        board = _board("W B .\n. . .\n. . .")
        white_only = _board("W . .\n. . .\n. . .")
        self.assertLess(evaluate_board(board), evaluate_board(white_only))

    def test_custom_weights(self):
        weights = HeuristicWeights(empty_center_distance=0.0)
        self.assertEqual(evaluate_board(_board(". . .\n. W .\n. . ."), weights), 115.0)

    def test_evaluation_is_deterministic(self):
        board = _board("W B .\nR Be .\n. . Wc")
        self.assertEqual(evaluate_board(board), evaluate_board(board))


class TestHeuristicAI:

    def test_perspective_flips_for_black(self, state_factory):
        state = state_factory(". . .\n. W .\n. . .")
        white = HeuristicAI(Player.WHITE, AIConfig())
        black = HeuristicAI(Player.BLACK, AIConfig())
        assert white.evaluate_position(state) == 73.0
        assert black.evaluate_position(state) == -73.0

    def test_selects_a_legal_plain_placement(self, state_factory):
        state = state_factory("R B .\n. . .\n. . .", turn=Player.WHITE)
        ai = HeuristicAI(Player.WHITE, AIConfig(rngSeed=3))
        move = ai.select_move(state)
        assert move is not None
        assert move.effect is None
        assert (move.r, move.c) in GameEngine.get_valid_placements(state)
        assert ai.move_count == 1

    def test_no_move_on_full_board(self, state_factory):
        state = state_factory("B W\nR W")
        assert HeuristicAI(Player.BLACK, AIConfig()).select_move(state) is None

    def test_default_weights_are_shared(self):
        assert HeuristicAI(Player.WHITE, AIConfig()).weights is DEFAULT_WEIGHTS


class TestOrderPlacements(unittest.TestCase):

    def test_resistance_then_black_neighbors_first(self):
        board = _board(
            """
            . B .
            . . .
            . . R
            """
        )
        self.assertEqual(
            order_placements(board),
            [(1, 2), (2, 1), (0, 0), (0, 2), (1, 1), (1, 0), (2, 0)],
        )

    def test_custom_scorer_and_cells(self):
        board = _board(". B\n. R")
        scorer = PlacementScorer(adjacent_black=50, adjacent_resistance=1)
        self.assertEqual(order_placements(board, [(1, 0), (0, 0)], scorer), [(0, 0), (1, 0)])
