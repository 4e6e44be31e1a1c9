"""Tests for the defender behavior tree: generators, filters and runner."""

import random
import unittest

import pytest

from mindgame.ai import behavior_tree as bt
from mindgame.ai.behavior_tree import (
    DEFAULT_BEHAVIORS,
    Behavior,
    creates_aggression_vulnerability,
    is_adjacent_to_active_empathy,
    is_legal_candidate,
    is_negation_move,
    run_behavior_tree,
    select_behavior,
    weakens_resistance,
)
from mindgame.board_manager import BoardManager
from mindgame.config import DEFAULT_INVENTORY
from mindgame.models import (
    Aftershock,
    GameState,
    Move,
    Player,
    SpecialEffect,
    SwapTarget,
)


def _state(diagram, inventory=None, **kwargs):
    board = BoardManager.board_from_diagram(diagram)
    if inventory is None:
        inventory = {p: dict(DEFAULT_INVENTORY) for p in Player}
    return GameState(
        board=board,
        board_size=len(board),
        turn=Player.WHITE,
        inventory=inventory,
        **kwargs,
    )


def _no_specials():
    return {p: {e: 0 for e in SpecialEffect} for p in Player}


def _fixed(move):
    return lambda state, rng: move


# ═══════════════════════════════════════════════════════════════════════════
# Generators
# ═══════════════════════════════════════════════════════════════════════════


class TestSurvivalBehaviors(unittest.TestCase):

    def setUp(self):
        self.rng = random.Random(0)

    def test_prevent_resistance_loss_fills_last_liberty(self):
        state = _state(
            """
            R B . . .
            . . . . .
            . . . . .
            . . . . .
            . . . . .
            """
        )
        self.assertEqual(bt.prevent_resistance_loss(state, self.rng), Move(r=1, c=0))

    def test_prevent_resistance_loss_ignores_safe_groups(self):
        state = _state("R . .\n. . .\n. . B")
        self.assertIsNone(bt.prevent_resistance_loss(state, self.rng))

    def test_avoid_encirclement_extends_weakest_group(self):
        state = _state(
            """
            W B . . .
            . . . . .
            . . W . .
            . . . . .
            . . . . R
            """
        )
        self.assertEqual(bt.avoid_encirclement(state, self.rng), Move(r=1, c=0))

    def test_capture_prefers_largest_group_in_atari(self):
        state = _state(
            """
            W B B . .
            . W W . .
            W . . . .
            B W . . .
            . . . . R
            """
        )
        self.assertEqual(bt.capture_player_stones(state, self.rng), Move(r=0, c=3))

    def test_capture_needs_a_group_in_atari(self):
        state = _state(". B .\n. . .\n. . R")
        self.assertIsNone(bt.capture_player_stones(state, self.rng))


class TestCounterBehaviors(unittest.TestCase):

    def setUp(self):
        self.rng = random.Random(0)

    def test_prevent_control_of_resistance_with_control(self):
        state = _state(
            """
            . . . . .
            . . . . .
            . . R Bc .
            . . . . .
            . . . . .
            """
        )
        move = bt.prevent_control_of_resistance(state, self.rng)
        self.assertIn((move.r, move.c), [(1, 3), (3, 3), (2, 4)])
        self.assertEqual(move.effect, SpecialEffect.CONTROL)

    def test_prevent_control_of_resistance_without_control(self):
        state = _state(
            """
            . . . . .
            . . . . .
            . . R Bc .
            . . . . .
            . . . . .
            """,
            inventory=_no_specials(),
        )
        self.assertIsNone(bt.prevent_control_of_resistance(state, self.rng).effect)

    def test_respond_to_empathy_with_control(self):
        state = _state(". . .\n. Be .\n. . R")
        move = bt.respond_to_empathy(state, self.rng)
        self.assertEqual(move.effect, SpecialEffect.CONTROL)
        self.assertEqual(abs(move.r - 1) + abs(move.c - 1), 1)

    def test_respond_to_empathy_captures_in_atari(self):
        state = _state("W Be W\n. . .\n. . R", inventory=_no_specials())
        self.assertEqual(bt.respond_to_empathy(state, self.rng), Move(r=1, c=1))

    def test_respond_to_aggression_takes_last_liberty(self):
        state = _state("W Ba W\n. . .\n. . R")
        self.assertEqual(bt.respond_to_aggression(state, self.rng), Move(r=1, c=1))

    def test_respond_to_aggression_presses_two_liberty_group(self):
        state = _state("Ba . .\n. . .\n. . R")
        move = bt.respond_to_aggression(state, self.rng)
        self.assertIn((move.r, move.c), [(0, 1), (1, 0)])

    def test_respond_to_control_ignores_cancelled_control(self):
        state = _state("Bc Wc .\n. . .\n. . R")
        self.assertIsNone(bt.respond_to_control(state, self.rng))

    def test_respond_to_control_counters_active_control(self):
        state = _state("Bc . .\n. . .\n. . R")
        move = bt.respond_to_control(state, self.rng)
        self.assertEqual(move.effect, SpecialEffect.CONTROL)
        self.assertIn((move.r, move.c), [(0, 1), (1, 0)])


class TestResistanceBehaviors:

    def test_expand_resistance_prefers_cramped_cells(self):
        state = _state(
            """
            R . .
            . . .
            . . .
            """
        )
        assert bt.expand_resistance(state, random.Random(0)) == Move(r=0, c=1)

    def test_enable_resistance_growth(self):
        state = _state("R . .\n. . .\n. . .")
        move = bt.enable_resistance_growth(state, random.Random(0))
        assert (move.r, move.c) in [(0, 1), (1, 0)]

    def test_enable_resistance_growth_skips_supported_resistance(self):
        state = _state("R W .\n. . .\n. . .")
        assert bt.enable_resistance_growth(state, random.Random(0)) is None


class TestSpecialStoneBehaviors:

    def test_place_npc_control_weights_empathy(self):
        state = _state(
            """
            B . .
            . . .
            . . Be
            """
        )
        assert bt.place_npc_control(state, random.Random(0)) == Move(
            r=1, c=2, effect=SpecialEffect.CONTROL
        )

    def test_place_npc_control_needs_inventory(self):
        state = _state("B . .\n. . .\n. . R", inventory=_no_specials())
        assert bt.place_npc_control(state, random.Random(0)) is None

    def test_use_npc_manipulation_swaps_aggression_into_line(self):
        state = _state(
            """
            Wa B B .  .
            .  . . Wa .
            .  . . .  .
            .  . . .  .
            .  . . .  R
            """
        )
        assert bt.use_npc_manipulation(state, random.Random(0)) == Move(
            r=0,
            c=3,
            effect=SpecialEffect.MANIPULATION,
            swap=SwapTarget(r1=0, c1=3, r2=1, c2=3),
        )

    def test_use_npc_manipulation_without_gain(self):
        state = _state(". . .\n. W .\n. . R")
        assert bt.use_npc_manipulation(state, random.Random(0)) is None

    def test_place_npc_aggression_pairs_for_profit(self):
        state = _state(
            """
            Wa B B . .
            .  . . . .
            .  . . . .
            .  . . . .
            .  . . . R
            """
        )
        assert bt.place_npc_aggression(state, random.Random(0)) == Move(
            r=0, c=3, effect=SpecialEffect.AGGRESSION
        )

    @pytest.mark.parametrize(
        "row,expected",
        [
            ("Wa B  . . .", None),
            ("Wa Be . . .", Move(r=0, c=2, effect=SpecialEffect.AGGRESSION)),
            ("Wa B  R . .", None),
            ("Wa B  W . .", None),
        ],
    )
    def test_place_npc_aggression_value_rules(self, row, expected):
        state = _state("\n".join([row] + [". . . . ."] * 3 + [". . . . R"]))
        assert bt.place_npc_aggression(state, random.Random(0)) == expected

    def test_place_npc_empathy_needs_two_plain_blacks(self):
        state = _state("B . B\n. . .\n. . R")
        assert bt.place_npc_empathy(state, random.Random(0)) == Move(
            r=0, c=1, effect=SpecialEffect.EMPATHY
        )
        state = _state("B . Ba\n. . .\n. . R")
        assert bt.place_npc_empathy(state, random.Random(0)) is None


class TestFallbackBehaviors(unittest.TestCase):

    def test_break_player_structure_takes_shared_liberty(self):
        state = _state(
            """
            . . . . .
            . B B . .
            . . B . .
            . . . . .
            . . . . R
            """
        )
        self.assertEqual(bt.break_player_structure(state, random.Random(0)), Move(r=2, c=1))

    def test_positional_improvement_likes_resistance(self):
        state = _state("R . .\n. . .\n. . .")
        self.assertEqual(bt.positional_improvement(state, random.Random(0)), Move(r=0, c=1))

    def test_panic_fallback_skips_blocked_cells(self):
        state = _state(". . .\n. . .\n. . R")
        state.board[0][0].aftershock = Aftershock(type=Player.WHITE, turn_created=0)
        self.assertEqual(bt.panic_fallback(state, random.Random(0)), Move(r=0, c=1))


# ═══════════════════════════════════════════════════════════════════════════
# Filters
# ═══════════════════════════════════════════════════════════════════════════


class TestFilters(unittest.TestCase):

    def test_legal_candidate(self):
        state = _state("W . .\n. . .\n. . R", inventory=_no_specials())
        self.assertTrue(is_legal_candidate(state, Move(r=0, c=1)))
        self.assertFalse(is_legal_candidate(state, Move(r=0, c=0)))
        self.assertFalse(is_legal_candidate(state, Move(r=3, c=0)))
        self.assertFalse(
            is_legal_candidate(state, Move(r=0, c=1, effect=SpecialEffect.CONTROL))
        )

    def test_aggression_vulnerability(self):
        board = BoardManager.board_from_diagram(
            """
            .  . . . .
            .  . . . .
            Ba B . B Ba
            .  . . . .
            .  . . . R
            """
        )
        move = Move(r=2, c=2)
        self.assertTrue(creates_aggression_vulnerability(move, board))
        self.assertTrue(weakens_resistance(move, board))
        self.assertFalse(creates_aggression_vulnerability(Move(r=2, c=1), board))

    def test_vulnerability_needs_a_contiguous_run(self):
        board = BoardManager.board_from_diagram(
            """
            .  . . . .
            .  . . . .
            Ba . . B Ba
            .  . . . .
            .  . . . R
            """
        )
        self.assertFalse(creates_aggression_vulnerability(Move(r=2, c=2), board))

    def test_negation_move(self):
        state = _state(". . .\n. . .\n. . R")
        after = BoardManager.clone_board(state.board)
        after[1][1].type = Player.WHITE.stone
        state.recent_boards = [after]
        self.assertTrue(is_negation_move(Move(r=1, c=1), state))
        self.assertFalse(is_negation_move(Move(r=0, c=0), state))

    def test_empathy_adjacency_respects_suppression(self):
        board = BoardManager.board_from_diagram("Be . .\n. . .\n. . R")
        self.assertTrue(is_adjacent_to_active_empathy(Move(r=0, c=1), board, Player.BLACK))
        board = BoardManager.board_from_diagram("Be Wc .\n. . .\n. . R")
        self.assertFalse(is_adjacent_to_active_empathy(Move(r=1, c=0), board, Player.BLACK))


# ═══════════════════════════════════════════════════════════════════════════
# Runner
# ═══════════════════════════════════════════════════════════════════════════


class TestSelectBehavior:

    def test_default_list_is_complete(self):
        assert len(DEFAULT_BEHAVIORS) == 16
        assert len({b.name for b in DEFAULT_BEHAVIORS}) == 16
        assert DEFAULT_BEHAVIORS[-1].trigger_chance == 1.0

    def test_highest_priority_wins(self, fixed_rng):
        behaviors = [
            Behavior(10, 1.0, "low", _fixed(Move(r=0, c=0))),
            Behavior(90, 1.0, "high", _fixed(Move(r=0, c=1))),
        ]
        state = _state("W . .\n. . .\n. . R")
        behavior, move = select_behavior(state, fixed_rng, behaviors)
        assert behavior.name == "high"
        assert move == Move(r=0, c=1)

    def test_chance_gate(self, fixed_rng):
        behaviors = [
            Behavior(90, 0.4, "unlucky", _fixed(Move(r=0, c=1))),
            Behavior(50, 0.6, "lucky", _fixed(Move(r=1, c=0))),
        ]
        state = _state("W . .\n. . .\n. . R")
        behavior, _ = select_behavior(state, fixed_rng, behaviors)
        assert behavior.name == "lucky"

    def test_illegal_candidates_fall_through(self, fixed_rng):
        behaviors = [
            Behavior(90, 1.0, "occupied", _fixed(Move(r=0, c=0))),
            Behavior(80, 1.0, "nothing", _fixed(None)),
        ]
        state = _state("W . .\n. . .\n. . R")
        assert select_behavior(state, fixed_rng, behaviors) is None
        assert run_behavior_tree(state, fixed_rng, behaviors) is None

    def test_isolated_cell_between_beams_is_rejected(self, fixed_rng):
        diagram = """
            .  . . . .
            .  . {} . .
            Ba B . B Ba
            .  . . . .
            .  . . . R
            """
        behaviors = [Behavior(90, 1.0, "between", _fixed(Move(r=2, c=2)))]
        assert select_behavior(_state(diagram.format(".")), fixed_rng, behaviors) is None
        # A white neighbour makes the cell acceptable
        assert select_behavior(_state(diagram.format("W")), fixed_rng, behaviors) is not None

    def test_empathy_risk_depends_on_priority(self, fixed_rng):
        state = _state("Be . .\n. . .\n. . R")
        move = Move(r=0, c=1)
        low = [Behavior(50, 1.0, "low", _fixed(move))]
        high = [Behavior(100, 1.0, "high", _fixed(move))]
        assert select_behavior(state, fixed_rng, low) is None
        assert select_behavior(state, fixed_rng, high)[1] == move

    def test_default_tree_saves_resistance(self, fixed_rng):
        state = _state(
            """
            R B . . .
            . . . . .
            . . . . .
            . . . . .
            . . . . .
            """
        )
        behavior, move = select_behavior(state, fixed_rng)
        assert behavior.name == "Prevent Resistance Loss"
        assert move == Move(r=1, c=0)

    @pytest.mark.parametrize("seed", range(5))
    def test_default_tree_always_finds_a_move_on_open_board(self, seed):
        state = _state(". . . .\n. . . .\n. . . .\n. . . R")
        move = run_behavior_tree(state, random.Random(seed))
        assert move is not None
        assert is_legal_candidate(state, move)
