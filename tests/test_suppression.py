"""Tests for the control (suppression) resolver."""

import pytest

from mindgame.board_manager import BoardManager
from mindgame.models import SpecialEffect


def _board(text):
    return BoardManager.board_from_diagram(text)


def test_plain_stone_next_to_active_enemy_control_is_suppressed():
    board = _board(
        """
        Be Wc .
        .  .  .
        .  .  .
        """
    )
    assert BoardManager.is_suppressed(board, 0, 0)
    assert not BoardManager.has_active_effect(board, 0, 0, SpecialEffect.EMPATHY)


def test_friendly_control_does_not_suppress():
    board = _board(
        """
        We Wc .
        .  .  .
        .  .  .
        """
    )
    assert not BoardManager.is_suppressed(board, 0, 0)
    assert BoardManager.has_active_effect(board, 0, 0, SpecialEffect.EMPATHY)


def test_opposing_controls_cancel_each_other():
    board = _board(
        """
        Bc Wc .
        .  .  .
        .  .  .
        """
    )
    assert BoardManager.is_suppressed(board, 0, 0)
    assert BoardManager.is_suppressed(board, 0, 1)


def test_cancelled_control_does_not_suppress_its_neighbors():
    # Wc is cancelled by Bc, so Ba below it keeps its aggression.
    board = _board(
        """
        Bc Wc .
        .  Ba .
        .  .  .
        """
    )
    assert not BoardManager.is_suppressed(board, 1, 1)
    assert BoardManager.has_active_effect(board, 1, 1, SpecialEffect.AGGRESSION)


def test_resistance_control_counts_as_white():
    board = _board(
        """
        Rc Be .
        .  .  .
        .  .  .
        """
    )
    assert BoardManager.is_suppressed(board, 0, 1)


def test_empty_cell_is_never_suppressed():
    board = _board(
        """
        .  Wc .
        .  .  .
        .  .  .
        """
    )
    assert not BoardManager.is_suppressed(board, 0, 0)


@pytest.mark.parametrize(
    "diagram",
    [
        "Bc Wc .\n.  .  .\n.  .  .",
        "Bc .  .\nWc .  .\n.  .  .",
        ".  Rc .\n.  Bc .\n.  .  .",
    ],
)
def test_suppression_between_controls_is_symmetric(diagram):
    board = _board(diagram)
    controls = BoardManager.find_cells(
        board, lambda cell: SpecialEffect.CONTROL in cell.effects
    )
    assert len(controls) == 2
    (r1, c1), (r2, c2) = controls
    assert BoardManager.is_suppressed(board, r1, c1) == BoardManager.is_suppressed(
        board, r2, c2
    )
