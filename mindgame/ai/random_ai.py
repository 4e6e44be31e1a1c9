"""Random AI implementation for Mind Game.

This agent places plain stones on uniformly random legal cells using the
per-instance RNG on the :class:`BaseAI`. It is a baseline for self-play and
tests rather than a real opponent.
"""

from __future__ import annotations

from ..models import GameState, Move
from .base import BaseAI


class RandomAI(BaseAI):
    """AI that selects random legal placements."""

    def select_move(self, game_state: GameState) -> Move | None:
        """Select a random legal placement for ``game_state``.

        Returns:
            A plain-stone :class:`Move` or ``None`` if no cell is playable.
        """
        cell = self.get_random_element(self.get_valid_placements(game_state))
        if cell is None:
            return None
        self.move_count += 1
        return Move(r=cell[0], c=cell[1])

    def evaluate_position(self, game_state: GameState) -> float:
        """Return a small random evaluation in ``[-0.1, 0.1]``."""
        _ = game_state  # unused in this implementation
        return self.rng.uniform(-0.1, 0.1)
