"""
Base AI Player class for Mind Game
Abstract base class that all AI implementations inherit from
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple
import random

from ..game_engine import GameEngine
from ..models import AIConfig, GameState, Move, Player


class BaseAI(ABC):
    """Abstract base class for all AI implementations"""

    def __init__(
        self,
        player: Player,
        config: AIConfig,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize AI player

        Args:
            player: The side this AI plays
            config: AI configuration settings
            rng: Random source for every stochastic choice. When omitted,
                ``config.rng_seed`` seeds a private generator; without a
                seed the generator is unseeded.
        """
        self.player = player
        self.config = config
        self.move_count = 0

        if rng is not None:
            self.rng = rng
        elif self.config.rng_seed is not None:
            self.rng = random.Random(int(self.config.rng_seed))
        else:
            self.rng = random.Random()

    @abstractmethod
    def select_move(self, game_state: GameState) -> Optional[Move]:
        """
        Select the move for the current game state

        Args:
            game_state: Current game state

        Returns:
            Selected move or None if no legal placement exists
        """

    @abstractmethod
    def evaluate_position(self, game_state: GameState) -> float:
        """
        Evaluate the current position from this AI's perspective

        Returns:
            Evaluation score (positive = good for this AI, negative = bad)
        """

    def get_valid_placements(self, game_state: GameState) -> List[Tuple[int, int]]:
        """Cells where the side to move may place a stone."""
        return GameEngine.get_valid_placements(game_state)

    def get_random_element(self, items: List[Any]) -> Optional[Any]:
        """
        Get random element from list using the per-instance RNG.

        Returns:
            Random item or None if list is empty
        """
        if not items:
            return None
        return self.rng.choice(items)

    def perspective(self, white_score: float) -> float:
        """Convert a white-positive score to this AI's point of view."""
        return white_score if self.player is Player.WHITE else -white_score

    def __repr__(self) -> str:
        """String representation of AI"""
        return (
            f"{self.__class__.__name__}"
            f"(player={self.player.value}, "
            f"difficulty={self.config.difficulty.value})"
        )
