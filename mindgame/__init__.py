"""Mind Game rules engine and computer opponent."""

from .board_manager import BoardManager
from .errors import (
    GameNotFoundError,
    InvalidStateError,
    MindGameError,
    RulesViolationError,
)
from .game_engine import GameEngine
from .models import (
    AIDifficulty,
    Cell,
    GameState,
    Move,
    Player,
    SpecialEffect,
    StoneType,
)

__version__ = "0.1.0"

__all__ = [
    "AIDifficulty",
    "BoardManager",
    "Cell",
    "GameEngine",
    "GameNotFoundError",
    "GameState",
    "InvalidStateError",
    "MindGameError",
    "Move",
    "Player",
    "RulesViolationError",
    "SpecialEffect",
    "StoneType",
    "__version__",
]
