"""
Mind Game Error Hierarchy

Unified exception hierarchy for consistent error handling across the engine,
the AI and the request handlers. All custom exceptions inherit from
MindGameError for easy catching and filtering.

Usage:
    from mindgame.errors import RulesViolationError

    try:
        new_state = GameEngine.apply_move(state, move)
    except RulesViolationError as e:
        logger.debug(f"Illegal move: {e.message}, rule: {e.rule_ref}")
"""

from typing import Any

__all__ = [
    # AI errors
    "AIError",
    "BoardIndexError",
    "ConfigurationError",
    "GameNotFoundError",
    "InvalidStateError",
    # Base error
    "MindGameError",
    # Game rules errors
    "RulesViolationError",
    # Storage errors
    "StorageError",
]


class MindGameError(Exception):
    """Base exception for all Mind Game errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "MINDGAME_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Game Rules Errors
# =============================================================================


class RulesViolationError(MindGameError):
    """Illegal action per game rules.

    Raised when a placement, swap, undo or commit is not allowed in the
    current state. The input state is never modified when this is raised;
    the request handlers turn it into a ``None`` result.

    Attributes:
        rule_ref: Short rule identifier (e.g., "occupied", "aftershock")
    """
    code: str = "RULES_VIOLATION"

    def __init__(
        self,
        message: str,
        rule_ref: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.rule_ref = rule_ref
        if rule_ref:
            self.context["rule_ref"] = rule_ref


class InvalidStateError(MindGameError):
    """Corrupted or unexpected game state.

    Raised when a caller breaks an engine contract (for example asking for
    the group of an empty cell). These indicate a bug in the calling layer
    and are never converted into a game-rule outcome.
    """
    code: str = "INVALID_STATE"


class BoardIndexError(InvalidStateError):
    """Coordinate outside the board."""
    code: str = "BOARD_INDEX"

    def __init__(self, r: int, c: int, size: int):
        super().__init__(
            f"Position ({r}, {c}) is outside a {size}x{size} board",
            context={"r": r, "c": c, "size": size},
        )


# =============================================================================
# AI Errors
# =============================================================================


class AIError(MindGameError):
    """Base class for AI decision errors."""
    code: str = "AI_ERROR"


# =============================================================================
# Infrastructure Errors
# =============================================================================


class StorageError(MindGameError):
    """Game store read/write failure."""
    code: str = "STORAGE_ERROR"


class GameNotFoundError(StorageError):
    """No stored game for the requested id."""
    code: str = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        super().__init__("Game not found", context={"game_id": game_id})
        self.game_id = game_id


class ConfigurationError(MindGameError):
    """Invalid configuration value."""
    code: str = "CONFIGURATION_ERROR"
