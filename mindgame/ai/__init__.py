"""AI implementations for Mind Game.

The recommended entry point is the factory module:

    from mindgame.ai import get_ai_decision

    move = get_ai_decision(state, AIDifficulty.MEDIUM)

Architecture:
- base.py: BaseAI abstract base class
- heuristic_ai.py: static board evaluation and a greedy one-ply AI
- move_ordering.py: placement ordering for alpha-beta
- search_board.py: flat mutable board the search walks
- minimax_ai.py: alpha-beta search and the top-level MinimaxAI
- behavior_tree.py: rule-based tactical layer for the defender
- random_ai.py: random baseline
- factory.py: create_ai() and get_ai_decision()
"""

from .base import BaseAI
from .behavior_tree import DEFAULT_BEHAVIORS, Behavior, run_behavior_tree
from .factory import AIType, create_ai, get_ai_decision
from .heuristic_ai import DEFAULT_WEIGHTS, HeuristicAI, HeuristicWeights, evaluate_board
from .minimax_ai import MinimaxAI, get_search_depth, search
from .random_ai import RandomAI
from .search_board import SearchBoard

__all__ = [
    "AIType",
    "BaseAI",
    "Behavior",
    "DEFAULT_BEHAVIORS",
    "DEFAULT_WEIGHTS",
    "HeuristicAI",
    "HeuristicWeights",
    "MinimaxAI",
    "RandomAI",
    "SearchBoard",
    "create_ai",
    "evaluate_board",
    "get_ai_decision",
    "get_search_depth",
    "run_behavior_tree",
    "search",
]
