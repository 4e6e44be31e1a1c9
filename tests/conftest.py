"""
Shared pytest fixtures for mindgame tests.

Boards are written as text diagrams (see ``BoardManager.board_from_diagram``)
so each test shows the position it is about:

    .  B  Wc
    R  Ba .
    .  .  .
"""

import random
from typing import Callable, Dict, List, Optional

import pytest
from prometheus_client import REGISTRY

from mindgame.board_manager import BoardManager
from mindgame.config import DEFAULT_INVENTORY, get_settings
from mindgame.models import (
    AIBehavior,
    AIDifficulty,
    Board,
    GamePhase,
    GameState,
    Inventory,
    Player,
    SpecialEffect,
)


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns ``value``.

    ``choice`` and friends keep working (seeded), which lets tests pin the
    behavior tree's chance gate without pinning everything else.
    """

    def __init__(self, value: float = 0.5, seed: int = 0):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached; drop the cache around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def board_factory() -> Callable[[str], Board]:
    """Factory building a board from a text diagram."""

    def _create_board(diagram: str) -> Board:
        return BoardManager.board_from_diagram(diagram)

    return _create_board


@pytest.fixture
def state_factory(board_factory) -> Callable[..., GameState]:
    """Factory for GameState instances with customizable defaults."""

    def _create_state(
        diagram: Optional[str] = None,
        board: Optional[Board] = None,
        turn: Player = Player.BLACK,
        turn_count: int = 0,
        inventory: Optional[Dict[Player, Inventory]] = None,
        is_ai_game: Optional[bool] = None,
        turn_limit: Optional[int] = None,
        difficulty: Optional[AIDifficulty] = None,
        behavior_tree: Optional[AIBehavior] = None,
        phase: GamePhase = GamePhase.PLAYING,
        recent_boards: Optional[List[Board]] = None,
    ) -> GameState:
        if board is None:
            board = board_factory(diagram or "\n".join([". . . . ."] * 4 + [". . . . R"]))
        if inventory is None:
            inventory = {p: dict(DEFAULT_INVENTORY) for p in Player}
        return GameState(
            board=board,
            boardSize=len(board),
            turn=turn,
            turnCount=turn_count,
            inventory=inventory,
            isAiGame=is_ai_game,
            turnLimit=turn_limit,
            difficulty=difficulty,
            behaviorTree=behavior_tree,
            phase=phase,
            recentBoards=recent_boards,
        )

    return _create_state


@pytest.fixture
def empty_inventory() -> Dict[Player, Inventory]:
    return {p: {e: 0 for e in SpecialEffect} for p in Player}


@pytest.fixture
def metric_value() -> Callable[..., float]:
    """Read a sample from the default Prometheus registry (0.0 if unset)."""

    def _value(name: str, **labels: str) -> float:
        value = REGISTRY.get_sample_value(name, labels)
        return value if value is not None else 0.0

    return _value


@pytest.fixture
def fixed_rng() -> FixedRandom:
    """Random source that passes every trigger chance of 0.5 or more."""
    return FixedRandom(0.5)
