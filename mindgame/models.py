"""
Pydantic Models for Mind Game State
Mirrors the persisted game record (camelCase on the wire, snake_case in Python)
"""

from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, model_serializer


class StoneType(str, Enum):
    """Cell occupant enumeration"""
    EMPTY = "empty"
    BLACK = "black"
    WHITE = "white"
    RESISTANCE = "resistance"
    COLLAPSE = "collapse"


class Player(str, Enum):
    """Side enumeration. Black attacks, white defends the resistance."""
    BLACK = "black"
    WHITE = "white"

    @property
    def opponent(self) -> "Player":
        return Player.WHITE if self is Player.BLACK else Player.BLACK

    @property
    def stone(self) -> StoneType:
        return StoneType(self.value)


class SpecialEffect(str, Enum):
    """Special stone abilities.

    - empathy: viral conversion of plain enemy stones
    - control: suppresses adjacent opposing abilities
    - aggression: beam destroying stones between two aggression stones
    - manipulation: swaps two stones next to the placed stone
    """
    EMPATHY = "empathy"
    CONTROL = "control"
    AGGRESSION = "aggression"
    MANIPULATION = "manipulation"


class AIDifficulty(str, Enum):
    """AI difficulty tiers"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"
    IMPOSSIBLE = "impossible"


class AIBehavior(str, Enum):
    """'none' = minimax only, 'default' = full behavior tree"""
    NONE = "none"
    DEFAULT = "default"


class GamePhase(str, Enum):
    """Game phase enumeration"""
    LOADOUT = "loadout"
    PLAYING = "playing"
    GAMEOVER = "gameover"


class LastActionType(str, Enum):
    """Kind of the most recent board change, used by renderers"""
    MOVE = "move"
    SWAP = "swap"
    CAPTURE = "capture"
    SPREAD = "spread"


class WireModel(BaseModel):
    """Base for persisted models.

    Optional fields listed in ``omit_if_none`` are left out of dumps when
    unset, so a stored record never gains ``null`` entries for fields the
    caller did not provide.
    """

    omit_if_none: ClassVar[Tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def serialize_wire(self, handler):
        data = handler(self)
        for name in self.omit_if_none:
            if getattr(self, name) is None:
                data.pop(name, None)
                alias = type(self).model_fields[name].alias
                if alias:
                    data.pop(alias, None)
        return data

    class Config:
        populate_by_name = True


class Position(BaseModel):
    """Board coordinate (row, column)"""
    r: int
    c: int

    class Config:
        frozen = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.r}-{self.c}"


class Aftershock(BaseModel):
    """Temporary placement restriction left after a destruction event.

    ``type`` is the side whose stone was destroyed; only that side is
    blocked from placing here until two turns have passed.
    """
    type: Player
    turn_created: int = Field(alias="turnCreated")

    class Config:
        populate_by_name = True


class Cell(WireModel):
    """One grid position"""
    omit_if_none: ClassVar[Tuple[str, ...]] = ("aftershock",)

    type: StoneType = StoneType.EMPTY
    effects: List[SpecialEffect] = Field(default_factory=list)
    id: str = ""  # Stone identity for transitions, no gameplay meaning
    aftershock: Optional[Aftershock] = None


Board = List[List[Cell]]
Inventory = Dict[SpecialEffect, int]


class LastAction(BaseModel):
    """Most recent board change"""
    type: LastActionType
    cells: List[Position] = Field(default_factory=list)


class SwapTarget(BaseModel):
    """Pair of cells exchanged by a manipulation stone"""
    r1: int
    c1: int
    r2: int
    c2: int

    class Config:
        frozen = True


class Move(BaseModel):
    """Placement candidate produced by a human or by the AI.

    ``swap`` is only set for manipulation placements that already know
    their follow-up exchange (AI moves).
    """
    r: int
    c: int
    effect: Optional[SpecialEffect] = None
    swap: Optional[SwapTarget] = None

    class Config:
        frozen = True

    @property
    def position(self) -> Position:
        return Position(r=self.r, c=self.c)


class GameState(WireModel):
    """Complete game state"""
    omit_if_none: ClassVar[Tuple[str, ...]] = (
        "pending_swap",
        "swapped_positions",
        "difficulty",
        "is_ai_game",
        "last_action",
        "turn_limit",
        "npc_effect_types",
        "behavior_tree",
        "recent_boards",
    )

    board: Board
    turn: Player = Player.BLACK
    # Full state history for undos within a turn
    history: List["GameState"] = Field(default_factory=list)
    game_over: bool = Field(False, alias="gameOver")
    winner: Optional[Player] = None
    board_size: int = Field(alias="boardSize")
    inventory: Dict[Player, Inventory] = Field(default_factory=dict)
    pending_swap: Optional[Position] = Field(None, alias="pendingSwap")
    # Cells moved by manipulation this turn, re-checked for beams at commit
    swapped_positions: Optional[List[Position]] = Field(
        None, alias="swappedPositions"
    )
    move_confirmed: bool = Field(False, alias="moveConfirmed")
    difficulty: Optional[AIDifficulty] = None
    is_ai_game: Optional[bool] = Field(None, alias="isAiGame")
    last_action: Optional[LastAction] = Field(None, alias="lastAction")
    turn_count: int = Field(0, alias="turnCount")
    # Max full black turns before white wins (if resistance remains)
    turn_limit: Optional[int] = Field(None, alias="turnLimit")
    npc_effect_types: Optional[List[SpecialEffect]] = Field(
        None, alias="npcEffectTypes"
    )
    behavior_tree: Optional[AIBehavior] = Field(None, alias="behaviorTree")
    phase: GamePhase = GamePhase.PLAYING
    loadout_confirmed: Dict[Player, bool] = Field(
        default_factory=lambda: {Player.BLACK: True, Player.WHITE: True},
        alias="loadoutConfirmed",
    )
    # Boards at the end of the last two commits, oldest first
    recent_boards: Optional[List[Board]] = Field(None, alias="recentBoards")


GameState.model_rebuild()


class AIConfig(BaseModel):
    """AI configuration"""
    difficulty: AIDifficulty = AIDifficulty.MEDIUM
    rng_seed: Optional[int] = Field(None, alias="rngSeed")
    use_behavior_tree: bool = Field(True, alias="useBehaviorTree")

    class Config:
        populate_by_name = True
