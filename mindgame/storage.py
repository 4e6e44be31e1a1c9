"""Game state persistence.

The engine only needs an opaque key-value store with ``get`` and ``set``.
:class:`InMemoryGameStore` keeps the JSON record (camelCase, absent optional
fields omitted) under ``game:<id>`` with an expiry, which is enough for the
request handlers, the self-play CLI and tests. Any other backend only has to
satisfy :class:`GameStore`.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from pydantic import ValidationError

from .config import get_settings
from .errors import StorageError
from .models import GameState

logger = logging.getLogger(__name__)

KEY_PREFIX = "game:"


def game_key(game_id: str) -> str:
    return f"{KEY_PREFIX}{game_id}"


def dump_state(state: GameState) -> str:
    """Serialize a state to its stored JSON form."""
    return state.model_dump_json(by_alias=True)


def load_state(raw: str) -> GameState:
    """Parse a stored JSON record back into a :class:`GameState`."""
    try:
        return GameState.model_validate_json(raw)
    except ValidationError as e:
        raise StorageError(
            "Stored game record is invalid",
            context={"errors": e.error_count()},
        ) from e


class GameStore(Protocol):
    """Key-value collaborator holding one record per game id."""

    def get(self, game_id: str) -> Optional[GameState]:
        ...

    def set(self, game_id: str, state: GameState, ttl: Optional[float] = None) -> None:
        ...


class InMemoryGameStore:
    """Process-local store with per-entry expiry.

    Args:
        default_ttl: Seconds an entry lives when ``set`` gets no ``ttl``.
            Defaults to ``GameSettings.game_ttl_sec``.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = (
            default_ttl if default_ttl is not None else get_settings().game_ttl_sec
        )
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, game_id: str) -> Optional[GameState]:
        key = game_key(game_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if self._clock() >= expires_at:
            logger.debug("Game %s expired", game_id)
            del self._entries[key]
            return None
        return load_state(raw)

    def set(self, game_id: str, state: GameState, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise StorageError("TTL must be positive", context={"ttl": ttl})
        self._entries[game_key(game_id)] = (dump_state(state), self._clock() + ttl)

    def delete(self, game_id: str) -> bool:
        return self._entries.pop(game_key(game_id), None) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, game_id: str) -> bool:
        return game_key(game_id) in self._entries
