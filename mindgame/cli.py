#!/usr/bin/env python3
"""
Mind Game command line interface.

Usage:
    # AI vs AI self-play, random black against the default white AI
    python -m mindgame.cli selfplay --size 5 --games 3 --black random

    # Minimax on both sides, reproducible
    python -m mindgame.cli selfplay --difficulty hard --black minimax --seed 42
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from collections import Counter
from typing import List, Optional

from .actions import host_game, play_ai_turn, poll_game
from .ai.factory import AIType, create_ai
from .board_manager import BoardManager
from .config import MAX_BOARD_SIZE, MIN_BOARD_SIZE, get_settings
from .errors import MindGameError
from .models import AIConfig, AIDifficulty, Player
from .storage import InMemoryGameStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
    )


def play_selfplay_game(
    store: InMemoryGameStore,
    args: argparse.Namespace,
    rng: random.Random,
) -> Optional[Player]:
    """Play one AI vs AI game and return the winner (None if unfinished)."""
    difficulty = AIDifficulty(args.difficulty)
    game_id, state = host_game(
        store,
        size=args.size,
        is_ai_game=True,
        difficulty=difficulty,
        turn_limit=args.turn_limit,
        rng=rng,
    )
    black = create_ai(
        AIType(args.black), Player.BLACK, AIConfig(difficulty=difficulty), rng=rng
    )

    while not state.game_over and state.turn_count < args.max_turns:
        ai = black if state.turn is Player.BLACK else None
        next_state = play_ai_turn(store, game_id, rng=rng, ai=ai)
        if next_state is None:
            logger.warning(
                "Game %s stalled: %s has no move at turn %d",
                game_id, state.turn.value, state.turn_count,
            )
            break
        state = next_state

    state = poll_game(store, game_id)
    print(f"Game {game_id} after {state.turn_count} turns:")
    print(BoardManager.board_to_diagram(state.board))
    print(f"winner: {state.winner.value if state.winner else 'none'}\n")
    return state.winner


def cmd_selfplay(args: argparse.Namespace) -> int:
    """Run AI vs AI games and print a summary."""
    rng = random.Random(args.seed)
    store = InMemoryGameStore()
    results: Counter = Counter()

    try:
        for _ in range(args.games):
            winner = play_selfplay_game(store, args, rng)
            results[winner.value if winner else "none"] += 1
    except MindGameError as e:
        logger.error("Self-play failed: %s", e)
        return 1

    summary = ", ".join(f"{k}={v}" for k, v in sorted(results.items()))
    print(f"Results over {args.games} games: {summary}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mindgame",
        description="Mind Game engine tools",
    )
    parser.add_argument(
        "--log-level", default=None, help="Logging level (default: MINDGAME_LOG_LEVEL)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    selfplay = subparsers.add_parser("selfplay", help="Play AI vs AI games")
    selfplay.add_argument(
        "--size",
        type=int,
        default=None,
        choices=range(MIN_BOARD_SIZE, MAX_BOARD_SIZE + 1),
        metavar=f"{{{MIN_BOARD_SIZE}..{MAX_BOARD_SIZE}}}",
        help="Board size (default: MINDGAME_DEFAULT_BOARD_SIZE)",
    )
    selfplay.add_argument("--games", type=int, default=1, help="Number of games")
    selfplay.add_argument(
        "--difficulty",
        default=AIDifficulty.MEDIUM.value,
        choices=[d.value for d in AIDifficulty],
    )
    selfplay.add_argument(
        "--black",
        default=AIType.RANDOM.value,
        choices=[AIType.MINIMAX.value, AIType.RANDOM.value],
        help="AI playing black; white always uses the default decision path",
    )
    selfplay.add_argument("--turn-limit", type=int, default=None)
    selfplay.add_argument("--max-turns", type=int, default=200)
    selfplay.add_argument("--seed", type=int, default=None)
    selfplay.set_defaults(func=cmd_selfplay)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
