"""Prometheus metrics for the Mind Game engine.

This module centralises counters and histograms so that the request handlers
and the AI entry point can record lightweight telemetry without each caller
having to manage its own metric instances. The pure rules engine never
touches these.
"""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Histogram


AI_DECISIONS: Final[Counter] = Counter(
    "mindgame_ai_decisions_total",
    (
        "Total number of AI decisions, labeled by source (behavior_tree, "
        "minimax or none) and difficulty."
    ),
    labelnames=("source", "difficulty"),
)

AI_DECISION_LATENCY: Final[Histogram] = Histogram(
    "mindgame_ai_decision_latency_seconds",
    "Wall-clock time spent choosing an AI move, labeled by difficulty.",
    labelnames=("difficulty",),
    # Interactive budget is tens to low hundreds of milliseconds.
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
    ),
)

BEHAVIOR_SELECTIONS: Final[Counter] = Counter(
    "mindgame_behavior_selections_total",
    "Behavior tree selections, labeled by behavior name.",
    labelnames=("behavior",),
)

ILLEGAL_ACTIONS: Final[Counter] = Counter(
    "mindgame_illegal_actions_total",
    "Rejected player actions, labeled by action and rule.",
    labelnames=("action", "rule"),
)

GAME_OUTCOMES: Final[Counter] = Counter(
    "mindgame_game_outcomes_total",
    "Finished games, labeled by winner.",
    labelnames=("winner",),
)


def observe_ai_decision(source: str, difficulty: str, seconds: float) -> None:
    """Record one AI decision and its latency."""
    AI_DECISIONS.labels(source=source, difficulty=difficulty).inc()
    AI_DECISION_LATENCY.labels(difficulty=difficulty).observe(seconds)
