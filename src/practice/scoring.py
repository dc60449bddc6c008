"""
XP scoring for a single submission.

Score = base points (scaled by the difficulty multiplier)
      + streak bonus (streak_bonus * streak, from the 2nd consecutive correct)
      + speed bonus (fast < 5s, standard < 10s)

Only correct answers earn base score; rule adjustments are applied separately
(see rules.py).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from .models import Difficulty, ScoringSettings

FAST_ANSWER_SECONDS = 5.0
STANDARD_ANSWER_SECONDS = 10.0


@dataclass(frozen=True)
class BreakdownItem:
    """One display line of the score breakdown."""

    label: str
    points: float


@dataclass
class ScoreResult:
    """Base score and its user-facing breakdown."""

    total: float = 0
    breakdown: list[BreakdownItem] = field(default_factory=list)


def difficulty_multiplier(difficulty: Difficulty, settings: ScoringSettings) -> float:
    if difficulty == Difficulty.MEDIUM:
        return settings.medium_multiplier
    if difficulty == Difficulty.HARD:
        return settings.hard_multiplier
    return 1.0


def compute_base_score(
    correct: bool,
    difficulty: Difficulty,
    streak_after: int,
    duration_seconds: float,
    settings: ScoringSettings,
) -> ScoreResult:
    """
    Compute the base XP for a submission.

    Args:
        correct: Whether the answer was correct
        difficulty: Difficulty of the practiced skill
        streak_after: Streak including this submission
        duration_seconds: Time between question shown and submission
        settings: Scoring configuration

    Returns:
        ScoreResult. Incorrect answers score 0 with an empty breakdown.
    """
    result = ScoreResult()
    if not correct:
        return result

    points = settings.base_mastery_points
    result.breakdown.append(BreakdownItem("Base", points))

    # Multiplier scales the base only, not the additive bonuses below
    multiplier = difficulty_multiplier(difficulty, settings)
    if multiplier > 1:
        points += math.floor(points * (multiplier - 1))

    if streak_after > 1 and settings.streak_bonus > 0:
        streak_points = settings.streak_bonus * streak_after
        result.breakdown.append(BreakdownItem(f"Streak x{streak_after}", streak_points))
        points += streak_points

    if duration_seconds < FAST_ANSWER_SECONDS:
        result.breakdown.append(BreakdownItem("Speed", settings.speed_bonus_fast))
        points += settings.speed_bonus_fast
    elif duration_seconds < STANDARD_ANSWER_SECONDS:
        # Standard speed bonus is not surfaced in the breakdown
        points += settings.speed_bonus_standard

    result.total = points
    return result
