"""
Reward/penalty rules engine.

Every rule is evaluated independently against the current submission: there
is no priority and no early exit, so matching rules stack. Applied rules are
reported in the order of the rule list.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from .models import (
    ConditionOperator,
    Difficulty,
    EffectType,
    RewardRule,
    ScoringSettings,
    TriggerType,
)

# SCORE rules compare against a coarse proxy, not the computed XP
SCORE_PROXY_CORRECT = 100
SCORE_PROXY_INCORRECT = 0


DEFAULT_REWARD_RULES: list[RewardRule] = [
    RewardRule(
        id="r1",
        name="Perfect Score Bonus",
        trigger_type=TriggerType.SCORE,
        condition_operator=ConditionOperator.EQUALS,
        condition_value=100,
        effect_type=EffectType.REWARD,
        points=50,
        message="Perfect Score Bonus!",
    ),
    RewardRule(
        id="r2",
        name="Low Effort Penalty",
        trigger_type=TriggerType.SCORE,
        condition_operator=ConditionOperator.LESS_THAN,
        condition_value=40,
        effect_type=EffectType.PENALTY,
        points=10,
        message="Needs Improvement",
    ),
    RewardRule(
        id="r3",
        name="Streak Master",
        trigger_type=TriggerType.STREAK,
        condition_operator=ConditionOperator.GREATER_THAN,
        condition_value=4,
        effect_type=EffectType.REWARD,
        points=100,
        message="5x Streak Bonus!",
    ),
]


@dataclass(frozen=True)
class AppliedRule:
    """A rule that fired, for user-facing feedback."""

    message: str
    points: float
    type: EffectType


@dataclass
class RuleOutcome:
    """Net adjustment from all matching rules."""

    delta: float = 0
    applied: list[AppliedRule] = field(default_factory=list)


def _to_number(value: float | str) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _compare(actual: float, operator: ConditionOperator, expected: float | None) -> bool:
    if expected is None:
        return False
    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.GREATER_THAN:
        return actual > expected
    if operator == ConditionOperator.LESS_THAN:
        return actual < expected
    return False


def _difficulty_value(value: float | str) -> str:
    if isinstance(value, Difficulty):
        return value.value
    return str(value)


def rule_matches(
    rule: RewardRule,
    correct: bool,
    streak_after: int,
    difficulty: Difficulty,
) -> bool:
    """Check a single rule against a submission. Never raises."""
    if rule.trigger_type == TriggerType.SCORE:
        score = SCORE_PROXY_CORRECT if correct else SCORE_PROXY_INCORRECT
        return _compare(score, rule.condition_operator, _to_number(rule.condition_value))

    if rule.trigger_type == TriggerType.STREAK:
        return _compare(streak_after, rule.condition_operator, _to_number(rule.condition_value))

    if rule.trigger_type == TriggerType.DIFFICULTY:
        # Exact match, operator ignored; only on correct answers
        return correct and _difficulty_value(rule.condition_value) == difficulty.value

    return False


def apply_rules(
    rules: Iterable[RewardRule],
    correct: bool,
    streak_after: int,
    difficulty: Difficulty,
    settings: ScoringSettings,
) -> RuleOutcome:
    """
    Evaluate every rule and accumulate the score adjustment.

    Penalties always deduct settings.standard_penalty_points; the rule's own
    points value only applies to rewards.
    """
    outcome = RuleOutcome()

    for rule in rules:
        if not rule_matches(rule, correct, streak_after, difficulty):
            continue

        if rule.effect_type == EffectType.PENALTY:
            points = settings.standard_penalty_points
            outcome.delta -= points
        else:
            points = rule.points
            outcome.delta += points

        outcome.applied.append(AppliedRule(message=rule.message, points=points, type=rule.effect_type))
        logger.debug(f"Rule {rule.id} ({rule.effect_type.value}) fired: {points:+g}")

    return outcome
