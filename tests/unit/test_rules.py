"""
Unit tests for the reward/penalty rules engine.

Run: pytest tests/unit/test_rules.py -v
"""

import pytest

from src.practice.models import ConditionOperator, Difficulty, EffectType, RewardRule, TriggerType
from src.practice.rules import DEFAULT_REWARD_RULES, apply_rules, rule_matches


def make_rule(
    rule_id: str,
    trigger: TriggerType,
    operator: ConditionOperator,
    value,
    effect: EffectType = EffectType.REWARD,
    points: float = 10,
) -> RewardRule:
    return RewardRule(
        id=rule_id,
        name=rule_id,
        trigger_type=trigger,
        condition_operator=operator,
        condition_value=value,
        effect_type=effect,
        points=points,
        message=f"{rule_id} fired",
    )


class TestRuleMatching:
    """Single-rule condition checks."""

    def test_score_rule_uses_proxy_of_100_when_correct(self):
        rule = make_rule("perfect", TriggerType.SCORE, ConditionOperator.EQUALS, 100)

        assert rule_matches(rule, True, 1, Difficulty.EASY) is True
        assert rule_matches(rule, False, 0, Difficulty.EASY) is False

    def test_score_less_than_matches_incorrect(self):
        rule = make_rule("low", TriggerType.SCORE, ConditionOperator.LESS_THAN, 40)

        assert rule_matches(rule, False, 0, Difficulty.EASY) is True
        assert rule_matches(rule, True, 1, Difficulty.EASY) is False

    @pytest.mark.parametrize(
        "operator,value,streak,expected",
        [
            (ConditionOperator.EQUALS, 3, 3, True),
            (ConditionOperator.EQUALS, 3, 4, False),
            (ConditionOperator.GREATER_THAN, 4, 5, True),
            (ConditionOperator.GREATER_THAN, 4, 4, False),
            (ConditionOperator.LESS_THAN, 2, 1, True),
            (ConditionOperator.LESS_THAN, 2, 2, False),
        ],
    )
    def test_streak_operators(self, operator, value, streak, expected):
        rule = make_rule("streak", TriggerType.STREAK, operator, value)
        assert rule_matches(rule, True, streak, Difficulty.EASY) is expected

    def test_numeric_string_condition_is_coerced(self):
        rule = make_rule("streak", TriggerType.STREAK, ConditionOperator.GREATER_THAN, "4")
        assert rule_matches(rule, True, 5, Difficulty.EASY) is True

    def test_non_numeric_condition_never_matches(self):
        rule = make_rule("broken", TriggerType.STREAK, ConditionOperator.LESS_THAN, "lots")
        assert rule_matches(rule, True, 0, Difficulty.EASY) is False

    def test_difficulty_ignores_operator(self):
        rule = make_rule("hard", TriggerType.DIFFICULTY, ConditionOperator.GREATER_THAN, "Hard")

        assert rule_matches(rule, True, 1, Difficulty.HARD) is True
        assert rule_matches(rule, True, 1, Difficulty.MEDIUM) is False

    def test_difficulty_requires_correct_answer(self):
        rule = make_rule("hard", TriggerType.DIFFICULTY, ConditionOperator.EQUALS, "Hard")
        assert rule_matches(rule, False, 0, Difficulty.HARD) is False

    def test_accuracy_rules_never_match(self):
        rule = make_rule("acc", TriggerType.ACCURACY, ConditionOperator.GREATER_THAN, 0)
        assert rule_matches(rule, True, 10, Difficulty.EASY) is False


class TestApplyRules:
    def test_no_rules(self, scoring_settings):
        outcome = apply_rules([], True, 1, Difficulty.EASY, scoring_settings)

        assert outcome.delta == 0
        assert outcome.applied == []

    def test_matching_rewards_stack(self, scoring_settings):
        rules = [
            make_rule("streak3", TriggerType.STREAK, ConditionOperator.GREATER_THAN, 2, points=10),
            make_rule("hard", TriggerType.DIFFICULTY, ConditionOperator.EQUALS, "Hard", points=20),
        ]
        outcome = apply_rules(rules, True, 3, Difficulty.HARD, scoring_settings)

        assert outcome.delta == 30
        assert [a.message for a in outcome.applied] == ["streak3 fired", "hard fired"]

    def test_penalty_uses_standard_penalty_points(self, scoring_settings):
        rules = [
            make_rule(
                "lazy", TriggerType.SCORE, ConditionOperator.LESS_THAN, 40,
                effect=EffectType.PENALTY, points=999,
            ),
        ]
        outcome = apply_rules(rules, False, 0, Difficulty.EASY, scoring_settings)

        assert outcome.delta == -scoring_settings.standard_penalty_points
        assert outcome.applied[0].points == scoring_settings.standard_penalty_points
        assert outcome.applied[0].type == EffectType.PENALTY

    def test_reward_and_penalty_net_out(self, scoring_settings):
        rules = [
            make_rule("any-streak", TriggerType.STREAK, ConditionOperator.LESS_THAN, 1, points=4),
            make_rule(
                "miss", TriggerType.SCORE, ConditionOperator.EQUALS, 0,
                effect=EffectType.PENALTY,
            ),
        ]
        outcome = apply_rules(rules, False, 0, Difficulty.EASY, scoring_settings)

        assert outcome.delta == 4 - scoring_settings.standard_penalty_points
        assert len(outcome.applied) == 2

    def test_applied_order_follows_rule_order(self, scoring_settings):
        rules = [
            make_rule(f"r{i}", TriggerType.SCORE, ConditionOperator.GREATER_THAN, 0, points=i)
            for i in range(5)
        ]
        outcome = apply_rules(reversed(rules), True, 1, Difficulty.EASY, scoring_settings)

        assert [a.message for a in outcome.applied] == [f"r{i} fired" for i in reversed(range(5))]

    def test_default_rules_on_fifth_correct(self, scoring_settings):
        outcome = apply_rules(DEFAULT_REWARD_RULES, True, 5, Difficulty.EASY, scoring_settings)

        assert outcome.delta == 150
        assert [a.message for a in outcome.applied] == ["Perfect Score Bonus!", "5x Streak Bonus!"]

    def test_default_rules_on_miss(self, scoring_settings):
        outcome = apply_rules(DEFAULT_REWARD_RULES, False, 0, Difficulty.EASY, scoring_settings)

        assert outcome.delta == -3
        assert [a.message for a in outcome.applied] == ["Needs Improvement"]
