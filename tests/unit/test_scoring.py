"""
Unit tests for answer evaluation and base XP scoring.

Run: pytest tests/unit/test_scoring.py -v
"""

import base64

import pytest

from src.practice.evaluator import is_correct, question_id
from src.practice.models import Difficulty, Question, ScoringSettings
from src.practice.scoring import BreakdownItem, compute_base_score, difficulty_multiplier


class TestIsCorrect:
    """Case-insensitive, trimmed exact match."""

    def test_exact_match(self):
        assert is_correct("Paris", "Paris") is True

    def test_case_and_whitespace_ignored(self):
        assert is_correct("  paris ", "PARIS") is True

    def test_different_answer(self):
        assert is_correct("London", "Paris") is False

    @pytest.mark.parametrize("submitted", ["6.0", "06", "six"])
    def test_no_numeric_tolerance(self, submitted):
        """Numerically equivalent text is still a different answer."""
        assert is_correct(submitted, "6") is False

    def test_empty_selection(self):
        assert is_correct("", "4") is False


class TestQuestionId:
    def test_base64_of_leading_text(self):
        q = Question(question_text="What is 2 + 2?", correct_answer="4")
        assert question_id(q) == base64.b64encode(b"What is 2 + 2?").decode("ascii")

    def test_only_first_32_characters_count(self):
        prefix = "Which of these animals lives in "
        a = Question(question_text=prefix + "the sea?", correct_answer="Whale")
        b = Question(question_text=prefix + "the desert?", correct_answer="Camel")
        assert len(prefix) == 32
        assert question_id(a) == question_id(b)

    def test_unicode_text(self):
        q = Question(question_text="Count the apples: 🍎🍎🍎", correct_answer="3")
        expected = base64.b64encode("Count the apples: 🍎🍎🍎".encode("utf-8")).decode("ascii")
        assert question_id(q) == expected

    def test_empty_text_has_no_id(self):
        assert question_id("") is None


class TestDifficultyMultiplier:
    def test_multipliers(self, scoring_settings):
        assert difficulty_multiplier(Difficulty.EASY, scoring_settings) == 1.0
        assert difficulty_multiplier(Difficulty.MEDIUM, scoring_settings) == 1.5
        assert difficulty_multiplier(Difficulty.HARD, scoring_settings) == 2.0


class TestComputeBaseScore:
    def test_incorrect_scores_zero(self, scoring_settings):
        result = compute_base_score(False, Difficulty.HARD, 0, 1.0, scoring_settings)

        assert result.total == 0
        assert result.breakdown == []

    def test_correct_medium_fast(self):
        """Medium, 3 seconds, streak 2 with no streak bonus configured."""
        settings = ScoringSettings(
            base_mastery_points=10,
            medium_multiplier=1.5,
            speed_bonus_fast=5,
            streak_bonus=0,
        )
        result = compute_base_score(True, Difficulty.MEDIUM, 2, 3.0, settings)

        assert result.total == 20
        assert result.breakdown == [BreakdownItem("Base", 10), BreakdownItem("Speed", 5)]

    def test_multiplier_is_floored(self):
        settings = ScoringSettings(base_mastery_points=15, medium_multiplier=1.5, speed_bonus_fast=0, speed_bonus_standard=0)
        result = compute_base_score(True, Difficulty.MEDIUM, 1, 30.0, settings)

        # 15 + floor(7.5)
        assert result.total == 22

    def test_multiplier_applies_to_base_only(self, scoring_settings):
        """Hard, streak 3, 7 seconds: bonuses are not multiplied."""
        result = compute_base_score(True, Difficulty.HARD, 3, 7.0, scoring_settings)

        # base 10 + 10 (x2) + streak 2*3 + standard speed 1
        assert result.total == 27

    def test_standard_speed_bonus_not_in_breakdown(self, scoring_settings):
        result = compute_base_score(True, Difficulty.EASY, 3, 7.0, scoring_settings)

        labels = [item.label for item in result.breakdown]
        assert labels == ["Base", "Streak x3"]
        assert result.total == 10 + 6 + 1

    def test_first_correct_has_no_streak_bonus(self, scoring_settings):
        result = compute_base_score(True, Difficulty.EASY, 1, 20.0, scoring_settings)

        assert result.total == 10
        assert [item.label for item in result.breakdown] == ["Base"]

    @pytest.mark.parametrize(
        "duration,expected_bonus",
        [
            (0.0, 5),
            (4.99, 5),
            (5.0, 1),
            (9.99, 1),
            (10.0, 0),
            (60.0, 0),
        ],
    )
    def test_speed_bonus_boundaries(self, scoring_settings, duration, expected_bonus):
        result = compute_base_score(True, Difficulty.EASY, 1, duration, scoring_settings)
        assert result.total == 10 + expected_bonus
