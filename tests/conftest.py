"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.practice.models import Difficulty, Question, ScoringSettings, Skill  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def scoring_settings():
    """Scoring settings with round numbers."""
    return ScoringSettings(
        base_mastery_points=10,
        standard_penalty_points=3,
        streak_bonus=2,
        medium_multiplier=1.5,
        hard_multiplier=2.0,
        speed_bonus_fast=5,
        speed_bonus_standard=1,
    )


@pytest.fixture
def sample_bank():
    """Three-question bank for a simple addition skill."""
    return [
        Question(question_text="What is 2 + 2?", options=("3", "4", "5"), correct_answer="4", explanation="2 + 2 = 4"),
        Question(question_text="What is 3 + 3?", correct_answer="6", explanation="3 + 3 = 6"),
        Question(question_text="What is 5 + 4?", correct_answer="9", explanation="5 + 4 = 9"),
    ]


@pytest.fixture
def bank_skill(sample_bank):
    return Skill(
        id="math-add-1",
        difficulty=Difficulty.MEDIUM,
        skill_name="Single digit addition",
        subject="Math",
        grade="Grade 1",
        question_bank=sample_bank,
    )


@pytest.fixture
def generated_skill():
    """Skill without a question bank (served by the generator)."""
    return Skill(
        id="sci-plants-2",
        difficulty=Difficulty.HARD,
        skill_name="Parts of a plant",
        subject="Science",
        grade="Grade 2",
        example="Which part of the plant absorbs water?",
    )
