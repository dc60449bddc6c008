"""
Domain models for the practice engine.

Stored documents come from the Koda web platform, which writes camelCase
JSON. Every model accepts both the camelCase alias and the snake_case field
name, and serializes with aliases when persisted.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class KodaModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )


class Difficulty(str, Enum):
    """Skill difficulty tier."""

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class TriggerType(str, Enum):
    """What a reward rule looks at."""

    SCORE = "SCORE"
    STREAK = "STREAK"
    DIFFICULTY = "DIFFICULTY"
    ACCURACY = "ACCURACY"  # stored by the admin UI, never matched per submission


class ConditionOperator(str, Enum):
    EQUALS = "EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"


class EffectType(str, Enum):
    REWARD = "REWARD"
    PENALTY = "PENALTY"


class RequirementType(str, Enum):
    """How mastery of a skill is measured."""

    SCORE = "SCORE"
    QUESTIONS = "QUESTIONS"


# =============================================================================
# Curriculum
# =============================================================================


class Question(KodaModel):
    """A single practice question. Immutable once issued to a session."""

    model_config = ConfigDict(frozen=True)

    question_text: str
    options: tuple[str, ...] | None = None
    correct_answer: str
    explanation: str = ""


class MasteryRequirements(KodaModel):
    """Per-skill (or platform default) mastery requirement."""

    type: RequirementType = RequirementType.QUESTIONS
    value: float = 10
    min_accuracy: float | None = None
    is_percentage: bool = False


DEFAULT_MASTERY_REQUIREMENTS = MasteryRequirements(
    type=RequirementType.QUESTIONS,
    value=10,
    min_accuracy=60,
)


class Skill(KodaModel):
    """A curriculum unit. Read-only to the engine."""

    id: str
    difficulty: Difficulty = Difficulty.EASY
    skill_name: str = ""
    subject: str = ""
    grade: str = ""
    example: str = ""
    question_type: str = ""
    question_bank: list[Question] | None = None
    mastery_requirements: MasteryRequirements | None = None
    ai_prompt_instruction: str | None = None

    @property
    def has_bank(self) -> bool:
        return bool(self.question_bank)


# =============================================================================
# Configuration (owned by the settings store)
# =============================================================================


class ScoringSettings(KodaModel):
    """
    Global scoring configuration.

    Invariant: multipliers >= 1.0 and every point value >= 0.
    """

    base_mastery_points: float = Field(default=100, ge=0)
    standard_penalty_points: float = Field(default=10, ge=0)
    streak_bonus: float = Field(default=5, ge=0)
    medium_multiplier: float = Field(default=1.5, ge=1.0)
    hard_multiplier: float = Field(default=2.0, ge=1.0)
    speed_bonus_fast: float = Field(default=25, ge=0)
    speed_bonus_standard: float = Field(default=10, ge=0)
    # Accuracy settings are stored with the global settings but not used per round
    min_accuracy_threshold: float = Field(default=60, ge=0)
    accuracy_max_points: float = Field(default=100, ge=0)


class RewardRule(KodaModel):
    """A trigger/condition/effect rule evaluated on every submission."""

    id: str
    name: str = ""
    trigger_type: TriggerType
    condition_operator: ConditionOperator = ConditionOperator.EQUALS
    condition_value: float | str
    effect_type: EffectType
    points: float = 0
    message: str = ""


class SkillRank(KodaModel):
    """A step of the rank ladder. The last rank is mastery."""

    name: str
    threshold: float
    icon: str = ""
    description: str = ""


# =============================================================================
# Results and status
# =============================================================================


class StudentResult(KodaModel):
    """Persisted record of one submission."""

    id: str
    student_id: str
    skill_id: str
    score: float
    timestamp: int  # epoch milliseconds
    attempts: int = 1
    question_id: str | None = None


class SkillMasteryStatus(KodaModel):
    """Snapshot of a student's progress on a skill, fetched per round."""

    current_points: float = 0
    completed_question_ids: list[str] = Field(default_factory=list)
    is_mastered: bool = False
    progress: float = 0
    progress_label: str = ""
    rank: SkillRank | None = None
    rank_index: int = 0
    next_rank: SkillRank | None = None  # on the same XP basis as rank

    @field_validator("completed_question_ids", mode="before")
    @classmethod
    def _dedupe_ids(cls, value):
        if value is None:
            return []
        return list(dict.fromkeys(value))
