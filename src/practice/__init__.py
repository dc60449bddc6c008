"""
Practice engine for Koda skill practice.

Each practice round:
- question_source: picks a bank question or generates one
- evaluator: checks the submitted answer
- scoring: base XP from difficulty, streak and speed
- rules: configurable reward/penalty adjustments
- mastery: edge-triggered mastery detection and rank ladder
- session: state machine with auto-advance timing

Persistence and AI generation are injected (see stores and
src.integrations.gemini_client).
"""

from .evaluator import is_correct, question_id
from .mastery import (
    DEFAULT_SKILL_RANKS,
    MasteryCheck,
    check_mastery,
    compute_skill_mastery_status,
    get_mastery_threshold,
    get_next_rank,
    get_skill_rank,
)
from .models import (
    ConditionOperator,
    Difficulty,
    EffectType,
    MasteryRequirements,
    Question,
    RequirementType,
    RewardRule,
    ScoringSettings,
    Skill,
    SkillMasteryStatus,
    SkillRank,
    StudentResult,
    TriggerType,
)
from .question_source import PLACEHOLDER_QUESTION, QuestionSource, get_bank_question
from .rules import DEFAULT_REWARD_RULES, AppliedRule, RuleOutcome, apply_rules
from .scoring import BreakdownItem, ScoreResult, compute_base_score
from .session import PracticeSession, SessionPhase, SessionState, SubmissionOutcome
from .stores import (
    InMemoryResultStore,
    JsonResultStore,
    PracticeConfig,
    ResultStore,
    SettingsStore,
    fetch_mastery_status,
    load_skills,
)

__all__ = [
    # Models
    "ConditionOperator",
    "Difficulty",
    "EffectType",
    "MasteryRequirements",
    "Question",
    "RequirementType",
    "RewardRule",
    "ScoringSettings",
    "Skill",
    "SkillMasteryStatus",
    "SkillRank",
    "StudentResult",
    "TriggerType",
    # Scoring pipeline
    "is_correct",
    "question_id",
    "BreakdownItem",
    "ScoreResult",
    "compute_base_score",
    "AppliedRule",
    "RuleOutcome",
    "DEFAULT_REWARD_RULES",
    "apply_rules",
    "MasteryCheck",
    "DEFAULT_SKILL_RANKS",
    "check_mastery",
    "compute_skill_mastery_status",
    "get_mastery_threshold",
    "get_next_rank",
    "get_skill_rank",
    # Session
    "PLACEHOLDER_QUESTION",
    "QuestionSource",
    "get_bank_question",
    "PracticeSession",
    "SessionPhase",
    "SessionState",
    "SubmissionOutcome",
    # Stores
    "InMemoryResultStore",
    "JsonResultStore",
    "PracticeConfig",
    "ResultStore",
    "SettingsStore",
    "fetch_mastery_status",
    "load_skills",
]
