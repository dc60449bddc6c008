"""
Mastery detection and rank progression.

Design:
- check_mastery: edge-triggered check run on every submission
- Rank ladder: the last (highest) rank threshold is the mastery threshold
- compute_skill_mastery_status: derives the per-skill snapshot the session
  reads (current points, completed question ids) from result history
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .models import (
    DEFAULT_MASTERY_REQUIREMENTS,
    MasteryRequirements,
    RequirementType,
    Skill,
    SkillMasteryStatus,
    SkillRank,
    StudentResult,
)

DEFAULT_SKILL_RANKS: list[SkillRank] = [
    SkillRank(name="Beginner", threshold=0, icon="🌱", description="Just starting out"),
    SkillRank(name="Novice", threshold=100, icon="🥉", description="Getting the hang of it"),
    SkillRank(name="Apprentice", threshold=300, icon="🥈", description="Consistent practice"),
    SkillRank(name="Scholar", threshold=600, icon="🥇", description="High proficiency"),
    SkillRank(name="Master", threshold=1000, icon="👑", description="True expert status"),
]

FALLBACK_MASTERY_THRESHOLD = 1000


@dataclass(frozen=True)
class MasteryCheck:
    """Result of a mastery check."""

    just_mastered: bool
    new_total: float


def check_mastery(prior_points: float, total_score_this_round: float, threshold: float) -> MasteryCheck:
    """
    Detect the transition across the mastery threshold.

    Fires only when the prior total was below the threshold and the new total
    reaches it, so mastery is reported once rather than on every submission
    above the threshold.
    """
    new_total = prior_points + total_score_this_round
    just_mastered = prior_points < threshold and new_total >= threshold
    return MasteryCheck(just_mastered=just_mastered, new_total=new_total)


# =============================================================================
# Rank ladder
# =============================================================================


def get_mastery_threshold(ranks: Sequence[SkillRank] = DEFAULT_SKILL_RANKS) -> float:
    """Threshold of the last rank in the ladder."""
    if not ranks:
        return FALLBACK_MASTERY_THRESHOLD
    return ranks[-1].threshold


def get_skill_rank(current_points: float, ranks: Sequence[SkillRank] = DEFAULT_SKILL_RANKS) -> SkillRank:
    """Highest rank reached by current_points (first rank if none)."""
    for rank in sorted(ranks, key=lambda r: r.threshold, reverse=True):
        if current_points >= rank.threshold:
            return rank
    return ranks[0]


def get_next_rank(current_points: float, ranks: Sequence[SkillRank] = DEFAULT_SKILL_RANKS) -> SkillRank | None:
    """Lowest rank not yet reached, or None at the top of the ladder."""
    for rank in sorted(ranks, key=lambda r: r.threshold):
        if rank.threshold > current_points:
            return rank
    return None


# =============================================================================
# Skill mastery status
# =============================================================================


def _accuracy(skill_results: list[StudentResult]) -> float | None:
    if not skill_results:
        return None
    correct = sum(1 for r in skill_results if r.score > 0)
    return correct / len(skill_results) * 100


def _unique_correct_ids(skill_results: list[StudentResult]) -> list[str]:
    ids = [r.question_id or f"legacy-{r.id}" for r in skill_results if r.score > 0]
    return list(dict.fromkeys(ids))


def compute_skill_mastery_status(
    skill: Skill,
    results: Iterable[StudentResult],
    student_id: str | None = None,
    ranks: Sequence[SkillRank] = DEFAULT_SKILL_RANKS,
    default_requirements: MasteryRequirements = DEFAULT_MASTERY_REQUIREMENTS,
) -> SkillMasteryStatus:
    """
    Build the progress snapshot of a skill from result history.

    Args:
        skill: Skill being practiced
        results: All known results (filtered here by skill and student)
        student_id: Restrict to a single student
        ranks: Rank ladder; the last rank is mastery
        default_requirements: Used when the skill defines none

    Returns:
        SkillMasteryStatus with current points, mastery flag, progress,
        rank and the ids of uniquely answered-correctly questions
    """
    skill_results = [
        r for r in results
        if r.skill_id == skill.id and (student_id is None or r.student_id == student_id)
    ]
    total_score = sum(r.score for r in skill_results)

    requirements = skill.mastery_requirements or default_requirements
    sorted_ranks = sorted(ranks, key=lambda r: r.threshold)
    master_threshold = sorted_ranks[-1].threshold if sorted_ranks else FALLBACK_MASTERY_THRESHOLD
    accuracy = _accuracy(skill_results)
    completed_ids: list[str] = []

    if requirements.type == RequirementType.QUESTIONS:
        completed_ids = _unique_correct_ids(skill_results)
        correct_count = len(completed_ids)

        target = requirements.value
        if requirements.is_percentage and skill.question_bank:
            target = max(1, math.ceil(requirements.value / 100 * len(skill.question_bank)))

        progress = min(100.0, correct_count / target * 100) if target > 0 else 100.0
        progress_label = f"{correct_count} / {target:g} Questions"
        equivalent_xp = progress / 100 * master_threshold

        is_mastered = correct_count >= target
        accuracy_failed = (
            requirements.min_accuracy is not None
            and accuracy is not None
            and accuracy < requirements.min_accuracy
        )
        if accuracy_failed:
            is_mastered = False
    else:
        target = requirements.value
        progress = min(100.0, total_score / target * 100) if target > 0 else 100.0
        progress_label = f"{total_score:g} / {target:g} XP"
        equivalent_xp = total_score
        is_mastered = total_score >= target
        accuracy_failed = False

    rank = get_skill_rank(equivalent_xp, sorted_ranks) if sorted_ranks else None
    if rank is not None and accuracy_failed and rank.threshold >= master_threshold:
        # Low accuracy caps the rank one step below master
        descending = list(reversed(sorted_ranks))
        rank = descending[1] if len(descending) > 1 else descending[0]

    rank_index = next((i for i, r in enumerate(sorted_ranks) if rank and r.name == rank.name), 0)
    next_rank = sorted_ranks[rank_index + 1] if rank and rank_index + 1 < len(sorted_ranks) else None

    return SkillMasteryStatus(
        current_points=total_score,
        completed_question_ids=completed_ids,
        is_mastered=is_mastered,
        progress=progress,
        progress_label=progress_label,
        rank=rank,
        rank_index=rank_index,
        next_rank=next_rank,
    )
