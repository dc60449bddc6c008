"""
Question selection for a practice round.

Skills with a question bank draw from it, avoiding questions the student has
already answered correctly until the bank is exhausted. Skills without a bank
are served by an AI question generator. A failed generation never breaks the
practice loop: the round gets a placeholder question instead.
"""

from __future__ import annotations

import random
from collections.abc import Collection
from typing import Protocol

from loguru import logger

from .evaluator import question_id
from .models import Question, Skill

PLACEHOLDER_QUESTION = Question(
    question_text="Error loading question",
    correct_answer="Error",
    explanation="Please try again.",
)

UNKNOWN_QUESTION_ID = "unknown"


class QuestionGenerator(Protocol):
    """On-demand question generation (network/AI call, may raise)."""

    async def generate_question(
        self,
        student_id: str,
        skill: Skill,
        instruction_hint: str,
        model_id: str,
        token_budget: int,
    ) -> Question:
        ...


def get_bank_question(
    skill: Skill,
    exclude_ids: Collection[str],
    rng: random.Random | None = None,
) -> Question:
    """
    Pick a question from the skill's bank.

    Candidates are bank entries whose id is not in exclude_ids. When every
    entry is excluded the whole bank is used again.

    Raises:
        ValueError: If the skill has no question bank
    """
    bank = skill.question_bank or []
    if not bank:
        raise ValueError(f"Skill {skill.id} has no question bank")

    excluded = set(exclude_ids)
    candidates = [q for q in bank if (question_id(q) or UNKNOWN_QUESTION_ID) not in excluded]
    pool = candidates or bank
    if not candidates:
        logger.debug(f"Question bank for {skill.id} exhausted, repeating from full bank")

    return (rng or random).choice(pool)


class QuestionSource:
    """
    Supplies the next question for a skill.

    Args:
        generator: AI generator for skills without a bank (optional)
        student_id: Student the questions are generated for
        instruction_hint: Extra instruction for the generator prompt
        model_id: Generator model name
        token_budget: Max output tokens per generated question
        rng: Random source for bank selection (inject for deterministic tests)
    """

    def __init__(
        self,
        generator: QuestionGenerator | None = None,
        student_id: str = "",
        instruction_hint: str = "",
        model_id: str = "",
        token_budget: int = 1024,
        rng: random.Random | None = None,
    ):
        self.generator = generator
        self.student_id = student_id
        self.instruction_hint = instruction_hint
        self.model_id = model_id
        self.token_budget = token_budget
        self.rng = rng or random.Random()

    async def next_question(self, skill: Skill, completed_question_ids: Collection[str] = ()) -> Question:
        """Return the next question, or the placeholder if generation fails."""
        if skill.has_bank:
            return get_bank_question(skill, completed_question_ids, self.rng)

        if self.generator is None:
            logger.warning(f"Skill {skill.id} has no question bank and no generator is configured")
            return PLACEHOLDER_QUESTION

        try:
            return await self.generator.generate_question(
                self.student_id,
                skill,
                self.instruction_hint,
                self.model_id,
                self.token_budget,
            )
        except Exception as e:
            logger.error(f"Question generation failed for skill {skill.id}: {e}")
            return PLACEHOLDER_QUESTION
