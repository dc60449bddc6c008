"""
Practice Session: orchestration of one skill-practice loop.

Lifecycle:
    IDLE -> LOADING -> PRESENTING -> SUBMITTED
         -> MASTERY_CELEBRATION (waits for explicit continue/stop)
         -> AUTO_ADVANCING -> LOADING -> ...
    STOPPED when practice is exited.

The session runs on a single asyncio event loop. Its only concurrency concern
is the auto-advance timer: every path that schedules a timer, starts a round
or stops the session goes through _cancel_timer() first, so at most one timer
is ever pending.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from .evaluator import is_correct, question_id
from .mastery import MasteryCheck, check_mastery, get_mastery_threshold
from .models import Question, Skill, SkillMasteryStatus, StudentResult
from .question_source import PLACEHOLDER_QUESTION, QuestionSource
from .rules import AppliedRule, RuleOutcome, apply_rules
from .scoring import BreakdownItem, ScoreResult, compute_base_score
from .stores import PracticeConfig, ResultStore

# Default auto-advance delays (seconds)
CORRECT_ADVANCE_DELAY = 1.2
INCORRECT_ADVANCE_DELAY = 4.5
MASTERY_CELEBRATION_DELAY = 0.8

StatusProvider = Callable[[Skill], Awaitable[SkillMasteryStatus]]
ConfigLoader = Callable[[], Awaitable[PracticeConfig]]


class SessionPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PRESENTING = "presenting"
    SUBMITTED = "submitted"
    MASTERY_CELEBRATION = "mastery_celebration"
    AUTO_ADVANCING = "auto_advancing"
    STOPPED = "stopped"


@dataclass
class SessionState:
    """Mutable per-session state."""

    streak: int = 0
    session_points: float = 0  # may go negative, never floored
    selected_answer: str = ""
    is_submitted: bool = False
    is_correct: bool = False
    auto_advance_paused: bool = False


@dataclass
class SubmissionOutcome:
    """Everything computed for one submission."""

    correct: bool
    duration_seconds: float
    streak: int
    base: ScoreResult
    rules: RuleOutcome
    total_score: float
    mastery: MasteryCheck
    record: StudentResult

    @property
    def breakdown(self) -> list[BreakdownItem]:
        return self.base.breakdown

    @property
    def applied_rules(self) -> list[AppliedRule]:
        return self.rules.applied


async def _no_status(skill: Skill) -> SkillMasteryStatus:
    return SkillMasteryStatus()


class PracticeSession:
    """
    Drives question selection, scoring, rewards, mastery and auto-advance
    for one student.

    Args:
        student_id: Student practicing
        question_source: Supplies questions for a skill
        config: Scoring settings, reward rules and rank ladder
        config_loader: Async loader called at every start_practice (overrides config)
        result_store: Sink for result records (fire-and-forget)
        status_provider: Async snapshot of the student's progress on a skill
        mastery_threshold: Points needed for mastery (defaults to the top rank)
        on_refresh: Called after every submission so callers can reload stats
        on_mastery: Called (after a short delay) when a skill is just mastered
        on_question: Called whenever a new question is presented
        correct_delay / incorrect_delay: Auto-advance delays in seconds
        celebration_delay: Delay before on_mastery fires, in seconds
        clock: Monotonic clock used to time answers
    """

    def __init__(
        self,
        student_id: str,
        question_source: QuestionSource,
        config: PracticeConfig | None = None,
        config_loader: ConfigLoader | None = None,
        result_store: ResultStore | None = None,
        status_provider: StatusProvider | None = None,
        mastery_threshold: float | None = None,
        on_refresh: Callable[[], None] | None = None,
        on_mastery: Callable[[Skill, SubmissionOutcome], None] | None = None,
        on_question: Callable[[Question], None] | None = None,
        correct_delay: float = CORRECT_ADVANCE_DELAY,
        incorrect_delay: float = INCORRECT_ADVANCE_DELAY,
        celebration_delay: float = MASTERY_CELEBRATION_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.student_id = student_id
        self.question_source = question_source
        self.config = config or PracticeConfig()
        self.config_loader = config_loader
        self.result_store = result_store
        self.status_provider = status_provider or _no_status
        self.mastery_threshold = mastery_threshold
        self.on_refresh = on_refresh
        self.on_mastery = on_mastery
        self.on_question = on_question
        self.correct_delay = correct_delay
        self.incorrect_delay = incorrect_delay
        self.celebration_delay = celebration_delay
        self.clock = clock

        self.state = SessionState()
        self.phase = SessionPhase.IDLE
        self.active_skill: Skill | None = None
        self.question: Question | None = None
        self.status = SkillMasteryStatus()
        self.last_outcome: SubmissionOutcome | None = None

        self._question_shown_at = 0.0
        self._round = 0
        self._timer: asyncio.TimerHandle | None = None
        self._celebration: asyncio.TimerHandle | None = None
        self._pending_writes: set[asyncio.Task] = set()
        self._pending_advances: set[asyncio.Task] = set()

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def streak(self) -> int:
        return self.state.streak

    @property
    def session_points(self) -> float:
        return self.state.session_points

    @property
    def is_loading(self) -> bool:
        return self.phase == SessionPhase.LOADING

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    @property
    def threshold(self) -> float:
        if self.mastery_threshold is not None:
            return self.mastery_threshold
        return get_mastery_threshold(self.config.ranks)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def start_practice(self, skill: Skill) -> Question:
        """Start practicing a skill: reload settings and present a question."""
        if self.config_loader is not None:
            try:
                self.config = await self.config_loader()
            except Exception as e:
                # Keep the previous snapshot
                logger.error(f"Failed to reload practice settings: {e}")
        logger.debug(f"Starting practice on {skill.id} for {self.student_id}")
        return await self._load_round(skill)

    async def advance(self) -> Question | None:
        """Move on to the next question of the active skill."""
        self._cancel_timer()
        if self.active_skill is None or self.phase == SessionPhase.STOPPED:
            return None
        return await self._load_round(self.active_skill)

    async def continue_practice(self) -> Question | None:
        """Leave the mastery celebration and keep practicing."""
        return await self.advance()

    def submit(self, selected_answer: str | None = None) -> SubmissionOutcome | None:
        """
        Grade the current answer and schedule what comes next.

        No-op (returns None) if the round was already submitted or no
        question is being presented. Must be called from the running event
        loop; without one it raises RuntimeError before any state changes.
        """
        if self.question is None or self.active_skill is None or self.state.is_submitted:
            return None
        if self.phase != SessionPhase.PRESENTING:
            return None

        # Timers and result writes need the loop
        asyncio.get_running_loop()

        if selected_answer is not None:
            self.state.selected_answer = selected_answer

        skill = self.active_skill
        question = self.question
        duration = max(0.0, self.clock() - self._question_shown_at)
        correct = is_correct(self.state.selected_answer, question.correct_answer)

        self.state.is_submitted = True
        self.state.is_correct = correct
        self.state.auto_advance_paused = False
        self.phase = SessionPhase.SUBMITTED

        self.state.streak = self.state.streak + 1 if correct else 0
        streak = self.state.streak

        scoring = self.config.scoring
        base = compute_base_score(correct, skill.difficulty, streak, duration, scoring)
        rules = apply_rules(self.config.rules, correct, streak, skill.difficulty, scoring)
        total_score = base.total + rules.delta
        self.state.session_points += total_score

        mastery = check_mastery(self.status.current_points, total_score, self.threshold)
        record = self._build_record(skill, question, total_score)
        outcome = SubmissionOutcome(
            correct=correct,
            duration_seconds=duration,
            streak=streak,
            base=base,
            rules=rules,
            total_score=total_score,
            mastery=mastery,
            record=record,
        )
        self.last_outcome = outcome

        logger.debug(
            f"Submission on {skill.id}: correct={correct} streak={streak} "
            f"base={base.total:g} delta={rules.delta:+g} total={total_score:g}"
        )

        if mastery.just_mastered:
            self._enter_celebration(skill, outcome)
        else:
            self._schedule_advance(self.correct_delay if correct else self.incorrect_delay)

        self._persist(record)
        if self.on_refresh is not None:
            self.on_refresh()

        return outcome

    async def toggle_pause(self) -> None:
        """Pause auto-advance, or advance immediately if already paused."""
        if not self.state.is_submitted:
            return
        if self.state.auto_advance_paused:
            await self.advance()
            return

        self._cancel_timer()
        self.state.auto_advance_paused = True
        if self.phase == SessionPhase.AUTO_ADVANCING:
            self.phase = SessionPhase.SUBMITTED
        logger.debug("Auto-advance paused")

    def stop_practice(self) -> None:
        """Exit practice. In-flight round state is discarded, not persisted."""
        self._cancel_timer()
        self._cancel_celebration()
        self._round += 1
        self.active_skill = None
        self.question = None
        self.phase = SessionPhase.STOPPED
        logger.debug(f"Practice stopped for {self.student_id}")

    async def wait_for_pending_writes(self) -> None:
        """Wait for in-flight result writes (failures are already logged)."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _load_round(self, skill: Skill) -> Question:
        self._cancel_timer()
        self._cancel_celebration()
        self._round += 1
        round_id = self._round

        self.active_skill = skill
        self.question = None
        self.last_outcome = None
        self.state.is_submitted = False
        self.state.is_correct = False
        self.state.selected_answer = ""
        self.state.auto_advance_paused = False
        self.phase = SessionPhase.LOADING

        try:
            self.status = await self.status_provider(skill)
        except Exception as e:
            logger.error(f"Failed to load mastery status for {skill.id}: {e}")
            self.status = SkillMasteryStatus()

        try:
            question = await self.question_source.next_question(skill, self.status.completed_question_ids)
        except Exception as e:
            logger.error(f"Failed to load question for {skill.id}: {e}")
            question = PLACEHOLDER_QUESTION

        if round_id != self._round:
            # Stopped or restarted while loading
            logger.debug(f"Discarding stale question for round {round_id}")
            return question

        self.question = question
        self._question_shown_at = self.clock()
        self.phase = SessionPhase.PRESENTING
        if self.on_question is not None:
            self.on_question(question)
        return question

    def _build_record(self, skill: Skill, question: Question, total_score: float) -> StudentResult:
        timestamp = int(time.time() * 1000)
        return StudentResult(
            id=str(uuid.uuid4()),
            student_id=self.student_id,
            skill_id=skill.id,
            score=total_score,
            timestamp=timestamp,
            attempts=1,
            question_id=question_id(question) or str(timestamp),
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _cancel_celebration(self) -> None:
        if self._celebration is not None:
            self._celebration.cancel()
            self._celebration = None

    def _schedule_advance(self, delay: float) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)
        self.phase = SessionPhase.AUTO_ADVANCING

    def _on_timer(self) -> None:
        self._timer = None
        if self.state.auto_advance_paused or self.phase == SessionPhase.STOPPED:
            return
        task = asyncio.get_running_loop().create_task(self.advance())
        self._pending_advances.add(task)
        task.add_done_callback(self._on_advanced)

    def _on_advanced(self, task: asyncio.Task) -> None:
        self._pending_advances.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Auto-advance failed for {self.student_id}: {error}")

    def _enter_celebration(self, skill: Skill, outcome: SubmissionOutcome) -> None:
        self._cancel_timer()
        self.phase = SessionPhase.MASTERY_CELEBRATION
        logger.info(f"Skill {skill.id} mastered by {self.student_id} ({outcome.mastery.new_total:g} pts)")

        def celebrate() -> None:
            self._celebration = None
            if self.on_mastery is not None:
                self.on_mastery(skill, outcome)

        self._cancel_celebration()
        self._celebration = asyncio.get_running_loop().call_later(self.celebration_delay, celebrate)

    def _persist(self, record: StudentResult) -> None:
        if self.result_store is None:
            return
        task = asyncio.get_running_loop().create_task(self.result_store.save_result(record))
        self._pending_writes.add(task)
        task.add_done_callback(self._on_persisted)

    def _on_persisted(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # Local score state is not rolled back
            logger.error(f"Failed to save result for {self.student_id}: {error}")
