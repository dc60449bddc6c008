"""
Koda CLI - terminal driver for skill practice.

Usage:
    koda practice skills.json --skill math-add-1 --student alice
    koda practice skills.json --skill math-add-1 --pause-after-each
    koda rules                      # Show effective reward rules
    koda status skills.json --student alice
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import Settings, get_settings
from src.practice import (
    EffectType,
    JsonResultStore,
    PracticeSession,
    Question,
    QuestionSource,
    SettingsStore,
    Skill,
    SubmissionOutcome,
    compute_skill_mastery_status,
    fetch_mastery_status,
    load_skills,
)

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="koda",
    help="Koda practice - skill practice with XP, streaks and mastery",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

QUIT_INPUTS = {"q", "quit", "exit"}


def _find_skill(skills: list[Skill], skill_id: str) -> Skill:
    for skill in skills:
        if skill.id == skill_id:
            return skill
    console.print(f"[red]Unknown skill:[/red] {skill_id}")
    raise typer.Exit(code=1)


def _build_generator(settings: Settings):
    if not settings.has_ai_configured():
        return None
    from src.integrations.gemini_client import GeminiQuestionGenerator

    return GeminiQuestionGenerator.from_settings(settings)


# =============================================================================
# Rendering
# =============================================================================


def render_question(question: Question, number: int) -> None:
    body = question.question_text
    if question.options:
        body += "\n\n" + "\n".join(f"  [cyan]{i}.[/cyan] {opt}" for i, opt in enumerate(question.options, 1))
    console.print(Panel(body, title=f"[bold cyan]QUESTION {number}[/bold cyan]", border_style="cyan"))


def resolve_answer(question: Question, raw: str) -> str:
    """
    Map typed input to an answer for multiple choice questions.

    Input matching an option's text is taken as that option, so numeric
    options are never mistaken for option numbers. Otherwise a number picks
    the option at that position.
    """
    raw = raw.strip()
    if not question.options:
        return raw
    for option in question.options:
        if option.strip().lower() == raw.lower():
            return option
    if raw.isdigit():
        index = int(raw) - 1
        if 0 <= index < len(question.options):
            return question.options[index]
    return raw


def render_outcome(outcome: SubmissionOutcome, question: Question, session_points: float) -> None:
    lines = []
    if outcome.correct:
        lines.append("[bold green]Correct![/bold green]")
    else:
        lines.append(f"[bold red]Not quite.[/bold red] Answer: [yellow]{question.correct_answer}[/yellow]")
        if question.explanation:
            lines.append(f"[dim]{question.explanation}[/dim]")

    for item in outcome.breakdown:
        lines.append(f"  {item.label}: +{item.points:g}")
    for rule in outcome.applied_rules:
        color = "green" if rule.type == EffectType.REWARD else "red"
        sign = "+" if rule.type == EffectType.REWARD else "-"
        lines.append(f"  [{color}]{rule.message} {sign}{rule.points:g}[/{color}]")

    lines.append(
        f"\nXP this round: [bold]{outcome.total_score:+g}[/bold]   "
        f"Streak: [bold]{outcome.streak}[/bold]   Session: [bold]{session_points:g}[/bold]"
    )
    border = "green" if outcome.correct else "red"
    console.print(Panel("\n".join(lines), border_style=border))


# =============================================================================
# Practice Loop
# =============================================================================


async def run_practice(
    skill: Skill,
    student_id: str,
    settings: Settings,
    pause_after_each: bool = False,
    max_questions: int | None = None,
) -> float:
    """Run an interactive practice loop. Returns the session points."""
    results = JsonResultStore(settings.results_file)
    settings_store = SettingsStore(settings.settings_file)
    generator = _build_generator(settings)

    questions: asyncio.Queue[Question] = asyncio.Queue()
    mastered = asyncio.Event()
    timing = settings.get_timing_config()

    session = PracticeSession(
        student_id=student_id,
        question_source=QuestionSource(
            generator=generator,
            student_id=student_id,
            instruction_hint=settings.default_ai_instruction,
            model_id=settings.gemini_model,
            token_budget=settings.student_token_budget,
        ),
        config_loader=settings_store.load_async,
        result_store=results,
        status_provider=lambda s: fetch_mastery_status(results, s, student_id, session.config.ranks),
        mastery_threshold=settings.mastery_threshold,
        on_mastery=lambda _skill, _outcome: mastered.set(),
        on_question=questions.put_nowait,
        correct_delay=timing["correct_delay"],
        incorrect_delay=timing["incorrect_delay"],
        celebration_delay=timing["celebration_delay"],
    )

    console.print(Panel(
        f"[bold]{skill.skill_name or skill.id}[/bold] ({skill.difficulty.value})\n"
        "[dim]Type your answer, or 'q' to quit.[/dim]",
        title="[bold magenta]PRACTICE[/bold magenta]",
        border_style="magenta",
    ))

    asked = 0
    try:
        await session.start_practice(skill)
        while max_questions is None or asked < max_questions:
            question = await questions.get()
            asked += 1
            render_question(question, asked)

            raw = await asyncio.to_thread(Prompt.ask, "[bold]>[/bold]")
            if raw.strip().lower() in QUIT_INPUTS:
                break

            outcome = session.submit(resolve_answer(question, raw))
            if outcome is None:
                continue
            render_outcome(outcome, question, session.session_points)

            if outcome.mastery.just_mastered:
                await mastered.wait()
                mastered.clear()
                console.print(Panel(
                    f"[bold yellow]Skill mastered![/bold yellow] {outcome.mastery.new_total:g} XP",
                    border_style="yellow",
                ))
                keep_going = await asyncio.to_thread(Confirm.ask, "Keep practicing?", default=False)
                if not keep_going:
                    break
                await session.continue_practice()
            elif pause_after_each:
                await session.toggle_pause()
                await asyncio.to_thread(Prompt.ask, "[dim]Press Enter for the next question[/dim]", default="")
                await session.toggle_pause()
    finally:
        session.stop_practice()
        await session.wait_for_pending_writes()
        if generator is not None:
            await generator.close()

    console.print(f"\n[bold]Session XP:[/bold] {session.session_points:g}   [bold]Streak:[/bold] {session.streak}")
    return session.session_points


# =============================================================================
# Commands
# =============================================================================


@app.command()
def practice(
    skills_file: Annotated[Path, typer.Argument(help="JSON file with the curriculum skills")],
    skill_id: Annotated[str, typer.Option("--skill", "-s", help="Skill to practice")],
    student_id: Annotated[str, typer.Option("--student", help="Student id")] = "student",
    pause_after_each: Annotated[bool, typer.Option("--pause-after-each", help="Wait for Enter between questions")] = False,
    max_questions: Annotated[Optional[int], typer.Option("--max", help="Stop after N questions")] = None,
):
    """Practice a skill in the terminal."""
    skill = _find_skill(load_skills(skills_file), skill_id)
    asyncio.run(run_practice(skill, student_id, get_settings(), pause_after_each, max_questions))


@app.command()
def rules():
    """Show the effective reward/penalty rules and scoring settings."""
    config = SettingsStore(get_settings().settings_file).load()

    table = Table(title="Reward Rules", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Trigger")
    table.add_column("Condition")
    table.add_column("Effect")
    table.add_column("Points", justify="right")

    for rule in config.rules:
        points = config.scoring.standard_penalty_points if rule.effect_type == EffectType.PENALTY else rule.points
        table.add_row(
            rule.id,
            rule.name,
            rule.trigger_type.value,
            f"{rule.condition_operator.value} {rule.condition_value}",
            rule.effect_type.value,
            f"{points:g}",
        )
    console.print(table)

    scoring = config.scoring
    console.print(
        f"Base {scoring.base_mastery_points:g} | Medium x{scoring.medium_multiplier:g} | "
        f"Hard x{scoring.hard_multiplier:g} | Streak +{scoring.streak_bonus:g}/step | "
        f"Speed +{scoring.speed_bonus_fast:g}/+{scoring.speed_bonus_standard:g} | "
        f"Penalty -{scoring.standard_penalty_points:g}"
    )


@app.command()
def status(
    skills_file: Annotated[Path, typer.Argument(help="JSON file with the curriculum skills")],
    student_id: Annotated[str, typer.Option("--student", help="Student id")] = "student",
):
    """Show mastery progress and rank for every skill."""
    settings = get_settings()
    config = SettingsStore(settings.settings_file).load()
    results = asyncio.run(JsonResultStore(settings.results_file).list_results())

    table = Table(title=f"Progress for {student_id}", show_header=True, header_style="bold cyan")
    table.add_column("Skill")
    table.add_column("Difficulty")
    table.add_column("XP", justify="right")
    table.add_column("Progress")
    table.add_column("Rank")
    table.add_column("Next")

    for skill in load_skills(skills_file):
        skill_status = compute_skill_mastery_status(skill, results, student_id, config.ranks)
        next_rank = skill_status.next_rank
        rank = skill_status.rank
        table.add_row(
            skill.skill_name or skill.id,
            skill.difficulty.value,
            f"{skill_status.current_points:g}",
            ("[green]✓ [/green]" if skill_status.is_mastered else "") + skill_status.progress_label,
            f"{rank.icon} {rank.name}" if rank else "-",
            f"{next_rank.name} @ {next_rank.threshold:g}" if next_rank else "-",
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )

    app()


if __name__ == "__main__":
    main()
