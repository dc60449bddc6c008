"""
Persistence ports used by the practice session.

- ResultStore: sink for per-submission StudentResult records
- SettingsStore: scoring settings, reward rules and rank ladder, read fresh
  at every session start

Results are stored as JSON lines (one StudentResult per line); settings as a
single JSON document using the platform's camelCase keys:

    {
        "globalSettings": {...},
        "rewardRules": [...],
        "skillRanks": [...]
    }
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from loguru import logger
from pydantic import TypeAdapter

from .mastery import DEFAULT_SKILL_RANKS, compute_skill_mastery_status
from .models import (
    RewardRule,
    ScoringSettings,
    Skill,
    SkillMasteryStatus,
    SkillRank,
    StudentResult,
)
from .rules import DEFAULT_REWARD_RULES

_RULES_ADAPTER = TypeAdapter(list[RewardRule])
_RANKS_ADAPTER = TypeAdapter(list[SkillRank])
_SKILLS_ADAPTER = TypeAdapter(list[Skill])


class ResultStore(Protocol):
    """Result sink for submissions."""

    async def save_result(self, record: StudentResult) -> None:
        ...

    async def list_results(self) -> list[StudentResult]:
        ...


class InMemoryResultStore:
    """Result store kept in process memory."""

    def __init__(self, results: list[StudentResult] | None = None):
        self.results: list[StudentResult] = list(results or [])

    async def save_result(self, record: StudentResult) -> None:
        self.results.append(record)

    async def list_results(self) -> list[StudentResult]:
        return list(self.results)


class JsonResultStore:
    """
    Append-only JSON-lines result store.

    File IO runs in a worker thread so it does not block the event loop.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _read(self) -> list[StudentResult]:
        if not self.path.exists():
            return []

        results = []
        with open(self.path, encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    results.append(StudentResult.model_validate_json(line))
                except ValueError as e:
                    logger.warning(f"Skipping corrupt result at {self.path}:{line_no}: {e}")
        return results

    async def save_result(self, record: StudentResult) -> None:
        await asyncio.to_thread(self._append, record.model_dump_json(by_alias=True))

    async def list_results(self) -> list[StudentResult]:
        return await asyncio.to_thread(self._read)


async def fetch_mastery_status(
    store: ResultStore,
    skill: Skill,
    student_id: str,
    ranks: list[SkillRank] | None = None,
) -> SkillMasteryStatus:
    """Load a student's status for a skill from the result store."""
    results = await store.list_results()
    return compute_skill_mastery_status(skill, results, student_id, ranks or DEFAULT_SKILL_RANKS)


# =============================================================================
# Settings
# =============================================================================


@dataclass
class PracticeConfig:
    """Settings snapshot used for one session."""

    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    rules: list[RewardRule] = field(default_factory=lambda: list(DEFAULT_REWARD_RULES))
    ranks: list[SkillRank] = field(default_factory=lambda: list(DEFAULT_SKILL_RANKS))


class SettingsStore:
    """
    Reads scoring settings, reward rules and the rank ladder from JSON.

    Missing files or sections fall back to the platform defaults. Sections
    that are present but invalid raise pydantic.ValidationError.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else None

    def _read_document(self) -> dict:
        if self.path is None or not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def load(self) -> PracticeConfig:
        """Load a fresh settings snapshot."""
        doc = self._read_document()
        config = PracticeConfig()

        if "globalSettings" in doc:
            config.scoring = ScoringSettings.model_validate(doc["globalSettings"])
        if "rewardRules" in doc:
            config.rules = _RULES_ADAPTER.validate_python(doc["rewardRules"])
        if doc.get("skillRanks"):
            config.ranks = _RANKS_ADAPTER.validate_python(doc["skillRanks"])

        logger.debug(f"Loaded settings: {len(config.rules)} rules, {len(config.ranks)} ranks")
        return config

    async def load_async(self) -> PracticeConfig:
        return await asyncio.to_thread(self.load)

    def save(self, config: PracticeConfig) -> Path:
        """Write a settings snapshot as a JSON document."""
        if self.path is None:
            raise ValueError("SettingsStore has no path to save to")

        doc = {
            "globalSettings": config.scoring.model_dump(by_alias=True, mode="json"),
            "rewardRules": _RULES_ADAPTER.dump_python(config.rules, by_alias=True, mode="json"),
            "skillRanks": _RANKS_ADAPTER.dump_python(config.ranks, by_alias=True, mode="json"),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2, ensure_ascii=False)
        return self.path


def load_skills(path: Path) -> list[Skill]:
    """Load a curriculum file: a JSON list of skills (or {"skills": [...]})."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("skills", [])
    return _SKILLS_ADAPTER.validate_python(data)
