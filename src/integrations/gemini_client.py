"""
Gemini client for on-demand practice question generation.

Calls the Generative Language REST API (generateContent) with a JSON response
schema matching the Question model. Any failure raises
QuestionGenerationError; the practice engine turns that into a placeholder
question so the practice loop keeps running.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from src.practice.models import Difficulty, Question, Skill

DEFAULT_PROMPT = "Generate a high-quality question."

DIFFICULTY_GUIDES: dict[Difficulty, str] = {
    Difficulty.EASY: (
        "Focus on basic recall, recognition, and simple definitions. Use simple, direct language. "
        "The answer should be immediately obvious to someone who knows the basics. Single-step thinking."
    ),
    Difficulty.MEDIUM: (
        "Require application of the concept in a familiar context. The question should involve a small "
        "logical step, comparison, or inference. Options should be distinct but not too obvious."
    ),
    Difficulty.HARD: (
        "Challenge the student with complex scenarios, multi-step problems, exceptions to rules, or by "
        "requiring them to synthesize information. Options should be plausible distractors that test "
        "deep understanding."
    ),
}

QUESTION_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "questionText": {"type": "STRING"},
        "options": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Only required for Multiple Choice. Leave empty otherwise.",
        },
        "correctAnswer": {"type": "STRING"},
        "explanation": {"type": "STRING", "description": "Helpful feedback for the student"},
    },
    "required": ["questionText", "correctAnswer", "explanation"],
}

_CODE_FENCE_RX = re.compile(r"```(?:json)?\s*|\s*```")


class QuestionGenerationError(Exception):
    """Raised when a question could not be generated."""
    pass


def difficulty_guide(difficulty: Difficulty | str) -> str:
    try:
        return DIFFICULTY_GUIDES[Difficulty(difficulty)]
    except ValueError:
        return "Ensure the complexity matches the grade level."


def build_question_prompt(skill: Skill, instruction_hint: str = "") -> str:
    """Build the generation prompt for a skill."""
    base_prompt = skill.ai_prompt_instruction or DEFAULT_PROMPT
    return "\n".join([
        base_prompt,
        "",
        "CONTEXT:",
        f"Grade: {skill.grade}",
        f"Subject: {skill.subject}",
        f"Skill: {skill.skill_name}",
        f"Difficulty: {skill.difficulty.value}",
        f"Question Type: {skill.question_type}",
        "",
        f"DIFFICULTY GUIDE: {difficulty_guide(skill.difficulty)}",
        f"ADDITIONAL INSTRUCTION: {instruction_hint}",
        "",
        "REQUIRED OUTPUT:",
        "Generate a single, unique, interactive quiz question in JSON format.",
    ])


def parse_question_json(text: str) -> Question:
    """
    Parse model output into a Question.

    Strips markdown code fences before parsing.

    Raises:
        QuestionGenerationError: If the text is not a valid question object
    """
    cleaned = _CODE_FENCE_RX.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise QuestionGenerationError(f"Unparsable question JSON: {e}") from e

    if isinstance(data, list):
        if not data:
            raise QuestionGenerationError("Model returned an empty question list")
        data = data[0]

    if isinstance(data, dict) and not data.get("options"):
        data.pop("options", None)

    try:
        return Question.model_validate(data)
    except ValidationError as e:
        raise QuestionGenerationError(f"Invalid question payload: {e.error_count()} errors") from e


class GeminiQuestionGenerator:
    """
    HTTP client for Gemini question generation.

    Args:
        api_key: Gemini API key
        api_url: Base URL of the Generative Language API
        timeout_ms: Request timeout in milliseconds
        retry_attempts: Attempts on timeouts and 5xx errors
        backoff_seconds: Base for exponential backoff between attempts
        client: Pre-built httpx.AsyncClient (for tests / shared pools)
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_ms: int = 30000,
        retry_attempts: int = 2,
        backoff_seconds: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_ms / 1000.0),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings) -> GeminiQuestionGenerator:
        """Build from config.Settings."""
        if not settings.gemini_api_key:
            raise QuestionGenerationError("GEMINI_API_KEY is not configured")
        return cls(
            api_key=settings.gemini_api_key,
            api_url=settings.gemini_api_url,
            timeout_ms=settings.gemini_timeout_ms,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _payload(self, prompt: str, token_budget: int) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": QUESTION_RESPONSE_SCHEMA,
                "maxOutputTokens": token_budget,
            },
        }

    async def _post(self, model_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_url}/models/{model_id}:generateContent"
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = await self.client.post(
                    url,
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                return response.json()

            except ValueError as e:
                raise QuestionGenerationError("Gemini returned a non-JSON response body") from e

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code < 500:
                    logger.error(f"Gemini client error: {e.response.status_code}")
                    break
                logger.warning(
                    f"Gemini server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except httpx.RequestError as e:
                last_error = e
                logger.warning(f"Gemini request error on attempt {attempt + 1}/{self.retry_attempts}: {e}")

            if attempt < self.retry_attempts - 1:
                await asyncio.sleep(self.backoff_seconds * 2 ** attempt)

        raise QuestionGenerationError(f"Gemini request failed: {last_error}") from last_error

    @staticmethod
    def _response_text(data: dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise QuestionGenerationError("Gemini response has no candidates") from e
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    async def generate_question(
        self,
        student_id: str,
        skill: Skill,
        instruction_hint: str,
        model_id: str,
        token_budget: int,
    ) -> Question:
        """
        Generate one practice question for a skill.

        Raises:
            QuestionGenerationError: On HTTP failure or unusable output
        """
        prompt = build_question_prompt(skill, instruction_hint)
        logger.debug(f"Generating question for {skill.id} ({student_id}) with {model_id}")
        data = await self._post(model_id, self._payload(prompt, token_budget))
        return parse_question_json(self._response_text(data))
