"""
Answer evaluation and question identity.
"""

from __future__ import annotations

import base64

from .models import Question

# Leading characters of the question text that identify a question
QUESTION_ID_PREFIX_LENGTH = 32


def is_correct(selected: str, expected: str) -> bool:
    """
    Case-insensitive, whitespace-trimmed exact match.

    No partial credit and no numeric tolerance: "6" and "6.0" differ.
    """
    return (selected or "").strip().lower() == (expected or "").strip().lower()


def question_id(question: Question | str) -> str | None:
    """
    Stable short identity of a question.

    Base64 of the UTF-8 bytes of the first 32 characters of the question text,
    matching the ids stored by the web platform. Returns None for empty text.
    """
    text = question if isinstance(question, str) else question.question_text
    if not text:
        return None
    return base64.b64encode(text[:QUESTION_ID_PREFIX_LENGTH].encode("utf-8")).decode("ascii")
