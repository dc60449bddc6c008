"""
External integrations for the Koda practice engine.

Modules:
- gemini_client: Gemini REST question generation
"""
from .gemini_client import GeminiQuestionGenerator, QuestionGenerationError

__all__ = ["GeminiQuestionGenerator", "QuestionGenerationError"]
