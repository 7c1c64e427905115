"""
AI service package for brief analysis.

This package provides:
- prompts: the fixed analysis instruction template
- parsing: conversion of model output into a tagged analysis result

The AIService class wraps the OpenAI client, enforces the call deadline and
offers a mock mode for development without an API key.
"""

import asyncio
import json
import logging

from .exceptions import AIServiceError
from .parsing import parse_analysis
from .prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_user_prompt

logger = logging.getLogger(__name__)

__all__ = [
    "AIService",
    "AIServiceError",
    "ANALYSIS_SYSTEM_PROMPT",
    "build_analysis_user_prompt",
    "get_ai_service",
    "parse_analysis",
]


class AIService:
    """
    Service for AI-powered brief analysis.

    Sends the brief to an OpenAI chat model at zero temperature with a
    bounded completion length and returns the raw text of the reply.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        max_tokens: int = 1200,
        timeout: float = 30.0,
        use_mock: bool = False,
    ):
        """
        Initialize the AI service.

        Args:
            api_key: OpenAI API key. If None, reads from config/environment.
            model: OpenAI chat model to use.
            max_tokens: Upper bound on the completion length.
            timeout: Deadline in seconds for one completion.
            use_mock: If True, return a canned analysis instead of calling OpenAI.
        """
        # Load API key from settings if not provided
        if api_key is None:
            from ...config import get_settings

            api_key = get_settings().openai_api_key

        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.use_mock = use_mock or not self.api_key
        self._client = None

        if self.use_mock:
            logger.warning(
                "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real analysis."
            )

    @property
    def client(self):
        """Lazy-load the async OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run one chat completion and return the text of the reply.

        Args:
            system_prompt: Instruction for the model.
            user_prompt: User turn content.

        Returns:
            The reply content; "" when the model returned no content.

        Raises:
            AIServiceError: On API errors or when the deadline passes.
        """
        if self.use_mock:
            logger.info("Analyzing brief (MOCK MODE)")
            return json.dumps(self._get_mock_analysis())

        from openai import APIError, APITimeoutError

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=self.max_tokens,
                    temperature=0.0,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, APITimeoutError) as e:
            logger.error("OpenAI completion timed out after %ss", self.timeout)
            raise AIServiceError(f"Analysis timed out after {self.timeout}s") from e
        except APIError as e:
            logger.error("OpenAI completion failed: %s", e)
            raise AIServiceError(f"Analysis request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def analyze_brief(self, brief_text: str) -> str:
        """
        Ask the model for a structured analysis of a brief.

        Args:
            brief_text: Text extracted from the brief PDF.

        Returns:
            Raw model output, expected (not guaranteed) to be JSON.
        """
        logger.info("Requesting analysis of %d characters with %s", len(brief_text), self.model)
        return await self.complete(ANALYSIS_SYSTEM_PROMPT, build_analysis_user_prompt(brief_text))

    def _get_mock_analysis(self) -> dict:
        """Return a canned analysis for development."""
        return {
            "overview": "Mock analysis for development. Set OPENAI_API_KEY for real analysis.",
            "deliverables": [
                {
                    "title": "MOCK-DELIVERABLE-001",
                    "description": "Placeholder deliverable",
                    "acceptance_criteria": ["Reviewed and approved by the client"],
                }
            ],
            "milestones": [{"title": "Kickoff", "duration_weeks": 1}],
            "risks": [{"risk": "Brief not analyzed by a model", "mitigation": "Configure OpenAI"}],
            "clarifying_questions": {
                "Budget": ["What is the budget range?"],
                "Scope": [],
                "Timeline": [],
                "Resources": [],
            },
            "sources": [],
            "confidence_score": 0.0,
        }


# =============================================================================
# Singleton Factory
# =============================================================================

_ai_service: AIService | None = None


def get_ai_service() -> AIService:
    """Get or create the AI service singleton."""
    global _ai_service
    if _ai_service is None:
        from ...config import get_settings

        settings = get_settings()
        _ai_service = AIService(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            max_tokens=settings.analysis_max_tokens,
            timeout=settings.outbound_timeout_seconds,
        )
    return _ai_service
