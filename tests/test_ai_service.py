"""Tests for AI service and model output parsing."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIError

from app.brief_agent.models import StructuredAnalysis, UnstructuredAnalysis
from app.brief_agent.services.ai import (
    ANALYSIS_SYSTEM_PROMPT,
    AIService,
    AIServiceError,
    build_analysis_user_prompt,
    parse_analysis,
)


class FakeCompletions:
    """Mimics ``client.chat.completions`` of the async OpenAI client."""

    def __init__(self, content: str | None = "{}", delay: float = 0.0, error: Exception | None = None):
        self.content = content
        self.delay = delay
        self.error = error
        self.kwargs: dict = {}

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def service_with(completions: FakeCompletions, **kwargs) -> AIService:
    service = AIService(api_key="sk-test", **kwargs)
    service._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return service


class TestAIService:
    """Tests for AIService."""

    def test_mock_mode_without_key(self):
        """Test that a missing API key switches to mock mode."""
        service = AIService(api_key="")
        assert service.use_mock is True

    @pytest.mark.asyncio
    async def test_mock_analysis_is_structured(self):
        """Test that mock output parses as a structured analysis."""
        raw = await AIService(api_key="", use_mock=True).analyze_brief("brief")
        result = parse_analysis(raw)
        assert isinstance(result, StructuredAnalysis)
        assert result.payload.confidence_score == 0.0

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        """Test that the brief is sent at zero temperature with bounded length."""
        completions = FakeCompletions(content='{"overview": "ok"}')
        service = service_with(completions, model="gpt-4o-mini", max_tokens=1200)

        raw = await service.analyze_brief("Build a website")

        assert raw == '{"overview": "ok"}'
        assert completions.kwargs["model"] == "gpt-4o-mini"
        assert completions.kwargs["temperature"] == 0.0
        assert completions.kwargs["max_tokens"] == 1200
        system, user = completions.kwargs["messages"]
        assert system == {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT}
        assert "Build a website" in user["content"]

    @pytest.mark.asyncio
    async def test_empty_content_returns_empty_string(self):
        """Test that a reply without content yields ''."""
        service = service_with(FakeCompletions(content=None))
        assert await service.analyze_brief("brief") == ""

    @pytest.mark.asyncio
    async def test_deadline_raises_ai_service_error(self):
        """Test that a slow completion is abandoned after the timeout."""
        service = service_with(FakeCompletions(delay=1.0), timeout=0.05)

        with pytest.raises(AIServiceError) as exc_info:
            await service.analyze_brief("brief")
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_api_error_raises_ai_service_error(self):
        """Test that OpenAI API errors are wrapped."""
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        error = APIError("rate limited", request=request, body=None)
        service = service_with(FakeCompletions(error=error))

        with pytest.raises(AIServiceError):
            await service.analyze_brief("brief")

    def test_user_prompt_embeds_brief(self):
        """Test that the user prompt carries the brief text."""
        assert "Need a mobile app" in build_analysis_user_prompt("Need a mobile app")


class TestParseAnalysis:
    """Tests for parse_analysis."""

    def test_json_object_is_structured(self):
        """Test that a full analysis object parses."""
        raw = json.dumps(
            {
                "overview": "Redesign the marketing site.",
                "deliverables": [
                    {"title": "D-1", "description": "Homepage", "acceptance_criteria": ["Responsive"]}
                ],
                "milestones": [{"title": "Design", "duration_weeks": 2}],
                "risks": [{"risk": "Scope creep", "mitigation": "Change control"}],
                "clarifying_questions": {"Budget": ["Range?"], "Scope": [], "Timeline": [], "Resources": []},
                "sources": [],
                "confidence_score": 0.7,
            }
        )

        result = parse_analysis(raw)

        assert isinstance(result, StructuredAnalysis)
        assert result.payload.deliverables[0].title == "D-1"
        assert result.payload.milestones[0].duration_weeks == 2
        assert result.to_wire()["clarifying_questions"]["Budget"] == ["Range?"]

    def test_fenced_json_is_structured(self):
        """Test that a markdown-fenced JSON object parses."""
        result = parse_analysis('```json\n{"overview": "Fenced"}\n```')
        assert isinstance(result, StructuredAnalysis)
        assert result.payload.overview == "Fenced"

    def test_unknown_keys_preserved(self):
        """Test that extra keys survive to the wire form."""
        result = parse_analysis('{"overview": "x", "budget_estimate": "10k"}')
        assert result.to_wire()["budget_estimate"] == "10k"

    @pytest.mark.parametrize(
        "raw",
        [
            "Sorry, I cannot analyze this.",
            "",
            "[1, 2, 3]",
            '"just a string"',
        ],
    )
    def test_unusable_output_is_unstructured(self, raw):
        """Test that non-JSON and non-object output keeps the raw text."""
        result = parse_analysis(raw)

        assert isinstance(result, UnstructuredAnalysis)
        assert result.raw == raw
        assert result.to_wire() == {"parse_error": True, "raw": raw}

    @pytest.mark.parametrize(
        "raw",
        [
            '{"overview": "x", "confidence_score": 85}',
            '{"clarifying_questions": {"Budget": "What is the budget?"}}',
            '{"deliverables": "none identified"}',
        ],
    )
    def test_off_shape_object_returned_verbatim(self, raw):
        """Test that valid JSON objects outside the expected shape are not parse errors."""
        result = parse_analysis(raw)

        assert isinstance(result, StructuredAnalysis)
        assert result.to_wire() == json.loads(raw)
        assert "parse_error" not in result.to_wire()

    def test_wire_form_adds_no_defaults(self):
        """Test that keys the model did not send are not filled in."""
        assert parse_analysis('{"overview": "Short"}').to_wire() == {"overview": "Short"}
