"""
Unit tests for the reasoning client (rate limit, retry, parse, validate).
"""

import asyncio

import pytest

from educrm.models.config import RetryConfig
from educrm.utils.errors import ReasoningValidationError, UpstreamError
from educrm.utils.prompt_synthesizer import ReasoningRequest, synthesize
from educrm.utils.rate_limiter import ReasoningRateLimiter
from educrm.utils.reasoning import ReasoningClient, _extract_json_from_markdown
from educrm.utils.validator import SchemaValidator

VALID = {"lead_score": 64, "lead_quality": "hot", "conversion_probability": 40}


@pytest.fixture
def request_():
    schema = SchemaValidator().load_schema("lead_score")
    return ReasoningRequest(prompt="score this", schema=schema, schema_name="lead_score")


class TestExtractJson:
    """Test cases for markdown fence stripping."""

    def test_json_fence(self):
        assert _extract_json_from_markdown('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert _extract_json_from_markdown('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert _extract_json_from_markdown('  {"a": 1} ') == '{"a": 1}'


class TestInvoke:
    """Test cases for ReasoningClient.invoke."""

    @pytest.mark.asyncio
    async def test_returns_validated_dict(self, reasoner, backend, request_):
        """Test that a dict answer is validated and returned as-is."""
        backend.script("Lead Score", VALID)

        result = await reasoner.invoke(request_)

        assert result == VALID
        assert backend.calls == [("Lead Score", "score this")]

    @pytest.mark.asyncio
    async def test_parses_markdown_wrapped_json(self, reasoner, backend, request_):
        """Test that a fenced JSON string answer is parsed."""
        backend.script("Lead Score", '```json\n{"lead_score": 20, "lead_quality": "cold"}\n```')

        result = await reasoner.invoke(request_)

        assert result == {"lead_score": 20, "lead_quality": "cold"}

    @pytest.mark.asyncio
    async def test_retries_connection_errors(self, reasoner, backend, request_):
        """Test that transient connection errors are retried."""
        # Arrange
        backend.script(
            "Lead Score",
            ConnectionError("reset"),
            ConnectionError("reset"),
            VALID,
        )

        # Act
        result = await reasoner.invoke(request_)

        # Assert
        assert result == VALID
        assert len(backend.calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_upstream_error(self, reasoner, backend, request_):
        """Test that persistent failures surface as UpstreamError after max_attempts."""
        backend.script("Lead Score", ConnectionError("down"))

        with pytest.raises(UpstreamError, match="unavailable"):
            await reasoner.invoke(request_)

        assert len(backend.calls) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_errors_fail_fast(self, reasoner, backend, request_):
        """Test that unexpected backend errors are not retried."""
        backend.script("Lead Score", RuntimeError("bad request"))

        with pytest.raises(UpstreamError, match="bad request"):
            await reasoner.invoke(request_)

        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_unparseable_output_raises_validation_error(self, reasoner, backend, request_):
        """Test that prose instead of JSON is rejected."""
        backend.script("Lead Score", "I think this lead is warm.")

        with pytest.raises(ReasoningValidationError) as exc_info:
            await reasoner.invoke(request_)

        assert "not valid JSON" in exc_info.value.errors[0]
        assert exc_info.value.raw == "I think this lead is warm."

    @pytest.mark.asyncio
    async def test_off_schema_output_raises_validation_error(self, reasoner, backend, request_):
        """Test that schema violations never reach the caller."""
        backend.script("Lead Score", {"lead_score": 250, "lead_quality": "hot"})

        with pytest.raises(ReasoningValidationError):
            await reasoner.invoke(request_)

    @pytest.mark.asyncio
    async def test_timeout_is_retried_then_fails(self, request_):
        """Test that a hanging backend times out on every attempt."""

        class SlowBackend:
            calls = 0

            async def complete(self, prompt, schema):
                SlowBackend.calls += 1
                await asyncio.sleep(1)
                return VALID

        client = ReasoningClient(
            backend=SlowBackend(),
            limiter=ReasoningRateLimiter(max_rate=100, jitter=0),
            retry_config=RetryConfig(max_attempts=2, initial_wait=0.01, max_wait=0.01),
            timeout=0.05,
        )

        with pytest.raises(UpstreamError):
            await client.invoke(request_)

        assert SlowBackend.calls == 2


class TestSynthesize:
    """Test cases for prompt/schema pairing."""

    def test_synthesize_attaches_schema(self):
        from educrm.models.config import QualityBands
        from educrm.models.student import Inquiry

        request = synthesize(
            "leads/inquiry_score.j2",
            "lead_score",
            correlation_id="abc",
            inquiry=Inquiry(name="Ana"),
            bands=QualityBands(),
        )

        assert request.schema_name == "lead_score"
        assert request.schema["title"] == "Lead Score"
        assert request.correlation_id == "abc"
        assert "Ana" in request.prompt
