"""
Reasoning Client Module

Typed adapter around the external reasoning backend. All reasoning calls go
through ``ReasoningClient.invoke``, which:

1. waits on the rate limiter,
2. calls the backend under a timeout,
3. retries connection errors and timeouts with exponential backoff and jitter,
4. strips markdown fences and parses the JSON answer,
5. validates the answer against the request's schema.

Nothing that fails step 4 or 5 is returned to a caller: it raises
ReasoningValidationError instead. Exhausted retries raise UpstreamError.

Example Usage:
    from educrm.utils.reasoning import ReasoningClient
    from educrm.utils.prompt_synthesizer import synthesize

    reasoner = ReasoningClient.from_params(params)
    request = synthesize("matching/university_match.j2", "university_match", ...)
    result = await reasoner.invoke(request)
"""

import asyncio
import json
import logging
from typing import Any, Optional, Protocol, Union

import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from educrm.models.config import RetryConfig, SystemParams
from educrm.utils.errors import CRMError, ReasoningValidationError, UpstreamError
from educrm.utils.prompt_synthesizer import ReasoningRequest, get_default_validator
from educrm.utils.rate_limiter import ReasoningRateLimiter
from educrm.utils.validator import SchemaValidator

logger = structlog.get_logger(__name__)

RETRYABLE_ERRORS = (ConnectionError, TimeoutError)

SYSTEM_PROMPT = (
    "You are an analyst for an international education consultancy. "
    "Respond only with a JSON object that matches the schema you are given."
)


class ReasoningBackend(Protocol):
    """Anything that can answer a prompt under a JSON schema."""

    async def complete(
        self, prompt: str, schema: dict[str, Any]
    ) -> Union[str, dict[str, Any]]: ...


def _extract_json_from_markdown(response_text: str) -> str:
    """Extract JSON from a response, removing markdown code block markers if present.

    Args:
        response_text: Raw text response from the backend

    Returns:
        Clean JSON string with code block markers removed
    """
    json_text = response_text.strip()

    if json_text.startswith("```json"):
        json_text = json_text[7:]
    elif json_text.startswith("```"):
        json_text = json_text[3:]

    if json_text.endswith("```"):
        json_text = json_text[:-3]

    return json_text.strip()


class ClaudeReasoningBackend:
    """Default backend: a one-shot ClaudeSDKClient session with tools disabled."""

    def __init__(self, system_prompt: str = SYSTEM_PROMPT):
        self.system_prompt = system_prompt

    async def complete(self, prompt: str, schema: dict[str, Any]) -> str:
        from claude_agent_sdk import ClaudeAgentOptions, ClaudeSDKClient

        options = ClaudeAgentOptions(
            max_turns=1,  # Stateless one-off operation
            allowed_tools=[],  # Disable all tools
            system_prompt=self.system_prompt,
            setting_sources=None,
        )

        full_prompt = (
            f"{prompt}\n\nRespond with JSON matching this schema:\n"
            f"{json.dumps(schema, indent=2)}"
        )

        response_text = ""
        async with ClaudeSDKClient(options=options) as client:
            await client.query(full_prompt)
            async for message in client.receive_response():
                if hasattr(message, "content") and message.content:
                    for block in message.content:
                        if hasattr(block, "text"):
                            response_text += block.text

        if not response_text:
            raise ConnectionError("Reasoning backend returned an empty response")

        return response_text.strip()


class ReasoningClient:
    """Rate-limited, retried, schema-validated access to a ReasoningBackend."""

    def __init__(
        self,
        backend: ReasoningBackend,
        limiter: Optional[ReasoningRateLimiter] = None,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 60.0,
        validator: Optional[SchemaValidator] = None,
    ):
        self.backend = backend
        self.limiter = limiter or ReasoningRateLimiter()
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.validator = validator or get_default_validator()

    @classmethod
    def from_params(
        cls, params: SystemParams, backend: Optional[ReasoningBackend] = None
    ) -> "ReasoningClient":
        return cls(
            backend=backend or ClaudeReasoningBackend(),
            limiter=ReasoningRateLimiter.from_config(params.rate_limiting),
            retry_config=params.retry,
            timeout=params.timeouts.reasoning,
        )

    async def _call_once(self, request: ReasoningRequest) -> Union[str, dict[str, Any]]:
        async with self.limiter:
            try:
                return await asyncio.wait_for(
                    self.backend.complete(request.prompt, request.schema),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as e:
                raise TimeoutError(
                    f"Reasoning call exceeded {self.timeout}s"
                ) from e

    async def _call_with_retry(
        self, request: ReasoningRequest
    ) -> Union[str, dict[str, Any]]:
        config = self.retry_config
        retryer = AsyncRetrying(
            stop=stop_after_attempt(config.max_attempts),
            wait=wait_exponential(multiplier=config.initial_wait, max=config.max_wait)
            + wait_random(0, config.initial_wait),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retryer:
            with attempt:
                return await self._call_once(request)
        raise UpstreamError("Reasoning retries exhausted")  # unreachable with reraise=True

    def parse(self, raw: Union[str, dict[str, Any]], request: ReasoningRequest) -> Any:
        """Parse a raw backend answer into JSON.

        Raises:
            ReasoningValidationError: If the answer is not valid JSON
        """
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(_extract_json_from_markdown(raw))
        except json.JSONDecodeError as e:
            raise ReasoningValidationError(
                request.schema_name, [f"Output is not valid JSON: {e.msg}"], raw
            ) from e

    async def invoke(self, request: ReasoningRequest) -> dict[str, Any]:
        """Run one reasoning call and return the validated JSON object.

        Raises:
            UpstreamError: If the backend keeps failing after all retries
            ReasoningValidationError: If the answer is unparseable or off-schema
        """
        log = logger.bind(
            correlation_id=request.correlation_id, schema_name=request.schema_name
        )
        log.debug("Reasoning call initiated", prompt_length=len(request.prompt))

        try:
            raw = await self._call_with_retry(request)
        except CRMError:
            raise
        except RETRYABLE_ERRORS as e:
            log.error("Reasoning retries exhausted", error=str(e))
            raise UpstreamError(f"Reasoning backend unavailable: {e}") from e
        except Exception as e:
            log.error("Reasoning call failed", error=str(e))
            raise UpstreamError(f"Reasoning backend failed: {e}") from e

        payload = self.parse(raw, request)
        raw_text = raw if isinstance(raw, str) else json.dumps(raw, default=str)
        self.validator.validate(payload, request.schema, request.schema_name, raw_text)

        log.debug("Reasoning call succeeded", response_length=len(raw_text))
        return payload
