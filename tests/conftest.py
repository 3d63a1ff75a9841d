"""
Shared test fixtures.

Provides an in-memory store, a scripted reasoning backend keyed by output
schema title, a reasoning client with rate limiting effectively disabled, and
a mailer that records what it sends.
"""

from typing import Any, Callable, Optional, Union

import pytest

from educrm.models.config import RateLimiting, RetryConfig, SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.mailer import MailDeliveryError
from educrm.utils.rate_limiter import ReasoningRateLimiter
from educrm.utils.reasoning import ReasoningClient

Answer = Union[dict[str, Any], str, Exception, Callable[[str], Any]]


class ScriptedBackend:
    """Reasoning backend that answers by output schema title.

    A scripted list is consumed one answer per call; its last answer repeats.
    Exceptions are raised instead of returned.
    """

    def __init__(self, answers: Optional[dict[str, Any]] = None):
        self.answers: dict[str, list[Answer]] = {}
        self.calls: list[tuple[str, str]] = []
        for title, answer in (answers or {}).items():
            self.script(title, answer)

    def script(self, title: str, *answers: Answer) -> None:
        self.answers[title] = list(answers)

    def prompts_for(self, title: str) -> list[str]:
        return [prompt for t, prompt in self.calls if t == title]

    async def complete(self, prompt: str, schema: dict[str, Any]) -> Any:
        title = schema.get("title", "")
        self.calls.append((title, prompt))
        queue = self.answers.get(title)
        if not queue:
            raise AssertionError(f"No scripted answer for schema '{title}'")
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(prompt)
        return answer


class RecordingMailer:
    """Mailer that records messages; addresses in ``fail_for`` fail delivery."""

    def __init__(self, fail_for: Optional[set[str]] = None):
        self.sent: list[dict[str, str]] = []
        self.fail_for = fail_for or set()

    async def send(self, to: str, subject: str, body: str) -> None:
        if to in self.fail_for:
            raise MailDeliveryError(f"Failed to send email to {to}: mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})


@pytest.fixture
def params() -> SystemParams:
    return SystemParams(
        rate_limiting=RateLimiting(max_rate=1000, time_period=1, jitter_seconds=0),
        retry=RetryConfig(max_attempts=3, initial_wait=0.01, max_wait=0.02),
    )


@pytest.fixture
def store() -> EntityStore:
    return EntityStore.in_memory()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def reasoner(backend: ScriptedBackend, params: SystemParams) -> ReasoningClient:
    return ReasoningClient(
        backend=backend,
        limiter=ReasoningRateLimiter(max_rate=1000, time_period=1, max_concurrent=5, jitter=0),
        retry_config=params.retry,
        timeout=5,
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()
