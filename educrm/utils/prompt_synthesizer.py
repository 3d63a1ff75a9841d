"""
Prompt Synthesizer Module

Pairs a rendered prompt with the JSON schema that constrains the reasoning
output. Every reasoning call goes through ``synthesize`` so that no prompt
is ever sent without its output contract.

Usage:
    from educrm.utils.prompt_synthesizer import synthesize

    request = synthesize(
        "leads/inquiry_score.j2",
        "lead_score",
        inquiry=inquiry,
    )
    result = await reasoner.invoke(request)
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from educrm.utils.prompt_loader import PromptLoader, get_default_loader
from educrm.utils.validator import SchemaValidator


@dataclass(frozen=True)
class ReasoningRequest:
    """A prompt and the schema its answer must satisfy."""

    prompt: str
    schema: dict[str, Any]
    schema_name: str
    correlation_id: Optional[str] = field(default=None, compare=False)


class PromptSynthesizer:
    """Renders templates and attaches the named output schema."""

    def __init__(
        self,
        loader: Optional[PromptLoader] = None,
        validator: Optional[SchemaValidator] = None,
    ):
        self.loader = loader or get_default_loader()
        self.validator = validator or get_default_validator()

    def synthesize(
        self,
        template_name: str,
        schema_name: str,
        correlation_id: Optional[str] = None,
        **context: Any,
    ) -> ReasoningRequest:
        prompt = self.loader.render(template_name, correlation_id=correlation_id, **context)
        schema = self.validator.load_schema(schema_name)
        return ReasoningRequest(
            prompt=prompt,
            schema=schema,
            schema_name=schema_name,
            correlation_id=correlation_id,
        )


_default_validator: Optional[SchemaValidator] = None
_default_synthesizer: Optional[PromptSynthesizer] = None


def get_default_validator() -> SchemaValidator:
    global _default_validator
    if _default_validator is None:
        _default_validator = SchemaValidator()
    return _default_validator


def synthesize(
    template_name: str,
    schema_name: str,
    correlation_id: Optional[str] = None,
    **context: Any,
) -> ReasoningRequest:
    """Render ``template_name`` with ``context`` and pair it with ``schema_name``.

    Raises:
        TemplateNotFound: If the template does not exist
        UndefinedError: If the template references a missing context variable
        ConfigurationError: If the schema file is missing or invalid
    """
    global _default_synthesizer
    if _default_synthesizer is None:
        _default_synthesizer = PromptSynthesizer()
    return _default_synthesizer.synthesize(
        template_name, schema_name, correlation_id=correlation_id, **context
    )
