"""
Jinja2-based prompt template loading and rendering.

Templates live in educrm/prompts/ and extend ``base/analysis.j2``, which lays
out the persona preamble, the data sections and the numbered list of requested
outputs. Two filters keep data excerpts readable and bounded:

- ``pretty_json``: JSON with 2-space indentation (dates and models serialized)
- ``excerpt(n)``: the first n items of a list

Usage:
    from educrm.utils.prompt_loader import render_prompt

    prompt = render_prompt(
        "insights/student_analytics.j2",
        total_students=120,
        status_distribution={"new_lead": 40, "enrolled": 12},
    )
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    TemplateSyntaxError,
    Undefined,
    UndefinedError,
)
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "prompts"


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    return value


def pretty_json(value: Any) -> str:
    """Serialize a value (models included) as indented JSON."""
    return json.dumps(_to_jsonable(value), indent=2, default=str, ensure_ascii=False)


def excerpt(items: Any, n: int) -> list:
    """First ``n`` items of a sequence; None gives an empty list."""
    if items is None:
        return []
    return list(items)[:n]


class PromptLoader:
    """
    Manages loading and rendering of Jinja2 prompt templates.

    Supports template inheritance, the pretty_json/excerpt filters, and
    logs template failures before re-raising them.
    """

    def __init__(
        self,
        template_dir: Optional[Path] = None,
        strict_undefined: bool = True,
    ) -> None:
        """
        Initialize PromptLoader with Jinja2 environment.

        Args:
            template_dir: Base directory for templates (defaults to educrm/prompts/)
            strict_undefined: If True, raise error for undefined variables (default: True)
        """
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self.strict_undefined = strict_undefined

        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,  # Prompts are text, not HTML
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined if strict_undefined else Undefined,
        )

        self.env.filters["pretty_json"] = pretty_json
        self.env.filters["excerpt"] = excerpt

        logger.debug(
            "PromptLoader initialized",
            template_dir=str(self.template_dir),
            strict_undefined=strict_undefined,
        )

    def render(
        self,
        template_name: str,
        correlation_id: Optional[str] = None,
        **variables: Any,
    ) -> str:
        """
        Render a template with provided variables.

        Args:
            template_name: Path relative to prompts/ (e.g., "outreach/inquiry_email.j2")
            correlation_id: Optional correlation ID for logging
            **variables: Template variables as keyword arguments

        Returns:
            Rendered prompt string

        Raises:
            TemplateNotFound: If template file doesn't exist
            TemplateSyntaxError: If template has syntax errors
            UndefinedError: If strict_undefined=True and variable is missing
        """
        log = logger.bind(
            template_name=template_name,
            correlation_id=correlation_id,
        )

        try:
            template = self.env.get_template(template_name)
            rendered = template.render(**variables)
            log.debug(
                "Template rendered",
                rendered_length=len(rendered),
                variables_provided=list(variables.keys()),
            )
            return rendered

        except TemplateNotFound as e:
            log.error(
                "Template not found",
                template_dir=str(self.template_dir),
                error=str(e),
            )
            raise

        except TemplateSyntaxError as e:
            log.error("Template syntax error", error=str(e), lineno=e.lineno)
            raise

        except UndefinedError as e:
            log.error(
                "Undefined variable in template",
                error=str(e),
                variables_provided=list(variables.keys()),
            )
            raise


_default_loader: Optional[PromptLoader] = None


def get_default_loader() -> PromptLoader:
    """
    Get or create the default PromptLoader instance.

    Returns:
        Global PromptLoader instance
    """
    global _default_loader
    if _default_loader is None:
        _default_loader = PromptLoader()
    return _default_loader


def render_prompt(
    template_name: str,
    correlation_id: Optional[str] = None,
    **variables: Any,
) -> str:
    """
    Convenience function to render a prompt template with the default loader.

    Raises:
        TemplateNotFound: If template file doesn't exist
        TemplateSyntaxError: If template has syntax errors
        UndefinedError: If template references undefined variables
    """
    loader = get_default_loader()
    return loader.render(template_name, correlation_id=correlation_id, **variables)
