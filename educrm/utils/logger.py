"""
Structured Logger Module

Configures structlog for JSON-formatted structured logging with correlation IDs.
Every workflow, the API layer and the batch coordinator log through this module
so a single request can be traced across fetch, reasoning and persistence.

Example Usage:
    from educrm.utils.logger import get_logger

    logger = get_logger(
        correlation_id="a1b2c3d4-e5f6-7890-abcd-ef1234567890",
        phase="lead_scoring",
        component="lead_scoring_agent"
    )

    logger.info("Scoring lead", inquiry_id="inq-42")
    logger.warning("Lead has no contact details", inquiry_id="inq-42")
    logger.error("Reasoning call failed", error="Timeout after 60s")

Log Levels:
    - DEBUG: Prompts, schema names, raw reasoning output lengths
    - INFO: Workflow start/finish with record counts, persisted results
    - WARNING: Missing joins, below-threshold detections, skipped records
    - ERROR: Upstream failures, validation failures, unhandled exceptions
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger

# Credentials plus student identity documents held in profiles
SENSITIVE_FIELDS = {
    "password",
    "api_key",
    "token",
    "secret",
    "credential",
    "auth",
    "authorization",
    "passport",
    "visa_number",
}


def mask_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to mask sensitive credentials in log output.

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary to process

    Returns:
        Event dictionary with sensitive values replaced by "***MASKED***".
        A key is sensitive when it equals one of SENSITIVE_FIELDS or contains it
        as an underscore/hyphen separated word.
    """
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        for sensitive in SENSITIVE_FIELDS:
            if (
                key_lower == sensitive
                or key_lower.endswith(f"_{sensitive}")
                or key_lower.endswith(f"-{sensitive}")
                or key_lower.startswith(f"{sensitive}_")
                or key_lower.startswith(f"{sensitive}-")
            ):
                event_dict[key] = "***MASKED***"
                break

    return event_dict


def configure_logging(
    log_file: Optional[str] = None, log_level: str = "INFO"
) -> None:
    """
    Configure structlog with JSON output to stdout and, optionally, a file.

    Args:
        log_file: Path to a log file; None logs to stdout only
        log_level: Logging level name (default: "INFO")

    Log Format (JSON):
        {
            "timestamp": "2025-03-06T10:30:45Z",
            "level": "info",
            "correlation_id": "a1b2c3d4-...",
            "phase": "reporting",
            "component": "custom_report",
            "event": "Report generated",
            "report_type": "conversion_analysis"
        }
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=handlers,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    correlation_id: Optional[str] = None,
    phase: Optional[str] = None,
    component: Optional[str] = None,
) -> BindableLogger:
    """
    Get structured logger with bound context.

    Args:
        correlation_id: Correlation ID for request tracing (generates UUID if not provided)
        phase: Workflow phase (e.g., "lead_scoring", "reporting")
        component: Component name (e.g., "outreach_agent", "api")

    Returns:
        BoundLogger with correlation_id, phase, and component bound to context
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    logger = structlog.get_logger()

    if correlation_id:
        logger = logger.bind(correlation_id=correlation_id)
    if phase:
        logger = logger.bind(phase=phase)
    if component:
        logger = logger.bind(component=component)

    return logger


configure_logging()
