"""
Schema Validator Module
Validates reasoning output against the JSON-schema contracts in educrm/schemas/.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from jsonschema import Draft7Validator, FormatChecker, ValidationError

from educrm.utils.errors import ReasoningValidationError

logger = structlog.get_logger(__name__)

DEFAULT_SCHEMA_DIR = Path(__file__).parent.parent / "schemas"


class ConfigurationError(Exception):
    """Raised when a schema file is missing or is not valid JSON."""

    pass


class SchemaValidator:
    """Loads output schemas by name and validates payloads against them."""

    def __init__(self, schema_dir: Optional[Path] = None):
        """
        Initialize validator with schema directory.

        Args:
            schema_dir: Directory containing JSON schemas (defaults to educrm/schemas/)
        """
        self.schema_dir = schema_dir or DEFAULT_SCHEMA_DIR
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load JSON schema from file.

        Args:
            schema_name: Schema name without extension (e.g., "lead_score")

        Returns:
            Loaded schema dictionary

        Raises:
            ConfigurationError: If schema file not found or invalid
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self.schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            logger.error(
                "schema_not_found",
                schema_name=schema_name,
                schema_path=str(schema_path),
            )
            raise ConfigurationError(f"Schema file not found: {schema_path}")

        try:
            with open(schema_path, "r", encoding="utf-8") as f:
                schema = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("schema_invalid_json", schema_name=schema_name, error=str(e))
            raise ConfigurationError(f"Invalid JSON in schema {schema_name}: {e}") from e

        Draft7Validator.check_schema(schema)
        self._schemas[schema_name] = schema
        logger.debug("schema_loaded", schema_name=schema_name)
        return schema

    def errors(self, payload: Any, schema: Dict[str, Any]) -> List[str]:
        """Return formatted validation errors (empty when the payload is valid)."""
        validator = Draft7Validator(schema, format_checker=FormatChecker())
        found = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
        return self._format_validation_errors(found)

    def validate(
        self, payload: Any, schema: Dict[str, Any], schema_name: str, raw: str = ""
    ) -> None:
        """
        Validate a payload against a schema.

        Raises:
            ReasoningValidationError: If the payload does not match the schema
        """
        messages = self.errors(payload, schema)
        if not messages:
            return

        logger.warning(
            "validation_failed", schema_name=schema_name, error_count=len(messages)
        )
        raise ReasoningValidationError(schema_name, messages, raw)

    def _format_validation_errors(self, errors: List[ValidationError]) -> List[str]:
        """
        Format validation errors into one-line messages.

        Args:
            errors: List of validation errors from jsonschema

        Returns:
            List of formatted error messages
        """
        messages = []

        for error in errors:
            path = " -> ".join([str(p) for p in error.absolute_path]) or "(root)"

            if error.validator == "required":
                missing_field = error.message.split("'")[1]
                messages.append(f"Missing required field '{missing_field}' at {path}")
            elif error.validator == "type":
                messages.append(
                    f"Type mismatch at '{path}': expected {error.validator_value}"
                )
            elif error.validator == "enum":
                messages.append(
                    f"Invalid value at '{path}': {error.instance!r} "
                    f"(allowed: {error.validator_value})"
                )
            elif error.validator in ("minimum", "maximum"):
                messages.append(f"Out of range at '{path}': {error.message}")
            else:
                messages.append(f"Validation error at '{path}': {error.message}")

        return messages
