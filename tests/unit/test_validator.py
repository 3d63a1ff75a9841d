"""
Unit tests for the reasoning output schema validator.
"""

import json

import pytest

from educrm.utils.errors import ReasoningValidationError
from educrm.utils.validator import ConfigurationError, SchemaValidator

SCHEMA_NAMES = [
    "application_status",
    "coaching",
    "counselor_performance_insights",
    "email_draft",
    "financial_aid",
    "lead_score",
    "outreach_campaign",
    "outreach_response",
    "outreach_success_insights",
    "performance_trends",
    "risk_assessment",
    "student_analytics_insights",
    "university_match",
]


@pytest.fixture
def validator():
    """Create a SchemaValidator over the packaged schemas."""
    return SchemaValidator()


class TestLoadSchema:
    """Test cases for SchemaValidator.load_schema."""

    @pytest.mark.parametrize("schema_name", SCHEMA_NAMES)
    def test_packaged_schemas_are_valid_draft7(self, validator, schema_name):
        """Test that every shipped schema loads and has a title."""
        schema = validator.load_schema(schema_name)

        assert schema["title"]
        assert schema["type"] == "object"

    def test_schema_is_cached(self, validator):
        assert validator.load_schema("lead_score") is validator.load_schema("lead_score")

    def test_missing_schema_raises(self, validator):
        with pytest.raises(ConfigurationError, match="Schema file not found"):
            validator.load_schema("does_not_exist")

    def test_invalid_json_raises(self, tmp_path):
        """Test that a malformed schema file is reported as configuration error."""
        # Arrange
        (tmp_path / "broken.json").write_text("{not json")
        validator = SchemaValidator(schema_dir=tmp_path)

        # Act & Assert
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            validator.load_schema("broken")


class TestValidate:
    """Test cases for SchemaValidator.validate / errors."""

    def test_valid_payload_passes(self, validator):
        schema = validator.load_schema("lead_score")

        validator.validate({"lead_score": 72, "lead_quality": "hot"}, schema, "lead_score")

    def test_missing_required_field(self, validator):
        schema = validator.load_schema("lead_score")

        messages = validator.errors({"lead_score": 72}, schema)

        assert messages == ["Missing required field 'lead_quality' at (root)"]

    def test_out_of_range_and_enum(self, validator):
        schema = validator.load_schema("lead_score")

        messages = validator.errors({"lead_score": 140, "lead_quality": "lukewarm"}, schema)

        assert any(m.startswith("Out of range at 'lead_score'") for m in messages)
        assert any(m.startswith("Invalid value at 'lead_quality'") for m in messages)

    def test_type_mismatch(self, validator):
        schema = validator.load_schema("lead_score")

        messages = validator.errors({"lead_score": "high", "lead_quality": "hot"}, schema)

        assert messages == ["Type mismatch at 'lead_score': expected number"]

    def test_validate_raises_with_raw_text(self, validator):
        """Test that a failed validation carries the schema name and raw output."""
        # Arrange
        schema = validator.load_schema("lead_score")
        payload = {"lead_score": 72}

        # Act
        with pytest.raises(ReasoningValidationError) as exc_info:
            validator.validate(payload, schema, "lead_score", json.dumps(payload))

        # Assert
        error = exc_info.value
        assert error.schema_name == "lead_score"
        assert error.status_code == 502
        assert error.raw == '{"lead_score": 72}'
        assert "lead_quality" in error.message
