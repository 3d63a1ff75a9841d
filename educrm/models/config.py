"""
Configuration Models

Pydantic models for system configuration validation. Every business-rule
constant (pass marks, badge milestones, detection confidence, prompt excerpt
sizes, fetch limits) lives here instead of inline in the workflows.
"""

import json
from typing import Optional
from pathlib import Path
from pydantic import BaseModel, Field, ValidationInfo, field_validator

DEFAULT_CONFIG_PATH = Path("config/system_params.json")


class BatchConfig(BaseModel):
    """Batch configuration for bulk operations."""

    lead_scoring_batch_size: int = Field(default=15, gt=0, lt=100)
    outreach_students_per_run: int = Field(default=10, gt=0, lt=100)
    outreach_courses_per_student: int = Field(default=2, gt=0, lt=20)


class RateLimiting(BaseModel):
    """Throttling for reasoning calls.

    Replaces the fixed one-second pause between generated emails with a token
    bucket, a concurrency cap and a random jitter.
    """

    max_rate: float = Field(default=1.0, gt=0, description="Calls per time_period")
    time_period: float = Field(default=1.0, gt=0, description="Seconds")
    max_concurrent_llm_calls: int = Field(default=5, gt=0, le=20)
    jitter_seconds: float = Field(default=0.25, ge=0.0, le=10.0)


class RetryConfig(BaseModel):
    """Retry policy for transient reasoning-backend failures."""

    max_attempts: int = Field(default=3, gt=0, le=10)
    initial_wait: float = Field(default=1.0, gt=0)
    max_wait: float = Field(default=10.0, gt=0)


class Timeouts(BaseModel):
    """Timeout configuration in seconds."""

    reasoning: float = Field(default=60.0, gt=0)


class QualityBands(BaseModel):
    """Upper bounds (inclusive) of the lead quality bands on a 0-100 score."""

    cold: int = Field(default=30, ge=0, le=100)
    warm: int = Field(default=60, ge=0, le=100)
    hot: int = Field(default=85, ge=0, le=100)

    @field_validator("hot")
    @classmethod
    def validate_band_ordering(cls, v: int, info: ValidationInfo) -> int:
        """Validate that cold < warm < hot."""
        cold = info.data.get("cold", 30)
        warm = info.data.get("warm", 60)
        if not cold < warm < v:
            raise ValueError(
                f"Quality bands must be increasing: cold ({cold}) < warm ({warm}) < hot ({v})"
            )
        return v


class Thresholds(BaseModel):
    """Business-rule thresholds that trigger derived records."""

    quiz_pass_score: float = Field(default=70.0, ge=0.0, le=100.0)
    badge_milestones: dict[str, int] = Field(
        default_factory=lambda: {"beginner": 3, "specialist": 6}
    )
    status_detection_confidence: float = Field(default=70.0, ge=0.0, le=100.0)
    at_risk_levels: list[str] = Field(default_factory=lambda: ["high", "critical"])
    min_profile_completeness: int = Field(default=70, ge=0, le=100)
    urgent_intake_days: int = Field(default=30, gt=0)
    no_contact_days: int = Field(
        default=999, gt=0, description="Days since last contact when none exists"
    )
    intervention_due_hours: int = Field(default=24, gt=0)
    follow_up_after_days: int = Field(default=7, gt=0)
    max_scholarship_recommendations: int = Field(default=10, gt=0)
    lead_quality_bands: QualityBands = Field(default_factory=QualityBands)

    @field_validator("badge_milestones")
    @classmethod
    def validate_milestones(cls, v: dict[str, int]) -> dict[str, int]:
        """Validate badge milestones are positive module counts."""
        for badge_type, completed in v.items():
            if completed <= 0:
                raise ValueError(
                    f"Badge milestone for '{badge_type}' must be greater than 0"
                )
        return v


class PromptLimits(BaseModel):
    """How many records of each kind are excerpted into a prompt."""

    universities: int = Field(default=50, gt=0, le=200)
    courses: int = Field(default=100, gt=0, le=500)
    scholarships: int = Field(default=30, gt=0, le=100)
    financial_aid_scholarships: int = Field(default=20, gt=0, le=100)
    counselors: int = Field(default=5, gt=0, le=50)
    popular_courses: int = Field(default=5, gt=0, le=50)
    recent_communications: int = Field(default=5, gt=0, le=50)
    topics: int = Field(default=20, gt=0, le=100)
    campaign_targets: int = Field(default=10, gt=0, le=100)
    email_excerpt_chars: int = Field(default=500, gt=0)


class FetchLimits(BaseModel):
    """Fixed collection limits used when fetching from the store."""

    applications: int = Field(default=500, gt=0)
    tasks: int = Field(default=500, gt=0)
    communications: int = Field(default=1000, gt=0)
    counselor_communications: int = Field(default=200, gt=0)


class SystemParams(BaseModel):
    """System parameters configuration model."""

    batch_config: BatchConfig = Field(default_factory=BatchConfig)
    rate_limiting: RateLimiting = Field(default_factory=RateLimiting)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    timeouts: Timeouts = Field(default_factory=Timeouts)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    prompt_limits: PromptLimits = Field(default_factory=PromptLimits)
    fetch_limits: FetchLimits = Field(default_factory=FetchLimits)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @classmethod
    def load(cls, config_path: Optional[Path | str] = None) -> "SystemParams":
        """Load system parameters from config file.

        Args:
            config_path: Path to system_params.json. When omitted, the default
                config/system_params.json is used if present, otherwise the
                built-in defaults apply.

        Returns:
            SystemParams: Validated configuration

        Raises:
            FileNotFoundError: If an explicit config_path doesn't exist
            ValueError: If config validation fails
        """
        if config_path is None:
            if not DEFAULT_CONFIG_PATH.exists():
                return cls()
            config_path = DEFAULT_CONFIG_PATH
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}. "
                f"Copy {config_path.stem}.example.json to {config_path.name}"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = json.load(f)

        return cls(**config_data)
