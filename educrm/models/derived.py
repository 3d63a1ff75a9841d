"""Derived records produced by reasoning workflows.

Each is recomputed wholesale on every run and upserted by its key
(student or counselor id); there is no versioning.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from educrm.models.base import Record


class LeadScore(Record):
    """Latest lead score for a student (keyed by student_id)."""

    student_id: str
    score: float
    score_category: str
    conversion_probability: Optional[float] = None
    urgency_level: Optional[str] = None
    key_interests: list[str] = Field(default_factory=list)
    recommended_actions: list[str] = Field(default_factory=list)
    reasoning: str = ""


class ScholarshipRecommendation(Record):
    """A scholarship suggested for a student."""

    student_id: str
    scholarship_id: str
    match_score: Optional[float] = None
    eligibility_status: Optional[str] = None
    match_reasons: list[str] = Field(default_factory=list)
    missing_requirements: list[str] = Field(default_factory=list)
    status: str = "suggested"
    generated_at: Optional[datetime] = None


class CounselorInteraction(Record):
    """Coaching output for a counselor (keyed by counselor_id)."""

    counselor_id: str
    interaction_type: str = "ai_coaching"
    interaction_data: dict[str, Any] = Field(default_factory=dict)
    metrics: dict[str, float] = Field(default_factory=dict)


class AtRiskStudent(Record):
    """A student flagged as likely to drop out (keyed by student_id)."""

    student_id: str
    risk_level: str
    risk_score: Optional[float] = None
    risk_factors: list[dict[str, Any]] = Field(default_factory=list)
    last_interaction_date: Optional[datetime] = None
    days_since_last_contact: int = 0
    application_progress: float = 0
    ai_outreach_suggestions: list[dict[str, Any]] = Field(default_factory=list)
    status: str = "identified"
    identified_at: Optional[datetime] = None
