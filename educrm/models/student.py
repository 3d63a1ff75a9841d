"""Student and lead data models."""

from enum import Enum
from typing import Any, Optional

from pydantic import Field

from educrm.models.base import Record


# Pipeline stages in display order (used by the pipeline overview report)
PIPELINE_STAGES = [
    ("new_lead", "New Lead"),
    ("contacted", "Contacted"),
    ("qualified", "Qualified"),
    ("in_progress", "In Progress"),
    ("applied", "Applied"),
    ("enrolled", "Enrolled"),
    ("lost", "Lost"),
]

# Stages considered "active" when scanning for at-risk students
ACTIVE_STAGES = ["in_progress", "applied", "ready_to_apply"]


class LeadQuality(str, Enum):
    """Lead quality band derived from a 0-100 lead score."""

    COLD = "cold"
    WARM = "warm"
    HOT = "hot"
    QUALIFIED = "qualified"


class StudentProfile(Record):
    """A prospective or enrolled student with study preferences.

    Attributes:
        first_name: Given name
        last_name: Family name
        email: Contact email (used to match inbound university emails)
        status: Pipeline stage (new_lead, contacted, qualified, in_progress,
            ready_to_apply, applied, enrolled, lost)
        counselor_id: Assigned counselor (foreign key to Counselor.user_id)
        preferred_countries: Destination countries, matched by inclusion
        preferred_degree_level: Target level (bachelor, master, phd, ...)
        profile_completeness: Computed 0-100 completeness percentage
        lead_score: Latest computed lead score (0-100)
    """

    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    nationality: Optional[str] = None
    status: str = "new_lead"
    counselor_id: Optional[str] = None
    preferred_countries: list[str] = Field(default_factory=list)
    preferred_fields: list[str] = Field(default_factory=list)
    preferred_degree_level: Optional[str] = None
    budget_max: Optional[float] = None
    target_intake: Optional[str] = None
    funding_status: Optional[str] = None
    education_history: list[dict[str, Any]] = Field(default_factory=list)
    english_proficiency: dict[str, Any] = Field(default_factory=dict)
    work_experience_years: float = 0
    career_goals: Optional[str] = None
    profile_completeness: int = 0
    lead_score: Optional[float] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Inquiry(Record):
    """An inbound lead before qualification into a StudentProfile."""

    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    country_of_interest: Optional[str] = None
    degree_level: Optional[str] = None
    field_of_study: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None
    assigned_to: Optional[str] = None
    lead_score: Optional[float] = None
    lead_quality: Optional[LeadQuality] = None
    conversion_probability: Optional[float] = None
    ai_insights: dict[str, Any] = Field(default_factory=dict)
