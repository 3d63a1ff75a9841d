"""Application data model with milestone tracking."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from educrm.models.base import Record


class ApplicationStatus(str, Enum):
    """Lifecycle states of an application (see APPLICATION_LIFECYCLE)."""

    DRAFT = "draft"
    DOCUMENTS_PENDING = "documents_pending"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    CONDITIONAL_OFFER = "conditional_offer"
    UNCONDITIONAL_OFFER = "unconditional_offer"
    VISA_PROCESSING = "visa_processing"
    ENROLLED = "enrolled"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# Legacy status names still present in older store records
STATUS_ALIASES = {"submitted_to_university": ApplicationStatus.SUBMITTED.value}

# Offer states, counted together in pipeline summaries
OFFER_STATUSES = {
    ApplicationStatus.CONDITIONAL_OFFER.value,
    ApplicationStatus.UNCONDITIONAL_OFFER.value,
}

# Milestones in progress order
MILESTONE_KEYS = [
    "documents_submitted",
    "application_submitted",
    "offer_received",
    "visa_applied",
    "visa_approved",
    "enrolled",
]


def normalize_status(value: str) -> str:
    """Map legacy status names onto the current ApplicationStatus values."""
    return STATUS_ALIASES.get(value, value)


class Milestone(BaseModel):
    """A named checkpoint within an application's progress map."""

    completed: bool = False
    date: Optional[datetime] = None
    notes: Optional[str] = None


class Application(Record):
    """A student's application to one course at one university.

    Attributes:
        student_id: Foreign key to StudentProfile.id
        university_id: Foreign key to University.id
        course_id: Foreign key to Course.id
        status: ApplicationStatus value; changes go through APPLICATION_LIFECYCLE
        milestones: Progress map keyed by MILESTONE_KEYS
    """

    student_id: str
    university_id: Optional[str] = None
    course_id: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.DRAFT
    milestones: dict[str, Milestone] = Field(default_factory=dict)
    offer_deadline: Optional[datetime] = None
    applied_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def map_legacy_status(cls, v: Any) -> Any:
        """Accept legacy status names from older records."""
        if isinstance(v, str):
            return normalize_status(v)
        return v

    def progress(self) -> float:
        """Percentage of MILESTONE_KEYS completed."""
        completed = sum(1 for m in self.milestones.values() if m.completed)
        return completed / len(MILESTONE_KEYS) * 100

    def next_action(self) -> str:
        """Human-readable next step based on milestone completion."""
        steps = [
            ("documents_submitted", "Upload required documents"),
            ("application_submitted", "Submit application to university"),
            ("offer_received", "Waiting for university offer"),
            ("visa_applied", "Apply for visa"),
            ("visa_approved", "Waiting for visa approval"),
            ("enrolled", "Complete enrollment"),
        ]
        if not self.milestones:
            return "Start your application"
        for key, action in steps:
            milestone = self.milestones.get(key)
            if milestone is None or not milestone.completed:
                return action
        return "Application complete"


class ApplicationStatusUpdate(Record):
    """Audit record of an automatic or manual application status change."""

    application_id: str
    previous_status: str
    new_status: str
    update_source: str = "email"
    detected_from_email: Optional[str] = None
    university_reference: Optional[str] = None
    confidence_score: Optional[float] = None
    extracted_details: dict[str, Any] = Field(default_factory=dict)
    auto_detected: bool = False
    notification_sent_student: bool = False
    notification_sent_counselor: bool = False
