"""University outreach models."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from educrm.models.base import Record


class OutreachStatus(str, Enum):
    """Lifecycle states of an outreach email (see OUTREACH_LIFECYCLE)."""

    DRAFT = "draft"
    SENT = "sent"
    RESPONDED = "responded"
    FOLLOW_UP_NEEDED = "follow_up_needed"
    CLOSED = "closed"


class UniversityOutreach(Record):
    """An inquiry email sent to a university on a student's behalf.

    Attributes:
        student_id: Foreign key to StudentProfile.id
        university_id: Foreign key to University.id
        course_id: Foreign key to Course.id (optional for general inquiries)
        status: OutreachStatus value; changes go through OUTREACH_LIFECYCLE
        is_urgent: True when the course intake is close
        response_*: Populated when the university replies
    """

    student_id: Optional[str] = None
    university_id: Optional[str] = None
    course_id: Optional[str] = None
    outreach_type: str = "course_inquiry"
    email_subject: str = ""
    email_body: str = ""
    status: OutreachStatus = OutreachStatus.DRAFT
    is_urgent: bool = False
    urgency_reason: Optional[str] = None
    automated: bool = False
    sent_date: Optional[datetime] = None
    response_received: bool = False
    response_date: Optional[datetime] = None
    response_content: Optional[str] = None
    response_sentiment: Optional[str] = None
    response_summary: Optional[str] = None
    action_required: bool = False
    action_items: list[str] = Field(default_factory=list)
    counselor_notes: Optional[str] = None
    follow_up_of: Optional[str] = None


class OutreachCampaign(Record):
    """A reusable, generated outreach campaign plan."""

    campaign_name: str = ""
    scenario_type: Optional[str] = None
    subject_template: str = ""
    email_template: str = ""
    target_universities: list[str] = Field(default_factory=list)
    optimal_send_time: dict[str, Any] = Field(default_factory=dict)
    follow_up_sequence: list[dict[str, Any]] = Field(default_factory=list)
    ai_generated: bool = False
    response_rate: Optional[float] = None
    is_active: bool = True
    created_by: Optional[str] = None
