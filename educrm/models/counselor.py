"""Counselor-side models: counselors, communications, tasks, notifications,
reminders and partner training."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from educrm.models.base import Record


class Counselor(Record):
    """An education counselor.

    Students reference counselors through ``user_id``, not the record id.
    """

    user_id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None


class CommunicationLog(Record):
    """One logged interaction between a counselor and a student."""

    student_id: Optional[str] = None
    counselor_id: Optional[str] = None
    channel: Optional[str] = None
    sentiment: Optional[str] = None
    response_time_minutes: Optional[float] = None
    key_topics: list[str] = Field(default_factory=list)
    sla_violated: bool = False


class Task(Record):
    """A counselor to-do item, often created by a workflow."""

    title: str
    description: Optional[str] = None
    student_id: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: str = "medium"
    due_date: Optional[datetime] = None
    status: str = "pending"
    task_type: Optional[str] = None
    created_by_ai: bool = False
    ai_context: Optional[str] = None


class Notification(Record):
    """An in-app notification for a student or counselor."""

    student_id: Optional[str] = None
    counselor_id: Optional[str] = None
    recipient_id: Optional[str] = None
    recipient_type: Optional[str] = None
    type: str = "general"
    title: str = ""
    message: str = ""
    priority: str = "medium"
    link: Optional[str] = None
    is_read: bool = False
    related_student_id: Optional[str] = None


class ReminderTiming(BaseModel):
    """When a reminder fires.

    frequency is one of: once, daily, weekly, on_date. ``days_of_week`` uses
    0=Sunday .. 6=Saturday.
    """

    frequency: str = "once"
    days_of_week: list[int] = Field(default_factory=list)
    specific_date: Optional[str] = None


class TriggerCondition(BaseModel):
    """Which students a reminder targets."""

    target_audience: str = "student"
    application_status: list[str] = Field(default_factory=list)
    document_types: list[str] = Field(default_factory=list)


class DeliveryChannels(BaseModel):
    in_app: bool = True
    email: bool = False


class Reminder(Record):
    """A scheduled reminder rule processed by the reminder runner."""

    name: str = ""
    reminder_type: str = "custom"
    counselor_id: Optional[str] = None
    is_active: bool = True
    status: str = "active"
    reminder_timing: ReminderTiming = Field(default_factory=ReminderTiming)
    trigger_condition: TriggerCondition = Field(default_factory=TriggerCondition)
    delivery_channels: DeliveryChannels = Field(default_factory=DeliveryChannels)
    message_template: dict[str, str] = Field(default_factory=dict)
    last_triggered: Optional[datetime] = None


class ReminderLog(Record):
    """Delivery record for one reminder sent to one student."""

    reminder_id: str
    student_id: str
    delivery_method: str = "in_app"
    message_sent: str = ""
    triggered_at: Optional[datetime] = None
    status: str = "pending"
    sent_to_student: bool = False
    sent_to_counselor: bool = False
    email_status: Optional[str] = None
    email_error: Optional[str] = None


class TrainingModule(BaseModel):
    """One module of a partner's learning path."""

    module_id: str
    module_title: str = ""
    status: str = "locked"
    progress: float = 0
    quiz_score: Optional[float] = None


class QuizResult(BaseModel):
    module_id: str
    score: float
    total_questions: int
    completed_at: datetime
    passed: bool


class Badge(BaseModel):
    badge_name: str
    badge_type: str
    earned_date: datetime
    description: str = ""


class PartnerTraining(Record):
    """A partner agent's training progress."""

    partner_id: Optional[str] = None
    learning_path: list[TrainingModule] = Field(default_factory=list)
    quiz_results: list[QuizResult] = Field(default_factory=list)
    badges_earned: list[Badge] = Field(default_factory=list)
    overall_progress: float = 0
    extra_data: dict[str, Any] = Field(default_factory=dict)
