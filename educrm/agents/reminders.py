"""Reminder Runner.

Processes every active Reminder rule: decides whether it fires now, finds the
students it targets, and delivers the reminder in-app and/or by email, with a
ReminderLog per student. One failing reminder never stops the others.
"""

from datetime import datetime
from typing import Any, Optional

from educrm.agents.messaging import render_message
from educrm.models.application import normalize_status
from educrm.models.base import utcnow
from educrm.store.repository import EntityStore
from educrm.utils.aggregation import counselor_keys
from educrm.utils.logger import get_logger
from educrm.utils.mailer import MailDeliveryError, Mailer

DEFAULT_MESSAGES = {
    "application_deadline": (
        "Your application deadline is approaching. "
        "Please complete your application before the deadline."
    ),
    "missing_document": (
        "You have missing documents required for your application. "
        "Please upload them as soon as possible."
    ),
    "document_expiry": "One of your documents is expiring soon. Please renew it to avoid delays.",
    "visa_deadline": (
        "Your visa application deadline is approaching. "
        "Please ensure all requirements are met."
    ),
    "action_required": "An action is required from you. Please check your dashboard for details.",
    "custom": "You have a pending action. Please review and complete it.",
}

ACTION_URLS = {
    "application_deadline": "/MyApplications",
    "missing_document": "/MyDocuments",
    "document_expiry": "/MyDocuments",
    "visa_deadline": "/MyProfile?tab=visa",
    "action_required": "/StudentDashboard",
}
DEFAULT_ACTION_URL = "/StudentDashboard"

STUDENT_AUDIENCES = {"student", "both"}
COUNSELOR_AUDIENCES = {"counselor", "both"}


def _weekday_sunday_first(moment: datetime) -> int:
    # Python's weekday() is Monday=0; reminders use Sunday=0
    return (moment.weekday() + 1) % 7


def should_trigger(reminder: Any, now: Optional[datetime] = None) -> bool:
    """Whether a reminder fires at ``now``.

    - once: only if it never fired
    - daily: always
    - weekly: when today is one of ``days_of_week`` (0=Sunday)
    - on_date: when ``specific_date`` (YYYY-MM-DD) is today (UTC)
    """
    now = now or utcnow()
    timing = reminder.reminder_timing
    if timing.frequency == "once":
        return reminder.last_triggered is None
    if timing.frequency == "daily":
        return True
    if timing.frequency == "weekly" and timing.days_of_week:
        return _weekday_sunday_first(now) in timing.days_of_week
    if timing.frequency == "on_date" and timing.specific_date:
        return timing.specific_date == now.date().isoformat()
    return False


def matching_students(store: EntityStore, reminder: Any) -> list[Any]:
    """Students a reminder targets.

    Students are selected through the statuses of their applications; legacy
    status names in the rule are read as their current equivalents. Rules
    keyed on document types match nobody, since documents are not tracked in
    the store.
    """
    conditions = reminder.trigger_condition
    if conditions.target_audience not in STUDENT_AUDIENCES:
        return []
    if not conditions.application_status:
        return []

    statuses = [normalize_status(s) for s in conditions.application_status]
    applications = store["Application"].filter({"status": statuses})
    student_ids = list(dict.fromkeys(a.student_id for a in applications))
    students = store["StudentProfile"]
    return [s for s in (students.find(sid) for sid in student_ids) if s is not None]


def reminder_message(reminder: Any, student: Any) -> str:
    template = reminder.message_template.get("body") or DEFAULT_MESSAGES.get(
        reminder.reminder_type, DEFAULT_MESSAGES["custom"]
    )
    return render_message(
        template,
        {"student_name": student.full_name, "student_email": student.email},
    )


def _counselor_exists(store: EntityStore, counselor_id: Optional[str]) -> bool:
    if not counselor_id:
        return False
    return any(counselor_id in counselor_keys(c) for c in store["Counselor"].list())


async def _deliver(store: EntityStore, mailer: Mailer, reminder: Any, student: Any, logger) -> None:
    message = reminder_message(reminder, student)
    channels = reminder.delivery_channels
    log = store["ReminderLog"].create(
        {
            "reminder_id": reminder.id,
            "student_id": student.id,
            "delivery_method": "both" if channels.email else "in_app",
            "message_sent": message,
            "triggered_at": utcnow(),
            "status": "pending",
        }
    )
    outcome: dict[str, Any] = {}

    if channels.in_app:
        store["Notification"].create(
            {
                "student_id": student.id,
                "recipient_id": student.id,
                "recipient_type": "student",
                "type": "reminder",
                "title": reminder.message_template.get("subject") or reminder.name,
                "message": message,
                "link": ACTION_URLS.get(reminder.reminder_type, DEFAULT_ACTION_URL),
            }
        )
        outcome["sent_to_student"] = True

    if channels.email and student.email:
        subject = reminder.message_template.get("subject") or f"Reminder: {reminder.name}"
        try:
            await mailer.send(student.email, subject, message)
            outcome["email_status"] = "sent"
        except MailDeliveryError as e:
            logger.warning("Reminder email failed", reminder_id=reminder.id, student_id=student.id, error=str(e))
            outcome["email_status"] = "failed"
            outcome["email_error"] = str(e)

    if reminder.trigger_condition.target_audience in COUNSELOR_AUDIENCES and _counselor_exists(
        store, reminder.counselor_id
    ):
        store["Notification"].create(
            {
                "counselor_id": reminder.counselor_id,
                "recipient_id": reminder.counselor_id,
                "recipient_type": "counselor",
                "type": "reminder",
                "title": f"Student Alert: {reminder.name}",
                "message": f"Reminder triggered for {student.full_name}: {message}",
                "related_student_id": student.id,
            }
        )
        outcome["sent_to_counselor"] = True

    outcome["status"] = "sent"
    store["ReminderLog"].update(log.id, outcome)


async def process_reminders(
    store: EntityStore,
    mailer: Mailer,
    now: Optional[datetime] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Fire every active reminder that is due.

    Returns:
        Dict with processed and errors counts and a summary message
    """
    logger = get_logger(correlation_id=correlation_id, phase="reminders", component="reminder_runner")
    now = now or utcnow()

    reminders = store["Reminder"].filter({"is_active": True, "status": "active"})
    logger.info("Processing reminders", reminders=len(reminders))

    processed = 0
    errors = 0
    for reminder in reminders:
        try:
            if should_trigger(reminder, now):
                students = matching_students(store, reminder)
                for student in students:
                    await _deliver(store, mailer, reminder, student, logger)
                store["Reminder"].update(reminder.id, {"last_triggered": now})
                logger.debug("Reminder fired", reminder_id=reminder.id, students=len(students))
            processed += 1
        except Exception as e:
            logger.error(
                "Error processing reminder",
                reminder_id=reminder.id,
                error=str(e),
                exc_info=True,
            )
            errors += 1

    logger.info("Reminder processing complete", processed=processed, errors=errors)
    return {
        "success": True,
        "processed": processed,
        "errors": errors,
        "message": f"Processed {processed} reminders with {errors} errors",
    }
