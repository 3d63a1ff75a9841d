"""Application Tracking Agent.

Keeps application status and milestones current.

- parse_application_status_email: reads an inbound university email, detects
  which application it concerns and its new status, and applies the change
  when the detection is confident and the lifecycle allows it. Every applied
  change is logged as an ApplicationStatusUpdate and announced to the student
  (in-app and by email) and to their counselor.
- transition_application: a counselor-driven status change, same guard and log.
- complete_milestone: marks one milestone of an application as done.
"""

import os
from typing import Any, Optional

from educrm.models.application import (
    MILESTONE_KEYS,
    ApplicationStatus,
    Milestone,
    normalize_status,
)
from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.errors import InvalidInputError, NotFoundError
from educrm.utils.logger import get_logger
from educrm.utils.mailer import MailDeliveryError, Mailer
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient
from educrm.utils.state_machine import APPLICATION_LIFECYCLE

HIGH_PRIORITY_STATUSES = {
    ApplicationStatus.CONDITIONAL_OFFER.value,
    ApplicationStatus.UNCONDITIONAL_OFFER.value,
    ApplicationStatus.REJECTED.value,
}

STATUS_VALUES = {s.value for s in ApplicationStatus}

STUDENT_PORTAL_LINK = "/StudentPortal?tab=applications"


def _label(status: str) -> str:
    return status.replace("_", " ")


def _portal_url() -> str:
    return os.getenv("EDUCRM_PORTAL_URL", "http://localhost:8000").rstrip("/") + "/StudentPortal"


def status_email_body(student: Any, new_status: str, analysis: dict[str, Any]) -> str:
    lines = [
        f"Dear {student.first_name or 'Student'},",
        "",
        "Your application status has been updated.",
        "",
        f"New Status: {_label(new_status).upper()}",
    ]
    if analysis.get("reference_number"):
        lines.append(f"Reference: {analysis['reference_number']}")
    next_steps = (analysis.get("details") or {}).get("next_steps")
    if next_steps:
        if isinstance(next_steps, list):
            next_steps = "; ".join(next_steps)
        lines.append(f"Next Steps: {next_steps}")
    lines += [
        "",
        f"Login to your student portal to view full details: {_portal_url()}",
        "",
        "Best regards,",
        "Education Team",
    ]
    return "\n".join(lines)


def _record_status_change(
    store: EntityStore,
    application: Any,
    new_status: str,
    source: str,
    **details: Any,
) -> Any:
    store["Application"].update(application.id, {"status": new_status})
    return store["ApplicationStatusUpdate"].create(
        {
            "application_id": application.id,
            "previous_status": application.status,
            "new_status": new_status,
            "update_source": source,
            **details,
        }
    )


async def parse_application_status_email(
    store: EntityStore,
    reasoner: ReasoningClient,
    mailer: Mailer,
    params: SystemParams,
    email_subject: str,
    email_body: str,
    email_from: str,
    student_email: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Detect and apply an application status change from a university email.

    Outcomes that change nothing are returned with ``success: False`` (or
    ``True`` for "Status unchanged") and a message:
    - no application id or status detected
    - the detected application is not one of the student's
    - confidence below ``thresholds.status_detection_confidence``
    - the lifecycle does not allow the detected change

    Raises:
        NotFoundError: If no student has ``student_email``
    """
    logger = get_logger(correlation_id=correlation_id, phase="applications", component="status_email_parser")

    students = store["StudentProfile"].filter({"email": student_email}, limit=1)
    if not students:
        raise NotFoundError("StudentProfile", student_email)
    student = students[0]

    applications = store["Application"].filter({"student_id": student.id})

    request = synthesize(
        "applications/status_email.j2",
        "application_status",
        correlation_id=correlation_id,
        subject=email_subject,
        sender=email_from,
        body=email_body,
        applications=applications,
        statuses=[s.value for s in ApplicationStatus],
    )
    analysis = await reasoner.invoke(request)

    detected_id = analysis.get("application_id")
    detected_status = normalize_status(analysis.get("status") or "")
    if not detected_id or detected_status not in STATUS_VALUES:
        logger.warning("No status detected in email", student_id=student.id)
        return {"success": False, "message": "Could not extract status from email", "analysis": analysis}

    application = next((a for a in applications if a.id == detected_id), None)
    if application is None:
        logger.warning("Detected application not found", application_id=detected_id)
        return {"success": False, "message": "Application not found"}

    confidence = analysis["confidence"]
    if confidence < params.thresholds.status_detection_confidence:
        logger.warning(
            "Low confidence status detection",
            application_id=application.id,
            confidence=confidence,
            suggested_status=detected_status,
        )
        return {
            "success": False,
            "message": "Low confidence in status detection",
            "confidence": confidence,
            "suggested_status": detected_status,
        }

    previous_status = application.status
    if previous_status == detected_status:
        return {"success": True, "message": "Status unchanged", "status": previous_status}

    if not APPLICATION_LIFECYCLE.can_transition(previous_status, detected_status):
        logger.warning(
            "Detected status change not allowed",
            application_id=application.id,
            previous_status=previous_status,
            detected_status=detected_status,
        )
        return {
            "success": False,
            "message": "Detected status change is not allowed",
            "previous_status": previous_status,
            "suggested_status": detected_status,
        }
    new_status = APPLICATION_LIFECYCLE.assert_transition(previous_status, detected_status).value

    status_update = _record_status_change(
        store,
        application,
        new_status,
        "email",
        detected_from_email=f"{email_subject}\n\n{email_body[: params.prompt_limits.email_excerpt_chars]}",
        university_reference=analysis.get("reference_number"),
        confidence_score=confidence,
        extracted_details=analysis.get("details") or {},
        auto_detected=True,
    )

    store["Notification"].create(
        {
            "student_id": student.id,
            "recipient_id": student.id,
            "recipient_type": "student",
            "type": "application",
            "title": f"Application Status Updated: {_label(new_status)}",
            "message": (
                f'Your application status has been automatically updated to "{_label(new_status)}". '
                "Check your portal for details."
            ),
            "priority": "high" if new_status in HIGH_PRIORITY_STATUSES else "medium",
            "link": STUDENT_PORTAL_LINK,
        }
    )

    counselor_notified = False
    if student.counselor_id:
        store["Notification"].create(
            {
                "counselor_id": student.counselor_id,
                "recipient_id": student.counselor_id,
                "recipient_type": "counselor",
                "related_student_id": student.id,
                "type": "application",
                "title": f"Student Application Status Changed: {student.full_name}",
                "message": (
                    f'Application status updated from "{previous_status}" to "{new_status}" '
                    "(Auto-detected)"
                ),
                "priority": "medium",
            }
        )
        counselor_notified = True

    student_emailed = False
    try:
        await mailer.send(
            student.email,
            f"Application Status Update: {_label(new_status)}",
            status_email_body(student, new_status, analysis),
        )
        student_emailed = True
    except MailDeliveryError as e:
        logger.warning("Status email to student failed", student_id=student.id, error=str(e))

    store["ApplicationStatusUpdate"].update(
        status_update.id,
        {
            "notification_sent_student": student_emailed,
            "notification_sent_counselor": counselor_notified,
        },
    )

    logger.info(
        "Application status updated from email",
        application_id=application.id,
        previous_status=previous_status,
        new_status=new_status,
        confidence=confidence,
    )
    return {
        "success": True,
        "message": "Status updated and notifications sent",
        "previous_status": previous_status,
        "new_status": new_status,
        "confidence": confidence,
        "application_id": application.id,
        "status_update_id": status_update.id,
    }


def transition_application(
    store: EntityStore,
    application_id: str,
    new_status: str,
    notes: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Move an application to ``new_status`` and log the change.

    Raises:
        NotFoundError: If the application does not exist
        InvalidTransitionError: If the lifecycle does not allow the change
    """
    logger = get_logger(correlation_id=correlation_id, phase="applications", component="application_tracker")

    application = store["Application"].get(application_id)
    target = APPLICATION_LIFECYCLE.assert_transition(application.status, new_status).value

    status_update = _record_status_change(
        store,
        application,
        target,
        "manual",
        extracted_details={"notes": notes} if notes else {},
    )

    logger.info(
        "Application status changed",
        application_id=application_id,
        previous_status=application.status,
        new_status=target,
    )
    return {
        "success": True,
        "application": store["Application"].get(application_id).to_dict(),
        "status_update_id": status_update.id,
    }


def complete_milestone(
    store: EntityStore,
    application_id: str,
    milestone: str,
    notes: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Mark a milestone complete and return the application's progress.

    Raises:
        InvalidInputError: If ``milestone`` is not one of MILESTONE_KEYS
        NotFoundError: If the application does not exist
    """
    logger = get_logger(correlation_id=correlation_id, phase="applications", component="application_tracker")

    if milestone not in MILESTONE_KEYS:
        raise InvalidInputError(
            f"Unknown milestone: {milestone}", details={"allowed": MILESTONE_KEYS}
        )

    application = store["Application"].get(application_id)
    milestones = dict(application.milestones)
    milestones[milestone] = Milestone(completed=True, date=utcnow(), notes=notes)

    updated = store["Application"].update(
        application_id, {"milestones": {k: m.model_dump() for k, m in milestones.items()}}
    )

    logger.info("Milestone completed", application_id=application_id, milestone=milestone)
    return {
        "success": True,
        "application": updated.to_dict(),
        "progress": updated.progress(),
        "next_action": updated.next_action(),
    }
