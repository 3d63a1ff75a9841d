"""University Outreach Agent.

Drafts inquiry emails to universities on behalf of students and manages each
email through its lifecycle (see OUTREACH_LIFECYCLE):

    draft -> sent -> responded | follow_up_needed -> closed

Provides functions for:
- Generating inquiry drafts for eligible students (profile completeness gate,
  course matching, urgency flag for close intakes)
- Generating a reusable outreach campaign plan
- Sending a draft to the university admissions address
- Logging and analysing a university's reply
- Generating a follow-up for an unanswered email
- Closing an outreach without a response
"""

from datetime import datetime, timedelta
from typing import Any, Optional
from urllib.parse import urlparse

from educrm.models.base import as_utc, utcnow
from educrm.models.config import SystemParams
from educrm.models.outreach import OutreachStatus
from educrm.store.repository import EntityStore
from educrm.utils.errors import CRMError, InvalidInputError, InvalidTransitionError
from educrm.utils.filtering import FilterCriteria, filter_records, match_courses
from educrm.utils.logger import get_logger
from educrm.utils.mailer import Mailer
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient
from educrm.utils.state_machine import OUTREACH_LIFECYCLE

URGENCY_REASON = "Application deadline within {days} days"
DEFAULT_FOLLOW_UP_DAYS = (7, 14)

# States a logged university reply can move an outreach into
RESPONSE_STATES = (OutreachStatus.RESPONDED, OutreachStatus.FOLLOW_UP_NEEDED)


def is_urgent_intake(intake: Optional[datetime], within_days: int, now: Optional[datetime] = None) -> bool:
    """True when the course intake falls before ``now + within_days``."""
    if intake is None:
        return False
    now = now or utcnow()
    return as_utc(intake) < now + timedelta(days=within_days)


def admissions_address(website_url: Optional[str]) -> str:
    """``admissions@<host>`` for a university website.

    Raises:
        InvalidInputError: If the university has no usable website URL
    """
    host = urlparse(website_url).hostname if website_url else None
    if not host:
        raise InvalidInputError("University contact email not available")
    return f"admissions@{host}"


def days_since(moment: Optional[datetime], now: Optional[datetime] = None) -> int:
    if moment is None:
        return 0
    now = now or utcnow()
    return (now - as_utc(moment)).days


def needs_follow_up(outreach: Any, after_days: int, now: Optional[datetime] = None) -> bool:
    """Sent, unanswered and at least ``after_days`` old."""
    return (
        outreach.status == OutreachStatus.SENT.value
        and not outreach.response_received
        and outreach.sent_date is not None
        and days_since(outreach.sent_date, now) >= after_days
    )


def _transition(outreach: Any, target: OutreachStatus) -> str:
    return OUTREACH_LIFECYCLE.assert_transition(outreach.status, target).value


def _accepts_response(status: str) -> bool:
    allowed = OUTREACH_LIFECYCLE.allowed_from(status)
    return any(state.value == status or state in allowed for state in RESPONSE_STATES)


async def generate_university_outreaches(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Draft inquiry emails for students with a sufficiently complete profile.

    Takes the first ``batch_config.outreach_students_per_run`` eligible
    students and up to ``outreach_courses_per_student`` open courses matching
    each student's degree level and preferred countries. Courses whose
    university is missing from the catalog are skipped. Reasoning calls are
    paced by the reasoning client's rate limiter.

    Returns:
        Dict with generated count, failed count and the created outreaches
    """
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="outreach_generator")
    thresholds = params.thresholds
    batch = params.batch_config

    eligible = filter_records(
        store["StudentProfile"].list(),
        FilterCriteria(min_profile_completeness=thresholds.min_profile_completeness),
    )[: batch.outreach_students_per_run]
    courses = store["Course"].filter({"status": "open"})
    universities = {u.id: u for u in store["University"].list()}

    logger.info("Generating outreach drafts", eligible_students=len(eligible))

    created: list[dict[str, Any]] = []
    failed = 0
    for student in eligible:
        matched = match_courses(
            courses, student.preferred_degree_level, student.preferred_countries
        )[: batch.outreach_courses_per_student]

        for course in matched:
            university = universities.get(course.university_id)
            if university is None:
                logger.warning(
                    "Skipping course with unknown university",
                    course_id=course.id,
                    university_id=course.university_id,
                )
                continue

            try:
                request = synthesize(
                    "outreach/inquiry_email.j2",
                    "email_draft",
                    correlation_id=correlation_id,
                    student=student,
                    university=university,
                    course=course,
                )
                email = await reasoner.invoke(request)
            except CRMError as e:
                failed += 1
                logger.error(
                    "Failed to draft outreach email",
                    student_id=student.id,
                    course_id=course.id,
                    error=e.message,
                )
                continue

            urgent = is_urgent_intake(course.intake, thresholds.urgent_intake_days)
            outreach = store["UniversityOutreach"].create(
                {
                    "student_id": student.id,
                    "university_id": university.id,
                    "course_id": course.id,
                    "outreach_type": "course_inquiry",
                    "email_subject": email["subject"],
                    "email_body": email["body"],
                    "status": OutreachStatus.DRAFT.value,
                    "is_urgent": urgent,
                    "urgency_reason": (
                        URGENCY_REASON.format(days=thresholds.urgent_intake_days) if urgent else None
                    ),
                    "automated": True,
                }
            )
            created.append(outreach.to_dict())

    logger.info("Outreach drafts generated", generated=len(created), failed=failed)
    return {"success": True, "generated": len(created), "failed": failed, "outreaches": created}


async def generate_outreach_campaign(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    outreach_type: str,
    objective: str,
    student_criteria: Optional[dict[str, Any]] = None,
    university_criteria: Optional[dict[str, Any]] = None,
    target_universities: Optional[list[str]] = None,
    created_by: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Plan an outreach campaign and store it as an OutreachCampaign.

    Student criteria: ``nationality`` and ``preferredCountries`` (any overlap).
    University criteria: ``countries``. Without explicit targets the campaign
    targets the first ``prompt_limits.campaign_targets`` matching universities.

    Returns:
        Dict with success, campaign, analysis (reasoning output),
        matching_students and target_universities_count
    """
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="campaign_generator")
    student_criteria = student_criteria or {}
    university_criteria = university_criteria or {}

    students = filter_records(
        store["StudentProfile"].list(),
        FilterCriteria.model_validate(
            {
                "nationality": student_criteria.get("nationality"),
                "preferredCountries": student_criteria.get("preferredCountries") or [],
            }
        ),
    )
    universities = store["University"].list()
    countries = university_criteria.get("countries") or []
    if countries:
        universities = [u for u in universities if u.country in countries]

    logger.info(
        "Generating outreach campaign",
        outreach_type=outreach_type,
        matching_students=len(students),
        universities=len(universities),
    )

    request = synthesize(
        "outreach/campaign.j2",
        "outreach_campaign",
        correlation_id=correlation_id,
        outreach_type=outreach_type,
        objective=objective,
        matching_students=len(students),
        sample_student=students[0] if students else None,
        student_criteria=student_criteria,
        university_count=len(universities),
        sample_university=universities[0] if universities else None,
        university_criteria=university_criteria,
        target_universities=target_universities or [],
    )
    plan = await reasoner.invoke(request)

    templates = plan["email_templates"]
    follow_ups = []
    for key, default_days in zip(("follow_up_1", "follow_up_2"), DEFAULT_FOLLOW_UP_DAYS):
        template = templates.get(key)
        if template:
            follow_ups.append(
                {
                    "days_after": template.get("days_after") or default_days,
                    "email_template": template["body"],
                    "subject_template": template["subject"],
                }
            )

    timing = plan.get("optimal_timing", {})
    campaign = store["OutreachCampaign"].create(
        {
            "campaign_name": plan["campaign_name"],
            "scenario_type": outreach_type,
            "email_template": templates["initial"]["body"],
            "subject_template": templates["initial"]["subject"],
            "target_universities": target_universities
            or [u.id for u in universities[: params.prompt_limits.campaign_targets]],
            "optimal_send_time": {
                "day_of_week": timing.get("day_of_week"),
                "hour": timing.get("hour"),
                "timezone": timing.get("timezone"),
            },
            "follow_up_sequence": follow_ups,
            "ai_generated": True,
            "response_rate": plan.get("success_metrics", {}).get("expected_response_rate"),
            "created_by": created_by,
        }
    )

    logger.info("Outreach campaign created", campaign_id=campaign.id)
    return {
        "success": True,
        "campaign": campaign.to_dict(),
        "analysis": plan,
        "matching_students": len(students),
        "target_universities_count": len(universities),
    }


async def send_outreach(
    store: EntityStore,
    mailer: Mailer,
    outreach_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Email a draft to the university's admissions address and mark it sent.

    Raises:
        NotFoundError: If the outreach or its university does not exist
        InvalidTransitionError: If the outreach is not a draft
        InvalidInputError: If the university has no website URL
    """
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="outreach_sender")

    outreach = store["UniversityOutreach"].get(outreach_id)
    status = _transition(outreach, OutreachStatus.SENT)
    university = store["University"].get(outreach.university_id)
    to = admissions_address(university.website_url)

    await mailer.send(to, outreach.email_subject, outreach.email_body)

    updated = store["UniversityOutreach"].update(
        outreach_id, {"status": status, "sent_date": utcnow()}
    )
    logger.info("Outreach sent", outreach_id=outreach_id, to=to)
    return updated.to_dict()


async def log_outreach_response(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    outreach_id: str,
    response_content: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Record a university's reply and analyse it.

    The outreach becomes ``responded``, or ``follow_up_needed`` when the reply
    asks for more. A follow-up also creates a Task and a Notification for the
    student's counselor.

    Raises:
        InvalidInputError: If the reply is empty
        InvalidTransitionError: If the outreach was never sent or is closed
    """
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="response_logger")

    if not response_content or not response_content.strip():
        raise InvalidInputError("Response content is required")

    outreach = store["UniversityOutreach"].get(outreach_id)
    if not _accepts_response(outreach.status):
        raise InvalidTransitionError("outreach", outreach.status, OutreachStatus.RESPONDED.value)

    university = store["University"].find(outreach.university_id)
    university_name = university.university_name if university else "the university"

    request = synthesize(
        "outreach/response_analysis.j2",
        "outreach_response",
        correlation_id=correlation_id,
        outreach=outreach,
        university_name=university_name,
        response_content=response_content,
    )
    analysis = await reasoner.invoke(request)

    target = (
        OutreachStatus.FOLLOW_UP_NEEDED if analysis["requires_follow_up"] else OutreachStatus.RESPONDED
    )
    status = outreach.status if outreach.status == target.value else _transition(outreach, target)

    updated = store["UniversityOutreach"].update(
        outreach_id,
        {
            "status": status,
            "response_received": True,
            "response_date": utcnow(),
            "response_content": response_content,
            "response_sentiment": analysis["sentiment"],
            "response_summary": analysis["summary"],
            "action_required": analysis["action_required"],
            "action_items": analysis.get("action_items", []),
            "is_urgent": outreach.is_urgent or analysis.get("is_urgent", False),
        },
    )

    if analysis["requires_follow_up"]:
        student = store["StudentProfile"].find(outreach.student_id)
        counselor_id = student.counselor_id if student else None
        priority = "high" if updated.is_urgent else "medium"
        store["Task"].create(
            {
                "title": f"Follow up with {university_name}",
                "description": analysis["summary"],
                "student_id": outreach.student_id,
                "assigned_to": counselor_id,
                "priority": priority,
                "due_date": utcnow() + timedelta(hours=params.thresholds.intervention_due_hours),
                "task_type": "outreach_follow_up",
                "created_by_ai": True,
                "ai_context": "; ".join(analysis.get("action_items", [])),
            }
        )
        store["Notification"].create(
            {
                "recipient_id": counselor_id,
                "recipient_type": "counselor",
                "counselor_id": counselor_id,
                "related_student_id": outreach.student_id,
                "type": "outreach_response",
                "title": f"{university_name} replied and needs follow-up",
                "message": analysis["summary"],
                "priority": priority,
            }
        )

    logger.info(
        "Outreach response logged",
        outreach_id=outreach_id,
        status=status,
        sentiment=analysis["sentiment"],
    )
    return {"success": True, "outreach": updated.to_dict(), "analysis": analysis}


async def generate_follow_up(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    outreach_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Draft a follow-up for an unanswered outreach.

    The follow-up is stored as a new draft outreach; the original moves to
    ``follow_up_needed``.

    Raises:
        InvalidInputError: If the outreach is not sent, already answered, or
            younger than ``thresholds.follow_up_after_days``
    """
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="follow_up_manager")

    outreach = store["UniversityOutreach"].get(outreach_id)
    after_days = params.thresholds.follow_up_after_days
    if not needs_follow_up(outreach, after_days):
        raise InvalidInputError(
            f"Follow-up is only generated for sent outreach without a response after {after_days} days",
            details={"outreach_id": outreach_id, "status": outreach.status},
        )
    status = _transition(outreach, OutreachStatus.FOLLOW_UP_NEEDED)

    university = store["University"].find(outreach.university_id)
    request = synthesize(
        "outreach/follow_up.j2",
        "email_draft",
        correlation_id=correlation_id,
        outreach=outreach,
        days_since=days_since(outreach.sent_date),
        university_name=university.university_name if university else "the university",
    )
    email = await reasoner.invoke(request)

    follow_up = store["UniversityOutreach"].create(
        {
            "student_id": outreach.student_id,
            "university_id": outreach.university_id,
            "course_id": outreach.course_id,
            "outreach_type": outreach.outreach_type,
            "email_subject": email["subject"],
            "email_body": email["body"],
            "status": OutreachStatus.DRAFT.value,
            "automated": True,
            "follow_up_of": outreach.id,
            "counselor_notes": (
                "Auto-generated follow-up to outreach from "
                f"{as_utc(outreach.sent_date).strftime('%b %d, %Y')}"
            ),
        }
    )
    store["UniversityOutreach"].update(outreach_id, {"status": status})

    logger.info("Follow-up drafted", outreach_id=outreach_id, follow_up_id=follow_up.id)
    return {"success": True, "follow_up": follow_up.to_dict()}


def close_outreach(
    store: EntityStore, outreach_id: str, correlation_id: Optional[str] = None
) -> dict[str, Any]:
    """Close an outreach that never got a reply."""
    logger = get_logger(correlation_id=correlation_id, phase="outreach", component="follow_up_manager")

    outreach = store["UniversityOutreach"].get(outreach_id)
    status = _transition(outreach, OutreachStatus.CLOSED)
    updated = store["UniversityOutreach"].update(
        outreach_id, {"status": status, "counselor_notes": "Closed - No response received"}
    )
    logger.info("Outreach closed", outreach_id=outreach_id)
    return updated.to_dict()
