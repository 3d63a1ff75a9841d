"""At-Risk Detection Agent.

Computes engagement metrics for active students, asks the reasoning backend
for a dropout risk assessment and, for students assessed at one of the
configured at-risk levels, records an AtRiskStudent and one counselor Task
per recommended intervention.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Optional

from educrm.models.base import as_utc, utcnow
from educrm.models.config import SystemParams
from educrm.models.student import ACTIVE_STAGES
from educrm.store.repository import EntityStore
from educrm.utils.aggregation import compute_rate, reduce_metric
from educrm.utils.errors import CRMError, InvalidInputError
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient

STALLED_STATUSES = {"draft", "documents_pending"}
NOT_PROGRESSING_STATUSES = {"draft", "rejected", "withdrawn"}


def engagement_metrics(
    communications: list[Any],
    tasks: list[Any],
    applications: list[Any],
    no_contact_days: int,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Engagement indicators for one student.

    ``communications`` must be newest first. Without any communication the
    days since last contact is ``no_contact_days``; without any rated
    sentiment the negative rate is 0.
    """
    now = now or utcnow()

    if communications:
        last_contact = as_utc(communications[0].created_date)
        days_since_last_contact = (now - last_contact).days
    else:
        days_since_last_contact = no_contact_days

    rated = [c for c in communications if c.sentiment]
    negative = reduce_metric(rated, lambda c: c.sentiment == "negative")

    pending = [t for t in tasks if t.status == "pending"]
    overdue = reduce_metric(pending, lambda t: t.due_date is not None and as_utc(t.due_date) < now)

    return {
        "days_since_last_contact": days_since_last_contact,
        "total_communications": len(communications),
        "negative_sentiment_rate": compute_rate(negative, len(rated)),
        "pending_tasks": len(pending),
        "overdue_tasks": overdue,
        "total_applications": len(applications),
        "stalled_applications": reduce_metric(applications, lambda a: a.status in STALLED_STATUSES),
    }


def application_progress(applications: list[Any]) -> float:
    """Share of applications that moved past draft and are still alive, 0-100."""
    progressing = reduce_metric(applications, lambda a: a.status not in NOT_PROGRESSING_STATUSES)
    return progressing / max(len(applications), 1) * 100


def _task_title(action_type: str) -> str:
    return f"[At-Risk] {action_type.replace('_', ' ').upper()}"

async def _assess_student(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student: Any,
    communications: list[Any],
    applications: list[Any],
    tasks: list[Any],
    logger,
    correlation_id: Optional[str] = None,
) -> Optional[dict[str, Any]]:
    """Assess one student; persist and return the at-risk entry, or None."""
    thresholds = params.thresholds
    metrics = engagement_metrics(communications, tasks, applications, thresholds.no_contact_days)
    recent_topics = [
        ", ".join(c.key_topics)
        for c in communications[: params.prompt_limits.recent_communications]
        if c.key_topics
    ]

    request = synthesize(
        "students/risk_assessment.j2",
        "risk_assessment",
        correlation_id=correlation_id,
        student=student,
        metrics=metrics,
        application_statuses=[a.status for a in applications],
        recent_topics=recent_topics,
    )
    assessment = await reasoner.invoke(request)

    risk_level = assessment["risk_level"]
    if risk_level not in thresholds.at_risk_levels:
        logger.debug("Student not at risk", student_id=student.id, risk_level=risk_level)
        return None

    interventions = assessment.get("recommended_interventions", [])
    now = utcnow()
    store["AtRiskStudent"].create(
        {
            "student_id": student.id,
            "risk_level": risk_level,
            "risk_score": assessment.get("risk_score"),
            "risk_factors": assessment.get("risk_factors", []),
            "last_interaction_date": communications[0].created_date if communications else None,
            "days_since_last_contact": metrics["days_since_last_contact"],
            "application_progress": application_progress(applications),
            "ai_outreach_suggestions": interventions,
            "status": "identified",
            "identified_at": now,
        }
    )

    context = json.dumps({"risk_assessment": assessment}, default=str)
    for intervention in interventions:
        store["Task"].create(
            {
                "title": _task_title(intervention["action_type"]),
                "description": intervention["description"],
                "student_id": student.id,
                "assigned_to": student.counselor_id,
                "priority": intervention.get("priority", "high"),
                "due_date": now + timedelta(hours=thresholds.intervention_due_hours),
                "status": "pending",
                "task_type": intervention["action_type"],
                "created_by_ai": True,
                "ai_context": context,
            }
        )

    logger.warning(
        "Student at risk",
        student_id=student.id,
        risk_level=risk_level,
        interventions=len(interventions),
    )
    return {
        "student_id": student.id,
        "student_name": student.full_name,
        "risk_assessment": assessment,
        "interventions_created": len(interventions),
    }


async def detect_at_risk_students(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student_id: Optional[str] = None,
    run_for_all: bool = False,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Assess dropout risk for one student or for every active student.

    When scanning every student, one student's failed assessment is reported
    in ``failures`` and the scan continues. Records are only written once a
    student's assessment is complete.

    Args:
        student_id: Student to assess (ignored when ``run_for_all``)
        run_for_all: Scan every student in an active pipeline stage

    Returns:
        Dict with students_analyzed, at_risk_count, at_risk_students, failed
        and failures

    Raises:
        InvalidInputError: If neither ``student_id`` nor ``run_for_all`` is given
        NotFoundError: If ``student_id`` does not exist
        UpstreamError: If the single requested student cannot be assessed
    """
    logger = get_logger(correlation_id=correlation_id, phase="at_risk", component="risk_detector")

    if run_for_all:
        students = store["StudentProfile"].filter({"status": ACTIVE_STAGES})
    elif student_id:
        students = [store["StudentProfile"].get(student_id)]
    else:
        raise InvalidInputError("student_id or run_for_all is required")

    limits = params.fetch_limits
    communications = store["CommunicationLog"].list(limit=limits.communications, sort="-created_date")
    applications = store["Application"].list(limit=limits.applications, sort="-created_date")
    tasks = store["Task"].list(limit=limits.tasks, sort="-created_date")

    logger.info("Assessing students for dropout risk", students=len(students))

    at_risk_students = []
    failures = []
    for student in students:
        try:
            entry = await _assess_student(
                store,
                reasoner,
                params,
                student,
                [c for c in communications if c.student_id == student.id],
                [a for a in applications if a.student_id == student.id],
                [t for t in tasks if t.student_id == student.id],
                logger,
                correlation_id=correlation_id,
            )
        except CRMError as e:
            if not run_for_all:
                raise
            logger.error("Failed to assess student", student_id=student.id, error=e.message)
            failures.append({"student_id": student.id, "success": False, "error": e.public_message})
            continue
        if entry is not None:
            at_risk_students.append(entry)

    logger.info(
        "At-risk detection complete",
        students_analyzed=len(students),
        at_risk_count=len(at_risk_students),
        failed=len(failures),
    )
    return {
        "success": True,
        "students_analyzed": len(students),
        "at_risk_count": len(at_risk_students),
        "at_risk_students": at_risk_students,
        "failed": len(failures),
        "failures": failures,
    }
