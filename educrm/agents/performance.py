"""Performance Agent.

Two operations over counselor activity:

- analyze_performance_trends: organisation-wide counselor ranking,
  destination and course statistics and outreach results, summarised by the
  reasoning backend.
- generate_personalized_coaching: one counselor's conversion, success,
  response-time, task and sentiment metrics, turned into a coaching plan that
  is stored as a CounselorInteraction.
"""

from typing import Any, Optional

from educrm.models.application import ApplicationStatus
from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.aggregation import (
    ENROLLED,
    assigned_to,
    compute_rate,
    counselor_keys,
    conversion_rate,
    count_by,
    field,
    ratio,
    reduce_metric,
    round_half_up,
    safe_average,
    sentiment_score,
)
from educrm.utils.errors import NotFoundError
from educrm.utils.filtering import filter_records
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient

PENDING_STATUSES = {ApplicationStatus.SUBMITTED.value, ApplicationStatus.UNDER_REVIEW.value}
SUCCESS_STATUSES = {ApplicationStatus.UNCONDITIONAL_OFFER.value, ApplicationStatus.ENROLLED.value}

# Number of counselors and courses returned in the trend metrics
TOP_N = 10


def counselor_ranking(counselors: list, students: list, applications: list) -> list[dict[str, Any]]:
    """Counselors ordered by enrolled applications, highest first."""
    ranking = []
    for counselor in counselors:
        student_ids = {s.id for s in assigned_to(students, counselor)}
        own_apps = [a for a in applications if a.student_id in student_ids]
        ranking.append(
            {
                "name": counselor.name,
                "total_students": len(student_ids),
                "total_applications": len(own_apps),
                "enrolled": reduce_metric(own_apps, lambda a: a.status == ENROLLED),
                "conversion_rate": conversion_rate(own_apps),
            }
        )
    return sorted(ranking, key=lambda row: row["enrolled"], reverse=True)


def destination_stats(applications: list, courses_by_id: dict[str, Any]) -> dict[str, dict[str, int]]:
    """Application totals per destination country (taken from the course)."""
    stats: dict[str, dict[str, int]] = {}
    for app in applications:
        course = courses_by_id.get(app.course_id)
        if course is None or not course.country:
            continue
        row = stats.setdefault(course.country, {"total": 0, "enrolled": 0, "pending": 0})
        row["total"] += 1
        if app.status == ENROLLED:
            row["enrolled"] += 1
        if app.status in PENDING_STATUSES:
            row["pending"] += 1
    return stats


def popular_courses(applications: list, courses_by_id: dict[str, Any]) -> list[dict[str, Any]]:
    """Most applied-to courses, keyed "<title> - <level>"."""
    stats: dict[str, dict[str, int]] = {}
    for app in applications:
        course = courses_by_id.get(app.course_id)
        if course is None:
            continue
        row = stats.setdefault(f"{course.course_title} - {course.level}", {"count": 0, "enrolled": 0})
        row["count"] += 1
        if app.status == ENROLLED:
            row["enrolled"] += 1
    ranked = sorted(stats.items(), key=lambda item: item[1]["count"], reverse=True)
    return [{"name": name, **row} for name, row in ranked[:TOP_N]]


def outreach_summary(outreaches: list) -> dict[str, Any]:
    responded = reduce_metric(outreaches, lambda o: o.response_received)
    return {
        "total": len(outreaches),
        "responded": responded,
        "positive": reduce_metric(outreaches, lambda o: o.response_sentiment == "positive"),
        "response_rate": compute_rate(responded, len(outreaches)),
    }


async def analyze_performance_trends(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    filters: Optional[dict[str, Any]] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Compute organisation-wide performance metrics and reason over them.

    When ``filters`` are given, only the matching students (and their
    applications) are considered.

    Returns:
        Dict with success, insights (reasoning output) and metrics
    """
    logger = get_logger(
        correlation_id=correlation_id, phase="performance", component="performance_trends"
    )
    logger.info("Analyzing performance trends", filters=filters or {})

    students = store["StudentProfile"].list()
    applications = store["Application"].list(limit=params.fetch_limits.applications)
    if filters:
        students = filter_records(students, filters)
        student_ids = {s.id for s in students}
        applications = [a for a in applications if a.student_id in student_ids]

    counselors = store["Counselor"].list()
    courses_by_id = {c.id: c for c in store["Course"].list()}

    ranking = counselor_ranking(counselors, students, applications)
    destinations = destination_stats(applications, courses_by_id)
    courses = popular_courses(applications, courses_by_id)
    outreach = outreach_summary(store["UniversityOutreach"].list())

    request = synthesize(
        "performance/trends.j2",
        "performance_trends",
        correlation_id=correlation_id,
        counselor_performance=ranking,
        destination_stats=destinations,
        popular_courses=courses,
        outreach_stats=outreach,
        total_applications=len(applications),
        total_students=len(students),
        limits=params.prompt_limits,
    )
    insights = await reasoner.invoke(request)

    logger.info(
        "Performance trends analyzed",
        counselors=len(counselors),
        applications=len(applications),
    )
    return {
        "success": True,
        "insights": insights,
        "metrics": {
            "counselor_performance": ranking[:TOP_N],
            "destination_stats": destinations,
            "popular_courses": courses,
            "outreach_stats": outreach,
            "totals": {
                "applications": len(applications),
                "students": len(students),
                "counselors": len(counselors),
                "enrolled": reduce_metric(applications, lambda a: a.status == ENROLLED),
            },
        },
    }


def counselor_metrics(
    students: list,
    inquiries: list,
    communications: list,
    tasks: list,
    applications: list,
) -> dict[str, float]:
    """Unrounded coaching metrics for one counselor.

    - conversion_rate: students per assigned inquiry
    - success_rate: applications holding an unconditional offer or enrolled
    - avg_response_time: minutes, over communications that record one
    - task_completion_rate: completed tasks
    - sentiment_score: non-negative share of rated communications (50 when none)
    """
    timed = [c.response_time_minutes for c in communications if c.response_time_minutes]
    completed = reduce_metric(tasks, lambda t: t.status == "completed")
    successful = reduce_metric(applications, lambda a: a.status in SUCCESS_STATUSES)
    return {
        "conversion_rate": ratio(len(students), len(inquiries)),
        "success_rate": ratio(successful, len(applications)),
        "avg_response_time": safe_average(timed),
        "task_completion_rate": ratio(completed, len(tasks)),
        "sentiment_score": sentiment_score(communications),
    }


def _find_counselor(store: EntityStore, counselor_id: str) -> Any:
    matches = store["Counselor"].filter({"user_id": counselor_id}, limit=1)
    if matches:
        return matches[0]
    counselor = store["Counselor"].find(counselor_id)
    if counselor is None:
        raise NotFoundError("Counselor", counselor_id)
    return counselor


async def generate_personalized_coaching(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    counselor_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build a coaching plan for one counselor and store it.

    Args:
        counselor_id: The counselor's user id (or counselor record id)

    Returns:
        Dict with success, coaching (reasoning output) and metrics rounded to
        one decimal

    Raises:
        NotFoundError: If the counselor does not exist
    """
    logger = get_logger(
        correlation_id=correlation_id, phase="performance", component="coaching"
    )
    counselor = _find_counselor(store, counselor_id)
    target_id = counselor.user_id or counselor.id
    keys = sorted(counselor_keys(counselor))
    logger.info("Generating coaching", counselor_id=target_id)

    limits = params.fetch_limits
    students = store["StudentProfile"].filter({"counselor_id": keys})
    inquiries = store["Inquiry"].filter({"assigned_to": keys})
    communications = store["CommunicationLog"].filter(
        {"counselor_id": keys}, limit=limits.counselor_communications, sort="-created_date"
    )
    tasks = store["Task"].filter({"assigned_to": keys})
    student_ids = {s.id for s in students}
    applications = [
        a
        for a in store["Application"].list(limit=limits.applications, sort="-created_date")
        if a.student_id in student_ids
    ]

    metrics = counselor_metrics(students, inquiries, communications, tasks, applications)
    topics = [topic for c in communications for topic in c.key_topics]

    request = synthesize(
        "performance/coaching.j2",
        "coaching",
        correlation_id=correlation_id,
        counselor_name=counselor.name,
        metrics=metrics,
        students_count=len(students),
        inquiries_count=len(inquiries),
        communications_count=len(communications),
        channels=count_by(communications, field("channel")),
        topics=topics,
        status_distribution=count_by(students, field("status")),
        limits=params.prompt_limits,
    )
    coaching = await reasoner.invoke(request)

    store["CounselorInteraction"].upsert(
        "counselor_id",
        {
            "counselor_id": target_id,
            "interaction_type": "ai_coaching",
            "interaction_data": coaching,
            "metrics": metrics,
            "created_date": utcnow(),
        },
    )

    logger.info("Coaching stored", counselor_id=target_id)
    return {
        "success": True,
        "coaching": coaching,
        "metrics": {name: round_half_up(value, 1) for name, value in metrics.items()},
    }
