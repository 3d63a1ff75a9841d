"""CRM Insights Agent.

Aggregates student, counselor and outreach data, asks the reasoning backend
for insights on each area and returns them next to the computed metrics.

Report types:
- student_analytics: pipeline and application distributions
- counselor_performance: per-counselor workload, conversion and SLA stats
- outreach_success: outreach status/type distributions and campaign results
- all: the three above, reasoned concurrently
"""

import asyncio
from typing import Any, Optional

from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.aggregation import (
    assigned_to,
    compute_rate,
    conversion_rate,
    count_by,
    count_multi,
    field,
    reduce_metric,
    response_rate,
    round_half_up,
    safe_average,
    sla_compliance,
)
from educrm.utils.errors import InvalidInputError
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient

INSIGHT_TYPES = ("student_analytics", "counselor_performance", "outreach_success")
ALL_INSIGHTS = "all"


def student_metrics(students: list, applications: list) -> dict[str, Any]:
    """Headline numbers for the student analytics report.

    The conversion rate here is enrolled applications per student.
    """
    enrolled = reduce_metric(applications, lambda a: a.status == "enrolled")
    return {
        "total_students": len(students),
        "total_applications": len(applications),
        "conversion_rate": compute_rate(enrolled, len(students)),
        "avg_applications_per_student": round_half_up(
            len(applications) / len(students) if students else 0.0, 1
        ),
    }


def counselor_stats(
    counselors: list, students: list, applications: list, chats: list
) -> list[dict[str, Any]]:
    """Per-counselor workload, conversion, response time and SLA compliance.

    A counselor without logged conversations gets an average response time of
    0 and full SLA compliance.
    """
    stats = []
    for counselor in counselors:
        own_students = assigned_to(students, counselor)
        student_ids = {s.id for s in own_students}
        own_apps = [a for a in applications if a.student_id in student_ids]
        own_chats = assigned_to(chats, counselor)

        stats.append(
            {
                "name": counselor.name,
                "students": len(own_students),
                "applications": len(own_apps),
                "enrolled": reduce_metric(own_apps, lambda a: a.status == "enrolled"),
                "conversion_rate": conversion_rate(own_apps),
                "avg_response_time": round_half_up(
                    safe_average(c.response_time_minutes or 0 for c in own_chats), 0
                ),
                "sla_violations": reduce_metric(own_chats, lambda c: c.sla_violated),
                "sla_compliance": sla_compliance(own_chats),
            }
        )
    return stats


def outreach_stats(outreaches: list, campaigns: list) -> dict[str, Any]:
    return {
        "total_outreach": len(outreaches),
        "by_status": count_by(outreaches, field("status")),
        "response_rate": response_rate(outreaches),
        "by_type": count_by(outreaches, field("outreach_type")),
        "campaigns": [
            {
                "name": c.campaign_name,
                "type": c.scenario_type,
                "response_rate": c.response_rate,
                "is_active": c.is_active,
            }
            for c in campaigns
        ],
    }


async def _student_analytics(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    correlation_id: Optional[str],
) -> dict[str, Any]:
    students = store["StudentProfile"].list()
    applications = store["Application"].list(limit=params.fetch_limits.applications)
    metrics = student_metrics(students, applications)

    request = synthesize(
        "insights/student_analytics.j2",
        "student_analytics_insights",
        correlation_id=correlation_id,
        total_students=len(students),
        status_distribution=count_by(students, field("status")),
        country_distribution=count_multi(students, field("preferred_countries")),
        degree_levels=count_by(students, field("preferred_degree_level")),
        total_applications=len(applications),
        application_status_distribution=count_by(applications, field("status")),
        conversion_rate=metrics["conversion_rate"],
    )
    result = await reasoner.invoke(request)
    return {**result, "metrics": metrics}


async def _counselor_performance(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    correlation_id: Optional[str],
) -> dict[str, Any]:
    stats = counselor_stats(
        store["Counselor"].list(),
        store["StudentProfile"].list(),
        store["Application"].list(limit=params.fetch_limits.applications),
        store["CommunicationLog"].list(limit=params.fetch_limits.communications),
    )
    request = synthesize(
        "insights/counselor_performance.j2",
        "counselor_performance_insights",
        correlation_id=correlation_id,
        counselor_stats=stats,
    )
    result = await reasoner.invoke(request)
    return {**result, "counselor_stats": stats}


async def _outreach_success(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    correlation_id: Optional[str],
) -> dict[str, Any]:
    stats = outreach_stats(store["UniversityOutreach"].list(), store["OutreachCampaign"].list())
    request = synthesize(
        "insights/outreach_success.j2",
        "outreach_success_insights",
        correlation_id=correlation_id,
        outreach_stats=stats,
    )
    result = await reasoner.invoke(request)
    return {**result, "metrics": stats}


_BUILDERS = {
    "student_analytics": _student_analytics,
    "counselor_performance": _counselor_performance,
    "outreach_success": _outreach_success,
}


async def generate_crm_insights(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    report_type: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Generate reasoning-backed insights for one area or for all of them.

    Args:
        store: Entity store
        reasoner: Reasoning client
        params: System parameters
        report_type: One of INSIGHT_TYPES or "all"
        correlation_id: Correlation ID for logging

    Returns:
        Dict with success, report_type, generated_at and insights keyed by area

    Raises:
        InvalidInputError: If report_type is not supported
        UpstreamError: If a reasoning call fails
    """
    logger = get_logger(correlation_id=correlation_id, phase="insights", component="crm_insights")

    if report_type == ALL_INSIGHTS:
        areas = list(INSIGHT_TYPES)
    elif report_type in INSIGHT_TYPES:
        areas = [report_type]
    else:
        raise InvalidInputError(
            "Invalid report type",
            details={"report_type": report_type, "allowed": INSIGHT_TYPES + (ALL_INSIGHTS,)},
        )

    logger.info("Generating CRM insights", areas=areas)

    results = await asyncio.gather(
        *(_BUILDERS[area](store, reasoner, params, correlation_id) for area in areas)
    )
    insights = dict(zip(areas, results))

    logger.info("CRM insights generated", areas=areas)
    return {
        "success": True,
        "report_type": report_type,
        "generated_at": utcnow().isoformat(),
        "insights": insights,
    }
