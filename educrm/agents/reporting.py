"""Custom Report Agent.

Builds the admin reports (conversion analysis, pipeline overview, country
distribution, monthly trends) from store data. Pure aggregation, no reasoning
call. The HTTP layer encodes the result as JSON or CSV.
"""

from datetime import datetime
from typing import Any, Optional

from educrm.models.application import OFFER_STATUSES, ApplicationStatus
from educrm.models.base import as_utc, utcnow
from educrm.models.config import SystemParams
from educrm.models.student import PIPELINE_STAGES
from educrm.store.repository import EntityStore
from educrm.utils.aggregation import (
    ENROLLED,
    assigned_to,
    compute_rate,
    count_by,
    count_multi,
    field,
    group_by,
    reduce_metric,
)
from educrm.utils.errors import InvalidInputError
from educrm.utils.filtering import FilterCriteria, filter_records
from educrm.utils.logger import get_logger

REPORT_TYPES = (
    "conversion_analysis",
    "pipeline_overview",
    "country_distribution",
    "monthly_trends",
)

REPORT_FORMATS = ("json", "csv")

# Report rates use two decimals, matching the exported spreadsheets
REPORT_RATE_DIGITS = 2


def _is_enrolled(student: Any) -> bool:
    return student.status == ENROLLED


def conversion_analysis(students: list, counselors: list) -> dict[str, Any]:
    enrolled = reduce_metric(students, _is_enrolled)

    by_counselor = []
    for counselor in counselors:
        own = assigned_to(students, counselor)
        own_enrolled = reduce_metric(own, _is_enrolled)
        by_counselor.append(
            {
                "counselor_name": counselor.name,
                "total_students": len(own),
                "enrolled": own_enrolled,
                "conversion_rate": compute_rate(own_enrolled, len(own), REPORT_RATE_DIGITS),
            }
        )

    return {
        "report_name": "Conversion Analysis",
        "summary": {
            "total_students": len(students),
            "enrolled_students": enrolled,
            "conversion_rate": compute_rate(enrolled, len(students), REPORT_RATE_DIGITS),
        },
        "by_status": [
            {"status": status, "count": count}
            for status, count in count_by(students, field("status")).items()
        ],
        "by_counselor": by_counselor,
    }


def pipeline_overview(students: list, applications: list) -> dict[str, Any]:
    stage_counts = count_by(students, field("status"))
    return {
        "report_name": "Pipeline Overview",
        "pipeline": [
            {"stage": label, "count": stage_counts.get(value, 0)}
            for value, label in PIPELINE_STAGES
        ],
        "applications_summary": {
            "total": len(applications),
            "draft": reduce_metric(
                applications, lambda a: a.status == ApplicationStatus.DRAFT.value
            ),
            "submitted": reduce_metric(
                applications, lambda a: a.status == ApplicationStatus.SUBMITTED.value
            ),
            "offers": reduce_metric(applications, lambda a: a.status in OFFER_STATUSES),
        },
    }


def country_distribution(students: list) -> dict[str, Any]:
    counts = count_multi(students, field("preferred_countries"))
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return {
        "report_name": "Country Distribution",
        "by_country": [{"country": country, "count": count} for country, count in ranked],
    }


def monthly_trends(students: list) -> dict[str, Any]:
    months = group_by(students, lambda s: as_utc(s.created_date).strftime("%Y-%m"))
    trends = []
    for month in sorted(months):
        cohort = months[month]
        enrolled = reduce_metric(cohort, _is_enrolled)
        trends.append(
            {
                "month": month,
                "total_students": len(cohort),
                "enrolled": enrolled,
                "conversion_rate": compute_rate(enrolled, len(cohort), REPORT_RATE_DIGITS),
            }
        )
    return {"report_name": "Monthly Trends", "trends": trends}


def generate_custom_report(
    store: EntityStore,
    params: SystemParams,
    report_type: str,
    filters: Optional[dict[str, Any]] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build one custom report over the (filtered) student population.

    Filters narrow the students only: ``counselor_id``, ``status``, ``country``
    (inclusion in preferred_countries) and an inclusive creation-date range.

    Args:
        store: Entity store
        params: System parameters (fetch limits)
        report_type: One of REPORT_TYPES
        filters: Optional student filters
        date_from: Earliest student creation date (inclusive)
        date_to: Latest student creation date (inclusive)
        correlation_id: Correlation ID for logging

    Returns:
        Report dict with report_name, generated_at and the report sections

    Raises:
        InvalidInputError: If report_type is not supported
    """
    logger = get_logger(
        correlation_id=correlation_id, phase="reporting", component="custom_report"
    )

    if report_type not in REPORT_TYPES:
        raise InvalidInputError(
            "Invalid report type", details={"report_type": report_type, "allowed": REPORT_TYPES}
        )

    logger.info("Generating custom report", report_type=report_type, filters=filters or {})

    criteria = FilterCriteria.model_validate(filters or {})
    criteria = criteria.model_copy(update={"date_from": date_from, "date_to": date_to})

    students = filter_records(store["StudentProfile"].list(), criteria)

    if report_type == "conversion_analysis":
        report = conversion_analysis(students, store["Counselor"].list())
    elif report_type == "pipeline_overview":
        applications = store["Application"].list(limit=params.fetch_limits.applications)
        report = pipeline_overview(students, applications)
    elif report_type == "country_distribution":
        report = country_distribution(students)
    else:
        report = monthly_trends(students)

    report["generated_at"] = utcnow().isoformat()

    logger.info(
        "Custom report generated", report_type=report_type, student_count=len(students)
    )
    return report


def report_filename(report_type: str, now: Optional[datetime] = None) -> str:
    """Attachment filename for an exported report: ``<type>_<epoch ms>.csv``."""
    now = now or utcnow()
    return f"{report_type}_{int(now.timestamp() * 1000)}.csv"
