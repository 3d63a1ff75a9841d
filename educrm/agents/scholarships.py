"""Financial Aid Agent.

Recommends scholarships for a student. The reasoning backend names
scholarships; names are matched back to the catalog case-insensitively
(either name may contain the other) and unmatched names are dropped. Each run
replaces the student's previous ScholarshipRecommendation records, capped by
``thresholds.max_scholarship_recommendations``.
"""

from datetime import timedelta
from typing import Any, Optional

from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient

APPLICATION_TASK_DAYS = 7


def find_scholarship(name: str, scholarships: list[Any]) -> Optional[Any]:
    """Catalog entry whose name contains ``name`` or is contained in it."""
    wanted = name.strip().lower()
    if not wanted:
        return None
    for scholarship in scholarships:
        known = scholarship.scholarship_name.lower()
        if known and (wanted in known or known in wanted):
            return scholarship
    return None


async def recommend_financial_aid(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Recommend scholarships and financial planning advice for a student.

    High-priority recommendations also get a counselor Task to start the
    application within a week.

    Returns:
        Dict with recommendations (catalog-joined), financial_planning,
        application_strategy, improvement_tips and alternative_funding

    Raises:
        NotFoundError: If the student does not exist
    """
    logger = get_logger(correlation_id=correlation_id, phase="scholarships", component="financial_aid")

    student = store["StudentProfile"].get(student_id)
    scholarships = store["Scholarship"].filter({"is_active": True})

    request = synthesize(
        "scholarships/financial_aid.j2",
        "financial_aid",
        correlation_id=correlation_id,
        student=student,
        scholarships=scholarships,
        limits=params.prompt_limits,
    )
    result = await reasoner.invoke(request)

    for previous in store["ScholarshipRecommendation"].filter({"student_id": student.id}):
        store["ScholarshipRecommendation"].delete(previous.id)

    limit = params.thresholds.max_scholarship_recommendations
    now = utcnow()
    recommendations = []
    for rec in result["recommended_scholarships"]:
        scholarship = find_scholarship(rec["scholarship_name"], scholarships)
        if scholarship is None:
            logger.debug("Recommended scholarship not in catalog", name=rec["scholarship_name"])
            continue
        if len(recommendations) >= limit:
            break

        saved = store["ScholarshipRecommendation"].create(
            {
                "student_id": student.id,
                "scholarship_id": scholarship.id,
                "match_score": rec["match_score"],
                "eligibility_status": rec.get("eligibility_status"),
                "match_reasons": rec.get("match_reasons", []),
                "missing_requirements": rec.get("missing_requirements", []),
                "status": "suggested",
                "generated_at": now,
            }
        )

        if rec.get("priority") == "high":
            store["Task"].create(
                {
                    "title": f"Apply for {scholarship.scholarship_name}",
                    "description": (
                        f"High-priority scholarship match ({rec['match_score']}%) "
                        f"for {student.full_name}"
                    ),
                    "student_id": student.id,
                    "assigned_to": student.counselor_id,
                    "priority": "high",
                    "due_date": now + timedelta(days=APPLICATION_TASK_DAYS),
                    "status": "pending",
                    "task_type": "scholarship_application",
                    "created_by_ai": True,
                }
            )

        recommendations.append(
            {
                **rec,
                "recommendation_id": saved.id,
                "scholarship": scholarship.to_dict(),
            }
        )

    logger.info(
        "Financial aid recommendations generated",
        student_id=student.id,
        suggested=len(result["recommended_scholarships"]),
        saved=len(recommendations),
    )
    return {
        "success": True,
        "recommendations": recommendations,
        "financial_planning": result.get("financial_planning_advice", ""),
        "application_strategy": result.get("application_strategy", ""),
        "improvement_tips": result.get("eligibility_improvement_tips", []),
        "alternative_funding": result.get("alternative_funding", []),
    }
