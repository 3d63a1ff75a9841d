"""University Matching Agent.

Recommends university-course combinations for a student. The catalog is
summarised (active universities flagged with their partnership terms, open
courses, scholarships), excerpted into the prompt, and the reasoning answer is
joined back to the catalog. Matches naming an unknown university or course
are dropped.
"""

from typing import Any, Optional

from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.store.repository import EntityStore
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient


def profile_summary(student: Any) -> dict[str, Any]:
    return {
        "education": student.education_history,
        "english_proficiency": student.english_proficiency,
        "work_experience_years": student.work_experience_years,
        "preferred_countries": student.preferred_countries,
        "preferred_degree_level": student.preferred_degree_level,
        "preferred_fields": student.preferred_fields,
        "budget_max": student.budget_max,
        "target_intake": student.target_intake,
        "funding_status": student.funding_status,
        "nationality": student.nationality,
    }


def university_summary(university: Any, agreement: Optional[Any]) -> dict[str, Any]:
    return {
        "id": university.id,
        "name": university.university_name,
        "country": university.country,
        "city": university.city,
        "ranking": university.qs_ranking or university.ranking,
        "acceptance_rate": university.acceptance_rate,
        "student_satisfaction": university.student_satisfaction_score,
        "employability": university.graduate_employability_rate,
        "international_students_percent": university.international_students_percent,
        "has_partnership": agreement is not None,
        "commission_rate": agreement.commission_rate if agreement else None,
    }


def course_summary(course: Any) -> dict[str, Any]:
    return {
        "id": course.id,
        "title": course.course_title,
        "level": course.level,
        "subject": course.subject_area,
        "university_id": course.university_id,
        "country": course.country,
        "tuition_min": course.tuition_fee_min,
        "tuition_max": course.tuition_fee_max,
        "ielts_required": course.ielts_overall,
        "duration": course.duration,
        "scholarship_available": course.scholarship_available,
    }


def scholarship_summary(scholarship: Any) -> dict[str, Any]:
    return {
        "name": scholarship.scholarship_name,
        "amount": scholarship.amount,
        "country": scholarship.country,
        "level": scholarship.degree_level,
        "coverage": scholarship.coverage_type,
    }


def enrich_matches(
    matches: list[dict[str, Any]],
    universities_by_id: dict[str, Any],
    courses_by_id: dict[str, Any],
) -> list[dict[str, Any]]:
    """Attach catalog details to each match; drop matches missing either side."""
    enriched = []
    for match in matches:
        university = universities_by_id.get(match.get("university_id"))
        course = courses_by_id.get(match.get("course_id"))
        if university is None or course is None:
            continue
        enriched.append(
            {
                **match,
                "university": {
                    "id": university.id,
                    "name": university.university_name,
                    "country": university.country,
                    "city": university.city,
                    "logo": university.logo,
                    "ranking": university.qs_ranking or university.ranking,
                    "acceptance_rate": university.acceptance_rate,
                    "employability_rate": university.graduate_employability_rate,
                },
                "course": {
                    "id": course.id,
                    "title": course.course_title,
                    "level": course.level,
                    "subject": course.subject_area,
                    "duration": course.duration,
                    "tuition_min": course.tuition_fee_min,
                    "tuition_max": course.tuition_fee_max,
                    "ielts_required": course.ielts_overall,
                },
            }
        )
    return enriched


async def match_universities_and_courses(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student_profile_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Match a student to university-course combinations.

    Args:
        student_profile_id: StudentProfile id

    Returns:
        Dict with success, matches (enriched), total_matches and generated_at

    Raises:
        NotFoundError: If the student profile does not exist
        UpstreamError: If the reasoning call fails
    """
    logger = get_logger(correlation_id=correlation_id, phase="matching", component="university_matcher")

    student = store["StudentProfile"].get(student_profile_id)

    universities = store["University"].filter({"status": "active"})
    courses = store["Course"].filter({"status": "open"})
    scholarships = store["Scholarship"].list()
    agreements = {
        a.university_id: a for a in store["UniversityAgreement"].filter({"status": "active"})
    }

    logger.info(
        "Matching student",
        student_id=student.id,
        universities=len(universities),
        courses=len(courses),
        partnerships=len(agreements),
    )

    request = synthesize(
        "matching/university_match.j2",
        "university_match",
        correlation_id=correlation_id,
        profile=profile_summary(student),
        universities=[university_summary(u, agreements.get(u.id)) for u in universities],
        courses=[course_summary(c) for c in courses],
        scholarships=[scholarship_summary(s) for s in scholarships],
        limits=params.prompt_limits,
    )
    result = await reasoner.invoke(request)

    matches = enrich_matches(
        result["matches"],
        {u.id: u for u in universities},
        {c.id: c for c in courses},
    )
    dropped = len(result["matches"]) - len(matches)
    if dropped:
        logger.warning("Dropped matches with unknown catalog ids", dropped=dropped)

    logger.info("Matching complete", total_matches=len(matches))
    return {
        "success": True,
        "matches": matches,
        "total_matches": len(matches),
        "generated_at": utcnow().isoformat(),
    }
