"""Lead Scoring Agent.

Scores inquiries and student leads 0-100 with the reasoning backend and maps
the score onto the configured quality bands.

Provides functions for:
- Classifying a score into a lead quality band
- Scoring a single inquiry (result written back onto the inquiry)
- Scoring a single student (result stored as the student's LeadScore)
- Parallel batch scoring with a concurrency cap and per-student fallback
"""

import asyncio
from typing import Any, Optional

from educrm.models.config import QualityBands, SystemParams
from educrm.models.student import LeadQuality
from educrm.store.repository import EntityStore
from educrm.utils.errors import CRMError
from educrm.utils.logger import get_logger
from educrm.utils.prompt_synthesizer import synthesize
from educrm.utils.reasoning import ReasoningClient


def classify_lead_quality(score: float, bands: QualityBands) -> LeadQuality:
    """Map a 0-100 score onto cold / warm / hot / qualified.

    Band upper bounds are inclusive: with the default bands 30 is cold, 31 is
    warm and 86 is qualified.
    """
    if score <= bands.cold:
        return LeadQuality.COLD
    if score <= bands.warm:
        return LeadQuality.WARM
    if score <= bands.hot:
        return LeadQuality.HOT
    return LeadQuality.QUALIFIED


async def score_inquiry(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    inquiry_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Score one inquiry and store the result on it.

    The quality band is derived from the score, so it always agrees with the
    configured bands.

    Returns:
        The updated inquiry as a dict

    Raises:
        NotFoundError: If the inquiry does not exist
    """
    logger = get_logger(correlation_id=correlation_id, phase="lead_scoring", component="inquiry_scoring")

    inquiry = store["Inquiry"].get(inquiry_id)
    bands = params.thresholds.lead_quality_bands

    request = synthesize(
        "leads/inquiry_score.j2",
        "lead_score",
        correlation_id=correlation_id,
        inquiry=inquiry,
        bands=bands,
    )
    result = await reasoner.invoke(request)

    score = result["lead_score"]
    quality = classify_lead_quality(score, bands)
    if quality.value != result["lead_quality"]:
        logger.debug(
            "Quality band differs from reasoning output",
            inquiry_id=inquiry_id,
            reported=result["lead_quality"],
            derived=quality.value,
        )

    updated = store["Inquiry"].update(
        inquiry_id,
        {
            "lead_score": score,
            "lead_quality": quality.value,
            "conversion_probability": result.get("conversion_probability"),
            "ai_insights": {
                "urgency": result.get("urgency_level"),
                "readiness": result.get("readiness_to_proceed"),
                "key_interests": result.get("key_interests", []),
                "recommended_action": result.get("recommended_action"),
            },
        },
    )

    logger.info("Inquiry scored", inquiry_id=inquiry_id, lead_score=score, lead_quality=quality.value)
    return updated.to_dict()


async def score_student_lead(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student_id: str,
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Score one student and replace their LeadScore record.

    Returns:
        The stored LeadScore as a dict

    Raises:
        NotFoundError: If the student does not exist
    """
    logger = get_logger(correlation_id=correlation_id, phase="lead_scoring", component="student_scoring")

    student = store["StudentProfile"].get(student_id)
    applications = store["Application"].filter({"student_id": student_id})
    communications = store["CommunicationLog"].filter(
        {"student_id": student_id},
        limit=params.prompt_limits.recent_communications,
        sort="-created_date",
    )
    recent_topics = [topic for c in communications for topic in c.key_topics]

    bands = params.thresholds.lead_quality_bands
    request = synthesize(
        "leads/student_score.j2",
        "lead_score",
        correlation_id=correlation_id,
        student=student,
        applications_count=len(applications),
        communications_count=len(communications),
        recent_topics=recent_topics[: params.prompt_limits.topics],
        bands=bands,
    )
    result = await reasoner.invoke(request)

    score = result["lead_score"]
    quality = classify_lead_quality(score, bands)
    recommended = result.get("recommended_action")

    lead_score = store["LeadScore"].upsert(
        "student_id",
        {
            "student_id": student_id,
            "score": score,
            "score_category": quality.value,
            "conversion_probability": result.get("conversion_probability"),
            "urgency_level": result.get("urgency_level"),
            "key_interests": result.get("key_interests", []),
            "recommended_actions": [recommended] if recommended else [],
            "reasoning": result.get("readiness_to_proceed", ""),
        },
    )
    store["StudentProfile"].update(student_id, {"lead_score": score})

    logger.info("Student scored", student_id=student_id, score=score, category=quality.value)
    return lead_score.to_dict()


async def score_leads_batch(
    store: EntityStore,
    reasoner: ReasoningClient,
    params: SystemParams,
    student_ids: list[str],
    correlation_id: Optional[str] = None,
    max_concurrent: Optional[int] = None,
) -> list[dict[str, Any]]:
    """Score several students in parallel.

    Uses asyncio.Semaphore to cap concurrent scoring calls. One student's
    failure never fails the batch: it is reported in that student's entry.

    Args:
        student_ids: StudentProfile ids to score
        max_concurrent: Concurrency cap (default: rate_limiting.max_concurrent_llm_calls)

    Returns:
        One entry per student, in input order: ``{"student_id", "success",
        "lead_score"}`` on success or ``{"student_id", "success", "error"}``
    """
    logger = get_logger(correlation_id=correlation_id, phase="lead_scoring", component="batch_scoring")

    limit = max_concurrent or params.rate_limiting.max_concurrent_llm_calls
    semaphore = asyncio.Semaphore(limit)

    logger.debug(f"Processing batch with {len(student_ids)} students (max {limit} concurrent)")

    async def score_with_limit(student_id: str) -> dict[str, Any]:
        async with semaphore:
            student_correlation_id = f"{correlation_id}-{student_id}" if correlation_id else None
            try:
                lead_score = await score_student_lead(
                    store, reasoner, params, student_id, student_correlation_id
                )
                return {"student_id": student_id, "success": True, "lead_score": lead_score}
            except CRMError as e:
                logger.error("Failed to score student in batch", student_id=student_id, error=e.message)
                return {"student_id": student_id, "success": False, "error": e.public_message}

    results = await asyncio.gather(
        *(score_with_limit(sid) for sid in student_ids), return_exceptions=True
    )

    outcomes: list[dict[str, Any]] = []
    for student_id, result in zip(student_ids, results):
        if isinstance(result, Exception):
            logger.error(
                "Unexpected exception in batch scoring",
                student_id=student_id,
                error=str(result),
            )
            outcomes.append({"student_id": student_id, "success": False, "error": "Scoring failed"})
        else:
            outcomes.append(result)

    scored = sum(1 for o in outcomes if o["success"])
    logger.info("Batch scoring complete", scored=scored, failed=len(outcomes) - scored)
    return outcomes
