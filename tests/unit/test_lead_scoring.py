"""
Unit tests for the lead scoring agent.
"""

import pytest

from educrm.agents.lead_scoring import (
    classify_lead_quality,
    score_inquiry,
    score_leads_batch,
    score_student_lead,
)
from educrm.models.config import QualityBands
from educrm.models.student import LeadQuality
from educrm.utils.errors import NotFoundError, ReasoningValidationError


def _answer(score, quality="warm", **extra):
    return {"lead_score": score, "lead_quality": quality, **extra}


class TestClassifyLeadQuality:
    """Test cases for quality band boundaries."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, LeadQuality.COLD),
            (30, LeadQuality.COLD),
            (31, LeadQuality.WARM),
            (60, LeadQuality.WARM),
            (61, LeadQuality.HOT),
            (85, LeadQuality.HOT),
            (86, LeadQuality.QUALIFIED),
            (100, LeadQuality.QUALIFIED),
        ],
    )
    def test_default_bands(self, score, expected):
        assert classify_lead_quality(score, QualityBands()) == expected

    def test_custom_bands(self):
        bands = QualityBands(cold=10, warm=20, hot=30)

        assert classify_lead_quality(25, bands) == LeadQuality.HOT


class TestScoreInquiry:
    """Test cases for score_inquiry."""

    @pytest.mark.asyncio
    async def test_writes_score_and_derived_quality(self, store, reasoner, backend, params):
        """Test that the band comes from the score, not the reported label."""
        # Arrange
        inquiry = store["Inquiry"].create({"name": "Ana", "country_of_interest": "Canada"})
        backend.script(
            "Lead Score",
            _answer(72, "warm", conversion_probability=55, urgency_level="high", key_interests=["MBA"]),
        )

        # Act
        result = await score_inquiry(store, reasoner, params, inquiry.id)

        # Assert
        assert result["lead_score"] == 72
        assert result["lead_quality"] == "hot"
        assert result["ai_insights"]["urgency"] == "high"
        stored = store["Inquiry"].get(inquiry.id)
        assert stored.lead_quality == "hot"
        assert stored.conversion_probability == 55
        assert "Canada" in backend.prompts_for("Lead Score")[0]

    @pytest.mark.asyncio
    async def test_missing_inquiry(self, store, reasoner, params):
        with pytest.raises(NotFoundError):
            await score_inquiry(store, reasoner, params, "nope")


class TestScoreStudentLead:
    """Test cases for score_student_lead."""

    @pytest.mark.asyncio
    async def test_replaces_previous_score(self, store, reasoner, backend, params):
        """Test that rescoring keeps one LeadScore per student."""
        # Arrange
        student = store["StudentProfile"].create({"first_name": "Ana", "last_name": "Lima"})
        store["CommunicationLog"].create({"student_id": student.id, "key_topics": ["visa"]})
        backend.script("Lead Score", _answer(20, "cold"), _answer(90, "qualified", recommended_action="Call"))

        # Act
        await score_student_lead(store, reasoner, params, student.id)
        second = await score_student_lead(store, reasoner, params, student.id)

        # Assert
        assert len(store["LeadScore"].filter({"student_id": student.id})) == 1
        assert second["score"] == 90
        assert second["score_category"] == "qualified"
        assert second["recommended_actions"] == ["Call"]
        assert store["StudentProfile"].get(student.id).lead_score == 90
        assert "visa" in backend.prompts_for("Lead Score")[0]


class TestScoreLeadsBatch:
    """Test cases for score_leads_batch."""

    @pytest.mark.asyncio
    async def test_one_failure_does_not_fail_batch(self, store, reasoner, backend, params):
        """Test that a bad answer for one student is reported per student."""
        # Arrange
        good = store["StudentProfile"].create({"first_name": "Good"})
        bad = store["StudentProfile"].create({"first_name": "Bad"})

        def answer(prompt):
            if "Bad" in prompt:
                return "not json at all"
            return _answer(50)

        backend.script("Lead Score", answer)

        # Act
        results = await score_leads_batch(store, reasoner, params, [good.id, "missing", bad.id])

        # Assert
        assert [r["student_id"] for r in results] == [good.id, "missing", bad.id]
        assert results[0]["success"] is True
        assert results[0]["lead_score"]["score"] == 50
        assert results[1] == {"student_id": "missing", "success": False, "error": "Not found"}
        assert results[2]["success"] is False
        assert results[2]["error"] == ReasoningValidationError.public_message
