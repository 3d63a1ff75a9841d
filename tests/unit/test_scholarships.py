"""
Unit tests for financial aid recommendations.
"""

import pytest

from educrm.agents.scholarships import find_scholarship, recommend_financial_aid
from educrm.models.catalog import Scholarship
from educrm.utils.errors import NotFoundError

TITLE = "Financial Aid Recommendation"


@pytest.fixture
def catalog(store):
    store["Scholarship"].create({"id": "sch-1", "scholarship_name": "Maple Leaf Merit Award"})
    store["Scholarship"].create({"id": "sch-2", "scholarship_name": "Global Women in STEM"})
    store["Scholarship"].create({"id": "sch-3", "scholarship_name": "Retired Fund", "is_active": False})
    return store


class TestFindScholarship:
    """Test cases for catalog name matching."""

    def test_contains_either_way(self):
        catalog = [Scholarship(scholarship_name="Maple Leaf Merit Award")]

        assert find_scholarship("maple leaf merit", catalog) is catalog[0]
        assert find_scholarship("The Maple Leaf Merit Award 2026", catalog) is catalog[0]

    def test_no_match(self):
        assert find_scholarship("Unknown Grant", [Scholarship(scholarship_name="Maple")]) is None
        assert find_scholarship("  ", [Scholarship(scholarship_name="Maple")]) is None


class TestRecommendFinancialAid:
    """Test cases for recommend_financial_aid."""

    @pytest.mark.asyncio
    async def test_saves_matched_recommendations(self, catalog, reasoner, backend, params):
        """Test catalog join, dropped names and the high-priority task."""
        # Arrange
        student = catalog["StudentProfile"].create({"first_name": "Ana", "counselor_id": "c1"})
        backend.script(
            TITLE,
            {
                "recommended_scholarships": [
                    {"scholarship_name": "maple leaf merit", "match_score": 88, "priority": "high"},
                    {"scholarship_name": "Invented Grant", "match_score": 70},
                    {"scholarship_name": "Global Women in STEM", "match_score": 60, "priority": "low"},
                ],
                "financial_planning_advice": "Budget for living costs",
                "alternative_funding": ["Education loan"],
            },
        )

        # Act
        result = await recommend_financial_aid(catalog, reasoner, params, student.id)

        # Assert
        assert [r["scholarship"]["id"] for r in result["recommendations"]] == ["sch-1", "sch-2"]
        assert result["financial_planning"] == "Budget for living costs"
        assert result["alternative_funding"] == ["Education loan"]
        assert result["improvement_tips"] == []
        saved = catalog["ScholarshipRecommendation"].filter({"student_id": student.id})
        assert {r.scholarship_id for r in saved} == {"sch-1", "sch-2"}
        (task,) = catalog["Task"].list()
        assert task.title == "Apply for Maple Leaf Merit Award"
        assert task.task_type == "scholarship_application"
        assert task.assigned_to == "c1"
        assert "Retired Fund" not in backend.prompts_for(TITLE)[0]

    @pytest.mark.asyncio
    async def test_rerun_replaces_previous_recommendations(self, catalog, reasoner, backend, params):
        student = catalog["StudentProfile"].create({"first_name": "Ana"})
        backend.script(
            TITLE,
            {"recommended_scholarships": [{"scholarship_name": "Global Women in STEM", "match_score": 60}]},
            {"recommended_scholarships": [{"scholarship_name": "Maple Leaf Merit Award", "match_score": 80}]},
        )

        await recommend_financial_aid(catalog, reasoner, params, student.id)
        await recommend_financial_aid(catalog, reasoner, params, student.id)

        saved = catalog["ScholarshipRecommendation"].filter({"student_id": student.id})
        assert [r.scholarship_id for r in saved] == ["sch-1"]

    @pytest.mark.asyncio
    async def test_capped_by_threshold(self, catalog, reasoner, backend, params):
        params.thresholds.max_scholarship_recommendations = 1
        student = catalog["StudentProfile"].create({"first_name": "Ana"})
        backend.script(
            TITLE,
            {
                "recommended_scholarships": [
                    {"scholarship_name": "Maple Leaf Merit Award", "match_score": 80},
                    {"scholarship_name": "Global Women in STEM", "match_score": 60},
                ]
            },
        )

        result = await recommend_financial_aid(catalog, reasoner, params, student.id)

        assert len(result["recommendations"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_student(self, store, reasoner, params):
        with pytest.raises(NotFoundError):
            await recommend_financial_aid(store, reasoner, params, "nope")
