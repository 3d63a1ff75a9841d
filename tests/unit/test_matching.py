"""
Unit tests for the university matching agent.
"""

import pytest

from educrm.agents.matching import match_universities_and_courses
from educrm.utils.errors import NotFoundError


@pytest.fixture
def catalog(store):
    store["University"].create({"id": "u1", "university_name": "Maple U", "country": "Canada", "qs_ranking": 120})
    store["University"].create({"id": "u2", "university_name": "Closed U", "status": "inactive"})
    store["Course"].create({"id": "c1", "course_title": "MSc Data Science", "university_id": "u1", "level": "master"})
    store["Course"].create({"id": "c2", "course_title": "Old Course", "university_id": "u1", "status": "closed"})
    store["UniversityAgreement"].create({"university_id": "u1", "commission_rate": 12})
    store["Scholarship"].create({"scholarship_name": "Maple Merit", "amount": "5000 CAD"})
    return store


class TestMatchUniversitiesAndCourses:
    """Test cases for match_universities_and_courses."""

    @pytest.mark.asyncio
    async def test_enriches_matches_and_drops_unknown_ids(self, catalog, reasoner, backend, params):
        """Test that matches are joined to the catalog and unknown ids are dropped."""
        # Arrange
        student = catalog["StudentProfile"].create(
            {"first_name": "Ana", "preferred_countries": ["Canada"], "preferred_degree_level": "master"}
        )
        backend.script(
            "University Match",
            {
                "matches": [
                    {"university_id": "u1", "course_id": "c1", "match_score": 91, "match_reasons": ["Fit"]},
                    {"university_id": "u2", "course_id": "c1", "match_score": 80},
                    {"university_id": "u1", "course_id": "c2", "match_score": 70},
                ]
            },
        )

        # Act
        result = await match_universities_and_courses(catalog, reasoner, params, student.id)

        # Assert
        assert result["success"] is True
        assert result["total_matches"] == 1
        match = result["matches"][0]
        assert match["match_score"] == 91
        assert match["university"]["name"] == "Maple U"
        assert match["university"]["ranking"] == 120
        assert match["course"]["title"] == "MSc Data Science"
        assert result["generated_at"]

    @pytest.mark.asyncio
    async def test_prompt_excludes_inactive_catalog(self, catalog, reasoner, backend, params):
        """Test that only active universities and open courses are offered."""
        student = catalog["StudentProfile"].create({"first_name": "Ana"})
        backend.script("University Match", {"matches": []})

        await match_universities_and_courses(catalog, reasoner, params, student.id)

        prompt = backend.prompts_for("University Match")[0]
        assert "Maple U" in prompt
        assert "Closed U" not in prompt
        assert "Old Course" not in prompt
        assert "Maple Merit" in prompt

    @pytest.mark.asyncio
    async def test_unknown_student(self, store, reasoner, params):
        with pytest.raises(NotFoundError):
            await match_universities_and_courses(store, reasoner, params, "missing")
