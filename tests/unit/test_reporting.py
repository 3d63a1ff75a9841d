"""
Unit tests for custom report generation.
"""

from datetime import datetime, timezone

import pytest

from educrm.agents.reporting import generate_custom_report, report_filename
from educrm.utils.errors import InvalidInputError


def _date(month, day=1):
    return datetime(2025, month, day, tzinfo=timezone.utc)


@pytest.fixture
def populated(store):
    store["Counselor"].create({"id": "c1", "user_id": "u-c1", "name": "Jane Smith"})
    store["Counselor"].create({"id": "c2", "name": "Idle Counselor"})
    students = [
        {"status": "enrolled", "counselor_id": "u-c1", "preferred_countries": ["UK", "Canada"], "created_date": _date(1)},
        {"status": "enrolled", "counselor_id": "c1", "preferred_countries": ["UK"], "created_date": _date(1, 20)},
        {"status": "new_lead", "counselor_id": "c1", "preferred_countries": ["Australia"], "created_date": _date(2)},
        {"status": "lost", "preferred_countries": ["UK"], "created_date": _date(3)},
    ]
    store.seed("StudentProfile", students)
    store.seed(
        "Application",
        [
            {"student_id": "x", "status": "draft"},
            {"student_id": "x", "status": "submitted_to_university"},
            {"student_id": "x", "status": "conditional_offer"},
            {"student_id": "x", "status": "unconditional_offer"},
        ],
    )
    return store


class TestGenerateCustomReport:
    """Test cases for generate_custom_report."""

    def test_conversion_analysis(self, populated, params):
        """Test summary, status breakdown and per-counselor rates."""
        # Act
        report = generate_custom_report(populated, params, "conversion_analysis")

        # Assert
        assert report["report_name"] == "Conversion Analysis"
        assert report["summary"] == {"total_students": 4, "enrolled_students": 2, "conversion_rate": 50.0}
        assert sum(row["count"] for row in report["by_status"]) == 4
        jane, idle = report["by_counselor"]
        assert jane == {"counselor_name": "Jane Smith", "total_students": 3, "enrolled": 2, "conversion_rate": 66.67}
        assert idle["conversion_rate"] == 0
        assert report["generated_at"]

    def test_pipeline_overview(self, populated, params):
        report = generate_custom_report(populated, params, "pipeline_overview")

        pipeline = {row["stage"]: row["count"] for row in report["pipeline"]}
        assert pipeline["Enrolled"] == 2
        assert pipeline["Contacted"] == 0
        assert [row["stage"] for row in report["pipeline"]][0] == "New Lead"
        assert report["applications_summary"] == {"total": 4, "draft": 1, "submitted": 1, "offers": 2}

    def test_country_distribution_sorted_by_count(self, populated, params):
        report = generate_custom_report(populated, params, "country_distribution")

        assert report["by_country"][0] == {"country": "UK", "count": 3}
        assert {row["country"] for row in report["by_country"]} == {"UK", "Canada", "Australia"}

    def test_monthly_trends(self, populated, params):
        report = generate_custom_report(populated, params, "monthly_trends")

        assert [t["month"] for t in report["trends"]] == ["2025-01", "2025-02", "2025-03"]
        assert report["trends"][0]["conversion_rate"] == 100.0

    def test_filters_and_date_range(self, populated, params):
        """Test that filters and dates narrow the student population."""
        report = generate_custom_report(
            populated,
            params,
            "conversion_analysis",
            filters={"country": "UK"},
            date_from=_date(1, 10),
            date_to=_date(3, 1),
        )

        assert report["summary"]["total_students"] == 2

    def test_empty_store(self, store, params):
        report = generate_custom_report(store, params, "conversion_analysis")

        assert report["summary"]["conversion_rate"] == 0

    def test_invalid_report_type(self, store, params):
        with pytest.raises(InvalidInputError, match="Invalid report type"):
            generate_custom_report(store, params, "revenue_forecast")


def test_report_filename():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    assert report_filename("monthly_trends", now) == "monthly_trends_1735689600000.csv"
