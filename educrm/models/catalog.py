"""Catalog models: universities, courses, scholarships and partnerships.

Catalog records are authored elsewhere and only read by this code.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from educrm.models.base import Record


class University(Record):
    """A university in the catalog."""

    university_name: str = ""
    country: Optional[str] = None
    city: Optional[str] = None
    status: str = "active"
    logo: Optional[str] = None
    website_url: Optional[str] = None
    qs_ranking: Optional[int] = None
    ranking: Optional[int] = None
    acceptance_rate: Optional[float] = None
    student_satisfaction_score: Optional[float] = None
    graduate_employability_rate: Optional[float] = None
    international_students_percent: Optional[float] = None


class Course(Record):
    """A course offered by a university."""

    course_title: str = ""
    university_id: Optional[str] = None
    level: Optional[str] = None
    subject_area: Optional[str] = None
    country: Optional[str] = None
    status: str = "open"
    duration: Optional[str] = None
    intake: Optional[datetime] = None
    tuition_fee_min: Optional[float] = None
    tuition_fee_max: Optional[float] = None
    ielts_overall: Optional[float] = None
    scholarship_available: bool = False


class Scholarship(Record):
    """A scholarship or financial aid opportunity."""

    scholarship_name: str = ""
    provider: Optional[str] = None
    country: Optional[str] = None
    eligible_countries: list[str] = Field(default_factory=list)
    degree_level: list[str] = Field(default_factory=list)
    field_of_study: list[str] = Field(default_factory=list)
    coverage_type: Optional[str] = None
    amount: Optional[str] = None
    minimum_gpa: Optional[float] = None
    application_deadline: Optional[str] = None
    is_active: bool = True


class UniversityAgreement(Record):
    """A partnership agreement with a university."""

    university_id: str
    status: str = "active"
    commission_rate: Optional[float] = None
