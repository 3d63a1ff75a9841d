"""
Filter Module

Declarative criteria for narrowing candidate lists. Every present criterion
must match (AND semantics); an absent criterion or the value "all" matches
everything. Array-valued record fields such as ``preferred_countries`` match
by inclusion, not equality.

Example Usage:
    from educrm.utils.filtering import FilterCriteria, filter_records

    criteria = FilterCriteria(status="qualified", country="Canada")
    shortlisted = filter_records(students, criteria)
"""

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from educrm.models.base import as_utc
from educrm.utils.aggregation import get_value

R = TypeVar("R")

ALL = "all"

# Record fields holding a degree level, checked in order
DEGREE_LEVEL_FIELDS = ("preferred_degree_level", "degree_level", "level")


class FilterCriteria(BaseModel):
    """Optional filter keys; camelCase aliases are accepted."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: Optional[str] = None
    country: Optional[str] = None
    degree_level: Optional[str] = Field(default=None, alias="degreeLevel")
    min_profile_completeness: Optional[int] = Field(
        default=None, alias="minProfileCompleteness"
    )
    preferred_countries: list[str] = Field(default_factory=list, alias="preferredCountries")
    counselor_id: Optional[str] = None
    nationality: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


def _active(value: Any) -> bool:
    return value is not None and value != ALL


def _degree_level(record: Any) -> Any:
    for name in DEGREE_LEVEL_FIELDS:
        value = get_value(record, name)
        if value is not None:
            return value
    return None


def _countries(record: Any) -> Optional[list[str]]:
    """Countries a record is associated with, or None for scalar-country records."""
    preferred = get_value(record, "preferred_countries")
    if preferred is not None:
        return list(preferred)
    return None


def matches(record: Any, criteria: FilterCriteria) -> bool:
    """True when ``record`` satisfies every active criterion."""
    if _active(criteria.status) and get_value(record, "status") != criteria.status:
        return False

    if _active(criteria.country):
        countries = _countries(record)
        if countries is not None:
            if criteria.country not in countries:
                return False
        elif get_value(record, "country") != criteria.country:
            return False

    if _active(criteria.degree_level) and _degree_level(record) != criteria.degree_level:
        return False

    if criteria.min_profile_completeness is not None:
        if (get_value(record, "profile_completeness") or 0) < criteria.min_profile_completeness:
            return False

    if criteria.preferred_countries:
        countries = _countries(record)
        if countries is None:
            countries = [get_value(record, "country")]
        if not any(c in criteria.preferred_countries for c in countries):
            return False

    if _active(criteria.counselor_id) and get_value(record, "counselor_id") != criteria.counselor_id:
        return False

    if _active(criteria.nationality) and get_value(record, "nationality") != criteria.nationality:
        return False

    if criteria.date_from or criteria.date_to:
        created = as_utc(get_value(record, "created_date"))
        if created is None:
            return False
        if criteria.date_from and created < as_utc(criteria.date_from):
            return False
        if criteria.date_to and created > as_utc(criteria.date_to):
            return False

    return True


def filter_records(
    records: Iterable[R], criteria: Union[FilterCriteria, dict[str, Any], None]
) -> list[R]:
    """Return the records matching every present criterion, in input order."""
    if criteria is None:
        return list(records)
    if isinstance(criteria, dict):
        criteria = FilterCriteria.model_validate(criteria)
    return [record for record in records if matches(record, criteria)]


def match_courses(
    courses: Iterable[R], level: Optional[str] = None, countries: Sequence[str] = ()
) -> list[R]:
    """Narrow the course catalog by study level and destination country."""
    criteria = FilterCriteria(degree_level=level, preferred_countries=list(countries))
    return filter_records(courses, criteria)
