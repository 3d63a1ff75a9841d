"""
Repository Module

Typed CRUD interface over the external entity store. Every workflow receives an
EntityStore and talks to one Repository per entity, so tests can substitute
the in-memory implementation for the real backend.

Example Usage:
    from educrm.store.repository import EntityStore

    store = EntityStore.in_memory()
    students = store["StudentProfile"]
    student = students.create({"first_name": "Ana", "status": "new_lead"})
    leads = students.filter({"status": ["new_lead", "contacted"]})
    students.update(student.id, {"status": "contacted"})
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Iterable, Optional, Protocol, TypeVar, Union

from educrm.models.application import Application, ApplicationStatusUpdate
from educrm.models.base import Record, as_utc
from educrm.models.catalog import Course, Scholarship, University, UniversityAgreement
from educrm.models.counselor import (
    CommunicationLog,
    Counselor,
    Notification,
    PartnerTraining,
    Reminder,
    ReminderLog,
    Task,
)
from educrm.models.derived import (
    AtRiskStudent,
    CounselorInteraction,
    LeadScore,
    ScholarshipRecommendation,
)
from educrm.models.outreach import OutreachCampaign, UniversityOutreach
from educrm.models.student import Inquiry, StudentProfile
from educrm.utils.errors import NotFoundError

T = TypeVar("T", bound=Record)

# Entity name (as used by the external store) -> record model
ENTITY_MODELS: dict[str, type[Record]] = {
    "StudentProfile": StudentProfile,
    "Inquiry": Inquiry,
    "Application": Application,
    "ApplicationStatusUpdate": ApplicationStatusUpdate,
    "University": University,
    "Course": Course,
    "Scholarship": Scholarship,
    "UniversityAgreement": UniversityAgreement,
    "UniversityOutreach": UniversityOutreach,
    "OutreachCampaign": OutreachCampaign,
    "Counselor": Counselor,
    "CommunicationLog": CommunicationLog,
    "Task": Task,
    "Notification": Notification,
    "Reminder": Reminder,
    "ReminderLog": ReminderLog,
    "PartnerTraining": PartnerTraining,
    "LeadScore": LeadScore,
    "ScholarshipRecommendation": ScholarshipRecommendation,
    "CounselorInteraction": CounselorInteraction,
    "AtRiskStudent": AtRiskStudent,
}


class Repository(Protocol[T]):
    """CRUD interface for one entity type.

    ``sort`` takes a field name, prefixed with "-" for descending order
    (e.g. "-created_date" returns newest first).
    """

    entity: str

    def list(self, limit: Optional[int] = None, sort: Optional[str] = None) -> list[T]: ...

    def filter(
        self,
        criteria: dict[str, Any],
        limit: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> list[T]: ...

    def get(self, record_id: str) -> T: ...

    def create(self, data: Union[T, dict[str, Any]]) -> T: ...

    def update(self, record_id: str, changes: dict[str, Any]) -> T: ...

    def delete(self, record_id: str) -> None: ...

    def upsert(self, key_field: str, data: Union[T, dict[str, Any]]) -> T: ...


def _matches(record: Record, criteria: dict[str, Any]) -> bool:
    """Equality on every key; a list/set/tuple value means "field in values"."""
    for key, expected in criteria.items():
        actual = getattr(record, key, None)
        if isinstance(expected, (list, set, tuple)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


def _sort_key(field: str):
    def key(record: Record):
        value = getattr(record, field, None)
        if isinstance(value, datetime):
            value = as_utc(value)
        # None sorts before any value
        return (value is not None, value)

    return key


def _apply_sort_and_limit(
    records: list[T], limit: Optional[int], sort: Optional[str]
) -> list[T]:
    if sort:
        descending = sort.startswith("-")
        field = sort.lstrip("-")
        records = sorted(records, key=_sort_key(field), reverse=descending)
    if limit is not None:
        records = records[:limit]
    return records


class InMemoryRepository(Generic[T]):
    """Repository backed by an insertion-ordered dict of records."""

    def __init__(self, entity: str, model: type[T], records: Iterable[T] = ()):
        self.entity = entity
        self.model = model
        self._records: dict[str, T] = {}
        for record in records:
            self._records[record.id] = record

    def _coerce(self, data: Union[T, dict[str, Any]]) -> T:
        if isinstance(data, self.model):
            return data
        if isinstance(data, Record):
            data = data.model_dump()
        return self.model.model_validate(data)

    def _persist(self) -> None:
        """Hook for subclasses that mirror records to durable storage."""

    def list(self, limit: Optional[int] = None, sort: Optional[str] = None) -> list[T]:
        return _apply_sort_and_limit(list(self._records.values()), limit, sort)

    def filter(
        self,
        criteria: dict[str, Any],
        limit: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> list[T]:
        matched = [r for r in self._records.values() if _matches(r, criteria)]
        return _apply_sort_and_limit(matched, limit, sort)

    def get(self, record_id: str) -> T:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(self.entity, record_id)
        return record

    def find(self, record_id: Optional[str]) -> Optional[T]:
        """Like get(), but returns None for a missing or empty id."""
        if not record_id:
            return None
        return self._records.get(record_id)

    def create(self, data: Union[T, dict[str, Any]]) -> T:
        record = self._coerce(data)
        self._records[record.id] = record
        self._persist()
        return record

    def update(self, record_id: str, changes: dict[str, Any]) -> T:
        current = self.get(record_id)
        merged = current.model_dump()
        merged.update(changes)
        merged["id"] = record_id
        record = self.model.model_validate(merged)
        self._records[record_id] = record
        self._persist()
        return record

    def delete(self, record_id: str) -> None:
        if record_id not in self._records:
            raise NotFoundError(self.entity, record_id)
        del self._records[record_id]
        self._persist()

    def upsert(self, key_field: str, data: Union[T, dict[str, Any]]) -> T:
        """Replace the record whose ``key_field`` equals the new record's value.

        The replaced record keeps its id; when no record matches, the new one
        is created.
        """
        record = self._coerce(data)
        key_value = getattr(record, key_field, None)
        existing = self.filter({key_field: key_value}, limit=1) if key_value is not None else []
        if not existing:
            return self.create(record)

        replacement = record.model_copy(update={"id": existing[0].id})
        self._records[replacement.id] = replacement
        self._persist()
        return replacement


class EntityStore:
    """One repository per entity name.

    Injected into every workflow and into the HTTP app; never a module-level
    singleton.
    """

    def __init__(self, repositories: dict[str, InMemoryRepository]):
        missing = set(ENTITY_MODELS) - set(repositories)
        if missing:
            raise ValueError(f"EntityStore missing repositories: {sorted(missing)}")
        self._repositories = repositories

    @classmethod
    def in_memory(cls) -> "EntityStore":
        return cls(
            {name: InMemoryRepository(name, model) for name, model in ENTITY_MODELS.items()}
        )

    def __getitem__(self, entity: str) -> InMemoryRepository:
        try:
            return self._repositories[entity]
        except KeyError:
            raise KeyError(f"Unknown entity: {entity}") from None

    def seed(self, entity: str, records: Iterable[Union[Record, dict[str, Any]]]) -> list[Record]:
        """Bulk-create records, returning the stored models."""
        repo = self[entity]
        return [repo.create(record) for record in records]
