"""Shared base for every stored record."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes coming from the store as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Record(BaseModel):
    """Base class for entities held in the external store.

    Records tolerate unknown fields, since the store's schema evolves
    independently of this code. Joins between records are by id only.

    Attributes:
        id: Unique identifier (auto-generated UUID)
        created_date: Creation timestamp (UTC)
    """

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_date: datetime = Field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """JSON-safe dict of all fields, including unknown ones."""
        return self.model_dump(mode="json")
