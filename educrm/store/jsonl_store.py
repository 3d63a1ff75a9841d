"""
JSONL Store Module

File-backed repositories: one ``<Entity>.jsonl`` file per entity, rewritten
on every mutation. Used by the command-line tools and local deployments that
have no hosted backend.

Example Usage:
    from educrm.store.jsonl_store import open_jsonl_store

    store = open_jsonl_store("data")
    store["StudentProfile"].create({"first_name": "Ana"})
    # data/StudentProfile.jsonl now holds one line
"""

import json
from pathlib import Path
from typing import Any

import jsonlines

from educrm.store.repository import ENTITY_MODELS, EntityStore, InMemoryRepository


class JsonlRepository(InMemoryRepository):
    """Repository mirrored to a JSONL file."""

    def __init__(self, entity: str, model: type, data_dir: Path):
        self.path = Path(data_dir) / f"{entity}.jsonl"
        super().__init__(entity, model, self._load(model))

    def _load(self, model: type) -> list[Any]:
        """Read existing records; later lines override earlier ones by id.

        Raises:
            IOError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return []

        records: dict[str, Any] = {}
        try:
            with jsonlines.open(self.path) as reader:
                for row in reader:
                    record = model.model_validate(row)
                    records[record.id] = record
        except (json.JSONDecodeError, jsonlines.InvalidLineError) as e:
            raise IOError(f"Corrupted store file {self.path}: {e}") from e

        return list(records.values())

    def _persist(self) -> None:
        """Rewrite the entity file from the in-memory records.

        Raises:
            IOError: If the file cannot be written
        """
        try:
            with jsonlines.open(self.path, mode="w") as writer:
                for record in self._records.values():
                    writer.write(record.to_dict())
        except OSError as e:
            raise IOError(f"Failed to write store file {self.path}: {e}") from e


def open_jsonl_store(data_dir: str = "data") -> EntityStore:
    """Open (or create) a file-backed EntityStore under ``data_dir``."""
    path = Path(data_dir)
    path.mkdir(parents=True, exist_ok=True)
    return EntityStore(
        {name: JsonlRepository(name, model, path) for name, model in ENTITY_MODELS.items()}
    )
