"""JSON-file backed store: load a whole dataset, schedule, write it back."""

import json
import logging
from typing import Dict, List, Type

from pydantic import BaseModel

from models import (
    Student,
    Clerkship,
    Team,
    Preceptor,
    CapacityRule,
    BlackoutDate,
    AvailabilityPattern,
    AvailabilityRecord,
    RequirementDefaults,
    ClerkshipRequirement,
    ScheduleAssignment
)
from .memory import InMemoryDataStore

logger = logging.getLogger(__name__)

# Document key -> model
ENTITY_MODELS: Dict[str, Type[BaseModel]] = {
    "students": Student,
    "clerkships": Clerkship,
    "preceptors": Preceptor,
    "teams": Team,
    "capacity_rules": CapacityRule,
    "availability": AvailabilityRecord,
    "availability_patterns": AvailabilityPattern,
    "blackout_dates": BlackoutDate,
    "assignments": ScheduleAssignment,
    "requirement_defaults": RequirementDefaults,
    "clerkship_requirements": ClerkshipRequirement,
}


class JsonDataStore(InMemoryDataStore):
    """
    An InMemoryDataStore loaded from (and dumped to) a JSON document keyed by
    entity type.
    """

    def __init__(self, path: str = None, **entities):
        super().__init__(**entities)
        self.path = path

    @classmethod
    def from_file(cls, path: str) -> "JsonDataStore":
        """
        Load a JSON document and re-hydrate pydantic models from it.
        Raises FileNotFoundError, json.JSONDecodeError or pydantic.ValidationError.
        """
        with open(path, 'r') as f:
            data = json.load(f)

        entities = {}
        for key, model in ENTITY_MODELS.items():
            entities[key] = [model.model_validate(item) for item in data.get(key, [])]

        unknown = set(data) - set(ENTITY_MODELS)
        if unknown:
            logger.warning(f"Ignoring unknown keys in {path}: {sorted(unknown)}")

        store = cls(path=path, **entities)
        logger.info(
            f"Loaded {path}: {len(store.students)} students, {len(store.clerkships)} clerkships, "
            f"{len(store.preceptors)} preceptors, {len(store.assignments)} existing assignments"
        )
        return store

    def to_dict(self) -> Dict[str, List[dict]]:
        return {
            key: [item.model_dump(mode='json') for item in getattr(self, key)]
            for key in ENTITY_MODELS
        }

    def dump(self, path: str = None) -> None:
        """Write every entity, including persisted assignments, back to JSON."""
        target = path or self.path
        if target is None:
            raise ValueError("No path given and store was not loaded from a file")
        with open(target, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved store to {target}")
