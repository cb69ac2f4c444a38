"""Abstract data-access contract used by the scheduling engine."""

from abc import ABC, abstractmethod
from datetime import date as date_type
from typing import Dict, List, Optional, Set

from models import (
    Student,
    Clerkship,
    Team,
    Preceptor,
    CapacityRule,
    AvailabilityRecord,
    RequirementType,
    RequirementDefaults,
    ClerkshipRequirement,
    ScheduleAssignment
)


class PersistenceError(Exception):
    """The store could not persist a batch. Nothing from the batch was written."""


class DataStore(ABC):
    """Interface the engine reads entities from and writes assignments to.

    Implementations back this with a database, a file, or memory. Every read
    returns pydantic models; the engine never mutates them.
    """

    @abstractmethod
    def load_students(self, ids: Optional[List[str]] = None) -> List[Student]:
        """Students with the given ids, in id order. None loads every student."""
        pass

    @abstractmethod
    def load_clerkships_with_electives(self, ids: Optional[List[str]] = None) -> List[Clerkship]:
        pass

    @abstractmethod
    def load_teams_for_clerkship(self, clerkship_id: str) -> List[Team]:
        pass

    @abstractmethod
    def load_preceptors(self, ids: List[str]) -> List[Preceptor]:
        pass

    @abstractmethod
    def load_capacity_rule(
        self,
        preceptor_id: str,
        clerkship_id: Optional[str] = None,
        requirement_type: Optional[RequirementType] = None
    ) -> Optional[CapacityRule]:
        """The rule matching exactly these keys (None matches only None)."""
        pass

    @abstractmethod
    def load_availability(self, preceptor_id: str) -> List[AvailabilityRecord]:
        pass

    @abstractmethod
    def load_blackout_dates(self) -> List[date_type]:
        pass

    @abstractmethod
    def count_existing_assignments(self, preceptor_id: str) -> int:
        pass

    @abstractmethod
    def load_assignments_by_preceptor_and_date(self) -> Dict[str, Dict[date_type, int]]:
        pass

    @abstractmethod
    def load_student_assignment_dates(self, student_id: str) -> Set[date_type]:
        pass

    @abstractmethod
    def load_requirement_defaults(self, requirement_type: RequirementType) -> Optional[RequirementDefaults]:
        pass

    @abstractmethod
    def load_clerkship_requirement(self, clerkship_id: str) -> Optional[ClerkshipRequirement]:
        pass

    @abstractmethod
    def persist_assignments(self, assignments: List[ScheduleAssignment]) -> None:
        """Insert the whole batch or nothing.

        Raises:
            PersistenceError: if any assignment cannot be stored.
        """
        pass
