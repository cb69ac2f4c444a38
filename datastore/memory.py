"""In-memory reference implementation of the data-access contract."""

import logging
from collections import defaultdict
from datetime import date as date_type
from typing import Dict, List, Optional, Set

from models import (
    Student,
    Clerkship,
    Team,
    Preceptor,
    CapacityRule,
    BlackoutDate,
    AvailabilityPattern,
    AvailabilityRecord,
    RequirementType,
    RequirementDefaults,
    ClerkshipRequirement,
    ScheduleAssignment
)
from scheduler.patterns import materialize_availability
from .base import DataStore, PersistenceError

logger = logging.getLogger(__name__)


class InMemoryDataStore(DataStore):
    """
    Holds entity lists in memory.
    Availability is explicit records overlaid by records materialized from
    the preceptor's patterns.
    """

    def __init__(
        self,
        students: Optional[List[Student]] = None,
        clerkships: Optional[List[Clerkship]] = None,
        preceptors: Optional[List[Preceptor]] = None,
        teams: Optional[List[Team]] = None,
        capacity_rules: Optional[List[CapacityRule]] = None,
        availability: Optional[List[AvailabilityRecord]] = None,
        availability_patterns: Optional[List[AvailabilityPattern]] = None,
        blackout_dates: Optional[List[BlackoutDate]] = None,
        assignments: Optional[List[ScheduleAssignment]] = None,
        requirement_defaults: Optional[List[RequirementDefaults]] = None,
        clerkship_requirements: Optional[List[ClerkshipRequirement]] = None
    ):
        self.students = list(students or [])
        self.clerkships = list(clerkships or [])
        self.preceptors = list(preceptors or [])
        self.teams = list(teams or [])
        self.capacity_rules = list(capacity_rules or [])
        self.availability = list(availability or [])
        self.availability_patterns = list(availability_patterns or [])
        self.blackout_dates = list(blackout_dates or [])
        self.assignments = list(assignments or [])
        self.requirement_defaults = list(requirement_defaults or [])
        self.clerkship_requirements = list(clerkship_requirements or [])

    @staticmethod
    def _select(items, ids: Optional[List[str]], kind: str):
        if ids is None:
            return list(items)
        by_id = {item.id: item for item in items}
        selected = []
        for item_id in ids:
            if item_id in by_id:
                selected.append(by_id[item_id])
            else:
                logger.warning(f"Unknown {kind} id: {item_id}")
        return selected

    # --- Entities ---

    def load_students(self, ids: Optional[List[str]] = None) -> List[Student]:
        return self._select(self.students, ids, "student")

    def load_clerkships_with_electives(self, ids: Optional[List[str]] = None) -> List[Clerkship]:
        return self._select(self.clerkships, ids, "clerkship")

    def load_teams_for_clerkship(self, clerkship_id: str) -> List[Team]:
        return [t for t in self.teams if t.clerkship_id == clerkship_id]

    def load_preceptors(self, ids: List[str]) -> List[Preceptor]:
        return self._select(self.preceptors, ids, "preceptor")

    def load_capacity_rule(
        self,
        preceptor_id: str,
        clerkship_id: Optional[str] = None,
        requirement_type: Optional[RequirementType] = None
    ) -> Optional[CapacityRule]:
        for rule in self.capacity_rules:
            if (rule.preceptor_id == preceptor_id
                    and rule.clerkship_id == clerkship_id
                    and rule.requirement_type == requirement_type):
                return rule
        return None

    def load_availability(self, preceptor_id: str) -> List[AvailabilityRecord]:
        by_date: Dict[date_type, AvailabilityRecord] = {}
        for record in self.availability:
            if record.preceptor_id == preceptor_id:
                by_date[record.date] = record

        patterns = [p for p in self.availability_patterns if p.preceptor_id == preceptor_id]
        if patterns:
            for record in materialize_availability(preceptor_id, patterns):
                by_date[record.date] = record

        return [by_date[d] for d in sorted(by_date)]

    def load_blackout_dates(self) -> List[date_type]:
        return sorted(b.date for b in self.blackout_dates)

    # --- Configuration ---

    def load_requirement_defaults(self, requirement_type: RequirementType) -> Optional[RequirementDefaults]:
        return next((d for d in self.requirement_defaults if d.requirement_type == requirement_type), None)

    def load_clerkship_requirement(self, clerkship_id: str) -> Optional[ClerkshipRequirement]:
        return next((r for r in self.clerkship_requirements if r.clerkship_id == clerkship_id), None)

    # --- Assignments ---

    def count_existing_assignments(self, preceptor_id: str) -> int:
        return sum(1 for a in self.assignments if a.preceptor_id == preceptor_id)

    def load_assignments_by_preceptor_and_date(self) -> Dict[str, Dict[date_type, int]]:
        counts: Dict[str, Dict[date_type, int]] = defaultdict(lambda: defaultdict(int))
        for a in self.assignments:
            counts[a.preceptor_id][a.date] += 1
        return {pid: dict(by_date) for pid, by_date in counts.items()}

    def load_student_assignment_dates(self, student_id: str) -> Set[date_type]:
        return {a.date for a in self.assignments if a.student_id == student_id}

    def persist_assignments(self, assignments: List[ScheduleAssignment]) -> None:
        """
        All-or-nothing insert. A (student, date) pair may appear only once,
        across the batch and what is already stored.
        """
        taken = {(a.student_id, a.date) for a in self.assignments}
        for a in assignments:
            key = (a.student_id, a.date)
            if key in taken:
                raise PersistenceError(
                    f"Student {a.student_id} already has an assignment on {a.date.isoformat()}"
                )
            taken.add(key)

        self.assignments.extend(assignments)
        logger.info(f"Stored {len(assignments)} assignments ({len(self.assignments)} total)")
