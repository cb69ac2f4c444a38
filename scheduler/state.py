"""
Scheduler Run State.

This module acts as the 'Memory' of a single scheduling run.
It tracks:
1. Occupancy per (preceptor, date), seeded from persisted assignments.
2. Yearly load per preceptor (persisted + proposed in this run).
3. Booked dates per student, so no student is placed twice on one day.
4. Blocks engaged per preceptor (for block-limited capacity rules).

A RunState is created per run and discarded afterwards.
"""

from datetime import date as date_type
from typing import List, Dict, Optional, Set, Tuple
from collections import defaultdict

from models import ScheduleAssignment


class RunState:
    """
    Mutable occupancy record for one run.
    Every committed proposal is applied immediately so later decisions see it.
    """

    def __init__(self, preceptor_date_counts: Optional[Dict[str, Dict[date_type, int]]] = None):
        # Assignments committed during this run
        self.assignments: List[ScheduleAssignment] = []

        # Resource Indices
        self.preceptor_date_counts: Dict[str, Dict[date_type, int]] = defaultdict(lambda: defaultdict(int))
        self.preceptor_totals: Dict[str, int] = {}
        self.student_dates: Dict[str, Set[date_type]] = {}
        self.preceptor_blocks: Dict[str, Set[Tuple[str, str, int]]] = defaultdict(set)

        for preceptor_id, by_date in (preceptor_date_counts or {}).items():
            for day, count in by_date.items():
                self.preceptor_date_counts[preceptor_id][day] += count

    # --- Seeding (lazy, once per entity) ---

    def has_preceptor(self, preceptor_id: str) -> bool:
        return preceptor_id in self.preceptor_totals

    def seed_preceptor(self, preceptor_id: str, existing_count: int) -> None:
        """Record the persisted yearly count. Ignored if already seeded."""
        self.preceptor_totals.setdefault(preceptor_id, existing_count)

    def has_student(self, student_id: str) -> bool:
        return student_id in self.student_dates

    def seed_student(self, student_id: str, dates: Set[date_type]) -> None:
        self.student_dates.setdefault(student_id, set(dates))

    # --- Commit ---

    def add_assignment(self, assignment: ScheduleAssignment) -> None:
        """
        Commit one assignment to the state.
        Updates all indices and counters.
        """
        self.assignments.append(assignment)

        pid = assignment.preceptor_id
        self.preceptor_date_counts[pid][assignment.date] += 1
        self.preceptor_totals[pid] = self.preceptor_totals.get(pid, 0) + 1
        self.student_dates.setdefault(assignment.student_id, set()).add(assignment.date)

        if assignment.block_number is not None:
            self.preceptor_blocks[pid].add(
                (assignment.student_id, assignment.clerkship_id, assignment.block_number)
            )

    def add_assignments(self, assignments: List[ScheduleAssignment]) -> None:
        for assignment in assignments:
            self.add_assignment(assignment)

    # --- Query Methods (Used by capacity, context and constraints) ---

    def daily_count(self, preceptor_id: str, day: date_type) -> int:
        by_date = self.preceptor_date_counts.get(preceptor_id)
        if not by_date:
            return 0
        return by_date.get(day, 0)

    def yearly_count(self, preceptor_id: str) -> int:
        return self.preceptor_totals.get(preceptor_id, 0)

    def blocks_used(self, preceptor_id: str) -> Set[Tuple[str, str, int]]:
        return self.preceptor_blocks.get(preceptor_id, set())

    def dates_for_student(self, student_id: str) -> Set[date_type]:
        return self.student_dates.get(student_id, set())

    def is_student_booked(self, student_id: str, day: date_type) -> bool:
        return day in self.dates_for_student(student_id)

