"""
Hard Constraint Validation Logic.

This module answers the binary question: "Can this proposed assignment be committed?"
It enforces the scheduling invariants (a student is in one place per day, a
preceptor never exceeds capacity) before anything reaches the run state.
"""

from datetime import date as date_type
from typing import List, Optional, Dict, Set, Tuple
from collections import defaultdict
from dataclasses import dataclass

from models import ScheduleAssignment, Violation, Severity
from .capacity import check_block_limit
from .context import StrategyContext
from .state import RunState


@dataclass
class ConstraintViolation:
    """Detailed reason for rejection."""
    constraint_type: str  # e.g., "Blackout", "StudentDoubleBooking", "PreceptorCapacity"
    reason: str
    student_id: str
    preceptor_id: str
    date: date_type

    def to_violation(self, severity: Severity = Severity.ERROR) -> Violation:
        return Violation(
            student_id=self.student_id,
            preceptor_id=self.preceptor_id,
            date=self.date,
            constraint_type=self.constraint_type,
            severity=severity,
            message=self.reason
        )


class ConstraintChecker:
    """
    Validates hard constraints for a strategy's proposal.
    """

    def __init__(self, state: RunState):
        self.state = state

    def validate_proposal(
        self,
        assignments: List[ScheduleAssignment],
        context: StrategyContext
    ) -> List[ConstraintViolation]:
        """
        Check every assignment in order, counting earlier ones in the same proposal.
        Returns all violations (empty list = proposal is valid).
        """
        violations = []
        seen_dates = set()
        daily: Dict[Tuple[str, date_type], int] = defaultdict(int)
        yearly: Dict[str, int] = defaultdict(int)
        blocks: Dict[str, Set[int]] = defaultdict(set)

        for a in assignments:
            violation = self.check_assignment(a, context, seen_dates, daily, yearly, blocks)
            if violation:
                violations.append(violation)
            seen_dates.add(a.date)
            daily[(a.preceptor_id, a.date)] += 1
            yearly[a.preceptor_id] += 1
            if a.block_number is not None:
                blocks[a.preceptor_id].add(a.block_number)

        return violations

    def check_assignment(
        self,
        assignment: ScheduleAssignment,
        context: StrategyContext,
        seen_dates: Optional[set] = None,
        pending_daily: Optional[Dict[Tuple[str, date_type], int]] = None,
        pending_yearly: Optional[Dict[str, int]] = None,
        pending_blocks: Optional[Dict[str, Set[int]]] = None
    ) -> Optional[ConstraintViolation]:
        """
        Master validation function. Returns None if Valid, Violation object if Invalid.
        """
        # 1. System-wide blackout
        violation = self._check_blackout(assignment, context)
        if violation: return violation

        # 2. One place per day for the student
        violation = self._check_double_booking(assignment, seen_dates or set())
        if violation: return violation

        # 3. Preceptor actually works that day
        violation = self._check_availability(assignment, context)
        if violation: return violation

        # 4. Daily / yearly capacity including the proposal itself
        violation = self._check_capacity(assignment, context, pending_daily or {}, pending_yearly or {})
        if violation: return violation

        # 5. Yearly block limit for block assignments
        violation = self._check_block_limit(assignment, context, pending_blocks or {})
        if violation: return violation

        return None  # All clear!

    def _check_blackout(self, a: ScheduleAssignment, context: StrategyContext) -> Optional[ConstraintViolation]:
        if a.date in context.blackout_dates:
            return ConstraintViolation(
                "Blackout", f"{a.date.isoformat()} is a blackout date",
                a.student_id, a.preceptor_id, a.date
            )
        return None

    def _check_double_booking(self, a: ScheduleAssignment, seen_dates: set) -> Optional[ConstraintViolation]:
        if self.state.is_student_booked(a.student_id, a.date) or a.date in seen_dates:
            return ConstraintViolation(
                "StudentDoubleBooking", f"Student {a.student_id} already booked on {a.date.isoformat()}",
                a.student_id, a.preceptor_id, a.date
            )
        return None

    def _check_availability(self, a: ScheduleAssignment, context: StrategyContext) -> Optional[ConstraintViolation]:
        candidate = context.candidate(a.preceptor_id)
        if candidate is None or not candidate.is_available(a.date):
            return ConstraintViolation(
                "PreceptorAvailability", f"Preceptor {a.preceptor_id} is not available on {a.date.isoformat()}",
                a.student_id, a.preceptor_id, a.date
            )
        return None

    def _check_capacity(
        self,
        a: ScheduleAssignment,
        context: StrategyContext,
        pending_daily: Dict[Tuple[str, date_type], int],
        pending_yearly: Dict[str, int]
    ) -> Optional[ConstraintViolation]:
        candidate = context.candidate(a.preceptor_id)
        if candidate is None:
            return None

        daily = self.state.daily_count(a.preceptor_id, a.date) + pending_daily.get((a.preceptor_id, a.date), 0)
        if daily + 1 > candidate.max_students_per_day:
            return ConstraintViolation(
                "PreceptorCapacity",
                f"Preceptor {a.preceptor_id} over daily capacity on {a.date.isoformat()} "
                f"({daily + 1}/{candidate.max_students_per_day})",
                a.student_id, a.preceptor_id, a.date
            )

        yearly = self.state.yearly_count(a.preceptor_id) + pending_yearly.get(a.preceptor_id, 0)
        if yearly + 1 > candidate.max_students_per_year:
            return ConstraintViolation(
                "PreceptorCapacity",
                f"Preceptor {a.preceptor_id} over yearly capacity ({yearly + 1}/{candidate.max_students_per_year})",
                a.student_id, a.preceptor_id, a.date
            )
        return None

    def _check_block_limit(
        self,
        a: ScheduleAssignment,
        context: StrategyContext,
        pending_blocks: Dict[str, Set[int]]
    ) -> Optional[ConstraintViolation]:
        candidate = context.candidate(a.preceptor_id)
        if a.block_number is None or candidate is None:
            return None

        engaged = set(self.state.blocks_used(a.preceptor_id))
        engaged.update(context.block_key(n) for n in pending_blocks.get(a.preceptor_id, ()))
        check = check_block_limit(engaged, context.block_key(a.block_number), candidate.max_blocks_per_year)
        if not check.has_capacity:
            return ConstraintViolation(
                "PreceptorCapacity",
                f"Preceptor {a.preceptor_id} over yearly block limit ({check.current_count}/{check.max_allowed} blocks)",
                a.student_id, a.preceptor_id, a.date
            )
        return None
