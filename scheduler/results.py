"""
Result Building.

Accumulates the output of a run and computes the final statistics.
"""

from collections import defaultdict
from typing import List, Dict, Set

from models import (
    ScheduleAssignment,
    UnmetRequirement,
    Violation,
    Severity,
    PendingApproval,
    SchedulingStatistics,
    SchedulingResult
)


class ResultBuilder:
    """
    Collects assignments, unmet requirements, violations and approvals,
    then produces an immutable SchedulingResult.
    """

    def __init__(self):
        self.assignments: List[ScheduleAssignment] = []
        self.unmet_requirements: List[UnmetRequirement] = []
        self.violations: List[Violation] = []
        self.pending_approvals: List[PendingApproval] = []
        self.students: Set[str] = set()

    def track_student(self, student_id: str) -> None:
        """Register a student that was attempted, even if nothing was assigned."""
        self.students.add(student_id)

    def add_assignments(self, assignments: List[ScheduleAssignment]) -> None:
        self.assignments.extend(assignments)
        for a in assignments:
            self.students.add(a.student_id)

    def replace_unmet(self, unmet: List[UnmetRequirement]) -> None:
        self.unmet_requirements = list(unmet)

    def add_violations(self, violations: List[Violation]) -> None:
        self.violations.extend(violations)

    def add_pending_approvals(self, approvals: List[PendingApproval]) -> None:
        self.pending_approvals.extend(approvals)

    @property
    def has_errors(self) -> bool:
        return any(v.severity == Severity.ERROR for v in self.violations)

    def get_statistics(self) -> SchedulingStatistics:
        """
        Generate comprehensive stats for the final report.
        """
        per_preceptor: Dict[str, int] = defaultdict(int)
        for a in self.assignments:
            per_preceptor[a.preceptor_id] += 1

        assigned_students = {a.student_id for a in self.assignments}
        unmet_students = {u.student_id for u in self.unmet_requirements}

        fully = len(self.students - unmet_students)
        partially = len(unmet_students & assigned_students)
        unscheduled = len(unmet_students - assigned_students)

        total = len(self.assignments)
        preceptors_used = len(per_preceptor)
        average = round(total / preceptors_used, 1) if preceptors_used else 0.0
        completion = round(fully / len(self.students) * 100, 1) if self.students else 0.0

        return SchedulingStatistics(
            total_students=len(self.students),
            total_preceptors_used=preceptors_used,
            fully_scheduled_students=fully,
            partially_scheduled_students=partially,
            unscheduled_students=unscheduled,
            total_assignments=total,
            total_days_scheduled=len({(a.student_id, a.date) for a in self.assignments}),
            fallback_assignments=sum(1 for a in self.assignments if a.is_fallback),
            average_assignments_per_preceptor=average,
            completion_rate=completion,
            assignments_per_preceptor=dict(sorted(per_preceptor.items()))
        )

    def build(self, run_id: str = None, dry_run: bool = False) -> SchedulingResult:
        success = not self.unmet_requirements and not self.has_errors
        return SchedulingResult(
            success=success,
            assignments=sorted(self.assignments, key=lambda a: (a.date, a.student_id, a.preceptor_id)),
            unmet_requirements=list(self.unmet_requirements),
            violations=list(self.violations),
            pending_approvals=list(self.pending_approvals),
            statistics=self.get_statistics(),
            run_id=run_id,
            dry_run=dry_run
        )
