from collections import defaultdict
from typing import Dict, Optional

from models import AssignmentStrategy, ResolvedRequirementConfig
from ..context import StrategyContext
from .base import SchedulingStrategy, StrategyResult


class DailyRotationStrategy(SchedulingStrategy):
    """
    Day-by-day assignment with soft continuity.

    Dates without an eligible preceptor are skipped. When the candidate dates
    run out the result is a failure, but the assignments made so far are
    returned so the fallback phase can top them up.
    """

    name = "daily_rotation"

    def can_handle(self, config: ResolvedRequirementConfig) -> bool:
        return config.assignment_strategy == AssignmentStrategy.DAILY_ROTATION

    def generate_assignments(self, context: StrategyContext) -> StrategyResult:
        required = context.required_days
        candidates = self.prepare_candidates(context)
        used_in_call: Dict[str, int] = defaultdict(int)
        assignments = []
        previous: Optional[str] = None
        skipped = 0

        for d in context.candidate_dates:
            if len(assignments) >= required:
                break

            eligible = [
                c for c in candidates
                if c.is_available(d)
                and context.has_daily_capacity(c, d)
                and c.current_assignments + used_in_call[c.id] < c.max_students_per_year
            ]
            if not eligible:
                skipped += 1
                continue

            chosen = next((c for c in eligible if c.id == previous), None)
            if chosen is None:
                chosen = min(
                    eligible,
                    key=lambda c: (c.is_fallback_only, c.current_assignments + used_in_call[c.id], c.id)
                )

            assignments.append(context.make_assignment(chosen.id, d))
            used_in_call[chosen.id] += 1
            previous = chosen.id

        metadata = self._metadata(
            len(candidates),
            len(assignments),
            skipped_dates=skipped,
            preceptors_used=len(used_in_call)
        )

        if len(assignments) < required:
            return StrategyResult(
                success=False,
                assignments=assignments,
                error=f"Could only assign {len(assignments)} of {required} required days with daily rotation",
                metadata=metadata
            )

        return StrategyResult(success=True, assignments=assignments, metadata=metadata)
