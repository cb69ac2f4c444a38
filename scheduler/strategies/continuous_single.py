from models import AssignmentStrategy, ResolvedRequirementConfig
from ..context import StrategyContext
from .base import SchedulingStrategy, StrategyResult


class ContinuousSingleStrategy(SchedulingStrategy):
    """
    One preceptor covers every required day.
    The first load-ordered preceptor with enough usable dates and yearly room
    gets its earliest `required_days` dates; the dates need not be consecutive.
    """

    name = "continuous_single"

    def can_handle(self, config: ResolvedRequirementConfig) -> bool:
        return config.assignment_strategy in (None, AssignmentStrategy.CONTINUOUS_SINGLE)

    def generate_assignments(self, context: StrategyContext) -> StrategyResult:
        required = context.required_days
        candidates = self.prepare_candidates(context)

        for candidate in candidates:
            dates = self.usable_dates(context, candidate)
            if len(dates) < required:
                continue
            if candidate.current_assignments + required > candidate.max_students_per_year:
                continue

            assignments = [context.make_assignment(candidate.id, d) for d in dates[:required]]
            return StrategyResult(
                success=True,
                assignments=assignments,
                metadata=self._metadata(len(candidates), len(assignments), preceptor_id=candidate.id)
            )

        return StrategyResult(
            success=False,
            error=f"No single preceptor available for all {required} required days",
            metadata=self._metadata(len(candidates), 0)
        )
