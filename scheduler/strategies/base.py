"""
Strategy contract shared by all assignment strategies.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import List, Dict, Any, Optional

from models import ResolvedRequirementConfig, ScheduleAssignment
from ..context import StrategyContext, PreceptorCandidate


@dataclass
class StrategyResult:
    success: bool
    assignments: List[ScheduleAssignment] = field(default_factory=list)
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class SchedulingStrategy(ABC):
    """
    Turns a StrategyContext into proposed assignments.
    Strategies never commit; the engine validates and commits proposals.
    """

    name: str = "base"

    @abstractmethod
    def can_handle(self, config: ResolvedRequirementConfig) -> bool:
        ...

    @abstractmethod
    def generate_assignments(self, context: StrategyContext) -> StrategyResult:
        ...

    # --- Shared candidate preparation ---

    @staticmethod
    def filter_by_specialty(candidates: List[PreceptorCandidate], specialty: Optional[str]) -> List[PreceptorCandidate]:
        """Preceptors without a declared specialty are not filtered out."""
        if not specialty:
            return list(candidates)
        return [c for c in candidates if not c.specialty or c.specialty == specialty]

    @staticmethod
    def sort_by_load(candidates: List[PreceptorCandidate]) -> List[PreceptorCandidate]:
        """Least loaded first; fallback-only preceptors after everyone else."""
        return sorted(candidates, key=lambda c: (c.is_fallback_only, c.current_assignments, c.id))

    def prepare_candidates(self, context: StrategyContext) -> List[PreceptorCandidate]:
        return self.sort_by_load(self.filter_by_specialty(context.preceptors, context.clerkship.specialty))

    @staticmethod
    def usable_dates(context: StrategyContext, candidate: PreceptorCandidate) -> List[date_type]:
        """Candidate dates the preceptor is available on and still has daily room for."""
        return [
            d for d in context.candidate_dates
            if candidate.is_available(d) and context.has_daily_capacity(candidate, d)
        ]

    def _metadata(self, considered: int, count: int, **extra) -> Dict[str, Any]:
        metadata = {
            "strategy_used": self.name,
            "preceptors_considered": considered,
            "assignment_count": count,
        }
        metadata.update(extra)
        return metadata
