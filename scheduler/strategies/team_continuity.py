from collections import defaultdict
from datetime import date as date_type
from typing import Dict, List, Set, Tuple

from models import AssignmentStrategy, ResolvedRequirementConfig, ScheduleAssignment
from ..context import StrategyContext, PreceptorCandidate
from .base import SchedulingStrategy, StrategyResult


class TeamContinuityStrategy(SchedulingStrategy):
    """
    Maximizes continuity with the top-priority team member.

    Members are walked in priority order (primary members before fallback-only
    ones). Each consumes as many unused dates as its availability and yearly
    room allow. A final pass fills any remaining dates from any candidate.
    All-or-nothing: a shortfall discards every proposal.
    """

    name = "team_continuity"

    def can_handle(self, config: ResolvedRequirementConfig) -> bool:
        return config.assignment_strategy == AssignmentStrategy.TEAM_CONTINUITY

    def ordered_members(self, context: StrategyContext, candidates: List[PreceptorCandidate]) -> List[Tuple[PreceptorCandidate, str]]:
        """
        (candidate, team_id) pairs: non-fallback-only members by priority, then
        fallback-only members by priority. With no usable team, every candidate
        forms an implicit team ordered by load.
        """
        by_id = {c.id: c for c in candidates}
        seen: Set[str] = set()
        primary = []
        fallback = []

        for team in context.teams:
            for member in team.members:
                candidate = by_id.get(member.preceptor_id)
                if candidate is None or candidate.id in seen:
                    continue
                seen.add(candidate.id)
                entry = (member.priority, candidate, team.id)
                if member.is_fallback_only or candidate.is_global_fallback_only:
                    fallback.append(entry)
                else:
                    primary.append(entry)

        if not primary and not fallback:
            implicit = sorted(candidates, key=lambda c: (c.is_global_fallback_only, c.current_assignments, c.id))
            return [(c, None) for c in implicit]

        primary.sort(key=lambda e: e[0])
        fallback.sort(key=lambda e: e[0])
        return [(c, team_id) for _, c, team_id in primary + fallback]

    def generate_assignments(self, context: StrategyContext) -> StrategyResult:
        required = context.required_days
        candidates = self.prepare_candidates(context)
        members = self.ordered_members(context, candidates)

        if not members:
            return StrategyResult(
                success=False,
                error="No preceptors available for scheduling",
                metadata=self._metadata(0, 0)
            )

        assignments: List[ScheduleAssignment] = []
        used_dates: Set[date_type] = set()
        used_in_call: Dict[str, int] = defaultdict(int)
        primary_id = members[0][0].id

        for candidate, team_id in members:
            if len(assignments) >= required:
                break
            room = candidate.remaining_yearly - used_in_call[candidate.id]
            if room <= 0:
                continue

            for d in self.usable_dates(context, candidate):
                if len(assignments) >= required or room <= 0:
                    break
                if d in used_dates:
                    continue
                assignments.append(context.make_assignment(candidate.id, d, team_id=team_id))
                used_dates.add(d)
                used_in_call[candidate.id] += 1
                room -= 1

        if len(assignments) < required:
            assignments.extend(self._fill_remaining(
                context, candidates, used_dates, used_in_call, required - len(assignments)
            ))

        if len(assignments) < required:
            return StrategyResult(
                success=False,
                error=(
                    f"Could only assign {len(assignments)} of {required} required days. "
                    f"Team members have insufficient availability."
                ),
                metadata=self._metadata(len(members), len(assignments))
            )

        assignments.sort(key=lambda a: a.date)
        primary_days = sum(1 for a in assignments if a.preceptor_id == primary_id)
        continuity = round(primary_days / len(assignments) * 100) if assignments else 0

        return StrategyResult(
            success=True,
            assignments=assignments,
            metadata=self._metadata(
                len(members),
                len(assignments),
                primary_preceptor_id=primary_id,
                primary_preceptor_days=primary_days,
                continuity_percent=continuity,
                preceptors_used=len(used_in_call)
            )
        )

    def _fill_remaining(
        self,
        context: StrategyContext,
        candidates: List[PreceptorCandidate],
        used_dates: Set[date_type],
        used_in_call: Dict[str, int],
        needed: int
    ) -> List[ScheduleAssignment]:
        """Any candidate, any unused date, ignoring priority."""
        extra = []
        ordered = self.sort_by_load(candidates)
        for d in context.candidate_dates:
            if len(extra) >= needed:
                break
            if d in used_dates:
                continue
            for candidate in ordered:
                if not candidate.is_available(d) or not context.has_daily_capacity(candidate, d):
                    continue
                if candidate.remaining_yearly - used_in_call[candidate.id] <= 0:
                    continue
                extra.append(context.make_assignment(candidate.id, d))
                used_dates.add(d)
                used_in_call[candidate.id] += 1
                break
        return extra
