"""
Fallback Gap Filling.

After the primary pass, requirement pools that are still short are topped up
from preceptors outside the primary assignment, ordered by proximity:
1. Tier 1 - other members of the primary team (same health system
   unless cross-system fallback is allowed)
2. Tier 2 - members of other teams in the primary health system
3. Tier 3 - any team member for the clerkship (cross-system only)
Within the tiers, primary members come before fallback-only members.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Set

from models import (
    Student,
    Clerkship,
    Elective,
    Preceptor,
    Team,
    ResolvedRequirementConfig,
    ScheduleAssignment,
    UnmetRequirement,
    PendingApproval
)
from .capacity import CapacityChecker
from .context import ContextBuilder
from .state import RunState

logger = logging.getLogger(__name__)

PARTIAL_REASON = "Partially fulfilled by fallback: {assigned}/{required} days assigned"
FAILED_SUFFIX = " (fallback also failed)"


@dataclass
class GapRequest:
    """An unmet requirement pool plus what is needed to fill it."""
    unmet: UnmetRequirement
    student: Student
    clerkship: Clerkship
    config: ResolvedRequirementConfig
    elective: Optional[Elective] = None
    # Teams as the primary pass saw them (trimmed when team formation is on)
    teams: Optional[List[Team]] = None


@dataclass
class FallbackCandidate:
    preceptor: Preceptor
    team_id: str
    priority: int
    tier: int
    is_fallback_only: bool

    @property
    def id(self) -> str:
        return self.preceptor.id


@dataclass
class FallbackOutcome:
    pending_approvals: List[PendingApproval] = field(default_factory=list)
    still_unmet: List[UnmetRequirement] = field(default_factory=list)


class FallbackResolver:
    """
    Fills gaps directly into the run state; every date is capacity-checked
    before it is committed.
    """

    def __init__(self, builder: ContextBuilder, capacity: CapacityChecker, state: RunState, log=None):
        self.builder = builder
        self.capacity = capacity
        self.state = state
        self.log = log or logger

    def primary_team(self, teams: List[Team], preceptors: Dict[str, Preceptor], unmet: UnmetRequirement):
        """(team_id, health_system_id) for the requirement; first team when none was recorded."""
        team_id = unmet.primary_team_id
        health_system = unmet.primary_health_system_id

        if team_id is None and teams:
            team_id = teams[0].id

        if health_system is None and team_id is not None:
            team = next((t for t in teams if t.id == team_id), None)
            if team is not None:
                for member in team.ordered_members():
                    p = preceptors.get(member.preceptor_id)
                    if p is not None and p.health_system_id:
                        health_system = p.health_system_id
                        break

        return team_id, health_system

    def ordered_candidates(
        self,
        teams: List[Team],
        preceptors: Dict[str, Preceptor],
        primary_team_id: Optional[str],
        primary_health_system: Optional[str],
        allow_cross_system: bool,
        elective: Optional[Elective] = None
    ) -> List[FallbackCandidate]:
        found: List[FallbackCandidate] = []
        seen: Set[str] = set()

        def add(team: Team, tier: int, health_system: Optional[str] = None):
            for member in team.ordered_members():
                p = preceptors.get(member.preceptor_id)
                if p is None or p.id in seen:
                    continue
                if health_system is not None and p.health_system_id != health_system:
                    continue
                seen.add(p.id)
                found.append(FallbackCandidate(
                    preceptor=p,
                    team_id=team.id,
                    priority=member.priority,
                    tier=tier,
                    is_fallback_only=member.is_fallback_only or p.is_global_fallback_only
                ))

        # Tier 1: same team, same health system unless cross-system is allowed
        for team in teams:
            if team.id == primary_team_id:
                add(team, 1, health_system=None if allow_cross_system else primary_health_system)

        # Tier 2: other teams, same health system
        if primary_health_system:
            for team in teams:
                if team.id != primary_team_id:
                    add(team, 2, health_system=primary_health_system)

        # Tier 3: anyone on a team for this clerkship
        if allow_cross_system:
            for team in teams:
                add(team, 3)

        if elective is not None:
            if elective.preceptor_ids:
                found = [c for c in found if c.id in elective.preceptor_ids]
            if elective.site_ids:
                found = [c for c in found if set(elective.site_ids) & set(c.preceptor.site_ids)]

        return sorted(found, key=lambda c: (c.is_fallback_only, c.tier, c.priority))

    def fill_gaps(self, requests: List[GapRequest]) -> FallbackOutcome:
        """
        Process gaps largest first. Added assignments go straight into the run
        state; the outcome holds approvals and the re-recorded unmet requirements.
        """
        outcome = FallbackOutcome()

        for request in sorted(requests, key=lambda r: -r.unmet.remaining_days):
            unmet = request.unmet
            if not request.config.allow_fallbacks:
                outcome.still_unmet.append(unmet)
                continue

            added = self._fill_one(request, outcome)
            total = unmet.assigned_days + len(added)

            if total >= unmet.required_days:
                self.log.info(
                    f"Fallback fulfilled {unmet.student_id}/{unmet.clerkship_id} (+{len(added)} days)"
                )
            elif added:
                outcome.still_unmet.append(unmet.model_copy(update={
                    "assigned_days": total,
                    "remaining_days": unmet.required_days - total,
                    "reason": PARTIAL_REASON.format(assigned=total, required=unmet.required_days),
                }))
            else:
                outcome.still_unmet.append(unmet.model_copy(update={
                    "reason": unmet.reason + FAILED_SUFFIX,
                }))

        return outcome

    def _fill_one(self, request: GapRequest, outcome: FallbackOutcome) -> List[ScheduleAssignment]:
        unmet = request.unmet
        config = request.config
        teams = request.teams if request.teams is not None else self.builder.teams_for(request.clerkship.id)
        member_ids = list(dict.fromkeys(m.preceptor_id for t in teams for m in t.members))
        preceptors = self.builder.preceptors_for(member_ids)

        team_id, health_system = self.primary_team(teams, preceptors, unmet)
        candidates = self.ordered_candidates(
            teams, preceptors, team_id, health_system,
            config.fallback_allow_cross_system, request.elective
        )

        site_filter = set(request.elective.site_ids) if request.elective and request.elective.site_ids else None
        remaining = unmet.remaining_days
        added: List[ScheduleAssignment] = []

        for candidate in candidates:
            if remaining <= 0:
                break

            self.builder.ensure_preceptor(candidate.id)
            rule = self.capacity.resolve_rule(
                candidate.id,
                request.clerkship.id,
                unmet.requirement_type,
                default_max_per_day=config.max_students_per_day,
                default_max_per_year=config.max_students_per_year
            )
            availability = self.builder.availability_for(candidate.id)
            dates_used = []

            # Recomputed per candidate: earlier commits shrink the student's free dates
            for day in self.builder.candidate_dates(unmet.student_id):
                if remaining <= 0:
                    break
                site = availability.get(day)
                if site is None or (site_filter and site not in site_filter):
                    continue
                check = self.capacity.check_capacity(candidate.id, day, rule=rule)
                if not check.has_capacity:
                    continue

                assignment = ScheduleAssignment(
                    student_id=unmet.student_id,
                    preceptor_id=candidate.id,
                    clerkship_id=unmet.clerkship_id,
                    date=day,
                    requirement_type=unmet.requirement_type,
                    elective_id=unmet.elective_id,
                    team_id=candidate.team_id,
                    is_fallback=True,
                    fallback_tier=candidate.tier
                )
                self.state.add_assignment(assignment)
                added.append(assignment)
                dates_used.append(day)
                remaining -= 1

            if dates_used:
                self.log.debug(
                    f"Fallback tier {candidate.tier}: {candidate.id} covers {len(dates_used)} days "
                    f"for {unmet.student_id}/{unmet.clerkship_id}"
                )
                if config.fallback_requires_approval:
                    outcome.pending_approvals.append(PendingApproval(
                        student_id=unmet.student_id,
                        clerkship_id=unmet.clerkship_id,
                        elective_id=unmet.elective_id,
                        fallback_preceptor_id=candidate.id,
                        fallback_tier=candidate.tier,
                        dates=dates_used
                    ))

        return added
