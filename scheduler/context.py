"""
Strategy Context Building.

Gathers everything a strategy needs for one (student, requirement pool):
candidate dates, candidate preceptors with resolved capacity and availability,
the clerkship's teams and a live view of run occupancy.
"""

import logging
from dataclasses import dataclass, field
from datetime import date as date_type, timedelta
from typing import List, Dict, Optional, Set, Tuple, Iterable

from models import (
    Student,
    Clerkship,
    Elective,
    Preceptor,
    Team,
    TeamMember,
    RequirementType,
    ResolvedRequirementConfig,
    ScheduleAssignment,
    Violation,
    Severity
)
from .capacity import CapacityChecker, check_block_limit
from .state import RunState

logger = logging.getLogger(__name__)


@dataclass
class PreceptorCandidate:
    """A team member eligible for a requirement, with run-resolved capacity."""
    preceptor: Preceptor
    available_dates: Dict[date_type, str]  # date -> site_id
    current_assignments: int
    max_students_per_day: int
    max_students_per_year: int
    capacity_source: str = "default"
    is_fallback_only: bool = False
    max_blocks_per_year: Optional[int] = None

    @property
    def id(self) -> str:
        return self.preceptor.id

    @property
    def health_system_id(self) -> Optional[str]:
        return self.preceptor.health_system_id

    @property
    def site_ids(self) -> List[str]:
        return self.preceptor.site_ids

    @property
    def specialty(self) -> Optional[str]:
        return self.preceptor.specialty

    @property
    def is_global_fallback_only(self) -> bool:
        return self.preceptor.is_global_fallback_only

    @property
    def remaining_yearly(self) -> int:
        return max(0, self.max_students_per_year - self.current_assignments)

    def is_available(self, day: date_type) -> bool:
        return day in self.available_dates


@dataclass
class StrategyContext:
    student: Student
    clerkship: Clerkship
    config: ResolvedRequirementConfig
    requirement_type: RequirementType
    candidate_dates: List[date_type]
    preceptors: List[PreceptorCandidate]
    teams: List[Team]
    state: RunState
    elective: Optional[Elective] = None
    blackout_dates: Set[date_type] = field(default_factory=set)
    member_teams: Dict[str, str] = field(default_factory=dict)  # preceptor_id -> team_id
    violations: List[Violation] = field(default_factory=list)

    @property
    def required_days(self) -> int:
        return self.config.required_days

    @property
    def elective_id(self) -> Optional[str]:
        return self.elective.id if self.elective else None

    def candidate(self, preceptor_id: str) -> Optional[PreceptorCandidate]:
        for c in self.preceptors:
            if c.id == preceptor_id:
                return c
        return None

    def daily_count(self, preceptor_id: str, day: date_type) -> int:
        return self.state.daily_count(preceptor_id, day)

    def has_daily_capacity(self, candidate: PreceptorCandidate, day: date_type, pending: int = 0) -> bool:
        """Occupancy plus `pending` (proposed in the current call) stays below the daily max."""
        return self.daily_count(candidate.id, day) + pending < candidate.max_students_per_day

    def block_key(self, block_number: int) -> Tuple[str, str, int]:
        return (self.student.id, self.clerkship.id, block_number)

    def has_block_capacity(
        self,
        candidate: PreceptorCandidate,
        block_number: int,
        pending_blocks: Iterable[int] = ()
    ) -> bool:
        """Block `block_number` fits the preceptor's yearly block limit, counting blocks proposed in the current call."""
        engaged = set(self.state.blocks_used(candidate.id))
        engaged.update(self.block_key(n) for n in pending_blocks)
        return check_block_limit(engaged, self.block_key(block_number), candidate.max_blocks_per_year).has_capacity

    def make_assignment(
        self,
        preceptor_id: str,
        day: date_type,
        block_number: Optional[int] = None,
        is_fallback: bool = False,
        fallback_tier: Optional[int] = None,
        team_id: Optional[str] = None
    ) -> ScheduleAssignment:
        return ScheduleAssignment(
            student_id=self.student.id,
            preceptor_id=preceptor_id,
            clerkship_id=self.clerkship.id,
            date=day,
            requirement_type=self.requirement_type,
            elective_id=self.elective_id,
            block_number=block_number,
            team_id=team_id or self.member_teams.get(preceptor_id),
            is_fallback=is_fallback,
            fallback_tier=fallback_tier
        )


def date_window(start: date_type, end: date_type) -> List[date_type]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def validate_teams(
    teams: List[Team],
    preceptors: Dict[str, Preceptor],
    student_id: str
) -> Tuple[List[Team], List[Violation]]:
    """
    Trim team members that break their team's same-system/site/specialty flags.
    The anchor is the top-priority non-fallback member.
    """
    trimmed = []
    violations = []

    for team in teams:
        members = [m for m in team.ordered_members() if m.preceptor_id in preceptors]
        if not members:
            trimmed.append(team)
            continue

        anchor_member = next((m for m in members if not m.is_fallback_only), members[0])
        anchor = preceptors[anchor_member.preceptor_id]
        kept: List[TeamMember] = []

        for member in members:
            p = preceptors[member.preceptor_id]
            problem = None
            if member is not anchor_member:
                if team.require_same_health_system and p.health_system_id != anchor.health_system_id:
                    problem = f"health system {p.health_system_id} differs from {anchor.health_system_id}"
                elif team.require_same_site and not set(p.site_ids) & set(anchor.site_ids):
                    problem = f"shares no site with {anchor.id}"
                elif team.require_same_specialty and p.specialty != anchor.specialty:
                    problem = f"specialty {p.specialty} differs from {anchor.specialty}"

            if problem:
                violations.append(Violation(
                    student_id=student_id,
                    preceptor_id=p.id,
                    constraint_type="TeamFormation",
                    severity=Severity.WARNING,
                    message=f"Removed {p.id} from team {team.id}: {problem}"
                ))
                continue
            kept.append(member)

        trimmed.append(team.model_copy(update={"members": kept}))

    return trimmed, violations


class ContextBuilder:
    """
    Builds StrategyContexts for one run.
    Store lookups (teams, preceptors, availability, blackouts) are cached.
    """

    def __init__(
        self,
        store,
        state: RunState,
        capacity: CapacityChecker,
        start_date: date_type,
        end_date: date_type
    ):
        self.store = store
        self.state = state
        self.capacity = capacity
        self.start_date = start_date
        self.end_date = end_date

        self._teams: Dict[str, List[Team]] = {}
        self._preceptors: Dict[str, Preceptor] = {}
        self._availability: Dict[str, Dict[date_type, str]] = {}
        self._blackouts: Optional[Set[date_type]] = None

    # --- Cached lookups ---

    @property
    def blackout_dates(self) -> Set[date_type]:
        if self._blackouts is None:
            self._blackouts = set(self.store.load_blackout_dates())
        return self._blackouts

    def teams_for(self, clerkship_id: str) -> List[Team]:
        if clerkship_id not in self._teams:
            self._teams[clerkship_id] = self.store.load_teams_for_clerkship(clerkship_id)
        return self._teams[clerkship_id]

    def preceptors_for(self, ids: Iterable[str]) -> Dict[str, Preceptor]:
        missing = [pid for pid in ids if pid not in self._preceptors]
        if missing:
            for p in self.store.load_preceptors(missing):
                self._preceptors[p.id] = p
        return {pid: self._preceptors[pid] for pid in ids if pid in self._preceptors}

    def availability_for(self, preceptor_id: str) -> Dict[date_type, str]:
        if preceptor_id not in self._availability:
            dates = {}
            for record in self.store.load_availability(preceptor_id):
                if record.is_available:
                    dates.setdefault(record.date, record.site_id)
                else:
                    dates.pop(record.date, None)
            self._availability[preceptor_id] = dates
        return self._availability[preceptor_id]

    def ensure_student(self, student_id: str) -> None:
        if not self.state.has_student(student_id):
            self.state.seed_student(student_id, self.store.load_student_assignment_dates(student_id))

    def ensure_preceptor(self, preceptor_id: str) -> None:
        if not self.state.has_preceptor(preceptor_id):
            self.state.seed_preceptor(preceptor_id, self.store.count_existing_assignments(preceptor_id))

    def candidate_dates(self, student_id: str) -> List[date_type]:
        """Window minus blackout dates minus dates the student is already booked on."""
        self.ensure_student(student_id)
        booked = self.state.dates_for_student(student_id)
        blackouts = self.blackout_dates
        return [
            d for d in date_window(self.start_date, self.end_date)
            if d not in blackouts and d not in booked
        ]

    def make_candidate(
        self,
        preceptor: Preceptor,
        clerkship_id: str,
        requirement_type: RequirementType,
        config: ResolvedRequirementConfig,
        allowed_dates: Set[date_type],
        site_filter: Optional[Set[str]] = None,
        is_fallback_only: bool = False
    ) -> PreceptorCandidate:
        self.ensure_preceptor(preceptor.id)
        rule = self.capacity.resolve_rule(
            preceptor.id,
            clerkship_id,
            requirement_type,
            default_max_per_day=config.max_students_per_day,
            default_max_per_year=config.max_students_per_year
        )
        available = {
            d: site for d, site in self.availability_for(preceptor.id).items()
            if d in allowed_dates and (not site_filter or site in site_filter)
        }
        return PreceptorCandidate(
            preceptor=preceptor,
            available_dates=available,
            current_assignments=self.state.yearly_count(preceptor.id),
            max_students_per_day=rule.max_students_per_day,
            max_students_per_year=rule.max_students_per_year,
            capacity_source=rule.source,
            is_fallback_only=is_fallback_only or preceptor.is_global_fallback_only,
            max_blocks_per_year=rule.block_limit
        )

    # --- Main entry point ---

    def build(
        self,
        student: Student,
        clerkship: Clerkship,
        config: ResolvedRequirementConfig,
        elective: Optional[Elective] = None,
        exclude_preceptors: Optional[Set[str]] = None,
        enable_team_formation: bool = False
    ) -> StrategyContext:
        if not clerkship.id:
            raise ValueError("Clerkship must have a valid ID")

        requirement_type = RequirementType.ELECTIVE if elective else config.requirement_type
        candidate_dates = self.candidate_dates(student.id)
        allowed = set(candidate_dates)

        teams = self.teams_for(clerkship.id)
        member_ids = []
        for team in teams:
            for m in team.members:
                if m.preceptor_id not in member_ids:
                    member_ids.append(m.preceptor_id)
        preceptors = self.preceptors_for(member_ids)

        violations: List[Violation] = []
        if enable_team_formation:
            teams, violations = validate_teams(teams, preceptors, student.id)

        # Team membership is the only clerkship -> preceptor link
        member_teams: Dict[str, str] = {}
        fallback_flags: Dict[str, bool] = {}
        for team in teams:
            for m in team.members:
                member_teams.setdefault(m.preceptor_id, team.id)
                # Fallback-only only if every membership says so
                fallback_flags[m.preceptor_id] = fallback_flags.get(m.preceptor_id, True) and m.is_fallback_only

        exclude = exclude_preceptors or set()
        site_filter = None
        pool_ids = [pid for pid in member_teams if pid in preceptors and pid not in exclude]

        if elective is not None:
            if elective.preceptor_ids:
                pool_ids = [pid for pid in pool_ids if pid in elective.preceptor_ids]
            if elective.site_ids:
                site_filter = set(elective.site_ids)
                pool_ids = [pid for pid in pool_ids if site_filter & set(preceptors[pid].site_ids)]

        candidates = [
            self.make_candidate(
                preceptors[pid],
                clerkship.id,
                requirement_type,
                config,
                allowed,
                site_filter=site_filter,
                is_fallback_only=fallback_flags.get(pid, False)
            )
            for pid in pool_ids
        ]

        logger.debug(
            f"Context for {student.id}/{clerkship.id}"
            f"{'/' + elective.id if elective else ''}: "
            f"{len(candidate_dates)} dates, {len(candidates)} preceptors, {len(teams)} teams"
        )

        return StrategyContext(
            student=student,
            clerkship=clerkship,
            config=config,
            requirement_type=requirement_type,
            candidate_dates=candidate_dates,
            preceptors=candidates,
            teams=teams,
            state=self.state,
            elective=elective,
            blackout_dates=self.blackout_dates,
            member_teams=member_teams,
            violations=violations
        )
