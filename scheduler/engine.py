"""
The Clerkship Scheduling Engine.

This module implements the orchestration of a scheduling run:
1. Priority-ordered greedy pass - each student, each clerkship, electives
   first, then the non-elective pool, one strategy per pool.
2. Proposal validation with retries - rejected proposals are re-run without
   the offending preceptors.
3. Fallback phase - remaining gaps are filled from nearby teams.
4. Commit - the result is persisted in a single all-or-nothing batch.
"""

import logging
import uuid
from typing import List, Dict, Optional, Set

from models import (
    Student,
    Clerkship,
    Elective,
    RequirementType,
    ResolvedRequirementConfig,
    UnmetRequirement,
    EngineOptions,
    SchedulingResult
)
from datastore.base import PersistenceError
from .capacity import CapacityChecker
from .config_resolver import resolve_requirement_config
from .constraints import ConstraintChecker
from .context import ContextBuilder, StrategyContext
from .fallback import FallbackResolver, GapRequest
from .results import ResultBuilder
from .state import RunState
from .strategies import StrategySelector

logger = logging.getLogger(__name__)

DATA_ERROR_REASON = "Student or clerkship missing valid ID"
NO_TEAM_REASON = "No team configured for clerkship"
NO_PRECEPTORS_REASON = "No candidate preceptors available"


class SchedulingPersistenceError(Exception):
    """The run completed but the store rejected the batch. Carries the built result."""

    def __init__(self, message: str, result: SchedulingResult):
        super().__init__(message)
        self.result = result


class RunLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every record with the run id."""

    def process(self, msg, kwargs):
        return f"[run {self.extra['run_id']}] {msg}", kwargs


class SchedulingEngine:
    """
    Main scheduling engine.
    Ingests Demand (students, clerkships) and Supply (teams, preceptors), outputs a Schedule.
    """

    def __init__(self, store, logger: Optional[logging.Logger] = None, selector: Optional[StrategySelector] = None):
        self.store = store
        self._logger = logger or logging.getLogger(__name__)
        self.selector = selector or StrategySelector()

    def schedule(
        self,
        student_ids: Optional[List[str]],
        clerkship_ids: Optional[List[str]],
        options: EngineOptions
    ) -> SchedulingResult:
        """
        Execute the scheduling pipeline.
        """
        run_id = uuid.uuid4().hex[:8]
        log = RunLoggerAdapter(self._logger, {"run_id": run_id})

        # Per-run components
        state = RunState(self.store.load_assignments_by_preceptor_and_date())
        capacity = CapacityChecker(self.store, state)
        builder = ContextBuilder(self.store, state, capacity, options.start_date, options.end_date)
        checker = ConstraintChecker(state)
        results = ResultBuilder()
        gaps: List[GapRequest] = []
        hard_unmet: List[UnmetRequirement] = []
        configs: Dict[str, ResolvedRequirementConfig] = {}

        # 1. Load demand; lower priority value goes first, input order breaks ties
        students = sorted(self.store.load_students(student_ids), key=lambda s: s.priority)
        clerkships = self.store.load_clerkships_with_electives(clerkship_ids)
        log.info(
            f"Starting scheduling run: {len(students)} students, {len(clerkships)} clerkships, "
            f"{options.start_date.isoformat()} to {options.end_date.isoformat()}"
        )

        # 2. Main loop
        for student in students:
            results.track_student(student.id)
            for clerkship in clerkships:
                if not student.id or not clerkship.id:
                    log.error(f"Skipping pair with missing id: student={student.id!r} clerkship={clerkship.id!r}")
                    hard_unmet.append(self._unmet(student, clerkship, None, DATA_ERROR_REASON))
                    continue
                try:
                    config = configs.get(clerkship.id)
                    if config is None:
                        config = configs[clerkship.id] = self._resolve_config(clerkship)
                    self._schedule_clerkship(student, clerkship, config, options, builder, checker, results, gaps, log)
                except Exception as e:
                    log.exception(f"Unexpected error scheduling {student.id}/{clerkship.id}")
                    hard_unmet.append(self._unmet(student, clerkship, None, f"Error: {e}"))

        # 3. Fallback phase
        if options.enable_fallbacks and gaps:
            log.info(f"Fallback phase: {len(gaps)} unmet requirement pools")
            resolver = FallbackResolver(builder, capacity, state, log=log)
            outcome = resolver.fill_gaps(gaps)
            results.add_pending_approvals(outcome.pending_approvals)
            unmet = hard_unmet + outcome.still_unmet
        else:
            unmet = hard_unmet + [g.unmet for g in gaps]

        # 4. Build result
        results.replace_unmet(unmet)
        results.add_assignments(state.assignments)
        result = results.build(run_id=run_id, dry_run=options.dry_run)

        stats = result.statistics
        log.info(
            f"Run finished: {stats.total_assignments} assignments, {len(result.unmet_requirements)} unmet, "
            f"completion {stats.completion_rate}%"
        )

        # 5. Commit
        if options.dry_run:
            log.info("Dry run: nothing persisted")
            return result

        if result.assignments:
            try:
                self.store.persist_assignments(result.assignments)
            except PersistenceError as e:
                log.error(f"Persisting {len(result.assignments)} assignments failed: {e}")
                raise SchedulingPersistenceError(str(e), result) from e
            log.info(f"Persisted {len(result.assignments)} assignments")

        return result

    def _resolve_config(self, clerkship: Clerkship) -> ResolvedRequirementConfig:
        requirement = self.store.load_clerkship_requirement(clerkship.id)
        requirement_type = (
            requirement.requirement_type
            if requirement and requirement.requirement_type
            else RequirementType(clerkship.clerkship_type.value)
        )
        defaults = self.store.load_requirement_defaults(requirement_type)
        return resolve_requirement_config(clerkship, requirement, defaults)

    def _schedule_clerkship(
        self,
        student: Student,
        clerkship: Clerkship,
        config: ResolvedRequirementConfig,
        options: EngineOptions,
        builder: ContextBuilder,
        checker: ConstraintChecker,
        results: ResultBuilder,
        gaps: List[GapRequest],
        log
    ) -> None:
        """Required electives first, then the non-elective remainder."""
        for elective in clerkship.required_electives:
            pool_config = config.model_copy(update={"required_days": elective.minimum_days})
            self._schedule_pool(student, clerkship, pool_config, elective, options, builder, checker, results, gaps, log)

        remaining = config.required_days - clerkship.elective_days
        if remaining <= 0:
            log.debug(f"{student.id}/{clerkship.id}: electives cover all required days")
            return

        pool_config = config.model_copy(update={"required_days": remaining})
        self._schedule_pool(student, clerkship, pool_config, None, options, builder, checker, results, gaps, log)

    def _schedule_pool(
        self,
        student: Student,
        clerkship: Clerkship,
        config: ResolvedRequirementConfig,
        elective: Optional[Elective],
        options: EngineOptions,
        builder: ContextBuilder,
        checker: ConstraintChecker,
        results: ResultBuilder,
        gaps: List[GapRequest],
        log
    ) -> None:
        excluded: Set[str] = set()
        retries = 0
        label = f"{student.id}/{clerkship.id}" + (f"/{elective.id}" if elective else "")

        while True:
            context = builder.build(
                student, clerkship, config,
                elective=elective,
                exclude_preceptors=excluded,
                enable_team_formation=options.enable_team_formation
            )
            if retries == 0 and context.violations:
                results.add_violations(context.violations)

            # Configuration errors become unmet requirements, not exceptions
            if not context.teams:
                log.warning(f"{label}: {NO_TEAM_REASON}")
                self._record_gap(context, NO_TEAM_REASON, 0, gaps)
                return
            if not context.preceptors:
                log.warning(f"{label}: {NO_PRECEPTORS_REASON}")
                self._record_gap(context, NO_PRECEPTORS_REASON, 0, gaps)
                return

            strategy = self.selector.select(config)
            outcome = strategy.generate_assignments(context)
            proposals = outcome.assignments

            if proposals:
                rejected = checker.validate_proposal(proposals, context)
                if rejected:
                    if retries < options.max_retries_per_student:
                        retries += 1
                        excluded |= {v.preceptor_id for v in rejected}
                        log.warning(
                            f"{label}: proposal rejected ({rejected[0].constraint_type}: {rejected[0].reason}); "
                            f"retry {retries} without {sorted(excluded)}"
                        )
                        continue
                    log.error(f"{label}: proposal rejected after {retries} retries")
                    results.add_violations([v.to_violation() for v in rejected])
                    self._record_gap(context, f"Proposal rejected: {rejected[0].reason}", 0, gaps)
                    return

                builder.state.add_assignments(proposals)

            if outcome.success:
                log.debug(f"{label}: {strategy.name} assigned {len(proposals)} days")
                return

            log.info(f"{label}: {strategy.name} failed: {outcome.error}")
            self._record_gap(context, outcome.error or "Strategy failed", len(proposals), gaps)
            return

    def _record_gap(self, context: StrategyContext, reason: str, assigned: int, gaps: List[GapRequest]) -> None:
        unmet = self._unmet(
            context.student,
            context.clerkship,
            context.elective,
            reason,
            required=context.required_days,
            assigned=assigned,
            requirement_type=context.requirement_type,
            primary_team_id=context.teams[0].id if context.teams else None
        )
        gaps.append(GapRequest(
            unmet=unmet,
            student=context.student,
            clerkship=context.clerkship,
            config=context.config,
            elective=context.elective,
            teams=context.teams
        ))

    @staticmethod
    def _unmet(
        student: Student,
        clerkship: Clerkship,
        elective: Optional[Elective],
        reason: str,
        required: Optional[int] = None,
        assigned: int = 0,
        requirement_type: Optional[RequirementType] = None,
        primary_team_id: Optional[str] = None
    ) -> UnmetRequirement:
        required = clerkship.required_days if required is None else required
        if requirement_type is None:
            requirement_type = RequirementType.ELECTIVE if elective else RequirementType(clerkship.clerkship_type.value)
        return UnmetRequirement(
            student_id=student.id,
            student_name=student.name,
            clerkship_id=clerkship.id,
            clerkship_name=clerkship.name,
            elective_id=elective.id if elective else None,
            requirement_type=requirement_type,
            required_days=required,
            assigned_days=assigned,
            remaining_days=required - assigned,
            reason=reason,
            primary_team_id=primary_team_id
        )
