"""
Preceptor Capacity Checking.

Capacity rules are resolved hierarchically, most specific first:
1. clerkship + requirement type
2. clerkship
3. requirement type
4. general preceptor rule
5. built-in defaults
Counts come from the RunState, which already includes persisted assignments.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from typing import Dict, Optional, Set, Tuple

from models import CapacityRule, RequirementType
from .state import RunState

logger = logging.getLogger(__name__)

DEFAULT_MAX_PER_DAY = 2
DEFAULT_MAX_PER_YEAR = 20

# (student_id, clerkship_id, block_number)
BlockKey = Tuple[str, str, int]


@dataclass
class ResolvedCapacityRule:
    max_students_per_day: int
    max_students_per_year: int
    max_students_per_block: Optional[int] = None
    max_blocks_per_year: Optional[int] = None
    source: str = "default"  # clerkship_requirement_type | clerkship | requirement_type | general | default

    @property
    def block_limit(self) -> Optional[int]:
        """Yearly block limit, enforced only when both block limits are set."""
        if self.max_students_per_block and self.max_blocks_per_year:
            return self.max_blocks_per_year
        return None


@dataclass
class CapacityCheckResult:
    has_capacity: bool
    reason: Optional[str] = None
    current_count: Optional[int] = None
    max_allowed: Optional[int] = None
    check_type: Optional[str] = None  # daily | yearly | block


class CapacityChecker:
    """
    Answers "can this preceptor take one more student on this date?"
    Rules are cached for the lifetime of the checker (one run).
    """

    def __init__(
        self,
        store,
        state: RunState,
        default_max_per_day: int = DEFAULT_MAX_PER_DAY,
        default_max_per_year: int = DEFAULT_MAX_PER_YEAR
    ):
        self.store = store
        self.state = state
        self.default_max_per_day = default_max_per_day
        self.default_max_per_year = default_max_per_year
        self._rule_cache: Dict[Tuple, ResolvedCapacityRule] = {}

    def resolve_rule(
        self,
        preceptor_id: str,
        clerkship_id: Optional[str] = None,
        requirement_type: Optional[RequirementType] = None,
        default_max_per_day: Optional[int] = None,
        default_max_per_year: Optional[int] = None
    ) -> ResolvedCapacityRule:
        """
        Walk the rule hierarchy for a preceptor.
        The optional defaults replace the built-in 2/day, 20/year fallback.
        """
        key = (preceptor_id, clerkship_id, requirement_type, default_max_per_day, default_max_per_year)
        if key in self._rule_cache:
            return self._rule_cache[key]

        lookups = []
        if clerkship_id and requirement_type:
            lookups.append(((clerkship_id, requirement_type), "clerkship_requirement_type"))
        if clerkship_id:
            lookups.append(((clerkship_id, None), "clerkship"))
        if requirement_type:
            lookups.append(((None, requirement_type), "requirement_type"))
        lookups.append(((None, None), "general"))

        resolved = None
        for (c_id, r_type), source in lookups:
            rule = self.store.load_capacity_rule(preceptor_id, clerkship_id=c_id, requirement_type=r_type)
            if rule is not None:
                resolved = self._from_rule(rule, source)
                break

        if resolved is None:
            resolved = ResolvedCapacityRule(
                max_students_per_day=default_max_per_day or self.default_max_per_day,
                max_students_per_year=default_max_per_year or self.default_max_per_year,
                source="default"
            )

        logger.debug(f"Capacity rule for {preceptor_id}: {resolved.source} ({resolved.max_students_per_day}/day, {resolved.max_students_per_year}/year)")
        self._rule_cache[key] = resolved
        return resolved

    @staticmethod
    def _from_rule(rule: CapacityRule, source: str) -> ResolvedCapacityRule:
        return ResolvedCapacityRule(
            max_students_per_day=rule.max_students_per_day,
            max_students_per_year=rule.max_students_per_year,
            max_students_per_block=rule.max_students_per_block,
            max_blocks_per_year=rule.max_blocks_per_year,
            source=source
        )

    def check_capacity(
        self,
        preceptor_id: str,
        day: date_type,
        increment: int = 1,
        clerkship_id: Optional[str] = None,
        requirement_type: Optional[RequirementType] = None,
        rule: Optional[ResolvedCapacityRule] = None
    ) -> CapacityCheckResult:
        """
        Daily then yearly checks.
        Returns the first failing check, or has_capacity=True.
        """
        if rule is None:
            rule = self.resolve_rule(preceptor_id, clerkship_id, requirement_type)

        daily = self.state.daily_count(preceptor_id, day)
        if daily >= rule.max_students_per_day:
            return CapacityCheckResult(
                has_capacity=False,
                reason=f"Preceptor at daily capacity ({daily}/{rule.max_students_per_day})",
                current_count=daily,
                max_allowed=rule.max_students_per_day,
                check_type="daily"
            )

        yearly = self.state.yearly_count(preceptor_id)
        if yearly + increment > rule.max_students_per_year:
            return CapacityCheckResult(
                has_capacity=False,
                reason=f"Preceptor at yearly capacity ({yearly}/{rule.max_students_per_year})",
                current_count=yearly,
                max_allowed=rule.max_students_per_year,
                check_type="yearly"
            )

        return CapacityCheckResult(has_capacity=True)


def check_block_limit(
    engaged: Set[BlockKey],
    block_key: BlockKey,
    max_blocks_per_year: Optional[int]
) -> CapacityCheckResult:
    """
    A block already engaged can always be continued; a new one needs a free slot.
    `engaged` holds the preceptor's blocks, committed and proposed.
    """
    if max_blocks_per_year is None or block_key in engaged or len(engaged) < max_blocks_per_year:
        return CapacityCheckResult(has_capacity=True)
    return CapacityCheckResult(
        has_capacity=False,
        reason=f"Preceptor at yearly block limit ({len(engaged)}/{max_blocks_per_year} blocks)",
        current_count=len(engaged),
        max_allowed=max_blocks_per_year,
        check_type="block"
    )
