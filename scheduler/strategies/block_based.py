from collections import defaultdict
from datetime import date as date_type
from typing import Dict, List, Optional, Set

from models import AssignmentStrategy, ResolvedRequirementConfig
from ..context import StrategyContext, PreceptorCandidate
from .base import SchedulingStrategy, StrategyResult


class BlockBasedStrategy(SchedulingStrategy):
    """
    Splits the requirement into fixed-size blocks of consecutive candidate dates.
    Each block goes to a single preceptor; the previous block's preceptor is
    reused when continuity is preferred and they can cover the whole block.
    """

    name = "block_based"

    def can_handle(self, config: ResolvedRequirementConfig) -> bool:
        return config.assignment_strategy == AssignmentStrategy.BLOCK_BASED and config.block_size_days is not None

    def generate_assignments(self, context: StrategyContext) -> StrategyResult:
        config = context.config
        total = context.required_days
        block_size = config.block_size_days
        dates = context.candidate_dates

        if len(dates) < total:
            return StrategyResult(
                success=False,
                error=f"Insufficient available dates: {len(dates)} < {total}",
                metadata=self._metadata(0, 0, blocks_created=0)
            )

        full_blocks, remainder = divmod(total, block_size)
        if remainder and not config.allow_partial_blocks:
            return StrategyResult(
                success=False,
                error=(
                    f"Total days ({total}) not divisible by block size ({block_size}) "
                    f"and partial blocks not allowed"
                ),
                metadata=self._metadata(0, 0, blocks_created=0)
            )

        candidates = self.prepare_candidates(context)
        block_count = full_blocks + (1 if remainder else 0)
        used_in_call: Dict[str, int] = defaultdict(int)
        blocks_in_call: Dict[str, Set[int]] = defaultdict(set)
        assignments = []
        previous: Optional[PreceptorCandidate] = None

        for index in range(block_count):
            start = index * block_size
            # The trailing partial block only holds the remainder
            length = remainder if index == full_blocks else block_size
            block_dates = dates[start:start + length]
            block_number = index + 1

            selected = None
            if config.prefer_continuous_blocks and previous is not None:
                if self._covers(context, previous, block_dates, block_number, used_in_call, blocks_in_call):
                    selected = previous

            if selected is None:
                selected = next(
                    (c for c in candidates
                     if self._covers(context, c, block_dates, block_number, used_in_call, blocks_in_call)),
                    None
                )

            if selected is None:
                return StrategyResult(
                    success=False,
                    error=(
                        f"No preceptor available for block {block_number} "
                        f"(dates {block_dates[0].isoformat()} to {block_dates[-1].isoformat()})"
                    ),
                    metadata=self._metadata(len(candidates), 0, blocks_created=index)
                )

            for d in block_dates:
                assignments.append(context.make_assignment(selected.id, d, block_number=block_number))
            used_in_call[selected.id] += len(block_dates)
            blocks_in_call[selected.id].add(block_number)
            previous = selected

        return StrategyResult(
            success=True,
            assignments=assignments,
            metadata=self._metadata(len(candidates), len(assignments), blocks_created=block_count)
        )

    @staticmethod
    def _covers(
        context: StrategyContext,
        candidate: PreceptorCandidate,
        block_dates: List[date_type],
        block_number: int,
        used_in_call: Dict[str, int],
        blocks_in_call: Dict[str, Set[int]]
    ) -> bool:
        """Available with daily room on every block date, yearly room for the whole block, and a free block slot."""
        load = candidate.current_assignments + used_in_call[candidate.id]
        if load + len(block_dates) > candidate.max_students_per_year:
            return False
        if not context.has_block_capacity(candidate, block_number, blocks_in_call[candidate.id]):
            return False
        return all(
            candidate.is_available(d) and context.has_daily_capacity(candidate, d)
            for d in block_dates
        )
