from typing import List, Optional

from models import ResolvedRequirementConfig
from .base import SchedulingStrategy
from .block_based import BlockBasedStrategy
from .continuous_single import ContinuousSingleStrategy
from .daily_rotation import DailyRotationStrategy
from .team_continuity import TeamContinuityStrategy


class StrategySelector:
    """
    Picks the first strategy whose can_handle() accepts the config.
    Order matters: ContinuousSingle is the default and sits last.
    """

    def __init__(self, strategies: Optional[List[SchedulingStrategy]] = None):
        self.strategies = strategies or [
            BlockBasedStrategy(),
            DailyRotationStrategy(),
            TeamContinuityStrategy(),
            ContinuousSingleStrategy(),
        ]

    def select(self, config: ResolvedRequirementConfig) -> SchedulingStrategy:
        for strategy in self.strategies:
            if strategy.can_handle(config):
                return strategy
        return self.strategies[-1]
