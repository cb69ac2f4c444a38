"""
Assignment strategies. Exactly one is selected per requirement pool.
"""

from .base import SchedulingStrategy, StrategyResult
from .continuous_single import ContinuousSingleStrategy
from .block_based import BlockBasedStrategy
from .daily_rotation import DailyRotationStrategy
from .team_continuity import TeamContinuityStrategy
from .selector import StrategySelector

__all__ = [
    "SchedulingStrategy",
    "StrategyResult",
    "ContinuousSingleStrategy",
    "BlockBasedStrategy",
    "DailyRotationStrategy",
    "TeamContinuityStrategy",
    "StrategySelector",
]
