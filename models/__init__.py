"""
Data models package for the Clerkship Scheduler.

This package exports the pillars of the data architecture:
1. Demand (Student, Clerkship, Elective)
2. Supply (Preceptor, Team, CapacityRule, BlackoutDate, availability patterns)
3. Configuration (requirement defaults, overrides, engine options)
4. Output (ScheduleAssignment, SchedulingResult)
"""

from .clerkship import (
    Student,
    Clerkship,
    ClerkshipType,
    Elective
)

from .resource import (
    Preceptor,
    Team,
    TeamMember,
    CapacityRule,
    BlackoutDate,
    RequirementType
)

from .availability import (
    AvailabilityPattern,
    AvailabilityRecord,
    GeneratedDate,
    PatternType,
    PATTERN_SPECIFICITY,
    WeeklyConfig,
    MonthlyConfig,
    MonthlyType,
    WeekDefinition,
    BlockConfig
)

from .config import (
    AssignmentStrategy,
    HealthSystemRule,
    OverrideMode,
    ConfigSource,
    RequirementDefaults,
    ClerkshipRequirement,
    ResolvedRequirementConfig,
    EngineOptions
)

from .schedule import (
    ScheduleAssignment,
    UnmetRequirement,
    Violation,
    Severity,
    PendingApproval,
    SchedulingStatistics,
    SchedulingResult
)

__all__ = [
    # --- Demand Models ---
    "Student",
    "Clerkship",
    "ClerkshipType",
    "Elective",

    # --- Resource & Constraint Models ---
    "Preceptor",
    "Team",
    "TeamMember",
    "CapacityRule",
    "BlackoutDate",
    "RequirementType",

    # --- Availability Models ---
    "AvailabilityPattern",
    "AvailabilityRecord",
    "GeneratedDate",
    "PatternType",
    "PATTERN_SPECIFICITY",
    "WeeklyConfig",
    "MonthlyConfig",
    "MonthlyType",
    "WeekDefinition",
    "BlockConfig",

    # --- Configuration Models ---
    "AssignmentStrategy",
    "HealthSystemRule",
    "OverrideMode",
    "ConfigSource",
    "RequirementDefaults",
    "ClerkshipRequirement",
    "ResolvedRequirementConfig",
    "EngineOptions",

    # --- Output Models ---
    "ScheduleAssignment",
    "UnmetRequirement",
    "Violation",
    "Severity",
    "PendingApproval",
    "SchedulingStatistics",
    "SchedulingResult",
]
