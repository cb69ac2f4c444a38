"""
Requirement configuration and engine option models.

Global defaults are stored per requirement type. A clerkship may override
them through a ClerkshipRequirement record; the config resolver merges the
two into a ResolvedRequirementConfig that the strategies consume.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator, ConfigDict
from datetime import date as date_type

from .resource import RequirementType


class AssignmentStrategy(str, Enum):
    CONTINUOUS_SINGLE = "continuous_single"
    BLOCK_BASED = "block_based"
    DAILY_ROTATION = "daily_rotation"
    TEAM_CONTINUITY = "team_continuity"


class HealthSystemRule(str, Enum):
    ENFORCE_SAME_SYSTEM = "enforce_same_system"
    PREFER_SAME_SYSTEM = "prefer_same_system"
    NO_PREFERENCE = "no_preference"


class OverrideMode(str, Enum):
    INHERIT = "inherit"
    OVERRIDE_FIELDS = "override_fields"
    OVERRIDE_SECTION = "override_section"


class ConfigSource(str, Enum):
    GLOBAL_DEFAULTS = "global_defaults"
    PARTIAL_OVERRIDE = "partial_override"
    FULL_OVERRIDE = "full_override"


class RequirementDefaults(BaseModel):
    """
    School-wide defaults for one requirement type.
    """
    requirement_type: RequirementType

    assignment_strategy: AssignmentStrategy = Field(default=AssignmentStrategy.CONTINUOUS_SINGLE)
    health_system_rule: HealthSystemRule = Field(default=HealthSystemRule.NO_PREFERENCE)

    default_max_students_per_day: int = Field(default=2, ge=1)
    default_max_students_per_year: int = Field(default=20, ge=1)

    block_size_days: Optional[int] = Field(default=None, ge=1)
    allow_partial_blocks: bool = Field(default=False)
    prefer_continuous_blocks: bool = Field(default=True)

    allow_fallbacks: bool = Field(default=True)
    fallback_requires_approval: bool = Field(default=False)
    fallback_allow_cross_system: bool = Field(default=False)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "requirement_type": "inpatient",
            "assignment_strategy": "block_based",
            "block_size_days": 14,
            "allow_fallbacks": True
        }
    })


class ClerkshipRequirement(BaseModel):
    """
    Per-clerkship override of the requirement defaults.
    Every override_* field left as None falls back to the default.
    """
    clerkship_id: str
    requirement_type: Optional[RequirementType] = Field(default=None)
    required_days: Optional[int] = Field(default=None, ge=1)
    override_mode: OverrideMode = Field(default=OverrideMode.INHERIT)

    override_assignment_strategy: Optional[AssignmentStrategy] = None
    override_health_system_rule: Optional[HealthSystemRule] = None
    override_max_students_per_day: Optional[int] = Field(default=None, ge=1)
    override_max_students_per_year: Optional[int] = Field(default=None, ge=1)
    override_block_size_days: Optional[int] = Field(default=None, ge=1)
    override_allow_partial_blocks: Optional[bool] = None
    override_prefer_continuous_blocks: Optional[bool] = None
    override_allow_fallbacks: Optional[bool] = None
    override_fallback_requires_approval: Optional[bool] = None
    override_fallback_allow_cross_system: Optional[bool] = None


class ResolvedRequirementConfig(BaseModel):
    """The merged configuration a strategy works from."""
    clerkship_id: str
    requirement_type: RequirementType
    required_days: int = Field(ge=0)

    assignment_strategy: AssignmentStrategy
    health_system_rule: HealthSystemRule
    max_students_per_day: int
    max_students_per_year: int
    block_size_days: Optional[int] = None
    allow_partial_blocks: bool
    prefer_continuous_blocks: bool
    allow_fallbacks: bool
    fallback_requires_approval: bool
    fallback_allow_cross_system: bool

    source: ConfigSource
    overridden_fields: List[str] = Field(default_factory=list)


class EngineOptions(BaseModel):
    """Options for a single scheduling run."""
    start_date: date_type
    end_date: date_type
    enable_team_formation: bool = Field(default=False)
    enable_fallbacks: bool = Field(default=False)
    max_retries_per_student: int = Field(
        default=3,
        ge=0,
        description="Re-runs allowed after a rejected proposal"
    )
    dry_run: bool = Field(default=False, description="Skip persistence")

    @model_validator(mode='after')
    def validate_window(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self
