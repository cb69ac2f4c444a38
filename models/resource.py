"""
Resource and Constraint data models for the Clerkship Scheduler.

This module defines the 'Supply' side of the scheduler:
1. Preceptors (clinicians who supervise students)
2. Teams (priority-ranked preceptor groups per clerkship)
3. Capacity rules and blackout dates (limits on supply)
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import date as date_type


class RequirementType(str, Enum):
    """The three kinds of clinical requirement a day can count toward."""
    OUTPATIENT = "outpatient"
    INPATIENT = "inpatient"
    ELECTIVE = "elective"


class Preceptor(BaseModel):
    """
    Supervising clinician. Capacity and concrete availability are resolved
    per run by the context builder.
    """
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1)
    health_system_id: Optional[str] = Field(default=None)
    site_ids: List[str] = Field(default_factory=list, description="Sites the preceptor works at")
    specialty: Optional[str] = Field(default=None)

    is_global_fallback_only: bool = Field(
        default=False,
        description="Never used as a primary preceptor for any clerkship"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "pre_kim",
            "name": "Dr. Kim",
            "health_system_id": "hs_north",
            "site_ids": ["site_clinic_a"],
            "is_global_fallback_only": False
        }
    })


class TeamMember(BaseModel):
    preceptor_id: str
    priority: int = Field(default=1, description="Lower is preferred")
    role: Optional[str] = Field(default=None)
    is_fallback_only: bool = Field(
        default=False,
        description="Only used once primary members are exhausted"
    )


class Team(BaseModel):
    """
    Clerkship-scoped group of preceptors.
    Team membership is the only link between a clerkship and its preceptors.
    """
    id: str = Field(description="Unique identifier")
    clerkship_id: str
    name: Optional[str] = Field(default=None)
    members: List[TeamMember] = Field(default_factory=list)

    require_same_health_system: bool = Field(default=False)
    require_same_site: bool = Field(default=False)
    require_same_specialty: bool = Field(default=False)

    @field_validator('members')
    @classmethod
    def validate_unique_members(cls, v):
        ids = [m.preceptor_id for m in v]
        if len(ids) != len(set(ids)):
            raise ValueError("A preceptor can only appear once per team")
        return v

    def ordered_members(self) -> List[TeamMember]:
        """Members by ascending priority (stable on declaration order)."""
        return sorted(self.members, key=lambda m: m.priority)


class CapacityRule(BaseModel):
    """
    Per-preceptor limits. A rule may be scoped to a clerkship and/or a
    requirement type; the most specific matching rule wins.
    """
    preceptor_id: str
    clerkship_id: Optional[str] = Field(default=None)
    requirement_type: Optional[RequirementType] = Field(default=None)

    max_students_per_day: int = Field(ge=1)
    max_students_per_year: int = Field(ge=1)
    max_students_per_block: Optional[int] = Field(default=None, ge=1)
    max_blocks_per_year: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode='after')
    def validate_limits(self):
        if self.max_students_per_day > self.max_students_per_year:
            raise ValueError("Daily capacity cannot exceed yearly capacity")
        return self


class BlackoutDate(BaseModel):
    """A date excluded from all scheduling."""
    date: date_type
    reason: str = Field(default="")
