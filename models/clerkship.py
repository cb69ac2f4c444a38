"""
Student and Clerkship data models for the Clerkship Scheduler.

This module defines the 'Demand' side of the scheduler:
1. Students (who need clinical days)
2. Clerkships (rotations with a fixed day requirement)
3. Electives (sub-requirements carved out of a clerkship)
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator, ConfigDict


class ClerkshipType(str, Enum):
    """Setting in which a clerkship is delivered."""
    INPATIENT = "inpatient"
    OUTPATIENT = "outpatient"


class Student(BaseModel):
    """A medical student. Read-only for the duration of a scheduling run."""
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1, description="Display name")
    priority: int = Field(
        default=0,
        description="Scheduling order (lower is scheduled first)"
    )


class Elective(BaseModel):
    """
    A clerkship sub-requirement with its own day minimum and a restricted
    preceptor/site pool.
    """
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1)
    minimum_days: int = Field(ge=1, description="Days that must be spent in this elective")
    is_required: bool = Field(default=True, description="Optional electives are never auto-scheduled")

    # Pool restrictions (empty = unrestricted on that dimension)
    site_ids: List[str] = Field(default_factory=list)
    preceptor_ids: List[str] = Field(default_factory=list)

    @property
    def is_restricted(self) -> bool:
        return bool(self.site_ids or self.preceptor_ids)


class Clerkship(BaseModel):
    """
    A rotation that requires a fixed number of clinical days.
    Electives are owned by the clerkship and consume part of its required days.
    """
    id: str = Field(description="Unique identifier")
    name: str = Field(min_length=1)
    clerkship_type: ClerkshipType = Field(default=ClerkshipType.OUTPATIENT)
    required_days: int = Field(ge=1, description="Total clinical days required")
    specialty: Optional[str] = Field(default=None, description="Restricts candidates to matching preceptors")
    electives: List[Elective] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_elective_days(self):
        elective_days = sum(e.minimum_days for e in self.electives)
        if elective_days > self.required_days:
            raise ValueError(
                f"Elective minimum days ({elective_days}) exceed clerkship required days ({self.required_days})"
            )
        return self

    @property
    def required_electives(self) -> List[Elective]:
        return [e for e in self.electives if e.is_required]

    @property
    def elective_days(self) -> int:
        """Days reserved for required electives."""
        return sum(e.minimum_days for e in self.required_electives)

    @property
    def non_elective_days(self) -> int:
        """Days left for the general (non-elective) preceptor pool."""
        return self.required_days - self.elective_days

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "clk_fm",
            "name": "Family Medicine",
            "clerkship_type": "outpatient",
            "required_days": 20,
            "specialty": "Family Medicine",
            "electives": [
                {
                    "id": "elec_sports",
                    "name": "Sports Medicine",
                    "minimum_days": 5,
                    "is_required": True,
                    "preceptor_ids": ["pre_kim"]
                }
            ]
        }
    })
