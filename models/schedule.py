"""
Schedule data models for the Clerkship Scheduler.

This module defines the 'Output' of the scheduling engine:
committed student/preceptor/date assignments plus everything that could not
be placed.
"""

from typing import List, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from datetime import date as date_type

from .resource import RequirementType


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ScheduleAssignment(BaseModel):
    """
    One student with one preceptor on one date.
    Immutable once created by the engine.
    """

    # --- Core Scheduling Data ---
    student_id: str
    preceptor_id: str
    clerkship_id: str
    date: date_type = Field(description="Calendar date")
    requirement_type: RequirementType = Field(default=RequirementType.OUTPATIENT)

    elective_id: Optional[str] = Field(default=None)
    block_number: Optional[int] = Field(default=None, ge=1, description="1-based block index")
    team_id: Optional[str] = Field(default=None)

    # --- Fallback Tracking ---
    is_fallback: bool = Field(
        default=False,
        description="True if placed by the fallback resolver"
    )
    fallback_tier: Optional[int] = Field(default=None, ge=1, le=3)

    model_config = ConfigDict(frozen=True, json_schema_extra={
        "example": {
            "student_id": "stu_ada",
            "preceptor_id": "pre_kim",
            "clerkship_id": "clk_fm",
            "date": "2026-01-05",
            "requirement_type": "outpatient",
            "is_fallback": False
        }
    })


class UnmetRequirement(BaseModel):
    """A requirement pool that ended the run short of its required days."""
    student_id: str
    student_name: str = ""
    clerkship_id: str
    clerkship_name: str = ""
    elective_id: Optional[str] = None
    requirement_type: RequirementType
    required_days: int
    assigned_days: int = 0
    remaining_days: int
    reason: str
    primary_team_id: Optional[str] = None
    primary_health_system_id: Optional[str] = None


class Violation(BaseModel):
    student_id: str
    preceptor_id: Optional[str] = None
    date: Optional[date_type] = None
    constraint_type: str = Field(description="e.g. Blackout, PreceptorCapacity, TeamFormation")
    severity: Severity = Field(default=Severity.ERROR)
    message: str


class PendingApproval(BaseModel):
    """Fallback coverage that needs a coordinator's sign-off."""
    student_id: str
    clerkship_id: str
    elective_id: Optional[str] = None
    fallback_preceptor_id: str
    fallback_tier: int
    dates: List[date_type] = Field(default_factory=list)


class SchedulingStatistics(BaseModel):
    total_students: int = 0
    total_preceptors_used: int = 0
    fully_scheduled_students: int = 0
    partially_scheduled_students: int = 0
    unscheduled_students: int = 0
    total_assignments: int = 0
    total_days_scheduled: int = 0
    fallback_assignments: int = 0
    average_assignments_per_preceptor: float = 0.0
    completion_rate: float = Field(default=0.0, description="Percent, rounded to 0.1")
    assignments_per_preceptor: Dict[str, int] = Field(default_factory=dict)


class SchedulingResult(BaseModel):
    success: bool
    assignments: List[ScheduleAssignment] = Field(default_factory=list)
    unmet_requirements: List[UnmetRequirement] = Field(default_factory=list)
    violations: List[Violation] = Field(default_factory=list)
    pending_approvals: List[PendingApproval] = Field(default_factory=list)
    statistics: SchedulingStatistics = Field(default_factory=SchedulingStatistics)
    run_id: Optional[str] = None
    dry_run: bool = False

    def failure_report(self) -> List[Dict]:
        """
        Unmet requirements grouped by reason, largest shortfall first.
        """
        groups: Dict[str, Dict] = {}
        for unmet in self.unmet_requirements:
            entry = groups.setdefault(unmet.reason, {
                "reason": unmet.reason,
                "count": 0,
                "missing_days": 0,
                "students": [],
            })
            entry["count"] += 1
            entry["missing_days"] += unmet.remaining_days
            if unmet.student_id not in entry["students"]:
                entry["students"].append(unmet.student_id)

        report = list(groups.values())
        report.sort(key=lambda x: (-x["missing_days"], x["reason"]))
        return report
