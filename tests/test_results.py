"""
Tests for result assembly, statistics and the failure report.
"""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from models import ScheduleAssignment, UnmetRequirement, RequirementType, Violation, Severity
from scheduler.results import ResultBuilder


def assignment(student_id, preceptor_id, day, is_fallback=False):
    return ScheduleAssignment(
        student_id=student_id,
        preceptor_id=preceptor_id,
        clerkship_id="clk_fm",
        date=day,
        is_fallback=is_fallback,
        fallback_tier=1 if is_fallback else None
    )


def unmet(student_id, reason, remaining, clerkship_id="clk_fm"):
    return UnmetRequirement(
        student_id=student_id,
        clerkship_id=clerkship_id,
        requirement_type=RequirementType.OUTPATIENT,
        required_days=5,
        assigned_days=5 - remaining,
        remaining_days=remaining,
        reason=reason
    )


@pytest.fixture
def builder():
    b = ResultBuilder()
    for student_id in ("stu_1", "stu_2", "stu_3"):
        b.track_student(student_id)
    b.add_assignments([
        assignment("stu_1", "pre_a", date(2026, 1, 6)),
        assignment("stu_1", "pre_b", date(2026, 1, 5), is_fallback=True),
        assignment("stu_2", "pre_a", date(2026, 1, 5)),
    ])
    b.replace_unmet([
        unmet("stu_2", "No single preceptor available for all 5 required days", 4),
        unmet("stu_3", "No team configured for clerkship", 5),
        unmet("stu_3", "No single preceptor available for all 5 required days", 3, clerkship_id="clk_im"),
    ])
    return b


class TestStatistics:

    def test_student_buckets(self, builder):
        stats = builder.get_statistics()
        assert stats.total_students == 3
        assert stats.fully_scheduled_students == 1
        assert stats.partially_scheduled_students == 1
        assert stats.unscheduled_students == 1
        assert stats.completion_rate == 33.3

    def test_assignment_counts(self, builder):
        stats = builder.get_statistics()
        assert stats.total_assignments == 3
        assert stats.fallback_assignments == 1
        assert stats.total_preceptors_used == 2
        assert stats.average_assignments_per_preceptor == 1.5
        assert stats.assignments_per_preceptor == {"pre_a": 2, "pre_b": 1}

    def test_empty_run(self):
        stats = ResultBuilder().get_statistics()
        assert stats.total_students == 0
        assert stats.completion_rate == 0.0
        assert stats.average_assignments_per_preceptor == 0.0


class TestBuild:

    def test_unmet_means_failure(self, builder):
        result = builder.build(run_id="abc", dry_run=True)
        assert result.success is False
        assert result.run_id == "abc"
        assert result.dry_run is True

    def test_assignments_sorted(self, builder):
        result = builder.build()
        assert [(a.date.day, a.student_id) for a in result.assignments] == [(5, "stu_1"), (5, "stu_2"), (6, "stu_1")]

    def test_warnings_do_not_fail_run(self):
        b = ResultBuilder()
        b.track_student("stu_1")
        b.add_violations([Violation(
            student_id="stu_1", constraint_type="TeamFormation", severity=Severity.WARNING, message="trimmed"
        )])
        assert b.build().success is True

    def test_errors_fail_run(self):
        b = ResultBuilder()
        b.add_violations([Violation(student_id="stu_1", constraint_type="Blackout", message="blocked")])
        assert b.has_errors
        assert b.build().success is False


class TestFailureReport:

    def test_grouped_by_reason(self, builder):
        report = builder.build().failure_report()

        assert [entry["reason"] for entry in report] == [
            "No single preceptor available for all 5 required days",
            "No team configured for clerkship",
        ]
        assert report[0]["count"] == 2
        assert report[0]["missing_days"] == 7
        assert report[0]["students"] == ["stu_2", "stu_3"]
        assert report[1]["missing_days"] == 5
