"""
Tests for strategy context building: dates, candidate pools and team formation.
"""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from models import (
    Student,
    Clerkship,
    Elective,
    Preceptor,
    BlackoutDate,
    CapacityRule,
    RequirementType,
    ScheduleAssignment,
    Severity
)
from datastore import InMemoryDataStore
from scheduler.state import RunState
from scheduler.capacity import CapacityChecker
from scheduler.context import ContextBuilder
from scheduler.config_resolver import resolve_requirement_config


@pytest.fixture
def store(monday, weekdays, make_records, make_team):
    days = weekdays(monday, 10)
    return InMemoryDataStore(
        students=[Student(id="stu_1", name="Ada")],
        clerkships=[
            Clerkship(
                id="clk_fm",
                name="Family Medicine",
                required_days=10,
                electives=[
                    Elective(id="elec_sports", name="Sports", minimum_days=2, preceptor_ids=["pre_b"]),
                    Elective(id="elec_rural", name="Rural", minimum_days=2, site_ids=["site_rural"]),
                ]
            )
        ],
        preceptors=[
            Preceptor(id="pre_a", name="Dr. A", health_system_id="hs_1", site_ids=["site_a"]),
            Preceptor(id="pre_b", name="Dr. B", health_system_id="hs_2", site_ids=["site_a", "site_rural"]),
            Preceptor(id="pre_c", name="Dr. C", health_system_id="hs_1", site_ids=["site_a"]),
            Preceptor(id="pre_outsider", name="Dr. Out", health_system_id="hs_1"),
        ],
        teams=[make_team("team_fm", "clk_fm", "pre_a", "pre_b", ("pre_c", 3, True), require_same_health_system=True)],
        availability=(
            make_records("pre_a", days)
            + make_records("pre_a", [days[2]], available=False)
            + make_records("pre_b", days[:5], site_id="site_rural")
            + make_records("pre_b", days[5:], site_id="site_a")
            + make_records("pre_c", days)
            + make_records("pre_outsider", days)
        ),
        blackout_dates=[BlackoutDate(date=days[0], reason="Holiday")],
        assignments=[
            ScheduleAssignment(student_id="stu_1", preceptor_id="pre_a", clerkship_id="clk_other", date=days[1])
        ],
        capacity_rules=[CapacityRule(preceptor_id="pre_c", max_students_per_day=1, max_students_per_year=4)]
    )


class TestCandidateDates:

    def test_blackouts_and_booked_dates_removed(self, store, context_for, monday):
        context = context_for(store, "stu_1", "clk_fm")
        assert monday not in context.candidate_dates  # blackout
        assert monday + timedelta(days=1) not in context.candidate_dates  # already booked
        assert len(context.candidate_dates) == 26
        assert context.blackout_dates == {monday}


class TestCandidatePool:

    def test_only_team_members(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm")
        assert [c.id for c in context.preceptors] == ["pre_a", "pre_b", "pre_c"]
        assert context.candidate("pre_outsider") is None

    def test_unavailable_record_and_blocked_dates_dropped(self, store, context_for, monday, weekdays):
        days = weekdays(monday, 10)
        pre_a = context_for(store, "stu_1", "clk_fm").candidate("pre_a")
        assert not pre_a.is_available(days[0])   # blackout
        assert not pre_a.is_available(days[1])   # student booked
        assert not pre_a.is_available(days[2])   # explicit unavailable record
        assert len(pre_a.available_dates) == 7

    def test_fallback_only_flag(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm")
        assert context.candidate("pre_c").is_fallback_only is True
        assert context.candidate("pre_a").is_fallback_only is False

    def test_capacity_resolved_per_candidate(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm", max_students_per_day=1, max_students_per_year=9)
        pre_a, pre_c = context.candidate("pre_a"), context.candidate("pre_c")
        assert (pre_a.max_students_per_day, pre_a.max_students_per_year, pre_a.capacity_source) == (1, 9, "default")
        assert (pre_c.max_students_per_year, pre_c.capacity_source) == (4, "general")

    def test_has_daily_capacity_counts_pending(self, store, context_for, monday):
        context = context_for(store, "stu_1", "clk_fm")
        pre_a = context.candidate("pre_a")
        day = monday + timedelta(days=3)
        assert context.has_daily_capacity(pre_a, day) is True
        assert context.has_daily_capacity(pre_a, day, pending=1) is True
        assert context.has_daily_capacity(pre_a, day, pending=2) is False

    def test_existing_assignments_seed_yearly_count(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm")
        assert context.candidate("pre_a").current_assignments == 1
        assert context.candidate("pre_a").remaining_yearly == 19


class TestElectivePool:

    def test_preceptor_restriction(self, store, context_for):
        elective = store.clerkships[0].electives[0]
        context = context_for(store, "stu_1", "clk_fm", elective=elective)
        assert [c.id for c in context.preceptors] == ["pre_b"]
        assert context.requirement_type == RequirementType.ELECTIVE

    def test_site_restriction_filters_dates(self, store, context_for, monday, weekdays):
        elective = store.clerkships[0].electives[1]
        context = context_for(store, "stu_1", "clk_fm", elective=elective)
        assert [c.id for c in context.preceptors] == ["pre_b"]
        # only the first five weekdays are at the rural site; minus blackout and booked day
        assert sorted(context.preceptors[0].available_dates) == weekdays(monday, 5)[2:]

    def test_make_assignment(self, store, context_for, monday):
        elective = store.clerkships[0].electives[0]
        context = context_for(store, "stu_1", "clk_fm", elective=elective)
        a = context.make_assignment("pre_b", monday, block_number=1)
        assert a.elective_id == "elec_sports"
        assert a.team_id == "team_fm"
        assert a.requirement_type == RequirementType.ELECTIVE
        assert a.block_number == 1


class TestTeamFormation:

    def test_mismatched_health_system_removed(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm", enable_team_formation=True)
        assert [c.id for c in context.preceptors] == ["pre_a", "pre_c"]
        assert len(context.violations) == 1
        violation = context.violations[0]
        assert violation.constraint_type == "TeamFormation"
        assert violation.severity == Severity.WARNING
        assert violation.preceptor_id == "pre_b"

    def test_disabled_keeps_everyone(self, store, context_for):
        context = context_for(store, "stu_1", "clk_fm", enable_team_formation=False)
        assert len(context.preceptors) == 3
        assert context.violations == []


class TestBuildErrors:

    def test_missing_clerkship_id(self, store, monday):
        state = RunState()
        builder = ContextBuilder(store, state, CapacityChecker(store, state), monday, monday + timedelta(days=6))
        clerkship = Clerkship(id="", name="Broken", required_days=1)
        with pytest.raises(ValueError):
            builder.build(store.students[0], clerkship, resolve_requirement_config(clerkship))
