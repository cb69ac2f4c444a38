"""
Shared fixtures for scheduler tests.

Dates are anchored on Monday 2026-01-05.
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
    Preceptor,
    Team,
    TeamMember,
    AvailabilityRecord,
    EngineOptions
)
from datastore import InMemoryDataStore
from scheduler.state import RunState
from scheduler.capacity import CapacityChecker
from scheduler.context import ContextBuilder
from scheduler.config_resolver import resolve_requirement_config

MONDAY = date(2026, 1, 5)


def _weekdays(start, count):
    """`count` consecutive Mon-Fri dates from `start`."""
    days = []
    current = start
    while len(days) < count:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def weekdays():
    return _weekdays


@pytest.fixture
def make_records():
    def _make(preceptor_id, dates, site_id="site_a", available=True):
        return [
            AvailabilityRecord(preceptor_id=preceptor_id, site_id=site_id, date=d, is_available=available)
            for d in dates
        ]
    return _make


@pytest.fixture
def make_team():
    """make_team("team_1", "clk_fm", "pre_a", ("pre_b", 2, True)) -> Team.

    Members are preceptor ids or (preceptor_id, priority, is_fallback_only) tuples.
    """
    def _make(team_id, clerkship_id, *members, **flags):
        team_members = []
        for index, m in enumerate(members, start=1):
            if isinstance(m, str):
                team_members.append(TeamMember(preceptor_id=m, priority=index))
            else:
                pid, priority, fallback_only = m
                team_members.append(TeamMember(preceptor_id=pid, priority=priority, is_fallback_only=fallback_only))
        return Team(id=team_id, clerkship_id=clerkship_id, members=team_members, **flags)
    return _make


@pytest.fixture
def single_preceptor_store(make_records, make_team):
    """One student, a 5-day clerkship, one preceptor available Mon-Fri of the first week."""
    return InMemoryDataStore(
        students=[Student(id="stu_1", name="Ada")],
        clerkships=[Clerkship(id="clk_fm", name="Family Medicine", required_days=5)],
        preceptors=[Preceptor(id="pre_a", name="Dr. A", health_system_id="hs_1", site_ids=["site_a"])],
        teams=[make_team("team_fm", "clk_fm", "pre_a")],
        availability=make_records("pre_a", _weekdays(MONDAY, 5))
    )


@pytest.fixture
def options():
    def _make(days=28, **kwargs):
        return EngineOptions(start_date=MONDAY, end_date=MONDAY + timedelta(days=days - 1), **kwargs)
    return _make


@pytest.fixture
def context_for():
    """Build a StrategyContext straight from a store, with optional config overrides."""
    def _build(store, student_id, clerkship_id, days=28, elective=None, state=None,
               enable_team_formation=False, **config_updates):
        state = state or RunState(store.load_assignments_by_preceptor_and_date())
        capacity = CapacityChecker(store, state)
        builder = ContextBuilder(store, state, capacity, MONDAY, MONDAY + timedelta(days=days - 1))
        student = store.load_students([student_id])[0]
        clerkship = store.load_clerkships_with_electives([clerkship_id])[0]
        config = resolve_requirement_config(clerkship)
        if config_updates:
            config = config.model_copy(update=config_updates)
        return builder.build(student, clerkship, config, elective=elective,
                             enable_team_formation=enable_team_formation)
    return _build
