"""
Tests for availability pattern models and date generation.
"""

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from models import (
    AvailabilityPattern,
    PatternType,
    WeeklyConfig,
    MonthlyConfig,
    MonthlyType,
    WeekDefinition,
    BlockConfig
)
from scheduler.patterns import (
    generate_dates,
    generate_weekly_dates,
    generate_monthly_dates,
    generate_block_dates,
    resolve_patterns,
    materialize_availability,
    summarize
)


def monthly(kind, week=None, days=None):
    return MonthlyConfig(monthly_type=kind, week_definition=week, specific_days=days)


def pattern(pattern_type, start, end, config=None, available=True, **kwargs):
    return AvailabilityPattern(
        preceptor_id=kwargs.pop("preceptor_id", "pre_a"),
        site_id=kwargs.pop("site_id", "site_a"),
        pattern_type=pattern_type,
        date_range_start=start,
        date_range_end=end,
        is_available=available,
        config=config,
        **kwargs
    )


class TestPatternModel:
    """Validation rules on AvailabilityPattern."""

    def test_specificity_defaults_from_type(self):
        weekly = pattern(PatternType.WEEKLY, date(2026, 1, 1), date(2026, 1, 31), WeeklyConfig(days_of_week=[0]))
        block = pattern(PatternType.BLOCK, date(2026, 1, 1), date(2026, 1, 31))
        single = pattern(PatternType.INDIVIDUAL, date(2026, 1, 5), date(2026, 1, 5))
        assert (weekly.specificity, block.specificity, single.specificity) == (1, 2, 3)

    def test_block_config_defaults(self):
        block = pattern(PatternType.BLOCK, date(2026, 1, 1), date(2026, 1, 31))
        assert isinstance(block.config, BlockConfig)
        assert block.config.exclude_weekends is False

    def test_individual_must_be_single_day(self):
        with pytest.raises(ValidationError):
            pattern(PatternType.INDIVIDUAL, date(2026, 1, 5), date(2026, 1, 6))

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            pattern(PatternType.WEEKLY, date(2026, 2, 1), date(2026, 1, 1), WeeklyConfig(days_of_week=[0]))

    def test_weekly_requires_config(self):
        with pytest.raises(ValidationError):
            pattern(PatternType.WEEKLY, date(2026, 1, 1), date(2026, 1, 31))

    def test_weekday_out_of_range(self):
        with pytest.raises(ValidationError):
            WeeklyConfig(days_of_week=[7])

    def test_duplicate_weekdays(self):
        with pytest.raises(ValidationError):
            WeeklyConfig(days_of_week=[1, 1])

    def test_specific_days_required(self):
        with pytest.raises(ValidationError):
            MonthlyConfig(monthly_type=MonthlyType.SPECIFIC_DAYS)

    def test_week_definition_required(self):
        with pytest.raises(ValidationError):
            MonthlyConfig(monthly_type=MonthlyType.FIRST_WEEK)

    def test_config_rehydrates_from_json_dict(self):
        p = AvailabilityPattern.model_validate({
            "preceptor_id": "pre_a",
            "site_id": "site_a",
            "pattern_type": "monthly",
            "date_range_start": "2026-01-01",
            "date_range_end": "2026-03-31",
            "config": {"monthly_type": "first_week", "week_definition": "calendar"}
        })
        assert isinstance(p.config, MonthlyConfig)
        assert p.config.week_definition == WeekDefinition.CALENDAR


class TestWeeklyDates:

    def test_mon_wed_fri_across_dst_start(self):
        # US clocks change on 2026-03-08; dates must not drift
        dates = generate_weekly_dates(date(2026, 3, 1), date(2026, 3, 31), WeeklyConfig(days_of_week=[0, 2, 4]))
        assert len(dates) == 13
        assert date(2026, 3, 9) in dates
        assert all(d.weekday() in (0, 2, 4) for d in dates)

    def test_matches_brute_force_over_a_year(self):
        start, end = date(2026, 1, 1), date(2026, 12, 31)
        selected = {1, 3}
        dates = generate_weekly_dates(start, end, WeeklyConfig(days_of_week=sorted(selected)))
        expected = [
            start + timedelta(days=i)
            for i in range((end - start).days + 1)
            if (start + timedelta(days=i)).weekday() in selected
        ]
        assert dates == expected

    def test_weekend_only_across_dst_end(self):
        dates = generate_weekly_dates(date(2026, 10, 26), date(2026, 11, 8), WeeklyConfig(days_of_week=[5, 6]))
        assert dates == [date(2026, 10, 31), date(2026, 11, 1), date(2026, 11, 7), date(2026, 11, 8)]


class TestMonthlyDates:

    def test_specific_day_skips_short_months(self):
        config = monthly(MonthlyType.SPECIFIC_DAYS, days=[31])
        dates = generate_monthly_dates(date(2026, 1, 1), date(2026, 4, 30), config)
        assert dates == [date(2026, 1, 31), date(2026, 3, 31)]

    def test_leap_day(self):
        config = monthly(MonthlyType.SPECIFIC_DAYS, days=[29])
        assert generate_monthly_dates(date(2024, 2, 1), date(2024, 2, 29), config) == [date(2024, 2, 29)]
        assert generate_monthly_dates(date(2025, 2, 1), date(2025, 2, 28), config) == []

    def test_first_seven_days(self):
        config = monthly(MonthlyType.FIRST_WEEK, WeekDefinition.SEVEN_DAYS)
        dates = generate_monthly_dates(date(2026, 2, 1), date(2026, 2, 28), config)
        assert dates == [date(2026, 2, d) for d in range(1, 8)]

    def test_last_seven_days_leap_year(self):
        config = monthly(MonthlyType.LAST_WEEK, WeekDefinition.SEVEN_DAYS)
        assert generate_monthly_dates(date(2024, 2, 1), date(2024, 2, 29), config) == \
            [date(2024, 2, d) for d in range(23, 30)]
        assert generate_monthly_dates(date(2026, 2, 1), date(2026, 2, 28), config) == \
            [date(2026, 2, d) for d in range(22, 29)]

    def test_first_calendar_week_starts_on_sunday(self):
        config = monthly(MonthlyType.FIRST_WEEK, WeekDefinition.CALENDAR)
        # 2026-01-01 is a Thursday; the first full week starts Sunday the 4th
        dates = generate_monthly_dates(date(2026, 1, 1), date(2026, 1, 31), config)
        assert dates == [date(2026, 1, d) for d in range(4, 11)]
        assert dates[0].weekday() == 6

    def test_last_calendar_week_ends_on_saturday(self):
        config = monthly(MonthlyType.LAST_WEEK, WeekDefinition.CALENDAR)
        dates = generate_monthly_dates(date(2026, 1, 1), date(2026, 1, 31), config)
        assert dates == [date(2026, 1, d) for d in range(25, 32)]
        assert dates[-1].weekday() == 5

    def test_first_business_week(self):
        config = monthly(MonthlyType.FIRST_BUSINESS_WEEK)
        dates = generate_monthly_dates(date(2026, 2, 1), date(2026, 2, 28), config)
        assert dates == [date(2026, 2, d) for d in range(2, 7)]

    def test_last_business_week(self):
        config = monthly(MonthlyType.LAST_BUSINESS_WEEK)
        dates = generate_monthly_dates(date(2026, 1, 1), date(2026, 1, 31), config)
        assert dates == [date(2026, 1, d) for d in range(26, 31)]

    def test_business_week_definition_on_first_week(self):
        config = monthly(MonthlyType.FIRST_WEEK, WeekDefinition.BUSINESS)
        dates = generate_monthly_dates(date(2026, 2, 1), date(2026, 2, 28), config)
        assert dates == [date(2026, 2, d) for d in range(2, 7)]

    def test_clipped_to_range(self):
        config = monthly(MonthlyType.FIRST_WEEK, WeekDefinition.SEVEN_DAYS)
        dates = generate_monthly_dates(date(2026, 1, 3), date(2026, 2, 4), config)
        expected = [date(2026, 1, d) for d in range(3, 8)] + [date(2026, 2, d) for d in range(1, 5)]
        assert dates == expected


class TestBlockDates:

    def test_exclude_weekends(self):
        dates = generate_block_dates(date(2026, 1, 5), date(2026, 1, 18), BlockConfig(exclude_weekends=True))
        assert len(dates) == 10
        assert all(d.weekday() < 5 for d in dates)

    def test_every_day(self):
        dates = generate_block_dates(date(2026, 1, 5), date(2026, 1, 18), BlockConfig())
        assert len(dates) == 14


class TestGenerateDates:

    def test_individual(self):
        p = pattern(PatternType.INDIVIDUAL, date(2026, 1, 14), date(2026, 1, 14))
        assert generate_dates(p) == [date(2026, 1, 14)]

    def test_disabled_pattern_selects_nothing(self):
        p = pattern(PatternType.BLOCK, date(2026, 1, 5), date(2026, 1, 9), enabled=False)
        assert generate_dates(p) == []


class TestResolvePatterns:
    """Specificity ordering and overwrite behaviour."""

    @pytest.fixture
    def layered(self):
        weekdays = WeeklyConfig(days_of_week=[0, 1, 2, 3, 4])
        return [
            pattern(PatternType.INDIVIDUAL, date(2026, 1, 14), date(2026, 1, 14), available=True),
            pattern(PatternType.BLOCK, date(2026, 1, 12), date(2026, 1, 16), available=False),
            pattern(PatternType.WEEKLY, date(2026, 1, 5), date(2026, 1, 16), weekdays),
        ]

    def test_more_specific_pattern_wins(self, layered):
        resolved = {g.date: g for g in resolve_patterns(layered)}

        assert resolved[date(2026, 1, 6)].is_available is True
        assert resolved[date(2026, 1, 6)].source_pattern_type == PatternType.WEEKLY

        assert resolved[date(2026, 1, 13)].is_available is False
        assert resolved[date(2026, 1, 13)].source_pattern_type == PatternType.BLOCK

        assert resolved[date(2026, 1, 14)].is_available is True
        assert resolved[date(2026, 1, 14)].source_pattern_type == PatternType.INDIVIDUAL

    def test_dates_outside_every_pattern_absent(self, layered):
        resolved = {g.date for g in resolve_patterns(layered)}
        assert date(2026, 1, 10) not in resolved
        assert date(2026, 1, 17) not in resolved

    def test_output_sorted_by_date(self, layered):
        dates = [g.date for g in resolve_patterns(layered)]
        assert dates == sorted(dates)

    def test_equal_specificity_later_pattern_wins(self):
        first = pattern(PatternType.WEEKLY, date(2026, 1, 5), date(2026, 1, 9), WeeklyConfig(days_of_week=[0]))
        second = pattern(
            PatternType.WEEKLY, date(2026, 1, 5), date(2026, 1, 9), WeeklyConfig(days_of_week=[0]),
            available=False
        )
        resolved = resolve_patterns([first, second])
        assert len(resolved) == 1
        assert resolved[0].is_available is False

    def test_disabled_pattern_ignored(self):
        base = pattern(PatternType.BLOCK, date(2026, 1, 5), date(2026, 1, 9))
        off = pattern(PatternType.INDIVIDUAL, date(2026, 1, 7), date(2026, 1, 7), available=False, enabled=False)
        resolved = {g.date: g for g in resolve_patterns([base, off])}
        assert resolved[date(2026, 1, 7)].is_available is True

    def test_summarize(self, layered):
        summary = summarize(resolve_patterns(layered))
        assert summary == {"total": 10, "available": 6, "unavailable": 4}

    def test_materialize_keeps_preceptor_and_site(self, layered):
        other = pattern(PatternType.BLOCK, date(2026, 2, 2), date(2026, 2, 6), preceptor_id="pre_b")
        records = materialize_availability("pre_a", layered + [other])
        assert len(records) == 10
        assert {r.preceptor_id for r in records} == {"pre_a"}
        assert {r.site_id for r in records} == {"site_a"}
