"""
Availability Pattern Resolution.

Expands recurring availability rules into concrete dates.
All arithmetic is pure calendar arithmetic on datetime.date, so there is no
time zone, DST or month-length drift.
"""

import calendar
import logging
from datetime import date as date_type, timedelta
from typing import Dict, Iterable, Iterator, List

from models import (
    AvailabilityPattern,
    AvailabilityRecord,
    GeneratedDate,
    PatternType,
    WeeklyConfig,
    MonthlyConfig,
    MonthlyType,
    WeekDefinition,
    BlockConfig
)

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6
BUSINESS_WEEK_DAYS = 5


def _daterange(start: date_type, end: date_type) -> Iterator[date_type]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _is_weekend(day: date_type) -> bool:
    return day.weekday() >= SATURDAY


def _months_in_range(start: date_type, end: date_type) -> List[tuple]:
    """(year, month) pairs for every month touching [start, end]."""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return months


def _month_bounds(year: int, month: int):
    last = calendar.monthrange(year, month)[1]
    return date_type(year, month, 1), date_type(year, month, last)


# --- Monthly helpers ---

def _first_n_days(year: int, month: int, n: int) -> List[date_type]:
    first, last = _month_bounds(year, month)
    return list(_daterange(first, min(last, first + timedelta(days=n - 1))))


def _last_n_days(year: int, month: int, n: int) -> List[date_type]:
    first, last = _month_bounds(year, month)
    return list(_daterange(max(first, last - timedelta(days=n - 1)), last))


def _first_calendar_week(year: int, month: int) -> List[date_type]:
    """First Sunday-Saturday week starting inside the month."""
    first, last = _month_bounds(year, month)
    # date.weekday(): Monday=0 .. Sunday=6
    offset = (SUNDAY - first.weekday()) % 7
    sunday = first + timedelta(days=offset)
    return [d for d in _daterange(sunday, sunday + timedelta(days=6)) if d <= last]


def _last_calendar_week(year: int, month: int) -> List[date_type]:
    """Last Sunday-Saturday week ending inside the month."""
    first, last = _month_bounds(year, month)
    offset = (last.weekday() - SATURDAY) % 7
    saturday = last - timedelta(days=offset)
    return [d for d in _daterange(saturday - timedelta(days=6), saturday) if d >= first]


def _first_business_days(year: int, month: int, n: int) -> List[date_type]:
    first, last = _month_bounds(year, month)
    days = []
    for d in _daterange(first, last):
        if len(days) == n:
            break
        if not _is_weekend(d):
            days.append(d)
    return days


def _last_business_days(year: int, month: int, n: int) -> List[date_type]:
    first, last = _month_bounds(year, month)
    days = []
    current = last
    while current >= first and len(days) < n:
        if not _is_weekend(current):
            days.append(current)
        current -= timedelta(days=1)
    return sorted(days)


def _specific_days(year: int, month: int, days: Iterable[int]) -> List[date_type]:
    last_day = calendar.monthrange(year, month)[1]
    return sorted(date_type(year, month, d) for d in days if d <= last_day)


def _month_dates(year: int, month: int, config: MonthlyConfig) -> List[date_type]:
    kind = config.monthly_type
    week = config.week_definition

    if kind == MonthlyType.FIRST_WEEK:
        if week == WeekDefinition.SEVEN_DAYS:
            return _first_n_days(year, month, 7)
        if week == WeekDefinition.CALENDAR:
            return _first_calendar_week(year, month)
        return _first_business_days(year, month, BUSINESS_WEEK_DAYS)

    if kind == MonthlyType.LAST_WEEK:
        if week == WeekDefinition.SEVEN_DAYS:
            return _last_n_days(year, month, 7)
        if week == WeekDefinition.CALENDAR:
            return _last_calendar_week(year, month)
        return _last_business_days(year, month, BUSINESS_WEEK_DAYS)

    if kind == MonthlyType.FIRST_BUSINESS_WEEK:
        return _first_business_days(year, month, BUSINESS_WEEK_DAYS)
    if kind == MonthlyType.LAST_BUSINESS_WEEK:
        return _last_business_days(year, month, BUSINESS_WEEK_DAYS)

    return _specific_days(year, month, config.specific_days or [])


# --- Per-type generators ---

def generate_weekly_dates(start: date_type, end: date_type, config: WeeklyConfig) -> List[date_type]:
    selected = set(config.days_of_week)
    return [d for d in _daterange(start, end) if d.weekday() in selected]


def generate_monthly_dates(start: date_type, end: date_type, config: MonthlyConfig) -> List[date_type]:
    dates = []
    for year, month in _months_in_range(start, end):
        dates.extend(_month_dates(year, month, config))
    return sorted(d for d in dates if start <= d <= end)


def generate_block_dates(start: date_type, end: date_type, config: BlockConfig) -> List[date_type]:
    return [
        d for d in _daterange(start, end)
        if not (config.exclude_weekends and _is_weekend(d))
    ]


def generate_dates(pattern: AvailabilityPattern) -> List[date_type]:
    """
    Preview the dates a single pattern selects.
    Disabled patterns select nothing.
    """
    if not pattern.enabled:
        return []

    start, end = pattern.date_range_start, pattern.date_range_end
    if pattern.pattern_type == PatternType.WEEKLY:
        return generate_weekly_dates(start, end, pattern.config)
    if pattern.pattern_type == PatternType.MONTHLY:
        return generate_monthly_dates(start, end, pattern.config)
    if pattern.pattern_type == PatternType.BLOCK:
        return generate_block_dates(start, end, pattern.config)
    return [start]


def resolve_patterns(patterns: List[AvailabilityPattern]) -> List[GeneratedDate]:
    """
    Merge all patterns of a preceptor into one date -> availability map.

    Patterns are applied in ascending specificity (stable on input order), so a
    more specific pattern overwrites a less specific one on overlapping dates.
    """
    resolved: Dict[date_type, GeneratedDate] = {}

    for pattern in sorted(patterns, key=lambda p: p.specificity):
        if not pattern.enabled:
            continue
        for day in generate_dates(pattern):
            resolved[day] = GeneratedDate(
                date=day,
                is_available=pattern.is_available,
                source_pattern_type=pattern.pattern_type,
                site_id=pattern.site_id
            )

    return [resolved[d] for d in sorted(resolved)]


def materialize_availability(preceptor_id: str, patterns: List[AvailabilityPattern]) -> List[AvailabilityRecord]:
    """Turn a preceptor's patterns into concrete availability records."""
    own = [p for p in patterns if p.preceptor_id == preceptor_id]
    generated = resolve_patterns(own)
    logger.debug(f"Materialized patterns for {preceptor_id}: {summarize(generated)}")
    return [
        AvailabilityRecord(
            preceptor_id=preceptor_id,
            site_id=g.site_id,
            date=g.date,
            is_available=g.is_available
        )
        for g in generated
    ]


def summarize(generated: List[GeneratedDate]) -> Dict[str, int]:
    available = sum(1 for g in generated if g.is_available)
    return {
        "total": len(generated),
        "available": available,
        "unavailable": len(generated) - available,
    }
