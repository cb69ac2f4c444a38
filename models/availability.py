"""
Availability Pattern data models for the Clerkship Scheduler.

Preceptor availability is declared as recurring rules (patterns) which the
pattern resolver expands into concrete per-date records:
1. Weekly   (specificity 1) - selected weekdays across a range
2. Monthly  (specificity 1) - first/last week or specific days of each month
3. Block    (specificity 2) - every day of a range, optionally weekdays only
4. Individual (specificity 3) - a single-date override

Higher specificity wins where patterns overlap.
"""

from enum import Enum
from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from datetime import date as date_type


class PatternType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    BLOCK = "block"
    INDIVIDUAL = "individual"


# Default specificity rank per pattern type
PATTERN_SPECIFICITY = {
    PatternType.WEEKLY: 1,
    PatternType.MONTHLY: 1,
    PatternType.BLOCK: 2,
    PatternType.INDIVIDUAL: 3,
}


class MonthlyType(str, Enum):
    FIRST_WEEK = "first_week"
    LAST_WEEK = "last_week"
    FIRST_BUSINESS_WEEK = "first_business_week"
    LAST_BUSINESS_WEEK = "last_business_week"
    SPECIFIC_DAYS = "specific_days"


class WeekDefinition(str, Enum):
    """How a 'week' is counted for first_week / last_week monthly patterns."""
    SEVEN_DAYS = "seven_days"   # first/last 7 calendar days of the month
    CALENDAR = "calendar"       # first/last full Sunday-Saturday week
    BUSINESS = "business"       # first/last 5 weekdays


class WeeklyConfig(BaseModel):
    days_of_week: List[int] = Field(min_length=1, description="0=Monday, 6=Sunday")

    @field_validator('days_of_week')
    @classmethod
    def validate_days(cls, v):
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days_of_week values must be between 0 (Monday) and 6 (Sunday)")
        if len(set(v)) != len(v):
            raise ValueError("Duplicate days of week are not allowed")
        return v


class MonthlyConfig(BaseModel):
    monthly_type: MonthlyType
    week_definition: Optional[WeekDefinition] = Field(default=None)
    specific_days: Optional[List[int]] = Field(default=None, description="Days of month, 1-31")

    @model_validator(mode='after')
    def validate_configuration(self):
        if self.monthly_type == MonthlyType.SPECIFIC_DAYS and not self.specific_days:
            raise ValueError("specific_days is required when monthly_type is 'specific_days'")

        if self.monthly_type in (MonthlyType.FIRST_WEEK, MonthlyType.LAST_WEEK) and self.week_definition is None:
            raise ValueError("week_definition is required for week-based monthly patterns")

        if self.specific_days:
            if any(d < 1 or d > 31 for d in self.specific_days):
                raise ValueError("specific_days values must be between 1 and 31")
            if len(set(self.specific_days)) != len(self.specific_days):
                raise ValueError("Duplicate specific days are not allowed")
        return self


class BlockConfig(BaseModel):
    exclude_weekends: bool = Field(default=False)


PatternConfig = Union[WeeklyConfig, MonthlyConfig, BlockConfig]


class AvailabilityPattern(BaseModel):
    """
    A preceptor + site scoped availability rule.
    """
    id: Optional[str] = Field(default=None)
    preceptor_id: str
    site_id: str
    pattern_type: PatternType
    specificity: Optional[int] = Field(
        default=None,
        ge=1,
        le=3,
        description="Derived from pattern_type when omitted"
    )

    date_range_start: date_type
    date_range_end: date_type
    is_available: bool = Field(default=True)
    enabled: bool = Field(default=True)
    reason: str = Field(default="", max_length=500)

    config: Optional[PatternConfig] = Field(default=None)

    @model_validator(mode='before')
    @classmethod
    def coerce_config(cls, data):
        """Pick the config model from pattern_type so JSON dicts rehydrate correctly."""
        if not isinstance(data, dict):
            return data
        config = data.get('config')
        if isinstance(config, dict):
            config_models = {
                PatternType.WEEKLY.value: WeeklyConfig,
                PatternType.MONTHLY.value: MonthlyConfig,
                PatternType.BLOCK.value: BlockConfig,
            }
            pattern_type = data.get('pattern_type')
            if isinstance(pattern_type, PatternType):
                pattern_type = pattern_type.value
            model = config_models.get(pattern_type)
            if model is not None:
                data = {**data, 'config': model(**config)}
        return data

    @model_validator(mode='after')
    def validate_pattern(self):
        if self.specificity is None:
            self.specificity = PATTERN_SPECIFICITY[self.pattern_type]

        if self.pattern_type == PatternType.INDIVIDUAL:
            if self.date_range_start != self.date_range_end:
                raise ValueError("Individual patterns must start and end on the same date")
            if self.config is not None:
                raise ValueError("Individual patterns take no config")
            return self

        if self.date_range_start > self.date_range_end:
            raise ValueError("date_range_start must be on or before date_range_end")

        expected = {
            PatternType.WEEKLY: WeeklyConfig,
            PatternType.MONTHLY: MonthlyConfig,
            PatternType.BLOCK: BlockConfig,
        }[self.pattern_type]

        if self.config is None and self.pattern_type == PatternType.BLOCK:
            self.config = BlockConfig()
        if not isinstance(self.config, expected):
            raise ValueError(f"{self.pattern_type.value} patterns require a {expected.__name__}")
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "preceptor_id": "pre_kim",
            "site_id": "site_clinic_a",
            "pattern_type": "weekly",
            "date_range_start": "2026-01-05",
            "date_range_end": "2026-06-30",
            "is_available": True,
            "config": {"days_of_week": [0, 2, 4]}
        }
    })


class AvailabilityRecord(BaseModel):
    """A concrete (preceptor, date) availability entry at a site."""
    preceptor_id: str
    site_id: str
    date: date_type
    is_available: bool = Field(default=True)


class GeneratedDate(BaseModel):
    """Output of pattern resolution for one date."""
    date: date_type
    is_available: bool
    source_pattern_type: PatternType
    site_id: str
