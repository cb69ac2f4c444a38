"""
Requirement Configuration Resolution.

Merges the global defaults for a requirement type with an optional
per-clerkship override record.
"""

import logging
from typing import Optional

from models import (
    Clerkship,
    ClerkshipRequirement,
    RequirementDefaults,
    ResolvedRequirementConfig,
    RequirementType,
    OverrideMode,
    ConfigSource
)

logger = logging.getLogger(__name__)

# Resolved field -> (defaults attribute, override attribute)
CONFIG_FIELDS = {
    "assignment_strategy": ("assignment_strategy", "override_assignment_strategy"),
    "health_system_rule": ("health_system_rule", "override_health_system_rule"),
    "max_students_per_day": ("default_max_students_per_day", "override_max_students_per_day"),
    "max_students_per_year": ("default_max_students_per_year", "override_max_students_per_year"),
    "block_size_days": ("block_size_days", "override_block_size_days"),
    "allow_partial_blocks": ("allow_partial_blocks", "override_allow_partial_blocks"),
    "prefer_continuous_blocks": ("prefer_continuous_blocks", "override_prefer_continuous_blocks"),
    "allow_fallbacks": ("allow_fallbacks", "override_allow_fallbacks"),
    "fallback_requires_approval": ("fallback_requires_approval", "override_fallback_requires_approval"),
    "fallback_allow_cross_system": ("fallback_allow_cross_system", "override_fallback_allow_cross_system"),
}

REQUIRED_SECTION_FIELDS = ("override_assignment_strategy", "override_health_system_rule")


def built_in_defaults(requirement_type: RequirementType) -> RequirementDefaults:
    return RequirementDefaults(requirement_type=requirement_type)


def resolve_requirement_config(
    clerkship: Clerkship,
    requirement: Optional[ClerkshipRequirement] = None,
    defaults: Optional[RequirementDefaults] = None
) -> ResolvedRequirementConfig:
    """
    Build the effective configuration for a clerkship.

    Modes:
    - inherit: defaults only
    - override_fields: each override that is set replaces its default
    - override_section: overrides replace everything; strategy and health
      system rule must be given
    """
    requirement_type = RequirementType(
        requirement.requirement_type.value
        if requirement and requirement.requirement_type
        else clerkship.clerkship_type.value
    )
    required_days = (
        requirement.required_days
        if requirement and requirement.required_days is not None
        else clerkship.required_days
    )
    if defaults is None:
        defaults = built_in_defaults(requirement_type)

    values = {name: getattr(defaults, attr) for name, (attr, _) in CONFIG_FIELDS.items()}
    overridden = []
    source = ConfigSource.GLOBAL_DEFAULTS
    mode = requirement.override_mode if requirement else OverrideMode.INHERIT

    if mode == OverrideMode.OVERRIDE_SECTION:
        missing = [f for f in REQUIRED_SECTION_FIELDS if getattr(requirement, f) is None]
        if missing:
            raise ValueError(
                f"override_section for clerkship {clerkship.id} requires {', '.join(missing)}"
            )
        for name, (_, override_attr) in CONFIG_FIELDS.items():
            value = getattr(requirement, override_attr)
            if value is not None:
                values[name] = value
            overridden.append(name)
        source = ConfigSource.FULL_OVERRIDE

    elif mode == OverrideMode.OVERRIDE_FIELDS:
        for name, (_, override_attr) in CONFIG_FIELDS.items():
            value = getattr(requirement, override_attr)
            if value is not None:
                values[name] = value
                overridden.append(name)
        source = ConfigSource.PARTIAL_OVERRIDE

    config = ResolvedRequirementConfig(
        clerkship_id=clerkship.id,
        requirement_type=requirement_type,
        required_days=required_days,
        source=source,
        overridden_fields=overridden,
        **values
    )
    logger.debug(
        f"Resolved config for {clerkship.id}: {config.assignment_strategy.value} "
        f"({config.source.value}, overridden={overridden})"
    )
    return config
