"""
CTH Engine — Indicator registry.

The nine socio-economic indicators, their expected [min, max] domains,
the four dimensions that group them, and the five ordered event phases.

Indicator names MUST match the keys used in phase data passed to the engine.
"""

from types import MappingProxyType

# Expected domain of each indicator. Values outside these limits are clamped
# before normalization and after inference.
INDICATOR_LIMITS = MappingProxyType({
    "gdp_per_capita":         (500, 30000),
    "gini_index":             (0.2, 0.7),
    "political_events_count": (0, 15),        # events per year/period
    "average_income":         (100, 15000),
    "literacy_rate":          (0.05, 1.0),    # 5% to 100%
    "life_expectancy":        (25, 85),
    "birth_rate":             (0.005, 0.06),  # 0.5% to 6%
    "population_density":     (1, 2000),
    "urbanization_rate":      (0.05, 1.0),    # 5% to 100%
})

INDICATOR_NAMES = tuple(INDICATOR_LIMITS)

# Each dimension owns a fixed, disjoint subset of indicators.
DIMENSIONS = MappingProxyType({
    "historical_epoch": ("gdp_per_capita", "gini_index", "political_events_count"),
    "social_range":     ("average_income", "literacy_rate"),
    "age_range":        ("life_expectancy", "birth_rate"),
    "population_range": ("population_density", "urbanization_rate"),
})

DIMENSION_NAMES = tuple(DIMENSIONS)

# Temporal order matters: inference looks at the previous and next phase.
PHASES = ("before", "prelude", "during", "transition", "after")


def get_indicator_limits(name: str) -> tuple[float, float] | None:
    """Get the (min, max) domain of an indicator, or None if unknown."""
    return INDICATOR_LIMITS.get(name)


def phase_index(phase: str) -> int:
    """Position of a phase in temporal order. Raises ValueError if unknown."""
    return PHASES.index(phase)


def neighbours(phase: str) -> tuple[str | None, str | None]:
    """Return the (previous, next) phases, None at either end."""
    i = phase_index(phase)
    prev_phase = PHASES[i - 1] if i > 0 else None
    next_phase = PHASES[i + 1] if i < len(PHASES) - 1 else None
    return prev_phase, next_phase
