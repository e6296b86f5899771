"""
CTH Engine — Input validation and output bounds checking.

Only structural problems with the top-level input are errors. Missing or
invalid indicator values are data gaps, filled later by the pipeline.
"""

import logging
from typing import Mapping

from ..config.indicators import INDICATOR_LIMITS, INDICATOR_NAMES, PHASES
from .normalization import is_valid_number

logger = logging.getLogger(__name__)


class StructuralInputError(ValueError):
    """Top-level input the pipeline cannot work with."""


def validate_years(event_start_year, event_end_year) -> None:
    """Years must be finite numbers with start <= end."""
    if not is_valid_number(event_start_year) or not is_valid_number(event_end_year):
        raise StructuralInputError(
            f"event_start_year and event_end_year must be valid numbers, "
            f"got {event_start_year!r} and {event_end_year!r}"
        )
    if event_start_year > event_end_year:
        raise StructuralInputError(
            f"event_start_year ({event_start_year}) cannot be after "
            f"event_end_year ({event_end_year})"
        )


def _phase_indicators(phase: str, entry) -> Mapping:
    """Unwrap a phase entry: either the indicator mapping or {'indicators': {...}}."""
    if entry is None:
        return {}
    if not isinstance(entry, Mapping):
        raise StructuralInputError(
            f"Phase '{phase}' must be a mapping of indicators, got {type(entry).__name__}"
        )
    nested = entry.get("indicators")
    if isinstance(nested, Mapping):
        return nested
    if nested is not None:
        raise StructuralInputError(
            f"Phase '{phase}' indicators must be a mapping, got {type(nested).__name__}"
        )
    return entry


def extract_supplied_values(initial_data) -> dict[str, dict[str, float]]:
    """
    Pull the caller-supplied indicator values out of the initial data.

    Returns {phase: {indicator: value}} for every phase, keeping only
    known indicators with valid numeric values. Unknown phases and
    indicators are ignored.
    """
    if not isinstance(initial_data, Mapping):
        raise StructuralInputError(
            f"initial_data must be a mapping of phases, got {type(initial_data).__name__}"
        )

    for key in initial_data:
        if key not in PHASES:
            logger.warning(f"Ignoring unknown phase '{key}'")

    supplied = {}
    for phase in PHASES:
        indicators = _phase_indicators(phase, initial_data.get(phase))
        values = {}
        for name, value in indicators.items():
            if name not in INDICATOR_LIMITS:
                logger.warning(f"Ignoring unknown indicator '{name}' in phase '{phase}'")
                continue
            if value is None:
                continue
            if not is_valid_number(value):
                logger.warning(f"Invalid value for {phase}.{name} ({value!r}), treating as missing")
                continue
            values[name] = value
        supplied[phase] = values
    return supplied


def validate_analysis_output(analysis) -> list[str]:
    """
    Check a completed analysis against the output invariants.

    Returns list of violations (empty = all good).
    """
    errors = []
    for phase in PHASES:
        result = analysis.phases.get(phase)
        if result is None:
            errors.append(f"Missing phase: {phase}")
            continue

        if not is_valid_number(result.score) or not 0.0 <= result.score <= 1.0:
            errors.append(f"{phase} score={result.score} is outside [0, 1]")

        for name in INDICATOR_NAMES:
            iv = result.indicators.get(name)
            if iv is None:
                errors.append(f"{phase}.{name} is missing")
                continue
            low, high = INDICATOR_LIMITS[name]
            if not is_valid_number(iv.value) or not low <= iv.value <= high:
                errors.append(f"{phase}.{name}={iv.value} is outside [{low}, {high}]")
    return errors
