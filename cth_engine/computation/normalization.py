"""
CTH Engine — Indicator normalization and domain clamping.

Raw indicator values are clamped to their expected domain and rescaled
to [0, 1]. Missing or invalid values normalize to 0 without raising;
callers that need to tell "absent" from "at the domain minimum" must
check is_valid_number() themselves.
"""

import logging
import math
import numbers

import numpy as np

from ..config.indicators import get_indicator_limits

logger = logging.getLogger(__name__)


def is_valid_number(value) -> bool:
    """True for finite real numbers, numpy scalars included. Booleans and NaN do not count."""
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value)


def normalize_indicator(value, min_value: float, max_value: float) -> float:
    """
    Normalize an indicator to [0, 1] against its expected domain.

    Values outside [min_value, max_value] are clamped first.
    Returns 0 for missing/invalid input and 0.5 for a degenerate domain.
    """
    if not is_valid_number(value):
        return 0.0
    if max_value == min_value:
        return 0.5
    clamped = max(min_value, min(max_value, value))
    return (clamped - min_value) / (max_value - min_value)


def clamp_indicator(name: str, value):
    """
    Clamp a value to the named indicator's domain.

    Unknown indicators and invalid values are returned unchanged.
    """
    limits = get_indicator_limits(name)
    if limits is None or not is_valid_number(value):
        return value
    low, high = limits
    if value < low:
        logger.debug(f"Clamping {name}={value} to floor {low}")
        return low
    if value > high:
        logger.debug(f"Clamping {name}={value} to ceiling {high}")
        return high
    return value


def normalize_named(name: str, value) -> float:
    """Normalize a value using the registered domain of the named indicator."""
    limits = get_indicator_limits(name)
    if limits is None:
        logger.warning(f"No limits registered for indicator '{name}', normalizing to 0")
        return 0.0
    return normalize_indicator(value, *limits)
