"""
CTH Engine — Score-trend estimation.

Estimates an indicator in one phase from its known value in an adjacent
phase and the relative change in CTH score between the two, using a rule
of three:

    forward:  estimate = known × (1 + ΔCTH% × trend_relation)
    backward: estimate = known / (1 + ΔCTH% × trend_relation)

trend_relation is how strongly the indicator co-varies with the score
(1.0 = direct proportionality). It is not calibrated per indicator.
"""

import logging

from .normalization import is_valid_number

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"


def calculate_percentage_change(initial, final) -> float:
    """
    Relative change from `initial` to `final` (0.1 = +10%).

    Returns 0 if `initial` is zero or invalid, or `final` is invalid.
    """
    if not is_valid_number(initial) or initial == 0:
        return 0.0
    if not is_valid_number(final):
        return 0.0
    return (final - initial) / initial


def estimate_indicator_value(known_value, delta_pct, trend_relation=1.0,
                             direction: str = FORWARD) -> float:
    """
    Project a known indicator value across a score change.

    Args:
        known_value: Indicator value in the adjacent phase.
        delta_pct: Percentage change of CTH between the two phases,
            always measured earlier → later.
        trend_relation: Indicator change per unit of score change.
        direction: 'forward' to estimate the later phase from the earlier,
            'backward' to estimate the earlier phase from the later.
    """
    if direction not in (FORWARD, BACKWARD):
        raise ValueError(f"direction must be '{FORWARD}' or '{BACKWARD}', got {direction!r}")

    if not is_valid_number(known_value) or known_value < 0:
        logger.debug(f"Invalid known value ({known_value}) for estimation, returning 0")
        return 0.0
    if not is_valid_number(delta_pct):
        delta_pct = 0.0
    if not is_valid_number(trend_relation) or trend_relation < 0:
        trend_relation = 1.0

    change_factor = 1 + delta_pct * trend_relation

    if direction == FORWARD:
        return known_value * change_factor

    if change_factor == 0:
        logger.debug("Backward estimation denominator is zero, keeping known value")
        return known_value
    return known_value / change_factor
