"""
CTH Engine — Dimension aggregation and score calculation.

CTH = (w_e × E + w_s × S + w_a × A + w_p × P) / (w_e + w_s + w_a + w_p)

where each dimension value (E, S, A, P) is the mean of the normalized
indicators available in that dimension. The result is clipped to [0, 1].
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from ..config.indicators import DIMENSIONS, DIMENSION_NAMES
from ..config.settings import get_settings
from .normalization import is_valid_number, normalize_named

logger = logging.getLogger(__name__)

# Alternative key spellings accepted by DimensionWeights.from_mapping()
_WEIGHT_KEYS = {
    "epoch": ("epoch", "historical_epoch", "w_e"),
    "social": ("social", "social_range", "w_s"),
    "age": ("age", "age_range", "w_a"),
    "population": ("population", "population_range", "w_p"),
}


@dataclass(frozen=True)
class DimensionWeights:
    """Relative importance of each dimension in the overall score."""
    epoch: float = 0.40
    social: float = 0.30
    age: float = 0.15
    population: float = 0.15

    @classmethod
    def from_settings(cls) -> "DimensionWeights":
        settings = get_settings()
        return cls(
            epoch=settings.weight_epoch,
            social=settings.weight_social,
            age=settings.weight_age,
            population=settings.weight_population,
        )

    @classmethod
    def from_mapping(cls, weights: Mapping[str, float]) -> "DimensionWeights":
        """
        Build weights from a dict. Missing dimensions keep their default.

        Accepts short names (epoch), dimension names (historical_epoch)
        or the w_e/w_s/w_a/w_p shorthand.
        """
        values = {}
        for field, aliases in _WEIGHT_KEYS.items():
            for key in aliases:
                if key in weights:
                    values[field] = float(weights[key])
                    break
        return cls(**values)

    def as_tuple(self) -> tuple[float, float, float, float]:
        """Weights in DIMENSION_NAMES order."""
        return (self.epoch, self.social, self.age, self.population)

    @property
    def total(self) -> float:
        return sum(self.as_tuple())


def resolve_weights(weights=None) -> DimensionWeights:
    """Accept None (settings defaults), a DimensionWeights, or a mapping."""
    if weights is None:
        return DimensionWeights.from_settings()
    if isinstance(weights, DimensionWeights):
        return weights
    if isinstance(weights, Mapping):
        return DimensionWeights.from_mapping(weights)
    raise TypeError(f"Unsupported weights type: {type(weights).__name__}")


def aggregate_dimension(indicator_names, raw_values: Mapping) -> float:
    """
    Mean of the normalized indicators whose raw value is a valid number.

    Returns 0 when none of the dimension's indicators are available.
    """
    normalized = [
        normalize_named(name, raw_values.get(name))
        for name in indicator_names
        if is_valid_number(raw_values.get(name))
    ]
    if not normalized:
        return 0.0
    return float(np.mean(normalized))


def dimension_values(raw_values: Mapping) -> dict[str, float]:
    """Value of every dimension for one phase's indicators."""
    return {
        dimension: aggregate_dimension(members, raw_values)
        for dimension, members in DIMENSIONS.items()
    }


def compute_score(values, weights) -> float:
    """
    Combine four dimension values into a score in [0, 1].

    Both arguments are sequences in DIMENSION_NAMES order. A weight sum
    of zero (or below) yields 0 instead of dividing by zero.
    """
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if values.shape != (len(DIMENSION_NAMES),) or weights.shape != values.shape:
        raise ValueError(
            f"Expected {len(DIMENSION_NAMES)} dimension values and weights, "
            f"got {values.shape} and {weights.shape}"
        )

    total_weight = float(weights.sum())
    if not math.isfinite(total_weight) or total_weight <= 0:
        logger.debug(f"Dimension weights sum to {total_weight}, score set to 0")
        return 0.0

    score = float(np.dot(weights, values)) / total_weight
    if not math.isfinite(score):
        return 0.0
    return max(0.0, min(1.0, score))


def score_indicators(raw_values: Mapping, weights=None) -> float:
    """CTH score for one phase's raw indicator values."""
    if not isinstance(raw_values, Mapping):
        return 0.0
    dims = dimension_values(raw_values)
    return compute_score(
        [dims[d] for d in DIMENSION_NAMES],
        resolve_weights(weights).as_tuple(),
    )
