"""
CTH Engine — Result structures.

Every indicator value in a completed analysis carries its provenance, so
downstream consumers can tell a caller-supplied value from one inferred
from neighbouring phases or defaulted from the epoch reference, without
the numbers themselves changing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

import pandas as pd

from .config.indicators import INDICATOR_NAMES, PHASES
from .config.settings import get_settings


class Provenance(str, Enum):
    """Where an indicator value came from."""
    PRESENT = "present"      # supplied by the caller
    INFERRED = "inferred"    # interpolated or extrapolated from a neighbour phase
    DEFAULTED = "defaulted"  # seeded from the epoch reference table


# Inference methods recorded alongside the provenance
METHOD_CALLER = "caller"
METHOD_EPOCH = "epoch"
METHOD_INTERPOLATION = "interpolation"
METHOD_FORWARD = "forward_extrapolation"
METHOD_BACKWARD = "backward_extrapolation"


@dataclass(frozen=True)
class IndicatorValue:
    """A raw indicator value tagged with its provenance."""
    value: float
    provenance: Provenance
    method: str
    source: Optional[str] = None  # epoch name or neighbour phase(s)
    clamped: bool = False

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "provenance": self.provenance.value,
            "method": self.method,
            "source": self.source,
            "clamped": self.clamped,
        }


@dataclass(frozen=True)
class PhaseResult:
    """Completed indicators and score for one phase."""
    phase: str
    year: float
    indicators: Mapping[str, IndicatorValue]
    score: float
    dimensions: Mapping[str, float] = field(default_factory=dict)

    def raw_indicators(self) -> dict[str, float]:
        return {name: iv.value for name, iv in self.indicators.items()}

    def provenance(self) -> dict[str, str]:
        return {name: iv.provenance.value for name, iv in self.indicators.items()}

    def count(self, provenance: Provenance) -> int:
        return sum(1 for iv in self.indicators.values() if iv.provenance == provenance)


@dataclass(frozen=True)
class ContextAnalysis:
    """Result of one completion run for an event."""
    event_start_year: float
    event_end_year: float
    phases: Mapping[str, PhaseResult]
    passes_run: int = 0
    validation_warnings: tuple[str, ...] = ()

    def __getitem__(self, phase: str) -> PhaseResult:
        return self.phases[phase]

    def scores(self) -> dict[str, float]:
        return {phase: self.phases[phase].score for phase in PHASES}

    def deltas(self) -> dict[str, float]:
        """
        Score change between adjacent phases, plus the total change.

        Keys look like 'before->prelude'; 'total' is after − before.
        """
        scores = self.scores()
        out = {
            f"{p1}->{p2}": scores[p2] - scores[p1]
            for p1, p2 in zip(PHASES, PHASES[1:])
        }
        out["total"] = scores[PHASES[-1]] - scores[PHASES[0]]
        return out

    def summary(self, precision: int | None = None) -> dict:
        """Scores, deltas and mean score, rounded to `precision` (default CTH_SCORE_PRECISION)."""
        if precision is None:
            precision = get_settings().score_precision
        scores = self.scores()
        return {
            "event_start_year": self.event_start_year,
            "event_end_year": self.event_end_year,
            "scores": {p: round(s, precision) for p, s in scores.items()},
            "deltas": {k: round(v, precision) for k, v in self.deltas().items()},
            "mean_score": round(sum(scores.values()) / len(scores), precision),
            "passes_run": self.passes_run,
            "inferred_count": sum(r.count(Provenance.INFERRED) for r in self.phases.values()),
            "defaulted_count": sum(r.count(Provenance.DEFAULTED) for r in self.phases.values()),
        }

    def to_dict(self) -> dict:
        """
        JSON-serializable output:
        {phase: {"indicators": {...}, "score": float, "provenance": {...}, ...}}

        The result can be passed back to analyze_event() as initial data.
        """
        return {
            phase: {
                "indicators": result.raw_indicators(),
                "score": result.score,
                "provenance": result.provenance(),
                "year": result.year,
                "dimensions": dict(result.dimensions),
            }
            for phase, result in self.phases.items()
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per phase: the nine indicator values, year and score."""
        rows = []
        for phase in PHASES:
            result = self.phases[phase]
            row = {"phase": phase, "year": result.year}
            row.update({name: result.indicators[name].value for name in INDICATOR_NAMES})
            row["score"] = result.score
            rows.append(row)
        return pd.DataFrame(rows).set_index("phase")
