"""
CTH Engine — Context completion pipeline.

Central entry point: analyze_event(start, end, initial_data) → ContextAnalysis.

Fills missing indicators for the five phases of an event and scores them:
  Stage A: seed every missing indicator from the epoch reference table,
           using a representative year per phase
  Stage B: provisional CTH score per phase
  Stage C: up to N refinement passes over the originally-missing indicators
           (interpolation → forward extrapolation → backward extrapolation),
           rescoring between passes
  Stage D: clamp every value to its domain and compute the final scores

Each stage returns new phase structures; nothing is mutated in place.
Fallback chain per indicator: caller value → ΔCTH inference → epoch seed.
"""

import logging
import math
from typing import Mapping

from .config.indicators import INDICATOR_NAMES, PHASES, neighbours
from .config.settings import get_settings
from .computation.normalization import clamp_indicator
from .computation.scoring import dimension_values, resolve_weights, score_indicators
from .computation.trends import (
    BACKWARD, FORWARD, calculate_percentage_change, estimate_indicator_value,
)
from .computation.validation import (
    extract_supplied_values, validate_analysis_output, validate_years,
)
from .epochs import EpochTable, get_epoch_table
from .results import (
    METHOD_BACKWARD, METHOD_CALLER, METHOD_EPOCH, METHOD_FORWARD,
    METHOD_INTERPOLATION, ContextAnalysis, IndicatorValue, PhaseResult, Provenance,
)

logger = logging.getLogger(__name__)

# Smallest change that counts as progress between refinement passes
CONVERGENCE_TOLERANCE = 1e-12

PhaseState = dict[str, dict[str, IndicatorValue]]


def analyze_event(event_start_year, event_end_year, initial_data,
                  weights=None, epochs: EpochTable | None = None,
                  max_passes: int | None = None, trend_relation=None) -> ContextAnalysis:
    """
    Run the full completion pipeline for one event.

    Args:
        event_start_year, event_end_year: Event bounds, start <= end.
        initial_data: {phase: {indicator: value}} or
            {phase: {"indicators": {indicator: value}}}; any phase or
            indicator may be missing.
        weights: DimensionWeights or mapping; defaults from settings.
        epochs: Epoch reference table; defaults to the shared table.
        max_passes: Bound on Stage C refinement passes (default 3).
        trend_relation: float for all indicators, or {indicator: float}.

    Raises:
        StructuralInputError: Invalid years or non-mapping initial data.
    """
    validate_years(event_start_year, event_end_year)
    supplied = extract_supplied_values(initial_data)

    settings = get_settings()
    weights = resolve_weights(weights)
    if epochs is None:
        epochs = get_epoch_table()
    if max_passes is None:
        max_passes = settings.max_inference_passes
    if max_passes < 0:
        raise ValueError(f"max_passes must be >= 0, got {max_passes}")
    relations = resolve_trend_relations(trend_relation)

    supplied_count = sum(len(v) for v in supplied.values())
    logger.info(
        f"Analyzing event {event_start_year}-{event_end_year}: "
        f"{supplied_count}/{len(PHASES) * len(INDICATOR_NAMES)} indicators supplied"
    )

    # Stage A
    years = representative_years(event_start_year, event_end_year)
    state = seed_phases(supplied, years, epochs)

    # Stage B + C
    passes_run = 0
    for _ in range(max_passes):
        scores = score_phases(state, weights)
        state, changed = refine_phases(state, supplied, scores, relations)
        passes_run += 1
        logger.debug(f"Inference pass {passes_run}: {changed} values changed")
        if changed == 0:
            break

    # Stage D
    state = clamp_phases(state)
    final_scores = score_phases(state, weights)

    phases = {
        phase: PhaseResult(
            phase=phase,
            year=years[phase],
            indicators=state[phase],
            score=final_scores[phase],
            dimensions=dimension_values({n: iv.value for n, iv in state[phase].items()}),
        )
        for phase in PHASES
    }
    analysis = ContextAnalysis(
        event_start_year=event_start_year,
        event_end_year=event_end_year,
        phases=phases,
        passes_run=passes_run,
    )

    errors = validate_analysis_output(analysis)
    if errors:
        logger.warning(f"Validation issues for event {event_start_year}-{event_end_year}: {errors}")
        analysis = ContextAnalysis(
            event_start_year=event_start_year,
            event_end_year=event_end_year,
            phases=phases,
            passes_run=passes_run,
            validation_warnings=tuple(errors),
        )

    logger.info(
        f"Completed event {event_start_year}-{event_end_year} after {passes_run} passes: "
        + ", ".join(f"{p}={analysis[p].score:.4f}" for p in PHASES)
    )
    return analysis


def resolve_trend_relations(trend_relation=None) -> dict[str, float]:
    """Per-indicator trend relation, defaulting to the configured constant."""
    default = get_settings().trend_relation
    if trend_relation is None:
        return {name: default for name in INDICATOR_NAMES}
    if isinstance(trend_relation, Mapping):
        return {name: trend_relation.get(name, default) for name in INDICATOR_NAMES}
    return {name: trend_relation for name in INDICATOR_NAMES}


def representative_years(event_start_year, event_end_year) -> dict[str, float]:
    """Year used to look up the epoch reference for each phase."""
    settings = get_settings()
    return {
        "before": event_start_year - settings.before_offset_years,
        "prelude": event_start_year - settings.prelude_offset_years,
        "during": math.floor((event_start_year + event_end_year) / 2),
        "transition": event_end_year + settings.transition_offset_years,
        "after": event_end_year + settings.after_offset_years,
    }


# ---------------------------------------------------------------------------
#  Stage A: epoch seeding
# ---------------------------------------------------------------------------

def seed_phases(supplied: dict[str, dict[str, float]], years: dict[str, float],
                epochs: EpochTable) -> PhaseState:
    """Complete indicator set per phase: caller values first, epoch values for the rest."""
    state = {}
    for phase in PHASES:
        entry = epochs.find(years[phase])
        snapshot = entry.snapshot() if entry else dict(epochs.fallback)
        source = entry.name if entry else "fallback"

        indicators = {}
        for name in INDICATOR_NAMES:
            if name in supplied[phase]:
                indicators[name] = IndicatorValue(
                    value=supplied[phase][name],
                    provenance=Provenance.PRESENT,
                    method=METHOD_CALLER,
                )
            else:
                indicators[name] = IndicatorValue(
                    value=snapshot[name],
                    provenance=Provenance.DEFAULTED,
                    method=METHOD_EPOCH,
                    source=source,
                )
        state[phase] = indicators

        seeded = len(INDICATOR_NAMES) - len(supplied[phase])
        if seeded:
            logger.debug(f"Seeded {seeded} indicators for '{phase}' (year {years[phase]}) from {source}")
    return state


# ---------------------------------------------------------------------------
#  Stage B: scoring
# ---------------------------------------------------------------------------

def score_phases(state: PhaseState, weights) -> dict[str, float]:
    """CTH score of every phase from its current indicator values."""
    return {
        phase: score_indicators({name: iv.value for name, iv in indicators.items()}, weights)
        for phase, indicators in state.items()
    }


# ---------------------------------------------------------------------------
#  Stage C: ΔCTH inference
# ---------------------------------------------------------------------------

def infer_indicator(name: str, phase: str, supplied: dict[str, dict[str, float]],
                    scores: dict[str, float], trend_relation: float) -> IndicatorValue | None:
    """
    Estimate one originally-missing indicator from the adjacent phases.

    Only caller-supplied neighbour values are used. Returns None when no
    rule applies (the epoch seed then stays).
    """
    prev_phase, next_phase = neighbours(phase)
    has_prev = prev_phase is not None and name in supplied[prev_phase]
    has_next = next_phase is not None and name in supplied[next_phase]

    if has_prev and has_next:
        estimate = (supplied[prev_phase][name] + supplied[next_phase][name]) / 2
        method, source = METHOD_INTERPOLATION, f"{prev_phase},{next_phase}"

    elif has_prev:
        delta_pct = calculate_percentage_change(scores[prev_phase], scores[phase])
        if delta_pct == 0:
            return None
        estimate = estimate_indicator_value(
            supplied[prev_phase][name], delta_pct, trend_relation, FORWARD
        )
        method, source = METHOD_FORWARD, prev_phase

    elif has_next:
        delta_pct = calculate_percentage_change(scores[phase], scores[next_phase])
        if delta_pct == 0:
            return None
        estimate = estimate_indicator_value(
            supplied[next_phase][name], delta_pct, trend_relation, BACKWARD
        )
        method, source = METHOD_BACKWARD, next_phase

    else:
        return None

    value = clamp_indicator(name, estimate)
    logger.debug(f"Inferred {phase}.{name}={value} by {method} from {source}")
    return IndicatorValue(
        value=value,
        provenance=Provenance.INFERRED,
        method=method,
        source=source,
        clamped=value != estimate,
    )


def refine_phases(state: PhaseState, supplied: dict[str, dict[str, float]],
                  scores: dict[str, float],
                  trend_relations: dict[str, float]) -> tuple[PhaseState, int]:
    """
    One inference pass over every phase.

    Returns the new state and how many indicator values changed.
    """
    new_state = {}
    changed = 0
    for phase in PHASES:
        indicators = dict(state[phase])
        for name in INDICATOR_NAMES:
            if name in supplied[phase]:
                continue
            inferred = infer_indicator(name, phase, supplied, scores, trend_relations[name])
            if inferred is None:
                continue
            current = indicators[name]
            if (current.provenance != inferred.provenance
                    or current.method != inferred.method
                    or abs(current.value - inferred.value) > CONVERGENCE_TOLERANCE):
                changed += 1
            indicators[name] = inferred
        new_state[phase] = indicators
    return new_state, changed


# ---------------------------------------------------------------------------
#  Stage D: clamping
# ---------------------------------------------------------------------------

def clamp_phases(state: PhaseState) -> PhaseState:
    """Clamp every value, caller-supplied ones included, to its domain."""
    new_state = {}
    for phase, indicators in state.items():
        clamped = {}
        for name, iv in indicators.items():
            value = clamp_indicator(name, iv.value)
            if value != iv.value:
                logger.warning(f"Clamping {phase}.{name}={iv.value} to {value}")
                iv = IndicatorValue(
                    value=value,
                    provenance=iv.provenance,
                    method=iv.method,
                    source=iv.source,
                    clamped=True,
                )
            clamped[name] = iv
        new_state[phase] = clamped
    return new_state
