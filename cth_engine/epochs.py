"""
CTH Engine — Epoch reference data.

Approximate indicator snapshots for predefined historical epochs. They are
the first-pass prior for any indicator the caller did not supply: each phase
of an event is mapped to a representative year, and the epoch containing
that year provides the seed values.

Lookup chain: first epoch whose [start_year, end_year] contains the year →
contemporary default snapshot.

The table is immutable. A replacement can be loaded from JSON via
load_epoch_table() or the CTH_EPOCH_REFERENCE_PATH setting.
"""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from .computation.normalization import is_valid_number
from .config.indicators import INDICATOR_LIMITS, INDICATOR_NAMES
from .config.settings import get_settings

logger = logging.getLogger(__name__)

# Used when a year falls outside every epoch.
CONTEMPORARY_DEFAULT = MappingProxyType({
    "gdp_per_capita": 10000,
    "gini_index": 0.45,
    "political_events_count": 8,
    "average_income": 3000,
    "literacy_rate": 0.7,
    "life_expectancy": 60,
    "birth_rate": 0.02,
    "population_density": 100,
    "urbanization_rate": 0.5,
})

# Ordered: lookup returns the first matching interval.
DEFAULT_EPOCHS = (
    {
        "name": "antiquity", "start_year": -3000, "end_year": 500,
        "indicators": {
            "gdp_per_capita": 700, "gini_index": 0.6, "political_events_count": 5,
            "average_income": 100, "literacy_rate": 0.1, "life_expectancy": 30,
            "birth_rate": 0.04, "population_density": 5, "urbanization_rate": 0.1,
        },
    },
    {
        "name": "middle_ages", "start_year": 501, "end_year": 1500,
        "indicators": {
            "gdp_per_capita": 900, "gini_index": 0.55, "political_events_count": 7,
            "average_income": 200, "literacy_rate": 0.15, "life_expectancy": 35,
            "birth_rate": 0.035, "population_density": 10, "urbanization_rate": 0.15,
        },
    },
    {
        "name": "early_modern", "start_year": 1501, "end_year": 1800,
        "indicators": {
            "gdp_per_capita": 1500, "gini_index": 0.5, "political_events_count": 8,
            "average_income": 300, "literacy_rate": 0.25, "life_expectancy": 40,
            "birth_rate": 0.03, "population_density": 20, "urbanization_rate": 0.25,
        },
    },
    {
        "name": "industrial_revolution", "start_year": 1801, "end_year": 1900,
        "indicators": {
            "gdp_per_capita": 3000, "gini_index": 0.48, "political_events_count": 10,
            "average_income": 600, "literacy_rate": 0.4, "life_expectancy": 45,
            "birth_rate": 0.025, "population_density": 50, "urbanization_rate": 0.4,
        },
    },
    {
        "name": "early_20th_century", "start_year": 1901, "end_year": 1950,
        "indicators": {
            "gdp_per_capita": 7000, "gini_index": 0.45, "political_events_count": 12,
            "average_income": 1500, "literacy_rate": 0.7, "life_expectancy": 55,
            "birth_rate": 0.02, "population_density": 100, "urbanization_rate": 0.6,
        },
    },
    {
        "name": "late_20th_century", "start_year": 1951, "end_year": 2000,
        "indicators": {
            "gdp_per_capita": 15000, "gini_index": 0.4, "political_events_count": 10,
            "average_income": 4000, "literacy_rate": 0.85, "life_expectancy": 70,
            "birth_rate": 0.015, "population_density": 200, "urbanization_rate": 0.75,
        },
    },
    {
        "name": "contemporary", "start_year": 2001, "end_year": 2025,
        "indicators": {
            "gdp_per_capita": 25000, "gini_index": 0.35, "political_events_count": 8,
            "average_income": 8000, "literacy_rate": 0.95, "life_expectancy": 78,
            "birth_rate": 0.01, "population_density": 300, "urbanization_rate": 0.85,
        },
    },
)


@dataclass(frozen=True)
class EpochEntry:
    """One historical epoch: an inclusive year interval and its snapshot."""
    name: str
    start_year: float
    end_year: float
    indicators: Mapping[str, float]

    def __post_init__(self):
        # Freeze the snapshot so callers cannot mutate shared reference data
        object.__setattr__(self, "indicators", MappingProxyType(dict(self.indicators)))

    def contains(self, year: float) -> bool:
        return self.start_year <= year <= self.end_year

    def snapshot(self) -> dict[str, float]:
        return dict(self.indicators)


class EpochTable:
    """
    Ordered, read-only collection of epoch entries.

    Safe to share between runs; lookup() always returns a fresh dict.
    """

    def __init__(self, entries: Iterable[EpochEntry],
                 fallback: Optional[Mapping[str, float]] = None):
        self._entries = tuple(entries)
        self._fallback = MappingProxyType(dict(fallback or CONTEMPORARY_DEFAULT))

        # Seeding needs a number for every indicator in every snapshot
        for entry in self._entries:
            missing = _incomplete_indicators(entry.indicators)
            if missing:
                raise ValueError(f"Epoch '{entry.name}' lacks valid values for: {missing}")
        missing = _incomplete_indicators(self._fallback)
        if missing:
            raise ValueError(f"Fallback snapshot lacks valid values for: {missing}")

    @classmethod
    def from_records(cls, records: Iterable[dict],
                     fallback: Optional[Mapping[str, float]] = None) -> "EpochTable":
        """
        Build a table from plain dicts shaped like DEFAULT_EPOCHS.

        Raises ValueError listing every problem if any record is invalid.
        """
        records = list(records)
        errors = []
        for position, record in enumerate(records):
            errors.extend(_validate_record(record, position))
        if errors:
            raise ValueError(f"Invalid epoch records: {errors}")

        entries = [
            EpochEntry(
                name=r["name"],
                start_year=r["start_year"],
                end_year=r["end_year"],
                indicators=r["indicators"],
            )
            for r in records
        ]
        return cls(entries, fallback)

    @property
    def entries(self) -> tuple[EpochEntry, ...]:
        return self._entries

    @property
    def fallback(self) -> Mapping[str, float]:
        return self._fallback

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EpochEntry]:
        return iter(self._entries)

    def find(self, year: float) -> EpochEntry | None:
        """First epoch containing the year, or None."""
        for entry in self._entries:
            if entry.contains(year):
                return entry
        return None

    def lookup(self, year: float) -> dict[str, float]:
        """Indicator snapshot for a year, falling back to the contemporary default."""
        entry = self.find(year)
        if entry is None:
            logger.debug(f"Year {year} does not fit any defined epoch, using fallback snapshot")
            return dict(self._fallback)
        return entry.snapshot()


def _incomplete_indicators(snapshot: Mapping) -> list[str]:
    """Indicators without a valid numeric value in a snapshot."""
    return [name for name in INDICATOR_NAMES if not is_valid_number(snapshot.get(name))]


def _validate_record(record, position: int) -> list[str]:
    """Check one epoch record. Returns a list of problems (empty = OK)."""
    if not isinstance(record, dict):
        return [f"[#{position}] Epoch record is not an object"]

    prefix = f"[{record.get('name', f'#{position}')}]"
    errors = []

    for field in ("name", "start_year", "end_year", "indicators"):
        if field not in record:
            errors.append(f"{prefix} Missing field: {field}")
    if errors:
        return errors

    start, end = record["start_year"], record["end_year"]
    if not is_valid_number(start) or not is_valid_number(end):
        errors.append(f"{prefix} start_year/end_year must be numbers: {start}, {end}")
    elif start > end:
        errors.append(f"{prefix} start_year={start} is after end_year={end}")

    indicators = record["indicators"]
    if not isinstance(indicators, dict):
        errors.append(f"{prefix} indicators is not an object")
        return errors

    for name in INDICATOR_NAMES:
        value = indicators.get(name)
        if not is_valid_number(value):
            errors.append(f"{prefix} {name} is missing or not a number: {value}")
            continue
        low, high = INDICATOR_LIMITS[name]
        if not low <= value <= high:
            errors.append(f"{prefix} {name}={value} outside [{low}, {high}]")

    return errors


def load_epoch_table(path: str | Path) -> tuple[EpochTable | None, list[str]]:
    """
    Load and validate an epoch reference table from JSON.

    Accepts either a list of records or an object keyed by epoch name
    (the name is then taken from the key). Invalid records are skipped.
    Returns (table, errors); table is None when no record is usable.
    """
    path = Path(path)
    if not path.exists():
        return None, [f"File not found: {path}"]

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return None, [f"Invalid JSON: {e}"]

    if isinstance(data, dict):
        records = [
            {"name": name, **record} if isinstance(record, dict) else record
            for name, record in data.items()
        ]
    elif isinstance(data, list):
        records = data
    else:
        return None, ["Epoch reference must be a JSON list or object"]

    errors = []
    valid = []
    for position, record in enumerate(records):
        problems = _validate_record(record, position)
        if problems:
            errors.extend(problems)
        else:
            valid.append(record)

    logger.info(f"Loaded {len(valid)} of {len(records)} epochs from {path}, {len(errors)} validation errors")
    if not valid:
        return None, errors
    return EpochTable.from_records(valid), errors


@lru_cache()
def get_epoch_table() -> EpochTable:
    """
    Get the shared default epoch table.

    Uses CTH_EPOCH_REFERENCE_PATH when set and loadable, the built-in
    DEFAULT_EPOCHS otherwise.
    """
    path = get_settings().epoch_reference_path
    if path:
        table, errors = load_epoch_table(path)
        if errors:
            logger.warning(f"Epoch reference {path} has {len(errors)} problems: {errors[:5]}")
        if table is not None:
            return table
        logger.error(f"Could not load epoch reference {path}, using built-in epochs")
    return EpochTable.from_records(DEFAULT_EPOCHS)


def lookup_epoch(year: float, table: EpochTable | None = None) -> dict[str, float]:
    """Indicator snapshot for the epoch containing `year`."""
    if table is None:
        table = get_epoch_table()
    return table.lookup(year)
