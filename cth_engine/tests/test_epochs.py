"""
CTH Engine — Epoch reference table tests.
"""

import json

import pytest

from cth_engine.epochs import (
    CONTEMPORARY_DEFAULT, DEFAULT_EPOCHS, EpochEntry, EpochTable,
    _validate_record, get_epoch_table, load_epoch_table, lookup_epoch,
)
from cth_engine.config.indicators import INDICATOR_NAMES


def _epoch(name: str) -> dict:
    return next(e["indicators"] for e in DEFAULT_EPOCHS if e["name"] == name)


def test_default_epochs_are_complete_and_in_domain():
    for record in DEFAULT_EPOCHS:
        assert _validate_record(record, 0) == [], record["name"]


@pytest.mark.parametrize("year, epoch", [
    (-3000, "antiquity"),
    (500, "antiquity"),
    (501, "middle_ages"),
    (1777, "early_modern"),
    (1800, "early_modern"),
    (1801, "industrial_revolution"),
    (1811, "industrial_revolution"),
    (1950, "early_20th_century"),
    (1999, "late_20th_century"),
    (2025, "contemporary"),
])
def test_lookup_inside_known_epochs(year, epoch):
    assert lookup_epoch(year) == _epoch(epoch)
    assert get_epoch_table().find(year).name == epoch


@pytest.mark.parametrize("year", [-5000, 2026, 2300])
def test_lookup_outside_every_epoch_uses_contemporary_default(year):
    assert lookup_epoch(year) == dict(CONTEMPORARY_DEFAULT)
    assert get_epoch_table().find(year) is None


def test_lookup_returns_a_copy():
    snapshot = lookup_epoch(1777)
    snapshot["gdp_per_capita"] = -1
    assert lookup_epoch(1777)["gdp_per_capita"] == 1500


def test_entries_are_read_only():
    entry = get_epoch_table().entries[0]
    with pytest.raises(TypeError):
        entry.indicators["gdp_per_capita"] = 1
    with pytest.raises(AttributeError):
        entry.name = "changed"


def test_injected_table_first_match_wins():
    flat = dict(CONTEMPORARY_DEFAULT)
    table = EpochTable([
        EpochEntry("wide", -10000, 10000, flat),
        EpochEntry("shadowed", 1700, 1800, _epoch("early_modern")),
    ])
    assert len(table) == 2
    assert table.find(1750).name == "wide"
    assert lookup_epoch(1750, table) == flat


def test_empty_table_always_falls_back():
    table = EpochTable([], fallback=_epoch("antiquity"))
    assert lookup_epoch(1900, table) == _epoch("antiquity")


def _record(name, start, end, **overrides):
    indicators = dict(CONTEMPORARY_DEFAULT)
    indicators.update(overrides)
    return {"name": name, "start_year": start, "end_year": end, "indicators": indicators}


def test_load_epoch_table_from_list(tmp_path):
    path = tmp_path / "epochs.json"
    path.write_text(json.dumps([
        _record("one", 0, 999),
        _record("bad_years", 2000, 1000),
        _record("bad_value", 1000, 1999, literacy_rate=4.0),
    ]), encoding="utf-8")

    table, errors = load_epoch_table(path)

    assert table is not None
    assert [e.name for e in table] == ["one"]
    assert len(errors) == 2
    assert any("bad_years" in e for e in errors)
    assert any("literacy_rate" in e for e in errors)


def test_load_epoch_table_from_object(tmp_path):
    path = tmp_path / "epochs.json"
    record = _record("ignored", 100, 200)
    del record["name"]
    path.write_text(json.dumps({"bronze_age": record}), encoding="utf-8")

    table, errors = load_epoch_table(path)

    assert errors == []
    assert table.find(150).name == "bronze_age"
    assert set(table.lookup(150)) == set(INDICATOR_NAMES)


def test_load_epoch_table_failures(tmp_path):
    table, errors = load_epoch_table(tmp_path / "missing.json")
    assert table is None and errors

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    table, errors = load_epoch_table(broken)
    assert table is None and "Invalid JSON" in errors[0]

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42", encoding="utf-8")
    table, errors = load_epoch_table(scalar)
    assert table is None and errors


def test_record_missing_indicator_is_rejected():
    record = _record("partial", 0, 10)
    del record["indicators"]["birth_rate"]
    errors = _validate_record(record, 0)
    assert any("birth_rate" in e for e in errors)


def test_from_records_rejects_incomplete_snapshot():
    with pytest.raises(ValueError, match="gini_index"):
        EpochTable.from_records([
            {"name": "thin", "start_year": 0, "end_year": 3000,
             "indicators": {"gdp_per_capita": 1000}},
        ])


def test_table_rejects_incomplete_entry_or_fallback():
    with pytest.raises(ValueError, match="thin"):
        EpochTable([EpochEntry("thin", 0, 3000, {"gdp_per_capita": 1000})])
    with pytest.raises(ValueError, match="birth_rate"):
        fallback = dict(CONTEMPORARY_DEFAULT)
        del fallback["birth_rate"]
        EpochTable([], fallback=fallback)
