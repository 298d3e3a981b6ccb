import copy
import json
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from sora_tables import (
    ARC_LEVELS,
    SAIL_LEVELS,
    SORA_2_5_TABLES,
    SoraTables,
    TableError,
    _is_non_decreasing,
    default_tables,
    load_tables,
    normalise_robustness,
    requirement_level,
    resolve_tables,
    robustness_level,
    validate_tables,
)


def test_default_tables_are_valid_and_cached():
    tables = default_tables()
    assert validate_tables(tables) == []
    assert default_tables() is tables
    assert resolve_tables(None) is tables
    assert tables.revision == "SORA 2.5"


def test_mitigations_carry_only_supported_tiers():
    tables = default_tables()
    m1a = tables.mitigation("M1A")
    assert m1a.supported_tiers == ("none", "low", "medium")
    assert not m1a.supports("high")
    assert m1a.reduction("high") is None
    assert m1a.reduction("medium") == -2
    assert tables.mitigation("M1C").supported_tiers == ("none", "low")
    assert tables.mitigation("M3") is None


def test_removed_osos_are_not_in_catalog():
    tables = default_tables()
    assert "OSO-14" not in tables.oso_ids
    assert "OSO-15" not in tables.oso_ids
    assert len(tables.oso_ids) == 22
    assert tables.oso_ids[0] == "OSO-01"


def test_tables_are_read_only():
    tables = default_tables()
    with pytest.raises(TypeError):
        tables.intrinsic_grc["sparsely"]["1m_25ms"] = 1
    with pytest.raises(AttributeError):
        tables.revision = "other"


def test_round_trip_through_dict_keeps_lookups():
    tables = default_tables()
    rebuilt = SoraTables.from_dict(json.loads(json.dumps(tables.to_dict())))
    assert rebuilt.population_keys == tables.population_keys
    assert rebuilt.intrinsic_grc["assembly"]["8m_75ms"] is None
    assert rebuilt.sail_matrix[4]["ARC-b"] == "III"
    assert rebuilt.oso("OSO-01").required_letter("VI") == "H"


def test_missing_table_raises():
    payload = copy.deepcopy(SORA_2_5_TABLES)
    del payload["sail_matrix"]
    with pytest.raises(TableError, match="sail_matrix"):
        SoraTables.from_dict(payload)


def test_non_monotonic_matrix_is_rejected():
    payload = copy.deepcopy(SORA_2_5_TABLES)
    payload["intrinsic_grc"]["suburban"]["1m_25ms"] = 2
    with pytest.raises(TableError, match="non-decreasing"):
        SoraTables.from_dict(payload)

    payload = copy.deepcopy(SORA_2_5_TABLES)
    payload["sail_matrix"]["5"]["ARC-d"] = "I"
    with pytest.raises(TableError, match="sail_matrix"):
        SoraTables.from_dict(payload)


def test_malformed_record_is_rejected():
    payload = copy.deepcopy(SORA_2_5_TABLES)
    del payload["ua_characteristics"]["3m_35ms"]["max_speed_ms"]
    with pytest.raises(TableError):
        SoraTables.from_dict(payload)
    with pytest.raises(TableError):
        SoraTables.from_dict(["not", "a", "mapping"])


def test_out_of_scope_cells_compare_as_top():
    grid = np.array([[1.0, 2.0], [2.0, np.inf], [np.inf, np.inf]])
    assert _is_non_decreasing(grid)
    assert not _is_non_decreasing(np.array([[np.inf, 1.0]]))


def test_load_tables_from_json(tmp_path):
    payload = copy.deepcopy(SORA_2_5_TABLES)
    payload["revision"] = "SORA 2.5 test copy"
    path = tmp_path / "tables.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    tables = load_tables(path)
    assert tables.revision == "SORA 2.5 test copy"
    assert tables.sail_matrix[1]["ARC-a"] == "I"


def test_load_tables_reports_missing_or_bad_file(tmp_path):
    with pytest.raises(TableError, match="not found"):
        load_tables(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(TableError, match="valid JSON"):
        load_tables(bad)


def test_robustness_helpers_fall_back_to_none():
    assert normalise_robustness(" Medium ") == "medium"
    assert normalise_robustness("extreme") == "none"
    assert normalise_robustness(None) == "none"
    assert robustness_level("high") == 3
    assert requirement_level("h") == 3
    assert requirement_level("?") == 0
    assert requirement_level(None) == 0


def test_every_sail_row_covers_every_arc():
    tables = default_tables()
    for grc in range(1, 8):
        assert set(tables.sail_matrix[grc]) == set(ARC_LEVELS)
        assert set(tables.sail_matrix[grc].values()) <= set(SAIL_LEVELS)
