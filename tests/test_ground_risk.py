import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from assessment_warnings import CONFLICTING_MITIGATIONS, UNSUPPORTED_TIER, warnings_with_code
from ground_risk import (
    MitigationSelection,
    classify_ua_characteristic,
    final_grc,
    ground_risk,
    intrinsic_grc,
    map_population_category,
    mitigation_reductions,
)
from sora_tables import OUT_OF_SCOPE, default_tables


def claim(robustness):
    return MitigationSelection(enabled=True, robustness=robustness)


def test_sparsely_small_ua_has_grc_four():
    assert intrinsic_grc("sparsely", "1m_25ms") == 4
    value, warnings = final_grc(4, {})
    assert value == 4
    assert warnings == ()


def test_intrinsic_grc_is_monotonic():
    tables = default_tables()

    def rank(value):
        return 99 if value is OUT_OF_SCOPE else value

    for ua in tables.ua_keys:
        column = [rank(intrinsic_grc(pop, ua, tables)) for pop in tables.population_keys]
        assert column == sorted(column)
    for pop in tables.population_keys:
        row = [rank(intrinsic_grc(pop, ua, tables)) for ua in tables.ua_keys]
        assert row == sorted(row)


def test_missing_cell_or_key_is_out_of_scope():
    assert intrinsic_grc("assembly", "8m_75ms") is OUT_OF_SCOPE
    assert intrinsic_grc("moon", "1m_25ms") is OUT_OF_SCOPE
    assert intrinsic_grc("sparsely", None) is OUT_OF_SCOPE
    value, warnings = final_grc(OUT_OF_SCOPE, {"M1A": claim("medium")})
    assert value is OUT_OF_SCOPE
    assert warnings == ()


def test_reductions_sum_and_floor_at_one():
    selections = {"M1A": claim("low"), "M2": claim("high")}
    value, _ = final_grc(6, selections)
    assert value == 3

    everything = {"M1B": claim("high"), "M1C": claim("low"), "M2": claim("high")}
    value, _ = final_grc(2, everything)
    assert value == 1


def test_disabled_or_unset_mitigation_contributes_nothing():
    selections = {
        "M1A": MitigationSelection(enabled=False, robustness="medium"),
        "M2": MitigationSelection(enabled=True, robustness=None),
    }
    reductions, warnings = mitigation_reductions(selections)
    assert reductions == {"M1A": 0, "M1B": 0, "M1C": 0, "M2": 0}
    assert warnings == []


def test_unsupported_tier_is_zero_with_warning():
    reductions, warnings = mitigation_reductions({"M1A": claim("high")})
    assert reductions["M1A"] == 0
    assert [w.subject for w in warnings_with_code(warnings, UNSUPPORTED_TIER)] == ["M1A"]


def test_m1a_medium_drops_m1b():
    selections = {"M1A": claim("medium"), "M1B": claim("high")}
    reductions, warnings = mitigation_reductions(selections)
    assert reductions["M1A"] == -2
    assert reductions["M1B"] == 0
    conflicts = warnings_with_code(warnings, CONFLICTING_MITIGATIONS)
    assert len(conflicts) == 1
    assert conflicts[0].subject == "M1A+M1B"


def test_m1a_low_combines_with_m1b():
    reductions, warnings = mitigation_reductions({"M1A": claim("low"), "M1B": claim("medium")})
    assert reductions["M1A"] == -1
    assert reductions["M1B"] == -1
    assert warnings == []


def test_ground_risk_is_idempotent():
    selections = {"M1A": claim("medium"), "M1B": claim("high"), "M2": claim("medium")}
    first = ground_risk("suburban", "3m_35ms", selections)
    second = ground_risk("suburban", "3m_35ms", selections)
    assert first == second
    assert first.intrinsic_grc == 6
    assert first.final_grc == 3
    assert not first.out_of_scope


def test_ground_risk_out_of_scope_keeps_zero_reductions():
    result = ground_risk("assembly", "40m_200ms", {"M2": claim("high")})
    assert result.out_of_scope
    assert result.intrinsic_grc is OUT_OF_SCOPE
    assert set(result.reductions.values()) == {0}


def test_classify_ua_characteristic_picks_smallest_cover():
    assert classify_ua_characteristic(0.8, 20.0) == "1m_25ms"
    assert classify_ua_characteristic(0.8, 30.0) == "3m_35ms"
    assert classify_ua_characteristic(10.0, 30.0) == "20m_120ms"
    assert classify_ua_characteristic(60.0, 300.0) == "40m_200ms"
    assert classify_ua_characteristic(None, None) == "1m_25ms"


def test_map_population_category_aliases():
    assert map_population_category("Rural") == "lightly"
    assert map_population_category("urban") == "highdensity"
    assert map_population_category("suburban") == "suburban"
    assert map_population_category("unknown") == "sparsely"
    assert map_population_category(None) == "sparsely"


def test_m1b_at_none_is_not_a_conflict():
    reductions, warnings = mitigation_reductions({"M1A": claim("medium"), "M1B": claim("none")})
    assert reductions["M1A"] == -2
    assert reductions["M1B"] == 0
    assert warnings == []


def test_disabled_m1a_does_not_block_m1b():
    selections = {
        "M1A": MitigationSelection(enabled=False, robustness="medium"),
        "M1B": claim("high"),
    }
    reductions, warnings = mitigation_reductions(selections)
    assert reductions["M1A"] == 0
    assert reductions["M1B"] == -2
    assert warnings_with_code(warnings, CONFLICTING_MITIGATIONS) == []
