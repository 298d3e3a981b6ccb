import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from air_risk import TMPRSelection
from assessment import (
    AssessmentInput,
    ContainmentSelection,
    evaluate,
    evaluate_sites,
    governing_site,
    sites_frame,
)
from assessment_warnings import (
    CONFLICTING_MITIGATIONS,
    TMPR_ROBUSTNESS_INSUFFICIENT,
    UNKNOWN_KEY,
    warnings_with_code,
)
from sora_tables import OUT_OF_SCOPE, default_tables


def test_default_input_is_sail_three():
    result = evaluate(AssessmentInput())
    assert result.intrinsic_grc == 4
    assert result.final_grc == 4
    assert result.residual_arc == "ARC-b"
    assert result.sail == "III"
    assert not result.out_of_scope
    assert result.adjacent_area_distance_m == 5000.0
    assert result.required_containment == "low"
    assert result.achieved_containment == "none"
    assert not result.containment_compliant
    assert not result.fully_compliant
    assert result.warnings == ()


def test_vlos_claim_lowers_arc_c():
    assessment_input = AssessmentInput(
        initial_arc="ARC-c",
        tmpr=TMPRSelection(enabled=True, type="VLOS", robustness="low"),
    )
    result = evaluate(assessment_input)
    assert result.residual_arc == "ARC-b"
    assert result.sail == "III"


def test_max_speed_sizes_adjacent_area():
    assert evaluate(AssessmentInput(max_speed_ms=10.0)).adjacent_area_distance_m == 5000.0
    assert evaluate(AssessmentInput(max_speed_ms=150.0)).adjacent_area_distance_m == 27000.0
    large = AssessmentInput(ua_characteristic="20m_120ms")
    assert evaluate(large).adjacent_area_distance_m == 21600.0


def test_missing_table_cell_short_circuits():
    result = evaluate(AssessmentInput(population_category="assembly", ua_characteristic="8m_75ms"))
    assert result.out_of_scope
    assert result.intrinsic_grc is OUT_OF_SCOPE
    assert result.final_grc is OUT_OF_SCOPE
    assert result.sail is None
    assert result.required_containment is None
    assert result.oso is None
    assert not result.fully_compliant
    data = result.to_dict()
    assert data["intrinsic_grc"] is None
    assert data["sail"] is None
    json.dumps(data)


def test_final_grc_above_seven_is_out_of_scope_until_mitigated():
    assessment_input = AssessmentInput(population_category="sparsely", ua_characteristic="40m_200ms")
    result = evaluate(assessment_input)
    assert result.intrinsic_grc == 8
    assert result.final_grc == 8
    assert result.out_of_scope

    assessment_input.set_mitigation("M2", robustness="high")
    result = evaluate(assessment_input)
    assert result.final_grc == 6
    assert result.sail == "V"


def test_unknown_keys_fall_back_with_warnings():
    assessment_input = AssessmentInput(
        population_category="moon",
        ua_characteristic="jumbo",
        initial_arc="ARC-z",
        adjacent_population="mars",
    )
    assessment_input.set_oso("OSO-99", "high")
    assessment_input.set_mitigation("M3", robustness="medium")
    result = evaluate(assessment_input)
    assert result.intrinsic_grc == 4
    assert result.sail == "III"
    subjects = [w.subject for w in warnings_with_code(result.warnings, UNKNOWN_KEY)]
    assert subjects == [
        "population_category",
        "ua_characteristic",
        "initial_arc",
        "adjacent_population",
        "mitigations",
        "oso",
    ]


def test_missing_keys_fall_back_silently():
    result = evaluate(AssessmentInput(population_category=None, initial_arc=""))
    assert result.intrinsic_grc == 4
    assert result.residual_arc == "ARC-b"
    assert result.warnings == ()


def test_tmpr_below_minimum_is_reported():
    assessment_input = AssessmentInput(
        initial_arc="ARC-d",
        tmpr=TMPRSelection(enabled=True, type="DAA", robustness="low"),
    )
    result = evaluate(assessment_input)
    assert result.residual_arc == "ARC-d"
    assert len(warnings_with_code(result.warnings, TMPR_ROBUSTNESS_INSUFFICIENT)) == 1


def test_conflicting_mitigations_surface_on_result():
    assessment_input = AssessmentInput(population_category="suburban")
    assessment_input.set_mitigation("M1A", robustness="medium")
    assessment_input.set_mitigation("M1B", robustness="high")
    result = evaluate(assessment_input)
    assert result.mitigation_reductions["M1B"] == 0
    assert result.final_grc == 3
    assert len(warnings_with_code(result.warnings, CONFLICTING_MITIGATIONS)) == 1


def test_fully_compliant_operation():
    tables = default_tables()
    assessment_input = AssessmentInput(
        population_category="controlled",
        initial_arc="ARC-a",
        adjacent_population="controlled",
        containment=ContainmentSelection(method="procedural"),
    )
    for oso_id in tables.oso_ids:
        assessment_input.set_oso(oso_id, "high")
    result = evaluate(assessment_input, tables)
    assert result.sail == "I"
    assert result.containment_compliant
    assert result.oso.summary.overall_compliant
    assert result.fully_compliant


def test_evaluate_works_on_a_snapshot():
    assessment_input = AssessmentInput()
    assessment_input.set_mitigation("M1A", robustness="low")
    before = assessment_input.to_dict()
    result = evaluate(assessment_input)

    assessment_input.set_mitigation("M1A", robustness="medium")
    assessment_input.population_category = "assembly"
    assert result.final_grc == 3
    assert evaluate(AssessmentInput.from_dict(before)) == result


def test_evaluate_is_idempotent():
    assessment_input = AssessmentInput(population_category="lightly", ua_characteristic="3m_35ms")
    assessment_input.set_oso("OSO-01", "medium", "training records")
    assert evaluate(assessment_input) == evaluate(assessment_input)


def test_from_dict_accepts_stored_camel_case_keys():
    payload = {
        "populationCategory": "suburban",
        "uaCharacteristic": "3m_35ms",
        "maxSpeed": 30,
        "mitigations": {"M2": {"enabled": True, "robustness": "medium", "evidence": "parachute test"}},
        "initialARC": "ARC-c",
        "tmpr": {"enabled": True, "type": "VLOS", "robustness": "low"},
        "adjacentAreaPopulation": "highdensity",
        "containment": {"method": "sw_geofence", "achievedRobustness": None},
        "osoCompliance": {"OSO-01": {"robustness": "medium"}},
    }
    assessment_input = AssessmentInput.from_dict(payload)
    assert assessment_input.max_speed_ms == 30.0
    assert assessment_input.mitigations["M2"].evidence == "parachute test"
    assert assessment_input.mitigations["M1A"].enabled is False

    result = evaluate(assessment_input)
    assert result.intrinsic_grc == 6
    assert result.final_grc == 5
    assert result.residual_arc == "ARC-b"
    assert result.sail == "IV"
    assert result.required_containment == "high"
    assert result.achieved_containment == "medium"
    assert not result.containment_compliant


def test_from_dict_handles_empty_payload():
    assert AssessmentInput.from_dict(None) == AssessmentInput()


def test_multi_site_governing_site():
    sites = {
        "farm": AssessmentInput(population_category="lightly"),
        "town": AssessmentInput(population_category="suburban"),
        "stadium": AssessmentInput(population_category="assembly", ua_characteristic="8m_75ms"),
    }
    results = evaluate_sites(sites)
    assert list(results) == ["farm", "town", "stadium"]
    name, result = governing_site(results)
    assert name == "stadium"
    assert result.out_of_scope

    del results["stadium"]
    assert governing_site(results)[0] == "town"
    assert governing_site({}) is None


def test_sites_frame():
    results = evaluate_sites({"a": AssessmentInput(), "b": AssessmentInput(population_category="assembly",
                                                                         ua_characteristic="20m_120ms")})
    frame = sites_frame(results)
    assert list(frame["site"]) == ["a", "b"]
    assert frame.loc[0, "sail"] == "III"
    assert bool(frame.loc[1, "out_of_scope"])
    assert frame.loc[1, "oso_gaps"] == 0


def test_pipeline_stages_are_logged(caplog):
    caplog.set_level(logging.DEBUG, logger="assessment")
    evaluate(AssessmentInput(population_category="assembly", ua_characteristic="8m_75ms"))
    assert "Operation outside SORA scope" in caplog.text


def test_unknown_robustness_values_are_reported():
    assessment_input = AssessmentInput(
        population_category="suburban",
        tmpr=TMPRSelection(enabled=True, type="VLOS", robustness="lo"),
        containment=ContainmentSelection(method="procedural", robustness="strong"),
    )
    assessment_input.set_mitigation("M2", robustness="hihg")
    assessment_input.set_oso("OSO-01", "HIGHH")
    assessment_input.set_oso("OSO-02", "High")
    result = evaluate(assessment_input)
    assert result.final_grc == 5
    assert result.achieved_containment == "low"
    subjects = [w.subject for w in warnings_with_code(result.warnings, UNKNOWN_KEY)]
    assert subjects == ["M2", "tmpr", "containment", "OSO-01"]
    assert warnings_with_code(result.warnings, TMPR_ROBUSTNESS_INSUFFICIENT) == []


def test_blank_or_bad_stored_speed_uses_ua_class():
    for stored in ("", "  ", "fast", None, 0, -3):
        assessment_input = AssessmentInput.from_dict({"maxSpeed": stored})
        assert assessment_input.max_speed_ms is None
        assert evaluate(assessment_input).adjacent_area_distance_m == 5000.0
    assert AssessmentInput.from_dict({"maxSpeed": "150"}).max_speed_ms == 150.0
