import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from oso_compliance import (
    COMPLIANCE_COLUMNS,
    OSOSelection,
    check_all,
    check_compliance,
    compliance_frame,
    high_robustness_osos,
)
from sora_tables import ROBUSTNESS_LEVELS, SAIL_LEVELS, default_tables


def test_high_requirement_with_medium_declared_has_gap_one():
    oso = default_tables().oso("OSO-01")
    result = check_compliance(oso, "VI", "medium")
    assert result.required == "H"
    assert not result.compliant
    assert result.gap == 1
    assert result.guidance == tuple(oso.evidence_guidance["high"])


def test_optional_requirement_is_always_compliant():
    tables = default_tables()
    for oso in tables.oso_definitions:
        for sail in SAIL_LEVELS:
            if oso.required_letter(sail) != "O":
                continue
            for robustness in ROBUSTNESS_LEVELS + ("bogus", None):
                result = check_compliance(oso, sail, robustness)
                assert result.compliant
                assert result.optional
                assert result.gap == 0


def test_exceeding_requirement_is_compliant():
    oso = default_tables().oso("OSO-03")
    result = check_compliance(oso, "I", "high")
    assert result.compliant
    assert result.gap == 0


def test_check_all_keeps_catalog_order_and_is_idempotent():
    tables = default_tables()
    declared = {"OSO-03": OSOSelection("medium", "maintenance log"), "OSO-05": {"robustness": "low"}}
    first = check_all("III", declared, tables)
    second = check_all("III", declared, tables)
    assert first == second
    assert tuple(r.oso_id for r in first.results) == tables.oso_ids
    assert first.results[2].evidence == "maintenance log"


def test_summary_partitions_results():
    report = check_all("II", {})
    summary = report.summary
    assert summary.total == 22
    assert summary.compliant + summary.non_compliant == summary.total
    assert summary.optional == len(report.optional_results)
    assert summary.non_compliant == len(report.gaps)
    assert not summary.overall_compliant
    assert summary.compliance_pct == round(100.0 * summary.compliant / summary.total)
    assert sum(c.total for c in summary.by_category) == summary.total
    assert sum(summary.gaps_by_responsibility.values()) == summary.non_compliant


def test_fully_declared_operation_is_overall_compliant():
    tables = default_tables()
    declared = {oso_id: "high" for oso_id in tables.oso_ids}
    report = check_all("VI", declared, tables)
    assert report.summary.overall_compliant
    assert report.summary.compliance_pct == 100
    assert report.gaps == ()


def test_compliance_frame_columns():
    frame = compliance_frame(check_all("IV", {"OSO-01": "high"}))
    assert list(frame.columns) == COMPLIANCE_COLUMNS
    assert len(frame) == 22
    assert bool(frame.loc[frame["oso_id"] == "OSO-01", "compliant"].iloc[0])
    assert compliance_frame(None).empty


def test_high_robustness_osos():
    assert len(high_robustness_osos("VI")) == 22
    assert [o.id for o in high_robustness_osos("III")] == ["OSO-08"]
    assert high_robustness_osos("I") == ()
