import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from containment import (
    achieved_containment,
    adjacent_area_distance,
    is_containment_compliant,
    required_containment,
)
from sora_tables import OUT_OF_SCOPE


def test_adjacent_area_distance_bounds():
    assert adjacent_area_distance(10.0) == 5000.0
    assert adjacent_area_distance(150.0) == 27000.0
    assert adjacent_area_distance(500.0) == 35000.0
    assert adjacent_area_distance(0.0) == 5000.0
    assert adjacent_area_distance(float("nan")) == 5000.0
    for speed in (1.0, 27.7, 60.0, 199.0, 1e6):
        assert 5000.0 <= adjacent_area_distance(speed) <= 35000.0


def test_required_containment_lookup():
    assert required_containment("sparsely", "III") == "low"
    assert required_containment("sparsely", "IV") == "medium"
    assert required_containment("assembly", "III") == "high"
    assert required_containment("controlled", "VI") == "medium"


def test_required_containment_defaults_to_low():
    assert required_containment("moon", "III") == "low"
    assert required_containment(None, "III") == "low"
    assert required_containment("sparsely", OUT_OF_SCOPE) == "low"


def test_compliance_compares_robustness():
    assert is_containment_compliant("medium", "high")
    assert is_containment_compliant("low", "low")
    assert not is_containment_compliant("high", "medium")
    assert not is_containment_compliant("low", None)


def test_achieved_containment_prefers_declared_robustness():
    assert achieved_containment("procedural", "high") == "high"
    assert achieved_containment("flight_termination") == "high"
    assert achieved_containment("sw_geofence", "none") == "medium"
    assert achieved_containment(None, None) == "none"
    assert achieved_containment("unknown", "bogus") == "none"
