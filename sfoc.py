"""SFOC triggers and Manufacturer Performance Declaration requirements.

Transport Canada extensions for RPAS operations that need a Special Flight
Operations Certificate (CAR 903.01), including large RPAS above 150 kg.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from oso_compliance import high_robustness_osos
from sora_tables import SAIL_LEVELS, SoraTables, resolve_tables

LARGE_RPAS_MIN_WEIGHT_KG = 150.0
UNCONTROLLED_ALTITUDE_LIMIT_FT = 400.0
SFOC_PROCESSING_DAYS = 60
SFOC_CONTACT_EMAIL = "TC.RPASCentre-CentreSATP.TC@tc.gc.ca"


@dataclass(frozen=True)
class SFOCTrigger:
    id: str
    label: str
    description: str
    car_reference: str
    complexity: str
    requires_mpd: bool


SFOC_TRIGGERS: Dict[str, SFOCTrigger] = {
    t.id: t
    for t in (
        SFOCTrigger("weight_over_150kg", "RPAS Weight >150kg",
                    "Operating an RPAS with weight exceeding 150kg", "CAR 903.01(a)", "medium", True),
        SFOCTrigger("altitude_over_400ft", "Altitude >400ft AGL",
                    "Operating above 400 feet in uncontrolled airspace", "CAR 903.01(b)", "medium", False),
        SFOCTrigger("bvlos_extended", "Extended BVLOS",
                    "BVLOS beyond sheltered/EVLOS/lower-risk categories", "CAR 903.01(g)", "high", True),
        SFOCTrigger("bvlos_aerodrome", "BVLOS in Aerodrome Environment",
                    "BVLOS within aerodrome boundaries", "CAR 903.01(h)", "high", True),
        SFOCTrigger("hazardous_payload", "Hazardous Payload",
                    "Operating with dangerous or hazardous payloads", "CAR 903.01(j)", "high", False),
    )
}

MPD_REQUIREMENTS_BY_SAIL: Dict[str, Dict] = {
    "I": {"label": "SAIL I - Minimal", "declaration_type": "self", "evidence_level": "low",
          "third_party_required": False,
          "description": "Self-declaration by operator/manufacturer sufficient",
          "notes": "Straightforward declaration with basic documentation"},
    "II": {"label": "SAIL II - Low", "declaration_type": "self", "evidence_level": "low",
           "third_party_required": False,
           "description": "Self-declaration with supporting documentation",
           "notes": "Declaration with means of compliance documented"},
    "III": {"label": "SAIL III - Medium", "declaration_type": "detailed", "evidence_level": "medium",
            "third_party_required": False,
            "description": "Detailed declaration with means of compliance",
            "notes": "TC will want to see details on compliance methods used"},
    "IV": {"label": "SAIL IV - Medium-High", "declaration_type": "detailed", "evidence_level": "medium",
           "third_party_required": False,
           "description": "Detailed declaration with verification evidence",
           "notes": "May request test reports and supporting evidence"},
    "V": {"label": "SAIL V - High", "declaration_type": "verified", "evidence_level": "high",
          "third_party_required": True,
          "description": "Third-party verified declaration",
          "notes": "Third-party audit or verification typically required"},
    "VI": {"label": "SAIL VI - Highest", "declaration_type": "certified", "evidence_level": "high",
           "third_party_required": True,
           "description": "Full airworthiness-level certification",
           "notes": "Equivalent to traditional airworthiness certification"},
}


@dataclass
class OperationParams:
    """Operation characteristics relevant to the SFOC decision."""

    weight_kg: float = 0.0
    max_altitude_ft: float = 0.0
    controlled_airspace: bool = False
    is_bvlos: bool = False
    bvlos_type: Optional[str] = None
    near_aerodrome: bool = False
    hazardous_payload: bool = False
    population_category: Optional[str] = None
    has_daa: bool = False
    kinetic_energy_category: Optional[str] = None


@dataclass(frozen=True)
class SFOCDecision:
    required: bool
    triggers: Tuple[SFOCTrigger, ...]
    complexity: str
    requires_mpd: bool
    processing_days: int = SFOC_PROCESSING_DAYS
    contact_email: str = SFOC_CONTACT_EMAIL


def check_sfoc_required(params: OperationParams) -> SFOCDecision:
    """Return which CAR 903.01 triggers apply to ``params``."""

    triggers: List[SFOCTrigger] = []
    if params.weight_kg > LARGE_RPAS_MIN_WEIGHT_KG:
        triggers.append(SFOC_TRIGGERS["weight_over_150kg"])
    if params.max_altitude_ft > UNCONTROLLED_ALTITUDE_LIMIT_FT and not params.controlled_airspace:
        triggers.append(SFOC_TRIGGERS["altitude_over_400ft"])
    if params.is_bvlos and params.bvlos_type == "extended":
        triggers.append(SFOC_TRIGGERS["bvlos_extended"])
    if params.is_bvlos and params.near_aerodrome:
        triggers.append(SFOC_TRIGGERS["bvlos_aerodrome"])
    if params.hazardous_payload:
        triggers.append(SFOC_TRIGGERS["hazardous_payload"])

    complexity = "high" if any(t.complexity == "high" for t in triggers) else "medium"
    return SFOCDecision(
        required=bool(triggers),
        triggers=tuple(triggers),
        complexity=complexity,
        requires_mpd=any(t.requires_mpd for t in triggers),
    )


def mpd_requirements(sail: str, tables: Optional[SoraTables] = None) -> Optional[Dict]:
    """MPD declaration expectations at ``sail`` plus its critical OSOs."""

    tables = resolve_tables(tables)
    requirements = MPD_REQUIREMENTS_BY_SAIL.get(sail)
    if requirements is None:
        return None

    critical = high_robustness_osos(sail, tables)
    return {
        **requirements,
        "sail": sail,
        "critical_oso_count": len(critical),
        "critical_osos": [{"id": o.id, "name": o.name, "category": o.category} for o in critical],
    }


def estimate_large_rpas_sail(params: OperationParams) -> Tuple[str, str]:
    """Rough ``(sail, note)`` estimate for a large RPAS before a full assessment."""

    if params.kinetic_energy_category == "very_high":
        return "VI", "Very high kinetic energy (>1084kJ) - maximum SAIL"

    sail = "IV"
    if params.population_category in ("suburban", "highdensity"):
        sail = "V"
    if params.population_category == "assembly":
        sail = "VI"

    if params.is_bvlos and not params.has_daa:
        idx = SAIL_LEVELS.index(sail)
        sail = SAIL_LEVELS[min(idx + 1, len(SAIL_LEVELS) - 1)]

    return sail, "Estimated based on operation parameters"
