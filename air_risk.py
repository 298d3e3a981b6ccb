"""Air risk: residual ARC after a tactical mitigation claim."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from sora_tables import (
    ARC_LEVELS,
    DEFAULT_ARC,
    SoraTables,
    normalise_robustness,
    resolve_tables,
    robustness_level,
)

FT_PER_M = 3.28084

# Figure 6 altitude breakpoints (ft)
LOW_ALTITUDE_LIMIT_FT = 500.0
ATYPICAL_ALTITUDE_FT = 60000.0

CONTROLLED_AIRSPACE_TYPES = ("controlled", "class_b", "class_c", "class_d")
TRANSPONDER_AIRSPACE_TYPES = ("mode_c_veil", "tmz")
ATYPICAL_AIRSPACE_TYPES = ("atypical", "segregated")


@dataclass
class TMPRSelection:
    """Caller-owned state of the tactical mitigation claim."""

    enabled: bool = False
    type: Optional[str] = None
    robustness: Optional[str] = None
    evidence: str = ""


def normalise_arc(arc: Optional[str]) -> str:
    """Return ``arc`` when it is a known ARC key, ``ARC-b`` otherwise."""

    return arc if arc in ARC_LEVELS else DEFAULT_ARC


def tmpr_gate_met(tmpr: Optional[TMPRSelection], tables: Optional[SoraTables] = None) -> bool:
    """True when ``tmpr`` is a claim whose robustness meets its minimum."""

    tables = resolve_tables(tables)
    if tmpr is None or not tmpr.enabled or not tmpr.type:
        return False
    declared = normalise_robustness(tmpr.robustness)
    if declared == "none":
        return False
    definition = tables.tmpr(tmpr.type)
    if definition is None:
        return False
    return robustness_level(declared) >= robustness_level(definition.min_robustness)


def residual_arc(
    initial_arc: Optional[str],
    tmpr: Optional[TMPRSelection] = None,
    tables: Optional[SoraTables] = None,
) -> str:
    """Apply a TMPR claim to ``initial_arc``.

    The reduction is floored at ARC-a and at the definition's floor ARC, so
    VLOS/EVLOS never go below ARC-b.  A claim that misses its minimum
    robustness is ignored.
    """

    tables = resolve_tables(tables)
    current = normalise_arc(initial_arc)
    if not tmpr_gate_met(tmpr, tables):
        return current

    definition = tables.tmpr(tmpr.type)
    index = ARC_LEVELS.index(current)
    floor_index = ARC_LEVELS.index(definition.floor_arc)
    reduced = max(0, index - definition.arc_reduction, floor_index)
    # a floor never raises an ARC that is already below it
    reduced = min(index, reduced)
    return ARC_LEVELS[reduced]


def suggest_initial_arc(
    altitude_agl_m: Optional[float],
    airspace_type: Optional[str],
    airport_environment: bool = False,
    urban: bool = False,
) -> Tuple[str, str]:
    """Return ``(arc, reason)`` from a coarse airspace description."""

    altitude_ft = float(altitude_agl_m or 0.0) * FT_PER_M
    airspace = (airspace_type or "").strip().lower()

    if airspace in ATYPICAL_AIRSPACE_TYPES:
        return "ARC-a", "Atypical/segregated airspace"
    if altitude_ft > ATYPICAL_ALTITUDE_FT:
        return "ARC-b", "Above FL600"

    if airport_environment:
        if airspace in CONTROLLED_AIRSPACE_TYPES:
            return "ARC-d", "Airport environment in controlled airspace"
        return "ARC-c", "Airport environment"

    if altitude_ft > LOW_ALTITUDE_LIMIT_FT:
        if airspace in TRANSPONDER_AIRSPACE_TYPES:
            return "ARC-c", "Above 500ft AGL in Mode-C Veil/TMZ"
        if airspace == "controlled":
            return "ARC-d", "Above 500ft AGL in controlled airspace"
        if urban:
            return "ARC-c", "Above 500ft AGL over urban area"
        return "ARC-c", "Above 500ft AGL"

    if airspace in TRANSPONDER_AIRSPACE_TYPES:
        return "ARC-c", "Below 500ft AGL in Mode-C Veil/TMZ"
    if airspace == "controlled":
        return "ARC-c", "Below 500ft AGL in controlled airspace"
    if urban:
        return "ARC-c", "Below 500ft AGL over urban area"
    return "ARC-b", "Below 500ft AGL in uncontrolled airspace over rural area"
