"""Ground risk: intrinsic GRC lookup and final GRC under ground mitigations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from sora_tables import (
    DEFAULT_POPULATION,
    MIN_FINAL_GRC,
    OUT_OF_SCOPE,
    GRCValue,
    SoraTables,
    normalise_robustness,
    resolve_tables,
)
from assessment_warnings import (
    CONFLICTING_MITIGATIONS,
    UNSUPPORTED_TIER,
    AssessmentWarning,
)

# Site-survey vocabulary mapped onto Table 3 population keys
POPULATION_ALIASES = {
    "rural": "lightly",
    "lightly_populated": "lightly",
    "sparse": "sparsely",
    "sparsely_populated": "sparsely",
    "urban": "highdensity",
    "high_density": "highdensity",
    "crowd": "assembly",
}

# Used when an aircraft record has no dimension or speed
DEFAULT_MAX_DIMENSION_M = 1.0
DEFAULT_MAX_SPEED_MS = 25.0


@dataclass
class MitigationSelection:
    """Caller-owned state of one ground mitigation claim."""

    enabled: bool = False
    robustness: Optional[str] = None
    evidence: str = ""


@dataclass(frozen=True)
class GroundRiskResult:
    intrinsic_grc: GRCValue
    final_grc: GRCValue
    reductions: Mapping[str, int]
    warnings: Tuple[AssessmentWarning, ...] = ()

    @property
    def out_of_scope(self) -> bool:
        return self.final_grc is OUT_OF_SCOPE


def intrinsic_grc(
    population: Optional[str],
    ua_characteristic: Optional[str],
    tables: Optional[SoraTables] = None,
) -> GRCValue:
    """Return the Table 2 intrinsic GRC or ``OUT_OF_SCOPE``.

    A pair without a table entry is outside the SORA framework and has to be
    routed to the certified category.
    """

    tables = resolve_tables(tables)
    row = tables.intrinsic_grc.get(population) if population is not None else None
    if row is None:
        return OUT_OF_SCOPE
    value = row.get(ua_characteristic) if ua_characteristic is not None else None
    if value is None:
        return OUT_OF_SCOPE
    return int(value)


def _is_claimed(selection: Optional[MitigationSelection]) -> bool:
    # a disabled mitigation never claims, so a disabled M1A at medium does not block M1B
    return selection is not None and bool(selection.enabled) and selection.robustness is not None


def mitigation_reductions(
    selections: Optional[Mapping[str, MitigationSelection]],
    tables: Optional[SoraTables] = None,
) -> Tuple[Dict[str, int], List[AssessmentWarning]]:
    """Return per-mitigation GRC deltas and the warnings raised resolving them.

    Every known mitigation appears in the returned mapping, in table order,
    with 0 when it is disabled, unsupported at the declared tier, or dropped
    because of an exclusion.
    """

    tables = resolve_tables(tables)
    selections = selections or {}
    reductions: Dict[str, int] = {}
    warnings: List[AssessmentWarning] = []

    for mitigation in tables.ground_mitigations:
        reductions[mitigation.key] = 0
        selection = selections.get(mitigation.key)
        if not _is_claimed(selection):
            continue
        tier = normalise_robustness(selection.robustness)
        delta = mitigation.reduction(tier)
        if delta is None:
            offered = ", ".join(mitigation.supported_tiers)
            warnings.append(
                AssessmentWarning(
                    code=UNSUPPORTED_TIER,
                    subject=mitigation.key,
                    message=f"{mitigation.name} has no '{tier}' robustness (offered: {offered}); no reduction applied",
                )
            )
            continue
        reductions[mitigation.key] = delta

    for exclusion in tables.mitigation_exclusions:
        first = selections.get(exclusion.mitigation)
        second = selections.get(exclusion.excludes)
        if not (_is_claimed(first) and _is_claimed(second)):
            continue
        if normalise_robustness(first.robustness) != exclusion.tier:
            continue
        if reductions.get(exclusion.excludes, 0) == 0:
            continue
        reductions[exclusion.excludes] = 0
        warnings.append(
            AssessmentWarning(
                code=CONFLICTING_MITIGATIONS,
                subject=f"{exclusion.mitigation}+{exclusion.excludes}",
                message=exclusion.message
                or f"{exclusion.mitigation} at {exclusion.tier} cannot be combined with {exclusion.excludes}",
            )
        )

    return reductions, warnings


def _apply_reductions(intrinsic: int, reductions: Mapping[str, int]) -> int:
    return max(MIN_FINAL_GRC, int(intrinsic) + sum(reductions.values()))


def final_grc(
    intrinsic: GRCValue,
    selections: Optional[Mapping[str, MitigationSelection]] = None,
    tables: Optional[SoraTables] = None,
) -> Tuple[GRCValue, Tuple[AssessmentWarning, ...]]:
    """Apply enabled ground mitigations to ``intrinsic``.

    The result is floored at the controlled-ground-area equivalent (1).  No
    ceiling is applied: a value above 7 is how the SAIL stage learns that the
    operation left the SORA scope.
    """

    if intrinsic is OUT_OF_SCOPE:
        return OUT_OF_SCOPE, ()

    reductions, warnings = mitigation_reductions(selections, tables)
    return _apply_reductions(intrinsic, reductions), tuple(warnings)


def ground_risk(
    population: Optional[str],
    ua_characteristic: Optional[str],
    selections: Optional[Mapping[str, MitigationSelection]] = None,
    tables: Optional[SoraTables] = None,
) -> GroundRiskResult:
    """Run the complete ground risk step."""

    tables = resolve_tables(tables)
    igrc = intrinsic_grc(population, ua_characteristic, tables)
    if igrc is OUT_OF_SCOPE:
        reductions = {m.key: 0 for m in tables.ground_mitigations}
        return GroundRiskResult(igrc, OUT_OF_SCOPE, reductions, ())

    reductions, warnings = mitigation_reductions(selections, tables)
    value = _apply_reductions(igrc, reductions)
    return GroundRiskResult(igrc, value, reductions, tuple(warnings))


# ------------------------ Input helpers ------------------------


def classify_ua_characteristic(
    max_dimension_m: Optional[float],
    max_speed_ms: Optional[float],
    tables: Optional[SoraTables] = None,
) -> str:
    """Return the smallest Table 2 column covering both dimension and speed."""

    tables = resolve_tables(tables)
    dimension = DEFAULT_MAX_DIMENSION_M if not max_dimension_m else float(max_dimension_m)
    speed = DEFAULT_MAX_SPEED_MS if not max_speed_ms else float(max_speed_ms)

    for ua in tables.ua_characteristics:
        if ua.covers(dimension, speed):
            return ua.key
    return tables.ua_characteristics[-1].key


def map_population_category(label: Optional[str], tables: Optional[SoraTables] = None) -> str:
    """Map a site-survey population label onto a Table 3 key."""

    tables = resolve_tables(tables)
    if not label:
        return DEFAULT_POPULATION
    key = str(label).strip().lower()
    if tables.population(key) is not None:
        return key
    mapped = POPULATION_ALIASES.get(key)
    if mapped is not None and tables.population(mapped) is not None:
        return mapped
    return DEFAULT_POPULATION
