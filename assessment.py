"""Single entry point composing the SORA pipeline into one result snapshot.

``evaluate`` always works on a deep copy of the caller's input, so results
are a pure function of (input, tables) and can be recomputed from any
thread or for any number of sites without coordination.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from air_risk import TMPRSelection, residual_arc, tmpr_gate_met
from assessment_warnings import (
    TMPR_ROBUSTNESS_INSUFFICIENT,
    UNKNOWN_KEY,
    AssessmentWarning,
)
from containment import (
    achieved_containment,
    adjacent_area_distance,
    is_containment_compliant,
    required_containment,
)
from ground_risk import DEFAULT_MAX_SPEED_MS, MitigationSelection, ground_risk
from oso_compliance import OSOComplianceReport, OSOSelection, check_all
from sail import resolve_sail, sail_description, sail_rank
from sora_tables import (
    ARC_LEVELS,
    DEFAULT_ARC,
    DEFAULT_POPULATION,
    DEFAULT_ROBUSTNESS,
    DEFAULT_UA_CHARACTERISTIC,
    OUT_OF_SCOPE,
    ROBUSTNESS_LEVELS,
    GRCValue,
    SoraTables,
    normalise_robustness,
    resolve_tables,
)

logger = logging.getLogger(__name__)

MITIGATION_KEYS = ("M1A", "M1B", "M1C", "M2")


def _default_mitigations() -> Dict[str, MitigationSelection]:
    return {key: MitigationSelection() for key in MITIGATION_KEYS}


def _optional_speed(value) -> Optional[float]:
    """Stored speed in m/s; blank or non-numeric fields mean "use the UA class"."""

    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        speed = float(value)
    except (TypeError, ValueError):
        return None
    if np.isnan(speed) or speed <= 0.0:
        return None
    return speed


@dataclass
class ContainmentSelection:
    method: Optional[str] = None
    robustness: Optional[str] = None
    evidence: str = ""


@dataclass
class AssessmentInput:
    """Caller-owned assessment state, mutated incrementally while editing."""

    population_category: Optional[str] = DEFAULT_POPULATION
    ua_characteristic: Optional[str] = DEFAULT_UA_CHARACTERISTIC
    max_speed_ms: Optional[float] = None
    mitigations: Dict[str, MitigationSelection] = field(default_factory=_default_mitigations)
    initial_arc: Optional[str] = DEFAULT_ARC
    tmpr: TMPRSelection = field(default_factory=TMPRSelection)
    adjacent_population: Optional[str] = DEFAULT_POPULATION
    containment: ContainmentSelection = field(default_factory=ContainmentSelection)
    oso: Dict[str, OSOSelection] = field(default_factory=dict)

    def snapshot(self) -> "AssessmentInput":
        return copy.deepcopy(self)

    def set_mitigation(
        self, key: str, enabled: bool = True, robustness: Optional[str] = None, evidence: str = ""
    ) -> None:
        self.mitigations[key] = MitigationSelection(enabled=enabled, robustness=robustness, evidence=evidence)

    def set_oso(self, oso_id: str, robustness: Optional[str], evidence: str = "") -> None:
        self.oso[oso_id] = OSOSelection(robustness=robustness, evidence=evidence)

    @classmethod
    def from_dict(cls, payload: Optional[Mapping]) -> "AssessmentInput":
        """Build an input from a stored snapshot (snake_case or camelCase keys)."""

        payload = payload or {}

        def pick(source: Mapping, *names: str, default=None):
            for name in names:
                value = source.get(name)
                if value is not None:
                    return value
            return default

        result = cls()
        result.population_category = pick(payload, "population_category", "populationCategory",
                                          default=DEFAULT_POPULATION)
        result.ua_characteristic = pick(payload, "ua_characteristic", "uaCharacteristic",
                                        default=DEFAULT_UA_CHARACTERISTIC)
        speed = pick(payload, "max_speed_ms", "maxSpeed")
        result.max_speed_ms = _optional_speed(speed)
        result.initial_arc = pick(payload, "initial_arc", "initialARC", default=DEFAULT_ARC)
        result.adjacent_population = pick(payload, "adjacent_population", "adjacentAreaPopulation",
                                          default=DEFAULT_POPULATION)

        for key, item in (pick(payload, "mitigations", default={}) or {}).items():
            item = item or {}
            result.mitigations[str(key)] = MitigationSelection(
                enabled=bool(item.get("enabled", False)),
                robustness=item.get("robustness"),
                evidence=str(item.get("evidence") or ""),
            )

        tmpr = pick(payload, "tmpr", default={}) or {}
        result.tmpr = TMPRSelection(
            enabled=bool(tmpr.get("enabled", False)),
            type=tmpr.get("type"),
            robustness=tmpr.get("robustness"),
            evidence=str(tmpr.get("evidence") or ""),
        )

        containment = pick(payload, "containment", default={}) or {}
        result.containment = ContainmentSelection(
            method=containment.get("method"),
            robustness=pick(containment, "robustness", "achieved_robustness", "achievedRobustness"),
            evidence=str(containment.get("evidence") or ""),
        )

        for oso_id, item in (pick(payload, "oso", "osoCompliance", default={}) or {}).items():
            item = item or {}
            result.oso[str(oso_id)] = OSOSelection(
                robustness=item.get("robustness") or "none",
                evidence=str(item.get("evidence") or ""),
            )
        return result

    def to_dict(self) -> Dict:
        return {
            "population_category": self.population_category,
            "ua_characteristic": self.ua_characteristic,
            "max_speed_ms": self.max_speed_ms,
            "mitigations": {
                k: {"enabled": m.enabled, "robustness": m.robustness, "evidence": m.evidence}
                for k, m in self.mitigations.items()
            },
            "initial_arc": self.initial_arc,
            "tmpr": {
                "enabled": self.tmpr.enabled,
                "type": self.tmpr.type,
                "robustness": self.tmpr.robustness,
                "evidence": self.tmpr.evidence,
            },
            "adjacent_population": self.adjacent_population,
            "containment": {
                "method": self.containment.method,
                "robustness": self.containment.robustness,
                "evidence": self.containment.evidence,
            },
            "oso": {k: {"robustness": o.robustness, "evidence": o.evidence} for k, o in self.oso.items()},
        }


@dataclass(frozen=True)
class AssessmentResult:
    """Derived view of one assessment; never persisted on its own."""

    intrinsic_grc: GRCValue
    final_grc: GRCValue
    mitigation_reductions: Mapping[str, int]
    residual_arc: str
    sail: Optional[str]
    out_of_scope: bool
    sail_description: str
    adjacent_area_distance_m: float
    required_containment: Optional[str]
    achieved_containment: str
    containment_compliant: bool
    oso: Optional[OSOComplianceReport]
    warnings: Tuple[AssessmentWarning, ...] = ()
    revision: str = ""

    @property
    def oso_gap_count(self) -> int:
        return 0 if self.oso is None else self.oso.summary.non_compliant

    @property
    def fully_compliant(self) -> bool:
        """In scope, containment met, and no required OSO left short."""

        if self.out_of_scope or self.oso is None:
            return False
        return self.containment_compliant and self.oso.summary.overall_compliant

    def to_dict(self) -> Dict:
        def grc(value: GRCValue):
            return None if value is OUT_OF_SCOPE else value

        return {
            "revision": self.revision,
            "intrinsic_grc": grc(self.intrinsic_grc),
            "final_grc": grc(self.final_grc),
            "mitigation_reductions": dict(self.mitigation_reductions),
            "residual_arc": self.residual_arc,
            "sail": self.sail,
            "out_of_scope": self.out_of_scope,
            "sail_description": self.sail_description,
            "adjacent_area_distance_m": self.adjacent_area_distance_m,
            "required_containment": self.required_containment,
            "achieved_containment": self.achieved_containment,
            "containment_compliant": self.containment_compliant,
            "oso": None if self.oso is None else self.oso.to_dict(),
            "fully_compliant": self.fully_compliant,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def _known_key(
    value: Optional[str],
    known: Iterable[str],
    default: str,
    field_name: str,
    warnings: List[AssessmentWarning],
) -> str:
    """Return ``value`` if it is a known key, else ``default``.

    Missing values fall back silently; unrecognised ones leave a warning.
    """

    if value in tuple(known):
        return value
    if value not in (None, ""):
        warnings.append(
            AssessmentWarning(
                code=UNKNOWN_KEY,
                subject=field_name,
                message=f"Unknown {field_name} '{value}'; using '{default}'",
            )
        )
    return default


def _unknown_robustness(value: Optional[str]) -> bool:
    if value is None or str(value).strip() == "":
        return False
    return str(value).strip().lower() not in ROBUSTNESS_LEVELS


def _robustness_warning(subject: str, value: str) -> AssessmentWarning:
    return AssessmentWarning(
        UNKNOWN_KEY,
        subject,
        f"Unknown robustness '{value}' for {subject}; using '{DEFAULT_ROBUSTNESS}'",
    )


def _input_warnings(snapshot: AssessmentInput, tables: SoraTables) -> List[AssessmentWarning]:
    warnings: List[AssessmentWarning] = []

    for key, selection in snapshot.mitigations.items():
        if tables.mitigation(key) is None:
            warnings.append(
                AssessmentWarning(UNKNOWN_KEY, "mitigations", f"Unknown ground mitigation '{key}' ignored")
            )
        elif selection is not None and selection.enabled and _unknown_robustness(selection.robustness):
            warnings.append(_robustness_warning(key, selection.robustness))

    tmpr = snapshot.tmpr
    if tmpr is not None and tmpr.enabled and tmpr.type:
        definition = tables.tmpr(tmpr.type)
        if definition is None:
            warnings.append(AssessmentWarning(UNKNOWN_KEY, "tmpr", f"Unknown TMPR type '{tmpr.type}' ignored"))
        elif _unknown_robustness(tmpr.robustness):
            warnings.append(_robustness_warning("tmpr", tmpr.robustness))
        elif normalise_robustness(tmpr.robustness) != "none" and not tmpr_gate_met(tmpr, tables):
            warnings.append(
                AssessmentWarning(
                    TMPR_ROBUSTNESS_INSUFFICIENT,
                    "tmpr",
                    f"{definition.key} requires at least {definition.min_robustness} robustness; "
                    "no ARC reduction applied",
                )
            )

    containment = snapshot.containment
    if containment is not None and _unknown_robustness(containment.robustness):
        warnings.append(_robustness_warning("containment", containment.robustness))

    for oso_id, selection in snapshot.oso.items():
        if tables.oso(oso_id) is None:
            warnings.append(AssessmentWarning(UNKNOWN_KEY, "oso", f"Unknown OSO '{oso_id}' ignored"))
        elif selection is not None and _unknown_robustness(selection.robustness):
            warnings.append(_robustness_warning(oso_id, selection.robustness))

    return warnings


def evaluate(
    assessment_input: Optional[AssessmentInput] = None,
    tables: Optional[SoraTables] = None,
) -> AssessmentResult:
    """Run ground risk, air risk, SAIL, containment and OSO compliance.

    Out-of-scope operations stop after the SAIL stage: no containment
    requirement or OSO report is produced and the operation must follow the
    certified category process instead.
    """

    tables = resolve_tables(tables)
    snapshot = (assessment_input or AssessmentInput()).snapshot()
    warnings: List[AssessmentWarning] = []

    population = _known_key(snapshot.population_category, tables.population_keys,
                            DEFAULT_POPULATION, "population_category", warnings)
    ua_key = _known_key(snapshot.ua_characteristic, tables.ua_keys,
                        DEFAULT_UA_CHARACTERISTIC, "ua_characteristic", warnings)
    initial_arc = _known_key(snapshot.initial_arc, ARC_LEVELS, DEFAULT_ARC, "initial_arc", warnings)
    adjacent = _known_key(snapshot.adjacent_population, tables.population_keys,
                          DEFAULT_POPULATION, "adjacent_population", warnings)
    warnings.extend(_input_warnings(snapshot, tables))

    ground = ground_risk(population, ua_key, snapshot.mitigations, tables)
    warnings.extend(ground.warnings)
    arc = residual_arc(initial_arc, snapshot.tmpr, tables)
    sail = resolve_sail(ground.final_grc, arc, tables)
    logger.debug("GRC %r -> %r, ARC %s -> %s, SAIL %r", ground.intrinsic_grc, ground.final_grc,
                 initial_arc, arc, sail)

    max_speed = snapshot.max_speed_ms
    if not max_speed:
        characteristic = tables.ua_characteristic(ua_key)
        max_speed = characteristic.max_speed_ms if characteristic is not None else DEFAULT_MAX_SPEED_MS
    distance = adjacent_area_distance(max_speed)
    achieved = achieved_containment(snapshot.containment.method, snapshot.containment.robustness, tables)

    if sail is OUT_OF_SCOPE:
        logger.debug("Operation outside SORA scope; skipping containment and OSO evaluation")
        return AssessmentResult(
            intrinsic_grc=ground.intrinsic_grc,
            final_grc=ground.final_grc,
            mitigation_reductions=dict(ground.reductions),
            residual_arc=arc,
            sail=None,
            out_of_scope=True,
            sail_description=sail_description(sail, tables),
            adjacent_area_distance_m=distance,
            required_containment=None,
            achieved_containment=achieved,
            containment_compliant=False,
            oso=None,
            warnings=tuple(warnings),
            revision=tables.revision,
        )

    required = required_containment(adjacent, sail, tables)
    report = check_all(sail, snapshot.oso, tables)
    return AssessmentResult(
        intrinsic_grc=ground.intrinsic_grc,
        final_grc=ground.final_grc,
        mitigation_reductions=dict(ground.reductions),
        residual_arc=arc,
        sail=sail,
        out_of_scope=False,
        sail_description=sail_description(sail, tables),
        adjacent_area_distance_m=distance,
        required_containment=required,
        achieved_containment=achieved,
        containment_compliant=is_containment_compliant(required, achieved),
        oso=report,
        warnings=tuple(warnings),
        revision=tables.revision,
    )


# ---------------------------- Multi-site ----------------------------


def evaluate_sites(
    inputs: Mapping[str, AssessmentInput],
    tables: Optional[SoraTables] = None,
) -> Dict[str, AssessmentResult]:
    """Evaluate each named site independently, preserving the input order."""

    tables = resolve_tables(tables)
    return {name: evaluate(site_input, tables) for name, site_input in inputs.items()}


def governing_site(results: Mapping[str, AssessmentResult]) -> Optional[Tuple[str, AssessmentResult]]:
    """Return the site with the most demanding outcome.

    Out of scope dominates, then the highest SAIL, then the most OSO gaps.
    Ties keep the first site in input order.
    """

    best: Optional[Tuple[str, AssessmentResult]] = None
    best_key = None
    for name, result in results.items():
        key = (sail_rank(OUT_OF_SCOPE if result.out_of_scope else result.sail), result.oso_gap_count)
        if best_key is None or key > best_key:
            best, best_key = (name, result), key
    return best


def sites_frame(results: Mapping[str, AssessmentResult]) -> pd.DataFrame:
    columns = [
        "site", "intrinsic_grc", "final_grc", "residual_arc", "sail", "out_of_scope",
        "required_containment", "containment_compliant", "oso_gaps", "fully_compliant",
    ]
    rows = []
    for name, result in results.items():
        data = result.to_dict()
        rows.append(
            {
                "site": name,
                "intrinsic_grc": data["intrinsic_grc"],
                "final_grc": data["final_grc"],
                "residual_arc": result.residual_arc,
                "sail": result.sail,
                "out_of_scope": result.out_of_scope,
                "required_containment": result.required_containment,
                "containment_compliant": result.containment_compliant,
                "oso_gaps": result.oso_gap_count,
                "fully_compliant": result.fully_compliant,
            }
        )
    return pd.DataFrame(rows, columns=columns)
