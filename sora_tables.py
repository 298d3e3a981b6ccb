"""SORA 2.5 reference tables.

The tables in this module are the audited JARUS SORA 2.5 set (Main Body
Tables 2, 3 and 7, Annex B Table 11, Annex E Table 14).  They are exposed
as an immutable :class:`SoraTables` instance that every calculator accepts
as an explicit ``tables`` argument, so alternate table sets (for example a
future regulatory revision loaded from JSON) can be swapped in without code
changes.

Only one internally consistent table set is shipped.  Numbers must never be
merged across revisions: load a complete alternate set instead.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

# ---------------------------- Constants ----------------------------

TABLE_REVISION = "SORA 2.5"

ROBUSTNESS_LEVELS = ("none", "low", "medium", "high")
ROBUSTNESS_ORDER = {name: idx for idx, name in enumerate(ROBUSTNESS_LEVELS)}

# Annex E requirement letters: Optional, Low, Medium, High
REQUIREMENT_ORDER = {"O": 0, "L": 1, "M": 2, "H": 3}
REQUIREMENT_LABELS = {"O": "Optional", "L": "Low", "M": "Medium", "H": "High"}
REQUIREMENT_TIERS = {"L": "low", "M": "medium", "H": "high"}

ARC_LEVELS = ("ARC-a", "ARC-b", "ARC-c", "ARC-d")
SAIL_LEVELS = ("I", "II", "III", "IV", "V", "VI")
SAIL_ORDER = {name: idx for idx, name in enumerate(SAIL_LEVELS)}

MIN_FINAL_GRC = 1   # controlled ground area equivalent
MAX_SORA_GRC = 7    # above this the operation belongs to the certified category

# Fallbacks used when an input key is missing or unknown
DEFAULT_POPULATION = "sparsely"
DEFAULT_UA_CHARACTERISTIC = "1m_25ms"
DEFAULT_ARC = "ARC-b"
DEFAULT_CONTAINMENT = "low"
DEFAULT_ROBUSTNESS = "none"


class ScopeExit(Enum):
    """Sentinel for operations outside the SORA framework."""

    OUT_OF_SCOPE = "out_of_scope"

    def __repr__(self) -> str:
        return "OUT_OF_SCOPE"


OUT_OF_SCOPE = ScopeExit.OUT_OF_SCOPE

GRCValue = Union[int, ScopeExit]
SAILValue = Union[str, ScopeExit]


class TableError(ValueError):
    """Raised when a reference table set is missing or malformed."""


def normalise_robustness(value: Optional[str]) -> str:
    """Return a known robustness name, falling back to ``"none"``."""

    if value is None:
        return DEFAULT_ROBUSTNESS
    key = str(value).strip().lower()
    return key if key in ROBUSTNESS_ORDER else DEFAULT_ROBUSTNESS


def robustness_level(value: Optional[str]) -> int:
    """Ordinal of a robustness name on the none < low < medium < high scale."""

    return ROBUSTNESS_ORDER[normalise_robustness(value)]


def requirement_level(letter: Optional[str]) -> int:
    """Ordinal of an O/L/M/H requirement letter; unknown letters count as O."""

    if letter is None:
        return 0
    return REQUIREMENT_ORDER.get(str(letter).strip().upper(), 0)


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


# ---------------------------- Records ----------------------------


@dataclass(frozen=True)
class PopulationCategory:
    """Table 3 population density descriptor."""

    key: str
    label: str
    density: float
    description: str = ""


@dataclass(frozen=True)
class UACharacteristic:
    """Table 2 column: maximum characteristic dimension and speed."""

    key: str
    label: str
    max_dimension_m: float
    max_speed_ms: float
    description: str = ""

    def covers(self, dimension_m: float, speed_ms: float) -> bool:
        return dimension_m <= self.max_dimension_m and speed_ms <= self.max_speed_ms


@dataclass(frozen=True)
class GroundMitigation:
    """A ground risk mitigation carrying only the robustness tiers it offers.

    ``reductions`` maps each supported tier to a non-positive GRC delta.  A
    tier that is absent is not offered by the mitigation at all, which makes
    "M1(A) has no high tier" a fact that :meth:`supports` can answer.
    """

    key: str
    name: str
    reductions: Mapping[str, int]
    description: str = ""
    notes: str = ""

    @property
    def supported_tiers(self) -> Tuple[str, ...]:
        return tuple(t for t in ROBUSTNESS_LEVELS if t in self.reductions)

    def supports(self, tier: Optional[str]) -> bool:
        return tier is not None and tier in self.reductions

    def reduction(self, tier: Optional[str]) -> Optional[int]:
        """Return the GRC delta for ``tier`` or ``None`` when not offered."""

        if not self.supports(tier):
            return None
        return int(self.reductions[tier])


@dataclass(frozen=True)
class MitigationExclusion:
    """``mitigation`` claimed at ``tier`` cannot be combined with ``excludes``.

    On conflict the contribution of ``excludes`` is dropped.
    """

    mitigation: str
    tier: str
    excludes: str
    message: str = ""


@dataclass(frozen=True)
class ArcLevel:
    key: str
    description: str
    encounters: str = ""
    notes: str = ""


@dataclass(frozen=True)
class TMPRDefinition:
    """Tactical mitigation performance requirement claim."""

    key: str
    description: str
    arc_reduction: int
    min_robustness: str
    floor_arc: str


@dataclass(frozen=True)
class ContainmentMethod:
    key: str
    label: str
    achievable_robustness: str
    description: str = ""
    evidence_required: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OSOCategory:
    key: str
    label: str


@dataclass(frozen=True)
class OSODefinition:
    """Operational safety objective with its per-SAIL robustness letter."""

    id: str
    category: str
    name: str
    requirements: Mapping[str, str]
    responsibility: str
    description: str = ""
    evidence_guidance: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def required_letter(self, sail: str) -> str:
        return str(self.requirements.get(sail, "O")).upper()

    def guidance_for(self, letter: str) -> Tuple[str, ...]:
        tier = REQUIREMENT_TIERS.get(letter)
        if tier is None:
            return ()
        return tuple(self.evidence_guidance.get(tier, ()))


# ---------------------------- Table set ----------------------------


@dataclass(frozen=True)
class SoraTables:
    """Immutable, validated set of SORA reference tables."""

    revision: str
    population_categories: Tuple[PopulationCategory, ...]
    ua_characteristics: Tuple[UACharacteristic, ...]
    intrinsic_grc: Mapping[str, Mapping[str, Optional[int]]]
    ground_mitigations: Tuple[GroundMitigation, ...]
    mitigation_exclusions: Tuple[MitigationExclusion, ...]
    arc_levels: Tuple[ArcLevel, ...]
    tmpr_definitions: Tuple[TMPRDefinition, ...]
    sail_matrix: Mapping[int, Mapping[str, str]]
    sail_descriptions: Mapping[str, str]
    containment_robustness: Mapping[str, Mapping[str, str]]
    containment_methods: Tuple[ContainmentMethod, ...]
    oso_categories: Tuple[OSOCategory, ...]
    oso_definitions: Tuple[OSODefinition, ...]

    # -- key helpers --------------------------------------------------

    @property
    def population_keys(self) -> Tuple[str, ...]:
        return tuple(p.key for p in self.population_categories)

    @property
    def ua_keys(self) -> Tuple[str, ...]:
        return tuple(u.key for u in self.ua_characteristics)

    @property
    def arc_keys(self) -> Tuple[str, ...]:
        return tuple(a.key for a in self.arc_levels)

    @property
    def mitigation_keys(self) -> Tuple[str, ...]:
        return tuple(m.key for m in self.ground_mitigations)

    @property
    def oso_ids(self) -> Tuple[str, ...]:
        return tuple(o.id for o in self.oso_definitions)

    def population(self, key: Optional[str]) -> Optional[PopulationCategory]:
        return _find(self.population_categories, "key", key)

    def ua_characteristic(self, key: Optional[str]) -> Optional[UACharacteristic]:
        return _find(self.ua_characteristics, "key", key)

    def mitigation(self, key: Optional[str]) -> Optional[GroundMitigation]:
        return _find(self.ground_mitigations, "key", key)

    def tmpr(self, key: Optional[str]) -> Optional[TMPRDefinition]:
        return _find(self.tmpr_definitions, "key", key)

    def containment_method(self, key: Optional[str]) -> Optional[ContainmentMethod]:
        return _find(self.containment_methods, "key", key)

    def oso(self, oso_id: Optional[str]) -> Optional[OSODefinition]:
        return _find(self.oso_definitions, "id", oso_id)

    # -- construction -------------------------------------------------

    @classmethod
    def from_dict(cls, payload: Mapping) -> "SoraTables":
        """Build and validate a table set from a JSON-compatible mapping.

        Raises
        ------
        TableError
            When a table is missing, a record is malformed, or the
            monotonicity and coverage invariants do not hold.
        """

        if not isinstance(payload, Mapping):
            raise TableError("Reference table payload must be a mapping")

        def section(name: str):
            if name not in payload or payload[name] is None:
                raise TableError(f"Missing reference table '{name}'")
            return payload[name]

        try:
            populations = tuple(
                PopulationCategory(
                    key=str(key),
                    label=str(item["label"]),
                    density=float(item["density"]),
                    description=str(item.get("description", "")),
                )
                for key, item in section("population_categories").items()
            )
            uas = tuple(
                UACharacteristic(
                    key=str(key),
                    label=str(item["label"]),
                    max_dimension_m=float(item["max_dimension_m"]),
                    max_speed_ms=float(item["max_speed_ms"]),
                    description=str(item.get("description", "")),
                )
                for key, item in section("ua_characteristics").items()
            )
            igrc = _freeze(
                {
                    str(pop): _freeze(
                        {str(ua): (None if value is None else int(value)) for ua, value in row.items()}
                    )
                    for pop, row in section("intrinsic_grc").items()
                }
            )
            mitigations = tuple(
                GroundMitigation(
                    key=str(key),
                    name=str(item["name"]),
                    reductions=_freeze({str(t): int(v) for t, v in item["reductions"].items()}),
                    description=str(item.get("description", "")),
                    notes=str(item.get("notes", "")),
                )
                for key, item in section("ground_mitigations").items()
            )
            exclusions = tuple(
                MitigationExclusion(
                    mitigation=str(item["mitigation"]),
                    tier=str(item["tier"]),
                    excludes=str(item["excludes"]),
                    message=str(item.get("message", "")),
                )
                for item in payload.get("mitigation_exclusions", ())
            )
            arcs = tuple(
                ArcLevel(
                    key=str(key),
                    description=str(item.get("description", "")),
                    encounters=str(item.get("encounters", "")),
                    notes=str(item.get("notes", "")),
                )
                for key, item in section("arc_levels").items()
            )
            tmprs = tuple(
                TMPRDefinition(
                    key=str(key),
                    description=str(item.get("description", "")),
                    arc_reduction=int(item["arc_reduction"]),
                    min_robustness=str(item["min_robustness"]),
                    floor_arc=str(item["floor_arc"]),
                )
                for key, item in section("tmpr_definitions").items()
            )
            sail_matrix = _freeze(
                {int(grc): _freeze({str(a): str(s) for a, s in row.items()})
                 for grc, row in section("sail_matrix").items()}
            )
            containment = _freeze(
                {str(pop): _freeze({str(s): str(r) for s, r in row.items()})
                 for pop, row in section("containment_robustness").items()}
            )
            methods = tuple(
                ContainmentMethod(
                    key=str(key),
                    label=str(item["label"]),
                    achievable_robustness=str(item["achievable_robustness"]),
                    description=str(item.get("description", "")),
                    evidence_required=tuple(item.get("evidence_required", ())),
                )
                for key, item in payload.get("containment_methods", {}).items()
            )
            categories = tuple(
                OSOCategory(key=str(key), label=str(label))
                for key, label in section("oso_categories").items()
            )
            osos = tuple(
                OSODefinition(
                    id=str(item["id"]),
                    category=str(item["category"]),
                    name=str(item["name"]),
                    requirements=_freeze({str(s): str(l).upper() for s, l in item["requirements"].items()}),
                    responsibility=str(item.get("responsibility", "operator")),
                    description=str(item.get("description", "")),
                    evidence_guidance=_freeze(
                        {str(t): tuple(v) for t, v in item.get("evidence_guidance", {}).items()}
                    ),
                )
                for item in section("oso_definitions")
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            if isinstance(exc, TableError):
                raise
            raise TableError(f"Malformed reference table record: {exc}") from exc

        tables = cls(
            revision=str(payload.get("revision", TABLE_REVISION)),
            population_categories=populations,
            ua_characteristics=uas,
            intrinsic_grc=igrc,
            ground_mitigations=mitigations,
            mitigation_exclusions=exclusions,
            arc_levels=arcs,
            tmpr_definitions=tmprs,
            sail_matrix=sail_matrix,
            sail_descriptions=_freeze(payload.get("sail_descriptions", {})),
            containment_robustness=containment,
            containment_methods=methods,
            oso_categories=categories,
            oso_definitions=osos,
        )

        problems = validate_tables(tables)
        if problems:
            raise TableError("Invalid reference tables: " + "; ".join(problems))
        return tables

    def to_dict(self) -> Dict:
        """Return a JSON-compatible payload accepted by :meth:`from_dict`."""

        return {
            "revision": self.revision,
            "population_categories": {
                p.key: {"label": p.label, "density": p.density, "description": p.description}
                for p in self.population_categories
            },
            "ua_characteristics": {
                u.key: {
                    "label": u.label,
                    "max_dimension_m": u.max_dimension_m,
                    "max_speed_ms": u.max_speed_ms,
                    "description": u.description,
                }
                for u in self.ua_characteristics
            },
            "intrinsic_grc": {pop: dict(row) for pop, row in self.intrinsic_grc.items()},
            "ground_mitigations": {
                m.key: {
                    "name": m.name,
                    "description": m.description,
                    "reductions": dict(m.reductions),
                    "notes": m.notes,
                }
                for m in self.ground_mitigations
            },
            "mitigation_exclusions": [
                {"mitigation": e.mitigation, "tier": e.tier, "excludes": e.excludes, "message": e.message}
                for e in self.mitigation_exclusions
            ],
            "arc_levels": {
                a.key: {"description": a.description, "encounters": a.encounters, "notes": a.notes}
                for a in self.arc_levels
            },
            "tmpr_definitions": {
                t.key: {
                    "description": t.description,
                    "arc_reduction": t.arc_reduction,
                    "min_robustness": t.min_robustness,
                    "floor_arc": t.floor_arc,
                }
                for t in self.tmpr_definitions
            },
            "sail_matrix": {str(grc): dict(row) for grc, row in self.sail_matrix.items()},
            "sail_descriptions": dict(self.sail_descriptions),
            "containment_robustness": {pop: dict(row) for pop, row in self.containment_robustness.items()},
            "containment_methods": {
                c.key: {
                    "label": c.label,
                    "description": c.description,
                    "achievable_robustness": c.achievable_robustness,
                    "evidence_required": list(c.evidence_required),
                }
                for c in self.containment_methods
            },
            "oso_categories": {c.key: c.label for c in self.oso_categories},
            "oso_definitions": [
                {
                    "id": o.id,
                    "category": o.category,
                    "name": o.name,
                    "description": o.description,
                    "requirements": dict(o.requirements),
                    "responsibility": o.responsibility,
                    "evidence_guidance": {t: list(v) for t, v in o.evidence_guidance.items()},
                }
                for o in self.oso_definitions
            ],
        }


def _find(records: Iterable, attr: str, key: Optional[str]):
    if key is None:
        return None
    for record in records:
        if getattr(record, attr) == key:
            return record
    return None


# ---------------------------- Validation ----------------------------


def _is_non_decreasing(grid: np.ndarray) -> bool:
    """True when ``grid`` never decreases along either axis.

    Infinite cells stand for out-of-scope entries and rank above every
    finite value; two adjacent out-of-scope cells compare as equal.
    """

    for axis in (0, 1):
        if grid.shape[axis] < 2:
            continue
        with np.errstate(invalid="ignore"):
            diffs = np.diff(grid, axis=axis)
        if not np.all((diffs >= 0) | np.isnan(diffs)):
            return False
    return True


def validate_tables(tables: SoraTables) -> List[str]:
    """Return a list of invariant violations (empty when the set is valid)."""

    problems: List[str] = []
    pops = tables.population_keys
    uas = tables.ua_keys
    arcs = tables.arc_keys

    if not pops:
        problems.append("population_categories is empty")
    if not uas:
        problems.append("ua_characteristics is empty")
    if tuple(arcs) != ARC_LEVELS:
        problems.append(f"arc_levels must be {list(ARC_LEVELS)} in order")

    # Intrinsic GRC: full coverage, bounds, monotonic on both axes
    grid = np.full((len(pops), len(uas)), np.nan)
    for i, pop in enumerate(pops):
        row = tables.intrinsic_grc.get(pop)
        if row is None:
            problems.append(f"intrinsic_grc missing population '{pop}'")
            continue
        for j, ua in enumerate(uas):
            if ua not in row:
                problems.append(f"intrinsic_grc missing cell ({pop}, {ua})")
                continue
            value = row[ua]
            if value is None:
                grid[i, j] = np.inf
            elif not 1 <= value <= 10:
                problems.append(f"intrinsic_grc ({pop}, {ua}) = {value} outside [1, 10]")
            else:
                grid[i, j] = value
    if not np.isnan(grid).any() and not _is_non_decreasing(grid):
        problems.append("intrinsic_grc is not non-decreasing in population and UA size")

    # SAIL matrix: rows 1..7, every ARC, monotonic
    sail_grid = np.full((MAX_SORA_GRC, len(ARC_LEVELS)), np.nan)
    for grc in range(MIN_FINAL_GRC, MAX_SORA_GRC + 1):
        row = tables.sail_matrix.get(grc)
        if row is None:
            problems.append(f"sail_matrix missing GRC row {grc}")
            continue
        for j, arc in enumerate(ARC_LEVELS):
            sail = row.get(arc)
            if sail not in SAIL_ORDER:
                problems.append(f"sail_matrix ({grc}, {arc}) has invalid SAIL {sail!r}")
                continue
            sail_grid[grc - 1, j] = SAIL_ORDER[sail]
    if not np.isnan(sail_grid).any() and not _is_non_decreasing(sail_grid):
        problems.append("sail_matrix is not non-decreasing in GRC and ARC")

    # Containment: every population x SAIL, valid robustness
    for pop in pops:
        row = tables.containment_robustness.get(pop)
        if row is None:
            problems.append(f"containment_robustness missing population '{pop}'")
            continue
        for sail in SAIL_LEVELS:
            value = row.get(sail)
            if value not in ("low", "medium", "high"):
                problems.append(f"containment_robustness ({pop}, {sail}) has invalid value {value!r}")

    for mitigation in tables.ground_mitigations:
        for tier, delta in mitigation.reductions.items():
            if tier not in ROBUSTNESS_ORDER:
                problems.append(f"mitigation {mitigation.key} has unknown tier '{tier}'")
            if delta > 0:
                problems.append(f"mitigation {mitigation.key} tier '{tier}' raises GRC")
    for exclusion in tables.mitigation_exclusions:
        for key in (exclusion.mitigation, exclusion.excludes):
            if tables.mitigation(key) is None:
                problems.append(f"mitigation exclusion references unknown mitigation '{key}'")

    for tmpr in tables.tmpr_definitions:
        if tmpr.min_robustness not in ROBUSTNESS_ORDER:
            problems.append(f"TMPR {tmpr.key} has unknown minimum robustness '{tmpr.min_robustness}'")
        if tmpr.floor_arc not in ARC_LEVELS:
            problems.append(f"TMPR {tmpr.key} has unknown floor ARC '{tmpr.floor_arc}'")
        if tmpr.arc_reduction < 0:
            problems.append(f"TMPR {tmpr.key} has a negative ARC reduction")

    for method in tables.containment_methods:
        if method.achievable_robustness not in ROBUSTNESS_ORDER:
            problems.append(f"containment method {method.key} has unknown robustness")

    category_keys = {c.key for c in tables.oso_categories}
    seen = set()
    for oso in tables.oso_definitions:
        if oso.id in seen:
            problems.append(f"duplicate OSO id '{oso.id}'")
        seen.add(oso.id)
        if oso.category not in category_keys:
            problems.append(f"{oso.id} references unknown category '{oso.category}'")
        for sail in SAIL_LEVELS:
            if oso.requirements.get(sail) not in REQUIREMENT_ORDER:
                problems.append(f"{oso.id} has no valid requirement for SAIL {sail}")

    return problems


# ---------------------------- Loading ----------------------------


def load_tables(path: Union[str, Path]) -> SoraTables:
    """Load an alternate reference table set from a JSON file."""

    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise TableError(f"Reference table file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise TableError(f"Reference table file is not valid JSON: {path}") from exc

    tables = SoraTables.from_dict(payload)
    logger.info("Loaded %s reference tables from %s", tables.revision, path)
    return tables


@lru_cache(maxsize=None)
def default_tables() -> SoraTables:
    """Return the built-in audited SORA 2.5 table set."""

    return SoraTables.from_dict(SORA_2_5_TABLES)


def resolve_tables(tables: Optional[SoraTables]) -> SoraTables:
    return default_tables() if tables is None else tables


# ---------------------------- SORA 2.5 data ----------------------------

SORA_2_5_TABLES: Dict = {
    "revision": TABLE_REVISION,
    # Table 3 descriptors, least to most dense
    "population_categories": {
        "controlled": {
            "label": "Controlled Ground Area",
            "density": 0,
            "description": "Areas controlled where unauthorized people are not allowed to enter",
        },
        "remote": {
            "label": "Remote (< 5 ppl/km²)",
            "density": 5,
            "description": "Areas where people may be, such as forests, deserts, large farm parcels",
        },
        "lightly": {
            "label": "Lightly Populated (< 50 ppl/km²)",
            "density": 50,
            "description": "Areas of small farms, residential areas with very large lots",
        },
        "sparsely": {
            "label": "Sparsely Populated (< 500 ppl/km²)",
            "density": 500,
            "description": "Areas of homes and small businesses with large lot sizes",
        },
        "suburban": {
            "label": "Suburban (< 5,000 ppl/km²)",
            "density": 5000,
            "description": "Single-family homes on small lots, apartment complexes, commercial buildings",
        },
        "highdensity": {
            "label": "High Density Metro (< 50,000 ppl/km²)",
            "density": 50000,
            "description": "Areas of mostly large multistory buildings, downtown areas",
        },
        "assembly": {
            "label": "Assembly of People (> 50,000 ppl/km²)",
            "density": 100000,
            "description": "Large gatherings such as professional sporting events, large concerts",
        },
    },
    # Table 2 columns, smallest to largest envelope
    "ua_characteristics": {
        "1m_25ms": {"label": "≤1m / ≤25 m/s", "max_dimension_m": 1, "max_speed_ms": 25,
                    "description": "Small consumer drones"},
        "3m_35ms": {"label": "≤3m / ≤35 m/s", "max_dimension_m": 3, "max_speed_ms": 35,
                    "description": "Medium commercial UAS"},
        "8m_75ms": {"label": "≤8m / ≤75 m/s", "max_dimension_m": 8, "max_speed_ms": 75,
                    "description": "Large industrial UAS"},
        "20m_120ms": {"label": "≤20m / ≤120 m/s", "max_dimension_m": 20, "max_speed_ms": 120,
                      "description": "Large fixed-wing UAS"},
        "40m_200ms": {"label": "≤40m / ≤200 m/s", "max_dimension_m": 40, "max_speed_ms": 200,
                      "description": "Very large UAS"},
    },
    # Table 2; None = not part of SORA
    "intrinsic_grc": {
        "controlled":  {"1m_25ms": 1, "3m_35ms": 1, "8m_75ms": 2, "20m_120ms": 3, "40m_200ms": 3},
        "remote":      {"1m_25ms": 2, "3m_35ms": 3, "8m_75ms": 4, "20m_120ms": 5, "40m_200ms": 6},
        "lightly":     {"1m_25ms": 3, "3m_35ms": 4, "8m_75ms": 5, "20m_120ms": 6, "40m_200ms": 7},
        "sparsely":    {"1m_25ms": 4, "3m_35ms": 5, "8m_75ms": 6, "20m_120ms": 7, "40m_200ms": 8},
        "suburban":    {"1m_25ms": 5, "3m_35ms": 6, "8m_75ms": 7, "20m_120ms": 8, "40m_200ms": 9},
        "highdensity": {"1m_25ms": 6, "3m_35ms": 7, "8m_75ms": 8, "20m_120ms": 9, "40m_200ms": 10},
        "assembly":    {"1m_25ms": 7, "3m_35ms": 8, "8m_75ms": None, "20m_120ms": None, "40m_200ms": None},
    },
    # Annex B Table 11. M3 (ERP) is not a mitigation in SORA 2.5.
    "ground_mitigations": {
        "M1A": {
            "name": "M1(A) - Strategic Mitigation: Sheltering",
            "description": "People on ground are sheltered by structures",
            "reductions": {"none": 0, "low": -1, "medium": -2},
            "notes": "Cannot be combined with M1(B) at medium robustness",
        },
        "M1B": {
            "name": "M1(B) - Strategic Mitigation: Operational Restrictions",
            "description": "Spacetime-based restrictions reduce exposure",
            "reductions": {"none": 0, "medium": -1, "high": -2},
            "notes": "Cannot be combined with M1(A) at medium robustness",
        },
        "M1C": {
            "name": "M1(C) - Tactical Mitigation: Ground Observation",
            "description": "Observers can warn people in operational area",
            "reductions": {"none": 0, "low": -1},
            "notes": "Limited to -1 reduction at low robustness only",
        },
        "M2": {
            "name": "M2 - Effects of UA Impact Dynamics Reduced",
            "description": "Parachute, autorotation, or frangibility reduces impact energy",
            "reductions": {"none": 0, "medium": -1, "high": -2},
            "notes": "Additional reduction requires demonstrated 3+ orders of magnitude risk reduction",
        },
    },
    "mitigation_exclusions": [
        {
            "mitigation": "M1A",
            "tier": "medium",
            "excludes": "M1B",
            "message": "M1(A) at medium robustness cannot be combined with M1(B); M1(B) reduction ignored",
        },
    ],
    # Figure 6
    "arc_levels": {
        "ARC-a": {"description": "Atypical airspace (segregated, restricted)", "encounters": "Negligible",
                  "notes": "Risk acceptably low without tactical mitigation"},
        "ARC-b": {"description": "Uncontrolled airspace, rural, low altitude", "encounters": "Low",
                  "notes": "Typical for rural VLOS operations below 400ft"},
        "ARC-c": {"description": "Controlled airspace or urban uncontrolled", "encounters": "Medium",
                  "notes": "Requires coordination with ANSP in controlled airspace"},
        "ARC-d": {"description": "Airport/heliport environment or high traffic", "encounters": "High",
                  "notes": "Requires specific approval and coordination"},
    },
    # Annex D
    "tmpr_definitions": {
        "VLOS": {"description": "Visual Line of Sight - See and avoid by remote pilot",
                 "arc_reduction": 1, "min_robustness": "low", "floor_arc": "ARC-b"},
        "EVLOS": {"description": "Extended VLOS - Visual observers provide separation",
                  "arc_reduction": 1, "min_robustness": "low", "floor_arc": "ARC-b"},
        "DAA": {"description": "Detect and Avoid system onboard",
                "arc_reduction": 2, "min_robustness": "medium", "floor_arc": "ARC-a"},
    },
    # Table 7; GRC 1 and 2 share a row
    "sail_matrix": {
        "1": {"ARC-a": "I", "ARC-b": "II", "ARC-c": "IV", "ARC-d": "VI"},
        "2": {"ARC-a": "I", "ARC-b": "II", "ARC-c": "IV", "ARC-d": "VI"},
        "3": {"ARC-a": "II", "ARC-b": "II", "ARC-c": "IV", "ARC-d": "VI"},
        "4": {"ARC-a": "III", "ARC-b": "III", "ARC-c": "IV", "ARC-d": "VI"},
        "5": {"ARC-a": "IV", "ARC-b": "IV", "ARC-c": "IV", "ARC-d": "VI"},
        "6": {"ARC-a": "V", "ARC-b": "V", "ARC-c": "V", "ARC-d": "VI"},
        "7": {"ARC-a": "VI", "ARC-b": "VI", "ARC-c": "VI", "ARC-d": "VI"},
    },
    "sail_descriptions": {
        "I": "Lowest assurance - Declaration may be sufficient",
        "II": "Low assurance - Standard operating procedures",
        "III": "Medium assurance - Validated procedures required",
        "IV": "Medium-High assurance - Comprehensive safety case",
        "V": "High assurance - Extensive demonstration required",
        "VI": "Highest assurance - Full airworthiness demonstration",
    },
    # Step #8, by adjacent area population and SAIL
    "containment_robustness": {
        "controlled":  {"I": "low", "II": "low", "III": "low", "IV": "low", "V": "low", "VI": "medium"},
        "remote":      {"I": "low", "II": "low", "III": "low", "IV": "low", "V": "low", "VI": "medium"},
        "lightly":     {"I": "low", "II": "low", "III": "low", "IV": "low", "V": "medium", "VI": "medium"},
        "sparsely":    {"I": "low", "II": "low", "III": "low", "IV": "medium", "V": "medium", "VI": "high"},
        "suburban":    {"I": "low", "II": "low", "III": "medium", "IV": "medium", "V": "high", "VI": "high"},
        "highdensity": {"I": "low", "II": "medium", "III": "medium", "IV": "high", "V": "high", "VI": "high"},
        "assembly":    {"I": "medium", "II": "medium", "III": "high", "IV": "high", "V": "high", "VI": "high"},
    },
    "containment_methods": {
        "none": {"label": "None", "achievable_robustness": "none",
                 "description": "No specific containment measures", "evidence_required": []},
        "procedural": {
            "label": "Procedural",
            "achievable_robustness": "low",
            "description": "Operational procedures and flight planning to stay within boundaries",
            "evidence_required": ["Flight planning procedures", "Boundary awareness training",
                                  "Visual reference points identified"],
        },
        "sw_geofence": {
            "label": "Software Geofencing",
            "achievable_robustness": "medium",
            "description": "Software-based geofencing that alerts pilot when approaching boundaries",
            "evidence_required": ["Geofence configuration documented", "Alert/warning system tested",
                                  "Pilot response procedures", "Geofence accuracy specifications"],
        },
        "hw_geofence": {
            "label": "Hardware Geofencing",
            "achievable_robustness": "medium",
            "description": "Hardware-enforced geofencing with automatic position limiting",
            "evidence_required": ["Hardware geofence specifications", "Independent position source",
                                  "Automatic boundary enforcement tested", "Failure mode analysis"],
        },
        "flight_termination": {
            "label": "Flight Termination System",
            "achievable_robustness": "high",
            "description": "Independent system to terminate flight if boundaries exceeded",
            "evidence_required": ["FTS specifications and design", "Independent trigger mechanism",
                                  "Demonstrated reliability data", "Testing and verification records",
                                  "Activation criteria defined"],
        },
        "parachute_fts": {
            "label": "Parachute + Flight Termination",
            "achievable_robustness": "high",
            "description": "Flight termination with parachute recovery system",
            "evidence_required": ["Parachute specifications", "Combined FTS + parachute testing",
                                  "Descent rate and footprint analysis", "Reliability demonstration",
                                  "Activation altitude requirements"],
        },
    },
    "oso_categories": {
        "technical": "Technical Issue with UAS",
        "external": "Deterioration of External Systems",
        "human": "Human Error",
        "operating": "Adverse Operating Conditions",
    },
    # Annex E Table 14. OSO-14 and OSO-15 were removed in SORA 2.5.
    "oso_definitions": [
        {
            "id": "OSO-01", "category": "technical",
            "name": "Ensure the Operator is competent and/or proven",
            "description": "Operator demonstrates competency for the operation",
            "requirements": {"I": "O", "II": "L", "III": "M", "IV": "H", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Pilot certificate/license", "Basic flight training records", "Operator registration"],
                "medium": ["Recurrent training records", "Type-specific training", "Competency assessments",
                           "Operations manual"],
                "high": ["Third-party competency verification", "Audited training program",
                         "Continuous assessment program"],
            },
        },
        {
            "id": "OSO-02", "category": "technical",
            "name": "UAS manufactured by competent and/or proven entity",
            "description": "Manufacturer has documented quality and design processes",
            "requirements": {"I": "O", "II": "O", "III": "L", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Manufacturer declaration", "Basic product documentation"],
                "medium": ["ISO 9001 or equivalent QMS certification", "Design documentation"],
                "high": ["Aviation authority approved design organization", "Full design assurance"],
            },
        },
        {
            "id": "OSO-03", "category": "technical",
            "name": "UAS maintained by competent and/or proven entity",
            "description": "Maintenance performed by trained personnel per procedures",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Maintenance log", "Basic maintenance training records"],
                "medium": ["Documented maintenance program", "Certified maintenance personnel",
                           "Maintenance tracking system"],
                "high": ["Approved maintenance organization", "Audited maintenance program", "Component tracking"],
            },
        },
        {
            "id": "OSO-04", "category": "technical",
            "name": "UAS developed to Airworthiness Design Standard (ADS)",
            "description": "UAS components essential to safe ops designed to ADS",
            "requirements": {"I": "O", "II": "O", "III": "O", "IV": "L", "V": "M", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Reference to industry standards used", "Basic design documentation"],
                "medium": ["Compliance matrix to recognized standard", "Design verification evidence"],
                "high": ["Full airworthiness certification", "Type certificate or equivalent"],
            },
        },
        {
            "id": "OSO-05", "category": "technical",
            "name": "UAS designed considering system safety and reliability",
            "description": "System safety and reliability analysis performed",
            "requirements": {"I": "O", "II": "O", "III": "L", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Basic hazard identification", "Manufacturer reliability data"],
                "medium": ["Functional Hazard Analysis (FHA)", "FMEA or equivalent", "Reliability targets defined"],
                "high": ["Full safety assessment per ARP4761 or equivalent", "Demonstrated reliability data"],
            },
        },
        {
            "id": "OSO-06", "category": "technical",
            "name": "C3 link characteristics appropriate for operation",
            "description": "Command, control, communication link meets operational needs",
            "requirements": {"I": "O", "II": "L", "III": "L", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["C3 link specifications", "Range and latency data", "Basic link testing"],
                "medium": ["Link budget analysis", "Interference assessment", "Link loss procedures"],
                "high": ["Certified C3 link performance", "Redundant link capability", "Full spectrum analysis"],
            },
        },
        {
            "id": "OSO-07", "category": "technical",
            "name": "Conformity check of UAS configuration",
            "description": "Inspection of UAS to ensure condition for safe operation",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Pre-flight checklist", "Visual inspection records"],
                "medium": ["Configuration control log", "Software version verification", "Component tracking"],
                "high": ["Independent conformity inspection", "Airworthiness release documentation"],
            },
        },
        {
            "id": "OSO-08", "category": "external",
            "name": "Operational procedures defined, validated and adhered to",
            "description": "Procedures exist, are validated, and crew adheres to them",
            "requirements": {"I": "L", "II": "M", "III": "H", "IV": "H", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Basic operating procedures", "Emergency procedures documented"],
                "medium": ["Validated operations manual", "Procedure compliance records", "Crew briefing records"],
                "high": ["Third-party validated procedures", "Audited procedure compliance",
                         "Continuous improvement process"],
            },
        },
        {
            "id": "OSO-09", "category": "human",
            "name": "Remote crew trained and current",
            "description": "Crew training for normal and emergency procedures",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Initial training records", "Currency requirements met"],
                "medium": ["Recurrent training program", "Emergency procedure training", "Competency checks"],
                "high": ["Simulator-based training", "Third-party assessed competency", "CRM training"],
            },
        },
        {
            "id": "OSO-10", "category": "technical",
            "name": "Safe recovery from technical issue",
            "description": "Procedures exist to safely recover from a technical failure",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Emergency landing procedures", "Basic failure response procedures"],
                "medium": ["Failure mode procedures", "Recovery training evidence", "Tested contingency procedures"],
                "high": ["Automatic safe recovery systems", "Demonstrated recovery capability",
                         "Validated through testing"],
            },
        },
        {
            "id": "OSO-11", "category": "technical",
            "name": "Safe recovery from C3 link issues",
            "description": "Procedures and systems to recover from communication failures",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Link loss procedures", "Return-to-home settings documented"],
                "medium": ["Automatic link loss behavior tested", "Backup C3 procedures", "Training on link loss"],
                "high": ["Redundant C3 link", "Demonstrated safe behavior on link loss",
                         "Certified link loss response"],
            },
        },
        {
            "id": "OSO-12", "category": "human",
            "name": "Remote crew trained to handle technical emergencies",
            "description": "Crew competent to manage technical failures and degraded modes",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Emergency procedure training records", "Basic troubleshooting capability"],
                "medium": ["Scenario-based emergency training", "Regular drills conducted", "Assessment records"],
                "high": ["Simulator training for emergencies", "Third-party competency verification",
                         "Stress training"],
            },
        },
        {
            "id": "OSO-13", "category": "external",
            "name": "External services supporting UAS operations are adequate",
            "description": "CNS, UTM, weather services adequate for operation",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "H", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Weather source identified", "NOTAM check process", "Basic communication plan"],
                "medium": ["Validated weather services", "UTM integration where required",
                           "ATC coordination procedures"],
                "high": ["Certified external service providers", "Redundant services",
                         "SLA with service providers"],
            },
        },
        {
            "id": "OSO-16", "category": "human",
            "name": "Multi-crew coordination",
            "description": "Coordination between multiple crew members",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Defined crew roles", "Basic communication procedures"],
                "medium": ["CRM principles applied", "Briefing/debriefing procedures", "Team training"],
                "high": ["Formal CRM training", "Crew composition requirements",
                         "Third-party assessed coordination"],
            },
        },
        {
            "id": "OSO-17", "category": "human",
            "name": "Remote crew fit to operate",
            "description": "Crew fitness-for-duty (medical, fatigue, substances)",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Self-declaration of fitness", "Basic fitness requirements documented"],
                "medium": ["Medical certificate", "Fatigue management policy", "Substance policy"],
                "high": ["Aviation medical certificate", "Fatigue risk management system",
                         "Random testing program"],
            },
        },
        {
            "id": "OSO-18", "category": "human",
            "name": "Automatic protection of flight envelope from human error",
            "description": "Automatic systems prevent exceeding flight envelope",
            "requirements": {"I": "O", "II": "O", "III": "L", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Basic geofencing capability", "Altitude limits implemented"],
                "medium": ["Validated envelope protection", "Tested limit functions", "Override procedures"],
                "high": ["Certified flight envelope protection", "Independent monitoring",
                         "Full automation testing"],
            },
        },
        {
            "id": "OSO-19", "category": "human",
            "name": "Safe recovery from human error",
            "description": "Procedures and systems for recovery from human error",
            "requirements": {"I": "O", "II": "O", "III": "L", "IV": "M", "V": "M", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Basic error recovery procedures", "Undo/cancel functions"],
                "medium": ["Error-tolerant interface design", "Recovery mode procedures",
                           "Training on error recovery"],
                "high": ["Formal HMI assessment", "Demonstrated error recovery capability",
                         "Independent verification"],
            },
        },
        {
            "id": "OSO-20", "category": "human",
            "name": "Human Factors evaluation performed, HMI appropriate",
            "description": "HMI assessed and found appropriate for the mission",
            "requirements": {"I": "O", "II": "L", "III": "L", "IV": "M", "V": "M", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Basic HMI description", "User feedback considered"],
                "medium": ["HMI assessment performed", "Workload analysis", "Usability testing"],
                "high": ["Formal HF evaluation per standards", "Independent HMI assessment", "Certified HMI design"],
            },
        },
        {
            "id": "OSO-21", "category": "operating",
            "name": "Automatic protection of flight envelope from adverse conditions",
            "description": "Automatic systems protect operation from adverse environmental conditions",
            "requirements": {"I": "O", "II": "O", "III": "L", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Environmental limits defined", "Basic sensor monitoring"],
                "medium": ["Automatic response to adverse conditions", "Tested environmental protection"],
                "high": ["Certified environmental protection systems", "Redundant sensing",
                         "Full automation validation"],
            },
        },
        {
            "id": "OSO-22", "category": "operating",
            "name": "Remote crew able to control UAS in adverse conditions",
            "description": "Crew can safely manage UAS when faced with adverse conditions",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Adverse condition procedures", "Basic training on weather effects"],
                "medium": ["Scenario training for adverse conditions", "Decision-making procedures",
                           "Competency assessment"],
                "high": ["Simulator training for adverse conditions", "Third-party verified competency",
                         "Stress testing"],
            },
        },
        {
            "id": "OSO-23", "category": "operating",
            "name": "Environmental conditions defined, measurable and adhered to",
            "description": "Weather and environmental limits documented and followed",
            "requirements": {"I": "L", "II": "L", "III": "M", "IV": "M", "V": "H", "VI": "H"},
            "responsibility": "operator",
            "evidence_guidance": {
                "low": ["Weather limits defined", "Weather briefing procedure"],
                "medium": ["Weather monitoring during ops", "Go/no-go criteria", "Real-time weather updates"],
                "high": ["Validated weather sources", "Continuous monitoring systems", "Automatic alerts"],
            },
        },
        {
            "id": "OSO-24", "category": "operating",
            "name": "UAS designed and qualified for adverse environmental conditions",
            "description": "UAS can handle defined adverse environmental conditions",
            "requirements": {"I": "O", "II": "O", "III": "M", "IV": "H", "V": "H", "VI": "H"},
            "responsibility": "designer",
            "evidence_guidance": {
                "low": ["Environmental envelope defined by manufacturer"],
                "medium": ["Environmental testing performed", "IP rating where applicable",
                           "Temperature range verified"],
                "high": ["Certified environmental qualification", "Full environmental testing to standards",
                         "Independent verification"],
            },
        },
    ],
}
