"""OSO compliance evaluation against the per-SAIL robustness of Annex E.

Every evaluation walks the OSO catalog in its stable order so that
repeated calls produce identical result lists, which keeps UI tables and
generated reports diffable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple, Union

import pandas as pd

from sora_tables import (
    REQUIREMENT_LABELS,
    OSODefinition,
    SoraTables,
    normalise_robustness,
    requirement_level,
    resolve_tables,
    robustness_level,
)

COMPLIANCE_COLUMNS = [
    "oso_id",
    "name",
    "category",
    "responsibility",
    "required",
    "required_label",
    "declared",
    "compliant",
    "gap",
    "optional",
    "evidence",
]


@dataclass
class OSOSelection:
    """Caller-owned declared robustness and evidence for one OSO."""

    robustness: Optional[str] = "none"
    evidence: str = ""


@dataclass(frozen=True)
class OSOCompliance:
    oso_id: str
    name: str
    category: str
    responsibility: str
    required: str
    required_label: str
    declared: str
    compliant: bool
    gap: int
    evidence: str = ""
    guidance: Tuple[str, ...] = ()

    @property
    def optional(self) -> bool:
        return self.required == "O"

    def to_dict(self) -> Dict:
        return {
            "oso_id": self.oso_id,
            "name": self.name,
            "category": self.category,
            "responsibility": self.responsibility,
            "required": self.required,
            "required_label": self.required_label,
            "declared": self.declared,
            "compliant": self.compliant,
            "gap": self.gap,
            "optional": self.optional,
            "evidence": self.evidence,
            "guidance": list(self.guidance),
        }


@dataclass(frozen=True)
class CategorySummary:
    key: str
    label: str
    total: int
    compliant: int
    non_compliant: int
    optional: int

    @property
    def overall_compliant(self) -> bool:
        return self.non_compliant == 0


@dataclass(frozen=True)
class ComplianceSummary:
    total: int
    compliant: int
    non_compliant: int
    optional: int
    overall_compliant: bool
    compliance_pct: int
    by_category: Tuple[CategorySummary, ...] = ()
    gaps_by_responsibility: Mapping[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "compliant": self.compliant,
            "non_compliant": self.non_compliant,
            "optional": self.optional,
            "overall_compliant": self.overall_compliant,
            "compliance_pct": self.compliance_pct,
            "by_category": [
                {
                    "key": c.key,
                    "label": c.label,
                    "total": c.total,
                    "compliant": c.compliant,
                    "non_compliant": c.non_compliant,
                    "optional": c.optional,
                }
                for c in self.by_category
            ],
            "gaps_by_responsibility": dict(self.gaps_by_responsibility),
        }


@dataclass(frozen=True)
class OSOComplianceReport:
    sail: str
    results: Tuple[OSOCompliance, ...]
    summary: ComplianceSummary

    @property
    def compliant_results(self) -> Tuple[OSOCompliance, ...]:
        return tuple(r for r in self.results if r.compliant)

    @property
    def gaps(self) -> Tuple[OSOCompliance, ...]:
        """Required OSOs whose declared robustness falls short."""

        return tuple(r for r in self.results if not r.compliant and not r.optional)

    @property
    def optional_results(self) -> Tuple[OSOCompliance, ...]:
        return tuple(r for r in self.results if r.optional)

    def to_dict(self) -> Dict:
        return {
            "sail": self.sail,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }


DeclaredStatus = Union[OSOSelection, Mapping, str, None]


def _declared(status: DeclaredStatus) -> Tuple[str, str]:
    """Return ``(robustness, evidence)`` from any accepted status shape."""

    if status is None:
        return "none", ""
    if isinstance(status, OSOSelection):
        return normalise_robustness(status.robustness), status.evidence or ""
    if isinstance(status, Mapping):
        return normalise_robustness(status.get("robustness")), str(status.get("evidence") or "")
    return normalise_robustness(str(status)), ""


def check_compliance(
    oso: OSODefinition,
    sail: str,
    declared_robustness: Optional[str],
    evidence: str = "",
) -> OSOCompliance:
    """Compare a declared robustness with what ``oso`` requires at ``sail``.

    An "O" requirement is always compliant.  ``gap`` counts the missing
    robustness steps and is 0 when compliant.
    """

    required = oso.required_letter(sail)
    declared = normalise_robustness(declared_robustness)
    required_level = requirement_level(required)
    declared_level = robustness_level(declared)

    return OSOCompliance(
        oso_id=oso.id,
        name=oso.name,
        category=oso.category,
        responsibility=oso.responsibility,
        required=required,
        required_label=REQUIREMENT_LABELS.get(required, "Optional"),
        declared=declared,
        compliant=declared_level >= required_level,
        gap=max(0, required_level - declared_level),
        evidence=evidence,
        guidance=oso.guidance_for(required),
    )


def summarise(results: Tuple[OSOCompliance, ...], tables: Optional[SoraTables] = None) -> ComplianceSummary:
    tables = resolve_tables(tables)
    compliant = sum(1 for r in results if r.compliant)
    gaps = [r for r in results if not r.compliant and not r.optional]
    optional = sum(1 for r in results if r.optional)
    total = len(results)

    by_category = []
    for category in tables.oso_categories:
        members = [r for r in results if r.category == category.key]
        by_category.append(
            CategorySummary(
                key=category.key,
                label=category.label,
                total=len(members),
                compliant=sum(1 for r in members if r.compliant),
                non_compliant=sum(1 for r in members if not r.compliant and not r.optional),
                optional=sum(1 for r in members if r.optional),
            )
        )

    gaps_by_responsibility: Dict[str, int] = {}
    for r in gaps:
        gaps_by_responsibility[r.responsibility] = gaps_by_responsibility.get(r.responsibility, 0) + 1

    overall = not gaps
    if overall:
        pct = 100
    else:
        pct = int(round(100.0 * compliant / total)) if total else 0

    return ComplianceSummary(
        total=total,
        compliant=compliant,
        non_compliant=len(gaps),
        optional=optional,
        overall_compliant=overall,
        compliance_pct=pct,
        by_category=tuple(by_category),
        gaps_by_responsibility=gaps_by_responsibility,
    )


def check_all(
    sail: str,
    declared: Optional[Mapping[str, DeclaredStatus]] = None,
    tables: Optional[SoraTables] = None,
) -> OSOComplianceReport:
    """Evaluate every catalog OSO at ``sail``; missing entries count as "none"."""

    tables = resolve_tables(tables)
    declared = declared or {}
    results = []
    for oso in tables.oso_definitions:
        robustness, evidence = _declared(declared.get(oso.id))
        results.append(check_compliance(oso, sail, robustness, evidence))

    results = tuple(results)
    return OSOComplianceReport(sail=sail, results=results, summary=summarise(results, tables))


def compliance_frame(report: Optional[OSOComplianceReport]) -> pd.DataFrame:
    """Tabular view of a report, one row per OSO in catalog order."""

    if report is None or not report.results:
        return pd.DataFrame(columns=COMPLIANCE_COLUMNS)
    rows = [{col: r.to_dict()[col] for col in COMPLIANCE_COLUMNS} for r in report.results]
    return pd.DataFrame(rows, columns=COMPLIANCE_COLUMNS)


def high_robustness_osos(sail: str, tables: Optional[SoraTables] = None) -> Tuple[OSODefinition, ...]:
    """OSOs that require High robustness at ``sail``."""

    tables = resolve_tables(tables)
    return tuple(o for o in tables.oso_definitions if o.required_letter(sail) == "H")
