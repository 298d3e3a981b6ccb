"""Structured warnings returned alongside assessment results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

CONFLICTING_MITIGATIONS = "conflicting_mitigations"
UNSUPPORTED_TIER = "unsupported_tier"
UNKNOWN_KEY = "unknown_key"
TMPR_ROBUSTNESS_INSUFFICIENT = "tmpr_robustness_insufficient"


@dataclass(frozen=True)
class AssessmentWarning:
    """A resolved input problem that did not stop the calculation."""

    code: str
    subject: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "subject": self.subject, "message": self.message}


def warnings_with_code(warnings: Iterable[AssessmentWarning], code: str) -> List[AssessmentWarning]:
    return [w for w in warnings if w.code == code]
