"""Containment requirement (Step #8) and adjacent area sizing."""

from __future__ import annotations

from typing import Optional

import numpy as np

from sora_tables import (
    DEFAULT_CONTAINMENT,
    OUT_OF_SCOPE,
    SAILValue,
    SoraTables,
    normalise_robustness,
    resolve_tables,
    robustness_level,
)

# Adjacent area: 3 minutes of flight at max speed, bounded to [5 km, 35 km]
ADJACENT_AREA_FLIGHT_TIME_S = 180.0
ADJACENT_AREA_MIN_M = 5000.0
ADJACENT_AREA_MAX_M = 35000.0


def required_containment(
    adjacent_population: Optional[str],
    sail: SAILValue,
    tables: Optional[SoraTables] = None,
) -> str:
    """Required containment robustness; ``"low"`` for unlisted combinations."""

    tables = resolve_tables(tables)
    if sail is OUT_OF_SCOPE or adjacent_population is None:
        return DEFAULT_CONTAINMENT
    row = tables.containment_robustness.get(adjacent_population)
    if row is None:
        return DEFAULT_CONTAINMENT
    return row.get(sail, DEFAULT_CONTAINMENT)


def is_containment_compliant(required: Optional[str], achieved: Optional[str]) -> bool:
    return robustness_level(achieved) >= robustness_level(required)


def adjacent_area_distance(max_speed_ms: float) -> float:
    """Adjacent area extent in metres for a UA flying at ``max_speed_ms``."""

    distance = float(max_speed_ms) * ADJACENT_AREA_FLIGHT_TIME_S
    if np.isnan(distance):
        return ADJACENT_AREA_MIN_M
    return float(np.clip(distance, ADJACENT_AREA_MIN_M, ADJACENT_AREA_MAX_M))


def achieved_containment(
    method: Optional[str],
    robustness: Optional[str] = None,
    tables: Optional[SoraTables] = None,
) -> str:
    """Declared robustness, or what ``method`` can achieve when none is declared."""

    tables = resolve_tables(tables)
    declared = normalise_robustness(robustness)
    if robustness is not None and declared != "none":
        return declared
    definition = tables.containment_method(method)
    if definition is None:
        return declared
    return normalise_robustness(definition.achievable_robustness)
