"""SAIL determination from final GRC and residual ARC (Table 7)."""

from __future__ import annotations

from typing import Optional

from air_risk import normalise_arc
from sora_tables import (
    MAX_SORA_GRC,
    MIN_FINAL_GRC,
    OUT_OF_SCOPE,
    SAIL_ORDER,
    GRCValue,
    SAILValue,
    SoraTables,
    resolve_tables,
)


def is_within_scope(final_grc: GRCValue) -> bool:
    """True when ``final_grc`` can be handled by SORA (not certified category)."""

    return final_grc is not OUT_OF_SCOPE and final_grc is not None and final_grc <= MAX_SORA_GRC


def resolve_sail(
    final_grc: GRCValue,
    residual_arc: Optional[str],
    tables: Optional[SoraTables] = None,
) -> SAILValue:
    """Return the SAIL for a (final GRC, residual ARC) cell or ``OUT_OF_SCOPE``."""

    tables = resolve_tables(tables)
    if not is_within_scope(final_grc):
        return OUT_OF_SCOPE

    grc = int(min(MAX_SORA_GRC, max(MIN_FINAL_GRC, final_grc)))
    row = tables.sail_matrix.get(grc)
    if row is None:
        return OUT_OF_SCOPE
    sail = row.get(normalise_arc(residual_arc))
    return OUT_OF_SCOPE if sail is None else sail


def sail_description(sail: SAILValue, tables: Optional[SoraTables] = None) -> str:
    tables = resolve_tables(tables)
    if sail is OUT_OF_SCOPE:
        return "Outside SORA scope - certified category required"
    return tables.sail_descriptions.get(sail, "")


def sail_rank(sail: SAILValue) -> int:
    """Ordering key: I..VI map to 0..5, out of scope ranks above all."""

    if sail is OUT_OF_SCOPE:
        return len(SAIL_ORDER)
    return SAIL_ORDER.get(sail, -1)
