"""Filtering utilities for the OSO compliance table."""
from __future__ import annotations

from typing import Optional

import pandas as pd


def build_oso_dataframe(
    df: pd.DataFrame,
    *,
    gaps_only: bool = False,
    category: Optional[str] = None,
    responsibility: Optional[str] = None,
    sort_by_gap: bool = False,
) -> pd.DataFrame:
    """Return a filtered OSO table respecting the configured options."""

    if df is None:
        return pd.DataFrame()
    if df.empty:
        return df.iloc[0:0]

    view = df
    if gaps_only:
        if "compliant" not in df.columns:
            view = view.iloc[0:0]
        else:
            required = ~view["optional"].astype(bool) if "optional" in view.columns else True
            view = view.loc[~view["compliant"].astype(bool) & required]

    if category:
        view = view.loc[view["category"] == category]

    if responsibility:
        view = view.loc[view["responsibility"] == responsibility]

    if sort_by_gap and "gap" in view.columns:
        # stable sort keeps catalog order within equal gaps
        view = view.sort_values("gap", ascending=False, kind="mergesort")

    return view.copy()
