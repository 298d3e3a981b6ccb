import sys
from pathlib import Path

import pandas as pd

sys.path.append(str(Path(__file__).resolve().parents[1]))

from oso_filters import build_oso_dataframe


def make_df():
    return pd.DataFrame(
        {
            "oso_id": ["OSO-01", "OSO-02", "OSO-03", "OSO-04"],
            "category": ["technical", "technical", "human", "operating"],
            "responsibility": ["operator", "designer", "operator", "operator"],
            "compliant": [True, True, False, False],
            "optional": [False, True, False, False],
            "gap": [0, 0, 1, 3],
        }
    )


def test_gaps_only_filter():
    result = build_oso_dataframe(make_df(), gaps_only=True)
    assert list(result["oso_id"]) == ["OSO-03", "OSO-04"]


def test_category_and_responsibility_filters():
    df = make_df()
    assert list(build_oso_dataframe(df, category="technical")["oso_id"]) == ["OSO-01", "OSO-02"]
    assert list(build_oso_dataframe(df, responsibility="designer")["oso_id"]) == ["OSO-02"]


def test_sort_by_gap_is_stable():
    result = build_oso_dataframe(make_df(), sort_by_gap=True)
    assert list(result["oso_id"]) == ["OSO-04", "OSO-03", "OSO-01", "OSO-02"]


def test_filters_do_not_modify_input():
    df = make_df()
    result = build_oso_dataframe(df, gaps_only=True)
    result.loc[:, "gap"] = 99
    assert list(df["gap"]) == [0, 0, 1, 3]


def test_handles_empty_input():
    df = pd.DataFrame(columns=["oso_id", "category", "compliant", "gap"])
    assert build_oso_dataframe(df, gaps_only=True, sort_by_gap=True).empty
    assert build_oso_dataframe(None).empty
