import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from sail import is_within_scope, resolve_sail, sail_description, sail_rank
from sora_tables import ARC_LEVELS, OUT_OF_SCOPE, default_tables


def test_grc_four_arc_b_is_sail_three():
    assert resolve_sail(4, "ARC-b") == "III"


def test_sail_is_monotonic_in_grc_and_arc():
    for arc in ARC_LEVELS:
        ranks = [sail_rank(resolve_sail(grc, arc)) for grc in range(1, 8)]
        assert ranks == sorted(ranks)
    for grc in range(1, 8):
        ranks = [sail_rank(resolve_sail(grc, arc)) for arc in ARC_LEVELS]
        assert ranks == sorted(ranks)


def test_out_of_scope_propagates():
    assert resolve_sail(OUT_OF_SCOPE, "ARC-a") is OUT_OF_SCOPE
    assert resolve_sail(8, "ARC-a") is OUT_OF_SCOPE
    assert not is_within_scope(8)
    assert is_within_scope(7)
    assert "certified" in sail_description(OUT_OF_SCOPE)


def test_low_grc_is_clamped_and_unknown_arc_uses_arc_b():
    assert resolve_sail(0, "ARC-a") == "I"
    assert resolve_sail(3, "ARC-x") == resolve_sail(3, "ARC-b")


def test_sail_rank_orders_out_of_scope_last():
    assert sail_rank("I") < sail_rank("VI") < sail_rank(OUT_OF_SCOPE)
    assert sail_rank("VII") == -1


def test_descriptions_come_from_tables():
    tables = default_tables()
    assert sail_description("VI", tables) == tables.sail_descriptions["VI"]
