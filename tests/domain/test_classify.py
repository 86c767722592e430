"""
Testes de `domain.classify`.

Cobre:
- limites superiores inclusivos e breakpoints por matriz
- `No guideline` distinto de Safe
- seleção de limite (prioridade de fontes, fontes preferidas da seção)
- limites com unidade incompatível viram warning, nunca conversão implícita
"""

import numpy as np
import pandas as pd
import pytest

from metals_dataflow.domain.classify import (
    classify_frame,
    classify_value,
    exceedance_ratio,
    is_valid_limit,
    select_standard,
)
from metals_dataflow.domain.types import TIER_ORDER, BreakpointTable, RiskTier


BOLIVIA = "Bolivia Ley 1333 (Clase A)"


@pytest.mark.parametrize(
    "value, limit, expected",
    [
        (0.0, 0.01, RiskTier.SAFE),
        (0.01, 0.01, RiskTier.SAFE),
        (0.02, 0.01, RiskTier.MODERATE),
        (0.03, 0.01, RiskTier.HIGH),
        (0.049, 0.01, RiskTier.HIGH),
        (5.0, 1.0, RiskTier.HIGH),
        (0.051, 0.01, RiskTier.CRITICAL),
    ],
)
def test_classify_value_inclusive_bounds(value, limit, expected):
    assert classify_value(value, limit) is expected


@pytest.mark.parametrize("limit", [None, 0, -1.0, float("nan"), float("inf"), "abc", True])
def test_invalid_limits_mean_no_guideline(limit):
    assert not is_valid_limit(limit)
    assert classify_value(0.5, limit) is RiskTier.NO_GUIDELINE
    assert exceedance_ratio(0.5, limit) is None


def test_missing_value_with_limit_has_no_tier():
    assert classify_value(None, 0.01) is None
    assert classify_value(float("nan"), 0.01) is None
    assert exceedance_ratio(np.nan, 0.01) is None


def test_no_guideline_is_not_safe():
    assert RiskTier.NO_GUIDELINE is not RiskTier.SAFE
    assert RiskTier.NO_GUIDELINE.rank is None
    assert RiskTier.SAFE.rank == 0


def test_tiers_are_monotonic_in_value():
    limit = 0.01
    values = np.linspace(0.0, 0.1, 201)

    ranks = [classify_value(v, limit).rank for v in values]

    assert ranks == sorted(ranks)
    assert ranks[0] == 0
    assert ranks[-1] == len(TIER_ORDER) - 1


def test_matrix_breakpoints_change_the_tier(reference_tables):
    water = reference_tables.breakpoints_for("water")
    soil = reference_tables.breakpoints_for("soil")

    assert classify_value(140, 70, soil) is RiskTier.MODERATE
    assert classify_value(400, 70, water) is RiskTier.CRITICAL
    assert classify_value(400, 70, soil) is RiskTier.HIGH
    # matriz sem entrada própria usa `default`
    assert reference_tables.breakpoints_for("fish") == reference_tables.breakpoints_for("default")


def test_custom_breakpoints():
    bp = BreakpointTable(safe=1, moderate=2, high=3)

    assert classify_value(3.0, 1.0, bp) is RiskTier.HIGH
    assert classify_value(3.5, 1.0, bp) is RiskTier.CRITICAL


def test_breakpoints_must_increase():
    with pytest.raises(ValueError):
        BreakpointTable(safe=1, moderate=1, high=5)


def test_select_standard_uses_source_priority(reference_tables):
    chosen, mismatched = select_standard(reference_tables, "Total_Lead", "water", "mg/L")

    assert chosen.source == "WHO"
    assert chosen.limit_value == pytest.approx(0.01)
    assert mismatched == []


def test_select_standard_falls_through_priority(reference_tables):
    # Zinco não tem limite WHO na água
    chosen, _ = select_standard(reference_tables, "Total_Zinc", "water", "mg/L")

    assert chosen.source == BOLIVIA
    assert chosen.limit_value == pytest.approx(0.2)


def test_preferred_sources_are_restrictive(reference_tables):
    chosen, _ = select_standard(reference_tables, "Total_Lead", "water", "mg/L", preferred_sources=[BOLIVIA])
    assert chosen.limit_value == pytest.approx(0.05)

    chosen, _ = select_standard(reference_tables, "Total_Lead", "water", "mg/L", preferred_sources=["EPA"])
    assert chosen is None


def test_null_reference_limit_is_no_guideline(reference_tables):
    chosen, mismatched = select_standard(reference_tables, "Total_Mercury", "soil", "mg/kg")

    assert chosen is None
    assert mismatched == []


def test_unit_mismatch_is_reported_not_converted(reference_tables):
    chosen, mismatched = select_standard(reference_tables, "Total_Lead", "human_blood", "mg/L")

    assert chosen is None
    assert [s.source for s in mismatched] == ["CDC"]


def _normalized(rows):
    return pd.DataFrame(
        [
            {"section": "water", "station_id": sid, "parameter_id": pid, "translated": tr, "unit": unit, "value": value}
            for sid, pid, tr, unit, value in rows
        ]
    )


def test_classify_frame_columns_and_dtypes(reference_tables):
    df = _normalized(
        [
            ("A", "Total_Lead", True, "mg/L", 0.02),
            ("A", "Total_Mercury", True, "mg/L", 0.002),
            ("B", "Total_Lead", True, "mg/L", np.nan),
            ("B", "Bario", False, "mg/L", 5.0),
        ]
    )

    out, warnings = classify_frame(df, reference_tables, matrix="water")

    assert warnings == []
    assert list(out["category"]) == ["Moderate", "Safe", None, "No guideline"]
    assert out["ratio"].iloc[0] == pytest.approx(2.0)
    assert out["ratio"].iloc[1] == pytest.approx(1 / 3)
    assert np.isnan(out["ratio"].iloc[2])
    assert out["limit_value"].iloc[2] == pytest.approx(0.01)
    assert np.isnan(out["limit_value"].iloc[3])
    assert str(out["exceeds"].dtype) == "boolean"
    assert bool(out["exceeds"].iloc[0])
    assert not bool(out["exceeds"].iloc[1])
    assert out["exceeds"].isna().tolist() == [False, False, True, True]
    assert (out["matrix"] == "water").all()
    assert len(out) == len(df)


def test_classify_frame_with_preferred_source(reference_tables):
    df = _normalized([("A", "Total_Lead", True, "mg/L", 0.02)])

    out, _ = classify_frame(df, reference_tables, matrix="water", standard_sources=[BOLIVIA])

    assert out["limit_source"].iloc[0] == BOLIVIA
    assert out["category"].iloc[0] == "Safe"


def test_classify_frame_warns_on_blood_unit_mismatch(reference_tables):
    df = _normalized([("Niño 1", "Total_Lead", True, "mg/L", 0.1)])

    out, warnings = classify_frame(df, reference_tables, matrix="human_blood")

    assert out["category"].iloc[0] == "No guideline"
    assert len(warnings) == 1
    assert "unit mismatch" in warnings[0]
    assert "CDC" in warnings[0]


def test_reclassification_is_stable(reference_tables):
    df = _normalized([("A", "Total_Lead", True, "mg/L", 0.02), ("A", "Total_Zinc", True, "mg/L", 0.1)])

    once, _ = classify_frame(df, reference_tables, matrix="water")
    twice, _ = classify_frame(once, reference_tables, matrix="water")

    pd.testing.assert_frame_equal(once, twice)
