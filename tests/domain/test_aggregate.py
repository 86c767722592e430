"""Estatísticas descritivas e resumo de contaminação por estação."""

import numpy as np
import pandas as pd
import pytest

from metals_dataflow.domain.aggregate import (
    SUMMARY_COLUMNS,
    describe_groups,
    parameter_statistics,
    station_summaries,
    summarize_stations,
)
from metals_dataflow.domain.types import RiskTier


def _classified(rows):
    """rows: (station, parameter_id, value, limit) → frame no formato do classificador."""
    records = []
    for station, pid, value, limit in rows:
        records.append(
            {
                "section": "water",
                "matrix": "water",
                "station_id": station,
                "parameter_id": pid,
                "unit": "mg/L",
                "value": value,
                "limit_value": limit,
                "limit_source": "WHO" if limit is not None else None,
                "ratio": value / limit if limit is not None and not np.isnan(value) else np.nan,
            }
        )
    df = pd.DataFrame(records)
    df["limit_value"] = df["limit_value"].astype(float)
    return df


@pytest.fixture
def classified():
    return _classified(
        [
            ("A", "Total_Lead", 0.02, 0.01),
            ("A", "Total_Mercury", 0.002, 0.006),
            ("B", "Total_Lead", 0.01, 0.01),
            ("B", "Bario", 5.0, None),
            ("C", "Total_Lead", 0.04, 0.01),
            ("D", "Total_Lead", np.nan, 0.01),
            ("E", "Bario", 1.0, None),
        ]
    )


def test_parameter_statistics_ignore_missing(classified):
    stats = parameter_statistics(classified).set_index("parameter_id")
    pb = stats.loc["Total_Lead"]

    assert pb["count"] == 3
    assert pb["missing"] == 1
    assert pb["mean"] == pytest.approx(0.07 / 3)
    assert pb["median"] == pytest.approx(0.02)
    assert pb["min"] == pytest.approx(0.01)
    assert pb["max"] == pytest.approx(0.04)
    assert pb["std"] == pytest.approx(pd.Series([0.02, 0.01, 0.04]).std())


def test_exceedance_columns_with_single_limit(classified):
    pb = parameter_statistics(classified).set_index("parameter_id").loc["Total_Lead"]

    assert pb["limit_value"] == pytest.approx(0.01)
    assert pb["limit_source"] == "WHO"
    assert pb["exceedance_ratio"] == pytest.approx(7 / 3)
    assert pb["max_exceedance_ratio"] == pytest.approx(4.0)
    assert pb["n_exceeding"] == 2
    assert pb["exceedance_share"] == pytest.approx(2 / 3)
    assert pb["category"] == RiskTier.MODERATE.value


def test_group_without_limit_is_no_guideline(classified):
    stats = parameter_statistics(classified).set_index("parameter_id")
    bario = stats.loc["Bario"]

    assert bario["category"] == "No guideline"
    assert np.isnan(bario["exceedance_ratio"])
    assert pd.isna(bario["n_exceeding"])
    assert str(stats["n_exceeding"].dtype) == "Int64"


def test_std_needs_two_values():
    df = _classified([("A", "Total_Lead", 0.02, 0.01)])

    stats = describe_groups(df, ["station_id"])

    assert stats["count"].iloc[0] == 1
    assert np.isnan(stats["std"].iloc[0])


def test_summarize_stations(classified):
    summary = summarize_stations(classified).set_index("station_id")

    assert list(summary.reset_index().columns) == ["station_id"] + [c for c in SUMMARY_COLUMNS if c != "station_id"]

    a = summary.loc["A"]
    assert a["n_parameters"] == 2
    assert a["avg_exceedance_ratio"] == pytest.approx((2.0 + 1 / 3) / 2)
    assert a["max_exceedance_ratio"] == pytest.approx(2.0)
    assert a["count_parameters_exceeding"] == 1
    assert a["category"] == "Moderate"

    b = summary.loc["B"]
    assert b["count_parameters_exceeding"] == 0
    assert b["category"] == "Safe"

    assert summary.loc["C", "category"] == "High"
    assert summary.loc["E", "category"] == "No guideline"


def test_station_with_only_missing_values_has_no_tier(classified):
    d = summarize_stations(classified).set_index("station_id").loc["D"]

    assert d["n_parameters"] == 0
    assert d["category"] is None
    assert np.isnan(d["avg_exceedance_ratio"])


def test_breakpoints_by_matrix(reference_tables):
    df = _classified([("S1", "Total_Lead", 175.0, 70.0)])
    df["matrix"] = "soil"
    df["section"] = "soil"

    [summary] = station_summaries(df, breakpoints=reference_tables.breakpoints)
    [water_like] = station_summaries(df)

    assert summary.category is RiskTier.MODERATE
    assert water_like.category is RiskTier.HIGH
    assert summary.section == "soil"
