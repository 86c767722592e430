"""Testes de `domain.normalize` (dicionário de parâmetros + conversão de unidades)."""

import numpy as np
import pandas as pd
import pytest

from metals_dataflow.domain.labels import canonical_unit
from metals_dataflow.domain.normalize import normalize_frame, resolve_label


MICRO_L = canonical_unit("ug/L")


def _long(rows):
    return pd.DataFrame(
        [
            {
                "section": "water",
                "sheet": None,
                "station_id": station,
                "parameter_label": label,
                "raw_value": raw,
                "value": value,
                "unit": unit,
            }
            for station, label, raw, value, unit in rows
        ]
    )


def test_resolve_label_with_embedded_unit(reference_tables):
    assert resolve_label("Hg (µg/L)", reference_tables) == ("Total_Mercury", True, MICRO_L, "mg/L", 0.001)


def test_label_unit_wins_over_declared_and_default(reference_tables):
    pid, translated, source_unit, unit, factor = resolve_label(
        "Pb (mg/L)", reference_tables, declared_unit="ug/L", default_unit="ug/L"
    )

    assert (pid, source_unit, unit, factor) == ("Total_Lead", "mg/L", "mg/L", 1.0)


def test_default_unit_applies_when_nothing_is_declared(reference_tables):
    assert resolve_label("Plomo", reference_tables, default_unit="mg/kg")[2:] == ("mg/kg", "mg/kg", 1.0)
    assert resolve_label("Plomo", reference_tables)[2:] == ("mg/L", "mg/L", 1.0)


def test_mercury_two_micrograms_per_litre(reference_tables):
    """'2' µg/L de mercúrio → 0.002 mg/L."""
    out = normalize_frame(_long([("A", "Hg", "2", 2.0, None)]), reference_tables, default_unit="µg/L")

    row = out.iloc[0]
    assert row["parameter_id"] == "Total_Mercury"
    assert row["unit"] == "mg/L"
    assert row["source_unit"] == MICRO_L
    assert row["value"] == pytest.approx(0.002)
    assert row["source_value"] == pytest.approx(2.0)


def test_mercury_is_not_converted_without_declared_micrograms(reference_tables):
    out = normalize_frame(_long([("A", "Mercurio", "0.002", 0.002, None)]), reference_tables)

    assert out.iloc[0]["unit"] == "mg/L"
    assert out.iloc[0]["conversion_factor"] == 1.0
    assert out.iloc[0]["value"] == pytest.approx(0.002)


def test_untranslated_labels_pass_through(reference_tables):
    out = normalize_frame(_long([("A", "Bario (ug/L)", "12", 12.0, None)]), reference_tables)

    row = out.iloc[0]
    assert row["parameter_id"] == "Bario (ug/L)"
    assert not row["translated"]
    assert row["unit"] == MICRO_L
    assert row["conversion_factor"] == 1.0
    assert row["value"] == pytest.approx(12.0)


def test_no_rows_are_dropped_and_missing_stays_missing(reference_tables):
    long = _long(
        [
            ("A", "Pb", "0.02", 0.02, None),
            ("B", "Pb", "ND", np.nan, None),
            ("A", "Turbidez", "3", 3.0, "NTU"),
        ]
    )

    out = normalize_frame(long, reference_tables)

    assert len(out) == len(long)
    assert np.isnan(out.iloc[1]["value"])
    assert out.iloc[2]["unit"] == "NTU"
    assert list(out["translated"]) == [True, True, False]


def test_normalization_is_idempotent(reference_tables):
    long = _long(
        [
            ("A", "Hg", "2", 2.0, None),
            ("A", "Pb (ug/l)", "20", 20.0, None),
            ("A", "Zn", "0.1", 0.1, None),
            ("B", "Bario", "5", 5.0, None),
            ("B", "Cd", "ND", np.nan, None),
        ]
    )

    once = normalize_frame(long, reference_tables, default_unit="µg/L")
    twice = normalize_frame(once, reference_tables, default_unit="µg/L")

    pd.testing.assert_frame_equal(once, twice)
    assert once.loc[1, "value"] == pytest.approx(0.02)


def test_declared_row_unit_is_used(reference_tables):
    out = normalize_frame(_long([("A", "Pb", "20", 20.0, "ug/L")]), reference_tables)

    assert out.iloc[0]["value"] == pytest.approx(0.02)
    assert out.iloc[0]["unit"] == "mg/L"
