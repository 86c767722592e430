"""
E2E: avaliação de contaminação com várias seções.

Cenário:
- água (CSV, estações nas linhas, uma estação sem coordenadas)
- solo (CSV, parâmetros nas linhas, linhas de metadados)
- uma seção com tabela malformada (uma única coluna)

Valida:
- isolamento de falhas: a seção malformada falha sozinha, com o arquivo no erro
- tabelas consolidadas apenas com seções bem-sucedidas
- saída map-ready sem a estação sem coordenadas
- round-trip do Manifest v1 salvo em disco
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from metals_dataflow import run_assessment
from metals_dataflow.core.pipeline.types import StepStatus
from metals_dataflow.core.traceability import load_manifest


def _config(water_section, soil_section, broken_path):
    return {
        "sections": {
            "water": water_section,
            "soil": soil_section,
            "broken": {"path": str(broken_path), "matrix": "sediment"},
        }
    }


def test_multi_section_run_isolates_malformed_section(
    tmp_path: Path, water_section, soil_section, write_wide_csv
) -> None:
    broken = write_wide_csv("broken.csv", [["Notas de campo"], ["sin datos"]])
    manifest_path = tmp_path / "run" / "manifest.json"

    run = run_assessment(
        _config(water_section, soil_section, broken),
        run_id="e2e-multi",
        manifest_path=manifest_path,
    )

    # 1) falha isolada, com o arquivo ofensor
    assert not run.ok
    assert list(run.failed_sections) == ["broken"]
    assert str(broken) in run.failed_sections["broken"]
    assert run.failed_sections["broken"].startswith("broken.transform.reshape_long: ")
    assert run.result.steps["broken.assess.spatial_join"].status == StepStatus.SKIPPED
    assert run.result.steps["water.assess.spatial_join"].status == StepStatus.SUCCESS
    assert run.result.steps["soil.assess.spatial_join"].status == StepStatus.SUCCESS

    # 2) tabelas consolidadas
    assessment = run.metal_assessment
    assert set(assessment["section"]) == {"soil", "water"}
    assert set(assessment["matrix"]) == {"soil", "water"}

    summary = run.station_summary.set_index(["section", "station_id"])
    assert summary.loc[("water", "Estación A"), "category"] == "Moderate"
    assert summary.loc[("water", "Estación B"), "category"] == "Safe"
    assert summary.loc[("soil", "S1"), "category"] == "Moderate"
    assert summary.loc[("soil", "S2"), "category"] == "Safe"
    assert not bool(summary.loc[("water", "Estación B"), "mapped"])

    # 3) map-ready
    assert sorted(run.map_ready["station_id"]) == ["Estación A", "S1", "S2"]
    assert len(run.spatial_index["features"]) == 3

    # 4) Manifest
    assert manifest_path.exists()
    loaded = load_manifest(manifest_path)
    assert loaded.run == run.manifest.run
    assert loaded.steps["broken.transform.reshape_long"]["status"] == "failed"
    assert loaded.steps["broken.transform.reshape_long"]["error"]["type"] == "MALFORMED_TABLE"
    assert loaded.steps["broken.assess.classify"]["status"] == "skipped"
    assert loaded.events[-1]["payload"]["failed_steps"] == ["broken.transform.reshape_long"]
    assert set(loaded.inputs["sources"]) == {"broken", "soil", "water"}


def test_rerun_is_deterministic(water_section, soil_section, write_wide_csv) -> None:
    broken = write_wide_csv("broken.csv", [["Notas de campo"]])
    config = _config(water_section, soil_section, broken)

    first = run_assessment(config, run_id="e2e-a")
    second = run_assessment(config, run_id="e2e-b")

    pd.testing.assert_frame_equal(first.metal_assessment, second.metal_assessment)
    pd.testing.assert_frame_equal(first.station_summary, second.station_summary)
    assert first.manifest.inputs["config_hash"] == second.manifest.inputs["config_hash"]
    assert first.manifest.inputs["sources"]["water"]["sha256"] == second.manifest.inputs["sources"]["water"]["sha256"]


def test_xlsx_section_with_sheets(tmp_path: Path) -> None:
    pytest.importorskip("openpyxl")

    path = tmp_path / "ITA_2006.xlsx"
    suelo = [
        ["Parametro", "P1", "P2"],
        ["Latitud", "-21.45", "-21.46"],
        ["Longitud", "-65.71", "-65.72"],
        ["Plomo total", "210", "20"],
    ]
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([["Resumen"], ["ver hojas"]]).to_excel(writer, sheet_name="Portada", header=False, index=False)
        pd.DataFrame(suelo).to_excel(writer, sheet_name="Suelo", header=False, index=False)

    config = {
        "sections": {
            "soil": {
                "path": str(path),
                "matrix": "soil",
                "sheets": ["Suelo"],
                "parameter_column": "Parametro",
                "default_unit": "mg/kg",
                "metadata": {"latitude": "Latitud", "longitude": "Longitud"},
            }
        }
    }

    run = run_assessment(config, run_id="e2e-xlsx")

    assert run.ok
    assert set(run.metal_assessment["sheet"]) == {"Suelo"}
    summary = run.station_summary.set_index("station_id")
    # 210 / 70 = 3 → Moderate em solo (limite superior inclusivo)
    assert summary.loc["P1", "category"] == "Moderate"
    assert summary.loc["P2", "category"] == "Safe"
    assert run.manifest.inputs["sources"]["soil"]["sheets"] == ["Suelo"]
    assert len(run.map_ready) == 2
