# tests/conftest.py
"""
Fixtures compartilhados para testes do Metals DataFlow.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas
- tabelas de referência (as empacotadas, já validadas)
- contexto de execução controlado (RunContext)
- Steps dummy para testes estruturais
- escritores de planilhas largas sintéticas (CSV) sob `tmp_path`
- execução sequencial da cadeia de uma seção, sem Engine

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Steps dummy utilizam duck typing em vez de herança
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - Arquivos de entrada são sempre escritos sob `tmp_path`

Invariantes:
    - Nenhuma fixture executa o Engine
    - `run_id` e `created_at` são fixos
    - Nenhuma fixture acessa rede

Este módulo existe como infraestrutura de teste e não
como validação funcional do pipeline.
"""

import csv
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


FIXED_CREATED_AT = datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)


# =====================================================
# Config Loader fixtures
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """
    YAML de defaults semelhante ao uso real do projeto.

    Base canônica sobre a qual configurações locais são aplicadas via
    deep-merge.
    """
    return """\
engine:
  fail_fast: false
steps:
  water.ingest.load:
    enabled: true
  water.audit.schema_mapping:
    enabled: true
reference:
  path: reference.v1.yaml
sections:
  water:
    path: data/water.csv
    matrix: water
    orientation: parameters_as_columns
    station_column: Location
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """
    YAML local (override): desliga o diagnóstico e troca a fonte preferida.

    Não contém configuração completa do projeto.
    """
    return """\
steps:
  water.audit.schema_mapping:
    enabled: false
sections:
  water:
    standard_sources: [Bolivia Ley 1333 (Clase A)]
"""


# =====================================================
# Pipeline fixtures (Step + RunContext)
# =====================================================

@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima e válida, já resolvida.

    `fail_fast` explicitamente habilitado; sem seções.
    """
    return {
        "engine": {"fail_fast": True},
        "steps": {},
        "sections": {},
    }


@pytest.fixture
def dummy_ctx(dummy_config):
    """RunContext determinístico (run_id e created_at fixos, timezone UTC)."""
    from metals_dataflow.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=FIXED_CREATED_AT,
        config=dummy_config,
        meta={"source": "pytest"},
    )


@pytest.fixture
def DummyStep():
    """
    Fixture factory que fornece uma implementação mínima e duck-typed de um Step.

    A classe retornada registra um artefato `<id>.ok` e devolve SUCCESS;
    com `fail=True`, levanta RuntimeError em `run`.

    Usado por:
        - Testes de planner (ordenação, dependências)
        - Testes de engine (execução, status, transições)
    """
    from metals_dataflow.core.pipeline.types import StepKind, StepResult, StepStatus

    class _DummyStep:
        def __init__(
            self,
            step_id: str = "water.ingest.load",
            kind: StepKind = StepKind.DIAGNOSTIC,
            depends_on=None,
            fail: bool = False,
        ):
            self.id = step_id
            self.kind = kind
            self.depends_on = depends_on or []
            self.fail = fail
            self.calls = 0

        def run(self, ctx):
            self.calls += 1
            if self.fail:
                raise RuntimeError(f"{self.id} boom")
            ctx.set_artifact(f"{self.id}.ok", True)
            return StepResult(
                step_id=self.id,
                kind=self.kind,
                status=StepStatus.SUCCESS,
                summary="dummy ok",
                metrics={},
                warnings=[],
                artifacts={"ok": f"{self.id}.ok"},
                payload={"note": "dummy"},
            )

    return _DummyStep


# =====================================================
# Reference tables
# =====================================================

@pytest.fixture
def reference_raw() -> Dict[str, Any]:
    """Tabelas de referência empacotadas, na forma bruta (dict)."""
    from metals_dataflow.core.config import DEFAULT_REFERENCE_PATH
    from metals_dataflow.core.reference import load_reference

    return load_reference(path=DEFAULT_REFERENCE_PATH)


@pytest.fixture
def reference_tables(reference_raw):
    """Tabelas de referência empacotadas, validadas (`ReferenceTables`)."""
    from metals_dataflow.core.reference import build_reference_tables

    return build_reference_tables(reference_raw)


@pytest.fixture
def minimal_reference_raw() -> Dict[str, Any]:
    """Tabelas mínimas (um parâmetro, uma conversão, um limite) para testes de validação."""
    return {
        "version": "test",
        "parameters": [
            {"id": "Total_Lead", "element": "Pb", "unit": "mg/L", "aliases": ["Pb", "Plomo"]},
        ],
        "conversions": [
            {"id": "pb_ug", "parameter": "Total_Lead", "from_unit": "ug/L", "to_unit": "mg/L", "factor": 0.001},
        ],
        "standards": [
            {"id": "who_pb", "parameter": "Total_Lead", "matrix": "water", "limit": 0.01, "unit": "mg/L", "source": "WHO"},
        ],
        "breakpoints": {"default": {"safe": 1, "moderate": 2, "high": 5}},
    }


# =====================================================
# Section contexts
# =====================================================

@pytest.fixture
def make_section_ctx(reference_tables):
    """
    Factory de RunContext com seções configuradas e referência já carregada.

    Usado por testes de Steps de seção, que rodam isolados do Engine.
    """
    from metals_dataflow.core.pipeline.context import RunContext

    def _make(sections: Dict[str, Dict[str, Any]], *, with_reference: bool = True) -> RunContext:
        ctx = RunContext(
            run_id="run-test-section",
            created_at=FIXED_CREATED_AT,
            config={"engine": {"fail_fast": False}, "steps": {}, "sections": sections},
        )
        if with_reference:
            ctx.set_reference(reference_tables)
        return ctx

    return _make


# =====================================================
# Wide CSV writers
# =====================================================

def _write_rows(path: Path, rows: List[List[Any]], delimiter: str = ",") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=delimiter)
        for row in rows:
            writer.writerow(row)
    return path


WATER_ROWS = [
    ["Location", "Latitud", "Longitud", "Pb (mg/L)", "Hg (µg/L)", "Zn"],
    ["Estación A", "-21.44", "-65.72", "0.02", "2", "0.1"],
    ["Estación B", "", "", "0.005", "ND", ""],
]

SOIL_ROWS = [
    ["Parametro", "S1", "S2"],
    ["Codigo", "C-01", "C-02"],
    ["Fecha", "15/06/2006", "16/06/2006"],
    ["Latitud", "-21.50", "-21.60"],
    ["Longitud", "-65.70", "-65.80"],
    ["Plomo total", "140", "35"],
    ["Mercurio", "0,5", ""],
]


@pytest.fixture
def write_wide_csv(tmp_path):
    """Escreve uma grade larga arbitrária em `tmp_path/<name>`."""

    def _write(name: str, rows: List[List[Any]], *, delimiter: str = ",", base: Optional[Path] = None) -> Path:
        return _write_rows((base or tmp_path) / name, rows, delimiter=delimiter)

    return _write


@pytest.fixture
def water_csv(write_wide_csv) -> Path:
    """Água: estações nas linhas, parâmetros nas colunas; Estación B sem coordenadas."""
    return write_wide_csv("water.csv", WATER_ROWS)


@pytest.fixture
def soil_csv(write_wide_csv) -> Path:
    """Solo: parâmetros nas linhas, estações nas colunas, linhas de metadados."""
    return write_wide_csv("soil.csv", SOIL_ROWS)


@pytest.fixture
def water_section(water_csv) -> Dict[str, Any]:
    return {
        "path": str(water_csv),
        "matrix": "water",
        "orientation": "parameters_as_columns",
        "station_column": "Location",
        "metadata": {"latitude": "Latitud", "longitude": "Longitud"},
    }


@pytest.fixture
def soil_section(soil_csv) -> Dict[str, Any]:
    return {
        "path": str(soil_csv),
        "matrix": "soil",
        "orientation": "parameters_as_rows",
        "parameter_column": "Parametro",
        "default_unit": "mg/kg",
        "metadata": {"code": "Codigo", "date": "Fecha", "latitude": "Latitud", "longitude": "Longitud"},
    }


@pytest.fixture
def run_section_chain():
    """
    Roda a cadeia canônica de uma seção, em ordem, até o Step `until`
    (inclusive), sem Engine. Devolve {step_id: StepResult}.
    """
    from metals_dataflow.pipeline import SECTION_STEPS

    def _run(ctx, section: str, until: str) -> Dict[str, Any]:
        results: Dict[str, Any] = {}
        for step_cls in SECTION_STEPS:
            step = step_cls(section=section)
            results[step.id] = step.run(ctx)
            if step_cls.name == until:
                break
        return results

    return _run
