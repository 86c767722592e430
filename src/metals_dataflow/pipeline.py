"""
Runner da avaliação de contaminação.

Monta o DAG a partir da configuração (um `reference.load` compartilhado +
uma cadeia de Steps por seção), executa o Engine, consolida as saídas das
seções bem-sucedidas e gera o Manifest v1 a partir do RunResult.

O Manifest não é criado pelo Engine: é construído aqui, depois da execução,
com os tempos de início/fim registrados pelo Engine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union

import geopandas as gpd
import pandas as pd

from metals_dataflow.core.config import deep_merge, load_config
from metals_dataflow.core.engine import Engine, RunResult
from metals_dataflow.core.exceptions import EngineConfigurationError
from metals_dataflow.core.hashing import compute_config_hash
from metals_dataflow.core.pipeline.context import RunContext, section_key
from metals_dataflow.core.pipeline.registry import StepRegistry
from metals_dataflow.core.pipeline.types import StepStatus
from metals_dataflow.core.traceability import (
    RunManifest,
    add_event,
    create_manifest,
    save_manifest,
    step_failed,
    step_finished,
    step_started,
)
from metals_dataflow.domain.spatial import spatial_index
from metals_dataflow.steps._section import REFERENCE_STEP_ID, SectionStep, section_step_id
from metals_dataflow.steps.assess.aggregate import AssessAggregateStep
from metals_dataflow.steps.assess.classify import AssessClassifyStep
from metals_dataflow.steps.assess.spatial_join import AssessSpatialJoinStep
from metals_dataflow.steps.audit.schema_mapping import AuditSchemaMappingStep
from metals_dataflow.steps.ingest.load import IngestLoadStep
from metals_dataflow.steps.reference.load import ReferenceLoadStep
from metals_dataflow.steps.transform.normalize_parameters import TransformNormalizeParametersStep
from metals_dataflow.steps.transform.reshape_long import TransformReshapeLongStep


PathLike = Union[str, Path]

# Cadeia canônica de cada seção, na ordem do DAG.
SECTION_STEPS: Tuple[Type[SectionStep], ...] = (
    IngestLoadStep,
    TransformReshapeLongStep,
    TransformNormalizeParametersStep,
    AuditSchemaMappingStep,
    AssessClassifyStep,
    AssessAggregateStep,
    AssessSpatialJoinStep,
)


@dataclass
class AssessmentRun:
    """
    Saídas consolidadas de uma run.

    Os DataFrames concatenam as seções sem falha (coluna `section`
    identifica a origem); um Step desligado na config só omite as próprias
    saídas. `map_ready` é um GeoDataFrame em EPSG:4326.

    `failed_sections` mapeia seção → resumo do erro (inclui o arquivo
    ofensor quando a falha é de leitura/esquema).
    """

    run_id: str
    ctx: RunContext
    result: RunResult
    manifest: RunManifest
    metal_assessment: pd.DataFrame
    parameter_statistics: pd.DataFrame
    station_statistics: pd.DataFrame
    station_summary: pd.DataFrame
    map_ready: pd.DataFrame
    spatial_index: Dict[str, Any] = field(default_factory=dict)
    failed_sections: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_sections and not self.result.failed()


def configured_sections(config: Dict[str, Any]) -> List[str]:
    sections = (config or {}).get("sections") or {}
    if not isinstance(sections, dict):
        raise EngineConfigurationError(
            "Config 'sections' must be a mapping",
            details={"received": type(sections).__name__},
            hint="Declare sections as `sections: {<name>: {path: ..., matrix: ...}}`",
        )
    names = sorted(sections)
    for name in names:
        if not isinstance(name, str) or not name.strip() or "." in name:
            raise EngineConfigurationError(
                f"Invalid section name: {name!r}",
                details={"section": name},
                hint="Section names must be non-empty and must not contain '.'",
            )
    return names


def build_registry(config: Dict[str, Any]) -> StepRegistry:
    """Registry da run: `reference.load` + a cadeia completa de cada seção."""
    registry = StepRegistry()
    registry.add(ReferenceLoadStep())
    for section in configured_sections(config):
        for step_cls in SECTION_STEPS:
            registry.add(step_cls(section=section))
    return registry


def _section_failure(section: str, run_result: RunResult) -> Optional[str]:
    ref = run_result.steps.get(REFERENCE_STEP_ID)
    if ref is not None and ref.status == StepStatus.FAILED:
        return f"{REFERENCE_STEP_ID}: {ref.summary}"

    for step_cls in SECTION_STEPS:
        sid = section_step_id(section, step_cls.name)
        r = run_result.steps.get(sid)
        if r is not None and r.status == StepStatus.FAILED:
            return f"{sid}: {r.summary}"
    return None


def _concat(ctx: RunContext, sections: Sequence[str], *names: str) -> pd.DataFrame:
    """Concatena, por seção, o primeiro artefato presente entre `names`."""
    frames: List[pd.DataFrame] = []
    for s in sections:
        key = next((section_key(s, n) for n in names if ctx.has_artifact(section_key(s, n))), None)
        if key is not None:
            frames.append(ctx.get_artifact(key))
    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def _spatial_index(ready: pd.DataFrame) -> Dict[str, Any]:
    if isinstance(ready, gpd.GeoDataFrame):
        return spatial_index(ready)
    return {"type": "FeatureCollection", "features": []}


def build_manifest(ctx: RunContext, run_result: RunResult, *, finished_at: Optional[datetime] = None) -> RunManifest:
    """
    Manifest v1 a partir do RunResult.

    Ordem do Event Log: run_started, (step_started, step_finished|step_failed)
    por Step na ordem de execução, run_finished. Steps SKIPPED usam o instante
    de início da run quando não há tempo registrado.
    """
    from metals_dataflow import __version__

    manifest = create_manifest(
        run_id=ctx.run_id,
        started_at=ctx.created_at,
        package_version=__version__,
        config_hash=compute_config_hash(ctx.config),
        reference_hash=ctx.meta.get("reference_hash"),
    )

    sources: Dict[str, Any] = {}
    for section in configured_sections(ctx.config):
        key = section_key(section, "data.source")
        if ctx.has_artifact(key):
            sources[section] = dict(ctx.get_artifact(key))
    manifest.inputs["sources"] = sources

    add_event(manifest, event_type="run_started", ts=ctx.created_at, payload={"steps": len(run_result.steps)})

    last_ts = ctx.created_at
    for sid, sr in run_result.steps.items():
        started, finished = run_result.timings.get(sid, (last_ts, last_ts))
        step_started(manifest, step_id=sid, kind=sr.kind.value, ts=started)
        if sr.status == StepStatus.FAILED:
            step_failed(manifest, step_id=sid, ts=finished, error=sr.payload.get("error") or sr.summary)
        else:
            step_finished(
                manifest,
                step_id=sid,
                ts=finished,
                result={
                    "status": sr.status.value,
                    "summary": sr.summary,
                    "metrics": sr.metrics,
                    "warnings": sr.warnings,
                    "artifacts": sr.artifacts,
                },
            )
        last_ts = finished

    failed = [sid for sid, sr in run_result.steps.items() if sr.status == StepStatus.FAILED]
    add_event(
        manifest,
        event_type="run_finished",
        ts=finished_at or last_ts,
        payload={"status": "failed" if failed else "success", "failed_steps": failed},
    )
    return manifest


def _resolve_config(
    config: Optional[Dict[str, Any]],
    config_path: Optional[PathLike],
    local_path: Optional[PathLike],
) -> Dict[str, Any]:
    if config is not None and (config_path is not None or local_path is not None):
        raise EngineConfigurationError(
            "Pass either a config mapping or config files, not both",
            hint="Use `config=` for in-memory runs or `config_path=`/`local_path=` for files",
        )
    if config is not None:
        # dicionário em memória: sobrepõe os defaults empacotados
        return deep_merge(load_config(), config)
    return load_config(defaults_path=config_path, local_path=local_path)


def run_assessment(
    config: Optional[Dict[str, Any]] = None,
    *,
    config_path: Optional[PathLike] = None,
    local_path: Optional[PathLike] = None,
    run_id: Optional[str] = None,
    manifest_path: Optional[PathLike] = None,
) -> AssessmentRun:
    """
    Executa a avaliação completa.

    Args:
        config: configuração em memória (mesclada sobre os defaults empacotados).
        config_path: arquivo de defaults (substitui o empacotado).
        local_path: arquivo opcional de overrides locais.
        run_id: identificador da run (uuid4 quando omitido).
        manifest_path: quando informado, o Manifest é salvo em JSON.

    Returns:
        AssessmentRun com as tabelas consolidadas, o RunResult e o Manifest.

    Raises:
        ConfigError: configuração ilegível ou inconsistente.
        EngineConfigurationError: nomes de seção inválidos.
        UnknownDependencyError, CycleDetectedError: DAG inválido.
    """
    effective = _resolve_config(config, config_path, local_path)
    sections = configured_sections(effective)

    ctx = RunContext(
        run_id=run_id or uuid.uuid4().hex,
        created_at=datetime.now(timezone.utc),
        config=effective,
    )

    registry = build_registry(effective)
    result = Engine(steps=registry.list(), ctx=ctx).run()

    failed_sections: Dict[str, str] = {}
    completed: List[str] = []
    for section in sections:
        failure = _section_failure(section, result)
        if failure is not None:
            failed_sections[section] = failure
        else:
            completed.append(section)

    for section, message in failed_sections.items():
        ctx.log(step_id=section, level="error", message="section failed", reason=message)

    manifest = build_manifest(ctx, result, finished_at=datetime.now(timezone.utc))
    if manifest_path is not None:
        save_manifest(manifest, Path(manifest_path))

    ready = _concat(ctx, completed, "data.map_ready")

    return AssessmentRun(
        run_id=ctx.run_id,
        ctx=ctx,
        result=result,
        manifest=manifest,
        metal_assessment=_concat(ctx, completed, "data.assessment"),
        parameter_statistics=_concat(ctx, completed, "data.parameter_statistics"),
        station_statistics=_concat(ctx, completed, "data.station_statistics"),
        station_summary=_concat(ctx, completed, "data.station_summary_geo", "data.station_summary"),
        map_ready=ready,
        spatial_index=_spatial_index(ready),
        failed_sections=failed_sections,
    )
