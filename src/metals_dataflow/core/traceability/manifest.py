"""
Manifest v1: rastreabilidade de uma run de avaliação.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run_id, started_at, versão do pacote)
    - hashes das entradas semânticas (configuração efetiva e tabelas de referência)
    - estado incremental dos Steps
    - Event Log ordenado de eventos explícitos

Princípios:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem de chamada
    - UTC é o timezone canônico de todos os timestamps
    - O Manifest é serializável em JSON e reconstruível (round-trip)

Limites explícitos:
    - Não executa pipeline
    - Não decide políticas de execução (fail-fast, skip)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    # timestamps naive são assumidos como UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class RunManifest:
    """
    Estrutura canônica do Manifest.

    Campos:
        - run: run_id, started_at, package_version
        - inputs: config_hash, reference_hash, e as fontes lidas por seção
        - steps: estado de cada Step, indexado por step_id
        - events: Event Log ordenado
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    steps: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "steps": {k: dict(v) for k, v in self.steps.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            steps={k: dict(v) for k, v in (data.get("steps", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    package_version: str,
    config_hash: str,
    reference_hash: Optional[str],
) -> RunManifest:
    """
    Cria o Manifest no início de uma run.

    O Event Log inicia vazio: esta função não registra `run_started`.
    """
    started_at = _ensure_tzaware_utc(started_at)
    return RunManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "package_version": package_version,
        },
        inputs={
            "config_hash": config_hash,
            "reference_hash": reference_hash,
        },
        steps={},
        events=[],
    )


def _get_manifest(manifest: Union[RunManifest, Dict[str, Any]]) -> Tuple[RunManifest, bool]:
    if isinstance(manifest, RunManifest):
        return manifest, False
    return RunManifest.from_dict(manifest), True


def _write_back(manifest: Union[RunManifest, Dict[str, Any]], m: RunManifest, is_dict: bool) -> None:
    if is_dict:
        manifest.clear()  # type: ignore[union-attr]
        manifest.update(m.to_dict())  # type: ignore[union-attr]


def add_event(
    manifest: Union[RunManifest, Dict[str, Any]],
    *,
    event_type: str,
    ts: datetime,
    step_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Anexa um evento ao Event Log (aceita o Manifest ou sua forma dict)."""
    m, is_dict = _get_manifest(manifest)
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if step_id is not None:
        ev["step_id"] = step_id
    if payload is not None:
        ev["payload"] = payload
    m.events.append(ev)
    _write_back(manifest, m, is_dict)


def step_started(
    manifest: Union[RunManifest, Dict[str, Any]],
    *,
    step_id: str,
    kind: str,
    ts: datetime,
) -> None:
    m, is_dict = _get_manifest(manifest)
    m.steps.setdefault(step_id, {})
    m.steps[step_id].update(
        {
            "step_id": step_id,
            "kind": kind,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(m, event_type="step_started", ts=ts, step_id=step_id, payload={"kind": kind})
    _write_back(manifest, m, is_dict)


def step_finished(
    manifest: Union[RunManifest, Dict[str, Any]],
    *,
    step_id: str,
    ts: datetime,
    result: Dict[str, Any],
) -> None:
    """Registra o término de um Step (status `success` ou `skipped`)."""
    ts = _ensure_tzaware_utc(ts)
    m, is_dict = _get_manifest(manifest)
    s = m.steps.setdefault(step_id, {"step_id": step_id})

    started_iso = s.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts

    status = result.get("status", "success")
    s.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "metrics": result.get("metrics", {}) or {},
            "warnings": result.get("warnings", []) or [],
            "artifacts": result.get("artifacts", {}) or {},
        }
    )
    add_event(
        m,
        event_type="step_finished",
        ts=ts,
        step_id=step_id,
        payload={"status": status, "duration_ms": s["duration_ms"]},
    )
    _write_back(manifest, m, is_dict)


def step_failed(
    manifest: Union[RunManifest, Dict[str, Any]],
    *,
    step_id: str,
    ts: datetime,
    error: Union[str, Dict[str, Any]],
) -> None:
    m, is_dict = _get_manifest(manifest)
    s = m.steps.setdefault(step_id, {"step_id": step_id})
    s.update(
        {
            "status": "failed",
            "finished_at": _iso(ts),
            "error": error,
        }
    )
    add_event(m, event_type="step_failed", ts=ts, step_id=step_id, payload={"error": error})
    _write_back(manifest, m, is_dict)


def save_manifest(manifest: Union[RunManifest, Dict[str, Any]], path: Path) -> None:
    """Persiste o Manifest em JSON determinístico (chaves ordenadas)."""
    data = manifest.to_dict() if isinstance(manifest, RunManifest) else manifest
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> RunManifest:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return RunManifest.from_dict(data)
