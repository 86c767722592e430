"""
Engine de execução do pipeline.

Compatibilidade com StepResult frozen:
- O Engine **não** muta instâncias de StepResult.
- Todo enriquecimento (warnings/impact/payload_meta) cria uma nova
  instância via `dataclasses.replace`.

Rastreabilidade:
- merge de warnings registrados no RunContext
- incorporação de `impact` (quando presente no RunContext) no payload
- metadados leves do payload (bytes + sha256) em artifacts

Guardrails:
- exceções viram `DataflowErrorPayload` (serializável, sem stack trace)
- o erro vai em `StepResult.payload["error"]`
- dependentes de Steps falhos são marcados SKIPPED
- `engine.fail_fast` interrompe a run na primeira falha (padrão: False,
  para que uma seção inválida não derrube as demais)
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from metals_dataflow.core.errors import (
    DataflowErrorPayload,
    engine_configuration_error,
    error_from_exception,
)
from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.step import Step
from metals_dataflow.core.pipeline.types import StepKind, StepResult, StepStatus

from .planner import plan_execution


SKIPPED_BY_CONFIG = "skipped by config"
SKIPPED_FAILED_DEPENDENCY = "skipped due to failed dependency"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _blocks(dep_result: Optional[StepResult]) -> bool:
    # a falha propaga por toda a cadeia da seção; "skipped by config" não bloqueia
    if dep_result is None:
        return False
    if dep_result.status == StepStatus.FAILED:
        return True
    return dep_result.status == StepStatus.SKIPPED and dep_result.summary == SKIPPED_FAILED_DEPENDENCY


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de uma execução (um StepResult por step_id, em ordem de execução)."""

    steps: Dict[str, StepResult] = field(default_factory=dict)
    timings: Dict[str, Tuple[datetime, datetime]] = field(default_factory=dict)

    def failed(self) -> List[StepResult]:
        return [r for r in self.steps.values() if r.status == StepStatus.FAILED]


class Engine:
    """Planner + executor."""

    def __init__(self, *, steps: Sequence[Step], ctx: RunContext):
        self.steps: List[Step] = list(steps)
        self.ctx: RunContext = ctx

    def _is_enabled(self, step_id: str) -> bool:
        steps_cfg = (self.ctx.config or {}).get("steps", {}) or {}
        step_cfg = steps_cfg.get(step_id, {}) or {}
        return bool(step_cfg.get("enabled", True))

    def _fail_fast(self) -> bool:
        engine_cfg = (self.ctx.config or {}).get("engine", {}) or {}
        return bool(engine_cfg.get("fail_fast", False))

    def _ctx_warnings_for(self, step_id: str) -> List[str]:
        return list(self.ctx.warnings.get(step_id, []) or [])

    def _ctx_impact_for(self, step_id: str) -> Optional[Any]:
        return self.ctx.impacts.get(step_id)

    def _payload_meta(self, payload: Any) -> Dict[str, Any]:
        raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str).encode("utf-8")
        return {
            "payload_bytes": len(raw),
            "payload_sha256": hashlib.sha256(raw).hexdigest(),
        }

    def _enrich_step_result(self, *, step_id: str, step: Step, result: StepResult) -> StepResult:
        kind = result.kind or getattr(step, "kind", StepKind.DIAGNOSTIC)

        merged_w: List[str] = []
        seen = set()
        for msg in list(result.warnings or []) + self._ctx_warnings_for(step_id):
            if msg not in seen:
                merged_w.append(msg)
                seen.add(msg)

        payload = dict(result.payload or {})
        impact = self._ctx_impact_for(step_id)
        if impact is not None and "impact" not in payload:
            payload["impact"] = impact

        artifacts = dict(result.artifacts or {})
        artifacts.setdefault("payload_meta", self._payload_meta(payload))

        return replace(
            result,
            step_id=step_id,
            kind=kind,
            warnings=merged_w,
            payload=payload,
            artifacts=artifacts,
        )

    def _mk_result(
        self,
        *,
        step: Step,
        status: StepStatus,
        summary: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> StepResult:
        r = StepResult(
            step_id=step.id,
            kind=getattr(step, "kind", StepKind.DIAGNOSTIC) or StepKind.DIAGNOSTIC,
            status=status,
            summary=summary,
            payload=dict(payload or {}),
        )
        return self._enrich_step_result(step_id=step.id, step=step, result=r)

    def _failed(self, step: Step, error: DataflowErrorPayload) -> StepResult:
        self.ctx.log(
            step_id=step.id,
            level="error",
            message=error.message,
            error_type=error.type,
        )
        return self._mk_result(
            step=step,
            status=StepStatus.FAILED,
            summary=error.message,
            payload={"error": error.to_dict()},
        )

    def run(self) -> RunResult:
        ordered = plan_execution(self.steps)

        results: Dict[str, StepResult] = {}
        timings: Dict[str, Tuple[datetime, datetime]] = {}
        for step in ordered:
            sid = step.id
            started = _now()

            if not self._is_enabled(sid):
                results[sid] = self._mk_result(step=step, status=StepStatus.SKIPPED, summary=SKIPPED_BY_CONFIG)
                continue

            deps = list(getattr(step, "depends_on", []) or [])
            if any(_blocks(results.get(d)) for d in deps):
                results[sid] = self._mk_result(
                    step=step,
                    status=StepStatus.SKIPPED,
                    summary=SKIPPED_FAILED_DEPENDENCY,
                )
                continue

            try:
                step_result = step.run(self.ctx)
            except Exception as e:
                results[sid] = self._failed(step, error_from_exception(e, step=sid))
                timings[sid] = (started, _now())
                if self._fail_fast():
                    break
                continue

            if not isinstance(step_result, StepResult):
                results[sid] = self._failed(
                    step,
                    engine_configuration_error(
                        message="Step returned an invalid result type",
                        details={
                            "step_id": sid,
                            "expected": "StepResult",
                            "received": type(step_result).__name__,
                        },
                        hint="Ajuste o Step para retornar StepResult",
                    ),
                )
            else:
                results[sid] = self._enrich_step_result(step_id=sid, step=step, result=step_result)
            timings[sid] = (started, _now())

            if results[sid].status == StepStatus.FAILED and self._fail_fast():
                break

        return RunResult(steps=results, timings=timings)
