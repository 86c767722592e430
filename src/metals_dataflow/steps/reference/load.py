"""Step canônico: reference.load (v1).

Responsabilidades:
- carregar tabelas de referência via `reference.tables` (inline) ou `reference.path`
- validar (dicionário, conversões, limites, breakpoints)
- injetar no RunContext (`ctx.set_reference`)
- produzir payload rastreável (path + hash + versão + contagens)

Falhas de referência são sempre "decision required": o operador deve
corrigir as tabelas, nunca há autocorreção.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from metals_dataflow.core.errors import reference_invalid
from metals_dataflow.core.hashing import compute_reference_hash
from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.step import Step
from metals_dataflow.core.pipeline.types import StepKind, StepResult, StepStatus
from metals_dataflow.core.reference import (
    ReferenceTablesError,
    ReferenceValidationError,
    build_reference_tables,
    load_reference,
)


@dataclass
class ReferenceLoadStep(Step):
    """Carrega e valida as tabelas de referência da run."""

    id: str = "reference.load"
    kind: StepKind = StepKind.LOAD
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = []

    def _failed(self, ctx: RunContext, err: Dict[str, Any]) -> StepResult:
        ctx.log(step_id=self.id, level="error", message="reference.load failed", error_type=err["type"])
        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.FAILED,
            summary=err["message"],
            metrics={},
            warnings=[],
            artifacts={},
            payload={"error": err},
        )

    def run(self, ctx: RunContext) -> StepResult:
        cfg = ctx.config or {}
        ref_cfg = cfg.get("reference") or {}
        inline = ref_cfg.get("tables") if isinstance(ref_cfg, dict) else None
        path: Optional[str] = ref_cfg.get("path") if isinstance(ref_cfg, dict) else None
        source = "inline" if isinstance(inline, dict) else path

        try:
            raw = inline if isinstance(inline, dict) else load_reference(path=path)
            tables = build_reference_tables(raw)
        except ReferenceValidationError as e:
            err = reference_invalid(location=e.location, reason=e.reason).to_dict()
            err["details"]["source"] = source
            err["decision_required"] = True
            return self._failed(ctx, err)
        except ReferenceTablesError as e:
            err = reference_invalid(location=str(source), reason=str(e)).to_dict()
            err["details"]["source"] = source
            err["details"]["exception_class"] = e.__class__.__name__
            err["decision_required"] = True
            return self._failed(ctx, err)

        ref_hash = compute_reference_hash(raw)
        ctx.set_reference(tables)
        ctx.meta["reference_hash"] = ref_hash

        ctx.log(
            step_id=self.id,
            level="info",
            message="reference tables loaded",
            source=source,
            version=tables.version,
        )

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS,
            summary="reference tables loaded and validated",
            metrics={
                "parameters": len(tables.parameters),
                "aliases": len(tables.aliases),
                "conversions": len(tables.conversions),
                "standards": len(tables.standards),
                "no_guideline": len(tables.no_guideline),
            },
            warnings=[],
            artifacts={},
            payload={
                "reference": {
                    "source": source,
                    "hash": ref_hash,
                    "version": tables.version,
                    "matrices_with_breakpoints": sorted(tables.breakpoints),
                }
            },
        )
