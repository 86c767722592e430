"""Base dos Steps escopados por seção.

Cada seção configurada (`sections.<nome>`) ganha sua própria cadeia de
Steps, com ids prefixados pelo nome da seção (ex.: `water.ingest.load`).
Artefatos seguem o mesmo prefixo (`water.data.long`), então seções nunca
leem dados umas das outras.

Padrão de falha (comum a todos os Steps): exceções viram StepResult FAILED
com `payload["error"]` estruturado; nada é publicado no RunContext antes do
cálculo completo.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from metals_dataflow.core.errors import error_from_exception
from metals_dataflow.core.exceptions import ArtifactNotFoundError
from metals_dataflow.core.pipeline.context import RunContext, section_key
from metals_dataflow.core.pipeline.types import StepKind, StepResult, StepStatus
from metals_dataflow.domain.schema_mapping import SchemaMapping


REFERENCE_STEP_ID = "reference.load"


def section_step_id(section: str, name: str) -> str:
    return f"{section}.{name}"


def section_config(ctx: RunContext, section: str) -> Dict[str, Any]:
    sections = (ctx.config or {}).get("sections") or {}
    cfg = sections.get(section) if isinstance(sections, dict) else None
    return cfg if isinstance(cfg, dict) else {}


@dataclass
class SectionStep:
    """
    Step de uma seção.

    Subclasses declaram `name` (sufixo do id) e `requires` (nomes de Steps
    irmãos, na mesma seção, ou ids globais como `reference.load`).
    """

    section: str = ""
    id: str = ""
    kind: StepKind = StepKind.TRANSFORM
    depends_on: List[str] = None  # type: ignore[assignment]

    name: ClassVar[str] = ""
    requires: ClassVar[Tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        if not self.section:
            raise ValueError(f"{type(self).__name__} requires a section name")
        if not self.id:
            self.id = section_step_id(self.section, self.name)
        if self.depends_on is None:
            self.depends_on = [
                dep if dep == REFERENCE_STEP_ID else section_step_id(self.section, dep)
                for dep in self.requires
            ]

    # -----------------------------
    # Helpers
    # -----------------------------
    def key(self, name: str) -> str:
        return section_key(self.section, name)

    def mapping(self, ctx: RunContext) -> SchemaMapping:
        return SchemaMapping.from_config(self.section, section_config(ctx, self.section))

    def require(self, ctx: RunContext, name: str) -> Any:
        key = self.key(name)
        if not ctx.has_artifact(key):
            raise ArtifactNotFoundError.build(key=key, required_by=self.id)
        return ctx.get_artifact(key)

    def success(
        self,
        summary: str,
        *,
        metrics: Optional[Dict[str, Any]] = None,
        warnings: Optional[List[str]] = None,
        artifacts: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> StepResult:
        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS,
            summary=summary,
            metrics=dict(metrics or {}),
            warnings=list(warnings or []),
            artifacts=dict(artifacts or {}),
            payload=dict(payload or {}),
        )

    def failed(self, ctx: RunContext, exc: Exception) -> StepResult:
        err = error_from_exception(exc, step=self.id)
        ctx.log(
            step_id=self.id,
            level="error",
            message=f"{self.id} failed",
            error_type=err.type,
            error_message=err.message,
        )
        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.FAILED,
            summary=err.message,
            metrics={},
            warnings=[],
            artifacts={},
            payload={"error": err.to_dict()},
        )
