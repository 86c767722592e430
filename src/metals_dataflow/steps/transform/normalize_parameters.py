"""Step canônico: <section>.transform.normalize_parameters (v1).

Responsabilidades:
- consumir `<section>.data.long` e as tabelas de referência
- resolver rótulos no dicionário de parâmetros e converter unidades
  (`domain.normalize`)
- publicar `<section>.data.normalized`
- avisar rótulos não traduzidos (seguem com `translated=False`)
- registrar impacto: traduzidos, não traduzidos, conversões aplicadas

Nenhuma linha é removida.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.normalize import normalize_frame
from metals_dataflow.steps._section import REFERENCE_STEP_ID, SectionStep


@dataclass
class TransformNormalizeParametersStep(SectionStep):
    """Dicionário de parâmetros + conversão de unidades, orientados por tabela."""

    kind: StepKind = StepKind.TRANSFORM

    name = "transform.normalize_parameters"
    requires = ("transform.reshape_long", REFERENCE_STEP_ID)

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            long = self.require(ctx, "data.long")
            tables = ctx.get_reference()

            normalized = normalize_frame(long, tables, default_unit=mapping.default_unit)

            untranslated = sorted(normalized.loc[~normalized["translated"], "parameter_label"].astype(str).unique())
            converted = normalized.loc[normalized["conversion_factor"] != 1.0]
            conversions: Dict[str, int] = {
                f"{pid}: {src} -> {dst}": int(len(g))
                for (pid, src, dst), g in converted.groupby(["parameter_id", "source_unit", "unit"], sort=True)
            }

            warnings = []
            if untranslated:
                warnings.append(f"untranslated parameter labels (classified as No guideline): {untranslated}")
            for w in warnings:
                ctx.add_warning(step_id=self.id, message=w)

            impact = {
                "rows": int(len(normalized)),
                "parameters_translated": int(normalized.loc[normalized["translated"], "parameter_id"].nunique()),
                "labels_untranslated": untranslated,
                "conversions_applied": conversions,
            }
            ctx.set_impact(step_id=self.id, impact=impact)
            ctx.set_artifact(self.key("data.normalized"), normalized)

            ctx.log(
                step_id=self.id,
                level="info",
                message="parameters normalized",
                untranslated=len(untranslated),
                converted_rows=int(len(converted)),
            )

            return self.success(
                "parameters normalized",
                metrics={
                    "rows": impact["rows"],
                    "parameters_translated": impact["parameters_translated"],
                    "labels_untranslated": len(untranslated),
                    "converted_rows": int(len(converted)),
                },
                payload={"impact": impact},
            )
        except Exception as e:
            return self.failed(ctx, e)
