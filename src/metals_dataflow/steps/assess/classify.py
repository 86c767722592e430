"""Step canônico: <section>.assess.classify (v1).

Responsabilidades:
- consumir `<section>.data.normalized`
- escolher o limite aplicável de cada medição e calcular razão, tier e
  excedência (`domain.classify`)
- publicar `<section>.data.assessment` (Metal Assessment Table)
- avisar limites descartados por unidade incompatível

Métricas: contagem por tier, medições sem limite, excedências.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.classify import classify_frame
from metals_dataflow.domain.types import TIER_ORDER, RiskTier
from metals_dataflow.steps._section import SectionStep


@dataclass
class AssessClassifyStep(SectionStep):
    """Classificação de cada medição contra o limite regulatório da matriz."""

    kind: StepKind = StepKind.ASSESS

    name = "assess.classify"
    requires = ("transform.normalize_parameters",)

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            normalized = self.require(ctx, "data.normalized")
            tables = ctx.get_reference()

            assessment, warnings = classify_frame(
                normalized,
                tables,
                matrix=mapping.matrix,
                standard_sources=mapping.standard_sources,
            )
            for w in warnings:
                ctx.add_warning(step_id=self.id, message=w)

            counts = assessment["category"].value_counts(dropna=True)
            by_tier: Dict[str, int] = {
                tier.value: int(counts.get(tier.value, 0)) for tier in TIER_ORDER + (RiskTier.NO_GUIDELINE,)
            }
            unclassified = int(assessment["category"].isna().sum())
            exceedances = int(assessment["exceeds"].fillna(False).sum())

            ctx.set_artifact(self.key("data.assessment"), assessment)
            ctx.log(
                step_id=self.id,
                level="info",
                message="measurements classified",
                matrix=mapping.matrix,
                exceedances=exceedances,
            )

            return self.success(
                "measurements classified",
                metrics={
                    "rows": int(len(assessment)),
                    "exceedances": exceedances,
                    "missing_values": unclassified,
                    **{f"tier.{k}": v for k, v in by_tier.items()},
                },
                payload={"matrix": mapping.matrix, "tiers": by_tier},
            )
        except Exception as e:
            return self.failed(ctx, e)
