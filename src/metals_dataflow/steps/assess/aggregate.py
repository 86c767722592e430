"""Step canônico: <section>.assess.aggregate (v1).

Responsabilidades:
- consumir `<section>.data.assessment`
- publicar:
    - `<section>.data.parameter_statistics`
    - `<section>.data.station_statistics`
    - `<section>.data.station_summary` (um StationContaminationSummary por estação)
"""

from __future__ import annotations

from dataclasses import dataclass

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.aggregate import parameter_statistics, station_statistics, summarize_stations
from metals_dataflow.steps._section import SectionStep


@dataclass
class AssessAggregateStep(SectionStep):
    """Estatísticas por parâmetro e por estação, e resumo de contaminação por estação."""

    kind: StepKind = StepKind.ASSESS

    name = "assess.aggregate"
    requires = ("assess.classify",)

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            assessment = self.require(ctx, "data.assessment")
            bp = ctx.get_reference().breakpoints_for(mapping.matrix)

            params = parameter_statistics(assessment, breakpoints=bp)
            stations = station_statistics(assessment, breakpoints=bp)
            summary = summarize_stations(assessment, breakpoints=bp)

            ctx.set_artifact(self.key("data.parameter_statistics"), params)
            ctx.set_artifact(self.key("data.station_statistics"), stations)
            ctx.set_artifact(self.key("data.station_summary"), summary)

            exceeding = int((summary["count_parameters_exceeding"] > 0).sum())
            ctx.log(
                step_id=self.id,
                level="info",
                message="assessment aggregated",
                stations=int(len(summary)),
                stations_exceeding=exceeding,
            )

            return self.success(
                "assessment aggregated",
                metrics={
                    "parameter_groups": int(len(params)),
                    "station_groups": int(len(stations)),
                    "stations": int(len(summary)),
                    "stations_exceeding": exceeding,
                },
            )
        except Exception as e:
            return self.failed(ctx, e)
