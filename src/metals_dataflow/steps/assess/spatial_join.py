"""Step canônico: <section>.assess.spatial_join (v1).

Responsabilidades:
- juntar `<section>.data.station_summary` às coordenadas de `<section>.data.stations`
- publicar:
    - `<section>.data.station_summary_geo` (todas as estações, com `mapped`)
    - `<section>.data.map_ready` (GeoDataFrame EPSG:4326, apenas estações com coordenadas finitas)
    - `<section>.data.spatial_index` (FeatureCollection GeoJSON em objetos Python)
- avisar estações sem coordenadas (ficam fora apenas da saída map-ready)
"""

from __future__ import annotations

from dataclasses import dataclass

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.spatial import join_coordinates, map_ready, spatial_index, unmapped_stations
from metals_dataflow.steps._section import SectionStep


@dataclass
class AssessSpatialJoinStep(SectionStep):
    """Junção do resumo por estação com coordenadas."""

    kind: StepKind = StepKind.ASSESS

    name = "assess.spatial_join"
    requires = ("assess.aggregate", "transform.reshape_long")

    def run(self, ctx: RunContext) -> StepResult:
        try:
            summary = self.require(ctx, "data.station_summary")
            stations = self.require(ctx, "data.stations")

            joined = join_coordinates(summary, stations)
            ready = map_ready(joined)
            index = spatial_index(ready)

            unmapped = unmapped_stations(joined)
            if unmapped:
                ctx.add_warning(
                    step_id=self.id,
                    message=f"stations without coordinates excluded from map output: {unmapped}",
                )

            ctx.set_artifact(self.key("data.station_summary_geo"), joined)
            ctx.set_artifact(self.key("data.map_ready"), ready)
            ctx.set_artifact(self.key("data.spatial_index"), index)

            ctx.log(
                step_id=self.id,
                level="info",
                message="station summary joined with coordinates",
                mapped=int(len(ready)),
                unmapped=len(unmapped),
            )

            return self.success(
                "station summary joined with coordinates",
                metrics={
                    "stations": int(len(joined)),
                    "mapped": int(len(ready)),
                    "unmapped": len(unmapped),
                },
            )
        except Exception as e:
            return self.failed(ctx, e)
