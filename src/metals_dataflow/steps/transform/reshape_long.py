"""Step canônico: <section>.transform.reshape_long (v1).

Responsabilidades:
- consumir `<section>.data.grids`
- converter cada folha em long frame + stations frame (`domain.reshape`)
- publicar `<section>.data.long` e `<section>.data.stations`
- registrar impacto: células, valores presentes/ausentes, colunas vazias removidas

Falha com MALFORMED_TABLE quando nenhuma coluna de rótulos é identificável;
nesse caso nenhum artefato parcial é publicado.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import pandas as pd

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.reshape import merge_station_rows, wide_to_long
from metals_dataflow.steps._section import SectionStep


@dataclass
class TransformReshapeLongStep(SectionStep):
    """Wide → long, com metadados de estação separados das medições."""

    kind: StepKind = StepKind.TRANSFORM

    name = "transform.reshape_long"
    requires = ("ingest.load",)

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            grids: Dict[Any, pd.DataFrame] = self.require(ctx, "data.grids")
            source = self.require(ctx, "data.source")
            path = source.get("path")

            longs: List[pd.DataFrame] = []
            stations: List[pd.DataFrame] = []
            warnings: List[str] = []
            dropped: Dict[str, List[str]] = {}

            for sheet, grid in grids.items():
                result = wide_to_long(grid, mapping, sheet=sheet, path=path)
                longs.append(result.long)
                stations.append(result.stations)
                warnings.extend(result.warnings)
                if result.dropped_columns:
                    dropped[str(sheet) if sheet is not None else "<csv>"] = result.dropped_columns

            long = pd.concat(longs, ignore_index=True)
            st, conflicting = merge_station_rows(pd.concat(stations, ignore_index=True))
            if conflicting:
                warnings.append(f"stations with conflicting metadata across sheets, first value kept: {conflicting}")

            cells = int(len(long))
            present = int(long["value"].notna().sum())
            impact = {
                "sheets": len(grids),
                "cells": cells,
                "values_present": present,
                "values_missing": cells - present,
                "stations": int(len(st)),
                "parameters": int(long["parameter_label"].nunique()),
                "dropped_columns": dropped,
            }

            for w in warnings:
                ctx.add_warning(step_id=self.id, message=w)
            ctx.set_impact(step_id=self.id, impact=impact)
            ctx.set_artifact(self.key("data.long"), long)
            ctx.set_artifact(self.key("data.stations"), st)

            ctx.log(
                step_id=self.id,
                level="info",
                message="reshaped to long format",
                cells=cells,
                values_present=present,
                stations=impact["stations"],
            )

            return self.success(
                "reshaped to long format",
                metrics={
                    "cells": cells,
                    "values_present": present,
                    "values_missing": cells - present,
                    "stations": impact["stations"],
                },
                payload={"impact": impact},
            )
        except Exception as e:
            return self.failed(ctx, e)
