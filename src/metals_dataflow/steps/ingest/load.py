"""Step canônico: <section>.ingest.load (v1).

Responsabilidades:
- ler a grade bruta de células do arquivo da seção (CSV ou XLSX), sem
  inferência de cabeçalho nem coerção de tipos
- XLSX: uma folha, uma lista de folhas ou todas (`sheets: all`)
- registrar origem (path + tipo + folhas) e fingerprint (sha256 + bytes)
- publicar `<section>.data.grids` ({folha: DataFrame}; CSV usa a chave None)

Config (por seção):
    sections:
      water:
        path: data/ITA_water_2006.csv
        delimiter: ";"          # opcional, CSV
        sheets: [Agua, Sedimento]  # opcional, XLSX

Limites explícitos (v1):
- NÃO detecta cabeçalho (responsabilidade de transform.reshape_long)
- NÃO converte valores
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from metals_dataflow.core.errors import source_not_found, unsupported_source_format
from metals_dataflow.core.exceptions import (
    MalformedTableError,
    SourceNotFoundError,
    UnsupportedSourceFormatError,
)
from metals_dataflow.core.hashing import sha256_file
from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.schema_mapping import SchemaMapping
from metals_dataflow.steps._section import SectionStep, section_config


CSV_SUFFIXES = (".csv", ".txt")
EXCEL_SUFFIXES = (".xlsx", ".xlsm")
SUPPORTED_SUFFIXES = list(CSV_SUFFIXES + EXCEL_SUFFIXES)

ALL_SHEETS = "all"


def _resolve_path(path_value: Any, section: str) -> Path:
    if not isinstance(path_value, str) or not path_value.strip():
        payload = source_not_found(path=None, section=section)
        raise SourceNotFoundError(
            f"Missing required config: sections.{section}.path",
            details=payload.details,
            hint=payload.hint,
        )

    p = Path(path_value).expanduser().absolute()
    if not p.is_file():
        payload = source_not_found(path=str(p), section=section)
        raise SourceNotFoundError(payload.message, details=payload.details, hint=payload.hint)
    return p


def _read_csv(path: Path, mapping: SchemaMapping, delimiter: Optional[str]) -> Dict[Optional[str], pd.DataFrame]:
    try:
        grid = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            sep=delimiter or ",",
            encoding="utf-8-sig",
            skip_blank_lines=False,
        )
    except pd.errors.EmptyDataError as e:
        raise MalformedTableError.build(
            path=str(path), expected_shape=mapping.expected_shape, reason="file is empty", section=mapping.section
        ) from e
    except pd.errors.ParserError as e:
        raise MalformedTableError.build(
            path=str(path),
            expected_shape=mapping.expected_shape,
            reason=f"rows have inconsistent field counts ({e})",
            section=mapping.section,
        ) from e
    return {None: grid}


def _select_sheets(available: Sequence[str], wanted: Union[None, str, int, List[Any]]) -> List[str]:
    if wanted is None:
        return [available[0]] if available else []
    if wanted == ALL_SHEETS:
        return list(available)
    items = wanted if isinstance(wanted, list) else [wanted]
    selected: List[str] = []
    for item in items:
        if isinstance(item, int) and not isinstance(item, bool):
            if not 0 <= item < len(available):
                raise KeyError(f"sheet index {item}")
            selected.append(available[item])
        elif item in available:
            selected.append(item)
        else:
            raise KeyError(f"sheet '{item}'")
    return selected


def _read_excel(path: Path, mapping: SchemaMapping) -> Dict[Optional[str], pd.DataFrame]:
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        try:
            names = _select_sheets(xls.sheet_names, mapping.sheets)
        except KeyError as e:
            raise MalformedTableError.build(
                path=str(path),
                expected_shape=f"workbook with sheets {mapping.sheets}",
                reason=f"{e.args[0]} not found; available: {xls.sheet_names}",
                section=mapping.section,
            ) from e
        return {name: xls.parse(name, header=None, dtype=object) for name in names}


@dataclass
class IngestLoadStep(SectionStep):
    """Carrega a grade bruta da seção e registra origem + fingerprint."""

    kind: StepKind = StepKind.LOAD

    name = "ingest.load"
    requires = ()

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            cfg = section_config(ctx, self.section)
            path = _resolve_path(cfg.get("path"), self.section)
            suffix = path.suffix.lower()

            if suffix in CSV_SUFFIXES:
                grids = _read_csv(path, mapping, cfg.get("delimiter"))
                source_type = "csv"
            elif suffix in EXCEL_SUFFIXES:
                grids = _read_excel(path, mapping)
                source_type = "xlsx"
            else:
                payload = unsupported_source_format(
                    path=str(path), suffix=suffix, supported=SUPPORTED_SUFFIXES, section=self.section
                )
                raise UnsupportedSourceFormatError(payload.message, details=payload.details, hint=payload.hint)

            sha256, size_bytes = sha256_file(path)
            source = {
                "path": str(path),
                "type": source_type,
                "sheets": [s for s in grids if s is not None],
                "sha256": sha256,
                "bytes": size_bytes,
            }

            ctx.set_artifact(self.key("data.grids"), grids)
            ctx.set_artifact(self.key("data.source"), source)

            cells = int(sum(g.size for g in grids.values()))
            ctx.log(
                step_id=self.id,
                level="info",
                message="section source loaded",
                source_type=source_type,
                source_path=str(path),
                sheets=len(grids),
                cells=cells,
            )

            return self.success(
                "section source loaded",
                metrics={"sheets": len(grids), "cells": cells, "bytes": size_bytes},
                artifacts={
                    "source_path": str(path),
                    "source_type": source_type,
                    "source_bytes": size_bytes,
                    "source_sha256": sha256,
                },
                payload={"source": source},
            )
        except Exception as e:
            return self.failed(ctx, e)
