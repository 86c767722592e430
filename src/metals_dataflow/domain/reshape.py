"""
Reestruturação wide → long das tabelas de medição.

As planilhas de origem chegam "largas": parâmetros nas linhas e estações
nas colunas (ou o inverso), com linhas de metadados (código, data, rio,
coordenadas) misturadas às medições. Este módulo transforma a grade bruta
de células em:

    - long frame: uma linha por célula estação × parâmetro
      (section, sheet, station_id, parameter_label, raw_value, value, unit)
    - stations frame: uma linha por estação
      (section, station_id, code, date, river, latitude, longitude)

Valores não numéricos (`ND`, `<0.01`, vazio) viram ausentes (`NaN`), nunca
zero; o texto original permanece em `raw_value`.

Funções puras: nenhuma leitura de arquivo acontece aqui.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Number
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from metals_dataflow.core.exceptions import MalformedTableError

from .labels import normalize_label
from .schema_mapping import METADATA_FIELDS, PARAMETERS_AS_ROWS, SchemaMapping
from .types import SampleMeasurement, Station


LONG_COLUMNS = ["section", "sheet", "station_id", "parameter_label", "raw_value", "value", "unit"]
STATION_COLUMNS = ["section", "station_id", "code", "date", "river", "latitude", "longitude"]

DATE_FORMAT = "%d/%m/%Y"

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+)(?:[eE][+-]?\d+)?$")


@dataclass(frozen=True)
class ReshapeResult:
    long: pd.DataFrame
    stations: pd.DataFrame
    dropped_columns: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Células
# ---------------------------------------------------------------------------

def cell_text(value: Any) -> str:
    """Texto de uma célula bruta; ausências viram string vazia."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if value is pd.NaT or value is pd.NA:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime(DATE_FORMAT)
    return str(value).strip()


def is_blank(value: Any) -> bool:
    return cell_text(value) == ""


def coerce_number(value: Any) -> float:
    """
    Converte uma célula em float; qualquer coisa não numérica vira NaN.

    Aceita números, strings com ponto ou vírgula decimal (`0,02`) e espaços
    nas bordas. `ND`, `<0.01` e texto livre viram NaN.
    """
    if isinstance(value, bool):
        return np.nan
    if isinstance(value, Number):
        f = float(value)
        return f if math.isfinite(f) else np.nan
    text = cell_text(value)
    if not text or not _NUMBER_RE.match(text):
        return np.nan
    return float(text.replace(",", "."))


def parse_date(value: Any) -> Optional[date]:
    """`DD/MM/YYYY` primeiro; depois parsing day-first do pandas."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = cell_text(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        parsed = pd.to_datetime(text, dayfirst=True, errors="coerce")
        return None if pd.isna(parsed) else parsed.date()


def parse_coordinate(value: Any) -> Optional[float]:
    number = coerce_number(value)
    return None if math.isnan(number) else number


# ---------------------------------------------------------------------------
# Grade bruta → tabela com cabeçalho
# ---------------------------------------------------------------------------

def _dedupe_labels(labels: List[str]) -> List[str]:
    seen: Dict[str, int] = {}
    used = set()
    out: List[str] = []
    for label in labels:
        count = seen.get(label, 0) + 1
        seen[label] = count
        candidate = label if count == 1 else f"{label}_{count}"
        while candidate in used:
            count += 1
            seen[label] = count
            candidate = f"{label}_{count}"
        used.add(candidate)
        out.append(candidate)
    return out


def grid_to_table(grid: pd.DataFrame) -> Tuple[pd.DataFrame, List[str]]:
    """
    Promove a primeira linha não vazia a cabeçalho.

    - linhas totalmente vazias são removidas
    - colunas cujas células de dados estão todas vazias são removidas,
      qualquer que seja o cabeçalho; as demais mantêm ordem e valores
    - cabeçalhos vazios viram `column_<n>` (posição 1-based na grade)
    - cabeçalhos repetidos viram `X`, `X_2`, `X_3`

    Returns:
        (tabela com células em texto, rótulos das colunas removidas)
    """
    text = grid.apply(lambda col: col.map(cell_text)) if not grid.empty else grid.astype(object)
    text = text.loc[~(text == "").all(axis=1)] if not text.empty else text
    if text.empty:
        return pd.DataFrame(), []

    header_raw = list(text.iloc[0])
    body = text.iloc[1:]

    header = [h if h else f"column_{pos + 1}" for pos, h in enumerate(header_raw)]
    keep: List[int] = []
    dropped: List[str] = []
    for pos in range(len(header)):
        if body.empty or (body.iloc[:, pos] == "").all():
            dropped.append(header[pos])
        else:
            keep.append(pos)

    table = body.iloc[:, keep].copy()
    table.columns = _dedupe_labels([header[pos] for pos in keep])
    return table.reset_index(drop=True), dropped


# ---------------------------------------------------------------------------
# Eixos
# ---------------------------------------------------------------------------

def _mostly_non_numeric(series: pd.Series) -> bool:
    cells = [c for c in series if c != ""]
    if not cells:
        return False
    non_numeric = sum(1 for c in cells if math.isnan(coerce_number(c)))
    return non_numeric / len(cells) > 0.5


def detect_axis_column(
    table: pd.DataFrame,
    mapping: SchemaMapping,
    *,
    path: Optional[str] = None,
) -> str:
    """
    Coluna de rótulos do eixo (parâmetros ou estações).

    Usa a coluna declarada no mapeamento; sem declaração, a primeira coluna
    cujas células não vazias são majoritariamente não numéricas.

    Raises:
        MalformedTableError: coluna declarada ausente ou nenhuma candidata.
    """
    explicit = mapping.axis_column
    if explicit:
        wanted = normalize_label(explicit)
        for col in table.columns:
            if normalize_label(col) == wanted:
                return col
        raise MalformedTableError.build(
            path=path,
            expected_shape=mapping.expected_shape,
            reason=f"declared column '{explicit}' not found in header {list(table.columns)}",
            section=mapping.section,
        )

    for col in table.columns:
        if _mostly_non_numeric(table[col]):
            return col

    raise MalformedTableError.build(
        path=path,
        expected_shape=mapping.expected_shape,
        reason="no column of text labels found",
        section=mapping.section,
    )


# ---------------------------------------------------------------------------
# Wide → long
# ---------------------------------------------------------------------------

def _station_row(section: str, station_id: str, meta: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "section": section,
        "station_id": station_id,
        "code": cell_text(meta.get("code")) or None,
        "date": parse_date(meta.get("date")),
        "river": cell_text(meta.get("river")) or None,
        "latitude": parse_coordinate(meta.get("latitude")),
        "longitude": parse_coordinate(meta.get("longitude")),
    }


def _measurement_row(section: str, sheet: Optional[str], station_id: str, label: str, raw: str) -> Dict[str, Any]:
    return {
        "section": section,
        "sheet": sheet,
        "station_id": station_id,
        "parameter_label": label,
        "raw_value": raw,
        "value": coerce_number(raw),
        "unit": None,
    }


def _frames(measurements: List[Dict[str, Any]], stations: List[Dict[str, Any]]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    long = pd.DataFrame(measurements, columns=LONG_COLUMNS)
    long["value"] = long["value"].astype(float)
    st = pd.DataFrame(stations, columns=STATION_COLUMNS)
    st["latitude"] = pd.to_numeric(st["latitude"], errors="coerce").astype(float)
    st["longitude"] = pd.to_numeric(st["longitude"], errors="coerce").astype(float)
    return long, st


def wide_to_long(
    grid: pd.DataFrame,
    mapping: SchemaMapping,
    *,
    sheet: Optional[str] = None,
    path: Optional[str] = None,
) -> ReshapeResult:
    """
    Converte a grade bruta de uma folha em long frame + stations frame.

    Toda célula estação × parâmetro vira uma linha, inclusive as ausentes:
    a contagem de valores não ausentes é preservada.

    Raises:
        MalformedTableError: quando não há eixo identificável ou a tabela
            não tem células de medição.
    """
    table, dropped = grid_to_table(grid)
    where = f"{path}" + (f" [{sheet}]" if sheet is not None else "")
    warnings: List[str] = []
    if dropped:
        warnings.append(f"{where}: dropped empty columns {dropped}")

    if table.empty or table.shape[1] < 2:
        raise MalformedTableError.build(
            path=path,
            expected_shape=mapping.expected_shape,
            reason="table has no measurement cells",
            section=mapping.section,
        )

    axis = detect_axis_column(table, mapping, path=path)
    section = mapping.section

    if mapping.orientation == PARAMETERS_AS_ROWS:
        measurements, stations = _from_parameter_rows(table, axis, mapping, sheet, warnings, where)
    else:
        measurements, stations = _from_parameter_columns(table, axis, mapping, sheet, warnings, where)

    missing_meta = sorted(
        name for name, label in mapping.metadata.items() if not _has_label(table, axis, label, mapping)
    )
    if missing_meta:
        warnings.append(f"{where}: metadata not found in table: {missing_meta}")

    long, st = _frames(measurements, stations)
    if long.empty:
        raise MalformedTableError.build(
            path=path,
            expected_shape=mapping.expected_shape,
            reason="table has no measurement cells",
            section=section,
        )
    return ReshapeResult(long=long, stations=st, dropped_columns=dropped, warnings=warnings)


def _has_label(table: pd.DataFrame, axis: str, label: str, mapping: SchemaMapping) -> bool:
    key = normalize_label(label)
    if mapping.orientation == PARAMETERS_AS_ROWS:
        return any(normalize_label(v) == key for v in table[axis])
    return any(normalize_label(c) == key for c in table.columns)


def _from_parameter_rows(
    table: pd.DataFrame,
    axis: str,
    mapping: SchemaMapping,
    sheet: Optional[str],
    warnings: List[str],
    where: str,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    station_cols = [c for c in table.columns if c != axis]
    meta: Dict[str, Dict[str, Any]] = {c: {} for c in station_cols}
    param_rows: List[Tuple[str, pd.Series]] = []
    unlabeled = 0

    for _, row in table.iterrows():
        label = row[axis]
        field_name = mapping.metadata_field_for(label) if label else None
        if field_name is not None:
            for c in station_cols:
                meta[c][field_name] = row[c]
        elif not label:
            unlabeled += 1
        else:
            param_rows.append((label, row))

    if unlabeled:
        warnings.append(f"{where}: {unlabeled} row(s) without parameter label ignored")

    raw_labels = [label for label, _ in param_rows]
    labels = _dedupe_labels(raw_labels)
    if labels != raw_labels:
        warnings.append(f"{where}: repeated parameter labels were suffixed (_2, _3, ...)")

    stations = [_station_row(mapping.section, c, meta[c]) for c in station_cols]
    measurements = [
        _measurement_row(mapping.section, sheet, c, label, row[c])
        for label, (_, row) in zip(labels, param_rows)
        for c in station_cols
    ]
    return measurements, stations


def _from_parameter_columns(
    table: pd.DataFrame,
    axis: str,
    mapping: SchemaMapping,
    sheet: Optional[str],
    warnings: List[str],
    where: str,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    meta_cols: Dict[str, str] = {}
    param_cols: List[str] = []
    for c in table.columns:
        if c == axis:
            continue
        field_name = mapping.metadata_field_for(c)
        if field_name is not None:
            meta_cols[c] = field_name
        else:
            param_cols.append(c)

    labeled = table.loc[table[axis] != ""]
    unlabeled = len(table) - len(labeled)
    if unlabeled:
        warnings.append(f"{where}: {unlabeled} row(s) without station name ignored")

    station_ids = _dedupe_labels(list(labeled[axis]))
    if len(set(labeled[axis])) != len(labeled):
        warnings.append(f"{where}: repeated station names were suffixed (_2, _3, ...)")

    stations: List[Dict[str, Any]] = []
    measurements: List[Dict[str, Any]] = []
    for station_id, (_, row) in zip(station_ids, labeled.iterrows()):
        meta = {field_name: row[c] for c, field_name in meta_cols.items()}
        stations.append(_station_row(mapping.section, station_id, meta))
        for label in param_cols:
            measurements.append(_measurement_row(mapping.section, sheet, station_id, label, row[label]))
    return measurements, stations


def merge_station_rows(stations: pd.DataFrame) -> Tuple[pd.DataFrame, List[str]]:
    """
    Une as linhas repetidas de uma estação (mesma seção em várias folhas).

    Cada coluna recebe o primeiro valor não ausente na ordem das folhas, de
    modo que coordenadas presentes em qualquer folha não se percam.

    Returns:
        (stations frame com uma linha por estação, ids com valores conflitantes)
    """
    keys = ["section", "station_id"]
    if not stations.duplicated(subset=keys).any():
        return stations.reset_index(drop=True), []

    fields = [c for c in stations.columns if c not in keys]
    grouped = stations.groupby(keys, sort=False)
    conflicting = grouped[fields].nunique(dropna=True).gt(1).any(axis=1)
    merged = grouped[fields].first().reset_index().loc[:, list(stations.columns)]
    return merged, sorted(conflicting[conflicting].index.get_level_values("station_id"))


# ---------------------------------------------------------------------------
# Long → wide e vistas tipadas
# ---------------------------------------------------------------------------

def long_to_wide(long: pd.DataFrame, *, orientation: str = PARAMETERS_AS_ROWS) -> pd.DataFrame:
    """
    Reconstrói a tabela larga de valores numéricos a partir do long frame.

    Ordem de linhas e colunas segue a primeira ocorrência no long frame.
    """
    if orientation == PARAMETERS_AS_ROWS:
        index, columns = "parameter_label", "station_id"
    else:
        index, columns = "station_id", "parameter_label"

    wide = long.pivot(index=index, columns=columns, values="value")
    wide = wide.reindex(index=pd.unique(long[index]), columns=pd.unique(long[columns]))
    wide.columns.name = None
    return wide


def _optional(value: Any) -> Any:
    if value is None:
        return None
    try:
        return None if pd.isna(value) else value
    except (TypeError, ValueError):
        return value


def measurements_from_frame(df: pd.DataFrame) -> List[SampleMeasurement]:
    label_col = "parameter_id" if "parameter_id" in df.columns else "parameter_label"
    out: List[SampleMeasurement] = []
    for row in df.to_dict(orient="records"):
        value = _optional(row.get("value"))
        out.append(
            SampleMeasurement(
                station_id=str(row["station_id"]),
                parameter_name=str(row[label_col]),
                raw_value=_optional(row.get("raw_value")),
                value=None if value is None else float(value),
                unit=_optional(row.get("unit")),
            )
        )
    return out


def stations_from_frame(df: pd.DataFrame) -> List[Station]:
    out: List[Station] = []
    for row in df.to_dict(orient="records"):
        lat = _optional(row.get("latitude"))
        lon = _optional(row.get("longitude"))
        out.append(
            Station(
                station_id=str(row["station_id"]),
                code=_optional(row.get("code")),
                date=_optional(row.get("date")),
                river=_optional(row.get("river")),
                latitude=None if lat is None else float(lat),
                longitude=None if lon is None else float(lon),
            )
        )
    return out


__all__ = [
    "LONG_COLUMNS",
    "STATION_COLUMNS",
    "METADATA_FIELDS",
    "ReshapeResult",
    "cell_text",
    "is_blank",
    "coerce_number",
    "parse_date",
    "parse_coordinate",
    "grid_to_table",
    "detect_axis_column",
    "wide_to_long",
    "merge_station_rows",
    "long_to_wide",
    "measurements_from_frame",
    "stations_from_frame",
]
