"""
Agregações do Metal Assessment Table.

- `describe_groups`: estatísticas descritivas por grupo, ignorando ausentes,
  com razões de excedência quando o grupo compartilha um único limite
- `parameter_statistics` / `station_statistics`: atalhos de agrupamento
- `summarize_stations`: um resumo de contaminação por estação
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .classify import classify_value
from .types import DEFAULT_MATRIX_KEY, BreakpointTable, RiskTier, StationContaminationSummary


Breakpoints = Union[None, BreakpointTable, Mapping[str, BreakpointTable]]

STAT_COLUMNS = [
    "count",
    "missing",
    "mean",
    "median",
    "min",
    "max",
    "std",
    "limit_value",
    "limit_source",
    "exceedance_ratio",
    "max_exceedance_ratio",
    "n_exceeding",
    "exceedance_share",
    "category",
]

SUMMARY_COLUMNS = [
    "section",
    "station_id",
    "n_parameters",
    "avg_exceedance_ratio",
    "max_exceedance_ratio",
    "count_parameters_exceeding",
    "category",
]


def _bp_for(breakpoints: Breakpoints, group: pd.DataFrame) -> BreakpointTable:
    if breakpoints is None:
        return BreakpointTable()
    if isinstance(breakpoints, BreakpointTable):
        return breakpoints
    matrix = group["matrix"].iloc[0] if "matrix" in group.columns and len(group) else None
    if matrix in breakpoints:
        return breakpoints[matrix]
    return breakpoints.get(DEFAULT_MATRIX_KEY, BreakpointTable())


def _single_limit(group: pd.DataFrame) -> Optional[Dict[str, Any]]:
    if "limit_value" not in group.columns:
        return None
    limits = group.loc[group["limit_value"].notna(), ["limit_value", "limit_source"]]
    limits = limits.drop_duplicates()
    if len(limits) != 1:
        return None
    row = limits.iloc[0]
    return {"limit_value": float(row["limit_value"]), "limit_source": row["limit_source"]}


def _describe(group: pd.DataFrame, bp: BreakpointTable) -> Dict[str, Any]:
    values = pd.to_numeric(group["value"], errors="coerce").astype(float)
    present = values.dropna()
    count = int(present.size)

    stats: Dict[str, Any] = {
        "count": count,
        "missing": int(values.size - count),
        "mean": present.mean() if count else np.nan,
        "median": present.median() if count else np.nan,
        "min": present.min() if count else np.nan,
        "max": present.max() if count else np.nan,
        "std": present.std(ddof=1) if count > 1 else np.nan,
        "limit_value": np.nan,
        "limit_source": None,
        "exceedance_ratio": np.nan,
        "max_exceedance_ratio": np.nan,
        "n_exceeding": pd.NA,
        "exceedance_share": np.nan,
        "category": None,
    }

    has_any_limit = "limit_value" in group.columns and group["limit_value"].notna().any()
    limit = _single_limit(group)
    if limit is None:
        if not has_any_limit:
            stats["category"] = RiskTier.NO_GUIDELINE.value
        return stats

    lv = limit["limit_value"]
    n_exceeding = int((present > lv).sum())
    tier = classify_value(stats["mean"] if count else None, lv, bp)
    stats.update(
        {
            "limit_value": lv,
            "limit_source": limit["limit_source"],
            "exceedance_ratio": stats["mean"] / lv if count else np.nan,
            "max_exceedance_ratio": stats["max"] / lv if count else np.nan,
            "n_exceeding": n_exceeding,
            "exceedance_share": n_exceeding / count if count else np.nan,
            "category": tier.value if tier is not None else None,
        }
    )
    return stats


def describe_groups(df: pd.DataFrame, by: Sequence[str], *, breakpoints: Breakpoints = None) -> pd.DataFrame:
    """
    Estatísticas por grupo (`count`, `missing`, `mean`, `median`, `min`,
    `max`, `std` com ddof=1), ignorando ausentes.

    Com um único limite aplicável no grupo, adiciona `limit_value`,
    `limit_source`, `exceedance_ratio` (média/limite), `max_exceedance_ratio`
    (máximo/limite), `n_exceeding`, `exceedance_share` e `category` (tier da
    média). Grupos sem limite algum recebem `No guideline`.
    """
    by = list(by)
    rows: List[Dict[str, Any]] = []
    for keys, group in df.groupby(by, dropna=False, sort=False):
        keys = keys if isinstance(keys, tuple) else (keys,)
        row = dict(zip(by, keys))
        row.update(_describe(group, _bp_for(breakpoints, group)))
        rows.append(row)

    out = pd.DataFrame(rows, columns=by + STAT_COLUMNS)
    out["n_exceeding"] = out["n_exceeding"].astype("Int64")
    return out


def parameter_statistics(df: pd.DataFrame, *, breakpoints: Breakpoints = None) -> pd.DataFrame:
    return describe_groups(df, ["section", "matrix", "parameter_id", "unit"], breakpoints=breakpoints)


def station_statistics(df: pd.DataFrame, *, breakpoints: Breakpoints = None) -> pd.DataFrame:
    return describe_groups(df, ["section", "station_id", "parameter_id", "unit"], breakpoints=breakpoints)


def _summarize(section: str, station_id: str, group: pd.DataFrame, bp: BreakpointTable) -> StationContaminationSummary:
    measured = group.loc[group["value"].notna()]
    ratios = group["ratio"].dropna() if "ratio" in group.columns else pd.Series(dtype=float)
    exceeding = group.loc[group["ratio"] > 1, "parameter_id"] if len(ratios) else pd.Series(dtype=object)

    has_limit = "limit_value" in group.columns and group["limit_value"].notna().any()
    if not has_limit:
        category: Optional[RiskTier] = RiskTier.NO_GUIDELINE
    elif ratios.empty:
        category = None
    else:
        # a razão já é relativa ao limite: limite 1
        category = classify_value(float(ratios.max()), 1.0, bp)

    return StationContaminationSummary(
        section=section,
        station_id=station_id,
        n_parameters=int(measured["parameter_id"].nunique()),
        avg_exceedance_ratio=float(ratios.mean()) if len(ratios) else None,
        max_exceedance_ratio=float(ratios.max()) if len(ratios) else None,
        count_parameters_exceeding=int(exceeding.nunique()),
        category=category,
    )


def station_summaries(df: pd.DataFrame, *, breakpoints: Breakpoints = None) -> List[StationContaminationSummary]:
    """Um `StationContaminationSummary` por (section, station_id), na ordem dos grupos."""
    out: List[StationContaminationSummary] = []
    for (section, station_id), group in df.groupby(["section", "station_id"], sort=False):
        out.append(_summarize(section, station_id, group, _bp_for(breakpoints, group)))
    return out


def summarize_stations(df: pd.DataFrame, *, breakpoints: Breakpoints = None) -> pd.DataFrame:
    """Versão tabular de `station_summaries` (categoria como texto)."""
    rows = [
        {
            "section": s.section,
            "station_id": s.station_id,
            "n_parameters": s.n_parameters,
            "avg_exceedance_ratio": s.avg_exceedance_ratio,
            "max_exceedance_ratio": s.max_exceedance_ratio,
            "count_parameters_exceeding": s.count_parameters_exceeding,
            "category": s.category.value if s.category is not None else None,
        }
        for s in station_summaries(df, breakpoints=breakpoints)
    ]
    out = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
    out["avg_exceedance_ratio"] = out["avg_exceedance_ratio"].astype(float)
    out["max_exceedance_ratio"] = out["max_exceedance_ratio"].astype(float)
    return out
