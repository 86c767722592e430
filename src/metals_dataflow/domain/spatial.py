"""
Junção espacial dos resumos por estação com as coordenadas.

Estações sem coordenadas continuam no resumo tabular; apenas a saída
"map-ready" (GeoDataFrame de pontos em EPSG:4326) as exclui.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict, List

import geopandas as gpd
import numpy as np
import pandas as pd


CRS = "EPSG:4326"

JOIN_KEYS = ["section", "station_id"]
COORDINATE_COLUMNS = ["code", "date", "river", "latitude", "longitude"]


def _finite(series: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(series, errors="coerce").astype(float)
    return pd.Series(np.isfinite(numeric.to_numpy()), index=series.index)


def join_coordinates(summary: pd.DataFrame, stations: pd.DataFrame) -> pd.DataFrame:
    """
    Left join em (section, station_id). Nenhuma linha do resumo é removida.

    Adiciona `code, date, river, latitude, longitude, mapped`.
    """
    right = stations.loc[:, JOIN_KEYS + [c for c in COORDINATE_COLUMNS if c in stations.columns]]
    right = right.drop_duplicates(subset=JOIN_KEYS, keep="first")
    left = summary.drop(columns=[c for c in COORDINATE_COLUMNS + ["mapped"] if c in summary.columns])

    joined = left.merge(right, on=JOIN_KEYS, how="left", validate="many_to_one")
    for col in COORDINATE_COLUMNS:
        if col not in joined.columns:
            joined[col] = None
    joined["latitude"] = pd.to_numeric(joined["latitude"], errors="coerce").astype(float)
    joined["longitude"] = pd.to_numeric(joined["longitude"], errors="coerce").astype(float)
    joined["mapped"] = _finite(joined["latitude"]) & _finite(joined["longitude"])
    return joined


def map_ready(joined: pd.DataFrame) -> gpd.GeoDataFrame:
    """
    Apenas as linhas com latitude e longitude presentes e finitas, como
    pontos WGS84 (`EPSG:4326`) em um GeoDataFrame.
    """
    if "mapped" in joined.columns:
        mask = joined["mapped"].astype(bool)
    else:
        mask = _finite(joined["latitude"]) & _finite(joined["longitude"])
    ready = joined.loc[mask].reset_index(drop=True)
    return gpd.GeoDataFrame(
        ready,
        geometry=gpd.points_from_xy(ready["longitude"], ready["latitude"]),
        crs=CRS,
    )


def unmapped_stations(joined: pd.DataFrame) -> List[str]:
    rows = joined.loc[~joined["mapped"].astype(bool), JOIN_KEYS]
    return [f"{section}/{station_id}" for section, station_id in rows.itertuples(index=False)]


def _plain(value: Any) -> Any:
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def spatial_index(ready: gpd.GeoDataFrame) -> Dict[str, Any]:
    """
    FeatureCollection (GeoJSON, objetos Python puros) de um GeoDataFrame map-ready.

    Geometria `Point` em [longitude, latitude]; demais colunas em `properties`.
    `bbox` traz a extensão total quando há ao menos uma estação.
    """
    props = ready.drop(columns=["latitude", "longitude", "mapped"], errors="ignore")
    features: List[Dict[str, Any]] = []
    for feature in props.iterfeatures(na="null", drop_id=True):
        lon, lat = feature["geometry"]["coordinates"]
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [float(lon), float(lat)]},
                "properties": {k: _plain(v) for k, v in feature["properties"].items()},
            }
        )
    index: Dict[str, Any] = {"type": "FeatureCollection", "features": features}
    if features:
        index["bbox"] = [float(v) for v in ready.total_bounds]
    return index
