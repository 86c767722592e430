"""
Normalização de parâmetros e unidades.

Para cada linha do long frame:

    1. o rótulo é resolvido no dicionário (alias exato, depois alias sem a
       unidade entre parênteses/colchetes); sem correspondência, o rótulo
       segue inalterado com `translated=False`
    2. a unidade de origem é a primeira disponível entre: unidade no rótulo,
       unidade declarada na linha, `default_unit` da seção, unidade do
       dicionário
    3. a conversão vem de `ReferenceTables.conversions` (regra do parâmetro
       vence a genérica); nenhuma conversão é aplicada sem unidade de origem
       declarada que a exija

Rótulos não traduzidos não são convertidos: a unidade de origem é mantida.

A função é idempotente: o valor anterior à conversão fica em `source_value`
e é a base de qualquer reaplicação.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import pandas as pd

from .labels import canonical_unit, split_label_unit
from .types import ReferenceTables


NORMALIZED_COLUMNS = ["parameter_id", "translated", "unit", "source_unit", "conversion_factor", "source_value"]

Resolution = Tuple[str, bool, Optional[str], Optional[str], float]


def resolve_label(
    label: Any,
    tables: ReferenceTables,
    *,
    declared_unit: Optional[str] = None,
    default_unit: Optional[str] = None,
) -> Resolution:
    """
    Resolve um rótulo bruto.

    Returns:
        (parameter_id, translated, source_unit, unit, conversion_factor)
    """
    entry = tables.parameter_for_label(label)
    _, label_unit = split_label_unit(label)

    source_unit = (
        canonical_unit(label_unit)
        or canonical_unit(declared_unit)
        or canonical_unit(default_unit)
        or (entry.unit if entry is not None else None)
    )

    if entry is None:
        return str(label), False, source_unit, source_unit, 1.0

    conversion = tables.conversion_for(entry.id, source_unit)
    if conversion is None:
        return entry.id, True, source_unit, source_unit, 1.0
    return entry.id, True, source_unit, conversion.to_unit, conversion.factor


def _declared_unit(row: Dict[str, Any]) -> Optional[str]:
    for key in ("source_unit", "unit"):
        value = row.get(key)
        if value is not None and not (isinstance(value, float) and pd.isna(value)):
            return str(value)
    return None


def normalize_frame(
    long: pd.DataFrame,
    tables: ReferenceTables,
    *,
    default_unit: Optional[str] = None,
) -> pd.DataFrame:
    """
    Adiciona `parameter_id, translated, unit, source_unit, conversion_factor`
    (e `source_value`) ao long frame; `value` passa a carregar o valor convertido.

    Nenhuma linha é removida.
    """
    out = long.copy()
    base_values = out["source_value"] if "source_value" in out.columns else out["value"]
    base_values = pd.to_numeric(base_values, errors="coerce").astype(float)

    cache: Dict[Tuple[str, Optional[str]], Resolution] = {}
    resolved = []
    for row in out.to_dict(orient="records"):
        declared = _declared_unit(row)
        key = (str(row["parameter_label"]), declared)
        if key not in cache:
            cache[key] = resolve_label(
                row["parameter_label"], tables, declared_unit=declared, default_unit=default_unit
            )
        resolved.append(cache[key])

    cols = pd.DataFrame(
        resolved,
        columns=["parameter_id", "translated", "source_unit", "unit", "conversion_factor"],
        index=out.index,
    )

    out["parameter_id"] = cols["parameter_id"]
    out["translated"] = cols["translated"].astype(bool)
    out["source_unit"] = cols["source_unit"]
    out["unit"] = cols["unit"]
    out["conversion_factor"] = cols["conversion_factor"].astype(float)
    out["source_value"] = base_values
    out["value"] = base_values * out["conversion_factor"]
    return out
