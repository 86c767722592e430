"""
Classificação de medições contra limites regulatórios.

Regra de tier (limites superiores inclusivos, breakpoints por matriz):

    value <= limit * safe      → Safe
    value <= limit * moderate  → Moderate
    value <= limit * high      → High
    caso contrário             → Critical

Limite ausente, zero, negativo ou não finito → `No guideline` (distinto de
Safe). Valor ausente com limite aplicável → tier ausente.

O tier é sempre recalculado a partir de (valor, limite, breakpoints).
"""

from __future__ import annotations

import math
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from .types import BreakpointTable, ReferenceStandard, ReferenceTables, RiskTier


CLASSIFIED_COLUMNS = ["matrix", "limit_value", "limit_unit", "limit_source", "ratio", "category", "exceeds"]


def _is_missing(x: Any) -> bool:
    if x is None or x is pd.NA:
        return True
    try:
        return math.isnan(x)
    except TypeError:
        return False


def is_valid_limit(limit: Any) -> bool:
    if _is_missing(limit) or isinstance(limit, bool):
        return False
    try:
        f = float(limit)
    except (TypeError, ValueError):
        return False
    return math.isfinite(f) and f > 0


def classify_value(value: Any, limit: Any, breakpoints: Optional[BreakpointTable] = None) -> Optional[RiskTier]:
    """
    Tier de risco de um valor frente a um limite.

    >>> classify_value(0.02, 0.01).value
    'Moderate'
    """
    if not is_valid_limit(limit):
        return RiskTier.NO_GUIDELINE
    if _is_missing(value):
        return None

    bp = breakpoints or BreakpointTable()
    limit = float(limit)
    value = float(value)
    if value <= limit * bp.safe:
        return RiskTier.SAFE
    if value <= limit * bp.moderate:
        return RiskTier.MODERATE
    if value <= limit * bp.high:
        return RiskTier.HIGH
    return RiskTier.CRITICAL


def exceedance_ratio(value: Any, limit: Any) -> Optional[float]:
    if not is_valid_limit(limit) or _is_missing(value):
        return None
    return float(value) / float(limit)


def select_standard(
    tables: ReferenceTables,
    parameter_id: Optional[str],
    matrix: str,
    unit: Optional[str],
    *,
    preferred_sources: Sequence[str] = (),
) -> Tuple[Optional[ReferenceStandard], List[ReferenceStandard]]:
    """
    Escolhe no máximo um limite aplicável.

    Candidatos: mesmo parâmetro, mesma matriz, mesma unidade. Quando a seção
    declara fontes preferidas, só elas são consideradas, na ordem dada. Sem
    preferência, vale a ordem de `tables.source_priority`; fontes fora dela
    caem no limite mais restritivo (menor valor).

    Returns:
        (limite escolhido ou None, limites descartados por unidade diferente)
    """
    candidates = tables.standards_for(parameter_id, matrix)
    applicable = [s for s in candidates if s.unit == unit]
    mismatched = [s for s in candidates if s.unit != unit]

    def _strictest(items: List[ReferenceStandard]) -> Optional[ReferenceStandard]:
        return min(items, key=lambda s: s.limit_value) if items else None

    if preferred_sources:
        for source in preferred_sources:
            chosen = _strictest([s for s in applicable if s.source == source])
            if chosen is not None:
                return chosen, mismatched
        return None, mismatched

    for source in tables.source_priority:
        chosen = _strictest([s for s in applicable if s.source == source])
        if chosen is not None:
            return chosen, mismatched
    return _strictest(applicable), mismatched


def classify_frame(
    df: pd.DataFrame,
    tables: ReferenceTables,
    *,
    matrix: str,
    standard_sources: Sequence[str] = (),
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Adiciona `matrix, limit_value, limit_unit, limit_source, ratio, category, exceeds`.

    Espera o long frame normalizado (`parameter_id`, `translated`, `unit`, `value`).

    Returns:
        (frame classificado, warnings de limites com unidade incompatível)
    """
    bp = tables.breakpoints_for(matrix)
    out = df.copy()

    chosen_cache = {}
    warnings: List[str] = []
    limit_value: List[Optional[float]] = []
    limit_unit: List[Optional[str]] = []
    limit_source: List[Optional[str]] = []
    ratios: List[Optional[float]] = []
    categories: List[Optional[str]] = []
    exceeds: List[Any] = []

    for row in out.to_dict(orient="records"):
        translated = bool(row.get("translated", True))
        pid = row.get("parameter_id")
        unit = None if _is_missing(row.get("unit")) else row.get("unit")
        key = (pid, unit, translated)

        if key not in chosen_cache:
            standard = None
            if translated:
                standard, mismatched = select_standard(
                    tables, pid, matrix, unit, preferred_sources=standard_sources
                )
                for s in mismatched:
                    warnings.append(
                        f"{pid} [{unit}]: standard '{s.source}' ({s.limit_value} {s.unit}) "
                        f"not applicable in {matrix} (unit mismatch)"
                    )
            chosen_cache[key] = standard
        standard = chosen_cache[key]

        value = row.get("value")
        limit = standard.limit_value if standard is not None else None
        tier = classify_value(value, limit, bp)

        limit_value.append(limit)
        limit_unit.append(standard.unit if standard is not None else None)
        limit_source.append(standard.source if standard is not None else None)
        ratios.append(exceedance_ratio(value, limit))
        categories.append(tier.value if tier is not None else None)
        exceeds.append(pd.NA if limit is None or _is_missing(value) else float(value) > limit)

    out["matrix"] = matrix
    out["limit_value"] = pd.Series(limit_value, index=out.index, dtype=float)
    out["limit_unit"] = pd.Series(limit_unit, index=out.index, dtype=object)
    out["limit_source"] = pd.Series(limit_source, index=out.index, dtype=object)
    out["ratio"] = pd.Series(ratios, index=out.index, dtype=float)
    out["category"] = pd.Series(categories, index=out.index, dtype=object)
    out["exceeds"] = pd.array(exceeds, dtype="boolean")
    return out, warnings
