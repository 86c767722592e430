"""
Modelo de dados do domínio de contaminação por metais pesados.

Entidades:
    - SampleMeasurement: fato atômico (estação, parâmetro, valor bruto, valor, unidade)
    - Station: ponto de amostragem com coordenadas opcionais
    - ParameterEntry: entrada do dicionário de parâmetros
    - UnitConversion: regra de conversão de unidade (tabela, nunca literal no código)
    - ReferenceStandard: limite regulatório (WHO, Codex, CDC, lei boliviana...)
    - BreakpointTable: limites superiores de razão por tier, por matriz
    - RiskTier: tier ordinal de risco
    - StationContaminationSummary: agregado por estação
    - ReferenceTables: pacote validado de dicionário, conversões, limites e breakpoints

Convenção de ausência: valores ausentes são `None` (nunca zero). Em
DataFrames, `NaN`/`pd.NA`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .labels import canonical_unit, normalize_label, split_label_unit


MATRICES: Tuple[str, ...] = (
    "water",
    "soil",
    "sediment",
    "vegetation",
    "fish",
    "human_blood",
    "animal_blood",
)

DEFAULT_MATRIX_KEY = "default"


class RiskTier(str, Enum):
    """Tier ordinal de risco; `NO_GUIDELINE` fica fora da ordem."""

    SAFE = "Safe"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"
    NO_GUIDELINE = "No guideline"

    @property
    def rank(self) -> Optional[int]:
        if self is RiskTier.NO_GUIDELINE:
            return None
        return TIER_ORDER.index(self)


TIER_ORDER: Tuple[RiskTier, ...] = (
    RiskTier.SAFE,
    RiskTier.MODERATE,
    RiskTier.HIGH,
    RiskTier.CRITICAL,
)


@dataclass(frozen=True)
class BreakpointTable:
    """
    Limites superiores (inclusivos) da razão valor/limite para cada tier.

    ratio <= safe → Safe; <= moderate → Moderate; <= high → High; acima → Critical.
    """

    safe: float = 1.0
    moderate: float = 2.0
    high: float = 5.0

    def __post_init__(self) -> None:
        bounds = (self.safe, self.moderate, self.high)
        if not all(isinstance(b, (int, float)) and math.isfinite(b) for b in bounds):
            raise ValueError(f"breakpoints must be finite numbers: {bounds}")
        if not 0 < self.safe < self.moderate < self.high:
            raise ValueError(f"breakpoints must be positive and strictly increasing: {bounds}")


@dataclass(frozen=True)
class ParameterEntry:
    id: str
    element: Optional[str] = None
    unit: Optional[str] = None
    aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UnitConversion:
    from_unit: str
    to_unit: str
    factor: float
    parameter: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class ReferenceStandard:
    parameter_id: str
    matrix: str
    limit_value: float
    unit: str
    source: str
    id: Optional[str] = None


@dataclass(frozen=True)
class Station:
    station_id: str
    code: Optional[str] = None
    date: Optional[date] = None
    river: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
        )


@dataclass(frozen=True)
class SampleMeasurement:
    station_id: str
    parameter_name: str
    raw_value: Optional[str]
    value: Optional[float]
    unit: Optional[str] = None

    @property
    def is_missing(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class StationContaminationSummary:
    section: str
    station_id: str
    n_parameters: int
    avg_exceedance_ratio: Optional[float]
    max_exceedance_ratio: Optional[float]
    count_parameters_exceeding: int
    category: Optional[RiskTier]


@dataclass(frozen=True)
class ReferenceTables:
    """
    Tabelas de referência validadas (somente leitura durante a run).

    Construída por `core.reference.build_reference_tables`; os métodos de
    consulta abaixo são a única forma de os Steps acessarem limites,
    conversões e breakpoints.
    """

    version: str
    parameters: Dict[str, ParameterEntry]
    aliases: Dict[str, str]
    conversions: Tuple[UnitConversion, ...] = ()
    standards: Tuple[ReferenceStandard, ...] = ()
    breakpoints: Dict[str, BreakpointTable] = field(default_factory=dict)
    source_priority: Tuple[str, ...] = ()
    no_guideline: Tuple[Tuple[str, str], ...] = ()

    def parameter_for_label(self, label: object) -> Optional[ParameterEntry]:
        """Resolve um rótulo bruto: alias exato, depois alias sem a unidade embutida."""
        key = normalize_label(label)
        pid = self.aliases.get(key)
        if pid is None:
            base, unit = split_label_unit(label)
            if unit is not None:
                pid = self.aliases.get(normalize_label(base))
        return self.parameters.get(pid) if pid is not None else None

    def conversion_for(self, parameter_id: Optional[str], from_unit: Optional[str]) -> Optional[UnitConversion]:
        """Conversão aplicável; regra específica do parâmetro vence a genérica."""
        unit = canonical_unit(from_unit)
        if unit is None:
            return None
        generic: Optional[UnitConversion] = None
        for conv in self.conversions:
            if conv.from_unit != unit:
                continue
            if conv.parameter is not None and conv.parameter == parameter_id:
                return conv
            if conv.parameter is None and generic is None:
                generic = conv
        return generic

    def standards_for(self, parameter_id: Optional[str], matrix: str) -> List[ReferenceStandard]:
        if parameter_id is None:
            return []
        return [s for s in self.standards if s.parameter_id == parameter_id and s.matrix == matrix]

    def breakpoints_for(self, matrix: str) -> BreakpointTable:
        if matrix in self.breakpoints:
            return self.breakpoints[matrix]
        return self.breakpoints.get(DEFAULT_MATRIX_KEY, BreakpointTable())
