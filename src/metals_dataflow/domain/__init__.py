"""
Domínio: avaliação de contaminação por metais pesados.

Módulos:
    - types          → entidades (medição, estação, limite, breakpoints, tiers)
    - labels         → normalização de rótulos e unidades
    - schema_mapping → mapeamento explícito de esquema por seção
    - reshape        → grade bruta → long frame + stations frame
    - normalize      → dicionário de parâmetros e conversão de unidades
    - classify       → limite aplicável, razão e tier de risco
    - aggregate      → estatísticas por parâmetro/estação e resumo por estação
    - spatial        → junção com coordenadas e saída map-ready

Todas as funções são puras; leitura de arquivos e publicação de artefatos
ficam nos Steps.
"""

from .types import (
    MATRICES,
    BreakpointTable,
    ParameterEntry,
    ReferenceStandard,
    ReferenceTables,
    RiskTier,
    SampleMeasurement,
    Station,
    StationContaminationSummary,
    UnitConversion,
)

__all__ = [
    "MATRICES",
    "BreakpointTable",
    "ParameterEntry",
    "ReferenceStandard",
    "ReferenceTables",
    "RiskTier",
    "SampleMeasurement",
    "Station",
    "StationContaminationSummary",
    "UnitConversion",
]
