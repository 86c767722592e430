"""
Mapeamento explícito de esquema por seção.

Cada seção da configuração declara como sua tabela está organizada
(orientação, coluna de parâmetros/estações, linhas ou colunas de metadados,
unidade padrão e fontes de limite preferidas). Nada é inferido por
similaridade: `suggest_aliases` apenas *sugere* aliases para rótulos não
traduzidos, para revisão humana.
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from metals_dataflow.core.exceptions import EngineConfigurationError

from .labels import canonical_unit, normalize_label
from .types import MATRICES, ReferenceTables


PARAMETERS_AS_ROWS = "parameters_as_rows"
PARAMETERS_AS_COLUMNS = "parameters_as_columns"
ORIENTATIONS = (PARAMETERS_AS_ROWS, PARAMETERS_AS_COLUMNS)

METADATA_FIELDS = ("code", "date", "river", "latitude", "longitude")

Sheets = Union[None, str, int, List[Union[str, int]]]


@dataclass(frozen=True)
class SchemaMapping:
    section: str
    matrix: str
    path: Optional[str] = None
    sheets: Sheets = None
    orientation: str = PARAMETERS_AS_ROWS
    parameter_column: Optional[str] = None
    station_column: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    default_unit: Optional[str] = None
    standard_sources: Tuple[str, ...] = ()

    @property
    def axis_column(self) -> Optional[str]:
        """Coluna que carrega os rótulos do eixo não-medido (parâmetros ou estações)."""
        if self.orientation == PARAMETERS_AS_ROWS:
            return self.parameter_column
        return self.station_column

    @property
    def expected_shape(self) -> str:
        if self.orientation == PARAMETERS_AS_ROWS:
            return "one column of parameter labels followed by one column per station"
        return "one column of station names followed by one column per parameter"

    def metadata_field_for(self, label: Any) -> Optional[str]:
        key = normalize_label(label)
        for name, source_label in self.metadata.items():
            if normalize_label(source_label) == key:
                return name
        return None

    @classmethod
    def from_config(cls, section: str, cfg: Mapping[str, Any]) -> "SchemaMapping":
        """
        Constrói o mapeamento a partir de `sections.<section>`.

        Raises:
            EngineConfigurationError: matriz, orientação ou metadados inválidos.
        """
        if not isinstance(cfg, Mapping):
            raise _config_error(section, "section config must be a mapping")

        matrix = cfg.get("matrix")
        if matrix not in MATRICES:
            raise _config_error(section, f"matrix must be one of {list(MATRICES)}, got {matrix!r}")

        orientation = cfg.get("orientation") or PARAMETERS_AS_ROWS
        if orientation not in ORIENTATIONS:
            raise _config_error(section, f"orientation must be one of {list(ORIENTATIONS)}, got {orientation!r}")

        metadata = dict(cfg.get("metadata") or {})
        unknown = sorted(set(metadata) - set(METADATA_FIELDS))
        if unknown:
            raise _config_error(section, f"unknown metadata fields: {unknown}")

        sources = cfg.get("standard_sources") or []
        if isinstance(sources, str):
            sources = [sources]

        return cls(
            section=section,
            matrix=matrix,
            path=cfg.get("path"),
            sheets=cfg.get("sheets"),
            orientation=orientation,
            parameter_column=cfg.get("parameter_column"),
            station_column=cfg.get("station_column"),
            metadata={k: str(v) for k, v in metadata.items()},
            default_unit=canonical_unit(cfg.get("default_unit")),
            standard_sources=tuple(str(s) for s in sources),
        )


def _config_error(section: str, reason: str) -> EngineConfigurationError:
    return EngineConfigurationError(
        f"Invalid configuration for section '{section}': {reason}",
        details={"section": section, "reason": reason},
        hint=f"Revise `sections.{section}` na configuração.",
    )


def suggest_aliases(
    labels: Iterable[Any],
    tables: ReferenceTables,
    *,
    n: int = 3,
    cutoff: float = 0.75,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Sugere parâmetros do dicionário para rótulos não traduzidos.

    Usa `difflib` sobre as chaves normalizadas de alias. Nenhuma sugestão é
    aplicada automaticamente.

    Returns:
        {rótulo: [{"alias", "parameter_id", "score"}, ...]} apenas para
        rótulos com ao menos uma sugestão.
    """
    candidates = sorted(tables.aliases)
    out: Dict[str, List[Dict[str, Any]]] = {}
    for label in labels:
        key = normalize_label(label)
        matches = difflib.get_close_matches(key, candidates, n=n, cutoff=cutoff)
        if not matches:
            continue
        out[str(label)] = [
            {
                "alias": alias,
                "parameter_id": tables.aliases[alias],
                "score": round(difflib.SequenceMatcher(None, key, alias).ratio(), 3),
            }
            for alias in matches
        ]
    return out
