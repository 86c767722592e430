"""
Contexto de execução compartilhado do pipeline.

Este módulo define o `RunContext`, a estrutura canônica passada a todos os
Steps durante uma run. Ele substitui o estado implícito entre células de
notebook: tudo o que um Step produz para outro é publicado aqui, por chave
explícita.

O RunContext concentra:
    - identidade da execução (run_id, created_at)
    - configuração efetiva (defaults + overrides locais)
    - tabelas de referência validadas (após `reference.load`)
    - store de artefatos (DataFrames por seção)
    - log estruturado de eventos
    - warnings e payloads de impacto por Step

Invariantes:
    - Cada run possui seu próprio contexto (sem estado global)
    - Logs sempre incluem `run_id` e `step_id`
    - Warnings e impactos são indexados por `step_id`

Limites explícitos:
    - Não executa Steps
    - Não persiste dados automaticamente
    - Não registra eventos no Manifest
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


# Chave canônica das tabelas de referência no store de artefatos.
REFERENCE_ARTIFACT_KEY = "reference.tables"


def section_key(section: str, name: str) -> str:
    """Chave de artefato escopada por seção (ex.: `water.data.long`)."""
    return f"{section}.{name}"


@dataclass
class RunContext:
    """
    Contexto de execução de uma run do pipeline.

    `reference` começa como None e é preenchido pelo Step `reference.load`
    com um `ReferenceTables` validado. Steps de seção devem ler as tabelas
    via `get_reference()`, que falha de forma explícita se o Step de
    referência não rodou.
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any]
    reference: Any = None
    meta: Dict[str, Any] = field(default_factory=dict)

    _artifacts: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)
    impacts: Dict[str, Any] = field(default_factory=dict, init=False)

    # -----------------------------
    # Artifact store
    # -----------------------------
    def set_artifact(self, key: str, value: Any) -> None:
        self._artifacts[key] = value

    def has_artifact(self, key: str) -> bool:
        return key in self._artifacts

    def get_artifact(self, key: str) -> Any:
        if key not in self._artifacts:
            raise KeyError(key)
        return self._artifacts[key]

    def artifact_keys(self) -> List[str]:
        return sorted(self._artifacts)

    # -----------------------------
    # Reference tables
    # -----------------------------
    def set_reference(self, tables: Any) -> None:
        self.reference = tables
        self.set_artifact(REFERENCE_ARTIFACT_KEY, tables)

    def get_reference(self) -> Any:
        if self.reference is None:
            raise KeyError(REFERENCE_ARTIFACT_KEY)
        return self.reference

    # -----------------------------
    # Impact payloads
    # -----------------------------
    def set_impact(self, *, step_id: str, impact: Any) -> None:
        """Registra o impacto de um Step de transformação (antes/depois, contagens)."""
        self.impacts[step_id] = impact

    def get_impact(self, step_id: str) -> Any:
        if step_id not in self.impacts:
            raise KeyError(step_id)
        return self.impacts[step_id]

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        self.warnings.setdefault(step_id, []).append(message)
