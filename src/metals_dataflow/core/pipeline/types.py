"""
Tipos canônicos do pipeline de avaliação de contaminação.

Este módulo define os enums e a estrutura de resultado que padronizam a
comunicação entre Steps, Engine e a camada de rastreabilidade (Manifest).

Componentes principais:
    - StepStatus → estados finais de execução (SUCCESS, SKIPPED, FAILED)
    - StepKind   → classificação semântica de Steps
    - StepResult → resultado imutável da execução de um Step

Invariantes:
    - Enums possuem valores textuais estáveis (serializáveis em JSON)
    - StepResult é imutável (frozen) e nunca é alterado após criado
    - Nenhuma lógica de execução ou de domínio vive neste módulo
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class StepKind(str, Enum):
    """
    Tipo semântico de um Step.

    Tipos definidos:
        - LOAD: leitura de arquivos de entrada ou tabelas de referência
        - TRANSFORM: reestruturação e normalização de medições
        - DIAGNOSTIC: inspeções que não alteram dados (ex.: sugestões de mapeamento)
        - ASSESS: classificação por limites, agregação e junção espacial

    O `kind` é puramente informativo: o Engine não decide execução com base nele.
    """
    LOAD = "load"
    TRANSFORM = "transform"
    DIAGNOSTIC = "diagnostic"
    ASSESS = "assess"


class StepStatus(str, Enum):
    """
    Estado final da execução de um Step.

    Estados:
        - SUCCESS: execução concluída
        - SKIPPED: não executado (desabilitado em config ou dependência falhou)
        - FAILED: execução interrompida por erro

    Estados intermediários (ex.: running) não pertencem a este enum.
    """
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """
    Resultado imutável da execução de um Step.

    Campos:
        - step_id: identificador único do Step
        - kind: tipo semântico do Step
        - status: estado final
        - summary: resumo textual curto
        - metrics: contagens e métricas numéricas (linhas, medições, exceedances)
        - warnings: avisos não fatais (rótulos não traduzidos, estações sem coordenadas)
        - artifacts: referências a artefatos publicados no RunContext
        - payload: dados adicionais serializáveis (impacto, erro estruturado)

    O Engine enriquece resultados criando novas instâncias via
    `dataclasses.replace`, nunca mutando a instância original.
    """
    step_id: str
    kind: StepKind
    status: StepStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    artifacts: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)
