"""
Contrato canônico de Step.

Um Step é a menor unidade executável do pipeline: uma etapa de leitura,
reestruturação, normalização, classificação ou agregação, executada no
máximo uma vez por run.

Princípios:
    - Steps não conhecem o Engine nem o planner
    - Comunicação entre Steps ocorre apenas via RunContext
    - Conformidade é verificada por duck typing (@runtime_checkable)
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from .context import RunContext
from .types import StepKind, StepResult


@runtime_checkable
class Step(Protocol):
    """
    Interface mínima que qualquer Step deve satisfazer.

    Atributos obrigatórios:
        - id: identificador único e estável (ex.: `water.assess.classify`)
        - kind: classificação semântica (`StepKind`)
        - depends_on: ids dos Steps que precisam rodar antes

    O protocolo não impõe herança, apenas conformidade estrutural.
    """
    id: str
    kind: StepKind
    depends_on: List[str]

    def run(self, ctx: RunContext) -> StepResult:
        """Executa a etapa uma única vez usando exclusivamente o RunContext."""
        ...
