"""
Registro estrutural de Steps.

O `StepRegistry` valida a identidade dos Steps antes de qualquer
planejamento: ids precisam ser strings não vazias e únicas. Como os Steps
de seção são gerados a partir da configuração (um conjunto por seção), o
registry é também o ponto onde colisões de nomes de seção aparecem.

Limites explícitos:
    - Não resolve dependências (responsabilidade do planner)
    - Não executa Steps
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .step import Step


class DuplicateStepIdError(ValueError):
    """Dois Steps registrados com o mesmo `step.id`."""


@dataclass
class StepRegistry:
    """
    Registro ordenado de Steps com ids únicos.

    A ordem de registro é preservada em `list()`; a ordem de execução,
    no entanto, é decidida pelo planner.
    """

    _steps: Dict[str, Step] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def add(self, step: Step) -> None:
        step_id = getattr(step, "id", None)
        if not isinstance(step_id, str) or not step_id.strip():
            raise ValueError("step.id must be a non-empty string")

        if step_id in self._steps:
            raise DuplicateStepIdError(f"Duplicate step id: {step_id}")

        self._steps[step_id] = step
        self._order.append(step_id)

    def extend(self, steps: Iterable[Step]) -> None:
        for step in steps:
            self.add(step)

    def get(self, step_id: str) -> Step:
        return self._steps[step_id]

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def list(self) -> List[Step]:
        return [self._steps[sid] for sid in self._order]
