"""
Engine: planejamento (DAG) e execução controlada de Steps.

Componentes:
    - planner → ordenação topológica determinística e validações estruturais
    - engine  → execução com políticas explícitas (enabled, fail_fast, skip de dependentes)

Invariantes:
    - Steps só são executados após suas dependências
    - Cada Step é executado no máximo uma vez por run
    - O resultado reflete explicitamente o estado de cada Step
"""

from .engine import SKIPPED_BY_CONFIG, SKIPPED_FAILED_DEPENDENCY, Engine, RunResult
from .planner import CycleDetectedError, UnknownDependencyError, plan_execution

__all__ = [
    "Engine",
    "RunResult",
    "SKIPPED_BY_CONFIG",
    "SKIPPED_FAILED_DEPENDENCY",
    "plan_execution",
    "CycleDetectedError",
    "UnknownDependencyError",
]
