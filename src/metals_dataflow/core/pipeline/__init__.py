"""
# Pipeline Core

Contratos e estruturas fundamentais de um pipeline de avaliação:

- **types**: `StepStatus`, `StepKind`, `StepResult`
- **step**: `Step` (Protocol)
- **context**: `RunContext` (artefatos, referência, logs, warnings, impactos)
- **registry**: `StepRegistry` (unicidade de `step.id`)

Steps não conhecem o Engine, não controlam ordem de execução e se
comunicam apenas via `RunContext`.
"""

from .context import RunContext, section_key
from .registry import DuplicateStepIdError, StepRegistry
from .step import Step
from .types import StepKind, StepResult, StepStatus

__all__ = [
    "RunContext",
    "section_key",
    "Step",
    "StepKind",
    "StepResult",
    "StepStatus",
    "StepRegistry",
    "DuplicateStepIdError",
]
