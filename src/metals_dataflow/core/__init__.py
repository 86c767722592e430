"""
Core do pipeline de avaliação de contaminação.

Componentes:
    - config       → resolução de configuração (defaults + overrides, deep-merge)
    - reference    → carregamento e validação das tabelas de referência
    - pipeline     → protocolo de Step, RunContext e registry
    - engine       → planejamento (DAG) e execução controlada
    - traceability → Manifest e Event Log
    - errors / exceptions → payloads de erro e exceções tipadas

O core não conhece matrizes, metais ou limites: essa semântica vive em
`metals_dataflow.domain` e nas tabelas de referência.
"""
