"""
Metals DataFlow: avaliação de contaminação por metais pesados orientada a tabelas de referência.

Monitoramentos ambientais chegam como planilhas heterogêneas (parâmetros em
linhas ou colunas, rótulos em várias línguas, unidades misturadas). Este
pacote transforma cada planilha em uma tabela longa normalizada, classifica
cada medição contra limites regulatórios e produz resumos por parâmetro e
por estação, prontos para mapas.

Princípios centrais:
    - O pipeline é um DAG explícito de Steps canônicos, um conjunto por seção
    - Limites, conversões e breakpoints são dados (tabelas de referência), não código
    - Valores ausentes permanecem ausentes; "No guideline" nunca é "Safe"
    - Rastreabilidade: cada run gera um Manifest com hashes e Event Log

Arquitetura em alto nível:
    - core.config       → carregamento e merge de configuração
    - core.reference    → carga e validação das tabelas de referência
    - core.pipeline     → protocolos, contexto de execução e registro de Steps
    - core.engine       → planejamento (DAG) e execução do pipeline
    - core.traceability → Manifest e Event Log
    - domain            → funções puras de reshape, normalização, classificação,
                          agregação e junção espacial
    - steps             → Steps canônicos por seção
    - pipeline          → runner (`run_assessment`)
"""

__version__ = "0.1.0"

from .pipeline import AssessmentRun, build_registry, run_assessment

__all__ = ["__version__", "AssessmentRun", "build_registry", "run_assessment"]
