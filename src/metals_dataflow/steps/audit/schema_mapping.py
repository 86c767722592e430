"""Step canônico: <section>.audit.schema_mapping (v1).

Responsabilidades:
- OBSERVAR sem mutar: este Step não altera nenhum artefato
- relatar o mapeamento efetivo da seção (orientação, eixo, metadados)
- sugerir aliases do dicionário para rótulos não traduzidos (difflib)

As sugestões servem à revisão humana: nada é vinculado automaticamente.
Para adotá-las, declare o alias nas tabelas de referência (merge por `id`
em `reference.tables.parameters`).

Payload:
    mapping: {orientation, matrix, axis_column, metadata, default_unit, standard_sources}
    suggestions: {<rótulo>: [{alias, parameter_id, score}]}
    unmatched: [<rótulo sem sugestão>]
"""

from __future__ import annotations

from dataclasses import dataclass

from metals_dataflow.core.pipeline.context import RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepResult
from metals_dataflow.domain.schema_mapping import suggest_aliases
from metals_dataflow.steps._section import SectionStep, section_config


@dataclass
class AuditSchemaMappingStep(SectionStep):
    """Diagnóstico do mapeamento de esquema com sugestões de alias."""

    kind: StepKind = StepKind.DIAGNOSTIC

    name = "audit.schema_mapping"
    requires = ("transform.normalize_parameters",)

    def run(self, ctx: RunContext) -> StepResult:
        try:
            mapping = self.mapping(ctx)
            normalized = self.require(ctx, "data.normalized")
            tables = ctx.get_reference()
            cfg = section_config(ctx, self.section)

            untranslated = sorted(normalized.loc[~normalized["translated"], "parameter_label"].astype(str).unique())
            n = int((cfg.get("suggestions") or {}).get("max", 3))
            cutoff = float((cfg.get("suggestions") or {}).get("cutoff", 0.75))
            suggestions = suggest_aliases(untranslated, tables, n=n, cutoff=cutoff)
            unmatched = [label for label in untranslated if label not in suggestions]

            ctx.log(
                step_id=self.id,
                level="info",
                message="schema mapping audited",
                untranslated=len(untranslated),
                with_suggestions=len(suggestions),
            )

            return self.success(
                "schema mapping audited",
                metrics={
                    "labels_untranslated": len(untranslated),
                    "labels_with_suggestions": len(suggestions),
                },
                payload={
                    "mapping": {
                        "orientation": mapping.orientation,
                        "matrix": mapping.matrix,
                        "axis_column": mapping.axis_column,
                        "metadata": dict(mapping.metadata),
                        "default_unit": mapping.default_unit,
                        "standard_sources": list(mapping.standard_sources),
                    },
                    "suggestions": suggestions,
                    "unmatched": unmatched,
                },
            )
        except Exception as e:
            return self.failed(ctx, e)
