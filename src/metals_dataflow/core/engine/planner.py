"""
Planejador de execução do pipeline (DAG).

Valida a estrutura do pipeline e produz uma ordem topológica determinística
dos Steps declarados. Opera apenas em nível estrutural: ids, dependências
declaradas e ciclos.

Decisões:
    - Kahn determinístico; empates resolvidos por ordem lexicográfica de `step.id`
    - Erros estruturais são falhas fatais (nenhuma execução parcial)

Com várias seções, a ordem lexicográfica intercala os Steps das seções de
forma estável (ex.: `soil.*` antes de `water.*` a cada nível do grafo).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Set

from metals_dataflow.core.pipeline.step import Step


class UnknownDependencyError(ValueError):
    """Um Step declarou em `depends_on` um id que não existe no pipeline."""


class CycleDetectedError(ValueError):
    """O grafo de dependências contém um ciclo."""


def plan_execution(steps: Iterable[Step]) -> List[Step]:
    """
    Valida e ordena Steps topologicamente.

    Args:
        steps: coleção de Steps declarativos do pipeline.

    Returns:
        Steps em ordem topológica determinística.

    Raises:
        ValueError: `id` inválido ou duplicado.
        UnknownDependencyError: dependência inexistente.
        CycleDetectedError: ciclo no grafo.
    """
    by_id: Dict[str, Step] = {}
    for s in steps:
        sid = getattr(s, "id", None)
        if not isinstance(sid, str) or not sid.strip():
            raise ValueError("step.id must be a non-empty string")
        if sid in by_id:
            raise ValueError(f"Duplicate step id: {sid}")
        by_id[sid] = s

    deps: Dict[str, List[str]] = {}
    for sid, s in by_id.items():
        d = list(getattr(s, "depends_on", []) or [])
        for dep in d:
            if dep not in by_id:
                raise UnknownDependencyError(f"Step '{sid}' depends on unknown step '{dep}'")
        deps[sid] = d

    incoming_count: Dict[str, int] = {sid: len(d) for sid, d in deps.items()}
    outgoing: Dict[str, Set[str]] = {sid: set() for sid in by_id}
    for sid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].add(sid)

    ready: List[str] = sorted(sid for sid, c in incoming_count.items() if c == 0)
    order_ids: List[str] = []

    while ready:
        sid = ready.pop(0)
        order_ids.append(sid)
        for child in sorted(outgoing[sid]):
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort()

    if len(order_ids) != len(by_id):
        stuck = sorted(set(by_id) - set(order_ids))
        raise CycleDetectedError(f"Cycle detected in step dependency graph: {stuck}")

    return [by_id[sid] for sid in order_ids]
