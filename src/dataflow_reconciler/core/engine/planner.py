# src/dataflow_reconciler/core/engine/planner.py
"""
Planejador da reconciliação.

Este módulo valida a estrutura dos Steps declarados e produz a ordem
de execução da reconciliação.

A ordem canônica do plano é:

    teardown → components.unregister → components.register →
    definition.create → deployment.deploy

Essa ordem é um invariante: nenhum Step executa antes que todos os seus
predecessores tenham concluído com SUCCESS ou NOOP. Cada Step declara o
anterior em `depends_on`; o planner apenas valida e ordena.

Decisões arquiteturais:
    - Ordenação topológica determinística (Kahn)
    - Empates são resolvidos pela ordem de declaração
    - Erros estruturais são tratados como falhas fatais

Invariantes:
    - Nenhum Step aparece antes de suas dependências
    - Todos os Steps aparecem exatamente uma vez
    - A mesma declaração produz sempre a mesma ordem

Limites explícitos:
    - Não executa Steps
    - Não interage com ReconcileContext
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from dataflow_reconciler.core.pipeline.step import Step


class UnknownDependencyError(ValueError):
    """Um Step referencia em `depends_on` um `step.id` inexistente."""


class CycleDetectedError(ValueError):
    """O grafo de dependências entre Steps contém um ciclo."""


def plan_execution(steps: Iterable[Step]) -> List[Step]:
    """
    Valida e produz a ordem de execução dos Steps.

    Args:
        steps (Iterable[Step]): Steps na ordem de declaração.

    Returns:
        List[Step]: Steps em ordem topológica determinística.

    Raises:
        ValueError: Se algum Step possuir `id` inválido ou duplicado.
        UnknownDependencyError: Se um Step declarar dependência inexistente.
        CycleDetectedError: Se houver ciclo no grafo de dependências.
    """
    step_list = list(steps)
    by_id: Dict[str, Step] = {}
    position: Dict[str, int] = {}
    for index, s in enumerate(step_list):
        sid = getattr(s, "id", None)
        if not isinstance(sid, str) or not sid.strip():
            raise ValueError("step.id must be a non-empty string")
        if sid in by_id:
            raise ValueError(f"Duplicate step id: {sid}")
        by_id[sid] = s
        position[sid] = index

    deps: Dict[str, List[str]] = {}
    for sid, s in by_id.items():
        d = list(getattr(s, "depends_on", []) or [])
        for dep in d:
            if dep not in by_id:
                raise UnknownDependencyError(f"Step '{sid}' depends on unknown step '{dep}'")
        deps[sid] = d

    incoming_count: Dict[str, int] = {sid: len(d) for sid, d in deps.items()}
    outgoing: Dict[str, List[str]] = {sid: [] for sid in by_id}
    for sid, dlist in deps.items():
        for dep in dlist:
            outgoing[dep].append(sid)

    ready: List[str] = [sid for sid in by_id if incoming_count[sid] == 0]
    order_ids: List[str] = []

    while ready:
        sid = ready.pop(0)
        order_ids.append(sid)
        for child in outgoing[sid]:
            incoming_count[child] -= 1
            if incoming_count[child] == 0:
                ready.append(child)
                ready.sort(key=position.__getitem__)

    if len(order_ids) != len(by_id):
        raise CycleDetectedError("Cycle detected in step dependency graph")

    return [by_id[sid] for sid in order_ids]
