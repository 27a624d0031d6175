# src/tablesuite/core/engine/planner.py
"""
Planejador de execução do WorkflowDag.

Produz uma ordem topológica determinística dos nós de um DAG já
construído. O executor usa essa ordem para desempatar a fila de prontos,
de modo que a mesma definição de workload produza sempre a mesma ordem
de submissão ao pool.

Decisões arquiteturais:
    - Utiliza ordenação topológica determinística (Kahn modificado)
    - Empates são resolvidos por ordem lexicográfica de `node.name`
    - Erros estruturais são tratados como falhas fatais

Invariantes:
    - Nenhum nó aparece antes de suas dependências
    - Todos os nós aparecem exatamente uma vez
    - A mesma definição de DAG produz sempre a mesma ordem

Limites explícitos:
    - Não executa nós
    - Não interage com RunContext
    - Não decide políticas de execução
"""

from __future__ import annotations

import heapq
from typing import Dict, List, Set

from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.workflow import WorkflowDag, find_cycle
from tablesuite.core.exceptions import CycleDetectedError


def plan_execution(dag: WorkflowDag) -> List[DagNode]:
    """
    Produz a ordem topológica determinística dos nós do DAG.

    Sempre que múltiplos nós estiverem prontos, a escolha é feita por
    ordem lexicográfica do nome.

    Args:
        dag (WorkflowDag): DAG validado.

    Returns:
        List[DagNode]: nós em ordem de execução.

    Raises:
        CycleDetectedError: se a ordenação não cobrir todos os nós.
    """
    incoming: Dict[str, int] = {n.name: len(n.depends_on) for n in dag.nodes}
    outgoing: Dict[str, Set[str]] = {n.name: set(dag.dependents(n.name)) for n in dag.nodes}

    ready: List[str] = [name for name, count in incoming.items() if count == 0]
    heapq.heapify(ready)
    order: List[str] = []

    while ready:
        name = heapq.heappop(ready)
        order.append(name)
        for child in sorted(outgoing[name]):
            incoming[child] -= 1
            if incoming[child] == 0:
                heapq.heappush(ready, child)

    if len(order) != len(dag):
        cycle = find_cycle({n.name: n.depends_on for n in dag.nodes})
        raise CycleDetectedError(
            f"Cycle detected in workflow DAG '{dag.name}': {' -> '.join(cycle)}",
            details={"dag": dag.name, "cycle": cycle},
        )

    return [dag.node(name) for name in order]
