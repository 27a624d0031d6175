# src/tablesuite/core/dag/workflow.py
"""
WorkflowDag: grafo imutável de nós do workload.

Este módulo define o `WorkflowDag` e o construtor canônico
`build_workflow_dag`, o único ponto em que um conjunto de `DagNode`
vira um grafo executável.

O construtor rejeita, com `ConfigurationError`, antes de qualquer execução:
    - nomes vazios ou duplicados
    - dependências para nós inexistentes (ou para o próprio nó)
    - ciclos (detectados por alcançabilidade, nomeando o ciclo)

Decisões arquiteturais:
    - A ordem de declaração dos nós é preservada
    - Adjacência (dependentes) é derivada no build e exposta somente leitura
    - Um DAG é construído uma vez por run e nunca muda durante a execução

Invariantes:
    - Todo nome em `depends_on` resolve para um nó do DAG
    - Não existem nomes duplicados
    - O grafo é acíclico
    - `fingerprint()` é estável para a mesma estrutura

Limites explícitos:
    - Não executa nós
    - Não decide concorrência ou política de falha
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Set, Tuple

from tablesuite.core.config.hashing import compute_config_hash
from tablesuite.core.exceptions import (
    ConfigurationError,
    CycleDetectedError,
    DuplicateNodeNameError,
    UnknownDependencyError,
)

from .node import DagNode
from .state import ExecutionState
from .types import NodeCapability


@dataclass(frozen=True)
class WorkflowDag:
    """
    Grafo imutável de `DagNode` com adjacência derivada.

    Não deve ser instanciado diretamente: use `build_workflow_dag`, que
    valida a estrutura antes de devolver o grafo.
    """

    name: str
    nodes: Tuple[DagNode, ...]

    _by_name: Mapping[str, DagNode] = field(init=False, repr=False, compare=False)
    _dependents: Mapping[str, Tuple[str, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name = {n.name: n for n in self.nodes}
        dependents: Dict[str, List[str]] = {n.name: [] for n in self.nodes}
        for n in self.nodes:
            for dep in n.depends_on:
                if dep in dependents:
                    dependents[dep].append(n.name)
        object.__setattr__(self, "_by_name", MappingProxyType(by_name))
        object.__setattr__(
            self,
            "_dependents",
            MappingProxyType({k: tuple(v) for k, v in dependents.items()}),
        )

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def node(self, name: str) -> DagNode:
        return self._by_name[name]

    def names(self) -> List[str]:
        return [n.name for n in self.nodes]

    def dependencies(self, name: str) -> Tuple[str, ...]:
        return self._by_name[name].depends_on

    def dependents(self, name: str) -> Tuple[str, ...]:
        return self._dependents[name]

    def transitive_dependents(self, name: str) -> List[str]:
        """Todos os nós alcançáveis a partir de `name`, em ordem de declaração."""
        seen: Set[str] = set()
        stack = list(self._dependents[name])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._dependents[current])
        return [n for n in self.names() if n in seen]

    def roots(self) -> List[str]:
        return [n.name for n in self.nodes if not n.depends_on]

    def nodes_with(self, *capabilities: NodeCapability) -> List[DagNode]:
        return [n for n in self.nodes if n.capability in capabilities]

    def write_nodes(self) -> List[DagNode]:
        return [n for n in self.nodes if n.is_write]

    def initial_state(self) -> ExecutionState:
        """Estado de execução inicial: todos os nós PENDING."""
        return ExecutionState(self.names())

    def to_dict(self) -> Dict[str, Any]:
        return {"dag_name": self.name, "nodes": [n.to_dict() for n in self.nodes]}

    def fingerprint(self) -> str:
        """Hash estrutural (SHA-256) do DAG; igual para estruturas iguais."""
        return compute_config_hash(self.to_dict())


def find_cycle(dependencies: Mapping[str, Iterable[str]]) -> List[str]:
    """
    Procura um ciclo no grafo `nó -> dependências` por alcançabilidade (DFS).

    A busca percorre os nós em ordem lexicográfica, o que torna o ciclo
    reportado determinístico.

    Returns:
        List[str]: caminho do ciclo fechado (ex.: ["a", "b", "a"]) ou lista
        vazia quando o grafo é acíclico.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {n: WHITE for n in dependencies}
    deps = {n: sorted(d for d in ds if d in dependencies) for n, ds in dependencies.items()}

    for start in sorted(dependencies):
        if color[start] != WHITE:
            continue
        path: List[str] = [start]
        iters = [iter(deps[start])]
        color[start] = GREY
        while iters:
            child = next(iters[-1], None)
            if child is None:
                color[path.pop()] = BLACK
                iters.pop()
                continue
            if color[child] == GREY:
                return path[path.index(child):] + [child]
            if color[child] == WHITE:
                color[child] = GREY
                path.append(child)
                iters.append(iter(deps[child]))
    return []


def build_workflow_dag(nodes: Iterable[DagNode], *, name: str = "workflow") -> WorkflowDag:
    """
    Valida e constrói um `WorkflowDag` imutável.

    Args:
        nodes (Iterable[DagNode]): nós na ordem declarada.
        name (str): nome do DAG (registrado no manifest).

    Returns:
        WorkflowDag: grafo validado.

    Raises:
        DuplicateNodeNameError: nomes repetidos.
        UnknownDependencyError: dependência inexistente ou auto-referência.
        CycleDetectedError: ciclo no grafo (details["cycle"] nomeia o ciclo).
        ConfigurationError: DAG vazio ou entrada que não é DagNode.
    """
    node_list = list(nodes)
    if not node_list:
        raise ConfigurationError(f"Workflow DAG '{name}' has no nodes", details={"dag": name})

    by_name: Dict[str, DagNode] = {}
    for n in node_list:
        if not isinstance(n, DagNode):
            raise ConfigurationError(
                f"Workflow DAG '{name}' received a non-node entry: {type(n).__name__}",
                details={"dag": name},
            )
        if n.name in by_name:
            raise DuplicateNodeNameError(
                f"Duplicate node name: {n.name}",
                details={"dag": name, "node": n.name},
            )
        by_name[n.name] = n

    for n in node_list:
        for dep in n.depends_on:
            if dep == n.name:
                raise CycleDetectedError(
                    f"Cycle detected in workflow DAG '{name}': {n.name} -> {n.name}",
                    details={"dag": name, "cycle": [n.name, n.name]},
                )
            if dep not in by_name:
                raise UnknownDependencyError(
                    f"Node '{n.name}' depends on unknown node '{dep}'",
                    details={"dag": name, "node": n.name, "dependency": dep, "known": sorted(by_name)},
                )

    cycle = find_cycle({n.name: n.depends_on for n in node_list})
    if cycle:
        raise CycleDetectedError(
            f"Cycle detected in workflow DAG '{name}': {' -> '.join(cycle)}",
            details={"dag": name, "cycle": cycle},
        )

    return WorkflowDag(name=name, nodes=tuple(node_list))
