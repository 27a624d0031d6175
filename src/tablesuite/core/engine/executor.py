# src/tablesuite/core/engine/executor.py
"""
Executor do WorkflowDag com concorrência limitada.

O `DagExecutor` executa todos os nós de um DAG respeitando a ordem de
dependências e um limite fixo de workers, e só retorna quando nenhum nó
permanece PENDING, READY ou RUNNING.

Algoritmo:
    - contador de indegree por nó (dependências ainda não concluídas)
    - fila de prontos semeada com os nós de indegree zero, desempatada
      pela ordem determinística do planner
    - pool de threads de tamanho fixo; um nó só é submetido quando há
      worker livre
    - sucesso: decrementa o indegree dos dependentes; os que chegam a zero
      tornam-se READY
    - falha: o nó vira FAILED e todo dependente transitivo vira SKIPPED
      (nunca executado, nunca re-tentado); ramos independentes seguem

Decisões arquiteturais:
    - Apenas a thread principal muta `ExecutionState` e o Manifest;
      workers só executam a ação e devolvem um `NodeResult`
    - Exceções de ações nunca atravessam o executor: são convertidas em
      `SuiteErrorPayload` (`payload["error"]`)
    - Cancelamento é cooperativo: com o stop signal levantado nenhum nó
      novo passa a RUNNING; nós em execução terminam normalmente
    - `fail_fast` apenas levanta o stop signal na primeira falha

Invariantes:
    - Um nó nunca inicia antes de todas as dependências estarem SUCCEEDED
    - No máximo `max_workers` nós estão RUNNING ao mesmo tempo
    - Cada nó é executado no máximo uma vez
    - Ao retornar, todos os nós estão em estado final

Limites explícitos:
    - Não valida a timeline da tabela
    - Não faz rollback de escritas (responsabilidade do motor alvo)
"""

from __future__ import annotations

import heapq
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.registry import ActionRegistry
from tablesuite.core.dag.types import NodeResult, NodeStatus
from tablesuite.core.dag.workflow import WorkflowDag
from tablesuite.core.errors import (
    NODE_EXECUTION_ERROR,
    SuiteErrorPayload,
    exception_to_error,
    node_invalid_result,
    node_skipped_stopped,
    node_skipped_upstream,
)
from tablesuite.core.config.errors import InvalidSuiteConfigError
from tablesuite.core.traceability import manifest as mf

from .planner import plan_execution


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunResult:
    """
    Resultado agregado de uma execução do DAG.

    Campos:
        - dag_name: nome do DAG executado
        - order: ordem planejada (topológica determinística)
        - nodes: `NodeResult` de cada nó, na ordem de declaração
        - states: snapshot final do `ExecutionState`
    """

    dag_name: str
    order: Tuple[str, ...] = ()
    nodes: Dict[str, NodeResult] = field(default_factory=dict)
    states: Mapping[str, NodeStatus] = field(default_factory=dict)

    @property
    def status(self) -> NodeStatus:
        """Status agregado: pior caso entre os nós."""
        if not self.states:
            return NodeStatus.SUCCEEDED
        return max(self.states.values(), key=lambda s: s.severity)

    @property
    def succeeded(self) -> bool:
        return all(s is NodeStatus.SUCCEEDED for s in self.states.values())

    def names_with(self, status: NodeStatus) -> List[str]:
        return [n for n, r in self.nodes.items() if r.status is status]

    @property
    def succeeded_nodes(self) -> List[str]:
        return self.names_with(NodeStatus.SUCCEEDED)

    @property
    def failed_nodes(self) -> List[str]:
        return self.names_with(NodeStatus.FAILED)

    @property
    def skipped_nodes(self) -> List[str]:
        return self.names_with(NodeStatus.SKIPPED)

    @property
    def succeeded_write_nodes(self) -> List[str]:
        return [
            n for n, r in self.nodes.items()
            if r.status is NodeStatus.SUCCEEDED and r.capability.is_write
        ]

    @property
    def errors(self) -> Dict[str, Dict[str, Any]]:
        """Payloads de erro dos nós FAILED, indexados por nome."""
        return {n: r.error for n, r in self.nodes.items() if r.status is NodeStatus.FAILED and r.error}


class DagExecutor:
    """Executor canônico do WorkflowDag (planner + pool limitado)."""

    def __init__(
        self,
        *,
        dag: WorkflowDag,
        ctx: RunContext,
        registry: ActionRegistry,
        max_workers: Optional[int] = None,
        fail_fast: Optional[bool] = None,
    ):
        executor_cfg = ctx.config.executor
        self.dag = dag
        self.ctx = ctx
        self.registry = registry
        self.max_workers = executor_cfg.max_workers if max_workers is None else max_workers
        self.fail_fast = executor_cfg.fail_fast if fail_fast is None else fail_fast

        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise InvalidSuiteConfigError(
                f"max_workers must be an integer >= 1, got {self.max_workers!r}",
                details={"key": "executor.max_workers", "value": repr(self.max_workers)},
            )

        self.state = dag.initial_state()
        self._results: Dict[str, NodeResult] = {}

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------
    def _failed_result(self, node: DagNode, error: SuiteErrorPayload, *, started: datetime, t0: float) -> NodeResult:
        return NodeResult(
            node=node.name,
            capability=node.capability,
            status=NodeStatus.FAILED,
            summary=error.message,
            payload={"error": error.to_dict()},
            started_at=started,
            finished_at=_utcnow(),
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )

    def _run_node(self, node: DagNode) -> NodeResult:
        """Executa a ação do nó em um worker. Nunca levanta exceção."""
        started = _utcnow()
        t0 = time.perf_counter()
        self.ctx.log(node=node.name, level="info", message="node started", type=node.capability.value)
        try:
            action = self.registry.create(node.capability)
            out = action.run(node, self.ctx)
        except Exception as exc:
            error = exception_to_error(exc)
            self.ctx.log(
                node=node.name,
                level="error",
                message=error.message,
                error_type=error.type,
            )
            return self._failed_result(node, error, started=started, t0=t0)

        if not isinstance(out, NodeResult) or out.status not in (NodeStatus.SUCCEEDED, NodeStatus.FAILED):
            received = type(out).__name__ if not isinstance(out, NodeResult) else f"NodeResult[{out.status.value}]"
            error = node_invalid_result(node=node.name, received=received)
            self.ctx.log(node=node.name, level="error", message=error.message, error_type=error.type)
            return self._failed_result(node, error, started=started, t0=t0)

        payload = dict(out.payload)
        if out.status is NodeStatus.FAILED and "error" not in payload:
            payload["error"] = SuiteErrorPayload(
                type=NODE_EXECUTION_ERROR,
                message=out.summary or "Node reported failure",
                details={"node": node.name},
            ).to_dict()

        result = replace(
            out,
            node=node.name,
            capability=node.capability,
            payload=payload,
            started_at=started,
            finished_at=_utcnow(),
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )
        self.ctx.log(
            node=node.name,
            level="info" if result.status is NodeStatus.SUCCEEDED else "error",
            message=f"node {result.status.value}",
            duration_ms=result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Main-thread bookkeeping
    # ------------------------------------------------------------------
    def _skip(self, name: str, reason: SuiteErrorPayload) -> None:
        ts = _utcnow()
        self.state.transition(name, NodeStatus.SKIPPED, ts=ts)
        node = self.dag.node(name)
        self._results[name] = NodeResult(
            node=name,
            capability=node.capability,
            status=NodeStatus.SKIPPED,
            summary=reason.message,
            payload={"reason": reason.to_dict()},
            finished_at=ts,
        )
        self.ctx.log(node=name, level="warning", message=reason.message, reason=reason.type)
        if self.ctx.manifest is not None:
            mf.node_skipped(self.ctx.manifest, node=name, ts=ts, reason=reason.to_dict())

    def _start(self, name: str) -> None:
        ts = _utcnow()
        self.state.transition(name, NodeStatus.RUNNING, ts=ts)
        if self.ctx.manifest is not None:
            mf.node_started(
                self.ctx.manifest,
                node=name,
                capability=self.dag.node(name).capability.value,
                ts=ts,
            )

    def _complete(self, name: str, result: NodeResult, indegree: Dict[str, int], ready: list, rank: Dict[str, int]) -> None:
        ts = result.finished_at or _utcnow()
        self._results[name] = result

        if result.status is NodeStatus.SUCCEEDED:
            self.state.transition(name, NodeStatus.SUCCEEDED, ts=ts)
            if self.ctx.manifest is not None:
                mf.node_finished(
                    self.ctx.manifest,
                    node=name,
                    ts=ts,
                    result={
                        "status": result.status.value,
                        "summary": result.summary,
                        "metrics": result.metrics,
                        "artifacts": result.artifacts,
                        "warnings": list(self.ctx.warnings.get(name, [])),
                    },
                )
            for child in self.dag.dependents(name):
                indegree[child] -= 1
                if indegree[child] == 0 and self.state.status(child) is NodeStatus.PENDING:
                    self.state.transition(child, NodeStatus.READY)
                    heapq.heappush(ready, (rank[child], child))
            return

        self.state.transition(name, NodeStatus.FAILED, ts=ts)
        if self.ctx.manifest is not None:
            mf.node_failed(self.ctx.manifest, node=name, ts=ts, error=result.error or {})

        for dependent in self.dag.transitive_dependents(name):
            if self.state.status(dependent) is NodeStatus.PENDING:
                self._skip(dependent, node_skipped_upstream(node=dependent, failed_upstream=name))

        if self.fail_fast:
            self.ctx.request_stop(reason=f"fail_fast: node '{name}' failed")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self) -> RunResult:
        order = plan_execution(self.dag)
        self.registry.ensure_supports({n.capability for n in self.dag.nodes})

        rank = {n.name: i for i, n in enumerate(order)}
        indegree = {n.name: len(n.depends_on) for n in self.dag.nodes}

        ready: List[Tuple[int, str]] = []
        for n in order:
            if indegree[n.name] == 0:
                self.state.transition(n.name, NodeStatus.READY)
                heapq.heappush(ready, (rank[n.name], n.name))

        in_flight: Dict[Future, str] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="tablesuite-node") as pool:
            while True:
                while ready and len(in_flight) < self.max_workers:
                    _, name = heapq.heappop(ready)
                    if self.ctx.stop_requested:
                        self._skip(name, node_skipped_stopped(node=name))
                        continue
                    self._start(name)
                    in_flight[pool.submit(self._run_node, self.dag.node(name))] = name

                if not in_flight:
                    break

                done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                for fut in sorted(done, key=lambda f: rank[in_flight[f]]):
                    name = in_flight.pop(fut)
                    self._complete(name, fut.result(), indegree, ready, rank)

        # nós que nunca ficaram prontos porque a run foi interrompida
        for name in self.state.names_in(NodeStatus.PENDING, NodeStatus.READY):
            self._skip(name, node_skipped_stopped(node=name))

        return RunResult(
            dag_name=self.dag.name,
            order=tuple(n.name for n in order),
            nodes={name: self._results[name] for name in self.dag.names()},
            states=self.state.snapshot(),
        )
