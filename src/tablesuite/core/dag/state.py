# src/tablesuite/core/dag/state.py
"""
Estado de execução por nó.

`ExecutionState` é criado no build do DAG (todos os nós PENDING) e mutado
exclusivamente pelo executor. Leitores externos (testes, orquestrador,
monitoramento) usam `snapshot()`.

Invariantes:
    - Apenas transições válidas são aceitas (ver `NodeStatus`)
    - Estados finais nunca são sobrescritos
    - O status agregado do DAG é o pior caso entre os nós
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .types import NodeStatus


_ALLOWED = {
    NodeStatus.PENDING: {NodeStatus.READY, NodeStatus.SKIPPED},
    NodeStatus.READY: {NodeStatus.RUNNING, NodeStatus.SKIPPED},
    NodeStatus.RUNNING: {NodeStatus.SUCCEEDED, NodeStatus.FAILED},
    NodeStatus.SUCCEEDED: set(),
    NodeStatus.FAILED: set(),
    NodeStatus.SKIPPED: set(),
}


class IllegalTransitionError(RuntimeError):
    """Transição de status não permitida (erro de programação do executor)."""


@dataclass(frozen=True)
class NodeState:
    status: NodeStatus
    ready_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class ExecutionState:
    """Status e timestamps por nó, com acesso thread-safe."""

    def __init__(self, names: Iterable[str]):
        self._lock = threading.Lock()
        self._states: Dict[str, NodeState] = {n: NodeState(NodeStatus.PENDING) for n in names}

    def status(self, name: str) -> NodeStatus:
        with self._lock:
            return self._states[name].status

    def get(self, name: str) -> NodeState:
        with self._lock:
            return self._states[name]

    def transition(self, name: str, new: NodeStatus, *, ts: Optional[datetime] = None) -> NodeState:
        ts = ts or datetime.now(timezone.utc)
        with self._lock:
            current = self._states[name]
            if new not in _ALLOWED[current.status]:
                raise IllegalTransitionError(
                    f"Illegal transition for node '{name}': {current.status.value} -> {new.value}"
                )
            if new is NodeStatus.READY:
                updated = NodeState(new, ready_at=ts)
            elif new is NodeStatus.RUNNING:
                updated = NodeState(new, ready_at=current.ready_at, started_at=ts)
            else:
                updated = NodeState(
                    new,
                    ready_at=current.ready_at,
                    started_at=current.started_at,
                    finished_at=ts,
                )
            self._states[name] = updated
            return updated

    def names_in(self, *statuses: NodeStatus) -> List[str]:
        with self._lock:
            return [n for n, s in self._states.items() if s.status in statuses]

    def is_done(self) -> bool:
        with self._lock:
            return all(s.status.is_terminal for s in self._states.values())

    def aggregate(self) -> NodeStatus:
        """Status global do DAG: pior caso entre os nós (SUCCEEDED se vazio)."""
        with self._lock:
            statuses = [s.status for s in self._states.values()]
        if not statuses:
            return NodeStatus.SUCCEEDED
        return max(statuses, key=lambda s: s.severity)

    def snapshot(self) -> Mapping[str, NodeStatus]:
        with self._lock:
            return MappingProxyType({n: s.status for n, s in self._states.items()})
