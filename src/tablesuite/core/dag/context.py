# src/tablesuite/core/dag/context.py
"""
Contexto de execução compartilhado de uma run.

Este módulo define o `RunContext`, o objeto explícito passado a gerador,
executor, ações e validador, substituindo qualquer estado global de
fixture (handle de filesystem, cliente de cluster, etc.).

O RunContext é o único meio permitido de:
    - acessar os colaboradores externos (tabela alvo, timeline, catálogo)
    - trocar lotes gerados entre nós (artifact store por chave explícita)
    - registrar logs estruturados de execução
    - coletar warnings não fatais por nó
    - sinalizar parada cooperativa da run (stop signal)

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Ações executam em threads do pool: todo estado mutável é protegido
    - Nenhum estado global compartilhado

Invariantes:
    - Logs sempre incluem `run_id` e `node`
    - Warnings são agrupados por nó
    - Uma vez levantado, o stop signal não é baixado

Limites explícitos:
    - Não executa nós
    - Não planeja nem coordena execução
    - Não persiste dados automaticamente
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from tablesuite.core.config.settings import SuiteConfig
from tablesuite.targets.interfaces import TableServices

if TYPE_CHECKING:
    from tablesuite.core.traceability.manifest import RunManifest


@dataclass
class RunContext:
    """
    Contexto de execução compartilhado de uma run do workload.

    Campos canônicos:
    - run_id: identificador único da execução
    - created_at: timestamp UTC de criação do contexto
    - config: configuração tipada da suite
    - services: colaboradores externos (writer, reader, timeline, catalog)
    - meta: metadados livres (ex.: diretórios preparados pelo orquestrador)
    - manifest: manifest da run, quando o orquestrador o mantém
    - events: log estruturado de eventos
    - warnings: warnings por nó
    """
    run_id: str
    created_at: datetime
    config: SuiteConfig
    services: TableServices
    meta: Dict[str, Any] = field(default_factory=dict)
    manifest: Optional["RunManifest"] = None

    _artifacts: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False, compare=False)
    _stop: threading.Event = field(default_factory=threading.Event, init=False, repr=False, compare=False)

    # -----------------------------
    # Artifact store
    # -----------------------------
    def set_artifact(self, key: str, value: Any) -> None:
        with self._lock:
            self._artifacts[key] = value

    def has_artifact(self, key: str) -> bool:
        with self._lock:
            return key in self._artifacts

    def get_artifact(self, key: str) -> Any:
        with self._lock:
            if key not in self._artifacts:
                raise KeyError(key)
            return self._artifacts[key]

    def clear_artifacts(self) -> None:
        with self._lock:
            self._artifacts.clear()

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, node: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "node": node,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "thread": threading.current_thread().name,
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)

    def add_warning(self, *, node: str, message: str) -> None:
        with self._lock:
            self.warnings.setdefault(node, []).append(message)

    def events_for(self, node: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [e for e in self.events if e.get("node") == node]

    # -----------------------------
    # Stop signal (cancelamento cooperativo)
    # -----------------------------
    def request_stop(self, reason: str = "stop requested") -> None:
        if not self._stop.is_set():
            self._stop.set()
            self.log(node="<run>", level="warning", message="stop signal raised", reason=reason)

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()
