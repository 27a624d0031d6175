# tests/conftest.py
"""
Fixtures compartilhados para testes do Table Suite.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração tipada mínima apontando para um diretório temporário
- contexto de execução (RunContext) com a tabela e o catálogo locais
- uma ação roteirizada (ScriptedAction) para testes do executor

Decisões arquiteturais:
    - Toda I/O acontece sob `tmp_path` (isolamento entre testes)
    - A ação roteirizada usa duck typing em vez de herança
    - Imports do pacote são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture executa um DAG
    - Nenhuma fixture compartilha estado entre testes

Limites explícitos:
    - Não substituir testes ponta a ponta (ver tests/e2e)
"""

import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest


WORKLOADS_DIR = Path(__file__).parent / "fixtures" / "workloads"


@pytest.fixture
def workloads_dir() -> Path:
    return WORKLOADS_DIR


@pytest.fixture
def make_config(tmp_path):
    """
    Fábrica de `SuiteConfig` sob `tmp_path`.

    Aceita overrides por seção: `make_config(target={...}, workload={...})`.
    """
    from tablesuite.core.config.settings import SuiteConfig

    def _make(table_type: str = "COPY_ON_WRITE", **sections):
        raw = {
            "target": {
                "base_path": str(tmp_path / "tables"),
                "table_name": "trips",
                "table_type": table_type,
            },
            "workload": {"record_count": 20, "seed": 7},
            "executor": {"max_workers": 2},
        }
        for name, values in sections.items():
            raw.setdefault(name, {}).update(values)
        return SuiteConfig.from_dict(raw)

    return _make


@pytest.fixture
def suite_config(make_config):
    return make_config()


@pytest.fixture
def make_ctx():
    """Fábrica de RunContext determinístico com serviços locais."""
    from tablesuite.core.dag.context import RunContext
    from tablesuite.targets import local_services

    def _make(config, services=None):
        return RunContext(
            run_id="run-test-001",
            created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
            config=config,
            services=services or local_services(config.target),
            meta={"source": "pytest"},
        )

    return _make


@pytest.fixture
def ctx(make_ctx, suite_config):
    return make_ctx(suite_config)


@pytest.fixture
def ScriptedAction():
    """
    Classe de ação roteirizada por nome de nó.

    Comportamentos por nó (`behaviors[nome]`):
        - "ok" (padrão): SUCCEEDED
        - "fail": levanta ExecutionError
        - "boom": levanta RuntimeError
        - "invalid": retorna um valor que não é NodeResult
        - float: dorme N segundos e então SUCCEEDED

    Registra a ordem de início/fim e o pico de concorrência observado.
    """
    from tablesuite.core.dag.types import NodeResult, NodeStatus
    from tablesuite.core.exceptions import ExecutionError

    class _ScriptedAction:
        capability = None

        def __init__(self, behaviors=None, on_start=None):
            self.behaviors = dict(behaviors or {})
            self.on_start = on_start
            self.started = []
            self.finished = []
            self.running = 0
            self.peak = 0
            self._lock = threading.Lock()

        def run(self, node, ctx):
            with self._lock:
                self.started.append(node.name)
                self.running += 1
                self.peak = max(self.peak, self.running)
            try:
                if self.on_start is not None:
                    self.on_start(node, ctx)
                behavior = self.behaviors.get(node.name, "ok")
                if isinstance(behavior, (int, float)):
                    time.sleep(behavior)
                elif behavior == "fail":
                    raise ExecutionError(f"scripted failure of {node.name}", details={"node": node.name})
                elif behavior == "boom":
                    raise RuntimeError("unexpected")
                elif behavior == "invalid":
                    return {"not": "a result"}
                return NodeResult(
                    node=node.name,
                    capability=node.capability,
                    status=NodeStatus.SUCCEEDED,
                    summary="scripted ok",
                )
            finally:
                with self._lock:
                    self.running -= 1
                    self.finished.append(node.name)

    return _ScriptedAction


@pytest.fixture
def scripted_registry():
    """Registry em que toda capability resolve para a mesma ação roteirizada."""
    from tablesuite.core.dag.registry import ActionRegistry
    from tablesuite.core.dag.types import NodeCapability

    def _make(action):
        registry = ActionRegistry()
        for cap in NodeCapability:
            registry.register(cap, lambda: action)
        return registry

    return _make


@pytest.fixture
def chain_nodes():
    """Nós da cadeia insert → upsert → validate."""
    from tablesuite.core.dag.node import DagNode

    return [
        DagNode.create("first_insert", "insert", record_count=10),
        DagNode.create("first_upsert", "upsert", depends_on=["first_insert"], record_count=5),
        DagNode.create("first_validate", "validate", depends_on=["first_upsert"], predicate="row_count >= 15"),
    ]
