# src/tablesuite/generators/builtin.py
"""
Variantes programáticas de DAG.

    - insert_upsert_validate: first_insert → first_upsert → first_validate
    - wide: dois ramos generate → insert unidos por um upsert, que se
      abre em sync e validate
    - catalog_sync: um único nó sync (nenhuma escrita)

Os tamanhos derivam de `workload.record_count` (N): inserts de N
registros, upserts com N/2 registros novos e N/4 atualizações. Os
predicados usam limites inferiores porque a tabela pode já conter dados
de runs anteriores.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from tablesuite.core.config.settings import SuiteConfig
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability
from tablesuite.core.dag.workflow import WorkflowDag, build_workflow_dag

from .base import GeneratorRegistry


def _sizes(config: SuiteConfig) -> Tuple[int, int, int]:
    n = config.workload.record_count
    return n, max(1, n // 2), n // 4


@dataclass(frozen=True)
class InsertUpsertValidateGenerator:
    name: str = "insert_upsert_validate"

    def build(self, config: SuiteConfig) -> WorkflowDag:
        n, inserts, updates = _sizes(config)
        return build_workflow_dag(
            [
                DagNode.create("first_insert", NodeCapability.INSERT, record_count=n, num_partitions=2),
                DagNode.create(
                    "first_upsert",
                    NodeCapability.UPSERT,
                    depends_on=["first_insert"],
                    record_count=inserts,
                    update_count=updates,
                    num_partitions=2,
                ),
                DagNode.create(
                    "first_validate",
                    NodeCapability.VALIDATE,
                    depends_on=["first_upsert"],
                    predicate=f"row_count >= {n + inserts} and commit_count >= 2",
                ),
            ],
            name=self.name,
        )


@dataclass(frozen=True)
class WideDagGenerator:
    name: str = "wide"

    def build(self, config: SuiteConfig) -> WorkflowDag:
        n, inserts, updates = _sizes(config)
        return build_workflow_dag(
            [
                DagNode.create("generate_a", NodeCapability.GENERATE, record_count=n, num_partitions=2),
                DagNode.create("generate_b", NodeCapability.GENERATE, record_count=n, num_partitions=3),
                DagNode.create("insert_a", NodeCapability.INSERT, depends_on=["generate_a"]),
                DagNode.create("insert_b", NodeCapability.INSERT, depends_on=["generate_b"]),
                DagNode.create(
                    "upsert",
                    NodeCapability.UPSERT,
                    depends_on=["insert_a", "insert_b"],
                    record_count=inserts,
                    update_count=updates,
                ),
                DagNode.create("sync", NodeCapability.SYNC, depends_on=["upsert"]),
                DagNode.create(
                    "validate",
                    NodeCapability.VALIDATE,
                    depends_on=["upsert"],
                    predicate=f"row_count >= {2 * n + inserts} and commit_count >= 3 and partition_count >= 3",
                ),
            ],
            name=self.name,
        )


@dataclass(frozen=True)
class CatalogSyncGenerator:
    name: str = "catalog_sync"

    def build(self, config: SuiteConfig) -> WorkflowDag:
        return build_workflow_dag(
            [DagNode.create("catalog_sync", NodeCapability.SYNC)],
            name=self.name,
        )


def default_generators() -> GeneratorRegistry:
    registry = GeneratorRegistry()
    registry.register("insert_upsert_validate", InsertUpsertValidateGenerator)
    registry.register("wide", WideDagGenerator)
    registry.register("catalog_sync", CatalogSyncGenerator)
    return registry
