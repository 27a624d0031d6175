# src/tablesuite/actions/sync.py
"""Ação sync: publica os metadados atuais da tabela no catálogo externo.

Não altera a timeline. Database e tabela vêm da config do nó quando
presentes; caso contrário, de `target.catalog_database` / `catalog_table`.
"""

from __future__ import annotations

from dataclasses import dataclass

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability, NodeResult

from .base import succeeded, table_path_for


@dataclass
class SyncAction:
    capability: NodeCapability = NodeCapability.SYNC

    def run(self, node: DagNode, ctx: RunContext) -> NodeResult:
        target = ctx.config.target
        database = node.config.database or target.catalog_database
        table = node.config.table or target.catalog_table_name
        table_path = table_path_for(node, ctx)

        ctx.services.catalog.sync(table_path=table_path, database=database, table=table)

        ctx.log(node=node.name, level="info", message="catalog synced", database=database, table=table)
        return succeeded(
            node,
            f"synced {database}.{table}",
            artifacts={"database": database, "table": table, "table_path": table_path},
        )
