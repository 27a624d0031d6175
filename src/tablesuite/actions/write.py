# src/tablesuite/actions/write.py
"""
Ações insert e upsert: submetem um lote à tabela alvo.

Origem do lote:
    - lotes publicados pelas dependências diretas (nós generate), na ordem
      declarada em `depends_on`
    - sem lote upstream, `record_count` registros são gerados inline
      (`workload.record_count` quando o nó não define o valor)

Upsert reescreve ainda `update_count` chaves já existentes, lidas da tabela
via `TableReader`.

Invariantes:
    - Exatamente uma chamada `writer.write(lote, mode=...)` por execução do nó
    - Um lote vazio falha o nó sem tocar a tabela
    - O commit retornado pelo motor é reportado nos artifacts do nó
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pandas as pd

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability, NodeResult
from tablesuite.core.exceptions import MissingBatchError
from tablesuite.targets.interfaces import WriteMode

from .base import batch_key, record_generator, succeeded


def _upstream_batches(node: DagNode, ctx: RunContext) -> List[pd.DataFrame]:
    out = []
    for dep in node.depends_on:
        key = batch_key(dep)
        if ctx.has_artifact(key):
            out.append(ctx.get_artifact(key))
    return out


@dataclass
class _WriteAction:
    capability: NodeCapability
    mode: WriteMode

    def _new_records(self, node: DagNode, ctx: RunContext) -> pd.DataFrame:
        batches = _upstream_batches(node, ctx)
        if batches:
            return pd.concat(batches, ignore_index=True)

        count = node.config.record_count
        if count is None:
            count = ctx.config.workload.record_count
        return record_generator(node, ctx).generate(count, num_partitions=node.config.num_partitions)

    def build_batch(self, node: DagNode, ctx: RunContext) -> pd.DataFrame:
        return self._new_records(node, ctx)

    def run(self, node: DagNode, ctx: RunContext) -> NodeResult:
        batch = self.build_batch(node, ctx)
        if batch.empty:
            raise MissingBatchError(
                f"Node '{node.name}' has no records to write",
                details={"node": node.name, "depends_on": list(node.depends_on)},
                hint="Configure record_count/update_count ou dependa de um nó generate",
            )

        commit = ctx.services.writer.write(batch, mode=self.mode)
        for warning in commit.warnings:
            ctx.add_warning(node=node.name, message=warning)
            ctx.log(node=node.name, level="warning", message=warning, instant=commit.instant_time)

        ctx.log(
            node=node.name,
            level="info",
            message=f"{self.mode.value} committed",
            instant=commit.instant_time,
            action=commit.action,
            records=int(len(batch)),
        )
        return succeeded(
            node,
            f"{self.mode.value} of {len(batch)} records committed at {commit.instant_time}",
            metrics={"records_written": int(len(batch))},
            artifacts={"commit": commit.to_dict()},
        )


@dataclass
class InsertAction(_WriteAction):
    capability: NodeCapability = NodeCapability.INSERT
    mode: WriteMode = WriteMode.INSERT


@dataclass
class UpsertAction(_WriteAction):
    capability: NodeCapability = NodeCapability.UPSERT
    mode: WriteMode = WriteMode.UPSERT

    def build_batch(self, node: DagNode, ctx: RunContext) -> pd.DataFrame:
        inserts = self._new_records(node, ctx)
        if node.config.update_count <= 0:
            return inserts

        existing = ctx.services.reader.read()
        updates = record_generator(node, ctx).update(existing, node.config.update_count)
        if updates.empty:
            ctx.add_warning(node=node.name, message="no existing records to update")
            return inserts
        if inserts.empty:
            return updates
        return pd.concat([inserts, updates], ignore_index=True)
