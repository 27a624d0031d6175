# src/tablesuite/actions/generate.py
"""Ação generate: produz um lote sintético e o publica como artifact `batch.<nó>`.

Não depende da tabela alvo. Quando `workload.input_base_path` está
configurado, o lote também é persistido em `<input_base_path>/<nó>/batch.csv`
para inspeção posterior.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability, NodeResult

from .base import batch_key, record_generator, succeeded


@dataclass
class GenerateAction:
    capability: NodeCapability = NodeCapability.GENERATE

    def run(self, node: DagNode, ctx: RunContext) -> NodeResult:
        cfg = node.config
        gen = record_generator(node, ctx)
        batch = gen.generate(cfg.record_count, num_partitions=cfg.num_partitions)

        key = batch_key(node.name)
        ctx.set_artifact(key, batch)

        artifacts = {"batch": key, "schema": gen.schema.name}
        input_base = ctx.config.workload.input_base_path
        if input_base:
            out = Path(input_base) / node.name / "batch.csv"
            out.parent.mkdir(parents=True, exist_ok=True)
            batch.to_csv(out, index=False)
            artifacts["batch_path"] = str(out)

        ctx.log(
            node=node.name,
            level="info",
            message="batch generated",
            records=int(len(batch)),
            partitions=int(batch[gen.partition_field].nunique()),
        )
        return succeeded(
            node,
            f"generated {len(batch)} records",
            metrics={"records": int(len(batch)), "partitions": int(batch[gen.partition_field].nunique())},
            artifacts=artifacts,
        )
