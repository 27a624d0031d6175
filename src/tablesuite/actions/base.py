# src/tablesuite/actions/base.py
"""
Helpers compartilhados pelas ações de nó.

As ações comunicam falhas levantando exceções tipadas (`ExecutionError`
e afins); o executor as converte em payload de erro. Estes helpers cobrem
apenas a montagem do resultado de sucesso e as convenções de artifacts.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeResult, NodeStatus
from tablesuite.data.generator import RecordGenerator
from tablesuite.data.schema import resolve_schema


def batch_key(node_name: str) -> str:
    """Chave do artifact com o lote publicado por um nó generate."""
    return f"batch.{node_name}"


def table_path_for(node: DagNode, ctx: RunContext) -> str:
    return node.config.target_path or ctx.services.table_path


def record_generator(node: DagNode, ctx: RunContext) -> RecordGenerator:
    target = ctx.config.target
    return RecordGenerator(
        schema=resolve_schema(node.config.schema),
        key_field=target.record_key_field,
        partition_field=target.partition_field,
        ordering_field=target.ordering_field,
        seed=ctx.config.workload.seed,
        stream=node.name,
    )


def succeeded(
    node: DagNode,
    summary: str,
    *,
    metrics: Optional[Dict[str, Any]] = None,
    artifacts: Optional[Dict[str, Any]] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> NodeResult:
    return NodeResult(
        node=node.name,
        capability=node.capability,
        status=NodeStatus.SUCCEEDED,
        summary=summary,
        metrics=dict(metrics or {}),
        artifacts=dict(artifacts or {}),
        payload=dict(payload or {}),
    )
