# src/tablesuite/actions/validate.py
"""
Ação validate: avalia um predicado sobre o estado observável da tabela.

Observação (nomes disponíveis na expressão):
    - row_count: registros na visão atual da tabela
    - file_count: arquivos de dados vivos
    - commit_count: instants de escrita completados (`commit`/`deltacommit`)
    - partition_count: partições distintas
    - column_count: colunas da visão atual

Predicados:
    - string: avaliada com `pandas.eval(engine="python")` sobre a observação
      (ex.: "row_count == 150 and commit_count == 2")
    - callable: recebe a observação (dict) e retorna um valor truthy

Um predicado falso ou que não pode ser avaliado falha o nó com
`PredicateFailedError`; a observação vai nos details do erro.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import pandas as pd

from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability, NodeResult, Predicate
from tablesuite.core.exceptions import PredicateFailedError
from tablesuite.targets.interfaces import WRITE_COMMIT_ACTIONS

from .base import succeeded, table_path_for


def observe(node: DagNode, ctx: RunContext) -> Dict[str, int]:
    """Todas as contagens vêm da mesma tabela (`target_path` do nó ou a tabela da run)."""
    table_path = table_path_for(node, ctx)
    reader = ctx.services.reader_for(table_path)
    df = reader.read()
    partition_field = ctx.config.target.partition_field
    instants = ctx.services.timeline.instants(table_path)
    return {
        "row_count": int(len(df)),
        "file_count": len(reader.data_files()),
        "commit_count": sum(1 for c in instants if c.action in WRITE_COMMIT_ACTIONS),
        "partition_count": int(df[partition_field].nunique()) if partition_field in df.columns else 0,
        "column_count": int(len(df.columns)),
    }


def _describe(predicate: Predicate) -> str:
    if isinstance(predicate, str):
        return predicate
    return f"<callable {getattr(predicate, '__qualname__', type(predicate).__name__)}>"


def evaluate_predicate(predicate: Predicate, observation: Dict[str, int]) -> bool:
    if isinstance(predicate, str):
        value: Any = pd.eval(predicate, engine="python", parser="pandas", local_dict=dict(observation))
    else:
        value = predicate(dict(observation))
    return bool(value)


@dataclass
class ValidateAction:
    capability: NodeCapability = NodeCapability.VALIDATE

    def run(self, node: DagNode, ctx: RunContext) -> NodeResult:
        predicate = node.config.predicate
        expression = _describe(predicate)
        observation = observe(node, ctx)

        try:
            ok = evaluate_predicate(predicate, observation)
        except Exception as exc:
            raise PredicateFailedError(
                f"Predicate of node '{node.name}' could not be evaluated: {exc}",
                details={
                    "node": node.name,
                    "predicate": expression,
                    "observation": observation,
                    "exception_class": exc.__class__.__name__,
                },
                hint="Use apenas os nomes: " + ", ".join(sorted(observation)),
            ) from exc

        if not ok:
            raise PredicateFailedError(
                f"Predicate of node '{node.name}' not satisfied: {expression}",
                details={"node": node.name, "predicate": expression, "observation": observation},
            )

        ctx.log(node=node.name, level="info", message="predicate satisfied", predicate=expression, **observation)
        return succeeded(
            node,
            f"predicate satisfied: {expression}",
            metrics=dict(observation),
            artifacts={"predicate": expression},
        )
