"""
Ações embutidas do Table Suite e o registry padrão capability → ação.
"""

from tablesuite.core.dag.registry import ActionRegistry
from tablesuite.core.dag.types import NodeCapability

from .generate import GenerateAction
from .sync import SyncAction
from .validate import ValidateAction
from .write import InsertAction, UpsertAction


def default_registry() -> ActionRegistry:
    registry = ActionRegistry()
    registry.register(NodeCapability.GENERATE, GenerateAction)
    registry.register(NodeCapability.INSERT, InsertAction)
    registry.register(NodeCapability.UPSERT, UpsertAction)
    registry.register(NodeCapability.SYNC, SyncAction)
    registry.register(NodeCapability.VALIDATE, ValidateAction)
    return registry


__all__ = [
    "GenerateAction",
    "InsertAction",
    "SyncAction",
    "UpsertAction",
    "ValidateAction",
    "default_registry",
]
