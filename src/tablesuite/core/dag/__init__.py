"""Modelo de nós: tipos, DagNode, WorkflowDag, ExecutionState, RunContext e ActionRegistry."""

from .context import RunContext
from .node import DagNode, NodeAction
from .registry import ActionRegistry
from .state import ExecutionState
from .types import NodeCapability, NodeConfig, NodeResult, NodeStatus, WRITE_CAPABILITIES
from .workflow import WorkflowDag, build_workflow_dag, find_cycle

__all__ = [
    "ActionRegistry",
    "DagNode",
    "ExecutionState",
    "NodeAction",
    "NodeCapability",
    "NodeConfig",
    "NodeResult",
    "NodeStatus",
    "RunContext",
    "WRITE_CAPABILITIES",
    "WorkflowDag",
    "build_workflow_dag",
    "find_cycle",
]
