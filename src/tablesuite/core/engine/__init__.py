"""Planejamento e execução do WorkflowDag."""

from .executor import DagExecutor, RunResult
from .planner import plan_execution

__all__ = ["DagExecutor", "RunResult", "plan_execution"]
