"""Geradores de WorkflowDag: variantes programáticas e documentos de workload."""

from .base import GeneratorRegistry, WorkflowDagGenerator
from .builtin import (
    CatalogSyncGenerator,
    InsertUpsertValidateGenerator,
    WideDagGenerator,
    default_generators,
)
from .parser import YamlWorkloadDagGenerator, load_workload, parse_workload

__all__ = [
    "CatalogSyncGenerator",
    "GeneratorRegistry",
    "InsertUpsertValidateGenerator",
    "WideDagGenerator",
    "WorkflowDagGenerator",
    "YamlWorkloadDagGenerator",
    "default_generators",
    "load_workload",
    "parse_workload",
]
