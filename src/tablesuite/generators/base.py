# src/tablesuite/generators/base.py
"""
Contrato de geradores de DAG e o registry estático de variantes nomeadas.

Um gerador é polimórfico sobre uma única capacidade: produzir um
`WorkflowDag` a partir da configuração base da suite. Variantes são
resolvidas por nome em um registry declarado em código, nunca por
carregamento dinâmico de classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Protocol, runtime_checkable

from tablesuite.core.config.settings import SuiteConfig
from tablesuite.core.dag.workflow import WorkflowDag
from tablesuite.core.exceptions import ConfigurationError, UnknownGeneratorError


@runtime_checkable
class WorkflowDagGenerator(Protocol):
    """Produz um `WorkflowDag` validado para a configuração informada."""

    def build(self, config: SuiteConfig) -> WorkflowDag:
        ...


GeneratorFactory = Callable[[], WorkflowDagGenerator]


@dataclass
class GeneratorRegistry:
    """Mapeamento estático `nome da variante -> fábrica de gerador`."""

    _factories: Dict[str, GeneratorFactory] = field(default_factory=dict, init=False, repr=False)

    def register(self, name: str, factory: GeneratorFactory) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("Generator name must be a non-empty string")
        if name in self._factories:
            raise ConfigurationError(
                f"Generator already registered: {name}",
                details={"generator": name},
            )
        self._factories[name] = factory

    def names(self) -> List[str]:
        return list(self._factories)

    def create(self, name: str) -> WorkflowDagGenerator:
        try:
            factory = self._factories[name]
        except KeyError:
            raise UnknownGeneratorError(
                f"Unknown DAG generator: {name}",
                details={"generator": name, "registered": sorted(self._factories)},
                hint="Use um dos geradores registrados ou workload.yaml_path",
            ) from None
        return factory()

    def build(self, name: str, config: SuiteConfig) -> WorkflowDag:
        return self.create(name).build(config)
