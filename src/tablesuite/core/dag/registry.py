# src/tablesuite/core/dag/registry.py
"""
Registro estático capability → ação.

Este módulo define o `ActionRegistry`, que substitui qualquer resolução
dinâmica de classes por nome: cada `NodeCapability` é associada, de forma
explícita, a uma fábrica que devolve a `NodeAction` correspondente.

Decisões arquiteturais:
    - O vínculo é declarado em código (ver `tablesuite.actions.default_registry`)
    - Fábricas são chamadas uma vez por nó executado (ações sem estado compartilhado)
    - A ausência de ação para uma capability é erro de configuração,
      detectado antes da execução (`ensure_supports`)

Invariantes:
    - Cada capability possui no máximo uma fábrica registrada
    - A ordem de registro é preservada em `capabilities()`

Limites explícitos:
    - Não executa ações
    - Não valida configuração de nós
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List

from tablesuite.core.exceptions import ConfigurationError, UnknownNodeTypeError

from .node import NodeAction
from .types import NodeCapability


ActionFactory = Callable[[], NodeAction]


class DuplicateActionError(ConfigurationError):
    """Capability registrada mais de uma vez no mesmo registry."""


@dataclass
class ActionRegistry:
    """Mapeamento estático `NodeCapability -> ActionFactory`."""

    _factories: Dict[NodeCapability, ActionFactory] = field(default_factory=dict, init=False, repr=False)

    def register(self, capability: NodeCapability, factory: ActionFactory, *, replace: bool = False) -> None:
        cap = NodeCapability.parse(capability)
        if cap in self._factories and not replace:
            raise DuplicateActionError(
                f"Action already registered for capability '{cap.value}'",
                details={"capability": cap.value},
            )
        self._factories[cap] = factory

    def supports(self, capability: NodeCapability) -> bool:
        return capability in self._factories

    def capabilities(self) -> List[NodeCapability]:
        return list(self._factories)

    def create(self, capability: NodeCapability) -> NodeAction:
        try:
            factory = self._factories[capability]
        except KeyError:
            raise UnknownNodeTypeError(
                f"No action registered for node type '{capability.value}'",
                details={"type": capability.value, "registered": [c.value for c in self._factories]},
            ) from None
        return factory()

    def ensure_supports(self, capabilities: Iterable[NodeCapability]) -> None:
        """Falha (ConfigurationError) se alguma capability não tiver ação registrada."""
        missing = sorted({c.value for c in capabilities if c not in self._factories})
        if missing:
            raise UnknownNodeTypeError(
                f"No action registered for node types: {missing}",
                details={"missing": missing, "registered": [c.value for c in self._factories]},
            )
