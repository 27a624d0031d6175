# src/tablesuite/core/dag/node.py
"""
Contrato canônico de nó e de ação do Table Suite.

Um `DagNode` é a menor unidade declarativa do workload: identidade,
capability, configuração e dependências. Ele não sabe se executar.

Uma `NodeAction` é a implementação da capability: recebe o nó e o
`RunContext` e produz um `NodeResult`. O vínculo capability → ação é
estático (ver `registry.ActionRegistry`), resolvido no build/execução,
sem carregamento dinâmico de classes por nome.

Princípios fundamentais:
    - Nós são imutáveis depois que o DAG é construído
    - Ações não conhecem o executor nem controlam ordem de execução
    - Ações interagem com o mundo externo apenas via `RunContext.services`
    - Conformidade de ações é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `name` é único no DAG
    - `depends_on` preserva a ordem declarada e não contém repetições
    - `run` é chamado no máximo uma vez por nó e por run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple, runtime_checkable

from tablesuite.core.exceptions import InvalidNodeConfigError

from .context import RunContext
from .types import NodeCapability, NodeConfig, NodeResult


@dataclass(frozen=True)
class DagNode:
    """
    Nó imutável de um WorkflowDag.

    Atributos:
        - name: identificador único e estável do nó
        - capability: ação que o nó executa (`NodeCapability`)
        - config: payload tipado (`NodeConfig`)
        - depends_on: nomes dos nós que precisam terminar com sucesso antes
    """

    name: str
    capability: NodeCapability
    config: NodeConfig = field(default_factory=NodeConfig)
    depends_on: Tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        name: str,
        capability: Any,
        *,
        depends_on: Optional[Iterable[str]] = None,
        config: Optional[NodeConfig] = None,
        **config_values: Any,
    ) -> "DagNode":
        """Constrói um nó validado a partir de valores programáticos.

        Aceita um `NodeConfig` pronto ou os campos dele como keywords.
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidNodeConfigError(
                "Node name must be a non-empty string",
                details={"name": repr(name)},
            )
        cap = NodeCapability.parse(capability)

        if config is not None and config_values:
            raise InvalidNodeConfigError(
                f"Node '{name}': pass either config or config fields, not both",
                details={"node": name},
            )
        if config is None:
            config = NodeConfig.from_dict(cap, config_values, node=name)
        else:
            config = config.validated(cap, node=name)

        deps: Tuple[str, ...] = tuple(dict.fromkeys(depends_on or ()))
        return cls(name=name, capability=cap, config=config, depends_on=deps)

    @property
    def is_write(self) -> bool:
        return self.capability.is_write

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.capability.value,
            "deps": list(self.depends_on),
            "config": self.config.to_dict(),
        }


@runtime_checkable
class NodeAction(Protocol):
    """
    Contrato de uma ação de nó.

    A ação executa a unidade de trabalho da capability do nó e retorna um
    `NodeResult`. Falhas podem ser expressas levantando uma exceção
    (convertida pelo executor em payload de erro) ou retornando um
    `NodeResult` com status FAILED.

    Limites explícitos:
        - Não define retry
        - Não altera o estado de outros nós
        - Não decide políticas de execução (skip, stop)
    """

    capability: NodeCapability

    def run(self, node: DagNode, ctx: RunContext) -> NodeResult:
        """Executa a ação uma única vez para `node`."""
        ...
