# src/tablesuite/core/dag/types.py
"""
Tipos canônicos do modelo de nós do Table Suite.

Este módulo define os enums e estruturas imutáveis compartilhados por
gerador, executor, ações e validador.

Componentes principais:
    - NodeCapability → tag de ação do nó (generate, insert, upsert, sync, validate)
    - NodeStatus     → estados de execução de um nó (incluindo transitórios)
    - NodeConfig     → payload de configuração tipado e validado por capability
    - NodeResult     → resultado imutável produzido pela execução de um nó

Invariantes:
    - Enums possuem valores textuais canônicos (serializáveis)
    - NodeConfig e NodeResult são imutáveis
    - Tipos não dependem de engine, ações ou alvo

Limites explícitos:
    - Não executa nós
    - Não valida a estrutura do grafo
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Union

from tablesuite.core.exceptions import InvalidNodeConfigError, UnknownNodeTypeError


class NodeCapability(str, Enum):
    """
    Capability (tipo de ação) de um nó do workload.

    Cada valor corresponde a exatamente uma unidade semântica de trabalho:
        - GENERATE: produz um lote de registros sintéticos
        - INSERT: submete um lote à tabela alvo em modo insert
        - UPSERT: submete um lote à tabela alvo em modo upsert
        - SYNC: publica metadados da tabela em um catálogo externo
        - VALIDATE: avalia um predicado sobre o estado observável

    O valor textual é a tag usada nos documentos de workload.
    """
    GENERATE = "generate"
    INSERT = "insert"
    UPSERT = "upsert"
    SYNC = "sync"
    VALIDATE = "validate"

    @classmethod
    def parse(cls, tag: Any) -> "NodeCapability":
        if isinstance(tag, NodeCapability):
            return tag
        if isinstance(tag, str):
            try:
                return cls(tag.strip().lower())
            except ValueError:
                pass
        raise UnknownNodeTypeError(
            f"Unknown node type: {tag!r}",
            details={"type": repr(tag), "allowed": [c.value for c in cls]},
        )

    @property
    def is_write(self) -> bool:
        return self in WRITE_CAPABILITIES


WRITE_CAPABILITIES: FrozenSet[NodeCapability] = frozenset(
    {NodeCapability.INSERT, NodeCapability.UPSERT}
)


class NodeStatus(str, Enum):
    """
    Estados de execução de um nó.

    Transições válidas (controladas exclusivamente pelo executor):
        PENDING → READY → RUNNING → SUCCEEDED | FAILED
        PENDING | READY → SKIPPED

    SUCCEEDED, FAILED e SKIPPED são finais.
    """
    PENDING = "pending"
    READY = "ready"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (NodeStatus.SUCCEEDED, NodeStatus.FAILED, NodeStatus.SKIPPED)

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


# ordem usada para o status agregado (pior caso) do DAG
_SEVERITY: Dict[NodeStatus, int] = {
    NodeStatus.SUCCEEDED: 0,
    NodeStatus.PENDING: 1,
    NodeStatus.READY: 2,
    NodeStatus.RUNNING: 3,
    NodeStatus.SKIPPED: 4,
    NodeStatus.FAILED: 5,
}


Predicate = Union[str, Callable[[Mapping[str, Any]], Any]]


@dataclass(frozen=True)
class NodeConfig:
    """
    Payload de configuração de um nó.

    Campos (todos opcionais no registro, exigidos conforme a capability):
        - record_count: número de registros novos a gerar/escrever
        - update_count: número de chaves existentes a reescrever (upsert)
        - schema: nome de schema embutido ou caminho de arquivo de schema
        - predicate: expressão (str) ou callable avaliado pelo nó validate
        - target_path: caminho alternativo da tabela (sync/validate)
        - num_partitions: número de partições distintas no lote gerado
        - database / table: identidade no catálogo (sync)

    Regras por capability:
        - generate exige record_count > 0
        - validate exige predicate
        - contagens nunca são negativas
    """

    record_count: Optional[int] = None
    update_count: int = 0
    schema: Optional[str] = None
    predicate: Optional[Predicate] = None
    target_path: Optional[str] = None
    num_partitions: int = 1
    database: Optional[str] = None
    table: Optional[str] = None

    @classmethod
    def from_dict(cls, capability: NodeCapability, raw: Optional[Mapping[str, Any]], *, node: str = "?") -> "NodeConfig":
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise InvalidNodeConfigError(
                f"Config of node '{node}' must be a mapping",
                details={"node": node, "received": type(raw).__name__},
            )

        allowed = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - allowed)
        if unknown:
            raise InvalidNodeConfigError(
                f"Unknown config keys for node '{node}': {unknown}",
                details={"node": node, "unknown_keys": unknown, "allowed": sorted(allowed)},
            )

        values: Dict[str, Any] = {}
        for key in ("record_count", "update_count", "num_partitions"):
            if key in raw and raw[key] is not None:
                v = raw[key]
                if isinstance(v, bool) or not isinstance(v, int):
                    raise InvalidNodeConfigError(
                        f"config.{key} of node '{node}' must be an integer",
                        details={"node": node, "key": key},
                    )
                values[key] = v
        for key in ("schema", "target_path", "database", "table"):
            if key in raw and raw[key] is not None:
                v = raw[key]
                if not isinstance(v, str) or not v.strip():
                    raise InvalidNodeConfigError(
                        f"config.{key} of node '{node}' must be a non-empty string",
                        details={"node": node, "key": key},
                    )
                values[key] = v
        if raw.get("predicate") is not None:
            values["predicate"] = raw["predicate"]

        return cls(**values).validated(capability, node=node)

    def validated(self, capability: NodeCapability, *, node: str = "?") -> "NodeConfig":
        """Valida os campos exigidos pela capability e retorna a própria instância."""

        def fail(msg: str, **details: Any) -> None:
            raise InvalidNodeConfigError(msg, details={"node": node, "type": capability.value, **details})

        for key in ("record_count", "update_count"):
            value = getattr(self, key)
            if value is not None and value < 0:
                fail(f"config.{key} of node '{node}' must be >= 0", key=key)
        if self.num_partitions < 1:
            fail(f"config.num_partitions of node '{node}' must be >= 1", key="num_partitions")

        if capability is NodeCapability.GENERATE and not self.record_count:
            fail(f"Generate node '{node}' requires config.record_count > 0", key="record_count")

        if capability is NodeCapability.VALIDATE:
            p = self.predicate
            if p is None or (isinstance(p, str) and not p.strip()):
                fail(f"Validate node '{node}' requires config.predicate", key="predicate")
        if self.predicate is not None and not (isinstance(self.predicate, str) or callable(self.predicate)):
            fail(f"config.predicate of node '{node}' must be an expression or a callable", key="predicate")

        return self

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "predicate" and callable(value):
                value = f"<callable {getattr(value, '__qualname__', type(value).__name__)}>"
            out[f.name] = value
        return out


@dataclass(frozen=True)
class NodeResult:
    """
    Resultado imutável da execução de um nó.

    Campos:
        - node: nome do nó
        - capability: capability do nó
        - status: estado final (SUCCEEDED, FAILED ou SKIPPED)
        - summary: resumo textual
        - metrics: métricas numéricas (ex.: registros escritos)
        - artifacts: referências produzidas (ex.: instant do commit)
        - payload: dados adicionais; falhas carregam `payload["error"]`
        - started_at / finished_at: timestamps UTC (None quando não executado)
        - duration_ms: duração da ação

    Invariantes:
        - `status` é sempre final
        - Uma instância nunca é alterada após criada
    """
    node: str
    capability: NodeCapability
    status: NodeStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    artifacts: Dict[str, Any] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_ms: int = 0

    @property
    def error(self) -> Optional[Dict[str, Any]]:
        return self.payload.get("error")
