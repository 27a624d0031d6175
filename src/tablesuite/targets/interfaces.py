# src/tablesuite/targets/interfaces.py
"""
Interfaces consumidas do motor de tabela e do catálogo.

O Table Suite não implementa armazenamento transacional: ele apenas
conversa com o alvo através dos contratos abaixo. Qualquer motor real
(ou o `LocalTable` de referência) é plugado via `TableServices`.

Contratos:
    - TableWriter    → aceita um lote + modo (insert/upsert) e retorna o commit criado
    - TableReader    → lê o estado atual da tabela (registros e arquivos de dados)
    - CommitTimeline → lista os instants completados de um caminho de tabela
    - CatalogClient  → publica metadados da tabela em um catálogo externo

Invariantes:
    - A timeline é propriedade exclusiva do motor; o Table Suite só a lê
    - Cada chamada bem-sucedida de `write` corresponde a exatamente um commit de escrita

Limites explícitos:
    - Não depende do modelo de nós (evita import circular com `core.dag`)
    - Não define durabilidade nem atomicidade (responsabilidade do motor)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple, runtime_checkable

import pandas as pd

from tablesuite.core.exceptions import TableReadError


class WriteMode(str, Enum):
    INSERT = "insert"
    UPSERT = "upsert"


# ações de instant que representam uma escrita aceita (uma por chamada de write)
WRITE_COMMIT_ACTIONS = frozenset({"commit", "deltacommit"})


@dataclass(frozen=True)
class CommitRecord:
    """
    Instant completado na timeline da tabela alvo.

    Campos:
        - instant_time: identificador ordenável do instant
        - action: tipo do instant (`commit`, `deltacommit`, `compaction`, ...)
        - completed_at: horário de conclusão informado pelo motor
        - warnings: avisos do motor sobre o commit (ex.: housekeeping que
          falhou depois do commit completado)
    """
    instant_time: str
    action: str
    completed_at: Optional[datetime] = None
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "instant_time": self.instant_time,
            "action": self.action,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "warnings": list(self.warnings),
        }


@runtime_checkable
class TableWriter(Protocol):
    def write(self, records: pd.DataFrame, *, mode: WriteMode) -> CommitRecord:
        """Submete o lote e retorna o commit criado (ou levanta em caso de falha)."""
        ...


@runtime_checkable
class TableReader(Protocol):
    def read(self) -> pd.DataFrame:
        ...

    def data_files(self) -> List[str]:
        ...


@runtime_checkable
class CommitTimeline(Protocol):
    def instants(self, table_path: str) -> List[CommitRecord]:
        """Instants completados, em ordem de instant_time."""
        ...


@runtime_checkable
class CatalogClient(Protocol):
    def sync(self, *, table_path: str, database: str, table: str) -> None:
        ...


@dataclass(frozen=True)
class TableServices:
    """
    Colaboradores externos de uma run, injetados no `RunContext`.

    `reader` observa a tabela em `table_path`; `reader_factory` (opcional)
    abre leitores para outros caminhos, usados por nós com `target_path`.
    """

    writer: TableWriter
    reader: TableReader
    timeline: CommitTimeline
    catalog: CatalogClient
    table_path: str
    reader_factory: Optional[Callable[[str], TableReader]] = None

    def reader_for(self, table_path: str) -> TableReader:
        if os.path.normpath(table_path) == os.path.normpath(self.table_path):
            return self.reader
        if self.reader_factory is None:
            raise TableReadError(
                f"No reader available for table at {table_path}",
                details={"table_path": table_path, "default_table_path": self.table_path},
                hint="Injete `reader_factory` em TableServices para observar outros caminhos",
            )
        return self.reader_factory(table_path)
