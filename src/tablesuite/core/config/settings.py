# src/tablesuite/core/config/settings.py
"""
Registros tipados de configuração da suite.

A configuração resolvida pelo loader é um dicionário livre; este módulo a
converte em registros imutáveis com campos obrigatórios/opcionais
explícitos, falhando cedo (`InvalidSuiteConfigError`) para qualquer
chave desconhecida, tipo errado ou valor fora do domínio.

Seções:
    - target   → tabela alvo e catálogo (`TargetConfig`)
    - workload → origem do DAG e geração de dados (`WorkloadConfig`)
    - executor → concorrência e política de falha (`ExecutorConfig`)

Invariantes:
    - `SuiteConfig.from_dict(cfg.to_dict())` reproduz `cfg`
    - Nenhum valor é coagido silenciosamente (ex.: "4" não vira 4)
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .errors import InvalidSuiteConfigError


class TableType(str, Enum):
    """Estratégia de escrita da tabela alvo."""

    COPY_ON_WRITE = "COPY_ON_WRITE"
    MERGE_ON_READ = "MERGE_ON_READ"


_MISSING = object()


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidSuiteConfigError(
            f"Config section '{name}' must be a mapping",
            details={"section": name, "received": type(value).__name__},
        )
    return dict(value)


def _reject_unknown(section: str, data: Mapping[str, Any], allowed: set) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise InvalidSuiteConfigError(
            f"Unknown keys in config section '{section}': {unknown}",
            details={"section": section, "unknown_keys": unknown, "allowed": sorted(allowed)},
        )


def _get(section: str, data: Mapping[str, Any], key: str, kind: type, default: Any = _MISSING) -> Any:
    value = data.get(key, default)
    if value is _MISSING:
        raise InvalidSuiteConfigError(
            f"Missing required config: {section}.{key}",
            details={"section": section, "key": key},
        )
    if value is None:
        return None
    # bool é subclasse de int: não aceitar True como contagem
    if kind is int and isinstance(value, bool):
        ok = False
    else:
        ok = isinstance(value, kind)
    if not ok:
        raise InvalidSuiteConfigError(
            f"Config {section}.{key} must be {kind.__name__}, got {type(value).__name__}",
            details={"section": section, "key": key, "expected": kind.__name__},
        )
    if kind is str and not value.strip():
        raise InvalidSuiteConfigError(
            f"Config {section}.{key} must be a non-empty string",
            details={"section": section, "key": key},
        )
    return value


@dataclass(frozen=True)
class TargetConfig:
    """Tabela alvo, layout de chaves e identidade no catálogo."""

    base_path: str
    table_name: str
    table_type: TableType = TableType.COPY_ON_WRITE
    record_key_field: str = "_row_key"
    partition_field: str = "partition_path"
    ordering_field: str = "timestamp"
    compaction_max_delta_commits: int = 3
    catalog_database: str = "default"
    catalog_table: Optional[str] = None

    @property
    def catalog_table_name(self) -> str:
        return self.catalog_table or self.table_name

    @property
    def table_path(self) -> str:
        return os.path.join(self.base_path, self.table_name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TargetConfig":
        s = "target"
        _reject_unknown(s, data, {f for f in cls.__dataclass_fields__})

        raw_type = _get(s, data, "table_type", str, TableType.COPY_ON_WRITE.value)
        try:
            table_type = TableType(str(raw_type).upper())
        except ValueError:
            raise InvalidSuiteConfigError(
                f"Unsupported table type: {raw_type}",
                details={"allowed": [t.value for t in TableType]},
            ) from None

        compaction = _get(s, data, "compaction_max_delta_commits", int, 3)
        if compaction < 1:
            raise InvalidSuiteConfigError(
                "target.compaction_max_delta_commits must be >= 1",
                details={"value": compaction},
            )

        return cls(
            base_path=_get(s, data, "base_path", str),
            table_name=_get(s, data, "table_name", str),
            table_type=table_type,
            record_key_field=_get(s, data, "record_key_field", str, "_row_key"),
            partition_field=_get(s, data, "partition_field", str, "partition_path"),
            ordering_field=_get(s, data, "ordering_field", str, "timestamp"),
            compaction_max_delta_commits=compaction,
            catalog_database=_get(s, data, "catalog_database", str, "default"),
            catalog_table=_get(s, data, "catalog_table", str, None),
        )


@dataclass(frozen=True)
class WorkloadConfig:
    """Origem do DAG (gerador nomeado ou documento) e parâmetros de dados."""

    dag_generator: str = "insert_upsert_validate"
    yaml_path: Optional[str] = None
    input_base_path: Optional[str] = None
    record_count: int = 100
    seed: int = 0
    manifest_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkloadConfig":
        s = "workload"
        _reject_unknown(s, data, {f for f in cls.__dataclass_fields__})

        record_count = _get(s, data, "record_count", int, 100)
        if record_count < 1:
            raise InvalidSuiteConfigError(
                "workload.record_count must be >= 1",
                details={"value": record_count},
            )

        return cls(
            dag_generator=_get(s, data, "dag_generator", str, "insert_upsert_validate"),
            yaml_path=_get(s, data, "yaml_path", str, None),
            input_base_path=_get(s, data, "input_base_path", str, None),
            record_count=record_count,
            seed=_get(s, data, "seed", int, 0),
            manifest_dir=_get(s, data, "manifest_dir", str, None),
        )


@dataclass(frozen=True)
class ExecutorConfig:
    """Limite de workers e política de parada."""

    max_workers: int = 4
    fail_fast: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutorConfig":
        s = "executor"
        _reject_unknown(s, data, {f for f in cls.__dataclass_fields__})

        max_workers = _get(s, data, "max_workers", int, 4)
        if max_workers < 1:
            raise InvalidSuiteConfigError(
                "executor.max_workers must be >= 1",
                details={"value": max_workers},
            )

        return cls(
            max_workers=max_workers,
            fail_fast=_get(s, data, "fail_fast", bool, False),
        )


@dataclass(frozen=True)
class SuiteConfig:
    """
    Configuração tipada e imutável de uma suite.

    Construída uma vez por run e compartilhada (somente leitura) por
    gerador, executor, ações e validador via `RunContext`.
    """

    target: TargetConfig
    workload: WorkloadConfig = field(default_factory=WorkloadConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SuiteConfig":
        if not isinstance(raw, Mapping):
            raise InvalidSuiteConfigError(
                f"Suite config must be a mapping, got {type(raw).__name__}",
            )
        _reject_unknown("<root>", raw, {"target", "workload", "executor"})

        return cls(
            target=TargetConfig.from_dict(_section(raw, "target")),
            workload=WorkloadConfig.from_dict(_section(raw, "workload")),
            executor=ExecutorConfig.from_dict(_section(raw, "executor")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["target"]["table_type"] = self.target.table_type.value
        return out
