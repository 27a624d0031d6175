# src/tablesuite/targets/local_table.py
"""
Motor de tabela local de referência (COW / MOR) sobre o filesystem.

`LocalTable` é o colaborador usado nos testes e em runs locais: implementa
`TableWriter` e `TableReader` com uma timeline de instants no estilo de
formatos transacionais de tabela, o suficiente para que o validador
observe commits reais.

Layout em disco:
    <table_path>/
        .tablesuite/table.yaml                      propriedades + schema fixado
        .tablesuite/timeline/<instant>.<action>.requested
        .tablesuite/timeline/<instant>.<action>.inflight
        .tablesuite/timeline/<instant>.<action>     instant completado
        <partição>/base_<instant>.csv               arquivo base (COW e compactação)
        <partição>/log_<instant>.csv                delta log (MOR)

Protocolo de escrita (serializado por um lock por caminho de tabela):
    requested → inflight → arquivos de dados → completed (os.replace atômico)

Decisões arquiteturais:
    - COPY_ON_WRITE reescreve o arquivo base da partição e completa `commit`
    - MERGE_ON_READ grava um delta log e completa `deltacommit`; a cada
      `compaction_max_delta_commits` delta commits uma compactação inline
      materializa novos arquivos base e completa `compaction`; uma falha de
      I/O na compactação não desfaz o deltacommit, vira aviso no
      `CommitRecord` e a compactação é tentada de novo na próxima escrita
    - Upsert mescla por chave (última escrita vence); insert apenas acrescenta
    - O schema (conjunto de colunas) é fixado pelo primeiro commit
    - Arquivos de instants não completados nunca são lidos

Limites explícitos:
    - Um único processo; o lock não cobre escritores em outros processos
    - Não implementa rollback de instants inflight abandonados
"""

from __future__ import annotations

import os
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import yaml

from tablesuite.core.config.settings import TableType, TargetConfig
from tablesuite.core.exceptions import SchemaMismatchError, TableWriteError

from .interfaces import CommitRecord, WriteMode


META_DIR = ".tablesuite"
TIMELINE_DIR = "timeline"
PROPERTIES_FILE = "table.yaml"

COMMIT_ACTION = "commit"
DELTA_COMMIT_ACTION = "deltacommit"
COMPACTION_ACTION = "compaction"

_PENDING_SUFFIXES = (".requested", ".inflight")

_INSTANT_FORMAT = "%Y%m%d%H%M%S%f"

_registry_lock = threading.Lock()
_table_locks: Dict[str, threading.Lock] = {}


def _lock_for(table_path: str) -> threading.Lock:
    key = os.path.realpath(table_path)
    with _registry_lock:
        return _table_locks.setdefault(key, threading.Lock())


def _write_atomic(path: Path, text: str) -> None:
    tmp = path.with_name(f".tmp-{path.name}")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


def timeline_dir(table_path: str) -> Path:
    return Path(table_path) / META_DIR / TIMELINE_DIR


def read_completed_instants(table_path: str) -> List[CommitRecord]:
    """Instants completados, ordenados por instant_time."""
    tdir = timeline_dir(table_path)
    if not tdir.is_dir():
        return []

    out: List[CommitRecord] = []
    for entry in tdir.iterdir():
        name = entry.name
        if name.startswith(".") or name.endswith(_PENDING_SUFFIXES):
            continue
        instant_time, _, action = name.partition(".")
        if not action:
            continue
        meta = yaml.safe_load(entry.read_text(encoding="utf-8")) or {}
        completed = meta.get("completed_at")
        out.append(
            CommitRecord(
                instant_time=instant_time,
                action=action,
                completed_at=datetime.fromisoformat(completed) if completed else None,
            )
        )
    out.sort(key=lambda c: c.instant_time)
    return out


class LocalTimeline:
    """`CommitTimeline` sobre o diretório de timeline de tabelas locais."""

    def instants(self, table_path: str) -> List[CommitRecord]:
        return read_completed_instants(table_path)


class LocalTable:
    """Tabela local single-writer implementando `TableWriter` e `TableReader`."""

    def __init__(
        self,
        table_path: str,
        *,
        table_name: Optional[str] = None,
        table_type: TableType = TableType.COPY_ON_WRITE,
        key_field: str = "_row_key",
        partition_field: str = "partition_path",
        ordering_field: str = "timestamp",
        compaction_max_delta_commits: int = 3,
    ):
        self.table_path = str(table_path)
        self.table_name = table_name or Path(table_path).name
        self.table_type = TableType(table_type)
        self.key_field = key_field
        self.partition_field = partition_field
        self.ordering_field = ordering_field
        self.compaction_max_delta_commits = compaction_max_delta_commits
        self._lock = _lock_for(self.table_path)

    @classmethod
    def from_config(cls, target: TargetConfig) -> "LocalTable":
        return cls(
            target.table_path,
            table_name=target.table_name,
            table_type=target.table_type,
            key_field=target.record_key_field,
            partition_field=target.partition_field,
            ordering_field=target.ordering_field,
            compaction_max_delta_commits=target.compaction_max_delta_commits,
        )

    @classmethod
    def open(cls, table_path: str, *, target: TargetConfig) -> "LocalTable":
        """Abre uma tabela existente usando suas próprias propriedades (fallback: `target`)."""
        props_path = Path(table_path) / META_DIR / PROPERTIES_FILE
        props: Dict[str, Any] = {}
        if props_path.exists():
            props = yaml.safe_load(props_path.read_text(encoding="utf-8")) or {}
        return cls(
            table_path,
            table_name=props.get("table_name"),
            table_type=props.get("table_type", target.table_type),
            key_field=props.get("record_key_field", target.record_key_field),
            partition_field=props.get("partition_field", target.partition_field),
            ordering_field=props.get("ordering_field", target.ordering_field),
            compaction_max_delta_commits=props.get(
                "compaction_max_delta_commits", target.compaction_max_delta_commits
            ),
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    @property
    def meta_dir(self) -> Path:
        return Path(self.table_path) / META_DIR

    @property
    def properties_path(self) -> Path:
        return self.meta_dir / PROPERTIES_FILE

    def is_initialized(self) -> bool:
        return self.properties_path.exists()

    def properties(self) -> Dict[str, Any]:
        if not self.properties_path.exists():
            return {}
        return yaml.safe_load(self.properties_path.read_text(encoding="utf-8")) or {}

    def schema_columns(self) -> Optional[List[str]]:
        return self.properties().get("columns")

    def _initialize(self, columns: List[str]) -> None:
        props = {
            "table_name": self.table_name,
            "table_type": self.table_type.value,
            "record_key_field": self.key_field,
            "partition_field": self.partition_field,
            "ordering_field": self.ordering_field,
            "compaction_max_delta_commits": self.compaction_max_delta_commits,
            "columns": list(columns),
        }
        self.meta_dir.mkdir(parents=True, exist_ok=True)
        _write_atomic(self.properties_path, yaml.safe_dump(props, sort_keys=False))

    def _check_table_type(self) -> None:
        existing = self.properties().get("table_type")
        if existing and existing != self.table_type.value:
            raise TableWriteError(
                f"Table at {self.table_path} is {existing}, not {self.table_type.value}",
                details={"table_path": self.table_path, "table_type": existing},
            )

    def instants(self) -> List[CommitRecord]:
        return read_completed_instants(self.table_path)

    def _next_instant(self) -> str:
        candidate = datetime.now(timezone.utc).strftime(_INSTANT_FORMAT)
        tdir = timeline_dir(self.table_path)
        last = None
        if tdir.is_dir():
            times = [e.name.split(".", 1)[0] for e in tdir.iterdir() if not e.name.startswith(".")]
            last = max(times) if times else None
        if last is not None and candidate <= last:
            candidate = str(int(last) + 1).zfill(len(last))
        return candidate

    def _transition(self, instant: str, action: str, state: str) -> None:
        tdir = timeline_dir(self.table_path)
        tdir.mkdir(parents=True, exist_ok=True)
        _write_atomic(tdir / f"{instant}.{action}.{state}", "")

    def _complete(self, instant: str, action: str, meta: Dict[str, Any]) -> CommitRecord:
        completed_at = datetime.now(timezone.utc)
        body = dict(meta)
        body.update({"instant_time": instant, "action": action, "completed_at": completed_at.isoformat()})
        _write_atomic(timeline_dir(self.table_path) / f"{instant}.{action}", yaml.safe_dump(body, sort_keys=True))
        return CommitRecord(instant_time=instant, action=action, completed_at=completed_at)

    # ------------------------------------------------------------------
    # File slices
    # ------------------------------------------------------------------
    def _partition_dir(self, partition: str) -> Path:
        return Path(self.table_path).joinpath(*str(partition).split("/"))

    def _scan_files(self) -> Dict[str, List[Tuple[str, str, Path]]]:
        """partição -> [(instant, kind, path)] apenas de instants completados."""
        completed = {c.instant_time for c in self.instants()}
        root = Path(self.table_path)
        out: Dict[str, List[Tuple[str, str, Path]]] = {}
        if not root.is_dir():
            return out
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if d != META_DIR]
            for fname in filenames:
                if not fname.endswith(".csv"):
                    continue
                kind, _, rest = fname.partition("_")
                instant = rest[: -len(".csv")]
                if kind not in ("base", "log") or instant not in completed:
                    continue
                partition = Path(dirpath).relative_to(root).as_posix()
                out.setdefault(partition, []).append((instant, kind, Path(dirpath) / fname))
        for files in out.values():
            files.sort(key=lambda t: (t[0], t[1]))
        return out

    def _live_slice(self, files: List[Tuple[str, str, Path]]) -> List[Tuple[str, str, Path]]:
        """Último arquivo base e os delta logs posteriores a ele."""
        bases = [f for f in files if f[1] == "base"]
        base = bases[-1] if bases else None
        logs = [f for f in files if f[1] == "log" and (base is None or f[0] > base[0])]
        return ([base] if base else []) + logs

    def _read_csv(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, dtype={self.key_field: str, self.partition_field: str})

    def _log_mode(self, instant: str) -> str:
        meta_path = timeline_dir(self.table_path) / f"{instant}.{DELTA_COMMIT_ACTION}"
        meta = yaml.safe_load(meta_path.read_text(encoding="utf-8")) or {}
        return meta.get("operation", WriteMode.UPSERT.value)

    def _merge(self, current: Optional[pd.DataFrame], incoming: pd.DataFrame, mode: str) -> pd.DataFrame:
        if current is None or current.empty:
            merged = incoming
        else:
            merged = pd.concat([current, incoming], ignore_index=True)
        if mode == WriteMode.UPSERT.value:
            merged = merged.drop_duplicates(subset=[self.key_field], keep="last")
        return merged.reset_index(drop=True)

    def _read_partition(self, files: List[Tuple[str, str, Path]]) -> pd.DataFrame:
        frame: Optional[pd.DataFrame] = None
        for instant, kind, path in self._live_slice(files):
            df = self._read_csv(path)
            if kind == "base":
                frame = df
            else:
                frame = self._merge(frame, df, self._log_mode(instant))
        return frame if frame is not None else pd.DataFrame()

    # ------------------------------------------------------------------
    # TableReader
    # ------------------------------------------------------------------
    def read(self) -> pd.DataFrame:
        parts = [self._read_partition(files) for _, files in sorted(self._scan_files().items())]
        parts = [p for p in parts if not p.empty]
        if not parts:
            columns = self.schema_columns() or []
            return pd.DataFrame(columns=columns)
        return pd.concat(parts, ignore_index=True)

    def data_files(self) -> List[str]:
        out: List[str] = []
        for _, files in sorted(self._scan_files().items()):
            out.extend(str(p) for _, _, p in self._live_slice(files))
        return out

    # ------------------------------------------------------------------
    # TableWriter
    # ------------------------------------------------------------------
    def _check_batch(self, records: pd.DataFrame) -> List[str]:
        if not isinstance(records, pd.DataFrame) or records.empty:
            raise TableWriteError(
                "Refusing to commit an empty batch",
                details={"table_path": self.table_path},
            )
        columns = [str(c) for c in records.columns]
        for required in (self.key_field, self.partition_field):
            if required not in columns:
                raise TableWriteError(
                    f"Batch is missing required column '{required}'",
                    details={"table_path": self.table_path, "column": required},
                )
        fixed = self.schema_columns()
        if fixed is not None and set(fixed) != set(columns):
            raise SchemaMismatchError(
                f"Batch schema does not match table schema of {self.table_name}",
                details={
                    "table_path": self.table_path,
                    "missing_columns": sorted(set(fixed) - set(columns)),
                    "unexpected_columns": sorted(set(columns) - set(fixed)),
                },
                hint="Gere o lote com o mesmo schema do primeiro commit da tabela",
            )
        return fixed or columns

    def write(self, records: pd.DataFrame, *, mode: WriteMode) -> CommitRecord:
        mode = WriteMode(mode)
        with self._lock:
            self._check_table_type()
            columns = self._check_batch(records)
            batch = records[columns]

            action = COMMIT_ACTION if self.table_type is TableType.COPY_ON_WRITE else DELTA_COMMIT_ACTION
            instant = self._next_instant()
            self._transition(instant, action, "requested")
            self._transition(instant, action, "inflight")

            try:
                if self.table_type is TableType.COPY_ON_WRITE:
                    written, stale = self._write_base_files(instant, batch, mode)
                else:
                    written, stale = self._write_log_files(instant, batch), []
            except OSError as exc:
                raise TableWriteError(
                    f"Write of instant {instant} failed: {exc}",
                    details={"table_path": self.table_path, "instant": instant},
                ) from exc

            if not self.is_initialized():
                self._initialize(columns)

            record = self._complete(
                instant,
                action,
                {
                    "operation": mode.value,
                    "records_written": int(len(batch)),
                    "partitions": sorted(batch[self.partition_field].astype(str).unique().tolist()),
                    "files": written,
                },
            )
            for path in stale:
                path.unlink(missing_ok=True)

            if action == DELTA_COMMIT_ACTION:
                warning = self._compact_after_commit(instant)
                if warning is not None:
                    record = replace(record, warnings=(warning,))
            return record

    def _write_base_files(self, instant: str, batch: pd.DataFrame, mode: WriteMode) -> Tuple[List[str], List[Path]]:
        existing = self._scan_files()
        written: List[str] = []
        stale: List[Path] = []
        for partition, rows in batch.groupby(self.partition_field, sort=True):
            partition = str(partition)
            files = existing.get(partition, [])
            current = self._read_partition(files) if files else None
            merged = self._merge(current, rows, mode.value)

            pdir = self._partition_dir(partition)
            pdir.mkdir(parents=True, exist_ok=True)
            target = pdir / f"base_{instant}.csv"
            merged.to_csv(target, index=False)
            written.append(str(target))
            stale.extend(p for _, _, p in files)
        return written, stale

    def _write_log_files(self, instant: str, batch: pd.DataFrame) -> List[str]:
        written: List[str] = []
        for partition, rows in batch.groupby(self.partition_field, sort=True):
            pdir = self._partition_dir(str(partition))
            pdir.mkdir(parents=True, exist_ok=True)
            target = pdir / f"log_{instant}.csv"
            rows.to_csv(target, index=False)
            written.append(str(target))
        return written

    def _delta_commits_since_compaction(self) -> int:
        count = 0
        for c in reversed(self.instants()):
            if c.action == COMPACTION_ACTION:
                break
            if c.action == DELTA_COMMIT_ACTION:
                count += 1
        return count

    def _maybe_compact(self) -> Optional[CommitRecord]:
        if self._delta_commits_since_compaction() < self.compaction_max_delta_commits:
            return None
        return self._compact()

    def _compact_after_commit(self, instant: str) -> Optional[str]:
        """
        Compactação inline depois de um deltacommit já completado.

        Uma falha aqui não desfaz o commit: o instant de compactação fica
        pendente (ignorado na leitura) e a próxima escrita tenta de novo.
        """
        try:
            self._maybe_compact()
        except OSError as exc:
            return f"inline compaction after {instant} failed: {exc}"
        return None

    def _compact(self) -> CommitRecord:
        """Materializa cada partição em um novo arquivo base (lock já adquirido)."""
        instant = self._next_instant()
        self._transition(instant, COMPACTION_ACTION, "requested")
        self._transition(instant, COMPACTION_ACTION, "inflight")

        written: List[str] = []
        stale: List[Path] = []
        for partition, files in sorted(self._scan_files().items()):
            merged = self._read_partition(files)
            target = self._partition_dir(partition) / f"base_{instant}.csv"
            merged.to_csv(target, index=False)
            written.append(str(target))
            stale.extend(p for _, _, p in files)

        record = self._complete(instant, COMPACTION_ACTION, {"operation": "compaction", "files": written})
        for path in stale:
            path.unlink(missing_ok=True)
        return record

    def compact(self) -> CommitRecord:
        with self._lock:
            return self._compact()

