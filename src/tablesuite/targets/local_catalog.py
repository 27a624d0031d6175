# src/tablesuite/targets/local_catalog.py
"""
Catálogo local de referência para nós sync.

Guarda, por `database.table`, o caminho da tabela, o último instant
completado e as colunas do schema. Opcionalmente persiste o conteúdo em
um arquivo YAML, o que permite inspecionar o catálogo após a run.

O sync nunca toca a timeline da tabela: apenas lê.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from tablesuite.core.exceptions import CatalogSyncError

from .local_table import META_DIR, PROPERTIES_FILE, read_completed_instants


class LocalCatalog:
    """`CatalogClient` em memória, com persistência YAML opcional."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._entries: Dict[str, Dict[str, Any]] = {}
        if self.path is not None and self.path.exists():
            self._entries = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}

    def sync(self, *, table_path: str, database: str, table: str) -> None:
        props_path = Path(table_path) / META_DIR / PROPERTIES_FILE
        if not props_path.exists():
            raise CatalogSyncError(
                f"Cannot sync {database}.{table}: table at {table_path} is not initialised",
                details={"table_path": table_path, "database": database, "table": table},
                hint="Execute ao menos um nó de escrita antes do sync",
            )
        props = yaml.safe_load(props_path.read_text(encoding="utf-8")) or {}
        instants = read_completed_instants(table_path)

        entry = {
            "table_path": str(table_path),
            "table_type": props.get("table_type"),
            "columns": list(props.get("columns") or []),
            "last_instant": instants[-1].instant_time if instants else None,
            "synced_at": datetime.now(timezone.utc).isoformat(),
        }
        key = f"{database}.{table}"
        with self._lock:
            self._entries[key] = entry
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text(yaml.safe_dump(self._entries, sort_keys=True), encoding="utf-8")

    def get(self, database: str, table: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(f"{database}.{table}")
            return dict(entry) if entry is not None else None

    def tables(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {k: dict(v) for k, v in self._entries.items()}
