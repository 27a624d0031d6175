# src/tablesuite/core/traceability/manifest.py
"""
Manifest de run: rastreabilidade forense de uma execução do workload.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run_id, início, versão do Table Suite)
    - hashes semânticos de entradas (config resolvida e fingerprint do DAG)
    - estado incremental de cada nó
    - Event Log ordenado de eventos explícitos
    - resultado da validação de timeline, quando registrado

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem em que o executor observou os fatos
    - O Manifest é serializável e reconstruível (round-trip JSON)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O executor é o único escritor durante a execução (thread principal)
    - O Manifest é independente do alvo (tabela, catálogo)

Limites explícitos:
    - Não executa nós
    - Não decide políticas de execução (skip, stop)
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Timestamps naive são assumidos como UTC; os demais são convertidos."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class RunManifest:
    """
    Registro forense de uma run.

    Campos principais:
        - run: metadados da execução (run_id, started_at, suite_version, dag_name)
        - inputs: hashes semânticos (config_hash, dag_hash)
        - nodes: estado incremental de cada nó, indexado por nome
        - events: Event Log ordenado
        - validation: relatório de timeline (vazio até ser registrado)
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    nodes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    validation: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "nodes": {k: dict(v) for k, v in self.nodes.items()},
            "events": [dict(e) for e in self.events],
            "validation": dict(self.validation),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            nodes={k: dict(v) for k, v in (data.get("nodes", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
            validation=dict(data.get("validation", {}) or {}),
        )

    def event_types(self, node: Optional[str] = None) -> List[str]:
        return [
            e["event_type"]
            for e in self.events
            if node is None or e.get("node") == node
        ]


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    suite_version: str,
    config_hash: str,
    dag_hash: str,
    dag_name: Optional[str] = None,
) -> RunManifest:
    """
    Cria o Manifest inicial de uma run.

    Importante: esta função não emite eventos. O Event Log inicia vazio e
    só é preenchido por `add_event` e pelos helpers `node_*`.
    """
    started_at = _ensure_tzaware_utc(started_at)
    run: Dict[str, Any] = {
        "run_id": run_id,
        "started_at": _iso(started_at),
        "suite_version": suite_version,
    }
    if dag_name is not None:
        run["dag_name"] = dag_name
    return RunManifest(
        run=run,
        inputs={"config_hash": config_hash, "dag_hash": dag_hash},
    )


def add_event(
    manifest: RunManifest,
    *,
    event_type: str,
    ts: datetime,
    node: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Adiciona exatamente um evento ao Event Log, na ordem de chamada."""
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if node is not None:
        ev["node"] = node
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def node_started(manifest: RunManifest, *, node: str, capability: str, ts: datetime) -> None:
    ts = _ensure_tzaware_utc(ts)
    manifest.nodes.setdefault(node, {"node": node})
    manifest.nodes[node].update(
        {
            "type": capability,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(manifest, event_type="node_started", ts=ts, node=node, payload={"type": capability})


def node_finished(manifest: RunManifest, *, node: str, ts: datetime, result: Dict[str, Any]) -> None:
    """
    Registra a conclusão bem-sucedida de um nó.

    A duração é calculada a partir de `started_at` quando disponível;
    `result` carrega summary, metrics e artifacts do `NodeResult`.
    """
    ts = _ensure_tzaware_utc(ts)
    n = manifest.nodes.setdefault(node, {"node": node})
    started_iso = n.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts

    status = result.get("status", "succeeded")
    n.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "metrics": result.get("metrics", {}) or {},
            "warnings": result.get("warnings", []) or [],
            "artifacts": result.get("artifacts", {}) or {},
        }
    )
    add_event(
        manifest,
        event_type="node_finished",
        ts=ts,
        node=node,
        payload={"status": status, "duration_ms": n["duration_ms"]},
    )


def node_failed(manifest: RunManifest, *, node: str, ts: datetime, error: Dict[str, Any]) -> None:
    ts = _ensure_tzaware_utc(ts)
    n = manifest.nodes.setdefault(node, {"node": node})
    n.update({"status": "failed", "finished_at": _iso(ts), "error": error})
    add_event(manifest, event_type="node_failed", ts=ts, node=node, payload={"error": error})


def node_skipped(manifest: RunManifest, *, node: str, ts: datetime, reason: Dict[str, Any]) -> None:
    """Nós pulados nunca foram iniciados: não possuem started_at nem duração."""
    ts = _ensure_tzaware_utc(ts)
    n = manifest.nodes.setdefault(node, {"node": node})
    n.update({"status": "skipped", "finished_at": _iso(ts), "reason": reason})
    add_event(manifest, event_type="node_skipped", ts=ts, node=node, payload={"reason": reason})


def run_finished(manifest: RunManifest, *, ts: datetime, status: str, outcome: Optional[str] = None) -> None:
    ts = _ensure_tzaware_utc(ts)
    manifest.run["finished_at"] = _iso(ts)
    manifest.run["status"] = status
    payload: Dict[str, Any] = {"status": status}
    if outcome is not None:
        manifest.run["outcome"] = outcome
        payload["outcome"] = outcome
    add_event(manifest, event_type="run_finished", ts=ts, payload=payload)


def record_validation(manifest: RunManifest, *, report: Dict[str, Any]) -> None:
    manifest.validation = dict(report)


def save_manifest(manifest: RunManifest, path: Path) -> None:
    """
    Persiste o Manifest em JSON determinístico (chaves ordenadas).

    Diretórios intermediários são criados automaticamente.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> RunManifest:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return RunManifest.from_dict(data)
