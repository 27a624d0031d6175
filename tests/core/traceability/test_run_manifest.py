# tests/core/traceability/test_run_manifest.py
"""
Testes do Manifest de run (criação, atualizações por nó, Event Log, round-trip).

Os testes asseguram que:
- o Manifest inicial contém metadados mínimos e nenhum evento
- atualizações por nó consolidam status, timestamps e métricas
- o Event Log cresce na ordem das chamadas
- save/load preserva integralmente o conteúdo

Decisões arquiteturais:
    - O Manifest é atualizado de forma incremental e explícita
    - Timestamps são fornecidos externamente (nunca gerados implicitamente)

Limites explícitos:
    - Não executa DAGs (ver tests/core/engine e tests/e2e)
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

try:
    from tablesuite.core.traceability.manifest import (
        RunManifest,
        add_event,
        create_manifest,
        load_manifest,
        node_failed,
        node_finished,
        node_skipped,
        node_started,
        record_validation,
        run_finished,
        save_manifest,
    )
except Exception as e:  # noqa: BLE001
    create_manifest = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


T0 = datetime(2026, 1, 16, 12, 0, 0, tzinfo=timezone.utc)


def _require_imports():
    """
    Garante que as APIs do Manifest estejam disponíveis para os testes.

    Falha imediatamente, sem fallback, quando `manifest.py` não expõe
    criação, atualização por nó e persistência.
    """
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing manifest API. Implement:\n"
            "- src/tablesuite/core/traceability/manifest.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _manifest():
    return create_manifest(
        run_id="run-001",
        started_at=T0,
        suite_version="0.1.0",
        config_hash="c" * 64,
        dag_hash="d" * 64,
        dag_name="insert_upsert_validate",
    )


def test_create_manifest_has_minimum_fields():
    """
    Verifica o conteúdo mínimo do Manifest recém-criado.

    Invariantes:
        - `run` carrega run_id, started_at, suite_version e dag_name
        - `inputs` carrega os hashes de configuração e de DAG
        - O Event Log inicia vazio
    """
    _require_imports()
    data = _manifest().to_dict()

    assert data["run"] == {
        "run_id": "run-001",
        "started_at": "2026-01-16T12:00:00+00:00",
        "suite_version": "0.1.0",
        "dag_name": "insert_upsert_validate",
    }
    assert data["inputs"] == {"config_hash": "c" * 64, "dag_hash": "d" * 64}
    assert data["nodes"] == {}
    assert data["events"] == []
    assert data["validation"] == {}


def test_naive_timestamps_are_assumed_utc():
    _require_imports()
    m = create_manifest(
        run_id="r",
        started_at=datetime(2026, 1, 16),
        suite_version="0",
        config_hash="c",
        dag_hash="d",
    )

    assert m.run["started_at"] == "2026-01-16T00:00:00+00:00"
    assert "dag_name" not in m.run


def test_event_log_appends_ordered_events():
    _require_imports()
    m = _manifest()

    add_event(m, event_type="baseline_captured", ts=T0, payload={"commits": 2})
    node_started(m, node="first_insert", capability="insert", ts=T0 + timedelta(seconds=1))
    run_finished(m, ts=T0 + timedelta(seconds=2), status="succeeded", outcome="success")

    assert m.event_types() == ["baseline_captured", "node_started", "run_finished"]
    assert m.event_types("first_insert") == ["node_started"]
    assert m.events[0]["payload"] == {"commits": 2}
    assert "node" not in m.events[0]
    assert m.run["status"] == "succeeded"
    assert m.run["outcome"] == "success"


def test_incremental_node_update_records_status_and_timestamps():
    """
    Verifica que `node_started` → `node_finished` consolida o estado do nó.

    Invariantes:
        - `duration_ms` é derivado dos timestamps
        - metrics, artifacts e warnings do resultado são preservados
    """
    _require_imports()
    m = _manifest()

    node_started(m, node="first_insert", capability="insert", ts=T0 + timedelta(seconds=1))
    node_finished(
        m,
        node="first_insert",
        ts=T0 + timedelta(seconds=3),
        result={
            "status": "succeeded",
            "summary": "wrote 10 records",
            "metrics": {"records_written": 10},
            "artifacts": {"commit": {"instant_time": "20260116120003000", "action": "commit"}},
            "warnings": ["w1"],
        },
    )

    n = m.to_dict()["nodes"]["first_insert"]
    assert n["type"] == "insert"
    assert n["status"] == "succeeded"
    assert n["duration_ms"] == 2000
    assert n["metrics"] == {"records_written": 10}
    assert n["artifacts"]["commit"]["action"] == "commit"
    assert n["warnings"] == ["w1"]


def test_failed_and_skipped_nodes_are_recorded():
    _require_imports()
    m = _manifest()

    node_started(m, node="first_upsert", capability="upsert", ts=T0)
    node_failed(m, node="first_upsert", ts=T0, error={"type": "SchemaMismatchError", "message": "boom"})
    node_skipped(m, node="first_validate", ts=T0, reason={"type": "NODE_SKIPPED_UPSTREAM"})

    nodes = m.to_dict()["nodes"]
    assert nodes["first_upsert"]["status"] == "failed"
    assert nodes["first_upsert"]["error"]["type"] == "SchemaMismatchError"
    assert nodes["first_validate"]["status"] == "skipped"
    assert "started_at" not in nodes["first_validate"]
    assert m.event_types() == ["node_started", "node_failed", "node_skipped"]


def test_round_trip_save_load(tmp_path: Path):
    """save → load reproduz o mesmo dicionário, incluindo o relatório de validação."""
    _require_imports()
    m = _manifest()
    node_started(m, node="first_insert", capability="insert", ts=T0)
    node_finished(m, node="first_insert", ts=T0, result={"status": "succeeded", "summary": "ok"})
    record_validation(m, report={"passed": True, "expected_new_commits": 1, "observed_new_commits": 1})
    run_finished(m, ts=T0, status="succeeded", outcome="success")

    path = tmp_path / "nested" / "manifest.json"
    save_manifest(m, path)
    loaded = load_manifest(path)

    assert isinstance(loaded, RunManifest)
    assert loaded.to_dict() == m.to_dict()
    assert loaded.validation["passed"] is True
