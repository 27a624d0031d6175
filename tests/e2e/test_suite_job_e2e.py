# tests/e2e/test_suite_job_e2e.py
"""
E2E: gerador → executor → validador sobre a tabela local real.

Cenários:
    - A: cadeia insert → upsert → validate em COW e MOR (2 commits novos)
    - B: DAG só de sync sobre tabela com histórico (0 commits novos)
    - C: escrita com schema divergente (nó falha, dependente pulado,
      timeline inalterada)
    - DAGs largos, documentos YAML, Manifest em disco, falha de validação
      e erros de configuração antes de executar

Princípios:
    - usar APENAS APIs públicas do pacote
    - toda I/O sob `tmp_path`
    - nenhum estado global entre cenários
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

import pytest

from tablesuite.core.dag import NodeStatus
from tablesuite.core.errors import NODE_SKIPPED_UPSTREAM
from tablesuite.core.exceptions import CycleDetectedError, RunFailedError, TimelineValidationError
from tablesuite.core.traceability.manifest import load_manifest
from tablesuite.data.generator import RecordGenerator
from tablesuite.data.schema import BUILTIN_SCHEMAS
from tablesuite.suite import OutcomeStatus, SuiteJob
from tablesuite.targets import LocalTable, LocalTimeline, WriteMode, local_services


TABLE_TYPES = ["COPY_ON_WRITE", "MERGE_ON_READ"]


def _prewrite(config, count=5):
    """Commit feito fora da run (vira baseline)."""
    table = LocalTable.from_config(config.target)
    gen = RecordGenerator(
        schema=BUILTIN_SCHEMAS["trips"],
        key_field=config.target.record_key_field,
        partition_field=config.target.partition_field,
        ordering_field=config.target.ordering_field,
        stream="history",
    )
    return table.write(gen.generate(count), mode=WriteMode.INSERT)


def _write_actions(config):
    return [
        c.action
        for c in LocalTimeline().instants(config.target.table_path)
        if c.action in ("commit", "deltacommit")
    ]


@pytest.mark.parametrize("table_type", TABLE_TYPES)
def test_insert_upsert_validate_succeeds(make_config, table_type):
    config = make_config(table_type)

    outcome = SuiteJob(config, run_id="scenario-a").run_test_suite()

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.dag_name == "insert_upsert_validate"
    assert outcome.expected_commits == 2
    assert outcome.observed_commits == 2
    assert outcome.failed_nodes == ()
    assert outcome.validation_error is None
    outcome.raise_for_status()

    expected_action = "commit" if table_type == "COPY_ON_WRITE" else "deltacommit"
    assert _write_actions(config) == [expected_action, expected_action]
    assert outcome.run_result.nodes["first_validate"].metrics["row_count"] == 30


@pytest.mark.parametrize("table_type", TABLE_TYPES)
def test_sync_only_run_on_existing_table(make_config, table_type):
    """
    Cenário B: DAG sem nós de escrita sobre uma tabela com commit prévio.

    Invariantes:
        - Commits anteriores à run ficam na baseline
        - Nenhum commit novo é esperado nem observado
        - O catálogo recebe a entrada da tabela
    """
    config = make_config(table_type, workload={"dag_generator": "catalog_sync"})
    _prewrite(config)
    job = SuiteJob(config, run_id="scenario-b")

    outcome = job.run_test_suite()

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.expected_commits == 0
    assert outcome.observed_commits == 0
    assert outcome.report.expectation.baseline_commits == 1
    assert job.last_context.services.catalog.get("default", "trips") is not None


def test_sync_on_missing_table_fails(make_config):
    config = make_config(workload={"dag_generator": "catalog_sync"})

    outcome = SuiteJob(config).run_test_suite()

    assert outcome.status is OutcomeStatus.FAILURE
    assert outcome.errors["catalog_sync"]["type"] == "CatalogSyncError"
    assert outcome.report.passed


@pytest.mark.parametrize("table_type", TABLE_TYPES)
def test_schema_mismatch_fails_without_new_commit(make_config, workloads_dir, table_type):
    """
    Cenário C: escrita com schema divergente do fixado pela tabela.

    Invariantes:
        - O nó de escrita falha com SchemaMismatchError
        - O dependente é pulado (nunca executado)
        - A contagem de commits não muda
    """
    config = make_config(table_type, workload={"yaml_path": str(workloads_dir / "schema_mismatch.yaml")})
    _prewrite(config)

    outcome = SuiteJob(config, run_id="scenario-c").run_test_suite()

    assert outcome.status is OutcomeStatus.FAILURE
    assert outcome.failed_nodes == ("evolved_insert",)
    assert outcome.skipped_nodes == ("after_evolution",)
    assert outcome.errors["evolved_insert"]["type"] == "SchemaMismatchError"
    skipped = outcome.run_result.nodes["after_evolution"]
    assert skipped.payload["reason"]["type"] == NODE_SKIPPED_UPSTREAM
    assert outcome.expected_commits == 0
    assert outcome.observed_commits == 0
    assert outcome.report.passed
    assert len(_write_actions(config)) == 1

    with pytest.raises(RunFailedError) as exc:
        outcome.raise_for_status()
    assert exc.value.details["failed_nodes"] == ["evolved_insert"]


@pytest.mark.parametrize("table_type", TABLE_TYPES)
def test_wide_dag_succeeds(make_config, table_type):
    config = make_config(table_type, workload={"dag_generator": "wide"}, executor={"max_workers": 4})

    outcome = SuiteJob(config).run_test_suite()

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.expected_commits == 3
    assert outcome.observed_commits == 3
    if table_type == "MERGE_ON_READ":
        assert outcome.report.compaction_instants == 1


@pytest.mark.parametrize("table_type", TABLE_TYPES)
def test_yaml_workload_exact_predicate(make_config, workloads_dir, table_type):
    config = make_config(table_type, workload={"yaml_path": str(workloads_dir / "insert_upsert_validate.yaml")})

    outcome = SuiteJob(config).run_test_suite()

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.dag_name == "insert_upsert_validate_yaml"
    assert outcome.run_result.nodes["first_validate"].metrics["row_count"] == 150


def test_yaml_mapping_workload(make_config, workloads_dir):
    config = make_config(workload={"yaml_path": str(workloads_dir / "wide_dag.yaml")})

    outcome = SuiteJob(config).run_test_suite()

    assert outcome.succeeded
    assert outcome.observed_commits == 3


def test_repeated_runs_use_fresh_baseline(make_config):
    config = make_config()

    first = SuiteJob(config).run_test_suite()
    second = SuiteJob(make_config(workload={"seed": 8})).run_test_suite()

    assert first.succeeded and second.succeeded
    assert second.report.expectation.baseline_commits == 2
    assert second.observed_commits == 2


def test_manifest_is_saved_and_loadable(make_config, tmp_path):
    manifest_dir = tmp_path / "manifests"
    config = make_config(workload={"manifest_dir": str(manifest_dir)})

    outcome = SuiteJob(config, run_id="with-manifest").run_test_suite()

    path = Path(outcome.manifest_path)
    assert path == manifest_dir / "manifest-with-manifest.json"
    manifest = load_manifest(path)
    types = manifest.event_types()
    assert types[0] == "baseline_captured"
    assert types[-1] == "run_finished"
    assert manifest.run["outcome"] == "SUCCESS"
    assert manifest.validation["passed"] is True
    assert manifest.inputs["dag_hash"]
    assert set(manifest.nodes) == {"first_insert", "first_upsert", "first_validate"}


@dataclass
class DoubleCommitWriter:
    """Writer defeituoso: cada chamada gera dois commits."""

    inner: LocalTable

    def write(self, records, *, mode):
        self.inner.write(records, mode=mode)
        return self.inner.write(records, mode=mode)


def test_extra_commits_are_a_validation_failure(make_config):
    config = make_config()
    services = local_services(config.target)
    services = replace(services, writer=DoubleCommitWriter(services.writer))

    outcome = SuiteJob(config, services=services).run_test_suite()

    assert outcome.status is OutcomeStatus.VALIDATION_FAILURE
    assert outcome.run_result.status is NodeStatus.SUCCEEDED
    assert outcome.expected_commits == 2
    assert outcome.observed_commits == 4
    with pytest.raises(TimelineValidationError) as exc:
        outcome.raise_for_status()
    assert exc.value.details["observed_new_commits"] == 4


def test_configuration_error_stops_before_execution(make_config, workloads_dir):
    config = make_config(workload={"yaml_path": str(workloads_dir / "cyclic.yaml")})
    job = SuiteJob(config)

    with pytest.raises(CycleDetectedError):
        job.run_test_suite()

    assert job.last_context is None
    assert not Path(config.target.table_path).exists()


def test_catalog_outage_fails_sync_node(make_config):
    config = make_config(
        workload={"dag_generator": "wide", "record_count": 10},
        executor={"max_workers": 1, "fail_fast": True},
    )

    class BrokenCatalog:
        def sync(self, **kwargs):
            raise RuntimeError("catalog down")

    services = replace(local_services(config.target), catalog=BrokenCatalog())
    outcome = SuiteJob(config, services=services).run_test_suite()

    assert outcome.status is OutcomeStatus.FAILURE
    assert outcome.failed_nodes == ("sync",)
    assert outcome.run_result.nodes["validate"].status is NodeStatus.SKIPPED
    assert outcome.observed_commits == outcome.expected_commits == 3


def test_run_context_is_closed_after_run(make_config):
    job = SuiteJob(make_config())

    job.run_test_suite()

    assert job.last_context.stop_requested
    assert not job.last_context.has_artifact("batch.first_insert")


def test_from_files(tmp_path):
    defaults = tmp_path / "defaults.yaml"
    defaults.write_text(
        "target:\n"
        f"  base_path: {tmp_path / 'tables'}\n"
        "  table_name: trips\n"
        "workload:\n"
        "  record_count: 8\n",
        encoding="utf-8",
    )
    local = tmp_path / "local.yaml"
    local.write_text("target:\n  table_type: MERGE_ON_READ\n", encoding="utf-8")

    job = SuiteJob.from_files(defaults_path=str(defaults), local_path=str(local), run_id="from-files")
    outcome = job.run_test_suite()

    assert job.config.target.table_type.value == "MERGE_ON_READ"
    assert outcome.succeeded
    assert outcome.run_id == "from-files"
