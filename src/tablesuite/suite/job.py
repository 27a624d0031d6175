# src/tablesuite/suite/job.py
"""
Orquestrador ponta a ponta da suite.

`SuiteJob.run_test_suite()` é a camada mais externa e mais fina:

    1. constrói o DAG (documento de workload ou gerador nomeado);
       `ConfigurationError` propaga antes de qualquer execução
    2. abre um contexto de run com setup/teardown explícitos
       (diretórios, serviços da tabela alvo, stop signal, artifacts)
    3. captura a baseline de commits de escrita
    4. executa o DAG (`DagExecutor`)
    5. valida a timeline (sempre, mesmo com nós falhos)
    6. registra e persiste o Manifest
    7. devolve um `SuiteOutcome`

Decisões arquiteturais:
    - Nenhum estado global de fixture: tudo trafega pelo `RunContext`
    - Serviços externos podem ser injetados; sem injeção, usa-se a tabela
      e o catálogo locais de referência
    - O orquestrador nunca levanta por falha de nó ou de validação:
      o chamador decide via `SuiteOutcome.raise_for_status()`
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from tablesuite import __version__
from tablesuite.actions import default_registry
from tablesuite.core.config.hashing import compute_config_hash
from tablesuite.core.config.loader import load_suite_config
from tablesuite.core.config.settings import SuiteConfig
from tablesuite.core.dag.context import RunContext
from tablesuite.core.dag.registry import ActionRegistry
from tablesuite.core.dag.workflow import WorkflowDag
from tablesuite.core.engine.executor import DagExecutor
from tablesuite.core.traceability import manifest as mf
from tablesuite.generators import GeneratorRegistry, YamlWorkloadDagGenerator, default_generators
from tablesuite.targets import TableServices, local_services
from tablesuite.validation.timeline import TimelineValidator

from .outcome import SuiteOutcome


class SuiteJob:
    """Driver de uma run: gerador → executor → validador."""

    def __init__(
        self,
        config: SuiteConfig,
        *,
        services: Optional[TableServices] = None,
        registry: Optional[ActionRegistry] = None,
        generators: Optional[GeneratorRegistry] = None,
        run_id: Optional[str] = None,
    ):
        self.config = config
        self.services = services
        self.registry = registry or default_registry()
        self.generators = generators or default_generators()
        self.run_id = run_id or uuid.uuid4().hex
        self.last_context: Optional[RunContext] = None

    @classmethod
    def from_files(cls, *, defaults_path: str, local_path: Optional[str] = None, **kwargs) -> "SuiteJob":
        return cls(load_suite_config(defaults_path=defaults_path, local_path=local_path), **kwargs)

    def build_dag(self) -> WorkflowDag:
        workload = self.config.workload
        if workload.yaml_path:
            return YamlWorkloadDagGenerator(workload.yaml_path).build(self.config)
        return self.generators.build(workload.dag_generator, self.config)

    def _open_context(self, dag: WorkflowDag) -> RunContext:
        target = self.config.target
        workload = self.config.workload

        Path(target.base_path).mkdir(parents=True, exist_ok=True)
        if workload.input_base_path:
            Path(workload.input_base_path).mkdir(parents=True, exist_ok=True)

        started = datetime.now(timezone.utc)
        ctx = RunContext(
            run_id=self.run_id,
            created_at=started,
            config=self.config,
            services=self.services or local_services(target),
            meta={"table_path": target.table_path, "dag_name": dag.name},
        )
        ctx.manifest = mf.create_manifest(
            run_id=self.run_id,
            started_at=started,
            suite_version=__version__,
            config_hash=compute_config_hash(self.config.to_dict()),
            dag_hash=dag.fingerprint(),
            dag_name=dag.name,
        )
        ctx.log(node="<run>", level="info", message="run started", dag=dag.name, nodes=len(dag))
        return ctx

    @staticmethod
    def _close_context(ctx: RunContext) -> None:
        # nada sobrevive à run: o stop signal bloqueia submissões tardias
        ctx.request_stop(reason="run context closed")
        ctx.clear_artifacts()

    def run_test_suite(self) -> SuiteOutcome:
        dag = self.build_dag()

        ctx = self._open_context(dag)
        self.last_context = ctx
        try:
            validator = TimelineValidator(
                ctx.services.timeline,
                ctx.services.table_path,
                self.config.target.table_type,
            )
            baseline = validator.baseline_commits()
            mf.add_event(
                ctx.manifest,
                event_type="baseline_captured",
                ts=datetime.now(timezone.utc),
                payload={"write_commits": baseline},
            )

            run_result = DagExecutor(dag=dag, ctx=ctx, registry=self.registry).run()
            report = validator.inspect(dag, run_result, baseline_commits=baseline)

            manifest_path = None
            if self.config.workload.manifest_dir:
                manifest_path = str(Path(self.config.workload.manifest_dir) / f"manifest-{self.run_id}.json")

            outcome = SuiteOutcome.from_run(
                run_id=self.run_id,
                run_result=run_result,
                report=report,
                manifest_path=manifest_path,
            )

            ctx.log(
                node="<run>",
                level="info" if outcome.succeeded else "error",
                message="run finished",
                outcome=outcome.status.value,
                expected_commits=outcome.expected_commits,
                observed_commits=outcome.observed_commits,
            )
            mf.record_validation(ctx.manifest, report=report.to_dict())
            mf.run_finished(
                ctx.manifest,
                ts=datetime.now(timezone.utc),
                status=run_result.status.value,
                outcome=outcome.status.value,
            )
            if manifest_path is not None:
                mf.save_manifest(ctx.manifest, Path(manifest_path))

            return outcome
        finally:
            self._close_context(ctx)
