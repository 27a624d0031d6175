# src/tablesuite/suite/outcome.py
"""
Resultado agregado de uma run da suite.

Três desfechos possíveis:
    - SUCCESS: todos os nós SUCCEEDED e a timeline confere
    - FAILURE: ao menos um nó FAILED ou SKIPPED (erros por nó enumerados)
    - VALIDATION_FAILURE: todos os nós SUCCEEDED, mas a timeline diverge
      (esperado vs observado)

Quando há falha de nó e divergência de timeline ao mesmo tempo, o desfecho
é FAILURE e o relatório de validação continua disponível em `report`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from tablesuite.core.engine.executor import RunResult
from tablesuite.core.exceptions import RunFailedError, TimelineValidationError
from tablesuite.validation.timeline import TimelineReport


class OutcomeStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"


@dataclass(frozen=True)
class SuiteOutcome:
    status: OutcomeStatus
    run_id: str
    dag_name: str
    run_result: RunResult
    report: TimelineReport
    errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    failed_nodes: Tuple[str, ...] = ()
    skipped_nodes: Tuple[str, ...] = ()
    manifest_path: Optional[str] = None

    @classmethod
    def from_run(
        cls,
        *,
        run_id: str,
        run_result: RunResult,
        report: TimelineReport,
        manifest_path: Optional[str] = None,
    ) -> "SuiteOutcome":
        if not run_result.succeeded:
            status = OutcomeStatus.FAILURE
        elif not report.passed:
            status = OutcomeStatus.VALIDATION_FAILURE
        else:
            status = OutcomeStatus.SUCCESS
        return cls(
            status=status,
            run_id=run_id,
            dag_name=run_result.dag_name,
            run_result=run_result,
            report=report,
            errors=dict(run_result.errors),
            failed_nodes=tuple(run_result.failed_nodes),
            skipped_nodes=tuple(run_result.skipped_nodes),
            manifest_path=manifest_path,
        )

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def expected_commits(self) -> int:
        return self.report.expectation.expected_new_commits

    @property
    def observed_commits(self) -> int:
        return self.report.observed_new_commits

    @property
    def validation_error(self) -> Optional[TimelineValidationError]:
        return None if self.report.passed else self.report.to_error()

    def raise_for_status(self) -> None:
        """
        Raises:
            RunFailedError: desfecho FAILURE.
            TimelineValidationError: desfecho VALIDATION_FAILURE.
        """
        if self.status is OutcomeStatus.FAILURE:
            raise RunFailedError(
                f"Run {self.run_id} failed: {len(self.failed_nodes)} failed, "
                f"{len(self.skipped_nodes)} skipped",
                details={
                    "run_id": self.run_id,
                    "dag": self.dag_name,
                    "failed_nodes": list(self.failed_nodes),
                    "skipped_nodes": list(self.skipped_nodes),
                    "errors": dict(self.errors),
                },
            )
        if self.status is OutcomeStatus.VALIDATION_FAILURE:
            raise self.report.to_error()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "run_id": self.run_id,
            "dag_name": self.dag_name,
            "node_status": {n: s.value for n, s in self.run_result.states.items()},
            "errors": dict(self.errors),
            "failed_nodes": list(self.failed_nodes),
            "skipped_nodes": list(self.skipped_nodes),
            "validation": self.report.to_dict(),
            "manifest_path": self.manifest_path,
        }
