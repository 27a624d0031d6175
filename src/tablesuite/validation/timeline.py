# src/tablesuite/validation/timeline.py
"""
Validador da timeline de commits da tabela alvo.

Após a execução, a expectativa é derivada dos nós de escrita que chegaram
a SUCCEEDED: cada escrita aceita registra exatamente um instant de escrita
(`commit` em COPY_ON_WRITE, `deltacommit` em MERGE_ON_READ). A contagem
observada é a de instants de escrita completados após a run menos a
baseline capturada antes dela, comparada por igualdade exata.

Decisões arquiteturais:
    - Instants de compactação não entram na contagem (são housekeeping do
      motor, agendados por ele); aparecem apenas como informação no relatório
    - Forma: todo instant de escrita novo precisa ter a ação implicada pelo
      tipo da tabela
    - Divergência é `TimelineValidationError`, distinta de falhas de nós

Limites explícitos:
    - Somente leitura: nunca escreve na timeline
    - Não inspeciona conteúdo de arquivos de dados
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from tablesuite.core.config.settings import TableType
from tablesuite.core.dag.types import NodeStatus
from tablesuite.core.dag.workflow import WorkflowDag
from tablesuite.core.engine.executor import RunResult
from tablesuite.core.errors import timeline_mismatch
from tablesuite.core.exceptions import TimelineValidationError
from tablesuite.targets.interfaces import WRITE_COMMIT_ACTIONS, CommitRecord, CommitTimeline


WRITE_ACTION_BY_TABLE_TYPE: Dict[TableType, str] = {
    TableType.COPY_ON_WRITE: "commit",
    TableType.MERGE_ON_READ: "deltacommit",
}


@dataclass(frozen=True)
class ValidationExpectation:
    """Contagem e forma de commits esperadas para uma run."""

    table_type: TableType
    write_action: str
    baseline_commits: int
    expected_new_commits: int
    write_nodes: Tuple[str, ...] = ()

    @classmethod
    def from_run(
        cls,
        dag: WorkflowDag,
        run_result: RunResult,
        *,
        table_type: TableType,
        baseline_commits: int,
    ) -> "ValidationExpectation":
        succeeded = tuple(
            n.name
            for n in dag.write_nodes()
            if run_result.states.get(n.name) is NodeStatus.SUCCEEDED
        )
        return cls(
            table_type=table_type,
            write_action=WRITE_ACTION_BY_TABLE_TYPE[table_type],
            baseline_commits=baseline_commits,
            expected_new_commits=len(succeeded),
            write_nodes=succeeded,
        )

    @property
    def expected_total_commits(self) -> int:
        return self.baseline_commits + self.expected_new_commits


@dataclass(frozen=True)
class TimelineReport:
    expectation: ValidationExpectation
    observed_commits: int
    new_instants: Tuple[CommitRecord, ...] = ()
    unexpected_actions: Tuple[str, ...] = ()
    compaction_instants: int = 0

    @property
    def observed_new_commits(self) -> int:
        return self.observed_commits - self.expectation.baseline_commits

    @property
    def passed(self) -> bool:
        return (
            self.observed_new_commits == self.expectation.expected_new_commits
            and not self.unexpected_actions
        )

    def to_error(self) -> TimelineValidationError:
        payload = timeline_mismatch(
            expected=self.expectation.expected_new_commits,
            observed=self.observed_new_commits,
            baseline=self.expectation.baseline_commits,
            write_nodes=list(self.expectation.write_nodes),
            unexpected_actions=list(self.unexpected_actions),
        )
        return TimelineValidationError(
            f"Expected {self.expectation.expected_new_commits} new write commits, "
            f"observed {self.observed_new_commits}",
            details={**payload.details, "new_instants": [c.instant_time for c in self.new_instants]},
            hint=payload.hint,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "table_type": self.expectation.table_type.value,
            "write_action": self.expectation.write_action,
            "baseline_commits": self.expectation.baseline_commits,
            "expected_new_commits": self.expectation.expected_new_commits,
            "observed_new_commits": self.observed_new_commits,
            "write_nodes": list(self.expectation.write_nodes),
            "new_instants": [c.to_dict() for c in self.new_instants],
            "unexpected_actions": list(self.unexpected_actions),
            "compaction_instants": self.compaction_instants,
        }


class TimelineValidator:
    """Reconcilia o resultado da execução com a timeline ativa da tabela."""

    def __init__(self, timeline: CommitTimeline, table_path: str, table_type: TableType):
        self.timeline = timeline
        self.table_path = table_path
        self.table_type = TableType(table_type)

    def write_instants(self) -> List[CommitRecord]:
        return [c for c in self.timeline.instants(self.table_path) if c.action in WRITE_COMMIT_ACTIONS]

    def baseline_commits(self) -> int:
        return len(self.write_instants())

    def inspect(self, dag: WorkflowDag, run_result: RunResult, *, baseline_commits: int) -> TimelineReport:
        expectation = ValidationExpectation.from_run(
            dag,
            run_result,
            table_type=self.table_type,
            baseline_commits=baseline_commits,
        )
        all_instants = self.timeline.instants(self.table_path)
        writes = [c for c in all_instants if c.action in WRITE_COMMIT_ACTIONS]
        new = tuple(writes[baseline_commits:])

        unexpected = tuple(sorted({c.action for c in new if c.action != expectation.write_action}))
        last_baseline = writes[baseline_commits - 1].instant_time if 0 < baseline_commits <= len(writes) else ""
        compactions = sum(
            1 for c in all_instants
            if c.action not in WRITE_COMMIT_ACTIONS and c.instant_time > last_baseline
        )
        return TimelineReport(
            expectation=expectation,
            observed_commits=len(writes),
            new_instants=new,
            unexpected_actions=unexpected,
            compaction_instants=compactions,
        )

    def validate(self, dag: WorkflowDag, run_result: RunResult, *, baseline_commits: int) -> TimelineReport:
        """
        Retorna o relatório quando a timeline confere.

        Raises:
            TimelineValidationError: contagem ou forma divergente.
        """
        report = self.inspect(dag, run_result, baseline_commits=baseline_commits)
        if not report.passed:
            raise report.to_error()
        return report
