"""
Table Suite: estruturas canônicas de erro (v1)

Este módulo define o payload serializável que representa uma falha dentro
de uma run. Exceções levantadas por ações de nó nunca atravessam o
executor: são convertidas em `SuiteErrorPayload` e anexadas ao resultado
do nó (`NodeResult.payload["error"]`).

Erros são artefatos de diagnóstico e devem ser:

- explícitos
- serializáveis
- acionáveis
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from .exceptions import SuiteException


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SuiteErrorPayload:
    """
    Payload canônico de erro do Table Suite.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo de tipos de erro (v1)
# ---------------------------------------------------------------------------

DAG_CONFIGURATION_ERROR = "DAG_CONFIGURATION_ERROR"

NODE_EXECUTION_ERROR = "NODE_EXECUTION_ERROR"
NODE_INVALID_RESULT = "NODE_INVALID_RESULT"
NODE_SKIPPED_UPSTREAM = "NODE_SKIPPED_UPSTREAM"
NODE_SKIPPED_STOPPED = "NODE_SKIPPED_STOPPED"

TIMELINE_MISMATCH = "TIMELINE_MISMATCH"


# ---------------------------------------------------------------------------
# Conversão e helpers de fábrica
# ---------------------------------------------------------------------------

def exception_to_error(exc: BaseException) -> SuiteErrorPayload:
    """Converte exceções em SuiteErrorPayload (serializável, acionável).

    Regras:
    - SuiteException: já vem com message/details/hint; o nome da classe é o código.
    - Outras exceções: encapsular como NODE_EXECUTION_ERROR sem stack trace.
    """
    if isinstance(exc, SuiteException):
        return SuiteErrorPayload(
            type=exc.__class__.__name__,
            message=exc.message or "Erro de execução",
            details=dict(exc.details or {}),
            hint=exc.hint,
        )

    return SuiteErrorPayload(
        type=NODE_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante execução do nó",
        details={"exception_class": exc.__class__.__name__},
        hint="Verifique o log da run e a configuração do nó",
    )


def node_invalid_result(*, node: str, received: str) -> SuiteErrorPayload:
    return SuiteErrorPayload(
        type=NODE_INVALID_RESULT,
        message="Ação do nó retornou tipo inválido",
        details={"node": node, "expected": "NodeResult", "received": received},
        hint="Ajuste a ação para retornar NodeResult",
    )


def node_skipped_upstream(*, node: str, failed_upstream: str) -> SuiteErrorPayload:
    return SuiteErrorPayload(
        type=NODE_SKIPPED_UPSTREAM,
        message=f"Skipped because upstream node '{failed_upstream}' failed",
        details={"node": node, "failed_upstream": failed_upstream},
        hint="Corrija a falha do nó de origem e reexecute o workload.",
    )


def node_skipped_stopped(*, node: str) -> SuiteErrorPayload:
    return SuiteErrorPayload(
        type=NODE_SKIPPED_STOPPED,
        message="Skipped because the run was stopped before the node started",
        details={"node": node},
    )


def timeline_mismatch(
    *,
    expected: int,
    observed: int,
    baseline: int,
    write_nodes: List[str],
    unexpected_actions: Optional[List[str]] = None,
) -> SuiteErrorPayload:
    return SuiteErrorPayload(
        type=TIMELINE_MISMATCH,
        message="Timeline de commits diverge do esperado pela run",
        details={
            "expected_new_commits": expected,
            "observed_new_commits": observed,
            "baseline_commits": baseline,
            "write_nodes": list(write_nodes),
            "unexpected_actions": list(unexpected_actions or []),
        },
        hint="Compare os nós de escrita bem-sucedidos com os instants completados da tabela.",
    )
