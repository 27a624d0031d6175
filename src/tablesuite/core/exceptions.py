"""
Table Suite: exceções canônicas (v1)

Este módulo define a taxonomia de exceções tipadas do harness.

Três famílias, com políticas de propagação distintas:
- ConfigurationError: workload malformado, ciclo ou dependência inexistente.
  Fatal, levantada antes de qualquer execução.
- ExecutionError: a ação de um nó falhou. Registrada por nó pelo executor,
  nunca propagada para fora dele no meio de uma run.
- ValidationError: divergência do timeline após a execução. Sempre exposta
  ao chamador, separada das falhas de nó.

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- A mensagem é curta e humana; contexto adicional vai em `details`/`hint`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class SuiteException(Exception):
    """Base class para exceções internas do Table Suite.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuração / construção do DAG
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ConfigurationError(SuiteException):
    """Definição de workload ou configuração inválida (fatal, pré-execução)."""


@dataclass(frozen=True, eq=False)
class DuplicateNodeNameError(ConfigurationError):
    """Dois nós declarados com o mesmo nome."""


@dataclass(frozen=True, eq=False)
class UnknownDependencyError(ConfigurationError):
    """Um nó referencia uma dependência que não existe no workload."""


@dataclass(frozen=True, eq=False)
class CycleDetectedError(ConfigurationError):
    """O grafo de dependências contém um ciclo (details["cycle"])."""


@dataclass(frozen=True, eq=False)
class UnknownNodeTypeError(ConfigurationError):
    """Tag de tipo de nó desconhecida ou sem ação registrada."""


@dataclass(frozen=True, eq=False)
class UnknownGeneratorError(ConfigurationError):
    """Variante de gerador de DAG não registrada."""


@dataclass(frozen=True, eq=False)
class InvalidNodeConfigError(ConfigurationError):
    """Bloco de configuração de um nó ausente, com tipo errado ou chave desconhecida."""


# ---------------------------------------------------------------------------
# Execução de nós
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ExecutionError(SuiteException):
    """Falha da ação de um nó (I/O, predicado, schema)."""


@dataclass(frozen=True, eq=False)
class PredicateFailedError(ExecutionError):
    """Predicado de validação não satisfeito ou não avaliável."""


@dataclass(frozen=True, eq=False)
class SchemaMismatchError(ExecutionError):
    """Colunas do lote não batem com o schema da tabela alvo."""


@dataclass(frozen=True, eq=False)
class TableWriteError(ExecutionError):
    """Escrita rejeitada pela tabela alvo."""


@dataclass(frozen=True, eq=False)
class TableReadError(ExecutionError):
    """Estado da tabela alvo não pôde ser lido (ex.: caminho sem leitor)."""


@dataclass(frozen=True, eq=False)
class CatalogSyncError(ExecutionError):
    """Sincronização com o catálogo externo falhou."""


@dataclass(frozen=True, eq=False)
class MissingBatchError(ExecutionError):
    """Nó de escrita sem registros para submeter."""


@dataclass(frozen=True, eq=False)
class RunFailedError(ExecutionError):
    """Uma ou mais ações de nó falharam na run (agregado do orquestrador)."""


# ---------------------------------------------------------------------------
# Validação pós-execução
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class ValidationError(SuiteException):
    """Estado observado após a run não corresponde ao esperado."""


@dataclass(frozen=True, eq=False)
class TimelineValidationError(ValidationError):
    """Contagem/forma dos commits no timeline diverge do esperado."""
