# src/tablesuite/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Table Suite.

Este módulo define a hierarquia de exceções utilizadas durante o
carregamento, o merge e a tipagem da configuração de uma suite.

Todas herdam de `ConfigurationError`: uma configuração inválida é fatal
e interrompe a suite antes que qualquer nó seja executado.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção aqui representa falha de execução de nó

Limites explícitos:
    - Não executa workload
    - Não realiza fallback ou recovery
"""

from __future__ import annotations

from dataclasses import dataclass

from tablesuite.core.exceptions import ConfigurationError


@dataclass(frozen=True, eq=False)
class ConfigError(ConfigurationError):
    """
    Exceção base para erros de carregamento e resolução de configuração.

    Permite captura genérica de falhas de arquivo/merge/tipagem, mantendo
    a distinção em relação a erros estruturais do DAG.
    """


@dataclass(frozen=True, eq=False)
class ConfigFileNotFoundError(ConfigError):
    """Arquivo de configuração ou de workload inexistente no caminho informado."""


@dataclass(frozen=True, eq=False)
class DefaultsNotFoundError(ConfigFileNotFoundError):
    """
    Arquivo de configuração base (defaults) não encontrado.

    Decisões arquiteturais:
        - O arquivo de defaults é obrigatório
        - Não há criação implícita de defaults
    """


@dataclass(frozen=True, eq=False)
class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo de configuração não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


@dataclass(frozen=True, eq=False)
class InvalidConfigRootTypeError(ConfigError):
    """Conteúdo raiz da configuração não é um dicionário."""


@dataclass(frozen=True, eq=False)
class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"executor": {"max_workers": 4}}
        - override: {"executor": "fast"}

    Nenhum merge parcial é produzido em caso de conflito.
    """


@dataclass(frozen=True, eq=False)
class InvalidSuiteConfigError(ConfigError):
    """
    Configuração resolvida não satisfaz os registros tipados da suite.

    Levantada por `SuiteConfig.from_dict` para campos obrigatórios ausentes,
    tipos incorretos, valores fora do domínio e chaves desconhecidas.
    """


@dataclass(frozen=True, eq=False)
class DuplicateConfigKeyError(ConfigError):
    """
    Mesma chave declarada duas vezes no mesmo mapping de um documento.

    YAML e JSON aceitariam o documento mantendo apenas o último valor;
    aqui a duplicata é erro (details["path"] aponta a chave).
    """
