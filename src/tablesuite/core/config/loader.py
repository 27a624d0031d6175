# src/tablesuite/core/config/loader.py
"""
Loader canônico de configuração do Table Suite.

A configuração efetiva de uma suite é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional)

Responsabilidades do módulo:
    - Carregar arquivos de configuração em YAML ou JSON
    - Validar requisitos estruturais mínimos (tipo raiz)
    - Resolver a configuração final via deep-merge determinístico
    - Converter o resultado em `SuiteConfig` tipado (`load_suite_config`)

Invariantes:
    - O arquivo de defaults é obrigatório
    - O resultado de `load_config` é sempre um dicionário puro (`dict`)
    - Overrides nunca mutam os defaults

Limites explícitos:
    - Não constrói DAG
    - Não executa nós
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    ConfigFileNotFoundError,
    DefaultsNotFoundError,
    DuplicateConfigKeyError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .settings import SuiteConfig


_MERGE_TAG = "tag:yaml.org,2002:merge"


class KeyValuePairs(list):
    """
    Mapping de um documento preservado como lista de pares (chave, valor).

    Os primeiros `inherited` pares vêm de merge keys YAML (`<<`) e podem ser
    sobrescritos; os demais são as chaves declaradas no próprio mapping.
    """

    inherited = 0

    def declared_keys(self) -> List[Any]:
        return [k for k, _ in self[self.inherited:]]


def _construct_pairs(loader: yaml.SafeLoader, node: yaml.MappingNode) -> KeyValuePairs:
    own = sum(1 for k, _ in node.value if k.tag != _MERGE_TAG)
    loader.flatten_mapping(node)
    pairs = KeyValuePairs(
        (loader.construct_object(k, deep=True), loader.construct_object(v, deep=True))
        for k, v in node.value
    )
    pairs.inherited = len(pairs) - own
    return pairs


class _PairsLoader(yaml.SafeLoader):
    """SafeLoader que não colapsa chaves repetidas."""


_PairsLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_pairs)


def to_plain(tree: Any, *, path: Tuple[str, ...] = ()) -> Any:
    """
    Converte uma árvore com `KeyValuePairs` em dicts/listas puros.

    Raises:
        DuplicateConfigKeyError: chave repetida no mesmo mapping.
    """
    if isinstance(tree, KeyValuePairs):
        out: Dict[Any, Any] = {}
        declared = set()
        for i, (key, value) in enumerate(tree):
            where = path + (str(key),)
            if i >= tree.inherited:
                if key in declared:
                    raise DuplicateConfigKeyError(
                        f"Chave duplicada '{'.'.join(where)}'",
                        details={"key": key, "path": ".".join(where)},
                    )
                declared.add(key)
            out[key] = to_plain(value, path=where)
        return out
    if isinstance(tree, list):
        return [to_plain(v, path=path + (str(i),)) for i, v in enumerate(tree)]
    return tree


def load_document_pairs(path: Path) -> Any:
    """
    Lê um documento YAML/JSON do disco preservando chaves repetidas
    (mappings viram `KeyValuePairs`).

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
    """
    if not path.exists():
        raise ConfigFileNotFoundError(
            f"Arquivo não encontrado: {path}",
            details={"path": str(path)},
        )

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            return yaml.load(f, Loader=_PairsLoader)

    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            return json.load(f, object_pairs_hook=KeyValuePairs)

    raise UnsupportedConfigFormatError(
        f"Formato não suportado: {path.suffix}",
        details={"path": str(path)},
    )


def load_document(path: Path) -> Any:
    """
    Lê um documento YAML/JSON do disco sem validar o tipo raiz.

    Usado também pelo parser de workloads, que aplica suas próprias regras
    sobre a estrutura retornada.

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se a extensão não for suportada.
        DuplicateConfigKeyError: Se um mapping repetir uma chave.
    """
    return to_plain(load_document_pairs(path))


def _load_file(path: Path) -> Dict[str, Any]:
    """Documento de configuração cujo tipo raiz precisa ser mapping (vazio = {})."""
    data = load_document(path)

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}",
            details={"path": str(path)},
        )

    return data


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Resolve o mapping efetivo: defaults obrigatório, local opcional (ausente
    = ignorado) e com prioridade sobre os defaults.

    Raises:
        DefaultsNotFoundError: defaults ausente.
        ConfigError: formato, tipo raiz ou conflito de merge inválidos.
    """
    defaults_file = Path(defaults_path)
    if not defaults_file.exists():
        raise DefaultsNotFoundError(
            f"Arquivo de defaults não encontrado: {defaults_file}",
            details={"path": str(defaults_file)},
        )
    defaults = _load_file(defaults_file)

    effective = defaults

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            local = _load_file(local_file)
            effective = deep_merge(defaults, local)

    return effective


def load_suite_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> SuiteConfig:
    """Resolve a configuração (defaults + local) e a converte em `SuiteConfig`."""
    return SuiteConfig.from_dict(load_config(defaults_path=defaults_path, local_path=local_path))
