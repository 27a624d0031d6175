# src/tablesuite/core/config/merge.py
"""
Deep-merge de configuração da suite (defaults + overrides locais).

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (ex.: lista de nós de um workload inline)
    - null em qualquer lado → o override vence
    - escalar → sobrescrita direta
    - conflito de tipos → `ConfigTypeConflictError` com o caminho da chave

Invariantes:
    - A mesma entrada sempre produz a mesma saída
    - Nenhum input é mutado durante o processo
"""

from copy import deepcopy
from typing import Any, Dict, Tuple

from .errors import ConfigTypeConflictError


def _merge_at(base: Dict[str, Any], override: Dict[str, Any], path: Tuple[str, ...]) -> Dict[str, Any]:
    merged: Dict[str, Any] = deepcopy(base)

    for key, incoming in override.items():
        current = merged.get(key)
        where = path + (str(key),)

        if key not in merged or current is None or incoming is None or isinstance(incoming, list):
            merged[key] = deepcopy(incoming)
        elif isinstance(current, dict) and isinstance(incoming, dict):
            merged[key] = _merge_at(current, incoming, where)
        elif type(current) is type(incoming):
            merged[key] = deepcopy(incoming)
        else:
            raise ConfigTypeConflictError(
                f"Conflito de tipo em '{'.'.join(where)}': "
                f"{type(current).__name__} vs {type(incoming).__name__}",
                details={"key": key, "path": ".".join(where)},
            )

    return merged


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combina os defaults da suite com overrides locais em um novo dicionário.

    Raises:
        ConfigTypeConflictError: raiz não-dict ou tipos incompatíveis na mesma chave.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}",
            details={"path": ""},
        )
    return _merge_at(base, override, ())
