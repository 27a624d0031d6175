# src/tablesuite/generators/parser.py
"""
Parser de documentos declarativos de workload (YAML/JSON).

Formatos aceitos:

    dag_name: simple
    nodes:
      - name: first_insert
        type: insert
        deps: none
        config: {record_count: 100}
      - name: first_validate
        type: validate
        deps: [first_insert]
        config: {predicate: "row_count >= 100"}

ou `nodes` (alias `dag_content`) como mapeamento nome → entrada. Um
documento sem `nodes` é interpretado inteiro como mapeamento nome →
entrada (exceto `dag_name`).

Chaves de entrada: `type` (obrigatória), `deps` (lista, nome único ou
`none`/null/vazio) e `config` (mapeamento). Chaves desconhecidas são
rejeitadas, assim como referências inválidas e ciclos (via
`build_workflow_dag`), sempre com `ConfigurationError` e antes de
qualquer execução.

Invariantes:
    - A ordem dos nós no DAG é a ordem do documento
    - O mesmo documento produz sempre o mesmo DAG (mesmo fingerprint)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tablesuite.core.config.loader import KeyValuePairs, load_document_pairs, to_plain
from tablesuite.core.config.settings import SuiteConfig
from tablesuite.core.dag.node import DagNode
from tablesuite.core.dag.types import NodeCapability, NodeConfig
from tablesuite.core.dag.workflow import WorkflowDag, build_workflow_dag
from tablesuite.core.exceptions import ConfigurationError, DuplicateNodeNameError, InvalidNodeConfigError


_ENTRY_KEYS = {"name", "type", "deps", "config"}
_NODE_SECTIONS = ("nodes", "dag_content")
_NO_DEPS = {"", "none", "null"}


def _parse_deps(raw: Any, *, node: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return () if raw.strip().lower() in _NO_DEPS else (raw.strip(),)
    if isinstance(raw, (list, tuple)):
        deps: List[str] = []
        for d in raw:
            if not isinstance(d, str) or not d.strip():
                raise InvalidNodeConfigError(
                    f"Dependencies of node '{node}' must be node names",
                    details={"node": node, "deps": repr(raw)},
                )
            deps.append(d.strip())
        return tuple(deps)
    raise InvalidNodeConfigError(
        f"Dependencies of node '{node}' must be a list or a single name",
        details={"node": node, "received": type(raw).__name__},
    )


def _parse_entry(name: Any, entry: Any) -> DagNode:
    if not isinstance(name, str) or not name.strip():
        raise InvalidNodeConfigError("Node name must be a non-empty string", details={"name": repr(name)})
    if not isinstance(entry, Mapping):
        raise InvalidNodeConfigError(
            f"Entry of node '{name}' must be a mapping",
            details={"node": name, "received": type(entry).__name__},
        )

    unknown = sorted(set(entry) - _ENTRY_KEYS)
    if unknown:
        raise InvalidNodeConfigError(
            f"Unknown keys in entry of node '{name}': {unknown}",
            details={"node": name, "unknown_keys": unknown, "allowed": sorted(_ENTRY_KEYS)},
        )
    if "name" in entry and entry["name"] != name:
        raise InvalidNodeConfigError(
            f"Entry name '{entry['name']}' does not match key '{name}'",
            details={"node": name},
        )
    if "type" not in entry:
        raise InvalidNodeConfigError(f"Node '{name}' has no type", details={"node": name})

    capability = NodeCapability.parse(entry["type"])
    config = NodeConfig.from_dict(capability, entry.get("config"), node=name)
    return DagNode.create(
        name,
        capability,
        depends_on=_parse_deps(entry.get("deps"), node=name),
        config=config,
    )


def _entries(doc: Mapping[str, Any]) -> List[Tuple[Any, Any]]:
    sections = [k for k in _NODE_SECTIONS if k in doc]
    if len(sections) > 1:
        raise ConfigurationError(
            "Workload document declares both 'nodes' and 'dag_content'",
            details={"sections": sections},
        )

    if not sections:
        return [(k, v) for k, v in doc.items() if k != "dag_name"]

    unknown = sorted(set(doc) - {"dag_name", sections[0]})
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in workload document: {unknown}",
            details={"unknown_keys": unknown},
        )
    nodes = doc[sections[0]]
    if isinstance(nodes, Mapping):
        return list(nodes.items())
    if isinstance(nodes, list):
        out = []
        for entry in nodes:
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise InvalidNodeConfigError(
                    "Every node entry in a list needs a 'name'",
                    details={"entry": repr(entry)},
                )
            out.append((entry["name"], entry))
        return out
    raise ConfigurationError(
        f"'{sections[0]}' must be a list or a mapping",
        details={"received": type(nodes).__name__},
    )


def parse_workload(doc: Any, *, name: Optional[str] = None) -> WorkflowDag:
    """
    Constrói um `WorkflowDag` a partir de um documento já carregado.

    Args:
        doc: mapeamento carregado de YAML/JSON.
        name: nome do DAG quando o documento não declara `dag_name`.

    Raises:
        ConfigurationError: documento malformado, tipo/config inválidos,
            dependências desconhecidas, nomes duplicados ou ciclos.
    """
    if not isinstance(doc, Mapping):
        raise ConfigurationError(
            f"Workload document must be a mapping, got {type(doc).__name__}",
            details={"received": type(doc).__name__},
        )
    dag_name = doc.get("dag_name") or name or "workload"
    if not isinstance(dag_name, str):
        raise ConfigurationError("dag_name must be a string", details={"dag_name": repr(dag_name)})

    nodes = [_parse_entry(n, e) for n, e in _entries(doc)]
    return build_workflow_dag(nodes, name=dag_name)


def _reject_duplicate_node_names(raw: Any, *, source: str) -> None:
    """
    Nomes repetidos na forma mapeamento (`nodes`/`dag_content` ou o documento
    inteiro) sumiriam no dict carregado; são checados ainda como pares.
    """
    if not isinstance(raw, KeyValuePairs):
        return
    sections = [v for k, v in raw if k in _NODE_SECTIONS]
    if sections:
        candidates = [s.declared_keys() for s in sections if isinstance(s, KeyValuePairs)]
    else:
        candidates = [[k for k in raw.declared_keys() if k != "dag_name"]]

    for names in candidates:
        seen = set()
        for n in names:
            if n in seen:
                raise DuplicateNodeNameError(
                    f"Duplicate node name: {n}",
                    details={"node": n, "source": source},
                )
            seen.add(n)


def load_workload(path: Any) -> WorkflowDag:
    p = Path(path)
    raw = load_document_pairs(p)
    _reject_duplicate_node_names(raw, source=str(p))
    return parse_workload(to_plain(raw), name=p.stem)


class YamlWorkloadDagGenerator:
    """Gerador que lê o DAG de um documento de workload em disco."""

    name = "yaml"

    def __init__(self, path: Any):
        self.path = Path(path)

    def build(self, config: SuiteConfig) -> WorkflowDag:
        return load_workload(self.path)
