# tests/core/dag/test_workflow_build.py
"""
Testes do construtor canônico de DAG (build_workflow_dag).

Os testes asseguram que:
- DAGs válidos preservam a ordem de declaração e derivam adjacência
- nomes duplicados e dependências inexistentes falham
- ciclos (inclusive auto-referências) são rejeitados nomeando o ciclo
- o fingerprint é estável para a mesma estrutura

Decisões arquiteturais:
    - Toda validação estrutural acontece no build, antes de qualquer execução
    - Erros estruturais são `ConfigurationError` tipados

Limites explícitos:
    - Não executa nós
    - Não valida parsing de documentos de workload (ver tests/generators)
"""

import pytest

try:
    from tablesuite.core.dag import DagNode, NodeStatus, build_workflow_dag
    from tablesuite.core.dag.workflow import find_cycle
    from tablesuite.core.exceptions import (
        ConfigurationError,
        CycleDetectedError,
        DuplicateNodeNameError,
        UnknownDependencyError,
    )
except Exception as e:  # noqa: BLE001
    build_workflow_dag = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    """Falha imediatamente quando o construtor de DAG não pode ser importado."""
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing workflow DAG builder. Implement:\n"
            "- src/tablesuite/core/dag/workflow.py (build_workflow_dag, find_cycle)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _wide():
    return [
        DagNode.create("gen_a", "generate", record_count=5),
        DagNode.create("gen_b", "generate", record_count=5),
        DagNode.create("insert_a", "insert", depends_on=["gen_a"]),
        DagNode.create("insert_b", "insert", depends_on=["gen_b"]),
        DagNode.create("upsert", "upsert", depends_on=["insert_a", "insert_b"]),
        DagNode.create("sync", "sync", depends_on=["upsert"]),
        DagNode.create("check", "validate", depends_on=["upsert"], predicate="row_count > 0"),
    ]


def test_build_preserves_declaration_order_and_adjacency(chain_nodes):
    """
    Verifica que o DAG construído expõe nós, raízes e dependentes.

    Invariantes:
        - A ordem declarada é preservada
        - Dependentes são derivados de `depends_on`
    """
    _require_imports()
    dag = build_workflow_dag(chain_nodes, name="chain")

    assert dag.name == "chain"
    assert len(dag) == 3
    assert dag.names() == ["first_insert", "first_upsert", "first_validate"]
    assert dag.roots() == ["first_insert"]
    assert dag.dependents("first_insert") == ("first_upsert",)
    assert dag.dependencies("first_validate") == ("first_upsert",)
    assert "first_upsert" in dag
    assert "missing" not in dag
    assert [n.name for n in dag.write_nodes()] == ["first_insert", "first_upsert"]


def test_transitive_dependents_follow_declaration_order():
    _require_imports()
    dag = build_workflow_dag(_wide(), name="wide")

    assert dag.transitive_dependents("gen_a") == ["insert_a", "upsert", "sync", "check"]
    assert dag.transitive_dependents("upsert") == ["sync", "check"]
    assert dag.transitive_dependents("check") == []


def test_initial_state_is_all_pending(chain_nodes):
    _require_imports()
    state = build_workflow_dag(chain_nodes).initial_state()

    assert set(state.snapshot().values()) == {NodeStatus.PENDING}


def test_duplicate_node_name_raises():
    _require_imports()
    nodes = [
        DagNode.create("first_insert", "insert"),
        DagNode.create("first_insert", "upsert"),
    ]
    with pytest.raises(DuplicateNodeNameError) as exc:
        build_workflow_dag(nodes)

    assert exc.value.details["node"] == "first_insert"


def test_unknown_dependency_raises():
    """Dependência para nó inexistente é erro de configuração, antes de executar."""
    _require_imports()
    nodes = [DagNode.create("first_upsert", "upsert", depends_on=["first_insert"])]

    with pytest.raises(UnknownDependencyError) as exc:
        build_workflow_dag(nodes)

    assert exc.value.details["dependency"] == "first_insert"
    assert isinstance(exc.value, ConfigurationError)


def test_self_dependency_is_a_one_node_cycle():
    _require_imports()
    nodes = [DagNode.create("loop", "insert", depends_on=["loop"])]

    with pytest.raises(CycleDetectedError) as exc:
        build_workflow_dag(nodes, name="self_loop")

    assert exc.value.details["cycle"] == ["loop", "loop"]
    assert exc.value.details["dag"] == "self_loop"


def test_cycle_is_rejected_and_named():
    """
    Verifica que ciclos são detectados por alcançabilidade e nomeados.

    Invariantes:
        - O ciclo reportado é um caminho fechado (primeiro == último)
        - Todos os nós do ciclo aparecem no caminho
    """
    _require_imports()
    nodes = [
        DagNode.create("a", "insert", depends_on=["c"]),
        DagNode.create("b", "upsert", depends_on=["a"]),
        DagNode.create("c", "upsert", depends_on=["b"]),
        DagNode.create("d", "sync", depends_on=["c"]),
    ]
    with pytest.raises(CycleDetectedError) as exc:
        build_workflow_dag(nodes, name="cyclic")

    cycle = exc.value.details["cycle"]
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}
    assert "d" not in cycle


def test_empty_dag_raises():
    _require_imports()
    with pytest.raises(ConfigurationError):
        build_workflow_dag([])


def test_non_node_entry_raises():
    _require_imports()
    with pytest.raises(ConfigurationError):
        build_workflow_dag([{"name": "x", "type": "insert"}])


def test_find_cycle_is_deterministic():
    _require_imports()
    graph = {"b": ["a"], "a": ["b"], "c": []}

    assert find_cycle(graph) == ["a", "b", "a"]
    assert find_cycle({"a": [], "b": ["a"]}) == []


def test_fingerprint_is_stable_for_same_structure():
    _require_imports()
    first = build_workflow_dag(_wide(), name="wide")
    second = build_workflow_dag(_wide(), name="wide")

    assert first.fingerprint() == second.fingerprint()
    assert len(first.fingerprint()) == 64


def test_fingerprint_changes_with_structure():
    _require_imports()
    nodes = _wide()
    other = nodes[:-1] + [DagNode.create("check", "validate", depends_on=["sync"], predicate="row_count > 0")]

    assert build_workflow_dag(nodes).fingerprint() != build_workflow_dag(other).fingerprint()
