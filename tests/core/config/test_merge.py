# tests/core/config/test_merge.py
"""
Testes da política de deep-merge de configuração.

Decisões arquiteturais:
    - dict → merge recursivo
    - list → sobrescrita total
    - escalares → override vence
    - null explícito aceita override de qualquer tipo

Invariantes:
    - Nenhum input é mutado
    - Conflito de tipo é erro explícito (ConfigTypeConflictError)
"""

import pytest

from tablesuite.core.config.errors import ConfigTypeConflictError
from tablesuite.core.config.merge import deep_merge


def test_merge_overrides_scalar():
    base = {"executor": {"max_workers": 4, "fail_fast": False}}
    override = {"executor": {"max_workers": 1}}

    out = deep_merge(base, override)

    assert out == {"executor": {"max_workers": 1, "fail_fast": False}}


def test_merge_nested_sections_preserve_untouched_keys():
    base = {
        "target": {"table_name": "trips", "table_type": "COPY_ON_WRITE"},
        "workload": {"record_count": 100},
    }
    override = {"target": {"table_type": "MERGE_ON_READ"}}

    out = deep_merge(base, override)

    assert out["target"] == {"table_name": "trips", "table_type": "MERGE_ON_READ"}
    assert out["workload"] == {"record_count": 100}


def test_merge_replaces_lists_entirely():
    base = {"tags": ["nightly", "cow"]}
    override = {"tags": ["mor"]}

    assert deep_merge(base, override)["tags"] == ["mor"]


def test_merge_does_not_mutate_inputs():
    base = {"target": {"table_name": "trips"}}
    override = {"target": {"table_name": "rides"}}

    deep_merge(base, override)

    assert base == {"target": {"table_name": "trips"}}
    assert override == {"target": {"table_name": "rides"}}


def test_merge_null_default_accepts_any_override():
    base = {"workload": {"yaml_path": None}}
    override = {"workload": {"yaml_path": "dag.yaml"}}

    assert deep_merge(base, override)["workload"]["yaml_path"] == "dag.yaml"


def test_merge_type_conflict_raises():
    base = {"executor": {"max_workers": 4}}
    override = {"executor": {"max_workers": "four"}}

    with pytest.raises(ConfigTypeConflictError) as exc:
        deep_merge(base, override)

    assert exc.value.details["key"] == "max_workers"
    assert exc.value.details["path"] == "executor.max_workers"
