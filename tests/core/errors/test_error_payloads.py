# tests/core/errors/test_error_payloads.py
"""
Testes do catálogo de payloads de erro.

Invariantes:
    - Exceções internas viram payloads com o nome da classe como `type`
    - Exceções externas viram NODE_EXECUTION_ERROR sem stack trace
    - Payloads são dicionários serializáveis em JSON
"""

import json

from tablesuite.core.errors import (
    NODE_EXECUTION_ERROR,
    NODE_SKIPPED_UPSTREAM,
    TIMELINE_MISMATCH,
    exception_to_error,
    node_skipped_upstream,
    timeline_mismatch,
)
from tablesuite.core.exceptions import SchemaMismatchError


def test_suite_exception_keeps_details_and_hint():
    exc = SchemaMismatchError(
        "Batch columns do not match table schema",
        details={"missing": ["fare"], "unexpected": ["tip_amount"]},
        hint="Use o schema da tabela",
    )

    payload = exception_to_error(exc).to_dict()

    assert payload == {
        "type": "SchemaMismatchError",
        "message": "Batch columns do not match table schema",
        "details": {"missing": ["fare"], "unexpected": ["tip_amount"]},
        "hint": "Use o schema da tabela",
    }
    assert str(exc) == "Batch columns do not match table schema"


def test_foreign_exception_is_wrapped_without_traceback():
    payload = exception_to_error(ValueError("bad value")).to_dict()

    assert payload["type"] == NODE_EXECUTION_ERROR
    assert payload["message"] == "bad value"
    assert payload["details"] == {"exception_class": "ValueError"}
    assert "Traceback" not in json.dumps(payload)


def test_skip_and_timeline_payloads_are_serialisable():
    skip = node_skipped_upstream(node="first_validate", failed_upstream="first_upsert").to_dict()
    mismatch = timeline_mismatch(
        expected=2,
        observed=3,
        baseline=1,
        write_nodes=["first_insert", "first_upsert"],
    ).to_dict()

    assert skip["type"] == NODE_SKIPPED_UPSTREAM
    assert skip["details"]["failed_upstream"] == "first_upsert"
    assert mismatch["type"] == TIMELINE_MISMATCH
    assert mismatch["details"]["unexpected_actions"] == []
    json.dumps([skip, mismatch])
