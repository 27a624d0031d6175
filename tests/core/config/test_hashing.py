# tests/core/config/test_hashing.py
"""
Testes do hash determinístico de configuração.

Invariantes:
    - Mesma configuração → mesmo hash, independente da ordem das chaves
    - O hash é SHA-256 do JSON canônico (sort_keys, separadores compactos)
    - Qualquer override altera o hash
"""

import hashlib
import json

import pytest

from tablesuite.core.config.hashing import compute_config_hash


def _cfg():
    return {
        "target": {"base_path": "/tmp/tables", "table_name": "trips", "table_type": "COPY_ON_WRITE"},
        "workload": {"dag_generator": "insert_upsert_validate", "record_count": 100},
        "executor": {"max_workers": 4},
    }


def test_hash_is_deterministic_and_hex64():
    h1 = compute_config_hash(_cfg())
    h2 = compute_config_hash(_cfg())

    assert h1 == h2
    assert len(h1) == 64
    int(h1, 16)


def test_hash_ignores_key_order():
    cfg = _cfg()
    reordered = {k: cfg[k] for k in reversed(list(cfg))}

    assert compute_config_hash(cfg) == compute_config_hash(reordered)


def test_hash_matches_canonical_json():
    cfg = _cfg()
    canonical = json.dumps(cfg, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    assert compute_config_hash(cfg) == hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def test_hash_changes_on_override():
    cfg = _cfg()
    other = _cfg()
    other["target"]["table_type"] = "MERGE_ON_READ"

    assert compute_config_hash(cfg) != compute_config_hash(other)


def test_hash_rejects_non_dict():
    with pytest.raises(TypeError):
        compute_config_hash(["not", "a", "dict"])
