# tests/data/test_record_generator.py
"""
Testes do gerador determinístico de registros.

Invariantes:
    - Mesma semente e mesmo stream → mesmo lote
    - Streams diferentes nunca compartilham chaves
    - Atualizações preservam chave e partição e avançam o campo de ordenação
"""

import pandas as pd

from tablesuite.data.generator import RecordGenerator, partition_value
from tablesuite.data.schema import BUILTIN_SCHEMAS


def _gen(stream="first_insert", seed=7):
    return RecordGenerator(
        schema=BUILTIN_SCHEMAS["trips"],
        key_field="_row_key",
        partition_field="partition_path",
        ordering_field="timestamp",
        seed=seed,
        stream=stream,
    )


def test_generate_is_deterministic():
    pd.testing.assert_frame_equal(_gen().generate(20), _gen().generate(20))


def test_generate_layout_and_partitions():
    batch = _gen().generate(9, num_partitions=3)

    assert list(batch.columns[:3]) == ["_row_key", "partition_path", "timestamp"]
    assert set(BUILTIN_SCHEMAS["trips"].column_names()) <= set(batch.columns)
    assert batch["_row_key"].is_unique
    assert sorted(batch["partition_path"].unique()) == [partition_value(i) for i in range(3)]
    assert partition_value(0) == "2020/01/01"


def test_streams_do_not_share_keys():
    a = set(_gen("insert_a").generate(50)["_row_key"])
    b = set(_gen("insert_b").generate(50)["_row_key"])

    assert not a & b


def test_seed_changes_the_batch():
    assert not _gen(seed=1).generate(5).equals(_gen(seed=2).generate(5))


def test_update_rewrites_existing_keys():
    gen = _gen()
    existing = gen.generate(10, num_partitions=2)

    updates = gen.update(existing, 4)

    assert len(updates) == 4
    assert set(updates["_row_key"]) <= set(existing["_row_key"])
    merged = updates.merge(existing, on="_row_key", suffixes=("", "_old"))
    assert (merged["partition_path"] == merged["partition_path_old"]).all()
    assert (merged["timestamp"] > merged["timestamp_old"]).all()


def test_update_of_empty_table_is_empty():
    gen = _gen()
    empty = gen.generate(3).iloc[0:0]

    assert gen.update(empty, 5).empty
    assert gen.update(gen.generate(3), 0).empty
