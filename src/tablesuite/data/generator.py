# src/tablesuite/data/generator.py
"""
Gerador determinístico de registros sintéticos.

Cada nó recebe seu próprio fluxo aleatório, derivado da seed da suite e do
nome do nó (`numpy.random.default_rng([seed, crc32(nome)])`), de modo que a
mesma configuração reproduz exatamente os mesmos lotes, independentemente
da ordem em que o pool executa os nós.

Invariantes:
    - Chaves são únicas dentro de um lote e prefixadas pelo nó
    - Valores de partição se distribuem entre `num_partitions` partições
    - Atualizações preservam a chave e avançam o campo de ordenação
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict

import numpy as np
import pandas as pd

from .schema import SchemaField, TableSchema


_BASE_TS_MS = 1_577_836_800_000  # 2020-01-01T00:00:00Z
_BASE_DATE = date(2020, 1, 1)


def stream_rng(seed: int, stream: str) -> np.random.Generator:
    return np.random.default_rng([int(seed) & 0xFFFFFFFF, zlib.crc32(stream.encode("utf-8"))])


def partition_value(index: int) -> str:
    return (_BASE_DATE + timedelta(days=index)).strftime("%Y/%m/%d")


@dataclass(frozen=True)
class RecordGenerator:
    """Produz lotes pandas conforme um `TableSchema` e o layout de chaves da tabela."""

    schema: TableSchema
    key_field: str
    partition_field: str
    ordering_field: str
    seed: int = 0
    stream: str = "default"

    def _payload_column(self, rng: np.random.Generator, field: SchemaField, count: int) -> np.ndarray:
        if field.type == "string":
            suffix = rng.integers(0, 1000, size=count)
            return np.array([f"{field.name}-{int(s):03d}" for s in suffix], dtype=object)
        if field.type in ("int", "long"):
            return rng.integers(0, 1_000_000, size=count, dtype=np.int64)
        if field.type in ("float", "double"):
            return np.round(rng.random(count) * 100.0, 6)
        return rng.random(count) < 0.5

    def generate(self, count: int, *, num_partitions: int = 1, tag: str = "insert") -> pd.DataFrame:
        rng = stream_rng(self.seed, f"{self.stream}/{tag}")
        token = rng.integers(0, 16 ** 8)

        columns: Dict[str, object] = {
            self.key_field: [f"{self.stream}-{int(token):08x}-{i:06d}" for i in range(count)],
            self.partition_field: [partition_value(i % num_partitions) for i in range(count)],
            self.ordering_field: _BASE_TS_MS + rng.integers(0, 86_400_000, size=count, dtype=np.int64),
        }
        system = {self.key_field, self.partition_field, self.ordering_field}
        for field in self.schema.payload_fields(system):
            columns[field.name] = self._payload_column(rng, field, count)

        df = pd.DataFrame(columns)
        ordered = [self.key_field, self.partition_field, self.ordering_field]
        return df[ordered + [c for c in df.columns if c not in ordered]]

    def update(self, existing: pd.DataFrame, count: int) -> pd.DataFrame:
        """
        Reescreve `count` registros existentes (mesma chave e partição).

        Os registros escolhidos são os primeiros por chave, o que mantém a
        seleção determinística; o campo de ordenação avança além do valor atual.
        """
        if count <= 0 or existing.empty:
            return existing.iloc[0:0].copy()

        rng = stream_rng(self.seed, f"{self.stream}/update")
        picked = existing.sort_values(self.key_field).head(count).reset_index(drop=True)
        n = len(picked)

        updated = picked.copy()
        updated[self.ordering_field] = picked[self.ordering_field].astype(np.int64) + rng.integers(1, 1000, size=n)
        system = {self.key_field, self.partition_field, self.ordering_field}
        for field in self.schema.payload_fields(system):
            if field.name in updated.columns:
                updated[field.name] = self._payload_column(rng, field, n)
        return updated
