# src/tablesuite/data/schema.py
"""
Referências de schema usadas pelos nós generate/insert/upsert.

Uma referência de schema (`NodeConfig.schema`) é resolvida para um
`TableSchema` de duas formas:
    - nome de schema embutido (`trips`, `trips_evolved`)
    - caminho para um arquivo de schema no estilo Avro (JSON ou YAML)
      com `fields: [{name, type}]`

Os campos de sistema da tabela (chave, partição, ordenação) não precisam
constar no schema: o gerador de registros sempre os produz com os nomes
configurados em `TargetConfig`.

Limites explícitos:
    - Não faz evolução de schema (o motor alvo decide compatibilidade)
    - Tipos suportados: string, int, long, float, double, boolean
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from tablesuite.core.config.loader import load_document
from tablesuite.core.exceptions import InvalidNodeConfigError


SUPPORTED_TYPES = ("string", "int", "long", "float", "double", "boolean")

DEFAULT_SCHEMA = "trips"


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    nullable: bool = False


@dataclass(frozen=True)
class TableSchema:
    name: str
    fields: Tuple[SchemaField, ...]

    def column_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def payload_fields(self, system_fields: Iterable[str]) -> List[SchemaField]:
        """Campos do schema excluindo os campos de sistema gerados à parte."""
        skip = set(system_fields)
        return [f for f in self.fields if f.name not in skip]


def _trip_fields() -> List[SchemaField]:
    return [
        SchemaField("timestamp", "long"),
        SchemaField("_row_key", "string"),
        SchemaField("rider", "string"),
        SchemaField("driver", "string"),
        SchemaField("begin_lat", "double"),
        SchemaField("begin_lon", "double"),
        SchemaField("end_lat", "double"),
        SchemaField("end_lon", "double"),
        SchemaField("fare", "double"),
    ]


BUILTIN_SCHEMAS: Dict[str, TableSchema] = {
    "trips": TableSchema("trips", tuple(_trip_fields())),
    # mesmo layout com uma coluna a mais: usado para forçar divergência de schema
    "trips_evolved": TableSchema(
        "trips_evolved",
        tuple(_trip_fields() + [SchemaField("tip_amount", "double", nullable=True)]),
    ),
}


def _parse_field_type(raw: Any, *, schema: str, field: str) -> Tuple[str, bool]:
    # union Avro ["null", "<tipo>"] → campo anulável
    if isinstance(raw, list):
        non_null = [t for t in raw if t != "null"]
        if len(non_null) != 1:
            raise InvalidNodeConfigError(
                f"Schema '{schema}': unsupported union type for field '{field}'",
                details={"schema": schema, "field": field, "type": raw},
            )
        kind, _ = _parse_field_type(non_null[0], schema=schema, field=field)
        return kind, True
    if isinstance(raw, str) and raw in SUPPORTED_TYPES:
        return raw, False
    raise InvalidNodeConfigError(
        f"Schema '{schema}': unsupported type {raw!r} for field '{field}'",
        details={"schema": schema, "field": field, "supported": list(SUPPORTED_TYPES)},
    )


def schema_from_dict(doc: Mapping[str, Any], *, source: str = "<inline>") -> TableSchema:
    if not isinstance(doc, Mapping) or not isinstance(doc.get("fields"), list) or not doc["fields"]:
        raise InvalidNodeConfigError(
            f"Schema '{source}' must be a mapping with a non-empty 'fields' list",
            details={"schema": source},
        )
    name = str(doc.get("name") or Path(source).stem)

    fields: List[SchemaField] = []
    seen = set()
    for entry in doc["fields"]:
        if not isinstance(entry, Mapping) or not isinstance(entry.get("name"), str):
            raise InvalidNodeConfigError(
                f"Schema '{source}': every field needs a 'name'",
                details={"schema": source, "field": repr(entry)},
            )
        fname = entry["name"]
        if fname in seen:
            raise InvalidNodeConfigError(
                f"Schema '{source}': duplicate field '{fname}'",
                details={"schema": source, "field": fname},
            )
        seen.add(fname)
        kind, nullable = _parse_field_type(entry.get("type"), schema=source, field=fname)
        fields.append(SchemaField(fname, kind, nullable))

    return TableSchema(name=name, fields=tuple(fields))


def resolve_schema(ref: Optional[str]) -> TableSchema:
    """
    Resolve uma referência de schema.

    None resolve para o schema padrão (`trips`). Nomes embutidos têm
    precedência sobre caminhos.

    Raises:
        InvalidNodeConfigError: referência desconhecida ou arquivo inválido.
    """
    if ref is None:
        return BUILTIN_SCHEMAS[DEFAULT_SCHEMA]
    if ref in BUILTIN_SCHEMAS:
        return BUILTIN_SCHEMAS[ref]

    path = Path(ref)
    if not path.exists():
        raise InvalidNodeConfigError(
            f"Unknown schema reference: {ref}",
            details={"schema": ref, "builtin": sorted(BUILTIN_SCHEMAS)},
            hint="Use um schema embutido ou um caminho para arquivo .json/.yaml",
        )
    return schema_from_dict(load_document(path), source=str(path))
