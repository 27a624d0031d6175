"""Schemas de tabela e geração determinística de registros sintéticos."""

from .generator import RecordGenerator
from .schema import BUILTIN_SCHEMAS, SchemaField, TableSchema, resolve_schema, schema_from_dict

__all__ = [
    "BUILTIN_SCHEMAS",
    "RecordGenerator",
    "SchemaField",
    "TableSchema",
    "resolve_schema",
    "schema_from_dict",
]
