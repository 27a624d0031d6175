"""
Alvos: contratos consumidos (motor de tabela, timeline, catálogo) e as
implementações locais de referência.
"""

from .interfaces import (
    CatalogClient,
    CommitRecord,
    CommitTimeline,
    TableReader,
    TableServices,
    TableWriter,
    WRITE_COMMIT_ACTIONS,
    WriteMode,
)
from .local_catalog import LocalCatalog
from .local_table import LocalTable, LocalTimeline


def local_services(target, *, catalog_path=None) -> TableServices:
    """
    Serviços locais (tabela, timeline, catálogo) para um `TargetConfig`.

    Leitores de outros caminhos (nós com `target_path`) abrem a tabela com
    as propriedades gravadas nela.
    """
    table = LocalTable.from_config(target)
    return TableServices(
        writer=table,
        reader=table,
        timeline=LocalTimeline(),
        catalog=LocalCatalog(catalog_path),
        table_path=target.table_path,
        reader_factory=lambda path: LocalTable.open(path, target=target),
    )


__all__ = [
    "WRITE_COMMIT_ACTIONS",
    "CatalogClient",
    "CommitRecord",
    "CommitTimeline",
    "LocalCatalog",
    "LocalTable",
    "LocalTimeline",
    "TableReader",
    "TableServices",
    "TableWriter",
    "WriteMode",
    "local_services",
]
