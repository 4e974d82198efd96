"""
schema.py
Derives one destination table per census table from the lookup metadata.
"""
from typing import Iterable, List, Optional

from acs_utils.config import FLOAT_TABLES, MOE_SUFFIX
from acs_utils.utils.logger import get_logger
from .lookup import LookupMetadataStore, TableDefinition
from .store import Column, Store, TableSchema

logger = get_logger()

# Identifier fields leading every sequence row, in file order
IDENTIFIER_COLUMNS = [
    Column("fileid", "VARCHAR", 6),
    Column("filetype", "VARCHAR", 6),
    Column("stusab", "VARCHAR", 2, nullable=False),
    Column("chariter", "VARCHAR", 3),
    Column("seq", "VARCHAR", 4),
    Column("logrecno", "INTEGER", nullable=False),
]
IDENTIFIER_NAMES = [c.name for c in IDENTIFIER_COLUMNS]
PRIMARY_KEY = ("stusab", "logrecno")


class SchemaDeriver:
    """
    Creates census tables in a store.

    Creation is destructive: an existing table of the same name is dropped
    with its rows.
    """

    def __init__(self, store: Store, lookup: LookupMetadataStore, float_tables: Iterable[str] = FLOAT_TABLES):
        self.store = store
        self.lookup = lookup
        self.float_tables = frozenset(float_tables)

    def table_schema(self, table: TableDefinition, suffix: str = "") -> TableSchema:
        col_type = "DOUBLE" if table.table_id in self.float_tables else "INTEGER"
        return TableSchema(
            name=f"{table.table_id}{suffix}",
            columns=IDENTIFIER_COLUMNS + [Column(c.id, col_type) for c in table.columns],
            primary_key=PRIMARY_KEY,
        )

    def create_tables(self, tables: Optional[Iterable[str]] = None, suffix: str = "") -> List[str]:
        """
        Drop and recreate a table per census table id.

        Args:
            tables: Table ids to create (default: every table in the lookup)
            suffix: Appended to every table name ('_moe' for margins of error)

        Returns:
            Names of the created tables
        """
        created = []
        for table in self.lookup.tables(tables):
            schema = self.table_schema(table, suffix)
            self.store.create_or_replace_table(schema)
            created.append(schema.name)
        logger.info(f"Created {len(created)} tables{f' with suffix {suffix}' if suffix else ''}")
        return created

    def create_estimate_tables(self, tables: Optional[Iterable[str]] = None) -> List[str]:
        return self.create_tables(tables)

    def create_margin_tables(self, tables: Optional[Iterable[str]] = None) -> List[str]:
        return self.create_tables(tables, MOE_SUFFIX)
