"""
Loaders for ACS bulk releases.

Modules:
	- store / duckdb_store: persistence port (SQLite, DuckDB)
	- lookup: lookup metadata, table ranges and column definitions
	- schema: derives census tables from the lookup
	- sequence_file: sequence file names and the sequence loader
	- geoheader: fixed-width geography file loader
	- persist: bulk and row-by-row strategies
"""

from .store import Store, SQLiteStore, TableSchema, Column, Index
from .persist import LoadPolicy, LoadStrategy, TableLoadResult, persist_rows
from .lookup import (
    LookupMetadataStore, LookupRow, RowRole, ColumnDefinition, TableDefinition, TableRange,
)
from .schema import SchemaDeriver
from .sequence_file import (
    SequenceFileLoader, SequenceFileDescriptor, SequenceKind, SequenceLoadResult,
    FileState, parse_sequence_filename,
)
from .geoheader import GeoheaderLoader, parse_geography_file
# DuckDBStore lives in load_db.duckdb_store; import it from there
