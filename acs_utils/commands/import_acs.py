"""
Import command - Load an ACS release: geoheader, lookup, census tables, sequence files
"""

from pathlib import Path
from typing import List, Optional, Set

from acs_utils.errors import AcsImportError, FormatError
from acs_utils.load_db.geoheader import GeoheaderLoader
from acs_utils.load_db.lookup import LookupMetadataStore
from acs_utils.load_db.persist import LoadPolicy, LoadStrategy
from acs_utils.load_db.schema import SchemaDeriver
from acs_utils.load_db.sequence_file import (
    SequenceFileDescriptor, SequenceFileLoader, SequenceKind, parse_sequence_filename,
)
from acs_utils.load_db.store import SQLiteStore, Store
from acs_utils.utils.logger import get_logger

logger = get_logger()


def open_store(engine: str, db_path: Path) -> Store:
    """Open the persistence store for the chosen engine."""
    if engine == "duckdb":
        from acs_utils.load_db.duckdb_store import DuckDBStore
        return DuckDBStore(db_path)
    return SQLiteStore(db_path)


def split_list(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def find_sequence_files(
    data_dir: Path,
    states: Optional[Set[str]] = None,
    sequences: Optional[Set[int]] = None,
    estimates_only: bool = False,
) -> List[SequenceFileDescriptor]:
    """Find sequence files under data_dir, optionally filtered by state, sequence and kind."""
    found = []
    for path in sorted(data_dir.rglob("*.txt")):
        try:
            d = parse_sequence_filename(path)
        except FormatError:
            logger.debug(f"Not a sequence file, skipping: {path}")
            continue
        if states and d.state.lower() not in states:
            continue
        if sequences and d.sequence_no not in sequences:
            continue
        if estimates_only and d.kind is SequenceKind.MARGIN:
            continue
        found.append(d)
    return found


def cmd_import(args):
    """Handle 'import' subcommand."""
    strategy = LoadStrategy.ROW_BY_ROW if args.row_by_row else LoadStrategy.BULK
    policy = LoadPolicy.SKIP_DUPLICATES if args.ignore_dups else LoadPolicy.STRICT
    if args.engine == "duckdb" and strategy is LoadStrategy.ROW_BY_ROW and policy is LoadPolicy.SKIP_DUPLICATES:
        logger.error("--row-by-row --ignore-dups needs savepoints; use --engine sqlite")
        return 1

    lookup_path = Path(args.lookup)
    if not lookup_path.exists():
        logger.error(f"Lookup file not found: {lookup_path}")
        return 1

    tables = split_list(args.tables)
    states = {s.lower() for s in split_list(args.states) or []}
    try:
        sequences = {int(s) for s in split_list(args.sequences) or []}
    except ValueError:
        logger.error(f"Invalid sequence numbers: {args.sequences}")
        return 1

    db_path = Path(args.db)
    logger.info(f"Import target: {db_path} ({args.engine})")
    logger.info(f"Load strategy: {strategy.value}, policy: {policy.value}")
    store = open_store(args.engine, db_path)
    try:
        if args.geo_dir:
            geo_files = sorted(Path(args.geo_dir).rglob("g*.txt"))
            logger.info(f"Loading {len(geo_files)} geography files")
            GeoheaderLoader(store, strategy, policy).load(geo_files)

        lookup = LookupMetadataStore.build(lookup_path, store)

        descriptors = []
        if args.data_dir:
            descriptors = find_sequence_files(Path(args.data_dir), states, sequences, args.estimates_only)
            logger.info(f"Found {len(descriptors)} sequence files in {args.data_dir}")

        if args.create_tables:
            deriver = SchemaDeriver(store, lookup)
            deriver.create_estimate_tables(tables)
            if any(d.kind is SequenceKind.MARGIN for d in descriptors):
                deriver.create_margin_tables(tables)

        loader = SequenceFileLoader(store, lookup, strategy, policy)
        results = loader.load_all([d.path for d in descriptors], tables)
    except AcsImportError as e:
        logger.error(f"Import failed: {e}")
        return 1
    finally:
        store.close()

    failed = [r for r in results if r.failed]
    loaded = sum(r.rows_loaded for r in results)
    logger.info(f"Loaded {loaded} rows from {len(results) - len(failed)} sequence files")
    if failed:
        logger.error(f"{len(failed)} sequence files failed: {', '.join(r.path.name for r in failed)}")
        return 1
    return 0
