"""
geoheader.py
Loads ACS fixed-width geography files (g<year><period><state>.txt) into a
single geoheader table keyed by (stusab, logrecno).
"""
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Union

from acs_utils.config import FILE_ENCODING
from acs_utils.utils.logger import get_logger
from acs_utils.utils.record_decoder import RecordLayout, clean_row
from .persist import LoadPolicy, LoadStrategy, TableLoadResult, persist_rows
from .store import Column, Index, Store, TableSchema

logger = get_logger()

GEOHEADER_TABLE = "geoheader"

# (name, width, column type); widths are in bytes of the latin-1 file
GEOHEADER_FIELDS = [
    ("fileid", 6, "VARCHAR"),
    ("stusab", 2, "VARCHAR"),
    ("sumlevel", 3, "INTEGER"),
    ("component", 2, "VARCHAR"),
    ("logrecno", 7, "INTEGER"),
    ("us", 1, "VARCHAR"),
    ("region", 1, "VARCHAR"),
    ("division", 1, "VARCHAR"),
    ("statece", 2, "VARCHAR"),
    ("state", 2, "VARCHAR"),
    ("county", 3, "VARCHAR"),
    ("cousub", 5, "VARCHAR"),
    ("place", 5, "VARCHAR"),
    ("tract", 6, "VARCHAR"),
    ("blkgrp", 1, "VARCHAR"),
    ("concit", 5, "VARCHAR"),
    ("aianhh", 4, "VARCHAR"),
    ("aianhhfp", 5, "VARCHAR"),
    ("aihhtli", 1, "VARCHAR"),
    ("aitsce", 3, "VARCHAR"),
    ("aits", 5, "VARCHAR"),
    ("anrc", 5, "VARCHAR"),
    ("cbsa", 5, "VARCHAR"),
    ("csa", 3, "VARCHAR"),
    ("metdiv", 5, "VARCHAR"),
    ("macc", 1, "VARCHAR"),
    ("memi", 1, "VARCHAR"),
    ("necta", 5, "VARCHAR"),
    ("cnecta", 3, "VARCHAR"),
    ("nectadiv", 5, "VARCHAR"),
    ("ua", 5, "VARCHAR"),
    ("blank1", 5, "VARCHAR"),
    ("cdcurr", 2, "VARCHAR"),
    ("sldu", 3, "VARCHAR"),
    ("sldl", 3, "VARCHAR"),
    ("blank2", 6, "VARCHAR"),
    ("blank3", 3, "VARCHAR"),
    ("blank4", 5, "VARCHAR"),
    ("submcd", 5, "VARCHAR"),
    ("sdelm", 5, "VARCHAR"),
    ("sdsec", 5, "VARCHAR"),
    ("sduni", 5, "VARCHAR"),
    ("ur", 1, "VARCHAR"),
    ("pci", 1, "VARCHAR"),
    ("blank5", 6, "VARCHAR"),
    ("blank6", 5, "VARCHAR"),
    ("puma5", 5, "VARCHAR"),
    ("blank7", 5, "VARCHAR"),
    ("geoid", 40, "VARCHAR"),
    ("name", 200, "VARCHAR"),
    ("bttr", 6, "VARCHAR"),
    ("btbg", 1, "VARCHAR"),
    ("blank8", 43, "VARCHAR"),
]

GEOHEADER_LAYOUT = RecordLayout.from_widths((name, width) for name, width, _ in GEOHEADER_FIELDS)
GEOHEADER_COLUMNS = [name for name, _, _ in GEOHEADER_FIELDS]

# The geoid (e.g. 16000US0644000) only joins to TIGER/Line GEOIDs after the 'US'
TIGER_GEOID_COLUMN = "geoid_tiger"
TIGER_GEOID_DELIMITER = "US"


def geoheader_schema(table: str = GEOHEADER_TABLE) -> TableSchema:
    columns = []
    for name, width, col_type in GEOHEADER_FIELDS:
        nullable = name not in ("stusab", "logrecno")
        size = width if col_type == "VARCHAR" else None
        columns.append(Column(name, col_type, size, nullable=nullable))
    columns.append(Column(TIGER_GEOID_COLUMN, "VARCHAR", 40))
    return TableSchema(
        name=table,
        columns=columns,
        primary_key=("stusab", "logrecno"),
        indexes=[
            Index(f"{table}_geoid_idx", ("geoid",), unique=True),
            Index(f"{table}_{TIGER_GEOID_COLUMN}_idx", (TIGER_GEOID_COLUMN,)),
        ],
    )


def parse_geography_file(path: Union[str, Path]) -> Iterator[List]:
    """Yield one cleaned row per non-empty line of a geography file."""
    with open(path, "r", encoding=FILE_ENCODING, newline="") as f:
        for line in f:
            if not line.strip():
                continue
            yield clean_row(GEOHEADER_LAYOUT.decode_row(line))


class GeoheaderLoader:
    """
    Create the geoheader table and load geography files into it.

    Args:
        store: Persistence port
        strategy: BULK (default) or ROW_BY_ROW
        policy: STRICT (default) or SKIP_DUPLICATES
        table: Destination table name
    """

    def __init__(
        self,
        store: Store,
        strategy: LoadStrategy = LoadStrategy.BULK,
        policy: LoadPolicy = LoadPolicy.STRICT,
        table: str = GEOHEADER_TABLE,
    ):
        self.store = store
        self.strategy = strategy
        self.policy = policy
        self.table = table

    def create_table(self) -> None:
        self.store.create_or_replace_table(geoheader_schema(self.table))

    def load_file(self, path: Union[str, Path]) -> TableLoadResult:
        logger.info(f"Processing geoheader {path}")
        with self.store.transaction():
            rows = list(parse_geography_file(path))
            return persist_rows(
                self.store, self.table, GEOHEADER_COLUMNS, rows,
                strategy=self.strategy, policy=self.policy, source=Path(path).name,
            )

    def post_process(self) -> None:
        """
        Lower-case stusab to match the sequence tables and derive the
        TIGER-joinable geoid.
        """
        self.store.run_query(
            f"UPDATE {self.table} SET stusab = lower(stusab), "
            f"{TIGER_GEOID_COLUMN} = split_part(geoid, ?, 2)",
            (TIGER_GEOID_DELIMITER,),
        )
        logger.info(f"Normalized stusab and derived {TIGER_GEOID_COLUMN} in {self.table}")

    def load(self, paths: Iterable[Union[str, Path]], create: bool = True) -> Dict[str, TableLoadResult]:
        """
        Load geography files in sorted order, each in its own transaction,
        then post-process the table once.

        Args:
            paths: Geography files
            create: Drop and recreate the table first

        Returns:
            Mapping file path -> TableLoadResult
        """
        if create:
            self.create_table()
        results = {}
        for path in sorted(str(p) for p in paths):
            results[path] = self.load_file(path)
        self.post_process()
        return results
