"""
sequence_file.py - ACS sequence data files.

A sequence file (e.g. e20115ca0002000.txt) holds, for one state, the
estimates (e) or margins of error (m) of several census tables side by side.
Every row starts with 6 identifier fields; the cells of each table follow at
the positions given by the lookup metadata.

Loading a file walks the states PARSED -> RANGES_RESOLVED -> EXTRACTED ->
LOADED, or FAILED when a fatal error stops it.
"""

import csv
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from acs_utils.config import FILE_ENCODING, LEADING_FIELD_COUNT, MOE_SUFFIX
from acs_utils.errors import AcsImportError, ErrorKind, FormatError
from acs_utils.utils.logger import get_logger
from acs_utils.utils.record_decoder import Field, RecordLayout, clean_row
from .lookup import LookupMetadataStore, TableRange
from .persist import LoadPolicy, LoadStrategy, TableLoadResult, persist_rows
from .schema import IDENTIFIER_NAMES
from .store import Store

logger = get_logger()

SEQUENCE_FILENAME = RecordLayout(
    [
        Field("kind", pattern="[em]"),
        Field("year", pattern=r"\d{4}"),
        Field("period", pattern=r"\d"),
        Field("state", pattern=r"\w+"),
        Field("sequence", pattern=r"\d{4}"),
        Field("iteration", pattern=r"\d{3}"),
    ],
    suffix=r"\.txt",
)


class SequenceKind(Enum):
    ESTIMATE = "estimate"
    MARGIN = "margin"

    @property
    def prefix(self) -> str:
        return "m" if self is SequenceKind.MARGIN else "e"


class FileState(Enum):
    PARSED = "parsed"
    RANGES_RESOLVED = "ranges_resolved"
    EXTRACTED = "extracted"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class SequenceFileDescriptor:
    kind: SequenceKind
    year: int
    period: int
    state: str
    sequence: str
    iteration: str
    path: Path

    @property
    def sequence_no(self) -> int:
        return int(self.sequence)

    @property
    def filename(self) -> str:
        return f"{self.kind.prefix}{self.year:04d}{self.period}{self.state}{self.sequence}{self.iteration}.txt"

    def table_name(self, table_id: str) -> str:
        """Destination table for a census table id; margins go to the _moe twin."""
        if self.kind is SequenceKind.MARGIN:
            return f"{table_id}{MOE_SUFFIX}"
        return table_id


def parse_sequence_filename(path: Union[str, Path]) -> SequenceFileDescriptor:
    """
    Decode a sequence file name.

    Raises:
        FormatError: the name is not <e|m><year><period><state><sequence><iteration>.txt
    """
    path = Path(path)
    try:
        f = SEQUENCE_FILENAME.decode(path.name)
    except FormatError:
        raise FormatError(f"Could not interpret filename {path.name}; is this census sequence data?")
    return SequenceFileDescriptor(
        kind=SequenceKind.MARGIN if f["kind"] == "m" else SequenceKind.ESTIMATE,
        year=int(f["year"]),
        period=int(f["period"]),
        state=f["state"],
        sequence=f["sequence"],
        iteration=f["iteration"],
        path=path,
    )


@dataclass
class SequenceLoadResult:
    descriptor: Optional[SequenceFileDescriptor]
    path: Path
    state: FileState = FileState.PARSED
    tables: Dict[str, TableLoadResult] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.state is FileState.FAILED

    @property
    def rows_loaded(self) -> int:
        return sum(t.rows_loaded for t in self.tables.values())


class SequenceFileLoader:
    """
    Extracts census tables from sequence files and writes them to a store.

    Args:
        store: Persistence port holding the destination tables
        lookup: Lookup metadata built for this import run
        strategy: BULK (default) or ROW_BY_ROW
        policy: STRICT (default) or SKIP_DUPLICATES
    """

    def __init__(
        self,
        store: Store,
        lookup: LookupMetadataStore,
        strategy: LoadStrategy = LoadStrategy.BULK,
        policy: LoadPolicy = LoadPolicy.STRICT,
    ):
        self.store = store
        self.lookup = lookup
        self.strategy = strategy
        self.policy = policy

    def resolve(self, descriptor: SequenceFileDescriptor, tables: Optional[Sequence[str]] = None) -> Dict[str, TableRange]:
        return self.lookup.table_ranges(descriptor.sequence_no, tables)

    def extract(self, descriptor: SequenceFileDescriptor, ranges: Dict[str, TableRange]) -> Dict[str, List[tuple]]:
        """
        Split the file's rows into one row list per table.

        Each row is the identifier fields followed by the table's cells, with
        '' -> None and '.' -> -2. Exact duplicate rows are dropped and tables
        without rows are left out.
        """
        if not ranges:
            return {}
        # dicts keep first-seen order and drop exact duplicates
        tables: Dict[str, Dict[tuple, None]] = {k: {} for k in ranges}
        with open(descriptor.path, newline="", encoding=FILE_ENCODING) as f:
            for line, raw in enumerate(csv.reader(f), start=1):
                if not raw:
                    continue
                row = clean_row(raw)
                for table_id, rng in ranges.items():
                    values = row[rng.slice()]
                    if len(row) < LEADING_FIELD_COUNT or len(values) != rng.width:
                        raise FormatError(
                            f"{descriptor.filename} line {line}: {len(row)} fields, "
                            f"table {table_id} needs columns {rng.start}..{rng.stop}"
                        )
                    tables[table_id][tuple(row[:LEADING_FIELD_COUNT] + values)] = None
        return {k: list(v) for k, v in tables.items() if v}

    def load(
        self,
        source: Union[str, Path, SequenceFileDescriptor],
        tables: Optional[Sequence[str]] = None,
    ) -> SequenceLoadResult:
        """
        Load every (or the requested) census table found in one sequence file.

        Raises:
            FormatError: bad file name or malformed row
            MetadataInconsistencyError: lookup metadata missing for a table
            LoadError: persistence failure under the STRICT policy, or a
                non-duplicate row failure in ROW_BY_ROW mode
        """
        descriptor = source if isinstance(source, SequenceFileDescriptor) else parse_sequence_filename(source)
        result = SequenceLoadResult(descriptor=descriptor, path=descriptor.path)
        logger.info(f"Loading sequence file {descriptor.path}")

        ranges = self.resolve(descriptor, tables)
        result.state = FileState.RANGES_RESOLVED
        if not ranges:
            logger.info(f"No requested tables in sequence {descriptor.sequence}; skipping {descriptor.filename}")
            result.state = FileState.LOADED
            return result

        rows_by_table = self.extract(descriptor, ranges)
        result.state = FileState.EXTRACTED

        for table_id, rows in rows_by_table.items():
            table = descriptor.table_name(table_id)
            columns = IDENTIFIER_NAMES + [c.id for c in self.lookup.columns_for(table_id, descriptor.sequence_no)]
            logger.info(f"Loading table '{table}' from sequence '{descriptor.filename}' ({len(rows)} rows)")
            result.tables[table] = persist_rows(
                self.store, table, columns, rows,
                strategy=self.strategy, policy=self.policy, source=descriptor.filename,
            )
        result.state = FileState.LOADED
        logger.info(f"Loaded {result.rows_loaded} rows into {len(result.tables)} tables from {descriptor.filename}")
        return result

    def load_all(
        self,
        paths: Iterable[Union[str, Path]],
        tables: Optional[Sequence[str]] = None,
    ) -> List[SequenceLoadResult]:
        """
        Load files one after another in sorted order.

        A fatal error stops only the file it happened in; it is logged and
        reported as a FAILED result. Re-running the file is the recovery path.
        """
        results = []
        for path in sorted(Path(p) for p in paths):
            try:
                results.append(self.load(path, tables))
            except AcsImportError as e:
                logger.error(f"Failed to load sequence file {path}: {e}")
                results.append(SequenceLoadResult(
                    descriptor=None, path=path, state=FileState.FAILED,
                    error_kind=e.kind, message=str(e),
                ))
        return results
