"""
lookup.py - Sequence/table lookup metadata.

The Census "Sequence Number and Table Number Lookup" file describes every
table: which sequence file holds it, where its cells start, and one titled
line per cell. Rows come in three kinds:

- header rows carry the start position and cell count of a table,
- detail rows carry a line number (fractional numbers are sub-headings
  without a cell of their own),
- universe rows carry only a title ("Universe:  Total population").

LookupMetadataStore classifies the rows once per import run and answers the
range and column questions the schema deriver and sequence loader ask.
"""

import math
import re
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

import pandas as pd

from acs_utils.config import FILE_ENCODING
from acs_utils.errors import FormatError, MetadataInconsistencyError
from acs_utils.utils.logger import get_logger
from .store import Column, Store, TableSchema

logger = get_logger()

LOOKUP_COLUMNS = [
    "file_id", "table_id", "sequence_no", "line_no", "start_pos",
    "cells_in_table", "cells_in_sequence", "table_title", "subject_area",
]

LOOKUP_TABLE = "census_lookup"
COLUMN_LOOKUP_TABLE = "census_column_lookup"

_PLACEHOLDERS = ("", ".")
_UNIVERSE_PREFIX = re.compile(r"^Universe:\s+")
_CELL_COUNT = re.compile(r"^\s*(\d+)")


class RowRole(Enum):
    HEADER = "header"
    DETAIL = "detail"
    UNIVERSE = "universe"


@dataclass(frozen=True)
class LookupRow:
    file_id: Optional[str] = None
    table_id: Optional[str] = None
    sequence_no: Optional[int] = None
    line_no: Optional[float] = None
    start_pos: Optional[int] = None
    cells_in_table: Optional[str] = None
    cells_in_sequence: Optional[int] = None
    table_title: Optional[str] = None
    subject_area: Optional[str] = None

    @property
    def role(self) -> RowRole:
        if self.line_no is not None:
            return RowRole.DETAIL
        if self.start_pos is not None and self.cells_in_table is not None:
            return RowRole.HEADER
        return RowRole.UNIVERSE

    @property
    def is_blank(self) -> bool:
        return all(getattr(self, name) is None for name in LOOKUP_COLUMNS)

    @property
    def has_integer_line(self) -> bool:
        return self.line_no is not None and float(self.line_no).is_integer()

    @property
    def cell_count(self) -> Optional[int]:
        """Integer cell count parsed from strings like '2 CELLS'."""
        if self.cells_in_table is None:
            return None
        m = _CELL_COUNT.match(self.cells_in_table)
        return int(m.group(1)) if m else None

    def values(self) -> list:
        return [getattr(self, name) for name in LOOKUP_COLUMNS]


def pad_line_number(line_no: float) -> str:
    """Zero-pad the integer part to 4 digits, keeping a non-zero fraction: 2 -> '0002', 2.5 -> '0002.5'."""
    whole, frac = f"{line_no:.1f}".split(".")
    padded = whole.rjust(4, "0")
    if frac.strip("0"):
        padded += "." + frac
    return padded


@dataclass(frozen=True)
class ColumnDefinition:
    id: str
    title: Optional[str]
    table_id: str
    line_no: float
    sequence_no: Optional[int] = None

    @classmethod
    def from_row(cls, row: LookupRow) -> "ColumnDefinition":
        return cls(
            id=row.table_id + pad_line_number(row.line_no),
            title=row.table_title,
            table_id=row.table_id,
            line_no=row.line_no,
            sequence_no=row.sequence_no,
        )


@dataclass
class TableDefinition:
    table_id: str
    columns: List[ColumnDefinition] = field(default_factory=list)
    topic: Optional[str] = None
    universe: Optional[str] = None
    subject_area: Optional[str] = None


@dataclass(frozen=True)
class TableRange:
    """Inclusive, 0-based column range of one table inside a sequence row."""
    table_id: str
    sequence_no: int
    start: int
    stop: int

    @property
    def width(self) -> int:
        return self.stop - self.start + 1

    def slice(self) -> slice:
        return slice(self.start, self.stop + 1)

    def overlaps(self, other: "TableRange") -> bool:
        return self.start <= other.stop and other.start <= self.stop


def _null(value):
    if not isinstance(value, str):
        return None
    value = value.strip()
    if value in _PLACEHOLDERS:
        return None
    return value


def _number(value, convert, name, line):
    if value is None:
        return None
    try:
        number = convert(value)
    except ValueError:
        raise FormatError(f"Lookup line {line}: {name} is not numeric: {value!r}")
    if isinstance(number, float) and not math.isfinite(number):
        raise FormatError(f"Lookup line {line}: {name} is not finite: {value!r}")
    return number


def _as_int(value):
    return int(float(value)) if "." in value else int(value)


class LookupMetadataStore:
    """
    Classified lookup metadata for one import run. Read-only after construction.

    Args:
        rows: Lookup rows in file order; blank rows are ignored
    """

    def __init__(self, rows: Iterable[LookupRow]):
        self.rows: List[LookupRow] = [r for r in rows if not r.is_blank]
        self._headers: Dict[str, List[LookupRow]] = defaultdict(list)
        self._details: Dict[str, List[LookupRow]] = defaultdict(list)
        self._universe: Dict[str, str] = {}
        for row in self.rows:
            role = row.role
            if role is RowRole.HEADER:
                self._headers[row.table_id].append(row)
            elif role is RowRole.DETAIL:
                self._details[row.table_id].append(row)
            elif row.table_id and row.table_title and row.table_id not in self._universe:
                self._universe[row.table_id] = _UNIVERSE_PREFIX.sub("", row.table_title)

    # --- ingestion ---------------------------------------------------------

    @staticmethod
    def read_rows(path: Union[str, Path]) -> List[LookupRow]:
        """
        Read the delimited lookup file (header line + data rows).

        Columns are mapped by position; empty strings and the '.' placeholder
        become None.
        """
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding=FILE_ENCODING)
        if len(df.columns) < len(LOOKUP_COLUMNS):
            raise FormatError(
                f"Lookup file {path} has {len(df.columns)} columns, expected {len(LOOKUP_COLUMNS)}"
            )
        df = df.iloc[:, :len(LOOKUP_COLUMNS)]
        df.columns = LOOKUP_COLUMNS

        rows = []
        # line 1 is the header
        for line, values in enumerate(df.itertuples(index=False, name=None), start=2):
            v = dict(zip(LOOKUP_COLUMNS, (_null(x) for x in values)))
            rows.append(LookupRow(
                file_id=v["file_id"],
                table_id=v["table_id"],
                sequence_no=_number(v["sequence_no"], _as_int, "sequence number", line),
                line_no=_number(v["line_no"], float, "line number", line),
                start_pos=_number(v["start_pos"], _as_int, "start position", line),
                cells_in_table=v["cells_in_table"],
                cells_in_sequence=_number(v["cells_in_sequence"], _as_int, "cells in sequence", line),
                table_title=v["table_title"],
                subject_area=v["subject_area"],
            ))
        logger.info(f"Read {len(rows)} lookup rows from {path}")
        return rows

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LookupMetadataStore":
        return cls(cls.read_rows(path))

    @classmethod
    def build(cls, path: Union[str, Path], store: Store) -> "LookupMetadataStore":
        """Read the lookup file and (re)create the lookup relations in store."""
        lookup = cls.from_file(path)
        lookup.persist(store)
        return lookup

    # --- persistence -------------------------------------------------------

    def persist(self, store: Store) -> None:
        """Drop and recreate census_lookup (raw rows) and census_column_lookup (derived)."""
        raw = TableSchema(
            name=LOOKUP_TABLE,
            columns=[
                Column("id", "INTEGER", nullable=False),
                Column("file_id", "VARCHAR", 10),
                Column("table_id", "VARCHAR", 10),
                Column("sequence_no", "INTEGER"),
                Column("line_no", "DOUBLE"),
                Column("start_pos", "INTEGER"),
                Column("cells_in_table", "VARCHAR", 30),
                Column("cells_in_sequence", "INTEGER"),
                Column("table_title", "VARCHAR"),
                Column("subject_area", "VARCHAR"),
            ],
            primary_key=("id",),
        )
        derived = TableSchema(
            name=COLUMN_LOOKUP_TABLE,
            columns=[
                Column("id", "INTEGER", nullable=False),
                Column("file_id", "VARCHAR", 10),
                Column("table_id", "VARCHAR", 10),
                Column("sequence_no", "INTEGER"),
                Column("column_id", "VARCHAR", 20),
                Column("line_no", "INTEGER"),
                Column("start_pos", "INTEGER"),
                Column("cells_in_table", "INTEGER"),
                Column("column_title", "VARCHAR"),
                Column("topic", "VARCHAR"),
                Column("table_universe", "VARCHAR"),
                Column("subject_area", "VARCHAR"),
            ],
            primary_key=("id",),
        )

        raw_rows = [[i] + row.values() for i, row in enumerate(self.rows, start=1)]
        derived_rows = []
        orphans = set()
        for i, row in enumerate(self.rows, start=1):
            if row.role is not RowRole.DETAIL or not row.has_integer_line:
                continue
            header = self._header_for(row.table_id, row.sequence_no)
            if header is None:
                orphans.add(row.table_id)
                continue
            derived_rows.append([
                i, row.file_id, row.table_id, row.sequence_no,
                ColumnDefinition.from_row(row).id, int(row.line_no),
                header.start_pos, header.cell_count,
                row.table_title, header.table_title,
                self._universe.get(row.table_id), header.subject_area,
            ])
        if orphans:
            logger.warning(f"Lookup detail rows without a table header: {', '.join(sorted(orphans))}")

        with store.transaction():
            store.create_or_replace_table(raw)
            store.bulk_load(LOOKUP_TABLE, raw.column_names, raw_rows)
            store.create_or_replace_table(derived)
            store.bulk_load(COLUMN_LOOKUP_TABLE, derived.column_names, derived_rows)
        logger.info(
            f"Created {LOOKUP_TABLE} ({len(raw_rows)} rows) and "
            f"{COLUMN_LOOKUP_TABLE} ({len(derived_rows)} rows)"
        )

    # --- queries -----------------------------------------------------------

    def _header_for(self, table_id: str, sequence_no: Optional[int] = None) -> Optional[LookupRow]:
        headers = self._headers.get(table_id)
        if not headers:
            return None
        for header in headers:
            if header.sequence_no == sequence_no:
                return header
        return headers[0]

    def _integer_details(self, table_id: str, sequence_no: Optional[int] = None) -> List[LookupRow]:
        by_line: Dict[int, LookupRow] = {}
        for row in self._details.get(table_id, ()):
            if not row.has_integer_line:
                continue
            if sequence_no is not None and row.sequence_no != sequence_no:
                continue
            by_line.setdefault(int(row.line_no), row)
        return [by_line[k] for k in sorted(by_line)]

    def table_names(self, sequence_no: Optional[int] = None) -> Set[str]:
        """Table ids in the given sequence, or in the whole lookup when sequence_no is None."""
        names = set()
        for row in self.rows:
            if row.table_id is None:
                continue
            if sequence_no is None or row.sequence_no == int(sequence_no):
                names.add(row.table_id)
        return names

    def columns_for(self, table_id: str, sequence_no: Optional[int] = None) -> List[ColumnDefinition]:
        """
        Physical columns of a table (integer line numbers only), ordered by line.

        Raises MetadataInconsistencyError when the table has detail rows but
        no header row.
        """
        details = self._integer_details(table_id, sequence_no)
        if details and table_id not in self._headers:
            raise MetadataInconsistencyError(f"Table {table_id} has detail rows but no header row")
        return [ColumnDefinition.from_row(row) for row in details]

    def tables(self, table_ids: Optional[Iterable[str]] = None) -> List[TableDefinition]:
        """Definitions for every table with a header row, in lookup order."""
        wanted = set(table_ids) if table_ids is not None else None
        tables: Dict[str, TableDefinition] = OrderedDict()
        for table_id, headers in self._headers.items():
            if wanted is not None and table_id not in wanted:
                continue
            header = headers[0]
            tables[table_id] = TableDefinition(
                table_id=table_id,
                columns=self.columns_for(table_id),
                topic=header.table_title,
                universe=self._universe.get(table_id),
                subject_area=header.subject_area,
            )
        return list(tables.values())

    def table_ranges(
        self,
        sequence_no: Union[int, str],
        tables: Optional[Sequence[str]] = None,
    ) -> Dict[str, TableRange]:
        """
        Column ranges of every table stored in a sequence file.

        Ranges are inclusive and 0-based over the full sequence row, so the
        first data cell after the 6 identifier fields (start position 7) maps
        to index 6.

        Args:
            sequence_no: Sequence number (int or zero-padded string)
            tables: Optional table ids to restrict the result to

        Returns:
            Mapping table_id -> TableRange; empty when nothing matches
        """
        sequence_no = int(sequence_no)
        wanted = set(tables) if tables is not None else None
        ranges: Dict[str, TableRange] = {}
        for table_id in sorted(self.table_names(sequence_no)):
            if wanted is not None and table_id not in wanted:
                continue
            details = self._integer_details(table_id, sequence_no)
            if not details:
                continue
            header = self._header_for(table_id, sequence_no)
            if header is None or header.start_pos is None:
                raise MetadataInconsistencyError(
                    f"Table {table_id} in sequence {sequence_no} has no header row"
                )
            lines = [int(r.line_no) for r in details]
            if lines != list(range(lines[0], lines[-1] + 1)):
                raise MetadataInconsistencyError(
                    f"Table {table_id} in sequence {sequence_no} has gaps in its line numbers"
                )
            start = header.start_pos - 1
            # lines[0] is 1 unless the table continues from a previous sequence
            ranges[table_id] = TableRange(table_id, sequence_no, start, start + lines[-1] - lines[0])

        ordered = sorted(ranges.values(), key=lambda r: r.start)
        for a, b in zip(ordered, ordered[1:]):
            if a.overlaps(b):
                raise MetadataInconsistencyError(
                    f"Tables {a.table_id} and {b.table_id} overlap in sequence {sequence_no}"
                )
        return ranges
