"""
persist.py
Bulk and row-by-row persistence strategies shared by the sequence and
geoheader loaders.

The tolerance policy decides what happens on failure:

- BULK + STRICT: any failure raises.
- BULK + SKIP_DUPLICATES: any failure is logged and the whole batch for the
  table is skipped. A bulk batch cannot drop only the offending rows.
- ROW_BY_ROW + STRICT: rows are inserted in one transaction; any failure
  raises and rolls back the table.
- ROW_BY_ROW + SKIP_DUPLICATES: each row runs in its own savepoint; duplicate
  keys roll back that row only, any other error aborts the table.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from acs_utils.errors import DuplicateKeyError, ErrorKind, LoadError
from acs_utils.utils.logger import get_logger
from .store import Row, Store

logger = get_logger()


class LoadStrategy(Enum):
    BULK = "bulk"
    ROW_BY_ROW = "row_by_row"


class LoadPolicy(Enum):
    STRICT = "strict"
    SKIP_DUPLICATES = "skip_duplicates"


@dataclass
class TableLoadResult:
    table: str
    rows_read: int
    rows_loaded: int = 0
    rows_skipped: int = 0
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @property
    def skipped(self) -> bool:
        """True when the whole table load was dropped."""
        return self.error_kind is not None and self.rows_loaded == 0


def persist_rows(
    store: Store,
    table: str,
    columns: Sequence[str],
    rows: List[Row],
    strategy: LoadStrategy = LoadStrategy.BULK,
    policy: LoadPolicy = LoadPolicy.STRICT,
    source: str = "",
) -> TableLoadResult:
    """
    Write rows into table using the given strategy and tolerance policy.

    Args:
        store: Persistence port
        table: Destination table name
        columns: Destination column names, in row order
        rows: Row values
        strategy: BULK (one batch) or ROW_BY_ROW
        policy: STRICT or SKIP_DUPLICATES
        source: File name used in log messages

    Returns:
        TableLoadResult describing what was written or skipped
    """
    result = TableLoadResult(table=table, rows_read=len(rows))
    if strategy is LoadStrategy.BULK:
        try:
            result.rows_loaded = store.bulk_load(table, columns, rows)
        except LoadError as e:
            logger.warning(f"Failed to load table '{table}' from '{source}': {e}")
            if policy is LoadPolicy.STRICT:
                raise
            result.error_kind = e.kind
            result.message = str(e)
            result.rows_skipped = len(rows)
        return result

    with store.transaction():
        for row in rows:
            if policy is LoadPolicy.STRICT:
                store.insert(table, row, columns)
                result.rows_loaded += 1
                continue
            try:
                with store.savepoint():
                    store.insert(table, row, columns)
                result.rows_loaded += 1
            except DuplicateKeyError as e:
                result.rows_skipped += 1
                result.error_kind = e.kind
                result.message = str(e)
                logger.debug(f"Skipped duplicate row in '{table}' from '{source}': {e}")
    if result.rows_skipped:
        logger.warning(f"Skipped {result.rows_skipped} duplicate rows in '{table}' from '{source}'")
    return result
