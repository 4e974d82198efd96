"""
duckdb_store.py
DuckDB implementation of the persistence port.

Bulk loads go through a registered pandas DataFrame and a single
INSERT ... SELECT, so a batch is one atomic statement. DuckDB has no
savepoints: row-by-row loading with duplicate tolerance needs SQLiteStore.
"""
from pathlib import Path
from typing import Union

import duckdb
import pandas as pd

from acs_utils.errors import DuplicateKeyError, LoadError
from acs_utils.utils.logger import get_logger
from .store import Store, quote

logger = get_logger()


class DuckDBStore(Store):

    supports_savepoints = False

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.con = duckdb.connect(self.db_path)

    def _execute(self, sql, params=()):
        if params:
            return self.con.execute(sql, list(params))
        return self.con.execute(sql)

    def _executemany(self, sql, rows):
        return self.con.executemany(sql, [list(r) for r in rows])

    def _begin(self):
        self.con.begin()

    def _commit(self):
        self.con.commit()

    def _rollback(self):
        try:
            self.con.rollback()
        except duckdb.Error as e:
            # no transaction is active after an auto-rolled-back commit
            logger.debug(f"DuckDB rollback ignored: {e}")

    def _translate(self, err):
        message = str(err)
        if isinstance(err, duckdb.ConstraintException) and "duplicate" in message.lower():
            return DuplicateKeyError(message)
        return LoadError(message)

    def close(self):
        self.con.close()

    def bulk_load(self, table, columns, rows):
        if not rows:
            return 0
        # Values travel as text; DuckDB casts them to the column types on insert.
        df = pd.DataFrame(
            [[None if v is None else str(v) for v in row] for row in rows],
            columns=list(columns),
            dtype=object,
        )
        view = f"_bulk_{table}".replace('"', '')
        cols = ", ".join(quote(c) for c in columns)
        self.con.register(view, df)
        try:
            with self.transaction():
                self.run_query(f"INSERT INTO {quote(table)} ({cols}) SELECT * FROM {quote(view)}")
        finally:
            self.con.unregister(view)
        return len(rows)
