"""
store.py
Persistence port consumed by the loaders, plus its SQLite implementation.

The port covers: create/drop tables from a declarative
TableSchema, bulk load, single-row insert, transactions, savepoints and raw
queries. Driver exceptions are translated into LoadError/DuplicateKeyError.
"""
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from acs_utils.errors import DuplicateKeyError, LoadError
from acs_utils.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class Column:
    name: str
    type: str
    size: Optional[int] = None
    nullable: bool = True

    def ddl(self) -> str:
        sql = f"{quote(self.name)} {self.type}"
        if self.size is not None:
            sql += f"({self.size})"
        if not self.nullable:
            sql += " NOT NULL"
        return sql


@dataclass(frozen=True)
class Index:
    name: str
    columns: Tuple[str, ...]
    unique: bool = False


@dataclass
class TableSchema:
    """Declarative description of a destination table."""
    name: str
    columns: List[Column]
    primary_key: Tuple[str, ...] = ()
    indexes: List[Index] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def create_sql(self) -> str:
        parts = [c.ddl() for c in self.columns]
        if self.primary_key:
            parts.append(f"PRIMARY KEY ({', '.join(quote(c) for c in self.primary_key)})")
        return f"CREATE TABLE {quote(self.name)} ({', '.join(parts)})"

    def index_sql(self) -> List[str]:
        return [
            f"CREATE {'UNIQUE ' if idx.unique else ''}INDEX {quote(idx.name)} "
            f"ON {quote(self.name)} ({', '.join(quote(c) for c in idx.columns)})"
            for idx in self.indexes
        ]


def quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


Row = Sequence[Any]


class Store:
    """
    Base persistence port.

    Subclasses provide the driver primitives (_execute, _executemany, _begin,
    _commit, _rollback, _translate). Nested transaction() calls join the
    outermost transaction; only the outermost one commits or rolls back.
    """

    supports_savepoints = False

    def __init__(self):
        self._depth = 0
        self._savepoints = 0

    # --- driver primitives -------------------------------------------------

    def _execute(self, sql: str, params: Sequence[Any] = ()):
        raise NotImplementedError

    def _executemany(self, sql: str, rows: List[Row]):
        raise NotImplementedError

    def _begin(self):
        raise NotImplementedError

    def _commit(self):
        raise NotImplementedError

    def _rollback(self):
        raise NotImplementedError

    def _translate(self, err: Exception) -> LoadError:
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    # --- port --------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def create_or_replace_table(self, schema: TableSchema) -> None:
        """Drop the table if it exists and create it from the schema."""
        with self.transaction():
            self.drop_table(schema.name)
            self.run_query(schema.create_sql())
            for sql in schema.index_sql():
                self.run_query(sql)
        logger.debug(f"Created table {schema.name} ({len(schema.columns)} columns)")

    def drop_table(self, name: str) -> None:
        self.run_query(f"DROP TABLE IF EXISTS {quote(name)}")

    def insert(self, table: str, row: Row, columns: Optional[Sequence[str]] = None) -> None:
        self.run_query(self._insert_sql(table, len(row), columns), row)

    def bulk_load(self, table: str, columns: Sequence[str], rows: List[Row]) -> int:
        """Load all rows as one atomic batch. Returns the number of rows written."""
        raise NotImplementedError

    def run_query(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        try:
            cursor = self._execute(sql, params)
            return cursor.fetchall() if cursor.description else []
        except LoadError:
            raise
        except Exception as err:
            raise self._translate(err) from err

    @contextmanager
    def transaction(self) -> Iterator["Store"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._wrap(self._begin)
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._depth = 0
            self._rollback()
            raise
        self._depth = 0
        try:
            self._wrap(self._commit)
        except LoadError:
            self._rollback()
            raise

    @contextmanager
    def savepoint(self) -> Iterator["Store"]:
        raise LoadError(f"{type(self).__name__} does not support savepoints")
        yield self  # pragma: no cover

    def _wrap(self, fn):
        try:
            return fn()
        except Exception as err:
            raise self._translate(err) from err

    @staticmethod
    def _insert_sql(table: str, width: int, columns: Optional[Sequence[str]] = None) -> str:
        cols = f" ({', '.join(quote(c) for c in columns)})" if columns else ""
        return f"INSERT INTO {quote(table)}{cols} VALUES ({', '.join('?' * width)})"


def _split_part(value, delimiter, n):
    if value is None:
        return None
    parts = value.split(delimiter)
    return parts[n - 1] if 0 < n <= len(parts) else ''


class SQLiteStore(Store):
    """
    SQLite implementation of the persistence port.

    The connection runs in autocommit mode; transactions and savepoints are
    issued explicitly. A split_part() SQL function is registered so
    post-processing statements are portable between SQLite and DuckDB.
    """

    supports_savepoints = True

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, isolation_level=None)
        self.conn.create_function("split_part", 3, _split_part, deterministic=True)

    def _execute(self, sql, params=()):
        return self.conn.execute(sql, params)

    def _executemany(self, sql, rows):
        return self.conn.executemany(sql, rows)

    def _begin(self):
        self.conn.execute("BEGIN")

    def _commit(self):
        self.conn.execute("COMMIT")

    def _rollback(self):
        if self.conn.in_transaction:
            self.conn.execute("ROLLBACK")

    def _translate(self, err):
        message = str(err)
        if isinstance(err, sqlite3.IntegrityError) and "UNIQUE constraint failed" in message:
            return DuplicateKeyError(message)
        return LoadError(message)

    def close(self):
        self.conn.close()

    @contextmanager
    def savepoint(self):
        with self.transaction():
            self._savepoints += 1
            name = f"sp_{self._savepoints}"
            self.run_query(f"SAVEPOINT {name}")
            try:
                yield self
            except BaseException:
                self.run_query(f"ROLLBACK TO SAVEPOINT {name}")
                self.run_query(f"RELEASE SAVEPOINT {name}")
                raise
            self.run_query(f"RELEASE SAVEPOINT {name}")

    def bulk_load(self, table, columns, rows):
        sql = self._insert_sql(table, len(columns), columns)
        with self.savepoint():
            try:
                self._executemany(sql, rows)
            except sqlite3.Error as err:
                raise self._translate(err) from err
        return len(rows)
