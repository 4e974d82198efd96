"""
Tests for the persistence port (SQLite and DuckDB implementations).
"""
import unittest

from acs_utils.errors import DuplicateKeyError, LoadError
from acs_utils.load_db.duckdb_store import DuckDBStore
from acs_utils.load_db.store import Column, Index, SQLiteStore, TableSchema

SCHEMA = TableSchema(
    name="people",
    columns=[
        Column("stusab", "VARCHAR", 2, nullable=False),
        Column("logrecno", "INTEGER", nullable=False),
        Column("total", "INTEGER"),
        Column("geoid", "VARCHAR", 40),
    ],
    primary_key=("stusab", "logrecno"),
    indexes=[Index("people_geoid_idx", ("geoid",), unique=True)],
)
COLUMNS = SCHEMA.column_names


class TestTableSchema(unittest.TestCase):

    def test_create_sql(self):
        self.assertEqual(
            SCHEMA.create_sql(),
            'CREATE TABLE "people" ("stusab" VARCHAR(2) NOT NULL, "logrecno" INTEGER NOT NULL, '
            '"total" INTEGER, "geoid" VARCHAR(40), PRIMARY KEY ("stusab", "logrecno"))',
        )

    def test_index_sql(self):
        self.assertEqual(SCHEMA.index_sql(), ['CREATE UNIQUE INDEX "people_geoid_idx" ON "people" ("geoid")'])


class TestSQLiteStore(unittest.TestCase):

    def setUp(self):
        self.store = SQLiteStore(":memory:")
        self.store.create_or_replace_table(SCHEMA)

    def tearDown(self):
        self.store.close()

    def count(self):
        return self.store.run_query('SELECT count(*) FROM "people"')[0][0]

    def test_create_or_replace_drops_rows(self):
        self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
        self.store.create_or_replace_table(SCHEMA)
        self.assertEqual(self.count(), 0)

    def test_drop_table(self):
        self.store.drop_table("people")
        self.store.drop_table("people")
        rows = self.store.run_query("SELECT name FROM sqlite_master WHERE type='table' AND name='people'")
        self.assertEqual(rows, [])

    def test_positional_insert(self):
        self.store.insert("people", ["ca", 1, 10, "a"])
        self.assertEqual(self.store.run_query('SELECT * FROM "people"'), [("ca", 1, 10, "a")])

    def test_duplicate_key(self):
        self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
        with self.assertRaises(DuplicateKeyError):
            self.store.insert("people", ["ca", 1, 11, "b"], COLUMNS)
        with self.assertRaises(DuplicateKeyError):
            self.store.insert("people", ["ca", 2, 11, "a"], COLUMNS)

    def test_not_null_is_load_error(self):
        with self.assertRaises(LoadError) as ctx:
            self.store.insert("people", [None, 1, 10, "a"], COLUMNS)
        self.assertNotIsInstance(ctx.exception, DuplicateKeyError)

    def test_bad_sql_is_load_error(self):
        with self.assertRaises(LoadError):
            self.store.run_query("SELECT * FROM missing_table")

    def test_transaction_rolls_back(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
                raise RuntimeError("boom")
        self.assertEqual(self.count(), 0)
        self.assertFalse(self.store.in_transaction)

    def test_nested_transactions_join(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                with self.store.transaction():
                    self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
                raise RuntimeError("outer fails")
        self.assertEqual(self.count(), 0)

    def test_savepoint_rolls_back_only_inner_work(self):
        with self.store.transaction():
            self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
            try:
                with self.store.savepoint():
                    self.store.insert("people", ["ca", 2, 20, "b"], COLUMNS)
                    self.store.insert("people", ["ca", 1, 30, "c"], COLUMNS)
            except DuplicateKeyError:
                pass
            self.store.insert("people", ["ca", 3, 30, "c"], COLUMNS)
        rows = self.store.run_query('SELECT logrecno FROM "people" ORDER BY logrecno')
        self.assertEqual(rows, [(1,), (3,)])

    def test_bulk_load_is_atomic(self):
        rows = [["ca", 1, 10, "a"], ["ca", 2, 20, "b"], ["ca", 1, 30, "c"]]
        with self.assertRaises(DuplicateKeyError):
            self.store.bulk_load("people", COLUMNS, rows)
        self.assertEqual(self.count(), 0)

    def test_bulk_load(self):
        n = self.store.bulk_load("people", COLUMNS, [["ca", "1", "10", "a"], ["ca", "2", None, "b"]])
        self.assertEqual(n, 2)
        self.assertEqual(
            self.store.run_query('SELECT logrecno, total FROM "people" ORDER BY logrecno'),
            [(1, 10), (2, None)],
        )

    def test_split_part_function(self):
        rows = self.store.run_query(
            "SELECT split_part('16000US0644000', 'US', 2), split_part('abc', 'US', 2), split_part(NULL, 'US', 2)"
        )
        self.assertEqual(rows, [("0644000", "", None)])


class TestDuckDBStore(unittest.TestCase):

    def setUp(self):
        self.store = DuckDBStore(":memory:")
        self.store.create_or_replace_table(SCHEMA)

    def tearDown(self):
        self.store.close()

    def count(self):
        return self.store.run_query('SELECT count(*) FROM "people"')[0][0]

    def test_bulk_load_casts_text(self):
        self.store.bulk_load("people", COLUMNS, [["ca", "1", "10", "a"], ["ca", 2, None, "b"]])
        self.assertEqual(
            self.store.run_query('SELECT logrecno, total FROM "people" ORDER BY logrecno'),
            [(1, 10), (2, None)],
        )

    def test_bulk_duplicate_key(self):
        self.store.bulk_load("people", COLUMNS, [["ca", 1, 10, "a"]])
        with self.assertRaises(DuplicateKeyError):
            self.store.bulk_load("people", COLUMNS, [["ca", 2, 20, "b"], ["ca", 1, 30, "c"]])
        self.assertEqual(self.count(), 1)

    def test_transaction_rolls_back(self):
        with self.assertRaises(RuntimeError):
            with self.store.transaction():
                self.store.insert("people", ["ca", 1, 10, "a"], COLUMNS)
                raise RuntimeError("boom")
        self.assertEqual(self.count(), 0)

    def test_savepoints_unsupported(self):
        self.assertFalse(self.store.supports_savepoints)
        with self.assertRaises(LoadError):
            with self.store.savepoint():
                pass

    def test_split_part_builtin(self):
        self.assertEqual(self.store.run_query("SELECT split_part('16000US0644000', 'US', 2)"), [("0644000",)])


if __name__ == "__main__":
    unittest.main()
