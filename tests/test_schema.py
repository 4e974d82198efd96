"""
Tests for table derivation from lookup metadata.
"""
import pytest

from acs_utils.load_db.schema import IDENTIFIER_NAMES, SchemaDeriver


def table_info(store, table):
    # (name, type, notnull, pk)
    return [(r[1], r[2], r[3], r[5]) for r in store.run_query(f'PRAGMA table_info("{table}")')]


def table_exists(store, table):
    return bool(store.run_query("SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (table,)))


@pytest.fixture
def deriver(store, lookup):
    return SchemaDeriver(store, lookup)


def test_creates_table_scenario(deriver, store):
    created = deriver.create_estimate_tables()
    assert created == ["B01001", "B01002", "B02001"]
    assert table_info(store, "B01001") == [
        ("fileid", "VARCHAR(6)", 0, 0),
        ("filetype", "VARCHAR(6)", 0, 0),
        ("stusab", "VARCHAR(2)", 1, 1),
        ("chariter", "VARCHAR(3)", 0, 0),
        ("seq", "VARCHAR(4)", 0, 0),
        ("logrecno", "INTEGER", 1, 2),
        ("B010010001", "INTEGER", 0, 0),
        ("B010010002", "INTEGER", 0, 0),
    ]


def test_decimal_tables_use_double(deriver, store):
    deriver.create_estimate_tables(["B01002"])
    assert table_info(store, "B01002")[-1] == ("B010020001", "DOUBLE", 0, 0)
    assert not table_exists(store, "B01001")


def test_custom_float_tables(store, lookup):
    SchemaDeriver(store, lookup, float_tables=["B02001"]).create_estimate_tables(["B02001"])
    assert {t for _, t, _, _ in table_info(store, "B02001")[len(IDENTIFIER_NAMES):]} == {"DOUBLE"}


def test_margin_tables_are_structural_twins(deriver, store):
    assert deriver.create_margin_tables() == ["B01001_moe", "B01002_moe", "B02001_moe"]
    deriver.create_estimate_tables()
    for table in ("B01001", "B01002", "B02001"):
        assert table_info(store, f"{table}_moe") == table_info(store, table)


def test_recreating_is_idempotent_but_drops_rows(deriver, store):
    deriver.create_estimate_tables()
    first = {t: table_info(store, t) for t in ("B01001", "B01002", "B02001")}
    store.insert("B01001", ["ACSSF", "2011e5", "ca", "000", "0002", 1, 10, 5])

    deriver.create_estimate_tables()
    second = {t: table_info(store, t) for t in ("B01001", "B01002", "B02001")}
    assert first == second
    assert store.run_query('SELECT count(*) FROM "B01001"') == [(0,)]


def test_table_schema_is_pure(deriver, lookup):
    table = lookup.tables(["B01001"])[0]
    a = deriver.table_schema(table)
    b = deriver.table_schema(table)
    assert a == b
    assert a.primary_key == ("stusab", "logrecno")
    assert deriver.table_schema(table, "_moe").name == "B01001_moe"
