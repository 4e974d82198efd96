"""
End-to-end tests for the acs-utils command line.
"""
import logging
import sqlite3

import pytest

from acs_utils import acs_cli
from acs_utils.utils import logger as logger_module

from conftest import write
from test_geoheader import PLACE, STATE, geo_file


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path / "logs")
    yield
    log = logging.getLogger("acs_utils")
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()


@pytest.fixture
def release(tmp_path, data_dir, lookup_file):
    geo_file(tmp_path / "geo" / "g20115ca.txt", STATE, PLACE)
    return tmp_path


def query(db, sql):
    with sqlite3.connect(db) as conn:
        return conn.execute(sql).fetchall()


def import_args(release, *extra):
    return [
        "import",
        "--lookup", str(release / "Sequence_Number_and_Table_Number_Lookup.txt"),
        "--data-dir", str(release / "data"),
        "--geo-dir", str(release / "geo"),
        "--db", str(release / "acs.db"),
        *extra,
    ]


def test_import_loads_release(release):
    assert acs_cli.main(import_args(release)) == 0
    db = release / "acs.db"
    assert query(db, 'SELECT count(*) FROM "B01001"') == [(2,)]
    assert query(db, 'SELECT count(*) FROM "B01001_moe"') == [(2,)]
    assert query(db, 'SELECT count(*) FROM "B02001"') == [(2,)]
    assert query(db, "SELECT stusab, geoid_tiger FROM geoheader ORDER BY logrecno") == [
        ("ca", "06"), ("ca", "0644000"),
    ]
    assert query(db, "SELECT count(*) FROM census_column_lookup") == [(6,)]
    # sequence rows join to geography on (stusab, logrecno)
    assert query(db, 'SELECT g.name FROM "B01001" b JOIN geoheader g USING (stusab, logrecno) ORDER BY logrecno') == [
        ("California",), ("Los Angeles city, California",),
    ]


def test_import_estimates_only_for_one_table(release):
    args = import_args(release, "--estimates-only", "--tables", "B01002", "--sequences", "2")
    assert acs_cli.main(args) == 0
    db = release / "acs.db"
    tables = {r[0] for r in query(db, "SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert "B01002" in tables
    assert "B01001" not in tables
    assert "B01002_moe" not in tables


def test_reimport_without_recreating_tables(release):
    assert acs_cli.main(import_args(release)) == 0
    # strict bulk reload collides with the rows already present
    assert acs_cli.main(import_args(release, "--no-create-tables")) == 1
    assert acs_cli.main(import_args(release, "--no-create-tables", "--row-by-row", "--ignore-dups")) == 0
    assert query(release / "acs.db", 'SELECT count(*) FROM "B01001"') == [(2,)]


def test_import_missing_lookup(tmp_path):
    assert acs_cli.main(["import", "--lookup", str(tmp_path / "missing.txt"), "--db", str(tmp_path / "a.db")]) == 1


def test_duckdb_rejects_row_by_row_duplicate_tolerance(release):
    args = import_args(release, "--engine", "duckdb", "--row-by-row", "--ignore-dups")
    assert acs_cli.main(args) == 1
    assert not (release / "acs.db").exists()


def test_info_sequence(capsys):
    assert acs_cli.main(["info", "sequence", "e20115ca0002000.txt", "m20135ny0117000.txt"]) == 0
    out = capsys.readouterr().out
    assert "estimate" in out
    assert "margin" in out
    assert "0117" in out


def test_info_sequence_bad_name(capsys):
    assert acs_cli.main(["info", "sequence", "geo.txt"]) == 1
    assert "Could not interpret filename" in capsys.readouterr().out


def test_info_tables(lookup_file, capsys):
    assert acs_cli.main(["info", "tables", "--lookup", str(lookup_file), "--sequence", "2"]) == 0
    out = capsys.readouterr().out
    assert "B01001" in out
    assert "columns 6..7" in out
    assert "B02001" not in out
