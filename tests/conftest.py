"""
Shared fixtures: a small lookup file covering two sequences, matching
estimate/margin sequence files, and an in-memory SQLite store.
"""
from pathlib import Path

import pytest

from acs_utils.load_db.lookup import LookupMetadataStore
from acs_utils.load_db.store import SQLiteStore

LOOKUP_TEXT = """\
File ID,Table ID,Sequence Number,Line Number,Start Position,Total Cells in Table,Total Cells in Sequence,Table Title,Subject Area
ACSSF,B01001,0002,,7,2 CELLS,3,SEX BY AGE,Age-Sex
ACSSF,B01001,0002,,,,,Universe:  Total population,
ACSSF,B01001,0002,0.5,,,,Population by sex,
ACSSF,B01001,0002,1,,,,Total:,
ACSSF,B01001,0002,2,,,,Male:,
ACSSF,B01002,0002,,9,1 CELL,,MEDIAN AGE BY SEX,Age-Sex
ACSSF,B01002,0002,,,,,Universe:  Total population,
ACSSF,B01002,0002,1,,,,Median age --,
ACSSF,B02001,0003,,7,3 CELLS,3,RACE,Race
ACSSF,B02001,0003,,,,,Universe:  Total population,
ACSSF,B02001,0003,1,,,,Total:,
ACSSF,B02001,0003,2,,,,White alone,
ACSSF,B02001,0003,3,,,,Black or African American alone,
"""

SEQUENCE_0002 = """\
ACSSF,2011e5,ca,000,0002,0000001,100,48,32.5
ACSSF,2011e5,ca,000,0002,0000002,.,,40.1
ACSSF,2011e5,ca,000,0002,0000001,100,48,32.5
"""

MARGIN_0002 = """\
ACSSF,2011m5,ca,000,0002,0000001,12,7,0.4
ACSSF,2011m5,ca,000,0002,0000002,.,,1.2
"""

SEQUENCE_0003 = """\
ACSSF,2011e5,ca,000,0003,0000001,100,60,30
ACSSF,2011e5,ca,000,0003,0000002,50,.,
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="latin-1")
    return path


@pytest.fixture
def lookup_file(tmp_path):
    return write(tmp_path / "Sequence_Number_and_Table_Number_Lookup.txt", LOOKUP_TEXT)


@pytest.fixture
def lookup(lookup_file):
    return LookupMetadataStore.from_file(lookup_file)


@pytest.fixture
def data_dir(tmp_path):
    data = tmp_path / "data"
    write(data / "e20115ca0002000.txt", SEQUENCE_0002)
    write(data / "m20115ca0002000.txt", MARGIN_0002)
    write(data / "e20115ca0003000.txt", SEQUENCE_0003)
    return data


@pytest.fixture
def store():
    s = SQLiteStore(":memory:")
    yield s
    s.close()
