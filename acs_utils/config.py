from pathlib import Path
import os

db_path = Path(os.environ.get("ACS_UTILS_DB_DIR", Path(__file__).parent.parent / "database"))

DB_DEFAULT = Path(os.environ.get("ACS_UTILS_DB", db_path / "acs.db"))

LOG_DIR = Path(os.environ.get("ACS_UTILS_LOG_DIR", Path(__file__).parent.parent / "logs"))

# Census bulk files are published in ISO-8859-1
FILE_ENCODING = "latin-1"

LOOKUP_FILENAME = "Sequence_Number_and_Table_Number_Lookup.txt"

# fileid, filetype, stusab, chariter, seq, logrecno
LEADING_FIELD_COUNT = 6

# Census "not applicable" marker, written as "." in sequence files
NOT_APPLICABLE = -2

MOE_SUFFIX = "_moe"

# Tables whose cells hold medians, ratios or other decimal values
FLOAT_TABLES = frozenset("""
    B01002 B01002A B01002B B01002C B01002D B01002E B01002F B01002G
    B01002H B01002I B05004 B06002 B07002 B07402 B08103 B08503 B12007
    B19082 B19083 B23013 B23020 B25010 B25018 B25021 B25071 B25092
    B98011 B98012 B98021 B98022 B98031 B98032
""".split())
