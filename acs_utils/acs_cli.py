
"""
acs_cli.py - Command-line interface for loading ACS bulk releases using acs_utils.load_db modules
"""

import sys
import argparse
from typing import List, Optional

from acs_utils.commands import cmd_info_sequence, cmd_info_tables, cmd_import
from acs_utils.config import DB_DEFAULT, LOOKUP_FILENAME
from acs_utils.utils.logger import get_logger, setup_logger

logger = get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='acs-utils',
        description='American Community Survey bulk release loader',
        epilog=f"""
Examples:
  # Describe a sequence file name:
  python -m acs_utils info sequence e20115ca0002000.txt

  # List tables and their column ranges in sequence 2:
  python -m acs_utils info tables --lookup census/{LOOKUP_FILENAME} --sequence 2

  # Load geography, lookup and every California estimate file into SQLite:
  python -m acs_utils import --lookup census/{LOOKUP_FILENAME} \\
      --geo-dir census/geo --data-dir census/data --states ca --estimates-only

  # Re-load one table row by row, skipping rows already present:
  python -m acs_utils import --lookup census/{LOOKUP_FILENAME} --data-dir census/data \\
      --tables B01001 --row-by-row --ignore-dups --no-create-tables
""",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose (DEBUG) logging output')
    parser.add_argument('--quiet', '-q', action='store_true', help='Enable quiet mode (WARNING and ERROR only)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== INFO COMMAND ==========
    info_parser = subparsers.add_parser('info', help='Information commands (sequence files, tables)')
    info_subparsers = info_parser.add_subparsers(dest='info_command', help='Info subcommands', required=True)

    sequence_parser = info_subparsers.add_parser('sequence', help='Decode sequence file names')
    sequence_parser.add_argument('files', nargs='+', help='Sequence file names or paths')
    sequence_parser.set_defaults(func=cmd_info_sequence)

    tables_parser = info_subparsers.add_parser('tables', help='List tables described by a lookup file')
    tables_parser.add_argument('--lookup', required=True, help='Sequence/table number lookup file')
    tables_parser.add_argument('--sequence', type=int, default=None, help='Only show tables in this sequence, with column ranges')
    tables_parser.set_defaults(func=cmd_info_tables)

    # ========== IMPORT COMMAND ==========
    import_parser = subparsers.add_parser('import', help='Load an ACS release into a database')
    import_parser.set_defaults(func=cmd_import)

    import_parser.add_argument('--lookup', required=True, help=f'Sequence/table number lookup file ({LOOKUP_FILENAME})')
    import_parser.add_argument('--data-dir', type=str, default=None, help='Directory searched recursively for sequence files')
    import_parser.add_argument('--geo-dir', type=str, default=None, help='Directory searched recursively for g*.txt geography files')
    import_parser.add_argument('--db', type=str, default=str(DB_DEFAULT), help=f'Database file (default: {DB_DEFAULT})')
    import_parser.add_argument('--engine', choices=['sqlite', 'duckdb'], default='sqlite', help='Database engine (default: sqlite)')

    # Selection
    import_parser.add_argument('--tables', type=str, help='Comma-separated table ids (e.g., "B01001,B19013")')
    import_parser.add_argument('--states', type=str, help='Comma-separated state abbreviations (e.g., "ca,or")')
    import_parser.add_argument('--sequences', type=str, help='Comma-separated sequence numbers (e.g., "2,3")')
    import_parser.add_argument('--estimates-only', action='store_true', help='Skip margin of error files')

    # Load behavior
    import_parser.add_argument('--row-by-row', action='store_true', help='Insert rows one at a time instead of one bulk batch per table')
    import_parser.add_argument('--ignore-dups', action='store_true', help='Tolerate duplicate keys (bulk: skips the whole table on any failure)')
    import_parser.add_argument('--no-create-tables', dest='create_tables', action='store_false', default=True, help='Keep existing census tables instead of dropping and recreating them')

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger()
    # Configure logging level (global)
    if args.quiet:
        logger.setLevel(30)
    elif args.verbose:
        logger.setLevel(10)
    else:
        logger.setLevel(20)

    # Check if a command was provided
    if not hasattr(args, 'func'):
        parser.print_help()
        return 0

    return args.func(args)

if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting.")
        sys.exit(130)
