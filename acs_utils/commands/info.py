"""
Info command - Describe sequence files and lookup tables
"""

from acs_utils.errors import AcsImportError, FormatError
from acs_utils.load_db.lookup import LookupMetadataStore
from acs_utils.load_db.sequence_file import parse_sequence_filename


def cmd_info_sequence(args):
    """Handle 'info sequence' subcommand."""
    status = 0
    for name in args.files:
        try:
            d = parse_sequence_filename(name)
        except FormatError as e:
            print(f"{name}: {e}")
            status = 1
            continue
        print(f"\n{d.path}")
        print("=" * 70)
        print(f"  type:      {d.kind.value}")
        print(f"  year:      {d.year}")
        print(f"  period:    {d.period}")
        print(f"  state:     {d.state}")
        print(f"  sequence:  {d.sequence}")
        print(f"  iteration: {d.iteration}")
    return status


def cmd_info_tables(args):
    """Handle 'info tables' subcommand."""
    try:
        lookup = LookupMetadataStore.from_file(args.lookup)
        if args.sequence is None:
            tables = lookup.tables()
        else:
            ranges = lookup.table_ranges(args.sequence)
    except (AcsImportError, OSError) as e:
        print(f"Could not read lookup {args.lookup}: {e}")
        return 1

    if args.sequence is None:
        print("\nTables:")
        print("=" * 70)
        for table in tables:
            print(f"  {table.table_id:10s} - {table.topic or ''} ({len(table.columns)} columns)")
        return 0

    print(f"\nTables in sequence {args.sequence}:")
    print("=" * 70)
    for table_id, rng in sorted(ranges.items(), key=lambda kv: kv[1].start):
        print(f"  {table_id:10s} - columns {rng.start}..{rng.stop} ({rng.width} cells)")
    return 0
