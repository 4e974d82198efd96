import sys

from acs_utils.acs_cli import main

if __name__ == '__main__':
    sys.exit(main())
