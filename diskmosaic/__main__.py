"""Module entry point: `python -m diskmosaic PATH`."""

import sys

from diskmosaic.cli import main

if __name__ == "__main__":
    sys.exit(main())
