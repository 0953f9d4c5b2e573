"""
main.py — run the gitlytics CLI from a source checkout.

  python main.py insights <username> [--refresh]

The wiring lives in gitlytics.cli; an installed package exposes the same
entry point as the `gitlytics` console script.
"""

import sys

from gitlytics.cli import main

if __name__ == "__main__":
    sys.exit(main())
