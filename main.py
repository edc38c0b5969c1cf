"""Entry point for running the CLI directly with `python main.py`."""

import sys

from twofactor_auth.cli import main

if __name__ == "__main__":
    sys.exit(main())
