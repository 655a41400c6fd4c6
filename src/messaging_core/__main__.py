"""Make package runnable with python -m messaging_core.

This module provides the entry point for running the package as a module
(python -m messaging_core) and for the installed console script (messaging-core).
"""

import sys

from messaging_core.cli import main

if __name__ == "__main__":
    sys.exit(main())
