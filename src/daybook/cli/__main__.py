#!/usr/bin/env python3
"""Allow ``python -m daybook.cli``."""

import sys

from .main import main

if __name__ == "__main__":  # pragma: no cover - executable module
    sys.exit(main())
