"""Pytest bootstrap for local source imports.

The project is a set of top-level modules; make sure they resolve from the
repository root even when the ``pytest`` console script runs elsewhere.
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)

if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)
