#!/usr/bin/env python3
"""
Run the manual settlement reconciler.

Thin wrapper around ``commission_batch.cli`` for checkouts without an
installed console script.

Usage:
    python3 scripts/run_settlement.py --gateway <module:attribute> [options]
"""

from __future__ import annotations

import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from commission_batch.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
