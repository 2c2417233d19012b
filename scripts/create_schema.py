#!/usr/bin/env python3
"""
Create the commission platform schema (tenant accounts, sales, transfers).

Reads the database URL from the active configuration (packaged defaults,
COMMISSION_CONFIG, DATABASE_URL) unless --database-url is given.

Usage:
    python3 scripts/create_schema.py [--database-url URL] [--reset]

--reset drops every table first.  Local databases only.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Create the commission platform schema")
    p.add_argument("--database-url", default=None, help="Database URL (default: from config)")
    p.add_argument("--reset", action="store_true", help="Drop all tables before creating them")
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    from commission_config import get_active_config
    from commission_kernel.db.engine import (
        create_tables,
        drop_tables,
        init_engine_from_url,
        reset_engine,
    )

    config = get_active_config()
    url = args.database_url or config.database.url
    try:
        init_engine_from_url(url, echo=config.database.echo)
        if args.reset:
            print("  Dropping tables...")
            drop_tables()
        create_tables()
    except Exception as e:
        print(f"ERROR: schema setup failed: {e}", file=sys.stderr)
        return 1
    finally:
        reset_engine()

    print(f"  Schema ready ({url.rsplit('@', 1)[-1]})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
