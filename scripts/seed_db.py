#!/usr/bin/env python
"""
Setup pipeline - creates the schema, seeds defaults and imports a price list.

Usage:
    python scripts/seed_db.py [price_list.csv|.xlsx]
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from hvac_pricing.config.settings import get_settings
from hvac_pricing.config.logging import setup_logging
from hvac_pricing.data.import_catalog import import_devices
from hvac_pricing.data.seed import seed_database
from hvac_pricing.engine.capabilities import grant
from hvac_pricing.store.db import get_engine, init_db, session_scope


def main():
    settings = get_settings()
    setup_logging(settings)
    token = grant("setup", "admin", full_name="Setup Script")

    print("=" * 60)
    print("HVAC PRICING SETUP")
    print("=" * 60)
    print()

    print("[1/3] Creating schema...")
    init_db(get_engine())

    print("[2/3] Seeding defaults...")
    with session_scope() as db:
        counts = seed_database(db, token)
    print(f"  Categories added: {counts['categories']}")
    print(f"  Devices added: {counts['devices']}")
    print(f"  Active parameter set: {counts['parameter_set_id']}")

    price_list = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.catalog_file
    print()
    print(f"[3/3] Importing price list {price_list}...")
    if not price_list.exists():
        print("  No price list found - skipping import")
    else:
        with session_scope() as db:
            report = import_devices(price_list, db, token, settings=settings, verbose=True)
        if report["status"] != "success":
            print("\n❌ IMPORT FAILED")
            for error in report["errors"]:
                print(f"  ERROR: {error}")
            sys.exit(1)
        for warning in report["warnings"]:
            print(f"  WARNING: {warning}")

    print()
    print("=" * 60)
    print("✅ SETUP COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
