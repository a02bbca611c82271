"""
Import a localStorage export from the browser app into the database.

The export is a JSON object with the keys draqua-inventory, draqua-customers
and draqua-sales (values may be the raw localStorage strings).

Usage (from backend/):
  python scripts/import_local_storage.py export.json [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.errors import LoadError, PersistenceError
from db.database import create_db_and_tables, make_engine
from db.importer import state_from_export
from db.persistence import DocumentStore


async def main(path: Path, force: bool) -> int:
    try:
        export = json.loads(path.read_text(encoding="utf-8"))
        state = state_from_export(export)
    except (OSError, json.JSONDecodeError, LoadError) as e:
        print(f"Cannot import {path}: {e}")
        return 1

    engine = make_engine()
    try:
        await create_db_and_tables(engine)
        store = DocumentStore(engine)
        existing = await store.read_documents()
        if existing and not force:
            print(f"Database already holds {', '.join(sorted(existing))}; use --force to overwrite")
            return 1
        await store.replace_all(state)
    except PersistenceError as e:
        print(f"Import failed: {e}")
        return 1
    finally:
        await engine.dispose()

    print(
        f"Imported items: {len(state.inventory)}, customers: {len(state.customers)}, "
        f"sales: {len(state.sales)}"
    )
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("export", type=Path)
    parser.add_argument("--force", action="store_true", help="overwrite existing documents")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.export, args.force)))
