"""
Seed demo products, customers and a few sales into the database.

Sales are back-dated so the dashboard and the service reminders have
something to show.

Usage (from backend/):
  python scripts/seed_demo_data.py [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.clock import FixedClock, SystemClock
from core.config import settings
from core.engine import BusinessEngine
from db.database import create_db_and_tables, make_engine
from db.persistence import DocumentStore

PRODUCTS = [
    ("RO Membrane 75 GPD", 12, Decimal("4500")),
    ("Sediment Filter 10in", 40, Decimal("350")),
    ("Carbon Block Filter", 25, Decimal("600")),
    ("Post Carbon Filter", 8, Decimal("550")),
    ("UV Lamp 11W", 5, Decimal("2800")),
]

CUSTOMERS = [
    ("Ahmed Raza", "0300-1234567"),
    ("Sara Khan", "sara.khan@example.com"),
    ("Bilal Hussain", "0321-7654321"),
]

# (customer index or None, days ago, [(product index, quantity)])
SALES = [
    (0, 70, [(0, 1), (1, 3)]),
    (1, 45, [(1, 2), (2, 2)]),
    (None, 10, [(3, 1)]),
    (2, 2, [(4, 1), (1, 1)]),
    (None, 0, [(1, 1)]),
]


async def main(force: bool) -> int:
    db_engine = make_engine()
    try:
        await create_db_and_tables(db_engine)
        store = DocumentStore(db_engine)
        existing = await store.read_documents()
        if existing and not force:
            print(f"Database already holds {', '.join(sorted(existing))}; use --force to overwrite")
            return 1

        now = SystemClock().now()
        clock = FixedClock(now)
        engine = BusinessEngine(clock=clock, invoice_prefix=settings.invoice_prefix)
        items = [engine.add_item(name, qty, price) for name, qty, price in PRODUCTS]
        customers = [engine.add_customer(name, contact) for name, contact in CUSTOMERS]

        for customer_idx, days_ago, lines in SALES:
            clock.set(now)
            clock.advance(days=-days_ago)
            sale = engine.commit_sale(
                [(items[i].id, q) for i, q in lines],
                customer_id=customers[customer_idx].id if customer_idx is not None else None,
            )
            print(f"Sale {sale.invoice}: {sale.total}")

        await store.replace_all(engine.state)
    finally:
        await db_engine.dispose()

    print(f"Seeded items: {len(PRODUCTS)}, customers: {len(CUSTOMERS)}, sales: {len(SALES)}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--force", action="store_true", help="overwrite existing documents")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.force)))
