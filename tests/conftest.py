"""
Shared fixtures.

- ``clock``: a FixedClock pinned to NOW
- ``engine``: an empty BusinessEngine on that clock, with ids "1", "2", ...
- ``make_sale``: build a stored Sale record directly (for aggregator tests)
"""

import itertools
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.clock import FixedClock
from core.engine import BusinessEngine
from schemas.sales import Sale, SaleLine

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def engine(clock):
    ids = itertools.count(1)
    return BusinessEngine(clock=clock, id_factory=lambda: str(next(ids)))


@pytest.fixture
def filter_item(engine):
    return engine.add_item("Filter", 5, Decimal("1000"))


@pytest.fixture
def make_sale():
    counter = itertools.count(1)

    def _make(total, date, customer_id=None):
        total = Decimal(str(total))
        return Sale(
            invoice=f"T-{next(counter):04d}",
            date=date,
            items=(SaleLine(product_id="p", name="Thing", quantity=1, unit_price=total),),
            total=total,
            customer_id=customer_id,
        )

    return _make


@pytest.fixture
def changes(engine):
    """Records the changed-document sets the engine publishes."""
    seen = []
    engine.subscribe(seen.append)
    return seen
