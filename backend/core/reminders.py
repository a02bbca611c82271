"""
Service-due reminders.

A reminder is derived from a customer's most recent purchase only:

- under 1 month: nothing
- 1 to 2 months: service check
- 2 months or more: filter replacement

A month is 30 days. The whole set is recomputed from scratch on every tick;
there is no acknowledgment, so a reminder keeps coming back while it holds.
"""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from core.state import CUSTOMERS_KEY
from schemas.customers import Customer
from schemas.reports import Reminder

logger = logging.getLogger(__name__)

SERVICE_CHECK = "service-check"
FILTER_REPLACEMENT = "filter-replacement"
DAYS_PER_MONTH = 30
SECONDS_PER_DAY = 24 * 60 * 60


def months_since(then: datetime, now: datetime) -> float:
    days = (now - then).total_seconds() / SECONDS_PER_DAY
    return days / DAYS_PER_MONTH


def reminder_for(customer: Customer, now: datetime) -> Optional[Reminder]:
    last = customer.last_purchase
    if last is None:
        return None
    months = months_since(last.date, now)
    if 1 <= months < 2:
        return Reminder(
            customer_id=customer.id,
            customer_name=customer.name,
            kind=SERVICE_CHECK,
            message=f"{customer.name} - 1 month service check due",
        )
    if months >= 2:
        return Reminder(
            customer_id=customer.id,
            customer_name=customer.name,
            kind=FILTER_REPLACEMENT,
            message=f"{customer.name} - 2 month filter replacement due",
        )
    return None


def compute_reminders(customers: Iterable[Customer], now: datetime) -> List[Reminder]:
    out = []
    for c in customers:
        r = reminder_for(c, now)
        if r is not None:
            out.append(r)
    return out


class ReminderScheduler:
    """Keeps the current reminder set fresh on a fixed interval.

    Runs as an asyncio task between ``start()`` and ``stop()`` (or inside
    ``async with``). The set is also refreshed right away whenever the
    engine reports a change to the customers.
    """

    def __init__(self, engine, interval: float = 60.0):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._engine = engine
        self._interval = interval
        self._reminders: List[Reminder] = []
        self._task: Optional[asyncio.Task] = None
        self._ticks = 0
        self._unsubscribe = engine.subscribe(self._on_change)

    @property
    def reminders(self) -> List[Reminder]:
        return list(self._reminders)

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def refresh(self) -> List[Reminder]:
        self._reminders = self._engine.get_reminders()
        return self.reminders

    def _on_change(self, changed) -> None:
        if CUSTOMERS_KEY in changed:
            self.refresh()

    async def _run(self) -> None:
        while True:
            try:
                self.refresh()
            except Exception:
                logger.exception("Reminder refresh failed")
            else:
                self._ticks += 1
                if self._reminders:
                    logger.info("%d service reminder(s) due", len(self._reminders))
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="reminder-scheduler")
        logger.debug("Reminder scheduler started (every %ss)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Reminder scheduler stopped after %d tick(s)", self._ticks)

    def close(self) -> None:
        self._unsubscribe()

    async def __aenter__(self) -> "ReminderScheduler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
