"""Revenue figures derived from the sales ledger. Nothing here is stored."""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List

from schemas.reports import ChartSeries, RevenueSummary
from schemas.sales import Sale

WEEK = timedelta(days=7)
CHART_LABELS = ("Daily", "Weekly", "Monthly")


def summarize_revenue(sales: Iterable[Sale], now: datetime) -> RevenueSummary:
    """Daily / rolling-7-day / calendar-month / all-time totals as seen at ``now``.

    Calendar comparisons are made in ``now``'s timezone.
    """
    daily = weekly = monthly = total = Decimal("0")
    count = 0
    today = now.date()
    for s in sales:
        local = s.date.astimezone(now.tzinfo)
        if local.date() == today:
            daily += s.total
        if now - s.date <= WEEK:
            weekly += s.total
        if (local.year, local.month) == (now.year, now.month):
            monthly += s.total
        total += s.total
        count += 1
    return RevenueSummary(
        daily=daily,
        weekly=weekly,
        monthly=monthly,
        total_revenue=total,
        order_count=count,
    )


def chart_series(summary: RevenueSummary) -> ChartSeries:
    return ChartSeries(
        labels=list(CHART_LABELS),
        values=[summary.daily, summary.weekly, summary.monthly],
    )


def recent_sales(sales: Iterable[Sale], limit: int = 5) -> List[Sale]:
    """Last ``limit`` sales in commit order, newest first."""
    if limit <= 0:
        return []
    return list(reversed(list(sales)[-limit:]))
