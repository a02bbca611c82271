from datetime import tzinfo
from decimal import Decimal
from typing import List, Literal, Optional

from schemas.base import RecordModel
from schemas.sales import Sale


ReminderKind = Literal["service-check", "filter-replacement"]


class Reminder(RecordModel):
    customer_id: str
    customer_name: str
    kind: ReminderKind
    message: str


class RevenueSummary(RecordModel):
    daily: Decimal = Decimal("0")
    weekly: Decimal = Decimal("0")
    monthly: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")
    order_count: int = 0


class ChartSeries(RecordModel):
    labels: List[str]
    values: List[Decimal]


class DashboardSummary(RecordModel):
    revenue: RevenueSummary
    chart: ChartSeries


class RecentSale(RecordModel):
    invoice: str
    date: str
    item_count: int
    total: Decimal

    @classmethod
    def from_sale(cls, s: Sale, tz: Optional[tzinfo] = None) -> "RecentSale":
        # calendar day in tz (the engine clock's zone), like the revenue figures
        return cls(
            invoice=s.invoice,
            date=s.date.astimezone(tz).date().isoformat(),
            item_count=len(s.items),
            total=s.total,
        )


class Counts(RecordModel):
    products: int
    customers: int
    orders: int
    durable: bool = True
