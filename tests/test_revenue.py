from datetime import timedelta, timezone, datetime
from decimal import Decimal

from core.revenue import chart_series, recent_sales, summarize_revenue
from schemas.reports import RecentSale

from conftest import NOW


def test_empty_ledger_is_all_zero(engine):
    summary = engine.get_revenue_summary()
    assert summary.daily == summary.weekly == summary.monthly == summary.total_revenue == 0
    assert summary.order_count == 0


def test_today_and_ten_days_ago(make_sale):
    sales = [make_sale(100, NOW), make_sale(200, NOW - timedelta(days=10))]

    summary = summarize_revenue(sales, NOW)

    assert summary.daily == Decimal("100")
    assert summary.weekly == Decimal("100")
    assert summary.monthly == Decimal("300")
    assert summary.total_revenue == Decimal("300")
    assert summary.order_count == 2


def test_weekly_window_is_rolling_and_inclusive(make_sale):
    sales = [
        make_sale(1, NOW - timedelta(days=7)),
        make_sale(10, NOW - timedelta(days=7, seconds=1)),
    ]
    assert summarize_revenue(sales, NOW).weekly == Decimal("1")


def test_monthly_is_calendar_month(make_sale):
    sales = [
        make_sale(5, datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)),
        make_sale(7, datetime(2024, 2, 29, 23, 59, tzinfo=timezone.utc)),
        make_sale(11, datetime(2023, 3, 15, 12, 0, tzinfo=timezone.utc)),
    ]
    summary = summarize_revenue(sales, NOW)
    assert summary.monthly == Decimal("5")
    assert summary.total_revenue == Decimal("23")


def test_calendar_day_follows_now_timezone(make_sale):
    karachi = timezone(timedelta(hours=5))
    now = datetime(2024, 3, 15, 2, 0, tzinfo=karachi)
    # 18:30 UTC on the 14th is 23:30 on the 14th in UTC+5, i.e. yesterday there
    sale = make_sale(40, datetime(2024, 3, 14, 18, 30, tzinfo=timezone.utc))
    assert summarize_revenue([sale], now).daily == Decimal("0")
    assert summarize_revenue([sale], now.astimezone(timezone.utc)).daily == Decimal("40")


def test_engine_summary_after_commits(engine, filter_item, clock):
    engine.commit_sale([(filter_item.id, 2)])
    clock.advance(days=1)
    engine.commit_sale([(filter_item.id, 1)])

    summary = engine.get_revenue_summary()
    assert summary.daily == Decimal("1000")
    assert summary.weekly == Decimal("3000")
    assert summary.order_count == 2


def test_chart_series(make_sale):
    summary = summarize_revenue([make_sale(100, NOW)], NOW)
    chart = chart_series(summary)
    assert chart.labels == ["Daily", "Weekly", "Monthly"]
    assert chart.values == [Decimal("100")] * 3


def test_recent_sales_newest_first(make_sale):
    sales = [make_sale(n, NOW - timedelta(days=10 - n)) for n in range(1, 8)]
    recent = recent_sales(sales)
    assert [s.total for s in recent] == [Decimal(n) for n in (7, 6, 5, 4, 3)]
    assert recent_sales(sales, limit=0) == []
    assert recent_sales([], limit=5) == []


def test_recent_sale_dates_use_the_given_timezone(make_sale):
    karachi = timezone(timedelta(hours=5))
    sale = make_sale(40, datetime(2024, 3, 14, 20, 30, tzinfo=timezone.utc))

    assert RecentSale.from_sale(sale, karachi).date == "2024-03-15"
    assert RecentSale.from_sale(sale, timezone.utc).date == "2024-03-14"
