from typing import List

from fastapi import APIRouter, Depends, Query

from core.dependencies import get_document_store, get_engine
from core.engine import BusinessEngine
from core.revenue import chart_series
from db.persistence import DocumentStore
from schemas.reports import Counts, DashboardSummary, RecentSale

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def revenue_summary(engine: BusinessEngine = Depends(get_engine)):
    summary = engine.get_revenue_summary()
    return DashboardSummary(revenue=summary, chart=chart_series(summary))


@router.get("/recent-sales", response_model=List[RecentSale])
async def recent_sales(
    limit: int = Query(5, ge=1, le=100),
    engine: BusinessEngine = Depends(get_engine),
):
    tz = engine.clock.now().tzinfo
    return [RecentSale.from_sale(s, tz) for s in engine.recent_sales(limit)]


@router.get("/counts", response_model=Counts)
async def counts(
    engine: BusinessEngine = Depends(get_engine),
    store: DocumentStore = Depends(get_document_store),
):
    return Counts(
        products=len(engine.inventory),
        customers=len(engine.customers),
        orders=len(engine.sales),
        durable=store.durable,
    )
