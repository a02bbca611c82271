from typing import List

from fastapi import APIRouter, Depends, status

from core.dependencies import get_engine, http_error
from core.engine import BusinessEngine
from core.errors import EngineError
from schemas.sales import CommitSaleRequest, Sale

router = APIRouter()


@router.get("/sales", response_model=List[Sale])
async def list_sales(engine: BusinessEngine = Depends(get_engine)):
    """All committed sales in commit order."""
    return list(engine.sales)


@router.get("/sales/{invoice}", response_model=Sale)
async def get_sale(invoice: str, engine: BusinessEngine = Depends(get_engine)):
    try:
        return engine.get_sale(invoice)
    except EngineError as e:
        raise http_error(e)


@router.post("/sales", response_model=Sale, status_code=status.HTTP_201_CREATED)
async def commit_sale(
    payload: CommitSaleRequest,
    engine: BusinessEngine = Depends(get_engine),
):
    """
    Bill the selected items.

    - 400 when a line is invalid (every failing line is listed),
    - 409 when stock is short (every short product is listed).

    Either way nothing is changed. The response is the receipt.
    """
    try:
        return engine.commit_sale(payload.items, customer_id=payload.customer_id)
    except EngineError as e:
        raise http_error(e)
