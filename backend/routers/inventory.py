from typing import List, Optional

from fastapi import APIRouter, Depends, status

from core.dependencies import get_engine, http_error
from core.engine import BusinessEngine
from core.errors import EngineError
from schemas.inventory import (
    InventoryItemCreate,
    InventoryItemRead,
    InventoryItemUpdate,
    StockAdjustment,
)

router = APIRouter()


def _read(engine: BusinessEngine, item) -> InventoryItemRead:
    return InventoryItemRead.from_item(item, engine.low_stock_threshold)


@router.get("/items", response_model=List[InventoryItemRead])
async def list_inventory_items(
    q: Optional[str] = None,
    engine: BusinessEngine = Depends(get_engine),
):
    """List items in insertion order, optionally filtered by a name substring."""
    items = engine.inventory
    if q:
        qq = q.strip().lower()
        items = [it for it in items if qq in it.name.lower()]
    return [_read(engine, it) for it in items]


@router.get("/low-stock", response_model=List[InventoryItemRead])
async def list_low_stock(
    threshold: Optional[int] = None,
    engine: BusinessEngine = Depends(get_engine),
):
    return [_read(engine, it) for it in engine.low_stock_items(threshold)]


@router.get("/items/{item_id}", response_model=InventoryItemRead)
async def get_inventory_item(item_id: str, engine: BusinessEngine = Depends(get_engine)):
    try:
        return _read(engine, engine.get_item(item_id))
    except EngineError as e:
        raise http_error(e)


@router.post("/items", response_model=InventoryItemRead, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    engine: BusinessEngine = Depends(get_engine),
):
    try:
        item = engine.add_item(payload.name, payload.quantity, payload.price)
    except EngineError as e:
        raise http_error(e)
    return _read(engine, item)


@router.patch("/items/{item_id}", response_model=InventoryItemRead)
async def update_inventory_item(
    item_id: str,
    payload: InventoryItemUpdate,
    engine: BusinessEngine = Depends(get_engine),
):
    data = payload.model_dump(exclude_unset=True)
    try:
        item = engine.edit_item(
            item_id,
            name=data.get("name"),
            quantity=data.get("quantity"),
            price=data.get("price"),
        )
    except EngineError as e:
        raise http_error(e)
    return _read(engine, item)


@router.delete("/items/{item_id}", response_model=InventoryItemRead)
async def delete_inventory_item(item_id: str, engine: BusinessEngine = Depends(get_engine)):
    try:
        item = engine.delete_item(item_id)
    except EngineError as e:
        raise http_error(e)
    return _read(engine, item)


@router.post("/items/{item_id}/stock-in", response_model=InventoryItemRead)
async def stock_in(
    item_id: str,
    payload: StockAdjustment,
    engine: BusinessEngine = Depends(get_engine),
):
    try:
        item = engine.stock_in(item_id, payload.amount)
    except EngineError as e:
        raise http_error(e)
    return _read(engine, item)


@router.post("/items/{item_id}/stock-out", response_model=InventoryItemRead)
async def stock_out(
    item_id: str,
    payload: StockAdjustment,
    engine: BusinessEngine = Depends(get_engine),
):
    """Manual stock removal. Quantity stops at 0 instead of going negative."""
    try:
        item = engine.stock_out(item_id, payload.amount)
    except EngineError as e:
        raise http_error(e)
    return _read(engine, item)
