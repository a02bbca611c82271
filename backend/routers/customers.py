from typing import List

from fastapi import APIRouter, Depends, status

from core.dependencies import get_engine, http_error
from core.engine import BusinessEngine
from core.errors import EngineError
from schemas.customers import CustomerCreate, CustomerRead

router = APIRouter()


@router.get("/", response_model=List[CustomerRead])
async def list_customers(engine: BusinessEngine = Depends(get_engine)):
    return [CustomerRead.from_customer(c) for c in engine.customers]


@router.get("/{customer_id}", response_model=CustomerRead)
async def get_customer(customer_id: str, engine: BusinessEngine = Depends(get_engine)):
    try:
        return CustomerRead.from_customer(engine.get_customer(customer_id))
    except EngineError as e:
        raise http_error(e)


@router.post("/", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    engine: BusinessEngine = Depends(get_engine),
):
    try:
        c = engine.add_customer(payload.name, payload.contact)
    except EngineError as e:
        raise http_error(e)
    return CustomerRead.from_customer(c)


@router.delete("/{customer_id}", response_model=CustomerRead)
async def delete_customer(customer_id: str, engine: BusinessEngine = Depends(get_engine)):
    try:
        c = engine.delete_customer(customer_id)
    except EngineError as e:
        raise http_error(e)
    return CustomerRead.from_customer(c)
