from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from schemas.base import RecordModel, ensure_aware, legacy_id


class SaleLine(RecordModel):
    product_id: str
    name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(ge=0)

    @field_validator("product_id", mode="before")
    @classmethod
    def _id(cls, v):
        return legacy_id(v)

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


class Sale(RecordModel):
    invoice: str
    date: datetime
    items: Tuple[SaleLine, ...] = Field(min_length=1)
    total: Decimal = Field(ge=0)
    customer_id: Optional[str] = None

    @field_validator("customer_id", mode="before")
    @classmethod
    def _customer_id(cls, v):
        return legacy_id(v)

    @field_validator("date")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @model_validator(mode="after")
    def _total_matches_lines(self):
        expected = sum((line.subtotal for line in self.items), Decimal("0"))
        if self.total != expected:
            raise ValueError(f"total {self.total} does not match line sum {expected}")
        return self


class SelectionLine(RecordModel):
    # quantity is checked by the engine so every bad line can be reported at once
    product_id: str
    quantity: int

    @field_validator("product_id", mode="before")
    @classmethod
    def _id(cls, v):
        return legacy_id(v)


class CommitSaleRequest(RecordModel):
    items: List[SelectionLine]
    customer_id: Optional[str] = None

    @field_validator("customer_id", mode="before")
    @classmethod
    def _customer_id(cls, v):
        v = legacy_id(v)
        if isinstance(v, str) and not v.strip():
            return None
        return v
