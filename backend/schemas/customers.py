from datetime import datetime
from decimal import Decimal
from typing import List, Tuple

from pydantic import Field, field_validator

from schemas.base import RecordModel, ensure_aware, legacy_id, strip_required


class PurchaseRecord(RecordModel):
    invoice: str
    date: datetime
    total: Decimal = Field(ge=0)

    @field_validator("date")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class Customer(RecordModel):
    id: str
    name: str
    contact: str
    # chronological: the last record is the most recent purchase
    history: Tuple[PurchaseRecord, ...] = ()

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        return legacy_id(v)

    @field_validator("name", "contact")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)

    @property
    def last_purchase(self):
        return self.history[-1] if self.history else None


class CustomerCreate(RecordModel):
    name: str
    contact: str

    @field_validator("name", "contact")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)


HISTORY_PREVIEW = 3


class CustomerRead(Customer):
    recent_purchases: List[PurchaseRecord] = []
    more_purchases: int = 0

    @classmethod
    def from_customer(cls, c: Customer, preview: int = HISTORY_PREVIEW) -> "CustomerRead":
        recent = list(c.history[-preview:]) if preview > 0 else []
        return cls(
            **c.model_dump(),
            recent_purchases=recent,
            more_purchases=max(0, len(c.history) - len(recent)),
        )
