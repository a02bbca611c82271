from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from schemas.base import RecordModel, legacy_id, strip_optional, strip_required


class InventoryItem(RecordModel):
    id: str
    name: str
    quantity: int = Field(ge=0)
    price: Decimal = Field(ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, v):
        return legacy_id(v)

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return strip_required(v)


class InventoryItemCreate(RecordModel):
    name: str
    quantity: int = Field(default=0, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        return strip_required(v)


class InventoryItemUpdate(RecordModel):
    name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class StockAdjustment(RecordModel):
    amount: int


class InventoryItemRead(InventoryItem):
    low_stock: bool = False

    @classmethod
    def from_item(cls, item: InventoryItem, threshold: int) -> "InventoryItemRead":
        return cls(**item.model_dump(), low_stock=item.quantity < threshold)
