"""
Engine error taxonomy.

Every engine error is raised before any store is touched, so catching one
means the inventory, the customers and the sales ledger are unchanged.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence


class EngineError(Exception):
    """Base class for errors reported by the business engine."""


@dataclass(frozen=True)
class LineError:
    index: int
    product_id: Optional[str]
    reason: str

    def to_dict(self) -> dict:
        return {"index": self.index, "productId": self.product_id, "reason": self.reason}


@dataclass(frozen=True)
class StockShortfall:
    product_id: str
    requested: int
    available: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.available

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "requested": self.requested,
            "available": self.available,
            "shortfall": self.shortfall,
        }


class ValidationError(EngineError):
    """Bad input: missing field, non-positive quantity, unknown reference."""

    def __init__(self, message: str, line_errors: Sequence[LineError] = ()):
        super().__init__(message)
        self.message = message
        self.line_errors: List[LineError] = list(line_errors)

    def to_dict(self) -> dict:
        out = {"message": self.message}
        if self.line_errors:
            out["lines"] = [e.to_dict() for e in self.line_errors]
        return out


class NotFoundError(ValidationError):
    """An id passed to an inventory or customer operation does not exist."""


class InsufficientStockError(EngineError):
    def __init__(self, shortfalls: Sequence[StockShortfall]):
        self.shortfalls: List[StockShortfall] = list(shortfalls)
        ids = ", ".join(s.product_id for s in self.shortfalls)
        super().__init__(f"Insufficient stock for: {ids}")

    def to_dict(self) -> dict:
        return {
            "message": str(self),
            "shortfalls": [s.to_dict() for s in self.shortfalls],
        }


class PersistenceError(EngineError):
    """Writing (or reading) the stored documents failed."""


class LoadError(PersistenceError):
    """A stored document is malformed; the process must not start on it."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Cannot load document '{key}': {reason}")
        self.key = key
        self.reason = reason
