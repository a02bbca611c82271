"""
Application state: inventory, customers and the sales ledger.

The stores are immutable values. Every mutation builds new stores and the
engine swaps the whole AppState in one assignment, which is what makes a
billing commit all-or-nothing.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from schemas.customers import Customer, PurchaseRecord
from schemas.inventory import InventoryItem
from schemas.sales import Sale

# Document keys, unchanged from the browser's localStorage
INVENTORY_KEY = "draqua-inventory"
CUSTOMERS_KEY = "draqua-customers"
SALES_KEY = "draqua-sales"
DOCUMENT_KEYS = (INVENTORY_KEY, CUSTOMERS_KEY, SALES_KEY)


def _index(records, key) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for pos, r in enumerate(records):
        k = key(r)
        if k in out:
            raise ValueError(f"duplicate id {k!r}")
        out[k] = pos
    return out


class InventoryStore:
    def __init__(self, items: Iterable[InventoryItem] = ()):
        self._items: Tuple[InventoryItem, ...] = tuple(items)
        self._pos = _index(self._items, lambda i: i.id)

    def __iter__(self) -> Iterator[InventoryItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._pos

    @property
    def items(self) -> Tuple[InventoryItem, ...]:
        return self._items

    def get(self, item_id: str) -> Optional[InventoryItem]:
        pos = self._pos.get(item_id)
        return self._items[pos] if pos is not None else None

    def added(self, item: InventoryItem) -> "InventoryStore":
        return InventoryStore(self._items + (item,))

    def replaced(self, item: InventoryItem) -> "InventoryStore":
        pos = self._pos[item.id]
        return InventoryStore(self._items[:pos] + (item,) + self._items[pos + 1:])

    def removed(self, item_id: str) -> "InventoryStore":
        return InventoryStore(i for i in self._items if i.id != item_id)

    def with_quantities(self, quantities: Mapping[str, int]) -> "InventoryStore":
        return InventoryStore(
            i.model_copy(update={"quantity": quantities[i.id]}) if i.id in quantities else i
            for i in self._items
        )


class CustomerStore:
    def __init__(self, customers: Iterable[Customer] = ()):
        self._customers: Tuple[Customer, ...] = tuple(customers)
        self._pos = _index(self._customers, lambda c: c.id)

    def __iter__(self) -> Iterator[Customer]:
        return iter(self._customers)

    def __len__(self) -> int:
        return len(self._customers)

    @property
    def customers(self) -> Tuple[Customer, ...]:
        return self._customers

    def get(self, customer_id: str) -> Optional[Customer]:
        pos = self._pos.get(customer_id)
        return self._customers[pos] if pos is not None else None

    def added(self, customer: Customer) -> "CustomerStore":
        return CustomerStore(self._customers + (customer,))

    def removed(self, customer_id: str) -> "CustomerStore":
        return CustomerStore(c for c in self._customers if c.id != customer_id)

    def with_purchase(self, customer_id: str, record: PurchaseRecord) -> "CustomerStore":
        pos = self._pos[customer_id]
        c = self._customers[pos]
        updated = c.model_copy(update={"history": c.history + (record,)})
        return CustomerStore(self._customers[:pos] + (updated,) + self._customers[pos + 1:])


class SalesLedger:
    """Append-only: there is no way to remove or replace a committed sale."""

    def __init__(self, sales: Iterable[Sale] = ()):
        self._sales: Tuple[Sale, ...] = tuple(sales)
        self._pos = _index(self._sales, lambda s: s.invoice)

    def __iter__(self) -> Iterator[Sale]:
        return iter(self._sales)

    def __len__(self) -> int:
        return len(self._sales)

    @property
    def sales(self) -> Tuple[Sale, ...]:
        return self._sales

    @property
    def invoices(self):
        return self._pos.keys()

    def find(self, invoice: str) -> Optional[Sale]:
        pos = self._pos.get(invoice)
        return self._sales[pos] if pos is not None else None

    def appended(self, sale: Sale) -> "SalesLedger":
        return SalesLedger(self._sales + (sale,))


@dataclass(frozen=True)
class AppState:
    inventory: InventoryStore = field(default_factory=InventoryStore)
    customers: CustomerStore = field(default_factory=CustomerStore)
    sales: SalesLedger = field(default_factory=SalesLedger)

    @classmethod
    def from_records(cls, inventory=(), customers=(), sales=()) -> "AppState":
        return cls(InventoryStore(inventory), CustomerStore(customers), SalesLedger(sales))
