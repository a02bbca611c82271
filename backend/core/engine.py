"""
Business engine: the only code allowed to change inventory, customers and sales.

Every operation validates first and then publishes a complete new AppState
in a single assignment. A raised EngineError therefore always means nothing
changed. After a successful mutation the registered listeners are told which
documents changed (persistence and the reminder scheduler hook in here).
"""

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from core.clock import Clock, SystemClock
from core.errors import (
    InsufficientStockError,
    LineError,
    NotFoundError,
    StockShortfall,
    ValidationError,
)
from core.invoices import next_invoice
from core.reminders import compute_reminders
from core.revenue import recent_sales, summarize_revenue
from core.state import (
    CUSTOMERS_KEY,
    INVENTORY_KEY,
    SALES_KEY,
    AppState,
)
from schemas.base import legacy_id
from schemas.customers import Customer, PurchaseRecord
from schemas.inventory import InventoryItem
from schemas.reports import Reminder, RevenueSummary
from schemas.sales import Sale, SaleLine, SelectionLine

logger = logging.getLogger(__name__)

Listener = Callable[[FrozenSet[str]], None]


def _new_id() -> str:
    return str(uuid.uuid4())


def _build(model, **fields):
    """Construct a record, turning pydantic errors into engine ValidationErrors."""
    try:
        return model(**fields)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or model.__name__}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(problems) from e


def _is_count(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _read_line(raw) -> Tuple[Optional[str], object]:
    if isinstance(raw, SelectionLine):
        return raw.product_id, raw.quantity
    if isinstance(raw, Mapping):
        pid = raw.get("productId", raw.get("product_id"))
        return legacy_id(pid), raw.get("quantity")
    try:
        pid, qty = raw
    except (TypeError, ValueError):
        return None, None
    return legacy_id(pid), qty


class BusinessEngine:
    def __init__(
        self,
        state: Optional[AppState] = None,
        *,
        clock: Optional[Clock] = None,
        invoice_prefix: str = "INV",
        low_stock_threshold: int = 10,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._state = state or AppState()
        self._clock = clock or SystemClock()
        self._invoice_prefix = invoice_prefix
        self.low_stock_threshold = low_stock_threshold
        self._new_id = id_factory
        self._listeners: List[Listener] = []

    # -- read access ---------------------------------------------------

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def inventory(self) -> Tuple[InventoryItem, ...]:
        return self._state.inventory.items

    @property
    def customers(self) -> Tuple[Customer, ...]:
        return self._state.customers.customers

    @property
    def sales(self) -> Tuple[Sale, ...]:
        return self._state.sales.sales

    def get_item(self, item_id: str) -> InventoryItem:
        item = self._state.inventory.get(item_id)
        if item is None:
            raise NotFoundError(f"Inventory item '{item_id}' not found")
        return item

    def get_customer(self, customer_id: str) -> Customer:
        c = self._state.customers.get(customer_id)
        if c is None:
            raise NotFoundError(f"Customer '{customer_id}' not found")
        return c

    def get_sale(self, invoice: str) -> Sale:
        s = self._state.sales.find(invoice)
        if s is None:
            raise NotFoundError(f"Sale '{invoice}' not found")
        return s

    def low_stock_items(self, threshold: Optional[int] = None) -> List[InventoryItem]:
        limit = self.low_stock_threshold if threshold is None else threshold
        return [i for i in self.inventory if i.quantity < limit]

    def get_reminders(self, now: Optional[datetime] = None) -> List[Reminder]:
        return compute_reminders(self.customers, now or self._clock.now())

    def get_revenue_summary(self, now: Optional[datetime] = None) -> RevenueSummary:
        return summarize_revenue(self.sales, now or self._clock.now())

    def recent_sales(self, limit: int = 5) -> List[Sale]:
        return recent_sales(self.sales, limit)

    # -- listeners -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: AppState, changed: Iterable[str]) -> None:
        self._state = state
        keys = frozenset(changed)
        for listener in list(self._listeners):
            try:
                listener(keys)
            except Exception:
                # The mutation is already committed; a listener cannot undo it.
                logger.exception("Listener %r failed for %s", listener, sorted(keys))

    # -- billing -------------------------------------------------------

    def commit_sale(self, selection: Iterable, customer_id: Optional[str] = None) -> Sale:
        """Sell the selected items as one all-or-nothing transaction.

        ``selection`` holds SelectionLine objects, ``{"productId", "quantity"}``
        mappings or ``(product_id, quantity)`` pairs. Lines for the same product
        are summed before stock is checked. An unknown ``customer_id`` does not
        fail the sale; it is committed as a walk-in sale.
        """
        state = self._state
        customer_id = legacy_id(customer_id)
        lines = [_read_line(raw) for raw in selection]
        if not lines:
            raise ValidationError("Selection is empty")

        errors: List[LineError] = []
        for index, (pid, qty) in enumerate(lines):
            if not pid:
                errors.append(LineError(index, None, "productId is required"))
            elif pid not in state.inventory:
                errors.append(LineError(index, pid, "unknown product"))
            if not _is_count(qty) or qty <= 0:
                errors.append(LineError(index, pid, "quantity must be a positive integer"))
        if errors:
            raise ValidationError("Invalid sale selection", errors)

        merged: Dict[str, int] = {}
        for pid, qty in lines:
            merged[pid] = merged.get(pid, 0) + qty

        shortfalls = [
            StockShortfall(pid, qty, state.inventory.get(pid).quantity)
            for pid, qty in merged.items()
            if qty > state.inventory.get(pid).quantity
        ]
        if shortfalls:
            raise InsufficientStockError(shortfalls)

        now = self._clock.now()
        sale_lines = []
        for pid, qty in merged.items():
            item = state.inventory.get(pid)
            sale_lines.append(
                SaleLine(product_id=pid, name=item.name, quantity=qty, unit_price=item.price)
            )
        total = sum((line.subtotal for line in sale_lines), Decimal("0"))

        customer = state.customers.get(customer_id) if customer_id else None
        if customer_id and customer is None:
            logger.warning("Customer '%s' not found; recording a walk-in sale", customer_id)

        sale = Sale(
            invoice=next_invoice(state.sales, self._invoice_prefix),
            date=now,
            items=tuple(sale_lines),
            total=total,
            customer_id=customer.id if customer else None,
        )

        changed = {INVENTORY_KEY, SALES_KEY}
        customers = state.customers
        if customer is not None:
            record = PurchaseRecord(invoice=sale.invoice, date=sale.date, total=sale.total)
            customers = customers.with_purchase(customer.id, record)
            changed.add(CUSTOMERS_KEY)

        remaining = {pid: state.inventory.get(pid).quantity - qty for pid, qty in merged.items()}
        self._publish(
            AppState(
                inventory=state.inventory.with_quantities(remaining),
                customers=customers,
                sales=state.sales.appended(sale),
            ),
            changed,
        )
        logger.info(
            "Committed sale %s: %d line(s), total %s, customer %s",
            sale.invoice, len(sale.items), sale.total, sale.customer_id or "walk-in",
        )
        return sale

    # -- inventory -----------------------------------------------------

    def add_item(self, name: str, quantity: int = 0, price=Decimal("0")) -> InventoryItem:
        item = _build(InventoryItem, id=self._new_id(), name=name, quantity=quantity, price=price)
        state = self._state
        self._publish(
            AppState(state.inventory.added(item), state.customers, state.sales),
            {INVENTORY_KEY},
        )
        logger.info("Added inventory item %s (%s)", item.id, item.name)
        return item

    def edit_item(
        self,
        item_id: str,
        *,
        name: Optional[str] = None,
        quantity: Optional[int] = None,
        price=None,
    ) -> InventoryItem:
        """Change name/quantity/price. Past sales keep their own snapshot."""
        current = self.get_item(item_id)
        data = current.model_dump()
        if name is not None:
            data["name"] = name
        if quantity is not None:
            data["quantity"] = quantity
        if price is not None:
            data["price"] = price
        item = _build(InventoryItem, **data)
        return self._replace_item(item)

    def delete_item(self, item_id: str) -> InventoryItem:
        item = self.get_item(item_id)
        state = self._state
        self._publish(
            AppState(state.inventory.removed(item_id), state.customers, state.sales),
            {INVENTORY_KEY},
        )
        logger.info("Deleted inventory item %s (%s)", item.id, item.name)
        return item

    def stock_in(self, item_id: str, amount: int) -> InventoryItem:
        self._check_amount(amount)
        current = self.get_item(item_id)
        return self._replace_item(current.model_copy(update={"quantity": current.quantity + amount}))

    def stock_out(self, item_id: str, amount: int) -> InventoryItem:
        """Remove stock by hand. Never goes below zero; the excess is dropped."""
        self._check_amount(amount)
        current = self.get_item(item_id)
        if amount > current.quantity:
            logger.info(
                "Stock-out of %d on %s exceeds quantity %d; clamped to 0",
                amount, item_id, current.quantity,
            )
        return self._replace_item(
            current.model_copy(update={"quantity": max(0, current.quantity - amount)})
        )

    @staticmethod
    def _check_amount(amount) -> None:
        if not _is_count(amount) or amount <= 0:
            raise ValidationError("amount must be a positive integer")

    def _replace_item(self, item: InventoryItem) -> InventoryItem:
        state = self._state
        self._publish(
            AppState(state.inventory.replaced(item), state.customers, state.sales),
            {INVENTORY_KEY},
        )
        logger.debug("Inventory item %s now %d @ %s", item.id, item.quantity, item.price)
        return item

    # -- customers -----------------------------------------------------

    def add_customer(self, name: str, contact: str) -> Customer:
        customer = _build(Customer, id=self._new_id(), name=name, contact=contact)
        state = self._state
        self._publish(
            AppState(state.inventory, state.customers.added(customer), state.sales),
            {CUSTOMERS_KEY},
        )
        logger.info("Added customer %s (%s)", customer.id, customer.name)
        return customer

    def delete_customer(self, customer_id: str) -> Customer:
        """Remove a customer. Their past sales stay in the ledger untouched."""
        customer = self.get_customer(customer_id)
        state = self._state
        self._publish(
            AppState(state.inventory, state.customers.removed(customer_id), state.sales),
            {CUSTOMERS_KEY},
        )
        logger.info("Deleted customer %s (%s)", customer.id, customer.name)
        return customer
