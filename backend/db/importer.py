"""
Import data exported from the browser version of the app.

The browser kept everything in localStorage under the same three keys the
backend uses. An export is a JSON object mapping those keys to either the
raw localStorage string or the already-parsed array.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from core.errors import LoadError
from core.state import CUSTOMERS_KEY, DOCUMENT_KEYS, INVENTORY_KEY, SALES_KEY, AppState
from db.persistence import decode_state

FLOAT_TOLERANCE = Decimal("0.005")


def _as_list(key: str, value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise LoadError(key, f"invalid JSON ({e})") from e
    if value is None:
        return []
    if not isinstance(value, list):
        raise LoadError(key, "expected an array")
    return value


def _legacy_sale_line(line: Mapping) -> Dict[str, Any]:
    # Bill lines were inventory items spread with a quantity: {id, name, price, quantity}
    return {
        "productId": line.get("productId", line.get("id")),
        "name": line.get("name"),
        "quantity": line.get("quantity"),
        "unitPrice": line.get("unitPrice", line.get("price")),
    }


def _decimal(v) -> Optional[Decimal]:
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        return None
    try:
        return Decimal(str(v))
    except InvalidOperation:
        return None


def _line_sum(items) -> Optional[Decimal]:
    total = Decimal("0")
    for line in items:
        if not isinstance(line, Mapping):
            return None
        price, qty = _decimal(line.get("unitPrice")), line.get("quantity")
        if price is None or isinstance(qty, bool) or not isinstance(qty, int):
            return None
        total += price * qty
    return total


def _exact(total, exact: Optional[Decimal]):
    """``exact`` if ``total`` only differs from it by float noise, else ``total``."""
    legacy = _decimal(total)
    if exact is None or legacy is None or abs(legacy - exact) >= FLOAT_TOLERANCE:
        return total
    return str(exact)


def _legacy_sale(sale: Mapping) -> Dict[str, Any]:
    out = dict(sale)
    out["items"] = [
        _legacy_sale_line(line) if isinstance(line, Mapping) else line
        for line in (sale.get("items") or [])
    ]
    # Browser totals were summed with floats (3 * 99.99 == 299.96999999999997)
    out["total"] = _exact(sale.get("total"), _line_sum(out["items"]))
    if "customerId" not in out:
        customer = sale.get("customer")
        out["customerId"] = customer.get("id") if isinstance(customer, Mapping) else None
    out.pop("customer", None)
    return out


def _with_exact_history(customers: list, sales: list) -> list:
    totals = {
        s.get("invoice"): _decimal(s.get("total"))
        for s in sales
        if isinstance(s, Mapping)
    }
    out = []
    for c in customers:
        if isinstance(c, Mapping) and isinstance(c.get("history"), list):
            c = dict(c)
            c["history"] = [
                dict(h, total=_exact(h.get("total"), totals.get(h.get("invoice"))))
                if isinstance(h, Mapping) else h
                for h in c["history"]
            ]
        out.append(c)
    return out


def state_from_export(export: Mapping[str, Any]) -> AppState:
    """Validate a browser export and return it as application state.

    Raises LoadError on anything that would not load at startup.
    """
    inventory = _as_list(INVENTORY_KEY, export.get(INVENTORY_KEY))
    sales = [_legacy_sale(s) if isinstance(s, Mapping) else s for s in _as_list(SALES_KEY, export.get(SALES_KEY))]
    customers = _with_exact_history(_as_list(CUSTOMERS_KEY, export.get(CUSTOMERS_KEY)), sales)
    bodies = {
        INVENTORY_KEY: json.dumps(inventory),
        CUSTOMERS_KEY: json.dumps(customers),
        SALES_KEY: json.dumps(sales),
    }
    return decode_state({k: bodies[k] for k in DOCUMENT_KEYS})
