import json
from decimal import Decimal

import pytest

from core.errors import LoadError
from core.state import CUSTOMERS_KEY, INVENTORY_KEY, SALES_KEY
from db.importer import state_from_export

INVENTORY = [
    {"id": 1700000000000, "name": "RO Membrane", "quantity": 4, "price": 4500},
    {"id": 1700000000001, "name": "Sediment Filter", "quantity": 20, "price": 350},
]
CUSTOMERS = [
    {
        "id": 1700000000100,
        "name": "Ahmed Khan",
        "contact": "0300-1234567",
        "history": [{"invoice": "INV-1700000000200", "date": "2024-01-10T08:30:00.000Z", "total": 4850}],
    }
]
SALES = [
    {
        "invoice": "INV-1700000000200",
        "date": "2024-01-10T08:30:00.000Z",
        "customer": {"id": 1700000000100, "name": "Ahmed Khan"},
        "items": [
            {"id": 1700000000000, "name": "RO Membrane", "price": 4500, "quantity": 1},
            {"id": 1700000000001, "name": "Sediment Filter", "price": 350, "quantity": 1},
        ],
        "total": 4850,
    }
]


def test_import_raw_local_storage_strings():
    export = {
        INVENTORY_KEY: json.dumps(INVENTORY),
        CUSTOMERS_KEY: json.dumps(CUSTOMERS),
        SALES_KEY: json.dumps(SALES),
    }

    state = state_from_export(export)

    assert [i.id for i in state.inventory] == ["1700000000000", "1700000000001"]
    [sale] = state.sales
    assert sale.customer_id == "1700000000100"
    assert [(line.product_id, line.unit_price) for line in sale.items] == [
        ("1700000000000", Decimal("4500")),
        ("1700000000001", Decimal("350")),
    ]
    assert state.customers.get("1700000000100").last_purchase.invoice == sale.invoice


def test_import_parsed_arrays_and_missing_keys():
    state = state_from_export({INVENTORY_KEY: INVENTORY})
    assert len(state.inventory) == 2
    assert len(state.customers) == 0
    assert len(state.sales) == 0


def test_walk_in_sale_without_customer():
    sale = dict(SALES[0], customer=None)
    [imported] = state_from_export({SALES_KEY: [sale]}).sales
    assert imported.customer_id is None


@pytest.mark.parametrize(
    "export",
    [
        {INVENTORY_KEY: "{oops"},
        {CUSTOMERS_KEY: {"id": 1}},
        {SALES_KEY: [dict(SALES[0], total=1)]},
    ],
)
def test_bad_exports_are_rejected(export):
    with pytest.raises(LoadError):
        state_from_export(export)


def test_float_noise_in_browser_totals_is_dropped():
    line = {"id": 1700000000001, "name": "Sediment Filter", "price": 99.99, "quantity": 3}
    noisy = 3 * 99.99  # 299.96999999999997 in the browser as well
    sale = dict(SALES[0], items=[line], total=noisy)
    customer = dict(
        CUSTOMERS[0],
        history=[dict(CUSTOMERS[0]["history"][0], total=noisy)],
    )

    state = state_from_export({INVENTORY_KEY: INVENTORY, CUSTOMERS_KEY: [customer], SALES_KEY: [sale]})

    [imported] = state.sales
    assert imported.total == Decimal("299.97")
    assert imported.items[0].subtotal == Decimal("299.97")
    assert state.customers.get("1700000000100").last_purchase.total == Decimal("299.97")


def test_real_total_mismatch_is_still_rejected():
    line = {"id": 1700000000001, "name": "Sediment Filter", "price": 99.99, "quantity": 3}
    with pytest.raises(LoadError):
        state_from_export({SALES_KEY: [dict(SALES[0], items=[line], total=299.9)]})
