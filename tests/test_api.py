import asyncio
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from core.clock import FixedClock
from core.config import Settings
from core.errors import LoadError
from core.state import SALES_KEY
from db.database import create_db_and_tables, make_engine, make_session_maker
from db.document import Document
from main import create_app

from conftest import NOW


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        reminder_interval_seconds=0.05,
        log_level="WARNING",
    )


@pytest.fixture
def api_clock():
    return FixedClock(NOW)


@pytest.fixture
def client(settings, api_clock):
    with TestClient(create_app(settings, clock=api_clock)) as c:
        yield c


def _add_item(client, name="Filter", quantity=5, price=1000):
    r = client.post("/inventory/items", json={"name": name, "quantity": quantity, "price": price})
    assert r.status_code == 201, r.text
    return r.json()


def _add_customer(client, name="Ahmed", contact="0300-1234567"):
    r = client.post("/customers/", json={"name": name, "contact": contact})
    assert r.status_code == 201, r.text
    return r.json()


def test_inventory_crud(client):
    item = _add_item(client)
    assert item["lowStock"] is True
    assert Decimal(item["price"]) == Decimal("1000")

    r = client.patch(f"/inventory/items/{item['id']}", json={"quantity": 12, "name": "Filter XL"})
    assert r.status_code == 200
    assert (r.json()["name"], r.json()["quantity"], r.json()["lowStock"]) == ("Filter XL", 12, False)

    r = client.post(f"/inventory/items/{item['id']}/stock-out", json={"amount": 50})
    assert r.json()["quantity"] == 0

    r = client.post(f"/inventory/items/{item['id']}/stock-in", json={"amount": 3})
    assert r.json()["quantity"] == 3

    assert [i["id"] for i in client.get("/inventory/low-stock").json()] == [item["id"]]
    assert len(client.get("/inventory/items", params={"q": "xl"}).json()) == 1
    assert client.get("/inventory/items", params={"q": "membrane"}).json() == []

    assert client.delete(f"/inventory/items/{item['id']}").status_code == 200
    assert client.get("/inventory/items").json() == []


def test_inventory_errors(client):
    assert client.get("/inventory/items/nope").status_code == 404
    assert client.patch("/inventory/items/nope", json={"name": "x"}).status_code == 404

    item = _add_item(client)
    r = client.post(f"/inventory/items/{item['id']}/stock-in", json={"amount": 0})
    assert r.status_code == 400
    assert "message" in r.json()["detail"]

    # payload shape errors are rejected by request validation
    assert client.post("/inventory/items", json={"name": "x", "quantity": -1}).status_code == 422


def test_commit_sale_end_to_end(client):
    item = _add_item(client)
    customer = _add_customer(client)

    r = client.post(
        "/billing/sales",
        json={"items": [{"productId": item["id"], "quantity": 5}], "customerId": customer["id"]},
    )

    assert r.status_code == 201, r.text
    sale = r.json()
    assert sale["invoice"] == "INV-000001"
    assert Decimal(sale["total"]) == Decimal("5000")
    assert sale["customerId"] == customer["id"]
    assert sale["items"][0]["productId"] == item["id"]

    assert client.get(f"/inventory/items/{item['id']}").json()["quantity"] == 0
    assert client.get(f"/billing/sales/{sale['invoice']}").json() == sale
    [listed] = client.get("/billing/sales").json()
    assert listed["invoice"] == sale["invoice"]

    c = client.get(f"/customers/{customer['id']}").json()
    assert [h["invoice"] for h in c["history"]] == ["INV-000001"]
    assert c["recentPurchases"][0]["invoice"] == "INV-000001"


def test_overselling_returns_409_and_changes_nothing(client):
    item = _add_item(client)

    r = client.post("/billing/sales", json={"items": [{"productId": item["id"], "quantity": 6}]})

    assert r.status_code == 409
    [shortfall] = r.json()["detail"]["shortfalls"]
    assert shortfall == {"productId": item["id"], "requested": 6, "available": 5, "shortfall": 1}
    assert client.get(f"/inventory/items/{item['id']}").json()["quantity"] == 5
    assert client.get("/billing/sales").json() == []


def test_invalid_lines_return_400(client):
    item = _add_item(client)

    r = client.post(
        "/billing/sales",
        json={"items": [{"productId": "ghost", "quantity": 1}, {"productId": item["id"], "quantity": 0}]},
    )

    assert r.status_code == 400
    lines = r.json()["detail"]["lines"]
    assert [(line["index"], line["reason"]) for line in lines] == [
        (0, "unknown product"),
        (1, "quantity must be a positive integer"),
    ]
    assert client.post("/billing/sales", json={"items": []}).status_code == 400


def test_unknown_sale_and_customer_are_404(client):
    assert client.get("/billing/sales/INV-999999").status_code == 404
    assert client.get("/customers/nobody").status_code == 404
    assert client.delete("/customers/nobody").status_code == 404


def test_dashboard(client, api_clock):
    item = _add_item(client, quantity=10, price=100)
    client.post("/billing/sales", json={"items": [{"productId": item["id"], "quantity": 2}]})
    api_clock.advance(days=1)
    client.post("/billing/sales", json={"items": [{"productId": item["id"], "quantity": 1}]})

    summary = client.get("/dashboard/summary").json()
    assert Decimal(summary["revenue"]["daily"]) == Decimal("100")
    assert Decimal(summary["revenue"]["weekly"]) == Decimal("300")
    assert Decimal(summary["revenue"]["totalRevenue"]) == Decimal("300")
    assert summary["revenue"]["orderCount"] == 2
    assert summary["chart"]["labels"] == ["Daily", "Weekly", "Monthly"]

    recent = client.get("/dashboard/recent-sales").json()
    assert [s["invoice"] for s in recent] == ["INV-000002", "INV-000001"]
    assert recent[0]["itemCount"] == 1
    assert client.get("/dashboard/recent-sales", params={"limit": 0}).status_code == 422

    counts = client.get("/dashboard/counts").json()
    assert counts == {"products": 1, "customers": 0, "orders": 2, "durable": True}


def test_reminders_follow_the_scheduler(client, api_clock):
    item = _add_item(client)
    customer = _add_customer(client, name="Sara")
    api_clock.set(NOW - timedelta(days=45))
    client.post(
        "/billing/sales",
        json={"items": [{"productId": item["id"], "quantity": 1}], "customerId": customer["id"]},
    )
    api_clock.set(NOW)

    deadline = time.monotonic() + 5
    reminders = []
    while time.monotonic() < deadline:
        reminders = client.get("/reminders/").json()
        if reminders:
            break
        time.sleep(0.05)

    assert reminders == [
        {
            "customerId": customer["id"],
            "customerName": "Sara",
            "kind": "service-check",
            "message": "Sara - 1 month service check due",
        }
    ]


def test_state_survives_restart(settings, api_clock):
    with TestClient(create_app(settings, clock=api_clock)) as c:
        item = _add_item(c)
        customer = _add_customer(c)
        c.post("/billing/sales", json={"items": [{"productId": item["id"], "quantity": 2}], "customerId": customer["id"]})

    with TestClient(create_app(settings, clock=api_clock)) as c:
        assert c.get(f"/inventory/items/{item['id']}").json()["quantity"] == 3
        assert c.get("/dashboard/counts").json()["orders"] == 1
        assert len(c.get(f"/customers/{customer['id']}").json()["history"]) == 1
        sale = c.post("/billing/sales", json={"items": [{"productId": item["id"], "quantity": 1}]}).json()
        assert sale["invoice"] == "INV-000002"


def test_malformed_document_stops_startup(settings, api_clock):
    async def corrupt():
        db = make_engine(settings.database_url, echo=False)
        await create_db_and_tables(db)
        async with make_session_maker(db)() as session:
            session.add(Document(key=SALES_KEY, body="{broken"))
            await session.commit()
        await db.dispose()

    asyncio.run(corrupt())

    with pytest.raises(LoadError):
        with TestClient(create_app(settings, clock=api_clock)):
            pass
