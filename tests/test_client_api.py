from http import HTTPStatus
from urllib.parse import parse_qs, urlparse

import pytest
from conftest import SESSION_ID

from tableside_clients.app import create_app
from tableside_shared.db import get_session
from tableside_shared.models import Area, Restaurant, Table


@pytest.fixture
def client(app_config, seeded):
    app = create_app(app_config)
    app.config["TESTING"] = True
    return app.test_client()


def _cart(token, *items, session_id=SESSION_ID):
    return {
        "customer_token": token,
        "session_id": session_id,
        "items": [
            {"product_id": pid, "quantity": qty, "unit_price": price, "display_name": pid.title()}
            for pid, qty, price in items
        ],
    }


def test_submit_cart_and_read_back(client, table_id):
    resp = client.put(f"/api/tables/{table_id}/cart", json=_cart("A", ("burger", 1, "12.50")))
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["status"] == "success"

    client.put(f"/api/tables/{table_id}/cart", json=_cart("B", ("salad", 2, "8.00")))

    resp = client.get(f"/api/tables/{table_id}/order", headers={"X-Customer-Token": "B"})
    data = resp.get_json()["data"]
    assert data["table_closed"] is False
    assert data["order"]["total"] == 28.5
    assert [i["product_id"] for i in data["my_lines"]["items"]] == ["salad"]


def test_delete_own_line(client, table_id):
    client.put(
        f"/api/tables/{table_id}/cart",
        json=_cart("A", ("burger", 1, "12.50"), ("fries", 1, "3.00")),
    )
    resp = client.delete(
        f"/api/tables/{table_id}/cart/fries?session={SESSION_ID}",
        headers={"X-Customer-Token": "A"},
    )
    assert resp.status_code == HTTPStatus.OK
    assert [i["product_id"] for i in resp.get_json()["data"]["items"]] == ["burger"]


def test_place_order(client, table_id):
    resp = client.post(f"/api/tables/{table_id}/place", json={"session_id": SESSION_ID})
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.get_json()["code"] == "empty_order"

    client.put(f"/api/tables/{table_id}/cart", json=_cart("A", ("burger", 1, "12.50")))
    resp = client.post(f"/api/tables/{table_id}/place", json={"session_id": SESSION_ID})
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["data"]["placed_at"] is not None


def test_invalid_cart_is_rejected(client, table_id):
    resp = client.put(f"/api/tables/{table_id}/cart", json=_cart("A", ("burger", -1, "12.50")))
    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert resp.get_json()["status"] == "error"

    resp = client.put(f"/api/tables/{table_id}/cart", json={"items": []})
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_cart_line_limit(client, table_id):
    items = [(f"p{i}", 1, "1.00") for i in range(6)]
    resp = client.put(f"/api/tables/{table_id}/cart", json=_cart("A", *items))
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_stale_session_gets_table_closed(client, table_id):
    resp = client.put(
        f"/api/tables/{table_id}/cart",
        json=_cart("A", ("burger", 1, "12.50"), session_id="expired"),
    )
    assert resp.status_code == HTTPStatus.FORBIDDEN
    body = resp.get_json()
    assert body["code"] == "table_closed"
    assert body["details"]["restaurant_name"] == "Casa Test"


def test_table_redirect_carries_session(client, table_id):
    resp = client.get(f"/table-redirect?table={table_id}")
    assert resp.status_code == HTTPStatus.FOUND

    location = urlparse(resp.headers["Location"])
    assert location.path == "/menu/casa-test"
    params = parse_qs(location.query)
    assert params["table"] == [str(table_id)]
    assert params["session"] == [SESSION_ID]


def test_customer_writes_require_session(client, table_id):
    resp = client.put(
        f"/api/tables/{table_id}/cart", json=_cart("A", ("burger", 1, "12.50"), session_id=None)
    )
    assert resp.status_code == HTTPStatus.BAD_REQUEST

    resp = client.delete(f"/api/tables/{table_id}/cart/burger", headers={"X-Customer-Token": "A"})
    assert resp.status_code == HTTPStatus.BAD_REQUEST

    resp = client.post(f"/api/tables/{table_id}/place", json={})
    assert resp.status_code == HTTPStatus.BAD_REQUEST

    resp = client.get(f"/api/tables/{table_id}/order")
    assert resp.get_json()["data"]["order"] is None


def test_table_redirect_uses_the_tables_restaurant(client, seeded):
    with get_session() as session:
        other = Restaurant(name="Other Place", slug="other-place")
        session.add(other)
        session.flush()
        area = Area(restaurant_id=other.id, name="Bar", prefix="B")
        session.add(area)
        session.flush()
        table = Table(
            restaurant_id=other.id,
            area_id=area.id,
            label="B1",
            capacity=2,
            status="available",
            session_id="other-session",
        )
        session.add(table)
        session.flush()
        other_table_id = table.id

    resp = client.get(f"/table-redirect?table={other_table_id}")
    assert resp.status_code == HTTPStatus.FOUND

    location = urlparse(resp.headers["Location"])
    assert location.path == "/menu/other-place"
    assert parse_qs(location.query)["session"] == ["other-session"]


def test_table_redirect_unknown_table_goes_to_plain_menu(client):
    resp = client.get("/table-redirect?table=9999")
    assert resp.status_code == HTTPStatus.FOUND
    assert resp.headers["Location"] == "http://tables.test/menu/casa-test"


def test_unknown_route_is_json(client):
    resp = client.get("/api/nope")
    assert resp.status_code == HTTPStatus.NOT_FOUND
    assert resp.get_json()["status"] == "error"
