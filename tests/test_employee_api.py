from http import HTTPStatus

import pytest
from conftest import BURGER, SALAD, SESSION_ID

from tableside_employees.app import create_app
from tableside_shared.services import table_order_service as svc

STAFF = {"X-Staff-Id": "waiter-7"}


@pytest.fixture
def client(app_config, seeded):
    app = create_app(app_config)
    app.config["TESTING"] = True
    return app.test_client()


def test_staff_identity_required(client, table_id):
    resp = client.get(f"/api/table-orders/{table_id}")
    assert resp.status_code == HTTPStatus.UNAUTHORIZED


def test_floor_view(client, table_id):
    svc.submit_cart(table_id, "A", [BURGER])

    resp = client.get("/api/tables", headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    assert [t["label"] for t in resp.get_json()["data"]["tables"]] == ["T1"]

    resp = client.get(f"/api/tables/{table_id}", headers=STAFF)
    assert resp.get_json()["data"]["active_order"]["total"] == 12.5


def test_process_then_close(client, table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.submit_cart(table_id, "B", [SALAD])
    svc.place_order(table_id)

    resp = client.patch(f"/api/table-orders/{table_id}", json={"action": "process"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["data"]["order_status"] == "processed"

    resp = client.patch(f"/api/table-orders/{table_id}", json={"action": "close"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    data = resp.get_json()["data"]
    assert data["table"]["status"] == "available"
    assert data["table"]["session_id"] != SESSION_ID

    resp = client.patch(f"/api/table-orders/{table_id}", json={"action": "close"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.CONFLICT


def test_line_actions(client, table_id):
    svc.submit_cart(table_id, "A", [BURGER, SALAD])

    resp = client.patch(
        f"/api/table-orders/{table_id}",
        json={"action": "mark_processed", "item_id": "burger"},
        headers=STAFF,
    )
    assert resp.status_code == HTTPStatus.OK

    resp = client.patch(
        f"/api/table-orders/{table_id}",
        json={"action": "remove_item", "item_id": "salad"},
        headers=STAFF,
    )
    assert resp.status_code == HTTPStatus.OK
    assert [i["product_id"] for i in resp.get_json()["data"]["items"]] == ["burger"]


def test_bad_actions_are_rejected(client, table_id):
    resp = client.patch(f"/api/table-orders/{table_id}", json={"action": "explode"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.BAD_REQUEST

    resp = client.patch(
        f"/api/table-orders/{table_id}", json={"action": "remove_item"}, headers=STAFF
    )
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_table_status_endpoint(client, table_id):
    resp = client.put(f"/api/tables/{table_id}/status", json={"status": "Cleaning"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["data"]["status"] == "cleaning"

    resp = client.put(f"/api/tables/{table_id}/status", json={"status": "closed"}, headers=STAFF)
    assert resp.status_code == HTTPStatus.BAD_REQUEST


def test_session_rotation_endpoints(client, seeded):
    resp = client.post(f"/api/tables/{seeded.table_id}/rotate-session", headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["data"]["session_id"] != SESSION_ID

    resp = client.post(
        f"/api/tables/refresh-session-ids?restaurant_id={seeded.restaurant_id}", headers=STAFF
    )
    assert resp.status_code == HTTPStatus.OK
    assert resp.get_json()["data"]["rotated"] == 1


def test_create_table(client, seeded):
    body = {"restaurant_id": seeded.restaurant_id, "area_id": seeded.area_id, "label": "t9"}
    resp = client.post("/api/tables", json=body, headers=STAFF)
    assert resp.status_code == HTTPStatus.CREATED
    assert resp.get_json()["data"]["label"] == "T9"

    resp = client.post("/api/tables", json=body, headers=STAFF)
    assert resp.status_code == HTTPStatus.CONFLICT


def test_qr_png_and_link(client, table_id):
    resp = client.get(f"/api/tables/{table_id}/qr", headers=STAFF)
    assert resp.status_code == HTTPStatus.OK
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")

    resp = client.get(f"/api/tables/{table_id}/link", headers=STAFF)
    assert resp.get_json()["data"]["url"].endswith(f"/table-redirect?table={table_id}")

    resp = client.get("/api/tables/9999/qr", headers=STAFF)
    assert resp.status_code == HTTPStatus.NOT_FOUND
