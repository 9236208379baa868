from http import HTTPStatus

from conftest import BURGER, SALAD, SESSION_ID, line

from tableside_shared.constants import TableStatus
from tableside_shared.services import table_order_service as svc


def _table(table_id):
    payload, status = svc.get_table(table_id)
    assert status == HTTPStatus.OK
    return payload["data"]


def test_place_without_order_is_empty(table_id):
    payload, status = svc.place_order(table_id)
    assert status == HTTPStatus.BAD_REQUEST
    assert payload["code"] == "empty_order"


def test_place_occupies_table_and_stamps_once(table_id):
    svc.submit_cart(table_id, "A", [BURGER])

    payload, status = svc.place_order(table_id, session_id=SESSION_ID)
    assert status == HTTPStatus.OK
    placed_at = payload["data"]["placed_at"]
    assert placed_at is not None
    assert payload["data"]["order_status"] == "pending"
    assert _table(table_id)["status"] == "occupied"

    payload, status = svc.place_order(table_id)
    assert status == HTTPStatus.OK
    assert payload["data"]["placed_at"] == placed_at


def test_place_after_edit_restamps(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    first, _ = svc.place_order(table_id)
    svc.submit_cart(table_id, "B", [SALAD])
    second, _ = svc.place_order(table_id)

    assert second["data"]["placed_at"] >= first["data"]["placed_at"]
    assert second["data"]["updated_at"] >= first["data"]["updated_at"]


def test_place_on_unavailable_table(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.set_table_status(table_id, TableStatus.OUT_OF_SERVICE)

    payload, status = svc.place_order(table_id)
    assert status == HTTPStatus.FORBIDDEN
    assert payload["code"] == "table_unavailable"


def test_place_processed_order_is_invalid(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.process_order(table_id)

    payload, status = svc.place_order(table_id)
    assert status == HTTPStatus.CONFLICT
    assert payload["code"] == "invalid_transition"
    assert payload["retryable"] is False


def test_process_marks_whole_batch(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.submit_cart(table_id, "B", [SALAD])

    payload, status = svc.process_order(table_id)
    assert status == HTTPStatus.OK
    order = payload["data"]
    assert order["order_status"] == "processed"
    assert order["processed_at"] is not None
    assert all(item["processed"] for item in order["items"])

    payload, status = svc.process_order(table_id)
    assert status == HTTPStatus.CONFLICT
    assert payload["details"]["current_status"] == "processed"


def test_process_without_any_order_is_not_found(table_id):
    payload, status = svc.process_order(table_id)
    assert status == HTTPStatus.NOT_FOUND


def test_close_clears_table_and_rotates_session(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.place_order(table_id)

    payload, status = svc.close_order(table_id)
    assert status == HTTPStatus.OK
    assert payload["data"]["order"]["order_status"] == "closed"
    assert payload["data"]["order"]["closed_at"] is not None
    table = payload["data"]["table"]
    assert table["status"] == "available"
    assert table["session_id"] != SESSION_ID

    payload, _ = svc.get_active_order(table_id)
    assert payload["data"]["order"] is None


def test_closed_is_terminal(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.close_order(table_id)

    for action in (svc.close_order, svc.process_order):
        payload, status = action(table_id)
        assert status == HTTPStatus.CONFLICT
        assert payload["code"] == "invalid_transition"
        assert payload["details"]["current_status"] == "closed"


def test_stale_device_after_close_gets_table_closed(table_id):
    svc.submit_cart(table_id, "A", [BURGER], session_id=SESSION_ID)
    svc.close_order(table_id)

    payload, status = svc.submit_cart(table_id, "A", [line(BURGER, 2)], session_id=SESSION_ID)
    assert status == HTTPStatus.FORBIDDEN
    assert payload["code"] == "table_closed"
    assert payload["details"]["table_label"] == "T1"
    assert "scan the QR code" in payload["details"]["message"]

    payload, _ = svc.get_active_order(table_id, session_id=SESSION_ID)
    assert payload["data"]["table_closed"] is True


def test_new_session_opens_a_fresh_order(table_id):
    first, _ = svc.submit_cart(table_id, "A", [BURGER], session_id=SESSION_ID)
    closed, _ = svc.close_order(table_id)
    new_session = closed["data"]["table"]["session_id"]

    payload, status = svc.submit_cart(table_id, "C", [SALAD], session_id=new_session)
    assert status == HTTPStatus.OK
    assert payload["data"]["id"] != first["data"]["id"]
    assert payload["data"]["customer_tokens"] == ["C"]


def test_mark_line_processed_then_customer_edit_resets_it(table_id):
    svc.submit_cart(table_id, "A", [BURGER, SALAD])

    payload, status = svc.mark_line_processed(table_id, "burger", "A")
    assert status == HTTPStatus.OK
    flags = {i["product_id"]: i["processed"] for i in payload["data"]["items"]}
    assert flags == {"burger": True, "salad": False}

    payload, _ = svc.submit_cart(table_id, "A", [line(BURGER, 3), SALAD])
    flags = {i["product_id"]: i["processed"] for i in payload["data"]["items"]}
    assert flags == {"burger": False, "salad": False}


def test_mark_unknown_line_is_not_found(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    payload, status = svc.mark_line_processed(table_id, "pizza")
    assert status == HTTPStatus.NOT_FOUND


def test_staff_removal_only_strikes_unprocessed_lines(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.process_order(table_id)
    svc.submit_cart(table_id, "B", [BURGER, SALAD])

    payload, status = svc.remove_staff_line(table_id, "burger")
    assert status == HTTPStatus.OK
    remaining = {(i["customer_token"], i["product_id"]) for i in payload["data"]["items"]}
    assert remaining == {("A", "burger"), ("B", "salad")}
    assert payload["data"]["total"] == 28.5

    payload, status = svc.remove_staff_line(table_id, "burger")
    assert status == HTTPStatus.CONFLICT
    assert payload["code"] == "invalid_transition"

    payload, status = svc.remove_staff_line(table_id, "pizza")
    assert status == HTTPStatus.NOT_FOUND
