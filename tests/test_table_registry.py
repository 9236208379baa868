from http import HTTPStatus

import pytest
from conftest import BURGER, SESSION_ID

from tableside_shared.constants import TableActor, TableStatus
from tableside_shared.db import get_session
from tableside_shared.errors import DomainError, ErrorCode
from tableside_shared.services import table_order_service as svc
from tableside_shared.services import table_registry
from tableside_shared.table_utils import normalize_table_label, session_matches
from tableside_shared.validation import ValidationError


def test_staff_cannot_force_occupied(table_id):
    payload, status = svc.set_table_status(table_id, TableStatus.OCCUPIED)
    assert status == HTTPStatus.CONFLICT
    assert payload["code"] == "conflict"
    assert payload["details"]["requested_status"] == "occupied"


def test_lifecycle_cannot_set_cleaning(table_id):
    with get_session() as session:
        table = table_registry.get_table(session, table_id, for_update=True)
        result = table_registry.transition_status(
            session, table, TableStatus.CLEANING, TableActor.LIFECYCLE
        )
    assert isinstance(result, DomainError)
    assert result.code == ErrorCode.CONFLICT


def test_cleaning_then_cleared_rotates_session(table_id):
    payload, status = svc.set_table_status(table_id, TableStatus.CLEANING)
    assert status == HTTPStatus.OK
    assert payload["data"]["status"] == "cleaning"
    assert payload["data"]["session_id"] == SESSION_ID

    payload, status = svc.set_table_status(table_id, TableStatus.AVAILABLE)
    assert status == HTTPStatus.OK
    assert payload["data"]["status"] == "available"
    assert payload["data"]["session_id"] != SESSION_ID


def test_same_status_is_noop(table_id):
    svc.set_table_status(table_id, TableStatus.OUT_OF_SERVICE)
    payload, status = svc.set_table_status(table_id, TableStatus.OUT_OF_SERVICE)
    assert status == HTTPStatus.OK
    assert payload["data"]["status"] == "out_of_service"
    assert payload["data"]["session_id"] == SESSION_ID


def test_clearing_with_active_order_conflicts(table_id):
    svc.submit_cart(table_id, "A", [BURGER])
    svc.place_order(table_id)

    payload, status = svc.set_table_status(table_id, TableStatus.AVAILABLE)
    assert status == HTTPStatus.CONFLICT
    assert payload["retryable"] is True

    payload, _ = svc.get_table(table_id)
    assert payload["data"]["status"] == "occupied"
    assert payload["data"]["active_order"] is not None


def test_rotate_session_invalidates_old_links(table_id):
    payload, status = svc.rotate_table_session(table_id)
    assert status == HTTPStatus.OK
    new_session = payload["data"]["session_id"]
    assert new_session != SESSION_ID

    _, status = svc.submit_cart(table_id, "A", [BURGER], session_id=SESSION_ID)
    assert status == HTTPStatus.FORBIDDEN
    _, status = svc.submit_cart(table_id, "A", [BURGER], session_id=new_session)
    assert status == HTTPStatus.OK


def test_rotate_all_sessions(seeded):
    svc.create_table(restaurant_id=seeded.restaurant_id, area_id=seeded.area_id, label="t2")

    payload, status = svc.rotate_all_sessions(seeded.restaurant_id)
    assert status == HTTPStatus.OK
    assert payload["data"] == {"rotated": 2, "failed": []}

    payload, _ = svc.list_tables(restaurant_id=seeded.restaurant_id)
    sessions = {t["session_id"] for t in payload["data"]["tables"]}
    assert SESSION_ID not in sessions
    assert len(sessions) == 2


def test_create_table_normalizes_label_and_rejects_duplicates(seeded):
    payload, status = svc.create_table(
        restaurant_id=seeded.restaurant_id, area_id=seeded.area_id, label=" b  2 ", capacity=2
    )
    assert status == HTTPStatus.CREATED
    assert payload["data"]["label"] == "B 2"
    assert payload["data"]["status"] == "available"
    assert payload["data"]["session_id"]

    payload, status = svc.create_table(
        restaurant_id=seeded.restaurant_id, area_id=seeded.area_id, label="B 2"
    )
    assert status == HTTPStatus.CONFLICT


def test_create_table_in_foreign_area(seeded):
    with pytest.raises(ValidationError):
        svc.create_table(restaurant_id=seeded.restaurant_id + 1, area_id=seeded.area_id, label="X1")


def test_list_tables_filters_by_status(seeded):
    svc.create_table(restaurant_id=seeded.restaurant_id, area_id=seeded.area_id, label="T2")
    svc.set_table_status(seeded.table_id, TableStatus.CLEANING)

    payload, _ = svc.list_tables(status=TableStatus.CLEANING)
    assert [t["label"] for t in payload["data"]["tables"]] == ["T1"]


def test_table_link_carries_table_id_only(table_id):
    payload, status = svc.get_table_link(table_id, "http://tables.test/")
    assert status == HTTPStatus.OK
    assert payload["data"]["url"] == f"http://tables.test/table-redirect?table={table_id}"
    assert payload["data"]["qr_png"].startswith("data:image/png;base64,")


def test_label_validation_and_session_matching():
    assert normalize_table_label("a3") == "A3"
    with pytest.raises(ValidationError):
        normalize_table_label("-bad")
    assert session_matches("abc", None)
    assert session_matches("abc", " abc ")
    assert not session_matches("abc", "abd")
