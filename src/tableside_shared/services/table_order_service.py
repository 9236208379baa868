"""
Table order operations exposed to the customer and staff apps.

Every function returns ``(payload, HTTPStatus)`` where the payload is the
standard response envelope. Anything that reads and then writes a table order
runs inside ``run_table_unit`` so it is retried on concurrent writers and
rolled back as a whole on any error.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from http import HTTPStatus
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tableside_shared.constants import TableActor, TableStatus
from tableside_shared.db import get_session
from tableside_shared.errors import DomainError, conflict
from tableside_shared.logging_config import get_logger
from tableside_shared.models import Table
from tableside_shared.serializers import (
    serialize_contribution,
    serialize_order,
    serialize_table,
    success_response,
)
from tableside_shared.services import order_store, table_registry
from tableside_shared.services.cart_merge import CartLine, merge_cart
from tableside_shared.services.concurrency import run_table_unit
from tableside_shared.services.order_lifecycle import LifecycleOutcome, order_lifecycle
from tableside_shared.services.qr_service import build_table_qr_url, qr_png_data_url
from tableside_shared.validation import validate_customer_token

logger = get_logger(__name__)


def _respond(
    table_id: int,
    operation: str,
    work: Callable[[Session], Any],
    message: str | None = None,
) -> tuple[dict, HTTPStatus]:
    result = run_table_unit(table_id, operation, work)
    if isinstance(result, DomainError):
        return result.to_dict(), result.http_status
    return success_response(result, message), HTTPStatus.OK


def _order_or_error(result) -> dict | DomainError:
    if isinstance(result, DomainError):
        return result
    if isinstance(result, LifecycleOutcome):
        return serialize_order(result.order)
    return serialize_order(result)


# ---------------------------------------------------------------------------
# Customer operations
# ---------------------------------------------------------------------------


def submit_cart(
    table_id: int,
    customer_token: str,
    items: Iterable[CartLine],
    session_id: str | None = None,
) -> tuple[dict, HTTPStatus]:
    """Replace this device's lines in the table's shared order."""
    customer_token = validate_customer_token(customer_token)
    items = list(items)

    def work(db_session: Session):
        result = merge_cart(db_session, table_id, customer_token, items, session_id=session_id)
        if result is None:
            return None
        return _order_or_error(result)

    return _respond(table_id, "submit_cart", work)


def remove_line(
    table_id: int,
    customer_token: str,
    product_id: str,
    session_id: str | None = None,
) -> tuple[dict, HTTPStatus]:
    """
    Drop one product from this device's cart.

    Removing a product the device does not have is a no-op that still returns
    the current order.
    """
    customer_token = validate_customer_token(customer_token)

    def work(db_session: Session):
        current = order_store.load_active_order(db_session, table_id, for_update=True)
        remaining = [
            CartLine(line.product_id, line.quantity, line.unit_price, line.display_name)
            for line in (current.lines if current else [])
            if line.customer_token == customer_token and line.product_id != product_id
        ]
        result = merge_cart(db_session, table_id, customer_token, remaining, session_id=session_id)
        if result is None:
            return None
        return _order_or_error(result)

    return _respond(table_id, "remove_line", work)


def get_active_order(
    table_id: int,
    customer_token: str | None = None,
    session_id: str | None = None,
) -> tuple[dict, HTTPStatus]:
    """
    Current order of the table (``order`` is None when there is none).

    ``table_closed`` tells the device it must rescan before ordering again;
    with a customer token the device's own lines come back as ``my_lines``.
    """
    with get_session() as db_session:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return table.to_dict(), table.http_status

        order = order_store.load_active_order(db_session, table_id)
        closed = order_store.guard_not_closed(db_session, table, session_id)
        data: dict[str, Any] = {
            "table_id": table.id,
            "table_label": table.label,
            "table_status": table.status,
            "table_closed": closed is not None,
            "order": serialize_order(order) if order else None,
        }
        if customer_token:
            data["my_lines"] = serialize_contribution(
                order, validate_customer_token(customer_token)
            )
        return success_response(data), HTTPStatus.OK


def get_customer_contribution(table_id: int, customer_token: str) -> tuple[dict, HTTPStatus]:
    """One device's lines and subtotal inside the shared order."""
    customer_token = validate_customer_token(customer_token)
    with get_session() as db_session:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return table.to_dict(), table.http_status
        order = order_store.load_active_order(db_session, table_id)
        return success_response(serialize_contribution(order, customer_token)), HTTPStatus.OK


def place_order(table_id: int, session_id: str | None = None) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        return _order_or_error(order_lifecycle.place(db_session, table_id, session_id=session_id))

    return _respond(table_id, "place_order", work, "Order placed")


# ---------------------------------------------------------------------------
# Staff operations
# ---------------------------------------------------------------------------


def process_order(table_id: int) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        return _order_or_error(order_lifecycle.process(db_session, table_id))

    return _respond(table_id, "process_order", work, "Order processed")


def mark_line_processed(
    table_id: int, product_id: str, customer_token: str | None = None
) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        return _order_or_error(
            order_lifecycle.mark_line_processed(db_session, table_id, product_id, customer_token)
        )

    return _respond(table_id, "mark_line_processed", work)


def remove_staff_line(table_id: int, product_id: str) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        return _order_or_error(order_lifecycle.remove_staff_line(db_session, table_id, product_id))

    return _respond(table_id, "remove_staff_line", work, "Item removed")


def close_order(table_id: int) -> tuple[dict, HTTPStatus]:
    """Close the order, clear the table and rotate its QR session."""

    def work(db_session: Session):
        outcome = order_lifecycle.close(db_session, table_id)
        if isinstance(outcome, DomainError):
            return outcome
        return {
            "order": serialize_order(outcome.order),
            "table": serialize_table(outcome.table),
        }

    return _respond(table_id, "close_order", work, "Order closed")


def set_table_status(table_id: int, status: TableStatus) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        table = table_registry.get_table(db_session, table_id, for_update=True)
        if isinstance(table, DomainError):
            return table
        result = table_registry.transition_status(
            db_session, table, status, TableActor.STAFF, datetime.utcnow()
        )
        if isinstance(result, DomainError):
            return result
        return serialize_table(result)

    return _respond(table_id, "set_table_status", work)


def rotate_table_session(table_id: int) -> tuple[dict, HTTPStatus]:
    def work(db_session: Session):
        table = table_registry.get_table(db_session, table_id, for_update=True)
        if isinstance(table, DomainError):
            return table
        table_registry.rotate_session(db_session, table)
        return serialize_table(table)

    return _respond(table_id, "rotate_table_session", work, "QR session rotated")


def rotate_all_sessions(restaurant_id: int | None = None) -> tuple[dict, HTTPStatus]:
    """
    Rotate the QR session of every active table, one table unit at a time.

    Tables that keep conflicting are reported back rather than failing the batch.
    """
    with get_session() as db_session:
        table_ids = [table.id for table in table_registry.list_tables(db_session, restaurant_id)]

    rotated = 0
    failed: list[int] = []
    for table_id in table_ids:

        def work(db_session: Session, table_id: int = table_id):
            table = table_registry.get_table(db_session, table_id, for_update=True)
            if isinstance(table, DomainError):
                return table
            return table_registry.rotate_session(db_session, table)

        result = run_table_unit(table_id, "rotate_all_sessions", work)
        if isinstance(result, DomainError):
            failed.append(table_id)
        else:
            rotated += 1

    logger.info(f"Rotated {rotated} QR sessions ({len(failed)} failed)")
    return (
        success_response({"rotated": rotated, "failed": failed}, f"{rotated} sessions rotated"),
        HTTPStatus.OK,
    )


def get_table_link(table_id: int, base_url: str) -> tuple[dict, HTTPStatus]:
    """Printable deep link of the table plus its QR code as a PNG data URL."""
    with get_session() as db_session:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return table.to_dict(), table.http_status
        url = build_table_qr_url(base_url, table.id)
        data = {
            "table_id": table.id,
            "label": table.label,
            "url": url,
            "qr_png": qr_png_data_url(url),
        }
        return success_response(data), HTTPStatus.OK


def list_tables(
    restaurant_id: int | None = None,
    area_id: int | None = None,
    status: TableStatus | None = None,
) -> tuple[dict, HTTPStatus]:
    with get_session() as db_session:
        tables = table_registry.list_tables(db_session, restaurant_id, area_id, status)
        return success_response({"tables": [serialize_table(t) for t in tables]}), HTTPStatus.OK


def get_table(table_id: int) -> tuple[dict, HTTPStatus]:
    """Table with its active order, for the staff floor view."""
    with get_session() as db_session:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return table.to_dict(), table.http_status
        order = order_store.load_active_order(db_session, table_id)
        data = serialize_table(table)
        data["active_order"] = serialize_order(order) if order else None
        return success_response(data), HTTPStatus.OK


def create_table(
    *, restaurant_id: int, area_id: int, label: str, capacity: int = 4
) -> tuple[dict, HTTPStatus]:
    try:
        with get_session() as db_session:
            table: Table = table_registry.create_table(
                db_session,
                restaurant_id=restaurant_id,
                area_id=area_id,
                label=label,
                capacity=capacity,
            )
            data = serialize_table(table)
    except IntegrityError:
        logger.warning(f"Duplicate table label {label!r} in restaurant {restaurant_id}")
        error = conflict("A table with this label already exists", label=label)
        return error.to_dict(), error.http_status
    return success_response(data, "Table created"), HTTPStatus.CREATED
