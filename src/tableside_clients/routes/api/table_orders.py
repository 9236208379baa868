"""
Shared table order endpoints for guests.

Every device at the table sends its complete cart; the server folds it into
the single order of the table and returns the full order so each device can
show what the whole table has asked for.
"""

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from tableside_shared.logging_config import get_logger
from tableside_shared.schemas import CustomerActionRequest, PlaceOrderRequest, SubmitCartRequest
from tableside_shared.services import table_order_service
from tableside_shared.services.cart_merge import CartLine
from tableside_shared.validation import ValidationError

table_orders_bp = Blueprint("client_table_orders", __name__)
logger = get_logger(__name__)

CUSTOMER_TOKEN_HEADER = "X-Customer-Token"


def _customer_token(payload: dict) -> str | None:
    return (
        payload.get("customer_token")
        or request.headers.get(CUSTOMER_TOKEN_HEADER)
        or request.args.get("customer_token")
    )


def _session_id(payload: dict) -> str | None:
    return payload.get("session_id") or request.args.get("session")


@table_orders_bp.get("/tables/<int:table_id>/order")
def get_table_order(table_id: int):
    """
    Current shared order of the table.

    Query params:
    - customer_token: adds this device's lines as ``my_lines`` (optional)
    - session: QR session of the device; a stale one sets ``table_closed``
    """
    response, status = table_order_service.get_active_order(
        table_id,
        customer_token=_customer_token({}),
        session_id=_session_id({}),
    )
    return jsonify(response), status


@table_orders_bp.put("/tables/<int:table_id>/cart")
def submit_cart(table_id: int):
    """
    Replace this device's cart inside the table order.

    Body: {"customer_token", "session_id", "items": [{"product_id", "quantity",
    "unit_price", "display_name"}]}. An empty list clears the device's lines.
    """
    payload = request.get_json(silent=True) or {}
    payload.setdefault("customer_token", _customer_token(payload))
    payload.setdefault("session_id", _session_id(payload))
    body = SubmitCartRequest(**payload)

    max_lines = current_app.config.get("MAX_CART_LINES", 50)
    if len(body.items) > max_lines:
        raise ValidationError(f"A cart cannot contain more than {max_lines} items")

    items = [
        CartLine(item.product_id, item.quantity, item.unit_price, item.display_name)
        for item in body.items
    ]
    response, status = table_order_service.submit_cart(
        table_id, body.customer_token, items, session_id=body.session_id
    )
    return jsonify(response), status


@table_orders_bp.delete("/tables/<int:table_id>/cart/<string:product_id>")
def remove_cart_line(table_id: int, product_id: str):
    payload = request.get_json(silent=True) or {}
    body = CustomerActionRequest(
        customer_token=_customer_token(payload) or "",
        session_id=_session_id(payload),
    )
    response, status = table_order_service.remove_line(
        table_id, body.customer_token, product_id, session_id=body.session_id
    )
    return jsonify(response), status


@table_orders_bp.post("/tables/<int:table_id>/place")
def place_order(table_id: int):
    """Send the table's current order to the staff."""
    payload = request.get_json(silent=True) or {}
    body = PlaceOrderRequest(session_id=_session_id(payload))
    response, status = table_order_service.place_order(table_id, session_id=body.session_id)
    if status == HTTPStatus.OK:
        logger.info(f"Table {table_id} placed its order")
    return jsonify(response), status
