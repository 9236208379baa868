"""
Table orders API - staff side of the shared table order.

Staff see the whole order of a table and move it through
pending -> processed -> closed, or strike/flag individual lines.
"""

from flask import Blueprint, g, jsonify, request

from tableside_employees.decorators import staff_required
from tableside_shared.logging_config import get_logger
from tableside_shared.schemas import StaffOrderActionRequest
from tableside_shared.services import table_order_service

table_orders_bp = Blueprint("table_orders", __name__)
logger = get_logger(__name__)


@table_orders_bp.get("/table-orders/<int:table_id>")
@staff_required
def get_table_order(table_id: int):
    """Active order of the table with every guest's lines."""
    response, status = table_order_service.get_active_order(table_id)
    return jsonify(response), status


@table_orders_bp.patch("/table-orders/<int:table_id>")
@staff_required
def update_table_order(table_id: int):
    """
    Apply a staff action to the table's order.

    Body:
    - {"action": "process"}: the whole current order goes to the kitchen
    - {"action": "close"}: closes the order, clears the table, rotates its QR
    - {"action": "remove_item", "item_id": <product_id>}: strike unprocessed lines
    - {"action": "mark_processed", "item_id": <product_id>, "customer_token"?}
    """
    body = StaffOrderActionRequest(**(request.get_json(silent=True) or {}))
    logger.info(f"Staff {g.staff_id} requested {body.action} on table {table_id}")

    if body.action == "process":
        response, status = table_order_service.process_order(table_id)
    elif body.action == "close":
        response, status = table_order_service.close_order(table_id)
    elif body.action == "remove_item":
        response, status = table_order_service.remove_staff_line(table_id, body.item_id)
    else:
        response, status = table_order_service.mark_line_processed(
            table_id, body.item_id, body.customer_token
        )
    return jsonify(response), status
