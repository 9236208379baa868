"""
Tables API - floor view, status changes and QR codes.
"""

from http import HTTPStatus

from flask import Blueprint, current_app, g, jsonify, request, send_file

from tableside_employees.decorators import staff_required
from tableside_shared.db import get_session
from tableside_shared.errors import DomainError
from tableside_shared.logging_config import get_logger
from tableside_shared.schemas import CreateTableRequest, SetTableStatusRequest
from tableside_shared.services import table_order_service, table_registry
from tableside_shared.services.qr_service import build_table_qr_url, qr_png_bytes
from tableside_shared.validation import validate_table_status

tables_bp = Blueprint("tables", __name__)
logger = get_logger(__name__)


@tables_bp.get("/tables")
@staff_required
def get_tables():
    """
    All active tables.

    Query params:
    - restaurant_id, area_id: filters (optional)
    - status: filter by table status (optional)
    """
    status = request.args.get("status")
    response, code = table_order_service.list_tables(
        restaurant_id=request.args.get("restaurant_id", type=int),
        area_id=request.args.get("area_id", type=int),
        status=validate_table_status(status) if status else None,
    )
    return jsonify(response), code


@tables_bp.post("/tables")
@staff_required
def create_table():
    body = CreateTableRequest(**(request.get_json(silent=True) or {}))
    response, status = table_order_service.create_table(
        restaurant_id=body.restaurant_id,
        area_id=body.area_id,
        label=body.label,
        capacity=body.capacity,
    )
    return jsonify(response), status


@tables_bp.get("/tables/<int:table_id>")
@staff_required
def get_table(table_id: int):
    response, status = table_order_service.get_table(table_id)
    return jsonify(response), status


@tables_bp.put("/tables/<int:table_id>/status")
@staff_required
def set_table_status(table_id: int):
    """
    Change the table status.

    "available" is the "table cleared" action: it is refused while the table
    still has an active order and always issues a new QR session.
    """
    body = SetTableStatusRequest(**(request.get_json(silent=True) or {}))
    logger.info(f"Staff {g.staff_id} sets table {table_id} to {body.status}")
    response, status = table_order_service.set_table_status(
        table_id, validate_table_status(body.status)
    )
    return jsonify(response), status


@tables_bp.post("/tables/<int:table_id>/rotate-session")
@staff_required
def rotate_table_session(table_id: int):
    response, status = table_order_service.rotate_table_session(table_id)
    return jsonify(response), status


@tables_bp.post("/tables/refresh-session-ids")
@staff_required
def refresh_session_ids():
    """Invalidate every printed QR link of the restaurant at once."""
    restaurant_id = request.args.get("restaurant_id", type=int)
    logger.info(f"Staff {g.staff_id} refreshes all QR sessions")
    response, status = table_order_service.rotate_all_sessions(restaurant_id)
    return jsonify(response), status


@tables_bp.get("/tables/<int:table_id>/link")
@staff_required
def get_table_link(table_id: int):
    """Deep link and QR data URL for printing."""
    response, status = table_order_service.get_table_link(
        table_id, current_app.config.get("PUBLIC_BASE_URL", "")
    )
    return jsonify(response), status


@tables_bp.get("/tables/<int:table_id>/qr")
@staff_required
def get_table_qr(table_id: int):
    """
    PNG of the QR code printed on the table.

    The code carries only the table id, so it stays valid across rotations.
    """
    with get_session() as db_session:
        table = table_registry.get_table(db_session, table_id)
        if isinstance(table, DomainError):
            return jsonify(table.to_dict()), table.http_status
        label = table.label

    url = build_table_qr_url(current_app.config.get("PUBLIC_BASE_URL", ""), table_id)
    return (
        send_file(
            qr_png_bytes(url),
            mimetype="image/png",
            as_attachment=True,
            download_name=f"qr_table_{label}.png",
        ),
        HTTPStatus.OK,
    )
