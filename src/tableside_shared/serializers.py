"""
Serializers for consistent API responses.
"""

from decimal import Decimal
from typing import Any

from tableside_shared.models import Table, TableOrder, TableOrderLine


def _safe_float(value) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_table(table: Table) -> dict[str, Any]:
    """Serialize Table model."""
    return {
        "id": table.id,
        "restaurant_id": table.restaurant_id,
        "area_id": table.area_id,
        "label": table.label,
        "capacity": table.capacity,
        "status": table.status,
        "session_id": table.session_id,
        "session_rotated_at": _iso(table.session_rotated_at),
        "is_active": table.is_active,
    }


def serialize_order_line(line: TableOrderLine) -> dict[str, Any]:
    """Serialize TableOrderLine model."""
    return {
        "product_id": line.product_id,
        "name": line.display_name,
        "unit_price": _safe_float(line.unit_price),
        "quantity": line.quantity,
        "customer_token": line.customer_token,
        "processed": bool(line.processed),
        "line_total": _safe_float(line.line_total),
    }


def serialize_order(order: TableOrder) -> dict[str, Any]:
    """Serialize TableOrder model with every customer's lines."""
    return {
        "id": order.id,
        "table_id": order.table_id,
        "area_id": order.area_id,
        "restaurant_id": order.restaurant_id,
        "order_status": order.order_status,
        "items": [serialize_order_line(line) for line in order.lines],
        "customer_tokens": order.customer_tokens,
        "subtotal": _safe_float(order.subtotal),
        "total": _safe_float(order.total),
        "version": order.version,
        "placed_at": _iso(order.placed_at),
        "processed_at": _iso(order.processed_at),
        "closed_at": _iso(order.closed_at),
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


def serialize_contribution(order: TableOrder | None, customer_token: str) -> dict[str, Any]:
    """Project one device's lines out of the shared order ("my cart")."""
    lines = [line for line in (order.lines if order else []) if line.customer_token == customer_token]
    subtotal = sum((line.line_total for line in lines), Decimal("0"))
    return {
        "customer_token": customer_token,
        "order_id": order.id if order else None,
        "items": [serialize_order_line(line) for line in lines],
        "subtotal": _safe_float(subtotal),
    }


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(error: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"status": "error", "data": None, "error": error}
    if details:
        response["details"] = details
    return response
