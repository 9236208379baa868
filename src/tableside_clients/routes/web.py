"""
QR landing route.

The code printed on a table points here with just the table id; the guest is
forwarded to the menu carrying the table's current QR session.
"""

from __future__ import annotations

from flask import Blueprint, current_app, redirect, request

from tableside_shared.constants import UNAVAILABLE_TABLE_STATUSES, TableStatus
from tableside_shared.db import get_session
from tableside_shared.errors import DomainError
from tableside_shared.logging_config import get_logger
from tableside_shared.services import table_registry
from tableside_shared.services.qr_service import build_menu_url

web_bp = Blueprint("client_web", __name__)
logger = get_logger(__name__)


@web_bp.get("/table-redirect")
def table_redirect():
    """
    Resolve ``?table=<id>`` and redirect to the menu.

    Unknown or unavailable tables still land on the menu, only without a
    table binding, so the guest can browse but not order.
    """
    base_url = current_app.config.get("PUBLIC_BASE_URL", "")
    fallback_slug = current_app.config.get("RESTAURANT_SLUG", "")
    table_id = request.args.get("table", type=int)

    target = build_menu_url(base_url, fallback_slug)
    if table_id is not None:
        with get_session() as db_session:
            table = table_registry.get_table(db_session, table_id)
            if isinstance(table, DomainError):
                logger.warning(f"QR scan for unknown table {table_id}")
            elif TableStatus(table.status) in UNAVAILABLE_TABLE_STATUSES:
                logger.info(f"QR scan for unavailable table {table_id} ({table.status})")
            else:
                target = build_menu_url(base_url, table.restaurant.slug, table)

    return redirect(target, code=302)
