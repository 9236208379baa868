"""
QR links for tables.

The printed QR code only carries the table id; the landing route looks up the
table's current session and forwards the guest to the menu with it, so a
rotation never requires reprinting.
"""

from __future__ import annotations

import base64
from io import BytesIO
from urllib.parse import urlencode

import qrcode

from tableside_shared.models import Table


def build_table_qr_url(base_url: str, table_id: int) -> str:
    """Deep link printed on the table."""
    return f"{base_url.rstrip('/')}/table-redirect?{urlencode({'table': table_id})}"


def build_menu_url(base_url: str, slug: str, table: Table | None = None) -> str:
    """
    Menu URL a guest lands on after scanning.

    Without a table (unknown or unavailable) the guest still gets the menu,
    just not bound to a table session.
    """
    url = f"{base_url.rstrip('/')}/menu/{slug}"
    if table is None:
        return url
    params = {"table": table.id, "session": table.session_id, "area": table.area_id}
    return f"{url}?{urlencode(params)}"


def qr_png_bytes(url: str) -> BytesIO:
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(url)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


def qr_png_data_url(url: str) -> str:
    b64 = base64.b64encode(qr_png_bytes(url).getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"
