"""
Cart Merge Engine.

Each device always sends its complete desired cart. The merge replaces that
device's lines inside the shared table order and leaves every other device's
lines, and every staff processing flag it is not entitled to touch, alone.

The merge itself (``apply_cart``) is a pure transformation of a loaded order;
``merge_cart`` wraps it with the table guards and the locked read that make it
safe under concurrent writers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from tableside_shared.constants import UNAVAILABLE_TABLE_STATUSES, TableStatus
from tableside_shared.errors import DomainError, table_unavailable
from tableside_shared.logging_config import table_logger
from tableside_shared.models import CENTS, TableOrder, TableOrderLine
from tableside_shared.services import order_store, table_registry


@dataclass(frozen=True)
class CartLine:
    """One entry of a device's desired cart."""

    product_id: str
    quantity: int
    unit_price: Decimal
    display_name: str


def normalize_cart(lines: Iterable[CartLine]) -> list[CartLine]:
    """
    Collapse repeated products (quantities add up, first name/price wins) and
    drop anything that ends at zero. Submission order is preserved.
    """
    merged: dict[str, CartLine] = {}
    for line in lines:
        price = Decimal(line.unit_price).quantize(CENTS)
        previous = merged.get(line.product_id)
        if previous is None:
            merged[line.product_id] = CartLine(
                line.product_id, int(line.quantity), price, line.display_name
            )
        else:
            merged[line.product_id] = CartLine(
                previous.product_id,
                previous.quantity + int(line.quantity),
                previous.unit_price,
                previous.display_name,
            )
    return [line for line in merged.values() if line.quantity > 0]


def apply_cart(
    order: TableOrder, customer_token: str, cart: Iterable[CartLine], now: datetime
) -> bool:
    """
    Replace ``customer_token``'s lines of ``order`` with ``cart``.

    A line keeps its processed flag only when its quantity is unchanged; new
    lines and re-quantified lines are always unprocessed. Returns whether the
    order changed.
    """
    desired = {line.product_id: line for line in normalize_cart(cart)}
    mine = {line.product_id: line for line in order.lines if line.customer_token == customer_token}
    changed = False

    for product_id, line in mine.items():
        if product_id not in desired:
            order.lines.remove(line)
            changed = True

    next_position = max((line.position for line in order.lines), default=-1) + 1
    for product_id, wanted in desired.items():
        existing = mine.get(product_id)
        if existing is None:
            order.lines.append(
                TableOrderLine(
                    product_id=product_id,
                    customer_token=customer_token,
                    display_name=wanted.display_name,
                    unit_price=wanted.unit_price,
                    quantity=wanted.quantity,
                    processed=False,
                    position=next_position,
                    created_at=now,
                )
            )
            next_position += 1
            changed = True
            continue

        if existing.quantity != wanted.quantity:
            existing.quantity = wanted.quantity
            existing.processed = False
            changed = True
        if Decimal(existing.unit_price) != wanted.unit_price:
            existing.unit_price = wanted.unit_price
            changed = True
        if existing.display_name != wanted.display_name:
            existing.display_name = wanted.display_name
            changed = True

    if changed:
        order.recompute_totals()
        order.lines_changed_at = now
        order.updated_at = now
    return changed


def merge_cart(
    db_session: Session,
    table_id: int,
    customer_token: str,
    cart: Iterable[CartLine],
    *,
    session_id: str | None = None,
    now: datetime | None = None,
) -> TableOrder | None | DomainError:
    """
    Fold one device's cart into the table's active order.

    Returns the updated order, ``None`` when the table has no order and the
    cart is empty, or a DomainError (NotFound, TableUnavailable, TableClosed).
    Must run inside a table unit so the locked read and the write are atomic.
    """
    now = now or datetime.utcnow()
    cart = list(cart)
    log = table_logger(__name__, table_id, customer_token=customer_token)

    # Order row first, then table row: the same lock order close uses.
    order = order_store.load_active_order(db_session, table_id, for_update=True)
    table = table_registry.get_table(db_session, table_id, for_update=True)
    if isinstance(table, DomainError):
        return table
    if TableStatus(table.status) in UNAVAILABLE_TABLE_STATUSES:
        log.info(f"Cart rejected, table is {table.status}")
        return table_unavailable(table.status)

    closed = order_store.guard_not_closed(db_session, table, session_id)
    if closed is not None:
        log.info("Cart rejected, table order closed or QR session stale")
        return closed

    if order is None:
        if not normalize_cart(cart):
            return None
        order = order_store.new_order(table, now)
        db_session.add(order)
        log.info("Opening new table order")

    changed = apply_cart(order, customer_token, cart, now)
    if changed:
        db_session.flush()
        log.info(
            f"Merged cart into order {order.id}: {len(order.lines)} lines, "
            f"{len(order.customer_tokens)} customers, total {order.total}"
        )
    return order
